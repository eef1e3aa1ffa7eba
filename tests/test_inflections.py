"""Tests for codeindex.inflections."""

from __future__ import annotations

import pytest

from codeindex.inflections import (
    camelize,
    demodulize,
    pluralize,
    singularize,
    strip_suffix,
    titleize,
    underscore,
)


@pytest.mark.parametrize(
    ("plural", "singular"),
    [
        ("Products", "Product"),
        ("Categories", "Category"),
        ("Addresses", "Address"),
        ("Statuses", "Status"),
        ("People", "Person"),
        ("LineItems", "LineItem"),
        ("Product", "Product"),
        ("Equipment", "Equipment"),
    ],
)
def test_singularize(plural: str, singular: str) -> None:
    assert singularize(plural) == singular


@pytest.mark.parametrize(
    ("singular", "plural"),
    [
        ("user", "users"),
        ("category", "categories"),
        ("box", "boxes"),
        ("person", "people"),
        ("line_item", "line_items"),
    ],
)
def test_pluralize(singular: str, plural: str) -> None:
    assert pluralize(singular) == plural


def test_camelize_and_underscore_are_path_aware() -> None:
    assert camelize("admin/user_profiles") == "Admin::UserProfiles"
    assert camelize("users") == "Users"
    assert underscore("Admin::UserProfile") == "admin/user_profile"
    assert underscore("HTMLParser") == "html_parser"


def test_demodulize_and_titleize() -> None:
    assert demodulize("Billing::Invoice") == "Invoice"
    assert demodulize("Invoice") == "Invoice"
    assert titleize("admin_reports") == "Admin Reports"


def test_strip_suffix_requires_the_suffix() -> None:
    assert strip_suffix("ProductManager", "Manager") == "Product"
    assert strip_suffix("Admin::PostPolicy", "Policy") == "Post"
    assert strip_suffix("AccountManagingProducts", "Manager") is None
    assert strip_suffix("Manager", "Manager") is None
