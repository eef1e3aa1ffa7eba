"""Tests for the runtime-backed model extractor."""

from __future__ import annotations

from pathlib import Path

from codeindex.extractors.model import (
    ModelExtractor,
    default_table_name,
    extract_callbacks,
    extract_validations,
)
from codeindex.runtime import Association, ModelDescriptor
from tests._fixtures.repo_builder import RepoBuilder
from tests._fixtures.runtime import BrokenModel, ExplodingRuntime, FakeRuntime, ScalarRuntime

ORDER_MODEL = """
class Order < ApplicationRecord
  belongs_to :customer
  belongs_to :billable, polymorphic: true
  has_many :line_items, dependent: :destroy
  has_many :notes, class_name: "Internal::Note"
  has_one :shipment

  scope :recent, -> { where(created_at: 1.week.ago..) }

  before_save :normalize_totals
  after_commit { ReceiptMailer.receipt(self).deliver_later }

  validates :number, :total, presence: true
  validate :total_matches_items

  def total_cents
    PricingService.cents(total)
  end

  def self.search(term)
    where(number: term)
  end

  private

  def normalize_totals
    Customer.touch_all
    Order.none
  end
end
"""

USER_MODEL = """
class User < ApplicationRecord
  def full_name
    "#{first_name} #{last_name}"
  end
end
"""


def _extractor(repo_builder: RepoBuilder, runtime: FakeRuntime, **overrides) -> ModelExtractor:
    return ModelExtractor(repo_builder.context(runtime=runtime, **overrides))


def test_model_parsed_from_conventional_source(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/models/order.rb": ORDER_MODEL})
    runtime = FakeRuntime(models=[ModelDescriptor(name="Order")])
    extractor = ModelExtractor(repo_builder.context(models=["Customer", "Order"], runtime=runtime))

    units = extractor.extract_all()

    assert len(units) == 1
    unit = units[0]
    meta = unit.metadata
    assert unit.identifier == "Order"
    assert unit.file_path == str(repo_builder.file("app/models/order.rb"))
    assert meta["source_resolution"] == "convention"
    assert meta["table_name"] == "orders"
    assert meta["parent_class"] == "ApplicationRecord"
    assert [(a["name"], a["target"]) for a in meta["associations"]] == [
        ("customer", "Customer"),
        ("billable", ""),
        ("line_items", "LineItem"),
        ("notes", "Internal::Note"),
        ("shipment", "Shipment"),
    ]
    assert meta["instance_methods"] == ["total_cents"]
    assert meta["class_methods"] == ["search"]
    assert meta["scopes"] == ["recent"]
    assert meta["callbacks"] == [
        {"type": "before_save", "filter": "normalize_totals"},
        {"type": "after_commit", "filter": "block"},
    ]
    assert meta["validations"] == [
        {"macro": "validates", "attributes": ["number", "total"]},
        {"macro": "validate", "attributes": ["total_matches_items"]},
    ]
    assert meta["is_join_model"] is False
    assert {(d.type, d.target, d.via) for d in unit.dependencies} == {
        ("model", "Customer", "association"),
        ("model", "LineItem", "association"),
        ("model", "Internal::Note", "association"),
        ("model", "Shipment", "association"),
        ("service", "PricingService", "code_reference"),
        ("mailer", "ReceiptMailer", "code_reference"),
    }
    assert "Resolved: convention" in unit.source_code


def test_runtime_metadata_wins(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/models/product.rb": "class Product < CatalogRecord\nend\n"})
    location = str(repo_builder.file("app/models/product.rb"))
    descriptor = ModelDescriptor(
        name="Product",
        instance_methods={
            "price": location,
            "_compute": location,
            "autosave_associated_records_for_variants": location,
        },
        table_name="catalog_products",
        parent_class="CatalogRecord",
        associations=(Association(name="variants", macro="has_many", class_name="Variant"),),
    )

    unit = _extractor(repo_builder, FakeRuntime(models=[descriptor])).extract_all()[0]

    assert unit.metadata["source_resolution"] == "instance_method"
    assert unit.metadata["table_name"] == "catalog_products"
    assert unit.metadata["instance_methods"] == ["price"]
    assert unit.metadata["associations"] == [{"name": "variants", "type": "has_many", "target": "Variant"}]
    assert [(d.type, d.target, d.via) for d in unit.dependencies] == [("model", "Variant", "association")]


def test_library_locations_are_never_accepted(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write({"app/models/user.rb": USER_MODEL})
    user_path = str(repo_builder.file("app/models/user.rb"))
    vendored = str(repo_builder.file("vendor/bundle/gems/devise/lib/devise/models.rb"))
    outside = tmp_path / "elsewhere" / "user.rb"
    outside.parent.mkdir()
    outside.write_text("class User\nend\n", encoding="utf-8")
    descriptor = ModelDescriptor(
        name="User",
        instance_methods={"devise_hook": vendored, "outside_hook": str(outside), "full_name": user_path},
    )

    unit = _extractor(repo_builder, FakeRuntime(models=[descriptor])).extract_all()[0]

    assert unit.file_path == user_path
    assert unit.metadata["source_resolution"] == "instance_method"


def test_class_method_tier(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/models/billing/plan.rb": "class Billing::Plan\n  def self.default\n  end\nend\n"})
    location = str(repo_builder.file("app/models/billing/plan.rb"))
    descriptor = ModelDescriptor(
        name="Billing::Plan",
        instance_methods={"to_param": str(repo_builder.file("vendor/rails/base.rb"))},
        class_methods={"default": location},
    )

    unit = _extractor(repo_builder, FakeRuntime(models=[descriptor])).extract_all()[0]

    assert unit.metadata["source_resolution"] == "class_method"
    assert unit.namespace == "Billing"
    assert unit.metadata["table_name"] == "plans"


def test_constant_location_and_fallback_tiers(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    repo_builder.write({"lib/legacy/thing.rb": "class Legacy::Thing < ActiveRecord::Base\nend\n"})
    runtime = FakeRuntime(
        models=[
            ModelDescriptor(name="Legacy::Thing"),
            ModelDescriptor(name="Ghost"),
            ModelDescriptor(name="Stray"),
        ],
        constants={
            "Legacy::Thing": str(repo_builder.file("lib/legacy/thing.rb")),
            "Stray": str(tmp_path / "stray.rb"),
        },
    )

    units = {unit.identifier: unit for unit in _extractor(repo_builder, runtime).extract_all()}

    assert units["Legacy::Thing"].metadata["source_resolution"] == "constant_location"
    assert units["Legacy::Thing"].metadata["parent_class"] == "ActiveRecord::Base"
    assert units["Ghost"].metadata["source_resolution"] == "convention_fallback"
    assert units["Ghost"].file_path == str(repo_builder.file("app/models/ghost.rb"))
    assert units["Ghost"].metadata["loc"] == 0
    assert units["Stray"].metadata["source_resolution"] == "convention_fallback"


def test_abstract_nameless_and_join_models(repo_builder: RepoBuilder) -> None:
    models = [
        ModelDescriptor(name="ApplicationRecord", abstract=True),
        ModelDescriptor(name=None),
        ModelDescriptor(name="Product::HABTM_Categories"),
        ModelDescriptor(name="Product"),
    ]
    runtime = FakeRuntime(models=models)

    default = _extractor(repo_builder, runtime).extract_all()
    flagged = _extractor(repo_builder, runtime, include_join_models=True).extract_all()

    assert [unit.identifier for unit in default] == ["Product"]
    assert [unit.identifier for unit in flagged] == ["Product::HABTM_Categories", "Product"]
    assert flagged[0].metadata["is_join_model"] is True


def test_unavailable_registry(repo_builder: RepoBuilder) -> None:
    assert ModelExtractor(repo_builder.context()).extract_all() == []
    assert _extractor(repo_builder, FakeRuntime()).extract_all() == []
    assert ModelExtractor(repo_builder.context(runtime=ExplodingRuntime())).extract_all() == []


def test_unreadable_models_are_skipped(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/models/order.rb": ORDER_MODEL})
    runtime = FakeRuntime(models=[BrokenModel(), ModelDescriptor(name="Order")])

    units = _extractor(repo_builder, runtime).extract_all()

    assert [unit.identifier for unit in units] == ["Order"]
    assert ModelExtractor(repo_builder.context()).extract_one(BrokenModel()) is None


def test_non_iterable_registry(repo_builder: RepoBuilder) -> None:
    assert ModelExtractor(repo_builder.context(runtime=ScalarRuntime())).extract_all() == []


def test_source_helpers() -> None:
    assert default_table_name("Admin::AuditLog") == "audit_logs"
    assert extract_callbacks("  after_create_commit :notify\n") == [
        {"type": "after_create_commit", "filter": "notify"}
    ]
    assert extract_validations("  validates_presence_of :name, :email\n") == [
        {"macro": "validates_presence_of", "attributes": ["name", "email"]}
    ]
