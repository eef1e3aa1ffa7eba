"""Tests for the custom validator extractor."""

from __future__ import annotations

from codeindex.extractors.validator import (
    MAX_VALIDATION_RULES,
    ValidatorExtractor,
    detect_validator_type,
    extract_validation_rules,
    infer_models,
)
from tests._fixtures.repo_builder import RepoBuilder

EMAIL_FORMAT = r"""
class EmailFormatValidator < ActiveModel::EachValidator
  def validate_each(record, attribute, value)
    return if value.blank? && options[:allow_blank]

    unless value =~ /\A[^@\s]+@[^@\s]+\z/
      record.errors.add(attribute, "is not an email")
    end
    record.errors.add(attribute, :taken) if DuplicateEmailService.taken?(value)
  end
end
"""

ORDER_TOTALS = """
class Orders::TotalsValidator
  def validate(record)
    return unless Invoice.exists?(record.invoice_id)

    record.errors.add(:total, "must not be negative") if record.total.negative?
    AddressValidator.new.validate(record)
  end
end
"""

COMPOSITE = """
class CompositeValidator < ActiveModel::Validator
  def validate(record)
    record.validates_with PresenceOfNameValidator
    CompositeValidator.instance_method(:validate)
  end
end
"""


def test_each_validator(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/validators/email_format_validator.rb": EMAIL_FORMAT})

    units = ValidatorExtractor(repo_builder.context()).extract_all()

    assert len(units) == 1
    unit = units[0]
    meta = unit.metadata
    assert unit.identifier == "EmailFormatValidator"
    assert meta["validator_type"] == "each_validator"
    assert meta["validated_attributes"] == ["attribute"]
    assert meta["error_messages"] == ["is not an email", ":taken"]
    assert meta["options_used"] == ["allow_blank"]
    assert meta["inferred_models"] == ["EmailFormat"]
    assert r"matches /\A[^@\s]+@[^@\s]+\z/" in meta["validation_rules"]
    assert {(d.type, d.target, d.via) for d in unit.dependencies} == {
        ("service", "DuplicateEmailService", "code_reference"),
    }
    assert "Type: each_validator" in unit.source_code


def test_validator_detected_from_signature(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/validators/orders/totals_validator.rb": ORDER_TOTALS})

    unit = ValidatorExtractor(repo_builder.context(models=["Invoice"])).extract_all()[0]

    assert unit.identifier == "Orders::TotalsValidator"
    assert unit.namespace == "Orders"
    assert unit.metadata["validator_type"] == "validator"
    assert unit.metadata["validated_attributes"] == ["total"]
    assert unit.metadata["inferred_models"] == ["Totals"]
    assert {(d.type, d.target, d.via) for d in unit.dependencies} == {
        ("model", "Invoice", "validation"),
        ("validator", "AddressValidator", "code_reference"),
    }


def test_validator_references_exclude_itself(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/validators/composite_validator.rb": COMPOSITE})

    unit = ValidatorExtractor(repo_builder.context()).extract_all()[0]

    targets = [dep.target for dep in unit.dependencies if dep.type == "validator"]
    assert targets == ["PresenceOfNameValidator"]


def test_non_validators_are_skipped(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/validators/formatter.rb": "class Formatter\n  def call(value)\n  end\nend\n"})

    assert ValidatorExtractor(repo_builder.context()).extract_all() == []


def test_detect_validator_type_prefers_inheritance() -> None:
    assert detect_validator_type("class A < ActiveModel::EachValidator\n  def validate(r)\n  end\nend") == (
        "each_validator"
    )
    assert detect_validator_type("class A < ActiveModel::Validator\nend") == "validator"
    assert detect_validator_type("class A\n  def validate_each(r, a, v)\n  end\nend") == "each_validator"
    assert detect_validator_type("class A\n  def validate(r)\n  end\nend") == "validator"
    assert detect_validator_type("class A\n  def validated?\n  end\nend") is None


def test_validation_rules_are_capped() -> None:
    source = "\n".join(f"  fail unless check_{index}" for index in range(MAX_VALIDATION_RULES + 5))

    rules = extract_validation_rules(source)

    assert len(rules) == MAX_VALIDATION_RULES
    assert rules[0] == "check_0"


def test_infer_models() -> None:
    assert infer_models("Billing::ZipCodeValidator") == ["ZipCode"]
    assert infer_models("Validator") == []
    assert infer_models("Checker") == []
