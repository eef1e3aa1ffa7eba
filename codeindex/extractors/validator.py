"""Extractor for custom per-attribute and whole-record validators."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, TypedDict

from .base import FileExtractor
from ..inflections import demodulize, strip_suffix
from ..models import CodeUnit, Dependency, UnitType, unique_dependencies
from ..text import (
    annotate_source,
    count_loc,
    extract_class_methods,
    extract_class_name,
    extract_custom_errors,
    extract_namespace,
    extract_public_methods,
    method_count,
    scan_model_dependencies,
    scan_service_dependencies,
)

MAX_VALIDATION_RULES = 10

_EACH_VALIDATOR_BASE = re.compile(r"<\s*ActiveModel::EachValidator\b")
_VALIDATOR_BASE = re.compile(r"<\s*ActiveModel::Validator\b")
_VALIDATE_EACH_DEF = re.compile(r"def\s+validate_each\b")
_VALIDATE_DEF = re.compile(r"def\s+validate\(")

_VALIDATE_EACH_ATTR = re.compile(r"def\s+validate_each\s*\(\s*\w+\s*,\s*(\w+)")
_ERRORS_ADD_ATTR = re.compile(r"errors\.add\s*\(\s*:(\w+)")
_VALIDATES_EACH_ATTR = re.compile(r"validates_each\s*\(?\s*:(\w+)")

_UNLESS_RULE = re.compile(r"\bunless\s+(.+)$", re.MULTILINE)
_IF_RULE = re.compile(r"\bif\s+(.+?)(?:\s*$|\s+then\b)", re.MULTILINE)
_MATCH_OPERATOR_RULE = re.compile(r"=~\s*(/[^/\n]+/)")
_MATCH_CALL_RULE = re.compile(r"match\?\s*\((/[^/\n]+/)\)")

_MESSAGE_STRING = re.compile(r"errors\.add\s*\(\s*:?\w+\s*,\s*[\"']([^\"']+)[\"']")
_MESSAGE_SYMBOL = re.compile(r"errors\.add\s*\(\s*:?\w+\s*,\s*:(\w+)")
_OPTION_KEY = re.compile(r"options\[:(\w+)\]")

_VALIDATOR_REF = re.compile(r"\b(\w+Validator)(?:\.|::new)")
_VALIDATES_WITH = re.compile(r"validates_with\s+([A-Z][\w:]*Validator)\b")


class ValidatorMetadata(TypedDict):
    validator_type: str
    validated_attributes: List[str]
    validation_rules: List[str]
    error_messages: List[str]
    public_methods: List[str]
    class_methods: List[str]
    options_used: List[str]
    inferred_models: List[str]
    custom_errors: List[str]
    loc: int
    method_count: int


class ValidatorExtractor(FileExtractor):
    """Extracts ``ActiveModel`` style validators from app/validators."""

    kind = UnitType.VALIDATOR
    directories = ("app/validators",)

    def extract_file(self, path: Path, source: str) -> Optional[CodeUnit]:
        validator_type = detect_validator_type(source)
        if validator_type is None:
            return None
        class_name = extract_class_name(source) or self.convention_name(path, self.directories)
        if not class_name:
            return None

        attributes = extract_validated_attributes(source)
        metadata = ValidatorMetadata(
            validator_type=validator_type,
            validated_attributes=attributes,
            validation_rules=extract_validation_rules(source),
            error_messages=extract_error_messages(source),
            public_methods=extract_public_methods(source),
            class_methods=extract_class_methods(source),
            options_used=list(dict.fromkeys(_OPTION_KEY.findall(source))),
            inferred_models=infer_models(class_name),
            custom_errors=extract_custom_errors(source),
            loc=count_loc(source),
            method_count=method_count(source),
        )
        header = annotate_source(
            "Validator",
            class_name,
            [("Type", validator_type), ("Attributes", attributes)],
            source,
        )
        return CodeUnit(
            type=self.kind,
            identifier=class_name,
            file_path=str(path),
            namespace=extract_namespace(class_name),
            metadata=metadata,
            dependencies=self._dependencies(source, class_name),
            source_code=header,
        )

    def _dependencies(self, source: str, class_name: str) -> tuple[Dependency, ...]:
        edges: List[Dependency] = scan_model_dependencies(
            source, self.context.entity_pattern, via="validation"
        )
        edges.extend(scan_service_dependencies(source))
        own_names = {class_name, demodulize(class_name)}
        referenced = _VALIDATOR_REF.findall(source) + _VALIDATES_WITH.findall(source)
        for name in dict.fromkeys(referenced):
            if name in own_names:
                continue
            edges.append(Dependency(type="validator", target=name, via="code_reference"))
        return unique_dependencies(edges)


def detect_validator_type(source: str) -> Optional[str]:
    """Inheritance wins; otherwise the method signature decides."""
    if _EACH_VALIDATOR_BASE.search(source):
        return "each_validator"
    if _VALIDATOR_BASE.search(source):
        return "validator"
    if _VALIDATE_EACH_DEF.search(source):
        return "each_validator"
    if _VALIDATE_DEF.search(source):
        return "validator"
    return None


def extract_validated_attributes(source: str) -> List[str]:
    attributes: List[str] = []
    match = _VALIDATE_EACH_ATTR.search(source)
    if match:
        attributes.append(match.group(1))
    attributes.extend(_ERRORS_ADD_ATTR.findall(source))
    attributes.extend(_VALIDATES_EACH_ATTR.findall(source))
    return list(dict.fromkeys(attributes))


def extract_validation_rules(source: str) -> List[str]:
    rules: List[str] = [rule.strip() for rule in _UNLESS_RULE.findall(source)]
    rules.extend(rule.strip() for rule in _IF_RULE.findall(source))
    rules.extend(f"matches {regex}" for regex in _MATCH_OPERATOR_RULE.findall(source))
    rules.extend(f"matches {regex}" for regex in _MATCH_CALL_RULE.findall(source))
    return rules[:MAX_VALIDATION_RULES]


def extract_error_messages(source: str) -> List[str]:
    messages = list(_MESSAGE_STRING.findall(source))
    messages.extend(f":{symbol}" for symbol in _MESSAGE_SYMBOL.findall(source))
    return messages


def infer_models(class_name: str) -> List[str]:
    stripped = strip_suffix(demodulize(class_name), "Validator")
    return [stripped] if stripped else []


__all__ = [
    "MAX_VALIDATION_RULES",
    "ValidatorExtractor",
    "ValidatorMetadata",
    "detect_validator_type",
    "extract_error_messages",
    "extract_validated_attributes",
    "extract_validation_rules",
    "infer_models",
]
