"""Extractor for delegation managers that wrap another object."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, TypedDict

from .base import FileExtractor
from ..inflections import singularize, strip_suffix
from ..models import CodeUnit, Dependency, UnitType, unique_dependencies
from ..text import (
    annotate_source,
    count_loc,
    extract_class_methods,
    extract_class_name,
    extract_custom_errors,
    extract_initialize_params,
    extract_namespace,
    extract_public_methods,
    method_count,
    scan_job_dependencies,
    scan_mailer_dependencies,
    scan_model_dependencies,
    scan_service_dependencies,
)

_SIMPLE_DELEGATOR = re.compile(r"<\s*SimpleDelegator\b")
_DELEGATE_CLASS = re.compile(r"<\s*DelegateClass\(\s*([A-Z][\w:]*)?\s*\)?")
_DELEGATE_DECL = re.compile(r"^\s*delegate\s+(.+?),\s*to:", re.MULTILINE)
_SYMBOL = re.compile(r":(\w+[?!]?)")
_OVERRIDE = re.compile(r"def\s+(\w+[?!=]?)[^\n]*\n(?:(?!\s*def\s)[^\n]*\n)*?\s*super\b")


class ManagerMetadata(TypedDict):
    wrapped_model: Optional[str]
    delegation_type: str
    public_methods: List[str]
    class_methods: List[str]
    initialize_params: List[Dict[str, object]]
    delegated_methods: List[str]
    overridden_methods: List[str]
    custom_errors: List[str]
    loc: int
    method_count: int


class ManagerExtractor(FileExtractor):
    """Extracts SimpleDelegator / DelegateClass wrappers from app/managers."""

    kind = UnitType.MANAGER
    directories = ("app/managers",)

    def extract_file(self, path: Path, source: str) -> Optional[CodeUnit]:
        delegation_type = detect_delegation_type(source)
        if delegation_type is None:
            return None
        class_name = extract_class_name(source) or self.convention_name(path, self.directories)
        if not class_name:
            return None

        wrapped = detect_wrapped_model(source, class_name)
        metadata = ManagerMetadata(
            wrapped_model=wrapped,
            delegation_type=delegation_type,
            public_methods=extract_public_methods(source),
            class_methods=extract_class_methods(source),
            initialize_params=extract_initialize_params(source),
            delegated_methods=extract_delegated_methods(source),
            overridden_methods=list(dict.fromkeys(_OVERRIDE.findall(source))),
            custom_errors=extract_custom_errors(source),
            loc=count_loc(source),
            method_count=method_count(source),
        )
        return CodeUnit(
            type=self.kind,
            identifier=class_name,
            file_path=str(path),
            namespace=extract_namespace(class_name),
            metadata=metadata,
            dependencies=self._dependencies(source, wrapped),
            source_code=annotate_source("Manager", class_name, [("Wraps", wrapped)], source),
        )

    def _dependencies(self, source: str, wrapped: Optional[str]) -> tuple[Dependency, ...]:
        edges: List[Dependency] = []
        if wrapped:
            edges.append(Dependency(type="model", target=wrapped, via="delegation"))
        edges.extend(scan_model_dependencies(source, self.context.entity_pattern))
        edges.extend(scan_service_dependencies(source))
        edges.extend(scan_job_dependencies(source))
        edges.extend(scan_mailer_dependencies(source))
        return unique_dependencies(edges)


def detect_delegation_type(source: str) -> Optional[str]:
    if _DELEGATE_CLASS.search(source):
        return "delegate_class"
    if _SIMPLE_DELEGATOR.search(source):
        return "simple_delegator"
    return None


def detect_wrapped_model(source: str, class_name: str) -> Optional[str]:
    """Explicit ``DelegateClass(Model)`` argument, else ``FooManager`` -> ``Foo``."""
    match = _DELEGATE_CLASS.search(source)
    if match and match.group(1):
        return match.group(1)
    stripped = strip_suffix(class_name, "Manager")
    return singularize(stripped) if stripped else None


def extract_delegated_methods(source: str) -> List[str]:
    methods: List[str] = []
    for declaration in _DELEGATE_DECL.findall(source):
        methods.extend(_SYMBOL.findall(declaration))
    return list(dict.fromkeys(methods))


__all__ = [
    "ManagerExtractor",
    "ManagerMetadata",
    "detect_delegation_type",
    "detect_wrapped_model",
    "extract_delegated_methods",
]
