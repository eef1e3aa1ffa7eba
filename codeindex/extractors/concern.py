"""Extractor for shared-behavior mixin modules (concerns)."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Optional, TypedDict

from .base import FileExtractor
from ..models import CodeUnit, Dependency, UnitType, unique_dependencies
from ..text import (
    annotate_source,
    count_loc,
    extract_class_methods,
    extract_module_name,
    extract_namespace,
    extract_public_methods,
    method_count,
    scan_job_dependencies,
    scan_model_dependencies,
    scan_service_dependencies,
)

_MODULE = re.compile(r"^\s*module\s+[A-Z]", re.MULTILINE)
_ACTIVE_SUPPORT = re.compile(r"extend\s+ActiveSupport::Concern\b")
_INCLUDED_BLOCK = re.compile(r"\bincluded\s+do\b")
_CLASS_METHODS_BLOCK = re.compile(r"\bclass_methods\s+do\b")
_MIXIN_HOOK = re.compile(r"def\s+self\.(?:included|extended|prepended)\b")
_ANY_DEF = re.compile(r"^\s*def\s+\w+", re.MULTILINE)
_INCLUDED_MODULE = re.compile(r"^\s*(?:include|extend|prepend)\s+([A-Z][\w:]*)", re.MULTILINE)
_CALLBACK = re.compile(r"\b((?:before|after|around)_\w+)\s")
_SCOPE = re.compile(r"\bscope\s+:(\w+)")
_VALIDATION = re.compile(r"\b(validates?(?:_\w+)?)\s")

_SCOPES = {
    "app/models/concerns": "model",
    "app/controllers/concerns": "controller",
}


class ConcernMetadata(TypedDict):
    concern_type: str
    concern_scope: str
    uses_active_support: bool
    has_included_block: bool
    has_class_methods_block: bool
    included_modules: List[str]
    instance_methods: List[str]
    class_methods: List[str]
    public_methods: List[str]
    callbacks_defined: List[str]
    scopes_defined: List[str]
    validations_defined: List[str]
    loc: int
    method_count: int


class ConcernExtractor(FileExtractor):
    """Extracts concern modules from model and controller concern directories."""

    kind = UnitType.CONCERN
    directories = tuple(_SCOPES)

    def extract_file(self, path: Path, source: str) -> Optional[CodeUnit]:
        if not _is_concern(source):
            return None
        module_name = extract_module_name(source)
        if not module_name:
            return None

        metadata = self._metadata(path, source)
        header = annotate_source(
            "Concern",
            module_name,
            [("Type", metadata["concern_type"]), ("Methods", metadata["instance_methods"])],
            source,
        )
        return CodeUnit(
            type=self.kind,
            identifier=module_name,
            file_path=str(path),
            namespace=extract_namespace(module_name),
            metadata=metadata,
            dependencies=self._dependencies(source),
            source_code=header,
        )

    def _metadata(self, path: Path, source: str) -> ConcernMetadata:
        uses_active_support = bool(_ACTIVE_SUPPORT.search(source))
        instance_methods = [
            name for name in extract_public_methods(source) if not name.startswith("self.")
        ]
        return ConcernMetadata(
            concern_type="active_support" if uses_active_support else "plain_mixin",
            concern_scope=self._scope(path),
            uses_active_support=uses_active_support,
            has_included_block=bool(_INCLUDED_BLOCK.search(source)),
            has_class_methods_block=bool(_CLASS_METHODS_BLOCK.search(source)),
            included_modules=_included_modules(source),
            instance_methods=instance_methods,
            class_methods=extract_class_methods(source),
            public_methods=extract_public_methods(source),
            callbacks_defined=list(dict.fromkeys(_CALLBACK.findall(source))),
            scopes_defined=_SCOPE.findall(source),
            validations_defined=list(dict.fromkeys(_VALIDATION.findall(source))),
            loc=count_loc(source),
            method_count=method_count(source),
        )

    def _scope(self, path: Path) -> str:
        relative = self.context.relative_path(path)
        for directory, scope in _SCOPES.items():
            if relative.startswith(f"{directory}/"):
                return scope
        return "unknown"

    def _dependencies(self, source: str) -> tuple[Dependency, ...]:
        edges: List[Dependency] = [
            Dependency(type="concern", target=name, via="include")
            for name in _included_modules(source)
        ]
        edges.extend(scan_model_dependencies(source, self.context.entity_pattern))
        edges.extend(scan_service_dependencies(source))
        edges.extend(scan_job_dependencies(source))
        return unique_dependencies(edges)


def _is_concern(source: str) -> bool:
    if not _MODULE.search(source):
        return False
    return bool(
        _ACTIVE_SUPPORT.search(source)
        or _INCLUDED_BLOCK.search(source)
        or _CLASS_METHODS_BLOCK.search(source)
        or _MIXIN_HOOK.search(source)
        or _ANY_DEF.search(source)
    )


def _included_modules(source: str) -> List[str]:
    names = [name for name in _INCLUDED_MODULE.findall(source) if name != "ActiveSupport::Concern"]
    return list(dict.fromkeys(names))


__all__ = ["ConcernExtractor", "ConcernMetadata"]
