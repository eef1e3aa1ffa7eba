"""Extractor for ORM models exposed by the runtime model registry.

The runtime tells us which models exist and where their methods are defined;
the defining file is then located with a tiered fallback that only ever
accepts paths inside the application root:

1. ``instance_method`` - first instance method defined under the root
2. ``class_method`` - first class-level method defined under the root
3. ``convention`` - ``app/models/<underscored name>.rb`` when it exists
4. ``constant_location`` - the runtime's optional constant lookup
5. ``convention_fallback`` - the conventional path, even if missing
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, TypedDict

from .base import Extractor
from ..entity_names import is_join_model_name
from ..inflections import camelize, demodulize, pluralize, singularize, underscore
from ..logging import log_failure
from ..models import CodeUnit, Dependency, UnitType, unique_dependencies
from ..runtime import safe_query
from ..text import (
    annotate_source,
    count_loc,
    extract_class_methods,
    extract_namespace,
    extract_public_methods,
    read_source,
    scan_job_dependencies,
    scan_mailer_dependencies,
    scan_model_dependencies,
    scan_service_dependencies,
)

MODELS_DIRECTORY = "app/models"

# Directory names that mark third-party code even when vendored under the root.
LIBRARY_DIRS = frozenset({"vendor", "gems", "node_modules"})

_INTERNAL_METHOD = re.compile(
    r"^(?:_"
    r"|autosave_associated_records_for_"
    r"|validate_associated_records_for_"
    r"|(?:after|before)_(?:add|remove)_for_)"
)
_PARENT_CLASS = re.compile(r"^\s*class\s+[A-Z][\w:]*\s*<\s*([A-Z][\w:]*)", re.MULTILINE)
_ASSOCIATION = re.compile(
    r"^\s*(belongs_to|has_many|has_one|has_and_belongs_to_many)\s+:(\w+)([^\n]*)",
    re.MULTILINE,
)
_CLASS_NAME_OPTION = re.compile(r"class_name:\s*[\"']([\w:]+)[\"']")
_SCOPE = re.compile(r"^\s*scope\s+:(\w+)", re.MULTILINE)
_CALLBACK = re.compile(
    r"^\s*((?:before|after|around)_(?:validation|save|create|update|destroy|commit|rollback"
    r"|initialize|find|touch|create_commit|update_commit|destroy_commit|save_commit))\b([^\n]*)",
    re.MULTILINE,
)
_VALIDATION = re.compile(r"^\s*(validates(?:_\w+_of)?|validate)\s+([^\n]*)", re.MULTILINE)
_SYMBOL_ARG = re.compile(r"^:(\w+[?!]?)$")


class ModelMetadata(TypedDict):
    table_name: str
    parent_class: Optional[str]
    associations: List[Dict[str, str]]
    instance_methods: List[str]
    class_methods: List[str]
    scopes: List[str]
    callbacks: List[Dict[str, str]]
    validations: List[Dict[str, Any]]
    loc: int
    source_resolution: str
    is_join_model: bool


class ModelExtractor(Extractor):
    """Builds one unit per concrete, named model from the runtime registry."""

    kind = UnitType.MODEL

    def extract_all(self) -> List[CodeUnit]:
        if self.context.runtime is None:
            return []
        models = safe_query(self.context.runtime, "models", self.logger)
        if models is None:
            self.logger.debug("Runtime exposes no model registry")
            return []
        units: List[CodeUnit] = []
        try:
            candidates = list(models)
        except Exception as exc:
            log_failure(self.logger, "Failed to iterate runtime model registry", exc)
            return []
        for model in candidates:
            try:
                name = getattr(model, "name", None)
                if getattr(model, "abstract", False) or not name:
                    continue
                if is_join_model_name(str(name)) and not self.context.include_join_models:
                    continue
            except Exception as exc:
                log_failure(self.logger, "Skipping model with unreadable attributes", exc)
                continue
            unit = self.extract_one(model)
            if unit is not None:
                units.append(unit)
        return units

    def extract_one(self, target: Any) -> Optional[CodeUnit]:
        name = None
        try:
            name = getattr(target, "name", None)
            if not name:
                return None
            return self._extract_model(target, str(name))
        except Exception as exc:
            log_failure(self.logger, f"Failed to extract model {name}", exc)
            return None
        try:
            return self._extract_model(target, str(name))
        except Exception as exc:
            log_failure(self.logger, f"Failed to extract model {name}", exc)
            return None

    def _extract_model(self, model: Any, name: str) -> CodeUnit:
        path, tier = self.resolve_source_file(model)
        source = self._read(path)
        is_join = is_join_model_name(name)

        associations = model_associations(model, source)
        metadata = ModelMetadata(
            table_name=getattr(model, "table_name", None) or default_table_name(name),
            parent_class=getattr(model, "parent_class", None) or _source_parent(source),
            associations=associations,
            instance_methods=self._instance_methods(model, source),
            class_methods=self._class_methods(model, source),
            scopes=_SCOPE.findall(source),
            callbacks=extract_callbacks(source),
            validations=extract_validations(source),
            loc=count_loc(source),
            source_resolution=tier,
            is_join_model=is_join,
        )
        header = annotate_source(
            "Model",
            name,
            [
                ("Table", metadata["table_name"]),
                ("Associations", [assoc["name"] for assoc in associations]),
                ("Resolved", tier),
            ],
            source,
        )
        return CodeUnit(
            type=self.kind,
            identifier=name,
            file_path=str(path),
            namespace=extract_namespace(name),
            metadata=metadata,
            dependencies=self._dependencies(name, source, associations),
            source_code=header,
        )

    # Source location

    def resolve_source_file(self, model: Any) -> Tuple[Path, str]:
        """Return ``(path, tier)`` for the file that defines ``model``."""
        convention = self.convention_path(str(model.name))
        try:
            for tier, methods in (
                ("instance_method", getattr(model, "instance_methods", None)),
                ("class_method", getattr(model, "class_methods", None)),
            ):
                for location in _method_locations(methods):
                    if self.in_app(location):
                        return Path(location), tier
            if convention.is_file():
                return convention, "convention"
            lookup = getattr(self.context.runtime, "constant_location", None)
            if callable(lookup):
                location = lookup(model.name)
                if location and self.in_app(location):
                    return Path(location), "constant_location"
        except Exception as exc:
            self.logger.debug("Source lookup for %s failed: %s", model.name, exc)
        return convention, "convention_fallback"

    def convention_path(self, name: str) -> Path:
        return self.context.root / MODELS_DIRECTORY / f"{underscore(name)}.rb"

    def in_app(self, location: str | Path) -> bool:
        """True when ``location`` is under the root and outside library directories."""
        try:
            relative = Path(location).resolve().relative_to(self.context.root.resolve())
        except (OSError, ValueError):
            return False
        return not LIBRARY_DIRS.intersection(relative.parts)

    def _read(self, path: Path) -> str:
        if not path.is_file():
            return ""
        try:
            return read_source(path)
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.debug("Skipping unreadable model source %s: %s", path, exc)
            return ""

    # Methods

    def _instance_methods(self, model: Any, source: str) -> List[str]:
        names = list(getattr(model, "instance_methods", None) or [])
        if not names:
            names = [name for name in extract_public_methods(source) if not name.startswith("self.")]
        return sorted({name for name in names if not _INTERNAL_METHOD.match(name)})

    def _class_methods(self, model: Any, source: str) -> List[str]:
        names = list(getattr(model, "class_methods", None) or []) or extract_class_methods(source)
        return sorted(set(names))

    # Dependencies

    def _dependencies(
        self, name: str, source: str, associations: List[Dict[str, str]]
    ) -> tuple[Dependency, ...]:
        edges: List[Dependency] = [
            Dependency(type="model", target=assoc["target"], via="association")
            for assoc in associations
            if assoc["target"]
        ]
        edges.extend(
            edge
            for edge in scan_model_dependencies(source, self.context.entity_pattern)
            if edge.target != name
        )
        edges.extend(scan_service_dependencies(source))
        edges.extend(scan_job_dependencies(source))
        edges.extend(scan_mailer_dependencies(source))
        return unique_dependencies(edges)


def default_table_name(name: str) -> str:
    return pluralize(underscore(demodulize(name)))


def model_associations(model: Any, source: str) -> List[Dict[str, str]]:
    """Associations from the runtime, else declarations found in the source."""
    runtime_associations = getattr(model, "associations", None) or ()
    if runtime_associations:
        return [
            {
                "name": str(getattr(assoc, "name", "")),
                "type": str(getattr(assoc, "macro", "")),
                "target": str(getattr(assoc, "class_name", "") or ""),
            }
            for assoc in runtime_associations
        ]

    associations: List[Dict[str, str]] = []
    for macro, assoc_name, options in _ASSOCIATION.findall(source):
        explicit = _CLASS_NAME_OPTION.search(options)
        if explicit:
            target = explicit.group(1)
        elif "polymorphic: true" in options:
            target = ""
        elif macro in ("has_many", "has_and_belongs_to_many"):
            target = camelize(singularize(assoc_name))
        else:
            target = camelize(assoc_name)
        associations.append({"name": assoc_name, "type": macro, "target": target})
    return associations


def extract_callbacks(source: str) -> List[Dict[str, str]]:
    callbacks: List[Dict[str, str]] = []
    for callback_type, rest in _CALLBACK.findall(source):
        symbol = re.search(r":(\w+[?!]?)", rest)
        callbacks.append({"type": callback_type, "filter": symbol.group(1) if symbol else "block"})
    return callbacks


def extract_validations(source: str) -> List[Dict[str, Any]]:
    """``validates :email, presence: true`` -> ``{"macro": "validates", "attributes": ["email"]}``."""
    validations: List[Dict[str, Any]] = []
    for macro, args in _VALIDATION.findall(source):
        attributes: List[str] = []
        for part in args.split(","):
            match = _SYMBOL_ARG.match(part.strip())
            if not match:
                break
            attributes.append(match.group(1))
        validations.append({"macro": macro, "attributes": attributes})
    return validations


def _method_locations(methods: Optional[Mapping[str, Any]]) -> List[str]:
    if not methods or not isinstance(methods, Mapping):
        return []
    return [location for location in methods.values() if isinstance(location, str) and location]


def _source_parent(source: str) -> Optional[str]:
    match = _PARENT_CLASS.search(source)
    return match.group(1) if match else None


__all__ = [
    "LIBRARY_DIRS",
    "MODELS_DIRECTORY",
    "ModelExtractor",
    "ModelMetadata",
    "default_table_name",
    "extract_callbacks",
    "extract_validations",
    "model_associations",
]
