"""Read-only runtime data sources for route, middleware and model introspection.

The host application's live registries are not available to a static indexer,
so runtime-backed extractors talk to a :class:`RuntimeSource`. Every query
returns ``None`` when that subsystem is unavailable. :class:`SnapshotRuntime`
serves the same queries from a YAML/JSON snapshot exported by the host app.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence, runtime_checkable

import yaml


class RuntimeSnapshotError(RuntimeError):
    """Raised when a runtime snapshot cannot be read or has the wrong shape."""


@dataclass(frozen=True)
class RouteEntry:
    """One entry of the live route table."""

    verb: Any
    path: Any
    defaults: Mapping[str, Any] = field(default_factory=dict)
    name: Optional[str] = None
    constraints: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class MiddlewareEntry:
    """One entry of the HTTP middleware stack."""

    name: Optional[str] = None
    klass: Optional[str] = None
    args: Sequence[Any] = ()


@dataclass(frozen=True)
class Association:
    name: str
    macro: str
    class_name: str


@dataclass(frozen=True)
class ModelDescriptor:
    """An ORM model class with the source locations of its own methods."""

    name: Optional[str]
    instance_methods: Mapping[str, Optional[str]] = field(default_factory=dict)
    class_methods: Mapping[str, Optional[str]] = field(default_factory=dict)
    table_name: Optional[str] = None
    parent_class: Optional[str] = None
    associations: Sequence[Association] = ()
    abstract: bool = False


@runtime_checkable
class RuntimeSource(Protocol):
    """Narrow query interface over the host application's live state."""

    def routes(self) -> Optional[Sequence[Any]]:
        ...

    def middleware(self) -> Optional[Sequence[Any]]:
        ...

    def models(self) -> Optional[Sequence[Any]]:
        ...

    def application_config(self) -> Optional[Mapping[str, Any]]:
        ...


def safe_query(runtime: Any, name: str, logger: logging.Logger) -> Any:
    """Call ``runtime.<name>()``; missing accessors and failures yield ``None``."""
    accessor = getattr(runtime, name, None)
    if accessor is None or not callable(accessor):
        return None
    try:
        return accessor()
    except Exception as exc:
        logger.warning("Runtime %s query failed: %s", name, exc)
        return None


class SnapshotRuntime:
    """Runtime source backed by an exported snapshot mapping."""

    def __init__(self, data: Mapping[str, Any], root: Path | None = None) -> None:
        self._root = root
        self._routes = _parse_routes(data.get("routes"))
        self._middleware = _parse_middleware(data.get("middleware"))
        self._models = _parse_models(data.get("models"), root)
        self._constants = {
            str(name): self._resolve(location)
            for name, location in _as_dict(data.get("constants")).items()
        }
        application = data.get("application")
        self._application = dict(application) if isinstance(application, dict) else None

    def routes(self) -> Optional[List[RouteEntry]]:
        return self._routes

    def middleware(self) -> Optional[List[MiddlewareEntry]]:
        return self._middleware

    def models(self) -> Optional[List[ModelDescriptor]]:
        return self._models

    def application_config(self) -> Optional[Dict[str, Any]]:
        return self._application

    def constant_location(self, name: str) -> Optional[str]:
        return self._constants.get(name)

    def _resolve(self, location: Any) -> Optional[str]:
        return _resolve_location(location, self._root)


def load_runtime_snapshot(path: Path, root: Path | None = None) -> SnapshotRuntime:
    """Load a YAML or JSON runtime snapshot."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RuntimeSnapshotError(f"Cannot read runtime snapshot {path}: {exc}") from exc

    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (ValueError, yaml.YAMLError) as exc:
        raise RuntimeSnapshotError(f"Failed to parse {path.name}: {exc}") from exc

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RuntimeSnapshotError(f"{path.name} must contain a mapping at the root")
    return SnapshotRuntime(data, root=root)


def _parse_routes(value: Any) -> Optional[List[RouteEntry]]:
    if not isinstance(value, list):
        return None
    routes: List[RouteEntry] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        defaults = dict(_as_dict(item.get("defaults")))
        for key in ("controller", "action"):
            if item.get(key) is not None:
                defaults.setdefault(key, str(item[key]))
        routes.append(
            RouteEntry(
                verb=item.get("verb") or "",
                path=item.get("path") or "/",
                defaults=defaults,
                name=_as_str(item.get("name")),
                constraints=_as_dict(item.get("constraints")),
            )
        )
    return routes


def _parse_middleware(value: Any) -> Optional[List[MiddlewareEntry]]:
    if not isinstance(value, list):
        return None
    entries: List[MiddlewareEntry] = []
    for item in value:
        if isinstance(item, str):
            entries.append(MiddlewareEntry(name=item))
        elif isinstance(item, dict):
            args = item.get("args") or []
            entries.append(
                MiddlewareEntry(
                    name=_as_str(item.get("name")),
                    klass=_as_str(item.get("klass") or item.get("class")),
                    args=tuple(args) if isinstance(args, list) else (args,),
                )
            )
    return entries


def _parse_models(value: Any, root: Path | None) -> Optional[List[ModelDescriptor]]:
    if not isinstance(value, list):
        return None
    models: List[ModelDescriptor] = []
    for item in value:
        if not isinstance(item, dict):
            continue
        associations = [
            Association(
                name=str(assoc.get("name", "")),
                macro=str(assoc.get("macro", "")),
                class_name=str(assoc.get("class_name", "")),
            )
            for assoc in item.get("associations") or []
            if isinstance(assoc, dict)
        ]
        models.append(
            ModelDescriptor(
                name=_as_str(item.get("name")),
                instance_methods={
                    str(method): _resolve_location(location, root)
                    for method, location in _as_dict(item.get("instance_methods")).items()
                },
                class_methods={
                    str(method): _resolve_location(location, root)
                    for method, location in _as_dict(item.get("class_methods")).items()
                },
                table_name=_as_str(item.get("table_name")),
                parent_class=_as_str(item.get("parent_class")),
                associations=tuple(associations),
                abstract=bool(item.get("abstract", False)),
            )
        )
    return models


def _resolve_location(location: Any, root: Path | None) -> Optional[str]:
    if not isinstance(location, str) or not location:
        return None
    path = Path(location)
    if not path.is_absolute() and root is not None:
        path = root / path
    return str(path)


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and value != "" else None


__all__ = [
    "Association",
    "MiddlewareEntry",
    "ModelDescriptor",
    "RouteEntry",
    "RuntimeSnapshotError",
    "RuntimeSource",
    "SnapshotRuntime",
    "load_runtime_snapshot",
    "safe_query",
]
