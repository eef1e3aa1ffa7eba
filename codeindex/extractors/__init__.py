"""Extractor implementations and discovery utilities."""

from __future__ import annotations

from importlib import metadata
from typing import Callable, Iterable, List, Sequence, Set

from .base import ExtractionContext, Extractor, FileExtractor
from .concern import ConcernExtractor
from .configuration import ConfigurationExtractor
from .i18n import I18nExtractor
from .manager import ManagerExtractor
from .middleware import MiddlewareExtractor
from .model import ModelExtractor
from .policy import PolicyExtractor
from .route import RouteExtractor
from .validator import ValidatorExtractor

_ENTRY_POINT_GROUP = "codeindex.extractors"

ExtractorFactory = Callable[[ExtractionContext], Extractor]

BUILTIN_EXTRACTORS: dict[str, ExtractorFactory] = {
    "concern": ConcernExtractor,
    "model": ModelExtractor,
    "configuration": ConfigurationExtractor,
    "i18n": I18nExtractor,
    "manager": ManagerExtractor,
    "middleware": MiddlewareExtractor,
    "policy": PolicyExtractor,
    "route": RouteExtractor,
    "validator": ValidatorExtractor,
}


def discover_extractors(
    context: ExtractionContext, enabled: Sequence[str] | None = None
) -> List[Extractor]:
    """Return instantiated extractors bound to ``context``, honoring optional enabled names."""

    enabled_set: Set[str] | None = None
    if enabled is not None:
        enabled_set = {name.lower() for name in enabled}

    extractors: List[Extractor] = []
    seen: Set[str] = set()

    def _add(name: str, factory: ExtractorFactory) -> None:
        key = name.lower()
        if enabled_set is not None and key not in enabled_set:
            return
        if key in seen:
            return
        instance = factory(context)
        if not isinstance(instance, Extractor):
            raise TypeError(f"Extractor factory for '{name}' did not return an Extractor instance")
        extractors.append(instance)
        seen.add(key)
        if enabled_set is not None:
            enabled_set.discard(key)

    for name, factory in BUILTIN_EXTRACTORS.items():
        _add(name, factory)

    for entry in _iter_entry_points():
        try:
            loaded = entry.load()
        except Exception as exc:
            raise RuntimeError(f"Failed to load extractor entry point '{entry.name}': {exc}") from exc
        if not callable(loaded):
            raise TypeError(f"Extractor entry point '{entry.name}' is not callable")
        _add(entry.name, loaded)

    if enabled_set:
        missing = ", ".join(sorted(enabled_set))
        raise ValueError(f"Unknown extractors requested: {missing}")

    return extractors


def _iter_entry_points() -> Iterable[metadata.EntryPoint]:
    return metadata.entry_points(group=_ENTRY_POINT_GROUP)


__all__ = [
    "BUILTIN_EXTRACTORS",
    "ConcernExtractor",
    "ConfigurationExtractor",
    "ExtractionContext",
    "Extractor",
    "FileExtractor",
    "I18nExtractor",
    "ManagerExtractor",
    "MiddlewareExtractor",
    "ModelExtractor",
    "PolicyExtractor",
    "RouteExtractor",
    "ValidatorExtractor",
    "discover_extractors",
]
