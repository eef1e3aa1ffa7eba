"""Extractor for hierarchical locale resource files."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Mapping, Optional, TypedDict

import yaml

from .base import FileExtractor
from ..models import CodeUnit, UnitType

LOCALES_DIRECTORY = "config/locales"


class I18nMetadata(TypedDict):
    locale: str
    key_count: int
    top_level_keys: List[str]
    key_paths: List[str]


class I18nExtractor(FileExtractor):
    """Extracts one unit per locale file; the source is kept verbatim."""

    kind = UnitType.I18N
    directories = (LOCALES_DIRECTORY,)
    suffixes = (".yml", ".yaml")

    def extract_file(self, path: Path, source: str) -> Optional[CodeUnit]:
        try:
            data = yaml.safe_load(source)
        except yaml.YAMLError as exc:
            self.logger.debug("Skipping malformed locale file %s: %s", path, exc)
            return None
        if not isinstance(data, Mapping) or not data:
            return None

        raw_locale = next(iter(data))
        locale = str(raw_locale)
        locale_data = data[raw_locale]
        key_paths = flatten_keys(locale_data) if isinstance(locale_data, Mapping) else []

        metadata = I18nMetadata(
            locale=locale,
            key_count=len(key_paths),
            top_level_keys=[str(key) for key in locale_data] if isinstance(locale_data, Mapping) else [],
            key_paths=key_paths,
        )
        return CodeUnit(
            type=self.kind,
            identifier=self._identifier(path),
            file_path=str(path),
            namespace=locale,
            metadata=metadata,
            dependencies=(),
            source_code=source,
        )

    def _identifier(self, path: Path) -> str:
        relative = self.context.relative_path(path)
        prefix = f"{LOCALES_DIRECTORY}/"
        return relative[len(prefix):] if relative.startswith(prefix) else relative


def flatten_keys(tree: Mapping[Any, Any], prefix: str = "") -> List[str]:
    """Return the dotted path of every leaf below ``tree``.

    Intermediate mappings never appear in the result; an empty mapping
    contributes no paths.
    """
    paths: List[str] = []
    for key, value in tree.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            paths.extend(flatten_keys(value, full_key))
        else:
            paths.append(full_key)
    return paths


__all__ = ["I18nExtractor", "I18nMetadata", "LOCALES_DIRECTORY", "flatten_keys"]
