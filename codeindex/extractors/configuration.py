"""Extractor for initializer and per-environment configuration scripts."""

from __future__ import annotations

import re
from pathlib import Path
from typing import List, Mapping, Optional, TypedDict

from .base import FileExtractor
from .behavioral_profile import build_behavioral_profile
from ..logging import log_failure
from ..models import CodeUnit, Dependency, UnitType, unique_dependencies
from ..runtime import safe_query
from ..text import annotate_source, count_loc, method_count, scan_service_dependencies

GENERIC_CONFIG_NAMES = frozenset(
    {
        "Rails",
        "ActiveRecord",
        "ActiveJob",
        "ActionMailer",
        "ActionController",
        "ActiveStorage",
        "ActionCable",
    }
)

_CONFIGURE_CALL = re.compile(r"\b([A-Z]\w*)\.(?:setup|configure\w*|config)\b")
_REQUIRE = re.compile(r"\brequire\s+['\"]([^'\"]+)['\"]")
_CONFIG_ASSIGNMENT = re.compile(r"\bconfig\.(\w+(?:\.\w+)*)\s*=")
_SELF_ASSIGNMENT = re.compile(r"\b(?:self|config)\.(\w+)\s*=")
_RAILS_CONFIG_BLOCK = re.compile(r"Rails\.application\.configure|Rails\.application\.config\.\w+")

_CONFIG_TYPES = (
    ("config/initializers", "initializer"),
    ("config/environments", "environment"),
)


class ConfigurationMetadata(TypedDict):
    config_type: str
    gem_references: List[str]
    config_settings: List[str]
    rails_config_blocks: List[str]
    loc: int
    method_count: int


class ConfigurationExtractor(FileExtractor):
    """Extracts config scripts plus the runtime behavioral profile."""

    kind = UnitType.CONFIGURATION
    directories = tuple(directory for directory, _ in _CONFIG_TYPES)

    def extract_all(self) -> List[CodeUnit]:
        units = super().extract_all()
        profile = self.extract_behavioral_profile()
        if profile is not None:
            units.append(profile)
        return units

    def extract_behavioral_profile(self) -> Optional[CodeUnit]:
        """Return the profile unit, or ``None`` when no application config is exposed."""
        if self.context.runtime is None:
            return None
        config = safe_query(self.context.runtime, "application_config", self.logger)
        if not isinstance(config, Mapping):
            return None
        try:
            return build_behavioral_profile(config, self.logger)
        except Exception as exc:
            log_failure(self.logger, "Behavioral profile extraction failed", exc)
            return None

    def extract_file(self, path: Path, source: str) -> Optional[CodeUnit]:
        relative = self.context.relative_path(path)
        identifier = relative[len("config/"):] if relative.startswith("config/") else relative
        config_type = detect_config_type(relative)
        gems = detect_gem_references(source)

        metadata = ConfigurationMetadata(
            config_type=config_type,
            gem_references=gems,
            config_settings=detect_config_settings(source),
            rails_config_blocks=list(dict.fromkeys(_RAILS_CONFIG_BLOCK.findall(source))),
            loc=count_loc(source),
            method_count=method_count(source),
        )
        edges: List[Dependency] = [
            Dependency(type="gem", target=name, via="configuration") for name in gems
        ]
        edges.extend(scan_service_dependencies(source))
        return CodeUnit(
            type=self.kind,
            identifier=identifier,
            file_path=str(path),
            namespace=config_type,
            metadata=metadata,
            dependencies=unique_dependencies(edges),
            source_code=annotate_source(
                "Configuration",
                identifier,
                [("Type", config_type), ("Gems", gems)],
                source,
            ),
        )


def detect_config_type(relative_path: str) -> str:
    for directory, config_type in _CONFIG_TYPES:
        if relative_path.startswith(f"{directory}/") or f"/{directory}/" in relative_path:
            return config_type
    return "configuration"


def detect_gem_references(source: str) -> List[str]:
    """Library names from ``Name.configure``-style calls and ``require`` statements."""
    refs = [name for name in _CONFIGURE_CALL.findall(source) if name not in GENERIC_CONFIG_NAMES]
    refs.extend(_REQUIRE.findall(source))
    return list(dict.fromkeys(refs))


def detect_config_settings(source: str) -> List[str]:
    settings = _CONFIG_ASSIGNMENT.findall(source) + _SELF_ASSIGNMENT.findall(source)
    return list(dict.fromkeys(settings))


__all__ = [
    "ConfigurationExtractor",
    "ConfigurationMetadata",
    "GENERIC_CONFIG_NAMES",
    "detect_config_settings",
    "detect_config_type",
    "detect_gem_references",
]
