"""Configuration loading for codeindex (.codeindex.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".codeindex.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ExtractorConfig:
    """Extractor enablement and exclusions."""

    enabled: List[str] = field(default_factory=list)
    exclude_paths: List[str] = field(default_factory=list)


@dataclass
class RuntimeConfig:
    """Where runtime data comes from and how it is filtered."""

    snapshot: Optional[Path] = None
    include_join_models: bool = False


@dataclass
class CodeIndexConfig:
    """Represents the settings defined in .codeindex.yml."""

    root: Path
    extractors: ExtractorConfig = field(default_factory=ExtractorConfig)
    directories: Dict[str, List[str]] = field(default_factory=dict)
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    max_workers: Optional[int] = None
    exclude_paths: List[str] = field(default_factory=list)

    def all_exclude_paths(self) -> List[str]:
        return list(dict.fromkeys([*self.exclude_paths, *self.extractors.exclude_paths]))


def load_config(config_path: Path) -> CodeIndexConfig:
    """Load configuration from a repository directory or an explicit file path."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return CodeIndexConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    extractor_data = _as_dict(data.get("extractors"))
    extractors = ExtractorConfig()
    if extractor_data:
        extractors.enabled = _as_str_list(extractor_data.get("enabled"))
        extractors.exclude_paths = _as_str_list(extractor_data.get("exclude_paths"))

    directories: Dict[str, List[str]] = {}
    for kind, value in _as_dict(data.get("directories")).items():
        paths = _as_str_list(value)
        if paths:
            directories[str(kind).lower()] = paths

    runtime_data = _as_dict(data.get("runtime"))
    runtime = RuntimeConfig()
    if runtime_data:
        snapshot = _as_str(runtime_data.get("snapshot"))
        runtime.snapshot = (root / snapshot) if snapshot else None
        runtime.include_join_models = _as_bool(runtime_data.get("include_join_models")) or False

    max_workers = _as_int(data.get("max_workers"))
    if max_workers is not None and max_workers < 1:
        max_workers = None

    return CodeIndexConfig(
        root=root,
        extractors=extractors,
        directories=directories,
        runtime=runtime,
        max_workers=max_workers,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read {path.name}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return {} if loaded is None else loaded


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "CodeIndexConfig",
    "ConfigError",
    "ExtractorConfig",
    "RuntimeConfig",
    "load_config",
]
