"""Synthesized configuration unit summarizing the live application's behavior.

The profile is assembled from ``RuntimeSource.application_config()``, a plain
mapping shaped like::

    rails_version: "7.1.3"
    ruby_version: "3.3.0"
    database: {adapter: postgresql, schema_format: ruby}
    frameworks: [ActionCable, Turbo]
    api_only: false
    eager_load: true
    action_controller: {action_on_unpermitted_parameters: raise}
    active_job: {queue_adapter: sidekiq}
    cache_store: [redis_cache_store, {url: "redis://cache"}]
    action_mailer: {delivery_method: smtp}

Each section is read independently; a malformed section collapses to ``{}``
without affecting the others.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, TypedDict

from ..logging import get_logger
from ..models import CodeUnit, Dependency, UnitType, unique_dependencies

PROFILE_IDENTIFIER = "BehavioralProfile"
PROFILE_NAMESPACE = "behavioral_profile"

FRAMEWORK_CHECKS: Dict[str, str] = {
    "action_cable": "ActionCable",
    "active_storage": "ActiveStorage",
    "action_mailbox": "ActionMailbox",
    "action_text": "ActionText",
    "turbo": "Turbo",
    "stimulus_reflex": "StimulusReflex",
    "solid_queue": "SolidQueue",
    "solid_cache": "SolidCache",
}

_DATABASE_KEYS = ("adapter", "schema_format", "belongs_to_required_by_default", "has_many_inversing")
_BEHAVIOR_FLAGS = ("api_only", "eager_load", "time_zone", "session_store", "filter_parameters")


class BehavioralProfileMetadata(TypedDict):
    config_type: str
    rails_version: Optional[str]
    ruby_version: Optional[str]
    database: Dict[str, Any]
    frameworks_active: Dict[str, bool]
    behavior_flags: Dict[str, Any]
    background_processing: Dict[str, Any]
    caching: Dict[str, Any]
    email: Dict[str, Any]


def build_behavioral_profile(
    config: Mapping[str, Any], logger: logging.Logger | None = None
) -> CodeUnit:
    """Build the single ``BehavioralProfile`` configuration unit from ``config``."""
    logger = logger or get_logger("extractors.behavioral_profile")

    def section(name: str, reader: Callable[[Mapping[str, Any]], Dict[str, Any]]) -> Dict[str, Any]:
        try:
            return reader(config)
        except Exception as exc:
            logger.error("Behavioral profile %s section failed: %s", name, exc)
            return {}

    profile = BehavioralProfileMetadata(
        config_type=PROFILE_NAMESPACE,
        rails_version=_optional_str(config.get("rails_version")),
        ruby_version=_optional_str(config.get("ruby_version")),
        database=section("database", _database),
        frameworks_active=section("frameworks", _frameworks),
        behavior_flags=section("behavior_flags", _behavior_flags),
        background_processing=section("background", _background),
        caching=section("caching", _caching),
        email=section("email", _email),
    )
    return CodeUnit(
        type=UnitType.CONFIGURATION,
        identifier=PROFILE_IDENTIFIER,
        file_path=None,
        namespace=PROFILE_NAMESPACE,
        metadata=profile,
        dependencies=_dependencies(profile),
        source_code=render_narrative(profile),
    )


def _database(config: Mapping[str, Any]) -> Dict[str, Any]:
    database = _section_mapping(config, "database")
    return {key: database[key] for key in _DATABASE_KEYS if key in database}


def _frameworks(config: Mapping[str, Any]) -> Dict[str, bool]:
    """Map each known optional framework to whether the application loads it."""
    raw = config.get("frameworks")
    if raw is None:
        loaded: set[str] = set()
    elif isinstance(raw, Mapping):
        loaded = {FRAMEWORK_CHECKS.get(str(key), str(key)) for key, value in raw.items() if value}
    elif isinstance(raw, (list, tuple)):
        loaded = {str(item) for item in raw}
    else:
        raise TypeError(f"frameworks must be a list or mapping, got {type(raw).__name__}")
    return {key: constant in loaded for key, constant in FRAMEWORK_CHECKS.items()}


def _behavior_flags(config: Mapping[str, Any]) -> Dict[str, Any]:
    flags = {key: config[key] for key in _BEHAVIOR_FLAGS if key in config}
    action_controller = config.get("action_controller")
    if isinstance(action_controller, Mapping) and "action_on_unpermitted_parameters" in action_controller:
        flags["action_on_unpermitted_parameters"] = action_controller["action_on_unpermitted_parameters"]
    return flags


def _background(config: Mapping[str, Any]) -> Dict[str, Any]:
    active_job = _section_mapping(config, "active_job")
    if "queue_adapter" not in active_job:
        return {}
    return {"adapter": active_job["queue_adapter"]}


def _caching(config: Mapping[str, Any]) -> Dict[str, Any]:
    if "cache_store" not in config:
        return {}
    raw = config["cache_store"]
    store = raw[0] if isinstance(raw, (list, tuple)) and raw else raw
    return {"store": store}


def _email(config: Mapping[str, Any]) -> Dict[str, Any]:
    action_mailer = _section_mapping(config, "action_mailer")
    if "delivery_method" not in action_mailer:
        return {}
    return {"delivery_method": action_mailer["delivery_method"]}


def _section_mapping(config: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = config.get(key)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise TypeError(f"{key} must be a mapping, got {type(value).__name__}")
    return value


def render_narrative(profile: BehavioralProfileMetadata) -> str:
    lines: List[str] = [
        "# Behavioral Profile",
        f"# Rails {profile['rails_version'] or 'unknown'} / Ruby {profile['ruby_version'] or 'unknown'}",
        "#",
    ]

    database = profile["database"]
    if database:
        lines.append(f"# Database: {database.get('adapter') or 'unknown'}")
        if database.get("schema_format"):
            lines.append(f"#   schema_format: {database['schema_format']}")
        if database.get("belongs_to_required_by_default") is not None:
            lines.append(f"#   belongs_to_required: {database['belongs_to_required_by_default']}")
        if database.get("has_many_inversing") is not None:
            lines.append(f"#   has_many_inversing: {database['has_many_inversing']}")

    active = _active_frameworks(profile)
    if active:
        lines.extend(["#", f"# Active frameworks: {', '.join(active)}"])

    flags = profile["behavior_flags"]
    if flags:
        lines.extend(["#", "# Behavior flags:"])
        lines.extend(f"#   {key}: {value}" for key, value in flags.items())

    if profile["background_processing"]:
        lines.extend(["#", f"# Background: {profile['background_processing'].get('adapter')}"])
    if profile["caching"]:
        lines.extend(["#", f"# Cache store: {profile['caching'].get('store')}"])
    if profile["email"]:
        lines.extend(["#", f"# Email delivery: {profile['email'].get('delivery_method')}"])

    return "\n".join(lines)


def _active_frameworks(profile: BehavioralProfileMetadata) -> List[str]:
    return [
        FRAMEWORK_CHECKS.get(key, key)
        for key, active in profile["frameworks_active"].items()
        if active
    ]


def _dependencies(profile: BehavioralProfileMetadata) -> tuple[Dependency, ...]:
    return unique_dependencies(
        Dependency(type="framework", target=name, via="behavioral_profile")
        for name in _active_frameworks(profile)
    )


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value not in (None, "") else None


__all__ = [
    "BehavioralProfileMetadata",
    "FRAMEWORK_CHECKS",
    "PROFILE_IDENTIFIER",
    "PROFILE_NAMESPACE",
    "build_behavioral_profile",
    "render_narrative",
]
