"""Runtime-introspected extraction of the application route table."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional, TypedDict

from .base import Extractor
from ..inflections import camelize
from ..logging import log_failure
from ..models import CodeUnit, Dependency, UnitType
from ..runtime import safe_query
from ..text import extract_namespace

_VERB_TOKEN = re.compile(r"[A-Z]+")
_PATH_PARAM = re.compile(r":(\w+)")
_FORMAT_SUFFIX = "(.:format)"


class RouteMetadata(TypedDict):
    http_method: str
    path: str
    controller: str
    action: str
    route_name: Optional[str]
    path_params: List[str]
    constraints: Dict[str, Any]


class RouteExtractor(Extractor):
    """Produces one unit per dispatchable route in the live route table."""

    kind = UnitType.ROUTE

    def extract_all(self) -> List[CodeUnit]:
        if self.context.runtime is None:
            return []
        routes = safe_query(self.context.runtime, "routes", self.logger)
        if routes is None:
            self.logger.debug("Runtime exposes no route table")
            return []
        units: List[CodeUnit] = []
        try:
            candidates = list(routes)
        except Exception as exc:
            log_failure(self.logger, "Failed to iterate runtime route table", exc)
            return []
        for route in candidates:
            unit = self.extract_one(route)
            if unit is not None:
                units.append(unit)
        return units

    def extract_one(self, target: Any) -> Optional[CodeUnit]:
        try:
            return self._extract_route(target)
        except Exception as exc:
            log_failure(self.logger, "Failed to extract route", exc)
            return None

    def _extract_route(self, route: Any) -> Optional[CodeUnit]:
        defaults = route_defaults(route)
        controller = defaults.get("controller")
        action = defaults.get("action")
        if not controller or not action:
            return None
        controller = str(controller)
        action = str(action)

        verb = route_verb(route)
        path = route_path(route)
        name = getattr(route, "name", None)
        constraints = route_constraints(route)
        controller_class = controller_class_name(controller)

        metadata = RouteMetadata(
            http_method=verb,
            path=path,
            controller=controller,
            action=action,
            route_name=str(name) if name else None,
            path_params=_PATH_PARAM.findall(path),
            constraints=constraints,
        )
        return CodeUnit(
            type=self.kind,
            identifier=f"{verb} {path}",
            file_path=None,
            namespace=extract_namespace(controller_class),
            metadata=metadata,
            dependencies=(
                Dependency(type="controller", target=controller_class, via="route_dispatch"),
            ),
            source_code=render_route(metadata),
        )


def route_defaults(route: Any) -> Mapping[str, Any]:
    defaults = getattr(route, "defaults", None)
    return defaults if isinstance(defaults, Mapping) else {}


def route_verb(route: Any) -> str:
    """Uppercase verb string; pattern objects such as ``re.compile('^GET$')`` are unwrapped."""
    verb = getattr(route, "verb", None)
    if not verb:
        return "GET"
    if not isinstance(verb, str):
        verb = getattr(verb, "pattern", verb)
        match = _VERB_TOKEN.search(str(verb))
        return match.group(0) if match else "GET"
    return verb.upper()


def route_path(route: Any) -> str:
    path = getattr(route, "path", None)
    if path is None:
        return "/"
    path = getattr(path, "spec", path)
    return str(path).replace(_FORMAT_SUFFIX, "", 1)


def route_constraints(route: Any) -> Dict[str, Any]:
    constraints = getattr(route, "constraints", None)
    return dict(constraints) if isinstance(constraints, Mapping) else {}


def controller_class_name(controller: str) -> str:
    """``admin/users`` -> ``Admin::UsersController``."""
    return f"{camelize(controller)}Controller"


def render_route(metadata: RouteMetadata) -> str:
    verb = metadata["http_method"]
    path = metadata["path"]
    target = f"{metadata['controller']}#{metadata['action']}"
    lines = [f"# Route: {verb} {path}"]
    if metadata["route_name"]:
        lines.append(f"# Name: {metadata['route_name']}")
    lines.append(f"# Controller: {target}")
    if metadata["constraints"]:
        lines.append(f"# Constraints: {metadata['constraints']!r}")
    lines.append("#")
    lines.append(f"# {verb.lower()} '{path}', to: '{target}'")
    return "\n".join(lines)


__all__ = [
    "RouteExtractor",
    "RouteMetadata",
    "controller_class_name",
    "render_route",
    "route_constraints",
    "route_defaults",
    "route_path",
    "route_verb",
]
