"""Core data models shared across codeindex components."""

from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

MetadataValue = Union[
    str,
    int,
    float,
    bool,
    None,
    List["MetadataValue"],
    Dict[str, "MetadataValue"],
]


class UnitType:
    """Closed set of kind tags carried by code units."""

    CONCERN = "concern"
    MODEL = "model"
    CONFIGURATION = "configuration"
    I18N = "i18n"
    MANAGER = "manager"
    MIDDLEWARE = "middleware"
    POLICY = "policy"
    ROUTE = "route"
    VALIDATOR = "validator"

    ALL: Tuple[str, ...] = (
        CONCERN,
        MODEL,
        CONFIGURATION,
        I18N,
        MANAGER,
        MIDDLEWARE,
        POLICY,
        ROUTE,
        VALIDATOR,
    )


@dataclass(frozen=True)
class Dependency:
    """Typed, provenance-tagged reference from a unit to a named entity."""

    type: str
    target: str
    via: str

    def __post_init__(self) -> None:
        if not self.target or not self.target.strip():
            raise ValueError("Dependency target must not be blank")
        if not self.via or not self.via.strip():
            raise ValueError(f"Dependency on {self.target!r} is missing 'via'")

    def to_dict(self) -> Dict[str, str]:
        return {"type": self.type, "target": self.target, "via": self.via}


@dataclass(frozen=True)
class CodeUnit:
    """Normalized record for one discovered or introspected artifact."""

    type: str
    identifier: str
    file_path: Optional[str] = None
    namespace: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)
    dependencies: Tuple[Dependency, ...] = ()
    source_code: str = ""

    def __post_init__(self) -> None:
        if not self.identifier or not self.identifier.strip():
            raise ValueError(f"{self.type} unit requires a non-empty identifier")
        if not isinstance(self.dependencies, tuple):
            object.__setattr__(self, "dependencies", tuple(self.dependencies))

    @property
    def source_hash(self) -> str:
        return hashlib.sha256(self.source_code.encode("utf-8")).hexdigest()

    @property
    def estimated_tokens(self) -> int:
        """Rough token estimate (4 characters per token) for chunking decisions."""
        return math.ceil(len(self.source_code) / 4)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "identifier": self.identifier,
            "file_path": self.file_path,
            "namespace": self.namespace,
            "metadata": dict(self.metadata),
            "dependencies": [dep.to_dict() for dep in self.dependencies],
            "source_code": self.source_code,
            "source_hash": self.source_hash,
            "estimated_tokens": self.estimated_tokens,
        }


def unique_dependencies(edges: Iterable[Mapping[str, str] | Dependency]) -> Tuple[Dependency, ...]:
    """Return edges de-duplicated by (type, target), dropping blank targets."""
    seen: set[tuple[str, str]] = set()
    result: List[Dependency] = []
    for edge in edges:
        if isinstance(edge, Dependency):
            dep = edge
        else:
            target = (edge.get("target") or "").strip()
            if not target:
                continue
            dep = Dependency(type=edge["type"], target=target, via=edge["via"])
        key = (dep.type, dep.target)
        if key in seen:
            continue
        seen.add(key)
        result.append(dep)
    return tuple(result)


__all__ = [
    "CodeUnit",
    "Dependency",
    "MetadataValue",
    "UnitType",
    "unique_dependencies",
]
