"""Runtime-introspected summary of the HTTP middleware pipeline."""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Sequence, TypedDict

from .base import Extractor
from ..logging import log_failure
from ..models import CodeUnit, UnitType
from ..runtime import safe_query

STACK_IDENTIFIER = "MiddlewareStack"


class MiddlewareDetail(TypedDict):
    position: int
    name: str
    args: List[str]


class MiddlewareMetadata(TypedDict):
    middleware_count: int
    middleware_list: List[str]
    middleware_details: List[MiddlewareDetail]


class MiddlewareExtractor(Extractor):
    """Produces a single ``MiddlewareStack`` unit from the live stack."""

    kind = UnitType.MIDDLEWARE

    def extract_all(self) -> List[CodeUnit]:
        if self.context.runtime is None:
            return []
        stack = safe_query(self.context.runtime, "middleware", self.logger)
        if stack is None:
            self.logger.debug("Runtime exposes no middleware stack")
            return []
        unit = self.extract_one(stack)
        return [unit] if unit is not None else []

    def extract_one(self, target: Any) -> Optional[CodeUnit]:
        """Summarize an ordered middleware stack; an empty stack yields ``None``."""
        try:
            details = _details(target, self.logger)
        except Exception as exc:
            log_failure(self.logger, "Failed to extract middleware stack", exc)
            return None
        if not details:
            return None

        metadata = MiddlewareMetadata(
            middleware_count=len(details),
            middleware_list=[detail["name"] for detail in details],
            middleware_details=details,
        )
        return CodeUnit(
            type=self.kind,
            identifier=STACK_IDENTIFIER,
            file_path=None,
            namespace=None,
            metadata=metadata,
            dependencies=(),
            source_code=render_stack(details),
        )


def _details(stack: Sequence[Any], logger: logging.Logger) -> List[MiddlewareDetail]:
    details: List[MiddlewareDetail] = []
    for position, entry in enumerate(stack):
        try:
            details.append(
                MiddlewareDetail(position=position, name=middleware_name(entry), args=_args(entry))
            )
        except Exception as exc:
            # Positions keep counting past entries that cannot be described.
            logger.debug("Skipping middleware entry %d: %s", position, exc)
    return details


def middleware_name(entry: Any) -> str:
    """Display name for an entry: ``name``, then ``klass``, then ``str(entry)``."""
    if isinstance(entry, str):
        return entry
    name = getattr(entry, "name", None)
    if name:
        return str(name)
    klass = getattr(entry, "klass", None)
    if klass is not None:
        return klass if isinstance(klass, str) else getattr(klass, "__name__", str(klass))
    return str(entry)


def _args(entry: Any) -> List[str]:
    args = getattr(entry, "args", None)
    if not args:
        return []
    return [str(arg) for arg in args]


def render_stack(details: Sequence[MiddlewareDetail]) -> str:
    lines = ["# Rack Middleware Stack", f"# {len(details)} middleware(s)", "#"]
    for detail in details:
        args = f" ({', '.join(detail['args'])})" if detail["args"] else ""
        lines.append(f"# [{detail['position']}] {detail['name']}{args}")
    return "\n".join(lines)


__all__ = [
    "MiddlewareDetail",
    "MiddlewareExtractor",
    "MiddlewareMetadata",
    "STACK_IDENTIFIER",
    "middleware_name",
    "render_stack",
]
