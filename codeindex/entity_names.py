"""Entity Name Registry: a compiled whole-word matcher over known model names."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Pattern, Tuple

from .logging import get_logger, log_failure
from .runtime import RuntimeSource, safe_query

NEVER_MATCH: Pattern[str] = re.compile(r"(?!)")

_JOIN_MODEL_PREFIX = "HABTM_"


def is_join_model_name(name: str) -> bool:
    """True for framework-generated join-table models such as ``Product::HABTM_Categories``."""
    return name.rsplit("::", 1)[-1].startswith(_JOIN_MODEL_PREFIX)


class EntityNameRegistry:
    """Read-only set of domain-entity names, built once per extraction run."""

    def __init__(self, names: Iterable[str]) -> None:
        unique = {name.strip() for name in names if name and name.strip()}
        self._names: Tuple[str, ...] = tuple(sorted(unique))
        self._pattern = self._compile(self._names)

    @classmethod
    def from_runtime(cls, runtime: Optional[RuntimeSource]) -> "EntityNameRegistry":
        """Collect named, non-join models from the runtime model registry.

        Models whose attributes cannot be read are skipped; a registry that
        cannot be iterated yields an empty set of names.
        """
        logger = get_logger("entity_names")
        models = safe_query(runtime, "models", logger) if runtime is not None else None
        names: List[str] = []
        try:
            for model in models or []:
                try:
                    name = getattr(model, "name", None)
                    if not name or is_join_model_name(str(name)):
                        continue
                    names.append(str(name))
                except Exception as exc:
                    log_failure(logger, "Skipping unreadable model in entity name registry", exc)
        except Exception as exc:
            log_failure(logger, "Failed to iterate runtime model registry", exc)
        logger.debug("Entity name registry built with %d names", len(names))
        return cls(names)

    @property
    def names(self) -> Tuple[str, ...]:
        return self._names

    @property
    def pattern(self) -> Pattern[str]:
        """Pattern matching any known name as a whole word; matches nothing when empty."""
        return self._pattern

    @staticmethod
    def _compile(names: Tuple[str, ...]) -> Pattern[str]:
        if not names:
            return NEVER_MATCH
        # Longest first so ``Admin::User`` wins over ``User`` inside the alternation.
        ordered = sorted(names, key=len, reverse=True)
        alternation = "|".join(re.escape(name) for name in ordered)
        return re.compile(rf"\b(?:{alternation})\b")

    def __len__(self) -> int:
        return len(self._names)

    def __contains__(self, name: object) -> bool:
        return name in self._names


__all__ = ["EntityNameRegistry", "NEVER_MATCH", "is_join_model_name"]
