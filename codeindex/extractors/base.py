"""Extractor contract and the shared file-backed discovery driver."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional, Pattern, Sequence, Tuple

from ..discovery import IgnoreRule, iter_source_files, load_ignore_rules
from ..entity_names import NEVER_MATCH
from ..inflections import camelize
from ..logging import get_logger, log_failure
from ..models import CodeUnit
from ..runtime import RuntimeSource
from ..text import read_source


@dataclass(frozen=True)
class ExtractionContext:
    """Read-only inputs shared by every extractor in one run."""

    root: Path
    entity_pattern: Pattern[str] = NEVER_MATCH
    runtime: Optional[RuntimeSource] = None
    exclude_paths: Tuple[str, ...] = ()
    directories: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    include_join_models: bool = False

    def ignore_rules(self) -> List[IgnoreRule]:
        return load_ignore_rules(self.root, self.exclude_paths)

    def relative_path(self, path: Path | str) -> str:
        """Return ``path`` relative to the root, or unchanged when outside it."""
        candidate = Path(path)
        try:
            return candidate.resolve().relative_to(self.root.resolve()).as_posix()
        except (OSError, ValueError):
            return candidate.as_posix()


class Extractor(ABC):
    """Contract for per-kind extractors that turn artifacts into code units."""

    kind: str = ""

    def __init__(self, context: ExtractionContext) -> None:
        self.context = context
        self.logger = get_logger(f"extractors.{self.kind}")

    @abstractmethod
    def extract_all(self) -> List[CodeUnit]:
        """Return every unit of this kind; never raises."""

    @abstractmethod
    def extract_one(self, target: Any) -> Optional[CodeUnit]:
        """Return the unit for one candidate, or ``None`` when it does not qualify."""


class FileExtractor(Extractor):
    """Walks conventional directories and extracts each matching file."""

    directories: Tuple[str, ...] = ()
    suffixes: Tuple[str, ...] = (".rb",)

    def roots(self) -> List[Path]:
        """Existing root directories for this kind, honouring configured overrides."""
        configured = self.context.directories.get(self.kind) or self.directories
        return [
            self.context.root / directory
            for directory in configured
            if (self.context.root / directory).is_dir()
        ]

    def candidate_files(self) -> Iterable[Path]:
        rules = self.context.ignore_rules()
        seen: set[Path] = set()
        for directory in self.roots():
            for path in iter_source_files(self.context.root, directory, self.suffixes, rules):
                if path in seen:
                    continue
                seen.add(path)
                yield path

    def extract_all(self) -> List[CodeUnit]:
        units: List[CodeUnit] = []
        try:
            candidates = list(self.candidate_files())
        except OSError as exc:
            log_failure(self.logger, f"Failed to list {self.kind} directories", exc)
            return units
        for path in candidates:
            unit = self.extract_one(path)
            if unit is not None:
                units.append(unit)
        self.logger.debug("Extracted %d %s unit(s) from %d file(s)", len(units), self.kind, len(candidates))
        return units

    def extract_one(self, target: Path | str) -> Optional[CodeUnit]:
        path = Path(target)
        try:
            source = read_source(path)
        except (OSError, UnicodeDecodeError) as exc:
            self.logger.debug("Skipping unreadable %s candidate %s: %s", self.kind, path, exc)
            return None
        try:
            return self.extract_file(path, source)
        except Exception as exc:
            log_failure(self.logger, f"Failed to extract {self.kind} {path}", exc)
            return None

    @abstractmethod
    def extract_file(self, path: Path, source: str) -> Optional[CodeUnit]:
        """Classify and parse one file's contents."""

    def convention_name(self, path: Path, prefixes: Sequence[str]) -> str:
        """Infer a constant name from a path below one of ``prefixes``."""
        relative = self.context.relative_path(path)
        for prefix in prefixes:
            marker = prefix.rstrip("/") + "/"
            if relative.startswith(marker):
                relative = relative[len(marker):]
                break
        stem = relative.rsplit(".", 1)[0]
        return camelize(stem)


__all__ = ["ExtractionContext", "Extractor", "FileExtractor"]
