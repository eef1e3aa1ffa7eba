"""Run orchestration: one registry, one context, extractors in parallel."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .config import CodeIndexConfig, load_config
from .entity_names import EntityNameRegistry
from .extractors import ExtractionContext, discover_extractors
from .logging import get_logger, log_failure
from .models import CodeUnit
from .runtime import RuntimeSource, load_runtime_snapshot

_DEFAULT_MAX_WORKERS = 4


@dataclass
class IndexResult:
    """Units produced by one run, plus any extractor that crashed outright."""

    root: Path
    units: List[CodeUnit] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)

    def counts(self) -> Dict[str, int]:
        totals: Dict[str, int] = {}
        for unit in self.units:
            totals[unit.type] = totals.get(unit.type, 0) + 1
        return totals

    def by_kind(self, kind: str) -> List[CodeUnit]:
        return [unit for unit in self.units if unit.type == kind]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": str(self.root),
            "units": [unit.to_dict() for unit in self.units],
            "failures": dict(self.failures),
            "counts": self.counts(),
        }


class CodeIndexer:
    """Coordinates extraction runs over an application root."""

    def __init__(
        self,
        config: CodeIndexConfig | None = None,
        runtime: RuntimeSource | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.config = config
        self.runtime = runtime
        self.max_workers = max_workers
        self.logger = get_logger("indexer")

    def run(self, path: str | Path, kinds: Optional[Sequence[str]] = None) -> IndexResult:
        """Extract every enabled kind under ``path``."""
        root = Path(path).expanduser().resolve()
        if not root.exists():
            raise FileNotFoundError(f"Application root {root} does not exist")
        if not root.is_dir():
            raise NotADirectoryError(f"Application root {root} is not a directory")

        config = self.config or load_config(root)
        runtime = self._resolve_runtime(config, root)
        registry = EntityNameRegistry.from_runtime(runtime)
        context = ExtractionContext(
            root=root,
            entity_pattern=registry.pattern,
            runtime=runtime,
            exclude_paths=tuple(config.all_exclude_paths()),
            directories={kind: tuple(paths) for kind, paths in config.directories.items()},
            include_join_models=config.runtime.include_join_models,
        )
        enabled = list(kinds) if kinds else (config.extractors.enabled or None)
        extractors = discover_extractors(context, enabled)
        self.logger.info(
            "Indexing %s with %d extractor(s), %d known entity name(s)",
            root,
            len(extractors),
            len(registry),
        )

        result = IndexResult(root=root)
        if not extractors:
            return result

        workers = self.max_workers or config.max_workers or min(_DEFAULT_MAX_WORKERS, len(extractors))
        outputs: List[List[CodeUnit]] = [[] for _ in extractors]
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="codeindex") as executor:
            futures = [executor.submit(extractor.extract_all) for extractor in extractors]
            for index, (extractor, future) in enumerate(zip(extractors, futures)):
                try:
                    outputs[index] = list(future.result())
                except Exception as exc:
                    log_failure(self.logger, f"Extractor {extractor.kind} failed", exc)
                    result.failures[extractor.kind] = str(exc) or type(exc).__name__

        for units in outputs:
            result.units.extend(units)
        self.logger.info("Extracted %d unit(s) from %s", len(result.units), root)
        return result

    def _resolve_runtime(self, config: CodeIndexConfig, root: Path) -> Optional[RuntimeSource]:
        if self.runtime is not None:
            return self.runtime
        snapshot = config.runtime.snapshot
        if snapshot is None:
            return None
        snapshot_path = snapshot if snapshot.is_absolute() else root / snapshot
        self.logger.debug("Loading runtime snapshot %s", snapshot_path)
        return load_runtime_snapshot(snapshot_path, root)


__all__ = ["CodeIndexer", "IndexResult"]
