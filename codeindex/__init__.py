"""Heuristic code-unit extraction for Rails-style applications."""

from .indexer import CodeIndexer, IndexResult
from .models import CodeUnit, Dependency, UnitType

__version__ = "0.1.0"

__all__ = ["CodeIndexer", "CodeUnit", "Dependency", "IndexResult", "UnitType", "__version__"]
