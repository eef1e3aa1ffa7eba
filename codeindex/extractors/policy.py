"""Extractor for authorization and business-eligibility policy classes."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, TypedDict

from .base import FileExtractor
from ..inflections import singularize, strip_suffix
from ..models import CodeUnit, Dependency, UnitType, unique_dependencies
from ..text import (
    annotate_source,
    count_loc,
    extract_class_methods,
    extract_class_name,
    extract_custom_errors,
    extract_initialize_params,
    extract_namespace,
    extract_public_methods,
    method_count,
    public_predicates,
    scan_job_dependencies,
    scan_service_dependencies,
)

_PUNDIT_SIGNALS = (
    re.compile(r"<\s*ApplicationPolicy\b"),
    re.compile(r"def\s+initialize\s*\(\s*user\s*,\s*record\b"),
    re.compile(r"attr_reader\s+:user\s*,\s*:record\b"),
)


class PolicyMetadata(TypedDict):
    evaluated_models: List[str]
    decision_methods: List[str]
    public_methods: List[str]
    class_methods: List[str]
    initialize_params: List[Dict[str, object]]
    is_pundit: bool
    custom_errors: List[str]
    loc: int
    method_count: int


class PolicyExtractor(FileExtractor):
    """Extracts policy classes that expose public predicate decision methods."""

    kind = UnitType.POLICY
    directories = ("app/policies",)

    def extract_file(self, path: Path, source: str) -> Optional[CodeUnit]:
        class_name = extract_class_name(source)
        if not class_name:
            return None
        decisions = public_predicates(source)
        if not decisions:
            return None

        evaluated = self._evaluated_models(source, class_name)
        metadata = PolicyMetadata(
            evaluated_models=evaluated,
            decision_methods=decisions,
            public_methods=extract_public_methods(source),
            class_methods=extract_class_methods(source),
            initialize_params=extract_initialize_params(source),
            is_pundit=any(pattern.search(source) for pattern in _PUNDIT_SIGNALS),
            custom_errors=extract_custom_errors(source),
            loc=count_loc(source),
            method_count=method_count(source),
        )
        header = annotate_source(
            "Policy",
            class_name,
            [("Evaluates", evaluated), ("Decisions", decisions)],
            source,
        )
        return CodeUnit(
            type=self.kind,
            identifier=class_name,
            file_path=str(path),
            namespace=extract_namespace(class_name),
            metadata=metadata,
            dependencies=self._dependencies(source, evaluated),
            source_code=header,
        )

    def _evaluated_models(self, source: str, class_name: str) -> List[str]:
        models: List[str] = []
        stripped = strip_suffix(class_name, "Policy")
        if stripped:
            models.append(singularize(stripped))
        models.extend(self.context.entity_pattern.findall(source))
        return list(dict.fromkeys(model for model in models if model))

    def _dependencies(self, source: str, evaluated: List[str]) -> tuple[Dependency, ...]:
        edges: List[Dependency] = [
            Dependency(type="model", target=model, via="policy_evaluation") for model in evaluated
        ]
        edges.extend(scan_service_dependencies(source))
        edges.extend(scan_job_dependencies(source))
        return unique_dependencies(edges)


__all__ = ["PolicyExtractor", "PolicyMetadata"]
