"""Shared text metrics and heuristic scanners for Ruby-style sources."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Sequence, Tuple

from .models import Dependency

_BOX_WIDTH = 71

_CLASS_DECL = re.compile(r"^\s*class\s+([A-Z][\w:]*)", re.MULTILINE)
_MODULE_DECL = re.compile(r"^(\s*)module\s+([A-Z][\w:]*)")
_MIXIN_BODY = re.compile(
    r"^\s*(?:def\s|included\s+do\b|class_methods\s+do\b|extend\s+ActiveSupport::Concern\b)"
)
_DEF = re.compile(r"def\s+((?:self\.)?\w+[?!=]?)")
_DEF_COUNT = re.compile(r"def\s+(?:self\.)?\w+")
_CLASS_METHOD = re.compile(r"def\s+self\.(\w+[?!=]?)")
_INITIALIZE = re.compile(r"def\s+initialize\s*\((.*?)\)", re.DOTALL)
_INIT_PARAM = re.compile(r"(\w+)(?::\s*([^,\n]+))?")
_CUSTOM_ERROR = re.compile(r"class\s+(\w+(?:Error|Exception))\s*<")

_SERVICE_REF = re.compile(r"\b(\w+Service)(?:\.|::)")
_JOB_REF = re.compile(r"\b(\w+Job)\.perform")
_MAILER_REF = re.compile(r"\b(\w+Mailer)\.")

_VISIBILITY_MARKERS = {"private", "protected", "public"}


def read_source(path: Path | str) -> str:
    """Read a file as UTF-8 without newline translation."""
    return Path(path).read_bytes().decode("utf-8")


def count_loc(source: str) -> int:
    """Count lines that are neither blank nor comment-only."""
    count = 0
    in_block_comment = False
    for line in source.splitlines():
        stripped = line.strip()
        if in_block_comment:
            if line.startswith("=end"):
                in_block_comment = False
            continue
        if line.startswith("=begin"):
            in_block_comment = True
            continue
        if not stripped or stripped.startswith("#"):
            continue
        count += 1
    return count


def method_count(source: str) -> int:
    return len(_DEF_COUNT.findall(source))


def extract_namespace(name: str) -> Optional[str]:
    """``Payments::StripeService`` -> ``Payments``; top-level names yield ``None``."""
    parts = name.split("::")
    return "::".join(parts[:-1]) if len(parts) > 1 else None


def extract_class_name(source: str) -> Optional[str]:
    match = _CLASS_DECL.search(source)
    return match.group(1) if match else None


def extract_module_name(source: str) -> Optional[str]:
    """Return the fully namespaced name of the module that holds the mixin body.

    Nesting is inferred from indentation, so ``module Billing`` followed by an
    indented ``module Taxable`` yields ``Billing::Taxable``. The chain is taken
    at the first ``def``, ``included do``, ``class_methods do`` or
    ``extend ActiveSupport::Concern`` line, so helper modules nested further
    down (``module ClassMethods``) never replace the concern itself. Files
    without such a line fall back to the innermost module declared.
    """
    stack: List[Tuple[int, str]] = []
    full_name: Optional[str] = None
    for line in source.splitlines():
        stripped = line.strip()
        if not stripped:
            continue
        indent = len(line[: len(line) - len(line.lstrip())].expandtabs(2))
        match = _MODULE_DECL.match(line)
        if match:
            while stack and stack[-1][0] >= indent:
                stack.pop()
            stack.append((indent, match.group(2)))
            full_name = "::".join(name for _, name in stack)
        elif stripped == "end" or stripped.startswith("end "):
            while stack and stack[-1][0] >= indent:
                stack.pop()
        elif stack and _MIXIN_BODY.match(line):
            return "::".join(name for _, name in stack)
    return full_name


def extract_public_methods(source: str) -> List[str]:
    """Return method names declared in public scope, skipping ``_``-prefixed names."""
    return [name for name in _scan_methods(source, public_only=True) if not name.startswith("_")]


def public_predicates(source: str) -> List[str]:
    """Return public instance method names ending in ``?``; ``self.`` predicates are excluded."""
    methods = [
        name
        for name in _scan_methods(source, public_only=True)
        if name.endswith("?") and not name.startswith("self.")
    ]
    return list(dict.fromkeys(methods))


def _scan_methods(source: str, *, public_only: bool) -> List[str]:
    methods: List[str] = []
    hidden = False
    for line in source.splitlines():
        stripped = line.strip()
        marker = stripped.split("#", 1)[0].strip()
        if marker in _VISIBILITY_MARKERS:
            hidden = marker != "public"
            continue
        match = _DEF.search(stripped)
        if not match or not re.match(r"(?:(?:private|protected|public)\s+)?def\s", stripped):
            continue
        inline = stripped.split(None, 1)[0]
        if inline in ("private", "protected"):
            is_hidden = True
        elif inline == "public":
            is_hidden = False
        else:
            is_hidden = hidden
        if public_only and is_hidden:
            continue
        methods.append(match.group(1))
    return methods


def extract_class_methods(source: str) -> List[str]:
    return _CLASS_METHOD.findall(source)


def extract_initialize_params(source: str) -> List[Dict[str, object]]:
    """Parse the ``initialize`` parameter list into name/default/keyword entries."""
    match = _INITIALIZE.search(source)
    if not match:
        return []
    params_str = match.group(1)
    params: List[Dict[str, object]] = []
    for name, default in _INIT_PARAM.findall(params_str):
        params.append(
            {
                "name": name,
                "has_default": bool(default),
                "keyword": f"{name}:" in params_str,
            }
        )
    return params


def extract_custom_errors(source: str) -> List[str]:
    return _CUSTOM_ERROR.findall(source)


# Dependency scanners


def scan_model_dependencies(
    source: str, pattern: Pattern[str], *, via: str = "code_reference"
) -> List[Dependency]:
    names = dict.fromkeys(pattern.findall(source))
    return [Dependency(type="model", target=name, via=via) for name in names if name]


def scan_service_dependencies(source: str, *, via: str = "code_reference") -> List[Dependency]:
    return [
        Dependency(type="service", target=name, via=via)
        for name in dict.fromkeys(_SERVICE_REF.findall(source))
    ]


def scan_job_dependencies(source: str, *, via: str = "code_reference") -> List[Dependency]:
    return [
        Dependency(type="job", target=name, via=via)
        for name in dict.fromkeys(_JOB_REF.findall(source))
    ]


def scan_mailer_dependencies(source: str, *, via: str = "code_reference") -> List[Dependency]:
    return [
        Dependency(type="mailer", target=name, via=via)
        for name in dict.fromkeys(_MAILER_REF.findall(source))
    ]


# Source annotation


def annotate_source(
    label: str,
    identifier: str,
    fields: Sequence[Tuple[str, object]],
    source: str,
) -> str:
    """Prefix ``source`` with the generated header block for a unit."""
    rows = [f"{label}: {identifier}"]
    rows.extend(f"{name}: {_format_field(value)}" for name, value in fields)

    inner = _BOX_WIDTH - 2
    lines = [f"# ╔{'═' * inner}╗"]
    for row in rows:
        lines.append(f"# ║ {row.ljust(inner - 1)}║")
    lines.append(f"# ╚{'═' * inner}╝")
    return "\n".join(lines) + "\n\n" + source


def _format_field(value: object) -> str:
    if value is None:
        return "unknown"
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


__all__ = [
    "annotate_source",
    "count_loc",
    "extract_class_methods",
    "extract_class_name",
    "extract_custom_errors",
    "extract_initialize_params",
    "extract_module_name",
    "extract_namespace",
    "extract_public_methods",
    "method_count",
    "public_predicates",
    "read_source",
    "scan_job_dependencies",
    "scan_mailer_dependencies",
    "scan_model_dependencies",
    "scan_service_dependencies",
]
