"""File discovery for extractor root directories."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Sequence

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".bundle",
    "node_modules",
    "__pycache__",
    ".idea",
    ".codeindex",
}

_EXCLUDED_FILES = {
    ".DS_Store",
    "Thumbs.db",
}


@dataclass
class IgnoreRule:
    """Represents an ignore rule parsed from .gitignore or .codeindex.yml."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        target = rel_path
        if self.anchored or self.has_slash:
            if fnmatchcase(target, self.pattern):
                return True
            if target.startswith(f"{self.pattern}/"):
                return True
            return False

        for part in target.split("/"):
            if fnmatchcase(part, self.pattern):
                return True
        return False


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    has_slash = "/" in pattern
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash=has_slash,
    )


def parse_gitignore(path: Path) -> List[IgnoreRule]:
    if not path.exists():
        return []

    rules: List[IgnoreRule] = []
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError):
        return []
    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def load_ignore_rules(root: Path, exclude_paths: Sequence[str] = ()) -> List[IgnoreRule]:
    """Combine .gitignore rules with configured exclusions."""
    rules = parse_gitignore(root / ".gitignore")
    for pattern in exclude_paths:
        rule = build_ignore_rule(pattern)
        if rule is not None:
            rules.append(rule)
    return rules


def should_ignore(rel_path: str, is_dir: bool, rules: Sequence[IgnoreRule]) -> bool:
    ignored = False
    for rule in rules:
        if rule.matches(rel_path, is_dir):
            ignored = not rule.negate
    return ignored


def iter_source_files(
    root: Path,
    directory: Path,
    suffixes: Sequence[str],
    rules: Sequence[IgnoreRule] = (),
) -> Iterator[Path]:
    """Yield files under ``directory`` whose suffix matches, in sorted order.

    ``directory`` missing or not a directory yields nothing. Ignore rules are
    evaluated against paths relative to ``root``.
    """
    if not directory.is_dir():
        return
    start = _relative(directory, root)
    if start and should_ignore(start, True, rules):
        return

    wanted = {suffix.lower() for suffix in suffixes}
    for dirpath, dirnames, filenames in os.walk(directory):
        current_dir = Path(dirpath)
        rel_dir = _relative(current_dir, root)

        kept = []
        for name in sorted(dirnames):
            if name in _EXCLUDED_DIRS:
                continue
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if should_ignore(rel_path, True, rules):
                continue
            kept.append(name)
        dirnames[:] = kept

        for filename in sorted(filenames):
            if filename in _EXCLUDED_FILES:
                continue
            if Path(filename).suffix.lower() not in wanted:
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if should_ignore(rel_path, False, rules):
                continue
            yield current_dir / filename


def _relative(path: Path, root: Path) -> str:
    try:
        relative = path.relative_to(root)
    except ValueError:
        return path.as_posix()
    text = relative.as_posix()
    return "" if text == "." else text


__all__ = [
    "IgnoreRule",
    "build_ignore_rule",
    "iter_source_files",
    "load_ignore_rules",
    "parse_gitignore",
    "should_ignore",
]
