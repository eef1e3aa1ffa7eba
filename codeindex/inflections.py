"""Naming-convention helpers for Ruby-style constant and path names."""

from __future__ import annotations

import re
from typing import List, Tuple

_UNCOUNTABLE = {
    "equipment",
    "information",
    "rice",
    "money",
    "species",
    "series",
    "fish",
    "sheep",
    "jeans",
    "police",
    "metadata",
    "data",
}

_IRREGULAR: Tuple[Tuple[str, str], ...] = (
    ("person", "people"),
    ("man", "men"),
    ("child", "children"),
    ("sex", "sexes"),
    ("move", "moves"),
    ("zombie", "zombies"),
    ("criterion", "criteria"),
)

# Checked in order; first match wins.
_SINGULAR_RULES: List[Tuple[re.Pattern[str], str]] = [
    (re.compile(r"(database)s$", re.IGNORECASE), r"\1"),
    (re.compile(r"(quiz)zes$", re.IGNORECASE), r"\1"),
    (re.compile(r"(matr)ices$", re.IGNORECASE), r"\1ix"),
    (re.compile(r"(vert|ind)ices$", re.IGNORECASE), r"\1ex"),
    (re.compile(r"^(ox)en", re.IGNORECASE), r"\1"),
    (re.compile(r"(alias|status)(es)?$", re.IGNORECASE), r"\1"),
    (re.compile(r"(octop|vir)(us|i)$", re.IGNORECASE), r"\1us"),
    (re.compile(r"^(a)x[ie]s$", re.IGNORECASE), r"\1xis"),
    (re.compile(r"(cris|test)(is|es)$", re.IGNORECASE), r"\1is"),
    (re.compile(r"(shoe)s$", re.IGNORECASE), r"\1"),
    (re.compile(r"(o)es$", re.IGNORECASE), r"\1"),
    (re.compile(r"(bus)(es)?$", re.IGNORECASE), r"\1"),
    (re.compile(r"^(m|l)ice$", re.IGNORECASE), r"\1ouse"),
    (re.compile(r"(x|ch|ss|sh)es$", re.IGNORECASE), r"\1"),
    (re.compile(r"(m)ovies$", re.IGNORECASE), r"\1ovie"),
    (re.compile(r"(s)eries$", re.IGNORECASE), r"\1eries"),
    (re.compile(r"([^aeiouy]|qu)ies$", re.IGNORECASE), r"\1y"),
    (re.compile(r"([lr])ves$", re.IGNORECASE), r"\1f"),
    (re.compile(r"(tive)s$", re.IGNORECASE), r"\1"),
    (re.compile(r"(hive)s$", re.IGNORECASE), r"\1"),
    (re.compile(r"([^f])ves$", re.IGNORECASE), r"\1fe"),
    (re.compile(r"(^analy)(sis|ses)$", re.IGNORECASE), r"\1sis"),
    (
        re.compile(r"((a)naly|(b)a|(d)iagno|(p)arenthe|(p)rogno|(s)ynop|(t)he)(sis|ses)$", re.IGNORECASE),
        r"\1sis",
    ),
    (re.compile(r"([ti])a$", re.IGNORECASE), r"\1um"),
    (re.compile(r"(n)ews$", re.IGNORECASE), r"\1ews"),
    (re.compile(r"(ss|us|is)$", re.IGNORECASE), r"\1"),
    (re.compile(r"s$", re.IGNORECASE), ""),
]

_PLURAL_RULES: List[Tuple[re.Pattern[str], str]] = [
    (re.compile(r"(quiz)$", re.IGNORECASE), r"\1zes"),
    (re.compile(r"^(oxen)$", re.IGNORECASE), r"\1"),
    (re.compile(r"^(ox)$", re.IGNORECASE), r"\1en"),
    (re.compile(r"^(m|l)ice$", re.IGNORECASE), r"\1ice"),
    (re.compile(r"^(m|l)ouse$", re.IGNORECASE), r"\1ice"),
    (re.compile(r"(matr|vert|ind)(?:ix|ex)$", re.IGNORECASE), r"\1ices"),
    (re.compile(r"(x|ch|ss|sh)$", re.IGNORECASE), r"\1es"),
    (re.compile(r"([^aeiouy]|qu)y$", re.IGNORECASE), r"\1ies"),
    (re.compile(r"(hive)$", re.IGNORECASE), r"\1s"),
    (re.compile(r"(?:([^f])fe|([lr])f)$", re.IGNORECASE), r"\1\2ves"),
    (re.compile(r"sis$", re.IGNORECASE), "ses"),
    (re.compile(r"([ti])a$", re.IGNORECASE), r"\1a"),
    (re.compile(r"([ti])um$", re.IGNORECASE), r"\1a"),
    (re.compile(r"(buffal|tomat)o$", re.IGNORECASE), r"\1oes"),
    (re.compile(r"(bu)s$", re.IGNORECASE), r"\1ses"),
    (re.compile(r"(alias|status)$", re.IGNORECASE), r"\1es"),
    (re.compile(r"(octop|vir)(?:us|i)$", re.IGNORECASE), r"\1i"),
    (re.compile(r"^(ax|test)is$", re.IGNORECASE), r"\1es"),
    (re.compile(r"s$", re.IGNORECASE), "s"),
    (re.compile(r"$"), "s"),
]


def _split_last_word(word: str) -> Tuple[str, str]:
    match = re.search(r"([A-Z]?[a-z0-9]+|[A-Z]+)$", word)
    if not match:
        return "", word
    return word[: match.start()], word[match.start():]


def _match_case(source: str, replacement: str) -> str:
    if source[:1].isupper():
        return replacement[:1].upper() + replacement[1:]
    return replacement


def singularize(word: str) -> str:
    """Return the singular form of the last word in ``word``."""
    if not word:
        return word
    head, tail = _split_last_word(word)
    lower = tail.lower()
    if lower in _UNCOUNTABLE:
        return word
    for singular, plural in _IRREGULAR:
        if lower == plural:
            return head + _match_case(tail, singular)
    for pattern, replacement in _SINGULAR_RULES:
        if pattern.search(tail):
            return head + pattern.sub(replacement, tail, count=1)
    return word


def pluralize(word: str) -> str:
    """Return the plural form of the last word in ``word``."""
    if not word:
        return word
    head, tail = _split_last_word(word)
    lower = tail.lower()
    if lower in _UNCOUNTABLE:
        return word
    for singular, plural in _IRREGULAR:
        if lower == singular:
            return head + _match_case(tail, plural)
        if lower == plural:
            return word
    for pattern, replacement in _PLURAL_RULES:
        if pattern.search(tail):
            return head + pattern.sub(replacement, tail, count=1)
    return word


def camelize(path: str) -> str:
    """``admin/user_profiles`` -> ``Admin::UserProfiles``."""
    segments = [segment for segment in path.strip("/").split("/") if segment]
    return "::".join(
        "".join(part[:1].upper() + part[1:] for part in segment.split("_") if part)
        for segment in segments
    )


def underscore(name: str) -> str:
    """``Admin::UserProfile`` -> ``admin/user_profile``."""
    word = name.replace("::", "/")
    word = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", word)
    word = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", word)
    return word.replace("-", "_").lower()


def demodulize(name: str) -> str:
    """Return the last constant segment of a namespaced name."""
    return name.rsplit("::", 1)[-1]


def titleize(word: str) -> str:
    """``admin_reports`` -> ``Admin Reports``."""
    spaced = underscore(word).replace("/", " ").replace("_", " ")
    return " ".join(part.capitalize() for part in spaced.split())


def strip_suffix(class_name: str, suffix: str) -> str | None:
    """Strip ``suffix`` from the demodulized class name; ``None`` when absent or empty."""
    base = demodulize(class_name)
    if not base.endswith(suffix):
        return None
    stripped = base[: -len(suffix)]
    return stripped or None


__all__ = [
    "camelize",
    "demodulize",
    "pluralize",
    "singularize",
    "strip_suffix",
    "titleize",
    "underscore",
]
