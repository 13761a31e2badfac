import re
from collections.abc import Iterable

_SLUG_RUN = re.compile(r"[^a-z0-9]+")
_WHITESPACE = re.compile(r"\s+")


def slugify(value: str | None, fallback: str = "") -> str:
    """Lower-case ``value`` and collapse anything outside [a-z0-9] into single dashes."""
    slug = _SLUG_RUN.sub("-", str(value or "").lower()).strip("-")
    return slug or fallback


def normalize_platform_key(value) -> str:
    """'Home Assistant' -> 'homeassistant'. Non-strings normalize to ''."""
    if not isinstance(value, str):
        return ""
    return _WHITESPACE.sub("", value.strip().lower())


def unique_strings(values: Iterable | None) -> list[str]:
    """Trimmed, non-empty strings, case-insensitively unique, first spelling wins."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values or []:
        if not isinstance(value, str):
            continue
        trimmed = value.strip()
        if not trimmed:
            continue
        key = trimmed.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(trimmed)
    return result
