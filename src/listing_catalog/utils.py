"""Small shared helpers."""

import copy
import re
from collections.abc import Mapping
from datetime import datetime, UTC
from typing import Any


_NON_WORD = re.compile(r"[^\w\s-]", re.ASCII)
_SEPARATORS = re.compile(r"[\s_-]+", re.ASCII)


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def slugify(text: str) -> str:
    """Create a URL-friendly slug, e.g. 'Corner Bakery!' -> 'corner-bakery'."""
    slug = _NON_WORD.sub("", text.lower())
    slug = _SEPARATORS.sub("-", slug)
    return slug.strip("-")


def sortable_timestamp(value: datetime) -> str:
    """Fixed-width UTC text form, so string order matches time order in SQLite."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def deep_merge(base: dict[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``patch`` merged in; nested mappings merge, everything else replaces."""
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        current = merged.get(key)
        if isinstance(value, Mapping) and isinstance(current, Mapping):
            merged[key] = deep_merge(dict(current), value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged
