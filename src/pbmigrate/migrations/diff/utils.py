"""Value comparison and normalization helpers shared by the comparators."""

from __future__ import annotations

import re
from typing import Any

from pbmigrate.migrations.diff.config import DiffEngineConfig, merge_config

_FIND_COLLECTION_RE = re.compile(
    r"""app\.findCollectionByNameOrId\s*\(\s*["']([^"']+)["']\s*\)"""
)


def _is_number(value: Any, expected: int) -> bool:
    """Strict numeric equality; ``True`` is not ``1``."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and value == expected
    )


def is_system_collection(collection_name: str, config: DiffEngineConfig | None = None) -> bool:
    """Check whether a collection is a PocketBase internal collection (exact case)."""
    return collection_name in merge_config(config).system_collections


def get_users_system_fields(config: DiffEngineConfig | None = None) -> set[str]:
    """Field names PocketBase provides on the ``users`` auth collection."""
    return set(merge_config(config).users_system_fields)


def are_values_equal(a: Any, b: Any) -> bool:
    """Deep structural equality.

    Lists compare element-wise in order, dicts by key set and per-key
    value. ``None`` is only equal to ``None``, and booleans never equal
    numbers.
    """
    if a is None or b is None:
        return a is None and b is None

    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b

    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if len(a) != len(b):
            return False
        return all(are_values_equal(x, y) for x, y in zip(a, b))

    if isinstance(a, dict) and isinstance(b, dict):
        if a.keys() != b.keys():
            return False
        return all(are_values_equal(a[key], b[key]) for key in a)

    if isinstance(a, (list, tuple, dict)) or isinstance(b, (list, tuple, dict)):
        return False

    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return a == b

    return type(a) is type(b) and a == b


def normalize_option_value(key: str, value: Any, field_type: str) -> Any:
    """Collapse PocketBase server defaults to ``None``.

    An option explicitly set to its server default and an option that is
    not set at all must compare equal, otherwise every snapshot taken from
    the server would show spurious changes.
    """
    if key == "maxSelect" and _is_number(value, 1) and field_type in ("select", "file"):
        return None

    if key == "maxSize" and _is_number(value, 0) and field_type == "file":
        return None

    if key == "min" and _is_number(value, 1) and field_type == "number":
        return None

    if field_type == "file":
        if key in ("mimeTypes", "thumbs") and isinstance(value, list) and not value:
            return None
        if key == "protected" and value is False:
            return None

    if field_type == "autodate":
        if key == "onCreate" and value is True:
            return None
        if key == "onUpdate" and value is False:
            return None

    return value


def resolve_collection_reference(
    value: str | None,
    collection_id_to_name: dict[str, str] | None = None,
) -> str | None:
    """Resolve a relation target to a collection name.

    Durable ids are looked up in ``collection_id_to_name``; expressions of
    the form ``app.findCollectionByNameOrId("posts")`` are reduced to
    ``posts``. Anything else is returned unchanged.
    """
    if not value:
        return value
    if collection_id_to_name and value in collection_id_to_name:
        return collection_id_to_name[value]
    match = _FIND_COLLECTION_RE.search(value)
    if match:
        return match.group(1)
    return value
