"""Index comparison.

Index definitions are raw ``CREATE INDEX`` statements compared as exact
strings; no SQL parsing is attempted.
"""

from __future__ import annotations


def compare_indexes(
    current_indexes: list[str] | None,
    previous_indexes: list[str] | None,
) -> tuple[list[str], list[str]]:
    """Return ``(indexes_to_add, indexes_to_remove)`` in their original order."""
    current_indexes = current_indexes or []
    previous_indexes = previous_indexes or []
    current_set = set(current_indexes)
    previous_set = set(previous_indexes)

    to_add = [idx for idx in current_indexes if idx not in previous_set]
    to_remove = [idx for idx in previous_indexes if idx not in current_set]
    return to_add, to_remove
