"""Selective application of a SchemaDiff.

Patterns are regular expressions searched in collection names and in
``"Collection.field"`` strings. A pattern that is not a valid regular
expression falls back to a plain substring match.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace

from pbmigrate.migrations.types import FieldModification, SchemaDiff


@dataclass
class FilterOptions:
    patterns: list[str] = field(default_factory=list)
    skip_destructive: bool = False


def matches_pattern(text: str, patterns: list[str] | None) -> bool:
    """True if any pattern matches ``text``; no patterns matches everything."""
    if not patterns:
        return True
    for pattern in patterns:
        try:
            if re.search(pattern, text):
                return True
        except re.error:
            if pattern in text:
                return True
    return False


def is_destructive_field_modification(modification: FieldModification) -> bool:
    """A type change or a field becoming required."""
    if modification.get_change("type"):
        return True
    required = modification.get_change("required")
    return required is not None and required.new_value is True


def filter_diff(diff: SchemaDiff, options: FilterOptions) -> SchemaDiff:
    """Narrow ``diff`` to the entries selected by ``options``.

    Collection-level changes (indexes, rules, permissions) are kept only
    when the collection name itself matches. Modifications left with no
    changes are dropped. The input diff is not modified.
    """
    patterns = options.patterns or []

    collections_to_create = [
        c for c in diff.collections_to_create if matches_pattern(c.name, patterns)
    ]

    if options.skip_destructive:
        collections_to_delete = []
    else:
        collections_to_delete = [
            c for c in diff.collections_to_delete if matches_pattern(c.name, patterns)
        ]

    collections_to_modify = []
    for mod in diff.collections_to_modify:
        collection_matches = matches_pattern(mod.collection, patterns)

        def selected(field_name: str) -> bool:
            return collection_matches or matches_pattern(
                f"{mod.collection}.{field_name}", patterns
            )

        fields_to_modify = mod.fields_to_modify
        if options.skip_destructive:
            fields_to_modify = [
                f for f in fields_to_modify if not is_destructive_field_modification(f)
            ]

        filtered = replace(
            mod,
            fields_to_add=[f for f in mod.fields_to_add if selected(f.name)],
            fields_to_remove=(
                []
                if options.skip_destructive
                else [f for f in mod.fields_to_remove if selected(f.name)]
            ),
            fields_to_modify=[f for f in fields_to_modify if selected(f.field_name)],
            indexes_to_add=list(mod.indexes_to_add) if collection_matches else [],
            indexes_to_remove=list(mod.indexes_to_remove) if collection_matches else [],
            rules_to_update=list(mod.rules_to_update) if collection_matches else [],
            permissions_to_update=(
                list(mod.permissions_to_update) if collection_matches else []
            ),
        )
        if filtered.has_changes():
            collections_to_modify.append(filtered)

    return replace(
        diff,
        collections_to_create=collections_to_create,
        collections_to_delete=collections_to_delete,
        collections_to_modify=collections_to_modify,
        existing_collection_ids=dict(diff.existing_collection_ids),
    )
