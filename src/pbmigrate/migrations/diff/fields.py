"""Field-level comparison between two versions of a collection."""

from __future__ import annotations

from pbmigrate.migrations.diff.utils import (
    are_values_equal,
    normalize_option_value,
    resolve_collection_reference,
)
from pbmigrate.migrations.types import FieldChange, FieldDefinition


def find_new_fields(
    current_fields: list[FieldDefinition],
    previous_fields: list[FieldDefinition],
) -> list[FieldDefinition]:
    """Fields in ``current_fields`` whose name is absent from ``previous_fields``."""
    previous_names = {f.name for f in previous_fields}
    return [f for f in current_fields if f.name not in previous_names]


def find_removed_fields(
    current_fields: list[FieldDefinition],
    previous_fields: list[FieldDefinition],
) -> list[FieldDefinition]:
    """Fields in ``previous_fields`` whose name is absent from ``current_fields``."""
    current_names = {f.name for f in current_fields}
    return [f for f in previous_fields if f.name not in current_names]


def match_fields_by_name(
    current_fields: list[FieldDefinition],
    previous_fields: list[FieldDefinition],
) -> list[tuple[FieldDefinition, FieldDefinition]]:
    """Pair up fields present on both sides as ``(current, previous)``."""
    previous_by_name = {f.name: f for f in previous_fields}
    return [
        (f, previous_by_name[f.name])
        for f in current_fields
        if f.name in previous_by_name
    ]


def compare_field_types(
    current_field: FieldDefinition,
    previous_field: FieldDefinition,
) -> FieldChange | None:
    if current_field.type != previous_field.type:
        return FieldChange("type", previous_field.type, current_field.type)
    return None


def compare_field_constraints(
    current_field: FieldDefinition,
    previous_field: FieldDefinition,
) -> list[FieldChange]:
    """Compare the ``required`` and ``unique`` flags."""
    changes: list[FieldChange] = []

    if current_field.required != previous_field.required:
        changes.append(
            FieldChange("required", previous_field.required, current_field.required)
        )

    if current_field.unique != previous_field.unique:
        changes.append(
            FieldChange("unique", previous_field.unique, current_field.unique)
        )

    return changes


def compare_field_options(
    current_field: FieldDefinition,
    previous_field: FieldDefinition,
) -> list[FieldChange]:
    """Compare option maps after collapsing server defaults.

    Values are normalized with the current field's type. The reported
    old/new values are the raw, non-normalized ones.
    """
    changes: list[FieldChange] = []
    current_options = current_field.options or {}
    previous_options = previous_field.options or {}
    field_type = current_field.type

    keys = list(current_options)
    keys.extend(k for k in previous_options if k not in current_options)

    for key in keys:
        current_value = current_options.get(key)
        previous_value = previous_options.get(key)

        normalized_current = normalize_option_value(key, current_value, field_type)
        normalized_previous = normalize_option_value(key, previous_value, field_type)

        if normalized_current is None and normalized_previous is None:
            continue

        if not are_values_equal(normalized_current, normalized_previous):
            changes.append(FieldChange(f"options.{key}", previous_value, current_value))

    return changes


def _normalize_max_select(value: int | None) -> int | None:
    if value == 1 and not isinstance(value, bool):
        return None
    return value


def _normalize_min_select(value: int | None) -> int | None:
    if value == 0 and not isinstance(value, bool):
        return None
    return value


def compare_relation_configurations(
    current_field: FieldDefinition,
    previous_field: FieldDefinition,
    collection_id_to_name: dict[str, str] | None = None,
) -> list[FieldChange]:
    """Compare relation target, cascade and cardinality.

    Targets are resolved from durable ids (via ``collection_id_to_name``)
    and ``findCollectionByNameOrId`` expressions, then compared ignoring
    case. ``maxSelect`` 1 and ``minSelect`` 0 are treated as unset.
    """
    changes: list[FieldChange] = []
    current_relation = current_field.relation
    previous_relation = previous_field.relation

    if current_relation is None or previous_relation is None:
        return changes

    current_target = resolve_collection_reference(
        current_relation.collection, collection_id_to_name
    ) or ""
    previous_target = resolve_collection_reference(
        previous_relation.collection, collection_id_to_name
    ) or ""

    if current_target.lower() != previous_target.lower():
        changes.append(
            FieldChange(
                "relation.collection",
                previous_relation.collection,
                current_relation.collection,
            )
        )

    if current_relation.cascade_delete != previous_relation.cascade_delete:
        changes.append(
            FieldChange(
                "relation.cascadeDelete",
                previous_relation.cascade_delete,
                current_relation.cascade_delete,
            )
        )

    if _normalize_max_select(current_relation.max_select) != _normalize_max_select(
        previous_relation.max_select
    ):
        changes.append(
            FieldChange(
                "relation.maxSelect",
                previous_relation.max_select,
                current_relation.max_select,
            )
        )

    if _normalize_min_select(current_relation.min_select) != _normalize_min_select(
        previous_relation.min_select
    ):
        changes.append(
            FieldChange(
                "relation.minSelect",
                previous_relation.min_select,
                current_relation.min_select,
            )
        )

    return changes


def detect_field_changes(
    current_field: FieldDefinition,
    previous_field: FieldDefinition,
    collection_id_to_name: dict[str, str] | None = None,
) -> list[FieldChange]:
    """All property-level changes between two versions of a field.

    A type change is always reported on its own ``type`` entry; required,
    unique and option changes are still detected alongside it. Relation
    settings are only compared when both sides are relations.
    """
    changes: list[FieldChange] = []

    type_change = compare_field_types(current_field, previous_field)
    if type_change:
        changes.append(type_change)

    changes.extend(compare_field_constraints(current_field, previous_field))
    changes.extend(compare_field_options(current_field, previous_field))

    if current_field.type == "relation" and previous_field.type == "relation":
        changes.extend(
            compare_relation_configurations(
                current_field, previous_field, collection_id_to_name
            )
        )

    return changes
