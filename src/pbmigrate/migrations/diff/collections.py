"""Collection matching and per-collection modification building."""

from __future__ import annotations

from collections import defaultdict

from pbmigrate.migrations.diff.config import DiffEngineConfig
from pbmigrate.migrations.diff.fields import (
    detect_field_changes,
    find_new_fields,
    find_removed_fields,
    match_fields_by_name,
)
from pbmigrate.migrations.diff.indexes import compare_indexes
from pbmigrate.migrations.diff.rules import compare_permissions, compare_rules
from pbmigrate.migrations.diff.utils import (
    get_users_system_fields,
    is_system_collection,
    resolve_collection_reference,
)
from pbmigrate.migrations.types import (
    CollectionModification,
    CollectionSchema,
    FieldChange,
    FieldDefinition,
    FieldModification,
    SchemaDefinition,
    SchemaSnapshot,
)

USERS_COLLECTION = "users"


def filter_system_collections(
    schema: SchemaDefinition,
    config: DiffEngineConfig | None = None,
) -> SchemaDefinition:
    """Return a copy of ``schema`` without PocketBase system collections."""
    return SchemaDefinition(
        collections={
            name: collection
            for name, collection in schema.collections.items()
            if not is_system_collection(name, config)
        }
    )


def find_new_collections(
    current_schema: SchemaDefinition,
    previous_snapshot: SchemaSnapshot | None,
) -> list[CollectionSchema]:
    """Collections in the schema with no same-named key in the snapshot.

    Without a snapshot every collection is new.
    """
    if previous_snapshot is None:
        return list(current_schema.collections.values())

    return [
        collection
        for name, collection in current_schema.collections.items()
        if name not in previous_snapshot.collections
    ]


def find_removed_collections(
    current_schema: SchemaDefinition,
    previous_snapshot: SchemaSnapshot | None,
) -> list[CollectionSchema]:
    """Collections in the snapshot with no same-named key in the schema."""
    if previous_snapshot is None:
        return []

    return [
        collection
        for name, collection in previous_snapshot.collections.items()
        if name not in current_schema.collections
    ]


def match_collections_by_name(
    current_schema: SchemaDefinition,
    previous_snapshot: SchemaSnapshot | None,
) -> list[tuple[CollectionSchema, CollectionSchema]]:
    """Pair ``(current, previous)`` collections by name, ignoring case."""
    if previous_snapshot is None:
        return []

    previous_by_lower = {
        name.lower(): collection
        for name, collection in previous_snapshot.collections.items()
    }

    matches = []
    for name, current in current_schema.collections.items():
        previous = previous_by_lower.get(name.lower())
        if previous is not None:
            matches.append((current, previous))
    return matches


def _detect_renames(
    fields_to_add: list[FieldDefinition],
    fields_to_remove: list[FieldDefinition],
    collection_id_to_name: dict[str, str] | None,
) -> tuple[list[FieldModification], set[int], set[int]]:
    """Pair up exactly-one-added / exactly-one-removed fields of the same type.

    Returns the rename modifications plus the indexes of the consumed
    added and removed fields. Relations additionally need the same
    resolved target collection.
    """
    added_by_type: dict[str, list[int]] = defaultdict(list)
    for i, f in enumerate(fields_to_add):
        added_by_type[f.type].append(i)

    removed_by_type: dict[str, list[int]] = defaultdict(list)
    for i, f in enumerate(fields_to_remove):
        removed_by_type[f.type].append(i)

    renames: list[FieldModification] = []
    used_added: set[int] = set()
    used_removed: set[int] = set()

    for field_type, removed_indices in removed_by_type.items():
        added_indices = added_by_type.get(field_type, [])
        if len(added_indices) != 1 or len(removed_indices) != 1:
            continue

        added = fields_to_add[added_indices[0]]
        removed = fields_to_remove[removed_indices[0]]

        if field_type == "relation":
            added_target = resolve_collection_reference(
                added.relation.collection if added.relation else "",
                collection_id_to_name,
            ) or ""
            removed_target = resolve_collection_reference(
                removed.relation.collection if removed.relation else "",
                collection_id_to_name,
            ) or ""
            if added_target.lower() != removed_target.lower():
                continue

        changes = detect_field_changes(added, removed, collection_id_to_name)
        changes.append(FieldChange("name", removed.name, added.name))
        renames.append(
            FieldModification(
                field_name=removed.name,
                current_definition=removed,
                new_definition=added,
                changes=changes,
            )
        )
        used_added.add(added_indices[0])
        used_removed.add(removed_indices[0])

    return renames, used_added, used_removed


def compare_collection_fields(
    current_collection: CollectionSchema,
    previous_collection: CollectionSchema,
    config: DiffEngineConfig | None = None,
    collection_id_to_name: dict[str, str] | None = None,
) -> tuple[list[FieldDefinition], list[FieldDefinition], list[FieldModification]]:
    """Return ``(fields_to_add, fields_to_remove, fields_to_modify)``."""
    fields_to_add = find_new_fields(current_collection.fields, previous_collection.fields)
    fields_to_remove = find_removed_fields(
        current_collection.fields, previous_collection.fields
    )

    # Server-managed auth fields are never user-authored additions.
    if current_collection.name == USERS_COLLECTION:
        system_fields = get_users_system_fields(config)
        fields_to_add = [f for f in fields_to_add if f.name not in system_fields]

    fields_to_modify: list[FieldModification] = []
    for current, previous in match_fields_by_name(
        current_collection.fields, previous_collection.fields
    ):
        changes = detect_field_changes(current, previous, collection_id_to_name)
        if changes:
            fields_to_modify.append(
                FieldModification(
                    field_name=current.name,
                    current_definition=previous,
                    new_definition=current,
                    changes=changes,
                )
            )

    renames, used_added, used_removed = _detect_renames(
        fields_to_add, fields_to_remove, collection_id_to_name
    )
    fields_to_modify.extend(renames)
    fields_to_add = [f for i, f in enumerate(fields_to_add) if i not in used_added]
    fields_to_remove = [
        f for i, f in enumerate(fields_to_remove) if i not in used_removed
    ]

    return fields_to_add, fields_to_remove, fields_to_modify


def build_collection_modification(
    current_collection: CollectionSchema,
    previous_collection: CollectionSchema,
    config: DiffEngineConfig | None = None,
    collection_id_to_name: dict[str, str] | None = None,
) -> CollectionModification:
    """Build the full modification record for a matched collection pair.

    The result may be empty; callers decide whether to keep it.
    """
    fields_to_add, fields_to_remove, fields_to_modify = compare_collection_fields(
        current_collection, previous_collection, config, collection_id_to_name
    )
    indexes_to_add, indexes_to_remove = compare_indexes(
        current_collection.indexes, previous_collection.indexes
    )

    return CollectionModification(
        collection=current_collection.name,
        fields_to_add=fields_to_add,
        fields_to_remove=fields_to_remove,
        fields_to_modify=fields_to_modify,
        indexes_to_add=indexes_to_add,
        indexes_to_remove=indexes_to_remove,
        rules_to_update=compare_rules(
            current_collection.rules,
            previous_collection.rules,
            current_collection.permissions,
            previous_collection.permissions,
        ),
        permissions_to_update=compare_permissions(
            current_collection.permissions, previous_collection.permissions
        ),
    )
