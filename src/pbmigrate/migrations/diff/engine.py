"""Schema diff engine.

Compares the current SchemaDefinition against the previous
SchemaSnapshot and produces a SchemaDiff describing the collections to
create, delete and modify.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from pbmigrate.migrations.diff.collections import (
    build_collection_modification,
    find_new_collections,
    find_removed_collections,
    match_collections_by_name,
)
from pbmigrate.migrations.diff.config import DiffEngineConfig, merge_config
from pbmigrate.migrations.diff.destructiveness import (
    DestructiveChange,
    detect_destructive_changes,
    requires_force_flag,
)
from pbmigrate.migrations.diff.filter import FilterOptions, filter_diff
from pbmigrate.migrations.diff.summary import (
    ChangeSummary,
    categorize_changes_by_severity,
    generate_change_summary,
)
from pbmigrate.migrations.diff.utils import is_system_collection
from pbmigrate.migrations.ids import CollectionIdRegistry
from pbmigrate.migrations.types import (
    CollectionModification,
    SchemaDefinition,
    SchemaDiff,
    SchemaSnapshot,
)

logger = logging.getLogger(__name__)


def _snapshot_ids(previous_snapshot: SchemaSnapshot | None) -> dict[str, str]:
    """Map collection name -> id for snapshot collections that have one."""
    if previous_snapshot is None:
        return {}
    return {
        name: collection.id
        for name, collection in previous_snapshot.collections.items()
        if collection.id
    }


def aggregate_changes(
    current_schema: SchemaDefinition,
    previous_snapshot: SchemaSnapshot | None,
    config: DiffEngineConfig | None = None,
    registry: CollectionIdRegistry | None = None,
) -> SchemaDiff:
    """Compute the complete diff from the snapshot to the current schema.

    Args:
        current_schema: Desired schema built from the definition files.
        previous_snapshot: Last recorded state, or None on the first run
            (every collection is then new).
        config: Diff options; defaults apply when None.
        registry: Id registry used to assign ids to new collections. A
            fresh one is created when None.

    Returns:
        The SchemaDiff. Comparing a schema against a snapshot of itself
        yields an empty diff. Inputs are not modified.
    """
    config = merge_config(config)
    existing_ids = _snapshot_ids(previous_snapshot)
    collection_id_to_name = {cid: name for name, cid in existing_ids.items()}

    logger.debug(
        "Comparing %d collection(s) against %s",
        len(current_schema.collections),
        f"snapshot with {len(previous_snapshot.collections)} collection(s)"
        if previous_snapshot is not None
        else "no snapshot (first run)",
    )

    to_create = [
        c
        for c in find_new_collections(current_schema, previous_snapshot)
        if not is_system_collection(c.name, config)
    ]
    to_delete = [
        c
        for c in find_removed_collections(current_schema, previous_snapshot)
        if not is_system_collection(c.name, config)
    ]

    # Known ids first, so generated ones can't collide with them.
    if registry is None:
        registry = CollectionIdRegistry()
    for cid in existing_ids.values():
        registry.register(cid)
    for collection in to_create:
        if collection.id:
            registry.register(collection.id)

    collections_to_create = [
        c if c.id else replace(c, id=registry.generate(c.name)) for c in to_create
    ]

    collections_to_modify: list[CollectionModification] = []
    for current, previous in match_collections_by_name(current_schema, previous_snapshot):
        modification = build_collection_modification(
            current, previous, config, collection_id_to_name
        )
        if modification.has_changes():
            collections_to_modify.append(modification)

    logger.debug(
        "Diff: %d to create, %d to delete, %d to modify",
        len(collections_to_create),
        len(to_delete),
        len(collections_to_modify),
    )

    return SchemaDiff(
        collections_to_create=collections_to_create,
        collections_to_delete=to_delete,
        collections_to_modify=collections_to_modify,
        existing_collection_ids=existing_ids,
    )


def compare(
    current_schema: SchemaDefinition,
    previous_snapshot: SchemaSnapshot | None,
    config: DiffEngineConfig | None = None,
) -> SchemaDiff:
    """Main comparison entry point; see :func:`aggregate_changes`."""
    return aggregate_changes(current_schema, previous_snapshot, config)


class DiffEngine:
    """Diff operations bound to one configuration."""

    def __init__(self, config: DiffEngineConfig | None = None):
        self.config = merge_config(config)

    def compare(
        self,
        current_schema: SchemaDefinition,
        previous_snapshot: SchemaSnapshot | None,
    ) -> SchemaDiff:
        return compare(current_schema, previous_snapshot, self.config)

    def detect_destructive_changes(self, diff: SchemaDiff) -> list[DestructiveChange]:
        return detect_destructive_changes(diff, self.config)

    def categorize_changes_by_severity(self, diff: SchemaDiff) -> tuple[list[str], list[str]]:
        return categorize_changes_by_severity(diff, self.config)

    def generate_change_summary(self, diff: SchemaDiff) -> ChangeSummary:
        return generate_change_summary(diff, self.config)

    def requires_force_flag(self, diff: SchemaDiff) -> bool:
        return requires_force_flag(diff, self.config)

    def filter(self, diff: SchemaDiff, options: FilterOptions) -> SchemaDiff:
        return filter_diff(diff, options)
