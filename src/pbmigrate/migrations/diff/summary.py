"""Human-readable summaries of a SchemaDiff for status reporting."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pbmigrate.migrations.diff.config import DiffEngineConfig
from pbmigrate.migrations.diff.destructiveness import (
    DestructiveChange,
    detect_destructive_changes,
)
from pbmigrate.migrations.types import SchemaDiff


@dataclass
class ChangeSummary:
    """Counts per change category plus categorized descriptions."""

    total_changes: int = 0
    collections_to_create: int = 0
    collections_to_delete: int = 0
    collections_to_modify: int = 0
    fields_to_add: int = 0
    fields_to_remove: int = 0
    fields_to_modify: int = 0
    index_changes: int = 0
    rule_changes: int = 0
    permission_changes: int = 0
    destructive_changes: list[DestructiveChange] = field(default_factory=list)
    non_destructive_changes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalChanges": self.total_changes,
            "collectionsToCreate": self.collections_to_create,
            "collectionsToDelete": self.collections_to_delete,
            "collectionsToModify": self.collections_to_modify,
            "fieldsToAdd": self.fields_to_add,
            "fieldsToRemove": self.fields_to_remove,
            "fieldsToModify": self.fields_to_modify,
            "indexChanges": self.index_changes,
            "ruleChanges": self.rule_changes,
            "permissionChanges": self.permission_changes,
            "destructiveChanges": [c.to_dict() for c in self.destructive_changes],
            "nonDestructiveChanges": list(self.non_destructive_changes),
        }


def categorize_changes_by_severity(
    diff: SchemaDiff,
    config: DiffEngineConfig | None = None,
) -> tuple[list[str], list[str]]:
    """Split every change into ``(destructive, non_destructive)`` descriptions.

    Unlike :func:`detect_destructive_changes` this ignores the severity
    threshold: deletions, type changes and new required constraints are
    always listed as destructive.
    """
    destructive: list[str] = []
    non_destructive: list[str] = []

    for collection in diff.collections_to_delete:
        destructive.append(f"Delete collection: {collection.name}")

    for collection in diff.collections_to_create:
        non_destructive.append(f"Create collection: {collection.name}")

    for modification in diff.collections_to_modify:
        name = modification.collection

        for f in modification.fields_to_remove:
            destructive.append(f"Delete field: {name}.{f.name}")

        for f in modification.fields_to_add:
            non_destructive.append(f"Add field: {name}.{f.name}")

        for field_mod in modification.fields_to_modify:
            type_change = field_mod.get_change("type")
            required_change = field_mod.get_change("required")
            rename = field_mod.get_change("name")

            if type_change:
                destructive.append(
                    f"Change field type: {name}.{field_mod.field_name} "
                    f"({type_change.old_value} → {type_change.new_value})"
                )
            elif required_change and required_change.new_value is True:
                destructive.append(f"Make field required: {name}.{field_mod.field_name}")
            elif rename:
                non_destructive.append(
                    f"Rename field: {name}.{rename.old_value} → {rename.new_value}"
                )
            else:
                non_destructive.append(f"Modify field: {name}.{field_mod.field_name}")

        for _ in modification.indexes_to_add:
            non_destructive.append(f"Add index: {name}")

        for _ in modification.indexes_to_remove:
            non_destructive.append(f"Remove index: {name}")

        for rule in modification.rules_to_update:
            non_destructive.append(f"Update rule: {name}.{rule.rule_type}")

    return destructive, non_destructive


def generate_change_summary(
    diff: SchemaDiff,
    config: DiffEngineConfig | None = None,
) -> ChangeSummary:
    """Summarize a diff for status output."""
    _, non_destructive = categorize_changes_by_severity(diff, config)
    summary = ChangeSummary(
        total_changes=(
            len(diff.collections_to_create)
            + len(diff.collections_to_delete)
            + len(diff.collections_to_modify)
        ),
        collections_to_create=len(diff.collections_to_create),
        collections_to_delete=len(diff.collections_to_delete),
        collections_to_modify=len(diff.collections_to_modify),
        destructive_changes=detect_destructive_changes(diff, config),
        non_destructive_changes=non_destructive,
    )

    for modification in diff.collections_to_modify:
        summary.fields_to_add += len(modification.fields_to_add)
        summary.fields_to_remove += len(modification.fields_to_remove)
        summary.fields_to_modify += len(modification.fields_to_modify)
        summary.index_changes += len(modification.indexes_to_add) + len(
            modification.indexes_to_remove
        )
        summary.rule_changes += len(modification.rules_to_update)
        summary.permission_changes += len(modification.permissions_to_update)

    return summary
