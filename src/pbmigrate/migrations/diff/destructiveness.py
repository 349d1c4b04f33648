"""Classification of destructive changes in a SchemaDiff."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pbmigrate.migrations.diff.config import DiffEngineConfig, Severity, merge_config
from pbmigrate.migrations.types import SchemaDiff


class DestructiveChangeType(Enum):
    COLLECTION_DELETE = "collection_delete"
    FIELD_DELETE = "field_delete"
    TYPE_CHANGE = "type_change"
    REQUIRED_CHANGE = "required_change"
    CONSTRAINT_CHANGE = "constraint_change"


@dataclass
class DestructiveChange:
    """A change that may lose or reject existing data."""

    type: DestructiveChangeType
    severity: Severity
    collection: str
    description: str
    field: str | None = None
    old_value: Any = None
    new_value: Any = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "type": self.type.value,
            "severity": self.severity.value,
            "collection": self.collection,
            "description": self.description,
        }
        if self.field is not None:
            d["field"] = self.field
        if self.old_value is not None or self.new_value is not None:
            d["oldValue"] = self.old_value
            d["newValue"] = self.new_value
        return d


def detect_destructive_changes(
    diff: SchemaDiff,
    config: DiffEngineConfig | None = None,
) -> list[DestructiveChange]:
    """List destructive changes surfaced at the configured severity threshold.

    Collection deletions, field deletions and type changes are always
    reported (HIGH). Making a field required is MEDIUM and only reported
    at the MEDIUM or LOW threshold. Every other field change is LOW and
    only reported at the LOW threshold.
    """
    threshold = merge_config(config).severity_threshold
    changes: list[DestructiveChange] = []

    for collection in diff.collections_to_delete:
        changes.append(
            DestructiveChange(
                type=DestructiveChangeType.COLLECTION_DELETE,
                severity=Severity.HIGH,
                collection=collection.name,
                description=f"Delete collection: {collection.name}",
            )
        )

    for modification in diff.collections_to_modify:
        name = modification.collection

        for field in modification.fields_to_remove:
            changes.append(
                DestructiveChange(
                    type=DestructiveChangeType.FIELD_DELETE,
                    severity=Severity.HIGH,
                    collection=name,
                    field=field.name,
                    description=f"Delete field: {name}.{field.name}",
                )
            )

        for field_mod in modification.fields_to_modify:
            type_change = field_mod.get_change("type")
            required_change = field_mod.get_change("required")

            if type_change:
                changes.append(
                    DestructiveChange(
                        type=DestructiveChangeType.TYPE_CHANGE,
                        severity=Severity.HIGH,
                        collection=name,
                        field=field_mod.field_name,
                        description=(
                            f"Change field type: {name}.{field_mod.field_name} "
                            f"({type_change.old_value} → {type_change.new_value})"
                        ),
                        old_value=type_change.old_value,
                        new_value=type_change.new_value,
                    )
                )

            if (
                required_change
                and required_change.new_value is True
                and threshold.includes(Severity.MEDIUM)
            ):
                changes.append(
                    DestructiveChange(
                        type=DestructiveChangeType.REQUIRED_CHANGE,
                        severity=Severity.MEDIUM,
                        collection=name,
                        field=field_mod.field_name,
                        description=f"Make field required: {name}.{field_mod.field_name}",
                        old_value=False,
                        new_value=True,
                    )
                )

            if threshold.includes(Severity.LOW):
                for change in field_mod.changes:
                    if change.property in ("type", "required"):
                        continue
                    changes.append(
                        DestructiveChange(
                            type=DestructiveChangeType.CONSTRAINT_CHANGE,
                            severity=Severity.LOW,
                            collection=name,
                            field=field_mod.field_name,
                            description=(
                                f"Change constraint: {name}."
                                f"{field_mod.field_name}.{change.property}"
                            ),
                            old_value=change.old_value,
                            new_value=change.new_value,
                        )
                    )

    return changes


def requires_force_flag(
    diff: SchemaDiff,
    config: DiffEngineConfig | None = None,
) -> bool:
    """True if the diff must be confirmed with --force before applying."""
    config = merge_config(config)
    if not config.require_force_for_destructive:
        return False

    threshold = config.severity_threshold
    return any(
        threshold.includes(change.severity)
        for change in detect_destructive_changes(diff, config)
    )
