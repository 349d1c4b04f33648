"""Schema and diff data types.

Collections and fields are plain dataclasses passed directly between the
loader, the snapshot store and the diff engine. ``to_dict``/``from_dict``
use the PocketBase wire names (``cascadeDelete``, ``maxSelect``,
``listRule``, ...) so snapshots stay readable next to PocketBase's own
collection exports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

FIELD_TYPES = (
    "text",
    "email",
    "url",
    "editor",
    "number",
    "bool",
    "date",
    "autodate",
    "select",
    "relation",
    "file",
    "json",
    "geoPoint",
    "password",
)

COLLECTION_TYPES = ("base", "auth")

RULE_TYPES = (
    "listRule",
    "viewRule",
    "createRule",
    "updateRule",
    "deleteRule",
    "manageRule",
)


@dataclass
class RelationConfig:
    """Target and cardinality of a relation field."""

    collection: str  # target collection name or durable id
    cascade_delete: bool | None = None
    max_select: int | None = None
    min_select: int | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"collection": self.collection}
        if self.cascade_delete is not None:
            d["cascadeDelete"] = self.cascade_delete
        if self.max_select is not None:
            d["maxSelect"] = self.max_select
        if self.min_select is not None:
            d["minSelect"] = self.min_select
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RelationConfig:
        return cls(
            collection=data.get("collection", ""),
            cascade_delete=data.get("cascadeDelete"),
            max_select=data.get("maxSelect"),
            min_select=data.get("minSelect"),
        )


@dataclass
class FieldDefinition:
    """A single field of a collection."""

    name: str
    type: str
    required: bool = False
    unique: bool | None = None
    options: dict[str, Any] | None = None
    relation: RelationConfig | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "required": self.required,
        }
        if self.unique is not None:
            d["unique"] = self.unique
        if self.options:
            d["options"] = dict(self.options)
        if self.relation is not None:
            d["relation"] = self.relation.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FieldDefinition:
        relation = data.get("relation")
        return cls(
            name=data["name"],
            type=data["type"],
            required=data.get("required", False),
            unique=data.get("unique"),
            options=data.get("options"),
            relation=RelationConfig.from_dict(relation) if relation else None,
        )


@dataclass
class CollectionSchema:
    """A collection (table) with its fields, indexes and API rules.

    ``rules`` and ``permissions`` carry the same information. A rule value
    of ``None`` means locked (superusers only), ``""`` means public, any
    other string is a filter expression.
    """

    name: str
    type: str = "base"
    fields: list[FieldDefinition] = field(default_factory=list)
    id: str | None = None
    indexes: list[str] | None = None
    rules: dict[str, str | None] | None = None
    permissions: dict[str, str | None] | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "type": self.type}
        if self.id:
            d["id"] = self.id
        d["fields"] = [f.to_dict() for f in self.fields]
        if self.indexes is not None:
            d["indexes"] = list(self.indexes)
        if self.rules is not None:
            d["rules"] = dict(self.rules)
        if self.permissions is not None:
            d["permissions"] = dict(self.permissions)
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CollectionSchema:
        return cls(
            name=data["name"],
            type=data.get("type", "base"),
            fields=[FieldDefinition.from_dict(f) for f in data.get("fields") or []],
            id=data.get("id"),
            indexes=data.get("indexes"),
            rules=data.get("rules"),
            permissions=data.get("permissions"),
        )


@dataclass
class SchemaDefinition:
    """The desired schema, keyed by collection name."""

    collections: dict[str, CollectionSchema] = field(default_factory=dict)

    @classmethod
    def from_collections(cls, collections: list[CollectionSchema]) -> SchemaDefinition:
        return cls(collections={c.name: c for c in collections})


@dataclass
class SchemaSnapshot:
    """A previously recorded schema state."""

    version: str = "1"
    timestamp: str = ""
    collections: dict[str, CollectionSchema] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "timestamp": self.timestamp,
            "collections": {k: v.to_dict() for k, v in self.collections.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SchemaSnapshot:
        collections = {
            k: CollectionSchema.from_dict(v)
            for k, v in (data.get("collections") or {}).items()
        }
        return cls(
            version=str(data.get("version", "1")),
            timestamp=data.get("timestamp", ""),
            collections=collections,
        )


@dataclass
class FieldChange:
    """One property-level difference, e.g. ``options.max`` 10 -> 20."""

    property: str  # dotted path: "type", "required", "options.min", "relation.maxSelect", "name"
    old_value: Any = None
    new_value: Any = None

    def describe(self) -> str:
        return f"{self.property}: {self.old_value!r} -> {self.new_value!r}"


@dataclass
class FieldModification:
    """Changes to a field present on both sides (or a detected rename)."""

    field_name: str  # old name when the field was renamed
    current_definition: FieldDefinition  # previous state
    new_definition: FieldDefinition
    changes: list[FieldChange] = field(default_factory=list)

    @property
    def is_rename(self) -> bool:
        return any(c.property == "name" for c in self.changes)

    def get_change(self, property: str) -> FieldChange | None:
        for change in self.changes:
            if change.property == property:
                return change
        return None


@dataclass
class RuleChange:
    """A changed API rule value."""

    rule_type: str
    old_value: str | None = None
    new_value: str | None = None


# Rules and permissions are compared separately but share one shape.
RuleUpdate = RuleChange
PermissionChange = RuleChange


@dataclass
class CollectionModification:
    """All changes to a collection that exists on both sides."""

    collection: str
    fields_to_add: list[FieldDefinition] = field(default_factory=list)
    fields_to_remove: list[FieldDefinition] = field(default_factory=list)
    fields_to_modify: list[FieldModification] = field(default_factory=list)
    indexes_to_add: list[str] = field(default_factory=list)
    indexes_to_remove: list[str] = field(default_factory=list)
    rules_to_update: list[RuleChange] = field(default_factory=list)
    permissions_to_update: list[RuleChange] = field(default_factory=list)

    def has_changes(self) -> bool:
        return bool(
            self.fields_to_add
            or self.fields_to_remove
            or self.fields_to_modify
            or self.indexes_to_add
            or self.indexes_to_remove
            or self.rules_to_update
            or self.permissions_to_update
        )

    def describe(self) -> str:
        parts = []
        if self.fields_to_add:
            parts.append(f"+{len(self.fields_to_add)} fields")
        if self.fields_to_remove:
            parts.append(f"-{len(self.fields_to_remove)} fields")
        if self.fields_to_modify:
            parts.append(f"~{len(self.fields_to_modify)} fields")
        if self.indexes_to_add:
            parts.append(f"+{len(self.indexes_to_add)} indexes")
        if self.indexes_to_remove:
            parts.append(f"-{len(self.indexes_to_remove)} indexes")
        if self.rules_to_update:
            parts.append(f"~{len(self.rules_to_update)} rules")
        if self.permissions_to_update:
            parts.append(f"~{len(self.permissions_to_update)} permissions")
        return ", ".join(parts) or "no changes"


@dataclass
class SchemaDiff:
    """Complete change-set between a schema and a previous snapshot."""

    collections_to_create: list[CollectionSchema] = field(default_factory=list)
    collections_to_delete: list[CollectionSchema] = field(default_factory=list)
    collections_to_modify: list[CollectionModification] = field(default_factory=list)
    # name -> id from the previous snapshot, for relation resolution
    existing_collection_ids: dict[str, str] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not (
            self.collections_to_create
            or self.collections_to_delete
            or self.collections_to_modify
        )
