"""Load collection schemas from YAML definition files.

Each ``*.yaml``/``*.yml`` file in the schema directory holds one
collection, a ``collections:`` list of them, or one reusable block of
fields:

    collection: posts
    type: base
    includes:
      - block: timestamps
    fields:
      - name: title
        type: text
        required: true
        options: {max: 200}
      - name: author
        type: relation
        relation: {collection: users, maxSelect: 1}
    indexes:
      - CREATE INDEX idx_posts_title ON posts (title)
    rules:
      listRule: ""
      deleteRule: null

    block: timestamps
    fields:
      - {name: created, type: autodate, options: {onCreate: true}}
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Any

import yaml

from pbmigrate.errors import SchemaParsingError
from pbmigrate.migrations.types import (
    COLLECTION_TYPES,
    FIELD_TYPES,
    RULE_TYPES,
    CollectionSchema,
    FieldDefinition,
    RelationConfig,
    SchemaDefinition,
)

logger = logging.getLogger(__name__)

DEFAULT_EXCLUDE = ["*.test.yaml", "_*"]


class SchemaLoader:
    """Loads collection definitions from a directory of YAML files."""

    def __init__(self, schema_path: Path, exclude: list[str] | None = None):
        self.schema_path = schema_path
        self.exclude = DEFAULT_EXCLUDE if exclude is None else exclude
        self.collections: dict[str, CollectionSchema] = {}
        self.blocks: dict[str, list[dict]] = {}

    def load_all(self) -> SchemaDefinition:
        """Load every definition file and return the schema.

        Raises:
            SchemaParsingError: If the directory is missing or a file is invalid.
        """
        if not self.schema_path.is_dir():
            raise SchemaParsingError(
                "Schema directory not found", file_path=self.schema_path
            )

        documents = [(path, self._read(path)) for path in self._schema_files()]

        # Blocks first so collections can include blocks from any file.
        for path, data in documents:
            if "block" in data:
                if not isinstance(data["block"], str):
                    raise SchemaParsingError(
                        f"Block name must be a string, got {data['block']!r}",
                        file_path=path,
                    )
                self.blocks[data["block"]] = data.get("fields") or []

        for path, data in documents:
            for entry in self._collection_entries(data, path):
                collection = self._resolve_collection(entry, path)
                self._check_unique_name(collection.name, path)
                self.collections[collection.name] = collection

        logger.debug(
            "Loaded %d collection(s) and %d block(s) from %s",
            len(self.collections),
            len(self.blocks),
            self.schema_path,
        )
        return SchemaDefinition(collections=dict(self.collections))

    def _schema_files(self) -> list[Path]:
        files = sorted(
            list(self.schema_path.glob("*.yaml")) + list(self.schema_path.glob("*.yml"))
        )
        return [
            f for f in files
            if not any(fnmatch.fnmatch(f.name, pattern) for pattern in self.exclude)
        ]

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except OSError as e:
            raise SchemaParsingError("Cannot read file", file_path=path, cause=e) from e
        except yaml.YAMLError as e:
            raise SchemaParsingError("Invalid YAML", file_path=path, cause=e) from e

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise SchemaParsingError("Expected a mapping at top level", file_path=path)
        return data

    def _collection_entries(self, data: dict, path: Path) -> list[dict]:
        if "collection" in data:
            return [data]
        entries = data.get("collections")
        if entries is None:
            return []
        if not isinstance(entries, list) or not all(
            isinstance(e, dict) and "collection" in e for e in entries
        ):
            raise SchemaParsingError(
                "'collections' must be a list of collection definitions",
                file_path=path,
            )
        return entries

    def _check_unique_name(self, name: str, path: Path) -> None:
        for existing in self.collections:
            if existing.lower() == name.lower():
                raise SchemaParsingError(
                    f"Collection '{name}' conflicts with '{existing}' "
                    "(names are case-insensitive)",
                    file_path=path,
                )

    def _resolve_collection(self, data: dict, path: Path) -> CollectionSchema:
        """Resolve a collection definition, expanding included blocks."""
        name = data["collection"]
        if not isinstance(name, str) or not name:
            raise SchemaParsingError(
                f"Collection name must be a non-empty string, got {name!r}",
                file_path=path,
            )
        collection_type = data.get("type", "base")
        if collection_type not in COLLECTION_TYPES:
            raise SchemaParsingError(
                f"Collection '{name}' has unknown type '{collection_type}'",
                file_path=path,
            )

        raw_fields: list[dict] = []
        for include in self._as_list(data.get("includes"), f"'{name}' includes", path):
            if not isinstance(include, dict) or not isinstance(include.get("block"), str):
                raise SchemaParsingError(
                    f"Collection '{name}': each include needs a 'block' key",
                    file_path=path,
                )
            block_name = include["block"]
            if block_name not in self.blocks:
                raise SchemaParsingError(
                    f"Collection '{name}' includes unknown block '{block_name}'",
                    file_path=path,
                )
            prefix = include.get("prefix") or ""
            block_fields = self._as_list(
                self.blocks[block_name], f"Block '{block_name}' fields", path
            )
            for block_field in block_fields:
                if not isinstance(block_field, dict):
                    raise SchemaParsingError(
                        f"Block '{block_name}' has a field that is not a mapping",
                        file_path=path,
                    )
                field_copy = dict(block_field)
                if prefix:
                    field_copy["name"] = f"{prefix}{field_copy.get('name', '')}"
                raw_fields.append(field_copy)
        raw_fields.extend(self._as_list(data.get("fields"), f"'{name}' fields", path))

        indexes = data.get("indexes")
        if indexes is not None and (
            not isinstance(indexes, list) or not all(isinstance(i, str) for i in indexes)
        ):
            raise SchemaParsingError(
                f"Collection '{name}': 'indexes' must be a list of strings",
                file_path=path,
            )

        fields = [self._resolve_field(f, name, path) for f in raw_fields]
        seen: set[str] = set()
        for f in fields:
            if f.name in seen:
                raise SchemaParsingError(
                    f"Duplicate field '{f.name}' in collection '{name}'", file_path=path
                )
            seen.add(f.name)

        rules = self._resolve_rules(data.get("rules"), name, collection_type, path)
        permissions = self._resolve_rules(
            data.get("permissions"), name, collection_type, path
        )

        return CollectionSchema(
            name=name,
            type=collection_type,
            fields=fields,
            id=data.get("id"),
            indexes=indexes,
            rules=rules,
            permissions=permissions,
        )

    @staticmethod
    def _as_list(value: Any, what: str, path: Path) -> list:
        if value is None:
            return []
        if not isinstance(value, list):
            raise SchemaParsingError(f"{what} must be a list", file_path=path)
        return value

    def _resolve_field(self, data: dict, collection: str, path: Path) -> FieldDefinition:
        if not isinstance(data, dict):
            raise SchemaParsingError(
                f"Field entry {data!r} in collection '{collection}' is not a mapping",
                file_path=path,
            )
        name = data.get("name")
        field_type = data.get("type")
        if not isinstance(name, str) or not name:
            raise SchemaParsingError(
                f"Field without a name in collection '{collection}'", file_path=path
            )
        if field_type not in FIELD_TYPES:
            raise SchemaParsingError(
                f"Field '{collection}.{name}' has unknown type '{field_type}'",
                file_path=path,
            )

        relation = data.get("relation")
        if (field_type == "relation") != (relation is not None):
            raise SchemaParsingError(
                f"Field '{collection}.{name}': 'relation' must be set "
                "if and only if the type is 'relation'",
                file_path=path,
            )
        if relation is not None and not isinstance(relation, dict):
            raise SchemaParsingError(
                f"Field '{collection}.{name}': 'relation' must be a mapping",
                file_path=path,
            )
        options = data.get("options")
        if options is not None and not isinstance(options, dict):
            raise SchemaParsingError(
                f"Field '{collection}.{name}': 'options' must be a mapping",
                file_path=path,
            )

        return FieldDefinition(
            name=name,
            type=field_type,
            required=data.get("required", False),
            unique=data.get("unique"),
            options=options,
            relation=RelationConfig.from_dict(relation) if relation is not None else None,
        )

    def _resolve_rules(
        self,
        data: dict | None,
        collection: str,
        collection_type: str,
        path: Path,
    ) -> dict[str, str | None] | None:
        if data is None:
            return None
        if not isinstance(data, dict):
            raise SchemaParsingError(
                f"Collection '{collection}': rules must be a mapping", file_path=path
            )

        unknown = sorted(set(data) - set(RULE_TYPES))
        if unknown:
            raise SchemaParsingError(
                f"Collection '{collection}' has unknown rule(s): {', '.join(unknown)}",
                file_path=path,
            )
        if data.get("manageRule") is not None and collection_type != "auth":
            raise SchemaParsingError(
                f"Collection '{collection}': manageRule is only valid for auth collections",
                file_path=path,
            )
        return dict(data)
