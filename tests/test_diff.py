"""Tests for the diff aggregator (schema vs. snapshot)."""

import copy

import pytest

from pbmigrate.migrations.diff import DiffEngine, DiffEngineConfig, aggregate_changes, compare
from pbmigrate.migrations.ids import USERS_COLLECTION_ID, CollectionIdRegistry
from pbmigrate.migrations.types import (
    CollectionSchema,
    FieldDefinition,
    RelationConfig,
    SchemaDefinition,
    SchemaSnapshot,
)


def _field(name: str, type_: str = "text", required: bool = False, **kwargs) -> FieldDefinition:
    return FieldDefinition(name=name, type=type_, required=required, **kwargs)


def _relation(name: str, target: str, **kwargs) -> FieldDefinition:
    return FieldDefinition(
        name=name, type="relation", relation=RelationConfig(collection=target, **kwargs)
    )


def _collection(name: str, fields=None, **kwargs) -> CollectionSchema:
    return CollectionSchema(name=name, fields=fields or [], **kwargs)


def _schema(*collections: CollectionSchema) -> SchemaDefinition:
    return SchemaDefinition.from_collections(list(collections))


def _snapshot(*collections: CollectionSchema) -> SchemaSnapshot:
    return SchemaSnapshot(
        version="1", timestamp="test", collections={c.name: c for c in collections}
    )


def _blog_schema() -> SchemaDefinition:
    return _schema(
        _collection(
            "users",
            [_field("name"), _field("avatar", "file", options={"maxSelect": 1, "mimeTypes": []})],
            type="auth",
            rules={"listRule": "id = @request.auth.id", "manageRule": None},
        ),
        _collection(
            "posts",
            [
                _field("title", required=True, options={"max": 200}),
                _field("views", "number", options={"min": 1}),
                _field("tags", "select", options={"values": ["a", "b"], "maxSelect": 1}),
                _field("created", "autodate", options={"onCreate": True, "onUpdate": False}),
                _relation("author", "users", max_select=1, min_select=0, cascade_delete=True),
            ],
            indexes=["CREATE UNIQUE INDEX idx_title ON posts (title)"],
            rules={"listRule": "", "viewRule": "", "deleteRule": None},
        ),
    )


class TestNoChanges:
    def test_schema_against_its_own_snapshot_is_empty(self):
        schema = _blog_schema()
        snapshot = _snapshot(*copy.deepcopy(list(schema.collections.values())))
        diff = aggregate_changes(schema, snapshot)
        assert diff.collections_to_create == []
        assert diff.collections_to_delete == []
        assert diff.collections_to_modify == []
        assert diff.is_empty()

    def test_both_empty(self):
        diff = aggregate_changes(_schema(), _snapshot())
        assert diff.is_empty()
        assert diff.existing_collection_ids == {}

    def test_explicit_defaults_against_server_snapshot(self):
        schema = _schema(_collection("posts", [
            _relation("author", "users", max_select=1, min_select=0),
            _field("img", "file", options={"maxSelect": 1, "maxSize": 0, "protected": False}),
        ]))
        snapshot = _snapshot(
            _collection("users", id="_pb_users_auth_"),
            _collection("posts", [
                _relation("author", "_pb_users_auth_", max_select=None, min_select=None),
                _field("img", "file", options={}),
            ], id="pb_posts"),
        )
        schema.collections["users"] = _collection("users")
        diff = aggregate_changes(schema, snapshot)
        assert diff.is_empty()

    def test_repeated_runs_stay_empty(self):
        schema = _blog_schema()
        snapshot = _snapshot(*copy.deepcopy(list(schema.collections.values())))
        assert aggregate_changes(schema, snapshot).is_empty()
        assert aggregate_changes(schema, snapshot).is_empty()


class TestFirstRun:
    def test_everything_is_created(self):
        schema = _blog_schema()
        diff = aggregate_changes(schema, None)
        assert [c.name for c in diff.collections_to_create] == ["users", "posts"]
        assert diff.collections_to_modify == []
        assert diff.collections_to_delete == []

    def test_ids_are_assigned(self):
        diff = aggregate_changes(_blog_schema(), None)
        ids = {c.name: c.id for c in diff.collections_to_create}
        assert ids["users"] == USERS_COLLECTION_ID
        assert ids["posts"].startswith("pb_")
        assert len(ids["posts"]) == 18

    def test_existing_ids_kept(self):
        schema = _schema(_collection("posts", id="pb_fixed000000000"))
        diff = aggregate_changes(schema, None)
        assert diff.collections_to_create[0].id == "pb_fixed000000000"

    def test_input_not_mutated(self):
        schema = _schema(_collection("posts"))
        aggregate_changes(schema, None)
        assert schema.collections["posts"].id is None

    def test_system_collections_excluded(self):
        schema = _schema(_collection("_superusers"), _collection("_mfas"), _collection("posts"))
        diff = aggregate_changes(schema, None)
        assert [c.name for c in diff.collections_to_create] == ["posts"]


class TestSystemCollections:
    def test_never_deleted(self):
        snapshot = _snapshot(_collection("_otps"), _collection("_authOrigins"), _collection("old"))
        diff = aggregate_changes(_schema(), snapshot)
        assert [c.name for c in diff.collections_to_delete] == ["old"]

    def test_system_filter_is_case_sensitive(self):
        diff = aggregate_changes(_schema(_collection("_SUPERUSERS")), None)
        assert [c.name for c in diff.collections_to_create] == ["_SUPERUSERS"]

    def test_custom_system_collections(self):
        config = DiffEngineConfig(system_collections=["audit_log"])
        schema = _schema(_collection("audit_log"), _collection("_mfas"))
        diff = aggregate_changes(schema, None, config)
        assert [c.name for c in diff.collections_to_create] == ["_mfas"]


class TestModifications:
    def test_only_changed_collections_included(self):
        snapshot = _snapshot(
            _collection("posts", [_field("title")]),
            _collection("tags", [_field("label")]),
        )
        schema = _schema(
            _collection("posts", [_field("title"), _field("body", "editor")]),
            _collection("tags", [_field("label")]),
        )
        diff = aggregate_changes(schema, snapshot)
        assert [m.collection for m in diff.collections_to_modify] == ["posts"]

    def test_case_insensitive_match_creates_and_modifies(self):
        # Exact-case key lookup for creation, case-insensitive for matching.
        snapshot = _snapshot(_collection("posts", [_field("title")]))
        schema = _schema(_collection("Posts", [_field("title"), _field("body")]))
        diff = aggregate_changes(schema, snapshot)
        assert [c.name for c in diff.collections_to_create] == ["Posts"]
        assert [c.name for c in diff.collections_to_delete] == ["posts"]
        assert [m.collection for m in diff.collections_to_modify] == ["Posts"]

    def test_users_system_fields_not_added(self):
        snapshot = _snapshot(_collection("users", [_field("name")], type="auth"))
        schema = _schema(_collection("users", [
            _field("name"), _field("email", "email"), _field("password", "password"),
            _field("tokenKey"), _field("created", "autodate"),
        ], type="auth"))
        diff = aggregate_changes(schema, snapshot)
        assert diff.is_empty()

    def test_rule_null_to_empty_string(self):
        snapshot = _snapshot(_collection("posts", rules={"listRule": None}))
        schema = _schema(_collection("posts", rules={"listRule": ""}))
        diff = aggregate_changes(schema, snapshot)
        assert len(diff.collections_to_modify) == 1
        update = diff.collections_to_modify[0].rules_to_update[0]
        assert (update.rule_type, update.old_value, update.new_value) == ("listRule", None, "")

    def test_relation_target_resolved_through_snapshot_ids(self):
        snapshot = _snapshot(
            _collection("target_col", id="pb_target00000000"),
            _collection("posts", [_relation("ref", "pb_target00000000")], id="pb_posts"),
        )
        schema = _schema(
            _collection("target_col"),
            _collection("posts", [_relation("ref", "target_col")]),
        )
        diff = aggregate_changes(schema, snapshot)
        assert diff.is_empty()

    def test_existing_collection_ids(self):
        snapshot = _snapshot(
            _collection("posts", id="pb_posts000000000"),
            _collection("tags"),
        )
        diff = aggregate_changes(_schema(_collection("posts")), snapshot)
        assert diff.existing_collection_ids == {"posts": "pb_posts000000000"}


class TestIdRegistry:
    def test_injected_registry_is_used(self):
        registry = CollectionIdRegistry()
        diff = aggregate_changes(_schema(_collection("posts")), None, registry=registry)
        assert registry.has(diff.collections_to_create[0].id)

    def test_snapshot_ids_registered_first(self):
        registry = CollectionIdRegistry()
        snapshot = _snapshot(_collection("old", id="pb_old00000000000"))
        aggregate_changes(_schema(_collection("old")), snapshot, registry=registry)
        assert registry.has("pb_old00000000000")

    def test_generated_ids_unique(self):
        schema = _schema(*[_collection(f"c{i}") for i in range(25)])
        diff = aggregate_changes(schema, None)
        ids = [c.id for c in diff.collections_to_create]
        assert len(set(ids)) == 25


class TestDiffEngine:
    def test_compare_alias(self):
        schema = _schema(_collection("posts"))
        assert [c.name for c in compare(schema, None).collections_to_create] == ["posts"]

    def test_engine_uses_its_config(self):
        engine = DiffEngine(DiffEngineConfig(severity_threshold="low"))
        snapshot = _snapshot(_collection("posts", [_field("n", "number", options={"max": 10})]))
        schema = _schema(_collection("posts", [_field("n", "number", options={"max": 20})]))
        diff = engine.compare(schema, snapshot)
        assert len(engine.detect_destructive_changes(diff)) == 1
        assert engine.requires_force_flag(diff)

    @pytest.mark.parametrize("threshold", ["high", "medium"])
    def test_option_change_not_destructive_above_low(self, threshold):
        engine = DiffEngine(DiffEngineConfig(severity_threshold=threshold))
        snapshot = _snapshot(_collection("posts", [_field("n", "number", options={"max": 10})]))
        schema = _schema(_collection("posts", [_field("n", "number", options={"max": 20})]))
        diff = engine.compare(schema, snapshot)
        assert engine.detect_destructive_changes(diff) == []
        assert not engine.requires_force_flag(diff)
