"""Tests for destructive-change classification and change summaries."""

import pytest

from pbmigrate.migrations.diff.config import DiffEngineConfig, Severity
from pbmigrate.migrations.diff.destructiveness import (
    DestructiveChangeType,
    detect_destructive_changes,
    requires_force_flag,
)
from pbmigrate.migrations.diff.summary import (
    categorize_changes_by_severity,
    generate_change_summary,
)
from pbmigrate.migrations.types import (
    CollectionModification,
    CollectionSchema,
    FieldChange,
    FieldDefinition,
    FieldModification,
    RuleChange,
    SchemaDiff,
)


def _field(name: str, type_: str = "text", **kwargs) -> FieldDefinition:
    return FieldDefinition(name=name, type=type_, **kwargs)


def _field_mod(name: str, *changes: FieldChange) -> FieldModification:
    return FieldModification(
        field_name=name,
        current_definition=_field(name),
        new_definition=_field(name),
        changes=list(changes),
    )


def _modify(collection: str, **kwargs) -> SchemaDiff:
    return SchemaDiff(
        collections_to_modify=[CollectionModification(collection=collection, **kwargs)]
    )


def _config(threshold: str, **kwargs) -> DiffEngineConfig:
    return DiffEngineConfig(severity_threshold=threshold, **kwargs)


class TestSeverity:
    def test_threshold_ordering(self):
        assert Severity.HIGH.includes(Severity.HIGH)
        assert not Severity.HIGH.includes(Severity.MEDIUM)
        assert Severity.MEDIUM.includes(Severity.HIGH)
        assert not Severity.MEDIUM.includes(Severity.LOW)
        assert Severity.LOW.includes(Severity.LOW)
        assert Severity.LOW.includes(Severity.HIGH)

    def test_config_accepts_strings(self):
        assert _config("medium").severity_threshold is Severity.MEDIUM

    def test_config_rejects_unknown_threshold(self):
        with pytest.raises(ValueError):
            _config("critical")

    def test_from_dict_rejects_string_for_list_option(self):
        with pytest.raises(ValueError, match="list of strings"):
            DiffEngineConfig.from_dict({"system_collections": "_mfas"})

    def test_from_dict_keeps_string_lists(self):
        config = DiffEngineConfig.from_dict({"system_collections": ["_mfas"]})
        assert config.system_collections == ["_mfas"]


class TestDetectDestructiveChanges:
    def test_collection_delete_is_high(self):
        diff = SchemaDiff(collections_to_delete=[CollectionSchema(name="legacy")])
        changes = detect_destructive_changes(diff)
        assert len(changes) == 1
        assert changes[0].type is DestructiveChangeType.COLLECTION_DELETE
        assert changes[0].severity is Severity.HIGH
        assert changes[0].description == "Delete collection: legacy"

    def test_field_delete_is_high(self):
        diff = _modify("posts", fields_to_remove=[_field("body")])
        changes = detect_destructive_changes(diff)
        assert [(c.type, c.field) for c in changes] == [
            (DestructiveChangeType.FIELD_DELETE, "body")
        ]

    def test_type_change_is_high(self):
        diff = _modify("posts", fields_to_modify=[
            _field_mod("score", FieldChange("type", "text", "number"))
        ])
        changes = detect_destructive_changes(diff)
        assert changes[0].type is DestructiveChangeType.TYPE_CHANGE
        assert changes[0].old_value == "text"
        assert changes[0].new_value == "number"
        assert "text → number" in changes[0].description

    def test_required_is_medium(self):
        diff = _modify("posts", fields_to_modify=[
            _field_mod("title", FieldChange("required", False, True))
        ])
        assert detect_destructive_changes(diff, _config("high")) == []
        changes = detect_destructive_changes(diff, _config("medium"))
        assert [(c.type, c.severity) for c in changes] == [
            (DestructiveChangeType.REQUIRED_CHANGE, Severity.MEDIUM)
        ]

    def test_dropping_required_is_not_medium(self):
        diff = _modify("posts", fields_to_modify=[
            _field_mod("title", FieldChange("required", True, False))
        ])
        assert detect_destructive_changes(diff, _config("medium")) == []

    def test_option_change_only_at_low(self):
        diff = _modify("posts", fields_to_modify=[
            _field_mod("n", FieldChange("options.max", 10, 20))
        ])
        assert detect_destructive_changes(diff, _config("high")) == []
        assert detect_destructive_changes(diff, _config("medium")) == []
        changes = detect_destructive_changes(diff, _config("low"))
        assert len(changes) == 1
        assert changes[0].severity is Severity.LOW
        assert changes[0].description == "Change constraint: posts.n.options.max"

    def test_low_includes_everything(self):
        diff = SchemaDiff(
            collections_to_delete=[CollectionSchema(name="legacy")],
            collections_to_modify=[CollectionModification(
                collection="posts",
                fields_to_remove=[_field("old")],
                fields_to_modify=[_field_mod(
                    "score",
                    FieldChange("type", "text", "number"),
                    FieldChange("required", False, True),
                    FieldChange("options.max", None, 5),
                )],
            )],
        )
        kinds = [c.type for c in detect_destructive_changes(diff, _config("low"))]
        assert kinds == [
            DestructiveChangeType.COLLECTION_DELETE,
            DestructiveChangeType.FIELD_DELETE,
            DestructiveChangeType.TYPE_CHANGE,
            DestructiveChangeType.REQUIRED_CHANGE,
            DestructiveChangeType.CONSTRAINT_CHANGE,
        ]


class TestRequiresForceFlag:
    def test_empty_diff(self):
        assert not requires_force_flag(SchemaDiff())

    def test_deletion_requires_force(self):
        diff = SchemaDiff(collections_to_delete=[CollectionSchema(name="legacy")])
        assert requires_force_flag(diff)

    def test_disabled_by_config(self):
        diff = SchemaDiff(collections_to_delete=[CollectionSchema(name="legacy")])
        assert not requires_force_flag(diff, DiffEngineConfig(require_force_for_destructive=False))

    def test_required_change_depends_on_threshold(self):
        diff = _modify("posts", fields_to_modify=[
            _field_mod("title", FieldChange("required", False, True))
        ])
        assert not requires_force_flag(diff, _config("high"))
        assert requires_force_flag(diff, _config("medium"))
        assert requires_force_flag(diff, _config("low"))

    def test_additions_never_require_force(self):
        diff = SchemaDiff(
            collections_to_create=[CollectionSchema(name="posts")],
            collections_to_modify=[CollectionModification(
                collection="tags", fields_to_add=[_field("label")]
            )],
        )
        assert not requires_force_flag(diff, _config("low"))


class TestSummary:
    def _diff(self) -> SchemaDiff:
        return SchemaDiff(
            collections_to_create=[CollectionSchema(name="tags")],
            collections_to_delete=[CollectionSchema(name="legacy")],
            collections_to_modify=[CollectionModification(
                collection="posts",
                fields_to_add=[_field("body")],
                fields_to_remove=[_field("old")],
                fields_to_modify=[
                    _field_mod("score", FieldChange("type", "text", "number")),
                    _field_mod("title", FieldChange("required", False, True)),
                    _field_mod("n", FieldChange("options.max", 1, 2)),
                    _field_mod("headline", FieldChange("name", "headline", "title2")),
                ],
                indexes_to_add=["CREATE INDEX a ON posts (body)"],
                indexes_to_remove=["CREATE INDEX b ON posts (old)"],
                rules_to_update=[RuleChange("listRule", None, "")],
                permissions_to_update=[RuleChange("listRule", None, "")],
            )],
        )

    def test_categorize(self):
        destructive, non_destructive = categorize_changes_by_severity(self._diff())
        assert destructive == [
            "Delete collection: legacy",
            "Delete field: posts.old",
            "Change field type: posts.score (text → number)",
            "Make field required: posts.title",
        ]
        assert non_destructive == [
            "Create collection: tags",
            "Add field: posts.body",
            "Modify field: posts.n",
            "Rename field: posts.headline → title2",
            "Add index: posts",
            "Remove index: posts",
            "Update rule: posts.listRule",
        ]

    def test_counts(self):
        summary = generate_change_summary(self._diff())
        assert summary.total_changes == 3
        assert summary.collections_to_create == 1
        assert summary.collections_to_delete == 1
        assert summary.collections_to_modify == 1
        assert summary.fields_to_add == 1
        assert summary.fields_to_remove == 1
        assert summary.fields_to_modify == 4
        assert summary.index_changes == 2
        assert summary.rule_changes == 1
        assert summary.permission_changes == 1
        # Default threshold is high: delete collection, delete field, type change.
        assert len(summary.destructive_changes) == 3

    def test_to_dict(self):
        data = generate_change_summary(self._diff()).to_dict()
        assert data["totalChanges"] == 3
        assert data["destructiveChanges"][0] == {
            "type": "collection_delete",
            "severity": "high",
            "collection": "legacy",
            "description": "Delete collection: legacy",
        }
