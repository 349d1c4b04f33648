"""Schema diff engine.

Compares a schema definition against a previous snapshot and produces
a SchemaDiff for the status, diff and snapshot commands.

Usage:
    from pbmigrate.migrations.diff import DiffEngine, DiffEngineConfig

    engine = DiffEngine(DiffEngineConfig(severity_threshold="medium"))
    diff = engine.compare(schema, snapshot)
    if engine.requires_force_flag(diff):
        ...
"""

from pbmigrate.migrations.diff.collections import (
    build_collection_modification,
    filter_system_collections,
    find_new_collections,
    find_removed_collections,
    match_collections_by_name,
)
from pbmigrate.migrations.diff.config import (
    DEFAULT_SYSTEM_COLLECTIONS,
    DEFAULT_USERS_SYSTEM_FIELDS,
    DiffEngineConfig,
    Severity,
    merge_config,
)
from pbmigrate.migrations.diff.destructiveness import (
    DestructiveChange,
    DestructiveChangeType,
    detect_destructive_changes,
    requires_force_flag,
)
from pbmigrate.migrations.diff.engine import DiffEngine, aggregate_changes, compare
from pbmigrate.migrations.diff.fields import (
    detect_field_changes,
    find_new_fields,
    find_removed_fields,
    match_fields_by_name,
)
from pbmigrate.migrations.diff.filter import FilterOptions, filter_diff
from pbmigrate.migrations.diff.indexes import compare_indexes
from pbmigrate.migrations.diff.rules import compare_permissions, compare_rules
from pbmigrate.migrations.diff.summary import (
    ChangeSummary,
    categorize_changes_by_severity,
    generate_change_summary,
)
from pbmigrate.migrations.diff.utils import (
    are_values_equal,
    get_users_system_fields,
    is_system_collection,
    normalize_option_value,
)

__all__ = [
    "ChangeSummary",
    "DEFAULT_SYSTEM_COLLECTIONS",
    "DEFAULT_USERS_SYSTEM_FIELDS",
    "DestructiveChange",
    "DestructiveChangeType",
    "DiffEngine",
    "DiffEngineConfig",
    "FilterOptions",
    "Severity",
    "aggregate_changes",
    "are_values_equal",
    "build_collection_modification",
    "categorize_changes_by_severity",
    "compare",
    "compare_indexes",
    "compare_permissions",
    "compare_rules",
    "detect_destructive_changes",
    "detect_field_changes",
    "filter_diff",
    "filter_system_collections",
    "find_new_collections",
    "find_new_fields",
    "find_removed_collections",
    "find_removed_fields",
    "generate_change_summary",
    "get_users_system_fields",
    "is_system_collection",
    "match_collections_by_name",
    "match_fields_by_name",
    "merge_config",
    "normalize_option_value",
    "requires_force_flag",
]
