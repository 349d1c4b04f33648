"""Schema CLI commands: status, diff and snapshot."""

from __future__ import annotations

import json
from pathlib import Path

import click

from pbmigrate.config import ProjectConfig
from pbmigrate.errors import MigrationError
from pbmigrate.migrations.diff import (
    DiffEngine,
    FilterOptions,
)
from pbmigrate.migrations.ordering import sort_collections_by_dependency
from pbmigrate.migrations.snapshot import create_snapshot, load_snapshot, next_version, save_snapshot
from pbmigrate.migrations.types import (
    CollectionModification,
    SchemaDefinition,
    SchemaDiff,
    SchemaSnapshot,
)
from pbmigrate.schema.loader import SchemaLoader


def _load_inputs() -> tuple[ProjectConfig, SchemaDefinition, SchemaSnapshot | None]:
    """Load config, current schema and previous snapshot from cwd.

    Exits with status 1 on any configuration, schema or snapshot error.
    """
    try:
        config = ProjectConfig.load(Path.cwd())
        schema = SchemaLoader(config.schema_dir, exclude=config.exclude).load_all()
        previous = load_snapshot(config.snapshot_path)
    except MigrationError as e:
        click.echo(f"Error: {e.detailed_message()}", err=True)
        raise SystemExit(1)
    return config, schema, previous


def _print_modification(mod: CollectionModification) -> None:
    click.echo(f"  ~ Modify collection: {mod.collection} ({mod.describe()})")
    for f in mod.fields_to_add:
        click.echo(f"      + field {f.name} ({f.type})")
    for f in mod.fields_to_remove:
        click.echo(f"      - field {f.name} ({f.type})")
    for field_mod in mod.fields_to_modify:
        rename = field_mod.get_change("name")
        label = (
            f"{rename.old_value} -> {rename.new_value}" if rename else field_mod.field_name
        )
        details = "; ".join(c.describe() for c in field_mod.changes if c.property != "name")
        click.echo(f"      ~ field {label}" + (f": {details}" if details else ""))
    for idx in mod.indexes_to_add:
        click.echo(f"      + index {idx}")
    for idx in mod.indexes_to_remove:
        click.echo(f"      - index {idx}")
    for rule in mod.rules_to_update:
        click.echo(f"      ~ {rule.rule_type}: {rule.old_value!r} -> {rule.new_value!r}")


def _print_diff(diff: SchemaDiff) -> None:
    ordered = sort_collections_by_dependency(diff.collections_to_create)
    if ordered.has_cycles:
        click.echo(f"Warning: {ordered.cycle_warning}", err=True)

    for collection in ordered.collections:
        click.echo(
            f"  + Create collection: {collection.name} "
            f"({collection.type}, {len(collection.fields)} fields)"
        )
    for collection in diff.collections_to_delete:
        click.echo(f"  - Delete collection: {collection.name}")
    for mod in diff.collections_to_modify:
        _print_modification(mod)


def _check_force(engine: DiffEngine, diff: SchemaDiff, force: bool) -> None:
    """Print destructive changes and exit 1 if --force is required but absent."""
    if diff.collections_to_delete and engine.config.warn_on_delete:
        names = ", ".join(c.name for c in diff.collections_to_delete)
        click.echo(f"Warning: the following collections will be deleted: {names}", err=True)

    if not engine.requires_force_flag(diff):
        return

    click.echo("\nDestructive changes:")
    for change in engine.detect_destructive_changes(diff):
        click.echo(f"  ! [{change.severity.value}] {change.description}")

    if not force:
        click.echo(
            "Error: Destructive changes detected. Re-run with --force to proceed.",
            err=True,
        )
        raise SystemExit(1)


@click.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON.")
def status(as_json: bool):
    """Show pending schema changes without writing anything."""
    config, schema, previous = _load_inputs()
    engine = DiffEngine(config.diff)
    diff = engine.compare(schema, previous)
    summary = engine.generate_change_summary(diff)

    if previous is None:
        state = "first-run"
    elif diff.is_empty():
        state = "up-to-date"
    else:
        state = "changes-pending"

    if as_json:
        output = {
            "status": state,
            "collections": {
                "current": len(schema.collections),
                "snapshot": len(previous.collections) if previous else 0,
            },
            "requiresForce": engine.requires_force_flag(diff),
            "summary": summary.to_dict(),
        }
        click.echo(json.dumps(output, indent=2))
        return

    click.echo(f"Schema: {len(schema.collections)} collection(s)")
    if previous is None:
        click.echo("Snapshot: none (first run)")
    else:
        click.echo(
            f"Snapshot: version {previous.version}, "
            f"{len(previous.collections)} collection(s)"
        )

    if diff.is_empty():
        click.echo("No changes detected. Schema is up to date.")
        return

    click.echo(
        f"\n{summary.total_changes} change(s): "
        f"{summary.collections_to_create} to create, "
        f"{summary.collections_to_delete} to delete, "
        f"{summary.collections_to_modify} to modify"
    )

    destructive, non_destructive = engine.categorize_changes_by_severity(diff)
    if destructive:
        click.echo("\nDestructive changes:")
        for line in destructive:
            click.echo(f"  ! {line}")
    if non_destructive:
        click.echo("\nNon-destructive changes:")
        for line in non_destructive:
            click.echo(f"  + {line}")


@click.command()
@click.option("--force", is_flag=True, default=False, help="Allow destructive changes.")
@click.option(
    "--filter", "-f", "patterns", multiple=True,
    help="Only include collections or 'Collection.field' matching this regex.",
)
@click.option(
    "--skip-destructive", is_flag=True, default=False,
    help="Drop deletions, type changes and new required constraints.",
)
def diff(force: bool, patterns: tuple[str, ...], skip_destructive: bool):
    """Show the changes between the schema and the last snapshot."""
    config, schema, previous = _load_inputs()
    engine = DiffEngine(config.diff)
    result = engine.compare(schema, previous)

    if patterns or skip_destructive:
        result = engine.filter(
            result,
            FilterOptions(patterns=list(patterns), skip_destructive=skip_destructive),
        )

    if result.is_empty():
        click.echo("No changes detected.")
        return

    summary = engine.generate_change_summary(result)
    click.echo(f"Detected {summary.total_changes} change(s):")
    _print_diff(result)
    _check_force(engine, result, force)


@click.command()
@click.option("--force", is_flag=True, default=False, help="Allow destructive changes.")
def snapshot(force: bool):
    """Record the current schema as the new snapshot."""
    config, schema, previous = _load_inputs()
    engine = DiffEngine(config.diff)
    result = engine.compare(schema, previous)

    if previous is not None and result.is_empty():
        click.echo("No changes detected. Snapshot not updated.")
        return

    _check_force(engine, result, force)

    new_snapshot = create_snapshot(schema, result, version=next_version(previous))
    try:
        save_snapshot(new_snapshot, config.snapshot_path)
    except MigrationError as e:
        click.echo(f"Error: {e.detailed_message()}", err=True)
        raise SystemExit(1)

    click.echo(
        f"Snapshot saved: {config.snapshot_path} "
        f"(version {new_snapshot.version}, {len(new_snapshot.collections)} collection(s))"
    )
