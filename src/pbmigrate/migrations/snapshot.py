"""Schema snapshot: the recorded state the next diff is computed against.

The snapshot is serialized to JSON and committed to source control next
to the migrations.
"""

from __future__ import annotations

import copy
import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from pbmigrate.errors import SnapshotError
from pbmigrate.migrations.types import SchemaDefinition, SchemaDiff, SchemaSnapshot

logger = logging.getLogger(__name__)


def create_snapshot(
    schema: SchemaDefinition,
    diff: SchemaDiff | None = None,
    version: str = "1",
) -> SchemaSnapshot:
    """Create a snapshot from the current schema.

    Collection ids come from the schema itself, then from ids assigned to
    new collections by ``diff``, then from the ids the previous snapshot
    already knew (``diff.existing_collection_ids``, matched ignoring case).

    Args:
        schema: Current schema definition.
        diff: The diff computed for this schema, if any.
        version: Version string recorded in the snapshot.
    """
    assigned: dict[str, str] = {}
    if diff is not None:
        for name, cid in diff.existing_collection_ids.items():
            assigned[name.lower()] = cid
        for collection in diff.collections_to_create:
            if collection.id:
                assigned[collection.name.lower()] = collection.id

    collections = {}
    for name, collection in schema.collections.items():
        collection = copy.deepcopy(collection)
        if not collection.id:
            collection.id = assigned.get(name.lower())
        collections[name] = collection

    return SchemaSnapshot(
        version=version,
        timestamp=datetime.now(timezone.utc).isoformat(),
        collections=collections,
    )


def next_version(snapshot: SchemaSnapshot | None) -> str:
    """Version for the snapshot that follows ``snapshot``."""
    if snapshot is None:
        return "1"
    try:
        return str(int(snapshot.version) + 1)
    except ValueError:
        return "1"


def save_snapshot(snapshot: SchemaSnapshot, path: Path) -> None:
    """Save a snapshot to a JSON file."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(snapshot.to_dict(), f, indent=2)
            f.write("\n")
    except OSError as e:
        raise SnapshotError(
            "Failed to write snapshot", path, operation="write", cause=e
        ) from e
    logger.debug("Saved snapshot version %s to %s", snapshot.version, path)


def load_snapshot(path: Path) -> SchemaSnapshot | None:
    """Load a snapshot from a JSON file.

    Returns None if the file doesn't exist (first run).

    Raises:
        SnapshotError: If the file can't be read or isn't a valid snapshot.
    """
    if not path.exists():
        logger.debug("No snapshot at %s", path)
        return None

    try:
        with open(path) as f:
            data = json.load(f)
    except OSError as e:
        raise SnapshotError(
            "Failed to read snapshot", path, operation="read", cause=e
        ) from e
    except json.JSONDecodeError as e:
        raise SnapshotError(
            "Snapshot is not valid JSON", path, operation="parse", cause=e
        ) from e

    if not isinstance(data, dict) or not isinstance(data.get("collections", {}), dict):
        raise SnapshotError(
            "Snapshot must be an object with a 'collections' mapping",
            path,
            operation="parse",
        )

    try:
        snapshot = SchemaSnapshot.from_dict(data)
    except (KeyError, TypeError, AttributeError) as e:
        raise SnapshotError(
            "Snapshot has an invalid collection entry", path, operation="parse", cause=e
        ) from e

    logger.debug(
        "Loaded snapshot version %s with %d collection(s)",
        snapshot.version,
        len(snapshot.collections),
    )
    return snapshot
