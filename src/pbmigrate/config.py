"""Project configuration.

Read from ``pbmigrate.yaml`` in the project root:

    schema:
      directory: schema
      exclude: ["_*"]
    snapshot: migrations/schema_snapshot.json
    diff:
      warn_on_delete: true
      require_force_for_destructive: true
      severity_threshold: medium
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from pbmigrate.errors import ConfigurationError
from pbmigrate.migrations.diff.config import DiffEngineConfig

CONFIG_FILENAME = "pbmigrate.yaml"
DEFAULT_SCHEMA_DIR = "schema"
DEFAULT_SNAPSHOT = "migrations/schema_snapshot.json"


@dataclass
class ProjectConfig:
    """Resolved paths and diff options for one project."""

    schema_dir: Path
    snapshot_path: Path
    exclude: list[str] | None = None
    diff: DiffEngineConfig = field(default_factory=DiffEngineConfig)
    config_path: Path | None = None

    @classmethod
    def load(cls, base_path: Path | None = None) -> ProjectConfig:
        """Load configuration for the project rooted at ``base_path``.

        Resolution order:
        1. PBMIGRATE_CONFIG env var (path to a config file)
        2. pbmigrate.yaml in base_path
        3. Defaults: schema/ and migrations/schema_snapshot.json

        PBMIGRATE_SCHEMA_DIR and PBMIGRATE_SNAPSHOT override the paths
        from the file. Relative paths resolve against base_path.

        Raises:
            ConfigurationError: If the file is unreadable or invalid.
        """
        base_path = base_path or Path.cwd()

        config_path: Path | None = None
        env_config = os.environ.get("PBMIGRATE_CONFIG")
        if env_config:
            config_path = Path(env_config)
            if not config_path.is_absolute():
                config_path = base_path / config_path
            if not config_path.exists():
                raise ConfigurationError("Config file not found", config_path)
        elif (base_path / CONFIG_FILENAME).exists():
            config_path = base_path / CONFIG_FILENAME

        data = _read_config(config_path) if config_path else {}
        return cls.from_dict(data, base_path, config_path)

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        base_path: Path,
        config_path: Path | None = None,
    ) -> ProjectConfig:
        schema = data.get("schema") or {}
        if not isinstance(schema, dict):
            raise ConfigurationError("'schema' must be a mapping", config_path)

        schema_dir = os.environ.get("PBMIGRATE_SCHEMA_DIR") or schema.get(
            "directory", DEFAULT_SCHEMA_DIR
        )
        snapshot = os.environ.get("PBMIGRATE_SNAPSHOT") or data.get(
            "snapshot", DEFAULT_SNAPSHOT
        )

        try:
            diff = DiffEngineConfig.from_dict(data.get("diff") or {})
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid diff options: {e}", config_path) from e

        return cls(
            schema_dir=_resolve(base_path, schema_dir),
            snapshot_path=_resolve(base_path, snapshot),
            exclude=schema.get("exclude"),
            diff=diff,
            config_path=config_path,
        )


def _resolve(base_path: Path, value: str | Path) -> Path:
    path = Path(value)
    return path if path.is_absolute() else base_path / path


def _read_config(path: Path) -> dict[str, Any]:
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config: {e}", path) from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML: {e}", path) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError("Config must be a mapping", path)
    return data
