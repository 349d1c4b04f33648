"""Diff engine configuration."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class Severity(Enum):
    """Severity of a destructive change.

    HIGH: collection/field deletions and field type changes
    MEDIUM: making a field required
    LOW: any other constraint or option change
    """

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    def includes(self, other: Severity) -> bool:
        """True if a threshold of ``self`` surfaces changes of severity ``other``."""
        return _SEVERITY_RANK[other] <= _SEVERITY_RANK[self]


_SEVERITY_RANK = {Severity.HIGH: 0, Severity.MEDIUM: 1, Severity.LOW: 2}

DEFAULT_SYSTEM_COLLECTIONS = (
    "_mfas",
    "_otps",
    "_externalAuths",
    "_authOrigins",
    "_superusers",
)

DEFAULT_USERS_SYSTEM_FIELDS = (
    "id",
    "password",
    "tokenKey",
    "email",
    "emailVisibility",
    "verified",
    "created",
    "updated",
)


@dataclass
class DiffEngineConfig:
    """Options for the diff engine. All fields have defaults.

    Attributes:
        warn_on_delete: Warn when collections are deleted.
        require_force_for_destructive: Require --force for destructive diffs.
        severity_threshold: Lowest severity that requires --force.
        system_collections: Collections never created or deleted.
        users_system_fields: Server-managed fields of the ``users`` collection.
    """

    warn_on_delete: bool = True
    require_force_for_destructive: bool = True
    severity_threshold: Severity = Severity.HIGH
    system_collections: list[str] = field(
        default_factory=lambda: list(DEFAULT_SYSTEM_COLLECTIONS)
    )
    users_system_fields: list[str] = field(
        default_factory=lambda: list(DEFAULT_USERS_SYSTEM_FIELDS)
    )

    def __post_init__(self) -> None:
        # Accept the plain strings used in config files.
        if not isinstance(self.severity_threshold, Severity):
            self.severity_threshold = Severity(self.severity_threshold)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiffEngineConfig:
        """Build a config from a mapping, rejecting unknown keys.

        Raises:
            ValueError: For unknown keys, wrongly typed values or an invalid
                severity threshold.
        """
        if not isinstance(data, dict):
            raise ValueError("Diff options must be a mapping")

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown diff option(s): {', '.join(unknown)}")

        for key in ("warn_on_delete", "require_force_for_destructive"):
            if key in data and not isinstance(data[key], bool):
                raise ValueError(f"{key} must be true or false, got {data[key]!r}")

        for key in ("system_collections", "users_system_fields"):
            if key in data and (
                not isinstance(data[key], list)
                or not all(isinstance(v, str) for v in data[key])
            ):
                raise ValueError(f"{key} must be a list of strings, got {data[key]!r}")

        return cls(**data)


def merge_config(config: DiffEngineConfig | None) -> DiffEngineConfig:
    """Return ``config`` or the default configuration."""
    return config if config is not None else DiffEngineConfig()
