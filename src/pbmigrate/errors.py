"""Error types raised by the schema loader, snapshot storage and config layer.

The diff engine itself never raises these for well-formed input; they
come from the collaborators that build its inputs.
"""

from __future__ import annotations

from pathlib import Path


class MigrationError(Exception):
    """Base class for all pbmigrate errors."""

    def detailed_message(self) -> str:
        return str(self)


class SchemaParsingError(MigrationError):
    """A schema definition file could not be read or is invalid."""

    def __init__(
        self,
        message: str,
        file_path: Path | str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.file_path = file_path
        self.cause = cause

    def detailed_message(self) -> str:
        parts = [str(self)]
        if self.file_path:
            parts.append(f"\nFile: {self.file_path}")
        if self.cause is not None:
            parts.append(f"\nCause: {self.cause}")
        return "".join(parts)


class SnapshotError(MigrationError):
    """A snapshot file could not be read, parsed or written."""

    def __init__(
        self,
        message: str,
        snapshot_path: Path | str | None = None,
        operation: str | None = None,  # "read" | "write" | "parse"
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.snapshot_path = snapshot_path
        self.operation = operation
        self.cause = cause

    def detailed_message(self) -> str:
        parts = [str(self)]
        if self.operation:
            parts.append(f"\nOperation: {self.operation}")
        if self.snapshot_path:
            parts.append(f"\nSnapshot: {self.snapshot_path}")
        if self.cause is not None:
            parts.append(f"\nCause: {self.cause}")
        return "".join(parts)


class ConfigurationError(MigrationError):
    """The project configuration file is invalid."""

    def __init__(self, message: str, config_path: Path | str | None = None):
        super().__init__(message)
        self.config_path = config_path

    def detailed_message(self) -> str:
        if self.config_path:
            return f"{self}\nConfig: {self.config_path}"
        return str(self)
