"""pbmigrate — derive incremental PocketBase schema changes from YAML collection definitions."""

__version__ = "0.1.0"
