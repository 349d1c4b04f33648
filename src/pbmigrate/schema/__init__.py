"""Loading collection schemas from definition files."""

from pbmigrate.schema.loader import SchemaLoader

__all__ = ["SchemaLoader"]
