"""Allow ``python -m pbmigrate``."""

from pbmigrate.cli.main import cli

cli()
