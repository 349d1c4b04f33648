"""pbmigrate CLI entry point."""

import logging

import click


@click.group()
@click.option("--verbose", "-v", is_flag=True, default=False, help="Show debug logging.")
def cli(verbose: bool):
    """pbmigrate: schema diffing for PocketBase collections."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


# Register subcommands
from pbmigrate.cli.migrate_cmd import diff, snapshot, status  # noqa: E402

cli.add_command(status)
cli.add_command(diff)
cli.add_command(snapshot)
