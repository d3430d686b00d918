"""Entry point for ``python -m lexsync``."""

from lexsync.cli import cli

cli()
