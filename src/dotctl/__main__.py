"""Allow ``python -m dotctl``."""

from dotctl.cli import cli

cli()
