"""CLI entry points for IRP.

Provides command-line tools for:
- Inspecting and moving reports through the workflow
- Development utilities
"""

import click

from .. import __version__
from ..logging import setup_logging
from .dev import cli as dev_cli
from .reports import reports_group


@click.group()
@click.version_option(version=__version__, prog_name="irp")
def main():
    """IRP - Institution Report Platform.

    Command-line tools for moderating reports and
    checking local infrastructure.
    """
    setup_logging()


main.add_command(reports_group, name="reports")
main.add_command(dev_cli, name="dev")


if __name__ == "__main__":
    main()
