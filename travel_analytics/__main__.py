"""Entry point for ``travel-analytics`` and ``python -m travel_analytics``."""

import sys

import click

from .cli.commands import cli
from .exceptions import AnalyticsError


def main():
    """Run the CLI and report errors that escape a command."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.", err=True)
        sys.exit(1)
    except AnalyticsError as e:
        click.echo(f"\nError: {e.message}", err=True)
        for suggestion in e.suggestions:
            click.echo(f"  - {suggestion}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"\nError: {e}", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
