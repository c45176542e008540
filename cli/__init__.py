"""
CLI Package for sheet-enricher

Click group with one module per subcommand. The cli() function is the
console script entry point declared in setup.py.
"""

import os
import click
from dotenv import load_dotenv

from enricher import __version__
from enricher.utils.logging_config import configure_logging

# Load environment variables from .env files
# Priority: .env.dev (if exists) overrides .env
if os.path.exists('.env.dev'):
    load_dotenv('.env.dev')
elif os.path.exists('.env'):
    load_dotenv('.env')
from .enrich import enrich
from .templates import templates

# Configure logging when CLI package is imported
configure_logging()


@click.group()
@click.version_option(version=__version__, prog_name='sheet-enricher')
def main():
    """sheet-enricher - Fill company and contact spreadsheets with AI research.

    Reads rows from a CSV file, renders a template's prompt for each row,
    asks the configured AI provider and writes the answers back together
    with status, timestamp, confidence and notes columns.
    """
    pass


# Register subcommands
main.add_command(enrich)
main.add_command(templates)


# Entry point for setup.py console script
def cli():
    """Console script entry point."""
    main()
