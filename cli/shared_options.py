"""
Shared CLI Option Decorators

Reusable Click decorators for options common to several subcommands.
"""

import click

from enricher.llm.factory import PROVIDER_ALIASES, PROVIDER_IDS


def input_option(help=None):
    """Decorator for the CSV input option."""
    def decorator(f):
        return click.option(
            '--input', '-i', 'input_path',
            required=True,
            type=click.Path(exists=True, dir_okay=False),
            help=help or 'CSV file with the rows to enrich (updated in place)'
        )(f)
    return decorator


def template_option(help=None):
    """Decorator for template selection."""
    def decorator(f):
        return click.option(
            '--template', '-t', 'template_id',
            required=True,
            help=help or 'Template id (see "templates list")'
        )(f)
    return decorator


def provider_option(help=None):
    """Decorator for AI provider selection."""
    def decorator(f):
        return click.option(
            '--provider', '-p',
            default=None,
            type=click.Choice([*PROVIDER_IDS, *PROVIDER_ALIASES, 'auto'], case_sensitive=False),
            help=help or 'AI provider (default: from config, else auto)'
        )(f)
    return decorator


def config_option(help=None):
    """Decorator for configuration file options."""
    def decorator(f):
        return click.option(
            '--config',
            default=None,
            type=click.Path(dir_okay=False),
            help=help or 'Path to configuration file (default: .sheet-enricher/config.yaml)'
        )(f)
    return decorator


def log_level_option(help=None):
    """Decorator for logging level options."""
    def decorator(f):
        return click.option(
            '--log-level',
            default='INFO',
            type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
            help=help or 'Logging level'
        )(f)
    return decorator
