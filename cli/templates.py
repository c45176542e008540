"""
Templates Subcommand Module

Lists, shows, validates, creates and deletes enrichment templates. Built-in
templates are read-only; user templates are stored in the YAML file named by
``enrichment.user_templates_path`` in the config.
"""

import sys
from pathlib import Path
from typing import Any, Dict, List

import click
import yaml

from enricher.enrichment.config import EnrichmentSettings
from enricher.enrichment.errors import TemplateError, TemplateValidationError
from enricher.enrichment.templates.models import EntityType
from enricher.enrichment.templates.registry import TemplateRegistry

from .shared_options import config_option


@click.group(help="Manage enrichment templates")
@config_option()
@click.pass_context
def templates(ctx, config):
    settings = EnrichmentSettings.load_from_yaml(config)
    try:
        ctx.obj = TemplateRegistry(user_templates_path=settings.user_templates_path)
    except TemplateError as e:
        click.echo(f"Template Error: {e}", err=True)
        sys.exit(1)


@templates.command(name="list", help="List available templates")
@click.option(
    "--type", "entity_type",
    type=click.Choice([t.value for t in EntityType], case_sensitive=False),
    default=None,
    help="Only templates for this entity type"
)
@click.pass_obj
def list_templates(registry: TemplateRegistry, entity_type):
    if entity_type:
        wanted = next(t for t in EntityType if t.value.lower() == entity_type.lower())
        items = registry.get_by_type(wanted)
    else:
        items = registry.get_all()

    if not items:
        click.echo("No templates found.")
        return

    width = max(len(t.id) for t in items)
    for template in items:
        origin = "custom" if registry.is_user_template(template.id) else "built-in"
        click.echo(
            f"{template.id.ljust(width)}  {template.entity_type.value:<8}  "
            f"{template.mode:<9}  {origin:<8}  {template.name}"
        )


@templates.command(help="Show one template as YAML")
@click.argument("template_id")
@click.pass_obj
def show(registry: TemplateRegistry, template_id):
    try:
        template = registry.get_by_id(template_id)
    except TemplateError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(yaml.safe_dump(template.model_dump(mode="json"), sort_keys=False, allow_unicode=True))


@templates.command(help="Validate template definitions in a YAML file")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def validate(registry: TemplateRegistry, file):
    entries = _read_entries(file)
    invalid = 0
    for index, entry in enumerate(entries, start=1):
        label = entry.get("id") or entry.get("name") or f"#{index}"
        errors = registry.validate(entry)
        if errors:
            invalid += 1
            click.echo(f"{label}: INVALID")
            for error in errors:
                click.echo(f"  - {error}")
        else:
            click.echo(f"{label}: OK")

    if invalid:
        sys.exit(1)


@templates.command(help="Create user templates from a YAML file")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def create(registry: TemplateRegistry, file):
    for entry in _read_entries(file):
        try:
            template = registry.create(entry)
        except TemplateValidationError as e:
            click.echo(f"Error: {entry.get('name') or 'template'} is invalid", err=True)
            for error in e.errors:
                click.echo(f"  - {error}", err=True)
            sys.exit(1)
        click.echo(f"Created {template.id} ({template.name})")


@templates.command(help="Replace a user template with the definition in a YAML file")
@click.argument("template_id")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def update(registry: TemplateRegistry, template_id, file):
    entries = _read_entries(file)
    if len(entries) != 1:
        click.echo("Error: update expects exactly one template definition", err=True)
        sys.exit(1)
    try:
        registry.update(template_id, entries[0])
    except TemplateValidationError as e:
        click.echo("Error: template is invalid", err=True)
        for error in e.errors:
            click.echo(f"  - {error}", err=True)
        sys.exit(1)
    except TemplateError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Updated {template_id}")


@templates.command(help="Delete a user template")
@click.argument("template_id")
@click.pass_obj
def delete(registry: TemplateRegistry, template_id):
    try:
        registry.delete(template_id)
    except TemplateError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Deleted {template_id}")


def _read_entries(file: str) -> List[Dict[str, Any]]:
    """Template dicts from a file holding one template or a ``templates`` list."""
    try:
        data = yaml.safe_load(Path(file).read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        click.echo(f"Error: invalid YAML in {file}: {e}", err=True)
        sys.exit(1)

    if isinstance(data, dict) and isinstance(data.get("templates"), list):
        entries = data["templates"]
    elif isinstance(data, dict) and data:
        entries = [data]
    else:
        entries = data if isinstance(data, list) else []

    if not entries or not all(isinstance(e, dict) for e in entries):
        click.echo(f"Error: {file} does not contain template definitions", err=True)
        sys.exit(1)
    return entries
