"""
Enrich Subcommand Module

Runs a batch enrichment over the rows of a CSV file:
- Row filters (skip complete, retry failed, only new)
- Result caching with --no-cache to bypass and --clear-cache to reset
- Dry-run cost estimation
- Ctrl-C stops after the current row
"""

import logging
import signal
import sys
from typing import List, Optional

import click

from enricher.enrichment.batch import BatchEnricher, BatchOptions, BatchRequest
from enricher.enrichment.cache import CacheSystem
from enricher.enrichment.config import EnrichmentSettings
from enricher.enrichment.cost_estimator import CostEstimator
from enricher.enrichment.errors import EnrichmentError
from enricher.enrichment.orchestrator import EnrichmentOrchestrator
from enricher.enrichment.records import CsvRecordStore
from enricher.enrichment.templates.registry import TemplateRegistry
from enricher.llm.client import AIClient
from enricher.llm.config import LLMConfig
from enricher.llm.errors import ConfigurationError
from enricher.llm.factory import LLMProviderFactory
from enricher.utils.logging_config import configure_logging, logging_config

from .shared_options import (
    config_option,
    input_option,
    log_level_option,
    provider_option,
    template_option,
)


logger = logging.getLogger(__name__)


@click.command(help="Enrich rows of a CSV file with AI-generated fields")
@input_option()
@template_option()
@click.option(
    "--rows",
    default=None,
    help="Comma-separated row ids to process (default: all rows)"
)
@click.option(
    "--id-column",
    default=None,
    help="Column holding row ids (default: 1-based row number)"
)
@click.option(
    "--skip-complete/--no-skip-complete",
    default=True,
    show_default=True,
    help="Skip rows already marked Complete"
)
@click.option(
    "--retry-failed/--no-retry-failed",
    default=False,
    show_default=True,
    help="Re-process rows marked Failed or Partial"
)
@click.option(
    "--only-new",
    is_flag=True,
    help="Process only rows that were never enriched"
)
@provider_option()
@click.option(
    "--no-cache",
    is_flag=True,
    help="Bypass the result cache"
)
@click.option(
    "--clear-cache",
    is_flag=True,
    help="Remove all cached results before running"
)
@click.option(
    "--dry-run",
    is_flag=True,
    help="Estimate costs without calling the AI service"
)
@config_option()
@log_level_option()
def enrich(
    input_path,
    template_id,
    rows,
    id_column,
    skip_complete,
    retry_failed,
    only_new,
    provider,
    no_cache,
    clear_cache,
    dry_run,
    config,
    log_level
):
    """
    Enrich rows of a CSV file in place.

    Output fields and the status, timestamp, confidence and notes columns
    are written back to the input file.

    Examples:
        # Enrich every new or pending row
        sheet-enricher enrich --input companies.csv --template company_overview

        # Retry failed rows 3 and 7 without the cache
        sheet-enricher enrich -i companies.csv -t company_classification \\
            --rows 3,7 --retry-failed --no-cache

        # Estimate costs first
        sheet-enricher enrich -i contacts.csv -t contact_profile --dry-run
    """
    configure_logging(log_level.lower(), force=True)

    try:
        settings = EnrichmentSettings.load_from_yaml(config)
        llm_config = LLMConfig.load_from_yaml(config)
        provider_name = (provider or settings.provider).lower()

        logging_config.log_configuration_details({
            **settings.as_dict(),
            "provider": provider_name,
            "anthropic_api_key": llm_config.anthropic.api_key,
            "openai_api_key": llm_config.openai.api_key,
        })

        registry = TemplateRegistry(user_templates_path=settings.user_templates_path)
        store = CsvRecordStore(input_path, id_column=id_column, columns=settings.columns)
        factory = LLMProviderFactory(llm_config)

        client = AIClient(
            provider_loader=lambda: factory.create_provider(provider_name),
            max_attempts=settings.max_retries,
            base_delay=settings.base_delay,
            max_delay=settings.max_delay,
            calls_per_minute=settings.calls_per_minute or None
        )
        cache = None
        if clear_cache:
            removed = CacheSystem(settings.cache_dir).clear()
            click.echo(f"Cleared {removed} cached result(s)")
        if settings.cache_enabled and not no_cache:
            cache = CacheSystem(settings.cache_dir, settings.cache_ttl_seconds)

        orchestrator = EnrichmentOrchestrator(client, cache=cache, settings=settings)
        batch = BatchEnricher(orchestrator, registry, settings=settings)
        request = BatchRequest(
            template_id=template_id,
            entity_ids=_parse_rows(rows),
            options=BatchOptions(
                skip_complete=skip_complete,
                retry_failed=retry_failed,
                only_new=only_new
            )
        )

        if dry_run:
            estimator = CostEstimator(client.provider)
            estimate = batch.estimate(request, store, estimator)
            click.echo("\n" + "=" * 60)
            click.echo("DRY RUN - no AI calls made")
            click.echo("=" * 60)
            click.echo(estimator.format_estimate(estimate))
            return

        client.ensure_configured()
        summary = _run_interruptible(batch, request, store)
        logging_config.log_operation_timing("Enrichment", summary.duration)
        click.echo(batch.format_report(summary))

    except ConfigurationError as e:
        click.echo(f"\nConfiguration Error: {e}", err=True)
        click.echo("\nSetup instructions:", err=True)
        click.echo("  - cloud-anthropic: Set ANTHROPIC_API_KEY environment variable", err=True)
        click.echo("  - cloud-openai: Set OPENAI_API_KEY environment variable", err=True)
        sys.exit(1)

    except EnrichmentError as e:
        click.echo(f"\nEnrichment Error: {e}", err=True)
        sys.exit(1)

    except Exception as e:
        click.echo(f"\nUnexpected Error: {e}", err=True)
        logger.exception("Unexpected error during enrichment")
        sys.exit(1)


def _parse_rows(rows: Optional[str]) -> List[str]:
    if not rows:
        return []
    return [row.strip() for row in rows.split(",") if row.strip()]


def _run_interruptible(batch: BatchEnricher, request: BatchRequest, store):
    """Run the batch; the first Ctrl-C cancels after the current row."""
    def handle_interrupt(signum, frame):
        click.echo("\nStopping after the current row (Ctrl-C again to abort)...", err=True)
        batch.cancel()
        signal.signal(signal.SIGINT, previous)

    previous = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        return batch.run(request, store)
    finally:
        signal.signal(signal.SIGINT, previous)
