"""
Batch Enricher

Runs a user-triggered enrichment over a set of rows with progress tracking,
row filters, pacing, cooperative cancellation and a summary report.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

from tqdm import tqdm

from enricher.enrichment.config import EnrichmentSettings
from enricher.enrichment.cost_estimator import CostEstimate, CostEstimator
from enricher.enrichment.errors import PromptRenderError, RecordStoreError
from enricher.enrichment.orchestrator import EnrichmentOrchestrator
from enricher.enrichment.records import EnrichmentStatus, Record, RecordStore
from enricher.enrichment.results import EnrichmentResult, utc_timestamp
from enricher.enrichment.templates.registry import TemplateRegistry
from enricher.llm.errors import ConfigurationError


logger = logging.getLogger(__name__)


@dataclass
class BatchOptions:
    """Row filters for a batch.

    Attributes:
        skip_complete: Skip rows whose status is Complete
        retry_failed: Re-process rows whose status is Failed or Partial
        only_new: Process only rows that were never enriched (empty or Pending)
    """
    skip_complete: bool = True
    retry_failed: bool = False
    only_new: bool = False


@dataclass
class BatchRequest:
    """A batch enrichment request.

    Attributes:
        template_id: Template to apply
        entity_ids: Rows to consider; empty means every row in the store
        options: Row filters
    """
    template_id: str
    entity_ids: List[str] = field(default_factory=list)
    options: BatchOptions = field(default_factory=BatchOptions)


@dataclass
class BatchSummary:
    """Summary of a batch run.

    ``succeeded`` counts Complete and Partial rows; ``partial`` is the
    Partial share of it. ``errors`` lists every Failed or Partial row with
    its notes.
    """
    total: int = 0
    succeeded: int = 0
    partial: int = 0
    failed: int = 0
    skipped: int = 0
    from_cache: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    duration: float = 0.0
    cancelled: bool = False
    errors: List[Tuple[str, str]] = field(default_factory=list)
    results: List[EnrichmentResult] = field(default_factory=list)

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens

    def add(self, result: EnrichmentResult) -> None:
        self.results.append(result)
        if result.status == EnrichmentStatus.COMPLETE:
            self.succeeded += 1
        elif result.status == EnrichmentStatus.PARTIAL:
            self.succeeded += 1
            self.partial += 1
            self.errors.append((result.entity_id, result.notes or "Partial"))
        else:
            self.failed += 1
            self.errors.append((result.entity_id, result.notes or result.error or "Failed"))
        if result.from_cache:
            self.from_cache += 1
        self.input_tokens += result.usage.input_tokens
        self.output_tokens += result.usage.output_tokens
        self.cost_usd += result.cost_usd


class BatchEnricher:
    """Processes many rows of a record store against one template.

    Example:
        >>> enricher = BatchEnricher(orchestrator, registry)
        >>> summary = enricher.run(BatchRequest("company_overview"), store)
        >>> print(enricher.format_report(summary))
    """

    def __init__(
        self,
        orchestrator: EnrichmentOrchestrator,
        registry: TemplateRegistry,
        settings: Optional[EnrichmentSettings] = None,
        sleep: Callable[[float], None] = time.sleep,
        show_progress: bool = True
    ):
        self.orchestrator = orchestrator
        self.registry = registry
        self.settings = settings or orchestrator.settings
        self.sleep = sleep
        self.show_progress = show_progress
        self._cancelled = False

    def cancel(self) -> None:
        """Stop after the record currently being processed."""
        self._cancelled = True

    def select(self, request: BatchRequest, store: RecordStore) -> Tuple[List[str], List[str]]:
        """Split the requested rows into (to process, skipped) by the filters."""
        entity_ids = list(request.entity_ids) or store.list_ids()
        options = request.options

        selected, skipped = [], []
        for entity_id in entity_ids:
            try:
                status = store.get_record(entity_id).status
            except RecordStoreError:
                # Reported as a failure when processed
                selected.append(entity_id)
                continue

            if self._should_process(status, options):
                selected.append(entity_id)
            else:
                skipped.append(entity_id)
        return selected, skipped

    @staticmethod
    def _should_process(status: Optional[EnrichmentStatus], options: BatchOptions) -> bool:
        if options.only_new:
            return status in (None, EnrichmentStatus.PENDING)
        if status == EnrichmentStatus.COMPLETE:
            return not options.skip_complete
        if status in (EnrichmentStatus.FAILED, EnrichmentStatus.PARTIAL):
            return options.retry_failed
        return True

    def run(self, request: BatchRequest, store: RecordStore) -> BatchSummary:
        """Enrich the selected rows and write results back to the store.

        Raises:
            TemplateNotFoundError: If the template id is unknown
            ConfigurationError: If no AI credential is configured; the row
                being processed is marked Failed first
        """
        template = self.registry.get_by_id(request.template_id)
        selected, skipped = self.select(request, store)

        self._cancelled = False
        summary = BatchSummary(total=len(selected) + len(skipped), skipped=len(skipped))
        start_time = time.time()

        logger.info(
            f"Enriching {len(selected)} rows with {template.id} "
            f"({len(skipped)} skipped by filters)"
        )

        try:
            progress = tqdm(selected, desc="Enriching rows", unit="row", disable=not self.show_progress)
            for index, entity_id in enumerate(progress):
                if self._cancelled:
                    remaining = len(selected) - index
                    summary.skipped += remaining
                    summary.cancelled = True
                    logger.info(f"Batch cancelled, {remaining} rows not processed")
                    break

                if index > 0 and index % self.settings.batch_size == 0 and self.settings.batch_pause_seconds > 0:
                    logger.debug(f"Pausing {self.settings.batch_pause_seconds}s after {index} rows")
                    self.sleep(self.settings.batch_pause_seconds)

                result = self._process_row(entity_id, template, store)
                if result is None:
                    summary.failed += 1
                    summary.errors.append((entity_id, f"No record with id {entity_id}"))
                    continue
                summary.add(result)
        finally:
            store.save()
            summary.duration = time.time() - start_time

        logger.info(
            f"Batch finished: {summary.succeeded} succeeded, {summary.failed} failed, "
            f"{summary.skipped} skipped, {summary.from_cache} from cache"
        )
        return summary

    def _process_row(self, entity_id: str, template, store: RecordStore) -> Optional[EnrichmentResult]:
        try:
            record = store.get_record(entity_id)
        except RecordStoreError as e:
            logger.error(str(e))
            return None

        store.set_status(entity_id, EnrichmentStatus.PROCESSING)

        try:
            result = self.orchestrator.enrich_record(record, template)
        except ConfigurationError as e:
            self._mark_failed(record, store, str(e))
            raise

        store.write_record(record, template.output_fields)
        store.save()

        logger.info(
            f"Row {entity_id}: {result.status.value}"
            + (" (cache)" if result.from_cache else "")
            + (f" - {result.notes}" if result.notes and result.status != EnrichmentStatus.COMPLETE else "")
        )
        return result

    def _mark_failed(self, record: Record, store: RecordStore, message: str) -> None:
        record.status = EnrichmentStatus.FAILED
        record.last_enriched = utc_timestamp()
        record.notes = message
        store.write_record(record)

    def estimate(
        self,
        request: BatchRequest,
        store: RecordStore,
        estimator: CostEstimator
    ) -> CostEstimate:
        """Dry-run cost estimate for the rows ``run`` would process.

        Rows missing required fields are left out since they make no call.
        """
        template = self.registry.get_by_id(request.template_id)
        selected, _ = self.select(request, store)

        planned = []
        for entity_id in selected:
            try:
                record = store.get_record(entity_id)
            except RecordStoreError:
                continue
            if self.orchestrator.missing_required_fields(record, template):
                continue
            try:
                planned.append((entity_id, self.orchestrator.plan_calls(record, template)))
            except PromptRenderError as e:
                logger.warning(f"Row {entity_id}: {e}")

        return estimator.estimate(planned, model=template.settings().model)

    def format_report(self, summary: BatchSummary) -> str:
        """Format batch summary for display."""
        lines = [
            "=" * 60,
            "Enrichment Report" + (" (cancelled)" if summary.cancelled else ""),
            "=" * 60,
            f"Total rows: {summary.total}",
            f"Succeeded: {summary.succeeded} ({summary.partial} partial)",
            f"Failed: {summary.failed}",
            f"Skipped: {summary.skipped}",
            f"From cache: {summary.from_cache}",
            "",
            f"Tokens: {summary.input_tokens:,} in / {summary.output_tokens:,} out",
            f"Total cost: ${summary.cost_usd:.4f}",
            f"Duration: {summary.duration:.1f}s",
        ]

        if summary.errors:
            lines.append("")
            lines.append("Rows with failed fields:")
            for entity_id, message in summary.errors:
                lines.append(f"  - {entity_id}: {message}")

        lines.append("=" * 60)
        return "\n".join(lines)
