"""
Enrichment Orchestrator

Runs the enrichment pipeline for one record:

1. Check required fields (no AI call when any is empty)
2. Consult the result cache
3. Render and send the prompt(s) for the template's mode
4. Parse answers and write values into the record
5. Derive status, confidence and notes; cache complete results

Field and record failures are returned as data on ``EnrichmentResult``.
Only ``ConfigurationError`` (no credential configured) is raised.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from enricher.enrichment.cache import CacheSystem
from enricher.enrichment.config import EnrichmentSettings
from enricher.enrichment.errors import CacheError, ParseError, PromptRenderError
from enricher.enrichment.extraction import (
    extract_field_value,
    extract_json_object,
    match_output_fields,
)
from enricher.enrichment.prompts.renderer import PromptRenderer
from enricher.enrichment.records import EnrichmentStatus, Record
from enricher.enrichment.results import (
    EnrichmentResult,
    ErrorKind,
    FieldOutcome,
    compute_confidence,
    status_for,
    utc_timestamp,
)
from enricher.enrichment.templates.models import PerFieldTemplate, SinglePromptTemplate
from enricher.llm.client import AIClient, InvokeResult


logger = logging.getLogger(__name__)

EMPTY_PROMPT = "Prompt rendered empty for this record"

AnyTemplate = Union[SinglePromptTemplate, PerFieldTemplate]


@dataclass
class PlannedCall:
    """One AI call a template will make for a record.

    Attributes:
        prompt: Rendered prompt text
        max_tokens: Answer token budget
        field_name: Output field answered (None for a single-prompt call)
    """
    prompt: str
    max_tokens: int
    field_name: Optional[str] = None


class EnrichmentOrchestrator:
    """Enriches single records against a template.

    Example:
        >>> orchestrator = EnrichmentOrchestrator(client, cache=CacheSystem())
        >>> result = orchestrator.enrich_record(record, registry.get_by_id("company_overview"))
        >>> result.status, result.confidence
        (<EnrichmentStatus.COMPLETE: 'Complete'>, 100)
    """

    def __init__(
        self,
        client: AIClient,
        cache: Optional[CacheSystem] = None,
        settings: Optional[EnrichmentSettings] = None,
        renderer: Optional[PromptRenderer] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """Initialize orchestrator.

        Args:
            client: AI client used for every call
            cache: Result cache; None disables caching
            settings: Enrichment settings (defaults if not provided)
            renderer: Prompt renderer (creates default if not provided)
            sleep: Sleep function used between per-field calls
        """
        self.client = client
        self.cache = cache
        self.settings = settings or EnrichmentSettings()
        self.renderer = renderer or PromptRenderer()
        self.sleep = sleep

    def enrich_record(self, record: Record, template: AnyTemplate) -> EnrichmentResult:
        """Enrich one record in place and describe the outcome.

        The record's output fields that succeeded and its system fields
        (status, timestamp, confidence, notes) are updated.

        Raises:
            ConfigurationError: If no AI credential is configured
        """
        missing = self.missing_required_fields(record, template)
        if missing:
            message = f"Missing required fields: {', '.join(missing)}"
            logger.info(f"Record {record.entity_id}: {message}")
            result = EnrichmentResult(
                entity_id=record.entity_id,
                template_id=template.id,
                status=EnrichmentStatus.FAILED,
                completed_at=utc_timestamp(),
                notes=message,
                error_kind=ErrorKind.MISSING_REQUIRED_FIELD,
                error=message,
            )
            self._apply(record, result)
            return result

        cache_key = self.cache.key_for(record, template) if self.cache else None
        if cache_key:
            cached = self.cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Record {record.entity_id}: cache hit for {template.id}")
                result = self._result_from_cache(record, template, cached)
                self._apply(record, result)
                return result

        if isinstance(template, PerFieldTemplate):
            result = self._enrich_per_field(record, template)
        else:
            result = self._enrich_single(record, template)

        self._finish(result, len(template.output_fields))
        self._apply(record, result)

        if cache_key and result.status == EnrichmentStatus.COMPLETE:
            try:
                self.cache.set(cache_key, result.values)
            except CacheError as e:
                logger.warning(f"Record {record.entity_id}: {e}")

        return result

    @staticmethod
    def missing_required_fields(record: Record, template: AnyTemplate) -> List[str]:
        return [name for name in template.required_fields if not record.value_of(name)]

    def plan_calls(self, record: Record, template: AnyTemplate) -> List[PlannedCall]:
        """Render the prompt(s) the template would send for this record.

        Prompts that render empty are left out; they are never sent.

        Raises:
            PromptRenderError: If a prompt cannot be rendered
        """
        model_settings = template.settings()

        if isinstance(template, PerFieldTemplate):
            budget = min(model_settings.max_tokens, self.settings.field_max_tokens)
            calls = []
            for field_name in template.output_fields:
                prompt_text = template.prompt_for(field_name) or ""
                data = dict(record.fields)
                data.setdefault("field_name", field_name)
                prompt = self.renderer.render(prompt_text, data)
                if prompt:
                    calls.append(PlannedCall(prompt=prompt, max_tokens=budget, field_name=field_name))
            return calls

        prompt = self.renderer.render(template.prompt_template, record.fields)
        if not prompt:
            return []
        return [PlannedCall(prompt=prompt, max_tokens=model_settings.max_tokens)]

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def _enrich_per_field(self, record: Record, template: PerFieldTemplate) -> EnrichmentResult:
        result = self._new_result(record, template)
        model_settings = template.settings()
        budget = min(model_settings.max_tokens, self.settings.field_max_tokens)

        for index, field_name in enumerate(template.output_fields):
            if index > 0 and self.settings.field_delay_seconds > 0:
                self.sleep(self.settings.field_delay_seconds)

            data = dict(record.fields)
            data.setdefault("field_name", field_name)
            try:
                prompt = self.renderer.render(template.prompt_for(field_name) or "", data)
            except PromptRenderError as e:
                result.fields.append(FieldOutcome.failed(field_name, ErrorKind.PARSE, str(e)))
                continue
            if not prompt:
                result.fields.append(FieldOutcome.failed(field_name, ErrorKind.PARSE, EMPTY_PROMPT))
                continue

            answer = self.client.invoke(
                prompt,
                model=model_settings.model,
                max_tokens=budget,
                temperature=model_settings.temperature
            )
            self._account(result, answer)

            if not answer.success:
                result.fields.append(FieldOutcome.failed(
                    field_name, ErrorKind.from_exception(answer.exception), answer.error or "AI call failed"
                ))
                continue

            try:
                value = extract_field_value(answer.text)
            except ParseError as e:
                result.fields.append(FieldOutcome.failed(field_name, ErrorKind.PARSE, str(e)))
                continue

            record.set(field_name, value)
            result.fields.append(FieldOutcome.ok(field_name, value))

        return result

    def _enrich_single(self, record: Record, template: SinglePromptTemplate) -> EnrichmentResult:
        result = self._new_result(record, template)
        model_settings = template.settings()

        def fail_all(kind: ErrorKind, message: str) -> EnrichmentResult:
            result.fields = [
                FieldOutcome.failed(name, kind, message) for name in template.output_fields
            ]
            return result

        try:
            prompt = self.renderer.render(template.prompt_template, record.fields)
        except PromptRenderError as e:
            return fail_all(ErrorKind.PARSE, str(e))
        if not prompt:
            return fail_all(ErrorKind.PARSE, EMPTY_PROMPT)

        answer = self.client.invoke(
            prompt,
            model=model_settings.model,
            max_tokens=model_settings.max_tokens,
            temperature=model_settings.temperature
        )
        self._account(result, answer)

        if not answer.success:
            return fail_all(ErrorKind.from_exception(answer.exception), answer.error or "AI call failed")

        try:
            data = extract_json_object(answer.text)
        except ParseError as e:
            return fail_all(ErrorKind.PARSE, str(e))

        values, missing = match_output_fields(data, template.output_fields)
        for field_name in template.output_fields:
            if field_name in values:
                record.set(field_name, values[field_name])
                result.fields.append(FieldOutcome.ok(field_name, values[field_name]))
            else:
                result.fields.append(FieldOutcome.failed(
                    field_name, ErrorKind.PARSE, "Field missing from response"
                ))

        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _new_result(self, record: Record, template: AnyTemplate) -> EnrichmentResult:
        return EnrichmentResult(
            entity_id=record.entity_id,
            template_id=template.id,
            status=EnrichmentStatus.PROCESSING,
        )

    def _account(self, result: EnrichmentResult, answer: InvokeResult) -> None:
        if answer.success:
            result.usage.add(answer.usage)
            result.cost_usd += answer.cost_usd

    def _result_from_cache(self, record: Record, template: AnyTemplate, cached: dict) -> EnrichmentResult:
        result = self._new_result(record, template)
        result.from_cache = True
        for field_name in template.output_fields:
            value = cached.get(field_name)
            if value in (None, ""):
                result.fields.append(FieldOutcome.failed(
                    field_name, ErrorKind.PARSE, "Field missing from cached result"
                ))
            else:
                record.set(field_name, value)
                result.fields.append(FieldOutcome.ok(field_name, str(value)))

        self._finish(result, len(template.output_fields))
        result.notes = "Loaded from cache" + (f"; {result.notes}" if result.notes else "")
        return result

    def _finish(self, result: EnrichmentResult, total: int) -> None:
        succeeded = result.succeeded_count
        result.status = status_for(succeeded, total)
        result.confidence = compute_confidence(succeeded, total)
        result.completed_at = utc_timestamp()

        failed = [o for o in result.fields if not o.succeeded]
        if failed:
            messages = []
            for outcome in failed:
                if outcome.error and outcome.error not in messages:
                    messages.append(outcome.error)
            note = "Failed fields: " + ", ".join(o.field_name for o in failed)
            if messages:
                note += " (" + "; ".join(messages) + ")"
            result.notes = note

        logger.debug(
            f"Record {result.entity_id}: {result.status.value}, "
            f"{succeeded}/{total} fields, confidence {result.confidence}%"
        )

    def _apply(self, record: Record, result: EnrichmentResult) -> None:
        record.status = result.status
        record.confidence = result.confidence
        record.last_enriched = result.completed_at
        record.notes = result.notes
