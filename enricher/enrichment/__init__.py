"""
Row Enrichment Module

Fills spreadsheet-style records with AI-generated values. A template names
the fields a row must have and the fields to produce; the orchestrator
renders the template's prompt(s) against each row, calls the AI client,
parses the answers and records status, confidence and notes. Results are
cached per normalized record identity.
"""

from enricher.enrichment.batch import (
    BatchEnricher,
    BatchOptions,
    BatchRequest,
    BatchSummary,
)
from enricher.enrichment.cache import CacheSystem
from enricher.enrichment.config import EnrichmentSettings
from enricher.enrichment.cost_estimator import CostEstimate, CostEstimator
from enricher.enrichment.orchestrator import EnrichmentOrchestrator, PlannedCall
from enricher.enrichment.records import (
    CsvRecordStore,
    EnrichmentStatus,
    InMemoryRecordStore,
    Record,
    RecordStore,
    SystemColumns,
)
from enricher.enrichment.results import EnrichmentResult, ErrorKind, FieldOutcome
from enricher.enrichment.templates import TemplateRegistry

__all__ = [
    "BatchEnricher",
    "BatchOptions",
    "BatchRequest",
    "BatchSummary",
    "CacheSystem",
    "EnrichmentSettings",
    "CostEstimate",
    "CostEstimator",
    "EnrichmentOrchestrator",
    "PlannedCall",
    "CsvRecordStore",
    "EnrichmentStatus",
    "InMemoryRecordStore",
    "Record",
    "RecordStore",
    "SystemColumns",
    "EnrichmentResult",
    "ErrorKind",
    "FieldOutcome",
    "TemplateRegistry",
]
