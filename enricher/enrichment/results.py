"""
Enrichment Results

Value types describing the outcome of enriching one record. Field-level and
record-level failures are carried as data tagged with an ``ErrorKind``
instead of being raised.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from enricher.enrichment.errors import ParseError
from enricher.enrichment.records import EnrichmentStatus
from enricher.llm.client import TokenUsage
from enricher.llm.errors import ConfigurationError, RateLimitError


class ErrorKind(str, Enum):
    """Classification of an enrichment failure."""
    MISSING_REQUIRED_FIELD = "missing_required_field"
    TRANSPORT = "transport"
    RATE_LIMITED = "rate_limited"
    PARSE = "parse"
    CONFIGURATION = "configuration"

    @classmethod
    def from_exception(cls, error: Optional[Exception]) -> "ErrorKind":
        if isinstance(error, RateLimitError):
            return cls.RATE_LIMITED
        if isinstance(error, ParseError):
            return cls.PARSE
        if isinstance(error, ConfigurationError):
            return cls.CONFIGURATION
        return cls.TRANSPORT


@dataclass
class FieldOutcome:
    """Result for a single output field: a value or a tagged error."""
    field_name: str
    value: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error_kind is None and self.value is not None

    @classmethod
    def ok(cls, field_name: str, value: str) -> "FieldOutcome":
        return cls(field_name=field_name, value=value)

    @classmethod
    def failed(cls, field_name: str, kind: ErrorKind, error: str) -> "FieldOutcome":
        return cls(field_name=field_name, error_kind=kind, error=error)


@dataclass
class EnrichmentResult:
    """Outcome of enriching one record.

    Attributes:
        entity_id: Record identifier
        template_id: Template used
        status: Complete, Partial or Failed
        fields: Per-output-field outcomes, in template order
        confidence: Percentage of output fields that succeeded
        from_cache: Whether the values came from the result cache
        usage: Tokens consumed by AI calls for this record
        cost_usd: Cost of those calls
        completed_at: ISO-8601 UTC completion timestamp
        notes: Human-readable notes
        error_kind: Record-level failure kind (e.g. missing required field)
        error: Record-level failure message
    """
    entity_id: str
    template_id: str
    status: EnrichmentStatus
    fields: List[FieldOutcome] = field(default_factory=list)
    confidence: int = 0
    from_cache: bool = False
    usage: TokenUsage = field(default_factory=TokenUsage)
    cost_usd: float = 0.0
    completed_at: str = ""
    notes: str = ""
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None

    @property
    def values(self) -> Dict[str, str]:
        """Values of the fields that succeeded."""
        return {o.field_name: o.value for o in self.fields if o.succeeded}

    @property
    def failed_fields(self) -> List[str]:
        return [o.field_name for o in self.fields if not o.succeeded]

    @property
    def succeeded_count(self) -> int:
        return sum(1 for o in self.fields if o.succeeded)


def utc_timestamp() -> str:
    """Current time as an ISO-8601 UTC timestamp with second precision."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def compute_confidence(succeeded: int, total: int) -> int:
    """Percentage of succeeded fields, rounded half up."""
    if total <= 0:
        return 0
    return (succeeded * 200 + total) // (total * 2)


def status_for(succeeded: int, total: int) -> EnrichmentStatus:
    if total > 0 and succeeded == total:
        return EnrichmentStatus.COMPLETE
    if succeeded > 0:
        return EnrichmentStatus.PARTIAL
    return EnrichmentStatus.FAILED
