"""
Enrichment Settings

Tunables for the orchestrator, cache and batch loop, read from the
``enrichment`` section of the YAML config file. Precedence is the same as
for the LLM settings:
1. Environment variables (``SHEET_ENRICHER_*``)
2. Config file values
3. Defaults

Example config:

    enrichment:
      provider: auto
      max_retries: 3
      calls_per_minute: 50
      cache_ttl_seconds: 604800
      columns:
        status: Enrichment Status
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Optional

from enricher.enrichment.records import SystemColumns
from enricher.llm.config import load_config_section, resolve_value


ENV_PREFIX = "SHEET_ENRICHER_"


@dataclass
class EnrichmentSettings:
    """Settings for one enrichment run.

    Attributes:
        provider: Provider id, alias or "auto"
        max_retries: Maximum attempts per AI call, first attempt included
        base_delay: Base delay in seconds for exponential backoff
        max_delay: Upper bound for a single retry wait
        field_delay_seconds: Pause between successive per-field calls
        calls_per_minute: Minimum spacing between AI calls (0 disables)
        batch_size: Records per batch before a pause
        batch_pause_seconds: Pause after every ``batch_size`` records
        field_max_tokens: Token budget cap for per-field answers
        cache_enabled: Whether results are cached
        cache_ttl_seconds: Lifetime of cached results
        cache_dir: Directory for cache files
        user_templates_path: YAML file with user-created templates
        status_column / timestamp_column / confidence_column / notes_column:
            Names of the system columns in the record store
    """
    provider: str = "auto"
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    field_delay_seconds: float = 0.5
    calls_per_minute: float = 50.0
    batch_size: int = 10
    batch_pause_seconds: float = 2.0
    field_max_tokens: int = 150
    cache_enabled: bool = True
    cache_ttl_seconds: int = 7 * 24 * 3600
    cache_dir: str = ".sheet-enricher/cache"
    user_templates_path: str = ".sheet-enricher/templates.yaml"
    status_column: str = "Enrichment Status"
    timestamp_column: str = "Last Enriched"
    confidence_column: str = "Confidence"
    notes_column: str = "Enrichment Notes"

    def __post_init__(self):
        if int(self.max_retries) < 1:
            raise ValueError("max_retries must be at least 1")
        if int(self.batch_size) < 1:
            raise ValueError("batch_size must be at least 1")
        if float(self.calls_per_minute) < 0:
            raise ValueError("calls_per_minute must not be negative")

    @property
    def columns(self) -> SystemColumns:
        return SystemColumns(
            status=self.status_column,
            last_enriched=self.timestamp_column,
            confidence=self.confidence_column,
            notes=self.notes_column,
        )

    @classmethod
    def load_from_yaml(cls, config_path: Optional[str] = None) -> "EnrichmentSettings":
        """Load settings from the ``enrichment`` section of the config file."""
        return cls.load_from_dict(load_config_section("enrichment", config_path))

    @classmethod
    def load_from_dict(cls, section: Dict[str, Any]) -> "EnrichmentSettings":
        """Build settings from a config section, applying env overrides.

        A nested ``columns`` mapping (status, timestamp, confidence, notes)
        is accepted as an alternative to the flat ``*_column`` keys.
        """
        section = dict(section or {})
        for name, value in (section.pop("columns", None) or {}).items():
            section.setdefault(f"{name}_column", value)

        values = {}
        for f in fields(cls):
            default = f.default
            raw = resolve_value(section.get(f.name), ENV_PREFIX + f.name.upper(), default)
            values[f.name] = _coerce(raw, type(default))
        return cls(**values)

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(value: Any, target: type) -> Any:
    """Convert env strings to the type of the field default."""
    if target is bool:
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)
    if target is int:
        return int(float(value))
    if target is float:
        return float(value)
    return str(value)
