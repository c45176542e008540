"""
Enrichment Error Hierarchy

Defines the custom exceptions used in the enrichment layer. Record- and
field-level failures are reported through ``EnrichmentResult`` values; the
exceptions below cover template handling, extraction internals, storage,
and the configuration error that aborts a batch.
"""

from typing import List, Optional

from enricher.llm.errors import ConfigurationError


class EnrichmentError(Exception):
    """Base exception for all enrichment errors."""
    pass


class PromptRenderError(EnrichmentError):
    """Error rendering prompt template.

    Raised when the translated Jinja2 template fails to compile or render.
    """
    pass


class ParseError(EnrichmentError):
    """The model's answer did not contain the expected structured data.

    Attributes:
        response_text: The raw answer text
    """

    def __init__(self, message: str, response_text: Optional[str] = None):
        super().__init__(message)
        self.response_text = response_text


class TemplateError(EnrichmentError):
    """Base class for template registry errors."""
    pass


class TemplateNotFoundError(TemplateError):
    """No template with the requested id exists."""
    pass


class TemplateReadOnlyError(TemplateError):
    """Attempt to edit or delete a built-in template."""
    pass


class TemplateValidationError(TemplateError):
    """Template failed validation.

    Attributes:
        errors: Human-readable validation problems
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = errors or []
        if self.errors:
            message = f"{message}: " + "; ".join(self.errors)
        super().__init__(message)


class CacheError(EnrichmentError):
    """Error reading or writing the result cache."""
    pass


class RecordStoreError(EnrichmentError):
    """Error reading or writing the record store."""
    pass


__all__ = [
    "EnrichmentError",
    "PromptRenderError",
    "ParseError",
    "TemplateError",
    "TemplateNotFoundError",
    "TemplateReadOnlyError",
    "TemplateValidationError",
    "CacheError",
    "RecordStoreError",
    "ConfigurationError",
]
