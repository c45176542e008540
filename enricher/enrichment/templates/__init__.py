"""
Enrichment Templates

Template schemas (single-prompt and per-field variants) and the registry
holding built-in and user-created templates.
"""

from enricher.enrichment.templates.models import (
    EntityType,
    ModelSettings,
    PerFieldTemplate,
    SinglePromptTemplate,
    Template,
    parse_template,
)
from enricher.enrichment.templates.registry import (
    TemplateRegistry,
    USER_TEMPLATE_PREFIX,
)

__all__ = [
    "EntityType",
    "ModelSettings",
    "PerFieldTemplate",
    "SinglePromptTemplate",
    "Template",
    "parse_template",
    "TemplateRegistry",
    "USER_TEMPLATE_PREFIX",
]
