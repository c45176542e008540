"""
Enrichment Prompt System

Handlebars-style prompt templates rendered through Jinja2.
"""

from enricher.enrichment.prompts.renderer import PromptRenderer

__all__ = [
    "PromptRenderer",
]
