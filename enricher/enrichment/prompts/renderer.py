"""
Prompt Renderer

Renders enrichment prompt templates with record data using Jinja2.

Templates use a small handlebars-style syntax:

    {{name}}                      replaced by the string value of ``name``
                                  (empty string when missing)
    {{#if name}}...{{/if}}        body kept only when ``name`` is truthy and
                                  not blank as a string; blocks do not nest

The template text is translated into a Jinja2 template that uses private
delimiters, so anything in the prompt that is not one of the constructs
above (including Jinja's own ``{{ }}``/``{% %}`` syntax) is kept literally.
An ``{{#if}}`` without a matching ``{{/if}}`` is passed through as plain
text; ``find_unbalanced_blocks`` reports such blocks so callers can reject
the template up front.

The rendered prompt has its whitespace normalized: runs of whitespace become
a single space and both ends are trimmed.
"""

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple

from jinja2 import Environment, TemplateError

from enricher.enrichment.errors import PromptRenderError


_NAME = r"[A-Za-z_][\w.\- ]*?"

VARIABLE_PATTERN = re.compile(r"\{\{\s*(" + _NAME + r")\s*\}\}")

IF_BLOCK_PATTERN = re.compile(
    r"\{\{\s*#if\s+(" + _NAME + r")\s*\}\}"
    r"((?:(?!\{\{\s*#if\b).)*?)"
    r"\{\{\s*/if\s*\}\}",
    re.DOTALL
)

IF_OPEN_PATTERN = re.compile(r"\{\{\s*#if\b[^}]*\}\}")
IF_CLOSE_PATTERN = re.compile(r"\{\{\s*/if\s*\}\}")

_WHITESPACE = re.compile(r"\s+")

# Delimiters for the translated Jinja2 source; literal prompt text containing
# them is passed in as render data.
_BLOCK_START, _BLOCK_END = "<<%", "%>>"
_VAR_START, _VAR_END = "<<=", "=>>"
_COMMENT_START, _COMMENT_END = "<<#", "#>>"
_DELIMITERS = (_BLOCK_START, _VAR_START, _COMMENT_START)


class PromptRenderer:
    """Renders prompt templates with record data.

    Missing placeholders render as empty strings.
    """

    def __init__(self):
        self.env = Environment(
            block_start_string=_BLOCK_START,
            block_end_string=_BLOCK_END,
            variable_start_string=_VAR_START,
            variable_end_string=_VAR_END,
            comment_start_string=_COMMENT_START,
            comment_end_string=_COMMENT_END,
            autoescape=False,
            keep_trailing_newline=True,
        )
        self._compiled: Dict[str, Any] = {}

    def render(self, template: str, data: Optional[Mapping[str, Any]] = None) -> str:
        """Render a template string with the given data.

        Args:
            template: Prompt template text
            data: Flat mapping of variable name to value

        Returns:
            Rendered prompt with normalized whitespace

        Raises:
            PromptRenderError: If the template cannot be rendered
        """
        data = data or {}
        fields = {str(key): "" if value is None else str(value) for key, value in data.items()}
        present = {str(key): is_present(value) for key, value in data.items()}

        try:
            compiled, literals = self._compile(template)
            rendered = compiled.render(fields=fields, present=present, literals=literals)
        except TemplateError as e:
            raise PromptRenderError(f"Error rendering prompt template: {e}")

        return normalize_whitespace(rendered)

    def find_unbalanced_blocks(self, template: str) -> List[str]:
        """Describe conditional blocks that have no matching partner.

        Returns:
            Human-readable problems; empty when every block is balanced
        """
        remainder = IF_BLOCK_PATTERN.sub(lambda m: m.group(2), template)
        problems = []
        for match in IF_OPEN_PATTERN.finditer(remainder):
            problems.append(f"'{match.group(0)}' has no matching '{{{{/if}}}}'")
        for match in IF_CLOSE_PATTERN.finditer(remainder):
            problems.append(f"'{match.group(0)}' has no matching '{{{{#if}}}}'")
        return problems

    def _compile(self, template: str):
        cached = self._compiled.get(template)
        if cached is None:
            source, literals = translate_template(template)
            cached = (self.env.from_string(source), literals)
            self._compiled[template] = cached
        return cached


def translate_template(template: str) -> Tuple[str, List[str]]:
    """Translate handlebars-style prompt text into Jinja2 source.

    Returns:
        (Jinja2 source, literal text segments referenced as ``literals[i]``)
    """
    literals: List[str] = []
    parts = []
    position = 0
    for match in IF_BLOCK_PATTERN.finditer(template):
        parts.append(_translate_text(template[position:match.start()], literals))
        key = json.dumps(match.group(1).strip())
        parts.append(f"{_BLOCK_START} if present.get({key}) {_BLOCK_END}")
        parts.append(_translate_text(match.group(2), literals))
        parts.append(f"{_BLOCK_START} endif {_BLOCK_END}")
        position = match.end()
    parts.append(_translate_text(template[position:], literals))
    return "".join(parts), literals


def _translate_text(text: str, literals: List[str]) -> str:
    parts = []
    position = 0
    for match in VARIABLE_PATTERN.finditer(text):
        parts.append(_literal(text[position:match.start()], literals))
        key = json.dumps(match.group(1).strip())
        parts.append(f"{_VAR_START} fields[{key}] {_VAR_END}")
        position = match.end()
    parts.append(_literal(text[position:], literals))
    return "".join(parts)


def _literal(text: str, literals: List[str]) -> str:
    # Text that looks like our own delimiters is emitted from data, never parsed
    if any(delimiter in text for delimiter in _DELIMITERS):
        literals.append(text)
        return f"{_VAR_START} literals[{len(literals) - 1}] {_VAR_END}"
    return text


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim the ends."""
    return _WHITESPACE.sub(" ", text).strip()



def is_present(value: Any) -> bool:
    """Whether a value switches an ``{{#if}}`` block on.

    Falsy values (None, False, 0, empty containers) and NaN are off; anything
    else is on unless its string form is blank.
    """
    if not value:
        return False
    if isinstance(value, float) and value != value:
        return False
    return bool(str(value).strip())
