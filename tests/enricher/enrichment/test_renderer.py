"""
Unit tests for the prompt renderer.

Covers variable substitution, conditional blocks, whitespace normalization,
and malformed blocks.
"""

import pytest

from enricher.enrichment.prompts.renderer import PromptRenderer, is_present


GREETING = "Hello {{name}}{{#if title}}, {{title}}{{/if}}!"


@pytest.fixture
def renderer():
    return PromptRenderer()


class TestVariables:
    def test_conditional_included_when_present(self, renderer):
        assert renderer.render(GREETING, {"name": "Ada", "title": "Engineer"}) == "Hello Ada, Engineer!"

    def test_conditional_dropped_when_missing(self, renderer):
        assert renderer.render(GREETING, {"name": "Ada"}) == "Hello Ada!"

    def test_conditional_dropped_when_blank(self, renderer):
        assert renderer.render(GREETING, {"name": "Ada", "title": "   "}) == "Hello Ada!"

    @pytest.mark.parametrize("value", [False, 0, 0.0, "", "  ", None])
    def test_conditional_dropped_for_falsy_values(self, renderer, value):
        assert renderer.render("A{{#if flag}} B{{/if}}", {"flag": value}) == "A"

    @pytest.mark.parametrize("value", [True, 1, "0", "no", 2.5])
    def test_conditional_kept_for_truthy_values(self, renderer, value):
        assert renderer.render("A{{#if flag}} B{{/if}}", {"flag": value}) == "A B"

    def test_falsy_values_still_substitute(self, renderer):
        assert renderer.render("{{n}} {{flag}}", {"n": 0, "flag": False}) == "0 False"

    def test_missing_variable_renders_empty(self, renderer):
        assert renderer.render("Company: {{company}}.", {}) == "Company: ."

    def test_none_renders_empty(self, renderer):
        assert renderer.render("[{{x}}]", {"x": None}) == "[]"

    def test_non_string_values(self, renderer):
        assert renderer.render("{{count}} / {{ratio}}", {"count": 3, "ratio": 0.5}) == "3 / 0.5"

    def test_whitespace_inside_braces(self, renderer):
        assert renderer.render("Hi {{ name }}", {"name": "Bo"}) == "Hi Bo"

    def test_names_with_spaces(self, renderer):
        assert renderer.render("{{Company Name}}", {"Company Name": "Acme"}) == "Acme"

    def test_whitespace_normalized(self, renderer):
        template = "  Line one\n\n   line   two\t{{x}}  "
        assert renderer.render(template, {"x": "end"}) == "Line one line two end"


class TestLiteralText:
    def test_jinja_syntax_is_literal(self, renderer):
        template = "Use {% raw %} and {# not a comment #} literally"
        assert renderer.render(template, {}) == template

    def test_private_delimiters_are_literal(self, renderer):
        template = "a <<= x =>> b <<% endraw %>> c {{v}}"
        assert renderer.render(template, {"v": "ok"}) == "a <<= x =>> b <<% endraw %>> c ok"

    def test_values_are_not_interpreted(self, renderer):
        result = renderer.render("{{a}}", {"a": "{{b}} {% if %}"})
        assert result == "{{b}} {% if %}"


class TestMalformedBlocks:
    def test_unclosed_if_passes_through(self, renderer):
        assert renderer.render("A {{#if x}} B", {"x": "1"}) == "A {{#if x}} B"

    def test_stray_close_passes_through(self, renderer):
        assert renderer.render("A {{/if}} {{y}}", {"y": "B"}) == "A {{/if}} B"

    def test_find_unbalanced_blocks(self, renderer):
        assert renderer.find_unbalanced_blocks(GREETING) == []
        problems = renderer.find_unbalanced_blocks("{{#if a}} open")
        assert len(problems) == 1
        assert "{{/if}}" in problems[0]
        assert renderer.find_unbalanced_blocks("close {{/if}}")


class TestHelpers:
    def test_compiled_templates_are_reused(self, renderer):
        renderer.render(GREETING, {"name": "A"})
        renderer.render(GREETING, {"name": "B"})
        assert len(renderer._compiled) == 1

    @pytest.mark.parametrize("value, expected", [
        (None, False),
        (False, False),
        (0, False),
        ("", False),
        (" \t", False),
        (float("nan"), False),
        ("0", True),
        (-1, True),
        ("Acme", True),
    ])
    def test_is_present(self, value, expected):
        assert is_present(value) is expected
