"""
Unit tests for the template registry and template models.
"""

import pytest
import yaml

from enricher.enrichment.errors import (
    TemplateNotFoundError,
    TemplateReadOnlyError,
    TemplateValidationError,
)
from enricher.enrichment.templates import (
    EntityType,
    PerFieldTemplate,
    SinglePromptTemplate,
    TemplateRegistry,
    parse_template,
)


def company_template(**overrides):
    data = {
        "name": "Funding",
        "entity_type": "Company",
        "mode": "single",
        "required_fields": ["company_name"],
        "output_fields": ["funding_stage"],
        "prompt_template": 'Funding stage of {{company_name}} as JSON {"funding_stage": ...}',
        "model_settings": {"max_tokens": 100, "temperature": 0.0},
    }
    data.update(overrides)
    return data


class TestLookup:
    def test_builtins_loaded(self, registry):
        ids = [t.id for t in registry.get_all()]
        assert "company_overview" in ids
        assert "company_classification" in ids
        assert "contact_profile" in ids
        assert "generic_research" in ids

    def test_get_by_id(self, registry):
        template = registry.get_by_id("company_overview")
        assert isinstance(template, SinglePromptTemplate)
        assert template.entity_type == EntityType.COMPANY

    def test_get_by_id_unknown(self, registry):
        with pytest.raises(TemplateNotFoundError):
            registry.get_by_id("nope")

    def test_get_by_type(self, registry):
        contacts = registry.get_by_type("Contact")
        assert contacts
        assert all(t.entity_type == EntityType.CONTACT for t in contacts)

    def test_builtins_are_valid(self, registry):
        for template in registry.get_all():
            assert registry.validate(template) == []

    def test_per_field_fallback_prompt(self, registry):
        template = registry.get_by_id("generic_research")
        assert isinstance(template, PerFieldTemplate)
        assert "{{field_name}}" in template.prompt_for("summary")


class TestValidation:
    def test_valid_template(self, registry):
        assert registry.validate(company_template()) == []

    def test_missing_name(self, registry):
        errors = registry.validate(company_template(name=""))
        assert "Template name is required" in errors

    def test_unknown_entity_type(self, registry):
        errors = registry.validate(company_template(entity_type="Planet"))
        assert errors
        assert any("entity_type" in e for e in errors)

    def test_empty_prompt(self, registry):
        assert "Prompt text is required" in registry.validate(company_template(prompt_template="  "))

    def test_no_required_fields(self, registry):
        errors = registry.validate(company_template(required_fields=[]))
        assert "At least one required field is needed" in errors

    def test_no_output_fields(self, registry):
        errors = registry.validate(company_template(output_fields=[]))
        assert "At least one output field is needed" in errors

    def test_missing_model_settings(self, registry):
        errors = registry.validate(company_template(model_settings=None))
        assert "Model settings are required" in errors

    def test_unbalanced_block(self, registry):
        errors = registry.validate(company_template(prompt_template="About {{#if x}} {{company_name}}"))
        assert any("no matching" in e for e in errors)

    def test_per_field_output_without_prompt(self, registry):
        data = company_template(
            mode="per_field",
            prompt_template="",
            output_fields=["a", "b"],
            field_prompts={"a": "Tell me a about {{company_name}}"},
        )
        errors = registry.validate(data)
        assert any("'b'" in e for e in errors)

    def test_per_field_prompt_for_unknown_field(self, registry):
        data = company_template(
            mode="per_field",
            output_fields=["a"],
            field_prompts={"a": "A?", "zzz": "Z?"},
        )
        assert any("'zzz'" in e for e in registry.validate(data))

    def test_unknown_mode(self, registry):
        assert registry.validate(company_template(mode="batch"))

    def test_parse_template_discriminates_on_mode(self):
        template = parse_template(company_template(mode="per_field", field_prompts={"funding_stage": "?"}))
        assert isinstance(template, PerFieldTemplate)


class TestUserTemplates:
    def test_create_assigns_custom_id(self, registry):
        template = registry.create(company_template(id="company_overview"))
        assert template.id.startswith("custom_")
        assert registry.get_by_id(template.id).name == "Funding"
        assert registry.is_user_template(template.id)

    def test_create_invalid_raises(self, registry):
        with pytest.raises(TemplateValidationError) as exc_info:
            registry.create(company_template(output_fields=[]))
        assert "At least one output field is needed" in exc_info.value.errors

    def test_user_templates_persist(self, registry, settings):
        created = registry.create(company_template())

        reloaded = TemplateRegistry(user_templates_path=settings.user_templates_path)
        assert reloaded.get_by_id(created.id).output_fields == ["funding_stage"]

        with open(settings.user_templates_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
        assert data["templates"][0]["id"] == created.id

    def test_update(self, registry):
        created = registry.create(company_template())
        updated = registry.update(created.id, company_template(name="Funding v2"))
        assert updated.id == created.id
        assert registry.get_by_id(created.id).name == "Funding v2"

    def test_delete(self, registry):
        created = registry.create(company_template())
        registry.delete(created.id)
        with pytest.raises(TemplateNotFoundError):
            registry.get_by_id(created.id)

    def test_builtin_is_read_only(self, registry):
        with pytest.raises(TemplateReadOnlyError):
            registry.delete("company_overview")
        with pytest.raises(TemplateReadOnlyError):
            registry.update("company_overview", company_template())

    def test_delete_unknown_user_template(self, registry):
        with pytest.raises(TemplateNotFoundError):
            registry.delete("custom_deadbeef")

    def test_unreadable_user_entry_is_skipped(self, settings):
        with open(settings.user_templates_path, "w", encoding="utf-8") as f:
            yaml.safe_dump({"templates": [{"id": "custom_bad", "mode": "nope"}]}, f)
        registry = TemplateRegistry(user_templates_path=settings.user_templates_path)
        with pytest.raises(TemplateNotFoundError):
            registry.get_by_id("custom_bad")
