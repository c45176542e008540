"""
Enrichment Template Schemas

Pydantic models describing what to ask the model and which fields to fill.
A template is one of two explicitly tagged variants:

- ``SinglePromptTemplate`` (``mode: single``): one prompt covering every
  output field; the answer is expected to contain a JSON object.
- ``PerFieldTemplate`` (``mode: per_field``): one prompt per output field;
  each answer is the bare field value.
"""

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class EntityType(str, Enum):
    """Kind of record a template enriches."""
    COMPANY = "Company"
    CONTACT = "Contact"
    CUSTOM = "Custom"


class ModelSettings(BaseModel):
    """Model parameters sent with every call made for a template.

    Attributes:
        model: Model identifier (None uses the provider default)
        max_tokens: Answer token budget
        temperature: Sampling temperature
    """
    model: Optional[str] = Field(None, description="Model id; provider default when empty")
    max_tokens: int = Field(1024, gt=0, description="Answer token budget")
    temperature: float = Field(0.2, ge=0.0, le=2.0, description="Sampling temperature")


class TemplateBase(BaseModel):
    """Fields shared by both template variants."""

    model_config = ConfigDict(protected_namespaces=(), use_enum_values=False)

    id: str = Field("", description="Template id; user templates carry the custom_ prefix")
    name: str = Field("", description="Display name")
    entity_type: EntityType = Field(EntityType.COMPANY, description="Company, Contact or Custom")
    description: str = Field("", description="What the template produces")
    required_fields: List[str] = Field(default_factory=list)
    output_fields: List[str] = Field(default_factory=list)
    prompt_template: str = Field("", description="Prompt text (single mode, or per-field fallback)")
    model_settings: Optional[ModelSettings] = None

    def settings(self) -> ModelSettings:
        return self.model_settings or ModelSettings()


class SinglePromptTemplate(TemplateBase):
    """One prompt answers every output field as a JSON object."""

    mode: Literal["single"] = "single"

    def prompt_text(self) -> str:
        return self.prompt_template


class PerFieldTemplate(TemplateBase):
    """One prompt per output field.

    Output fields missing from ``field_prompts`` fall back to
    ``prompt_template``, rendered with ``field_name`` set to the field.
    """

    mode: Literal["per_field"] = "per_field"
    field_prompts: Dict[str, str] = Field(default_factory=dict)

    def prompt_for(self, field_name: str) -> Optional[str]:
        """Prompt text for one output field, or None if nothing resolves."""
        prompt = self.field_prompts.get(field_name, "")
        if prompt.strip():
            return prompt
        if self.prompt_template.strip():
            return self.prompt_template
        return None

    def prompt_text(self) -> str:
        return "\n".join([self.prompt_template, *self.field_prompts.values()])


Template = Annotated[
    Union[SinglePromptTemplate, PerFieldTemplate],
    Field(discriminator="mode")
]

_template_adapter = TypeAdapter(Template)


def parse_template(data: dict) -> Union[SinglePromptTemplate, PerFieldTemplate]:
    """Build the template variant named by ``data["mode"]``.

    Raises:
        pydantic.ValidationError: If the data does not describe a template
    """
    return _template_adapter.validate_python(data)
