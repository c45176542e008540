"""
Template Registry

Holds the named enrichment templates. Built-in templates ship as YAML files
inside the package and have fixed ids; user-created templates get ids with
the ``custom_`` prefix, are persisted to an optional YAML file, and are the
only ones that may be edited or deleted.
"""

import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError

from enricher.enrichment.errors import (
    TemplateError,
    TemplateNotFoundError,
    TemplateReadOnlyError,
    TemplateValidationError,
)
from enricher.enrichment.prompts.renderer import PromptRenderer
from enricher.enrichment.templates.models import (
    EntityType,
    PerFieldTemplate,
    SinglePromptTemplate,
    parse_template,
)


logger = logging.getLogger(__name__)

AnyTemplate = Union[SinglePromptTemplate, PerFieldTemplate]

USER_TEMPLATE_PREFIX = "custom_"

BUILTIN_TEMPLATES_DIR = Path(__file__).parent / "builtin"


class TemplateRegistry:
    """Lookup, validation and CRUD for enrichment templates.

    Example:
        >>> registry = TemplateRegistry(user_templates_path="templates.yaml")
        >>> template = registry.get_by_id("company_overview")
        >>> registry.get_by_type("Contact")
    """

    def __init__(
        self,
        builtin_dir: Optional[Path] = None,
        user_templates_path: Optional[Union[str, Path]] = None,
        renderer: Optional[PromptRenderer] = None
    ):
        """Initialize the registry.

        Args:
            builtin_dir: Directory with built-in template YAML files
            user_templates_path: YAML file holding user templates; created on
                first save. None keeps user templates in memory only.
            renderer: Renderer used to check conditional blocks
        """
        self.builtin_dir = Path(builtin_dir) if builtin_dir else BUILTIN_TEMPLATES_DIR
        self.user_templates_path = Path(user_templates_path) if user_templates_path else None
        self.renderer = renderer or PromptRenderer()

        self._builtin: Dict[str, AnyTemplate] = self._load_builtin()
        self._user: Dict[str, AnyTemplate] = self._load_user()

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_all(self) -> List[AnyTemplate]:
        """All templates, built-ins first."""
        return list(self._builtin.values()) + list(self._user.values())

    def get_by_id(self, template_id: str) -> AnyTemplate:
        """Return the template with the given id.

        Raises:
            TemplateNotFoundError: If no such template exists
        """
        template = self._builtin.get(template_id) or self._user.get(template_id)
        if template is None:
            raise TemplateNotFoundError(f"Template not found: {template_id}")
        return template

    def get_by_type(self, entity_type: Union[str, EntityType]) -> List[AnyTemplate]:
        """Templates for one entity type (Company, Contact or Custom)."""
        wanted = EntityType(entity_type)
        return [t for t in self.get_all() if t.entity_type == wanted]

    def is_user_template(self, template_id: str) -> bool:
        return template_id.startswith(USER_TEMPLATE_PREFIX)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self, template: Union[AnyTemplate, Dict[str, Any]]) -> List[str]:
        """Check a template (or raw template data) for problems.

        Returns:
            Human-readable problems; an empty list means the template is valid
        """
        if isinstance(template, dict):
            try:
                template = parse_template(template)
            except ValidationError as e:
                return [_format_validation_error(err) for err in e.errors()]

        errors = []

        if not template.name.strip():
            errors.append("Template name is required")
        if template.entity_type not in tuple(EntityType):
            errors.append(
                "Entity type must be one of: "
                + ", ".join(t.value for t in EntityType)
            )
        if not template.prompt_text().strip():
            errors.append("Prompt text is required")
        if not [f for f in template.required_fields if f.strip()]:
            errors.append("At least one required field is needed")
        if not [f for f in template.output_fields if f.strip()]:
            errors.append("At least one output field is needed")
        if template.model_settings is None:
            errors.append("Model settings are required")

        if isinstance(template, PerFieldTemplate):
            for field_name in template.output_fields:
                if template.prompt_for(field_name) is None:
                    errors.append(
                        f"Output field '{field_name}' has no field prompt "
                        "and there is no fallback prompt text"
                    )
            for field_name in template.field_prompts:
                if field_name not in template.output_fields:
                    errors.append(
                        f"Field prompt '{field_name}' is not an output field"
                    )
            prompts = [template.prompt_template, *template.field_prompts.values()]
        else:
            prompts = [template.prompt_template]

        for prompt in prompts:
            errors.extend(self.renderer.find_unbalanced_blocks(prompt))

        return errors

    # ------------------------------------------------------------------
    # User templates
    # ------------------------------------------------------------------

    def create(self, data: Union[AnyTemplate, Dict[str, Any]]) -> AnyTemplate:
        """Validate and store a new user template.

        A fresh ``custom_`` id is assigned regardless of any id in ``data``.

        Raises:
            TemplateValidationError: If the template is invalid
        """
        payload = _as_dict(data)
        payload["id"] = f"{USER_TEMPLATE_PREFIX}{uuid.uuid4().hex[:8]}"
        template = self._validated(payload)

        self._user[template.id] = template
        self._save_user()
        logger.info(f"Created template {template.id} ({template.name})")
        return template

    def update(self, template_id: str, data: Union[AnyTemplate, Dict[str, Any]]) -> AnyTemplate:
        """Replace a user template.

        Raises:
            TemplateReadOnlyError: If the id belongs to a built-in template
            TemplateNotFoundError: If no user template has this id
            TemplateValidationError: If the new data is invalid
        """
        self._check_editable(template_id)
        payload = _as_dict(data)
        payload["id"] = template_id
        template = self._validated(payload)

        self._user[template_id] = template
        self._save_user()
        logger.info(f"Updated template {template_id}")
        return template

    def delete(self, template_id: str) -> None:
        """Delete a user template.

        Raises:
            TemplateReadOnlyError: If the id belongs to a built-in template
            TemplateNotFoundError: If no user template has this id
        """
        self._check_editable(template_id)
        del self._user[template_id]
        self._save_user()
        logger.info(f"Deleted template {template_id}")

    def _check_editable(self, template_id: str) -> None:
        if template_id in self._builtin or not self.is_user_template(template_id):
            raise TemplateReadOnlyError(
                f"Template {template_id} is built-in and cannot be modified"
            )
        if template_id not in self._user:
            raise TemplateNotFoundError(f"Template not found: {template_id}")

    def _validated(self, payload: Dict[str, Any]) -> AnyTemplate:
        errors = self.validate(payload)
        if errors:
            raise TemplateValidationError("Invalid template", errors)
        return parse_template(payload)

    # ------------------------------------------------------------------
    # Loading and saving
    # ------------------------------------------------------------------

    def _load_builtin(self) -> Dict[str, AnyTemplate]:
        templates: Dict[str, AnyTemplate] = {}
        if not self.builtin_dir.exists():
            raise TemplateError(
                f"Built-in templates directory does not exist: {self.builtin_dir}"
            )

        for path in sorted(self.builtin_dir.glob("*.yaml")):
            data = _load_yaml(path)
            errors = self.validate(data)
            if errors:
                raise TemplateValidationError(f"Invalid built-in template {path.name}", errors)
            template = parse_template(data)
            templates[template.id] = template

        logger.debug(f"Loaded {len(templates)} built-in templates from {self.builtin_dir}")
        return templates

    def _load_user(self) -> Dict[str, AnyTemplate]:
        if self.user_templates_path is None or not self.user_templates_path.exists():
            return {}

        data = _load_yaml(self.user_templates_path)
        templates: Dict[str, AnyTemplate] = {}
        for entry in data.get("templates", []) or []:
            try:
                template = parse_template(entry)
            except ValidationError as e:
                logger.warning(
                    f"Skipping unreadable user template {entry.get('id', '?')}: {e}"
                )
                continue
            templates[template.id] = template
        return templates

    def _save_user(self) -> None:
        if self.user_templates_path is None:
            return

        self.user_templates_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "templates": [t.model_dump(mode="json") for t in self._user.values()]
        }
        with open(self.user_templates_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(payload, f, sort_keys=False, allow_unicode=True)


def _as_dict(data: Union[AnyTemplate, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, dict):
        return dict(data)
    return data.model_dump(mode="json")


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise TemplateError(f"Invalid YAML in {path}: {e}")
    if not isinstance(data, dict):
        raise TemplateError(
            f"YAML file must contain a dictionary, got {type(data).__name__}"
        )
    return data


def _format_validation_error(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()))
    message = error.get("msg", "invalid value")
    return f"{location}: {message}" if location else message
