"""
Schema Loader

Parses panel schemas written as YAML (or JSON, which is valid YAML) and runs
the load-time checks. Loading is the one place where configuration problems
fail loudly with SchemaConfigurationError; once a schema is loaded, every
problem met while evaluating it degrades to a safe default instead.
"""

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from property_panel.core.exceptions import SchemaConfigurationError
from property_panel.core.registry import HandlerRegistry, Registry
from property_panel.models.contracts.schema import PropertyPanelSchema

logger = logging.getLogger(__name__)


def _default_handlers() -> HandlerRegistry:
    from property_panel.schemas.handlers import handlers

    return handlers


def _default_renderers() -> Registry:
    from property_panel.schemas.handlers import renderers

    return renderers


def find_dangling_dependencies(schema: PropertyPanelSchema) -> dict[str, list[str]]:
    """
    Fields named in ``dependsOn``, option ``dependencies`` or listener ``watch``
    lists that are not properties of the schema, keyed by the property
    declaring them.
    """
    return schema.dangling_dependencies()


def validate_renderers(schema: PropertyPanelSchema, renderers: Registry) -> None:
    """
    Check that every ``customComponent`` names a registered renderer.

    Raises:
        SchemaConfigurationError: On the first unregistered renderer name
    """
    for prop in schema.iter_properties():
        if prop.custom_component and prop.custom_component not in renderers:
            raise SchemaConfigurationError(
                f"Property '{prop.name}' uses unregistered renderer '{prop.custom_component}' "
                f"(registered: {renderers.names()})"
            )


def build_schema(
    data: dict[str, Any],
    handlers: HandlerRegistry | None = None,
    renderers: Registry | None = None,
) -> PropertyPanelSchema:
    """
    Validate schema data into a PropertyPanelSchema and run load-time checks.

    Args:
        data: Parsed schema document
        handlers: Registry resolving handler names (defaults to the bundled handlers)
        renderers: Registry of custom renderer names (defaults to the bundled renderers)

    Raises:
        SchemaConfigurationError: If the document is invalid
    """
    handlers = handlers if handlers is not None else _default_handlers()
    renderers = renderers if renderers is not None else _default_renderers()

    try:
        schema = PropertyPanelSchema.model_validate(data, context={"handlers": handlers})
    except ValidationError as e:
        raise SchemaConfigurationError(f"Invalid panel schema: {e}") from e

    validate_renderers(schema, renderers)

    for prop_name, missing in find_dangling_dependencies(schema).items():
        logger.warning(f"Property '{prop_name}' depends on unknown fields {missing}; they will not be evaluated")

    logger.info(
        f"Loaded panel schema: {len(schema.properties)} properties, "
        f"{len(schema.groups)} groups, {len(schema.tabs)} tabs"
    )
    return schema


def parse_schema(
    text: str,
    handlers: HandlerRegistry | None = None,
    renderers: Registry | None = None,
) -> PropertyPanelSchema:
    """Parse a YAML/JSON schema document."""
    if not text or not text.strip():
        raise SchemaConfigurationError("Panel schema document is empty")

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SchemaConfigurationError(f"Malformed panel schema: {e}") from e

    if not isinstance(data, dict):
        raise SchemaConfigurationError("Panel schema must be a mapping at the top level")

    return build_schema(data, handlers=handlers, renderers=renderers)


def load_schema(
    path: str | Path,
    handlers: HandlerRegistry | None = None,
    renderers: Registry | None = None,
) -> PropertyPanelSchema:
    """
    Load a schema file.

    Raises:
        SchemaConfigurationError: If the file is missing or invalid
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SchemaConfigurationError(f"Cannot read panel schema {path}: {e}") from e

    logger.info(f"Loading panel schema from {path}")
    return parse_schema(text, handlers=handlers, renderers=renderers)

