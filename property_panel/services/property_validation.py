"""
Property validation.

Checks a value against a property's ``validation`` rules. This is a
presentation concern: the binder never validates, and a failing rule only
marks the field invalid. Rules that do not apply to the value's type are
skipped.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

from pydantic import EmailStr, HttpUrl, TypeAdapter, ValidationError

from property_panel.models.contracts.schema import PropertyDefinition
from property_panel.models.element import DiagramElement
from property_panel.models.enums import ValidationFormat
from property_panel.models.view import PanelView

logger = logging.getLogger(__name__)

_FORMAT_ADAPTERS: dict[ValidationFormat, TypeAdapter] = {
    ValidationFormat.EMAIL: TypeAdapter(EmailStr),
    ValidationFormat.URL: TypeAdapter(HttpUrl),
}

_FORMAT_PATTERNS: dict[ValidationFormat, re.Pattern[str]] = {
    ValidationFormat.ALPHANUMERIC: re.compile(r"^[A-Za-z0-9_]+$"),
    ValidationFormat.NUMERIC: re.compile(r"^-?\d+(\.\d+)?$"),
}


@dataclass(frozen=True)
class ValidationIssue:
    property: str
    rule: str
    message: str

    def to_dict(self) -> dict:
        return {"property": self.property, "rule": self.rule, "message": self.message}


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, set, dict)):
        return len(value) == 0
    return False


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _matches_format(fmt: ValidationFormat, value: str) -> bool:
    adapter = _FORMAT_ADAPTERS.get(fmt)
    if adapter is not None:
        try:
            adapter.validate_python(value)
        except ValidationError:
            return False
        return True
    return _FORMAT_PATTERNS[fmt].match(value) is not None


def validate_property(
    prop: PropertyDefinition,
    value: Any,
    values: Mapping[str, Any] | None = None,
    element: DiagramElement | None = None,
    siblings: Iterable[Any] | None = None,
) -> list[ValidationIssue]:
    """
    Validate one value.

    Args:
        prop: Property definition carrying the rules
        value: Value to check
        values: Full snapshot, passed to a custom validator
        element: Selected element, passed to a custom validator
        siblings: Values of the same property on other elements (``unique``)

    Returns:
        Issues found, empty when the value is valid
    """
    rules = prop.validation
    label = prop.display_label
    issues: list[ValidationIssue] = []

    def fail(rule: str, default: str) -> None:
        issues.append(ValidationIssue(prop.name, rule, rules.message_for(rule, default)))

    if _is_blank(value):
        if rules.required:
            fail("required", f"{label} is required")
        # Remaining rules only apply to a present value
        return issues

    if rules.unique and siblings is not None and any(other == value for other in siblings):
        fail("unique", f"{label} must be unique")

    if _is_number(value):
        if rules.min is not None and value < rules.min:
            fail("min", f"{label} must be at least {rules.min:g}")
        if rules.max is not None and value > rules.max:
            fail("max", f"{label} must be at most {rules.max:g}")

    if isinstance(value, (str, list, tuple)):
        if rules.min_length is not None and len(value) < rules.min_length:
            fail("minLength", f"{label} must be at least {rules.min_length} characters")
        if rules.max_length is not None and len(value) > rules.max_length:
            fail("maxLength", f"{label} must be at most {rules.max_length} characters")

    if isinstance(value, str):
        if rules.pattern:
            try:
                if re.search(rules.pattern, value) is None:
                    fail("pattern", f"{label} has an invalid format")
            except re.error as e:
                logger.warning(f"Invalid validation pattern for {prop.name}: {e}")
        if rules.format:
            try:
                fmt = ValidationFormat(rules.format)
            except ValueError:
                logger.warning(f"Unknown validation format '{rules.format}' for {prop.name}")
            else:
                if not _matches_format(fmt, value):
                    fail("format", f"{label} must be a valid {rules.format}")

    if rules.custom_validator is not None:
        try:
            outcome = rules.custom_validator(value, dict(values or {}), element)
        except Exception as e:
            logger.warning(f"Custom validator for {prop.name} failed: {e}")
            outcome = f"{label} could not be validated"
        # True/None pass, False fails with the default message, a string is the message
        if outcome is False:
            fail("custom", f"{label} is invalid")
        elif isinstance(outcome, str) and outcome:
            issues.append(ValidationIssue(prop.name, "custom", outcome))

    return issues


def validate_snapshot(
    panel: PanelView,
    values: Mapping[str, Any],
    element: DiagramElement | None = None,
) -> list[ValidationIssue]:
    """Validate every visible property of an organized panel."""
    issues: list[ValidationIssue] = []
    seen: set[str] = set()
    for view in panel.iter_properties():
        if view.name in seen:
            continue
        seen.add(view.name)
        issues.extend(validate_property(view.definition, values.get(view.name), values, element))
    return issues
