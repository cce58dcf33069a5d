"""
Condition contract models.

A condition is a predicate over (element, values) that decides visibility or
enablement of a schema node. It is a tagged union discriminated on ``type``:

- ``leaf``: compare one looked-up field against a value
- ``compound``: AND/OR over child conditions
- ``function``: opaque predicate supplied by the schema author

Schema files may use the shorthand forms accepted by ``normalize_condition``.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from property_panel.models.contracts.handlers import HandlerRef
from property_panel.models.enums import CompoundMode, ConditionContext, ConditionOperator


class LeafCondition(BaseModel):
    """Single field comparison."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["leaf"] = Field(default="leaf", description="Condition type")
    field: str = Field(..., description="Field name (dot-path allowed) to look up")
    operator: ConditionOperator = Field(default=ConditionOperator.EQUALS)
    value: Any = Field(default=None, description="Right-hand side of the comparison")
    context: ConditionContext = Field(
        default=ConditionContext.VALUES,
        description="Where the field is looked up (value snapshot, business object, parent, root, attrs)",
    )


class CompoundCondition(BaseModel):
    """Boolean composition of child conditions."""

    type: Literal["compound"] = Field(default="compound", description="Condition type")
    mode: CompoundMode = Field(default=CompoundMode.AND)
    conditions: list["ConditionInput"] = Field(default_factory=list)


class FunctionCondition(BaseModel):
    """Escape hatch: an opaque predicate ``evaluate(element, values, model) -> bool``."""

    type: Literal["function"] = Field(default="function", description="Condition type")
    evaluate: HandlerRef
    description: str | None = None


def normalize_condition(value: Any) -> Any:
    """
    Expand the shorthand condition forms into the tagged union.

    - ``None`` / ``"always"`` / ``{}`` -> empty AND (vacuously true)
    - ``"never"`` -> empty OR (vacuously false)
    - ``[c1, c2]`` -> AND over the items (legacy flat ``conditions`` list)
    - ``{"type": "and" | "or", "conditions": [...]}`` -> compound
    - ``{"field": ...}`` without a type -> leaf
    """
    if value is None or value == "always" or value == {}:
        return {"type": "compound", "mode": "and", "conditions": []}
    if value == "never":
        return {"type": "compound", "mode": "or", "conditions": []}
    if isinstance(value, list):
        return {"type": "compound", "mode": "and", "conditions": value}
    if isinstance(value, dict):
        kind = value.get("type")
        if kind in ("and", "or"):
            return {**value, "type": "compound", "mode": kind}
        if kind is None and "field" in value:
            return {**value, "type": "leaf"}
    return value


Condition = Annotated[
    Union[LeafCondition, CompoundCondition, FunctionCondition],
    Field(discriminator="type"),
]

# Condition accepting the shorthand forms, used for schema fields
ConditionInput = Annotated[Condition, BeforeValidator(normalize_condition)]

CompoundCondition.model_rebuild()

ALWAYS = CompoundCondition(mode=CompoundMode.AND)
NEVER = CompoundCondition(mode=CompoundMode.OR)


def leaf(
    field: str,
    operator: ConditionOperator | str = ConditionOperator.EQUALS,
    value: Any = None,
    context: ConditionContext | str = ConditionContext.VALUES,
) -> LeafCondition:
    return LeafCondition(
        field=field,
        operator=ConditionOperator(operator),
        value=value,
        context=ConditionContext(context),
    )


def all_of(*conditions: Any) -> CompoundCondition:
    return CompoundCondition(mode=CompoundMode.AND, conditions=list(conditions))


def any_of(*conditions: Any) -> CompoundCondition:
    return CompoundCondition(mode=CompoundMode.OR, conditions=list(conditions))

