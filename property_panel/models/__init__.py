"""
Property Panel Models

Pydantic contracts (schema, conditions, HTTP bodies):
    from property_panel.models import PropertyPanelSchema, PropertyDefinition
    from property_panel.models.contracts.schema import PropertyDefinition  # Granular access

Element and toolkit protocols:
    from property_panel.models import DiagramElement

Enums:
    from property_panel.models import ConditionOperator
    from property_panel.models.enums import ConditionOperator
"""

from property_panel.models.contracts.conditions import (
    ALWAYS,
    NEVER,
    CompoundCondition,
    Condition,
    FunctionCondition,
    LeafCondition,
    all_of,
    any_of,
    leaf,
)
from property_panel.models.contracts.schema import (
    ApiOptionsSource,
    ChangeListener,
    FunctionOptionsSource,
    PropertyDefinition,
    PropertyGroup,
    PropertyOption,
    PropertyPanelSchema,
    PropertyTab,
    PropertyValidation,
    PropertyVisibility,
    ResponseMapping,
)
from property_panel.models.element import DiagramElement
from property_panel.models.enums import (
    CompoundMode,
    ConditionContext,
    ConditionOperator,
    EventDefinitionKind,
    HttpMethod,
    PropertyInputType,
    PropertyValueType,
    TriggerMode,
)
from property_panel.models.view import GroupView, OptionsState, PanelView, PropertyView, TabView

__all__ = [
    "ALWAYS",
    "NEVER",
    "CompoundCondition",
    "Condition",
    "FunctionCondition",
    "LeafCondition",
    "all_of",
    "any_of",
    "leaf",
    "ApiOptionsSource",
    "ChangeListener",
    "FunctionOptionsSource",
    "PropertyDefinition",
    "PropertyGroup",
    "PropertyOption",
    "PropertyPanelSchema",
    "PropertyTab",
    "PropertyValidation",
    "PropertyVisibility",
    "ResponseMapping",
    "DiagramElement",
    "CompoundMode",
    "ConditionContext",
    "ConditionOperator",
    "EventDefinitionKind",
    "HttpMethod",
    "PropertyInputType",
    "PropertyValueType",
    "TriggerMode",
    "GroupView",
    "OptionsState",
    "PanelView",
    "PropertyView",
    "TabView",
]
