"""
Factory functions for test data.

Usage:
    from tests.helpers.factories import make_element, make_schema

    def test_something():
        element = make_element(type="bpmn:UserTask", name="Review")
"""

from typing import Any

from property_panel.models.contracts.schema import PropertyPanelSchema
from property_panel.models.element import DiagramElement


def make_element(
    id: str = "Task_1",
    type: str = "bpmn:Task",
    parent: DiagramElement | None = None,
    **business: Any,
) -> DiagramElement:
    """Build a diagram element; keyword arguments become business data."""
    return DiagramElement(id=id, type=type, business_object=dict(business), parent=parent)


def make_property(name: str, **overrides: Any) -> dict[str, Any]:
    data: dict[str, Any] = {"name": name, "type": "String"}
    data.update(overrides)
    return data


def make_schema(
    properties: list[dict[str, Any]],
    groups: list[dict[str, Any]] | None = None,
    tabs: list[dict[str, Any]] | None = None,
    context: dict[str, Any] | None = None,
    **overrides: Any,
) -> PropertyPanelSchema:
    """Validate a schema from plain dicts."""
    data: dict[str, Any] = {
        "properties": properties,
        "groups": groups or [],
        "tabs": tabs or [],
    }
    data.update(overrides)
    return PropertyPanelSchema.model_validate(data, context=context)


def make_event_schema() -> PropertyPanelSchema:
    """Event definition type plus a timer field only shown for timer events."""
    return make_schema(
        properties=[
            make_property(
                "eventDefinitionType",
                type="Enum",
                group="event",
                options=[
                    {"label": "None", "value": "None"},
                    {"label": "Message", "value": "Message"},
                    {"label": "Timer", "value": "Timer"},
                ],
                visibility="always",
            ),
            make_property(
                "timerDefinition",
                group="timer",
                visibility={
                    "condition": {"field": "eventDefinitionType", "operator": "equals", "value": "Timer"},
                    "dependsOn": ["eventDefinitionType"],
                },
            ),
        ],
        groups=[
            {"id": "event", "label": "Event", "order": 10},
            {"id": "timer", "label": "Timer", "order": 20},
        ],
    )
