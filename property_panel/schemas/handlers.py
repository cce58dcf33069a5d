"""
Named handlers and renderers referenced by the bundled BPMN panel schema.

YAML schemas refer to these by name; ``schema_loader`` resolves the names
against ``handlers`` and checks ``customComponent`` values against
``renderers`` when the schema is loaded.
"""

import logging
import re
from dataclasses import dataclass
from typing import Any

from property_panel.core.registry import HandlerRegistry, Registry
from property_panel.models.element import DiagramElement

logger = logging.getLogger(__name__)

handlers: HandlerRegistry = Registry("handler")


@dataclass(frozen=True)
class RendererInfo:
    """Front-end component a property can delegate rendering to."""

    name: str
    description: str = ""


renderers: Registry[RendererInfo] = Registry("renderer")
renderers.register("CustomNameRenderer", RendererInfo("CustomNameRenderer", "Name input with inline validation"))
renderers.register("ColorPicker", RendererInfo("ColorPicker", "Swatch based color picker"))


# ==================== CONDITIONS ====================


@handlers.register("is_event_subprocess_start")
def is_event_subprocess_start(element: DiagramElement, values: dict[str, Any], model: Any = None) -> bool:
    """Start event placed directly inside an event sub-process."""
    if element is None or element.type != "bpmn:StartEvent" or element.parent is None:
        return False
    return bool(element.parent.business_object.get("triggeredByEvent"))


# ==================== OPTIONS ====================


@handlers.register("message_refs")
def message_refs(element: DiagramElement, values: dict[str, Any], model: Any = None) -> list[dict[str, Any]]:
    """Messages declared on the definitions root, as select options."""
    if element is None:
        return []
    root_elements = element.root.business_object.get("rootElements") or []
    return [
        {"label": item.get("name") or item.get("id"), "value": item.get("id")}
        for item in root_elements
        if item.get("$type") == "bpmn:Message" and item.get("id")
    ]


@handlers.register("model_type_params")
def model_type_params(values: dict[str, Any]) -> dict[str, Any]:
    """Query parameters filtering the model list by the custom-model toggle."""
    return {"useCustom": "true" if values.get("useCustomModel") else "false"}


@handlers.register("sort_by_label")
def sort_by_label(options: list, element: DiagramElement, values: dict[str, Any]) -> list:
    return sorted(options, key=lambda option: option.label.lower())


# ==================== DEFAULTS ====================


@handlers.register("default_model_id")
def default_model_id(element: DiagramElement, values: dict[str, Any]) -> str:
    return f"{element.id}_model"


# ==================== LISTENERS ====================

_DURATION_RE = re.compile(
    r"^P(?:(?P<years>\d+)Y)?(?:(?P<months>\d+)M)?(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)

_SECONDS_PER_UNIT = {
    "years": 365 * 86400,
    "months": 30 * 86400,
    "weeks": 7 * 86400,
    "days": 86400,
    "hours": 3600,
    "minutes": 60,
    "seconds": 1,
}


def parse_iso_duration(value: str) -> float | None:
    """Seconds in an ISO-8601 duration (``P1D``, ``PT30M``), None if malformed."""
    if not isinstance(value, str) or value in ("P", "PT") or value.endswith("T"):
        return None
    match = _DURATION_RE.match(value.strip().upper())
    if match is None:
        return None
    return sum(float(amount) * _SECONDS_PER_UNIT[unit] for unit, amount in match.groupdict().items() if amount)


@handlers.register("classify_timer_urgency")
def classify_timer_urgency(
    new_values: dict[str, Any],
    old_values: dict[str, Any],
    element: DiagramElement,
    model: Any = None,
) -> dict[str, Any] | None:
    """Derive ``timerUrgency`` from ``timerDuration``."""
    seconds = parse_iso_duration(new_values.get("timerDuration") or "")
    if seconds is None:
        return None
    if seconds < 3600:
        urgency = "urgent"
    elif seconds < 86400:
        urgency = "soon"
    else:
        urgency = "normal"
    return {"timerUrgency": urgency}


# ==================== VALIDATORS ====================


@handlers.register("validate_iso_duration")
def validate_iso_duration(value: Any, values: dict[str, Any], element: DiagramElement) -> str | None:
    if parse_iso_duration(value) is None:
        return "Use an ISO-8601 duration such as P1D or PT30M"
    return None
