"""
Value Binder

Maps property names to and from an element's persisted business data and
issues mutation commands back to the diagram model.

Regular properties are plain keys (dot-separated names address nested
objects). Properties whose stored shape is not a flat scalar go through the
strategy table ``FIELD_STRATEGIES``; every such special case is listed there
rather than handled ad hoc by callers.

Every write is a single ``modeling.update_properties`` call, so the toolkit
records exactly one user-visible mutation and one undo step.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable

from property_panel.models.contracts.schema import PropertyDefinition, PropertyPanelSchema
from property_panel.models.element import BPMN_FACTORY, MODELING, DiagramElement
from property_panel.models.enums import EventDefinitionKind
from property_panel.services.condition_evaluator import MISSING, get_path

logger = logging.getLogger(__name__)

READ_ONLY_FIELDS = frozenset({"id", "type"})
CUSTOM_ATTRIBUTE_PREFIX = "custom:"

EVENT_DEFINITION_TYPES: dict[EventDefinitionKind, str] = {
    EventDefinitionKind.MESSAGE: "bpmn:MessageEventDefinition",
    EventDefinitionKind.TIMER: "bpmn:TimerEventDefinition",
    EventDefinitionKind.CONDITIONAL: "bpmn:ConditionalEventDefinition",
    EventDefinitionKind.SIGNAL: "bpmn:SignalEventDefinition",
    EventDefinitionKind.ERROR: "bpmn:ErrorEventDefinition",
    EventDefinitionKind.ESCALATION: "bpmn:EscalationEventDefinition",
    EventDefinitionKind.COMPENSATE: "bpmn:CompensateEventDefinition",
    EventDefinitionKind.LINK: "bpmn:LinkEventDefinition",
    EventDefinitionKind.CANCEL: "bpmn:CancelEventDefinition",
    EventDefinitionKind.TERMINATE: "bpmn:TerminateEventDefinition",
}
_KIND_BY_DEFINITION_TYPE = {type_name: kind for kind, type_name in EVENT_DEFINITION_TYPES.items()}


# ==================== STRATEGIES ====================


@dataclass(frozen=True)
class FieldStrategy:
    """
    Read/write pair for a field whose stored shape is not a flat scalar.

    ``read(element) -> value``; ``write(element, value, factory) -> dict`` of
    business-object updates for one ``update_properties`` call.
    """

    read: Callable[[DiagramElement], Any]
    write: Callable[[DiagramElement, Any, Any], dict[str, Any]]


def _read_documentation(element: DiagramElement) -> str:
    documentation = element.business_object.get("documentation") or []
    if not documentation:
        return ""
    return documentation[0].get("text") or ""


def _write_documentation(element: DiagramElement, value: Any, factory: Any) -> dict[str, Any]:
    documentation = list(element.business_object.get("documentation") or [])
    text = "" if value is None else str(value)
    if documentation:
        # Keep the entry's other attributes and any further entries
        documentation[0] = {**documentation[0], "text": text}
    else:
        documentation = [_create(factory, "bpmn:Documentation", {"text": text})]
    return {"documentation": documentation}


def _read_event_definition_type(element: DiagramElement) -> str:
    definitions = element.business_object.get("eventDefinitions") or []
    if not definitions:
        return EventDefinitionKind.NONE.value
    kind = _KIND_BY_DEFINITION_TYPE.get(definitions[0].get("$type"))
    return kind.value if kind else EventDefinitionKind.NONE.value


def _write_event_definition_type(element: DiagramElement, value: Any, factory: Any) -> dict[str, Any]:
    try:
        kind = EventDefinitionKind(value) if value else EventDefinitionKind.NONE
    except ValueError:
        kind = _match_event_kind(str(value))

    if kind is None:
        logger.warning(f"Unknown event definition type '{value}' for {element.id}; leaving unchanged")
        return {}
    if kind == EventDefinitionKind.NONE:
        return {"eventDefinitions": []}

    definitions = element.business_object.get("eventDefinitions") or []
    type_name = EVENT_DEFINITION_TYPES[kind]
    if definitions and definitions[0].get("$type") == type_name:
        return {}
    return {"eventDefinitions": [_create(factory, type_name, {})]}


def _match_event_kind(value: str) -> EventDefinitionKind | None:
    lowered = value.lower()
    for kind in EventDefinitionKind:
        if kind.value.lower() == lowered:
            return kind
    # "Compensation" is what most panels label the compensate definition
    if lowered == "compensation":
        return EventDefinitionKind.COMPENSATE
    return None


def _create(factory: Any, type_name: str, attrs: dict[str, Any]) -> dict[str, Any]:
    if factory is not None:
        return factory.create(type_name, attrs)
    return {"$type": type_name, **attrs}


FIELD_STRATEGIES: dict[str, FieldStrategy] = {
    "documentation": FieldStrategy(_read_documentation, _write_documentation),
    "eventDefinitionType": FieldStrategy(_read_event_definition_type, _write_event_definition_type),
}


# ==================== BINDER ====================


class ValueBinder:
    """
    Adapter between semantic property names and an element's business data.

    Args:
        read_only_fields: Extra field names that must never be written, on top
            of the element identifier/type and properties declared readOnly
    """

    def __init__(self, read_only_fields: set[str] | frozenset[str] | None = None):
        self.read_only_fields = frozenset(READ_ONLY_FIELDS | set(read_only_fields or ()))

    def is_read_only(self, name: str, definition: PropertyDefinition | None = None) -> bool:
        return name in self.read_only_fields or bool(definition and definition.read_only)

    def read(self, element: DiagramElement, name: str) -> Any:
        """
        Read the logical value of a property from the element.

        Returns None when the property is not set.
        """
        if name == "id":
            return element.id
        if name == "type":
            return element.type
        strategy = FIELD_STRATEGIES.get(name)
        if strategy is not None:
            return strategy.read(element)
        if name.startswith(CUSTOM_ATTRIBUTE_PREFIX):
            return element.attrs.get(name)

        value = get_path(element.business_object, name)
        return None if value is MISSING else value

    def write(
        self,
        element: DiagramElement,
        name: str,
        value: Any,
        model: Any,
        definition: PropertyDefinition | None = None,
    ) -> bool:
        """
        Persist a property value on the element through the toolkit.

        Writes to read-only fields are ignored. Values are passed through
        unvalidated; validation is a presentation concern.

        Returns:
            True if an update command was issued
        """
        if self.is_read_only(name, definition):
            logger.debug(f"Ignoring write to read-only field '{name}' on {element.id}")
            return False

        updates = self._build_updates(element, name, value, model)
        if not updates:
            return False

        modeling = model.get(MODELING)
        modeling.update_properties(element, updates)
        return True

    def _build_updates(self, element: DiagramElement, name: str, value: Any, model: Any) -> dict[str, Any]:
        strategy = FIELD_STRATEGIES.get(name)
        if strategy is not None:
            factory = model.get(BPMN_FACTORY) if model is not None else None
            return strategy.write(element, value, factory)

        if name.startswith(CUSTOM_ATTRIBUTE_PREFIX):
            return {"$attrs": {**element.attrs, name: value}}

        if "." not in name:
            return {name: value}

        # Rebuild the top-level object so siblings along the path are kept
        head, *rest = name.split(".")
        existing = element.business_object.get(head)
        root = copy.deepcopy(existing) if isinstance(existing, dict) else {}
        node = root
        for part in rest[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child
        node[rest[-1]] = value
        return {head: root}

    def build_snapshot(
        self,
        schema: PropertyPanelSchema,
        element: DiagramElement,
    ) -> dict[str, Any]:
        """
        Reconstruct the value snapshot for a freshly selected element.

        Seeds ``id`` and ``type``, reads every schema property (nested ones
        included) and falls back to the property's default when unset.
        """
        values: dict[str, Any] = {"id": element.id, "type": element.type}
        for prop in schema.iter_properties():
            try:
                value = self.read(element, prop.name)
            except Exception as e:
                logger.warning(f"Error extracting value for property {prop.name}: {e}")
                value = None
            if value is None:
                value = resolve_default(prop, element, values)
            values[prop.name] = value
        return values


def resolve_default(prop: PropertyDefinition, element: DiagramElement, values: dict[str, Any]) -> Any:
    """Static default, or the result of the property's default handler."""
    if prop.default_handler is not None:
        try:
            return prop.default_handler(element, values)
        except Exception as e:
            logger.warning(f"Default handler for {prop.name} failed: {e}")
            return copy.deepcopy(prop.default_value)
    return copy.deepcopy(prop.default_value)
