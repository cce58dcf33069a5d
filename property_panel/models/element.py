"""
Diagram element model and the toolkit capability surface.

The diagramming toolkit owns elements and their business data. This module
only describes the shape the panel engine relies on:

- ``DiagramElement``: id, type, business object (persisted semantic data as a
  plain dict, using the toolkit's ``$type`` / ``$attrs`` conventions) and an
  optional parent element
- ``Modeler``: ``get(service_name)`` returning the toolkit services below
- ``Modeling.update_properties``: applies attribute changes as one undoable step
- ``BpmnFactory.create``: builds auxiliary structured values (documentation,
  event definitions) before they are attached
- ``EventBus.on/off``: selection and content change notifications
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol

# Toolkit service names
MODELING = "modeling"
BPMN_FACTORY = "bpmnFactory"
EVENT_BUS = "eventBus"

# Toolkit event names
SELECTION_CHANGED = "selection.changed"
ELEMENT_CHANGED = "element.changed"


@dataclass
class DiagramElement:
    """A node or connection in the diagram."""

    id: str
    type: str
    business_object: dict[str, Any] = field(default_factory=dict)
    parent: "DiagramElement | None" = None

    @property
    def root(self) -> "DiagramElement":
        """Top-most ancestor (the element itself when it has no parent)."""
        node = self
        seen = {id(node)}
        while node.parent is not None and id(node.parent) not in seen:
            node = node.parent
            seen.add(id(node))
        return node

    @property
    def attrs(self) -> dict[str, Any]:
        """Raw extension attributes (``$attrs``) of the business object."""
        return self.business_object.get("$attrs") or {}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DiagramElement":
        parent = data.get("parent")
        return cls(
            id=data["id"],
            type=data["type"],
            business_object=dict(data.get("businessObject") or data.get("business_object") or {}),
            parent=cls.from_dict(parent) if parent else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "businessObject": self.business_object,
            "parent": self.parent.to_dict() if self.parent else None,
        }


class Modeling(Protocol):
    def update_properties(self, element: DiagramElement, properties: dict[str, Any]) -> None: ...


class BpmnFactory(Protocol):
    def create(self, type_name: str, attrs: dict[str, Any] | None = None) -> dict[str, Any]: ...


class EventBus(Protocol):
    def on(self, event: str, handler: Callable[..., Any]) -> None: ...

    def off(self, event: str, handler: Callable[..., Any]) -> None: ...


class Modeler(Protocol):
    def get(self, service_name: str) -> Any: ...
