"""
Panel HTTP contract models.

Request/response bodies for the panel router. Elements travel as plain JSON
using the toolkit's field names (``businessObject``, ``$type``, ``$attrs``).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from property_panel.models.contracts.schema import PropertyOption
from property_panel.models.element import DiagramElement


class ElementPayload(BaseModel):
    """Selected diagram element as sent by the editor"""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    business_object: dict[str, Any] = Field(default_factory=dict, alias="businessObject")
    parent: ElementPayload | None = None

    def to_element(self) -> DiagramElement:
        return DiagramElement(
            id=self.id,
            type=self.type,
            business_object=dict(self.business_object),
            parent=self.parent.to_element() if self.parent else None,
        )


class PanelRequest(BaseModel):
    """Element plus an optional value snapshot (read from the element when omitted)"""
    model_config = ConfigDict(populate_by_name=True)

    element: ElementPayload
    values: dict[str, Any] | None = None
    active_tab: str | None = Field(default=None, alias="activeTab")


class OrganizeResponse(BaseModel):
    """Organized panel for the element"""
    tabs: list[dict[str, Any]] = Field(default_factory=list)
    active_tab: str | None = None
    values: dict[str, Any] = Field(default_factory=dict)


class OptionsResponse(BaseModel):
    """Resolved options; ``error`` is set when a remote source failed"""
    property: str
    options: list[PropertyOption] = Field(default_factory=list)
    error: str | None = None


class ValidationIssueModel(BaseModel):
    property: str
    rule: str
    message: str


class ValidateResponse(BaseModel):
    valid: bool
    issues: list[ValidationIssueModel] = Field(default_factory=list)


ElementPayload.model_rebuild()
