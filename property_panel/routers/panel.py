"""
Panel Router

HTTP surface over the panel engine for editors that evaluate the panel
server-side: organize the panel for an element, resolve one field's options,
validate visible fields.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request, status

from property_panel.models.contracts.panel import (
    OptionsResponse,
    OrganizeResponse,
    PanelRequest,
    ValidateResponse,
    ValidationIssueModel,
)
from property_panel.models.contracts.schema import PropertyPanelSchema
from property_panel.models.element import DiagramElement
from property_panel.services.option_resolver import OptionResolver
from property_panel.services.property_validation import validate_snapshot
from property_panel.services.schema_organizer import SchemaOrganizer
from property_panel.services.value_binder import ValueBinder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/panel", tags=["Property Panel"])


# ==================== DEPENDENCIES ====================


def get_panel_schema(request: Request) -> PropertyPanelSchema:
    schema = getattr(request.app.state, "panel_schema", None)
    if schema is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Panel schema is not loaded",
        )
    return schema


def get_option_resolver(request: Request) -> OptionResolver:
    resolver = getattr(request.app.state, "option_resolver", None)
    if resolver is None:
        resolver = OptionResolver()
        request.app.state.option_resolver = resolver
    return resolver


PanelSchema = Annotated[PropertyPanelSchema, Depends(get_panel_schema)]
Resolver = Annotated[OptionResolver, Depends(get_option_resolver)]


def _snapshot(schema: PropertyPanelSchema, element: DiagramElement, values: dict[str, Any] | None) -> dict[str, Any]:
    snapshot = ValueBinder().build_snapshot(schema, element)
    if values:
        snapshot.update(values)
    return snapshot


# ==================== ENDPOINTS ====================


@router.get(
    "/schema",
    summary="Get panel schema",
    description="Returns the loaded panel schema; handlers are shown by name",
)
async def get_schema(schema: PanelSchema) -> dict[str, Any]:
    return schema.model_dump(mode="json", by_alias=True, exclude_none=True)


@router.post(
    "/organize",
    response_model=OrganizeResponse,
    summary="Organize panel",
    description="Visible tabs, groups and properties for an element and value snapshot",
)
async def organize_panel(body: PanelRequest, schema: PanelSchema, resolver: Resolver) -> OrganizeResponse:
    element = body.element.to_element()
    values = _snapshot(schema, element, body.values)
    view = SchemaOrganizer(resolver).organize(schema, element, values, current_tab=body.active_tab)
    payload = view.to_dict()
    return OrganizeResponse(tabs=payload["tabs"], active_tab=payload["active_tab"], values=values)


@router.post(
    "/options/{property_name}",
    response_model=OptionsResponse,
    summary="Resolve property options",
    description="Resolves one property's options; remote failures are reported in 'error'",
)
async def resolve_options(
    property_name: str,
    body: PanelRequest,
    schema: PanelSchema,
    resolver: Resolver,
) -> OptionsResponse:
    prop = schema.get_property(property_name)
    if prop is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Property '{property_name}' not found",
        )

    element = body.element.to_element()
    values = _snapshot(schema, element, body.values)
    state = await resolver.resolve(prop, element, values)
    return OptionsResponse(property=property_name, options=state.options, error=state.error)


@router.post(
    "/validate",
    response_model=ValidateResponse,
    summary="Validate visible properties",
)
async def validate_panel(body: PanelRequest, schema: PanelSchema, resolver: Resolver) -> ValidateResponse:
    element = body.element.to_element()
    values = _snapshot(schema, element, body.values)
    view = SchemaOrganizer(resolver).organize(schema, element, values)
    issues = validate_snapshot(view, values, element)
    return ValidateResponse(
        valid=not issues,
        issues=[ValidationIssueModel(**issue.to_dict()) for issue in issues],
    )
