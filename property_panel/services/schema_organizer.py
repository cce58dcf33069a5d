"""
Schema Organizer

Turns the flat property list plus group/tab metadata into the ordered
tab -> group -> property view for one element and value snapshot.

Rules:
- a property shows when its visibility holds
- a group shows when its own visibility holds and it kept at least one property
  (a hidden group hides its members whatever their own visibility says)
- a tab shows when its visibility holds and it kept at least one group
- tabs and groups sort by ``order`` (ties keep declaration order); properties
  keep declaration order unless ``layout.order`` is set
- a schema without tabs gets one implicit tab holding every visible group
- nested ``properties`` are organized recursively, up to a depth cap
"""

import logging
from typing import Any, Iterable, Mapping

from property_panel.config import get_settings
from property_panel.models.contracts.schema import (
    DEFAULT_GROUP_ID,
    PropertyDefinition,
    PropertyGroup,
    PropertyPanelSchema,
    PropertyTab,
)
from property_panel.models.element import DiagramElement
from property_panel.models.enums import PropertyInputType, PropertyValueType
from property_panel.models.view import GroupView, OptionsState, PanelView, PropertyView, TabView
from property_panel.services.condition_evaluator import evaluate_condition
from property_panel.services.option_resolver import OptionResolver

logger = logging.getLogger(__name__)

IMPLICIT_TAB_ID = "default"
IMPLICIT_TAB_LABEL = "Properties"

# Value kind -> input kind when no inputType is declared
_DEFAULT_INPUT_TYPES: dict[PropertyValueType, PropertyInputType] = {
    PropertyValueType.NUMBER: PropertyInputType.TEXT,
    PropertyValueType.BOOLEAN: PropertyInputType.CHECKBOX,
    PropertyValueType.DATE: PropertyInputType.DATE,
    PropertyValueType.TIME: PropertyInputType.TIME,
    PropertyValueType.DATETIME: PropertyInputType.DATETIME,
    PropertyValueType.ENUM: PropertyInputType.SELECT,
    PropertyValueType.OBJECT: PropertyInputType.CARD,
    PropertyValueType.EXPRESSION: PropertyInputType.EXPRESSION,
    PropertyValueType.SCRIPT: PropertyInputType.CODE,
    PropertyValueType.COLOR: PropertyInputType.COLOR,
    PropertyValueType.FILE: PropertyInputType.FILE,
    PropertyValueType.ICON: PropertyInputType.TEXT,
    PropertyValueType.CUSTOM: PropertyInputType.TEXT,
}


def get_input_type(prop: PropertyDefinition) -> PropertyInputType:
    """Widget for a property: explicit inputType, custom renderer, or the default table."""
    if prop.input_type is not None:
        return prop.input_type
    if prop.custom_component:
        return PropertyInputType.CUSTOM
    if prop.value_type == PropertyValueType.STRING:
        return PropertyInputType.SELECT if prop.options is not None else PropertyInputType.TEXT
    if prop.value_type == PropertyValueType.ARRAY:
        return PropertyInputType.MULTISELECT if prop.options is not None else PropertyInputType.TAGS
    return _DEFAULT_INPUT_TYPES.get(prop.value_type, PropertyInputType.TEXT)


class SchemaOrganizer:
    """
    Builds organized panel views.

    Args:
        resolver: Option resolver for literal/function sources
        max_depth: Nesting cap for sub-property panels (defaults to settings)
    """

    def __init__(self, resolver: OptionResolver | None = None, max_depth: int | None = None):
        self.resolver = resolver or OptionResolver()
        self.max_depth = max_depth if max_depth is not None else get_settings().max_nesting_depth

    def organize(
        self,
        schema: PropertyPanelSchema,
        element: DiagramElement | None,
        values: Mapping[str, Any],
        model: Any = None,
        option_states: Mapping[str, OptionsState] | None = None,
        current_tab: str | None = None,
    ) -> PanelView:
        """
        Organize the schema for the given element and value snapshot.

        Args:
            schema: Panel schema
            element: Selected element
            values: Current value snapshot
            model: External model handle passed to conditions and option functions
            option_states: Known remote option states keyed by property name
            current_tab: Active tab to keep if it is still visible

        Returns:
            PanelView with pruned tabs/groups and the chosen active tab
        """
        tabs = self._organize_level(
            properties=schema.properties,
            groups=schema.groups,
            tabs=schema.tabs,
            element=element,
            values=values,
            model=model,
            option_states=option_states or {},
            depth=0,
        )
        view = PanelView(tabs=tabs)
        view.active_tab = select_active_tab(schema, view, current_tab)
        return view

    def _organize_level(
        self,
        properties: list[PropertyDefinition],
        groups: list[PropertyGroup],
        tabs: list[PropertyTab],
        element: DiagramElement | None,
        values: Mapping[str, Any],
        model: Any,
        option_states: Mapping[str, OptionsState],
        depth: int,
    ) -> list[TabView]:
        # 1-2. filter properties and partition them by group
        by_group: dict[str, list[PropertyDefinition]] = {}
        for prop in properties:
            if evaluate_condition(prop.visibility.condition, element, values, model):
                by_group.setdefault(prop.group or DEFAULT_GROUP_ID, []).append(prop)

        # 4. groups: own visibility and at least one surviving property
        visible_groups: dict[str, GroupView] = {}
        for group in groups:
            members = by_group.get(group.id)
            if not members:
                continue
            if not evaluate_condition(group.visibility.condition, element, values, model):
                continue
            # 6. layout order within the group
            visible_groups[group.id] = GroupView(
                group=group,
                properties=[
                    self._property_view(prop, element, values, model, option_states, depth)
                    for prop in _sort_by_layout(members)
                ],
            )

        # 5. implicit tab when none are declared
        if not tabs:
            tabs = [PropertyTab(id=IMPLICIT_TAB_ID, label=IMPLICIT_TAB_LABEL)]

        # 3. tab visibility and order
        result: list[TabView] = []
        for tab in _sort_by_order(tabs):
            if not evaluate_condition(tab.visibility.condition, element, values, model):
                continue
            if tab.groups:
                members = [visible_groups[group_id] for group_id in tab.groups if group_id in visible_groups]
            else:
                members = list(visible_groups.values())
            if not members:
                continue
            result.append(TabView(tab=tab, groups=_sort_by_order(members, key=lambda g: g.group.order)))
        return result

    def _property_view(
        self,
        prop: PropertyDefinition,
        element: DiagramElement | None,
        values: Mapping[str, Any],
        model: Any,
        option_states: Mapping[str, OptionsState],
        depth: int,
    ) -> PropertyView:
        disabled = prop.read_only
        if not disabled and prop.disabled_when is not None:
            disabled = evaluate_condition(prop.disabled_when, element, values, model)

        style: dict[str, Any] = {}
        for conditional in prop.conditional_styles:
            if evaluate_condition(conditional.condition, element, values, model):
                style.update(conditional.style)

        view = PropertyView(
            definition=prop,
            input_type=get_input_type(prop),
            value=values.get(prop.name),
            disabled=disabled,
            style=style,
            options=self._options_for(prop, element, values, model, option_states),
        )

        if prop.properties:
            if depth + 1 >= self.max_depth:
                logger.warning(f"Nesting depth limit ({self.max_depth}) reached at {prop.name}; sub-properties not shown")
            else:
                tabs = self._organize_level(
                    properties=prop.properties,
                    groups=_groups_for(prop.properties),
                    tabs=[],
                    element=element,
                    values=values,
                    model=model,
                    option_states=option_states,
                    depth=depth + 1,
                )
                view.children = PanelView(tabs=tabs, active_tab=tabs[0].id if tabs else None)
        return view

    def _options_for(
        self,
        prop: PropertyDefinition,
        element: DiagramElement | None,
        values: Mapping[str, Any],
        model: Any,
        option_states: Mapping[str, OptionsState],
    ) -> OptionsState | None:
        if prop.options is None:
            return None
        options = self.resolver.resolve_sync(prop, element, dict(values), model)
        if options is not None:
            return OptionsState(options=options)
        # Remote: whatever is known so far, otherwise still loading
        return option_states.get(prop.name) or OptionsState(loading=True)


def select_active_tab(
    schema: PropertyPanelSchema,
    view: PanelView,
    current: str | None = None,
) -> str | None:
    """
    Choose the active tab.

    Keeps ``current`` while it is visible, else the first visible tab, else
    ``schema.default_tab``, else the first declared tab.
    """
    visible = view.tab_ids()
    if current is not None and current in visible:
        return current
    if visible:
        return visible[0]
    if schema.default_tab and schema.get_tab(schema.default_tab) is not None:
        return schema.default_tab
    if schema.tabs:
        return schema.tabs[0].id
    return IMPLICIT_TAB_ID


def _sort_by_layout(properties: list[PropertyDefinition]) -> list[PropertyDefinition]:
    hinted = [(index, prop) for index, prop in enumerate(properties) if prop.layout.order is not None]
    if not hinted:
        return list(properties)
    # Unhinted properties keep their slot; hinted ones fill the remaining slots by (order, index)
    ordered = iter(sorted(hinted, key=lambda item: (item[1].layout.order, item[0])))
    return [
        next(ordered)[1] if prop.layout.order is not None else prop
        for prop in properties
    ]


def _sort_by_order(items: Iterable[Any], key=lambda item: item.order) -> list[Any]:
    return sorted(items, key=key)


def _groups_for(properties: list[PropertyDefinition]) -> list[PropertyGroup]:
    seen: dict[str, PropertyGroup] = {}
    for prop in properties:
        group_id = prop.group or DEFAULT_GROUP_ID
        if group_id not in seen:
            seen[group_id] = PropertyGroup(id=group_id)
    return list(seen.values())


def organize(
    schema: PropertyPanelSchema,
    element: DiagramElement | None,
    values: Mapping[str, Any],
    model: Any = None,
) -> PanelView:
    """Organize with default settings."""
    return SchemaOrganizer().organize(schema, element, values, model)
