"""
Organized panel view.

The organizer output is strictly a view: every node holds a reference into
the schema plus values read from the current snapshot, and carries no state
of its own. Rebuild it whenever the snapshot changes.
"""

from dataclasses import dataclass, field
from typing import Any

from property_panel.models.contracts.schema import (
    PropertyDefinition,
    PropertyGroup,
    PropertyOption,
    PropertyTab,
)
from property_panel.models.enums import PropertyInputType


@dataclass
class OptionsState:
    """Per-field option list as seen by the renderer."""

    options: list[PropertyOption] = field(default_factory=list)
    loading: bool = False
    error: str | None = None

    def to_dict(self) -> dict:
        return {
            "options": [option.model_dump(mode="json", exclude_none=True) for option in self.options],
            "loading": self.loading,
            "error": self.error,
        }


@dataclass
class PropertyView:
    definition: PropertyDefinition
    input_type: PropertyInputType
    value: Any = None
    disabled: bool = False
    style: dict[str, Any] = field(default_factory=dict)
    options: OptionsState | None = None
    children: "PanelView | None" = None

    @property
    def name(self) -> str:
        return self.definition.name

    def to_dict(self) -> dict:
        return {
            "name": self.definition.name,
            "label": self.definition.display_label,
            "type": self.definition.value_type.value,
            "input_type": self.input_type.value,
            "value": self.value,
            "disabled": self.disabled,
            "read_only": self.definition.read_only,
            "description": self.definition.description,
            "placeholder": self.definition.placeholder,
            "tooltip": self.definition.tooltip,
            "custom_component": self.definition.custom_component,
            "style": self.style,
            "options": self.options.to_dict() if self.options else None,
            "children": self.children.to_dict() if self.children else None,
        }


@dataclass
class GroupView:
    group: PropertyGroup
    properties: list[PropertyView] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.group.id

    def to_dict(self) -> dict:
        return {
            "id": self.group.id,
            "label": self.group.display_label,
            "icon": self.group.icon,
            "collapsible": self.group.collapsible,
            "collapsed": self.group.collapsed,
            "properties": [prop.to_dict() for prop in self.properties],
        }


@dataclass
class TabView:
    tab: PropertyTab
    groups: list[GroupView] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.tab.id

    def to_dict(self) -> dict:
        return {
            "id": self.tab.id,
            "label": self.tab.display_label,
            "icon": self.tab.icon,
            "groups": [group.to_dict() for group in self.groups],
        }


@dataclass
class PanelView:
    tabs: list[TabView] = field(default_factory=list)
    active_tab: str | None = None

    def tab_ids(self) -> list[str]:
        return [tab.id for tab in self.tabs]

    def get_tab(self, tab_id: str) -> TabView | None:
        for tab in self.tabs:
            if tab.id == tab_id:
                return tab
        return None

    def iter_properties(self):
        for tab in self.tabs:
            for group in tab.groups:
                for prop in group.properties:
                    yield prop
                    if prop.children is not None:
                        yield from prop.children.iter_properties()

    def find_property(self, name: str) -> PropertyView | None:
        for prop in self.iter_properties():
            if prop.name == name:
                return prop
        return None

    def visible_property_names(self) -> list[str]:
        seen: list[str] = []
        for prop in self.iter_properties():
            if prop.name not in seen:
                seen.append(prop.name)
        return seen

    def to_dict(self) -> dict:
        return {
            "tabs": [tab.to_dict() for tab in self.tabs],
            "active_tab": self.active_tab,
        }
