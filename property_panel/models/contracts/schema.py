"""
Property panel schema contract models.

The schema is static configuration loaded once at startup. It describes every
field the panel can show, how fields are grouped into groups and tabs, and the
rules deciding visibility, option lists and change side effects. It does not
know which element types exist; conditions decide that at evaluation time.
"""

from __future__ import annotations

from typing import Annotated, Any, Iterator, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from property_panel.models.contracts.conditions import CompoundCondition, ConditionInput
from property_panel.models.contracts.handlers import HandlerRef
from property_panel.models.enums import (
    HttpMethod,
    PropertyInputType,
    PropertyValueType,
    TriggerMode,
)

DEFAULT_GROUP_ID = "default"

# Legacy flat-config field types are input kinds; map them to a value kind
_INPUT_TYPE_VALUE_KINDS = {
    PropertyInputType.CHECKBOX: PropertyValueType.BOOLEAN,
    PropertyInputType.SWITCH: PropertyValueType.BOOLEAN,
    PropertyInputType.SELECT: PropertyValueType.ENUM,
    PropertyInputType.RADIO: PropertyValueType.ENUM,
    PropertyInputType.MULTISELECT: PropertyValueType.ARRAY,
    PropertyInputType.TAGS: PropertyValueType.ARRAY,
    PropertyInputType.TABLE: PropertyValueType.ARRAY,
    PropertyInputType.SLIDER: PropertyValueType.NUMBER,
    PropertyInputType.DATE: PropertyValueType.DATE,
    PropertyInputType.TIME: PropertyValueType.TIME,
    PropertyInputType.DATETIME: PropertyValueType.DATETIME,
    PropertyInputType.COLOR: PropertyValueType.COLOR,
    PropertyInputType.FILE: PropertyValueType.FILE,
    PropertyInputType.CODE: PropertyValueType.SCRIPT,
    PropertyInputType.EXPRESSION: PropertyValueType.EXPRESSION,
    PropertyInputType.CARD: PropertyValueType.OBJECT,
    PropertyInputType.PANEL: PropertyValueType.OBJECT,
    PropertyInputType.CUSTOM: PropertyValueType.CUSTOM,
}


# ==================== OPTIONS ====================


class PropertyOption(BaseModel):
    """Option for select/multiselect fields"""
    label: str
    value: Any
    description: str | None = None
    icon: str | None = None
    disabled: bool = False
    color: str | None = None
    children: list["PropertyOption"] | None = None


class FunctionOptionsSource(BaseModel):
    """Options computed synchronously by ``getter(element, values, model)``"""
    type: Literal["function"] = "function"
    getter: HandlerRef
    dependencies: list[str] = Field(default_factory=list)


class ResponseMapping(BaseModel):
    """Dot-paths used to turn one remote response item into an option"""
    value: str = "value"
    label: str = "label"
    icon: str | None = None
    disabled: str | None = None
    description: str | None = None
    items: str | None = Field(
        default=None, description="Dot-path to the item list when the response body wraps it")


class ApiOptionsSource(BaseModel):
    """
    Options loaded from an HTTP endpoint.

    ``endpoint`` and string values in static ``params``/``body`` may contain
    ``{field}`` placeholders filled from the value snapshot. ``params`` and
    ``body`` may instead be handlers called with the value snapshot.
    """
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["api"] = "api"
    endpoint: str = Field(..., min_length=1)
    method: HttpMethod = HttpMethod.GET
    params: dict[str, Any] | HandlerRef | None = None
    body: dict[str, Any] | HandlerRef | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    response_mapping: ResponseMapping | None = Field(default=None, alias="responseMapping")
    transform: HandlerRef | None = Field(
        default=None, description="Post-processing step: transform(options, element, values)")
    dependencies: list[str] = Field(
        default_factory=list, description="Fields whose change triggers a re-fetch")


OptionsSource = Annotated[
    Union[FunctionOptionsSource, ApiOptionsSource],
    Field(discriminator="type"),
]


# ==================== RULES ====================


class PropertyValidation(BaseModel):
    """Property validation rules"""
    model_config = ConfigDict(populate_by_name=True)

    required: bool = False
    unique: bool = False
    min: float | None = None
    max: float | None = None
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    pattern: str | None = None
    format: str | None = None
    custom_validator: HandlerRef | None = Field(default=None, alias="customValidator")
    message: str | None = Field(default=None, alias="errorMessage")
    messages: dict[str, str] = Field(
        default_factory=dict, description="Per-rule messages keyed by rule name")

    @model_validator(mode="before")
    @classmethod
    def expand_rule_list(cls, data: Any) -> Any:
        """Accept ``[{type, value, message}, ...]`` rule lists."""
        if not isinstance(data, list):
            return data

        expanded: dict[str, Any] = {"messages": {}}
        for rule in data:
            kind = rule.get("type")
            if not kind:
                raise ValueError("validation rule requires a type")
            if kind in ("required", "unique"):
                expanded[kind] = rule.get("value", True)
            else:
                expanded[kind] = rule.get("value")
            if rule.get("message"):
                expanded["messages"][kind] = rule["message"]
        return expanded

    def message_for(self, rule: str, default: str) -> str:
        return self.messages.get(rule) or self.message or default


def _always() -> CompoundCondition:
    return CompoundCondition()


class PropertyVisibility(BaseModel):
    """Visibility condition plus the fields it reads"""
    model_config = ConfigDict(populate_by_name=True)

    condition: ConditionInput = Field(default_factory=_always)
    depends_on: list[str] = Field(default_factory=list, alias="dependsOn")

    @model_validator(mode="before")
    @classmethod
    def accept_bare_condition(cls, data: Any) -> Any:
        if isinstance(data, cls) or data == {}:
            return data
        if isinstance(data, dict) and (
            "condition" in data or "dependsOn" in data or "depends_on" in data
        ):
            return data
        return {"condition": data}


class ChangeListener(BaseModel):
    """
    Side effect run when a watched field changes.

    ``handler(new_values, old_values, element, model)`` returns a mapping of
    derived field updates (or ``None``).
    """
    model_config = ConfigDict(populate_by_name=True)

    watch: list[str] = Field(..., min_length=1)
    handler: HandlerRef
    trigger: TriggerMode = TriggerMode.IMMEDIATE
    delay_ms: int | None = Field(default=None, ge=0, alias="delay")


class PropertyLayout(BaseModel):
    section: str | None = None
    order: int | None = None
    width: str | int | None = None


class ConditionalStyle(BaseModel):
    condition: ConditionInput
    style: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def accept_conditions_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and "conditions" in data and "condition" not in data:
            data = {**data, "condition": data["conditions"]}
            data.pop("conditions")
        return data


# ==================== PROPERTIES ====================


class PropertyDefinition(BaseModel):
    """Configuration for a single property field"""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, description="Unique key, also the storage path (dot-separated)")
    label: str | None = None
    value_type: PropertyValueType = Field(default=PropertyValueType.STRING, alias="type")
    input_type: PropertyInputType | None = Field(default=None, alias="inputType")
    group: str | None = None
    description: str | None = None
    placeholder: str | None = None
    tooltip: str | None = None
    default_value: Any = Field(default=None, alias="defaultValue")
    default_handler: HandlerRef | None = Field(
        default=None, alias="defaultHandler", description="Dynamic default: handler(element, values)")
    options: list[PropertyOption] | OptionsSource | None = None
    validation: PropertyValidation = Field(default_factory=PropertyValidation)
    visibility: PropertyVisibility = Field(default_factory=PropertyVisibility)
    disabled_when: ConditionInput | None = Field(default=None, alias="disabledWhen")
    read_only: bool = Field(default=False, alias="readOnly")
    custom_component: str | None = Field(default=None, alias="customComponent")
    custom_props: dict[str, Any] = Field(default_factory=dict, alias="customProps")
    layout: PropertyLayout = Field(default_factory=PropertyLayout)
    properties: list["PropertyDefinition"] = Field(
        default_factory=list, description="Nested sub-properties for card/panel fields")
    change_listeners: list[ChangeListener] = Field(default_factory=list, alias="changeListeners")
    conditional_styles: list[ConditionalStyle] = Field(default_factory=list, alias="conditionalStyles")

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy_shape(cls, data: Any) -> Any:
        """
        Accept the older property shapes still found in panel configs:

        - ``id`` instead of ``name``
        - ``renderer`` instead of ``customComponent``
        - ``conditions`` instead of ``visibility``
        - ``fetchOptions`` + ``optionsUrl`` + ``optionsFilter`` instead of an api source
        - an input kind (``checkbox``, ``number``...) given as ``type``
        - ``style.conditionalStyles``
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)

        if "name" not in data and "id" in data:
            data["name"] = data.pop("id")
        if "renderer" in data and "customComponent" not in data:
            data["customComponent"] = data.pop("renderer")
        if "conditions" in data and "visibility" not in data:
            data["visibility"] = {"condition": data.pop("conditions")}

        fetch = data.pop("fetchOptions", None)
        options_url = data.pop("optionsUrl", None)
        options_filter = data.pop("optionsFilter", None)
        if (fetch or isinstance(data.get("options"), str)) and not isinstance(data.get("options"), (list, dict)):
            data["options"] = {
                "type": "api",
                "endpoint": options_url or data.get("options") or f"/api/{str(data.get('name', '')).lower()}",
                "params": options_filter,
            }

        extra_deps = data.pop("dependencies", None)
        if extra_deps:
            visibility = data.get("visibility")
            if not isinstance(visibility, dict) or not (
                "condition" in visibility or "dependsOn" in visibility or "depends_on" in visibility
            ):
                visibility = {"condition": visibility}
            visibility = dict(visibility)
            visibility["dependsOn"] = [*visibility.get("dependsOn", []), *extra_deps]
            data["visibility"] = visibility

        raw_type = data.get("type")
        if isinstance(raw_type, str):
            value_kind = _match_enum(PropertyValueType, raw_type)
            if value_kind is not None:
                data["type"] = value_kind
            else:
                input_kind = _match_enum(PropertyInputType, raw_type)
                if input_kind is not None:
                    data.setdefault("inputType", input_kind)
                    data["type"] = _INPUT_TYPE_VALUE_KINDS.get(input_kind, PropertyValueType.STRING)

        style = data.get("style")
        if isinstance(style, dict) and "conditionalStyles" in style:
            data.setdefault("conditionalStyles", style["conditionalStyles"])
        data.pop("style", None)
        return data

    @property
    def display_label(self) -> str:
        return self.label or self.name

    @property
    def options_source(self) -> FunctionOptionsSource | ApiOptionsSource | None:
        if isinstance(self.options, (FunctionOptionsSource, ApiOptionsSource)):
            return self.options
        return None

    @property
    def static_options(self) -> list[PropertyOption] | None:
        return self.options if isinstance(self.options, list) else None

    def watched_fields(self) -> set[str]:
        """Every field whose change may affect this property."""
        watched = set(self.visibility.depends_on)
        source = self.options_source
        if source is not None:
            watched.update(source.dependencies)
        for listener in self.change_listeners:
            watched.update(listener.watch)
        return watched


def _match_enum(enum_cls: Any, raw: str) -> Any:
    lowered = raw.lower()
    for member in enum_cls:
        if member.value.lower() == lowered:
            return member
    return None


# ==================== CONTAINERS ====================


class PropertyGroup(BaseModel):
    """Labeled, orderable, optionally collapsible container of properties"""
    id: str = Field(..., min_length=1)
    label: str | None = None
    icon: str | None = None
    description: str | None = None
    order: int = 0
    collapsible: bool = False
    collapsed: bool = False
    visibility: PropertyVisibility = Field(default_factory=PropertyVisibility)

    @property
    def display_label(self) -> str:
        return self.label or self.id


class PropertyTab(BaseModel):
    """Labeled, orderable container referencing group ids"""
    id: str = Field(..., min_length=1)
    label: str | None = None
    icon: str | None = None
    order: int = 0
    groups: list[str] = Field(
        default_factory=list, description="Group ids; empty means every group")
    visibility: PropertyVisibility = Field(default_factory=PropertyVisibility)

    @property
    def display_label(self) -> str:
        return self.label or self.id


class PropertyPanelSchema(BaseModel):
    """Complete panel configuration"""
    model_config = ConfigDict(populate_by_name=True)

    properties: list[PropertyDefinition] = Field(default_factory=list)
    groups: list[PropertyGroup] = Field(default_factory=list)
    tabs: list[PropertyTab] = Field(default_factory=list)
    default_tab: str | None = Field(default=None, alias="defaultTab")
    default_group: str | None = Field(default=None, alias="defaultGroup")

    @field_validator("properties")
    @classmethod
    def validate_unique_names(cls, v: list[PropertyDefinition]) -> list[PropertyDefinition]:
        """Ensure property names are unique, nested sub-properties included"""
        names = [prop.name for prop in _walk(v)]
        duplicates = sorted({name for name in names if names.count(name) > 1})
        if duplicates:
            raise ValueError(f"Property names must be unique: {duplicates}")
        return v

    @model_validator(mode="after")
    def validate_containers(self):
        """Assign default groups, synthesize undeclared groups, check references"""
        group_ids = [group.id for group in self.groups]
        if len(group_ids) != len(set(group_ids)):
            raise ValueError("Group ids must be unique")
        tab_ids = [tab.id for tab in self.tabs]
        if len(tab_ids) != len(set(tab_ids)):
            raise ValueError("Tab ids must be unique")

        fallback_group = self.default_group or DEFAULT_GROUP_ID
        declared = set(group_ids)
        for prop in self.properties:
            if prop.group is None:
                prop.group = fallback_group
            if prop.group not in declared:
                self.groups.append(PropertyGroup(id=prop.group))
                declared.add(prop.group)

        for tab in self.tabs:
            missing = [group_id for group_id in tab.groups if group_id not in declared]
            if missing:
                raise ValueError(f"Tab '{tab.id}' references unknown groups: {missing}")

        if self.default_tab and self.tabs and self.default_tab not in tab_ids:
            raise ValueError(f"defaultTab '{self.default_tab}' is not a declared tab")
        if self.default_group and self.default_group not in declared:
            raise ValueError(f"defaultGroup '{self.default_group}' is not a declared group")
        return self

    def iter_properties(self) -> Iterator[PropertyDefinition]:
        """All properties, nested sub-properties included, in declaration order."""
        return _walk(self.properties)

    def get_property(self, name: str) -> PropertyDefinition | None:
        for prop in self.iter_properties():
            if prop.name == name:
                return prop
        return None

    def get_group(self, group_id: str) -> PropertyGroup | None:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def get_tab(self, tab_id: str) -> PropertyTab | None:
        for tab in self.tabs:
            if tab.id == tab_id:
                return tab
        return None

    def property_names(self) -> set[str]:
        return {prop.name for prop in self.iter_properties()}

    def dangling_dependencies(self) -> dict[str, list[str]]:
        """
        Dependencies that name no property in this schema.

        ``id`` and ``type`` are always present in a value snapshot and count
        as known fields.
        """
        known = self.property_names() | {"id", "type"}
        dangling: dict[str, list[str]] = {}
        for prop in self.iter_properties():
            missing = sorted(name for name in prop.watched_fields() if name not in known)
            if missing:
                dangling[prop.name] = missing
        return dangling


def _walk(properties: list[PropertyDefinition]) -> Iterator[PropertyDefinition]:
    for prop in properties:
        yield prop
        yield from _walk(prop.properties)


PropertyOption.model_rebuild()
PropertyDefinition.model_rebuild()
