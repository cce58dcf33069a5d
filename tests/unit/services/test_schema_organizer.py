"""
Unit tests for the schema organizer.

Tests cover:
- Property, group and tab pruning
- Ordering of tabs, groups and properties
- Implicit tab for schemas without tabs
- Active tab selection
- Input type defaults, disabled state and conditional styles
- Nested sub-property panels
"""

import pytest

from property_panel.models.enums import PropertyInputType
from property_panel.models.view import OptionsState
from property_panel.services.schema_organizer import (
    IMPLICIT_TAB_ID,
    SchemaOrganizer,
    get_input_type,
    organize,
)
from property_panel.models.contracts.schema import PropertyDefinition
from tests.helpers.factories import make_element, make_event_schema, make_property, make_schema


@pytest.fixture
def organizer():
    return SchemaOrganizer()


def property_names(view, tab_id=None):
    tab = view.get_tab(tab_id) if tab_id else view.tabs[0]
    return [prop.name for group in tab.groups for prop in group.properties]


def group_ids(view, tab_id=None):
    tab = view.get_tab(tab_id) if tab_id else view.tabs[0]
    return [group.id for group in tab.groups]


IS_EVENT = {"field": "type", "operator": "contains", "value": "Event"}


class TestVisibility:
    """Test pruning of hidden properties, groups and tabs."""

    def test_timer_group_hidden_for_message_event(self, organizer, start_event):
        view = organizer.organize(make_event_schema(), start_event, {"eventDefinitionType": "Message"})

        assert group_ids(view) == ["event"]
        assert property_names(view) == ["eventDefinitionType"]

    def test_timer_group_shown_for_timer_event(self, organizer, start_event):
        view = organizer.organize(make_event_schema(), start_event, {"eventDefinitionType": "Timer"})

        assert group_ids(view) == ["event", "timer"]
        assert property_names(view) == ["eventDefinitionType", "timerDefinition"]

    def test_hidden_group_hides_visible_members(self, organizer, task):
        schema = make_schema(
            [make_property("modelId", group="model")],
            groups=[{"id": "model", "visibility": {"field": "useCustomModel", "operator": "equals", "value": True}}],
        )

        view = organizer.organize(schema, task, {"useCustomModel": False})

        assert view.tabs == []
        assert view.visible_property_names() == []

    def test_tab_without_visible_groups_is_pruned(self, organizer, task):
        schema = make_schema(
            [
                make_property("name", group="general"),
                make_property("timerDefinition", group="timer", visibility=IS_EVENT),
            ],
            tabs=[
                {"id": "general", "groups": ["general"]},
                {"id": "events", "groups": ["timer"]},
            ],
        )

        view = organizer.organize(schema, task, {"type": task.type})

        assert view.tab_ids() == ["general"]

    def test_hidden_tab_is_pruned(self, organizer, task):
        schema = make_schema(
            [make_property("name", group="general"), make_property("cancelActivity", group="advanced")],
            tabs=[
                {"id": "general", "groups": ["general"]},
                {"id": "advanced", "groups": ["advanced"], "visibility": IS_EVENT},
            ],
        )

        assert organizer.organize(schema, task, {"type": "bpmn:UserTask"}).tab_ids() == ["general"]
        assert organizer.organize(schema, task, {"type": "bpmn:BoundaryEvent"}).tab_ids() == ["general", "advanced"]

    def test_every_visible_property_appears_once(self, organizer, task):
        schema = make_schema(
            [make_property("name", group="a"), make_property("documentation", group="b")],
            tabs=[{"id": "one", "groups": ["a", "b"]}, {"id": "two", "groups": ["b"]}],
        )

        view = organizer.organize(schema, task, {})

        assert property_names(view, "one") == ["name", "documentation"]
        assert property_names(view, "two") == ["documentation"]
        assert view.visible_property_names() == ["name", "documentation"]


class TestOrdering:
    """Test tab, group and property ordering."""

    def test_groups_sort_by_order_with_stable_ties(self, organizer, task):
        schema = make_schema(
            [make_property("a", group="g1"), make_property("b", group="g2"), make_property("c", group="g3")],
            groups=[{"id": "g1", "order": 5}, {"id": "g2", "order": 1}, {"id": "g3", "order": 5}],
        )

        assert group_ids(organizer.organize(schema, task, {})) == ["g2", "g1", "g3"]

    def test_tabs_sort_by_order(self, organizer, task):
        schema = make_schema(
            [make_property("a", group="g1"), make_property("b", group="g2")],
            tabs=[{"id": "later", "order": 2, "groups": ["g1"]}, {"id": "first", "order": 1, "groups": ["g2"]}],
        )

        assert organizer.organize(schema, task, {}).tab_ids() == ["first", "later"]

    def test_properties_keep_declaration_order(self, organizer, task):
        schema = make_schema([make_property("z"), make_property("a"), make_property("m")])
        assert property_names(organizer.organize(schema, task, {})) == ["z", "a", "m"]

    def test_layout_order_within_group(self, organizer, task):
        schema = make_schema([
            make_property("first"),
            make_property("late", layout={"order": 10}),
            make_property("early", layout={"order": 0}),
        ])

        assert property_names(organizer.organize(schema, task, {})) == ["first", "early", "late"]

    def test_unhinted_properties_keep_their_slot(self, organizer, task):
        schema = make_schema([
            make_property("a", layout={"order": 10}),
            *[make_property(f"p{index}") for index in range(1, 12)],
            make_property("b", layout={"order": 5}),
            make_property("c"),
        ])

        names = property_names(organizer.organize(schema, task, {}))

        assert names[0] == "b"
        assert names[12] == "a"
        assert names[1:12] == [f"p{index}" for index in range(1, 12)]
        assert names[13] == "c"

    def test_equal_hints_keep_declaration_order(self, organizer, task):
        schema = make_schema([
            make_property("x", layout={"order": 1}),
            make_property("y", layout={"order": 1}),
            make_property("z"),
        ])

        assert property_names(organizer.organize(schema, task, {})) == ["x", "y", "z"]

    def test_tab_group_order_follows_group_order(self, organizer, task):
        schema = make_schema(
            [make_property("a", group="g1"), make_property("b", group="g2")],
            groups=[{"id": "g1", "order": 2}, {"id": "g2", "order": 1}],
            tabs=[{"id": "main", "groups": ["g1", "g2"]}],
        )

        assert group_ids(organizer.organize(schema, task, {})) == ["g2", "g1"]


class TestImplicitTab:
    """Test schemas without declared tabs."""

    def test_single_implicit_tab(self, organizer, task):
        schema = make_schema([make_property("name"), make_property("documentation", group="docs")])

        view = organizer.organize(schema, task, {})

        assert view.tab_ids() == [IMPLICIT_TAB_ID]
        assert view.tabs[0].tab.label == "Properties"
        assert view.active_tab == IMPLICIT_TAB_ID
        assert group_ids(view) == ["default", "docs"]

    def test_tab_without_groups_holds_every_group(self, organizer, task):
        schema = make_schema(
            [make_property("a", group="g1"), make_property("b", group="g2")],
            tabs=[{"id": "all"}],
        )

        assert group_ids(organizer.organize(schema, task, {})) == ["g1", "g2"]

    def test_default_group_used_for_ungrouped_properties(self, organizer, task):
        schema = make_schema([make_property("name")], groups=[{"id": "General"}], defaultGroup="General")
        assert group_ids(organizer.organize(schema, task, {})) == ["General"]


class TestActiveTab:
    """Test active tab selection across snapshot changes."""

    @pytest.fixture
    def schema(self):
        return make_schema(
            [
                make_property("name", group="general"),
                make_property("eventDefinitionType", group="event", visibility=IS_EVENT),
            ],
            tabs=[
                {"id": "general", "order": 1, "groups": ["general"]},
                {"id": "events", "order": 2, "groups": ["event"], "visibility": IS_EVENT},
            ],
            defaultTab="events",
        )

    def test_current_tab_kept_while_visible(self, organizer, schema, start_event):
        view = organizer.organize(schema, start_event, {"type": start_event.type}, current_tab="events")
        assert view.active_tab == "events"

    def test_falls_back_when_current_tab_hidden(self, organizer, schema, task):
        view = organizer.organize(schema, task, {"type": task.type}, current_tab="events")
        assert view.active_tab == "general"

    def test_first_visible_tab_without_current(self, organizer, schema, start_event):
        view = organizer.organize(schema, start_event, {"type": start_event.type})
        assert view.active_tab == "general"

    def test_default_tab_when_nothing_visible(self, organizer, task):
        schema = make_schema(
            [make_property("eventDefinitionType", group="event", visibility=IS_EVENT)],
            tabs=[{"id": "general"}, {"id": "events", "groups": ["event"]}],
            defaultTab="events",
        )

        view = organizer.organize(schema, task, {"type": task.type})

        assert view.tabs == []
        assert view.active_tab == "events"

    def test_first_declared_tab_when_nothing_visible(self, organizer, task):
        schema = make_schema(
            [make_property("eventDefinitionType", visibility=IS_EVENT)],
            tabs=[{"id": "general"}, {"id": "events"}],
        )
        assert organizer.organize(schema, task, {"type": task.type}).active_tab == "general"


class TestPropertyViews:
    """Test the per-property view fields."""

    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"name": "a"}, PropertyInputType.TEXT),
            ({"name": "a", "options": [{"label": "x", "value": "x"}]}, PropertyInputType.SELECT),
            ({"name": "a", "type": "Boolean"}, PropertyInputType.CHECKBOX),
            ({"name": "a", "type": "Enum"}, PropertyInputType.SELECT),
            ({"name": "a", "type": "Array"}, PropertyInputType.TAGS),
            ({"name": "a", "type": "Array", "options": [{"label": "x", "value": "x"}]}, PropertyInputType.MULTISELECT),
            ({"name": "a", "type": "Script"}, PropertyInputType.CODE),
            ({"name": "a", "type": "Object"}, PropertyInputType.CARD),
            ({"name": "a", "inputType": "textarea"}, PropertyInputType.TEXTAREA),
            ({"name": "a", "customComponent": "ColorPicker"}, PropertyInputType.CUSTOM),
        ],
    )
    def test_input_type(self, data, expected):
        assert get_input_type(PropertyDefinition.model_validate(data)) == expected

    def test_value_from_snapshot(self, organizer, task):
        view = organizer.organize(make_schema([make_property("name")]), task, {"name": "Review"})
        assert view.find_property("name").value == "Review"

    def test_read_only_is_disabled(self, organizer, task):
        view = organizer.organize(make_schema([make_property("id", readOnly=True)]), task, {})
        assert view.find_property("id").disabled is True

    def test_disabled_when(self, organizer, task):
        schema = make_schema([make_property("timerUrgency", disabledWhen="always"),
                              make_property("name", disabledWhen="never")])

        view = organizer.organize(schema, task, {})

        assert view.find_property("timerUrgency").disabled is True
        assert view.find_property("name").disabled is False

    def test_conditional_styles_merge_in_order(self, organizer, task):
        schema = make_schema([make_property("priority", conditionalStyles=[
            {"condition": {"field": "priority", "operator": "equals", "value": "high"}, "style": {"color": "red"}},
            {"condition": "always", "style": {"fontWeight": "bold", "color": "black"}},
        ])])

        view = organizer.organize(schema, task, {"priority": "high"})

        assert view.find_property("priority").style == {"color": "black", "fontWeight": "bold"}

    def test_literal_options_resolved(self, organizer, task):
        schema = make_schema([make_property("format", options=[{"label": "Groovy", "value": "groovy"}])])

        options = organizer.organize(schema, task, {}).find_property("format").options

        assert [option.value for option in options.options] == ["groovy"]
        assert options.loading is False

    def test_remote_options_loading_until_known(self, organizer, task):
        schema = make_schema([make_property("assignee", options={"type": "api", "endpoint": "/users"})])

        loading = organizer.organize(schema, task, {}).find_property("assignee").options
        known = organizer.organize(
            schema, task, {}, option_states={"assignee": OptionsState(error="boom")},
        ).find_property("assignee").options

        assert loading.loading is True
        assert known.error == "boom"

    def test_no_options_for_plain_field(self, organizer, task):
        view = organizer.organize(make_schema([make_property("name")]), task, {})
        assert view.find_property("name").options is None


class TestNesting:
    """Test nested sub-property panels."""

    @pytest.fixture
    def schema(self):
        return make_schema([
            make_property("loop", type="Object", properties=[
                make_property("loop.cardinality"),
                make_property("loop.collection", visibility={"field": "loop.cardinality", "operator": "isEmpty"}),
            ]),
        ])

    def test_children_organized(self, organizer, schema, task):
        view = organizer.organize(schema, task, {"loop.cardinality": "3"})

        children = view.find_property("loop").children
        assert children.tab_ids() == [IMPLICIT_TAB_ID]
        assert children.visible_property_names() == ["loop.cardinality"]
        assert view.visible_property_names() == ["loop", "loop.cardinality"]

    def test_depth_cap(self, schema, task):
        view = SchemaOrganizer(max_depth=1).organize(schema, task, {})
        assert view.find_property("loop").children is None


class TestModuleFunction:
    """Test the ``organize`` shortcut."""

    def test_organize(self, start_event):
        view = organize(make_event_schema(), start_event, {"eventDefinitionType": "Timer"})
        assert view.visible_property_names() == ["eventDefinitionType", "timerDefinition"]
