"""Tests for the panel HTTP endpoints."""

import httpx
import pytest
from fastapi.testclient import TestClient

from property_panel.main import create_app
from property_panel.models.contracts.panel import ElementPayload, PanelRequest
from property_panel.services.option_resolver import OptionResolver
from tests.helpers.factories import make_property, make_schema


def remote_options(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/broken":
        return httpx.Response(500)
    return httpx.Response(200, json=[{"id": "u1", "name": "Ada"}])


@pytest.fixture
def schema():
    return make_schema(
        [
            make_property("eventDefinitionType", type="Enum", group="event", options=[
                {"label": "None", "value": "None"},
                {"label": "Message", "value": "Message"},
                {"label": "Timer", "value": "Timer"},
            ]),
            make_property("timerDefinition", group="timer", visibility={
                "condition": {"field": "eventDefinitionType", "operator": "equals", "value": "Timer"},
                "dependsOn": ["eventDefinitionType"],
            }),
            make_property("name", group="general", validation={"required": True}),
            make_property("assignee", group="general", options={"type": "api", "endpoint": "/users"}),
            make_property("broken", group="general", options={"type": "api", "endpoint": "/broken"}),
        ],
        groups=[
            {"id": "general", "order": 0},
            {"id": "event", "label": "Event", "order": 10},
            {"id": "timer", "label": "Timer", "order": 20},
        ],
    )


@pytest.fixture
def client(schema):
    app = create_app()
    app.state.panel_schema = schema
    app.state.option_resolver = OptionResolver(
        client=httpx.AsyncClient(transport=httpx.MockTransport(remote_options), base_url="http://options.test"),
    )
    return TestClient(app)


START_EVENT = {
    "id": "StartEvent_1",
    "type": "bpmn:StartEvent",
    "businessObject": {"name": "Order received", "eventDefinitions": [{"$type": "bpmn:TimerEventDefinition"}]},
}


class TestPanelRequest:
    """Test request body parsing."""

    def test_element_payload_aliases(self):
        body = PanelRequest.model_validate({"element": START_EVENT, "activeTab": "events"})

        element = body.element.to_element()

        assert element.business_object["name"] == "Order received"
        assert body.active_tab == "events"
        assert body.values is None

    def test_nested_parent(self):
        payload = ElementPayload.model_validate({
            "id": "Start_1",
            "type": "bpmn:StartEvent",
            "parent": {"id": "Sub_1", "type": "bpmn:SubProcess", "businessObject": {"triggeredByEvent": True}},
        })
        assert payload.to_element().parent.business_object == {"triggeredByEvent": True}


class TestSchemaEndpoint:
    """Test GET /api/panel/schema."""

    def test_returns_schema(self, client):
        response = client.get("/api/panel/schema")

        assert response.status_code == 200
        names = [prop["name"] for prop in response.json()["properties"]]
        assert names[:2] == ["eventDefinitionType", "timerDefinition"]

    def test_schema_not_loaded(self):
        response = TestClient(create_app()).get("/api/panel/schema")
        assert response.status_code == 503


class TestOrganizeEndpoint:
    """Test POST /api/panel/organize."""

    def test_snapshot_read_from_element(self, client):
        response = client.post("/api/panel/organize", json={"element": START_EVENT})

        assert response.status_code == 200
        data = response.json()
        assert data["values"]["eventDefinitionType"] == "Timer"
        groups = [group["id"] for group in data["tabs"][0]["groups"]]
        assert groups == ["general", "event", "timer"]

    def test_values_override_snapshot(self, client):
        response = client.post(
            "/api/panel/organize",
            json={"element": START_EVENT, "values": {"eventDefinitionType": "Message"}},
        )

        groups = [group["id"] for group in response.json()["tabs"][0]["groups"]]
        assert "timer" not in groups

    def test_remote_options_reported_as_loading(self, client):
        data = client.post("/api/panel/organize", json={"element": START_EVENT}).json()

        props = {prop["name"]: prop for group in data["tabs"][0]["groups"] for prop in group["properties"]}
        assert props["assignee"]["options"]["loading"] is True

    def test_invalid_body(self, client):
        response = client.post("/api/panel/organize", json={"element": {"id": "x"}})
        assert response.status_code == 422


class TestOptionsEndpoint:
    """Test POST /api/panel/options/{property_name}."""

    def test_remote_options(self, client):
        response = client.post("/api/panel/options/assignee", json={"element": START_EVENT})

        assert response.status_code == 200
        assert response.json()["options"] == [
            {"label": "Ada", "value": "u1", "description": None, "icon": None,
             "disabled": False, "color": None, "children": None},
        ]

    def test_literal_options(self, client):
        response = client.post("/api/panel/options/eventDefinitionType", json={"element": START_EVENT})
        assert [option["value"] for option in response.json()["options"]] == ["None", "Message", "Timer"]

    def test_remote_failure_is_error_not_status(self, client):
        response = client.post("/api/panel/options/broken", json={"element": START_EVENT})

        assert response.status_code == 200
        assert response.json()["options"] == []
        assert "500" in response.json()["error"]

    def test_unknown_property(self, client):
        response = client.post("/api/panel/options/ghost", json={"element": START_EVENT})
        assert response.status_code == 404


class TestValidateEndpoint:
    """Test POST /api/panel/validate."""

    def test_valid(self, client):
        response = client.post("/api/panel/validate", json={"element": START_EVENT})
        assert response.json() == {"valid": True, "issues": []}

    def test_required_name(self, client):
        response = client.post(
            "/api/panel/validate",
            json={"element": START_EVENT, "values": {"name": ""}},
        )

        assert response.json() == {
            "valid": False,
            "issues": [{"property": "name", "rule": "required", "message": "name is required"}],
        }
