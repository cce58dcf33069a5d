"""
Pytest fixtures for the property panel test suite.

This module provides:
1. Test environment settings (cached settings reset per test)
2. In-memory toolkit doubles
3. Common elements
"""

import pytest

from property_panel.config import get_settings
from tests.helpers.factories import make_element
from tests.helpers.modeler import InMemoryModeler


@pytest.fixture(autouse=True)
def test_settings(monkeypatch):
    """Run every test with testing settings and a fresh settings cache."""
    monkeypatch.setenv("PROPERTY_PANEL_ENVIRONMENT", "testing")
    monkeypatch.setenv("PROPERTY_PANEL_OPTIONS_BASE_URL", "http://options.test")
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def modeler():
    """In-memory toolkit exposing modeling, bpmnFactory and eventBus."""
    return InMemoryModeler()


@pytest.fixture
def task():
    return make_element(id="Task_1", type="bpmn:UserTask", name="Review order")


@pytest.fixture
def start_event():
    return make_element(id="StartEvent_1", type="bpmn:StartEvent")
