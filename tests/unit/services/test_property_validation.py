"""
Unit tests for property validation rules.
"""

import pytest

from property_panel.models.contracts.schema import PropertyDefinition
from property_panel.services.property_validation import validate_property, validate_snapshot
from property_panel.services.schema_organizer import SchemaOrganizer
from tests.helpers.factories import make_property, make_schema


def rules_of(issues):
    return [issue.rule for issue in issues]


def prop_with(**validation):
    return PropertyDefinition(name="field", label="Field", validation=validation)


class TestRequired:
    """Test the required rule and blank values."""

    @pytest.mark.parametrize("value", [None, "", "   ", []])
    def test_blank_fails(self, value):
        issues = validate_property(prop_with(required=True), value)
        assert rules_of(issues) == ["required"]
        assert issues[0].message == "Field is required"

    def test_blank_skips_other_rules(self):
        assert validate_property(prop_with(minLength=3, pattern="^x"), "") == []

    def test_zero_and_false_are_present(self):
        assert validate_property(prop_with(required=True), 0) == []
        assert validate_property(prop_with(required=True), False) == []


class TestRules:
    """Test the individual rules."""

    def test_min_max(self):
        assert rules_of(validate_property(prop_with(min=1, max=10), 0)) == ["min"]
        assert rules_of(validate_property(prop_with(min=1, max=10), 11)) == ["max"]
        assert validate_property(prop_with(min=1, max=10), 5) == []

    def test_min_ignored_for_strings(self):
        assert validate_property(prop_with(min=1), "0") == []

    def test_length(self):
        assert rules_of(validate_property(prop_with(minLength=3), "ab")) == ["minLength"]
        assert rules_of(validate_property(prop_with(maxLength=3), "abcd")) == ["maxLength"]

    def test_pattern(self):
        assert validate_property(prop_with(pattern=r"^P(T\d+[HMS])+$"), "PT5M") == []
        assert rules_of(validate_property(prop_with(pattern=r"^P(T\d+[HMS])+$"), "5 minutes")) == ["pattern"]

    def test_invalid_pattern_is_skipped(self):
        assert validate_property(prop_with(pattern="("), "x") == []

    @pytest.mark.parametrize(
        "fmt,good,bad",
        [
            ("email", "ada@example.com", "ada@"),
            ("url", "https://example.com/x", "example.com"),
            ("alphanumeric", "Task_1", "Task-1"),
            ("numeric", "-1.5", "1e3"),
        ],
    )
    def test_formats(self, fmt, good, bad):
        assert validate_property(prop_with(format=fmt), good) == []
        assert rules_of(validate_property(prop_with(format=fmt), bad)) == ["format"]

    @pytest.mark.parametrize(
        "fmt,bad",
        [
            ("email", "ada@example..com"),
            ("email", "ada@example"),
            ("url", "https://example.com:99999"),
            ("url", "ftp://example.com"),
        ],
    )
    def test_rejects_malformed_email_and_url(self, fmt, bad):
        assert rules_of(validate_property(prop_with(format=fmt), bad)) == ["format"]

    def test_unique_against_siblings(self):
        issues = validate_property(prop_with(unique=True), "Task_1", siblings=["Task_1", "Task_2"])
        assert rules_of(issues) == ["unique"]

    def test_rule_list_messages(self):
        prop = PropertyDefinition(name="field", validation=[
            {"type": "required", "message": "Please fill in"},
            {"type": "maxLength", "value": 2, "message": "Too long"},
        ])

        assert validate_property(prop, None)[0].message == "Please fill in"
        assert validate_property(prop, "abc")[0].message == "Too long"

    def test_shared_error_message(self):
        prop = PropertyDefinition(name="field", validation={"minLength": 5, "errorMessage": "Nope"})
        assert validate_property(prop, "ab")[0].message == "Nope"


class TestCustomValidator:
    """Test custom validator outcomes."""

    def test_called_with_value_values_element(self):
        calls = []

        def check(value, values, element):
            calls.append((value, values, element))
            return True

        validate_property(prop_with(customValidator=check), "x", values={"a": 1}, element="el")

        assert calls == [("x", {"a": 1}, "el")]

    def test_false_uses_default_message(self):
        issues = validate_property(prop_with(customValidator=lambda v, vs, e: False), "x")
        assert issues[0].message == "Field is invalid"

    def test_string_is_message(self):
        issues = validate_property(prop_with(customValidator=lambda v, vs, e: "Not an ISO duration"), "x")
        assert issues[0].message == "Not an ISO duration"

    def test_failure_is_an_issue(self):
        def broken(value, values, element):
            raise RuntimeError("boom")

        issues = validate_property(prop_with(customValidator=broken), "x")
        assert rules_of(issues) == ["custom"]


class TestSnapshot:
    """Test validating every visible property of a panel."""

    def test_only_visible_properties(self, task):
        schema = make_schema([
            make_property("name", validation={"required": True}),
            make_property("hidden", validation={"required": True}, visibility="never"),
        ])
        panel = SchemaOrganizer().organize(schema, task, {})

        issues = validate_snapshot(panel, {})

        assert [(issue.property, issue.rule) for issue in issues] == [("name", "required")]
