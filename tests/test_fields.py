"""
Tests for {entity.field} resolution and field discovery.
"""

import pytest

from badge_designer.core.fields import (
    AVAILABLE_FIELDS,
    DEFAULT_SAMPLE_DATA,
    catalog_tokens,
    extract_dynamic_fields,
    find_field_tokens,
    resolve_dynamic_fields,
)
from badge_designer.core.models import BadgeElement


@pytest.fixture()
def data():
    return {
        "attendee": {"name": "Alice", "company": "Acme", "badge_no": 42},
        "event": {"name": "PyCon", "date": "2024-12-15"},
    }


class TestResolve:
    def test_single_token(self, data):
        assert resolve_dynamic_fields("Hi {attendee.name}!", data) == "Hi Alice!"

    def test_multiple_tokens(self, data):
        out = resolve_dynamic_fields("{attendee.name} @ {event.name}", data)
        assert out == "Alice @ PyCon"

    def test_same_token_twice(self, data):
        assert resolve_dynamic_fields("{attendee.name}/{attendee.name}", data) == "Alice/Alice"

    def test_numbers_are_stringified(self, data):
        assert resolve_dynamic_fields("#{attendee.badge_no}", data) == "#42"

    def test_missing_field_left_untouched(self, data):
        assert resolve_dynamic_fields("{attendee.phone}", data) == "{attendee.phone}"

    def test_missing_entity_left_untouched(self, data):
        assert resolve_dynamic_fields("{guest_type.name}", data) == "{guest_type.name}"

    def test_mixed_known_and_unknown(self, data):
        out = resolve_dynamic_fields("A={attendee.name} B={attendee.nope}", data)
        assert out == "A=Alice B={attendee.nope}"

    def test_case_sensitive(self, data):
        assert resolve_dynamic_fields("{Attendee.Name}", data) == "{Attendee.Name}"

    @pytest.mark.parametrize("text", [
        "{attendee}",
        "{attendee.}",
        "{.name}",
        "{attendee.first-name}",
        "{attendee.name.extra}",
        "{{attendee.name}",
    ])
    def test_grammar(self, data, text):
        out = resolve_dynamic_fields(text, data)
        if text == "{{attendee.name}":
            # the inner token is still well formed
            assert out == "{Alice"
        else:
            assert out == text

    def test_empty_and_none(self, data):
        assert resolve_dynamic_fields("", data) == ""
        assert resolve_dynamic_fields(None, data) is None

    def test_no_data_returns_template(self):
        assert resolve_dynamic_fields("{attendee.name}", None) == "{attendee.name}"
        assert resolve_dynamic_fields("{attendee.name}", {}) == "{attendee.name}"

    def test_non_mapping_entity_left_untouched(self):
        assert resolve_dynamic_fields("{attendee.name}", {"attendee": "Alice"}) == "{attendee.name}"


class TestResolveProperties:
    @pytest.mark.parametrize("template", [
        "Hello {attendee.name}",
        "{attendee.name} {attendee.missing} {event.date}",
        "{nobody.home}",
        "plain text",
        "",
    ])
    def test_idempotent(self, data, template):
        once = resolve_dynamic_fields(template, data)
        assert resolve_dynamic_fields(once, data) == once

    def test_substituted_value_is_not_rescanned(self):
        tricky = {"attendee": {"name": "{event.name}"}, "event": {"name": "PyCon"}}
        assert resolve_dynamic_fields("{attendee.name}", tricky) == "{event.name}"


class TestFieldDiscovery:
    def test_find_tokens_ordered_and_distinct(self):
        tokens = find_field_tokens("{a.b} {c.d} {a.b}")
        assert tokens == ["{a.b}", "{c.d}"]

    def test_find_tokens_non_string(self):
        assert find_field_tokens(None) == []
        assert find_field_tokens(123) == []

    def test_extract_across_elements(self):
        elements = [
            BadgeElement("t1", "text", {"content": "Hi {attendee.name}"}),
            BadgeElement("q1", "qr", {"qrData": "{attendee.uuid}", "dynamicField": "{attendee.uuid}"}),
            BadgeElement("tb", "table", {"cells": [
                {"row": 0, "col": 0, "content": "{event.name}"},
                {"row": 0, "col": 1},
                "garbage",
            ]}),
            BadgeElement("s1", "shape", {}),
            BadgeElement("e1", "text", {"content": None}),
        ]
        assert extract_dynamic_fields(elements) == [
            "{attendee.name}",
            "{attendee.uuid}",
            "{event.name}",
        ]

    def test_extract_empty(self):
        assert extract_dynamic_fields([]) == []


class TestCatalog:
    def test_catalog_categories(self):
        assert [g["category"] for g in AVAILABLE_FIELDS] == ["Attendee", "Event", "Guest Type"]

    def test_every_catalog_token_resolves_against_sample_data(self):
        for token in catalog_tokens():
            assert resolve_dynamic_fields(token, DEFAULT_SAMPLE_DATA) != token
