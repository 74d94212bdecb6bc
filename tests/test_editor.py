"""
Tests for BadgeEditor: element mutations, history wiring, templates and
dynamic field insertion.
"""
from __future__ import annotations

import json

import pytest

from badge_designer.config import DesignerSettings
from badge_designer.core.editor import BadgeEditor
from badge_designer.core.exceptions import TemplateError
from badge_designer.core.models import BadgeElement


def text(id, content="hello"):
    return BadgeElement(id, "text", {"content": content})


@pytest.fixture()
def editor():
    return BadgeEditor()


class TestElementMutations:
    def test_add_sets_active_and_records(self, editor):
        editor.add_element(text("a"))
        assert [e.id for e in editor.elements] == ["a"]
        assert editor.active_element_id == "a"
        assert editor.can_undo()

    def test_update_merges_properties(self, editor):
        editor.add_element(BadgeElement("a", "text", {"content": "x", "fontSize": 10}))
        assert editor.update_element("a", {"fontSize": 30})
        assert editor.elements[0].properties == {"content": "x", "fontSize": 30}

    def test_update_missing_element(self, editor):
        assert editor.update_element("nope", {"x": 1}) is False
        assert not editor.can_undo()

    def test_delete_clears_active(self, editor):
        editor.add_element(text("a"))
        editor.add_element(text("b"))
        assert editor.delete_element("b")
        assert editor.active_element_id is None
        assert [e.id for e in editor.elements] == ["a"]
        assert editor.delete_element("b") is False

    def test_delete_keeps_other_active(self, editor):
        editor.add_element(text("a"))
        editor.add_element(text("b"))
        editor.set_active_element("a")
        editor.delete_element("b")
        assert editor.active_element_id == "a"

    def test_reorder(self, editor):
        for i in "abc":
            editor.add_element(text(i))
        assert editor.reorder_elements(2, 0)
        assert [e.id for e in editor.elements] == ["c", "a", "b"]
        assert editor.reorder_elements(0, 5) is False

    def test_undo_redo_round(self, editor):
        editor.add_element(text("a"))
        editor.update_element("a", {"content": "changed"})

        assert editor.undo()
        assert editor.elements[0].properties["content"] == "hello"
        assert editor.undo()
        assert editor.elements == []
        assert editor.undo() is False

        assert editor.redo()
        assert editor.redo()
        assert editor.elements[0].properties["content"] == "changed"
        assert editor.redo() is False

    def test_edits_after_undo_do_not_touch_history(self, editor):
        editor.add_element(text("a"))
        editor.add_element(text("b"))
        editor.undo()
        editor.elements[0].properties["content"] = "mutated in place"
        editor.redo()
        assert editor.elements[0].properties["content"] == "hello"

    def test_history_limit_from_settings(self):
        editor = BadgeEditor(DesignerSettings(history_limit=5))
        for i in range(10):
            editor.add_element(text(str(i)))
        assert len(editor.history) == 5


class TestTemplates:
    V1 = {
        "name": "Old badge",
        "version": "1.0",
        "elements": [
            {"id": "t1", "type": "text", "x": 10, "y": 20, "rotation": 5, "text": "Hi {attendee.name}"},
            {"id": "q1", "type": "qr", "x": 30, "y": 40, "data": "{attendee.uuid}", "size": 120},
        ],
    }

    def test_load_v1_template(self, editor):
        editor.add_element(text("junk"))
        template = editor.load_template(self.V1)

        assert template.version == "2.1"
        assert editor.template_name == "Old badge"
        assert [e.id for e in editor.elements] == ["t1", "q1"]
        t1 = editor.elements[0].properties
        assert (t1["left"], t1["top"], t1["angle"], t1["content"]) == (10, 20, 5, "Hi {attendee.name}")
        assert editor.elements[1].properties["qrData"] == "{attendee.uuid}"
        # history restarts at the loaded document
        assert not editor.can_undo()
        assert editor.active_element_id is None

    def test_load_canvas_and_backgrounds(self, editor):
        editor.load_template({
            "version": "2.1",
            "canvasSize": {"width": 300, "height": 500},
            "badgeType": "double",
            "backgroundImage": {"front": "front.png", "back": "", "side": "x.png"},
            "objects": [],
        })
        assert editor.canvas_size == (300, 500)
        assert editor.badge_type == "double"
        assert editor.background_image == {"front": "front.png"}
        assert editor.current_background == "front.png"

    def test_load_json_errors(self, editor):
        with pytest.raises(TemplateError):
            editor.load_template_json("{not json")
        with pytest.raises(TemplateError):
            editor.load_template_json("[1, 2, 3]")

    def test_export_then_load(self, editor):
        editor.add_element(text("a", "{event.name}"))
        editor.set_canvas_size(320, 480)
        editor.set_badge_type("double")
        editor.set_background_image("back", "back.png")
        raw = editor.export_template().to_json()

        other = BadgeEditor()
        other.load_template_json(raw)
        assert other.elements == editor.elements
        assert other.canvas_size == (320, 480)
        assert other.badge_type == "double"
        assert other.background_image == {"back": "back.png"}
        assert json.loads(raw)["version"] == "2.1"

    def test_clear_canvas(self, editor):
        editor.add_element(text("a"))
        editor.clear_canvas()
        assert editor.elements == []
        assert not editor.can_undo()
        assert editor.active_element is None


class TestCanvasSettings:
    def test_invalid_canvas_size(self, editor):
        with pytest.raises(ValueError):
            editor.set_canvas_size(0, 100)

    def test_invalid_badge_type_and_side(self, editor):
        with pytest.raises(ValueError):
            editor.set_badge_type("triple")
        with pytest.raises(ValueError):
            editor.set_current_side("left")
        with pytest.raises(ValueError):
            editor.set_background_image("middle", "x.png")

    def test_background_per_side(self, editor):
        editor.set_background_image("front", "f.png")
        editor.set_background_image("back", "b.png")
        editor.set_current_side("back")
        assert editor.current_background == "b.png"
        editor.set_background_image("back", None)
        assert editor.current_background is None


class TestInsertField:
    def test_appends_to_text(self, editor):
        editor.add_element(text("t", "Name:"))
        assert editor.insert_field("{attendee.name}")
        assert editor.elements[0].properties["content"] == "Name: {attendee.name}"

    def test_sets_qr_payload(self, editor):
        editor.add_element(BadgeElement("q", "qr", {"qrData": "old"}))
        assert editor.insert_field("{attendee.uuid}")
        props = editor.elements[0].properties
        assert props["qrData"] == "{attendee.uuid}"
        assert props["dynamicField"] == "{attendee.uuid}"

    def test_other_types_untouched(self, editor):
        editor.add_element(BadgeElement("s", "shape", {}))
        assert editor.insert_field("{attendee.name}") is False
        assert editor.elements[0].properties == {}

    def test_no_active_element(self, editor):
        assert editor.insert_field("{attendee.name}") is False

    def test_insert_is_undoable(self, editor):
        editor.add_element(text("t", "Name:"))
        editor.insert_field("{attendee.name}")
        editor.undo()
        assert editor.elements[0].properties["content"] == "Name:"
