"""
Tests for the bounded undo/redo history.
"""
from __future__ import annotations

import pytest

from badge_designer.core.history import History
from badge_designer.core.models import BadgeDocument, BadgeElement


def doc(*ids):
    return BadgeDocument([BadgeElement(i, "text", {"content": i}) for i in ids])


class TestHistory:
    def test_starts_with_one_state(self):
        h = History()
        assert len(h) == 1
        assert h.cursor == 0
        assert not h.can_undo()
        assert not h.can_redo()
        assert h.undo() is None
        assert h.redo() is None

    def test_limit_keeps_newest_states(self):
        h = History(limit=20)
        for i in range(25):
            h.record(doc(f"e{i}"))
        assert len(h) == 20
        assert h.cursor == 19
        assert h.current.elements[0].id == "e24"

        # walk all the way back: the oldest kept state is e5
        while h.can_undo():
            restored = h.undo()
        assert restored.elements[0].id == "e5"
        assert h.cursor == 0

    def test_undo_redo(self):
        h = History(doc())
        h.record(doc("a"))
        h.record(doc("a", "b"))

        assert h.undo() == doc("a")
        assert h.undo() == doc()
        assert h.undo() is None
        assert h.redo() == doc("a")
        assert h.redo() == doc("a", "b")
        assert h.redo() is None

    def test_record_after_undo_drops_redo_branch(self):
        h = History(doc())
        h.record(doc("a"))
        h.record(doc("a", "b"))
        h.undo()
        h.record(doc("a", "c"))

        assert not h.can_redo()
        assert h.redo() is None
        assert len(h) == 3
        assert h.current == doc("a", "c")

    def test_snapshots_are_independent_of_live_document(self):
        live = doc("a")
        h = History(doc())
        h.record(live)
        live.elements[0].properties["content"] = "changed"
        live.elements.append(BadgeElement("b", "text", {}))

        assert h.current == doc("a")

    def test_restored_documents_are_independent_of_history(self):
        h = History(doc())
        h.record(doc("a"))
        restored = h.undo()
        restored.elements.append(BadgeElement("x", "text", {}))
        assert h.current == doc()
        assert h.redo() == doc("a")

    def test_cursor_always_valid(self):
        h = History(limit=3)
        for i in range(10):
            h.record(doc(str(i)))
            assert 0 <= h.cursor < len(h) <= 3

    def test_reset(self):
        h = History(doc())
        h.record(doc("a"))
        h.reset(doc("z"))
        assert len(h) == 1
        assert h.current == doc("z")
        assert not h.can_undo()

    def test_invalid_limit(self):
        with pytest.raises(ValueError):
            History(limit=0)
