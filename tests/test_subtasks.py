"""
Venture OS
Tests — embedded subtask checklist (pure functions).
"""

from venture_os.services import subtasks


class TestSubtaskList:
    def test_add_appends_uncompleted_item(self):
        result = subtasks.add([], "  Write tests  ")
        assert len(result) == 1
        assert result[0]["title"] == "Write tests"
        assert result[0]["completed"] is False
        assert result[0]["id"]

    def test_add_returns_new_list(self):
        original = [{"id": "a", "title": "One", "completed": False}]
        result = subtasks.add(original, "Two")
        assert len(original) == 1
        assert [s["title"] for s in result] == ["One", "Two"]

    def test_add_to_none(self):
        assert len(subtasks.add(None, "First")) == 1

    def test_toggle_sets_completed(self):
        items = [{"id": "a", "title": "One", "completed": False},
                 {"id": "b", "title": "Two", "completed": False}]
        result = subtasks.toggle(items, "b", True)
        assert result[1]["completed"] is True
        assert result[0]["completed"] is False
        assert items[1]["completed"] is False

    def test_toggle_unknown_id_is_noop(self):
        items = [{"id": "a", "title": "One", "completed": True}]
        assert subtasks.toggle(items, "missing", False) == items

    def test_remove(self):
        items = [{"id": "a", "title": "One", "completed": False},
                 {"id": "b", "title": "Two", "completed": True}]
        assert [s["id"] for s in subtasks.remove(items, "a")] == ["b"]

    def test_remove_unknown_id_keeps_everything(self):
        items = [{"id": "a", "title": "One", "completed": False}]
        assert subtasks.remove(items, "zzz") == items


class TestSubtaskProgress:
    def test_empty_list_is_zero(self):
        assert subtasks.progress([]) == 0
        assert subtasks.progress(None) == 0

    def test_all_done(self):
        items = [{"id": str(i), "title": "x", "completed": True} for i in range(3)]
        assert subtasks.progress(items) == 100

    def test_rounds_to_nearest(self):
        items = [{"id": str(i), "title": "x", "completed": i == 0} for i in range(3)]
        assert subtasks.progress(items) == 33

    def test_half_rounds_up(self):
        items = [{"id": str(i), "title": "x", "completed": i == 0} for i in range(8)]
        assert subtasks.progress(items) == 13

    def test_two_of_three(self):
        items = [{"id": str(i), "title": "x", "completed": i < 2} for i in range(3)]
        assert subtasks.progress(items) == 67
