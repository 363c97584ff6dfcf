from types import SimpleNamespace

import pytest

from cissp_mastery.services.ordering import place, renumber


def _items(*names):
    return [SimpleNamespace(name=name, position_index=i * 3) for i, name in enumerate(names)]


@pytest.mark.unit
class TestOrdering:
    """Test in-memory sibling renumbering"""

    def test_renumber_closes_gaps(self):
        items = _items("a", "b", "c")
        renumber(items)
        assert [i.position_index for i in items] == [0, 1, 2]

    def test_place_appends_by_default(self):
        items = _items("a", "b")
        new = SimpleNamespace(name="z", position_index=0)
        place(items, new, None)
        assert [i.name for i in items] == ["a", "b", "z"]
        assert new.position_index == 2

    def test_place_inserts_at_position(self):
        items = _items("a", "b", "c")
        place(items, SimpleNamespace(name="z", position_index=0), 1)
        assert [(i.name, i.position_index) for i in items] == [("a", 0), ("z", 1), ("b", 2), ("c", 3)]

    def test_place_clamps_past_the_end(self):
        items = _items("a")
        place(items, SimpleNamespace(name="z", position_index=0), 10)
        assert [(i.name, i.position_index) for i in items] == [("a", 0), ("z", 1)]
