"""Tests for bounded pin lists."""
from core.pinning import MAX_PINNED, pin_id, unpin_id


class TestPinId:
    def test_appends_in_pin_order(self):
        assert pin_id(["a", "b"], "c") == ["a", "b", "c"]

    def test_full_list_evicts_earliest(self):
        """Pinning a fourth item drops the first one pinned."""
        pinned = []
        for item in ["A", "B", "C", "D"]:
            pinned = pin_id(pinned, item)
        assert pinned == ["B", "C", "D"]

    def test_never_exceeds_capacity(self):
        pinned = []
        for i in range(20):
            pinned = pin_id(pinned, str(i))
            assert len(pinned) <= MAX_PINNED
        assert pinned == ["17", "18", "19"]

    def test_already_pinned_is_noop(self):
        assert pin_id(["a", "b", "c"], "a") == ["a", "b", "c"]

    def test_ids_are_stringified(self):
        assert pin_id([1, 2], 3) == ["1", "2", "3"]

    def test_does_not_mutate_input(self):
        original = ["a", "b", "c"]
        pin_id(original, "d")
        assert original == ["a", "b", "c"]

    def test_custom_capacity(self):
        assert pin_id(["a"], "b", capacity=1) == ["b"]

    def test_list_over_capacity_is_trimmed(self):
        assert pin_id(["a", "b", "c", "d"], "e", capacity=3) == ["c", "d", "e"]


class TestUnpinId:
    def test_removes_and_keeps_order(self):
        assert unpin_id(["a", "b", "c"], "b") == ["a", "c"]

    def test_missing_id_is_noop(self):
        assert unpin_id(["a"], "z") == ["a"]

    def test_matches_numeric_ids(self):
        assert unpin_id(["1", "2"], 1) == ["2"]
