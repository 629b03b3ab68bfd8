"""Tests for pending set computation."""

from sync_planner import plan


class TestPlan:
    def test_empty_ledger_returns_all_candidates(self):
        assert plan([1, 2, 3], []) == [1, 2, 3]

    def test_subtracts_ledger(self):
        assert plan([101, 102, 103, 104, 105], [101, 102, 105]) == [103, 104]

    def test_preserves_source_order(self):
        assert plan([9, 3, 7, 1, 5], [7]) == [9, 3, 1, 5]

    def test_independent_of_ledger_order(self):
        candidates = [1, 2, 3, 4, 5, 6]
        assert plan(candidates, [6, 2, 4]) == plan(candidates, [2, 4, 6]) == [1, 3, 5]

    def test_ledger_entries_not_in_candidates_are_ignored(self):
        assert plan([4, 5], [1, 2, 3]) == [4, 5]

    def test_everything_known_gives_empty_plan(self):
        assert plan([1, 2, 3], {3, 1, 2}) == []

    def test_repeated_candidates_emitted_once(self):
        assert plan([1, 2, 2, 3, 1], []) == [1, 2, 3]

    def test_inputs_not_modified(self):
        candidates = [1, 2, 3]
        ledger = [2]
        plan(candidates, ledger)
        assert candidates == [1, 2, 3]
        assert ledger == [2]

    def test_accepts_generators(self):
        assert plan((uid for uid in range(1, 5)), (uid for uid in [2, 3])) == [1, 4]
