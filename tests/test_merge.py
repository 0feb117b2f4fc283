"""Tests for the merge operation.

Covers timestamp interleaving, the source-before-target tie rule,
dual lineage on copies, no deduplication, failure before any write,
and partial copies.
"""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from kiwibranch import (
    BranchExistsError,
    BranchKind,
    BranchNotFoundError,
    KiwiConfig,
    Kiwi,
)
from kiwibranch.operations.merge import interleave

from conftest import FlakyMessageRepository, at, populate_branch


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _scenario(k) -> tuple[list, list]:
    """Branch A = [m1@t1, m2@t2, m3@t3], branch B = [n1@t2]."""
    a = populate_branch(k, "A", ["m1", "m2", "m3"], start=1)
    b = populate_branch(k, "B", ["n1"], start=2)
    return a, b


def _contents(k, branch_id: str) -> list[str]:
    return [m.content for m in k.get_conversation(branch_id)]


# ---------------------------------------------------------------------------
# Interleave
# ---------------------------------------------------------------------------


class TestInterleave:
    def test_orders_by_time(self):
        source = [SimpleNamespace(id="s1", created_at=at(1)), SimpleNamespace(id="s2", created_at=at(3))]
        target = [SimpleNamespace(id="t1", created_at=at(2))]
        assert [m.id for m in interleave(source, target)] == ["s1", "t1", "s2"]

    def test_ties_source_first(self):
        source = [SimpleNamespace(id="s", created_at=at(1))]
        target = [SimpleNamespace(id="t", created_at=at(1))]
        assert [m.id for m in interleave(source, target)] == ["s", "t"]
        assert [m.id for m in interleave(target, source)] == ["t", "s"]

    def test_each_side_keeps_its_order_on_ties(self):
        source = [SimpleNamespace(id=f"s{i}", created_at=at(0)) for i in range(3)]
        target = [SimpleNamespace(id=f"t{i}", created_at=at(0)) for i in range(2)]
        assert [m.id for m in interleave(source, target)] == ["s0", "s1", "s2", "t0", "t1"]

    def test_empty_sides(self):
        only = [SimpleNamespace(id="x", created_at=at(0))]
        assert interleave([], []) == []
        assert interleave(only, []) == only
        assert interleave([], only) == only


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


class TestMerge:
    def test_scenario_a_source(self, kiwi):
        _scenario(kiwi)
        result = kiwi.merge("A", "B", "u1")
        assert result.merged_count == 4
        assert _contents(kiwi, result.branch.id) == ["m1", "m2", "n1", "m3"]

    def test_scenario_b_source(self, kiwi):
        _scenario(kiwi)
        result = kiwi.merge("B", "A", "u1")
        assert result.merged_count == 4
        assert _contents(kiwi, result.branch.id) == ["m1", "n1", "m2", "m3"]

    def test_merged_log_sorted(self, kiwi):
        populate_branch(kiwi, "A", ["a1", "a2", "a3"], start=0, step=2)
        populate_branch(kiwi, "B", ["b1", "b2", "b3"], start=1, step=2)
        result = kiwi.merge("A", "B", "u1")
        log = kiwi.get_conversation(result.branch.id)
        assert [m.content for m in log] == ["a1", "b1", "a2", "b2", "a3", "b3"]
        assert [m.created_at for m in log] == sorted(m.created_at for m in log)

    def test_branch_lineage(self, kiwi):
        _scenario(kiwi)
        branch = kiwi.merge("A", "B", "u2").branch
        assert branch.kind == BranchKind.MERGE
        assert branch.merge_source_ids == ["A", "B"]
        assert branch.parent_id is None
        assert branch.fork_point_message_id is None
        assert branch.user_id == "u2"

    def test_copies_carry_both_pointers(self, kiwi):
        a, b = _scenario(kiwi)
        sources = {m.id: m.branch_id for m in a + b}
        log = kiwi.get_conversation(kiwi.merge("A", "B", "u1").branch.id)

        for copy in log:
            assert copy.original_branch_id == sources[copy.original_message_id]
            assert copy.id not in sources

    def test_inputs_untouched(self, kiwi):
        _scenario(kiwi)
        before_a, before_b = kiwi.get_conversation("A"), kiwi.get_conversation("B")
        kiwi.merge("A", "B", "u1")
        assert kiwi.get_conversation("A") == before_a
        assert kiwi.get_conversation("B") == before_b

    def test_no_deduplication(self, kiwi):
        """A fork shares history with its parent; merging keeps both copies."""
        populate_branch(kiwi, "A", ["m1", "m2"])
        fork = kiwi.fork("A", "u1").branch.id
        result = kiwi.merge("A", fork, "u1")
        assert result.merged_count == 4
        assert _contents(kiwi, result.branch.id) == ["m1", "m1", "m2", "m2"]

    def test_merge_with_itself(self, kiwi):
        populate_branch(kiwi, "A", ["m1"])
        assert kiwi.merge("A", "A", "u1").merged_count == 2

    def test_merge_empty_branches(self, kiwi):
        kiwi.create_branch("u1", branch_id="e1")
        kiwi.create_branch("u1", branch_id="e2")
        result = kiwi.merge("e1", "e2", "u1")
        assert result.merged_count == 0
        assert result.partial is False

    def test_merge_then_fork(self, kiwi):
        _scenario(kiwi)
        merged = kiwi.merge("A", "B", "u1").branch.id
        result = kiwi.fork(merged, "u1")
        assert result.copied_count == 4
        assert result.branch.parent_id == merged


class TestMergeErrors:
    @pytest.mark.parametrize("source,target", [("ghost", "A"), ("A", "ghost")])
    def test_missing_branch_creates_nothing(self, kiwi, source, target):
        populate_branch(kiwi, "A", ["m1"])
        with pytest.raises(BranchNotFoundError):
            kiwi.merge(source, target, "u1")
        assert [s.branch.id for s in kiwi.list_branches("u1")] == ["A"]

    def test_explicit_branch_id_taken(self, kiwi):
        _scenario(kiwi)
        with pytest.raises(BranchExistsError):
            kiwi.merge("A", "B", "u1", branch_id="A")


class TestMergePartialCopy:
    def test_failed_copies_reported(self, session):
        k = Kiwi.from_components(session=session)
        a, (n1,) = _scenario(k)

        flaky = Kiwi.from_components(
            session=session,
            message_repo=FlakyMessageRepository(session, {n1.id, a[0].id}),
        )
        result = flaky.merge("A", "B", "u1")

        assert result.partial is True
        assert result.merged_count == len(a) + 1 - 2
        assert [f.source_message_id for f in result.failures] == [a[0].id, n1.id]
        assert all("disk I/O error" in f.error for f in result.failures)
        assert flaky.get_branch(result.branch.id).kind == BranchKind.MERGE
        assert _contents(flaky, result.branch.id) == ["m2", "m3"]

    def test_bulk_failure_recovered_row_by_row(self, session):
        k = Kiwi.from_components(session=session)
        _scenario(k)

        flaky = Kiwi.from_components(
            session=session, message_repo=FlakyMessageRepository(session, set())
        )
        result = flaky.merge("A", "B", "u1")
        assert result.partial is False
        assert result.failures == []
        assert _contents(flaky, result.branch.id) == ["m1", "m2", "n1", "m3"]


class TestMergeResume:
    def test_deterministic_resume(self, session):
        k = Kiwi.from_components(session=session, config=KiwiConfig(copy_ids="deterministic"))
        _scenario(k)
        first = k.merge("A", "B", "u1", branch_id="mrg")
        second = k.merge("A", "B", "u1", branch_id="mrg")

        assert first.resumed is False
        assert second.resumed is True
        assert second.merged_count == 4
        assert len(k.get_conversation("mrg")) == 4

    def test_resume_requires_same_pair(self, session):
        k = Kiwi.from_components(session=session, config=KiwiConfig(copy_ids="deterministic"))
        _scenario(k)
        k.merge("A", "B", "u1", branch_id="mrg")
        with pytest.raises(BranchExistsError):
            k.merge("B", "A", "u1", branch_id="mrg")
