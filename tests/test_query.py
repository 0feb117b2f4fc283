"""Tests for branch listings and branch logs."""

from __future__ import annotations

import pytest

from kiwibranch import BranchKind, BranchNotFoundError

from conftest import populate_branch


class TestListBranches:
    def test_newest_first(self, kiwi):
        populate_branch(kiwi, "root", ["m1", "m2"])
        fork = kiwi.fork("root", "u1").branch.id
        merged = kiwi.merge("root", fork, "u1").branch.id

        ids = [s.branch.id for s in kiwi.list_branches("u1")]
        assert ids == [merged, fork, "root"]

    def test_counts_are_shallow(self, kiwi):
        m1, _ = populate_branch(kiwi, "root", ["m1", "m2"])
        fork = kiwi.fork("root", "u1", m1.id).branch.id
        kiwi.append(fork, "only in fork")
        merged = kiwi.merge("root", fork, "u1").branch.id

        counts = {s.branch.id: s.message_count for s in kiwi.list_branches("u1")}
        assert counts == {"root": 2, fork: 2, merged: 4}

    def test_kinds(self, kiwi):
        populate_branch(kiwi, "root", ["m1"])
        fork = kiwi.fork("root", "u1").branch.id
        kiwi.merge("root", fork, "u1")

        kinds = [s.branch.kind for s in kiwi.list_branches("u1")]
        assert kinds == [BranchKind.MERGE, BranchKind.FORK, BranchKind.ROOT]

    def test_only_own_branches(self, kiwi):
        populate_branch(kiwi, "mine", ["m1"], user_id="u1")
        populate_branch(kiwi, "theirs", ["m1"], user_id="u2")
        kiwi.fork("mine", "u2")

        assert [s.branch.id for s in kiwi.list_branches("u1")] == ["mine"]
        assert len(kiwi.list_branches("u2")) == 2

    def test_unknown_user(self, kiwi):
        assert kiwi.list_branches("nobody") == []

    def test_empty_branch_has_zero_count(self, kiwi):
        kiwi.create_branch("u1", branch_id="empty")
        (summary,) = kiwi.list_branches("u1")
        assert summary.message_count == 0


class TestGetConversation:
    def test_fork_excludes_later_parent_messages(self, kiwi):
        populate_branch(kiwi, "root", ["m1"])
        fork = kiwi.fork("root", "u1").branch.id
        kiwi.append("root", "after fork")

        assert [m.content for m in kiwi.get_conversation(fork)] == ["m1"]

    def test_parent_excludes_fork_messages(self, kiwi):
        populate_branch(kiwi, "root", ["m1"])
        fork = kiwi.fork("root", "u1").branch.id
        kiwi.append(fork, "fork only")

        assert [m.content for m in kiwi.get_conversation("root")] == ["m1"]

    def test_unknown_branch(self, kiwi):
        with pytest.raises(BranchNotFoundError):
            kiwi.get_conversation("ghost")

    def test_empty_branch(self, kiwi):
        kiwi.create_branch("u1", branch_id="empty")
        assert kiwi.get_conversation("empty") == []
