"""Tests for the message log: append, flags, edits and deletion.

Covers implicit root creation on first append, validation before any
write, and per-message pin/bookmark/update/remove.
"""

from __future__ import annotations

from datetime import timedelta, timezone

import pytest

from kiwibranch import (
    BranchKind,
    BranchNotFoundError,
    MessageNotFoundError,
    MessageRole,
    RequestValidationError,
)

from conftest import at


# ---------------------------------------------------------------------------
# Append
# ---------------------------------------------------------------------------


class TestAppend:
    def test_first_message_creates_root_branch(self, kiwi):
        msg = kiwi.append("conv-1", "Hi", user_id="u1")

        branch = kiwi.get_branch("conv-1")
        assert branch.kind == BranchKind.ROOT
        assert branch.user_id == "u1"
        assert msg.branch_id == "conv-1"
        assert msg.role == MessageRole.USER

    def test_append_to_existing_branch_without_user(self, kiwi):
        kiwi.append("conv-1", "Hi", user_id="u1")
        reply = kiwi.append("conv-1", "Hello!", role="assistant")
        assert reply.role == MessageRole.ASSISTANT
        assert len(kiwi.get_conversation("conv-1")) == 2

    def test_append_unknown_branch_without_user_fails(self, kiwi):
        with pytest.raises(BranchNotFoundError):
            kiwi.append("ghost", "Hi")

    def test_append_does_not_change_branch_owner(self, kiwi):
        kiwi.append("conv-1", "Hi", user_id="u1")
        kiwi.append("conv-1", "Again", user_id="u2")
        assert kiwi.get_branch("conv-1").user_id == "u1"

    def test_metadata_stored(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1", metadata={"source": "import"})
        assert kiwi.get_message(msg.id).metadata == {"source": "import"}

    def test_explicit_timestamp(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1", created_at=at(42))
        assert msg.created_at == at(42)

    def test_aware_timestamp_stored_as_utc(self, kiwi):
        plus_two = timezone(timedelta(hours=2))
        aware = at(42).replace(tzinfo=timezone.utc).astimezone(plus_two)
        msg = kiwi.append("c", "Hi", user_id="u1", created_at=aware)
        earlier = kiwi.append("c", "Before", created_at=at(10))

        assert msg.created_at == at(42)
        assert kiwi.get_message(msg.id).created_at == at(42)
        assert [m.id for m in kiwi.get_conversation("c")] == [earlier.id, msg.id]

    def test_new_message_flags_cleared(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1")
        assert msg.is_pinned is False
        assert msg.is_bookmarked is False
        assert msg.original_message_id is None


class TestAppendValidation:
    def test_empty_content(self, kiwi):
        with pytest.raises(RequestValidationError) as exc_info:
            kiwi.append("c", "", user_id="u1")
        assert exc_info.value.field == "content"

    def test_empty_branch_id(self, kiwi):
        with pytest.raises(RequestValidationError) as exc_info:
            kiwi.append("", "Hi", user_id="u1")
        assert exc_info.value.field == "branch_id"

    def test_unknown_role(self, kiwi):
        with pytest.raises(RequestValidationError) as exc_info:
            kiwi.append("c", "Hi", user_id="u1", role="narrator")
        assert exc_info.value.field == "role"

    def test_metadata_must_be_mapping(self, kiwi):
        with pytest.raises(RequestValidationError):
            kiwi.append("c", "Hi", user_id="u1", metadata=["not", "a", "dict"])

    def test_rejected_append_leaves_no_branch(self, kiwi):
        with pytest.raises(RequestValidationError):
            kiwi.append("c", "", user_id="u1")
        assert kiwi.list_branches("u1") == []


# ---------------------------------------------------------------------------
# Flags and edits
# ---------------------------------------------------------------------------


class TestFlags:
    def test_pin_and_unpin(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1")
        assert kiwi.pin(msg.id).is_pinned is True
        assert kiwi.pin(msg.id, False).is_pinned is False

    def test_bookmark(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1")
        kiwi.bookmark(msg.id)
        assert kiwi.get_message(msg.id).is_bookmarked is True

    def test_pin_unknown_message(self, kiwi):
        with pytest.raises(MessageNotFoundError):
            kiwi.pin("ghost")


class TestUpdateAndRemove:
    def test_update_content(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1")
        updated = kiwi.update_message(msg.id, content="Hello")
        assert updated.content == "Hello"
        assert updated.created_at == msg.created_at

    def test_update_replaces_metadata(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1", metadata={"a": 1})
        updated = kiwi.update_message(msg.id, metadata={"b": 2})
        assert updated.metadata == {"b": 2}

    def test_update_nothing_fails(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1")
        with pytest.raises(RequestValidationError):
            kiwi.update_message(msg.id)

    def test_update_empty_content_fails(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1")
        with pytest.raises(RequestValidationError):
            kiwi.update_message(msg.id, content="")

    def test_remove(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1")
        kiwi.remove_message(msg.id)
        with pytest.raises(MessageNotFoundError):
            kiwi.get_message(msg.id)
        assert kiwi.get_conversation("c") == []

    def test_remove_unknown(self, kiwi):
        with pytest.raises(MessageNotFoundError):
            kiwi.remove_message("ghost")

    def test_remove_source_keeps_fork_copy(self, kiwi):
        msg = kiwi.append("c", "Hi", user_id="u1")
        fork = kiwi.fork("c", "u1")
        kiwi.remove_message(msg.id)

        copies = kiwi.get_conversation(fork.branch.id)
        assert len(copies) == 1
        assert copies[0].original_message_id == msg.id
