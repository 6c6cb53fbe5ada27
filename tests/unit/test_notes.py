"""
Unit Tests for the note service.

Runs NoteService against the in-memory FakeRemote so remote state and the
activity trail can be asserted directly.
"""

import pytest

from premium_notes.exceptions import AuthenticationError, NotFoundError, OfflineError, RemoteError, ValidationError
from premium_notes.notes import NoteService
from premium_notes.schemas import ImageUpload, Note, NoteDraft


def yes(_):
    return True


def no(_):
    return False


def actions(remote, note_id=None):
    rows = remote.rows("activity_logs") if note_id is None else remote.rows("activity_logs", note_id=note_id)
    return [(row["action"], row["details"]) for row in rows]


class TestNoteFetch:
    """Tests for listing notes."""

    def test_pinned_first_then_newest(self, note_service, remote):
        """Should order pinned notes first, then by creation time descending."""
        older = remote.seed("notes", content="older")
        remote.seed("notes", content="middle")
        remote.seed("notes", content="newest")
        older["is_pinned"] = True

        notes = note_service.fetch()

        assert [note.content for note in notes] == ["older", "newest", "middle"]

    def test_fetch_scopes_to_user_and_trash_flag(self, note_service, remote):
        """Should only return the current user's notes for the requested view."""
        remote.seed("notes", content="live")
        remote.seed("notes", content="binned", is_trash=True)
        remote.seed("notes", content="foreign", user_id="user-2")

        assert [note.content for note in note_service.fetch()] == ["live"]
        assert [note.content for note in note_service.fetch(trash=True)] == ["binned"]

    def test_only_live_list_is_cached(self, note_service, remote, cache):
        """Should mirror the live list into the cache, never the trash."""
        remote.seed("notes", content="live")
        remote.seed("notes", content="binned", is_trash=True)

        note_service.fetch()
        note_service.fetch(trash=True)

        assert [note.content for note in cache.read_notes()] == ["live"]

    def test_null_category_reads_as_general(self, note_service, remote):
        """Should treat an uncategorised row as General."""
        remote.seed("notes", content="legacy", category=None)

        [note] = note_service.fetch()

        assert note.category == "General"

    def test_malformed_row_raises_remote_error(self, note_service, remote, cache):
        """Should report unreadable rows as RemoteError and keep the cache."""
        cache.write_notes([Note(id=99, content="cached")])
        row = remote.seed("notes", content="broken")
        del row["content"]

        with pytest.raises(RemoteError):
            note_service.fetch()

        assert [note.id for note in cache.read_notes()] == [99]

    def test_fetch_offline_is_noop(self, note_service, remote, connectivity, cache):
        """Should return None without a remote call or cache write when offline."""
        connectivity.set_online(False)

        assert note_service.fetch() is None
        assert remote.calls == []
        assert cache.read_notes() == []

    def test_fetch_signed_out_is_noop(self, remote, cache, connectivity, activity):
        """Should return None when no user is signed in."""
        service = NoteService(remote, cache, connectivity, activity, lambda: None)

        assert service.fetch() is None
        assert remote.calls == []


class TestNoteSubmit:
    """Tests for creating and editing notes."""

    def test_create_note(self, note_service, remote):
        """Should insert the note and log a Created entry."""
        note_service.submit(NoteDraft(content="Buy milk", category="Personal", pin="1234"), yes)

        [row] = remote.rows("notes")
        assert row["content"] == "Buy milk"
        assert row["category"] == "Personal"
        assert row["password"] == "1234"
        assert row["user_id"] == "user-1"
        assert actions(remote) == [("Created", "In Personal")]

    def test_blank_pin_is_stored_as_null(self, note_service, remote):
        """Should store an empty PIN as no PIN."""
        note_service.submit(NoteDraft(content="Open note"), yes)

        assert remote.rows("notes")[0]["password"] is None

    @pytest.mark.parametrize("content", ["", "   \n\t"])
    def test_empty_content_rejected(self, note_service, remote, content):
        """Should reject whitespace-only content without contacting the remote."""
        with pytest.raises(ValidationError) as exc_info:
            note_service.submit(NoteDraft(content=content), yes)

        assert exc_info.value.message == "Note content cannot be empty."
        assert remote.calls == []

    def test_submit_offline_makes_no_remote_call(self, note_service, remote, connectivity):
        """Should raise the offline message and leave the remote untouched."""
        connectivity.set_online(False)

        with pytest.raises(OfflineError) as exc_info:
            note_service.submit(NoteDraft(content="Anything"), yes)

        assert exc_info.value.message == "You are OFFLINE. Cannot save edits."
        assert remote.calls == []

    def test_submit_requires_user(self, remote, cache, connectivity, activity):
        """Should refuse to save without a signed-in user."""
        service = NoteService(remote, cache, connectivity, activity, lambda: None)

        with pytest.raises(AuthenticationError):
            service.submit(NoteDraft(content="Anything"), yes)

    def test_edit_with_history_snapshots_previous_values(self, note_service, remote):
        """Should write exactly one snapshot holding the pre-edit values."""
        row = remote.seed("notes", content="v1", category="Work", image_url="http://img/1.png")
        original = Note.model_validate(row)

        note_service.submit(NoteDraft(content="v2", category="Personal", editing=original), yes)

        [snapshot] = remote.rows("note_history")
        assert snapshot["note_id"] == original.id
        assert snapshot["content"] == "v1"
        assert snapshot["category"] == "Work"
        assert snapshot["image_url"] == "http://img/1.png"

        [updated] = remote.rows("notes")
        assert updated["content"] == "v2"
        assert updated["category"] == "Personal"
        assert updated["image_url"] == "http://img/1.png"
        assert actions(remote) == [("Edited", "In Personal")]

    def test_edit_without_history(self, note_service, remote):
        """Should skip the snapshot when the prompt is declined."""
        original = Note.model_validate(remote.seed("notes", content="v1"))
        prompts = []

        note_service.submit(
            NoteDraft(content="v2", editing=original),
            lambda text: prompts.append(text) or False,
        )

        assert prompts == ["Save previous version?"]
        assert remote.rows("note_history") == []
        assert remote.rows("notes")[0]["content"] == "v2"

    def test_image_upload_naming(self, note_service, remote):
        """Should upload as <millis>.<ext> and store the public URL."""
        image = ImageUpload(name="photo.final.jpg", data=b"jpeg-bytes", content_type="image/jpeg")

        note_service.submit(NoteDraft(content="With image", image=image), yes)

        assert remote.uploads == {"1700000000000.jpg": b"jpeg-bytes"}
        assert remote.rows("notes")[0]["image_url"].endswith("/note-images/1700000000000.jpg")


class TestNoteTrash:
    """Tests for the trash lifecycle."""

    def test_move_restore_delete(self, note_service, remote):
        """Should move to trash, restore and permanently delete with log entries."""
        note_id = remote.seed("notes", content="doomed")["id"]

        assert note_service.move_to_trash(note_id, yes) is True
        assert remote.rows("notes")[0]["is_trash"] is True

        note_service.restore_from_trash(note_id)
        assert remote.rows("notes")[0]["is_trash"] is False

        assert note_service.permanent_delete(note_id, yes) is True
        assert remote.rows("notes") == []
        assert actions(remote, note_id) == [("Deleted", "To Trash"), ("Restored", "From Trash")]

    def test_declined_confirmations_change_nothing(self, note_service, remote):
        """Should return False and write nothing when declined."""
        note_id = remote.seed("notes", content="safe")["id"]

        assert note_service.move_to_trash(note_id, no) is False
        assert note_service.permanent_delete(note_id, no) is False
        assert remote.writes() == []

    @pytest.mark.parametrize(
        "operation, message",
        [
            (lambda service: service.move_to_trash(1, yes), "Offline: Cannot trash."),
            (lambda service: service.restore_from_trash(1), "Offline: Cannot restore."),
            (lambda service: service.permanent_delete(1, yes), "Offline: Cannot delete."),
            (lambda service: service.undo(1, yes), "Offline: Cannot undo."),
            (lambda service: service.fetch_history(1), "History requires internet."),
        ],
    )
    def test_offline_messages(self, note_service, remote, connectivity, operation, message):
        """Should raise the operation's offline message without a remote call."""
        connectivity.set_online(False)

        with pytest.raises(OfflineError) as exc_info:
            operation(note_service)

        assert exc_info.value.message == message
        assert remote.calls == []


class TestNotePin:
    """Tests for pinning."""

    def test_pin_moves_note_first_and_logs(self, note_service, remote):
        """Should flip the pin, log Pinned and sort the note first."""
        first = Note.model_validate(remote.seed("notes", content="first"))
        remote.seed("notes", content="second")

        note_service.toggle_pin(first)

        assert note_service.fetch()[0].id == first.id
        assert actions(remote, first.id) == [("Pinned", "Status updated")]

    def test_unpin_logs_unpinned(self, note_service, remote):
        """Should log Unpinned when the note was pinned."""
        note = Note.model_validate(remote.seed("notes", content="pinned", is_pinned=True))

        note_service.toggle_pin(note)

        assert remote.rows("notes")[0]["is_pinned"] is False
        assert actions(remote) == [("Unpinned", "Status updated")]

    def test_pin_offline(self, note_service, connectivity):
        """Should refuse pinning offline."""
        note = Note(id=1, content="x")
        connectivity.set_online(False)

        with pytest.raises(OfflineError) as exc_info:
            note_service.toggle_pin(note)

        assert exc_info.value.message == "Offline: Cannot pin."


class TestNoteUndo:
    """Tests for undo from history."""

    def test_undo_without_history(self, note_service, remote):
        """Should raise NotFoundError and leave the note untouched."""
        note_id = remote.seed("notes", content="current")["id"]

        with pytest.raises(NotFoundError) as exc_info:
            note_service.undo(note_id, yes)

        assert exc_info.value.message == "No history found."
        assert remote.rows("notes")[0]["content"] == "current"
        assert remote.writes() == []

    def test_undo_applies_latest_snapshot_and_is_repeatable(self, note_service, remote):
        """Should restore the newest snapshot; a second undo applies the same one."""
        note_id = remote.seed("notes", content="v3", category="Work")["id"]
        remote.seed("note_history", note_id=note_id, content="v1", category="General", image_url=None)
        remote.seed("note_history", note_id=note_id, content="v2", category="Personal", image_url=None)

        assert note_service.undo(note_id, yes) is True
        assert remote.rows("notes")[0]["content"] == "v2"
        assert remote.rows("notes")[0]["category"] == "Personal"

        note_service.undo(note_id, yes)
        assert remote.rows("notes")[0]["content"] == "v2"
        assert len(remote.rows("note_history")) == 2
        assert actions(remote, note_id) == [("Restored", "Undo Applied")] * 2

    def test_undo_declined(self, note_service, remote):
        """Should not touch the note when the prompt is declined."""
        note_id = remote.seed("notes", content="v2")["id"]
        remote.seed("note_history", note_id=note_id, content="v1")

        assert note_service.undo(note_id, no) is False
        assert remote.rows("notes")[0]["content"] == "v2"

    def test_fetch_history_newest_first(self, note_service, remote):
        """Should list snapshots newest first."""
        note_id = remote.seed("notes", content="v3")["id"]
        remote.seed("note_history", note_id=note_id, content="v1")
        remote.seed("note_history", note_id=note_id, content="v2")

        history = note_service.fetch_history(note_id)

        assert [snapshot.content for snapshot in history] == ["v2", "v1"]
