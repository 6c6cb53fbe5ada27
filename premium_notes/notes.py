"""
Note CRUD against the remote store, with edit history and activity logging.

Each method performs one remote operation end to end. Re-fetching the list
and clearing the editor are left to the controller.
"""

from __future__ import annotations

import datetime as dt
import time
from typing import Any, Callable, Dict, List, Optional

from .activity import ActivityLog
from .cache import LocalCache
from .connectivity import ConnectivityMonitor, requires_online
from .exceptions import AuthenticationError, NotFoundError, ValidationError
from .logging import get_logger
from .remote import RemoteClient, parse_row
from .schemas import ImageUpload, Note, NoteDraft, NoteHistorySnapshot, RowId


logger = get_logger(__name__)

NOTES_TABLE = "notes"
HISTORY_TABLE = "note_history"

NOTE_ORDER = [("is_pinned", True), ("created_at", True)]

Confirm = Callable[[str], bool]


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class NoteService:
    def __init__(
        self,
        remote: RemoteClient,
        cache: LocalCache,
        connectivity: ConnectivityMonitor,
        activity: ActivityLog,
        user_id: Callable[[], Optional[str]],
        *,
        image_bucket: str = "note-images",
        clock: Callable[[], int] = _epoch_millis,
    ) -> None:
        self.remote = remote
        self.cache = cache
        self.connectivity = connectivity
        self.activity = activity
        self.user_id = user_id
        self.image_bucket = image_bucket
        self.clock = clock

    def _require_user(self) -> str:
        user_id = self.user_id()
        if user_id is None:
            raise AuthenticationError()
        return user_id

    def fetch(self, trash: bool = False) -> Optional[List[Note]]:
        """
        Fetch live or trashed notes, pinned first then newest first.

        Returns None without touching anything when offline or signed out.
        Only the live list is mirrored into the cache.
        """
        user_id = self.user_id()
        if not self.connectivity.is_online or user_id is None:
            return None
        rows = self.remote.select(
            NOTES_TABLE,
            filters={"is_trash": trash, "user_id": user_id},
            order=NOTE_ORDER,
        )
        notes = [parse_row(Note, row) for row in rows]
        if not trash:
            self.cache.write_notes(notes)
        logger.info("Notes fetched", count=len(notes), trash=trash)
        return notes

    def upload_image(self, image: ImageUpload) -> str:
        file_name = f"{self.clock()}.{image.extension}"
        self.remote.upload(self.image_bucket, file_name, image.data, image.content_type)
        logger.info("Image uploaded", file_name=file_name, size=len(image.data))
        return self.remote.public_url(self.image_bucket, file_name)

    @requires_online("You are OFFLINE. Cannot save edits.")
    def submit(self, draft: NoteDraft, confirm: Confirm) -> None:
        if not draft.content.strip():
            raise ValidationError("Note content cannot be empty.")
        user_id = self._require_user()

        image_url = draft.editing.image_url if draft.editing else None
        if draft.image is not None:
            image_url = self.upload_image(draft.image)

        note_data: Dict[str, Any] = {
            "content": draft.content,
            "category": draft.category,
            "image_url": image_url,
            "user_id": user_id,
            "password": draft.pin or None,
            "updated_at": _now_iso(),
        }

        editing = draft.editing
        if editing is not None:
            if confirm("Save previous version?"):
                self.remote.insert(
                    HISTORY_TABLE,
                    [{
                        "note_id": editing.id,
                        "content": editing.content,
                        "category": editing.category,
                        "image_url": editing.image_url,
                        "user_id": user_id,
                    }],
                )
                logger.info("History snapshot saved", note_id=editing.id)
            self.remote.update(NOTES_TABLE, note_data, filters={"id": editing.id})
            self.activity.record(editing.id, "Edited", f"In {draft.category}")
            logger.info("Note updated", note_id=editing.id)
        else:
            rows = self.remote.insert(NOTES_TABLE, [note_data])
            if rows:
                self.activity.record(rows[0]["id"], "Created", f"In {draft.category}")
                logger.info("Note created", note_id=rows[0]["id"])

    @requires_online("Offline: Cannot trash.")
    def move_to_trash(self, note_id: RowId, confirm: Confirm) -> bool:
        if not confirm("Move to Trash?"):
            return False
        self.remote.update(NOTES_TABLE, {"is_trash": True}, filters={"id": note_id})
        self.activity.record(note_id, "Deleted", "To Trash")
        return True

    @requires_online("Offline: Cannot restore.")
    def restore_from_trash(self, note_id: RowId) -> None:
        self.remote.update(NOTES_TABLE, {"is_trash": False}, filters={"id": note_id})
        self.activity.record(note_id, "Restored", "From Trash")

    @requires_online("Offline: Cannot delete.")
    def permanent_delete(self, note_id: RowId, confirm: Confirm) -> bool:
        if not confirm("Permanently delete?"):
            return False
        self.remote.delete(NOTES_TABLE, filters={"id": note_id})
        logger.info("Note permanently deleted", note_id=note_id)
        return True

    @requires_online("Offline: Cannot pin.")
    def toggle_pin(self, note: Note) -> None:
        pinned = not note.is_pinned
        self.remote.update(NOTES_TABLE, {"is_pinned": pinned}, filters={"id": note.id})
        self.activity.record(note.id, "Pinned" if pinned else "Unpinned", "Status updated")

    def latest_snapshot(self, note_id: RowId) -> Optional[NoteHistorySnapshot]:
        rows = self.remote.select(
            HISTORY_TABLE,
            filters={"note_id": note_id},
            order=[("created_at", True)],
            limit=1,
        )
        return parse_row(NoteHistorySnapshot, rows[0]) if rows else None

    @requires_online("Offline: Cannot undo.")
    def undo(self, note_id: RowId, confirm: Confirm) -> bool:
        """
        Revert a note to its newest history snapshot.

        The snapshot is kept, so undoing twice applies the same snapshot.
        """
        snapshot = self.latest_snapshot(note_id)
        if snapshot is None:
            raise NotFoundError("No history found.")
        if not confirm("Undo changes?"):
            return False
        self.remote.update(
            NOTES_TABLE,
            {
                "content": snapshot.content,
                "category": snapshot.category,
                "image_url": snapshot.image_url,
                "updated_at": _now_iso(),
            },
            filters={"id": note_id},
        )
        self.activity.record(note_id, "Restored", "Undo Applied")
        return True

    @requires_online("History requires internet.")
    def fetch_history(self, note_id: RowId) -> List[NoteHistorySnapshot]:
        rows = self.remote.select(
            HISTORY_TABLE,
            filters={"note_id": note_id},
            order=[("created_at", True)],
        )
        return [parse_row(NoteHistorySnapshot, row) for row in rows]


__all__ = ["NoteService", "NOTE_ORDER"]
