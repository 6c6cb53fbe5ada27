"""
State records owned by the controller.

Nothing here is persisted directly; the cache layer mirrors the note and
category lists, and ``unlocked`` lives only as long as the UI session.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Set

from .auth import VIEW_LOGIN
from .categories import DEFAULT_CATEGORIES
from .schemas import ActivityLogEntry, AuthSession, ImageUpload, Note, NoteDraft, NoteHistorySnapshot, RowId


@dataclass
class AuthState:
    session: Optional[AuthSession] = None
    view: str = VIEW_LOGIN
    email: str = ""

    @property
    def user_id(self) -> Optional[str]:
        return self.session.user.id if self.session else None

    @property
    def identity_label(self) -> str:
        if self.session and self.session.user.email:
            return self.session.user.email
        return "Offline Mode"


@dataclass
class NotesState:
    notes: List[Note] = field(default_factory=list)
    categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    search_text: str = ""
    selected_category: str = "All"
    show_trash: bool = False
    unlocked: Set[RowId] = field(default_factory=set)
    loading: bool = False

    # Editor buffer
    content: str = ""
    category: str = "General"
    pin: str = ""
    image: Optional[ImageUpload] = None
    editing: Optional[Note] = None

    def draft(self) -> NoteDraft:
        return NoteDraft(
            content=self.content,
            category=self.category,
            pin=self.pin,
            image=self.image,
            editing=self.editing,
        )

    def clear_editor(self) -> None:
        self.content = ""
        self.pin = ""
        self.image = None
        self.editing = None


@dataclass
class ModalState:
    viewing_note: Optional[Note] = None
    history_note_id: Optional[RowId] = None
    history: List[NoteHistorySnapshot] = field(default_factory=list)
    show_logs: bool = False
    logs: List[ActivityLogEntry] = field(default_factory=list)
    preview_image: Optional[str] = None
    managing_categories: bool = False

    def close_all(self) -> None:
        self.viewing_note = None
        self.history_note_id = None
        self.history = []
        self.show_logs = False
        self.logs = []
        self.preview_image = None


__all__ = ["AuthState", "NotesState", "ModalState"]
