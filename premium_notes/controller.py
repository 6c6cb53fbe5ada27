"""
Single controller owning the UI state records.

The presentation layer reads ``auth_state``, ``notes_state`` and
``modal_state`` and calls the operations below. Operations raise
``NotesError`` subclasses for anything the user should see; successful
operations that deserve a confirmation return the message to flash.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator, List, Mapping, Optional

from .activity import ActivityLog
from .auth import VIEW_LOGIN, VIEW_RESET, AuthClient, AuthEvent, resolve_view
from .cache import LocalCache
from .categories import DEFAULT_CATEGORIES, CategoryManager
from .connectivity import ConnectivityMonitor, requires_online
from .exceptions import NotesError
from .export import ExportResult, export_notes_pdf
from .logging import get_logger
from .notes import NoteService
from .presentation import filter_notes, is_locked, unlock
from .remote import RemoteClient
from .schemas import AuthSession, ImageUpload, Note, RowId
from .state import AuthState, ModalState, NotesState


logger = get_logger(__name__)

Confirm = Callable[[str], bool]


def always(_: str) -> bool:
    return True


class NotesController:
    def __init__(
        self,
        *,
        remote: RemoteClient,
        auth: AuthClient,
        cache: LocalCache,
        connectivity: ConnectivityMonitor,
        notes: NoteService,
        categories: CategoryManager,
        activity: ActivityLog,
    ) -> None:
        self.remote = remote
        self.auth = auth
        self.cache = cache
        self.connectivity = connectivity
        self.notes = notes
        self.categories = categories
        self.activity = activity

        self.auth_state = AuthState()
        self.notes_state = NotesState()
        self.modal_state = ModalState()
        # Set when a background refresh fails; the UI shows and clears it.
        self.notice: Optional[str] = None

        self._seed_from_cache()
        auth.on_auth_state_change(self._on_auth_event)
        connectivity.subscribe(self._on_connectivity_change)

    # Lifecycle

    def _seed_from_cache(self) -> None:
        self.notes_state.notes = self.cache.read_notes()
        cached_categories = self.cache.read_categories()
        if cached_categories:
            self.notes_state.categories = cached_categories
        logger.debug(
            "State seeded from cache",
            notes=len(self.notes_state.notes),
            categories=len(self.notes_state.categories),
        )

    def start(self) -> None:
        """Restore any persisted session; triggers the first refresh."""
        self.auth.restore_session()

    def _on_auth_event(self, event: AuthEvent, auth_session: Optional[AuthSession]) -> None:
        self.auth_state.session = auth_session
        if event is AuthEvent.PASSWORD_RECOVERY:
            self.auth_state.view = VIEW_RESET
        if event in (AuthEvent.INITIAL_SESSION, AuthEvent.SIGNED_IN, AuthEvent.PASSWORD_RECOVERY):
            self._auto_refresh()

    def _on_connectivity_change(self, online: bool) -> None:
        if online:
            self._auto_refresh()

    def _auto_refresh(self) -> None:
        try:
            self.refresh()
        except NotesError as exc:
            logger.warning("Background refresh failed", error=exc.message)
            self.notice = exc.message

    def refresh(self) -> None:
        if self.auth_state.session is None or not self.connectivity.is_online:
            return
        self.auth.refresh_if_needed()
        self.fetch_notes()
        self.fetch_categories()

    def check_connectivity(self) -> bool:
        return self.connectivity.recheck(self.remote.health_url)

    @contextmanager
    def _busy(self) -> Iterator[None]:
        self.notes_state.loading = True
        try:
            yield
        finally:
            self.notes_state.loading = False

    # Views

    def current_view(self) -> str:
        return resolve_view(
            self.auth_state.view,
            has_session=self.auth_state.session is not None,
            has_local_notes=bool(self.notes_state.notes),
        )

    def show_view(self, view: str) -> None:
        self.auth_state.view = view

    def visible_notes(self) -> List[Note]:
        state = self.notes_state
        return filter_notes(state.notes, state.search_text, state.selected_category)

    def is_locked(self, note: Note) -> bool:
        return is_locked(note, self.notes_state.unlocked)

    # Auth

    @requires_online("Cannot login while offline.")
    def login(self, email: str, password: str) -> None:
        self.auth_state.email = email
        with self._busy():
            self.auth.sign_in(email, password)

    @requires_online("Cannot signup while offline.")
    def sign_up(self, email: str, password: str) -> Optional[str]:
        self.auth_state.email = email
        with self._busy():
            auth_session = self.auth.sign_up(email, password)
        return None if auth_session else "Check your email for confirmation."

    @requires_online("Offline.")
    def request_password_reset(self, email: str) -> str:
        self.auth_state.email = email
        with self._busy():
            self.auth.reset_password_for_email(email)
        return "Reset link sent to your email."

    @requires_online("Offline.")
    def apply_new_password(self, password: str) -> str:
        with self._busy():
            self.auth.update_password(password)
        self.auth_state.view = VIEW_LOGIN
        return "Password updated."

    def handle_redirect(self, params: Mapping[str, str]) -> bool:
        return self.auth.handle_redirect(params)

    def logout(self) -> None:
        """
        Sign out; always ends with a clean local state.

        The cached lists go first so the next user never sees them. A remote
        failure falls back to wiping every cache slot.
        """
        self.cache.clear_lists()
        try:
            self.auth.sign_out()
        except NotesError as exc:
            logger.warning("Remote sign-out failed; resetting locally", error=exc.message)
            self.cache.clear_all()
        self.auth_state = AuthState()
        self.notes_state = NotesState()
        self.modal_state = ModalState()

    # Notes

    def fetch_notes(self) -> None:
        notes = self.notes.fetch(self.notes_state.show_trash)
        if notes is not None:
            self.notes_state.notes = notes

    def toggle_trash_view(self) -> None:
        self.notes_state.show_trash = not self.notes_state.show_trash
        self._auto_refresh()

    def start_edit(self, note: Note) -> None:
        state = self.notes_state
        state.editing = note
        state.content = note.content
        state.category = note.category
        state.pin = note.password or ""
        state.image = None

    def cancel_edit(self) -> None:
        self.notes_state.clear_editor()

    def attach_image(self, image: Optional[ImageUpload]) -> None:
        self.notes_state.image = image

    def submit(self, confirm: Confirm) -> str:
        state = self.notes_state
        editing = state.editing is not None
        with self._busy():
            self.notes.submit(state.draft(), confirm)
        state.clear_editor()
        self.fetch_notes()
        return "Note updated." if editing else "Note posted."

    def move_to_trash(self, note_id: RowId, confirm: Confirm) -> None:
        with self._busy():
            done = self.notes.move_to_trash(note_id, confirm)
        if done:
            self.fetch_notes()

    def restore_from_trash(self, note_id: RowId) -> None:
        with self._busy():
            self.notes.restore_from_trash(note_id)
        self.fetch_notes()

    def permanent_delete(self, note_id: RowId, confirm: Confirm) -> None:
        with self._busy():
            done = self.notes.permanent_delete(note_id, confirm)
        if done:
            self.fetch_notes()

    def undo(self, note_id: RowId, confirm: Confirm) -> None:
        with self._busy():
            done = self.notes.undo(note_id, confirm)
        if done:
            self.fetch_notes()

    def toggle_pin(self, note: Note) -> None:
        with self._busy():
            self.notes.toggle_pin(note)
        self.fetch_notes()

    def unlock(self, note: Note, pin: str) -> None:
        unlock(note, pin, self.notes_state.unlocked)

    # Categories

    def fetch_categories(self) -> None:
        merged = self.categories.fetch()
        if merged is not None:
            self.notes_state.categories = merged

    def add_category(self, name: str) -> None:
        with self._busy():
            merged = self.categories.add(name, self.notes_state.categories)
        if merged is not None:
            self.notes_state.categories = merged

    def delete_category(self, name: str, confirm: Confirm) -> None:
        with self._busy():
            merged = self.categories.delete(name, confirm)
        if merged is not None:
            self.notes_state.categories = merged

    @staticmethod
    def is_default_category(name: str) -> bool:
        return name in DEFAULT_CATEGORIES

    # Modals

    def open_note(self, note: Note) -> None:
        self.modal_state.viewing_note = note

    def open_history(self, note_id: RowId) -> None:
        history = self.notes.fetch_history(note_id)
        self.modal_state.history = history
        self.modal_state.history_note_id = note_id

    def open_logs(self) -> None:
        self.modal_state.logs = self.activity.recent()
        self.modal_state.show_logs = True

    def preview_image(self, url: Optional[str]) -> None:
        self.modal_state.preview_image = url

    def close_modals(self) -> None:
        self.modal_state.close_all()

    # Export

    def export_pdf(self) -> ExportResult:
        with self._busy():
            return export_notes_pdf(
                self.visible_notes(),
                self.notes_state.unlocked,
                image_loader=self.remote.download,
            )


__all__ = ["NotesController", "always"]
