"""
Streamlit frontend for Premium Notes.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Tuple

import streamlit as st

from premium_notes import create_controller
from premium_notes.auth import VIEW_FORGOT, VIEW_LOGIN, VIEW_MAIN, VIEW_RESET
from premium_notes.controller import NotesController, always
from premium_notes.exceptions import NotesError
from premium_notes.logging import setup_logging
from premium_notes.presentation import ALL_CATEGORIES, format_date, render_content_html
from premium_notes.schemas import ImageUpload, Note


def inject_styles() -> None:
    st.markdown(
        """
        <style>
        .flash-message {
            padding: 0.9rem 1.2rem;
            border-radius: 0.75rem;
            margin-bottom: 1.5rem;
            font-weight: 500;
            animation: flash-fade 10s forwards;
        }
        .flash-success {
            background-color: rgba(46, 204, 113, 0.2);
            color: #2ecc71;
        }
        .flash-error {
            background-color: rgba(231, 76, 60, 0.2);
            color: #e74c3c;
        }
        .flash-info {
            background-color: rgba(52, 152, 219, 0.2);
            color: #3498db;
        }
        @keyframes flash-fade {
            0%, 90% { opacity: 1; }
            100% { opacity: 0; display: none; }
        }

        .offline-banner {
            background-color: rgba(220, 38, 38, 0.2);
            color: #f87171;
            text-align: center;
            font-size: 0.7rem;
            font-weight: 700;
            letter-spacing: 0.1em;
            padding: 0.25rem;
            border-radius: 0.5rem;
            margin-bottom: 1rem;
        }
        .note-content { white-space: pre-wrap; }
        .note-meta { font-size: 0.65rem; color: #64748b; text-transform: uppercase; }
        .tel-link { color: #34d399; text-decoration: underline; font-weight: 700; }

        .auth-wrapper {
            max-width: 420px;
            margin: 0 auto;
        }
        .auth-wrapper button {
            width: 100%;
        }
        </style>
        """,
        unsafe_allow_html=True,
    )


@st.cache_resource
def configure_logging() -> bool:
    setup_logging()
    return True


def get_controller() -> NotesController:
    if "controller" not in st.session_state:
        st.session_state["controller"] = create_controller()
    return st.session_state["controller"]


def _summarize_exception(error: Exception, context: str) -> str:
    message = error.message if isinstance(error, NotesError) else str(error)
    return f"{context}: {message}" if context else message


def ensure_session_defaults() -> None:
    defaults = {
        "flash": None,
        "pending_confirm": None,
    }
    for key, value in defaults.items():
        st.session_state.setdefault(key, value)


def set_flash(level: str, message: str) -> None:
    st.session_state["flash"] = (level, message)


def set_error_flash(context: str, error: Exception) -> None:
    set_flash("error", _summarize_exception(error, context))


def pop_flash() -> Optional[Tuple[str, str]]:
    flash = st.session_state.get("flash")
    st.session_state["flash"] = None
    return flash


def display_flash() -> None:
    flash = pop_flash()
    if not flash:
        return

    placeholder = st.empty()
    level, message = flash
    css_class = {
        "success": "flash-success",
        "error": "flash-error",
        "warning": "flash-error",
        "info": "flash-info",
    }.get(level, "flash-info")
    placeholder.markdown(
        f"<div class='flash-message {css_class}'>{message}</div>",
        unsafe_allow_html=True,
    )


def run_action(action: Callable[[], Optional[str]], context: str = "") -> None:
    """Run a controller call, flash its outcome and rerun."""
    try:
        message = action()
    except NotesError as exc:
        set_error_flash(context, exc)
    else:
        if message:
            set_flash("success", message)
    st.rerun()


def ask(action: str, **payload: Any) -> Callable[[str], bool]:
    """
    Confirmation callback that parks the request until the user answers.

    The controller call returns without acting; the confirmation panel
    replays it with ``always`` when the user says yes.
    """

    def confirm(prompt: str) -> bool:
        st.session_state["pending_confirm"] = {"action": action, "prompt": prompt, **payload}
        return False

    return confirm


def render_pending_confirm(controller: NotesController) -> None:
    pending: Optional[Dict[str, Any]] = st.session_state.get("pending_confirm")
    if not pending:
        return
    st.warning(pending["prompt"])
    cols = st.columns([1, 1, 4])
    if cols[0].button("Yes", key="confirm_yes"):
        st.session_state["pending_confirm"] = None
        action = pending["action"]
        if action == "trash":
            run_action(lambda: controller.move_to_trash(pending["note_id"], always), "Could not trash note")
        elif action == "delete":
            run_action(lambda: controller.permanent_delete(pending["note_id"], always), "Could not delete note")
        elif action == "undo":
            run_action(lambda: controller.undo(pending["note_id"], always), "Could not undo")
        elif action == "delete_category":
            run_action(lambda: controller.delete_category(pending["name"], always), "Could not delete category")
    if cols[1].button("No", key="confirm_no"):
        st.session_state["pending_confirm"] = None
        st.rerun()


def render_login(controller: NotesController) -> None:
    online = controller.connectivity.is_online
    st.header("Premium Notes")

    login_col_left, login_col_center, login_col_right = st.columns([1, 2, 1])
    with login_col_center:
        with st.container():
            st.markdown("<div class='auth-wrapper'>", unsafe_allow_html=True)
            with st.form("login_form"):
                email = st.text_input("Email", value=controller.auth_state.email, key="login_email")
                password = st.text_input("Password", type="password", key="login_password")
                cols = st.columns([1, 1])
                submitted = cols[0].form_submit_button(
                    "Login" if online else "Offline (No Data)", disabled=not online
                )
                signup = cols[1].form_submit_button("Create Account")
                if submitted:
                    run_action(lambda: controller.login(email, password), "Login failed")
                if signup:
                    run_action(lambda: controller.sign_up(email, password), "Sign up failed")
            st.markdown("</div>", unsafe_allow_html=True)

    st.divider()
    if st.button("Forgot Password?"):
        controller.show_view(VIEW_FORGOT)
        st.rerun()


def render_forgot(controller: NotesController) -> None:
    st.header("Forgot Password")
    busy = controller.notes_state.loading or not controller.connectivity.is_online
    with st.form("forgot_form"):
        email = st.text_input("Your Email", value=controller.auth_state.email)
        submitted = st.form_submit_button("Send Link", disabled=busy)
        if submitted:
            run_action(lambda: controller.request_password_reset(email), "Could not send link")
    if st.button("Back to Login"):
        controller.show_view(VIEW_LOGIN)
        st.rerun()


def render_reset(controller: NotesController) -> None:
    st.header("New Password")
    busy = controller.notes_state.loading or not controller.connectivity.is_online
    with st.form("reset_form"):
        password = st.text_input("New Password", type="password")
        submitted = st.form_submit_button("Update Password", disabled=busy)
        if submitted:
            run_action(lambda: controller.apply_new_password(password), "Could not update password")


def render_header(controller: NotesController) -> None:
    state = controller.notes_state
    if not controller.connectivity.is_online:
        st.markdown(
            "<div class='offline-banner'>⚠️ OFFLINE MODE - VIEW ONLY</div>",
            unsafe_allow_html=True,
        )

    title_col, logs_col, trash_col, pdf_col, logout_col = st.columns([5, 1, 1, 1, 1])
    with title_col:
        st.subheader("Premium Notes v2")
        st.caption(controller.auth_state.identity_label)
    if logs_col.button("LOGS", use_container_width=True):
        run_action(controller.open_logs, "Could not load logs")
    if trash_col.button("NOTES" if state.show_trash else "TRASH", use_container_width=True):
        controller.toggle_trash_view()
        st.rerun()
    if pdf_col.button("PDF", use_container_width=True):
        try:
            result = controller.export_pdf()
        except NotesError as exc:
            set_error_flash("", exc)
            st.rerun()
        else:
            st.session_state["export_result"] = result
    if logout_col.button("LOGOUT", use_container_width=True):
        controller.logout()
        st.session_state["pending_confirm"] = None
        set_flash("info", "You have been logged out.")
        st.rerun()

    result = st.session_state.get("export_result")
    if result is not None:
        st.download_button(
            "⬇ Download PDF",
            data=result.data,
            file_name=result.filename,
            mime="application/pdf",
            on_click=lambda: st.session_state.pop("export_result", None),
        )


def render_category_manager(controller: NotesController) -> None:
    modal = controller.modal_state
    label = "✖ Close Manager" if modal.managing_categories else "⚙ Manage Categories"
    if st.button(label, key="toggle_categories"):
        modal.managing_categories = not modal.managing_categories
        st.rerun()
    if not modal.managing_categories:
        return

    with st.container(border=True):
        with st.form("add_category_form", clear_on_submit=True):
            cols = st.columns([4, 1])
            name = cols[0].text_input("New Cat", label_visibility="collapsed", placeholder="New Cat")
            added = cols[1].form_submit_button("ADD", disabled=controller.notes_state.loading)
            if added:
                run_action(lambda: controller.add_category(name), "Could not add category")

        categories = controller.notes_state.categories
        cols = st.columns(4)
        for index, name in enumerate(categories):
            col = cols[index % 4]
            if controller.is_default_category(name):
                col.markdown(f"**{name}**")
            elif col.button(f"{name}  ×", key=f"delete_cat_{name}"):
                run_action(
                    lambda name=name: controller.delete_category(name, ask("delete_category", name=name)),
                    "Could not delete category",
                )


def render_editor(controller: NotesController) -> None:
    state = controller.notes_state
    online = controller.connectivity.is_online

    search_col, filter_col = st.columns(2)
    state.search_text = search_col.text_input("Search...", value=state.search_text)
    options = [ALL_CATEGORIES] + state.categories
    selected = state.selected_category if state.selected_category in options else ALL_CATEGORIES
    state.selected_category = filter_col.selectbox(
        "Category", options, index=options.index(selected),
        format_func=lambda value: "All Categories" if value == ALL_CATEGORIES else value,
    )

    editing = state.editing
    with st.form("note_form", clear_on_submit=True):
        content = st.text_area(
            "Note",
            value=state.content,
            placeholder="Write a note..." if online else "Offline: Read Only Mode",
            disabled=not online,
        )
        cols = st.columns([2, 1, 2])
        category_index = state.categories.index(state.category) if state.category in state.categories else 0
        category = cols[0].selectbox("Category", state.categories, index=category_index, disabled=not online)
        pin = cols[1].text_input("PIN", value=state.pin, type="password", disabled=not online)
        upload = cols[2].file_uploader("PHOTO", type=["png", "jpg", "jpeg", "gif", "webp"], disabled=not online)
        save_history = False
        if editing is not None:
            save_history = st.checkbox("Save previous version?", value=True)
        submitted = st.form_submit_button(
            "..." if state.loading else ("Update" if editing else "Post"),
            disabled=state.loading or not online,
        )
        if submitted:
            state.content, state.category, state.pin = content, category, pin
            if upload is not None:
                controller.attach_image(
                    ImageUpload(
                        name=upload.name,
                        data=upload.getvalue(),
                        content_type=upload.type or "application/octet-stream",
                    )
                )
            run_action(lambda: controller.submit(lambda _: save_history), "Could not save note")

    if editing is not None and st.button("Cancel edit"):
        controller.cancel_edit()
        st.rerun()


def render_locked_card(controller: NotesController, note: Note) -> None:
    st.caption("LOCKED")
    pin = st.text_input("PIN", type="password", key=f"unlock_{note.id}", label_visibility="collapsed")
    if st.button("UNLOCK", key=f"unlock_btn_{note.id}", use_container_width=True):
        run_action(lambda: controller.unlock(note, pin))


def render_card(controller: NotesController, note: Note) -> None:
    show_trash = controller.notes_state.show_trash
    if note.image_url:
        st.image(note.image_url, use_container_width=True)
        if st.button("🔍", key=f"preview_{note.id}"):
            controller.preview_image(note.image_url)
            st.rerun()

    head_cols = st.columns([3, 1, 1, 1])
    head_cols[0].markdown(f"`{note.category}`")
    if not show_trash:
        if head_cols[1].button("📌" if note.is_pinned else "📍", key=f"pin_{note.id}"):
            run_action(lambda: controller.toggle_pin(note), "Could not pin")
        if head_cols[2].button("⏳", key=f"history_{note.id}"):
            run_action(lambda: controller.open_history(note.id), "Could not load history")
        if head_cols[3].button("🔄", key=f"undo_{note.id}"):
            run_action(lambda: controller.undo(note.id, ask("undo", note_id=note.id)), "Could not undo")

    st.markdown(
        f"<div class='note-content'>{render_content_html(note.content)}</div>",
        unsafe_allow_html=True,
    )
    st.markdown(
        f"<div class='note-meta'>In: {format_date(note.created_at)}<br/>"
        f"Edit: {format_date(note.updated_at)}</div>",
        unsafe_allow_html=True,
    )

    left, middle, right = st.columns(3)
    if middle.button("Open", key=f"open_{note.id}"):
        controller.open_note(note)
        st.rerun()
    if show_trash:
        if left.button("Restore", key=f"restore_{note.id}"):
            run_action(lambda: controller.restore_from_trash(note.id), "Could not restore")
        if right.button("Delete", key=f"delete_{note.id}"):
            run_action(
                lambda: controller.permanent_delete(note.id, ask("delete", note_id=note.id)),
                "Could not delete",
            )
    else:
        if left.button("Edit", key=f"edit_{note.id}"):
            controller.start_edit(note)
            st.rerun()
        if right.button("Trash", key=f"trash_{note.id}"):
            run_action(
                lambda: controller.move_to_trash(note.id, ask("trash", note_id=note.id)),
                "Could not trash",
            )


def render_grid(controller: NotesController) -> None:
    notes = controller.visible_notes()
    if not notes:
        st.info("No notes yet. Create one above to get started.")
        return
    columns = st.columns(3)
    for index, note in enumerate(notes):
        with columns[index % 3]:
            with st.container(border=True):
                if controller.is_locked(note):
                    render_locked_card(controller, note)
                else:
                    render_card(controller, note)


def render_modals(controller: NotesController) -> None:
    modal = controller.modal_state

    if modal.viewing_note is not None:
        note = modal.viewing_note
        with st.container(border=True):
            st.markdown(f"`{note.category}`")
            if note.image_url:
                st.image(note.image_url, use_container_width=True)
            st.markdown(
                f"<div class='note-content'>{render_content_html(note.content)}</div>",
                unsafe_allow_html=True,
            )
            st.caption(f"Date Created: {format_date(note.created_at)}")
            st.caption(f"Last Modified: {format_date(note.updated_at)}")
            if st.button("Close", key="close_note"):
                modal.viewing_note = None
                st.rerun()

    if modal.history_note_id is not None:
        with st.container(border=True):
            st.subheader("Version History")
            if not modal.history:
                st.caption("No saved versions.")
            for snapshot in modal.history:
                st.caption(f"Saved: {format_date(snapshot.created_at)}")
                st.text(snapshot.content)
                st.divider()
            if st.button("Close", key="close_history"):
                modal.history_note_id = None
                modal.history = []
                st.rerun()

    if modal.show_logs:
        with st.container(border=True):
            st.subheader("📜 Activity Log")
            for entry in modal.logs:
                st.markdown(f"**{entry.action}** • {format_date(entry.created_at)}")
                st.caption(entry.details or "")
            if st.button("Close", key="close_logs"):
                modal.show_logs = False
                modal.logs = []
                st.rerun()

    if modal.preview_image:
        with st.container(border=True):
            st.image(modal.preview_image, use_container_width=True)
            if st.button("Close", key="close_preview"):
                controller.preview_image(None)
                st.rerun()


def render_notes_dashboard(controller: NotesController) -> None:
    render_header(controller)
    render_pending_confirm(controller)
    render_modals(controller)
    render_category_manager(controller)
    if not controller.notes_state.show_trash:
        render_editor(controller)
    render_grid(controller)


def main():
    st.set_page_config(page_title="Premium Notes", page_icon="📝", layout="wide")
    configure_logging()
    ensure_session_defaults()
    inject_styles()

    controller = get_controller()
    controller.check_connectivity()

    params = dict(st.query_params)
    if params.get("code") or params.get("type") == "recovery":
        try:
            controller.handle_redirect(params)
        except NotesError as exc:
            set_error_flash("Recovery link failed", exc)
        st.query_params.clear()

    if controller.notice:
        set_flash("error", controller.notice)
        controller.notice = None

    display_flash()

    view = controller.current_view()
    if view == VIEW_MAIN:
        render_notes_dashboard(controller)
    elif view == VIEW_FORGOT:
        render_forgot(controller)
    elif view == VIEW_RESET:
        render_reset(controller)
    else:
        render_login(controller)


if __name__ == "__main__":
    main()
