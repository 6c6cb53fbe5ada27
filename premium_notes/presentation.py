"""
Derived views over the note list: filtering, PIN reveal, content rendering.
"""

from __future__ import annotations

import datetime as dt
import hmac
import html
import re
from dataclasses import dataclass
from typing import Iterable, List, MutableSet, Optional, Union

from .exceptions import ValidationError
from .schemas import Note, RowId


ALL_CATEGORIES = "All"

PHONE_PATTERN = re.compile(r"(09\d{8,9}|\+959\d{8,9})")
WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class Segment:
    text: str
    is_phone: bool = False

    @property
    def href(self) -> Optional[str]:
        if not self.is_phone:
            return None
        return "tel:" + WHITESPACE.sub("", self.text)


def filter_notes(notes: Iterable[Note], search_text: str, category: str) -> List[Note]:
    needle = search_text.lower()
    return [
        note
        for note in notes
        if needle in note.content.lower()
        and (category == ALL_CATEGORIES or note.category == category)
    ]


def is_locked(note: Note, unlocked: Iterable[RowId]) -> bool:
    return bool(note.password) and note.id not in set(unlocked)


def unlock(note: Note, pin: str, unlocked: MutableSet[RowId]) -> None:
    """Reveal ``note`` for this session when ``pin`` matches, else raise."""
    if note.password and not hmac.compare_digest(pin.encode(), note.password.encode()):
        raise ValidationError("Wrong PIN")
    unlocked.add(note.id)


def split_content(text: str) -> List[Segment]:
    segments: List[Segment] = []
    for part in PHONE_PATTERN.split(text):
        if not part:
            continue
        segments.append(Segment(part, is_phone=PHONE_PATTERN.fullmatch(part) is not None))
    return segments


def render_content_html(text: str) -> str:
    """Escape note text and turn phone numbers into tap-to-call links."""
    out = []
    for segment in split_content(text):
        escaped = html.escape(segment.text)
        if segment.is_phone:
            out.append(f'<a class="tel-link" href="{segment.href}">{escaped}</a>')
        else:
            out.append(escaped)
    return "".join(out)


def format_date(value: Union[dt.datetime, str, None]) -> str:
    if not value:
        return "N/A"
    if isinstance(value, str):
        value = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if value.tzinfo is not None:
        value = value.astimezone()
    stamp = value.strftime("%d %b %Y • %I:%M %p")
    return stamp[:-2] + stamp[-2:].lower()


__all__ = [
    "ALL_CATEGORIES",
    "PHONE_PATTERN",
    "Segment",
    "filter_notes",
    "is_locked",
    "unlock",
    "split_content",
    "render_content_html",
    "format_date",
]
