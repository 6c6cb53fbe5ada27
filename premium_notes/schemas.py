"""
Pydantic models for rows exchanged with the backend and the local cache.
"""

from __future__ import annotations

import datetime as dt
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, TypeAdapter, field_validator


RowId = Union[int, str]

ActivityAction = Literal["Created", "Edited", "Deleted", "Restored", "Pinned", "Unpinned"]


class Row(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Note(Row):
    id: RowId
    user_id: Optional[str] = None
    content: str
    category: str = "General"
    image_url: Optional[str] = None
    password: Optional[str] = None
    is_pinned: bool = False
    is_trash: bool = False
    created_at: Optional[dt.datetime] = None
    updated_at: Optional[dt.datetime] = None

    @field_validator("category", mode="before")
    @classmethod
    def _uncategorised_as_general(cls, value: Any) -> Any:
        return "General" if value is None else value

    @property
    def is_protected(self) -> bool:
        return bool(self.password)


class NoteHistorySnapshot(Row):
    id: RowId
    note_id: RowId
    content: str
    category: Optional[str] = None
    image_url: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[dt.datetime] = None


class Category(Row):
    name: str
    user_id: Optional[str] = None


class ActivityLogEntry(Row):
    id: RowId
    note_id: Optional[RowId] = None
    action: str
    details: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[dt.datetime] = None


class AuthUser(Row):
    id: str
    email: Optional[str] = None


class AuthSession(Row):
    access_token: str
    refresh_token: Optional[str] = None
    token_type: str = "bearer"
    expires_at: Optional[int] = None
    user: AuthUser


class ImageUpload(BaseModel):
    """An image picked in the editor, not yet uploaded."""

    name: str
    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def extension(self) -> str:
        return self.name.rsplit(".", 1)[-1] if "." in self.name else "bin"


class NoteDraft(BaseModel):
    """Editor buffer submitted to create or update a note."""

    content: str = ""
    category: str = "General"
    pin: str = ""
    image: Optional[ImageUpload] = None
    editing: Optional[Note] = None


NoteList = TypeAdapter(List[Note])
CategoryNames = TypeAdapter(List[str])


__all__ = [
    "RowId",
    "ActivityAction",
    "Note",
    "NoteHistorySnapshot",
    "Category",
    "ActivityLogEntry",
    "AuthUser",
    "AuthSession",
    "ImageUpload",
    "NoteDraft",
    "NoteList",
    "CategoryNames",
]
