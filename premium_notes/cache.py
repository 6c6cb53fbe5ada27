"""
On-device cache of the last successful remote fetches.

Three named slots live in the ``cache_slots`` table: the non-trashed note
list, the merged category list and the persisted auth session. Writes are
last-write-wins with no expiry.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional

from pydantic import ValidationError as SchemaError
from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session, sessionmaker

from .database import make_session_factory, session_scope
from .logging import get_logger
from .models import CacheSlot
from .schemas import AuthSession, CategoryNames, Note, NoteList


logger = get_logger(__name__)

NOTES_SLOT = "notes_cache"
CATEGORIES_SLOT = "categories_cache"
SESSION_SLOT = "auth_session"


class LocalCache:
    def __init__(self, engine: Engine) -> None:
        self._factory: sessionmaker[Session] = make_session_factory(engine)

    # Raw slot access

    def read(self, key: str) -> Optional[Any]:
        with session_scope(self._factory) as session:
            slot = session.get(CacheSlot, key)
            if slot is None:
                return None
            try:
                return json.loads(slot.payload)
            except ValueError:
                logger.warning("Discarding unreadable cache slot", slot=key)
                return None

    def write(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with session_scope(self._factory) as session:
            slot = session.get(CacheSlot, key)
            if slot is None:
                session.add(CacheSlot(key=key, payload=payload))
            else:
                slot.payload = payload
        logger.debug("Cache slot written", slot=key, size=len(payload))

    def remove(self, *keys: str) -> None:
        with session_scope(self._factory) as session:
            session.execute(delete(CacheSlot).where(CacheSlot.key.in_(keys)))

    def clear_all(self) -> None:
        with session_scope(self._factory) as session:
            session.execute(delete(CacheSlot))

    def keys(self) -> List[str]:
        with session_scope(self._factory) as session:
            return list(session.execute(select(CacheSlot.key)).scalars())

    # Typed slots

    def read_notes(self) -> List[Note]:
        data = self.read(NOTES_SLOT)
        if not data:
            return []
        try:
            return NoteList.validate_python(data)
        except SchemaError:
            logger.warning("Discarding unreadable cache slot", slot=NOTES_SLOT)
            return []

    def write_notes(self, notes: List[Note]) -> None:
        self.write(NOTES_SLOT, NoteList.dump_python(notes, mode="json"))

    def read_categories(self) -> Optional[List[str]]:
        data = self.read(CATEGORIES_SLOT)
        if data is None:
            return None
        try:
            return CategoryNames.validate_python(data)
        except SchemaError:
            logger.warning("Discarding unreadable cache slot", slot=CATEGORIES_SLOT)
            return None

    def write_categories(self, names: List[str]) -> None:
        self.write(CATEGORIES_SLOT, list(names))

    def read_session(self) -> Optional[AuthSession]:
        data = self.read(SESSION_SLOT)
        if not data:
            return None
        try:
            return AuthSession.model_validate(data)
        except SchemaError:
            logger.warning("Discarding unreadable cache slot", slot=SESSION_SLOT)
            return None

    def write_session(self, auth_session: Optional[AuthSession]) -> None:
        if auth_session is None:
            self.remove(SESSION_SLOT)
        else:
            self.write(SESSION_SLOT, auth_session.model_dump(mode="json"))

    def clear_lists(self) -> None:
        """Drop the note and category slots (logout)."""
        self.remove(NOTES_SLOT, CATEGORIES_SLOT)


__all__ = ["LocalCache", "NOTES_SLOT", "CATEGORIES_SLOT", "SESSION_SLOT"]
