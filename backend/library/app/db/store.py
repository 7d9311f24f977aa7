from __future__ import annotations

import uuid
from typing import List, Optional, Protocol

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

import app.db.models as m
from app.core.errors import NotFoundError


class DuplicateKeyError(Exception):
    """Raised by a store when an insert hits the (user_id, song_id) unique constraint."""

    def __init__(self, user_id: uuid.UUID, song_id: uuid.UUID):
        super().__init__(f"library entry already exists for user={user_id} song={song_id}")
        self.user_id = user_id
        self.song_id = song_id


class StaleEntryError(Exception):
    """Raised by a store when a conditional save finds the entry already changed."""

    def __init__(self, user_id: uuid.UUID, song_id: uuid.UUID):
        super().__init__(f"library entry changed concurrently for user={user_id} song={song_id}")
        self.user_id = user_id
        self.song_id = song_id


class LibraryStore(Protocol):
    def find_one(self, user_id: uuid.UUID, song_id: uuid.UUID, *, active_only: bool = False) -> Optional[m.LibraryEntry]: ...

    def insert(self, entry: m.LibraryEntry) -> m.LibraryEntry: ...

    def save(self, entry: m.LibraryEntry, *, was_active: bool) -> m.LibraryEntry: ...

    def find(
        self,
        user_id: uuid.UUID,
        *,
        active_only: bool = True,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[m.LibraryEntry]: ...

    def count(self, user_id: uuid.UUID, *, active_only: bool = True) -> int: ...


class SqlLibraryStore:
    """LibraryStore backed by a SQLAlchemy session. Every write commits."""

    def __init__(self, db: Session):
        self.db = db

    def _query(self, user_id: uuid.UUID, active_only: bool):
        q = self.db.query(m.LibraryEntry).filter(m.LibraryEntry.user_id == user_id)
        if active_only:
            q = q.filter(m.LibraryEntry.is_active.is_(True))
        return q

    def _get(self, user_id, song_id, active_only):
        return self._query(user_id, active_only).filter(m.LibraryEntry.song_id == song_id).first()

    def find_one(self, user_id, song_id, *, active_only=False):
        return self._get(user_id, song_id, active_only)

    def insert(self, entry):
        user_id, song_id = entry.user_id, entry.song_id
        self.db.add(entry)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            # pair present now => the unique constraint rejected this insert
            if self._get(user_id, song_id, False) is not None:
                raise DuplicateKeyError(user_id, song_id)
            if self.db.get(m.Song, song_id) is None:
                raise NotFoundError("song_not_found")
            raise
        self.db.refresh(entry)
        return entry

    def save(self, entry, *, was_active):
        """Write is_active and added_at only if the row still has ``was_active``."""
        entry_id, user_id, song_id = entry.id, entry.user_id, entry.song_id
        values = {"is_active": entry.is_active, "added_at": entry.added_at}
        # the conditional UPDATE below carries the edits, not the unit of work
        self.db.expire(entry)
        matched = (
            self.db.query(m.LibraryEntry)
            .filter(m.LibraryEntry.id == entry_id, m.LibraryEntry.is_active.is_(was_active))
            .update(values, synchronize_session=False)
        )
        if matched == 0:
            self.db.rollback()
            raise StaleEntryError(user_id, song_id)
        self.db.commit()
        self.db.refresh(entry)
        return entry

    def find(self, user_id, *, active_only=True, limit=None, offset=0):
        q = (
            self._query(user_id, active_only)
            .options(selectinload(m.LibraryEntry.song))
            .order_by(m.LibraryEntry.added_at.desc(), m.LibraryEntry.id)
            .offset(offset)
        )
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def count(self, user_id, *, active_only=True):
        return self._query(user_id, active_only).count()
