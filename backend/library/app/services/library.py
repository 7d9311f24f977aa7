"""
Library membership for (user, song) pairs.

Each pair moves through ABSENT -> ACTIVE <-> INACTIVE. Rows are never
deleted; removal only clears ``is_active`` so the history is kept.
First-insert races are settled by the store's unique constraint.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

import app.db.models as m
import app.db.schemas as s
from app.core.errors import ConflictError
from app.db.store import DuplicateKeyError, LibraryStore, StaleEntryError

logger = logging.getLogger(__name__)

MSG_ADDED = "Song added to library"
MSG_REMOVED = "Song removed from library"
MSG_ALREADY_IN = "Song already in library"
MSG_NOT_IN = "Song not found in library"
MSG_CHANGED = "Library entry changed concurrently"

DEFAULT_LIMIT = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(dt: datetime) -> datetime:
    # sqlite hands back naive datetimes even for timezone=True columns
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


class LibraryMembership:
    def __init__(self, store: LibraryStore, *, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.clock = clock

    # --- commands ------------------------------------------------------------

    def toggle(self, user_id: uuid.UUID, song_id: uuid.UUID) -> s.ToggleResult:
        """Flip the pair's membership, creating the entry on first use."""
        entry = self.store.find_one(user_id, song_id)
        if entry is None:
            self._create(user_id, song_id)
            return s.ToggleResult(added=True, message=MSG_ADDED)
        if entry.is_active:
            self._deactivate(entry)
            return s.ToggleResult(added=False, message=MSG_REMOVED)
        self._activate(entry)
        return s.ToggleResult(added=True, message=MSG_ADDED)

    def add(self, user_id: uuid.UUID, song_id: uuid.UUID) -> s.ToggleResult:
        """Make the pair active; ``added`` is False when it already was."""
        entry = self.store.find_one(user_id, song_id)
        if entry is None:
            self._create(user_id, song_id)
            return s.ToggleResult(added=True, message=MSG_ADDED)
        if entry.is_active:
            return s.ToggleResult(added=False, message=MSG_ALREADY_IN)
        self._activate(entry)
        return s.ToggleResult(added=True, message=MSG_ADDED)

    def remove(self, user_id: uuid.UUID, song_id: uuid.UUID) -> s.RemoveResult:
        """Deactivate the pair. Removing a non-member is a no-op, not an error."""
        entry = self.store.find_one(user_id, song_id, active_only=True)
        if entry is None:
            return s.RemoveResult(removed=False, message=MSG_NOT_IN)
        self._deactivate(entry)
        return s.RemoveResult(removed=True, message=MSG_REMOVED)

    # --- queries -------------------------------------------------------------

    def is_member(self, user_id: uuid.UUID, song_id: uuid.UUID) -> bool:
        return self.store.find_one(user_id, song_id, active_only=True) is not None

    def list_library(
        self,
        user_id: uuid.UUID,
        limit: Optional[int] = DEFAULT_LIMIT,
        offset: int = 0,
    ) -> List[m.LibraryEntry]:
        """Active entries, most recently added first. ``limit=None`` means no limit."""
        if limit is not None and limit < 0:
            raise ValueError("limit must be >= 0")
        if offset < 0:
            raise ValueError("offset must be >= 0")
        return self.store.find(user_id, active_only=True, limit=limit, offset=offset)

    def count(self, user_id: uuid.UUID) -> int:
        return self.store.count(user_id, active_only=True)

    # --- transitions ---------------------------------------------------------

    def _create(self, user_id: uuid.UUID, song_id: uuid.UUID) -> m.LibraryEntry:
        entry = m.LibraryEntry(user_id=user_id, song_id=song_id, added_at=_aware(self.clock()), is_active=True)
        try:
            entry = self.store.insert(entry)
        except DuplicateKeyError as exc:
            logger.warning("lost first-insert race for user=%s song=%s", user_id, song_id)
            raise ConflictError(MSG_ALREADY_IN) from exc
        logger.debug("library entry created user=%s song=%s", user_id, song_id)
        return entry

    def _activate(self, entry: m.LibraryEntry) -> None:
        # is_active and added_at go out in the same UPDATE
        entry.added_at = self._next_added_at(entry.added_at)
        entry.is_active = True
        self._save(entry, was_active=False)
        logger.debug("library entry activated user=%s song=%s", entry.user_id, entry.song_id)

    def _deactivate(self, entry: m.LibraryEntry) -> None:
        entry.is_active = False
        self._save(entry, was_active=True)
        logger.debug("library entry deactivated user=%s song=%s", entry.user_id, entry.song_id)

    def _save(self, entry: m.LibraryEntry, *, was_active: bool) -> None:
        try:
            self.store.save(entry, was_active=was_active)
        except StaleEntryError as exc:
            logger.warning("lost update race for user=%s song=%s", exc.user_id, exc.song_id)
            raise ConflictError(MSG_CHANGED) from exc

    def _next_added_at(self, previous: Optional[datetime]) -> datetime:
        now = _aware(self.clock())
        if previous is None:
            return now
        previous = _aware(previous)
        if now <= previous:
            now = previous + timedelta(microseconds=1)
        return now
