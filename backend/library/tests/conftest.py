"""
pytest fixtures for the library service.

Service logic is tested against ``InMemoryLibraryStore``; the SQL store and
the HTTP routes run against a throwaway sqlite file per test.
"""
import threading
import uuid
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from fastapi.testclient import TestClient

import app.db.models as m
from app.core.config import Settings
from app.db.session import Database
from app.db.store import DuplicateKeyError, StaleEntryError
from app.main import create_app
from app.services.library import LibraryMembership


# ---------------------------------------------------------------------------
# fakes

class FakeClock:
    """Returns ``start`` and moves forward by ``step`` on every call."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        current = self.now
        self.now = self.now + self.step
        return current


class InMemoryLibraryStore:
    """Dict-backed LibraryStore with the same uniqueness rule and conditional save as the table."""

    def __init__(self):
        self.rows = {}
        self.saves = 0
        self._lock = threading.Lock()

    def find_one(self, user_id, song_id, *, active_only=False):
        row = self.rows.get((user_id, song_id))
        if row is None or (active_only and not row.is_active):
            return None
        # a detached copy, like a row loaded by its own session
        return m.LibraryEntry(
            id=row.id,
            user_id=row.user_id,
            song_id=row.song_id,
            added_at=row.added_at,
            is_active=row.is_active,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def insert(self, entry):
        key = (entry.user_id, entry.song_id)
        with self._lock:
            if key in self.rows:
                raise DuplicateKeyError(entry.user_id, entry.song_id)
            entry.id = uuid.uuid4()
            entry.created_at = entry.updated_at = entry.added_at
            self.rows[key] = entry
        return entry

    def save(self, entry, *, was_active):
        key = (entry.user_id, entry.song_id)
        with self._lock:
            if self.rows[key].is_active is not was_active:
                raise StaleEntryError(entry.user_id, entry.song_id)
            self.saves += 1
            self.rows[key] = entry
        return entry

    def find(self, user_id, *, active_only=True, limit=None, offset=0):
        rows = [
            r for (uid, _), r in self.rows.items()
            if uid == user_id and (r.is_active or not active_only)
        ]
        rows.sort(key=lambda r: r.added_at, reverse=True)
        rows = rows[offset:]
        return rows if limit is None else rows[:limit]

    def count(self, user_id, *, active_only=True):
        return len(self.find(user_id, active_only=active_only))


class RacingStore(InMemoryLibraryStore):
    """Holds every lookup at a barrier so concurrent callers all read before anyone writes."""

    def __init__(self, parties):
        super().__init__()
        self.barrier = threading.Barrier(parties)

    def find_one(self, user_id, song_id, *, active_only=False):
        row = super().find_one(user_id, song_id, active_only=active_only)
        self.barrier.wait(timeout=5)
        return row


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return InMemoryLibraryStore()


@pytest.fixture
def membership(store, clock):
    return LibraryMembership(store, clock=clock)


# ---------------------------------------------------------------------------
# sqlite

@pytest.fixture
def settings(tmp_path):
    return Settings(
        service_name="library-test",
        database_url=f"sqlite:///{tmp_path / 'library.db'}",
        jwt_secret="test-secret",
        jwt_issuer="https://auth.test",
        jwt_audience="test.api",
        library_page_max=100,
    )


@pytest.fixture
def database(settings):
    db = Database(settings.database_url).open()
    db.create_all()
    yield db
    db.close()


@pytest.fixture
def db_session(database):
    session = database.session()
    yield session
    session.close()


@pytest.fixture
def make_song(database):
    """Insert a song row and return its id."""
    counter = {"n": 0}

    def _make(title=None, duration=215):
        counter["n"] += 1
        session = database.session()
        try:
            song = m.Song(
                title=title or f"Song {counter['n']}",
                artist="Test Artist",
                album="Test Album",
                genre="pop",
                duration=duration,
            )
            session.add(song)
            session.commit()
            return song.id
        finally:
            session.close()

    return _make


# ---------------------------------------------------------------------------
# http

@pytest.fixture
def client(settings, database):
    app = create_app(settings, database)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_token(settings):
    def _make(sub, **overrides):
        now = int(datetime.now(tz=timezone.utc).timestamp())
        payload = {
            "iss": settings.jwt_issuer,
            "aud": settings.jwt_audience,
            "iat": now,
            "exp": now + settings.jwt_ttl_minutes * 60,
            "sub": str(sub),
        }
        payload.update(overrides)
        return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")

    return _make


@pytest.fixture
def user_id():
    return uuid.uuid4()


@pytest.fixture
def auth_headers(make_token, user_id):
    return {"Authorization": f"Bearer {make_token(user_id)}"}
