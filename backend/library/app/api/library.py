from __future__ import annotations

import uuid
from typing import List

import jwt
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

import app.db.schemas as s
from app.core.config import Settings
from app.core.errors import ConflictError, NotFoundError
from app.db.store import SqlLibraryStore
from app.services.library import DEFAULT_LIMIT, LibraryMembership

router = APIRouter(prefix="/library", tags=["library"])

# ---------------------------------------------------------------------------
# deps

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def get_db(request: Request):
    db = request.app.state.database.session()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

def get_membership(db: Session = Depends(get_db)) -> LibraryMembership:
    return LibraryMembership(SqlLibraryStore(db))

bearer = HTTPBearer(auto_error=False)

def require_auth(
    credentials: HTTPAuthorizationCredentials = Depends(bearer),
    settings: Settings = Depends(get_settings),
) -> dict:
    if not credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_token")
    token = credentials.credentials
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=["HS256"],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            leeway=60,
        )
        return claims
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="token_expired")
    except jwt.InvalidAudienceError:
        raise HTTPException(status_code=401, detail="invalid_audience")
    except jwt.InvalidIssuerError:
        raise HTTPException(status_code=401, detail="invalid_issuer")
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="invalid_token")

def current_user_id(claims: dict = Depends(require_auth)) -> uuid.UUID:
    try:
        return uuid.UUID(claims["sub"])
    except (KeyError, TypeError, ValueError):
        raise HTTPException(status_code=401, detail="invalid_subject")

# ---------------------------------------------------------------------------
# routes

@router.get("", response_model=List[s.LibraryEntry])
def get_library(
    settings: Settings = Depends(get_settings),
    svc: LibraryMembership = Depends(get_membership),
    user_id: uuid.UUID = Depends(current_user_id),
    offset: int = Query(0, ge=0),
    limit: int = Query(DEFAULT_LIMIT, ge=1),
):
    """Active library entries for the current user, most recently added first."""
    page_max = settings.library_page_max
    if limit > page_max:
        raise HTTPException(status_code=422, detail=f"limit_above_{page_max}")
    rows = svc.list_library(user_id, limit=limit, offset=offset)
    return [s.LibraryEntry.model_validate(r) for r in rows]

@router.get("/count", response_model=s.LibraryCount)
def get_library_count(
    svc: LibraryMembership = Depends(get_membership),
    user_id: uuid.UUID = Depends(current_user_id),
):
    return s.LibraryCount(count=svc.count(user_id))

@router.get("/{song_id:uuid}", response_model=s.Membership)
def get_membership_status(
    song_id: uuid.UUID,
    svc: LibraryMembership = Depends(get_membership),
    user_id: uuid.UUID = Depends(current_user_id),
):
    """Whether the song is currently in the user's library."""
    return s.Membership(song_id=song_id, in_library=svc.is_member(user_id, song_id))

@router.post("/{song_id:uuid}", response_model=s.ToggleResult)
def toggle_song(
    song_id: uuid.UUID,
    svc: LibraryMembership = Depends(get_membership),
    user_id: uuid.UUID = Depends(current_user_id),
):
    """Add the song if it is not in the library, remove it if it is."""
    try:
        return svc.toggle(user_id, song_id)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=exc.message)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.code)

@router.put("/{song_id:uuid}", response_model=s.ToggleResult)
def add_song(
    song_id: uuid.UUID,
    svc: LibraryMembership = Depends(get_membership),
    user_id: uuid.UUID = Depends(current_user_id),
):
    """Put the song in the library; no-op if it is already there."""
    try:
        return svc.add(user_id, song_id)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=exc.message)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.code)

@router.delete("/{song_id:uuid}", response_model=s.RemoveResult)
def remove_song(
    song_id: uuid.UUID,
    svc: LibraryMembership = Depends(get_membership),
    user_id: uuid.UUID = Depends(current_user_id),
):
    try:
        return svc.remove(user_id, song_id)
    except ConflictError as exc:
        raise HTTPException(status_code=409, detail=exc.message)
