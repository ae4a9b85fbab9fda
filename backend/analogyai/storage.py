"""Storage interface for users and analogies, with in-memory and SQL backends."""

import threading
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Generator, List, Optional

from fastapi import Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from analogyai import database
from analogyai.models import Analogy, User
from analogyai.schemas import AnalogyRecord, NewAnalogy, UpdateProfileIn, UserRecord, UserUpsert


class Storage(ABC):
    """Persistence operations used by the analogy pipeline."""

    # User operations
    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def upsert_user(self, data: UserUpsert) -> UserRecord:
        """Insert a user keyed by identity id, or refresh the identity fields of an existing one."""

    @abstractmethod
    def update_user(self, user_id: str, updates: UpdateProfileIn) -> Optional[UserRecord]:
        """Merge the provided profile fields. Returns None if the user does not exist."""

    # Analogy operations
    @abstractmethod
    def get_analogy(self, analogy_id: str) -> Optional[AnalogyRecord]: ...

    @abstractmethod
    def create_analogy(self, data: NewAnalogy, created_at: Optional[datetime] = None) -> AnalogyRecord: ...

    @abstractmethod
    def get_user_analogies(self, user_id: str, limit: int = 50, offset: int = 0) -> List[AnalogyRecord]:
        """Return a page of the user's analogies, newest first."""

    @abstractmethod
    def update_analogy(self, analogy_id: str, updates: Dict[str, Any]) -> Optional[AnalogyRecord]: ...

    @abstractmethod
    def delete_analogy(self, user_id: str, analogy_id: str) -> bool:
        """Delete an analogy owned by `user_id`. Returns False if nothing was deleted."""


def _profile_changes(updates: UpdateProfileIn) -> Dict[str, Any]:
    return updates.model_dump(exclude_unset=True, exclude_none=True)


_ANALOGY_FIELDS = set(AnalogyRecord.model_fields) - {"id", "user_id"}


def _check_analogy_fields(updates: Dict[str, Any]) -> None:
    unknown = set(updates) - _ANALOGY_FIELDS
    if unknown:
        raise ValueError(f"Unknown analogy fields: {', '.join(sorted(unknown))}")


class MemoryStorage(Storage):
    """Process-local storage. Used for tests and the STORAGE=memory demo mode."""

    def __init__(self):
        self._users: Dict[str, UserRecord] = {}
        self._analogies: Dict[str, AnalogyRecord] = {}
        self._lock = threading.Lock()

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        with self._lock:
            users = list(self._users.values())
        return next((u for u in users if u.email == email), None)

    def upsert_user(self, data: UserUpsert) -> UserRecord:
        with self._lock:
            existing = self._users.get(data.id)
            identity = data.model_dump(exclude_none=True)
            if existing:
                user = existing.model_copy(update=identity)
            else:
                user = UserRecord(**identity, created_at=datetime.now(timezone.utc))
            self._users[user.id] = user
            return user

    def update_user(self, user_id: str, updates: UpdateProfileIn) -> Optional[UserRecord]:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                return None
            user = user.model_copy(update=_profile_changes(updates))
            self._users[user_id] = user
            return user

    def get_analogy(self, analogy_id: str) -> Optional[AnalogyRecord]:
        return self._analogies.get(analogy_id)

    def create_analogy(self, data: NewAnalogy, created_at: Optional[datetime] = None) -> AnalogyRecord:
        analogy = AnalogyRecord(
            id=str(uuid.uuid4()),
            created_at=created_at or datetime.now(timezone.utc),
            is_favorite=False,
            **data.model_dump(),
        )
        with self._lock:
            self._analogies[analogy.id] = analogy
        return analogy

    def get_user_analogies(self, user_id: str, limit: int = 50, offset: int = 0) -> List[AnalogyRecord]:
        with self._lock:
            owned = [a for a in self._analogies.values() if a.user_id == user_id]
        owned.sort(key=lambda a: a.created_at, reverse=True)
        return owned[offset:offset + limit]

    def update_analogy(self, analogy_id: str, updates: Dict[str, Any]) -> Optional[AnalogyRecord]:
        _check_analogy_fields(updates)
        with self._lock:
            analogy = self._analogies.get(analogy_id)
            if analogy is None:
                return None
            analogy = analogy.model_copy(update=updates)
            self._analogies[analogy_id] = analogy
            return analogy

    def delete_analogy(self, user_id: str, analogy_id: str) -> bool:
        with self._lock:
            analogy = self._analogies.get(analogy_id)
            if analogy is None or analogy.user_id != user_id:
                return False
            del self._analogies[analogy_id]
            return True


class SqlStorage(Storage):
    """SQLAlchemy-backed storage bound to one session."""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        user = self.db.get(User, user_id)
        return UserRecord.model_validate(user) if user else None

    def get_user_by_email(self, email: str) -> Optional[UserRecord]:
        user = self.db.query(User).filter(User.email == email).first()
        return UserRecord.model_validate(user) if user else None

    def upsert_user(self, data: UserUpsert) -> UserRecord:
        identity = data.model_dump(exclude_none=True)
        user = self.db.get(User, data.id)
        if user is None:
            user = User(**identity)
            self.db.add(user)
            try:
                self.db.commit()
            except IntegrityError:
                # A concurrent request inserted the same identity first
                self.db.rollback()
                user = self.db.get(User, data.id)
                if user is None:
                    raise
            else:
                self.db.refresh(user)
                return UserRecord.model_validate(user)

        # Update user info if it changed
        for field, value in identity.items():
            if getattr(user, field) != value:
                setattr(user, field, value)
        self.db.commit()
        self.db.refresh(user)
        return UserRecord.model_validate(user)

    def update_user(self, user_id: str, updates: UpdateProfileIn) -> Optional[UserRecord]:
        user = self.db.get(User, user_id)
        if user is None:
            return None
        for field, value in _profile_changes(updates).items():
            setattr(user, field, value)
        self.db.commit()
        self.db.refresh(user)
        return UserRecord.model_validate(user)

    def get_analogy(self, analogy_id: str) -> Optional[AnalogyRecord]:
        analogy = self.db.get(Analogy, analogy_id)
        return AnalogyRecord.model_validate(analogy) if analogy else None

    def create_analogy(self, data: NewAnalogy, created_at: Optional[datetime] = None) -> AnalogyRecord:
        analogy = Analogy(**data.model_dump())
        if created_at is not None:
            analogy.created_at = created_at
        self.db.add(analogy)
        self.db.commit()
        self.db.refresh(analogy)
        return AnalogyRecord.model_validate(analogy)

    def get_user_analogies(self, user_id: str, limit: int = 50, offset: int = 0) -> List[AnalogyRecord]:
        analogies = (
            self.db.query(Analogy)
            .filter(Analogy.user_id == user_id)
            .order_by(Analogy.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return [AnalogyRecord.model_validate(a) for a in analogies]

    def update_analogy(self, analogy_id: str, updates: Dict[str, Any]) -> Optional[AnalogyRecord]:
        _check_analogy_fields(updates)
        analogy = self.db.get(Analogy, analogy_id)
        if analogy is None:
            return None
        for field, value in updates.items():
            setattr(analogy, field, value)
        self.db.commit()
        self.db.refresh(analogy)
        return AnalogyRecord.model_validate(analogy)

    def delete_analogy(self, user_id: str, analogy_id: str) -> bool:
        deleted = (
            self.db.query(Analogy)
            .filter(Analogy.id == analogy_id, Analogy.user_id == user_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return deleted > 0


def get_storage(request: Request) -> Generator[Storage, None, None]:
    """
    Dependency yielding the configured storage.

    A storage instance on `app.state.storage` (memory mode) is shared across
    requests; otherwise each request gets a SqlStorage over a fresh session.
    """
    storage = getattr(request.app.state, "storage", None)
    if storage is not None:
        yield storage
        return
    sessions = database.get_db()
    try:
        yield SqlStorage(next(sessions))
    finally:
        sessions.close()
