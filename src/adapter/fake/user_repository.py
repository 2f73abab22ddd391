"""In-memory implementation of UserRepository for testing."""

import threading
from dataclasses import replace
from datetime import datetime, timezone

from domain.model.errors import DuplicateEmailError
from domain.model.user import User


class FakeUserRepository:
    def __init__(self):
        self.store: dict[str, User] = {}
        self._email_index: dict[str, str] = {}
        self._lock = threading.Lock()

    # ── write operations ─────────────────────────────────────

    def insert(self, user: User) -> User:
        now = datetime.now(timezone.utc)
        stored = replace(user, created_at=now, updated_at=now)

        # check-and-set under one lock, like a unique index
        with self._lock:
            if user.email in self._email_index:
                raise DuplicateEmailError("Email already registered")
            self._email_index[user.email] = user.id
            self.store[user.id] = stored
        return stored

    # ── read operations ──────────────────────────────────────

    def get_by_email(self, email: str) -> User | None:
        with self._lock:
            user_id = self._email_index.get(email)
            return self.store.get(user_id) if user_id else None

    def get_by_id(self, user_id: str) -> User | None:
        with self._lock:
            return self.store.get(user_id)
