from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class PublicUser:
    """Public-safe projection of a user, returned to API callers."""
    id: str
    name: str
    email: str


@dataclass
class User:
    """Domain model representing a registered user."""
    id: str
    name: str
    email: str
    password_hash: str = field(repr=False)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_public(self) -> PublicUser:
        return PublicUser(id=self.id, name=self.name, email=self.email)

    @property
    def log_extra(self) -> dict:
        """Common extra fields for structured logging."""
        return {"userId": self.id}
