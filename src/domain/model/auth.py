"""Auth request models: ephemeral payloads, never persisted."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RegistrationRequest:
    name: str
    email: str
    password: str = field(repr=False)


@dataclass(frozen=True)
class LoginRequest:
    email: str
    password: str = field(repr=False)
