"""Domain-level exceptions.

Services raise these errors to express business rule violations.
Route handlers catch them and map to appropriate HTTP status codes.
"""


class DomainError(Exception):
    """Base class for all domain errors."""


class ValidationError(DomainError):
    """Input violates a validation rule.

    ``errors`` maps each failing field to a user-correctable message.
    """

    def __init__(self, message: str = "Validation failed", errors: dict[str, str] | None = None):
        self.errors = errors or {}
        super().__init__(message)


class RateLimitedError(DomainError):
    """Client exceeded its request budget for the current window."""

    def __init__(self, retry_after: int):
        self.retry_after = retry_after
        super().__init__("Too many requests")


class DuplicateEmailError(DomainError):
    """A user with the same email already exists."""


class RegistrationFailedError(DomainError):
    """Registration was refused. Deliberately vague about the reason."""


class InvalidCredentialsError(DomainError):
    """Email/password pair did not authenticate. Deliberately vague."""


class StorageError(DomainError):
    """Storage infrastructure fault. Message stays internal."""


class CorruptStoredHashError(DomainError):
    """A stored password hash record could not be parsed."""
