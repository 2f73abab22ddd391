"""Auth service: registration and authentication business logic.

Pure business logic with no HTTP dependencies.
Raises domain errors that route handlers map to HTTP status codes.

Per request the steps run strictly in order: rate check, validation, then
hashing and storage. Failures that could reveal whether an email is
registered are collapsed into one generic error before leaving this module.
"""

import logging

from domain.model.auth import LoginRequest, RegistrationRequest
from domain.model.errors import (
    DuplicateEmailError,
    InvalidCredentialsError,
    RateLimitedError,
    RegistrationFailedError,
)
from domain.model.user import User
from port.rate_limiter import RateLimiter
from port.user_repository import UserRepository
from services.validation import validate_login, validate_registration
from utils.identifiers import generate_user_id
from utils.password import PasswordHasher

logger = logging.getLogger(__name__)

REGISTRATION_FAILED = "Registration failed"
INVALID_CREDENTIALS = "Invalid email or password"


def check_rate_limit(limiter: RateLimiter | None, client_key: str | None) -> None:
    if limiter is None or client_key is None:
        return
    if not limiter.admit(client_key):
        logger.warning("Request rate limited", extra={"clientKey": client_key})
        raise RateLimitedError(retry_after=limiter.window_seconds)


def register(
    repo: UserRepository,
    hasher: PasswordHasher,
    request: RegistrationRequest,
    limiter: RateLimiter | None = None,
    client_key: str | None = None,
) -> User:
    """Register a new user.

    Returns the stored User domain object.

    Raises:
        RateLimitedError: client exceeded its request budget
        ValidationError: payload failed validation
        RegistrationFailedError: email already registered (deliberately vague)
        StorageError: storage infrastructure fault
    """
    check_rate_limit(limiter, client_key)
    request = validate_registration(request)

    user = User(
        id=generate_user_id(),
        name=request.name,
        email=request.email,
        password_hash=hasher.hash(request.password),
    )

    try:
        user = repo.insert(user)
    except DuplicateEmailError:
        logger.warning("Registration rejected", extra={"clientKey": client_key})
        raise RegistrationFailedError(REGISTRATION_FAILED)

    logger.info("User registered", extra=user.log_extra)
    return user


def authenticate(
    repo: UserRepository,
    hasher: PasswordHasher,
    request: LoginRequest,
    limiter: RateLimiter | None = None,
    client_key: str | None = None,
) -> User:
    """Authenticate a user by email and password.

    Returns the authenticated User domain object.
    An unknown email is verified against the hasher's dummy record, so it
    costs the same as a wrong password and fails the same way.

    Raises:
        RateLimitedError: client exceeded its request budget
        ValidationError: payload failed validation
        InvalidCredentialsError: unknown email or wrong password
        StorageError: storage infrastructure fault
    """
    check_rate_limit(limiter, client_key)
    request = validate_login(request)

    user = repo.get_by_email(request.email)
    hash_record = user.password_hash if user else hasher.dummy_hash
    verified = hasher.verify(request.password, hash_record)

    if user is None or not verified:
        logger.warning("Login failed", extra={"clientKey": client_key})
        raise InvalidCredentialsError(INVALID_CREDENTIALS)

    logger.info("User logged in", extra=user.log_extra)
    return user
