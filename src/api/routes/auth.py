"""Authentication routes (register, login)."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from api.dependencies import (
    get_client_key,
    get_password_hasher,
    get_rate_limiter,
    get_user_repo,
)
from api.models import LoginRequest, RegisterRequest, UserResponse, ValidationErrorDetail
from domain.model.auth import LoginRequest as LoginCommand
from domain.model.auth import RegistrationRequest
from domain.model.errors import (
    DomainError,
    DuplicateEmailError,
    InvalidCredentialsError,
    RateLimitedError,
    RegistrationFailedError,
    StorageError,
    ValidationError,
)
from domain.model.user import User
from port.rate_limiter import RateLimiter
from port.user_repository import UserRepository
from services import auth_service
from utils.password import PasswordHasher

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

INTERNAL_ERROR = "Internal server error"


def to_http_exception(error: DomainError) -> HTTPException:
    """Map a domain error to the response the caller is allowed to see.

    Only validation errors carry detail. Everything else gets a fixed message,
    and unmapped errors become an opaque 500.
    """
    if isinstance(error, ValidationError):
        detail = ValidationErrorDetail(message=str(error), errors=error.errors)
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail.model_dump())
    if isinstance(error, RateLimitedError):
        return HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests",
            headers={"Retry-After": str(error.retry_after)},
        )
    if isinstance(error, (RegistrationFailedError, DuplicateEmailError)):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=auth_service.REGISTRATION_FAILED,
        )
    if isinstance(error, InvalidCredentialsError):
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=auth_service.INVALID_CREDENTIALS,
        )
    if not isinstance(error, StorageError):
        logger.error("Unmapped domain error", extra={"errorType": type(error).__name__})
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR)


def enforce_rate_limit(
    client_key: str = Depends(get_client_key),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> None:
    """Count the request against the caller's budget.

    Declared on the route decorators so it resolves before the body is
    validated, and malformed payloads are throttled like any other request.
    """
    try:
        auth_service.check_rate_limit(limiter, client_key)
    except RateLimitedError as e:
        raise to_http_exception(e)


def _to_response(user: User) -> UserResponse:
    public = user.to_public()
    return UserResponse(id=public.id, name=public.name, email=public.email)


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)],
)
def register(
    request: RegisterRequest,
    client_key: str = Depends(get_client_key),
    repo: UserRepository = Depends(get_user_repo),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    """Register a new user.

    Returns:
        Public user info (id, name, email)

    Raises:
        HTTPException: 400 invalid payload or registration refused,
            429 rate limited, 500 storage failure
    """
    try:
        user = auth_service.register(
            repo,
            hasher,
            RegistrationRequest(name=request.name, email=request.email, password=request.password),
            client_key=client_key,
        )
    except DomainError as e:
        raise to_http_exception(e)

    return _to_response(user)


@router.post("/login", response_model=UserResponse, dependencies=[Depends(enforce_rate_limit)])
def login(
    request: LoginRequest,
    client_key: str = Depends(get_client_key),
    repo: UserRepository = Depends(get_user_repo),
    hasher: PasswordHasher = Depends(get_password_hasher),
):
    """Check credentials and return the authenticated user.

    Raises:
        HTTPException: 400 invalid payload, 401 invalid credentials,
            429 rate limited, 500 storage failure
    """
    try:
        user = auth_service.authenticate(
            repo,
            hasher,
            LoginCommand(email=request.email, password=request.password),
            client_key=client_key,
        )
    except DomainError as e:
        raise to_http_exception(e)

    return _to_response(user)
