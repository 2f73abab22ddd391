"""Input validation for registration and login payloads.

Pure functions: no I/O, no hashing. They run before anything with a side
effect, and return normalised copies of the request.
"""

from dataclasses import replace

from email_validator import EmailNotValidError, validate_email

from domain.model.auth import LoginRequest, RegistrationRequest
from domain.model.errors import ValidationError

NAME_MAX_LENGTH = 255
EMAIL_MAX_LENGTH = 255
PASSWORD_MIN_LENGTH = 8
# Upper bound on hashing input, in UTF-8 bytes
PASSWORD_MAX_BYTES = 512


def normalize_email(email: str) -> str:
    """Emails are compared and stored lower-cased."""
    return email.strip().lower()


def _check_email(email: str) -> str | None:
    if not email:
        return "Email is required"
    if len(email) > EMAIL_MAX_LENGTH:
        return f"Email must be at most {EMAIL_MAX_LENGTH} characters"
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return "Invalid email format"
    return None


def _password_too_large(password: str) -> bool:
    return len(password.encode('utf-8')) > PASSWORD_MAX_BYTES


def validate_registration(request: RegistrationRequest) -> RegistrationRequest:
    """Check a registration payload and return it normalised.

    Raises:
        ValidationError: one entry per failing field in ``errors``
    """
    name = request.name.strip()
    email = normalize_email(request.email)
    errors: dict[str, str] = {}

    if not name:
        errors['name'] = "Name is required"
    elif len(name) > NAME_MAX_LENGTH:
        errors['name'] = f"Name must be at most {NAME_MAX_LENGTH} characters"

    email_error = _check_email(email)
    if email_error:
        errors['email'] = email_error

    if len(request.password) < PASSWORD_MIN_LENGTH:
        errors['password'] = f"Password must be at least {PASSWORD_MIN_LENGTH} characters"
    elif _password_too_large(request.password):
        errors['password'] = f"Password must be at most {PASSWORD_MAX_BYTES} bytes"

    if errors:
        raise ValidationError(errors=errors)
    return replace(request, name=name, email=email)


def validate_login(request: LoginRequest) -> LoginRequest:
    """Check a login payload and return it with the email normalised.

    Raises:
        ValidationError: one entry per failing field in ``errors``
    """
    email = normalize_email(request.email)
    errors: dict[str, str] = {}

    email_error = _check_email(email)
    if email_error:
        errors['email'] = email_error

    if not request.password:
        errors['password'] = "Password is required"
    elif _password_too_large(request.password):
        errors['password'] = f"Password must be at most {PASSWORD_MAX_BYTES} bytes"

    if errors:
        raise ValidationError(errors=errors)
    return replace(request, email=email)
