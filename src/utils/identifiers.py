"""User identifier generation."""

import os
import uuid

USER_ID_LENGTH = 32


def generate_user_id() -> str:
    """Return a random 32-character lowercase hex id.

    Drawn from the OS entropy source (uuid4), so ids are neither sequential
    nor predictable from earlier ones, and need no coordination with storage.
    """
    return uuid.uuid4().hex


def check_entropy_source() -> None:
    """Fail fast at startup if the OS cannot supply random bytes."""
    try:
        os.urandom(16)
    except NotImplementedError as e:
        raise RuntimeError("No OS entropy source available for identifier generation") from e
