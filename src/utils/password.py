"""Password hashing with Argon2id.

Records are PHC strings (``$argon2id$v=19$m=...,t=...,p=...$salt$hash``) that
carry their own salt and parameters, so verification needs nothing else.
"""

import logging
import secrets

from argon2 import PasswordHasher as Argon2Hasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from domain.model.errors import CorruptStoredHashError

logger = logging.getLogger(__name__)

DEFAULT_TIME_COST = 3
DEFAULT_MEMORY_COST = 65536  # KiB
DEFAULT_PARALLELISM = 4


class PasswordHasher:
    """Hash and verify passwords.

    ``dummy_hash`` is a record of a random secret, built once per hasher.
    Login verifies against it when no user matches so that an unknown email
    costs the same Argon2 work as a wrong password.
    """

    def __init__(
        self,
        time_cost: int = DEFAULT_TIME_COST,
        memory_cost: int = DEFAULT_MEMORY_COST,
        parallelism: int = DEFAULT_PARALLELISM,
    ):
        self._hasher = Argon2Hasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )
        self.dummy_hash = self.hash(secrets.token_urlsafe(32))

    def hash(self, password: str) -> str:
        return self._hasher.hash(password)

    def verify(self, password: str, hash_record: str) -> bool:
        """Return True only if ``password`` matches ``hash_record``.

        A corrupt record counts as a mismatch; it is logged for operators but
        never reported differently to the caller.
        """
        try:
            return self._verify_record(password, hash_record)
        except CorruptStoredHashError as e:
            logger.error("Stored password hash is corrupt", extra={"error": str(e)})
            return False

    def _verify_record(self, password: str, hash_record: str) -> bool:
        if not hash_record:
            raise CorruptStoredHashError("Empty hash record")
        try:
            return self._hasher.verify(hash_record, password)
        except VerifyMismatchError:
            return False
        except InvalidHashError as e:
            raise CorruptStoredHashError("Unparseable hash record") from e
        except VerificationError as e:
            raise CorruptStoredHashError(f"Verification failed: {e}") from e
