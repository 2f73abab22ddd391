from typing import Protocol
from domain.model.user import User


class UserRepository(Protocol):
    """Protocol defining the interface for user data access.

    Email uniqueness is enforced by the storage behind the implementation,
    so concurrent inserts with the same email yield exactly one success.
    """
    def insert(self, user: User) -> User:
        """Persist a new user and return it with storage timestamps set.

        Raises:
            DuplicateEmailError: a user with this email already exists
            StorageError: storage failed for any other reason
        """
        ...

    def get_by_email(self, email: str) -> User | None:
        """Find a user by (normalised) email. Return None if not found.

        Raises:
            StorageError: storage failed
        """
        ...

    def get_by_id(self, user_id: str) -> User | None:
        """Find a user by ID. Return None if not found.

        Raises:
            StorageError: storage failed
        """
        ...
