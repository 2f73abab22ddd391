"""MongoDB implementation of UserRepository.

Email uniqueness lives in the ``idx_users_email`` unique index, so two racing
inserts for the same address produce one document and one DuplicateKeyError.
"""

from datetime import datetime, timezone
from logging import getLogger
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError, OperationFailure, PyMongoError
from adapter.mongodb.connection import USERS_COLLECTION_NAME
from domain.model.errors import DuplicateEmailError, StorageError
from domain.model.user import User

logger = getLogger(__name__)

# IndexOptionsConflict, IndexKeySpecsConflict
_INDEX_CONFLICT_CODES = {85, 86}

USER_INDEXES = [
    ([('email', 1)], 'idx_users_email', {'unique': True}),
    ([('created_at', -1)], 'idx_users_created_at', {}),
]


class MongoUserRepository:
    def __init__(self, db: Database):
        self.collection = db[USERS_COLLECTION_NAME]

    def ensure_indexes(self) -> bool:
        """Create indexes for users collection, replacing conflicting definitions."""
        try:
            for keys, name, options in USER_INDEXES:
                self._create_index(keys, name, **options)
            return True
        except PyMongoError as e:
            logger.error("Failed to create users indexes", extra={"error": str(e)})
            return False

    def _create_index(self, keys: list, name: str, **options) -> None:
        try:
            self.collection.create_index(keys, name=name, **options)
        except OperationFailure as e:
            if e.code not in _INDEX_CONFLICT_CODES:
                raise
            logger.warning("Replacing conflicting index", extra={"index": name})
            self.collection.drop_index(name)
            self.collection.create_index(keys, name=name, **options)

    def _to_domain(self, doc: dict) -> User:
        """Convert MongoDB document to User domain model."""
        return User(
            id=doc['_id'],
            name=doc['name'],
            email=doc['email'],
            password_hash=doc['password_hash'],
            created_at=doc.get('created_at'),
            updated_at=doc.get('updated_at'),
        )

    def insert(self, user: User) -> User:
        now = datetime.now(timezone.utc)
        user_doc = {
            '_id': user.id,
            'name': user.name,
            'email': user.email,
            'password_hash': user.password_hash,
            'created_at': now,
            'updated_at': now,
        }
        try:
            self.collection.insert_one(user_doc)
        except DuplicateKeyError as e:
            key_pattern = (e.details or {}).get('keyPattern') or {}
            if '_id' in key_pattern:
                logger.error("User insert rejected: id collision", extra=user.log_extra)
                raise StorageError("User id collision") from e
            logger.warning("User insert rejected: email already exists", extra=user.log_extra)
            raise DuplicateEmailError("Email already registered")
        except PyMongoError as e:
            logger.error("Failed to insert user", extra={**user.log_extra, "error": str(e)})
            raise StorageError("Failed to insert user") from e

        logger.info("User created", extra=user.log_extra)
        return self._to_domain(user_doc)

    def get_by_email(self, email: str) -> User | None:
        try:
            doc = self.collection.find_one({'email': email})
        except PyMongoError as e:
            logger.error("Failed to get user by email", extra={"error": str(e)})
            raise StorageError("Failed to get user by email") from e
        return self._to_domain(doc) if doc else None

    def get_by_id(self, user_id: str) -> User | None:
        try:
            doc = self.collection.find_one({'_id': user_id})
        except PyMongoError as e:
            logger.error("Failed to get user by ID", extra={"userId": user_id, "error": str(e)})
            raise StorageError("Failed to get user by ID") from e
        return self._to_domain(doc) if doc else None
