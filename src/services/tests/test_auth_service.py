"""Unit tests for auth_service module."""

import statistics
import time
import unittest
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import MagicMock, patch
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from adapter.fake.user_repository import FakeUserRepository
from adapter.ratelimit.memory_rate_limiter import InMemoryRateLimiter
from domain.model.auth import LoginRequest, RegistrationRequest
from domain.model.errors import (
    InvalidCredentialsError,
    RateLimitedError,
    RegistrationFailedError,
    StorageError,
    ValidationError,
)
from domain.model.user import User
from services.auth_service import authenticate, register
from utils.password import PasswordHasher

JOHN = RegistrationRequest(name='John Doe', email='john@example.com', password='securepassword123')


def fast_hasher() -> PasswordHasher:
    return PasswordHasher(time_cost=1, memory_cost=1024, parallelism=1)


class TestRegister(unittest.TestCase):
    """Test register function."""

    def setUp(self):
        self.repo = FakeUserRepository()
        self.hasher = fast_hasher()

    def test_register_success(self):
        user = register(self.repo, self.hasher, JOHN)

        self.assertEqual(user.name, 'John Doe')
        self.assertEqual(user.email, 'john@example.com')
        self.assertEqual(len(user.id), 32)
        self.assertIsNotNone(user.created_at)
        self.assertIsNotNone(user.updated_at)

    def test_register_stores_hash_not_plaintext(self):
        user = register(self.repo, self.hasher, JOHN)

        stored = self.repo.get_by_id(user.id)
        self.assertNotEqual(stored.password_hash, JOHN.password)
        self.assertTrue(stored.password_hash.startswith('$argon2id$'))
        self.assertTrue(self.hasher.verify(JOHN.password, stored.password_hash))

    def test_register_normalises_email(self):
        user = register(
            self.repo, self.hasher,
            RegistrationRequest(name='John Doe', email='John@Example.COM', password='securepassword123'),
        )

        self.assertEqual(user.email, 'john@example.com')
        self.assertIsNotNone(self.repo.get_by_email('john@example.com'))

    def test_register_assigns_distinct_ids(self):
        first = register(self.repo, self.hasher, JOHN)
        second = register(
            self.repo, self.hasher,
            RegistrationRequest(name='Jane Doe', email='jane@example.com', password='securepassword123'),
        )
        self.assertNotEqual(first.id, second.id)

    def test_duplicate_email_gives_generic_failure(self):
        register(self.repo, self.hasher, JOHN)

        with self.assertRaises(RegistrationFailedError) as ctx:
            register(self.repo, self.hasher, JOHN)

        self.assertEqual(str(ctx.exception), 'Registration failed')
        self.assertNotIn('email', str(ctx.exception).lower())
        self.assertEqual(len(self.repo.store), 1)

    def test_duplicate_email_is_case_insensitive(self):
        register(self.repo, self.hasher, JOHN)

        with self.assertRaises(RegistrationFailedError):
            register(
                self.repo, self.hasher,
                RegistrationRequest(name='Other', email='JOHN@example.com', password='anotherpassword'),
            )
        self.assertEqual(len(self.repo.store), 1)

    def test_concurrent_registrations_with_same_email_succeed_once(self):
        emails = ['john@example.com', 'JOHN@example.com', 'John@Example.com', ' john@example.com ']
        requests = [
            RegistrationRequest(name=f'John {i}', email=emails[i % len(emails)], password='securepassword123')
            for i in range(12)
        ]

        def attempt(request):
            try:
                register(self.repo, self.hasher, request)
                return 'ok'
            except RegistrationFailedError:
                return 'failed'

        with ThreadPoolExecutor(max_workers=12) as executor:
            outcomes = list(executor.map(attempt, requests))

        self.assertEqual(outcomes.count('ok'), 1)
        self.assertEqual(outcomes.count('failed'), 11)
        self.assertEqual(len(self.repo.store), 1)

    def test_validation_runs_before_hashing_and_storage(self):
        hasher = MagicMock()
        repo = MagicMock()

        with self.assertRaises(ValidationError):
            register(repo, hasher, RegistrationRequest(name='', email='bad', password='short'))

        hasher.hash.assert_not_called()
        repo.insert.assert_not_called()

    def test_storage_error_propagates(self):
        repo = MagicMock()
        repo.insert.side_effect = StorageError("Failed to insert user")

        with self.assertRaises(StorageError):
            register(repo, self.hasher, JOHN)

    def test_rate_limited_before_validation(self):
        limiter = InMemoryRateLimiter(limit=1, window_seconds=60)
        register(self.repo, self.hasher, JOHN, limiter=limiter, client_key='10.0.0.1')

        with patch('services.auth_service.validate_registration') as mock_validate:
            with self.assertRaises(RateLimitedError) as ctx:
                register(self.repo, self.hasher, JOHN, limiter=limiter, client_key='10.0.0.1')

        mock_validate.assert_not_called()
        self.assertEqual(ctx.exception.retry_after, 60)

    def test_rate_limit_is_per_client(self):
        limiter = InMemoryRateLimiter(limit=1, window_seconds=60)
        register(self.repo, self.hasher, JOHN, limiter=limiter, client_key='10.0.0.1')

        user = register(
            self.repo, self.hasher,
            RegistrationRequest(name='Jane Doe', email='jane@example.com', password='securepassword123'),
            limiter=limiter, client_key='10.0.0.2',
        )
        self.assertEqual(user.email, 'jane@example.com')


class TestAuthenticate(unittest.TestCase):
    """Test authenticate function."""

    def setUp(self):
        self.repo = FakeUserRepository()
        self.hasher = fast_hasher()
        self.user = register(self.repo, self.hasher, JOHN)

    def test_authenticate_success(self):
        user = authenticate(
            self.repo, self.hasher,
            LoginRequest(email='john@example.com', password='securepassword123'),
        )
        self.assertEqual(user.id, self.user.id)

    def test_authenticate_email_case_insensitive(self):
        user = authenticate(
            self.repo, self.hasher,
            LoginRequest(email='JOHN@EXAMPLE.COM', password='securepassword123'),
        )
        self.assertEqual(user.id, self.user.id)

    def test_wrong_password(self):
        with self.assertRaises(InvalidCredentialsError) as ctx:
            authenticate(self.repo, self.hasher, LoginRequest(email='john@example.com', password='wrong'))
        self.assertEqual(str(ctx.exception), 'Invalid email or password')

    def test_unknown_email_fails_like_wrong_password(self):
        with self.assertRaises(InvalidCredentialsError) as unknown:
            authenticate(self.repo, self.hasher, LoginRequest(email='nobody@example.com', password='wrong'))
        with self.assertRaises(InvalidCredentialsError) as wrong:
            authenticate(self.repo, self.hasher, LoginRequest(email='john@example.com', password='wrong'))

        self.assertEqual(str(unknown.exception), str(wrong.exception))

    def test_unknown_email_verifies_against_dummy_hash(self):
        with patch.object(self.hasher, 'verify', wraps=self.hasher.verify) as spy:
            with self.assertRaises(InvalidCredentialsError):
                authenticate(self.repo, self.hasher, LoginRequest(email='nobody@example.com', password='whatever'))

        spy.assert_called_once_with('whatever', self.hasher.dummy_hash)

    def test_wrong_password_verifies_once(self):
        with patch.object(self.hasher, 'verify', wraps=self.hasher.verify) as spy:
            with self.assertRaises(InvalidCredentialsError):
                authenticate(self.repo, self.hasher, LoginRequest(email='john@example.com', password='whatever'))

        spy.assert_called_once()

    def test_unknown_email_and_wrong_password_take_comparable_time(self):
        def median_duration(email: str) -> float:
            durations = []
            for _ in range(7):
                start = time.perf_counter()
                with self.assertRaises(InvalidCredentialsError):
                    authenticate(self.repo, self.hasher, LoginRequest(email=email, password='wrong-password'))
                durations.append(time.perf_counter() - start)
            return statistics.median(durations)

        unknown = median_duration('nobody@example.com')
        wrong = median_duration('john@example.com')

        self.assertLess(abs(unknown - wrong), max(0.02, 0.5 * max(unknown, wrong)))

    def test_corrupt_stored_hash_is_invalid_credentials(self):
        repo = MagicMock()
        repo.get_by_email.return_value = User(
            id='a' * 32, name='John Doe', email='john@example.com', password_hash='not-a-phc-string',
        )

        with self.assertLogs('utils.password', level='ERROR'):
            with self.assertRaises(InvalidCredentialsError):
                authenticate(repo, self.hasher, LoginRequest(email='john@example.com', password='securepassword123'))

    def test_validation_error_before_lookup(self):
        repo = MagicMock()

        with self.assertRaises(ValidationError):
            authenticate(repo, self.hasher, LoginRequest(email='john@example.com', password=''))

        repo.get_by_email.assert_not_called()

    def test_storage_error_propagates(self):
        repo = MagicMock()
        repo.get_by_email.side_effect = StorageError("Failed to get user by email")

        with self.assertRaises(StorageError):
            authenticate(repo, self.hasher, LoginRequest(email='john@example.com', password='securepassword123'))

    def test_rate_limited_login(self):
        limiter = InMemoryRateLimiter(limit=2, window_seconds=30)
        request = LoginRequest(email='john@example.com', password='wrong')

        for _ in range(2):
            with self.assertRaises(InvalidCredentialsError):
                authenticate(self.repo, self.hasher, request, limiter=limiter, client_key='10.0.0.1')

        with self.assertRaises(RateLimitedError) as ctx:
            authenticate(self.repo, self.hasher, request, limiter=limiter, client_key='10.0.0.1')
        self.assertEqual(ctx.exception.retry_after, 30)


if __name__ == '__main__':
    unittest.main()
