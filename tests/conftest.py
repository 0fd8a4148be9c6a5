from __future__ import annotations

import itertools
import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

import pytest

# Make the greeting_api package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from greeting_api.core.config import Settings  # noqa: E402
from greeting_api.core.security import Pbkdf2CredentialHasher  # noqa: E402
from greeting_api.core.tokens import JwtTokenService  # noqa: E402
from greeting_api.repositories.user_repository import DuplicateEmailError, UserRecord  # noqa: E402
from greeting_api.services.auth_service import AuthService  # noqa: E402

SECRET = "test-signing-key-0123456789abcdefghijklmnop"
ISSUER = "greeting-api-test"
AUDIENCE = "greeting-api-test-clients"


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class InMemoryUserRepository:
    def __init__(self) -> None:
        self.users: dict[int, UserRecord] = {}
        self._ids = itertools.count(1)

    def get_by_id(self, user_id: int) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_by_email(self, email: str) -> Optional[UserRecord]:
        return next((u for u in self.users.values() if u.email == email), None)

    def insert(self, email: str, password_hash: str, first_name: str = "", last_name: str = "") -> UserRecord:
        if any(u.email == email for u in self.users.values()):
            raise DuplicateEmailError(email)
        user = UserRecord(next(self._ids), email, first_name, last_name, password_hash)
        self.users[user.id] = user
        return user

    def update_password(self, email: str, password_hash: str) -> bool:
        user = self.get_by_email(email)
        if not user:
            return False
        user.password_hash = password_hash
        return True

    def delete(self, user_id: int) -> bool:
        return self.users.pop(user_id, None) is not None


class CapturingMailer:
    def __init__(self, result: bool = True) -> None:
        self.sent: list[tuple[str, str, str]] = []
        self.result = result

    def send(self, to_email: str, subject: str, body: str) -> bool:
        self.sent.append((to_email, subject, body))
        return self.result


def make_settings(**overrides) -> Settings:
    base = Settings(
        app_env="test",
        database_url="sqlite://",
        jwt_key=SECRET,
        jwt_issuer=ISSUER,
        jwt_audience=AUDIENCE,
        password_hash_scheme="pbkdf2",
        public_base_url="https://greet.example.com",
        reset_password_path="/reset-password",
        smtp_host="",
        smtp_port=587,
        smtp_user="",
        smtp_password="",
        smtp_from="",
        smtp_use_ssl=True,
        log_level="DEBUG",
    )
    return replace(base, **overrides)


@pytest.fixture()
def settings() -> Settings:
    return make_settings()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def token_service(clock) -> JwtTokenService:
    return JwtTokenService(SECRET, ISSUER, AUDIENCE, clock=clock)


@pytest.fixture()
def repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def mailer() -> CapturingMailer:
    return CapturingMailer()


@pytest.fixture()
def auth_service(repository, token_service, mailer, settings) -> AuthService:
    return AuthService(
        repository=repository,
        hasher=Pbkdf2CredentialHasher(),
        tokens=token_service,
        mailer=mailer,
        settings=settings,
    )
