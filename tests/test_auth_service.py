from __future__ import annotations

import base64
from urllib.parse import parse_qs, urlparse

import jwt
import pytest

from conftest import AUDIENCE, ISSUER, SECRET
from greeting_api.services.auth_service import (
    RESET_SUBJECT,
    AccountExistsError,
    InvalidCredentialsError,
    MalformedTokenError,
    RegistrationError,
    TokenInvalidError,
)


def _token_from_mail(body: str) -> str:
    start = body.index('href="') + len('href="')
    url = body[start : body.index('"', start)]
    parsed = urlparse(url)
    assert parsed.scheme == "https"
    assert parsed.netloc == "greet.example.com"
    assert parsed.path == "/reset-password"
    return parse_qs(parsed.query)["token"][0]


def test_register_stores_hash_not_plaintext(auth_service, repository):
    user = auth_service.register("Alice", "Smith", " alice@example.com ", "Secr3t!")

    stored = repository.get_by_id(user.id)
    assert stored.email == "alice@example.com"
    assert stored.password_hash != "Secr3t!"
    assert len(base64.b64decode(stored.password_hash)) == 48
    assert auth_service.hasher.verify("Secr3t!", stored.password_hash)


def test_register_rejects_duplicate_email(auth_service):
    auth_service.register("Alice", "", "alice@example.com", "pw-one")
    with pytest.raises(AccountExistsError):
        auth_service.register("Other", "", "alice@example.com", "pw-two")


def test_register_maps_store_conflict_to_account_exists(auth_service, repository, monkeypatch):
    # existence check passes, the unique constraint still catches the race
    auth_service.register("Alice", "", "alice@example.com", "pw")
    monkeypatch.setattr(repository, "get_by_email", lambda email: None)
    with pytest.raises(AccountExistsError):
        auth_service.register("Alice", "", "alice@example.com", "pw")


@pytest.mark.parametrize("email,password", [("", "pw"), ("   ", "pw"), ("a@example.com", "")])
def test_register_requires_email_and_password(auth_service, email, password):
    with pytest.raises(RegistrationError):
        auth_service.register("", "", email, password)


def test_login_issues_session_token_with_id_and_email(auth_service, token_service):
    user = auth_service.register("Alice", "", "alice@example.com", "Secr3t!")
    result = auth_service.login("alice@example.com", "Secr3t!")

    assert result.user.id == user.id
    claims = token_service.validate(result.token)
    assert claims.email == "alice@example.com"
    assert claims.user_id == user.id


def test_login_failures_are_indistinguishable(auth_service):
    auth_service.register("Alice", "", "alice@example.com", "Secr3t!")

    with pytest.raises(InvalidCredentialsError) as wrong_password:
        auth_service.login("alice@example.com", "wrong")
    with pytest.raises(InvalidCredentialsError) as unknown_user:
        auth_service.login("nobody@example.com", "Secr3t!")
    assert wrong_password.value.message == unknown_user.value.message


def test_authenticate_resolves_bearer_token(auth_service):
    user = auth_service.register("Alice", "", "alice@example.com", "Secr3t!")
    token = auth_service.login("alice@example.com", "Secr3t!").token
    assert auth_service.authenticate(token).id == user.id


def test_authenticate_rejects_expired_token(auth_service, clock):
    auth_service.register("Alice", "", "alice@example.com", "Secr3t!")
    token = auth_service.login("alice@example.com", "Secr3t!").token
    clock.advance(hours=2)
    with pytest.raises(TokenInvalidError):
        auth_service.authenticate(token)


def test_forgot_password_mails_reset_link(auth_service, mailer, token_service):
    auth_service.register("Alice", "", "alice@example.com", "Secr3t!")

    assert auth_service.forgot_password("alice@example.com") is True

    assert len(mailer.sent) == 1
    to_email, subject, body = mailer.sent[0]
    assert to_email == "alice@example.com"
    assert subject == RESET_SUBJECT
    claims = token_service.validate(_token_from_mail(body))
    assert claims.email == "alice@example.com"
    assert claims.user_id is None


def test_forgot_password_unknown_email_sends_nothing(auth_service, mailer):
    assert auth_service.forgot_password("ghost@example.com") is False
    assert auth_service.forgot_password("") is False
    assert mailer.sent == []


def test_forgot_password_reports_delivery_failure(auth_service, mailer):
    auth_service.register("Alice", "", "alice@example.com", "Secr3t!")
    mailer.result = False
    assert auth_service.forgot_password("alice@example.com") is False


def test_reset_password_replaces_credential(auth_service, mailer, repository):
    auth_service.register("Alice", "", "alice@example.com", "old-pass")
    before = repository.get_by_email("alice@example.com").password_hash
    auth_service.forgot_password("alice@example.com")
    token = _token_from_mail(mailer.sent[0][2])

    assert auth_service.reset_password(token, "new-pass") == "alice@example.com"

    assert repository.get_by_email("alice@example.com").password_hash != before
    auth_service.login("alice@example.com", "new-pass")
    with pytest.raises(InvalidCredentialsError):
        auth_service.login("alice@example.com", "old-pass")


def test_reset_password_with_expired_token_fails(auth_service, mailer, clock):
    auth_service.register("Alice", "", "alice@example.com", "old-pass")
    auth_service.forgot_password("alice@example.com")
    token = _token_from_mail(mailer.sent[0][2])

    clock.advance(hours=2, seconds=1)
    with pytest.raises(TokenInvalidError):
        auth_service.reset_password(token, "new-pass")
    auth_service.login("alice@example.com", "old-pass")


def test_reset_token_can_be_replayed_until_expiry(auth_service, mailer):
    auth_service.register("Alice", "", "alice@example.com", "old-pass")
    auth_service.forgot_password("alice@example.com")
    token = _token_from_mail(mailer.sent[0][2])

    auth_service.reset_password(token, "first")
    auth_service.reset_password(token, "second")
    auth_service.login("alice@example.com", "second")


def test_reset_password_with_garbage_token_fails(auth_service):
    with pytest.raises(TokenInvalidError):
        auth_service.reset_password("not-a-token", "new-pass")


def test_reset_password_without_email_claim_is_malformed(auth_service, clock):
    auth_service.register("Alice", "", "alice@example.com", "old-pass")
    now = int(clock().timestamp())
    token = jwt.encode(
        {"sub": "alice@example.com", "jti": "abc", "iss": ISSUER, "aud": AUDIENCE, "nbf": now, "exp": now + 600},
        SECRET,
        algorithm="HS256",
    )
    with pytest.raises(MalformedTokenError):
        auth_service.reset_password(token, "new-pass")


def test_reset_password_for_deleted_user_fails(auth_service, mailer, repository):
    user = auth_service.register("Alice", "", "alice@example.com", "old-pass")
    auth_service.forgot_password("alice@example.com")
    token = _token_from_mail(mailer.sent[0][2])
    repository.delete(user.id)

    with pytest.raises(TokenInvalidError):
        auth_service.reset_password(token, "new-pass")


def test_reset_password_requires_new_password(auth_service, mailer):
    auth_service.register("Alice", "", "alice@example.com", "old-pass")
    auth_service.forgot_password("alice@example.com")
    token = _token_from_mail(mailer.sent[0][2])
    with pytest.raises(RegistrationError):
        auth_service.reset_password(token, "")
