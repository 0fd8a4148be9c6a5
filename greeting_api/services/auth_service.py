"""
Authentication and identity related use cases.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from greeting_api.core.config import Settings, get_settings
from greeting_api.core.logging import logger
from greeting_api.core.mailer import Mailer, SmtpMailer
from greeting_api.core.security import CredentialHasher, get_credential_hasher
from greeting_api.core.tokens import TokenClaims, TokenService, build_token_service
from greeting_api.core.utils import absolute_url
from greeting_api.repositories.user_repository import (
    DuplicateEmailError,
    SQLUserRepository,
    UserRecord,
    UserRepository,
)

RESET_SUBJECT = "Reset Password"
INVALID_CREDENTIALS_MSG = "Invalid email or password"
INVALID_TOKEN_MSG = "Invalid or expired token"


class AuthError(Exception):
    """Base class for authentication-related exceptions."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class RegistrationError(AuthError):
    pass


class AccountExistsError(AuthError):
    pass


class InvalidCredentialsError(AuthError):
    pass


class TokenInvalidError(AuthError):
    pass


class MalformedTokenError(AuthError):
    """Signature verified but the payload lacks the claims we need."""


@dataclass
class LoginResult:
    user: UserRecord
    token: str


@dataclass
class AuthService:
    """Handles registration, login, bearer authentication and password reset flows."""

    repository: Optional[UserRepository] = None
    hasher: Optional[CredentialHasher] = None
    tokens: Optional[TokenService] = None
    mailer: Optional[Mailer] = None
    settings: Optional[Settings] = None

    def __post_init__(self):
        self.settings = self.settings or get_settings()
        self.repository = self.repository or SQLUserRepository()
        self.hasher = self.hasher or get_credential_hasher(self.settings.password_hash_scheme)
        self.tokens = self.tokens or build_token_service(self.settings)
        self.mailer = self.mailer or SmtpMailer(self.settings)

    # -------------------------------------- helpers --------------------------------------
    def _claims_email(self, token: str) -> str:
        claims: Optional[TokenClaims] = self.tokens.validate((token or "").strip())
        if claims is None:
            raise TokenInvalidError(INVALID_TOKEN_MSG)
        email = (claims.email or "").strip()
        if not email:
            logger.warning("Token verified but carries no e-mail claim")
            raise MalformedTokenError("Malformed token")
        return email

    def _reset_email_html(self, reset_url: str) -> str:
        return f"""
        <p>Hello!</p>
        <p>We received a request to reset your password.</p>
        <p><a href="{reset_url}">Reset password</a></p>
        <p>This link expires in two hours. If you did not ask for it, ignore this message.</p>
        """

    # -------------------------------------- registration --------------------------------------
    def register(self, first_name: str, last_name: str, email: str, password: str) -> UserRecord:
        raw_email = (email or "").strip()
        if not raw_email:
            raise RegistrationError("Email is required")
        if not password:
            raise RegistrationError("Password is required")
        if self.repository.get_by_email(raw_email):
            logger.warning(f"Registration rejected, e-mail already registered: {raw_email}")
            raise AccountExistsError("User already registered")
        password_hash = self.hasher.hash(password)
        try:
            user = self.repository.insert(
                raw_email,
                password_hash,
                first_name=(first_name or "").strip(),
                last_name=(last_name or "").strip(),
            )
        except DuplicateEmailError as exc:
            # Lost a race with a concurrent registration.
            raise AccountExistsError("User already registered") from exc
        logger.info(f"User registered: id={user.id} email={raw_email}")
        return user

    # -------------------------------------- login --------------------------------------
    def login(self, email: str, password: str) -> LoginResult:
        raw_email = (email or "").strip()
        if not raw_email:
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MSG)
        user = self.repository.get_by_email(raw_email)
        if not user or not self.hasher.verify(password or "", user.password_hash):
            logger.warning(f"Failed login attempt for {raw_email}")
            raise InvalidCredentialsError(INVALID_CREDENTIALS_MSG)
        token = self.tokens.issue(user.email, user_id=user.id)
        logger.info(f"User logged in: id={user.id}")
        return LoginResult(user=user, token=token)

    def authenticate(self, token: str) -> UserRecord:
        """Resolve a bearer token to its user."""
        email = self._claims_email(token)
        user = self.repository.get_by_email(email)
        if not user:
            raise TokenInvalidError(INVALID_TOKEN_MSG)
        return user

    # -------------------------------------- password reset --------------------------------------
    def forgot_password(self, email: str) -> bool:
        raw = (email or "").strip()
        if not raw:
            return False
        user = self.repository.get_by_email(raw)
        if not user:
            logger.info("Password reset requested for unknown e-mail")
            return False
        token = self.tokens.issue(user.email)
        reset_url = absolute_url(
            self.settings.reset_password_path,
            base=self.settings.public_base_url,
            query={"token": token},
        )
        sent = self.mailer.send(user.email, RESET_SUBJECT, self._reset_email_html(reset_url))
        if not sent:
            logger.warning(f"Reset e-mail could not be delivered for user id={user.id}")
        return sent

    def reset_password(self, token: str, new_password: str) -> str:
        email = self._claims_email(token)
        if not new_password:
            raise RegistrationError("Password is required")
        user = self.repository.get_by_email(email)
        if not user:
            raise TokenInvalidError(INVALID_TOKEN_MSG)
        # TODO: reset tokens remain replayable until expiry; track consumed jti values to make them single-use.
        self.repository.update_password(email, self.hasher.hash(new_password))
        logger.info(f"Password reset for user id={user.id}")
        return email
