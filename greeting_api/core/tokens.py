"""Signed, expiring bearer tokens (HS256 JWT).

Tokens are never persisted: validity depends only on the token text, the
signing secret and the current time.
"""

from __future__ import annotations

import abc
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

import jwt

from .config import ConfigurationError, Settings
from .logging import logger

TOKEN_LIFETIME = timedelta(hours=2)
ALGORITHM = "HS256"
MIN_SECRET_BYTES = 32

# Custom claim names carried next to the registered ones.
EMAIL_CLAIM = "Email"
USER_ID_CLAIM = "UserId"

_REQUIRED_CLAIMS = ["sub", "jti", "exp", "iss", "aud"]


@dataclass(frozen=True)
class TokenClaims:
    """Claims of a token that passed every validation check."""

    subject: str
    token_id: str
    email: Optional[str]
    user_id: Optional[int]
    issued_at: Optional[datetime]
    expires_at: datetime
    raw: Mapping[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TokenClaims":
        user_id: Optional[int] = None
        raw_user_id = payload.get(USER_ID_CLAIM)
        if raw_user_id is not None and str(raw_user_id).isdecimal():
            user_id = int(raw_user_id)
        issued = payload.get("iat")
        return cls(
            subject=payload["sub"],
            token_id=payload["jti"],
            email=payload.get(EMAIL_CLAIM),
            user_id=user_id,
            issued_at=datetime.fromtimestamp(issued, tz=timezone.utc) if issued is not None else None,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            raw=dict(payload),
        )


class TokenService(abc.ABC):
    """Issue and validate self-contained bearer tokens."""

    @abc.abstractmethod
    def issue(self, email: str, user_id: Optional[int] = None) -> str:
        """Return a signed token for ``email`` (and ``user_id`` when given)."""

    @abc.abstractmethod
    def validate(self, token: str) -> Optional[TokenClaims]:
        """Return the claims of a valid token, or None for any failure."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JwtTokenService(TokenService):
    """HS256 JWT tokens with issuer/audience scoping and a 2 hour lifetime."""

    def __init__(
        self,
        secret: str | bytes,
        issuer: str,
        audience: str,
        *,
        lifetime: timedelta = TOKEN_LIFETIME,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        key = secret.encode("utf-8") if isinstance(secret, str) else bytes(secret or b"")
        if len(key) < MIN_SECRET_BYTES:
            raise ConfigurationError(
                f"JWT signing key must be at least {MIN_SECRET_BYTES} bytes long"
            )
        if not issuer or not audience:
            raise ConfigurationError("JWT issuer and audience must be configured")
        self._key = key
        self.issuer = issuer
        self.audience = audience
        self.lifetime = lifetime
        self._clock = clock or _utcnow

    def __repr__(self) -> str:
        return f"JwtTokenService(issuer={self.issuer!r}, audience={self.audience!r})"

    def issue(self, email: str, user_id: Optional[int] = None) -> str:
        now = self._clock()
        payload: dict[str, Any] = {
            "sub": email,
            "jti": str(uuid.uuid4()),
            EMAIL_CLAIM: email,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int((now + self.lifetime).timestamp()),
        }
        if user_id is not None:
            payload[USER_ID_CLAIM] = str(user_id)
        return jwt.encode(payload, self._key, algorithm=ALGORITHM)

    def validate(self, token: str) -> Optional[TokenClaims]:
        if not isinstance(token, str) or not token:
            return None
        try:
            # Lifetime is checked below against the service clock.
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[ALGORITHM],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "require": _REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            logger.debug(f"Rejected token: {type(exc).__name__}")
            return None

        now = self._clock().timestamp()
        try:
            expires = float(payload["exp"])
            not_before = float(payload.get("nbf", payload.get("iat", expires)))
        except (TypeError, ValueError):
            logger.debug("Rejected token: non-numeric lifetime claims")
            return None
        if not (not_before <= now < expires):
            logger.debug("Rejected token: outside validity window")
            return None
        if not isinstance(payload.get("sub"), str) or not isinstance(payload.get("jti"), str):
            logger.debug("Rejected token: subject or id is not a string")
            return None
        return TokenClaims.from_payload(payload)


def build_token_service(settings: Settings, *, clock: Callable[[], datetime] | None = None) -> JwtTokenService:
    """Wire the token service from settings; the key is read once here."""
    return JwtTokenService(
        settings.jwt_key,
        settings.jwt_issuer,
        settings.jwt_audience,
        clock=clock,
    )
