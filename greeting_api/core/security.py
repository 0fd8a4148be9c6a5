"""Security helpers (password hashing and verification).

Stored credentials are ``base64(salt || derived_key)`` with a fixed-width
layout so verification can split them without any separator or prefix.
"""

from __future__ import annotations

import abc
import base64
import binascii
import hashlib
import hmac
import secrets

from argon2.low_level import Type, hash_secret_raw

from .config import ConfigurationError

SALT_SIZE = 16
KEY_SIZE = 32


class CredentialHasher(abc.ABC):
    """One-way password transform plus constant-time verification."""

    @abc.abstractmethod
    def hash(self, password: str) -> str:
        """Return a printable credential for ``password`` using a fresh salt."""

    @abc.abstractmethod
    def verify(self, password: str, stored_credential: str | None) -> bool:
        """Return True iff ``password`` matches ``stored_credential``."""


class _SaltedKeyHasher(CredentialHasher):
    """Shared salt||key framing; subclasses only supply the KDF."""

    salt_size = SALT_SIZE
    key_size = KEY_SIZE

    @staticmethod
    def _encode(password: str) -> bytes:
        # surrogatepass keeps lone surrogates (valid str, invalid UTF-8) hashable
        return password.encode("utf-8", "surrogatepass")

    @abc.abstractmethod
    def _derive(self, password: str, salt: bytes) -> bytes:
        ...

    def hash(self, password: str) -> str:
        # token_bytes reads from the OS CSPRNG; failures propagate.
        salt = secrets.token_bytes(self.salt_size)
        key = self._derive(password, salt)
        return base64.b64encode(salt + key).decode("ascii")

    def verify(self, password: str, stored_credential: str | None) -> bool:
        if not stored_credential:
            return False
        try:
            raw = base64.b64decode(stored_credential, validate=True)
        except (binascii.Error, ValueError):
            return False
        if len(raw) != self.salt_size + self.key_size:
            return False
        salt, expected = raw[: self.salt_size], raw[self.salt_size :]
        candidate = self._derive(password or "", salt)
        return hmac.compare_digest(candidate, expected)


class Pbkdf2CredentialHasher(_SaltedKeyHasher):
    """PBKDF2-HMAC-SHA256, 10k iterations, 16-byte salt, 32-byte key."""

    ITERATIONS = 10_000

    def _derive(self, password: str, salt: bytes) -> bytes:
        return hashlib.pbkdf2_hmac(
            "sha256",
            self._encode(password),
            salt,
            self.ITERATIONS,
            dklen=self.key_size,
        )


class Argon2CredentialHasher(_SaltedKeyHasher):
    """Argon2id with the same 48-byte credential layout as the PBKDF2 hasher."""

    TIME_COST = 3
    MEMORY_COST = 65536
    PARALLELISM = 4

    def _derive(self, password: str, salt: bytes) -> bytes:
        return hash_secret_raw(
            self._encode(password),
            salt,
            time_cost=self.TIME_COST,
            memory_cost=self.MEMORY_COST,
            parallelism=self.PARALLELISM,
            hash_len=self.key_size,
            type=Type.ID,
        )


_SCHEMES: dict[str, type[CredentialHasher]] = {
    "pbkdf2": Pbkdf2CredentialHasher,
    "argon2": Argon2CredentialHasher,
}

_default_hasher = Pbkdf2CredentialHasher()


def get_credential_hasher(scheme: str | None = None) -> CredentialHasher:
    name = (scheme or "pbkdf2").strip().lower()
    try:
        return _SCHEMES[name]()
    except KeyError:
        raise ConfigurationError(f"Unknown password hash scheme: {name!r}") from None


def hash_password(password: str) -> str:
    return _default_hasher.hash(password)


def verify_password(password: str, stored_hash: str | None) -> bool:
    return _default_hasher.verify(password, stored_hash)
