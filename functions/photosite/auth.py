"""
Admin access: credential verification and session handling.

A session is either anonymous or authenticated. Logging in with the
configured admin secret persists an authenticated flag under a random
token; logging out (or the TTL running out) drops it again.
"""

from __future__ import annotations

import enum
import hashlib
import hmac
import secrets
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import redis
from redis import exceptions as redis_exceptions

HASH_SCHEME = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 260_000


class CredentialVerifier(Protocol):
    def verify(self, secret: str) -> bool:
        ...


def hash_password(password: str, *, iterations: int = DEFAULT_ITERATIONS, salt: bytes | None = None) -> str:
    """Return ``pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>``."""
    salt = salt if salt is not None else secrets.token_bytes(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{HASH_SCHEME}${iterations}${salt.hex()}${digest.hex()}"


@dataclass(frozen=True)
class HashedPasswordVerifier:
    password_hash: str

    def __post_init__(self):
        parts = self.password_hash.split("$")
        if len(parts) != 4 or parts[0] != HASH_SCHEME:
            raise ValueError("admin password hash must use the pbkdf2_sha256 format")
        _, iterations, salt_hex, hash_hex = parts
        try:
            salt, digest = bytes.fromhex(salt_hex), bytes.fromhex(hash_hex)
            valid = int(iterations) > 0 and bool(salt) and bool(digest)
        except ValueError:
            valid = False
        if not valid:
            raise ValueError("admin password hash must use the pbkdf2_sha256 format")

    def verify(self, secret: str) -> bool:
        _, iterations, salt_hex, hash_hex = self.password_hash.split("$")
        candidate = hashlib.pbkdf2_hmac(
            "sha256", secret.encode("utf-8"), bytes.fromhex(salt_hex), int(iterations)
        )
        return hmac.compare_digest(candidate.hex(), hash_hex)


@dataclass(frozen=True)
class PlaintextVerifier:
    """Exact match against a configured secret. For local development."""

    expected: str

    def verify(self, secret: str) -> bool:
        return hmac.compare_digest(secret.encode("utf-8"), self.expected.encode("utf-8"))


class DenyAllVerifier:
    """Used when no admin credential is configured."""

    def verify(self, secret: str) -> bool:
        return False


class SessionStore(Protocol):
    """Minimal interface for persisting authenticated session tokens."""

    def create(self, ttl_seconds: int) -> str:
        ...

    def exists(self, token: str) -> bool:
        ...

    def delete(self, token: str) -> None:
        ...


@dataclass
class InMemorySessionStore:
    """Token -> expiry map for tests/dev."""

    expiries: Dict[str, float] = field(default_factory=dict)

    def create(self, ttl_seconds: int) -> str:
        token = secrets.token_urlsafe(32)
        self.expiries[token] = time.monotonic() + ttl_seconds
        return token

    def exists(self, token: str) -> bool:
        expires_at = self.expiries.get(token)
        if expires_at is None:
            return False
        if expires_at <= time.monotonic():
            del self.expiries[token]
            return False
        return True

    def delete(self, token: str) -> None:
        self.expiries.pop(token, None)

    def reset(self) -> None:
        self.expiries.clear()


@dataclass
class RedisSessionStore:
    """Redis-backed session tokens with server-side expiry."""

    url: str
    prefix: str = "photosite:session:"

    def __post_init__(self):
        self.client = redis.Redis.from_url(self.url)

    def _key(self, token: str) -> str:
        return f"{self.prefix}{token}"

    def create(self, ttl_seconds: int) -> str:
        token = secrets.token_urlsafe(32)
        self.client.setex(self._key(token), ttl_seconds, "1")
        return token

    def exists(self, token: str) -> bool:
        try:
            return bool(self.client.exists(self._key(token)))
        except redis_exceptions.ConnectionError:
            # Connection resets can happen on managed Redis. Treat the
            # session as missing and reconnect for the next request.
            self.client = redis.Redis.from_url(self.url)
            return False

    def delete(self, token: str) -> None:
        self.client.delete(self._key(token))


class SessionState(enum.Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


class AdminSession:
    """
    One browser's admin session.

    ``restore()`` reads the persisted flag for the token carried by the
    request; ``login()`` and ``logout()`` move between the two states and
    keep the store in sync.
    """

    def __init__(
        self,
        store: SessionStore,
        verifier: CredentialVerifier,
        *,
        token: Optional[str] = None,
        ttl_seconds: int = 8 * 60 * 60,
    ):
        self.store = store
        self.verifier = verifier
        self.token = token
        self.ttl_seconds = ttl_seconds
        self.state = SessionState.ANONYMOUS

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    def restore(self) -> "AdminSession":
        if self.token and self.store.exists(self.token):
            self.state = SessionState.AUTHENTICATED
        else:
            self.token = None
            self.state = SessionState.ANONYMOUS
        return self

    def login(self, password: str) -> bool:
        if not self.verifier.verify(password):
            return False
        if self.token:
            self.store.delete(self.token)
        self.token = self.store.create(self.ttl_seconds)
        self.state = SessionState.AUTHENTICATED
        return True

    def logout(self) -> None:
        if self.token:
            self.store.delete(self.token)
        self.token = None
        self.state = SessionState.ANONYMOUS
