"""MCP Server security layer.

This module provides:
- Authentication of new sessions (API key, HMAC bearer token)
- Token bucket rate limiting, one bucket per limiter key
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
import hashlib
import hmac
import time
from typing import Any

import structlog

from switchboard.core.concurrency import ReadWriteLock
from switchboard.core.types import Result
from switchboard.mcp.errors import MCPAuthError

log = structlog.get_logger(__name__)

TOKEN_MAX_AGE_SECONDS = 3600
TOKEN_CLOCK_SKEW_SECONDS = 60


class AuthMethod(StrEnum):
    """Authentication method type."""

    NONE = "none"
    API_KEY = "api_key"
    BEARER_TOKEN = "bearer_token"


class Permission(StrEnum):
    """Well-known permission strings."""

    READ = "read"
    WRITE = "write"
    EXECUTE = "execute"
    ADMIN = "admin"


ALL_PERMISSIONS: frozenset[str] = frozenset(p.value for p in Permission)


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Identity derived from a session's credentials.

    Attributes:
        authenticated: Whether credentials were verified.
        user_id: Identifier for the user, if known.
        permissions: Granted permissions.
        metadata: Additional auth metadata.
    """

    authenticated: bool = False
    user_id: str | None = None
    permissions: frozenset[str] = field(default_factory=frozenset)
    metadata: dict[str, Any] = field(default_factory=dict)


def sign_token(secret: str, user_id: str, timestamp: int | None = None) -> str:
    """Create a bearer token of the form ``user_id:timestamp:signature``."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(
        secret.encode(),
        f"{user_id}:{timestamp}".encode(),
        hashlib.sha256,
    ).hexdigest()
    return f"{user_id}:{timestamp}:{signature}"


class Authenticator:
    """Derives an AuthContext from the credentials a client opens with."""

    def __init__(
        self,
        method: AuthMethod = AuthMethod.NONE,
        *,
        api_keys: Iterable[str] = (),
        token_secret: str | None = None,
        required: bool = False,
        default_permissions: Iterable[str] = (Permission.READ, Permission.EXECUTE),
    ) -> None:
        """Initialize authenticator.

        Args:
            method: Authentication method to use.
            api_keys: Valid API keys (for API_KEY).
            token_secret: HMAC secret (for BEARER_TOKEN).
            required: Whether anonymous sessions are rejected.
            default_permissions: Permissions granted on successful authentication.
        """
        self._method = AuthMethod(method)
        self._required = required
        self._token_secret = token_secret
        self._default_permissions = frozenset(str(p) for p in default_permissions)
        # Hash API keys for secure comparison
        self._hashed_keys: frozenset[str] = frozenset(self._hash_key(key) for key in api_keys)

    @property
    def method(self) -> AuthMethod:
        return self._method

    @staticmethod
    def _hash_key(key: str) -> str:
        """Hash an API key for secure storage and comparison."""
        return hashlib.sha256(key.encode()).hexdigest()

    def authenticate(
        self,
        credentials: dict[str, str] | None,
    ) -> Result[AuthContext, MCPAuthError]:
        """Authenticate a new session.

        Args:
            credentials: Credentials provided by the client.

        Returns:
            Result containing auth context or auth error.
        """
        if self._method == AuthMethod.NONE:
            return Result.ok(AuthContext(authenticated=False, permissions=ALL_PERMISSIONS))

        if not credentials:
            if self._required:
                return Result.err(
                    MCPAuthError("Authentication required", auth_method=self._method.value)
                )
            return Result.ok(AuthContext(authenticated=False))

        if self._method == AuthMethod.API_KEY:
            return self._authenticate_api_key(credentials)
        return self._authenticate_token(credentials)

    def _authenticate_api_key(
        self,
        credentials: dict[str, str],
    ) -> Result[AuthContext, MCPAuthError]:
        api_key = credentials.get("api_key")
        if not api_key:
            return Result.err(MCPAuthError("API key required", auth_method=AuthMethod.API_KEY))

        hashed = self._hash_key(api_key)
        if hashed in self._hashed_keys:
            log.info("mcp.auth.api_key_valid")
            return Result.ok(
                AuthContext(
                    authenticated=True,
                    user_id=credentials.get("user_id") or f"key-{hashed[:12]}",
                    permissions=self._default_permissions,
                )
            )

        log.warning("mcp.auth.invalid_api_key")
        return Result.err(MCPAuthError("Invalid API key", auth_method=AuthMethod.API_KEY))

    def _authenticate_token(
        self,
        credentials: dict[str, str],
    ) -> Result[AuthContext, MCPAuthError]:
        """Validate a ``user_id:timestamp:signature`` HMAC token."""
        method = AuthMethod.BEARER_TOKEN.value
        token = credentials.get("token")
        if not token:
            return Result.err(MCPAuthError("Bearer token required", auth_method=method))
        if not self._token_secret:
            return Result.err(MCPAuthError("Token validation not configured", auth_method=method))

        parts = token.split(":")
        if len(parts) != 3:
            return Result.err(MCPAuthError("Invalid token format", auth_method=method))
        user_id, timestamp_str, signature = parts

        expected = hmac.new(
            self._token_secret.encode(),
            f"{user_id}:{timestamp_str}".encode(),
            hashlib.sha256,
        ).hexdigest()
        if not hmac.compare_digest(signature, expected):
            log.warning("mcp.auth.invalid_token_signature")
            return Result.err(MCPAuthError("Invalid token signature", auth_method=method))

        try:
            timestamp = int(timestamp_str)
        except ValueError:
            return Result.err(MCPAuthError("Invalid token timestamp", auth_method=method))

        now = time.time()
        if timestamp > now + TOKEN_CLOCK_SKEW_SECONDS:
            return Result.err(MCPAuthError("Token timestamp is in the future", auth_method=method))
        if now - timestamp > TOKEN_MAX_AGE_SECONDS:
            return Result.err(MCPAuthError("Token expired", auth_method=method))

        log.info("mcp.auth.token_valid", user_id=user_id)
        return Result.ok(
            AuthContext(
                authenticated=True,
                user_id=user_id,
                permissions=self._default_permissions,
            )
        )


class TokenBucket:
    """A single token bucket.

    Tokens refill continuously at ``rate`` per second up to ``capacity``.
    Consumption is synchronous, so it needs no lock on a single event loop.
    """

    def __init__(self, rate: float, capacity: int) -> None:
        self._rate = rate
        self._capacity = capacity
        self._tokens = float(capacity)
        self._updated = time.monotonic()

    @property
    def tokens(self) -> float:
        """Return the tokens available right now."""
        self._refill()
        return self._tokens

    def _refill(self) -> None:
        now = time.monotonic()
        self._tokens = min(self._capacity, self._tokens + (now - self._updated) * self._rate)
        self._updated = now

    def try_acquire(self) -> float:
        """Take one token.

        Returns:
            0.0 if a token was taken, otherwise seconds until one is available.
        """
        self._refill()
        if self._tokens >= 1:
            self._tokens -= 1
            return 0.0
        return (1 - self._tokens) / self._rate


class SessionRateLimiter:
    """Token buckets keyed by session (or user) id.

    A missing bucket is created under the write side of the lock and then
    looked up under the shared read side by every later call.
    """

    def __init__(self, requests_per_minute: int, burst_size: int) -> None:
        """Initialize rate limiter.

        Args:
            requests_per_minute: Sustained requests per minute per key.
            burst_size: Bucket capacity.
        """
        self._rate = requests_per_minute / 60.0
        self._burst_size = burst_size
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = ReadWriteLock()

    @property
    def key_count(self) -> int:
        return len(self._buckets)

    async def _bucket(self, key: str) -> TokenBucket:
        async with self._lock.read():
            bucket = self._buckets.get(key)
        if bucket is not None:
            return bucket
        async with self._lock.write():
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(self._rate, self._burst_size)
                self._buckets[key] = bucket
                log.debug("mcp.rate_limit.bucket_created", key=key)
            return bucket

    async def acquire(self, key: str) -> float:
        """Take a token for key.

        Returns:
            0.0 if allowed, otherwise seconds until the next token.
        """
        bucket = await self._bucket(key)
        return bucket.try_acquire()

    async def check(self, key: str) -> bool:
        """Return True if a request for key is allowed (and consume a token)."""
        return await self.acquire(key) == 0.0

    async def discard(self, key: str) -> bool:
        """Drop the bucket for key. Returns True if one existed."""
        async with self._lock.write():
            return self._buckets.pop(key, None) is not None

    async def clear(self) -> None:
        """Drop every bucket."""
        async with self._lock.write():
            self._buckets.clear()
