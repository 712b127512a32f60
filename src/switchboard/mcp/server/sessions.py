"""Session registry for the MCP server.

Sessions are immutable snapshots. The registry is the only place that
replaces them, and it does so under the write side of a ReadWriteLock so
lookups from concurrent calls never observe a half-applied change.

SESSION_START and SESSION_END hooks fire on the calling task once the
write section has been released, so a hook may read the registry.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

import structlog

from switchboard.core.concurrency import ReadWriteLock
from switchboard.mcp.errors import SessionExistsError
from switchboard.mcp.server.hooks import (
    HookDispatcher,
    HookEvent,
    SessionEndPayload,
    SessionStartPayload,
)

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Session:
    """Server-side state of one client connection.

    Attributes:
        session_id: Opaque id issued by the transport.
        user_id: Authenticated user, if any.
        permissions: Granted capability strings.
        settings: Free-form per-session settings.
        created_at: When the session was created (UTC).
    """

    session_id: str
    user_id: str | None = None
    permissions: frozenset[str] = field(default_factory=frozenset)
    settings: Mapping[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def has_permission(self, permission: str) -> bool:
        """Return True if the session holds the permission (or admin)."""
        return permission in self.permissions or "admin" in self.permissions

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-friendly view of the session."""
        return {
            "session_id": self.session_id,
            "user_id": self.user_id,
            "permissions": sorted(self.permissions),
            "settings": dict(self.settings),
            "created_at": self.created_at.isoformat(),
        }


class SessionRegistry:
    """Concurrency-safe map of session id to Session.

    Example:
        registry = SessionRegistry(hooks)
        session = await registry.create_session("s-1", permissions={"execute"})
        assert await registry.get("s-1") == session
        await registry.remove("s-1")
    """

    def __init__(self, hooks: HookDispatcher | None = None) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = ReadWriteLock()
        self._hooks = hooks

    async def create_session(
        self,
        session_id: str,
        *,
        user_id: str | None = None,
        permissions: Iterable[str] = (),
        settings: Mapping[str, Any] | None = None,
    ) -> Session:
        """Create and store a new session.

        Raises:
            SessionExistsError: If the id is already registered.
        """
        session = Session(
            session_id=session_id,
            user_id=user_id,
            permissions=frozenset(permissions),
            settings=dict(settings or {}),
        )
        async with self._lock.write():
            if session_id in self._sessions:
                raise SessionExistsError(session_id)
            self._sessions[session_id] = session

        log.info("mcp.session.created", session_id=session_id, user_id=user_id)
        await self._fire_start(session)
        return session

    async def get(self, session_id: str) -> Session | None:
        """Return the session, or None if there is none with that id."""
        async with self._lock.read():
            return self._sessions.get(session_id)

    async def get_or_create(
        self,
        session_id: str,
        *,
        user_id: str | None = None,
        permissions: Iterable[str] = (),
    ) -> Session:
        """Return the existing session or create it on first contact."""
        async with self._lock.read():
            existing = self._sessions.get(session_id)
        if existing is not None:
            return existing

        session = Session(
            session_id=session_id,
            user_id=user_id,
            permissions=frozenset(permissions),
        )
        async with self._lock.write():
            # Another task may have created it while we waited for the write side
            existing = self._sessions.get(session_id)
            if existing is not None:
                return existing
            self._sessions[session_id] = session

        log.info("mcp.session.created", session_id=session_id, user_id=user_id, implicit=True)
        await self._fire_start(session)
        return session

    async def remove(self, session_id: str, *, reason: str = "removed") -> bool:
        """Remove a session.

        Returns:
            True if the session existed.
        """
        async with self._lock.write():
            session = self._sessions.pop(session_id, None)

        if session is None:
            return False

        log.info("mcp.session.removed", session_id=session_id, reason=reason)
        await self._fire_end(session, reason)
        return True

    async def update_settings(self, session_id: str, **settings: Any) -> Session | None:
        """Merge settings into a session and return the new snapshot."""
        async with self._lock.write():
            current = self._sessions.get(session_id)
            if current is None:
                return None
            updated = replace(current, settings={**current.settings, **settings})
            self._sessions[session_id] = updated
        log.debug("mcp.session.settings_updated", session_id=session_id, keys=sorted(settings))
        return updated

    async def set_permissions(
        self,
        session_id: str,
        permissions: Iterable[str],
    ) -> Session | None:
        """Replace a session's permissions and return the new snapshot."""
        async with self._lock.write():
            current = self._sessions.get(session_id)
            if current is None:
                return None
            updated = replace(current, permissions=frozenset(permissions))
            self._sessions[session_id] = updated
        log.info(
            "mcp.session.permissions_updated",
            session_id=session_id,
            permissions=sorted(updated.permissions),
        )
        return updated

    async def list_sessions(self) -> Sequence[Session]:
        """Return all sessions, oldest first."""
        async with self._lock.read():
            return tuple(self._sessions.values())

    async def session_count(self) -> int:
        """Return the number of live sessions."""
        async with self._lock.read():
            return len(self._sessions)

    async def clear(self, *, reason: str = "shutdown") -> int:
        """Remove every session, firing SESSION_END for each.

        Returns:
            The number of sessions removed.
        """
        async with self._lock.write():
            sessions = list(self._sessions.values())
            self._sessions.clear()

        for session in sessions:
            await self._fire_end(session, reason)
        if sessions:
            log.info("mcp.session.cleared", count=len(sessions), reason=reason)
        return len(sessions)

    async def _fire_start(self, session: Session) -> None:
        if self._hooks is not None:
            await self._hooks.fire(HookEvent.SESSION_START, SessionStartPayload(session=session))

    async def _fire_end(self, session: Session, reason: str) -> None:
        if self._hooks is not None:
            await self._hooks.fire(
                HookEvent.SESSION_END,
                SessionEndPayload(session=session, reason=reason),
            )
