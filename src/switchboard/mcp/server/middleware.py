"""Middleware pipeline for tool and resource calls.

Middlewares are interceptor objects kept in registration order. Dispatch
folds them right to left around a terminal handler, so the first
registered middleware sees the request first and the result last:

    A-before, B-before, C-before, handler, C-after, B-after, A-after

Exceptions unwind through every enclosing middleware. A middleware that
does not call ``call_next`` short-circuits the chain.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
import time
from typing import Any, Literal

import structlog

from switchboard.core.security import sanitize_for_logging
from switchboard.mcp.errors import (
    MCPAuthError,
    MiddlewareError,
    RateLimitExceededError,
    UnknownToolError,
)
from switchboard.mcp.server.protocol import Middleware, NextHandler, Terminal
from switchboard.mcp.server.security import SessionRateLimiter
from switchboard.mcp.server.sessions import Session
from switchboard.mcp.types import MCPToolResult

log = structlog.get_logger(__name__)


class CallKind(StrEnum):
    """What a CallRequest targets."""

    TOOL = "tool"
    RESOURCE = "resource"


@dataclass(slots=True)
class CallRequest:
    """A call travelling through the middleware chain.

    Attributes:
        kind: Tool call or resource read.
        target: Tool name or resource URI.
        arguments: Raw tool arguments (empty for resources).
        session: Snapshot of the calling session.
        request_id: Identifier of the inbound request.
        state: Scratch space middlewares may use to cooperate.
    """

    kind: CallKind
    target: str
    session: Session
    request_id: str
    arguments: dict[str, Any] = field(default_factory=dict)
    state: dict[str, Any] = field(default_factory=dict)

    @property
    def is_tool(self) -> bool:
        return self.kind == CallKind.TOOL


Chain = Callable[[CallRequest, Terminal], Any]


class MiddlewarePipeline:
    """Ordered list of middlewares plus the composed call chain."""

    def __init__(self, middlewares: Iterable[Middleware] = ()) -> None:
        self._middlewares: list[Middleware] = list(middlewares)
        self._chain: Chain | None = None

    @property
    def middlewares(self) -> Sequence[Middleware]:
        """Return the registered middlewares, outermost first."""
        return tuple(self._middlewares)

    def use(self, middleware: Middleware) -> None:
        """Append a middleware (it wraps inside every earlier one)."""
        self._middlewares.append(middleware)
        self._chain = None
        log.debug("mcp.middleware.registered", middleware=_name_of(middleware))

    def remove(self, middleware: Middleware) -> bool:
        """Remove a middleware. Returns False if it was not registered."""
        try:
            self._middlewares.remove(middleware)
        except ValueError:
            return False
        self._chain = None
        return True

    async def dispatch(self, request: CallRequest, terminal: Terminal) -> Any:
        """Run a request through every middleware and then the terminal.

        Args:
            request: The call to dispatch.
            terminal: Innermost handler, called at most once.

        Returns:
            Whatever the outermost middleware returns.
        """
        if self._chain is None:
            self._chain = self._compose(tuple(self._middlewares))
        return await self._chain(request, terminal)

    @staticmethod
    def _compose(middlewares: Sequence[Middleware]) -> Chain:
        """Fold the middlewares right to left into a single callable."""

        async def innermost(request: CallRequest, terminal: Terminal) -> Any:
            return await terminal(request)

        chain: Chain = innermost
        for middleware in reversed(middlewares):
            chain = _wrap(middleware, chain)
        return chain


def _wrap(middleware: Middleware, inner: Chain) -> Chain:
    name = _name_of(middleware)

    async def link(request: CallRequest, terminal: Terminal) -> Any:
        called = False

        async def call_next() -> Any:
            nonlocal called
            if called:
                raise MiddlewareError(
                    f"Middleware {name} called next() more than once",
                    details={"middleware": name},
                )
            called = True
            return await inner(request, terminal)

        return await middleware(request, call_next)

    return link


def _name_of(middleware: Any) -> str:
    return getattr(middleware, "name", None) or type(middleware).__name__


class LoggingMiddleware:
    """Logs every call with its outcome and duration."""

    name = "logging"

    async def __call__(self, request: CallRequest, call_next: NextHandler) -> Any:
        bound = log.bind(
            kind=str(request.kind),
            target=request.target,
            session_id=request.session.session_id,
            request_id=request.request_id,
        )
        bound.info("mcp.call.started")
        if request.is_tool:
            bound.debug("mcp.call.arguments", arguments=sanitize_for_logging(request.arguments))
        start = time.perf_counter()
        try:
            result = await call_next()
        except Exception as e:
            bound.warning(
                "mcp.call.failed",
                error_type=type(e).__name__,
                error=str(e),
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            raise

        is_error = isinstance(result, MCPToolResult) and result.is_error
        bound.info(
            "mcp.call.completed",
            is_error=is_error,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return result


class PermissionMiddleware:
    """Rejects calls whose session lacks the target's required permissions.

    Targets without an entry need ``default`` permissions (none unless
    given). A session holding ``admin`` passes every check.
    """

    name = "permissions"

    def __init__(
        self,
        required: Mapping[str, Iterable[str]] | None = None,
        *,
        default: Iterable[str] = (),
    ) -> None:
        self._required = {target: frozenset(perms) for target, perms in (required or {}).items()}
        self._default = frozenset(default)

    def require(self, target: str, *permissions: str) -> None:
        """Set the permissions needed to call target."""
        self._required[target] = frozenset(permissions)

    def required_for(self, target: str) -> frozenset[str]:
        return self._required.get(target, self._default)

    async def __call__(self, request: CallRequest, call_next: NextHandler) -> Any:
        session = request.session
        required = self.required_for(request.target)
        missing = sorted(p for p in required if not session.has_permission(p))
        if missing:
            log.warning(
                "mcp.authz.denied",
                target=request.target,
                session_id=session.session_id,
                missing=missing,
            )
            raise MCPAuthError(
                f"Permission denied for {request.target}",
                required_permission=missing[0],
                details={"missing": missing},
            )
        return await call_next()


class RateLimitMiddleware:
    """Token bucket per session (or per user) in front of every call."""

    name = "rate_limit"

    def __init__(
        self,
        limiter: SessionRateLimiter,
        *,
        key_by: Literal["session", "user"] = "session",
    ) -> None:
        self._limiter = limiter
        self._key_by = key_by

    @property
    def limiter(self) -> SessionRateLimiter:
        return self._limiter

    def key_for(self, session: Session) -> str:
        """Return the limiter key for a session."""
        if self._key_by == "user" and session.user_id:
            return f"user:{session.user_id}"
        return f"session:{session.session_id}"

    async def __call__(self, request: CallRequest, call_next: NextHandler) -> Any:
        key = self.key_for(request.session)
        retry_after = await self._limiter.acquire(key)
        if retry_after > 0:
            log.warning("mcp.rate_limit.exceeded", key=key, retry_after=round(retry_after, 3))
            raise RateLimitExceededError(key, retry_after=retry_after)
        return await call_next()


class ToolFilterMiddleware:
    """Hides tools by name.

    With an allow list only the listed tools are callable; a deny list
    removes tools. A hidden tool fails exactly like a missing one.
    Resource reads pass through untouched.
    """

    name = "tool_filter"

    def __init__(
        self,
        *,
        allow: Iterable[str] | None = None,
        deny: Iterable[str] = (),
    ) -> None:
        self._allow = frozenset(allow) if allow is not None else None
        self._deny = frozenset(deny)

    def is_visible(self, tool_name: str) -> bool:
        if tool_name in self._deny:
            return False
        return self._allow is None or tool_name in self._allow

    async def __call__(self, request: CallRequest, call_next: NextHandler) -> Any:
        if request.is_tool and not self.is_visible(request.target):
            log.info("mcp.tool_filter.blocked", tool=request.target)
            raise UnknownToolError(request.target)
        return await call_next()
