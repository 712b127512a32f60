"""Lifecycle hooks for the MCP server.

Hooks are callbacks attached to a lifecycle event. Each event has exactly
one payload type, so a callback registered for PRE_TOOL_CALL always
receives a PreToolCallPayload.

Callbacks run inline, in registration order, on the task that triggered
the event. A failing callback is logged and the remaining callbacks still
run. SERVER_START is the exception: its first failure aborts startup.

Usage:
    hooks = HookDispatcher()

    @hooks.on(HookEvent.SESSION_START)
    async def greet(payload: SessionStartPayload) -> None:
        log.info("hello", session=payload.session.session_id)

    await hooks.fire(HookEvent.SESSION_START, SessionStartPayload(session=session))
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum
import inspect
from typing import TYPE_CHECKING, Any, TypeVar

import structlog

from switchboard.mcp.errors import MCPServerError, ServerStartupError

if TYPE_CHECKING:
    from switchboard.mcp.server.sessions import Session
    from switchboard.mcp.types import MCPResourceContent, MCPToolResult

log = structlog.get_logger(__name__)


class HookEvent(StrEnum):
    """Lifecycle events a callback can subscribe to."""

    SERVER_START = "server_start"
    SERVER_STOP = "server_stop"
    SESSION_START = "session_start"
    SESSION_END = "session_end"
    PRE_TOOL_CALL = "pre_tool_call"
    POST_TOOL_CALL = "post_tool_call"
    PRE_RESOURCE_READ = "pre_resource_read"
    POST_RESOURCE_READ = "post_resource_read"


@dataclass(frozen=True, slots=True)
class ServerStartPayload:
    server_name: str
    version: str


@dataclass(frozen=True, slots=True)
class ServerStopPayload:
    """Outcome of the shutdown drain.

    Attributes:
        server_name: Name of the stopping server.
        drained: Calls that finished on their own.
        forced: Calls cancelled at the deadline.
        duration_seconds: Time spent draining.
    """

    server_name: str
    drained: int
    forced: int
    duration_seconds: float

    @property
    def clean(self) -> bool:
        """Return True if no call had to be forced."""
        return self.forced == 0


@dataclass(frozen=True, slots=True)
class SessionStartPayload:
    session: Session


@dataclass(frozen=True, slots=True)
class SessionEndPayload:
    session: Session
    reason: str = "removed"


@dataclass(frozen=True, slots=True)
class PreToolCallPayload:
    """A tool call about to enter the middleware chain.

    arguments is a read-only view; hooks cannot change what the tool receives.
    """

    session: Session
    request_id: str
    tool_name: str
    arguments: Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class PostToolCallPayload:
    """Outcome of a tool call. Exactly one of result and error is set."""

    session: Session
    request_id: str
    tool_name: str
    duration_seconds: float
    result: MCPToolResult | None = None
    error: MCPServerError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.result is not None and not self.result.is_error


@dataclass(frozen=True, slots=True)
class PreResourceReadPayload:
    session: Session
    request_id: str
    uri: str


@dataclass(frozen=True, slots=True)
class PostResourceReadPayload:
    """Outcome of a resource read. Exactly one of content and error is set."""

    session: Session
    request_id: str
    uri: str
    duration_seconds: float
    content: MCPResourceContent | None = None
    error: MCPServerError | None = None


HookPayload = (
    ServerStartPayload
    | ServerStopPayload
    | SessionStartPayload
    | SessionEndPayload
    | PreToolCallPayload
    | PostToolCallPayload
    | PreResourceReadPayload
    | PostResourceReadPayload
)

PAYLOAD_TYPES: dict[HookEvent, type[HookPayload]] = {
    HookEvent.SERVER_START: ServerStartPayload,
    HookEvent.SERVER_STOP: ServerStopPayload,
    HookEvent.SESSION_START: SessionStartPayload,
    HookEvent.SESSION_END: SessionEndPayload,
    HookEvent.PRE_TOOL_CALL: PreToolCallPayload,
    HookEvent.POST_TOOL_CALL: PostToolCallPayload,
    HookEvent.PRE_RESOURCE_READ: PreResourceReadPayload,
    HookEvent.POST_RESOURCE_READ: PostResourceReadPayload,
}

HookCallback = Callable[[Any], Awaitable[None] | None]

C = TypeVar("C", bound=HookCallback)

FATAL_EVENTS = frozenset({HookEvent.SERVER_START})


class HookDispatcher:
    """Ordered callback lists per lifecycle event."""

    def __init__(self) -> None:
        self._callbacks: dict[HookEvent, list[HookCallback]] = {
            event: [] for event in HookEvent
        }

    def on(self, event: HookEvent, callback: C | None = None) -> Any:
        """Register a callback for an event.

        Can be called directly or used as a decorator:

            hooks.on(HookEvent.SERVER_STOP, flush_metrics)

            @hooks.on(HookEvent.SESSION_END)
            def forget(payload): ...

        Returns:
            The callback (or a decorator when callback is omitted).
        """
        if callback is None:

            def decorator(fn: C) -> C:
                self._callbacks[event].append(fn)
                return fn

            return decorator

        self._callbacks[event].append(callback)
        return callback

    def off(self, event: HookEvent, callback: HookCallback) -> bool:
        """Remove a callback. Returns False if it was not registered."""
        try:
            self._callbacks[event].remove(callback)
        except ValueError:
            return False
        return True

    def callbacks(self, event: HookEvent) -> Sequence[HookCallback]:
        """Return the callbacks registered for an event, in order."""
        return tuple(self._callbacks[event])

    def count(self, event: HookEvent | None = None) -> int:
        """Return how many callbacks are registered (for one event or all)."""
        if event is not None:
            return len(self._callbacks[event])
        return sum(len(cbs) for cbs in self._callbacks.values())

    async def fire(self, event: HookEvent, payload: HookPayload) -> None:
        """Run every callback registered for an event.

        Args:
            event: The event being fired.
            payload: The event's payload.

        Raises:
            TypeError: If the payload type does not match the event.
            ServerStartupError: If a SERVER_START callback fails.
        """
        expected = PAYLOAD_TYPES[event]
        if not isinstance(payload, expected):
            msg = f"{event} expects {expected.__name__}, got {type(payload).__name__}"
            raise TypeError(msg)

        for callback in tuple(self._callbacks[event]):
            try:
                outcome = callback(payload)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                name = getattr(callback, "__qualname__", repr(callback))
                if event in FATAL_EVENTS:
                    log.error("mcp.hooks.fatal_failure", hook_event=str(event), callback=name)
                    raise ServerStartupError(
                        f"{event} hook {name} failed: {e}",
                        details={"callback": name},
                    ) from e
                log.warning(
                    "mcp.hooks.callback_failed",
                    hook_event=str(event),
                    callback=name,
                    error=str(e),
                    exc_info=True,
                )
