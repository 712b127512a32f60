"""Graceful shutdown for the MCP server.

Every top-level call runs through ShutdownController.run() as a tracked
child task. shutdown() stops new calls, gives in-flight calls until the
deadline to finish, cancels the rest (their callers see
ShutdownInProgressError), fires SERVER_STOP and finally releases server
resources. Calling shutdown() again joins the same drain.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from dataclasses import dataclass
import time
from typing import Any, TypeVar

import structlog

from switchboard.mcp.errors import ShutdownInProgressError
from switchboard.mcp.server.hooks import HookDispatcher, HookEvent, ServerStopPayload

log = structlog.get_logger(__name__)

DEFAULT_GRACE_SECONDS = 5.0

ReleaseCallback = Callable[[], Awaitable[None]]

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ShutdownReport:
    """What happened during the drain.

    Attributes:
        drained: Calls that finished before the deadline.
        forced: Calls cancelled at the deadline.
        stuck: Forced calls that had not unwound when the grace period ended.
        duration_seconds: Total drain time.
    """

    drained: int
    forced: int
    stuck: int
    duration_seconds: float


class ShutdownController:
    """Tracks in-flight calls and coordinates a single drain."""

    def __init__(
        self,
        hooks: HookDispatcher,
        *,
        server_name: str = "switchboard",
        release: ReleaseCallback | None = None,
        grace_seconds: float = DEFAULT_GRACE_SECONDS,
    ) -> None:
        """Initialize the controller.

        Args:
            hooks: Dispatcher used to fire SERVER_STOP.
            server_name: Name reported in the SERVER_STOP payload.
            release: Coroutine run after SERVER_STOP to release resources.
            grace_seconds: How long to wait for cancelled calls to unwind.
        """
        self._hooks = hooks
        self._server_name = server_name
        self._release = release
        self._grace = grace_seconds
        self._accepting = True
        self._tasks: set[asyncio.Task[Any]] = set()
        self._forced: set[asyncio.Task[Any]] = set()
        self._drain: asyncio.Task[ShutdownReport] | None = None

    @property
    def accepting(self) -> bool:
        """Return True until shutdown begins."""
        return self._accepting

    @property
    def in_flight(self) -> int:
        """Return the number of calls currently running."""
        return len(self._tasks)

    @property
    def is_shut_down(self) -> bool:
        """Return True once the drain has completed."""
        return self._drain is not None and self._drain.done()

    async def run(self, fn: Callable[[], Coroutine[Any, Any, T]]) -> T:
        """Run one top-level call under shutdown tracking.

        Args:
            fn: Zero-argument coroutine function performing the call.

        Returns:
            The call's return value.

        Raises:
            ShutdownInProgressError: If shutdown has begun, or the call was
                cancelled by the shutdown deadline.
            asyncio.CancelledError: If the caller itself was cancelled.
        """
        if not self._accepting:
            raise ShutdownInProgressError()

        task = asyncio.create_task(fn())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        try:
            # Awaiting the task forwards our own cancellation to it
            return await task
        except asyncio.CancelledError:
            current = asyncio.current_task()
            caller_cancelled = current is not None and current.cancelling() > 0
            if task in self._forced and not caller_cancelled:
                raise ShutdownInProgressError("Call aborted by server shutdown") from None
            raise
        finally:
            self._forced.discard(task)

    async def shutdown(self, deadline: float) -> ShutdownReport:
        """Drain in-flight calls and stop the server.

        Args:
            deadline: Seconds in-flight calls may keep running.

        Returns:
            A report of the drain. Every caller gets the same report.
        """
        if self._drain is None:
            self._accepting = False
            self._drain = asyncio.create_task(self._drain_and_stop(max(deadline, 0.0)))
        return await asyncio.shield(self._drain)

    async def _drain_and_stop(self, deadline: float) -> ShutdownReport:
        start = time.monotonic()
        tasks = set(self._tasks)
        log.info("mcp.shutdown.started", in_flight=len(tasks), deadline_seconds=deadline)

        pending: set[asyncio.Task[Any]] = set()
        stuck: set[asyncio.Task[Any]] = set()
        if tasks:
            _, pending = await asyncio.wait(tasks, timeout=deadline)
        if pending:
            log.warning("mcp.shutdown.forcing", count=len(pending))
            self._forced.update(pending)
            for task in pending:
                task.cancel()
            _, stuck = await asyncio.wait(pending, timeout=self._grace)
            if stuck:
                log.error("mcp.shutdown.calls_stuck", count=len(stuck))

        duration = time.monotonic() - start
        report = ShutdownReport(
            drained=len(tasks) - len(pending),
            forced=len(pending),
            stuck=len(stuck),
            duration_seconds=duration,
        )
        await self._hooks.fire(
            HookEvent.SERVER_STOP,
            ServerStopPayload(
                server_name=self._server_name,
                drained=report.drained,
                forced=report.forced,
                duration_seconds=duration,
            ),
        )
        if self._release is not None:
            await self._release()

        log.info(
            "mcp.shutdown.completed",
            drained=report.drained,
            forced=report.forced,
            duration_seconds=round(duration, 3),
        )
        return report
