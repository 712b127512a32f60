"""Server-to-client sampling.

A running tool handler can ask its client to generate a completion and
await the answer. Each request becomes a SamplingExchange in a table keyed
by correlation id. The exchange leaves PENDING exactly once:

    PENDING -> FULFILLED   the client answered (result or rejection)
    PENDING -> TIMED_OUT   the deadline passed first
    PENDING -> CANCELLED   the session closed or the caller was cancelled

Whichever happens first removes the table entry; later arrivals for the
same correlation id are treated as unknown.
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

import structlog

from switchboard.core.types import Result
from switchboard.mcp.errors import (
    MCPServerError,
    SamplingRejectedError,
    SamplingTimeoutError,
    SessionClosedError,
    UnknownExchangeError,
)
from switchboard.mcp.server.protocol import SamplingRequestMessage, Transport
from switchboard.mcp.types import SamplingParams, SamplingResult

log = structlog.get_logger(__name__)

DEFAULT_SAMPLING_TIMEOUT_SECONDS = 60.0


class ExchangeState(StrEnum):
    """Lifecycle state of a sampling exchange."""

    PENDING = "pending"
    FULFILLED = "fulfilled"
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class SamplingExchange:
    """One outstanding sampling request.

    Attributes:
        correlation_id: Links the request to its response.
        session_id: Session the request was sent to.
        params: The request payload.
        future: Resolved by the inbound response path.
        deadline: Event loop time after which the exchange times out.
        state: Current lifecycle state.
        created_at: When the request was issued (UTC).
    """

    correlation_id: str
    session_id: str
    params: SamplingParams
    future: asyncio.Future[SamplingResult] = field(repr=False)
    deadline: float
    state: ExchangeState = ExchangeState.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_pending(self) -> bool:
        return self.state == ExchangeState.PENDING


class SamplingCoordinator:
    """Pending-exchange table for server-to-client sampling."""

    def __init__(
        self,
        transport: Transport,
        *,
        default_timeout: float = DEFAULT_SAMPLING_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the coordinator.

        Args:
            transport: Where sampling requests are sent.
            default_timeout: Timeout used when a request does not pass one.
        """
        if default_timeout <= 0:
            msg = "default_timeout must be positive"
            raise ValueError(msg)
        self._transport = transport
        self._default_timeout = default_timeout
        self._exchanges: dict[str, SamplingExchange] = {}

    @property
    def pending_count(self) -> int:
        """Return the number of exchanges awaiting an outcome."""
        return len(self._exchanges)

    def get(self, correlation_id: str) -> SamplingExchange | None:
        """Return a pending exchange, or None once it has a terminal state."""
        return self._exchanges.get(correlation_id)

    def exchanges_for(self, session_id: str) -> Sequence[SamplingExchange]:
        """Return the pending exchanges of a session."""
        return tuple(e for e in self._exchanges.values() if e.session_id == session_id)

    async def request_sampling(
        self,
        session_id: str,
        params: SamplingParams,
        *,
        timeout: float | None = None,
    ) -> SamplingResult:
        """Send a sampling request to a session's client and await the answer.

        Args:
            session_id: Session whose client should generate.
            params: The request payload.
            timeout: Seconds to wait. None means the coordinator default.

        Returns:
            The client's result.

        Raises:
            ValueError: If timeout is not positive.
            SamplingTimeoutError: If the client does not answer in time.
            SessionClosedError: If the session closes while waiting, or the
                transport has no connection for it.
            SamplingRejectedError: If the client answers with an error.
            asyncio.CancelledError: If the calling task is cancelled.
        """
        timeout = self._default_timeout if timeout is None else timeout
        if timeout <= 0:
            msg = "Sampling timeout must be positive"
            raise ValueError(msg)

        loop = asyncio.get_running_loop()
        exchange = SamplingExchange(
            correlation_id=uuid4().hex,
            session_id=session_id,
            params=params,
            future=loop.create_future(),
            deadline=loop.time() + timeout,
        )
        self._exchanges[exchange.correlation_id] = exchange
        log.debug(
            "mcp.sampling.requested",
            session_id=session_id,
            correlation_id=exchange.correlation_id,
            timeout=timeout,
        )

        try:
            await self._transport.send(
                session_id,
                SamplingRequestMessage(correlation_id=exchange.correlation_id, params=params),
            )
        except MCPServerError as e:
            self._transition(exchange, ExchangeState.CANCELLED)
            log.warning(
                "mcp.sampling.send_failed",
                session_id=session_id,
                correlation_id=exchange.correlation_id,
                error=str(e),
            )
            raise SessionClosedError(
                session_id=session_id,
                correlation_id=exchange.correlation_id,
            ) from e
        except BaseException:
            self._transition(exchange, ExchangeState.CANCELLED)
            raise

        try:
            async with asyncio.timeout_at(exchange.deadline):
                return await exchange.future
        except TimeoutError:
            if self._transition(exchange, ExchangeState.TIMED_OUT):
                log.warning(
                    "mcp.sampling.timed_out",
                    session_id=session_id,
                    correlation_id=exchange.correlation_id,
                    timeout=timeout,
                )
                raise SamplingTimeoutError(
                    timeout_seconds=timeout,
                    session_id=session_id,
                    correlation_id=exchange.correlation_id,
                ) from None
            # The response won the race against the deadline
            return exchange.future.result()
        except asyncio.CancelledError:
            if self._transition(exchange, ExchangeState.CANCELLED):
                log.info(
                    "mcp.sampling.cancelled",
                    session_id=session_id,
                    correlation_id=exchange.correlation_id,
                    reason="caller_cancelled",
                )
            raise

    def resolve(
        self,
        correlation_id: str,
        result: SamplingResult,
    ) -> Result[SamplingExchange, UnknownExchangeError]:
        """Deliver the client's result to the waiting handler.

        Returns:
            The fulfilled exchange, or UnknownExchangeError for an unknown
            or already finished correlation id.
        """
        exchange = self._exchanges.get(correlation_id)
        if exchange is None or not self._transition(exchange, ExchangeState.FULFILLED):
            return self._unknown(correlation_id)

        if not exchange.future.done():
            exchange.future.set_result(result)
        log.debug(
            "mcp.sampling.fulfilled",
            session_id=exchange.session_id,
            correlation_id=correlation_id,
            model=result.model,
            stop_reason=str(result.stop_reason),
        )
        return Result.ok(exchange)

    def reject(
        self,
        correlation_id: str,
        message: str,
    ) -> Result[SamplingExchange, UnknownExchangeError]:
        """Deliver a client-side failure to the waiting handler."""
        exchange = self._exchanges.get(correlation_id)
        if exchange is None or not self._transition(exchange, ExchangeState.FULFILLED):
            return self._unknown(correlation_id)

        if not exchange.future.done():
            exchange.future.set_exception(
                SamplingRejectedError(
                    f"Client rejected sampling request: {message}",
                    session_id=exchange.session_id,
                    correlation_id=correlation_id,
                )
            )
        log.info(
            "mcp.sampling.rejected",
            session_id=exchange.session_id,
            correlation_id=correlation_id,
            error=message,
        )
        return Result.ok(exchange)

    def cancel_session(self, session_id: str) -> int:
        """Fail every pending exchange of a session with SessionClosedError.

        Returns:
            The number of exchanges cancelled.
        """
        return self._cancel(self.exchanges_for(session_id))

    def cancel_all(self) -> int:
        """Fail every pending exchange with SessionClosedError."""
        return self._cancel(tuple(self._exchanges.values()))

    def _cancel(self, exchanges: Sequence[SamplingExchange]) -> int:
        count = 0
        for exchange in exchanges:
            if not self._transition(exchange, ExchangeState.CANCELLED):
                continue
            if not exchange.future.done():
                exchange.future.set_exception(
                    SessionClosedError(
                        session_id=exchange.session_id,
                        correlation_id=exchange.correlation_id,
                    )
                )
            count += 1
            log.info(
                "mcp.sampling.cancelled",
                session_id=exchange.session_id,
                correlation_id=exchange.correlation_id,
                reason="session_closed",
            )
        return count

    def _transition(self, exchange: SamplingExchange, state: ExchangeState) -> bool:
        """Move a pending exchange to a terminal state and drop it from the table."""
        if not exchange.is_pending:
            return False
        exchange.state = state
        self._exchanges.pop(exchange.correlation_id, None)
        return True

    def _unknown(self, correlation_id: str) -> Result[SamplingExchange, UnknownExchangeError]:
        log.warning("mcp.sampling.unknown_exchange", correlation_id=correlation_id)
        return Result.err(UnknownExchangeError(correlation_id))
