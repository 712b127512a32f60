"""Per-call context handed to tool and resource handlers."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from switchboard.config.models import SamplingConfig
from switchboard.mcp.server.sampling import SamplingCoordinator
from switchboard.mcp.server.sessions import Session
from switchboard.mcp.types import Role, SamplingMessage, SamplingParams, SamplingResult


@dataclass(frozen=True, slots=True)
class ToolContext:
    """What a handler knows about the call it is serving.

    Attributes:
        session: Snapshot of the calling session.
        request_id: Identifier of the inbound request.
        server_name: Name of the serving server.
        log: Logger bound to session_id, request_id and target.
    """

    session: Session
    request_id: str
    server_name: str
    log: Any = field(repr=False)
    _coordinator: SamplingCoordinator | None = field(default=None, repr=False)
    _sampling: SamplingConfig = field(default_factory=SamplingConfig, repr=False)

    @classmethod
    def create(
        cls,
        session: Session,
        request_id: str,
        *,
        server_name: str,
        target: str,
        coordinator: SamplingCoordinator | None = None,
        sampling: SamplingConfig | None = None,
    ) -> ToolContext:
        """Build a context with a logger bound to the call."""
        return cls(
            session=session,
            request_id=request_id,
            server_name=server_name,
            log=structlog.get_logger("switchboard.handler").bind(
                session_id=session.session_id,
                request_id=request_id,
                target=target,
            ),
            _coordinator=coordinator,
            _sampling=sampling or SamplingConfig(),
        )

    @property
    def can_sample(self) -> bool:
        """Return True if this context is wired to a sampling coordinator."""
        return self._coordinator is not None

    async def sample(
        self,
        messages: str | Sequence[SamplingMessage],
        *,
        system_prompt: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        top_p: float | None = None,
        stop_sequences: Sequence[str] = (),
        timeout: float | None = None,
    ) -> SamplingResult:
        """Ask the calling client to generate a completion.

        A plain string is sent as a single user message. Unset max_tokens
        and timeout fall back to the sampling configuration.

        Raises:
            RuntimeError: If the context has no sampling coordinator.
            SamplingTimeoutError: If the client does not answer in time.
            SessionClosedError: If the session closes while waiting.
            SamplingRejectedError: If the client answers with an error.
        """
        if self._coordinator is None:
            msg = "Sampling is not available in this context"
            raise RuntimeError(msg)

        if isinstance(messages, str):
            messages = (SamplingMessage(role=Role.USER, content=messages),)

        params = SamplingParams(
            messages=tuple(messages),
            system_prompt=system_prompt,
            max_tokens=max_tokens or self._sampling.default_max_tokens,
            temperature=temperature,
            top_p=top_p,
            stop_sequences=tuple(stop_sequences),
        )
        return await self._coordinator.request_sampling(
            self.session.session_id,
            params,
            timeout=timeout if timeout is not None else self._sampling.default_timeout_seconds,
        )
