"""Tests for the per-call handler context."""

import asyncio
from typing import Any

import pytest

from switchboard.config.models import SamplingConfig
from switchboard.mcp.errors import SamplingTimeoutError
from switchboard.mcp.server.context import ToolContext
from switchboard.mcp.server.sampling import SamplingCoordinator
from switchboard.mcp.server.sessions import Session
from switchboard.mcp.types import Role, SamplingMessage, SamplingResult


class TestToolContext:
    def test_without_coordinator(self, context: ToolContext) -> None:
        assert not context.can_sample
        assert context.server_name == "test"
        assert context.request_id == "r-1"

    async def test_sample_without_coordinator(self, context: ToolContext) -> None:
        with pytest.raises(RuntimeError):
            await context.sample("hello")

    async def test_sample_builds_params(self, session: Session, transport: Any) -> None:
        """A plain prompt becomes one user message and config fills the defaults."""
        coordinator = SamplingCoordinator(transport)
        context = ToolContext.create(
            session,
            "r-1",
            server_name="test",
            target="summarize",
            coordinator=coordinator,
            sampling=SamplingConfig(default_max_tokens=42),
        )

        task = asyncio.create_task(context.sample("hello", system_prompt="be brief"))
        await asyncio.wait_for(transport.sampling_sent.wait(), timeout=1)
        request = transport.sampling_requests()[0]
        coordinator.resolve(request.correlation_id, SamplingResult(content="hi", model="m"))

        assert (await task).content == "hi"
        assert request.params.messages == (SamplingMessage(role=Role.USER, content="hello"),)
        assert request.params.max_tokens == 42
        assert request.params.system_prompt == "be brief"
        assert transport.sent[0][0] == session.session_id

    async def test_sample_uses_configured_timeout(self, session: Session, transport: Any) -> None:
        context = ToolContext.create(
            session,
            "r-1",
            server_name="test",
            target="summarize",
            coordinator=SamplingCoordinator(transport),
            sampling=SamplingConfig(default_timeout_seconds=0.05),
        )
        with pytest.raises(SamplingTimeoutError):
            await context.sample("hello")
