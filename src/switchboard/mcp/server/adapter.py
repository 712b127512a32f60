"""MCP Server adapter implementation.

This module provides MCPServerAdapter, which wires the dispatch runtime
together: sessions, hooks, the middleware pipeline, the tool registry,
sampling, and graceful shutdown. It also provides create_server(), the
composition root used by the CLI and by embedding applications.

A tool call flows as follows:

    session resolved -> PRE_TOOL_CALL hooks -> middleware (outer to inner)
    -> registry validates and invokes the handler (which may sample)
    -> middleware unwinds (inner to outer) -> POST_TOOL_CALL hooks
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
import time
from types import MappingProxyType
from typing import Any
from uuid import uuid4

import structlog

from switchboard.config.models import (
    SamplingConfig,
    ShutdownConfig,
    SwitchboardConfig,
    get_default_config,
)
from switchboard.core.types import Result
from switchboard.mcp.errors import (
    MCPResourceNotFoundError,
    MCPServerError,
    RequestCancelledError,
    ShutdownInProgressError,
    ToolValidationError,
)
from switchboard.mcp.server.context import ToolContext
from switchboard.mcp.server.hooks import (
    HookCallback,
    HookDispatcher,
    HookEvent,
    PostResourceReadPayload,
    PostToolCallPayload,
    PreResourceReadPayload,
    PreToolCallPayload,
    ServerStartPayload,
)
from switchboard.mcp.server.middleware import (
    CallKind,
    CallRequest,
    LoggingMiddleware,
    MiddlewarePipeline,
    RateLimitMiddleware,
)
from switchboard.mcp.server.protocol import (
    CallResponseMessage,
    CancelMessage,
    InboundMessage,
    Middleware,
    OutboundMessage,
    ResourceHandler,
    ResourceReadMessage,
    SamplingResponseMessage,
    SessionAckMessage,
    SessionCloseMessage,
    SessionOpenMessage,
    ToolCallMessage,
    ToolHandler,
    Transport,
)
from switchboard.mcp.server.sampling import SamplingCoordinator
from switchboard.mcp.server.security import AuthMethod, Authenticator, SessionRateLimiter
from switchboard.mcp.server.sessions import Session, SessionRegistry
from switchboard.mcp.server.shutdown import ShutdownController, ShutdownReport
from switchboard.mcp.tools.registry import DEFAULT_TOOL_TIMEOUT_SECONDS, ToolRegistry
from switchboard.mcp.types import (
    MCPCapabilities,
    MCPResourceContent,
    MCPResourceDefinition,
    MCPServerInfo,
    MCPToolDefinition,
    MCPToolResult,
)

log = structlog.get_logger(__name__)


class MCPServerAdapter:
    """The dispatch runtime of an MCP server.

    Example:
        server = MCPServerAdapter(name="switchboard", transport=transport)

        server.register_tool(CalculateHandler())
        server.use(LoggingMiddleware())
        server.on(HookEvent.POST_TOOL_CALL, record_metrics)

        await server.start()
        result = await server.call_tool("s-1", "calculate", {"x": 1, "y": 2, "operation": "add"})
        await server.shutdown(deadline=5.0)
    """

    def __init__(
        self,
        *,
        name: str = "switchboard",
        version: str = "1.0.0",
        transport: Transport | None = None,
        authenticator: Authenticator | None = None,
        tool_timeout: float = DEFAULT_TOOL_TIMEOUT_SECONDS,
        sampling: SamplingConfig | None = None,
        shutdown: ShutdownConfig | None = None,
    ) -> None:
        """Initialize the server adapter.

        Args:
            name: Server name for identification.
            version: Server version.
            transport: Connection layer; required for sampling and inbound messages.
            authenticator: Session authenticator. Defaults to no authentication.
            tool_timeout: Default handler timeout in seconds.
            sampling: Sampling defaults handed to tool contexts.
            shutdown: Drain deadline and grace period.
        """
        self._name = name
        self._version = version
        self._transport = transport
        self._authenticator = authenticator or Authenticator(AuthMethod.NONE)
        self._sampling_config = sampling or SamplingConfig()
        self._shutdown_config = shutdown or ShutdownConfig()

        self._hooks = HookDispatcher()
        self._sessions = SessionRegistry(self._hooks)
        self._registry = ToolRegistry(default_timeout=tool_timeout)
        self._pipeline = MiddlewarePipeline()
        self._resource_handlers: dict[str, ResourceHandler] = {}
        self._coordinator = (
            SamplingCoordinator(
                transport,
                default_timeout=self._sampling_config.default_timeout_seconds,
            )
            if transport is not None
            else None
        )
        self._rate_limiters: list[SessionRateLimiter] = []
        self._shutdown = ShutdownController(
            self._hooks,
            server_name=name,
            release=self._release,
            grace_seconds=self._shutdown_config.grace_seconds,
        )
        self._inbound: dict[tuple[str, str], asyncio.Task[None]] = {}
        self._started = False

    # Components

    @property
    def name(self) -> str:
        return self._name

    @property
    def hooks(self) -> HookDispatcher:
        return self._hooks

    @property
    def sessions(self) -> SessionRegistry:
        return self._sessions

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    @property
    def pipeline(self) -> MiddlewarePipeline:
        return self._pipeline

    @property
    def sampling(self) -> SamplingCoordinator | None:
        return self._coordinator

    @property
    def shutdown_controller(self) -> ShutdownController:
        return self._shutdown

    @property
    def is_running(self) -> bool:
        return self._started and self._shutdown.accepting

    @property
    def info(self) -> MCPServerInfo:
        """Return server information."""
        return MCPServerInfo(
            name=self._name,
            version=self._version,
            capabilities=MCPCapabilities(
                tools=self._registry.tool_count > 0,
                resources=len(self._resource_handlers) > 0,
                sampling=self._coordinator is not None,
                logging=True,
            ),
            tools=tuple(self._registry.list_tools()),
            resources=self._resource_definitions(),
        )

    # Registration

    def register_tool(self, handler: ToolHandler, *, category: str = "default") -> None:
        """Register a tool handler.

        Raises:
            DuplicateNameError: If the tool name is taken.
        """
        self._registry.register(handler, category=category)

    def register_resource(self, handler: ResourceHandler) -> None:
        """Register a resource handler for each URI it defines."""
        for defn in handler.definitions:
            self._resource_handlers[defn.uri] = handler
            log.info("mcp.server.resource_registered", uri=defn.uri)

    def use(self, middleware: Middleware) -> None:
        """Append a middleware to the pipeline."""
        self._pipeline.use(middleware)
        if isinstance(middleware, RateLimitMiddleware):
            self._rate_limiters.append(middleware.limiter)

    def on(self, event: HookEvent, callback: HookCallback | None = None) -> Any:
        """Register a lifecycle hook. Usable as a decorator."""
        return self._hooks.on(event, callback)

    async def list_tools(self) -> Sequence[MCPToolDefinition]:
        """List all registered tools."""
        return self._registry.list_tools()

    async def list_resources(self) -> Sequence[MCPResourceDefinition]:
        """List all registered resources."""
        return self._resource_definitions()

    def _resource_definitions(self) -> tuple[MCPResourceDefinition, ...]:
        seen: dict[str, MCPResourceDefinition] = {}
        for handler in self._resource_handlers.values():
            for defn in handler.definitions:
                seen.setdefault(defn.uri, defn)
        return tuple(seen.values())

    # Lifecycle

    async def start(self) -> None:
        """Fire SERVER_START hooks and begin accepting inbound messages.

        Raises:
            ServerStartupError: If a SERVER_START hook fails.
            ShutdownInProgressError: If the server has already been shut down.
        """
        if self._started:
            return
        if not self._shutdown.accepting:
            raise ShutdownInProgressError("Server has been shut down")

        await self._hooks.fire(
            HookEvent.SERVER_START,
            ServerStartPayload(server_name=self._name, version=self._version),
        )
        if self._transport is not None:
            self._transport.register_inbound_handler(self.handle_inbound)
        self._started = True
        log.info(
            "mcp.server.started",
            name=self._name,
            version=self._version,
            tools=self._registry.tool_count,
            resources=len(self._resource_handlers),
        )

    async def shutdown(self, deadline: float | None = None) -> ShutdownReport:
        """Drain in-flight calls, fire SERVER_STOP and release sessions.

        Args:
            deadline: Seconds to let in-flight calls finish. Defaults to config.
        """
        if deadline is None:
            deadline = self._shutdown_config.deadline_seconds
        return await self._shutdown.shutdown(deadline)

    async def _release(self) -> None:
        if self._coordinator is not None:
            self._coordinator.cancel_all()
        for task in list(self._inbound.values()):
            task.cancel()
        await self._sessions.clear(reason="shutdown")
        for limiter in self._rate_limiters:
            await limiter.clear()

    # Sessions

    async def open_session(
        self,
        session_id: str,
        *,
        credentials: dict[str, str] | None = None,
        user_id: str | None = None,
        permissions: Iterable[str] | None = None,
    ) -> Result[Session, MCPServerError]:
        """Authenticate a new connection and create its session.

        Args:
            session_id: Transport-issued session id.
            credentials: Credentials for the configured auth method.
            user_id: User id to record when authentication yields none.
            permissions: Explicit permissions, overriding the authenticator's.

        Returns:
            Result containing the new session, or the auth/duplicate error.
        """
        if not self._shutdown.accepting:
            return Result.err(ShutdownInProgressError())

        auth = self._authenticator.authenticate(credentials)
        if auth.is_err:
            log.warning("mcp.session.auth_failed", session_id=session_id, error=auth.error.message)
            return Result.err(auth.error)

        try:
            session = await self._sessions.create_session(
                session_id,
                user_id=auth.value.user_id or user_id,
                permissions=auth.value.permissions if permissions is None else permissions,
            )
        except MCPServerError as e:
            return Result.err(e)
        return Result.ok(session)

    async def close_session(self, session_id: str, *, reason: str = "closed") -> bool:
        """Tear down a session and everything tied to it.

        Pending sampling exchanges fail with SessionClosedError, in-flight
        inbound requests of the session are cancelled and its rate limiter
        bucket is dropped.

        Returns:
            True if the session existed.
        """
        cancelled = self._coordinator.cancel_session(session_id) if self._coordinator else 0
        for (owner, _), task in list(self._inbound.items()):
            if owner == session_id:
                task.cancel()
        for limiter in self._rate_limiters:
            await limiter.discard(f"session:{session_id}")

        existed = await self._sessions.remove(session_id, reason=reason)
        if existed or cancelled:
            log.info("mcp.session.closed", session_id=session_id, sampling_cancelled=cancelled)
        return existed

    async def _resolve_session(self, session_id: str) -> Session:
        session = await self._sessions.get(session_id)
        if session is not None:
            return session
        auth = self._authenticator.authenticate(None)
        if auth.is_err:
            raise auth.error
        return await self._sessions.get_or_create(
            session_id,
            user_id=auth.value.user_id,
            permissions=auth.value.permissions,
        )

    def _context(self, session: Session, request_id: str, target: str) -> ToolContext:
        return ToolContext.create(
            session,
            request_id,
            server_name=self._name,
            target=target,
            coordinator=self._coordinator,
            sampling=self._sampling_config,
        )

    # Calls

    async def call_tool(
        self,
        session_id: str,
        name: str,
        arguments: dict[str, Any] | None = None,
        *,
        request_id: str | None = None,
    ) -> Result[MCPToolResult, MCPServerError]:
        """Call a tool on behalf of a session.

        Returns:
            Result.ok with the tool result (which may itself be an error
            result), or Result.err for infrastructure failures: unknown
            tool, auth, rate limiting, shutdown.
        """
        request_id = request_id or uuid4().hex
        try:
            result = await self._shutdown.run(
                lambda: self._serve_tool(session_id, name, dict(arguments or {}), request_id)
            )
        except MCPServerError as e:
            log.info("mcp.server.call_rejected", tool=name, error_type=type(e).__name__)
            return Result.err(e)
        except Exception as e:
            return Result.err(self._internal_error(e, tool=name))
        return Result.ok(result)

    async def _serve_tool(
        self,
        session_id: str,
        name: str,
        arguments: dict[str, Any],
        request_id: str,
    ) -> MCPToolResult:
        with structlog.contextvars.bound_contextvars(session_id=session_id, request_id=request_id):
            session = await self._resolve_session(session_id)
            await self._hooks.fire(
                HookEvent.PRE_TOOL_CALL,
                PreToolCallPayload(
                    session=session,
                    request_id=request_id,
                    tool_name=name,
                    arguments=MappingProxyType(arguments),
                ),
            )

            request = CallRequest(
                kind=CallKind.TOOL,
                target=name,
                session=session,
                request_id=request_id,
                arguments=arguments,
            )
            start = time.perf_counter()
            try:
                result: MCPToolResult = await self._pipeline.dispatch(request, self._invoke_tool)
            except ToolValidationError as e:
                log.info("mcp.server.invalid_arguments", tool=name, fields=list(e.fields))
                result = MCPToolResult.error(
                    e.message,
                    meta={"tool": name, "error_code": "invalid_arguments", **e.details},
                )
            except MCPServerError as e:
                await self._fire_post_tool(request, start, error=e)
                raise
            except asyncio.CancelledError:
                await self._fire_post_tool(request, start, error=self._cancellation_error())
                raise
            except Exception as e:
                error = self._internal_error(e, tool=name)
                await self._fire_post_tool(request, start, error=error)
                raise error from e

            await self._fire_post_tool(request, start, result=result)
            return result

    def _cancellation_error(self) -> MCPServerError:
        # Once shutdown has begun, a cancelled call is one the deadline forced
        if not self._shutdown.accepting:
            return ShutdownInProgressError("Call aborted by server shutdown")
        return RequestCancelledError(server_name=self._name)

    def _internal_error(self, exc: Exception, **target: str) -> MCPServerError:
        """Wrap a failure that is not an MCPServerError, logging it with its traceback."""
        log.exception("mcp.server.internal_error", error_type=type(exc).__name__, **target)
        return MCPServerError(
            f"Internal server error: {exc}",
            server_name=self._name,
            details={**target, "error_type": type(exc).__name__},
        )

    async def _invoke_tool(self, request: CallRequest) -> MCPToolResult:
        context = self._context(request.session, request.request_id, request.target)
        return await self._registry.invoke(request.target, request.arguments, context)

    async def _fire_post_tool(
        self,
        request: CallRequest,
        start: float,
        *,
        result: MCPToolResult | None = None,
        error: MCPServerError | None = None,
    ) -> None:
        await self._hooks.fire(
            HookEvent.POST_TOOL_CALL,
            PostToolCallPayload(
                session=request.session,
                request_id=request.request_id,
                tool_name=request.target,
                duration_seconds=time.perf_counter() - start,
                result=result,
                error=error,
            ),
        )

    async def read_resource(
        self,
        session_id: str,
        uri: str,
        *,
        request_id: str | None = None,
    ) -> Result[MCPResourceContent, MCPServerError]:
        """Read a resource on behalf of a session."""
        request_id = request_id or uuid4().hex
        try:
            content = await self._shutdown.run(
                lambda: self._serve_resource(session_id, uri, request_id)
            )
        except MCPServerError as e:
            log.info("mcp.server.read_rejected", uri=uri, error_type=type(e).__name__)
            return Result.err(e)
        except Exception as e:
            return Result.err(self._internal_error(e, uri=uri))
        return Result.ok(content)

    async def _serve_resource(
        self,
        session_id: str,
        uri: str,
        request_id: str,
    ) -> MCPResourceContent:
        with structlog.contextvars.bound_contextvars(session_id=session_id, request_id=request_id):
            session = await self._resolve_session(session_id)
            await self._hooks.fire(
                HookEvent.PRE_RESOURCE_READ,
                PreResourceReadPayload(session=session, request_id=request_id, uri=uri),
            )
            request = CallRequest(
                kind=CallKind.RESOURCE,
                target=uri,
                session=session,
                request_id=request_id,
            )
            start = time.perf_counter()
            try:
                content: MCPResourceContent = await self._pipeline.dispatch(
                    request, self._invoke_resource
                )
            except MCPServerError as e:
                await self._fire_post_resource(request, start, error=e)
                raise
            except asyncio.CancelledError:
                await self._fire_post_resource(request, start, error=self._cancellation_error())
                raise
            except Exception as e:
                error = self._internal_error(e, uri=uri)
                await self._fire_post_resource(request, start, error=error)
                raise error from e

            await self._fire_post_resource(request, start, content=content)
            return content

    async def _fire_post_resource(
        self,
        request: CallRequest,
        start: float,
        *,
        content: MCPResourceContent | None = None,
        error: MCPServerError | None = None,
    ) -> None:
        await self._hooks.fire(
            HookEvent.POST_RESOURCE_READ,
            PostResourceReadPayload(
                session=request.session,
                request_id=request.request_id,
                uri=request.target,
                duration_seconds=time.perf_counter() - start,
                content=content,
                error=error,
            ),
        )

    async def _invoke_resource(self, request: CallRequest) -> MCPResourceContent:
        handler = self._resource_handlers.get(request.target)
        if handler is None:
            raise MCPResourceNotFoundError(
                f"Resource not found: {request.target}",
                server_name=self._name,
                resource_type="resource",
                resource_id=request.target,
            )

        context = self._context(request.session, request.request_id, request.target)
        try:
            result = await handler.handle(request.target, context)
        except MCPServerError:
            raise
        except Exception as e:
            log.exception("mcp.server.resource_error", uri=request.target)
            raise MCPServerError(
                f"Resource read failed: {e}",
                server_name=self._name,
                details={"uri": request.target},
            ) from e

        if result.is_err:
            raise result.error
        return result.value

    # Transport

    async def handle_inbound(self, session_id: str, message: InboundMessage) -> None:
        """Entry point for messages arriving from the transport.

        Calls are spawned as tasks so a handler waiting on sampling never
        blocks the delivery of the sampling response it is waiting for.
        """
        match message:
            case ToolCallMessage() | ResourceReadMessage():
                self._spawn(session_id, message)
            case SamplingResponseMessage(correlation_id=correlation_id):
                self._deliver_sampling_response(correlation_id, message)
            case SessionOpenMessage(credentials=credentials, user_id=user_id):
                opened = await self.open_session(
                    session_id,
                    credentials=credentials,
                    user_id=user_id,
                )
                await self._send(
                    session_id,
                    SessionAckMessage(
                        accepted=opened.is_ok,
                        error=None if opened.is_ok else opened.error,
                    ),
                )
            case SessionCloseMessage(reason=reason):
                await self.close_session(session_id, reason=reason)
            case CancelMessage(request_id=request_id):
                task = self._inbound.get((session_id, request_id))
                if task is None:
                    log.debug("mcp.server.cancel_unknown", request_id=request_id)
                else:
                    log.info("mcp.server.cancel_requested", request_id=request_id)
                    task.cancel()

    def _spawn(self, session_id: str, message: ToolCallMessage | ResourceReadMessage) -> None:
        key = (session_id, message.request_id)
        task = asyncio.create_task(self._serve_inbound(session_id, message))
        self._inbound[key] = task
        task.add_done_callback(lambda done: self._forget_inbound(key, done))

    def _forget_inbound(self, key: tuple[str, str], task: asyncio.Task[None]) -> None:
        if self._inbound.get(key) is task:
            del self._inbound[key]

    async def _serve_inbound(
        self,
        session_id: str,
        message: ToolCallMessage | ResourceReadMessage,
    ) -> None:
        result: Result[Any, MCPServerError]
        try:
            if isinstance(message, ToolCallMessage):
                result = await self.call_tool(
                    session_id,
                    message.name,
                    message.arguments,
                    request_id=message.request_id,
                )
            else:
                result = await self.read_resource(
                    session_id,
                    message.uri,
                    request_id=message.request_id,
                )
        except asyncio.CancelledError:
            await self._send(
                session_id,
                CallResponseMessage(
                    request_id=message.request_id,
                    error=RequestCancelledError(server_name=self._name),
                ),
            )
            raise
        await self._send(session_id, CallResponseMessage.from_result(message.request_id, result))

    def _deliver_sampling_response(
        self,
        correlation_id: str,
        message: SamplingResponseMessage,
    ) -> None:
        if self._coordinator is None:
            log.warning("mcp.sampling.unexpected_response", correlation_id=correlation_id)
            return
        if message.result is not None:
            self._coordinator.resolve(correlation_id, message.result)
        else:
            self._coordinator.reject(correlation_id, message.error or "unknown error")

    async def _send(self, session_id: str, message: OutboundMessage) -> None:
        if self._transport is None:
            return
        try:
            await self._transport.send(session_id, message)
        except MCPServerError as e:
            log.warning("mcp.server.send_failed", session_id=session_id, error=str(e))


def create_server(
    config: SwitchboardConfig | None = None,
    *,
    transport: Transport | None = None,
    include_builtin_tools: bool = True,
    api_keys: Iterable[str] | None = None,
    token_secret: str | None = None,
    extra_middlewares: Iterable[Middleware] = (),
) -> MCPServerAdapter:
    """Create a configured Switchboard server.

    Args:
        config: Server configuration. Defaults to the built-in defaults.
        transport: Connection layer for inbound messages and sampling.
        include_builtin_tools: Register calculate, echo, summarize and the
            session resources.
        api_keys: API keys for api_key auth. Read from the environment when
            omitted and the auth method needs them.
        token_secret: HMAC secret for bearer_token auth. Read from the
            environment when omitted and the auth method needs it.
        extra_middlewares: Middlewares installed inside the built-in ones.

    Returns:
        A ready-to-start MCPServerAdapter.
    """
    from switchboard.config.loader import load_auth_secrets
    from switchboard.mcp.resources.handlers import SessionResourceHandler
    from switchboard.mcp.tools.definitions import BUILTIN_TOOLS

    config = config or get_default_config()

    method = AuthMethod(config.auth.method)
    if method != AuthMethod.NONE and api_keys is None and token_secret is None:
        secrets = load_auth_secrets()
        api_keys, token_secret = secrets.api_keys, secrets.token_secret

    authenticator = Authenticator(
        method,
        api_keys=api_keys or (),
        token_secret=token_secret,
        required=config.auth.required,
        default_permissions=config.auth.default_permissions,
    )

    server = MCPServerAdapter(
        name=config.server.name,
        version=config.server.version,
        transport=transport,
        authenticator=authenticator,
        tool_timeout=config.server.tool_timeout_seconds,
        sampling=config.sampling,
        shutdown=config.shutdown,
    )

    server.use(LoggingMiddleware())
    if config.rate_limit.enabled:
        server.use(
            RateLimitMiddleware(
                SessionRateLimiter(
                    config.rate_limit.requests_per_minute,
                    config.rate_limit.burst_size,
                ),
                key_by=config.rate_limit.key_by,
            )
        )
    for middleware in extra_middlewares:
        server.use(middleware)

    if include_builtin_tools:
        for handler_cls in BUILTIN_TOOLS:
            server.register_tool(handler_cls(), category="builtin")
        server.register_resource(SessionResourceHandler(server.sessions))

    log.info(
        "mcp.server.created",
        name=config.server.name,
        auth_method=method.value,
        rate_limit=config.rate_limit.enabled,
        tools=server.registry.tool_count,
    )
    return server
