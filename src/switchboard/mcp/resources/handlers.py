"""Resource handlers for the Switchboard server.

- switchboard://session: The calling session's snapshot
- switchboard://sessions: Summary of live sessions
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
import json

import structlog

from switchboard.core.types import Result
from switchboard.mcp.errors import MCPResourceNotFoundError, MCPServerError
from switchboard.mcp.server.context import ToolContext
from switchboard.mcp.server.sessions import SessionRegistry
from switchboard.mcp.types import MCPResourceContent, MCPResourceDefinition

log = structlog.get_logger(__name__)

SESSION_URI = "switchboard://session"
SESSIONS_URI = "switchboard://sessions"


@dataclass
class SessionResourceHandler:
    """Handler for session resources.

    URI patterns:
    - switchboard://session - The reading session itself
    - switchboard://sessions - Count of live sessions (ids for admins)
    """

    sessions: SessionRegistry = field(repr=False)

    @property
    def definitions(self) -> Sequence[MCPResourceDefinition]:
        """Return the resource definitions."""
        return (
            MCPResourceDefinition(
                uri=SESSION_URI,
                name="Current Session",
                description="Identity, permissions and settings of the calling session",
                mime_type="application/json",
            ),
            MCPResourceDefinition(
                uri=SESSIONS_URI,
                name="Active Sessions",
                description="Number of live sessions on this server",
                mime_type="application/json",
            ),
        )

    async def handle(
        self,
        uri: str,
        context: ToolContext,
    ) -> Result[MCPResourceContent, MCPServerError]:
        """Handle a session resource request.

        Args:
            uri: The resource URI.
            context: Context of the reading session.

        Returns:
            Result containing resource content or error.
        """
        log.debug("mcp.resource.sessions", uri=uri)

        if uri == SESSION_URI:
            # Re-read so settings changed after the call started are visible
            session = await self.sessions.get(context.session.session_id) or context.session
            payload = session.to_dict()
        elif uri == SESSIONS_URI:
            sessions = await self.sessions.list_sessions()
            payload = {"count": len(sessions)}
            if context.session.has_permission("admin"):
                payload["session_ids"] = [s.session_id for s in sessions]
        else:
            return Result.err(
                MCPResourceNotFoundError(
                    f"Unknown session resource: {uri}",
                    resource_type="resource",
                    resource_id=uri,
                )
            )

        return Result.ok(
            MCPResourceContent(
                uri=uri,
                text=json.dumps(payload, sort_keys=True),
                mime_type="application/json",
            )
        )
