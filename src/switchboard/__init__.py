"""Switchboard - request-dispatch runtime for MCP tool servers.

Switchboard routes tool calls and resource reads from MCP clients through a
session registry, a lifecycle hook dispatcher and an ordered middleware
pipeline before they reach typed tool handlers. Handlers can ask the
originating client for an LLM completion mid-call (sampling).

Example:
    # Using CLI
    switchboard tools list
    switchboard tools call calculate --arg x=10 --arg y=5 --arg operation=add

    # Using Python
    from switchboard.mcp.server import create_server

    server = create_server()
    await server.start()
    result = await server.call_tool("session-1", "calculate", {"x": 1, "y": 2, "operation": "add"})
"""

__version__ = "0.4.0"

__all__ = ["__version__", "main"]


def main() -> None:
    """Main entry point for the Switchboard CLI.

    This function invokes the Typer app from switchboard.cli.main.
    """
    from switchboard.cli.main import app

    app()
