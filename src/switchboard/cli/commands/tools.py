"""Tools command group for Switchboard.

List the registered tools and call them through an in-process session, the
same dispatch path (hooks, middleware, registry) a remote client takes.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any

import typer

from switchboard.cli.formatters import console
from switchboard.cli.formatters.panels import print_error, print_success
from switchboard.cli.formatters.tables import print_table, tools_table
from switchboard.config import (
    SwitchboardConfig,
    get_default_config,
    load_config,
    to_logging_config,
)
from switchboard.core.errors import ConfigError
from switchboard.mcp.errors import MCPServerError
from switchboard.mcp.types import MCPToolResult, SamplingParams, SamplingResult
from switchboard.observability.logging import configure_logging, set_console_logging

app = typer.Typer(
    name="tools",
    help="Inspect and call MCP tools.",
    no_args_is_help=True,
)

ConfigPathOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Config file to use instead of the defaults."),
]


def _load(path: Path | None, *, verbose: bool = False) -> SwitchboardConfig:
    try:
        config = load_config(path) if path is not None else get_default_config()
    except ConfigError as e:
        print_error(e.message, "Invalid configuration")
        raise typer.Exit(1) from e
    configure_logging(to_logging_config(config))
    set_console_logging(verbose)
    return config


def parse_arguments(pairs: list[str]) -> dict[str, Any]:
    """Parse ``key=value`` pairs into a tool argument mapping.

    Values are read as JSON when they parse (numbers, booleans, arrays),
    otherwise kept as plain strings.

    Raises:
        typer.BadParameter: If a pair has no ``=``.
    """
    arguments: dict[str, Any] = {}
    for pair in pairs:
        key, sep, raw = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got: {pair}")
        try:
            arguments[key] = json.loads(raw)
        except json.JSONDecodeError:
            arguments[key] = raw
    return arguments


async def echo_sampling(params: SamplingParams) -> SamplingResult:
    """Answer sampling requests by echoing the last message back."""
    return SamplingResult(content=params.messages[-1].content, model="echo")


async def _call(
    config: SwitchboardConfig,
    name: str,
    arguments: dict[str, Any],
) -> MCPToolResult:
    from switchboard.mcp.server.adapter import create_server
    from switchboard.mcp.transport import InMemoryTransport

    transport = InMemoryTransport()
    server = create_server(config, transport=transport)
    await server.start()
    try:
        client = await transport.connect("cli", sampling_handler=echo_sampling)
        try:
            outcome = await client.call_tool(name, arguments)
            return outcome.unwrap()
        finally:
            await client.close()
    finally:
        await server.shutdown()


def _print_result(name: str, result: MCPToolResult) -> None:
    if result.is_error:
        print_error(result.text_content, f"{name} failed")
        raise typer.Exit(1)
    print_success(result.text_content, name)
    if result.structured_content:
        console.print_json(data=result.structured_content)


@app.command("list")
def list_tools(config_path: ConfigPathOption = None) -> None:
    """List the registered tools and their parameters."""
    from switchboard.mcp.server.adapter import create_server

    server = create_server(_load(config_path))

    print_table(tools_table(server.info.tools))


@app.command()
def call(
    name: Annotated[str, typer.Argument(help="Tool to call.")],
    arg: Annotated[
        list[str] | None,
        typer.Option("--arg", "-a", help="Tool argument as key=value. Repeatable."),
    ] = None,
    config_path: ConfigPathOption = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Print server logs to stderr."),
    ] = False,
) -> None:
    """Call a tool through an in-process session.

    Sampling requests are answered by an echo model, so tools that sample
    return their prompt.

    Examples:

        switchboard tools call calculate -a x=10 -a y=5 -a operation=add

        switchboard tools call echo -a text=hello -a repeat=3
    """
    arguments = parse_arguments(arg or [])
    config = _load(config_path, verbose=verbose)

    try:
        result = asyncio.run(_call(config, name, arguments))
    except MCPServerError as e:
        print_error(e.message, type(e).__name__)
        raise typer.Exit(1) from e
    _print_result(name, result)


__all__ = ["app", "echo_sampling", "parse_arguments"]
