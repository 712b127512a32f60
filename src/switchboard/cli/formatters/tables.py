"""Tables for `switchboard tools list` and `switchboard config show`."""

from collections.abc import Iterable, Mapping
from typing import Any

from rich.markup import escape
from rich.table import Table

from switchboard.cli.formatters import console
from switchboard.mcp.types import MCPToolDefinition, MCPToolParameter


def _base_table(title: str | None, *, show_header: bool = True) -> Table:
    return Table(
        title=title,
        show_header=show_header,
        border_style="blue",
        header_style="highlight",
        row_styles=["", "muted"],
    )


def _describe_parameter(param: MCPToolParameter) -> str:
    # Required parameters are starred, as in most usage strings
    marker = "*" if param.required else ""
    return f"{param.name}{marker}: {param.type.value}"


def tools_table(tools: Iterable[MCPToolDefinition], title: str = "Tools") -> Table:
    """One row per tool: name, description and a compact parameter list.

    Example:
        print_table(tools_table(server.info.tools))
    """
    table = _base_table(title)
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    table.add_column("Parameters", style="muted")

    for tool in tools:
        params = ", ".join(_describe_parameter(p) for p in tool.parameters)
        table.add_row(escape(tool.name), escape(tool.description), escape(params))
    return table


def config_section_table(section: str, values: Mapping[str, Any]) -> Table:
    """Headerless key/value table for one config section.

    Values are shown with str() and escaped, so lists print as
    ``['read', 'execute']`` instead of being read as Rich markup.
    """
    table = _base_table(section, show_header=False)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value")
    for key, value in values.items():
        table.add_row(escape(str(key)), escape(str(value)))
    return table


def print_table(table: Table) -> None:
    console.print(table)


__all__ = [
    "config_section_table",
    "print_table",
    "tools_table",
]
