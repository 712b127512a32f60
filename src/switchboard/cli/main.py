"""Entry point for the `switchboard` command.

Two command groups hang off the root app: `config` for the YAML file and
`tools` for listing and calling tools through an in-process session.
"""

from typing import Annotated

import typer

from switchboard import __version__
from switchboard.cli.commands import config, tools
from switchboard.cli.formatters import console

app = typer.Typer(
    name="switchboard",
    help="Switchboard - MCP request-dispatch runtime",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.add_typer(config.app, name="config")
app.add_typer(tools.app, name="tools")


def _show_version(value: bool) -> None:
    if not value:
        return
    console.print(f"switchboard [highlight]{__version__}[/]")
    raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=_show_version,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
) -> None:
    """Switchboard - MCP request-dispatch runtime.

    Routes tool calls through middleware and lifecycle hooks, lets tools
    sample the calling client's model, and drains gracefully on shutdown.

    Use [bold cyan]switchboard COMMAND --help[/] for command-specific help.
    """


__all__ = ["app", "main"]
