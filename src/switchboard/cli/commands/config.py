"""Config command group for Switchboard.

Create, display and validate ~/.switchboard/config.yaml.
"""

from pathlib import Path
from typing import Annotated

import typer

from switchboard.cli.formatters.panels import print_error, print_info, print_success
from switchboard.cli.formatters.tables import config_section_table, print_table
from switchboard.config import create_default_config, get_default_config, load_config
from switchboard.core.errors import ConfigError

app = typer.Typer(
    name="config",
    help="Manage Switchboard configuration.",
    no_args_is_help=True,
)

ConfigPathOption = Annotated[
    Path | None,
    typer.Option("--path", "-p", help="Config file to use instead of ~/.switchboard/config.yaml."),
]


@app.command()
def init(
    overwrite: Annotated[
        bool,
        typer.Option("--overwrite", help="Replace an existing config file."),
    ] = False,
    directory: Annotated[
        Path | None,
        typer.Option("--dir", help="Directory to write config.yaml into."),
    ] = None,
) -> None:
    """Write a default configuration file."""
    try:
        path = create_default_config(directory, overwrite=overwrite)
    except ConfigError as e:
        print_error(e.message, "Config exists")
        raise typer.Exit(1) from e
    print_success(f"Wrote default configuration to {path}")


@app.command()
def show(
    section: Annotated[
        str | None,
        typer.Argument(help="Configuration section to display (e.g., 'sampling')."),
    ] = None,
    path: ConfigPathOption = None,
) -> None:
    """Display the current configuration.

    Falls back to the built-in defaults when no config file exists.
    """
    try:
        config = load_config(path)
        source = str(path) if path else "~/.switchboard/config.yaml"
    except ConfigError as e:
        if path is not None:
            print_error(e.message, "Invalid configuration")
            raise typer.Exit(1) from e
        config = get_default_config()
        source = "built-in defaults"

    data = config.model_dump(mode="json")
    if section is not None:
        if section not in data:
            print_error(
                f"Unknown section: {section}. Available: {', '.join(data)}",
                "Unknown section",
            )
            raise typer.Exit(1)
        data = {section: data[section]}

    print_info(f"Source: {source}", "Configuration")
    for name, values in data.items():
        print_table(config_section_table(name, values))


@app.command()
def validate(path: ConfigPathOption = None) -> None:
    """Validate the configuration file."""
    try:
        load_config(path)
    except ConfigError as e:
        print_error(e.message, "Invalid configuration")
        raise typer.Exit(1) from e
    print_success("Configuration is valid")


__all__ = ["app"]
