"""CLI command groups for Switchboard."""

from switchboard.cli.commands import config, tools

__all__ = ["config", "tools"]
