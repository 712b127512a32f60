"""Switchboard command-line interface."""

from switchboard.cli.main import app

__all__ = ["app"]
