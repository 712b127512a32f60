"""Rich panels for important messages.

Message text is escaped, so tool output containing square brackets is
printed as-is rather than read as markup.
"""

from rich.markup import escape
from rich.panel import Panel

from switchboard.cli.formatters import console


def _panel(message: str, title: str, style: str, color: str, *, expand: bool) -> Panel:
    return Panel(
        f"[{style}]{escape(message)}[/]",
        title=f"[bold {color}]{escape(title)}[/]",
        border_style=color,
        expand=expand,
    )


def info_panel(message: str, title: str = "Info", *, expand: bool = False) -> Panel:
    """Create an info panel with blue styling."""
    return _panel(message, title, "info", "blue", expand=expand)


def warning_panel(message: str, title: str = "Warning", *, expand: bool = False) -> Panel:
    """Create a warning panel with yellow styling."""
    return _panel(message, title, "warning", "yellow", expand=expand)


def error_panel(message: str, title: str = "Error", *, expand: bool = False) -> Panel:
    """Create an error panel with red styling."""
    return _panel(message, title, "error", "red", expand=expand)


def success_panel(message: str, title: str = "Success", *, expand: bool = False) -> Panel:
    """Create a success panel with green styling."""
    return _panel(message, title, "success", "green", expand=expand)


def print_info(message: str, title: str = "Info") -> None:
    console.print(info_panel(message, title))


def print_warning(message: str, title: str = "Warning") -> None:
    console.print(warning_panel(message, title))


def print_error(message: str, title: str = "Error") -> None:
    console.print(error_panel(message, title))


def print_success(message: str, title: str = "Success") -> None:
    console.print(success_panel(message, title))


__all__ = [
    "info_panel",
    "warning_panel",
    "error_panel",
    "success_panel",
    "print_info",
    "print_warning",
    "print_error",
    "print_success",
]
