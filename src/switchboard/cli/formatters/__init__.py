"""Terminal output for the switchboard CLI.

Every command prints through the one ``console`` below so that styles stay
consistent and tests can capture output in a single place. Style names are
semantic; panels.py and tables.py refer to them instead of raw colors.
"""

from rich.console import Console
from rich.theme import Theme

SWITCHBOARD_THEME = Theme(
    {
        "info": "blue",
        "success": "green",
        "warning": "yellow",
        "error": "bold red",
        "highlight": "bold cyan",
        "muted": "dim",
    }
)

console = Console(theme=SWITCHBOARD_THEME)

__all__ = ["SWITCHBOARD_THEME", "console"]
