"""Error hierarchy for Switchboard.

Exceptions are raised for programming bugs and to unwind through the
middleware chain; at the public server surface they travel inside Result.

Exception Hierarchy:
    SwitchboardError (base)
    ├── ConfigError       - Configuration and secrets issues
    └── MCPError          - Dispatch runtime failures (see switchboard.mcp.errors)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from pydantic import ValidationError as PydanticValidationError


class SwitchboardError(Exception):
    """Base exception for all Switchboard errors.

    Attributes:
        message: Human-readable error description.
        details: Extra context, safe to put in logs and responses.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigError(SwitchboardError):
    """A config file is missing, unparsable or invalid.

    Attributes:
        config_key: Dotted path of the offending key, if a single one.
        config_file: Path of the file being loaded.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        config_file: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file

    @classmethod
    def from_validation_error(
        cls,
        exc: PydanticValidationError,
        *,
        config_file: str | None = None,
    ) -> ConfigError:
        """Build a ConfigError listing every field pydantic rejected.

        The message has one ``  - section.key: reason`` line per problem.
        config_key is set when exactly one key is at fault.

        Args:
            exc: The pydantic validation error.
            config_file: Path of the file that failed validation.

        Returns:
            A ConfigError with __cause__ set to exc.
        """
        problems = [
            (".".join(str(part) for part in item["loc"]), item["msg"]) for item in exc.errors()
        ]
        lines = "\n".join(f"  - {loc}: {msg}" for loc, msg in problems)
        error = cls(
            f"Configuration validation failed:\n{lines}",
            config_key=problems[0][0] if len(problems) == 1 else None,
            config_file=config_file,
            details={"fields": [loc for loc, _ in problems]},
        )
        error.__cause__ = exc
        return error
