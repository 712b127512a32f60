"""Built-in tool definitions for the Switchboard server.

- calculate: Basic arithmetic on two numbers
- echo: Repeat a piece of text
- summarize: Summarize text by sampling the calling client's model
"""

from dataclasses import dataclass
from typing import Literal

from switchboard.core.types import Result
from switchboard.mcp.errors import MCPToolError
from switchboard.mcp.server.context import ToolContext
from switchboard.mcp.tools.registry import TypedToolHandler
from switchboard.mcp.types import (
    MCPToolDefinition,
    MCPToolParameter,
    MCPToolResult,
    ToolInputType,
)

Operation = Literal["add", "subtract", "multiply", "divide"]


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)


@dataclass(frozen=True, slots=True)
class CalculateInput:
    x: float
    y: float
    operation: Operation


class CalculateHandler(TypedToolHandler[CalculateInput]):
    """Handler for the calculate tool."""

    input_type = CalculateInput

    @property
    def definition(self) -> MCPToolDefinition:
        """Return the tool definition."""
        return MCPToolDefinition(
            name="calculate",
            description="Perform basic arithmetic on two numbers.",
            parameters=(
                MCPToolParameter(
                    name="x",
                    type=ToolInputType.NUMBER,
                    description="Left operand",
                ),
                MCPToolParameter(
                    name="y",
                    type=ToolInputType.NUMBER,
                    description="Right operand",
                ),
                MCPToolParameter(
                    name="operation",
                    type=ToolInputType.STRING,
                    description="Operation to apply",
                    enum=("add", "subtract", "multiply", "divide"),
                ),
            ),
            output_schema={
                "type": "object",
                "properties": {"result": {"type": "number"}},
                "required": ["result"],
            },
        )

    async def handle(
        self,
        params: CalculateInput,
        context: ToolContext,
    ) -> Result[MCPToolResult, MCPToolError]:
        """Apply the operation to x and y."""
        x, y = params.x, params.y
        match params.operation:
            case "add":
                value = x + y
            case "subtract":
                value = x - y
            case "multiply":
                value = x * y
            case "divide":
                if y == 0:
                    return Result.err(
                        MCPToolError(
                            "Division by zero",
                            tool_name="calculate",
                            error_code="division_by_zero",
                        )
                    )
                value = x / y

        context.log.debug("tool.calculate.done", operation=params.operation, result=value)
        return Result.ok(
            MCPToolResult.text(_format_number(value), structured_content={"result": value})
        )


@dataclass(frozen=True, slots=True)
class EchoInput:
    text: str
    repeat: int = 1


class EchoHandler(TypedToolHandler[EchoInput]):
    """Handler for the echo tool."""

    input_type = EchoInput

    @property
    def definition(self) -> MCPToolDefinition:
        """Return the tool definition."""
        return MCPToolDefinition(
            name="echo",
            description="Return the given text, optionally repeated.",
            parameters=(
                MCPToolParameter(
                    name="text",
                    type=ToolInputType.STRING,
                    description="Text to echo",
                    max_length=10_000,
                ),
                MCPToolParameter(
                    name="repeat",
                    type=ToolInputType.INTEGER,
                    description="How many times to repeat the text. Default: 1",
                    required=False,
                    default=1,
                    minimum=1,
                    maximum=10,
                ),
            ),
        )

    async def handle(
        self,
        params: EchoInput,
        context: ToolContext,
    ) -> Result[MCPToolResult, MCPToolError]:
        return Result.ok(MCPToolResult.text("\n".join([params.text] * params.repeat)))


@dataclass(frozen=True, slots=True)
class SummarizeInput:
    text: str
    max_tokens: int | None = None


class SummarizeHandler(TypedToolHandler[SummarizeInput]):
    """Handler for the summarize tool.

    The summary is produced by the calling client's model through a
    sampling request, so this tool only works for clients that answer
    sampling requests.
    """

    input_type = SummarizeInput
    TIMEOUT_SECONDS = 120.0

    SYSTEM_PROMPT = "You are a concise assistant. Summarize the user's text in a few sentences."

    @property
    def definition(self) -> MCPToolDefinition:
        """Return the tool definition."""
        return MCPToolDefinition(
            name="summarize",
            description="Summarize text using the client's language model.",
            parameters=(
                MCPToolParameter(
                    name="text",
                    type=ToolInputType.STRING,
                    description="Text to summarize",
                    min_length=1,
                ),
                MCPToolParameter(
                    name="max_tokens",
                    type=ToolInputType.INTEGER,
                    description="Token budget for the summary",
                    required=False,
                    minimum=1,
                    maximum=4096,
                ),
            ),
        )

    async def handle(
        self,
        params: SummarizeInput,
        context: ToolContext,
    ) -> Result[MCPToolResult, MCPToolError]:
        """Ask the client to summarize the text."""
        if not context.can_sample:
            return Result.err(
                MCPToolError(
                    "Sampling is not available on this server",
                    tool_name="summarize",
                    error_code="sampling_unavailable",
                )
            )

        # Sampling failures propagate to the registry, which reports them as error results
        result = await context.sample(
            f"Please summarize the following text:\n\n{params.text}",
            system_prompt=self.SYSTEM_PROMPT,
            max_tokens=params.max_tokens,
        )
        context.log.info(
            "tool.summarize.done",
            model=result.model,
            stop_reason=str(result.stop_reason),
        )
        return Result.ok(
            MCPToolResult.text(
                result.content,
                meta={"model": result.model, "stop_reason": str(result.stop_reason)},
            )
        )


BUILTIN_TOOLS: tuple[type[TypedToolHandler], ...] = (
    CalculateHandler,
    EchoHandler,
    SummarizeHandler,
)
