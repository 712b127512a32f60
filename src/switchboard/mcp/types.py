"""MCP types for Switchboard.

This module defines frozen dataclasses for MCP data structures: tool
schemas and results, resources, server info, and the sampling payloads a
tool handler exchanges with its client.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ToolInputType(StrEnum):
    """JSON Schema types for tool input parameters."""

    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    ARRAY = "array"
    OBJECT = "object"


@dataclass(frozen=True, slots=True)
class MCPToolParameter:
    """A single parameter for an MCP tool, with its validation rules.

    Attributes:
        name: Parameter name.
        type: JSON Schema type of the parameter.
        description: Human-readable description.
        required: Whether the parameter is required.
        default: Default value applied when the parameter is omitted.
        enum: Allowed values if restricted.
        minimum: Inclusive lower bound for number/integer values.
        maximum: Inclusive upper bound for number/integer values.
        min_length: Minimum length for strings and arrays.
        max_length: Maximum length for strings and arrays.
        pattern: Regular expression a string value must fully match.
        required_if: (other_field, value) pair; when the other field equals
            value this parameter becomes required.
    """

    name: str
    type: ToolInputType
    description: str = ""
    required: bool = True
    default: Any = None
    enum: tuple[Any, ...] | None = None
    minimum: float | None = None
    maximum: float | None = None
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    required_if: tuple[str, Any] | None = None

    def to_json_schema(self) -> dict[str, Any]:
        """Render this parameter as a JSON Schema property."""
        prop: dict[str, Any] = {
            "type": self.type.value,
            "description": self.description,
        }
        if self.default is not None:
            prop["default"] = self.default
        if self.enum is not None:
            prop["enum"] = list(self.enum)
        if self.minimum is not None:
            prop["minimum"] = self.minimum
        if self.maximum is not None:
            prop["maximum"] = self.maximum
        if self.min_length is not None:
            key = "minItems" if self.type == ToolInputType.ARRAY else "minLength"
            prop[key] = self.min_length
        if self.max_length is not None:
            key = "maxItems" if self.type == ToolInputType.ARRAY else "maxLength"
            prop[key] = self.max_length
        if self.pattern is not None:
            prop["pattern"] = self.pattern
        return prop


@dataclass(frozen=True, slots=True)
class MCPToolDefinition:
    """Definition of an MCP tool.

    Attributes:
        name: Unique tool name.
        description: Human-readable description.
        parameters: Tool parameters, in declaration order.
        output_schema: Optional JSON Schema for structured results.
    """

    name: str
    description: str
    parameters: tuple[MCPToolParameter, ...] = field(default_factory=tuple)
    output_schema: dict[str, Any] | None = None

    def get_parameter(self, name: str) -> MCPToolParameter | None:
        """Return the parameter with the given name, if declared."""
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def to_input_schema(self) -> dict[str, Any]:
        """Convert to JSON Schema for tool input.

        Returns:
            A JSON Schema dict describing the tool's input parameters.
        """
        return {
            "type": "object",
            "properties": {param.name: param.to_json_schema() for param in self.parameters},
            "required": [param.name for param in self.parameters if param.required],
        }


class ContentType(StrEnum):
    """Type of content in an MCP response."""

    TEXT = "text"
    IMAGE = "image"
    RESOURCE = "resource"


@dataclass(frozen=True, slots=True)
class MCPContentItem:
    """A single content item in an MCP response.

    Attributes:
        type: Type of content (text, image, resource).
        text: Text content if type is TEXT.
        data: Binary data (base64) if type is IMAGE.
        mime_type: MIME type for binary data.
        uri: Resource URI if type is RESOURCE.
    """

    type: ContentType
    text: str | None = None
    data: str | None = None
    mime_type: str | None = None
    uri: str | None = None


@dataclass(frozen=True, slots=True)
class MCPToolResult:
    """Result from an MCP tool invocation.

    A tool that ran and failed is still a result: is_error is set and the
    content carries the failure message.

    Attributes:
        content: Content items produced by the tool.
        is_error: Whether the tool reported a failure.
        structured_content: Optional machine-readable result.
        meta: Optional metadata from the tool or the runtime.
    """

    content: tuple[MCPContentItem, ...] = field(default_factory=tuple)
    is_error: bool = False
    structured_content: dict[str, Any] | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def text(
        cls,
        text: str,
        *,
        structured_content: dict[str, Any] | None = None,
        meta: dict[str, Any] | None = None,
    ) -> MCPToolResult:
        """Build a successful single-text result."""
        return cls(
            content=(MCPContentItem(type=ContentType.TEXT, text=text),),
            structured_content=structured_content,
            meta=meta or {},
        )

    @classmethod
    def error(cls, message: str, *, meta: dict[str, Any] | None = None) -> MCPToolResult:
        """Build an error result carrying the failure message."""
        return cls(
            content=(MCPContentItem(type=ContentType.TEXT, text=message),),
            is_error=True,
            meta=meta or {},
        )

    @property
    def text_content(self) -> str:
        """Return concatenated text content from all text items."""
        return "\n".join(
            item.text for item in self.content if item.type == ContentType.TEXT and item.text
        )


@dataclass(frozen=True, slots=True)
class MCPResourceDefinition:
    """Definition of an MCP resource.

    Attributes:
        uri: Resource URI (unique identifier).
        name: Human-readable name.
        description: Description of the resource.
        mime_type: MIME type of the resource content.
    """

    uri: str
    name: str
    description: str = ""
    mime_type: str = "text/plain"


@dataclass(frozen=True, slots=True)
class MCPResourceContent:
    """Content of an MCP resource.

    Attributes:
        uri: Resource URI.
        text: Text content (for text resources).
        blob: Binary content as base64 (for binary resources).
        mime_type: MIME type of the content.
    """

    uri: str
    text: str | None = None
    blob: str | None = None
    mime_type: str = "text/plain"


@dataclass(frozen=True, slots=True)
class MCPCapabilities:
    """Capabilities of an MCP server.

    Attributes:
        tools: Whether the server exposes tools.
        resources: Whether the server exposes resources.
        sampling: Whether handlers may request sampling from clients.
        logging: Whether the server supports logging.
    """

    tools: bool = False
    resources: bool = False
    sampling: bool = False
    logging: bool = False


@dataclass(frozen=True, slots=True)
class MCPServerInfo:
    """Information about an MCP server.

    Attributes:
        name: Server name.
        version: Server version.
        capabilities: Server capabilities.
        tools: Available tools.
        resources: Available resources.
    """

    name: str
    version: str = "1.0.0"
    capabilities: MCPCapabilities = field(default_factory=MCPCapabilities)
    tools: tuple[MCPToolDefinition, ...] = field(default_factory=tuple)
    resources: tuple[MCPResourceDefinition, ...] = field(default_factory=tuple)


class Role(StrEnum):
    """Author of a sampling message."""

    USER = "user"
    ASSISTANT = "assistant"


class StopReason(StrEnum):
    """Why the client's model stopped generating."""

    END_TURN = "endTurn"
    MAX_TOKENS = "maxTokens"
    OTHER = "other"

    @classmethod
    def parse(cls, value: str | None) -> StopReason:
        """Map a provider stop reason onto the common taxonomy."""
        for member in cls:
            if member.value == value:
                return member
        return cls.OTHER


@dataclass(frozen=True, slots=True)
class SamplingMessage:
    """A role-tagged message in a sampling request.

    Attributes:
        role: Who authored the message.
        content: Message text.
    """

    role: Role
    content: str


@dataclass(frozen=True, slots=True)
class SamplingParams:
    """Payload of a server-issued "create message" request.

    Attributes:
        messages: Conversation to complete, oldest first.
        system_prompt: Optional system prompt.
        max_tokens: Generation budget.
        temperature: Optional sampling temperature.
        top_p: Optional nucleus sampling value.
        stop_sequences: Sequences that end generation.
    """

    messages: tuple[SamplingMessage, ...]
    max_tokens: int
    system_prompt: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    stop_sequences: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if not self.messages:
            msg = "sampling requires at least one message"
            raise ValueError(msg)
        if self.max_tokens < 1:
            msg = "max_tokens must be positive"
            raise ValueError(msg)
        if self.temperature is not None and not 0.0 <= self.temperature <= 2.0:
            msg = "temperature must be between 0.0 and 2.0"
            raise ValueError(msg)
        if self.top_p is not None and not 0.0 < self.top_p <= 1.0:
            msg = "top_p must be in (0.0, 1.0]"
            raise ValueError(msg)


@dataclass(frozen=True, slots=True)
class SamplingResult:
    """The client's answer to a sampling request.

    Attributes:
        role: Author of the generated message (normally assistant).
        content: Generated text.
        model: Model that produced the text.
        stop_reason: Why generation stopped.
    """

    content: str
    model: str
    role: Role = Role.ASSISTANT
    stop_reason: StopReason = StopReason.END_TURN
