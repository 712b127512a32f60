"""Argument validation against tool definitions.

Each MCPToolDefinition is compiled into a pydantic model, one field per
declared parameter, and raw client arguments are validated through it.
Pydantic's lax mode does the coercion JSON clients rely on ("10" for an
integer, "true" for a boolean) and collects every violation in one pass,
which is then reported as a ToolValidationError.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    create_model,
    model_validator,
)
from pydantic_core import PydanticCustomError

from switchboard.mcp.errors import FieldViolation, ToolValidationError
from switchboard.mcp.types import MCPToolDefinition, MCPToolParameter, ToolInputType


def _not_boolean(value: Any) -> Any:
    # bool is an int subclass; a JSON true must not pass as 1
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    return value


_BASE_TYPES: dict[ToolInputType, Any] = {
    ToolInputType.STRING: str,
    ToolInputType.NUMBER: Annotated[float, BeforeValidator(_not_boolean)],
    ToolInputType.INTEGER: Annotated[int, BeforeValidator(_not_boolean)],
    ToolInputType.BOOLEAN: bool,
    ToolInputType.ARRAY: list[Any],
    ToolInputType.OBJECT: dict[str, Any],
}


class ToolArguments(BaseModel):
    """Base for the per-tool argument models.

    Undeclared keys are ignored. Numbers sent for string parameters are
    accepted as strings, and NaN or infinity are rejected.
    """

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        coerce_numbers_to_str=True,
        allow_inf_nan=False,
        regex_engine="python-re",
    )


def _annotation(param: MCPToolParameter) -> Any:
    if param.enum is not None:
        annotation: Any = Literal[param.enum]
    else:
        annotation = _BASE_TYPES[param.type]
    if not param.required and param.default is None:
        annotation = annotation | None
    return annotation


def _field(param: MCPToolParameter) -> Any:
    if param.default is not None:
        default: Any = param.default
    elif param.required:
        default = ...
    else:
        default = None

    constraints: dict[str, Any] = {}
    if param.enum is None:
        if param.type in (ToolInputType.INTEGER, ToolInputType.NUMBER):
            constraints.update(ge=param.minimum, le=param.maximum)
        if param.type in (ToolInputType.STRING, ToolInputType.ARRAY):
            constraints.update(min_length=param.min_length, max_length=param.max_length)
        if param.type == ToolInputType.STRING and param.pattern is not None:
            constraints["pattern"] = rf"\A(?:{param.pattern})\Z"

    return Field(default, alias=param.name, description=param.description, **constraints)


_Condition = tuple[str, str, str, str, Any]


def _required_if_check(conditions: tuple[_Condition, ...]) -> Any:
    """Model validator enforcing ``required_if`` across sibling fields.

    Each condition is (parameter, its field, sibling parameter, sibling
    field, expected value).
    """

    def check(model: BaseModel) -> BaseModel:
        for name, field_name, other, other_field, expected in conditions:
            if field_name in model.model_fields_set:
                continue
            value = getattr(model, other_field)
            if value is not None and value == expected:
                raise PydanticCustomError(
                    "required_if",
                    "required when {other} is {expected}",
                    {"field": name, "other": other, "expected": repr(expected)},
                )
        return model

    return model_validator(mode="after")(check)


class ArgumentSchema:
    """Validator for one tool's arguments.

    Build once per tool; validate() is safe to call concurrently.

    Example:
        schema = ArgumentSchema(definition)
        values = schema.validate({"x": "10", "y": 5, "operation": "add"})
        # {"x": 10.0, "y": 5.0, "operation": "add"}
    """

    def __init__(self, definition: MCPToolDefinition) -> None:
        self._definition = definition
        # Parameter names are aliases so names like "json" cannot clash with BaseModel
        self._fields = {param.name: f"arg_{i}" for i, param in enumerate(definition.parameters)}

        conditions = tuple(
            (param.name, self._fields[param.name], other, self._fields[other], expected)
            for param in definition.parameters
            if param.required_if is not None
            for other, expected in [param.required_if]
            if other in self._fields
        )
        validators = {"check_required_if": _required_if_check(conditions)} if conditions else None

        self.model: type[ToolArguments] = create_model(
            f"{definition.name}_arguments",
            __base__=ToolArguments,
            __validators__=validators,
            **{self._fields[p.name]: (_annotation(p), _field(p)) for p in definition.parameters},
        )

    @property
    def definition(self) -> MCPToolDefinition:
        return self._definition

    def validate(self, raw: Mapping[str, Any] | None) -> dict[str, Any]:
        """Validate and coerce raw arguments.

        An explicit null counts as an absent field.

        Returns:
            The coerced arguments with defaults applied. Undeclared keys and
            optional fields that were neither sent nor defaulted are left out.

        Raises:
            ToolValidationError: Listing every violation found.
        """
        present = {key: value for key, value in (raw or {}).items() if value is not None}
        try:
            model = self.model.model_validate(present)
        except ValidationError as e:
            raise ToolValidationError(
                self._definition.name,
                [_to_violation(item) for item in e.errors()],
            ) from e

        dumped = model.model_dump(by_alias=True)
        return {
            param.name: dumped[param.name]
            for param in self._definition.parameters
            if param.name in present or param.default is not None
        }


def _to_violation(item: Any) -> FieldViolation:
    loc = ".".join(str(part) for part in item["loc"])
    if not loc:
        # Model-level checks name their field in the error context
        loc = str(item.get("ctx", {}).get("field", ""))
    return FieldViolation(loc, item["msg"])


def validate_arguments(
    definition: MCPToolDefinition,
    raw: Mapping[str, Any] | None,
) -> dict[str, Any]:
    """One-off validation; the registry keeps an ArgumentSchema per tool instead."""
    return ArgumentSchema(definition).validate(raw)
