"""Tests for tool argument validation."""

import pytest

from switchboard.mcp.errors import ToolValidationError
from switchboard.mcp.tools.schema import ArgumentSchema, validate_arguments
from switchboard.mcp.types import MCPToolDefinition, MCPToolParameter, ToolInputType


def _definition(*parameters: MCPToolParameter) -> MCPToolDefinition:
    return MCPToolDefinition(name="t", description="test", parameters=parameters)


class TestPresence:
    """Test required fields and defaults."""

    def test_missing_required_field(self, sample_tool_definition: MCPToolDefinition) -> None:
        """A missing required field is reported by name."""
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(sample_tool_definition, {})
        assert exc_info.value.field == "input"

    def test_none_counts_as_missing(self, sample_tool_definition: MCPToolDefinition) -> None:
        """An explicit null is treated like an absent field."""
        with pytest.raises(ToolValidationError):
            validate_arguments(sample_tool_definition, {"input": None})

    def test_defaults_applied(self, sample_tool_definition: MCPToolDefinition) -> None:
        """Optional fields take their declared default."""
        assert validate_arguments(sample_tool_definition, {"input": "x"}) == {
            "input": "x",
            "count": 1,
        }

    def test_optional_without_default_is_omitted(self) -> None:
        """An optional field without default stays absent."""
        definition = _definition(
            MCPToolParameter(name="a", type=ToolInputType.STRING, required=False)
        )
        assert validate_arguments(definition, None) == {}

    def test_unknown_keys_dropped(self, sample_tool_definition: MCPToolDefinition) -> None:
        """Undeclared keys do not reach the handler."""
        values = validate_arguments(sample_tool_definition, {"input": "x", "extra": 1})
        assert "extra" not in values

    def test_all_violations_collected(self) -> None:
        """Every bad field is reported at once, in parameter order."""
        definition = _definition(
            MCPToolParameter(name="a", type=ToolInputType.INTEGER),
            MCPToolParameter(name="b", type=ToolInputType.STRING),
        )
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(definition, {"a": "not-a-number"})
        assert exc_info.value.fields == ("a", "b")


class TestCoercion:
    """Test type coercion."""

    @pytest.mark.parametrize(
        ("type_", "raw", "expected"),
        [
            (ToolInputType.INTEGER, "10", 10),
            (ToolInputType.INTEGER, 4.0, 4),
            (ToolInputType.NUMBER, "2.5", 2.5),
            (ToolInputType.NUMBER, 3, 3.0),
            (ToolInputType.BOOLEAN, "true", True),
            (ToolInputType.BOOLEAN, "off", False),
            (ToolInputType.STRING, 42, "42"),
            (ToolInputType.ARRAY, ("a", "b"), ["a", "b"]),
            (ToolInputType.OBJECT, {"k": 1}, {"k": 1}),
        ],
    )
    def test_accepted(self, type_: ToolInputType, raw: object, expected: object) -> None:
        """Common client encodings are coerced to the declared type."""
        definition = _definition(MCPToolParameter(name="v", type=type_))
        assert validate_arguments(definition, {"v": raw}) == {"v": expected}

    @pytest.mark.parametrize(
        ("type_", "raw"),
        [
            (ToolInputType.INTEGER, True),
            (ToolInputType.INTEGER, 1.5),
            (ToolInputType.NUMBER, False),
            (ToolInputType.NUMBER, "nan"),
            (ToolInputType.NUMBER, "abc"),
            (ToolInputType.BOOLEAN, "maybe"),
            (ToolInputType.STRING, ["x"]),
            (ToolInputType.ARRAY, "x"),
            (ToolInputType.OBJECT, [1]),
        ],
    )
    def test_rejected(self, type_: ToolInputType, raw: object) -> None:
        """Values that cannot be coerced are violations."""
        definition = _definition(MCPToolParameter(name="v", type=type_))
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(definition, {"v": raw})
        assert exc_info.value.field == "v"


class TestRules:
    """Test enum, range, length, pattern and required_if rules."""

    def test_enum(self) -> None:
        """Values outside the enum are rejected."""
        definition = _definition(
            MCPToolParameter(name="op", type=ToolInputType.STRING, enum=("add", "subtract"))
        )
        assert validate_arguments(definition, {"op": "add"}) == {"op": "add"}
        with pytest.raises(ToolValidationError, match="Input should be 'add' or 'subtract'"):
            validate_arguments(definition, {"op": "pow"})

    def test_range(self, sample_tool_definition: MCPToolDefinition) -> None:
        """Numbers outside [minimum, maximum] are rejected."""
        with pytest.raises(ToolValidationError, match="less than or equal to 10"):
            validate_arguments(sample_tool_definition, {"input": "x", "count": 11})
        with pytest.raises(ToolValidationError, match="greater than or equal to 1"):
            validate_arguments(sample_tool_definition, {"input": "x", "count": 0})

    def test_string_length(self) -> None:
        """String length bounds are enforced."""
        definition = _definition(
            MCPToolParameter(name="s", type=ToolInputType.STRING, min_length=2, max_length=3)
        )
        validate_arguments(definition, {"s": "abc"})
        with pytest.raises(ToolValidationError, match="at least 2 characters"):
            validate_arguments(definition, {"s": "a"})
        with pytest.raises(ToolValidationError, match="at most 3 characters"):
            validate_arguments(definition, {"s": "abcd"})

    def test_pattern_must_match_whole_value(self) -> None:
        """Patterns are matched against the full string."""
        definition = _definition(
            MCPToolParameter(name="id", type=ToolInputType.STRING, pattern=r"[a-z]+-\d+")
        )
        validate_arguments(definition, {"id": "abc-12"})
        with pytest.raises(ToolValidationError, match="should match pattern"):
            validate_arguments(definition, {"id": "abc-12x"})

    def test_required_if(self) -> None:
        """A field becomes required when its sibling has a given value."""
        definition = _definition(
            MCPToolParameter(name="mode", type=ToolInputType.STRING),
            MCPToolParameter(
                name="target",
                type=ToolInputType.STRING,
                required=False,
                required_if=("mode", "remote"),
            ),
        )
        assert validate_arguments(definition, {"mode": "local"}) == {"mode": "local"}
        with pytest.raises(ToolValidationError, match="required when mode is 'remote'") as exc:
            validate_arguments(definition, {"mode": "remote"})
        assert exc.value.fields == ("target",)
        assert validate_arguments(definition, {"mode": "remote", "target": "h"}) == {
            "mode": "remote",
            "target": "h",
        }


class TestArgumentSchema:
    """Test the compiled per-tool schema."""

    def test_reusable(self, sample_tool_definition: MCPToolDefinition) -> None:
        """One schema validates many argument sets."""
        schema = ArgumentSchema(sample_tool_definition)
        assert schema.definition is sample_tool_definition
        assert schema.validate({"input": "a"}) == {"input": "a", "count": 1}
        assert schema.validate({"input": "b", "count": "3"}) == {"input": "b", "count": 3}

    def test_names_that_clash_with_model_attributes(self) -> None:
        """Parameter names are not limited by the underlying model class."""
        definition = _definition(
            MCPToolParameter(name="json", type=ToolInputType.STRING),
            MCPToolParameter(name="model_config", type=ToolInputType.INTEGER),
        )
        assert validate_arguments(definition, {"json": "x", "model_config": 2}) == {
            "json": "x",
            "model_config": 2,
        }

    def test_violation_reasons_name_the_problem(self) -> None:
        """Each violation carries the field path and a readable reason."""
        definition = _definition(MCPToolParameter(name="n", type=ToolInputType.INTEGER))
        with pytest.raises(ToolValidationError) as exc_info:
            validate_arguments(definition, {"n": True})
        (violation,) = exc_info.value.violations
        assert violation.path == "n"
        assert "boolean" in violation.reason
