# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the Calculator tool."""
import pytest

from agent_runtime.tools.base_tool import ToolArgumentError
from agent_runtime.tools.calculator import Calculator


@pytest.mark.asyncio
@pytest.mark.parametrize("expression, expected_result", [
    ("2 + 2", 4),  # Basic addition
    ("10 - 5", 5),  # Basic subtraction
    ("3 * 4", 12),  # Multiplication
    ("8 / 4", 2.0),  # Division
    ("2 + 3 * 4", 14),  # Order of operations
    ("(2 + 3) * 4", 20),  # Parentheses
    ("2 + 2.5", 4.5),  # Floating point
    ("2 ^ 3", 8),  # Caret means power
    ("-3 + 1", -2),  # Unary minus
    ("2 ^ 100", 2 ** 100),  # Large but bounded power
])
async def test_valid_expressions(expression, expected_result):
    """Test calculator with valid expressions."""
    result = await Calculator().invoke({"expression": expression, "reasoning": "Testing"})

    assert result == {"expression": expression, "result": expected_result}


@pytest.mark.asyncio
@pytest.mark.parametrize("expression", [
    "2 + abc",  # Invalid characters
    "__import__('os')",  # Code injection
    "",  # Empty expression
])
async def test_rejected_expressions(expression):
    """Expressions outside the allowed alphabet fail argument validation."""
    with pytest.raises(ToolArgumentError):
        await Calculator().invoke({"expression": expression})


@pytest.mark.asyncio
@pytest.mark.parametrize("expression, error", [
    ("1 / 0", ZeroDivisionError),
    ("2 + * 3", SyntaxError),
    ("9 ^ 9 ^ 9 ^ 9", ValueError),  # Exponent over the limit
    ("(10 ^ 1000) ^ 1000", ValueError),  # Result too large
])
async def test_failing_expressions(expression, error):
    """Well-formed input that cannot be evaluated raises to the caller."""
    with pytest.raises(error):
        await Calculator().invoke({"expression": expression})


def test_tool_metadata():
    calculator = Calculator()
    assert calculator.name == "calculate"
    assert "mathematical expressions" in calculator.description
    schema = Calculator.parameters_schema()
    assert "expression" in schema["properties"]
    assert "expression" in schema["required"]
