# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import ast
import asyncio
import logging
import operator

from pydantic import BaseModel, Field

from .base_tool import BaseTool

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

MAX_EXPONENT = 1000
MAX_RESULT_BITS = 100_000


def _power(base, exponent):
    """Exponentiation with bounded cost."""
    if abs(exponent) > MAX_EXPONENT:
        raise ValueError(f"Exponent {exponent} exceeds the limit of {MAX_EXPONENT}")
    if isinstance(base, int) and base.bit_length() * abs(exponent) > MAX_RESULT_BITS:
        raise ValueError("Result of the power is too large")
    return operator.pow(base, exponent)


_BINARY_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: _power,
}
_UNARY_OPS = {ast.UAdd: operator.pos, ast.USub: operator.neg}


def _evaluate(node: ast.AST) -> float | int:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPS:
        return _BINARY_OPS[type(node.op)](_evaluate(node.left), _evaluate(node.right))
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPS:
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand))
    raise ValueError(f"Unsupported expression element: {ast.dump(node)}")


class Calculator(BaseTool):
    TOOL_NAME = "calculate"
    TOOL_DESCRIPTION = """A calculator tool that evaluates mathematical expressions.
Supports basic arithmetic operations (including +, -, *, / and ^) and parentheses.
All expressions must contain only numbers and valid operators."""

    class Arguments(BaseModel):
        expression: str = Field(
            ...,
            description="Mathematical expression to evaluate",
            pattern=r"^[\d\s\+\-\*\/\^\(\)\.]+$",
        )
        reasoning: str = Field(
            "", description="Concise reasoning about the operation to be performed"
        )

    async def run(self, args: Arguments, cancellation: asyncio.Event | None = None) -> dict:
        tree = ast.parse(args.expression.replace("^", "**"), mode="eval")
        result = _evaluate(tree)
        logger.debug(f"{args.expression} = {result}")
        return {"expression": args.expression, "result": result}
