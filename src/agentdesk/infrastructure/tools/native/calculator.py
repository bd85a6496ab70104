"""Arithmetic calculator tool evaluating expressions over a restricted AST."""

import ast
import math
import operator
import re
from typing import Any

from pydantic import BaseModel, Field

_BINARY_OPERATORS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS = {
    ast.UAdd: operator.pos,
    ast.USub: operator.neg,
}

_FUNCTIONS = {
    "sqrt": math.sqrt,
    "abs": abs,
    "round": round,
}

_SQRT_PHRASE = re.compile(r"raiz\s+quadrada\s+de\s+(?P<value>[\d.,]+)", re.IGNORECASE)

MAX_EXPONENT = 100


class CalculatorInput(BaseModel):
    operation: str = Field(
        ...,
        min_length=1,
        description='Expressão matemática a ser calculada. Ex: "2+2", "raiz quadrada de 16", "5*5".',
    )


def _normalize(expression: str) -> str:
    text = _SQRT_PHRASE.sub(lambda match: f"sqrt({match.group('value').replace(',', '.')})", expression)
    return text.replace("×", "*").replace("x", "*").replace("÷", "/").replace("^", "**")


def _evaluate(node: ast.AST) -> float | int:
    if isinstance(node, ast.Expression):
        return _evaluate(node.body)
    if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
        return node.value
    if isinstance(node, ast.BinOp) and type(node.op) in _BINARY_OPERATORS:
        left, right = _evaluate(node.left), _evaluate(node.right)
        if isinstance(node.op, ast.Pow) and abs(right) > MAX_EXPONENT:
            raise ValueError(f"Exponent too large: {right}")
        return _BINARY_OPERATORS[type(node.op)](left, right)
    if isinstance(node, ast.UnaryOp) and type(node.op) in _UNARY_OPERATORS:
        return _UNARY_OPERATORS[type(node.op)](_evaluate(node.operand))
    if (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in _FUNCTIONS
        and not node.keywords
    ):
        return _FUNCTIONS[node.func.id](*(_evaluate(arg) for arg in node.args))
    raise ValueError(f"Unsupported expression element: {type(node).__name__}")


def calculate(expression: str) -> float | int:
    """
    Evaluate an arithmetic expression.

    Raises:
        ValueError: If the expression is not plain arithmetic
        ZeroDivisionError: On division by zero
    """
    try:
        tree = ast.parse(_normalize(expression.strip()), mode="eval")
    except SyntaxError as e:
        raise ValueError(f"Invalid expression: {expression}") from e
    result = _evaluate(tree)
    if isinstance(result, float) and result.is_integer():
        return int(result)
    return result


class CalculatorTool:
    """Performs arithmetic calculations."""

    @property
    def id(self) -> str:
        return "calculator"

    @property
    def name(self) -> str:
        return "calculator"

    @property
    def description(self) -> str:
        return "Realiza cálculos matemáticos. Ex: 'quanto é 2+2?', 'raiz quadrada de 16'."

    @property
    def input_model(self) -> type[BaseModel]:
        return CalculatorInput

    async def execute(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        return {"operation": operation, "result": calculate(operation)}
