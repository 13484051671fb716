"""Symbolic evaluation of reliability expressions over decision diagrams.

Expressions are the closed-form rational functions a parametric model checker
prints: numbers, variables, ``+ - * /`` and powers (``**`` or ``^``). Each
variable is replaced by its bound diagram and the arithmetic is carried out
pointwise by the diagram algebra.
"""

from __future__ import annotations

import ast
import operator
from collections.abc import Callable, Mapping
from functools import lru_cache

from famrel.diagrams.algebra import ADD, DiagramManager
from famrel.exceptions import FormatError, UnboundVariable

_BINARY_OPERATORS: dict[type[ast.operator], Callable[[ADD, ADD], ADD]] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Pow: operator.pow,
}

_UNARY_OPERATORS: dict[type[ast.unaryop], Callable[[ADD], ADD]] = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

_ALLOWED_NODES = (
    ast.Expression,
    ast.BinOp,
    ast.UnaryOp,
    ast.Constant,
    ast.Name,
    ast.Load,
    *_BINARY_OPERATORS,
    *_UNARY_OPERATORS,
)


@lru_cache(maxsize=1024)
def parse_expression(expression: str) -> ast.expr:
    """Parse and vet an arithmetic expression.

    Args:
        expression (str): The expression text.

    Returns:
        tree (ast.expr): The body of the parsed expression.

    Raises:
        FormatError: If the text is not an arithmetic expression over
            numbers and variables.
    """
    text = expression.strip().replace("^", "**")
    if not text:
        raise FormatError(expression, "empty expression")
    try:
        tree = ast.parse(text, mode="eval")
    except SyntaxError as e:
        raise FormatError(expression, e.msg) from e

    for node in ast.walk(tree):
        if not isinstance(node, _ALLOWED_NODES):
            raise FormatError(
                expression, f"unsupported construct {type(node).__name__}"
            )
        if isinstance(node, ast.Constant) and (
            isinstance(node.value, bool) or not isinstance(node.value, (int, float))
        ):
            raise FormatError(expression, f"unsupported constant {node.value!r}")
    return tree.body


def free_variables(expression: str) -> list[str]:
    """Variables referenced by an expression, in order of first appearance."""
    names = sorted(
        (
            node
            for node in ast.walk(parse_expression(expression))
            if isinstance(node, ast.Name)
        ),
        key=lambda node: (node.lineno, node.col_offset),
    )
    return list(dict.fromkeys(node.id for node in names))


class ExpressionSolver:
    """Evaluates algebraic expressions with variables bound to diagrams."""

    def __init__(self, manager: DiagramManager):
        """Initialize the solver for diagrams of one manager."""
        self.manager = manager

    def solve(self, expression: str, bindings: Mapping[str, ADD]) -> ADD:
        """Substitute every variable of an expression and evaluate it symbolically.

        Args:
            expression (str): Algebraic expression over the keys of ``bindings``.
            bindings (Mapping[str, ADD]): Diagram bound to each variable.

        Returns:
            diagram (ADD): The expression's value at every assignment.

        Raises:
            FormatError: If the expression is malformed.
            UnboundVariable: If the expression references a name not in ``bindings``.
        """
        return self._evaluate(parse_expression(expression), bindings)

    def _evaluate(self, node: ast.expr, bindings: Mapping[str, ADD]) -> ADD:
        if isinstance(node, ast.Constant):
            return self.manager.constant(node.value)
        if isinstance(node, ast.Name):
            if node.id not in bindings:
                raise UnboundVariable(node.id, bindings.keys())
            return self.manager.coerce(bindings[node.id])
        if isinstance(node, ast.UnaryOp):
            return _UNARY_OPERATORS[type(node.op)](self._evaluate(node.operand, bindings))
        if isinstance(node, ast.BinOp):
            left = self._evaluate(node.left, bindings)
            right = self._evaluate(node.right, bindings)
            return _BINARY_OPERATORS[type(node.op)](left, right)
        msg = f"Unexpected expression node {type(node).__name__}"
        raise TypeError(msg)
