"""Constraint predicates parsed from arithmetic/comparison text.

Expressions such as ``"TS * ROWS <= 1024 and TS >= ROWS"`` are parsed with
:mod:`ast` and checked against a small grammar: parameter names, numeric
constants, arithmetic, comparisons, ``and``/``or``/``not`` and calls to
``min``, ``max`` and ``abs``. The tree is then interpreted directly; nothing
is handed to ``eval``.
"""

from __future__ import annotations

import ast
import operator
from collections.abc import Callable, Sequence

from .errors import MalformedConstraintError, UnknownParameterError

_BINARY_OPS: dict[type, Callable] = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

_UNARY_OPS: dict[type, Callable] = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
    ast.Not: operator.not_,
}

_COMPARE_OPS: dict[type, Callable] = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
}

_FUNCTIONS: dict[str, Callable] = {"min": min, "max": max, "abs": abs}

# Context and operator nodes that appear as children of the allowed nodes
_STRUCTURAL = (
    ast.Expression,
    ast.Load,
    ast.And,
    ast.Or,
    *_BINARY_OPS,
    *_UNARY_OPS,
    *_COMPARE_OPS,
)


def _check_node(node: ast.AST, expression: str) -> None:
    if isinstance(node, ast.Constant):
        if isinstance(node.value, bool) or not isinstance(node.value, (int, float)):
            raise MalformedConstraintError(
                f"Only numeric constants are allowed in '{expression}', got {node.value!r}"
            )
    elif isinstance(node, ast.Call):
        if not isinstance(node.func, ast.Name) or node.func.id not in _FUNCTIONS:
            raise MalformedConstraintError(
                f"Only calls to {', '.join(_FUNCTIONS)} are allowed in '{expression}'"
            )
        if node.keywords or not node.args:
            raise MalformedConstraintError(
                f"'{node.func.id}' takes positional arguments only in '{expression}'"
            )
    elif isinstance(node, (ast.BinOp, ast.UnaryOp)):
        if type(node.op) not in _BINARY_OPS and type(node.op) not in _UNARY_OPS:
            raise MalformedConstraintError(f"Unsupported operator in '{expression}'")
    elif not isinstance(node, (ast.Name, ast.BoolOp, ast.Compare, *_STRUCTURAL)):
        raise MalformedConstraintError(
            f"Unsupported syntax '{type(node).__name__}' in '{expression}'"
        )


def _evaluate(node: ast.AST, env: dict[str, int]):
    if isinstance(node, ast.Expression):
        return _evaluate(node.body, env)
    if isinstance(node, ast.Constant):
        return node.value
    if isinstance(node, ast.Name):
        return env[node.id]
    if isinstance(node, ast.BinOp):
        return _BINARY_OPS[type(node.op)](_evaluate(node.left, env), _evaluate(node.right, env))
    if isinstance(node, ast.UnaryOp):
        return _UNARY_OPS[type(node.op)](_evaluate(node.operand, env))
    if isinstance(node, ast.BoolOp):
        if isinstance(node.op, ast.And):
            return all(_evaluate(value, env) for value in node.values)
        return any(_evaluate(value, env) for value in node.values)
    if isinstance(node, ast.Compare):
        left = _evaluate(node.left, env)
        for op, comparator in zip(node.ops, node.comparators):
            right = _evaluate(comparator, env)
            if not _COMPARE_OPS[type(op)](left, right):
                return False
            left = right
        return True
    # Call, the only node left after validation
    return _FUNCTIONS[node.func.id](*(_evaluate(arg, env) for arg in node.args))


class ConstraintExpression:
    """A validated constraint expression over declared parameter names.

    Attributes:
        expression: Source text.
        parameter_names: Declared names the expression references, in
            declaration order. The predicate takes values in this order.
    """

    def __init__(self, expression: str, declared: Sequence[str]):
        try:
            tree = ast.parse(expression.strip(), mode="eval")
        except SyntaxError as e:
            raise MalformedConstraintError(f"Cannot parse constraint '{expression}': {e.msg}") from e

        nodes = list(ast.walk(tree))
        for node in nodes:
            _check_node(node, expression)
        callees = {id(node.func) for node in nodes if isinstance(node, ast.Call)}
        used = {
            node.id for node in nodes if isinstance(node, ast.Name) and id(node) not in callees
        }
        for name in sorted(used):
            if name not in declared:
                raise UnknownParameterError(name)
        if not used:
            raise MalformedConstraintError(f"Constraint '{expression}' references no parameter")

        self.expression = expression
        self.parameter_names = tuple(name for name in declared if name in used)
        self._tree = tree

    def __call__(self, values: Sequence[int]) -> bool:
        try:
            return bool(_evaluate(self._tree, dict(zip(self.parameter_names, values))))
        except ZeroDivisionError:
            return False

    def __repr__(self) -> str:
        return f"ConstraintExpression({self.expression!r})"
