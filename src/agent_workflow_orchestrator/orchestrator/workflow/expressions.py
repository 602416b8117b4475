"""Constrained evaluation of free-form condition expressions.

Condition nodes may carry an expression such as::

    $priority === "high" && $retries < 3

`$name` tokens are replaced by the JSON encoding of the variable, the
JavaScript-style connectives authors tend to write are rewritten to their
Python spelling (outside string literals only), and the result is evaluated by
`simpleeval`, which only understands literals, comparisons, boolean logic,
membership tests and the whitelisted functions below. Nothing in an expression
can reach attributes, imports or arbitrary code.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from simpleeval import EvalWithCompoundTypes

logger = logging.getLogger(__name__)

_VARIABLE_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")

_TOKEN_RE = re.compile(
    r"""
    (?P<string>"(?:[^"\\]|\\.)*"|'(?:[^'\\]|\\.)*')
    | (?P<op>===|!==|&&|\|\||!(?!=))
    | (?P<other>[^"'=!&|]+|.)
    """,
    re.VERBOSE | re.DOTALL,
)

_OPERATOR_REWRITES = {
    "===": "==",
    "!==": "!=",
    "&&": " and ",
    "||": " or ",
    "!": " not ",
}

_LITERAL_NAMES: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "True": True,
    "False": False,
    "None": None,
}

SAFE_FUNCTIONS = {
    "len": len,
    "str": str,
    "int": int,
    "float": float,
    "bool": bool,
    "abs": abs,
    "min": min,
    "max": max,
}


class ExpressionError(ValueError):
    """The expression could not be parsed or evaluated."""


def substitute_variables(expression: str, variables: dict[str, Any]) -> str:
    """Replace `$name` with the JSON encoding of `variables[name]`.

    Unknown names are left untouched so evaluation reports them.
    """

    def _replace(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in variables:
            return match.group(0)
        return json.dumps(variables[name], default=str)

    return _VARIABLE_RE.sub(_replace, expression)


def normalize_operators(expression: str) -> str:
    parts: list[str] = []
    for match in _TOKEN_RE.finditer(expression):
        op = match.group("op")
        parts.append(_OPERATOR_REWRITES[op] if op else match.group(0))
    return "".join(parts).strip()


def evaluate_expression(expression: str, variables: dict[str, Any]) -> bool:
    """Evaluate a condition expression against the run's variables.

    Raises:
        ExpressionError: if the expression is empty, malformed, or uses
            anything outside the permitted grammar.
    """

    source = normalize_operators(substitute_variables(expression, variables))
    if not source:
        raise ExpressionError("Empty condition expression")

    evaluator = EvalWithCompoundTypes(names=dict(_LITERAL_NAMES), functions=SAFE_FUNCTIONS)
    try:
        return bool(evaluator.eval(source))
    except Exception as e:
        raise ExpressionError(f"Cannot evaluate {expression!r}: {e}") from e


def evaluate_condition_safely(expression: str, variables: dict[str, Any]) -> bool:
    """Like `evaluate_expression`, but an invalid expression is simply false."""

    try:
        return evaluate_expression(expression, variables)
    except ExpressionError as e:
        logger.warning("Condition expression evaluated as false", extra={"error": str(e)})
        return False
