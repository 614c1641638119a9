"""Optional rewriting of ``None`` parameters into SQL ``NULL`` predicates.

Compatibility mode, off by default. Binding ``None`` to ``col = ?`` never matches a row
in standard SQL; with this mode enabled, ``None`` markers are inlined as ``NULL`` and
comparisons against them inside ``WHERE`` clauses become ``IS NULL`` /
``NOT ... IS NULL``. Assignments (``SET col = ?``) and ``VALUES`` lists simply receive
the ``NULL`` literal.
"""

from collections.abc import Sequence
from typing import Any, Optional

import sqlglot
from sqlglot import exp
from sqlglot.errors import SqlglotError

from sqlfacade.parameters.scanner import find_positional_markers
from sqlfacade.parameters.types import SqlWithParams
from sqlfacade.utils.logging import get_logger

__all__ = ("nullify_parameters",)

logger = get_logger("parameters.nulls")


def _null_comparison(node: exp.Expression) -> exp.Expression:
    if not isinstance(node, (exp.EQ, exp.NEQ)) or node.find_ancestor(exp.Where) is None:
        return node
    if isinstance(node.expression, exp.Null):
        operand = node.this
    elif isinstance(node.this, exp.Null):
        operand = node.expression
    else:
        return node
    is_null = exp.Is(this=operand.copy(), expression=exp.Null())
    return is_null if isinstance(node, exp.EQ) else exp.Not(this=is_null)


def nullify_parameters(sql: str, params: "Sequence[Any]", dialect: "Optional[str]" = None) -> SqlWithParams:
    """Inline ``None`` parameters of ``sql`` as ``NULL``.

    Args:
        sql: SQL with plain ``?`` markers.
        params: Positional values, one per marker.
        dialect: sqlglot dialect used to parse and regenerate the statement.

    Returns:
        The rewritten SQL and the remaining parameters. The input is returned unchanged
        when no value is None, when markers and values disagree in number, or when the
        statement cannot be parsed.
    """
    if all(value is not None for value in params):
        return SqlWithParams(sql, list(params))

    markers = find_positional_markers(sql)
    if len(markers) != len(params):
        logger.debug("Skipping null rewrite, %d markers for %d parameters: %s", len(markers), len(params), sql)
        return SqlWithParams(sql, list(params))

    pieces: list[str] = []
    remaining: list[Any] = []
    last_end = 0
    for position, value in zip(markers, params):
        pieces.append(sql[last_end:position])
        if value is None:
            pieces.append("NULL")
        else:
            pieces.append("?")
            remaining.append(value)
        last_end = position + 1
    pieces.append(sql[last_end:])

    try:
        expression = sqlglot.parse_one("".join(pieces), read=dialect)
        rewritten = expression.transform(_null_comparison).sql(dialect=dialect)
    except SqlglotError as exc:
        logger.debug("Skipping null rewrite, statement could not be parsed (%s): %s", exc, sql)
        return SqlWithParams(sql, list(params))
    return SqlWithParams(rewritten, remaining)
