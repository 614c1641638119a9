"""Placeholder scanner for named and named-ordinal parameters.

Rewrites ``:name``, ``?N.name``, ``?.name``, ``?N.`` and ``?N`` placeholders into plain
positional ``?`` markers and records, for each marker, which caller argument and which
property of it supplies the value.

Examples:
    ``select * from person where first = :first and last = :last``
        -> ``select * from person where first = ? and last = ?``
        with plan ``[(0, "first"), (0, "last")]``

    ``insert into person (id, first) values (?1, ?2.first)``
        -> ``insert into person (id, first) values (?, ?)``
        with plan ``[(0, "<this>"), (1, "first")]``

Literals, quoted identifiers and comments are copied verbatim. A doubled '' is the only
escape inside a single-quoted literal, so a backslash never hides the closing quote.
PostgreSQL dollar-quoted bodies (``$$ ... $$``, ``$fn$ ... $fn$``) count as literals.
"""

import re
from typing import Final, Optional

from mypy_extensions import mypyc_attr

from sqlfacade.exceptions import ScanError
from sqlfacade.parameters.types import THIS, PlaceholderBinding, ScanResult

__all__ = ("PlaceholderScanner", "find_positional_markers", "scan")


_PLACEHOLDER_REGEX: Final = re.compile(
    r"""
    (?P<squote>'(?:[^']|'')*') |
    (?P<unterminated>') |
    (?P<dquote>"[^"]*") |
    (?P<dollar_quoted>\$(?P<dollar_tag>(?:[^\W\d]\w*)?)\$[\s\S]*?\$(?P=dollar_tag)\$) |
    (?P<line_comment>--[^\r\n]*) |
    (?P<block_comment>/\*[\s\S]*?\*/) |
    (?P<pg_cast>::\w+) |
    (?P<pg_q_operator>\?\?|\?\||\?&) |
    (?P<named_colon>:(?P<colon_name>[^\W\d]\w*)) |
    (?P<named_ordinal>\?(?P<ordinal>\d*)\.(?P<ordinal_name>\w*)) |
    (?P<ordinal_only>\?(?P<bare_ordinal>\d+)) |
    (?P<qmark>\?)
    """,
    re.VERBOSE,
)

_NAMED_KINDS: Final = frozenset({"named_colon", "named_ordinal", "ordinal_only"})


def _binding_for(match: "re.Match[str]") -> PlaceholderBinding:
    kind = match.lastgroup
    if kind == "named_colon":
        return PlaceholderBinding(0, match.group("colon_name"))
    if kind == "named_ordinal":
        ordinal = match.group("ordinal")
        index = int(ordinal) - 1 if ordinal else 0
        return PlaceholderBinding(index, match.group("ordinal_name") or THIS)
    return PlaceholderBinding(int(match.group("bare_ordinal")) - 1, THIS)


@mypyc_attr(allow_interpreted_subclasses=False)
class PlaceholderScanner:
    """Stateless scanner; one shared instance serves every facade."""

    __slots__ = ()

    def scan(self, sql: str) -> "Optional[ScanResult]":
        """Rewrite named placeholders in ``sql`` to positional markers.

        Args:
            sql: Original SQL text.

        Raises:
            ScanError: On an unterminated single-quoted literal, or when plain ``?``
                markers are mixed with named placeholders.

        Returns:
            The rewritten SQL and its binding plan, or None when the text holds no named
            placeholder and can be used unchanged.
        """
        if ":" not in sql and "?" not in sql:
            return None

        pieces: list[str] = []
        plan: list[PlaceholderBinding] = []
        plain_markers = 0
        last_end = 0

        for match in _PLACEHOLDER_REGEX.finditer(sql):
            kind = match.lastgroup
            if kind == "unterminated":
                msg = "Failed to process query. Unterminated ' character?"
                raise ScanError(msg, sql)
            if kind == "qmark":
                plain_markers += 1
                continue
            if kind not in _NAMED_KINDS:
                continue
            pieces.append(sql[last_end : match.start()])
            pieces.append("?")
            plan.append(_binding_for(match))
            last_end = match.end()

        if not plan:
            return None
        if plain_markers:
            msg = "Cannot mix positional '?' placeholders with named placeholders"
            raise ScanError(msg, sql)

        pieces.append(sql[last_end:])
        return ScanResult("".join(pieces), tuple(plan))

    def find_positional_markers(self, sql: str) -> "list[int]":
        """Offsets of plain ``?`` markers outside literals, identifiers and comments."""
        if "?" not in sql:
            return []
        return [match.start() for match in _PLACEHOLDER_REGEX.finditer(sql) if match.lastgroup == "qmark"]


_default_scanner: Final = PlaceholderScanner()


def scan(sql: str) -> "Optional[ScanResult]":
    return _default_scanner.scan(sql)


def find_positional_markers(sql: str) -> "list[int]":
    return _default_scanner.find_positional_markers(sql)
