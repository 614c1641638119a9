"""Positional marker style conversion.

The scanner always produces ``?`` markers. Drivers that expect another positional
style get the markers renumbered here, right before the statement is prepared.
"""

from typing import Final

from sqlfacade.parameters.scanner import find_positional_markers
from sqlfacade.parameters.types import ParameterStyle

__all__ = ("convert_positional_style",)

_MARKER_FORMATS: Final = {
    ParameterStyle.NUMERIC: "${}",
    ParameterStyle.POSITIONAL_COLON: ":{}",
}


def convert_positional_style(sql: str, style: ParameterStyle) -> str:
    """Rewrite the ``?`` markers of ``sql`` into ``style``.

    For ``POSITIONAL_PYFORMAT`` every literal ``%`` is doubled, since pyformat drivers
    interpolate the whole statement text, quoted literals included.
    """
    if style is ParameterStyle.QMARK:
        return sql

    markers = find_positional_markers(sql)
    pieces: list[str] = []
    last_end = 0
    for ordinal, position in enumerate(markers, start=1):
        chunk = sql[last_end:position]
        if style is ParameterStyle.POSITIONAL_PYFORMAT:
            pieces.append(chunk.replace("%", "%%"))
            pieces.append("%s")
        else:
            pieces.append(chunk)
            pieces.append(_MARKER_FORMATS[style].format(ordinal))
        last_end = position + 1

    tail = sql[last_end:]
    pieces.append(tail.replace("%", "%%") if style is ParameterStyle.POSITIONAL_PYFORMAT else tail)
    return "".join(pieces)
