"""Result cursor handed to query callbacks, plus row positioning."""

from collections.abc import Iterator, Sequence
from typing import TYPE_CHECKING, Any, Optional

from sqlfacade.result import RowResult, column_names
from sqlfacade.utils.type_guards import supports_scroll

if TYPE_CHECKING:
    from sqlfacade.typing import ColumnDescription, CursorProtocol, RowFactory

__all__ = ("ResultCursor", "effective_max_rows", "move_cursor")


def move_cursor(cursor: "CursorProtocol", offset: int, scrollable: bool = False) -> bool:
    """Position ``cursor`` so that the next fetch returns row ``offset``.

    Offsets are 1-based; anything up to 1 leaves the cursor where it is. Scrollable
    result types use the DB-API ``scroll`` extension when the cursor has it, otherwise
    ``offset - 1`` rows are read and discarded.

    Returns:
        False when the result ran out of rows before reaching ``offset``.
    """
    if offset <= 1:
        return True
    if scrollable and supports_scroll(cursor):
        try:
            cursor.scroll(offset - 1, mode="absolute")  # type: ignore[attr-defined]
        except IndexError:
            return False
        return True
    for _ in range(offset - 1):
        if cursor.fetchone() is None:
            return False
    return True


def effective_max_rows(*limits: int) -> int:
    """Smallest positive limit, or 0 when none of ``limits`` caps anything."""
    positive = [limit for limit in limits if limit > 0]
    return min(positive) if positive else 0


class ResultCursor:
    """Forward-only view over an executed cursor.

    Rows come out through the configured row factory and stop after ``max_rows``
    rows when a cap is set. Closing only ends the view; the driver cursor belongs to
    its statement unless ``owns_cursor`` is set.
    """

    __slots__ = ("_cursor", "_exhausted", "_fetched", "_owns_cursor", "_row_factory", "max_rows")

    def __init__(
        self,
        cursor: "CursorProtocol",
        row_factory: "Optional[RowFactory]" = None,
        max_rows: int = 0,
        owns_cursor: bool = False,
    ) -> None:
        self._cursor = cursor
        self._owns_cursor = owns_cursor
        self._row_factory = row_factory or RowResult.from_row
        self.max_rows = max_rows
        self._fetched = 0
        self._exhausted = False

    @property
    def cursor(self) -> "CursorProtocol":
        return self._cursor

    @property
    def description(self) -> "Sequence[ColumnDescription]":
        return self._cursor.description or ()

    @property
    def column_names(self) -> "list[str]":
        return column_names(self.description)

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    def move_to(self, offset: int, scrollable: bool = False) -> bool:
        if not move_cursor(self._cursor, offset, scrollable):
            self._exhausted = True
        return not self._exhausted

    def _remaining(self) -> "Optional[int]":
        if self.max_rows <= 0:
            return None
        return max(self.max_rows - self._fetched, 0)

    def fetchone(self) -> Any:
        if self._exhausted or self._remaining() == 0:
            return None
        row = self._cursor.fetchone()
        if row is None:
            self._exhausted = True
            return None
        self._fetched += 1
        return self._row_factory(self.description, row)

    def fetchmany(self, size: "Optional[int]" = None) -> "list[Any]":
        if self._exhausted:
            return []
        size = size or self._cursor.arraysize
        remaining = self._remaining()
        if remaining is not None:
            size = min(size, remaining)
        if size <= 0:
            return []
        rows = self._cursor.fetchmany(size)
        if not rows:
            self._exhausted = True
        self._fetched += len(rows)
        description = self.description
        return [self._row_factory(description, row) for row in rows]

    def fetchall(self) -> "list[Any]":
        if self._exhausted:
            return []
        if self._remaining() is not None:
            return list(self)
        rows = self._cursor.fetchall()
        self._exhausted = True
        self._fetched += len(rows)
        description = self.description
        return [self._row_factory(description, row) for row in rows]

    def __iter__(self) -> "Iterator[Any]":
        while (row := self.fetchone()) is not None:
            yield row

    def close(self) -> None:
        self._exhausted = True
        if self._owns_cursor:
            self._cursor.close()
