"""Query commands.

A query command runs one row-producing statement and hands out a
:class:`~sqlfacade.driver.cursor.ResultCursor` inside a ``with`` block. Leaving the
block releases every resource the query used.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

from sqlfacade.driver.context import ExecutionContext
from sqlfacade.driver.cursor import ResultCursor, effective_max_rows
from sqlfacade.driver.statement import PlainStatementCommand, PreparedStatementCommand
from sqlfacade.utils.logging import get_logger, log_fields

if TYPE_CHECKING:
    from sqlfacade.driver.lifecycle import ResourceManager
    from sqlfacade.driver.statement import StatementFactory
    from sqlfacade.typing import CursorProtocol, RowFactory

__all__ = ("AbstractQueryCommand", "PreparedQueryCommand", "QueryCommand")

logger = get_logger("driver.commands")


class AbstractQueryCommand(ABC):
    """Template for commands that produce rows.

    Args:
        resources: Lifecycle manager of the facade.
        factory: Creates statements with the facade's options.
        sql: Final SQL text.
        row_factory: Row materialization, defaults to ``RowResult.from_row``.
        max_rows: Row cap for this call, 0 for none. A cap set on the statement by the
            configuration hook applies too; the smaller one wins.
    """

    __slots__ = ("factory", "max_rows", "resources", "row_factory", "sql")

    def __init__(
        self,
        resources: "ResourceManager",
        factory: "StatementFactory",
        sql: str,
        row_factory: "Optional[RowFactory]" = None,
        max_rows: int = 0,
    ) -> None:
        self.resources = resources
        self.factory = factory
        self.sql = sql
        self.row_factory = row_factory
        self.max_rows = max_rows

    @abstractmethod
    def run_query(self, context: ExecutionContext) -> "CursorProtocol":
        """Acquire a statement through ``context``, execute it and return the driver cursor."""

    @contextmanager
    def execute(self) -> "Iterator[ResultCursor]":
        with ExecutionContext(self.resources, self.factory, self.sql) as context:
            cursor = self.run_query(context)
            statement_max_rows = context.statement.max_rows if context.statement is not None else 0
            context.result = ResultCursor(
                cursor, self.row_factory, effective_max_rows(self.max_rows, statement_max_rows)
            )
            yield context.result


class QueryCommand(AbstractQueryCommand):
    """Runs SQL text without parameters on a plain statement."""

    __slots__ = ()

    def run_query(self, context: ExecutionContext) -> "CursorProtocol":
        logger.debug("%s", self.sql, extra=log_fields(self.sql))
        statement = context.acquire(PlainStatementCommand())
        return statement.execute_query(self.sql)  # type: ignore[call-arg]


class PreparedQueryCommand(AbstractQueryCommand):
    """Runs SQL text with positional parameters on a prepared statement."""

    __slots__ = ("params",)

    def __init__(
        self,
        resources: "ResourceManager",
        factory: "StatementFactory",
        sql: str,
        params: "Sequence[Any]",
        row_factory: "Optional[RowFactory]" = None,
        max_rows: int = 0,
    ) -> None:
        super().__init__(resources, factory, sql, row_factory, max_rows)
        self.params = params

    def run_query(self, context: ExecutionContext) -> "CursorProtocol":
        logger.debug("%s | %s", self.sql, self.params, extra=log_fields(self.sql, self.params))
        statement = context.acquire(PreparedStatementCommand())
        statement.set_parameters(self.params)  # type: ignore[attr-defined]
        return statement.execute_query()  # type: ignore[call-arg]
