"""Per-call execution context."""

from typing import TYPE_CHECKING, Any, Optional

from sqlfacade.driver.statement import StatementKey
from sqlfacade.utils.logging import get_logger, log_fields

if TYPE_CHECKING:
    from types import TracebackType

    from sqlfacade.driver.cursor import ResultCursor
    from sqlfacade.driver.lifecycle import ResourceManager
    from sqlfacade.driver.statement import Statement, StatementCommand, StatementFactory
    from sqlfacade.typing import ConnectionProtocol

__all__ = ("ExecutionContext",)

logger = get_logger("driver.context")


class ExecutionContext:
    """Resources used by one facade call.

    Used as a context manager: failures are logged with the SQL text and re-raised
    untouched, and the connection, statement and result cursor are handed back to the
    :class:`~sqlfacade.driver.lifecycle.ResourceManager` on every exit path.

    Example::

        with ExecutionContext(resources, factory, sql) as context:
            statement = context.acquire(PreparedStatementCommand())
            statement.set_parameters(params)
            count = statement.execute_update()
    """

    __slots__ = ("connection", "factory", "resources", "result", "sql", "statement")

    def __init__(self, resources: "ResourceManager", factory: "StatementFactory", sql: str) -> None:
        self.resources = resources
        self.factory = factory
        self.sql = sql
        self.connection: Optional[ConnectionProtocol] = None
        self.statement: Optional[Statement] = None
        self.result: Optional[ResultCursor] = None

    def acquire(self, command: "StatementCommand") -> "Statement":
        """Acquire the connection and the statement for ``command``."""
        if self.connection is None:
            self.connection = self.resources.acquire_connection()
        self.statement = self.resources.acquire_statement(
            self.connection, StatementKey(self.sql, command), self.factory.creator(command, self.sql)
        )
        return self.statement

    def __enter__(self) -> "ExecutionContext":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: "Optional[BaseException]",
        exc_tb: "Optional[TracebackType]",
    ) -> Any:
        if isinstance(exc_val, Exception):
            logger.warning(
                "Failed to execute: %s because: %s", self.sql, exc_val, extra=log_fields(self.sql, error=exc_val)
            )
        self.resources.release(self.connection, self.statement, self.result)
        return None
