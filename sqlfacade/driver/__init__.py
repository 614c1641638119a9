"""Statement handles, caching, lifecycle and execution commands."""

from sqlfacade.driver.batch import BatchingPreparedStatementWrapper, BatchingStatementWrapper
from sqlfacade.driver.cache import StatementCache
from sqlfacade.driver.commands import AbstractQueryCommand, PreparedQueryCommand, QueryCommand
from sqlfacade.driver.context import ExecutionContext
from sqlfacade.driver.cursor import ResultCursor, effective_max_rows, move_cursor
from sqlfacade.driver.lifecycle import ResourceManager
from sqlfacade.driver.statement import (
    SUCCESS_NO_INFO,
    CallableStatement,
    CallableStatementCommand,
    PlainStatement,
    PlainStatementCommand,
    PreparedStatement,
    PreparedStatementCommand,
    Statement,
    StatementCommand,
    StatementFactory,
    StatementKey,
    StatementOptions,
    appears_like_stored_proc,
    create_statement,
)

__all__ = (
    "SUCCESS_NO_INFO",
    "AbstractQueryCommand",
    "BatchingPreparedStatementWrapper",
    "BatchingStatementWrapper",
    "CallableStatement",
    "CallableStatementCommand",
    "ExecutionContext",
    "PlainStatement",
    "PlainStatementCommand",
    "PreparedQueryCommand",
    "PreparedStatement",
    "PreparedStatementCommand",
    "QueryCommand",
    "ResourceManager",
    "ResultCursor",
    "Statement",
    "StatementCache",
    "StatementCommand",
    "StatementFactory",
    "StatementKey",
    "StatementOptions",
    "appears_like_stored_proc",
    "create_statement",
    "effective_max_rows",
    "move_cursor",
)
