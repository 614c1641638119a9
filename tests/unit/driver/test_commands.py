"""Tests for the execution context and query commands."""

import logging
from typing import Any

import pytest

from sqlfacade.driver import (
    ExecutionContext,
    PreparedQueryCommand,
    PreparedStatementCommand,
    QueryCommand,
    ResourceManager,
    StatementFactory,
)


def test_context_releases_on_success(data_source: Any) -> None:
    resources = ResourceManager(data_source)

    with ExecutionContext(resources, StatementFactory(), "update t set a = ?") as context:
        statement = context.acquire(PreparedStatementCommand())
        statement.set_parameters([1])
        statement.execute_update()

    assert statement.closed
    assert context.connection is not None
    assert context.connection.closed


def test_context_logs_and_reraises_driver_errors(
    data_source_factory: Any, database_error: type[Exception], caplog: pytest.LogCaptureFixture
) -> None:
    source = data_source_factory(failures={"update t set a = ?": "disk I/O error"})
    resources = ResourceManager(source)

    with caplog.at_level(logging.WARNING, logger="sqlfacade.driver.context"), pytest.raises(database_error):
        with ExecutionContext(resources, StatementFactory(), "update t set a = ?") as context:
            statement = context.acquire(PreparedStatementCommand())
            statement.set_parameters([1])
            statement.execute_update()

    assert "Failed to execute: update t set a = ? because: disk I/O error" in caplog.text
    assert source.connections[0].closed
    assert source.connections[0].cursors[0].closed


def test_query_command_yields_rows(data_source: Any, people_sql: str) -> None:
    resources = ResourceManager(data_source)
    command = QueryCommand(resources, StatementFactory(), people_sql)

    with command.execute() as results:
        names = [row.name for row in results]

    assert names == ["Ada", "Brian", "Carla", "Dennis", "Edsger"]
    assert data_source.connections[0].closed


def test_prepared_query_command_binds_parameters(data_source: Any, people_sql: str) -> None:
    resources = ResourceManager(data_source)
    command = PreparedQueryCommand(resources, StatementFactory(), people_sql, [3], max_rows=2)

    with command.execute() as results:
        rows = results.fetchall()

    assert len(rows) == 2
    assert data_source.log == [(people_sql, (3,))]


def test_statement_max_rows_from_hook_caps_results(data_source: Any, people_sql: str) -> None:
    def configure(statement: Any) -> None:
        statement.max_rows = 1

    resources = ResourceManager(data_source)
    command = QueryCommand(resources, StatementFactory(configure=configure), people_sql, max_rows=3)

    with command.execute() as results:
        assert len(results.fetchall()) == 1
