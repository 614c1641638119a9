"""Tests for the ``Sql`` facade against in-memory DB-API fakes."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import pytest

from sqlfacade import (
    SUCCESS_NO_INFO,
    ImproperConfigurationError,
    IndexOutOfRangeError,
    ParameterStyle,
    PropertyNotFoundError,
    ResultSetType,
    ScanError,
    Sql,
    SqlConfig,
    SqlType,
    out_param,
)

PEOPLE_SQL = "select id, name from person"
BY_NAME_SQL = "select id, name from person where name = ?"
PEOPLE = [(1, "Ada"), (2, "Brian"), (3, "Carla"), (4, "Dennis"), (5, "Edsger")]


@dataclass
class Person:
    id: int
    name: str


@pytest.fixture
def source(data_source_factory: Callable[..., Any]) -> Any:
    return data_source_factory(
        results={
            PEOPLE_SQL: (["id", "name"], PEOPLE),
            BY_NAME_SQL: (["id", "name"], PEOPLE[:1]),
        }
    )


@pytest.fixture
def sql(source: Any) -> Sql:
    return Sql(source)


def test_requires_data_source_or_connection() -> None:
    with pytest.raises(ImproperConfigurationError):
        Sql()


def test_keyword_overrides_and_unknown_options(source: Any) -> None:
    assert Sql(source, cache_statements=True).cache_statements is True
    assert Sql(source, config=SqlConfig(batch_size=3)).config.batch_size == 3
    with pytest.raises(ImproperConfigurationError):
        Sql(source, no_such_option=1)


def test_rows_plain_statement(sql: Sql, source: Any) -> None:
    rows = sql.rows(PEOPLE_SQL)

    assert [row.name for row in rows] == ["Ada", "Brian", "Carla", "Dennis", "Edsger"]
    assert source.log == [(PEOPLE_SQL, ())]
    assert all(connection.closed for connection in source.connections)


def test_rows_with_offset_and_max_rows(sql: Sql) -> None:
    rows = sql.rows(PEOPLE_SQL, offset=3, max_rows=2)

    assert [row.id for row in rows] == [3, 4]


def test_rows_with_offset_past_end(sql: Sql) -> None:
    assert sql.rows(PEOPLE_SQL, offset=10) == []


def test_rows_meta_callback(sql: Sql) -> None:
    seen: list[list[str]] = []

    sql.rows(PEOPLE_SQL, meta_callback=lambda description: seen.append([column[0] for column in description]))

    assert seen == [["id", "name"]]


def test_scrollable_result_type_uses_scroll(
    data_source_factory: Callable[..., Any], cursor_classes: dict[str, Any]
) -> None:
    source = data_source_factory(
        results={PEOPLE_SQL: (["id", "name"], PEOPLE)}, cursor_class=cursor_classes["scrollable"]
    )
    sql = Sql(source, result_set_type=ResultSetType.SCROLL_INSENSITIVE)

    rows = sql.rows(PEOPLE_SQL, offset=4)

    assert [row.id for row in rows] == [4, 5]
    assert source.connections[0].cursors[0].scrolls == [(3, "absolute")]


@pytest.mark.parametrize(
    "params",
    [
        pytest.param({"name": "Ada"}, id="mapping"),
        pytest.param([{"name": "Ada"}], id="mapping_in_list"),
        pytest.param([Person(1, "Ada")], id="dataclass"),
        pytest.param(Person(1, "Ada"), id="bare_model"),
    ],
)
def test_named_parameters(sql: Sql, source: Any, params: Any) -> None:
    rows = sql.rows("select id, name from person where name = :name", params)

    assert [row.name for row in rows] == ["Ada"]
    assert source.log == [(BY_NAME_SQL, ("Ada",))]


def test_named_ordinal_parameters(sql: Sql, source: Any) -> None:
    sql.execute_update("update person set name = ?1 where id = ?2.id", ["Bea", Person(2, "Brian")])

    assert source.log == [("update person set name = ? where id = ?", ("Bea", 2))]


def test_named_query_cache_reuses_scan_results(sql: Sql) -> None:
    first = sql.resolve_named_query("select * from t where a = :a")

    assert first is sql.resolve_named_query("select * from t where a = :a")

    sql.cache_named_queries = False
    assert sql.resolve_named_query("select * from t where a = :a") is not first


def test_disabled_named_queries_pass_sql_through(sql: Sql, source: Any) -> None:
    sql.enable_named_queries = False

    sql.execute("insert into t values (:a)", [1])

    assert source.log == [("insert into t values (:a)", (1,))]


def test_check_named_parameters(sql: Sql) -> None:
    assert tuple(sql.check_named_parameters("select ?1, ?2.name", ["X", {"name": "Y"}])) == (
        "select ?, ?",
        ["X", "Y"],
    )
    assert tuple(sql.check_named_parameters("select ?", [1])) == ("select ?", [1])


def test_bind_errors_are_raised_before_any_connection(sql: Sql, source: Any) -> None:
    with pytest.raises(IndexOutOfRangeError):
        sql.rows("select * from t where a = ?2", [1])
    with pytest.raises(PropertyNotFoundError):
        sql.rows("select * from t where a = :missing", {"a": 1})
    with pytest.raises(ScanError):
        sql.rows("select * from t where a = 'open and b = :b", {"b": 1})

    assert source.connections == []


def test_first_row(sql: Sql) -> None:
    row = sql.first_row(PEOPLE_SQL)

    assert row is not None
    assert row.name == "Ada"
    assert sql.first_row("select id, name from person where 1 = 0") is None


def test_each_row_with_callback_in_place_of_params(sql: Sql) -> None:
    names: list[str] = []

    sql.each_row(PEOPLE_SQL, lambda row: names.append(row.name), offset=2, max_rows=2)

    assert names == ["Brian", "Carla"]


def test_query_returns_callback_result(sql: Sql) -> None:
    count = sql.query(PEOPLE_SQL, lambda results: len(results.fetchall()))

    assert count == 5


def test_query_requires_callback(sql: Sql) -> None:
    with pytest.raises(TypeError):
        sql.query(PEOPLE_SQL, [1])


def test_execute_reports_result_set_and_update_count(
    data_source_factory: Callable[..., Any],
) -> None:
    source = data_source_factory(results={PEOPLE_SQL: (["id", "name"], PEOPLE)}, rowcount=3)
    sql = Sql(source)

    assert sql.execute(PEOPLE_SQL) is True
    assert sql.execute("delete from person where id > ?", [2]) is False
    assert sql.update_count == 3


def test_execute_update_autocommits(sql: Sql, source: Any) -> None:
    assert sql.execute_update("delete from person") == 1
    assert source.connections[0].commits == 1


def test_autocommit_can_be_disabled(source: Any) -> None:
    sql = Sql(source, autocommit=False)

    sql.execute_update("delete from person")

    assert source.connections[0].commits == 0


def test_execute_insert_returns_generated_keys(sql: Sql) -> None:
    assert sql.execute_insert("insert into person (name) values (?)", ["Grace"]) == [[1]]
    assert sql.execute_insert("insert into person (name) values ('Linus')") == [[1]]


def test_driver_errors_propagate_and_release(
    data_source_factory: Callable[..., Any], database_error: type[Exception], caplog: pytest.LogCaptureFixture
) -> None:
    source = data_source_factory(failures={"delete from locked": "database is locked"})
    sql = Sql(source)

    with caplog.at_level(logging.WARNING, logger="sqlfacade"), pytest.raises(database_error, match="locked"):
        sql.execute_update("delete from locked")

    assert "Failed to execute: delete from locked because: database is locked" in caplog.text
    assert source.connections[0].closed
    assert source.connections[0].commits == 0


def test_call_delivers_out_parameters(
    data_source_factory: Callable[..., Any], cursor_classes: dict[str, Any]
) -> None:
    source = data_source_factory(cursor_class=cursor_classes["callable"])
    sql = Sql(source)
    received: list[Any] = []

    count = sql.call(
        "{call find_name(?, ?)}", [7, out_param(SqlType.VARCHAR)], lambda name: received.append(name)
    )

    assert count == 1
    assert received == ["out1"]
    assert source.connections[0].cursors[0].calls == [("find_name", [7, None])]


def test_with_batch_partitions_and_counts(sql: Sql, source: Any) -> None:
    seen_within_batch: list[bool] = []

    def fill(statement: Any) -> None:
        seen_within_batch.append(sql.within_batch)
        for value in range(5):
            statement.add_batch({"id": value})

    counts = sql.with_batch(fill, sql="delete from person where id = :id", batch_size=2)

    assert counts == [1, 1, 1, 1, 1]
    assert seen_within_batch == [True]
    assert sql.within_batch is False
    assert [params for _, params in source.log] == [(0,), (1,), (2,), (3,), (4,)]
    assert source.connections[0].commits == 1
    assert source.connections[0].closed


def test_with_batch_executemany(source: Any) -> None:
    sql = Sql(source, batch_executemany=True)

    counts = sql.with_batch(lambda ps: [ps.add_batch(v) for v in range(3)], sql="insert into t values (?)")

    assert counts == [SUCCESS_NO_INFO] * 3


def test_plain_batch_context_manager(sql: Sql, source: Any) -> None:
    with sql.batch() as statement:
        statement.add_batch("delete from a")
        statement.add_batch("delete from b")

    assert [entry for entry, _ in source.log] == ["delete from a", "delete from b"]
    assert source.connections[0].cursors[0].closed


def test_batch_failure_propagates(
    data_source_factory: Callable[..., Any], database_error: type[Exception]
) -> None:
    source = data_source_factory(failures={"delete from b": "constraint failed"})
    sql = Sql(source)

    with pytest.raises(database_error):
        sql.with_batch(lambda s: [s.add_batch("delete from a"), s.add_batch("delete from b")])

    assert sql.within_batch is False
    assert source.connections[0].closed


def test_transaction_commits_once(sql: Sql, source: Any) -> None:
    with sql.transaction() as connection:
        sql.execute_update("delete from a")
        sql.execute_update("delete from b")
        assert connection.commits == 0
        assert sql.connection is connection

    assert len(source.connections) == 1
    assert connection.commits == 1
    assert connection.closed
    assert sql.connection is None


def test_with_transaction_rolls_back(sql: Sql, source: Any, caplog: pytest.LogCaptureFixture) -> None:
    def work() -> None:
        sql.execute_update("delete from a")
        msg = "changed my mind"
        raise RuntimeError(msg)

    with caplog.at_level(logging.INFO, logger="sqlfacade"), pytest.raises(RuntimeError):
        sql.with_transaction(work)

    connection = source.connections[0]
    assert connection.rollbacks == 1
    assert connection.commits == 0
    assert "Rolling back due to: changed my mind" in caplog.text


def test_with_transaction_passes_connection_to_one_argument_callback(sql: Sql) -> None:
    received: list[Any] = []

    sql.with_transaction(received.append)

    assert len(received) == 1
    assert received[0].commits == 1


def test_transaction_restores_driver_autocommit(sql: Sql, source: Any) -> None:
    original = source.get_connection

    def get_connection() -> Any:
        connection = original()
        connection.autocommit = True
        return connection

    source.get_connection = get_connection

    with sql.transaction() as connection:
        assert connection.autocommit is False

    assert connection.autocommit is True


def test_cache_connection(sql: Sql, source: Any) -> None:
    def work(connection: Any) -> None:
        sql.execute_update("delete from a")
        sql.rows(PEOPLE_SQL)
        assert not connection.closed

    sql.cache_connection(work)

    assert len(source.connections) == 1
    assert source.connections[0].closed


def test_statement_caching_reuses_statements(source: Any) -> None:
    configured: list[Any] = []
    sql = Sql(source, cache_statements=True)
    sql.with_statement(configured.append)

    for _ in range(3):
        sql.rows(BY_NAME_SQL, ["Ada"])

    assert len(configured) == 1
    assert len(source.connections) == 1
    assert len(source.connections[0].cursors) == 1

    sql.cache_statements = False

    assert configured[0].closed
    assert source.connections[0].closed


def test_with_statement_cache(sql: Sql, source: Any) -> None:
    def work() -> None:
        sql.rows(BY_NAME_SQL, ["Ada"])
        sql.rows(BY_NAME_SQL, ["Ada"])

    sql.with_statement_cache(work)

    connection = source.connections[0]
    assert len(connection.cursors) == 1
    assert connection.cursors[0].closed
    assert connection.closed
    assert sql.cache_statements is False


def test_commit_and_rollback_without_held_connection(sql: Sql, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="sqlfacade"):
        sql.commit()
        sql.rollback()

    assert "attempt to commit ignored" in caplog.text
    assert "attempt to rollback ignored" in caplog.text


def test_caller_supplied_connection(connection_factory: Callable[..., Any]) -> None:
    connection = connection_factory(results={PEOPLE_SQL: (["id", "name"], PEOPLE)})

    with Sql(connection=connection) as sql:
        assert len(sql.rows(PEOPLE_SQL)) == 5
        sql.execute_update("delete from a")
        sql.commit()
        sql.rollback()

    assert not connection.closed
    assert connection.commits == 2
    assert connection.rollbacks == 1


def test_nullify_none_parameters(source: Any) -> None:
    sql = Sql(source, nullify_none_parameters=True)

    sql.execute_update("DELETE FROM person WHERE name = :name AND id = :id", {"name": None, "id": 3})

    executed_sql, params = source.log[0]
    assert params == (3,)
    assert "NAME IS NULL" in executed_sql.upper()


def test_numeric_parameter_style(source: Any) -> None:
    sql = Sql(source, parameter_style=ParameterStyle.NUMERIC)

    sql.execute_update("update person set name = :name where id = :id", {"name": "Bea", "id": 2})

    assert source.log == [("update person set name = $1 where id = $2", ("Bea", 2))]


def test_custom_row_factory(source: Any) -> None:
    sql = Sql(source, row_factory=lambda description, row: tuple(row))

    assert sql.rows(PEOPLE_SQL, max_rows=1) == [(1, "Ada")]


def test_mixed_markers_rejected_but_ordinal_binds_whole_argument(sql: Sql, source: Any) -> None:
    with pytest.raises(ScanError, match="Cannot mix"):
        sql.execute_update("update person set name = ? where id = :id", [{"id": 1}])
    assert source.connections == []

    sql.execute_update("update person set name = ?1 where id = ?2.id", ["Bea", {"id": 1}])

    assert source.log == [("update person set name = ? where id = ?", ("Bea", 1))]
