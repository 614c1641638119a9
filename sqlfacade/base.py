"""The ``Sql`` facade."""

import inspect
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional, Union

from sqlfacade.config import ResultSetConcurrency, ResultSetHoldability, ResultSetType, SqlConfig
from sqlfacade.driver.batch import BatchingPreparedStatementWrapper, BatchingStatementWrapper
from sqlfacade.driver.commands import AbstractQueryCommand, PreparedQueryCommand, QueryCommand
from sqlfacade.driver.context import ExecutionContext
from sqlfacade.driver.cursor import ResultCursor
from sqlfacade.driver.lifecycle import ResourceManager
from sqlfacade.driver.statement import (
    CallableStatementCommand,
    PlainStatementCommand,
    PreparedStatementCommand,
    StatementFactory,
    StatementKey,
    StatementOptions,
)
from sqlfacade.parameters.binder import bind_parameters
from sqlfacade.parameters.cache import NamedQueryCache
from sqlfacade.parameters.nulls import nullify_parameters
from sqlfacade.parameters.styles import convert_positional_style
from sqlfacade.parameters.types import ParameterStyle, ResultSetOutParameter, SqlWithParams
from sqlfacade.utils.logging import get_logger, log_fields
from sqlfacade.utils.type_guards import has_autocommit, is_iterable_parameters, is_mapping

if TYPE_CHECKING:
    from sqlfacade.driver.statement import Statement
    from sqlfacade.parameters.types import ScanResult
    from sqlfacade.typing import ColumnDescription, ConnectionProtocol, DataSourceProtocol, StatementParameters

__all__ = ("Sql",)

logger = get_logger("base")


def _call_possibly_with_connection(callback: "Callable[..., Any]", connection: "ConnectionProtocol") -> Any:
    """Call ``callback(connection)`` when it takes one argument, ``callback()`` otherwise."""
    try:
        parameters = inspect.signature(callback).parameters.values()
    except (TypeError, ValueError):
        return callback()
    positional = [
        parameter
        for parameter in parameters
        if parameter.kind in {inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD}
    ]
    if len(positional) == 1 or any(parameter.kind is inspect.Parameter.VAR_POSITIONAL for parameter in parameters):
        return callback(connection)
    return callback()


def _split_callback(
    params: "Union[StatementParameters, Callable[..., Any]]", callback: "Optional[Callable[..., Any]]"
) -> "tuple[StatementParameters, Callable[..., Any]]":
    if callback is None and callable(params) and not is_mapping(params):
        return None, params
    if callback is None:
        msg = "A callback is required"
        raise TypeError(msg)
    return params, callback  # type: ignore[return-value]


class Sql:
    """Runs queries, updates, procedure calls and batches over a DB-API driver.

    Connections come from ``data_source`` (anything with ``get_connection()``, such as
    :class:`~sqlfacade.datasource.ConnectionFactory`) and are closed after every call
    unless a caching scope is active. A caller-supplied ``connection`` is used for
    every call and never closed by the facade.

    Parameters may be positional (``?``) or named: ``:name`` reads a property of the
    first argument, ``?2.name`` of the second, ``?2`` binds the second argument itself.
    Properties are read from mappings by key and from anything else by attribute::

        sql = Sql(ConnectionFactory(sqlite3.connect, "app.db"))
        sql.rows("select * from person where name = :name", {"name": "Ada"})
        sql.rows("select * from person where id = ?2.id and name = ?1", ["Ada", person])

    One statement uses either plain ``?`` markers or named placeholders, never both:
    a bare ``?`` next to ``:name`` raises :class:`~sqlfacade.exceptions.ScanError`
    instead of silently binding the first argument. Write ``?1`` to bind the first
    argument as a whole.

    Args:
        data_source: Connection provider.
        connection: Caller-supplied connection.
        config: Facade options, see :class:`~sqlfacade.config.SqlConfig`.
        **kwargs: Overrides applied on top of ``config``.
    """

    __slots__ = ("_config", "_named_queries", "_resources", "_transaction_depth", "_update_count", "_within_batch")

    def __init__(
        self,
        data_source: "Optional[DataSourceProtocol]" = None,
        *,
        connection: "Optional[ConnectionProtocol]" = None,
        config: "Optional[SqlConfig]" = None,
        **kwargs: Any,
    ) -> None:
        config = config or SqlConfig()
        if kwargs:
            config = config.replace(**kwargs)
        self._config = config
        self._resources = ResourceManager(data_source, connection, cache_statements=config.cache_statements)
        self._named_queries = NamedQueryCache(enabled=config.cache_named_queries)
        self._update_count = 0
        self._within_batch = False
        self._transaction_depth = 0

    # Properties

    @property
    def config(self) -> SqlConfig:
        return self._config

    @property
    def data_source(self) -> "Optional[DataSourceProtocol]":
        return self._resources.data_source

    @property
    def connection(self) -> "Optional[ConnectionProtocol]":
        """The caller-supplied connection, or the one held by an active caching scope."""
        return self._resources.held_connection

    @property
    def update_count(self) -> int:
        """Row count reported by the last ``execute``, ``execute_update`` or ``call``."""
        return self._update_count

    @property
    def within_batch(self) -> bool:
        return self._within_batch

    @property
    def cache_statements(self) -> bool:
        return self._resources.cache_statements

    @cache_statements.setter
    def cache_statements(self, value: bool) -> None:
        self._config = self._config.replace(cache_statements=value)
        self._resources.cache_statements = value

    @property
    def cache_named_queries(self) -> bool:
        return self._named_queries.enabled

    @cache_named_queries.setter
    def cache_named_queries(self, value: bool) -> None:
        self._config = self._config.replace(cache_named_queries=value)
        self._named_queries.enabled = value
        if not value:
            self._named_queries.clear()

    @property
    def enable_named_queries(self) -> bool:
        return self._config.enable_named_queries

    @enable_named_queries.setter
    def enable_named_queries(self, value: bool) -> None:
        self._config = self._config.replace(enable_named_queries=value)

    @property
    def result_set_type(self) -> ResultSetType:
        return self._config.result_set_type

    @result_set_type.setter
    def result_set_type(self, value: ResultSetType) -> None:
        self._config = self._config.replace(result_set_type=value)

    @property
    def result_set_concurrency(self) -> ResultSetConcurrency:
        return self._config.result_set_concurrency

    @result_set_concurrency.setter
    def result_set_concurrency(self, value: ResultSetConcurrency) -> None:
        self._config = self._config.replace(result_set_concurrency=value)

    @property
    def result_set_holdability(self) -> ResultSetHoldability:
        return self._config.result_set_holdability

    @result_set_holdability.setter
    def result_set_holdability(self, value: ResultSetHoldability) -> None:
        self._config = self._config.replace(result_set_holdability=value)

    def with_statement(self, configure: "Optional[Callable[[Statement], Any]]") -> None:
        """Register a hook that configures every newly created statement.

        The hook receives the :class:`~sqlfacade.driver.statement.Statement` and may set
        ``max_rows``, ``fetch_size`` or driver options on ``statement.cursor``. Pass None
        to remove it.
        """
        self._config = self._config.replace(configure_statement=configure)

    # Parameter handling

    def resolve_named_query(self, sql: str) -> "Optional[ScanResult]":
        """Rewritten SQL and binding plan for ``sql``, or None when it has no named placeholders."""
        if not self._config.enable_named_queries:
            return None
        return self._named_queries.resolve(sql)

    def check_named_parameters(self, sql: str, params: "Sequence[Any]") -> SqlWithParams:
        """Rewrite named placeholders of ``sql`` and bind ``params`` to them.

        Returns:
            ``sql`` and ``params`` unchanged when there is nothing named to resolve.
        """
        result = self.resolve_named_query(sql)
        if result is None:
            return SqlWithParams(sql, list(params))
        return SqlWithParams(result.sql, bind_parameters(result.plan, params, sql))

    @staticmethod
    def _normalize_parameters(params: "StatementParameters") -> "Optional[list[Any]]":
        if params is None:
            return None
        if is_mapping(params) or not is_iterable_parameters(params):
            return [params]
        return list(params)

    def _prepare(self, sql: str, params: "Sequence[Any]", nullify: bool = True) -> SqlWithParams:
        prepared = self.check_named_parameters(sql, params)
        if nullify and self._config.nullify_none_parameters:
            prepared = nullify_parameters(prepared.sql, prepared.params, self._config.dialect)
        if self._config.parameter_style is not ParameterStyle.QMARK:
            sql = convert_positional_style(prepared.sql, self._config.parameter_style)
            prepared = SqlWithParams(sql, prepared.params)
        return prepared

    @property
    def _statement_factory(self) -> StatementFactory:
        config = self._config
        options = StatementOptions(
            config.result_set_type, config.result_set_concurrency, config.result_set_holdability
        )
        return StatementFactory(options, config.configure_statement)

    def _context(self, sql: str) -> ExecutionContext:
        return ExecutionContext(self._resources, self._statement_factory, sql)

    def _query_command(self, sql: str, params: "StatementParameters", max_rows: int = 0) -> AbstractQueryCommand:
        args = self._normalize_parameters(params)
        if args is None:
            return QueryCommand(self._resources, self._statement_factory, sql, self._config.row_factory, max_rows)
        prepared = self._prepare(sql, args)
        return PreparedQueryCommand(
            self._resources, self._statement_factory, prepared.sql, prepared.params, self._config.row_factory, max_rows
        )

    def _autocommit(self, connection: "Optional[ConnectionProtocol]") -> None:
        if connection is not None and self._config.autocommit and self._transaction_depth == 0:
            connection.commit()

    # Queries

    def query(
        self,
        sql: str,
        params: "Union[StatementParameters, Callable[[ResultCursor], Any]]" = None,
        callback: "Optional[Callable[[ResultCursor], Any]]" = None,
    ) -> Any:
        """Run a query and pass its :class:`~sqlfacade.driver.cursor.ResultCursor` to ``callback``.

        The callback may be given in place of ``params``: ``sql.query(text, callback)``.
        The cursor is closed once the callback returns.

        Returns:
            Whatever the callback returned.
        """
        params, callback = _split_callback(params, callback)
        with self._query_command(sql, params).execute() as results:
            return callback(results)

    def each_row(
        self,
        sql: str,
        params: "Union[StatementParameters, Callable[[Any], Any]]" = None,
        callback: "Optional[Callable[[Any], Any]]" = None,
        *,
        offset: int = 0,
        max_rows: int = 0,
        meta_callback: "Optional[Callable[[Sequence[ColumnDescription]], Any]]" = None,
    ) -> None:
        """Call ``callback`` once per row.

        Args:
            sql: Query text.
            params: Query parameters, None for a plain statement.
            callback: Receives each row.
            offset: 1-based row to start at.
            max_rows: Maximum number of rows to visit, 0 for all.
            meta_callback: Receives ``cursor.description`` before the first row.
        """
        params, callback = _split_callback(params, callback)
        with self._query_command(sql, params, max_rows).execute() as results:
            if meta_callback is not None:
                meta_callback(results.description)
            if not results.move_to(offset, self._config.result_set_type.is_scrollable):
                return
            for row in results:
                callback(row)

    def rows(
        self,
        sql: str,
        params: "StatementParameters" = None,
        *,
        offset: int = 0,
        max_rows: int = 0,
        meta_callback: "Optional[Callable[[Sequence[ColumnDescription]], Any]]" = None,
    ) -> "list[Any]":
        """Fetch the rows of a query.

        Args:
            sql: Query text.
            params: Query parameters, None for a plain statement.
            offset: 1-based row to start at. An offset past the last row gives an empty list.
            max_rows: Maximum number of rows to return, 0 for all.
            meta_callback: Receives ``cursor.description`` before any row is read.

        Returns:
            Rows built by the configured row factory.
        """
        with self._query_command(sql, params, max_rows).execute() as results:
            if meta_callback is not None:
                meta_callback(results.description)
            if not results.move_to(offset, self._config.result_set_type.is_scrollable):
                return []
            return results.fetchall()

    def first_row(self, sql: str, params: "StatementParameters" = None) -> Any:
        rows = self.rows(sql, params, max_rows=1)
        return rows[0] if rows else None

    # Updates

    def execute(self, sql: str, params: "StatementParameters" = None) -> bool:
        """Execute any statement.

        Returns:
            True when the statement produced a result set. ``update_count`` holds the
            driver's row count afterwards.
        """
        args = self._normalize_parameters(params)
        if args is None:
            logger.debug("%s", sql, extra=log_fields(sql))
            with self._context(sql) as context:
                statement = context.acquire(PlainStatementCommand())
                has_result_set = statement.execute(sql)  # type: ignore[call-arg]
                self._update_count = statement.update_count
                self._autocommit(context.connection)
                return has_result_set

        prepared = self._prepare(sql, args)
        logger.debug("%s | %s", prepared.sql, prepared.params, extra=log_fields(*prepared))
        with self._context(prepared.sql) as context:
            statement = context.acquire(PreparedStatementCommand())
            statement.set_parameters(prepared.params)  # type: ignore[attr-defined]
            has_result_set = statement.execute()  # type: ignore[call-arg]
            self._update_count = statement.update_count
            self._autocommit(context.connection)
            return has_result_set

    def execute_update(self, sql: str, params: "StatementParameters" = None) -> int:
        """Execute an INSERT, UPDATE or DELETE.

        Returns:
            The number of affected rows.
        """
        args = self._normalize_parameters(params)
        if args is None:
            logger.debug("%s", sql, extra=log_fields(sql))
            with self._context(sql) as context:
                statement = context.acquire(PlainStatementCommand())
                self._update_count = statement.execute_update(sql)  # type: ignore[call-arg]
                self._autocommit(context.connection)
                return self._update_count

        prepared = self._prepare(sql, args)
        logger.debug("%s | %s", prepared.sql, prepared.params, extra=log_fields(*prepared))
        with self._context(prepared.sql) as context:
            statement = context.acquire(PreparedStatementCommand())
            statement.set_parameters(prepared.params)  # type: ignore[attr-defined]
            self._update_count = statement.execute_update()  # type: ignore[call-arg]
            self._autocommit(context.connection)
            return self._update_count

    def execute_insert(self, sql: str, params: "StatementParameters" = None) -> "list[list[Any]]":
        """Execute an INSERT and return the generated keys.

        Returns:
            The rows of a ``RETURNING`` clause when there is one, otherwise
            ``[[lastrowid]]`` when the driver reports it, otherwise an empty list.
        """
        args = self._normalize_parameters(params)
        if args is None:
            logger.debug("%s", sql, extra=log_fields(sql))
            with self._context(sql) as context:
                statement = context.acquire(PlainStatementCommand())
                self._update_count = statement.execute_update(sql)  # type: ignore[call-arg]
                keys = statement.generated_keys()
                self._autocommit(context.connection)
                return keys

        prepared = self._prepare(sql, args)
        logger.debug("%s | %s", prepared.sql, prepared.params, extra=log_fields(*prepared))
        with self._context(prepared.sql) as context:
            statement = context.acquire(PreparedStatementCommand(return_generated_keys=True))
            statement.set_parameters(prepared.params)  # type: ignore[attr-defined]
            self._update_count = statement.execute_update()  # type: ignore[call-arg]
            keys = statement.generated_keys()
            self._autocommit(context.connection)
            return keys

    def call(
        self,
        sql: str,
        params: "Union[StatementParameters, Callable[..., Any]]" = None,
        callback: "Optional[Callable[..., Any]]" = None,
    ) -> int:
        """Call a stored procedure, e.g. ``{call add_person(?, ?)}``.

        OUT parameters are declared with :func:`~sqlfacade.parameters.out_param` and
        friends. When ``callback`` is given it receives the OUT values as positional
        arguments, in parameter order; result set OUT values arrive as
        :class:`~sqlfacade.driver.cursor.ResultCursor` objects that are closed once the
        callback returns.

        Returns:
            The driver's row count.
        """
        if callback is None and callable(params) and not is_mapping(params):
            params, callback = None, params
        args = self._normalize_parameters(params) or []  # type: ignore[arg-type]
        prepared = self._prepare(sql, args, nullify=False)
        logger.debug("%s | %s", prepared.sql, prepared.params, extra=log_fields(*prepared))
        with self._context(prepared.sql) as context:
            statement = context.acquire(CallableStatementCommand())
            statement.set_parameters(prepared.params)  # type: ignore[attr-defined]
            statement.execute()  # type: ignore[call-arg]
            self._update_count = statement.update_count
            if callback is not None:
                self._deliver_out_parameters(statement, callback)
            self._autocommit(context.connection)
            return self._update_count

    def _deliver_out_parameters(self, statement: "Statement", callback: "Callable[..., Any]") -> None:
        values: list[Any] = []
        cursors: list[ResultCursor] = []
        for marker, value in statement.output_parameters():  # type: ignore[attr-defined]
            if isinstance(marker, ResultSetOutParameter) and value is not None and hasattr(value, "fetchone"):
                value = ResultCursor(value, self._config.row_factory, owns_cursor=True)
                cursors.append(value)
            values.append(value)
        try:
            callback(*values)
        finally:
            for cursor in cursors:
                cursor.close()

    # Batches

    @contextmanager
    def batch(
        self, sql: "Optional[str]" = None, batch_size: int = 0
    ) -> "Iterator[Union[BatchingStatementWrapper, BatchingPreparedStatementWrapper]]":
        """Collect statements and run them as a batch.

        Without ``sql`` the wrapper takes complete SQL texts. With ``sql`` it takes one
        parameter set per unit for that statement; named placeholders are allowed. Units
        are flushed every ``batch_size`` units (default from the configuration, 0 for
        no automatic flushing) and once more when the block ends.

        Yields:
            The batching wrapper.
        """
        batch_size = batch_size or self._config.batch_size
        saved_within_batch = self._within_batch
        factory = self._statement_factory
        connection = None
        wrapper: Optional[Union[BatchingStatementWrapper, BatchingPreparedStatementWrapper]] = None
        try:
            self._within_batch = True
            connection = self._resources.acquire_connection()
            if sql is None:
                statement = factory.creator(PlainStatementCommand(), "")(connection)
                wrapper = BatchingStatementWrapper(statement, batch_size)  # type: ignore[arg-type]
            else:
                scan = self.resolve_named_query(sql)
                final_sql = scan.sql if scan is not None else sql
                if self._config.parameter_style is not ParameterStyle.QMARK:
                    final_sql = convert_positional_style(final_sql, self._config.parameter_style)
                command = PreparedStatementCommand()
                statement = self._resources.acquire_statement(
                    connection, StatementKey(final_sql, command), factory.creator(command, final_sql)
                )
                wrapper = BatchingPreparedStatementWrapper(
                    statement,  # type: ignore[arg-type]
                    scan.plan if scan is not None else None,
                    batch_size,
                    executemany=self._config.batch_executemany,
                )
            yield wrapper
            if wrapper.pending:
                wrapper.execute_batch()
            self._autocommit(connection)
        except Exception as exc:
            logger.warning(
                "Error during batch execution of %r with message: %s", sql, exc, extra=log_fields(sql, error=exc)
            )
            raise
        finally:
            if wrapper is not None:
                if sql is None:
                    self._resources.close_statement(wrapper.statement)
                else:
                    self._resources.release_statement(wrapper.statement)
            self._resources.release_connection(connection)
            self._within_batch = saved_within_batch

    def with_batch(
        self,
        callback: "Callable[[Any], Any]",
        *,
        sql: "Optional[str]" = None,
        batch_size: int = 0,
    ) -> "list[int]":
        """Run ``callback`` with a batching wrapper and flush whatever it left pending.

        Example::

            counts = sql.with_batch(
                lambda ps: [ps.add_batch(name) for name in names],
                sql="insert into person (name) values (?)",
                batch_size=100,
            )

        Returns:
            One update count per unit added since the last explicit ``execute_batch``.
        """
        with self.batch(sql, batch_size) as wrapper:
            callback(wrapper)
            return wrapper.execute_batch()

    # Scopes

    @contextmanager
    def transaction(self) -> "Iterator[ConnectionProtocol]":
        """Run the block in one transaction on a held connection.

        Commits when the block succeeds, rolls back and re-raises otherwise. Driver
        autocommit is switched off for the block and restored afterwards.

        Yields:
            The transaction's connection.
        """
        with self._resources.connection_scope() as connection:
            saved_autocommit = connection.autocommit if has_autocommit(connection) else None  # type: ignore[attr-defined]
            if saved_autocommit is True:
                connection.autocommit = False  # type: ignore[attr-defined]
            self._transaction_depth += 1
            try:
                yield connection
                connection.commit()
            except BaseException as exc:
                logger.info("Rolling back due to: %s", exc, extra=log_fields(error=exc))
                connection.rollback()
                raise
            finally:
                self._transaction_depth -= 1
                if saved_autocommit is True:
                    connection.autocommit = saved_autocommit  # type: ignore[attr-defined]

    def with_transaction(self, callback: "Callable[..., Any]") -> Any:
        """Run ``callback`` inside :meth:`transaction`.

        ``callback`` is called with the connection when it takes one argument.
        """
        with self.transaction() as connection:
            return _call_possibly_with_connection(callback, connection)

    @contextmanager
    def connection_scope(self) -> "Iterator[ConnectionProtocol]":
        """Use one connection for every call made inside the block."""
        with self._resources.connection_scope() as connection:
            yield connection

    def cache_connection(self, callback: "Callable[..., Any]") -> Any:
        with self.connection_scope() as connection:
            return _call_possibly_with_connection(callback, connection)

    @contextmanager
    def statement_cache_scope(self) -> "Iterator[ConnectionProtocol]":
        """Cache every statement created inside the block; they are closed when it ends."""
        with self._resources.statement_cache_scope() as connection:
            yield connection

    def with_statement_cache(self, callback: "Callable[..., Any]") -> Any:
        with self.statement_cache_scope() as connection:
            return _call_possibly_with_connection(callback, connection)

    def commit(self) -> None:
        """Commit the held connection.

        Without a caller-supplied connection or an active connection scope there is
        nothing to commit; the call is logged and ignored.
        """
        connection = self._resources.held_connection
        if connection is None:
            logger.warning(
                "Commit operation not supported when using a data source unless using "
                "with_transaction or cache_connection - attempt to commit ignored"
            )
            return
        try:
            connection.commit()
        except Exception as exc:
            logger.warning("Caught exception committing connection: %s", exc)
            raise

    def rollback(self) -> None:
        """Roll back the held connection; logged and ignored when there is none."""
        connection = self._resources.held_connection
        if connection is None:
            logger.warning(
                "Rollback operation not supported when using a data source unless using "
                "with_transaction or cache_connection - attempt to rollback ignored"
            )
            return
        try:
            connection.rollback()
        except Exception as exc:
            logger.warning("Caught exception rolling back connection: %s", exc)
            raise

    def close(self) -> None:
        """Release cached statements and queries and the held data source connection.

        A caller-supplied connection stays open.
        """
        self._named_queries.clear()
        self._resources.close()

    def __enter__(self) -> "Sql":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        source = self._resources.data_source if self._resources.data_source is not None else self._resources.connection
        return f"{type(self).__name__}({source!r})"
