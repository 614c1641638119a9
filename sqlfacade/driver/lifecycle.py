"""Connection and statement lifecycle.

Decides which connection a call runs on, whether statements come from the cache, and
what gets closed once the call is done.
"""

import threading
from collections.abc import Callable, Hashable, Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Optional

from mypy_extensions import mypyc_attr

from sqlfacade.driver.cache import StatementCache
from sqlfacade.exceptions import ImproperConfigurationError
from sqlfacade.utils.logging import get_logger

if TYPE_CHECKING:
    from sqlfacade.driver.statement import Statement
    from sqlfacade.exceptions import CacheCloseError
    from sqlfacade.typing import ConnectionProtocol, DataSourceProtocol

__all__ = ("ResourceManager",)

logger = get_logger("driver.lifecycle")


def _close_quietly(resource: Any, kind: str) -> None:
    try:
        resource.close()
    except Exception as exc:
        logger.debug("Caught exception closing %s: %s - continuing", kind, exc)


@mypyc_attr(allow_interpreted_subclasses=False)
class ResourceManager:
    """Connection acquisition, statement caching and resource release for one facade.

    Either ``data_source`` or ``connection`` must be given. A caller-supplied
    connection is used for every call and is never closed here. Connections taken
    from the data source are closed after each call, unless a caching scope holds
    on to one.

    Args:
        data_source: Object whose ``get_connection()`` hands out connections.
        connection: Caller-supplied connection.
        cache_statements: Start with statement caching on.
    """

    __slots__ = (
        "_cache_statements",
        "_held_connection",
        "_held_lock",
        "_scope_lock",
        "cache_connection",
        "connection",
        "data_source",
        "statement_cache",
    )

    def __init__(
        self,
        data_source: "Optional[DataSourceProtocol]" = None,
        connection: "Optional[ConnectionProtocol]" = None,
        cache_statements: bool = False,
    ) -> None:
        if data_source is None and connection is None:
            msg = "A data source or a connection is required"
            raise ImproperConfigurationError(msg)
        self.data_source = data_source
        self.connection = connection
        self.cache_connection = False
        self.statement_cache = StatementCache()
        self._cache_statements = cache_statements
        self._held_connection: Optional[ConnectionProtocol] = None
        self._held_lock = threading.Lock()
        self._scope_lock = threading.RLock()

    @property
    def cache_statements(self) -> bool:
        return self._cache_statements

    @cache_statements.setter
    def cache_statements(self, value: bool) -> None:
        """Toggle statement caching; turning it off closes every cached statement."""
        self._cache_statements = value
        if not value:
            self.clear_statement_cache()
            if not self.cache_connection:
                self._release_held_connection()

    @property
    def caching(self) -> bool:
        return self.cache_connection or self._cache_statements

    @property
    def held_connection(self) -> "Optional[ConnectionProtocol]":
        """The connection calls currently share, if any."""
        return self.connection if self.connection is not None else self._held_connection

    def acquire_connection(self) -> "ConnectionProtocol":
        """Connection for the next call.

        Returns:
            The caller-supplied connection, the connection held by an active caching
            scope, or a fresh data source connection (held when caching is active).
        """
        if self.connection is not None:
            return self.connection
        with self._held_lock:
            if self.caching and self._held_connection is not None:
                return self._held_connection

        connection = self.data_source.get_connection()  # type: ignore[union-attr]
        if self.caching:
            with self._held_lock:
                if self._held_connection is None:
                    self._held_connection = connection
                elif self._held_connection is not connection:
                    _close_quietly(connection, "connection")
                    return self._held_connection
        return connection

    def acquire_statement(
        self, connection: "ConnectionProtocol", key: Hashable, creator: "Callable[[ConnectionProtocol], Statement]"
    ) -> "Statement":
        """Statement for ``key`` on ``connection``.

        With statement caching on, ``creator`` runs only for keys not cached yet and the
        cached handle is returned unmodified. Otherwise a new statement is created.
        """
        if self._cache_statements:
            return self.statement_cache.get_or_create(key, lambda: creator(connection))
        return creator(connection)

    def release(
        self,
        connection: "Optional[ConnectionProtocol]",
        statement: "Optional[Statement]" = None,
        cursor: Any = None,
    ) -> None:
        """Close what the finished call no longer needs.

        The result cursor is always closed. The statement survives while statement
        caching is on, the connection while any caching scope holds it or when the
        caller supplied it.
        """
        if cursor is not None:
            _close_quietly(cursor, "result cursor")
        if self._cache_statements:
            return
        if statement is not None:
            _close_quietly(statement, "statement")
        self.release_connection(connection)

    def release_statement(self, statement: "Optional[Statement]") -> None:
        if self._cache_statements or statement is None:
            return
        _close_quietly(statement, "statement")

    def close_statement(self, statement: "Statement") -> None:
        """Close a statement that never went through the statement cache."""
        _close_quietly(statement, "statement")

    def release_connection(self, connection: "Optional[ConnectionProtocol]") -> None:
        if connection is None or self.caching or connection is self.connection:
            return
        with self._held_lock:
            if connection is self._held_connection:
                self._held_connection = None
        _close_quietly(connection, "connection")

    def clear_statement_cache(self) -> "list[CacheCloseError]":
        return self.statement_cache.clear()

    def _release_held_connection(self) -> None:
        with self._held_lock:
            connection, self._held_connection = self._held_connection, None
        if connection is not None:
            _close_quietly(connection, "connection")

    @contextmanager
    def connection_scope(self) -> "Iterator[ConnectionProtocol]":
        """Hold one connection for every call made inside the block.

        Yields:
            The held connection.
        """
        with self._scope_lock:
            saved = self.cache_connection
            self.cache_connection = True
            try:
                yield self.acquire_connection()
            finally:
                self.cache_connection = saved
                if not self.caching:
                    self._release_held_connection()

    @contextmanager
    def statement_cache_scope(self) -> "Iterator[ConnectionProtocol]":
        """Cache every statement created inside the block.

        Leaving the outermost scope closes the cached statements and the held
        connection unless caching stays enabled.

        Yields:
            The connection the cached statements are created on.
        """
        with self._scope_lock:
            saved = self._cache_statements
            self._cache_statements = True
            try:
                yield self.acquire_connection()
            finally:
                self.cache_statements = saved

    def close(self) -> "list[CacheCloseError]":
        """Close cached statements and the held data source connection.

        Returns:
            Failures collected while closing cached statements.
        """
        errors = self.clear_statement_cache()
        self._release_held_connection()
        return errors
