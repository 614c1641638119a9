"""Per-facade statement cache."""

import threading
from collections.abc import Callable, Hashable
from typing import TYPE_CHECKING, Optional

from mypy_extensions import mypyc_attr

from sqlfacade.exceptions import CacheCloseError
from sqlfacade.utils.logging import get_logger, log_fields

if TYPE_CHECKING:
    from sqlfacade.driver.statement import Statement

__all__ = ("StatementCache",)

logger = get_logger("driver.cache")


@mypyc_attr(allow_interpreted_subclasses=False)
class StatementCache:
    """Holds at most one live statement per key.

    Lookup-or-create runs under one lock so concurrent callers never create two
    statements for the same key. Closing happens outside the lock.
    """

    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        self._entries: dict[Hashable, Statement] = {}
        self._lock = threading.Lock()

    def get_or_create(self, key: Hashable, creator: "Callable[[], Statement]") -> "Statement":
        """Return the statement cached under ``key``, creating it on a miss.

        Args:
            key: Cache key, normally a :class:`~sqlfacade.driver.statement.StatementKey`.
            creator: Called at most once per key to build the statement. A failing
                creator leaves the cache unchanged.

        Returns:
            The cached statement.
        """
        with self._lock:
            statement = self._entries.get(key)
            if statement is None:
                statement = creator()
                self._entries[key] = statement
                logger.debug("Cached statement for %s", key)
            return statement

    def get(self, key: Hashable) -> "Optional[Statement]":
        with self._lock:
            return self._entries.get(key)

    def clear(self) -> "list[CacheCloseError]":
        """Evict and close every cached statement.

        Returns:
            One error per statement that failed to close. Failures are logged, never
            raised, and do not stop the remaining statements from closing.
        """
        with self._lock:
            entries = list(self._entries.items())
            self._entries.clear()

        errors: list[CacheCloseError] = []
        for key, statement in entries:
            try:
                statement.close()
            except Exception as exc:
                error = CacheCloseError(key, exc)
                logger.info("%s", error, extra=log_fields(getattr(key, "sql", None), error=exc))
                errors.append(error)
        return errors

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
