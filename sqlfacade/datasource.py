"""Data source adapter for plain DB-API ``connect`` callables."""

from collections.abc import Callable
from typing import Any

__all__ = ("ConnectionFactory",)


class ConnectionFactory:
    """Hands out a new connection from ``factory(*args, **kwargs)`` on every request.

    Example::

        import sqlite3

        sql = Sql(ConnectionFactory(sqlite3.connect, "app.db"))
    """

    __slots__ = ("args", "factory", "kwargs")

    def __init__(self, factory: "Callable[..., Any]", *args: Any, **kwargs: Any) -> None:
        self.factory = factory
        self.args = args
        self.kwargs = kwargs

    def get_connection(self) -> Any:
        return self.factory(*self.args, **self.kwargs)

    def __repr__(self) -> str:
        name = getattr(self.factory, "__qualname__", repr(self.factory))
        return f"{type(self).__name__}({name})"
