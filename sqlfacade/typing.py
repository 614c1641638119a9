"""Structural types for the collaborators the facade talks to.

Everything here follows PEP 249: a connection hands out cursors, a cursor executes SQL
and fetches rows. Optional DB-API extensions (``scroll``, ``callproc``, ``lastrowid``)
are detected at runtime and are not part of these protocols.
"""

from collections.abc import Callable, Mapping, Sequence
from typing import Any, Optional, Protocol, Union, runtime_checkable

from typing_extensions import TypeAlias

__all__ = (
    "ColumnDescription",
    "ConnectionProtocol",
    "CursorProtocol",
    "DataSourceProtocol",
    "RowFactory",
    "StatementParameters",
)


ColumnDescription: TypeAlias = "Sequence[Any]"
"""One entry of ``cursor.description``: ``(name, type_code, display_size, ...)``."""

StatementParameters: TypeAlias = "Optional[Union[Sequence[Any], Mapping[str, Any]]]"
"""Caller-side parameters: ``None`` for a plain statement, a sequence of arguments, or a
single mapping that stands for a one-element argument list."""


@runtime_checkable
class CursorProtocol(Protocol):
    description: "Optional[Sequence[ColumnDescription]]"
    rowcount: int
    arraysize: int

    def execute(self, operation: str, parameters: Any = ..., /) -> Any: ...

    def executemany(self, operation: str, seq_of_parameters: Any, /) -> Any: ...

    def fetchone(self) -> Any: ...

    def fetchmany(self, size: int = ..., /) -> "Sequence[Any]": ...

    def fetchall(self) -> "Sequence[Any]": ...

    def close(self) -> Any: ...


@runtime_checkable
class ConnectionProtocol(Protocol):
    def cursor(self, *args: Any, **kwargs: Any) -> Any: ...

    def commit(self) -> Any: ...

    def rollback(self) -> Any: ...

    def close(self) -> Any: ...


@runtime_checkable
class DataSourceProtocol(Protocol):
    """Anything that can hand out a fresh (or pooled) connection."""

    def get_connection(self) -> Any: ...


RowFactory: TypeAlias = "Callable[[Sequence[ColumnDescription], Sequence[Any]], Any]"
"""Turns one fetched row into a record, given the cursor description."""
