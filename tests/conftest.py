"""In-memory DB-API stand-ins shared by the unit tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import pytest


class FakeDatabaseError(Exception):
    """Stands in for a driver's ``Error`` class."""


class FakeCursor:
    """Cursor whose results come from the owning connection's script."""

    def __init__(self, connection: FakeConnection) -> None:
        self.connection = connection
        self.executed: list[tuple[str, tuple[Any, ...]]] = []
        self.executemany_calls: list[tuple[str, list[Any]]] = []
        self.description: list[tuple[Any, ...]] | None = None
        self.rowcount = -1
        self.arraysize = 1
        self.lastrowid: int | None = None
        self.closed = False
        self.close_error: Exception | None = None
        self._rows: list[tuple[Any, ...]] = []
        self._position = 0

    def _check_open(self) -> None:
        if self.closed:
            msg = "Cannot operate on a closed cursor."
            raise FakeDatabaseError(msg)

    def execute(self, operation: str, parameters: Sequence[Any] = ()) -> FakeCursor:
        self._check_open()
        self.executed.append((operation, tuple(parameters)))
        self.connection.log.append((operation, tuple(parameters)))
        if operation in self.connection.failures:
            raise FakeDatabaseError(self.connection.failures[operation])
        self._position = 0
        if operation in self.connection.results:
            columns, rows = self.connection.results[operation]
            self.description = [(name, None, None, None, None, None, None) for name in columns]
            self._rows = list(rows)
            self.rowcount = -1
        else:
            self.description = None
            self._rows = []
            self.rowcount = self.connection.rowcount
            self.connection.last_id += 1
            self.lastrowid = self.connection.last_id
        return self

    def executemany(self, operation: str, seq_of_parameters: Sequence[Sequence[Any]]) -> FakeCursor:
        self._check_open()
        batch = [tuple(parameters) for parameters in seq_of_parameters]
        self.executemany_calls.append((operation, batch))
        if operation in self.connection.failures:
            raise FakeDatabaseError(self.connection.failures[operation])
        self.description = None
        self.rowcount = len(batch)
        return self

    def fetchone(self) -> tuple[Any, ...] | None:
        self._check_open()
        if self._position >= len(self._rows):
            return None
        row = self._rows[self._position]
        self._position += 1
        return row

    def fetchmany(self, size: int | None = None) -> list[tuple[Any, ...]]:
        self._check_open()
        size = size or self.arraysize
        rows = self._rows[self._position : self._position + size]
        self._position += len(rows)
        return rows

    def fetchall(self) -> list[tuple[Any, ...]]:
        self._check_open()
        rows = self._rows[self._position :]
        self._position = len(self._rows)
        return rows

    def close(self) -> None:
        if self.close_error is not None:
            raise self.close_error
        self.closed = True


class ScrollableFakeCursor(FakeCursor):
    """Cursor implementing the optional DB-API ``scroll`` extension."""

    def __init__(self, connection: FakeConnection) -> None:
        super().__init__(connection)
        self.scrolls: list[tuple[int, str]] = []

    def scroll(self, value: int, mode: str = "relative") -> None:
        self.scrolls.append((value, mode))
        target = value if mode == "absolute" else self._position + value
        if target < 0 or target > len(self._rows):
            msg = "scroll out of range"
            raise IndexError(msg)
        self._position = target


class CallableFakeCursor(FakeCursor):
    """Cursor implementing ``callproc``; OUT slots (None) come back as ``"out<index>"``."""

    def __init__(self, connection: FakeConnection) -> None:
        super().__init__(connection)
        self.calls: list[tuple[str, list[Any]]] = []

    def callproc(self, procname: str, parameters: Sequence[Any] = ()) -> list[Any]:
        self._check_open()
        self.calls.append((procname, list(parameters)))
        self.description = None
        self.rowcount = self.connection.rowcount
        return [f"out{index}" if value is None else value for index, value in enumerate(parameters)]


class FakeConnection:
    def __init__(
        self,
        results: dict[str, tuple[list[str], list[tuple[Any, ...]]]] | None = None,
        failures: dict[str, str] | None = None,
        cursor_class: type[FakeCursor] = FakeCursor,
        rowcount: int = 1,
    ) -> None:
        self.results = results if results is not None else {}
        self.failures = failures if failures is not None else {}
        self.cursor_class = cursor_class
        self.rowcount = rowcount
        self.cursors: list[FakeCursor] = []
        self.log: list[tuple[str, tuple[Any, ...]]] = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False
        self.last_id = 0

    def cursor(self) -> FakeCursor:
        if self.closed:
            msg = "Cannot operate on a closed connection."
            raise FakeDatabaseError(msg)
        cursor = self.cursor_class(self)
        self.cursors.append(cursor)
        return cursor

    def commit(self) -> None:
        self.commits += 1

    def rollback(self) -> None:
        self.rollbacks += 1

    def close(self) -> None:
        self.closed = True


class FakeDataSource:
    """Hands out a new :class:`FakeConnection` per request, all sharing one script."""

    def __init__(self, **connection_kwargs: Any) -> None:
        self.connection_kwargs = connection_kwargs
        self.connections: list[FakeConnection] = []

    def get_connection(self) -> FakeConnection:
        connection = FakeConnection(**self.connection_kwargs)
        self.connections.append(connection)
        return connection

    @property
    def log(self) -> list[tuple[str, tuple[Any, ...]]]:
        return [entry for connection in self.connections for entry in connection.log]


PEOPLE_SQL = "select id, name from person"
PEOPLE = [(1, "Ada"), (2, "Brian"), (3, "Carla"), (4, "Dennis"), (5, "Edsger")]


@pytest.fixture
def database_error() -> type[FakeDatabaseError]:
    return FakeDatabaseError


@pytest.fixture
def data_source() -> FakeDataSource:
    return FakeDataSource(results={PEOPLE_SQL: (["id", "name"], PEOPLE)})


@pytest.fixture
def data_source_factory() -> Callable[..., FakeDataSource]:
    return FakeDataSource


@pytest.fixture
def connection_factory() -> Callable[..., FakeConnection]:
    return FakeConnection


@pytest.fixture
def cursor_classes() -> dict[str, type[FakeCursor]]:
    return {"plain": FakeCursor, "scrollable": ScrollableFakeCursor, "callable": CallableFakeCursor}


@pytest.fixture
def people() -> list[tuple[int, str]]:
    return list(PEOPLE)


@pytest.fixture
def people_sql() -> str:
    return PEOPLE_SQL
