"""Statement handles and the commands that create them.

A statement owns exactly one DB-API cursor for its whole life. Plain statements take
their SQL at execution time, prepared and callable statements are bound to one SQL text
and take positional parameters.
"""

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Final, NamedTuple, Optional, Union

from typing_extensions import TypeAlias

from sqlfacade.config import ResultSetConcurrency, ResultSetHoldability, ResultSetType
from sqlfacade.exceptions import ImproperConfigurationError, ParameterError
from sqlfacade.parameters.types import InParameter, OutParameter
from sqlfacade.utils.type_guards import supports_callproc

if TYPE_CHECKING:
    from sqlfacade.typing import ConnectionProtocol, CursorProtocol

__all__ = (
    "SUCCESS_NO_INFO",
    "CallableStatement",
    "CallableStatementCommand",
    "PlainStatement",
    "PlainStatementCommand",
    "PreparedStatement",
    "PreparedStatementCommand",
    "Statement",
    "StatementCommand",
    "StatementFactory",
    "StatementKey",
    "StatementOptions",
    "appears_like_stored_proc",
    "create_statement",
)

SUCCESS_NO_INFO: Final = -2
"""Update count reported for a batch unit whose count the driver did not return."""

_STORED_PROC_REGEX: Final = re.compile(r"\s*[{]?\s*[?]?\s*[=]?\s*call\b.*", re.IGNORECASE | re.DOTALL)
_PROC_NAME_REGEX: Final = re.compile(r"\bcall\s+([\w.$\"]+)", re.IGNORECASE)


def appears_like_stored_proc(sql: str) -> bool:
    """Check for ``call proc(...)``, ``{call proc(?)}`` or ``{? = call proc(?)}``."""
    return _STORED_PROC_REGEX.match(sql) is not None


class StatementOptions(NamedTuple):
    """Result set settings requested for new statements."""

    result_set_type: ResultSetType = ResultSetType.FORWARD_ONLY
    result_set_concurrency: ResultSetConcurrency = ResultSetConcurrency.READ_ONLY
    result_set_holdability: ResultSetHoldability = ResultSetHoldability.DEFAULT


class Statement:
    """Base statement handle.

    Attributes a statement configuration hook may tune:

    - ``max_rows``: cap on rows handed out by row-producing calls, 0 for no cap.
    - ``fetch_size``: forwarded to ``cursor.arraysize``.
    - ``cursor``: the raw driver cursor, for driver-specific settings.
    """

    __slots__ = ("_closed", "connection", "cursor", "max_rows", "options", "sql")

    def __init__(
        self, connection: "ConnectionProtocol", cursor: "CursorProtocol", sql: str, options: StatementOptions
    ) -> None:
        self.connection = connection
        self.cursor = cursor
        self.sql = sql
        self.options = options
        self.max_rows = 0
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def fetch_size(self) -> int:
        return int(getattr(self.cursor, "arraysize", 1))

    @fetch_size.setter
    def fetch_size(self, value: int) -> None:
        self.cursor.arraysize = value

    @property
    def update_count(self) -> int:
        return self.cursor.rowcount

    def has_result_set(self) -> bool:
        return self.cursor.description is not None

    def generated_keys(self) -> "list[list[Any]]":
        """Keys produced by the last insert.

        Rows of a ``RETURNING`` clause when the statement produced any, otherwise the
        driver's ``lastrowid``.
        """
        if self.cursor.description is not None:
            return [list(row) for row in self.cursor.fetchall()]
        lastrowid = getattr(self.cursor, "lastrowid", None)
        return [[lastrowid]] if lastrowid is not None else []

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.cursor.close()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(sql={self.sql!r}, closed={self._closed})"


class PlainStatement(Statement):
    """Executes SQL text without parameters; batches are lists of SQL texts."""

    __slots__ = ("_batch",)

    def __init__(
        self, connection: "ConnectionProtocol", cursor: "CursorProtocol", sql: str, options: StatementOptions
    ) -> None:
        super().__init__(connection, cursor, sql, options)
        self._batch: list[str] = []

    def execute(self, sql: str) -> bool:
        self.cursor.execute(sql)
        return self.has_result_set()

    def execute_query(self, sql: str) -> "CursorProtocol":
        self.cursor.execute(sql)
        return self.cursor

    def execute_update(self, sql: str) -> int:
        self.cursor.execute(sql)
        return self.cursor.rowcount

    def add_batch(self, sql: str) -> None:
        self._batch.append(sql)

    def clear_batch(self) -> None:
        self._batch.clear()

    def execute_batch(self) -> "list[int]":
        batch, self._batch = self._batch, []
        counts: list[int] = []
        for sql in batch:
            self.cursor.execute(sql)
            counts.append(self.cursor.rowcount)
        return counts


class PreparedStatement(Statement):
    """SQL text with positional markers, bound to fresh parameters for every execution."""

    __slots__ = ("_batch", "parameters", "return_generated_keys")

    def __init__(
        self,
        connection: "ConnectionProtocol",
        cursor: "CursorProtocol",
        sql: str,
        options: StatementOptions,
        return_generated_keys: bool = False,
    ) -> None:
        super().__init__(connection, cursor, sql, options)
        self.return_generated_keys = return_generated_keys
        self.parameters: tuple[Any, ...] = ()
        self._batch: list[tuple[Any, ...]] = []

    def set_parameters(self, values: "Sequence[Any]") -> None:
        """Bind positional values; typed IN parameters are unwrapped to their value."""
        bound: list[Any] = []
        for value in values:
            if isinstance(value, OutParameter) and not isinstance(value, InParameter):
                msg = "Cannot register out parameter."
                raise ParameterError(msg, self.sql)
            bound.append(value.value if isinstance(value, InParameter) else value)
        self.parameters = tuple(bound)

    def execute(self) -> bool:
        self.cursor.execute(self.sql, self.parameters)
        return self.has_result_set()

    def execute_query(self) -> "CursorProtocol":
        self.cursor.execute(self.sql, self.parameters)
        return self.cursor

    def execute_update(self) -> int:
        self.cursor.execute(self.sql, self.parameters)
        return self.cursor.rowcount

    def add_batch(self) -> None:
        self._batch.append(self.parameters)

    def clear_batch(self) -> None:
        self._batch.clear()

    def execute_batch(self, executemany: bool = False) -> "list[int]":
        """Run every pending parameter set and report one count per set, in order."""
        batch, self._batch = self._batch, []
        if not batch:
            return []
        if executemany:
            self.cursor.executemany(self.sql, batch)
            return [SUCCESS_NO_INFO] * len(batch)
        counts: list[int] = []
        for parameters in batch:
            self.cursor.execute(self.sql, parameters)
            counts.append(self.cursor.rowcount)
        return counts


class CallableStatement(PreparedStatement):
    """Stored procedure invocation through the DB-API ``callproc`` extension."""

    __slots__ = ("_raw_parameters", "out_values")

    def __init__(
        self, connection: "ConnectionProtocol", cursor: "CursorProtocol", sql: str, options: StatementOptions
    ) -> None:
        super().__init__(connection, cursor, sql, options)
        self._raw_parameters: tuple[Any, ...] = ()
        self.out_values: list[Any] = []

    @property
    def procedure_name(self) -> str:
        match = _PROC_NAME_REGEX.search(self.sql)
        if match is None:
            msg = f"Cannot determine procedure name from {self.sql!r}"
            raise ImproperConfigurationError(msg)
        return match.group(1)

    def set_parameters(self, values: "Sequence[Any]") -> None:
        self._raw_parameters = tuple(values)
        self.parameters = tuple(
            value.value if isinstance(value, InParameter) else None if isinstance(value, OutParameter) else value
            for value in values
        )

    def _call(self) -> None:
        if not supports_callproc(self.cursor):
            msg = f"Cursor {type(self.cursor).__name__} does not support callproc"
            raise ImproperConfigurationError(msg)
        returned = self.cursor.callproc(self.procedure_name, list(self.parameters))  # type: ignore[attr-defined]
        self.out_values = list(returned) if returned is not None else list(self.parameters)

    def execute(self) -> bool:
        self._call()
        return self.has_result_set()

    def execute_query(self) -> "CursorProtocol":
        self._call()
        return self.cursor

    def execute_update(self) -> int:
        self._call()
        return self.cursor.rowcount

    def output_parameters(self) -> "list[tuple[OutParameter, Any]]":
        """OUT and IN/OUT markers paired with the values the call returned, in order."""
        return [
            (marker, self.out_values[index] if index < len(self.out_values) else None)
            for index, marker in enumerate(self._raw_parameters)
            if isinstance(marker, OutParameter)
        ]


@dataclass(frozen=True)
class PlainStatementCommand:
    pass


@dataclass(frozen=True)
class PreparedStatementCommand:
    return_generated_keys: bool = False


@dataclass(frozen=True)
class CallableStatementCommand:
    pass


StatementCommand: TypeAlias = Union[PlainStatementCommand, PreparedStatementCommand, CallableStatementCommand]


class StatementKey(NamedTuple):
    """Statement cache key: final SQL text qualified by how the statement was created."""

    sql: str
    command: StatementCommand


def create_statement(
    command: StatementCommand,
    connection: "ConnectionProtocol",
    sql: str,
    options: "Optional[StatementOptions]" = None,
) -> Statement:
    """Create a new statement handle for ``command`` on ``connection``."""
    options = options or StatementOptions()
    cursor = connection.cursor()
    match command:
        case PlainStatementCommand():
            return PlainStatement(connection, cursor, sql, options)
        case PreparedStatementCommand(return_generated_keys=True):
            return PreparedStatement(connection, cursor, sql, options, return_generated_keys=True)
        case PreparedStatementCommand() if appears_like_stored_proc(sql):
            return CallableStatement(connection, cursor, sql, options)
        case PreparedStatementCommand():
            return PreparedStatement(connection, cursor, sql, options)
        case CallableStatementCommand():
            return CallableStatement(connection, cursor, sql, options)
    cursor.close()
    msg = f"Unknown statement command {command!r}"
    raise ImproperConfigurationError(msg)


class StatementFactory:
    """Creates statements with the facade's result set options and configuration hook.

    The hook runs once per created statement. Cached statements are handed out again
    without running it a second time.
    """

    __slots__ = ("configure", "options")

    def __init__(
        self,
        options: "Optional[StatementOptions]" = None,
        configure: "Optional[Callable[[Statement], Any]]" = None,
    ) -> None:
        self.options = options or StatementOptions()
        self.configure = configure

    def creator(self, command: StatementCommand, sql: str) -> "Callable[[ConnectionProtocol], Statement]":
        def create(connection: "ConnectionProtocol") -> Statement:
            statement = create_statement(command, connection, sql, self.options)
            if self.configure is not None:
                try:
                    self.configure(statement)
                except Exception:
                    statement.close()
                    raise
            return statement

        return create
