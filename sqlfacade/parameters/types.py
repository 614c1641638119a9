"""Core parameter types.

Binding-plan records produced by the scanner, the positional styles the final SQL can
be emitted in, and the typed IN/OUT wrappers used for stored procedure calls.
"""

from enum import Enum, IntEnum
from typing import Any, Final, NamedTuple, Optional

from typing_extensions import TypeAlias

__all__ = (
    "THIS",
    "BindingPlan",
    "InOutParameter",
    "InParameter",
    "OutParameter",
    "ParameterStyle",
    "PlaceholderBinding",
    "ResultSetOutParameter",
    "ScanResult",
    "SqlType",
    "SqlWithParams",
    "in_param",
    "inout_param",
    "out_param",
    "result_set_param",
)

THIS: Final = "<this>"
"""Property path meaning "bind the whole argument"."""


class PlaceholderBinding(NamedTuple):
    """Where the value of one rewritten ``?`` comes from."""

    argument_index: int
    property_path: str

    @property
    def binds_whole_argument(self) -> bool:
        return self.property_path == THIS


BindingPlan: TypeAlias = "tuple[PlaceholderBinding, ...]"


class ScanResult(NamedTuple):
    """Rewritten SQL plus the binding plan for its positional markers."""

    sql: str
    plan: BindingPlan


class SqlWithParams(NamedTuple):
    """SQL text paired with the positional parameters it should run with."""

    sql: str
    params: "list[Any]"


class ParameterStyle(str, Enum):
    """Positional marker style of the SQL handed to the driver."""

    QMARK = "qmark"
    NUMERIC = "numeric"
    POSITIONAL_COLON = "positional_colon"
    POSITIONAL_PYFORMAT = "pyformat_positional"

    def __str__(self) -> str:
        return self.value


class SqlType(IntEnum):
    """Type codes for typed procedure parameters (JDBC ``java.sql.Types`` values)."""

    ARRAY = 2003
    BIGINT = -5
    BINARY = -2
    BIT = -7
    BLOB = 2004
    BOOLEAN = 16
    CHAR = 1
    CLOB = 2005
    DATE = 91
    DECIMAL = 3
    DOUBLE = 8
    FLOAT = 6
    INTEGER = 4
    LONGVARBINARY = -4
    LONGVARCHAR = -1
    NULL = 0
    NUMERIC = 2
    OTHER = 1111
    REAL = 7
    REF_CURSOR = 2012
    SMALLINT = 5
    STRUCT = 2002
    TIME = 92
    TIMESTAMP = 93
    TINYINT = -6
    VARBINARY = -3
    VARCHAR = 12


class _TypedParameter:
    __slots__ = ("type",)

    def __init__(self, type: SqlType) -> None:  # noqa: A002
        self.type = type


class InParameter(_TypedParameter):
    """A value bound with an explicit type code."""

    __slots__ = ("value",)

    def __init__(self, type: SqlType, value: Any) -> None:  # noqa: A002
        super().__init__(type)
        self.value = value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type={self.type!r}, value={self.value!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InParameter):
            return NotImplemented
        return type(self) is type(other) and self.type == other.type and self.value == other.value

    def __hash__(self) -> int:
        return hash((type(self), self.type, repr(self.value)))


class OutParameter(_TypedParameter):
    """Marks a procedure argument whose value comes back from the call."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(type={self.type!r})"


class InOutParameter(InParameter, OutParameter):
    """Sent in with a value and read back after the call."""

    __slots__ = ()


class ResultSetOutParameter(OutParameter):
    """An OUT parameter that yields a result set (ref cursor)."""

    __slots__ = ()


def in_param(type: SqlType, value: Any) -> InParameter:  # noqa: A002
    return InParameter(type, value)


def out_param(type: SqlType) -> OutParameter:  # noqa: A002
    return OutParameter(type)


def inout_param(param: InParameter) -> InOutParameter:
    """Turn an IN parameter into an IN/OUT parameter with the same type and value."""
    return InOutParameter(param.type, param.value)


def result_set_param(type: Optional[SqlType] = None) -> ResultSetOutParameter:  # noqa: A002
    return ResultSetOutParameter(type if type is not None else SqlType.REF_CURSOR)
