from typing import Any, Optional

__all__ = (
    "BindError",
    "CacheCloseError",
    "ImproperConfigurationError",
    "IndexOutOfRangeError",
    "ParameterError",
    "PropertyNotFoundError",
    "SQLFacadeError",
    "ScanError",
)


class SQLFacadeError(Exception):
    """Base exception class from which all sqlfacade exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``SQLFacadeError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class ImproperConfigurationError(SQLFacadeError):
    """Improper Configuration error.

    Raised when the facade is built or reconfigured with options it cannot honour.
    """


class ScanError(SQLFacadeError):
    """Placeholder scanning failed for the given SQL text.

    Raised before any database interaction takes place.
    """

    sql: Optional[str]

    def __init__(self, message: Optional[str] = None, sql: Optional[str] = None) -> None:
        if message is None:
            message = "Failed to process query."
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class ParameterError(SQLFacadeError):
    """Base class for parameter-related errors."""

    sql: Optional[str]

    def __init__(self, message: str, sql: Optional[str] = None) -> None:
        """Initialize with optional SQL context."""
        detail_message = message
        if sql:
            detail_message = f"{message}\nSQL: {sql}"
        super().__init__(detail=detail_message)
        self.sql = sql


class BindError(ParameterError):
    """Caller arguments are inconsistent with the placeholder binding plan."""


class IndexOutOfRangeError(BindError, IndexError):
    """A placeholder refers to an argument slot the caller did not supply."""

    def __init__(self, index: int, size: int, sql: Optional[str] = None) -> None:
        super().__init__(f"Invalid index {index} should be in range 1..{size}", sql)
        self.index = index
        self.size = size


class PropertyNotFoundError(BindError, LookupError):
    """A named placeholder refers to a property the argument does not have."""

    def __init__(self, name: str, argument: Any, sql: Optional[str] = None) -> None:
        super().__init__(f"No such property: {name} for {type(argument).__name__}", sql)
        self.name = name


class CacheCloseError(SQLFacadeError):
    """Closing a cached statement failed during a cache clear.

    Instances are logged and collected, never raised.
    """

    def __init__(self, key: Any, cause: BaseException) -> None:
        super().__init__(f"Failed to close statement for {key!r}. Already closed? {cause}")
        self.key = key
        self.cause = cause
