"""Facade configuration."""

from enum import IntEnum
from typing import TYPE_CHECKING, Any, Final, Optional

from sqlfacade.exceptions import ImproperConfigurationError
from sqlfacade.parameters.types import ParameterStyle

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlfacade.driver.statement import Statement
    from sqlfacade.typing import RowFactory

__all__ = ("ResultSetConcurrency", "ResultSetHoldability", "ResultSetType", "SqlConfig")


class ResultSetType(IntEnum):
    """Cursor movement capabilities requested for row-producing statements."""

    FORWARD_ONLY = 1003
    SCROLL_INSENSITIVE = 1004
    SCROLL_SENSITIVE = 1005

    @property
    def is_scrollable(self) -> bool:
        return self is not ResultSetType.FORWARD_ONLY


class ResultSetConcurrency(IntEnum):
    READ_ONLY = 1007
    UPDATABLE = 1008


class ResultSetHoldability(IntEnum):
    DEFAULT = -1
    HOLD_CURSORS_OVER_COMMIT = 1
    CLOSE_CURSORS_AT_COMMIT = 2


SQL_CONFIG_SLOTS: Final = (
    "autocommit",
    "batch_executemany",
    "batch_size",
    "cache_named_queries",
    "cache_statements",
    "configure_statement",
    "dialect",
    "enable_named_queries",
    "nullify_none_parameters",
    "parameter_style",
    "result_set_concurrency",
    "result_set_holdability",
    "result_set_type",
    "row_factory",
)


class SqlConfig:
    """Options recognised by :class:`~sqlfacade.Sql`.

    Args:
        cache_statements: Keep one statement per distinct SQL text alive for reuse.
        cache_named_queries: Memoize named-placeholder rewrites per SQL text.
        enable_named_queries: Recognise ``:name`` / ``?N.name`` placeholders at all.
        batch_size: Default partition size for batches, 0 for manual flushing only.
        result_set_type: Requested cursor movement; scrollable types use ``cursor.scroll``
            for row offsets when the driver provides it.
        result_set_concurrency: Requested result concurrency, exposed to statement hooks.
        result_set_holdability: Requested cursor holdability, exposed to statement hooks.
        configure_statement: Hook called once for every newly created statement.
        row_factory: Converts ``(description, row)`` into a record. Defaults to
            :meth:`RowResult.from_row <sqlfacade.result.RowResult.from_row>`.
        parameter_style: Positional marker style the driver expects.
        autocommit: Commit after modifying calls made outside a transaction scope.
        nullify_none_parameters: Rewrite ``col = ?`` bound to None into ``col IS NULL``.
        dialect: sqlglot dialect used by the null rewriting mode.
        batch_executemany: Flush prepared batches with one ``executemany`` call. Drivers
            only report an aggregate row count then, so every unit reports
            ``SUCCESS_NO_INFO``.
    """

    __slots__ = SQL_CONFIG_SLOTS

    def __init__(
        self,
        cache_statements: bool = False,
        cache_named_queries: bool = True,
        enable_named_queries: bool = True,
        batch_size: int = 0,
        result_set_type: ResultSetType = ResultSetType.FORWARD_ONLY,
        result_set_concurrency: ResultSetConcurrency = ResultSetConcurrency.READ_ONLY,
        result_set_holdability: ResultSetHoldability = ResultSetHoldability.DEFAULT,
        configure_statement: "Optional[Callable[[Statement], Any]]" = None,
        row_factory: "Optional[RowFactory]" = None,
        parameter_style: ParameterStyle = ParameterStyle.QMARK,
        autocommit: bool = True,
        nullify_none_parameters: bool = False,
        dialect: "Optional[str]" = None,
        batch_executemany: bool = False,
    ) -> None:
        if batch_size < 0:
            msg = f"batch_size must be 0 or positive, got {batch_size}"
            raise ImproperConfigurationError(msg)
        self.cache_statements = cache_statements
        self.cache_named_queries = cache_named_queries
        self.enable_named_queries = enable_named_queries
        self.batch_size = batch_size
        self.result_set_type = ResultSetType(result_set_type)
        self.result_set_concurrency = ResultSetConcurrency(result_set_concurrency)
        self.result_set_holdability = ResultSetHoldability(result_set_holdability)
        self.configure_statement = configure_statement
        self.row_factory = row_factory
        self.parameter_style = ParameterStyle(parameter_style)
        self.autocommit = autocommit
        self.nullify_none_parameters = nullify_none_parameters
        self.dialect = dialect
        self.batch_executemany = batch_executemany

    def replace(self, **kwargs: Any) -> "SqlConfig":
        """Immutable update.

        Args:
            **kwargs: Attributes to update

        Raises:
            ImproperConfigurationError: An unknown option was given.

        Returns:
            New SqlConfig instance with updated attributes
        """
        for key in kwargs:
            if key not in SQL_CONFIG_SLOTS:
                msg = f"{key!r} is not a field in {type(self).__name__}"
                raise ImproperConfigurationError(msg)

        current_kwargs = {slot: getattr(self, slot) for slot in SQL_CONFIG_SLOTS}
        current_kwargs.update(kwargs)
        return type(self)(**current_kwargs)

    def __repr__(self) -> str:
        field_strs = [f"{slot}={getattr(self, slot)!r}" for slot in SQL_CONFIG_SLOTS]
        return f"{self.__class__.__name__}({', '.join(field_strs)})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, type(self)):
            return False
        return all(getattr(self, slot) == getattr(other, slot) for slot in SQL_CONFIG_SLOTS)

    __hash__ = None  # type: ignore[assignment]
