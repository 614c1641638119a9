"""sqlfacade: run SQL with named parameters over any DB-API driver without managing cursors."""

from sqlfacade import driver, exceptions, parameters, typing, utils
from sqlfacade.__metadata__ import __version__
from sqlfacade.base import Sql
from sqlfacade.config import ResultSetConcurrency, ResultSetHoldability, ResultSetType, SqlConfig
from sqlfacade.datasource import ConnectionFactory
from sqlfacade.driver import SUCCESS_NO_INFO, ResultCursor, Statement
from sqlfacade.exceptions import (
    BindError,
    CacheCloseError,
    ImproperConfigurationError,
    IndexOutOfRangeError,
    ParameterError,
    PropertyNotFoundError,
    ScanError,
    SQLFacadeError,
)
from sqlfacade.parameters import (
    InOutParameter,
    InParameter,
    OutParameter,
    ParameterStyle,
    ResultSetOutParameter,
    SqlType,
    in_param,
    inout_param,
    out_param,
    result_set_param,
)
from sqlfacade.result import RowResult
from sqlfacade.utils.logging import configure_logging

__all__ = (
    "SUCCESS_NO_INFO",
    "BindError",
    "CacheCloseError",
    "ConnectionFactory",
    "ImproperConfigurationError",
    "InOutParameter",
    "InParameter",
    "IndexOutOfRangeError",
    "OutParameter",
    "ParameterError",
    "ParameterStyle",
    "PropertyNotFoundError",
    "ResultCursor",
    "ResultSetConcurrency",
    "ResultSetHoldability",
    "ResultSetOutParameter",
    "ResultSetType",
    "RowResult",
    "SQLFacadeError",
    "ScanError",
    "Sql",
    "SqlConfig",
    "SqlType",
    "Statement",
    "__version__",
    "configure_logging",
    "driver",
    "exceptions",
    "in_param",
    "inout_param",
    "out_param",
    "parameters",
    "result_set_param",
    "typing",
    "utils",
)
