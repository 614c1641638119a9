"""Named-parameter resolution: scanning, caching and binding."""

from sqlfacade.parameters.binder import bind_parameters, read_property
from sqlfacade.parameters.cache import NamedQueryCache
from sqlfacade.parameters.nulls import nullify_parameters
from sqlfacade.parameters.scanner import PlaceholderScanner, find_positional_markers, scan
from sqlfacade.parameters.styles import convert_positional_style
from sqlfacade.parameters.types import (
    THIS,
    BindingPlan,
    InOutParameter,
    InParameter,
    OutParameter,
    ParameterStyle,
    PlaceholderBinding,
    ResultSetOutParameter,
    ScanResult,
    SqlType,
    SqlWithParams,
    in_param,
    inout_param,
    out_param,
    result_set_param,
)

__all__ = (
    "THIS",
    "BindingPlan",
    "InOutParameter",
    "InParameter",
    "NamedQueryCache",
    "OutParameter",
    "ParameterStyle",
    "PlaceholderBinding",
    "PlaceholderScanner",
    "ResultSetOutParameter",
    "ScanResult",
    "SqlType",
    "SqlWithParams",
    "bind_parameters",
    "convert_positional_style",
    "find_positional_markers",
    "in_param",
    "inout_param",
    "nullify_parameters",
    "out_param",
    "read_property",
    "result_set_param",
    "scan",
)
