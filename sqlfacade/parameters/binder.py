"""Parameter binder.

Resolves a binding plan against the caller's argument list. Arguments may be plain
values, mappings, or any attribute-bearing model (dataclasses, attrs classes, msgspec
Structs, pydantic models, ...).
"""

from collections.abc import Mapping, Sequence
from functools import singledispatch
from typing import TYPE_CHECKING, Any, Final, Optional

from sqlfacade.exceptions import IndexOutOfRangeError, PropertyNotFoundError

if TYPE_CHECKING:
    from sqlfacade.parameters.types import BindingPlan

__all__ = ("bind_parameters", "read_property")

_MISSING: Final = object()


@singledispatch
def read_property(argument: Any, name: str) -> Any:
    """Read property ``name`` from ``argument``.

    Register additional readers with ``read_property.register(SomeType)``; a reader
    returns the value or raises :class:`~sqlfacade.exceptions.PropertyNotFoundError`.
    """
    value = getattr(argument, name, _MISSING)
    if value is _MISSING:
        raise PropertyNotFoundError(name, argument)
    return value


@read_property.register(Mapping)
def _read_mapping_key(argument: "Mapping[str, Any]", name: str) -> Any:
    value = argument.get(name, _MISSING)
    if value is _MISSING:
        raise PropertyNotFoundError(name, argument)
    return value


def bind_parameters(plan: "BindingPlan", args: "Sequence[Any]", sql: "Optional[str]" = None) -> "list[Any]":
    """Resolve each placeholder of ``plan`` to its final positional value.

    Args:
        plan: Binding plan produced by the scanner.
        args: Caller-supplied arguments.
        sql: SQL text, used for error context only.

    Raises:
        IndexOutOfRangeError: A binding refers to a missing argument slot.
        PropertyNotFoundError: The argument has no such property.

    Returns:
        One value per binding, in plan order.
    """
    size = len(args)
    values: list[Any] = []
    for binding in plan:
        index = binding.argument_index
        if index < 0 or index >= size:
            raise IndexOutOfRangeError(index, size, sql)
        argument = args[index]
        if binding.binds_whole_argument:
            values.append(argument)
            continue
        try:
            values.append(read_property(argument, binding.property_path))
        except PropertyNotFoundError as exc:
            if exc.sql is None and sql is not None:
                raise PropertyNotFoundError(binding.property_path, argument, sql) from None
            raise
    return values
