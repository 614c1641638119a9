"""Type guards for runtime checks on caller values and driver objects."""

from collections.abc import Mapping, Sequence
from typing import Any

from typing_extensions import TypeGuard

__all__ = (
    "has_autocommit",
    "is_iterable_parameters",
    "is_mapping",
    "supports_callproc",
    "supports_scroll",
)


def is_iterable_parameters(params: Any) -> "TypeGuard[Sequence[Any]]":
    """Check if parameters are iterable (but not string or mapping).

    Args:
        params: The parameters to check

    Returns:
        True if the parameters are iterable, False otherwise
    """
    return isinstance(params, Sequence) and not isinstance(params, (str, bytes, bytearray, Mapping))


def is_mapping(obj: Any) -> "TypeGuard[Mapping[str, Any]]":
    return isinstance(obj, Mapping)


def supports_scroll(cursor: Any) -> bool:
    """Check for the optional DB-API ``scroll`` extension."""
    return callable(getattr(cursor, "scroll", None))


def supports_callproc(cursor: Any) -> bool:
    return callable(getattr(cursor, "callproc", None))


def has_autocommit(connection: Any) -> bool:
    """Check if a connection exposes a settable ``autocommit`` attribute."""
    return hasattr(connection, "autocommit")
