"""JSON encoding used by the structured log formatter."""

import datetime
import enum
from decimal import Decimal
from typing import Any

import msgspec

__all__ = ("encode_json",)


def _type_to_string(value: Any) -> Any:
    if isinstance(value, datetime.datetime):
        return value.isoformat()
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    return repr(value)


_msgspec_json_encoder = msgspec.json.Encoder(enc_hook=_type_to_string)


def encode_json(data: Any) -> str:
    """Encode data to JSON.

    Values msgspec cannot encode natively fall back to their ``repr`` so that a log
    record carrying an arbitrary parameter never fails to format.
    """
    return _msgspec_json_encoder.encode(data).decode("utf-8")
