"""JSON encoding and decoding backed by msgspec."""

import datetime
import enum
from decimal import Decimal
from typing import Any, Final, Literal, overload

import msgspec

__all__ = ("decode_json", "encode_json", "encode_scalar")


def _type_to_string(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (datetime.datetime, datetime.date, datetime.time)):
        return value.isoformat()
    msg = f"Unsupported type: {type(value)!r}"
    raise TypeError(msg)


_ENCODER: Final = msgspec.json.Encoder(enc_hook=_type_to_string, decimal_format="number")
_DECODER: Final = msgspec.json.Decoder()
_FLOAT_DECODER: Final = msgspec.json.Decoder(float_hook=Decimal)


@overload
def encode_json(data: Any, *, as_bytes: Literal[False] = ...) -> str: ...


@overload
def encode_json(data: Any, *, as_bytes: Literal[True]) -> bytes: ...


def encode_json(data: Any, *, as_bytes: bool = False) -> "str | bytes":
    """Encode data to JSON.

    Args:
        data: Data to encode.
        as_bytes: Return UTF-8 bytes instead of text.

    Returns:
        The JSON representation.
    """
    encoded = _ENCODER.encode(data)
    if as_bytes:
        return encoded
    return encoded.decode("utf-8")


def encode_scalar(value: Any) -> bytes:
    """Encode one JSON scalar (or ``null``) as UTF-8 bytes.

    Decimals are written as JSON numbers, temporal values as ISO-8601 strings and
    bytes as base64 strings.

    Args:
        value: Scalar value to encode.

    Returns:
        The encoded token.
    """
    return _ENCODER.encode(value)


def decode_json(data: "str | bytes", *, use_decimal: bool = False) -> Any:
    """Decode JSON text or bytes.

    Args:
        data: JSON document.
        use_decimal: Decode non-integer numbers as :class:`~decimal.Decimal`.

    Returns:
        The decoded Python object.
    """
    if use_decimal:
        return _FLOAT_DECODER.decode(data)
    return _DECODER.decode(data)
