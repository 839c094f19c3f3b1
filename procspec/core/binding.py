"""Type coercion and binding of stored routine arguments.

Each SQL type maps to a converter in :data:`DEFAULT_CONVERTERS`. A converter
receives the raw text, the optional format hint and the active
:class:`~procspec.core.time_formats.TimeFormatResolver`, and returns the value
handed to the driver. Types without an entry are bound as raw text together
with their declared type code.
"""

import base64
import binascii
import datetime
import re
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal, InvalidOperation
from functools import partial
from typing import TYPE_CHECKING, Any, Final, Optional, Union

from mypy_extensions import mypyc_attr

from procspec.core.parameters import LARGE_OBJECT_TYPES, ParameterDescriptor, SQLType
from procspec.core.time_formats import (
    DEFAULT_DATE_FORMAT,
    DEFAULT_TIME_FORMAT,
    DEFAULT_TIMESTAMP_FORMAT,
    TimeFormatResolver,
    from_epoch_millis,
    is_epoch_millis,
    to_local_date,
    to_local_datetime,
    to_local_time,
)
from procspec.exceptions import NumericRangeError, ParameterCoercionError, ParseError, UnsupportedFormatError
from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from procspec.core.lob import LargeObjectAllocator
    from procspec.protocols import CallHandle

__all__ = (
    "BINARY_FORMATS",
    "DEFAULT_CONVERTERS",
    "TypeCoercionBinder",
    "ValueConverter",
    "convert_binary",
    "convert_boolean",
    "convert_date",
    "convert_decimal",
    "convert_float",
    "convert_integer",
    "convert_text",
    "convert_time",
    "convert_timestamp",
)

logger = get_logger("core.binding")

ValueConverter = Callable[[str, Optional[str], TimeFormatResolver], Any]

BINARY_FORMATS: Final[frozenset[str]] = frozenset({"ascii", "hex", "base64"})

_INTEGER_RE: Final = re.compile(r"[+-]?\d+")
_UPPER_HEX_RE: Final = re.compile(r"(?:[0-9A-F]{2})*")
_TRUE_TOKENS: Final[frozenset[str]] = frozenset({"t", "true"})


def _has_format(fmt: Optional[str]) -> bool:
    return bool(fmt and fmt.strip())


def convert_boolean(text: str, fmt: Optional[str], formats: TimeFormatResolver) -> bool:
    """``"1"``, ``"t"`` and ``"true"`` (any case) are true; everything else is false."""
    return text == "1" or text.lower() in _TRUE_TOKENS


def convert_integer(text: str, fmt: Optional[str], formats: TimeFormatResolver, *, bits: int) -> int:
    """Parse a signed integer that must fit in ``bits`` bits.

    Raises:
        ParseError: If the text is not an integer.
        NumericRangeError: If the integer does not fit.
    """
    if _INTEGER_RE.fullmatch(text) is None:
        msg = f"Value {text!r} is not an integer"
        raise ParseError(msg)
    value = int(text)
    bound = 1 << (bits - 1)
    if not -bound <= value < bound:
        msg = f"Value {text} is out of range for a {bits}-bit integer"
        raise NumericRangeError(msg)
    return value


def convert_float(text: str, fmt: Optional[str], formats: TimeFormatResolver) -> float:
    if "_" in text:
        msg = f"Value {text!r} is not a floating point number"
        raise ParseError(msg)
    try:
        return float(text)
    except ValueError as exc:
        msg = f"Value {text!r} is not a floating point number"
        raise ParseError(msg) from exc


def convert_decimal(text: str, fmt: Optional[str], formats: TimeFormatResolver) -> Decimal:
    """Parse an arbitrary-precision decimal. Non-finite values are rejected."""
    if "_" in text:
        msg = f"Value {text!r} is not a decimal number"
        raise ParseError(msg)
    try:
        value = Decimal(text.strip())
    except InvalidOperation as exc:
        msg = f"Value {text!r} is not a decimal number"
        raise ParseError(msg) from exc
    if not value.is_finite():
        msg = f"Value {text!r} is not a finite decimal number"
        raise ParseError(msg)
    return value


def convert_date(text: str, fmt: Optional[str], formats: TimeFormatResolver) -> datetime.date:
    if _has_format(fmt):
        return to_local_date(formats.resolve(fmt).parse(text))  # type: ignore[arg-type]
    if is_epoch_millis(text):
        return from_epoch_millis(text).date()
    return to_local_date(formats.resolve(DEFAULT_DATE_FORMAT).parse(text))


def convert_time(text: str, fmt: Optional[str], formats: TimeFormatResolver) -> datetime.time:
    if _has_format(fmt):
        return to_local_time(formats.resolve(fmt).parse(text))  # type: ignore[arg-type]
    if is_epoch_millis(text):
        return from_epoch_millis(text).time()
    return to_local_time(formats.resolve(DEFAULT_TIME_FORMAT).parse(text))


def convert_timestamp(text: str, fmt: Optional[str], formats: TimeFormatResolver) -> datetime.datetime:
    if _has_format(fmt):
        return to_local_datetime(formats.resolve(fmt).parse(text))  # type: ignore[arg-type]
    if is_epoch_millis(text):
        return from_epoch_millis(text)
    return to_local_datetime(formats.resolve(DEFAULT_TIMESTAMP_FORMAT).parse(text))


def convert_binary(text: str, fmt: Optional[str], formats: TimeFormatResolver) -> bytes:
    """Decode binary text according to the ``ascii``, ``hex`` or ``base64`` token.

    A missing or blank token means ``ascii``: every character is one byte.

    Raises:
        ParseError: If the text is not valid for the encoding.
        UnsupportedFormatError: If the token is unknown.
    """
    token = fmt.strip() if fmt and fmt.strip() else "ascii"
    if token == "ascii":
        try:
            return text.encode("latin-1")
        except UnicodeEncodeError as exc:
            msg = "Binary text contains characters that do not fit in one byte"
            raise ParseError(msg) from exc
    if token == "hex":
        if _UPPER_HEX_RE.fullmatch(text) is None:
            msg = "Binary text is not upper-case hex pairs"
            raise ParseError(msg)
        return bytes.fromhex(text)
    if token == "base64":
        try:
            return base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError) as exc:
            msg = "Binary text is not valid base64"
            raise ParseError(msg) from exc
    msg = f"Unable to parse binary data using the format {token!r}"
    raise UnsupportedFormatError(msg)


def convert_text(text: str, fmt: Optional[str], formats: TimeFormatResolver) -> str:
    return text


DEFAULT_CONVERTERS: Final[Mapping[SQLType, ValueConverter]] = {
    SQLType.BIT: convert_boolean,
    SQLType.BOOLEAN: convert_boolean,
    SQLType.TINYINT: partial(convert_integer, bits=8),
    SQLType.SMALLINT: partial(convert_integer, bits=16),
    SQLType.INTEGER: partial(convert_integer, bits=32),
    SQLType.BIGINT: partial(convert_integer, bits=64),
    SQLType.REAL: convert_float,
    SQLType.FLOAT: convert_float,
    SQLType.DOUBLE: convert_float,
    SQLType.DECIMAL: convert_decimal,
    SQLType.NUMERIC: convert_decimal,
    SQLType.DATE: convert_date,
    SQLType.TIME: convert_time,
    SQLType.TIMESTAMP: convert_timestamp,
    SQLType.BINARY: convert_binary,
    SQLType.VARBINARY: convert_binary,
    SQLType.LONGVARBINARY: convert_binary,
    SQLType.CHAR: convert_text,
    SQLType.VARCHAR: convert_text,
    SQLType.LONGVARCHAR: convert_text,
    SQLType.NCHAR: convert_text,
    SQLType.NVARCHAR: convert_text,
    SQLType.LONGNVARCHAR: convert_text,
}


@mypyc_attr(allow_interpreted_subclasses=True)
class TypeCoercionBinder:
    """Bind descriptors to a call handle, converting text per declared SQL type.

    Args:
        converters: Converter table; defaults to :data:`DEFAULT_CONVERTERS`.
        formats: Resolver for date/time format tokens.
    """

    __slots__ = ("_converters", "_formats")

    def __init__(
        self,
        converters: "Optional[Mapping[SQLType, ValueConverter]]" = None,
        formats: Optional[TimeFormatResolver] = None,
    ) -> None:
        self._converters = dict(DEFAULT_CONVERTERS if converters is None else converters)
        self._formats = formats if formats is not None else TimeFormatResolver()

    def converter_for(self, sql_type: SQLType) -> ValueConverter:
        """Return the converter for ``sql_type``; unknown types pass the text through."""
        return self._converters.get(sql_type, convert_text)

    def coerce(self, descriptor: ParameterDescriptor) -> Any:
        """Convert the descriptor's text to the value bound for its SQL type.

        Large object types are not converted here; see :meth:`bind_parameter`.

        Raises:
            ParseError: If the text is not a valid value of the declared type.
            NumericRangeError: If an integer does not fit its declared width.
            UnsupportedFormatError: If the format hint is not supported.

        Returns:
            The converted value, or None when the descriptor has no value.
        """
        if descriptor.value is None:
            return None
        try:
            return self.converter_for(descriptor.sql_type)(descriptor.value, descriptor.format, self._formats)
        except ParameterCoercionError as exc:
            if exc.index is not None:
                raise
            raise type(exc)(exc.detail, descriptor.index) from (exc.__cause__ or exc)

    def bind(
        self,
        call: "CallHandle",
        descriptors: "Union[Mapping[int, ParameterDescriptor], Iterable[ParameterDescriptor]]",
        lobs: "LargeObjectAllocator",
    ) -> None:
        """Bind values and register output slots for every descriptor, in index order.

        Args:
            call: Call handle receiving the arguments.
            descriptors: Descriptor set, as a mapping by index or an iterable.
            lobs: Allocator scope for CLOB/NCLOB values.
        """
        items = descriptors.values() if isinstance(descriptors, Mapping) else descriptors
        for descriptor in sorted(items, key=lambda d: d.index):
            self.bind_parameter(call, descriptor, lobs)
            self.register_output(call, descriptor)

    def bind_parameter(self, call: "CallHandle", descriptor: ParameterDescriptor, lobs: "LargeObjectAllocator") -> None:
        """Bind the value of an IN/INOUT descriptor; OUT descriptors are ignored."""
        if not descriptor.direction.accepts_value:
            return
        if descriptor.value is None:
            call.set_null(descriptor.index, descriptor.sql_type)
            return
        if descriptor.sql_type in LARGE_OBJECT_TYPES:
            handle = lobs.allocate(descriptor.value, national=descriptor.sql_type is SQLType.NCLOB)
            call.set_value(descriptor.index, handle, descriptor.sql_type)
            return
        call.set_value(descriptor.index, self.coerce(descriptor), descriptor.sql_type)

    @staticmethod
    def register_output(call: "CallHandle", descriptor: ParameterDescriptor) -> None:
        """Register an OUT/INOUT descriptor as an output slot of its declared type."""
        if descriptor.direction.returns_value:
            call.register_output(descriptor.index, descriptor.sql_type)
            logger.debug("Registered output slot %d as %s", descriptor.index, descriptor.sql_type.name)
