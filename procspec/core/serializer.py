"""Serialization of stored routine outcomes into one structured document.

The document is a single object with at most two members::

    {"Results": [3, [{"ID": 1, "NAME": "Will"}, ...]], "Outputs": {"ID": 42}}

``Results`` holds update counts (bare numbers) and non-empty result sets (arrays
of row objects) in the order the routine produced them. ``Outputs`` maps each
OUT/INOUT slot to its value. Either member is omitted when there is nothing to
put in it.
"""

from collections.abc import Iterable, Mapping
from typing import IO, TYPE_CHECKING, Any, Final, Optional, Union

from mypy_extensions import mypyc_attr

from procspec._serialization import encode_scalar
from procspec.core.lob import DEFAULT_CHUNK_SIZE
from procspec.core.parameters import LARGE_OBJECT_TYPES, ParameterDescriptor, SQLType
from procspec.core.result import ResultTally
from procspec.exceptions import SerializationError, wrap_exceptions
from procspec.protocols import NO_UPDATE_COUNT, CharacterStream, ResultSetCursor
from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from procspec.protocols import CallHandle, DocumentWriter

__all__ = ("OUTPUTS_FIELD", "RESULTS_FIELD", "JSONDocumentWriter", "ResultSerializer", "read_character_stream")

logger = get_logger("core.serializer")

RESULTS_FIELD: Final = "Results"
OUTPUTS_FIELD: Final = "Outputs"

_OBJECT: Final = 0
_ARRAY: Final = 1


class JSONDocumentWriter:
    """Streaming JSON writer over a binary stream.

    Containers and scalars are written as they arrive; commas and colons are
    managed from a stack of open containers.
    """

    __slots__ = ("_pending_field", "_root_written", "_stack", "_stream")

    def __init__(self, stream: "IO[bytes]") -> None:
        self._stream = stream
        self._stack: list[list[int]] = []
        self._pending_field = False
        self._root_written = False

    @property
    def depth(self) -> int:
        return len(self._stack)

    def _before_value(self) -> None:
        if not self._stack:
            if self._root_written:
                msg = "JSON document already has a root value"
                raise SerializationError(msg)
            self._root_written = True
            return
        kind, count = self._stack[-1]
        if kind == _ARRAY:
            if count:
                self._stream.write(b",")
            self._stack[-1][1] = count + 1
            return
        if not self._pending_field:
            msg = "A field name must be written before a value inside an object"
            raise SerializationError(msg)
        self._pending_field = False

    def _end(self, kind: int, token: bytes) -> None:
        if not self._stack or self._stack[-1][0] != kind or self._pending_field:
            msg = f"Unbalanced JSON document: cannot write {token.decode()!r}"
            raise SerializationError(msg)
        self._stack.pop()
        self._stream.write(token)

    def start_object(self) -> None:
        self._before_value()
        self._stream.write(b"{")
        self._stack.append([_OBJECT, 0])

    def end_object(self) -> None:
        self._end(_OBJECT, b"}")

    def start_array(self) -> None:
        self._before_value()
        self._stream.write(b"[")
        self._stack.append([_ARRAY, 0])

    def end_array(self) -> None:
        self._end(_ARRAY, b"]")

    def write_field_name(self, name: str) -> None:
        if not self._stack or self._stack[-1][0] != _OBJECT or self._pending_field:
            msg = f"Field name {name!r} written outside of an object"
            raise SerializationError(msg)
        if self._stack[-1][1]:
            self._stream.write(b",")
        self._stack[-1][1] += 1
        self._stream.write(encode_scalar(name))
        self._stream.write(b":")
        self._pending_field = True

    def write_value(self, value: Any) -> None:
        try:
            encoded = encode_scalar(value)
        except (TypeError, ValueError) as exc:
            msg = f"Cannot encode value of type {type(value).__name__}"
            raise SerializationError(msg) from exc
        self._before_value()
        self._stream.write(encoded)

    def write_field(self, name: str, value: Any) -> None:
        self.write_field_name(name)
        self.write_value(value)

    def flush(self) -> None:
        if self._stack:
            msg = f"JSON document has {len(self._stack)} unclosed container(s)"
            raise SerializationError(msg)
        self._stream.flush()


def read_character_stream(stream: Any, buffer_size: int = DEFAULT_CHUNK_SIZE) -> Any:
    """Fully materialize a character stream.

    Args:
        stream: Object with a ``read(size)`` method, or None.
        buffer_size: Characters requested per read.

    Returns:
        The concatenated content, or None for a None stream.
    """
    if stream is None:
        return None
    chunks = []
    while True:
        chunk = stream.read(buffer_size)
        if not chunk:
            break
        chunks.append(chunk)
    if not chunks:
        return ""
    return chunks[0][:0].join(chunks)


@mypyc_attr(allow_interpreted_subclasses=True)
class ResultSerializer:
    """Drain an executed call into a document, counting what was written.

    Args:
        buffer_size: Characters requested per read when materializing large objects.
    """

    __slots__ = ("_buffer_size",)

    def __init__(self, buffer_size: int = DEFAULT_CHUNK_SIZE) -> None:
        self._buffer_size = buffer_size

    def serialize(
        self,
        call: "CallHandle",
        descriptors: "Union[Mapping[int, ParameterDescriptor], Iterable[ParameterDescriptor]]",
        writer: "DocumentWriter",
        tally: Optional[ResultTally] = None,
    ) -> ResultTally:
        """Write the whole outcome of ``call`` as one document.

        Args:
            call: Executed call handle.
            descriptors: Descriptor set used to bind the call.
            writer: Destination writer.
            tally: Counters to update; a new tally is created when omitted.

        Raises:
            SerializationError: If reading the outcome or writing the document fails.

        Returns:
            The updated tally.
        """
        tally = tally if tally is not None else ResultTally()
        items = descriptors.values() if isinstance(descriptors, Mapping) else descriptors
        outputs = sorted((d for d in items if d.direction.returns_value), key=lambda d: d.index)
        with wrap_exceptions(SerializationError, "Failed to serialize stored procedure results"):
            writer.start_object()
            self.write_results(call, writer, tally)
            self.write_outputs(call, outputs, writer, tally)
            writer.end_object()
            writer.flush()
        logger.debug("Serialized stored procedure outcome: %r", tally)
        return tally

    def write_results(self, call: "CallHandle", writer: "DocumentWriter", tally: ResultTally) -> None:
        """Write update counts and result sets under ``Results``."""
        started = False
        while call.update_count != NO_UPDATE_COUNT or call.has_result_set():
            if not started:
                writer.write_field_name(RESULTS_FIELD)
                writer.start_array()
                started = True
            update_count = call.update_count
            if update_count != NO_UPDATE_COUNT:
                writer.write_value(update_count)
            else:
                self.write_result_set(call.fetch_result_set(), writer, tally)
            call.advance()
        if started:
            writer.end_array()

    def write_result_set(self, cursor: "ResultSetCursor", writer: "DocumentWriter", tally: ResultTally) -> None:
        """Write one result set as an array of row objects; empty result sets are skipped."""
        row = cursor.fetchone()
        if row is None:
            logger.warning("Empty result set, skipping it")
            return
        columns = cursor.columns
        writer.start_array()
        tally.result_set_count += 1
        while row is not None:
            writer.start_object()
            for column, value in zip(columns, row):
                writer.write_field_name(column.label)
                writer.write_value(self.materialize(value, column.sql_type))
            writer.end_object()
            tally.row_count += 1
            row = cursor.fetchone()
        writer.end_array()

    def write_outputs(
        self,
        call: "CallHandle",
        outputs: "list[ParameterDescriptor]",
        writer: "DocumentWriter",
        tally: ResultTally,
    ) -> None:
        """Write OUT/INOUT slot values under ``Outputs``."""
        if not outputs:
            return
        writer.write_field_name(OUTPUTS_FIELD)
        writer.start_object()
        for descriptor in outputs:
            value = call.get_output(descriptor.index, descriptor.sql_type)
            writer.write_field_name(descriptor.resolved_name)
            if descriptor.sql_type is SQLType.REF_CURSOR and isinstance(value, ResultSetCursor):
                self._write_cursor_output(value, writer)
            else:
                writer.write_value(self.materialize(value, descriptor.sql_type))
            tally.output_count += 1
        writer.end_object()

    def _write_cursor_output(self, cursor: "ResultSetCursor", writer: "DocumentWriter") -> None:
        columns = cursor.columns
        writer.start_array()
        row = cursor.fetchone()
        while row is not None:
            writer.start_object()
            for column, value in zip(columns, row):
                writer.write_field_name(column.label)
                writer.write_value(self.materialize(value, column.sql_type))
            writer.end_object()
            row = cursor.fetchone()
        writer.end_array()

    def materialize(self, value: Any, sql_type: "Optional[SQLType]" = None) -> Any:
        """Turn character streams into text; other values are returned unchanged."""
        if value is None or isinstance(value, (str, bytes)):
            return value
        if sql_type in LARGE_OBJECT_TYPES or isinstance(value, CharacterStream):
            return read_character_stream(value, self._buffer_size)
        return value
