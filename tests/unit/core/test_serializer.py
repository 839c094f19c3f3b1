"""Unit tests for result serialization."""

import datetime
import io
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from procspec._serialization import decode_json
from procspec.core.parameters import Direction, ParameterDescriptor, SQLType
from procspec.core.result import ResultTally
from procspec.core.serializer import JSONDocumentWriter, ResultSerializer, read_character_stream
from procspec.exceptions import SerializationError
from procspec.protocols import ColumnDescription
from tests.fakes import FakeCall, FakeResultSet, FakeStream

pytestmark = pytest.mark.xdist_group("core")


def serialize(call: FakeCall, descriptors: "list[ParameterDescriptor]") -> "tuple[bytes, ResultTally]":
    buffer = io.BytesIO()
    tally = ResultSerializer(buffer_size=4).serialize(call, descriptors, JSONDocumentWriter(buffer))
    return buffer.getvalue(), tally


def test_one_result_set_and_one_output() -> None:
    """Test a routine returning one two-row result set and one named output."""
    rows = FakeResultSet(["ID", "NAME"], [(1, "Tom"), (2, "Jerry")])
    call = FakeCall(outcomes=[rows], outputs={2: 42})
    descriptors = [
        ParameterDescriptor(Direction.IN, 1, SQLType.VARCHAR, "Tom"),
        ParameterDescriptor(Direction.OUT, 2, SQLType.INTEGER, output_name="ID"),
    ]

    document, tally = serialize(call, descriptors)

    assert document == b'{"Results":[[{"ID":1,"NAME":"Tom"},{"ID":2,"NAME":"Jerry"}]],"Outputs":{"ID":42}}'
    assert tally == (1, 2, 1)


def test_no_outcomes_and_no_outputs() -> None:
    document, tally = serialize(FakeCall(), [ParameterDescriptor(Direction.IN, 1, SQLType.VARCHAR, "x")])

    assert document == b"{}"
    assert tally == (0, 0, 0)


def test_empty_result_set_is_skipped() -> None:
    """Test an empty result set is neither written nor counted."""
    call = FakeCall(outcomes=[FakeResultSet(["A"], []), FakeResultSet(["B"], [("b",)])])

    document, tally = serialize(call, [])

    assert decode_json(document) == {"Results": [[{"B": "b"}]]}
    assert tally == (1, 1, 0)


def test_only_empty_result_sets_leave_empty_results() -> None:
    call = FakeCall(outcomes=[FakeResultSet(["A"], [])])

    document, tally = serialize(call, [])

    assert document == b'{"Results":[]}'
    assert tally == (0, 0, 0)


def test_update_counts_are_interleaved() -> None:
    call = FakeCall(outcomes=[3, FakeResultSet(["N"], [(1,)]), 0])

    document, tally = serialize(call, [])

    assert document == b'{"Results":[3,[{"N":1}],0]}'
    assert tally == (1, 1, 0)


def test_default_output_names_in_index_order() -> None:
    call = FakeCall(outputs={3: "c", 1: "a"})
    descriptors = [
        ParameterDescriptor(Direction.INOUT, 3, SQLType.VARCHAR, "x", output_name=" "),
        ParameterDescriptor(Direction.OUT, 1, SQLType.VARCHAR),
    ]

    document, tally = serialize(call, descriptors)

    assert document == b'{"Outputs":{"out-1":"a","inout-3":"c"}}'
    assert tally.output_count == 2


def test_descriptor_mapping_is_accepted() -> None:
    call = FakeCall(outputs={1: None})
    descriptors = {1: ParameterDescriptor(Direction.OUT, 1, SQLType.INTEGER, output_name="N")}

    document, _ = serialize(call, descriptors)  # type: ignore[arg-type]

    assert document == b'{"Outputs":{"N":null}}'


def test_typed_values() -> None:
    call = FakeCall(
        outputs={
            1: Decimal("123.45"),
            2: datetime.date(2024, 1, 31),
            3: b"\x00",
            4: True,
            5: 1.5,
        }
    )
    descriptors = [
        ParameterDescriptor(Direction.OUT, 1, SQLType.DECIMAL, output_name="amount"),
        ParameterDescriptor(Direction.OUT, 2, SQLType.DATE, output_name="day"),
        ParameterDescriptor(Direction.OUT, 3, SQLType.VARBINARY, output_name="raw"),
        ParameterDescriptor(Direction.OUT, 4, SQLType.BOOLEAN, output_name="flag"),
        ParameterDescriptor(Direction.OUT, 5, SQLType.DOUBLE, output_name="ratio"),
    ]

    document, _ = serialize(call, descriptors)

    assert document == (
        b'{"Outputs":{"amount":123.45,"day":"2024-01-31","raw":"AA==","flag":true,"ratio":1.5}}'
    )
    assert decode_json(document, use_decimal=True)["Outputs"]["amount"] == Decimal("123.45")


def test_large_object_output_is_read_fully() -> None:
    stream = FakeStream("abcdefghij")
    call = FakeCall(outputs={1: stream})

    document, _ = serialize(call, [ParameterDescriptor(Direction.OUT, 1, SQLType.CLOB, output_name="doc")])

    assert document == b'{"Outputs":{"doc":"abcdefghij"}}'
    assert stream.reads == 4


def test_large_object_columns_are_read_fully() -> None:
    rows = FakeResultSet(
        [ColumnDescription("ID"), ColumnDescription("BODY", SQLType.NCLOB)],
        [(1, FakeStream("hello world")), (2, None)],
    )

    document, _ = serialize(FakeCall(outcomes=[rows]), [])

    assert document == b'{"Results":[[{"ID":1,"BODY":"hello world"},{"ID":2,"BODY":null}]]}'


def test_cursor_output_is_written_as_rows() -> None:
    cursor = FakeResultSet(["X"], [(1,), (2,)])
    call = FakeCall(outputs={1: cursor})

    document, tally = serialize(call, [ParameterDescriptor(Direction.OUT, 1, SQLType.REF_CURSOR, output_name="cur")])

    assert document == b'{"Outputs":{"cur":[{"X":1},{"X":2}]}}'
    assert tally == (0, 0, 1)


def test_driver_failure_is_wrapped() -> None:
    call = FakeCall(outputs={})
    call.get_output = MagicMock(side_effect=RuntimeError("driver gone"))  # type: ignore[method-assign]

    with pytest.raises(SerializationError, match="driver gone") as exc_info:
        serialize(call, [ParameterDescriptor(Direction.OUT, 1, SQLType.INTEGER)])

    assert isinstance(exc_info.value.__cause__, RuntimeError)


def test_unencodable_value_is_a_serialization_error() -> None:
    call = FakeCall(outputs={1: object()})

    with pytest.raises(SerializationError):
        serialize(call, [ParameterDescriptor(Direction.OUT, 1, SQLType.OTHER)])


def test_existing_tally_is_updated() -> None:
    tally = ResultTally()
    call = FakeCall(outcomes=[FakeResultSet(["A"], [(1,)])])

    result = ResultSerializer().serialize(call, [], JSONDocumentWriter(io.BytesIO()), tally)

    assert result is tally
    assert tally.as_tuple() == (1, 1, 0)


def test_read_character_stream() -> None:
    assert read_character_stream(None) is None
    assert read_character_stream(FakeStream("")) == ""
    assert read_character_stream(FakeStream("abc"), buffer_size=1) == "abc"
    assert read_character_stream(io.StringIO("text")) == "text"


class TestJSONDocumentWriter:
    def write(self, *steps: "tuple[str, ...]") -> bytes:
        buffer = io.BytesIO()
        writer = JSONDocumentWriter(buffer)
        for name, *args in steps:
            getattr(writer, name)(*args)
        writer.flush()
        return buffer.getvalue()

    def test_nested_document(self) -> None:
        document = self.write(
            ("start_object",),
            ("write_field_name", "a"),
            ("start_array",),
            ("write_value", 1),
            ("start_object",),
            ("write_field", "b", "x"),
            ("end_object",),
            ("start_array",),
            ("end_array",),
            ("end_array",),
            ("write_field", "c", None),
            ("end_object",),
        )

        assert document == b'{"a":[1,{"b":"x"},[]],"c":null}'

    def test_field_names_are_escaped(self) -> None:
        assert self.write(("start_object",), ("write_field", 'q"uote', "\n"), ("end_object",)) == (
            b'{"q\\"uote":"\\n"}'
        )

    def test_value_without_field_name_in_object(self) -> None:
        with pytest.raises(SerializationError, match="field name"):
            self.write(("start_object",), ("write_value", 1))

    def test_field_name_outside_object(self) -> None:
        with pytest.raises(SerializationError):
            self.write(("start_array",), ("write_field_name", "a"))

    def test_unbalanced_close(self) -> None:
        with pytest.raises(SerializationError, match="Unbalanced"):
            self.write(("start_object",), ("end_array",))

    def test_unclosed_container_on_flush(self) -> None:
        with pytest.raises(SerializationError, match="unclosed"):
            self.write(("start_object",))

    def test_single_root_value(self) -> None:
        with pytest.raises(SerializationError, match="root"):
            self.write(("write_value", 1), ("write_value", 2))

    def test_depth(self) -> None:
        writer = JSONDocumentWriter(io.BytesIO())
        writer.start_object()
        writer.write_field_name("a")
        writer.start_array()

        assert writer.depth == 2
