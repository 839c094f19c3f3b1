"""Unit tests for attribute-driven parameter discovery."""

import pytest

from procspec.core.attributes import AttributeParser, parse_parameters
from procspec.core.parameters import Direction, ParameterDescriptor, SQLType
from procspec.exceptions import MalformedParameterError

pytestmark = pytest.mark.xdist_group("core")


def test_parse_in_and_out_parameters() -> None:
    attributes = {
        "procedure.args.in.1.type": "12",
        "procedure.args.in.1.value": "Tom",
        "procedure.args.out.2.type": "4",
        "procedure.args.out.2.name": "ID",
        "unrelated": "ignored",
    }

    descriptors = parse_parameters(attributes)

    assert list(descriptors) == [1, 2]
    assert descriptors[1] == ParameterDescriptor(Direction.IN, 1, SQLType.VARCHAR, "Tom")
    assert descriptors[2] == ParameterDescriptor(Direction.OUT, 2, SQLType.INTEGER, output_name="ID")


def test_parse_is_ordered_by_index() -> None:
    """Test the result is ordered by index regardless of attribute order."""
    attributes = {
        "procedure.args.in.10.type": "4",
        "procedure.args.in.2.type": "4",
        "procedure.args.inout.1.type": "4",
    }

    assert list(parse_parameters(attributes)) == [1, 2, 10]


def test_parse_is_idempotent() -> None:
    attributes = {"procedure.args.inout.1.type": "3", "procedure.args.inout.1.value": "123.45"}

    assert dict(parse_parameters(attributes)) == dict(parse_parameters(attributes))


def test_in_without_value_is_null() -> None:
    descriptors = parse_parameters({"procedure.args.in.1.type": "12"})

    assert descriptors[1].value is None


def test_fields_are_read_per_direction() -> None:
    """Test OUT parameters ignore values and IN parameters ignore names."""
    attributes = {
        "procedure.args.in.1.type": "12",
        "procedure.args.in.1.name": "IGNORED",
        "procedure.args.out.2.type": "12",
        "procedure.args.out.2.value": "IGNORED",
        "procedure.args.inout.3.type": "91",
        "procedure.args.inout.3.value": "2024-01-31",
        "procedure.args.inout.3.format": "ISO_LOCAL_DATE",
        "procedure.args.inout.3.name": "D",
    }

    descriptors = parse_parameters(attributes)

    assert descriptors[1].output_name is None
    assert descriptors[2].value is None
    assert descriptors[3] == ParameterDescriptor(Direction.INOUT, 3, SQLType.DATE, "2024-01-31", "ISO_LOCAL_DATE", "D")


def test_later_sources_override_per_field() -> None:
    static = {
        "procedure.args.in.1.type": "12",
        "procedure.args.in.1.value": "static",
        "procedure.args.in.1.format": "kept",
    }
    record = {"procedure.args.in.1.value": "record"}

    descriptor = parse_parameters(static, record)[1]

    assert descriptor.value == "record"
    assert descriptor.format == "kept"


def test_later_source_can_redeclare_direction() -> None:
    static = {"procedure.args.in.1.type": "12", "procedure.args.in.1.value": "x"}
    record = {"procedure.args.out.1.type": "4"}

    descriptor = parse_parameters(static, record)[1]

    assert descriptor.direction is Direction.OUT
    assert descriptor.sql_type is SQLType.INTEGER
    assert descriptor.value is None


def test_two_directions_in_one_source_are_rejected() -> None:
    attributes = {"procedure.args.in.1.type": "12", "procedure.args.out.1.type": "12"}

    with pytest.raises(MalformedParameterError, match="declared as both"):
        parse_parameters(attributes)


@pytest.mark.parametrize(
    "key",
    ["procedure.args.in.x.type", "procedure.args.sideways.1.type", "procedure.args.in.0.type", "procedure.args.type"],
)
def test_malformed_type_keys_are_rejected(key: str) -> None:
    with pytest.raises(MalformedParameterError) as exc_info:
        parse_parameters({key: "12"})

    assert exc_info.value.key == key


@pytest.mark.parametrize("code", ["abc", "99999", ""])
def test_invalid_type_codes_are_rejected(code: str) -> None:
    with pytest.raises(MalformedParameterError):
        parse_parameters({"procedure.args.in.1.type": code})


def test_custom_prefix() -> None:
    parser = AttributeParser("routine.params.")

    descriptors = parser.parse({"routine.params.in.1.type": "4", "procedure.args.in.2.type": "4"})

    assert parser.prefix == "routine.params"
    assert list(descriptors) == [1]
    assert parser.attribute_key(Direction.IN, 1, "value") == "routine.params.in.1.value"


def test_empty_and_none_sources() -> None:
    assert dict(parse_parameters(None, {})) == {}


def test_result_is_read_only() -> None:
    descriptors = parse_parameters({"procedure.args.in.1.type": "4"})

    with pytest.raises(TypeError):
        descriptors[2] = descriptors[1]  # type: ignore[index]
