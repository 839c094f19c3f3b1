"""Unit tests for date/time format resolution."""

import datetime

import pytest

from procspec.core.time_formats import (
    NAMED_FORMATS,
    TimeFormatResolver,
    from_epoch_millis,
    is_epoch_millis,
    to_local_date,
    to_local_datetime,
    to_local_time,
    translate_pattern,
)
from procspec.exceptions import NumericRangeError, ParseError, UnsupportedFormatError

pytestmark = pytest.mark.xdist_group("core")

UTC = datetime.timezone.utc


def test_all_standard_names_are_available() -> None:
    assert set(NAMED_FORMATS) == {
        "BASIC_ISO_DATE",
        "ISO_LOCAL_DATE",
        "ISO_OFFSET_DATE",
        "ISO_DATE",
        "ISO_LOCAL_TIME",
        "ISO_OFFSET_TIME",
        "ISO_TIME",
        "ISO_LOCAL_DATE_TIME",
        "ISO_OFFSET_DATE_TIME",
        "ISO_ZONED_DATE_TIME",
        "ISO_DATE_TIME",
        "ISO_ORDINAL_DATE",
        "ISO_WEEK_DATE",
        "ISO_INSTANT",
        "RFC_1123_DATE_TIME",
    }


@pytest.mark.parametrize(
    ("token", "text", "expected"),
    [
        ("BASIC_ISO_DATE", "20240131", datetime.date(2024, 1, 31)),
        ("ISO_LOCAL_DATE", "2024-01-31", datetime.date(2024, 1, 31)),
        ("ISO_DATE", "2024-01-31", datetime.date(2024, 1, 31)),
        ("ISO_ORDINAL_DATE", "2024-032", datetime.date(2024, 2, 1)),
        ("ISO_WEEK_DATE", "2024-W05-4", datetime.date(2024, 2, 1)),
        ("ISO_LOCAL_TIME", "10:15:30", datetime.time(10, 15, 30)),
        ("ISO_LOCAL_TIME", "10:15", datetime.time(10, 15)),
        ("ISO_LOCAL_DATE_TIME", "2024-01-31T10:15:30.123", datetime.datetime(2024, 1, 31, 10, 15, 30, 123000)),
        (
            "ISO_OFFSET_DATE_TIME",
            "2024-01-31T10:15:30+01:00",
            datetime.datetime(2024, 1, 31, 10, 15, 30, tzinfo=datetime.timezone(datetime.timedelta(hours=1))),
        ),
        ("ISO_INSTANT", "2024-01-31T10:15:30Z", datetime.datetime(2024, 1, 31, 10, 15, 30, tzinfo=UTC)),
        ("RFC_1123_DATE_TIME", "Wed, 31 Jan 2024 10:15:30 GMT", datetime.datetime(2024, 1, 31, 10, 15, 30, tzinfo=UTC)),
    ],
)
def test_named_formats(formats: TimeFormatResolver, token: str, text: str, expected: object) -> None:
    assert formats.resolve(token).parse(text) == expected


def test_zoned_date_time(formats: TimeFormatResolver) -> None:
    value = formats.resolve("ISO_ZONED_DATE_TIME").parse("2024-01-31T10:15:30+01:00[Europe/Paris]")

    assert isinstance(value, datetime.datetime)
    assert value.astimezone(UTC) == datetime.datetime(2024, 1, 31, 9, 15, 30, tzinfo=UTC)


def test_named_format_mismatch(formats: TimeFormatResolver) -> None:
    with pytest.raises(ParseError, match="ISO_LOCAL_DATE"):
        formats.resolve("ISO_LOCAL_DATE").parse("31/01/2024")


def test_named_format_invalid_calendar_date(formats: TimeFormatResolver) -> None:
    with pytest.raises(ParseError):
        formats.resolve("ISO_LOCAL_DATE").parse("2024-02-30")


@pytest.mark.parametrize(
    ("pattern", "expected"),
    [
        ("yyyy-MM-dd", "%Y-%m-%d"),
        ("HH:mm:ss.SSS", "%H:%M:%S.%f"),
        ("dd MMM yy", "%d %b %y"),
        ("EEEE, MMMM d", "%A, %B %d"),
        ("yyyy-MM-dd'T'HH:mm:ssXXX", "%Y-%m-%dT%H:%M:%S%z"),
        ("hh:mm a", "%I:%M %p"),
        ("''yyyy''", "'%Y'"),
        ("yyyyDDD", "%Y%j"),
    ],
)
def test_translate_pattern(pattern: str, expected: str) -> None:
    assert translate_pattern(pattern) == expected


def test_translate_pattern_escapes_percent() -> None:
    assert translate_pattern("yyyy%") == "%Y%%"


@pytest.mark.parametrize("pattern", ["yyyy-QQ", "yyyy-MM-dd 'T"])
def test_translate_pattern_rejects_unsupported(pattern: str) -> None:
    with pytest.raises(UnsupportedFormatError):
        translate_pattern(pattern)


def test_custom_pattern_parse(formats: TimeFormatResolver) -> None:
    value = formats.resolve("dd/MM/yyyy HH:mm").parse("31/01/2024 10:15")

    assert value == datetime.datetime(2024, 1, 31, 10, 15)


def test_custom_pattern_mismatch(formats: TimeFormatResolver) -> None:
    with pytest.raises(ParseError):
        formats.resolve("dd/MM/yyyy").parse("2024-01-31")


def test_resolver_caches_tokens(formats: TimeFormatResolver) -> None:
    first = formats.resolve("yyyy-MM-dd")

    assert "yyyy-MM-dd" in formats
    assert formats.resolve(" yyyy-MM-dd ") is first
    assert "ISO_LOCAL_DATE" not in formats


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("0", True),
        ("1700000000000", True),
        ("-86400000", True),
        ("12a", False),
        ("", False),
        ("1700000000000\n", False),
        ("1" * 20, False),
    ],
)
def test_is_epoch_millis(text: str, expected: bool) -> None:
    assert is_epoch_millis(text) is expected


@pytest.mark.usefixtures("utc_local_zone")
def test_from_epoch_millis_in_utc() -> None:
    assert from_epoch_millis("1700000000000") == datetime.datetime(2023, 11, 14, 22, 13, 20)
    assert from_epoch_millis("-1000") == datetime.datetime(1969, 12, 31, 23, 59, 59)


def test_from_epoch_millis_is_naive_local() -> None:
    value = from_epoch_millis("1700000000000")
    expected = datetime.datetime.fromtimestamp(1_700_000_000)

    assert value.tzinfo is None
    assert value == expected


@pytest.mark.parametrize("text", ["9223372036854775808", "9223372036854775807"])
def test_from_epoch_millis_out_of_range(text: str) -> None:
    with pytest.raises(NumericRangeError):
        from_epoch_millis(text)


@pytest.mark.usefixtures("utc_local_zone")
def test_to_local_conversions() -> None:
    aware = datetime.datetime(2024, 1, 31, 10, 0, tzinfo=datetime.timezone(datetime.timedelta(hours=2)))

    assert to_local_datetime(aware) == datetime.datetime(2024, 1, 31, 8, 0)
    assert to_local_datetime(datetime.date(2024, 1, 31)) == datetime.datetime(2024, 1, 31)
    assert to_local_date(aware) == datetime.date(2024, 1, 31)
    assert to_local_time(aware) == datetime.time(8, 0)
    assert to_local_time(datetime.time(8, 0, tzinfo=UTC)) == datetime.time(8, 0)
    plus_five = datetime.timezone(datetime.timedelta(hours=5))
    assert to_local_time(datetime.time(10, 0, tzinfo=plus_five)) == datetime.time(5, 0)


def test_to_local_rejects_missing_parts() -> None:
    with pytest.raises(ParseError):
        to_local_datetime(datetime.time(10, 0))
    with pytest.raises(ParseError):
        to_local_date(datetime.time(10, 0))
    with pytest.raises(ParseError):
        to_local_time(datetime.date(2024, 1, 31))
