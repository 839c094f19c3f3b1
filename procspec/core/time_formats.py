"""Date and time format resolution.

A format token is either the name of a standard ISO/RFC layout (``ISO_LOCAL_DATE``,
``ISO_OFFSET_DATE_TIME``, ``RFC_1123_DATE_TIME``...) or a custom pattern written
with the familiar ``yyyy-MM-dd HH:mm:ss.SSS`` letters. Resolving a token yields a
:class:`TimeFormat` whose ``parse`` turns text into a ``date``, ``time`` or
``datetime``.

Binding converts parsed values to naive local values: zone-aware results and
epoch-millisecond instants are shifted to the process time zone first.
"""

import datetime
import re
from collections.abc import Callable
from email.utils import parsedate_to_datetime
from typing import Final, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from procspec.exceptions import NumericRangeError, ParseError, UnsupportedFormatError

__all__ = (
    "DEFAULT_DATE_FORMAT",
    "DEFAULT_TIMESTAMP_FORMAT",
    "DEFAULT_TIME_FORMAT",
    "NAMED_FORMATS",
    "TemporalValue",
    "TimeFormat",
    "TimeFormatResolver",
    "from_epoch_millis",
    "is_epoch_millis",
    "to_local_date",
    "to_local_datetime",
    "to_local_time",
    "translate_pattern",
)

TemporalValue = Union[datetime.datetime, datetime.date, datetime.time]

DEFAULT_DATE_FORMAT: Final = "yyyy-MM-dd"
DEFAULT_TIME_FORMAT: Final = "HH:mm:ss.SSS"
DEFAULT_TIMESTAMP_FORMAT: Final = "yyyy-MM-dd HH:mm:ss.SSS"

_EPOCH: Final = datetime.datetime(1970, 1, 1, tzinfo=datetime.timezone.utc)
_EPOCH_MILLIS_RE: Final = re.compile(r"-?\d{1,19}")
_INT64_MIN: Final = -(2**63)
_INT64_MAX: Final = 2**63 - 1

_DATE_PART: Final = r"(?P<date>\d{4}-\d{2}-\d{2})"
_TIME_PART: Final = r"(?P<time>(?P<hour>\d{2}):(?P<minute>\d{2})(?::(?P<second>\d{2})(?:\.(?P<fraction>\d{1,9}))?)?)"
_OFFSET_PART: Final = r"(?P<offset>Z|[+-]\d{2}:\d{2}(?::\d{2})?)"
_ZONE_PART: Final = r"(?:\[(?P<zone>[^\]]+)\])"


def _compile(pattern: str) -> "re.Pattern[str]":
    return re.compile(rf"^{pattern}\Z")


class TimeFormat:
    """A resolved date/time parsing rule."""

    __slots__ = ("_parser", "name")

    def __init__(self, name: str, parser: "Callable[[str], TemporalValue]") -> None:
        self.name = name
        self._parser = parser

    def parse(self, text: str) -> TemporalValue:
        """Parse ``text`` with this rule.

        Args:
            text: The text to parse.

        Raises:
            ParseError: If the text does not match the rule.

        Returns:
            The parsed temporal value.
        """
        try:
            return self._parser(text)
        except ParseError:
            raise
        except (ValueError, TypeError, OverflowError, ZoneInfoNotFoundError) as exc:
            msg = f"Unable to parse {text!r} using the format {self.name!r}: {exc}"
            raise ParseError(msg) from exc

    def __repr__(self) -> str:
        return f"TimeFormat({self.name!r})"


def _no_match(text: str, name: str) -> ParseError:
    return ParseError(f"Text {text!r} does not match the format {name!r}")


def _offset(value: Optional[str]) -> Optional[datetime.tzinfo]:
    if value is None:
        return None
    if value == "Z":
        return datetime.timezone.utc
    sign = -1 if value[0] == "-" else 1
    parts = [int(part) for part in value[1:].split(":")]
    delta = datetime.timedelta(hours=parts[0], minutes=parts[1], seconds=parts[2] if len(parts) > 2 else 0)
    return datetime.timezone(sign * delta)


def _time_of(match: "re.Match[str]", tz: Optional[datetime.tzinfo] = None) -> datetime.time:
    fraction = match.group("fraction") or ""
    micros = int(fraction[:6].ljust(6, "0")) if fraction else 0
    return datetime.time(
        int(match.group("hour")), int(match.group("minute")), int(match.group("second") or 0), micros, tzinfo=tz
    )


def _iso_parser(
    pattern: str, name: str, *, has_date: bool, has_time: bool
) -> "Callable[[str], TemporalValue]":
    compiled = _compile(pattern)

    def parse(text: str) -> TemporalValue:
        match = compiled.match(text)
        if match is None:
            raise _no_match(text, name)
        groups = match.groupdict()
        tz = _offset(groups.get("offset"))
        zone = groups.get("zone")
        if not has_time:
            return datetime.date.fromisoformat(match.group("date"))
        if not has_date:
            return _time_of(match, tz)
        value = datetime.datetime.combine(datetime.date.fromisoformat(match.group("date")), _time_of(match))
        if zone is not None:
            zone_info = ZoneInfo(zone)
            if tz is None:
                return value.replace(tzinfo=zone_info)
            return value.replace(tzinfo=tz).astimezone(zone_info)
        return value.replace(tzinfo=tz) if tz is not None else value

    return parse


def _basic_iso_date(text: str) -> TemporalValue:
    match = re.match(r"^(\d{4})(\d{2})(\d{2})(Z|[+-]\d{4})?\Z", text)
    if match is None:
        raise _no_match(text, "BASIC_ISO_DATE")
    return datetime.date(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def _ordinal_date(text: str) -> TemporalValue:
    match = re.match(rf"^(\d{{4}})-(\d{{3}}){_OFFSET_PART}?\Z", text)
    if match is None:
        raise _no_match(text, "ISO_ORDINAL_DATE")
    return datetime.date(int(match.group(1)), 1, 1) + datetime.timedelta(days=int(match.group(2)) - 1)


def _week_date(text: str) -> TemporalValue:
    match = re.match(rf"^(\d{{4}})-W(\d{{2}})-(\d){_OFFSET_PART}?\Z", text)
    if match is None:
        raise _no_match(text, "ISO_WEEK_DATE")
    return datetime.date.fromisocalendar(int(match.group(1)), int(match.group(2)), int(match.group(3)))


def _rfc_1123(text: str) -> TemporalValue:
    return parsedate_to_datetime(text)


NAMED_FORMATS: Final[dict[str, "Callable[[str], TemporalValue]"]] = {
    "BASIC_ISO_DATE": _basic_iso_date,
    "ISO_LOCAL_DATE": _iso_parser(_DATE_PART, "ISO_LOCAL_DATE", has_date=True, has_time=False),
    "ISO_OFFSET_DATE": _iso_parser(_DATE_PART + _OFFSET_PART, "ISO_OFFSET_DATE", has_date=True, has_time=False),
    "ISO_DATE": _iso_parser(_DATE_PART + _OFFSET_PART + "?", "ISO_DATE", has_date=True, has_time=False),
    "ISO_LOCAL_TIME": _iso_parser(_TIME_PART, "ISO_LOCAL_TIME", has_date=False, has_time=True),
    "ISO_OFFSET_TIME": _iso_parser(_TIME_PART + _OFFSET_PART, "ISO_OFFSET_TIME", has_date=False, has_time=True),
    "ISO_TIME": _iso_parser(_TIME_PART + _OFFSET_PART + "?", "ISO_TIME", has_date=False, has_time=True),
    "ISO_LOCAL_DATE_TIME": _iso_parser(
        _DATE_PART + "T" + _TIME_PART, "ISO_LOCAL_DATE_TIME", has_date=True, has_time=True
    ),
    "ISO_OFFSET_DATE_TIME": _iso_parser(
        _DATE_PART + "T" + _TIME_PART + _OFFSET_PART, "ISO_OFFSET_DATE_TIME", has_date=True, has_time=True
    ),
    "ISO_ZONED_DATE_TIME": _iso_parser(
        _DATE_PART + "T" + _TIME_PART + _OFFSET_PART + _ZONE_PART + "?",
        "ISO_ZONED_DATE_TIME",
        has_date=True,
        has_time=True,
    ),
    "ISO_DATE_TIME": _iso_parser(
        _DATE_PART + "T" + _TIME_PART + _OFFSET_PART + "?" + _ZONE_PART + "?",
        "ISO_DATE_TIME",
        has_date=True,
        has_time=True,
    ),
    "ISO_ORDINAL_DATE": _ordinal_date,
    "ISO_WEEK_DATE": _week_date,
    "ISO_INSTANT": _iso_parser(
        _DATE_PART + "T" + _TIME_PART + r"(?P<offset>Z)", "ISO_INSTANT", has_date=True, has_time=True
    ),
    "RFC_1123_DATE_TIME": _rfc_1123,
}


# Pattern letter -> strptime directive, by run length (the last entry covers longer runs).
_PATTERN_LETTERS: Final[dict[str, tuple[str, ...]]] = {
    "y": ("%Y", "%y", "%Y"),
    "u": ("%Y", "%y", "%Y"),
    "M": ("%m", "%m", "%b", "%B"),
    "L": ("%m", "%m", "%b", "%B"),
    "d": ("%d",),
    "D": ("%j",),
    "H": ("%H",),
    "h": ("%I",),
    "m": ("%M",),
    "s": ("%S",),
    "S": ("%f",),
    "a": ("%p",),
    "E": ("%a", "%a", "%a", "%A"),
    "Z": ("%z",),
    "X": ("%z",),
    "x": ("%z",),
    "z": ("%Z",),
}


def translate_pattern(pattern: str) -> str:
    """Translate a ``yyyy-MM-dd``-style pattern into a ``strptime`` format.

    Letters must be quoted to be used literally (``'T'``); ``''`` is a single quote.

    Args:
        pattern: The custom pattern.

    Raises:
        UnsupportedFormatError: If the pattern uses an unsupported letter or an unterminated quote.

    Returns:
        The equivalent ``strptime`` format string.
    """
    out: list[str] = []
    i = 0
    length = len(pattern)
    while i < length:
        char = pattern[i]
        if char == "'":
            end = i + 1
            literal: list[str] = []
            while True:
                if end >= length:
                    msg = f"Unterminated quote in date/time pattern {pattern!r}"
                    raise UnsupportedFormatError(msg)
                if pattern[end] == "'":
                    if end + 1 < length and pattern[end + 1] == "'":
                        literal.append("'")
                        end += 2
                        continue
                    break
                literal.append(pattern[end])
                end += 1
            out.append("".join(literal).replace("%", "%%") if literal else "'")
            i = end + 1
            continue
        if char.isascii() and char.isalpha():
            run = 1
            while i + run < length and pattern[i + run] == char:
                run += 1
            directives = _PATTERN_LETTERS.get(char)
            if directives is None:
                msg = f"Unsupported pattern letter {char!r} in date/time pattern {pattern!r}"
                raise UnsupportedFormatError(msg)
            out.append(directives[min(run, len(directives)) - 1])
            i += run
            continue
        out.append("%%" if char == "%" else char)
        i += 1
    return "".join(out)


def _custom_parser(pattern: str) -> "Callable[[str], TemporalValue]":
    directive = translate_pattern(pattern)

    def parse(text: str) -> TemporalValue:
        return datetime.datetime.strptime(text, directive)

    return parse


class TimeFormatResolver:
    """Resolve format tokens to :class:`TimeFormat` rules, caching each token."""

    __slots__ = ("_cache",)

    def __init__(self) -> None:
        self._cache: dict[str, TimeFormat] = {}

    def resolve(self, token: str) -> TimeFormat:
        """Resolve a named standard format or a custom pattern.

        Args:
            token: Standard format name or custom pattern.

        Raises:
            UnsupportedFormatError: If a custom pattern cannot be translated.

        Returns:
            The resolved rule.
        """
        token = token.strip()
        cached = self._cache.get(token)
        if cached is not None:
            return cached
        named = NAMED_FORMATS.get(token)
        resolved = TimeFormat(token, named if named is not None else _custom_parser(token))
        self._cache[token] = resolved
        return resolved

    def __contains__(self, token: object) -> bool:
        return token in self._cache


def is_epoch_millis(text: str) -> bool:
    """True when ``text`` is an optionally signed run of 1 to 19 digits."""
    return _EPOCH_MILLIS_RE.fullmatch(text) is not None


def from_epoch_millis(text: str) -> datetime.datetime:
    """Convert epoch milliseconds to a naive local datetime.

    Args:
        text: Optionally signed decimal milliseconds since 1970-01-01T00:00:00Z.

    Raises:
        NumericRangeError: If the value does not fit a signed 64-bit integer or a datetime.

    Returns:
        The instant in the process time zone, without tzinfo.
    """
    millis = int(text)
    if not _INT64_MIN <= millis <= _INT64_MAX:
        msg = f"Epoch milliseconds {text} are out of the 64-bit range"
        raise NumericRangeError(msg)
    try:
        instant = _EPOCH + datetime.timedelta(milliseconds=millis)
        return instant.astimezone().replace(tzinfo=None)
    except (OverflowError, ValueError, OSError) as exc:
        msg = f"Epoch milliseconds {text} are out of the supported date range"
        raise NumericRangeError(msg) from exc


def to_local_datetime(value: TemporalValue) -> datetime.datetime:
    """Convert a parsed value to a naive local datetime.

    Raises:
        ParseError: If the value carries no date.
    """
    if isinstance(value, datetime.datetime):
        if value.tzinfo is not None:
            return value.astimezone().replace(tzinfo=None)
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    msg = f"Time {value.isoformat()} carries no date"
    raise ParseError(msg)


def to_local_date(value: TemporalValue) -> datetime.date:
    """Convert a parsed value to a local date.

    Raises:
        ParseError: If the value carries no date.
    """
    if isinstance(value, datetime.datetime):
        return to_local_datetime(value).date()
    if isinstance(value, datetime.date):
        return value
    msg = f"Time {value.isoformat()} carries no date"
    raise ParseError(msg)


def to_local_time(value: TemporalValue) -> datetime.time:
    """Convert a parsed value to a naive local time of day.

    Offset times are shifted to the process time zone like datetimes are.

    Raises:
        ParseError: If the value carries no time of day.
    """
    if isinstance(value, datetime.datetime):
        return to_local_datetime(value).time()
    if isinstance(value, datetime.time):
        if value.tzinfo is None:
            return value
        # offset times are placed on the current date before conversion
        on_today = datetime.datetime.combine(datetime.date.today(), value)
        return on_today.astimezone().time()
    msg = f"Date {value.isoformat()} carries no time of day"
    raise ParseError(msg)
