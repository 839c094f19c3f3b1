"""Stored routine parameter model.

Components:
- SQLType: SQL type codes (JDBC-compatible integer values)
- Direction: IN, OUT and INOUT argument directions
- ParameterDescriptor: immutable description of one call argument
"""

from enum import Enum, IntEnum
from typing import Any, Final, Optional

from mypy_extensions import mypyc_attr

from procspec.exceptions import MalformedParameterError

__all__ = (
    "BINARY_TYPES",
    "CHARACTER_TYPES",
    "LARGE_OBJECT_TYPES",
    "Direction",
    "ParameterDescriptor",
    "SQLType",
)


class SQLType(IntEnum):
    """SQL type codes.

    Values match the ``java.sql.Types`` constants so that attribute producers
    written against JDBC can be reused unchanged.
    """

    BIT = -7
    TINYINT = -6
    SMALLINT = 5
    INTEGER = 4
    BIGINT = -5
    FLOAT = 6
    REAL = 7
    DOUBLE = 8
    NUMERIC = 2
    DECIMAL = 3
    CHAR = 1
    VARCHAR = 12
    LONGVARCHAR = -1
    DATE = 91
    TIME = 92
    TIMESTAMP = 93
    BINARY = -2
    VARBINARY = -3
    LONGVARBINARY = -4
    NULL = 0
    OTHER = 1111
    JAVA_OBJECT = 2000
    DISTINCT = 2001
    STRUCT = 2002
    ARRAY = 2003
    BLOB = 2004
    CLOB = 2005
    REF = 2006
    DATALINK = 70
    BOOLEAN = 16
    ROWID = -8
    NCHAR = -15
    NVARCHAR = -9
    LONGNVARCHAR = -16
    NCLOB = 2011
    SQLXML = 2009
    REF_CURSOR = 2012
    TIME_WITH_TIMEZONE = 2013
    TIMESTAMP_WITH_TIMEZONE = 2014

    @classmethod
    def from_code(cls, code: "str | int", key: Optional[str] = None) -> "SQLType":
        """Resolve a textual or integer type code.

        Args:
            code: The type code, usually the raw attribute text.
            key: Attribute key the code came from, used in error messages.

        Raises:
            MalformedParameterError: If the code is not an integer or not a known SQL type code.

        Returns:
            The matching SQL type.
        """
        try:
            number = int(str(code).strip())
        except ValueError as exc:
            msg = f"SQL type code must be an integer, got {code!r}"
            raise MalformedParameterError(msg, key) from exc
        try:
            return cls(number)
        except ValueError as exc:
            msg = f"Unknown SQL type code {number}"
            raise MalformedParameterError(msg, key) from exc


CHARACTER_TYPES: Final[frozenset[SQLType]] = frozenset({
    SQLType.CHAR,
    SQLType.VARCHAR,
    SQLType.LONGVARCHAR,
    SQLType.NCHAR,
    SQLType.NVARCHAR,
    SQLType.LONGNVARCHAR,
})
BINARY_TYPES: Final[frozenset[SQLType]] = frozenset({SQLType.BINARY, SQLType.VARBINARY, SQLType.LONGVARBINARY})
LARGE_OBJECT_TYPES: Final[frozenset[SQLType]] = frozenset({SQLType.CLOB, SQLType.NCLOB})


class Direction(str, Enum):
    """Direction of a stored routine argument."""

    IN = "in"
    OUT = "out"
    INOUT = "inout"

    @property
    def accepts_value(self) -> bool:
        """True for directions that send a value to the routine."""
        return self is not Direction.OUT

    @property
    def returns_value(self) -> bool:
        """True for directions that receive a value from the routine."""
        return self is not Direction.IN

    def __str__(self) -> str:
        return self.value


@mypyc_attr(allow_interpreted_subclasses=False)
class ParameterDescriptor:
    """Immutable description of one stored routine argument.

    Attributes:
        direction: Argument direction.
        index: 1-based argument position.
        sql_type: Declared SQL type.
        value: Text to bind for IN/INOUT arguments; ``None`` binds SQL NULL.
        format: Optional date/time pattern or binary encoding token.
        output_name: Optional label used for OUT/INOUT values in the result document.
    """

    __slots__ = ("direction", "format", "index", "output_name", "sql_type", "value")

    direction: Direction
    index: int
    sql_type: SQLType
    value: Optional[str]
    format: Optional[str]
    output_name: Optional[str]

    def __init__(
        self,
        direction: Direction,
        index: int,
        sql_type: SQLType,
        value: Optional[str] = None,
        format: Optional[str] = None,  # noqa: A002
        output_name: Optional[str] = None,
    ) -> None:
        object.__setattr__(self, "direction", direction)
        object.__setattr__(self, "index", index)
        object.__setattr__(self, "sql_type", sql_type)
        object.__setattr__(self, "value", value)
        object.__setattr__(self, "format", format)
        object.__setattr__(self, "output_name", output_name)

    def __setattr__(self, name: str, value: Any) -> None:
        msg = f"{type(self).__name__} is immutable"
        raise AttributeError(msg)

    @property
    def has_format(self) -> bool:
        """True when a non-blank format hint is present."""
        return bool(self.format and self.format.strip())

    @property
    def resolved_name(self) -> str:
        """Output label, defaulting to ``"<direction>-<index>"`` when absent or blank."""
        if self.output_name and self.output_name.strip():
            return self.output_name
        return f"{self.direction.value}-{self.index}"

    def _key(self) -> tuple[Any, ...]:
        return (self.direction, self.index, self.sql_type, self.value, self.format, self.output_name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParameterDescriptor):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __repr__(self) -> str:
        return (
            f"ParameterDescriptor(direction={self.direction.value!r}, index={self.index}, "
            f"sql_type={self.sql_type.name}, value={self.value!r}, format={self.format!r}, "
            f"output_name={self.output_name!r})"
        )
