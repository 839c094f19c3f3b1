"""Discovery of stored routine parameters from string-keyed attributes.

Parameters are declared with dot-delimited keys::

    procedure.args.<direction>.<index>.type    -> SQL type code (declares the parameter)
    procedure.args.<direction>.<index>.value   -> text value (IN/INOUT)
    procedure.args.<direction>.<index>.format  -> date/time pattern or binary encoding token
    procedure.args.<direction>.<index>.name    -> output label (OUT/INOUT)

Several attribute sources may be supplied in increasing priority. Fields are
merged per field, so a later source can override a single value without
redeclaring the parameter.
"""

import re
from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any, Final, Optional

from procspec.core.parameters import Direction, ParameterDescriptor, SQLType
from procspec.exceptions import MalformedParameterError
from procspec.utils.logging import get_logger

__all__ = ("ATTRIBUTE_PREFIX", "AttributeParser", "parse_parameters")

logger = get_logger("core.attributes")

ATTRIBUTE_PREFIX: Final = "procedure.args"

_TYPE_SUFFIX: Final = ".type"
_VALUE_FIELD: Final = "value"
_FORMAT_FIELD: Final = "format"
_NAME_FIELD: Final = "name"


class AttributeParser:
    """Build an immutable descriptor set from prioritized attribute sources."""

    __slots__ = ("_prefix", "_type_key_re")

    def __init__(self, prefix: str = ATTRIBUTE_PREFIX) -> None:
        self._prefix = prefix.rstrip(".")
        self._type_key_re = re.compile(rf"^{re.escape(self._prefix)}\.(in|out|inout)\.([1-9]\d*)\.type\Z")

    @property
    def prefix(self) -> str:
        return self._prefix

    def attribute_key(self, direction: Direction, index: int, field: str) -> str:
        """Return the attribute key of ``field`` for the given parameter."""
        return f"{self._prefix}.{direction.value}.{index}.{field}"

    def parse(self, *sources: "Optional[Mapping[str, str]]") -> "Mapping[int, ParameterDescriptor]":
        """Parse parameter descriptors from attribute sources.

        Args:
            *sources: Attribute mappings from lowest to highest priority. ``None`` entries are skipped.

        Returns:
            Read-only mapping of argument index to descriptor, ordered by index.
        """
        active = [source for source in sources if source]
        declarations: dict[int, tuple[Direction, SQLType]] = {}
        for source in active:
            for index, declaration in self._scan_declarations(source).items():
                declarations[index] = declaration

        descriptors: dict[int, ParameterDescriptor] = {}
        for index in sorted(declarations):
            direction, sql_type = declarations[index]
            descriptors[index] = ParameterDescriptor(
                direction=direction,
                index=index,
                sql_type=sql_type,
                value=self._lookup(active, direction, index, _VALUE_FIELD) if direction.accepts_value else None,
                format=self._lookup(active, direction, index, _FORMAT_FIELD),
                output_name=self._lookup(active, direction, index, _NAME_FIELD) if direction.returns_value else None,
            )
        if descriptors:
            logger.debug("Parsed %d stored procedure parameter(s): %s", len(descriptors), list(descriptors.values()))
        return MappingProxyType(descriptors)

    def _scan_declarations(self, source: "Mapping[str, str]") -> "dict[int, tuple[Direction, SQLType]]":
        found: dict[int, tuple[Direction, SQLType]] = {}
        for key in sorted(self._type_keys(source)):
            match = self._type_key_re.match(key)
            if match is None:
                msg = "Invalid stored procedure parameter attribute"
                raise MalformedParameterError(msg, key)
            direction = Direction(match.group(1))
            index = int(match.group(2))
            sql_type = SQLType.from_code(source[key], key)
            if index in found and found[index][0] is not direction:
                msg = f"Parameter {index} is declared as both {found[index][0].value} and {direction.value}"
                raise MalformedParameterError(msg, key)
            found[index] = (direction, sql_type)
        return found

    def _type_keys(self, source: "Mapping[str, Any]") -> "Iterable[str]":
        head = f"{self._prefix}."
        return (key for key in source if key.startswith(head) and key.endswith(_TYPE_SUFFIX))

    def _lookup(
        self, sources: "list[Mapping[str, str]]", direction: Direction, index: int, field: str
    ) -> Optional[str]:
        key = self.attribute_key(direction, index, field)
        found: Optional[str] = None
        for source in sources:
            if key in source:
                found = source[key]
        return found


def parse_parameters(
    *sources: "Optional[Mapping[str, str]]", prefix: str = ATTRIBUTE_PREFIX
) -> "Mapping[int, ParameterDescriptor]":
    """Parse parameter descriptors with a one-off :class:`AttributeParser`.

    Args:
        *sources: Attribute mappings from lowest to highest priority.
        prefix: Attribute key prefix.

    Returns:
        Read-only mapping of argument index to descriptor.
    """
    return AttributeParser(prefix).parse(*sources)
