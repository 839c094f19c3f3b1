"""Invocation configuration."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Final, Optional

from procspec.core.attributes import ATTRIBUTE_PREFIX
from procspec.core.lob import DEFAULT_CHUNK_SIZE
from procspec.exceptions import ImproperConfigurationError

__all__ = ("CORRELATION_ATTRIBUTE", "STATEMENT_ATTRIBUTE", "InvocationConfig")

STATEMENT_ATTRIBUTE: Final = "stored.procedure.statement"
CORRELATION_ATTRIBUTE: Final = "procedure.correlation.id"


@dataclass(frozen=True)
class InvocationConfig:
    """Static settings shared by every invocation of a routine.

    Attributes:
        statement: Routine name or call statement. When None, each invocation must
            carry a ``stored.procedure.statement`` attribute.
        timeout: Maximum execution time in seconds; 0 means unbounded.
        attributes: Static parameter attributes, overridden field by field by
            per-invocation attributes.
        lob_chunk_size: Characters written per large object write and read per stream read.
        attribute_prefix: Prefix of parameter attribute keys.
    """

    statement: Optional[str] = None
    timeout: int = 0
    attributes: "Mapping[str, str]" = field(default_factory=dict)
    lob_chunk_size: int = DEFAULT_CHUNK_SIZE
    attribute_prefix: str = ATTRIBUTE_PREFIX

    def __post_init__(self) -> None:
        if self.statement is not None and not self.statement.strip():
            msg = "Stored procedure statement could not be empty."
            raise ImproperConfigurationError(msg)
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, int) or self.timeout < 0:
            msg = f"Execution timeout must be a non-negative number of seconds, got {self.timeout!r}"
            raise ImproperConfigurationError(msg)
        if self.lob_chunk_size < 1:
            msg = f"Large object chunk size must be positive, got {self.lob_chunk_size!r}"
            raise ImproperConfigurationError(msg)
        if not self.attribute_prefix.strip("."):
            msg = "Attribute prefix could not be empty."
            raise ImproperConfigurationError(msg)
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def resolve_statement(self, attributes: "Optional[Mapping[str, str]]" = None) -> str:
        """Return the configured statement, falling back to the per-invocation attribute.

        Raises:
            ImproperConfigurationError: If no non-blank statement is available.
        """
        if self.statement is not None:
            return self.statement
        statement = (attributes or {}).get(STATEMENT_ATTRIBUTE)
        if statement is None or not statement.strip():
            msg = "Stored procedure statement must be specified."
            raise ImproperConfigurationError(msg)
        return statement
