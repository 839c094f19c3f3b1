"""Runtime-checkable protocols for the seams between procspec and database drivers.

The engine never talks to a driver directly. Adapters expose a stored routine
call through :class:`CallHandle`, which mirrors the bind/register/execute/
iterate lifecycle of a callable statement.
"""

from collections.abc import Sequence
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Final, NamedTuple, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from procspec.core.parameters import SQLType

__all__ = (
    "NO_UPDATE_COUNT",
    "CallFactory",
    "CallHandle",
    "CharacterStream",
    "ColumnDescription",
    "ConnectionProvider",
    "DocumentWriter",
    "LargeObjectHandle",
    "ResultSetCursor",
)

NO_UPDATE_COUNT: Final = -1
"""Update count reported when the current outcome is not an update count."""


class ColumnDescription(NamedTuple):
    """Label and type of one result-set column."""

    label: str
    sql_type: "Optional[SQLType]" = None


@runtime_checkable
class CharacterStream(Protocol):
    """Readable character stream, such as a large object reader."""

    def read(self, size: int = -1) -> str:
        """Read up to ``size`` characters; an empty string signals the end."""
        ...


@runtime_checkable
class LargeObjectHandle(Protocol):
    """Writable character large object."""

    def write(self, data: str, offset: int) -> None:
        """Write ``data`` at the 1-based character ``offset``."""
        ...


@runtime_checkable
class ResultSetCursor(Protocol):
    """One pending result set of an executed call."""

    @property
    def columns(self) -> "Sequence[ColumnDescription]":
        """Columns in result-set order."""
        ...

    def fetchone(self) -> "Optional[Sequence[Any]]":
        """Return the next row, or None when the result set is exhausted."""
        ...


@runtime_checkable
class CallHandle(Protocol):
    """Driver-side handle for one stored routine call."""

    statement: str

    def set_value(self, index: int, value: Any, sql_type: "SQLType") -> None:
        """Bind a coerced value to argument ``index``."""
        ...

    def set_null(self, index: int, sql_type: "SQLType") -> None:
        """Bind SQL NULL of ``sql_type`` to argument ``index``."""
        ...

    def register_output(self, index: int, sql_type: "SQLType") -> None:
        """Reserve argument ``index`` to receive a value of ``sql_type``."""
        ...

    def create_clob(self, national: bool = False) -> LargeObjectHandle:
        """Allocate an empty character large object on the active connection."""
        ...

    def free_clob(self, lob: LargeObjectHandle) -> None:
        """Release a character large object created by :meth:`create_clob`."""
        ...

    def set_timeout(self, seconds: int) -> None:
        """Bound the execution time; 0 disables the bound."""
        ...

    def execute(self) -> None:
        """Execute the call with the bound arguments."""
        ...

    @property
    def update_count(self) -> int:
        """Update count of the current outcome, or ``NO_UPDATE_COUNT``."""
        ...

    def has_result_set(self) -> bool:
        """True when the current outcome is a result set."""
        ...

    def fetch_result_set(self) -> ResultSetCursor:
        """Return the current result set."""
        ...

    def advance(self) -> None:
        """Move to the next outcome."""
        ...

    def get_output(self, index: int, sql_type: "SQLType") -> Any:
        """Read the value of output slot ``index`` after execution."""
        ...

    def close(self) -> None:
        """Release driver resources held by the call."""
        ...


@runtime_checkable
class CallFactory(Protocol):
    """Creates call handles for a driver family."""

    def prepare_call(self, connection: Any, statement: str) -> CallHandle:
        """Prepare ``statement`` on ``connection``."""
        ...


@runtime_checkable
class ConnectionProvider(Protocol):
    """Lends live database connections, usually from a pool."""

    def provide_connection(self) -> "AbstractContextManager[Any]":
        """Context manager yielding a connection and returning it on exit."""
        ...


@runtime_checkable
class DocumentWriter(Protocol):
    """Narrow structured-document writer used by the result serializer."""

    def start_object(self) -> None: ...

    def end_object(self) -> None: ...

    def start_array(self) -> None: ...

    def end_array(self) -> None: ...

    def write_field_name(self, name: str) -> None: ...

    def write_value(self, value: Any) -> None: ...

    def flush(self) -> None: ...
