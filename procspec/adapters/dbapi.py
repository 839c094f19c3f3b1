"""Generic DB-API 2.0 call adapter.

Runs routines through ``cursor.callproc``. Output slots are read back from the
sequence ``callproc`` returns, which is how PEP 249 exposes modified arguments.
Outcomes are taken from the cursor: a description means a result set, a
non-negative ``rowcount`` means an update count, and ``nextset`` advances.
"""

import contextlib
import time
from typing import TYPE_CHECKING, Any, Optional

from procspec.adapters._statement import parse_call_statement
from procspec.core.parameters import SQLType
from procspec.exceptions import ExecutionError
from procspec.protocols import NO_UPDATE_COUNT, ColumnDescription
from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Generator, Sequence

__all__ = ("DBAPICall", "DBAPICallFactory", "DBAPIConnectionProvider", "DBAPIResultSet", "TextLargeObject")

logger = get_logger("adapters.dbapi")


class TextLargeObject:
    """In-memory character large object for drivers without a LOB API."""

    __slots__ = ("_text", "national")

    def __init__(self, national: bool = False) -> None:
        self._text = ""
        self.national = national

    def write(self, data: str, offset: int) -> None:
        """Write ``data`` at the 1-based ``offset``, padding any gap with spaces."""
        start = offset - 1
        current = self._text.ljust(start)
        self._text = current[:start] + data + current[start + len(data) :]

    def getvalue(self) -> str:
        return self._text

    def clear(self) -> None:
        self._text = ""


class DBAPIResultSet:
    """Result set view over a DB-API cursor positioned on a result."""

    __slots__ = ("_columns", "_cursor")

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self._columns = tuple(ColumnDescription(str(column[0])) for column in cursor.description or ())

    @property
    def columns(self) -> "tuple[ColumnDescription, ...]":
        return self._columns

    def fetchone(self) -> "Optional[Sequence[Any]]":
        return self._cursor.fetchone()  # type: ignore[no-any-return]


class DBAPICall:
    """Call handle over a PEP 249 connection.

    Args:
        connection: Open DB-API connection.
        statement: Routine name or call statement.
    """

    __slots__ = (
        "_arguments",
        "_connection",
        "_cursor",
        "_exhausted",
        "_output_types",
        "_placeholders",
        "_returned",
        "_timeout",
        "routine",
        "statement",
    )

    def __init__(self, connection: Any, statement: str) -> None:
        parsed = parse_call_statement(statement)
        self.statement = statement
        self.routine = parsed.routine
        self._placeholders = parsed.placeholders
        self._connection = connection
        self._cursor = connection.cursor()
        self._arguments: dict[int, Any] = {}
        self._output_types: dict[int, SQLType] = {}
        self._returned: list[Any] = []
        self._timeout = 0
        self._exhausted = True

    def adapt_value(self, value: Any, sql_type: SQLType) -> Any:
        """Hook for driver-specific value adaptation before binding."""
        if isinstance(value, TextLargeObject):
            return value.getvalue()
        return value

    def set_value(self, index: int, value: Any, sql_type: SQLType) -> None:
        self._arguments[index] = self.adapt_value(value, sql_type)

    def set_null(self, index: int, sql_type: SQLType) -> None:
        self._arguments[index] = None

    def register_output(self, index: int, sql_type: SQLType) -> None:
        self._output_types[index] = sql_type
        self._arguments.setdefault(index, None)

    def create_clob(self, national: bool = False) -> TextLargeObject:
        return TextLargeObject(national=national)

    def free_clob(self, lob: Any) -> None:
        lob.clear()

    def set_timeout(self, seconds: int) -> None:
        """Set the execution timeout in seconds; 0 disables it.

        PEP 249 has no call timeout, so elapsed time is only checked once
        ``callproc`` returns. A call that never returns is not interrupted.
        """
        self._timeout = seconds

    def build_arguments(self) -> "list[Any]":
        """Arrange bound arguments positionally; unbound positions are NULL."""
        size = max([self._placeholders, *self._arguments])
        return [self._arguments.get(position) for position in range(1, size + 1)]

    def execute(self) -> None:
        """Run the routine and position the cursor on its first outcome.

        Raises:
            ExecutionError: If the driver fails or the call outlives its timeout.
        """
        arguments = self.build_arguments()
        logger.debug("Calling %s with %d argument(s)", self.routine, len(arguments))
        started = time.perf_counter()
        try:
            returned = self._cursor.callproc(self.routine, arguments)
        except Exception as exc:
            msg = f"Failed to execute stored procedure {self.routine}: {exc}"
            raise ExecutionError(msg, statement=self.statement) from exc
        elapsed = time.perf_counter() - started
        if self._timeout and elapsed > self._timeout:
            msg = f"Stored procedure {self.routine} exceeded its {self._timeout}s timeout"
            raise ExecutionError(msg, statement=self.statement, timed_out=True)
        self._returned = list(returned) if returned is not None else arguments
        self._exhausted = False

    @property
    def update_count(self) -> int:
        if self._exhausted or self._cursor.description is not None:
            return NO_UPDATE_COUNT
        rowcount = getattr(self._cursor, "rowcount", NO_UPDATE_COUNT)
        if rowcount is None or rowcount < 0:
            return NO_UPDATE_COUNT
        return int(rowcount)

    def has_result_set(self) -> bool:
        return not self._exhausted and self._cursor.description is not None

    def fetch_result_set(self) -> DBAPIResultSet:
        return DBAPIResultSet(self._cursor)

    def advance(self) -> None:
        nextset = getattr(self._cursor, "nextset", None)
        if nextset is None:
            self._exhausted = True
            return
        try:
            more = nextset()
        except Exception as exc:
            logger.warning("Driver cannot advance to more results of %s: %s", self.routine, exc)
            more = None
        if not more:
            self._exhausted = True

    def get_output(self, index: int, sql_type: SQLType) -> Any:
        if index > len(self._returned):
            return None
        return self._returned[index - 1]

    def close(self) -> None:
        self._cursor.close()


class DBAPICallFactory:
    """Prepares :class:`DBAPICall` handles."""

    __slots__ = ()

    def prepare_call(self, connection: Any, statement: str) -> DBAPICall:
        return DBAPICall(connection, statement)


class DBAPIConnectionProvider:
    """Provider that opens one connection per invocation from a connect callable.

    Args:
        connect: Zero-argument callable returning a new DB-API connection.
    """

    __slots__ = ("_connect",)

    def __init__(self, connect: "Callable[[], Any]") -> None:
        self._connect = connect

    def create_connection(self) -> Any:
        return self._connect()

    @contextlib.contextmanager
    def provide_connection(self) -> "Generator[Any, None, None]":
        """Provide a connection, committing on success and rolling back on error.

        Yields:
            A DB-API connection.
        """
        conn = self.create_connection()
        try:
            yield conn
        except Exception:
            conn.rollback()
            raise
        else:
            conn.commit()
        finally:
            conn.close()
