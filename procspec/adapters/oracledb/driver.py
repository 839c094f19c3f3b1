"""Oracle call adapter built on python-oracledb.

Output slots are bound as typed ``cursor.var`` variables, large objects are
temporary LOBs created on the connection, result sets come from implicit
results (``DBMS_SQL.RETURN_RESULT``) and the timeout maps to the
connection's ``call_timeout``.
"""

import datetime
import decimal
from typing import TYPE_CHECKING, Any, Final, Optional

import oracledb

from procspec.adapters.dbapi import DBAPICall
from procspec.core.parameters import SQLType
from procspec.exceptions import ExecutionError
from procspec.protocols import NO_UPDATE_COUNT, ColumnDescription
from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = ("OracleCall", "OracleCallFactory", "OracleLobReader", "OracleResultSet", "oracle_var_type")

logger = get_logger("adapters.oracledb")

CALL_TIMEOUT_ERROR: Final = "DPI-1067"
"""Error code raised when a round trip exceeds ``call_timeout``."""

_EPOCH_DATE: Final = datetime.date(1970, 1, 1)

_VAR_TYPES: Final[dict[SQLType, Any]] = {
    SQLType.BIT: oracledb.DB_TYPE_BOOLEAN,
    SQLType.BOOLEAN: oracledb.DB_TYPE_BOOLEAN,
    SQLType.TINYINT: int,
    SQLType.SMALLINT: int,
    SQLType.INTEGER: int,
    SQLType.BIGINT: int,
    SQLType.REAL: float,
    SQLType.FLOAT: float,
    SQLType.DOUBLE: float,
    SQLType.DECIMAL: decimal.Decimal,
    SQLType.NUMERIC: decimal.Decimal,
    SQLType.CHAR: oracledb.DB_TYPE_CHAR,
    SQLType.VARCHAR: oracledb.DB_TYPE_VARCHAR,
    SQLType.LONGVARCHAR: oracledb.DB_TYPE_LONG,
    SQLType.NCHAR: oracledb.DB_TYPE_NCHAR,
    SQLType.NVARCHAR: oracledb.DB_TYPE_NVARCHAR,
    SQLType.LONGNVARCHAR: oracledb.DB_TYPE_NVARCHAR,
    SQLType.DATE: oracledb.DB_TYPE_DATE,
    SQLType.TIME: oracledb.DB_TYPE_DATE,
    SQLType.TIMESTAMP: oracledb.DB_TYPE_TIMESTAMP,
    SQLType.TIMESTAMP_WITH_TIMEZONE: oracledb.DB_TYPE_TIMESTAMP_TZ,
    SQLType.BINARY: oracledb.DB_TYPE_RAW,
    SQLType.VARBINARY: oracledb.DB_TYPE_RAW,
    SQLType.LONGVARBINARY: oracledb.DB_TYPE_LONG_RAW,
    SQLType.CLOB: oracledb.DB_TYPE_CLOB,
    SQLType.NCLOB: oracledb.DB_TYPE_NCLOB,
    SQLType.BLOB: oracledb.DB_TYPE_BLOB,
    SQLType.REF_CURSOR: oracledb.DB_TYPE_CURSOR,
    SQLType.ROWID: oracledb.DB_TYPE_ROWID,
}

_COLUMN_TYPES: Final[dict[str, SQLType]] = {
    oracledb.DB_TYPE_CLOB.name: SQLType.CLOB,
    oracledb.DB_TYPE_NCLOB.name: SQLType.NCLOB,
    oracledb.DB_TYPE_BLOB.name: SQLType.BLOB,
    oracledb.DB_TYPE_CURSOR.name: SQLType.REF_CURSOR,
}


def oracle_var_type(sql_type: SQLType) -> Any:
    """Return the ``cursor.var`` type for ``sql_type``; unmapped types use VARCHAR2."""
    return _VAR_TYPES.get(sql_type, oracledb.DB_TYPE_VARCHAR)


class OracleLobReader:
    """Character stream over an Oracle LOB, read in chunks from 1-based offsets."""

    __slots__ = ("_lob", "_offset")

    def __init__(self, lob: Any) -> None:
        self._lob = lob
        self._offset = 1

    def read(self, size: int = -1) -> Any:
        if size is None or size < 0:
            data = self._lob.read(self._offset)
        else:
            data = self._lob.read(self._offset, size)
        self._offset += len(data)
        return data


def _wrap_value(value: Any) -> Any:
    if isinstance(value, oracledb.LOB):
        return OracleLobReader(value)
    if isinstance(value, oracledb.Cursor):
        return OracleResultSet(value)
    return value


class OracleResultSet:
    """Result set view over an Oracle cursor. LOB columns are exposed as streams."""

    __slots__ = ("_columns", "_cursor")

    def __init__(self, cursor: Any) -> None:
        self._cursor = cursor
        self._columns = tuple(
            ColumnDescription(str(column.name), _COLUMN_TYPES.get(getattr(column.type_code, "name", "")))
            for column in cursor.description or ()
        )

    @property
    def columns(self) -> "tuple[ColumnDescription, ...]":
        return self._columns

    def fetchone(self) -> "Optional[Sequence[Any]]":
        row = self._cursor.fetchone()
        if row is None:
            return None
        return tuple(_wrap_value(value) for value in row)


class OracleCall(DBAPICall):
    """Call handle over a python-oracledb connection."""

    __slots__ = ("_implicit_position", "_implicit_results", "_lobs")

    def __init__(self, connection: Any, statement: str) -> None:
        super().__init__(connection, statement)
        self._lobs: list[Any] = []
        self._implicit_results: list[Any] = []
        self._implicit_position = 0

    def adapt_value(self, value: Any, sql_type: SQLType) -> Any:
        """Oracle has no TIME type; times are bound as dates on 1970-01-01."""
        if isinstance(value, datetime.time):
            return datetime.datetime.combine(_EPOCH_DATE, value)
        return value

    def set_null(self, index: int, sql_type: SQLType) -> None:
        self._arguments[index] = self._cursor.var(oracle_var_type(sql_type))

    def register_output(self, index: int, sql_type: SQLType) -> None:
        self._output_types[index] = sql_type
        current = self._arguments.get(index)
        if isinstance(current, oracledb.Var):
            return
        var = self._cursor.var(oracle_var_type(sql_type))
        if current is not None:
            var.setvalue(0, current)
        self._arguments[index] = var

    def create_clob(self, national: bool = False) -> Any:
        lob = self._connection.createlob(oracledb.DB_TYPE_NCLOB if national else oracledb.DB_TYPE_CLOB)
        self._lobs.append(lob)
        return lob

    def free_clob(self, lob: Any) -> None:
        """Close the LOB if it was opened; the driver frees temporary LOBs once unreferenced."""
        if lob.isopen():
            lob.close()
        if lob in self._lobs:
            self._lobs.remove(lob)

    def execute(self) -> None:
        """Run the routine under ``call_timeout`` and collect implicit results.

        Raises:
            ExecutionError: If the driver fails or the call times out.
        """
        arguments = self.build_arguments()
        logger.debug("Calling %s with %d argument(s)", self.routine, len(arguments))
        previous_timeout = self._connection.call_timeout
        self._connection.call_timeout = self._timeout * 1000
        try:
            self._cursor.callproc(self.routine, arguments)
            self._implicit_results = list(self._cursor.getimplicitresults())
        except oracledb.Error as exc:
            error = exc.args[0] if exc.args else None
            timed_out = getattr(error, "full_code", "") == CALL_TIMEOUT_ERROR
            msg = f"Failed to execute stored procedure {self.routine}: {exc}"
            raise ExecutionError(msg, statement=self.statement, timed_out=timed_out) from exc
        finally:
            self._connection.call_timeout = previous_timeout
        self._returned = arguments
        self._implicit_position = 0
        self._exhausted = False

    @property
    def update_count(self) -> int:
        return NO_UPDATE_COUNT

    def has_result_set(self) -> bool:
        return not self._exhausted and self._implicit_position < len(self._implicit_results)

    def fetch_result_set(self) -> OracleResultSet:  # type: ignore[override]
        return OracleResultSet(self._implicit_results[self._implicit_position])

    def advance(self) -> None:
        self._implicit_position += 1
        if self._implicit_position >= len(self._implicit_results):
            self._exhausted = True

    def get_output(self, index: int, sql_type: SQLType) -> Any:
        argument = self._arguments.get(index)
        if not isinstance(argument, oracledb.Var):
            return None
        return _wrap_value(argument.getvalue())


class OracleCallFactory:
    """Prepares :class:`OracleCall` handles."""

    __slots__ = ()

    def prepare_call(self, connection: Any, statement: str) -> OracleCall:
        return OracleCall(connection, statement)
