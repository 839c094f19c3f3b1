from procspec.adapters.oracledb.config import OracleConnectionParams, OraclePoolParams, OraclePoolProvider
from procspec.adapters.oracledb.driver import OracleCall, OracleCallFactory, OracleLobReader, OracleResultSet

__all__ = (
    "OracleCall",
    "OracleCallFactory",
    "OracleConnectionParams",
    "OracleLobReader",
    "OraclePoolParams",
    "OraclePoolProvider",
    "OracleResultSet",
)
