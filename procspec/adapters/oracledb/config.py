"""Oracle connection pool provider."""

import contextlib
from typing import TYPE_CHECKING, Any, Optional, TypedDict, Union

import oracledb
from typing_extensions import NotRequired

from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Callable, Generator

    from oracledb import AuthMode

__all__ = ("OracleConnectionParams", "OraclePoolParams", "OraclePoolProvider")

logger = get_logger("adapters.oracledb")


class OracleConnectionParams(TypedDict, total=False):
    """OracleDB connection parameters."""

    dsn: NotRequired[str]
    user: NotRequired[str]
    password: NotRequired[str]
    host: NotRequired[str]
    port: NotRequired[int]
    service_name: NotRequired[str]
    sid: NotRequired[str]
    wallet_location: NotRequired[str]
    wallet_password: NotRequired[str]
    config_dir: NotRequired[str]
    tcp_connect_timeout: NotRequired[float]
    retry_count: NotRequired[int]
    retry_delay: NotRequired[int]
    mode: NotRequired["AuthMode"]
    edition: NotRequired[str]


class OraclePoolParams(OracleConnectionParams, total=False):
    """OracleDB pool parameters."""

    min: NotRequired[int]
    max: NotRequired[int]
    increment: NotRequired[int]
    getmode: NotRequired[Any]
    homogeneous: NotRequired[bool]
    timeout: NotRequired[int]
    wait_timeout: NotRequired[int]
    max_lifetime_session: NotRequired[int]
    session_callback: NotRequired["Callable[..., Any]"]
    ping_interval: NotRequired[int]
    extra: NotRequired[dict[str, Any]]


class OraclePoolProvider:
    """Lends connections from a python-oracledb pool.

    Connections run in autocommit mode unless ``autocommit`` is False, in which
    case work is committed when the invocation succeeds and rolled back otherwise.

    Args:
        pool_config: Pool configuration parameters.
        pool_instance: Existing pool instance to use.
        autocommit: Commit after every round trip.
    """

    __slots__ = ("autocommit", "pool_config", "pool_instance")

    def __init__(
        self,
        *,
        pool_config: "Optional[Union[OraclePoolParams, dict[str, Any]]]" = None,
        pool_instance: "Optional[oracledb.ConnectionPool]" = None,
        autocommit: bool = True,
    ) -> None:
        processed_pool_config: dict[str, Any] = dict(pool_config) if pool_config else {}
        if "extra" in processed_pool_config:
            extras = processed_pool_config.pop("extra")
            processed_pool_config.update(extras)
        self.pool_config = processed_pool_config
        self.pool_instance = pool_instance
        self.autocommit = autocommit

    def create_pool(self) -> "oracledb.ConnectionPool":
        """Create the connection pool."""
        logger.debug("Creating Oracle connection pool for %s", self.pool_config.get("dsn", "<default>"))
        return oracledb.create_pool(**self.pool_config)

    def close_pool(self) -> None:
        if self.pool_instance is not None:
            self.pool_instance.close()
            self.pool_instance = None

    @contextlib.contextmanager
    def provide_connection(self) -> "Generator[oracledb.Connection, None, None]":
        """Provide a pooled connection context manager.

        Yields:
            An Oracle Connection instance.
        """
        if self.pool_instance is None:
            self.pool_instance = self.create_pool()
        conn = self.pool_instance.acquire()
        conn.autocommit = self.autocommit
        try:
            yield conn
        except Exception:
            if not self.autocommit:
                conn.rollback()
            raise
        else:
            if not self.autocommit:
                conn.commit()
        finally:
            self.pool_instance.release(conn)
