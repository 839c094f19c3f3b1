"""Stored routine invocation.

:class:`RoutineInvoker` ties the pieces together for one invocation: merge
attributes, parse parameter descriptors, prepare the call on a pooled
connection, bind, execute, and serialize every outcome into one JSON document.
"""

import io
import logging
import time
import uuid
from collections.abc import Mapping
from contextlib import closing
from typing import TYPE_CHECKING, Any, Optional

from mypy_extensions import mypyc_attr

from procspec.config import CORRELATION_ATTRIBUTE, InvocationConfig
from procspec.core.attributes import AttributeParser
from procspec.core.binding import TypeCoercionBinder
from procspec.core.lob import LargeObjectAllocator
from procspec.core.result import InvocationResult, ResultTally
from procspec.core.serializer import JSONDocumentWriter, ResultSerializer
from procspec.exceptions import ExecutionError, ProcSpecError, wrap_exceptions
from procspec.utils.logging import correlation_scope, get_logger, log_with_context

if TYPE_CHECKING:
    from procspec.core.parameters import ParameterDescriptor
    from procspec.protocols import CallFactory, ConnectionProvider

__all__ = ("RoutineInvoker", "select_call_factory")

logger = get_logger("invoker")


def select_call_factory(connection: Any) -> "CallFactory":
    """Pick the call adapter matching the driver that produced ``connection``."""
    module = type(connection).__module__
    if module.split(".", 1)[0] == "oracledb":
        from procspec.adapters.oracledb import OracleCallFactory

        return OracleCallFactory()
    from procspec.adapters.dbapi import DBAPICallFactory

    return DBAPICallFactory()


@mypyc_attr(allow_interpreted_subclasses=True)
class RoutineInvoker:
    """Invoke one stored routine per call to :meth:`invoke`.

    Args:
        provider: Source of database connections.
        config: Static invocation settings.
        call_factory: Call adapter; chosen from the connection's driver when omitted.
        binder: Argument binder.
        serializer: Outcome serializer.
    """

    __slots__ = ("_binder", "_call_factory", "_parser", "_serializer", "config", "provider")

    def __init__(
        self,
        provider: "ConnectionProvider",
        config: Optional[InvocationConfig] = None,
        call_factory: "Optional[CallFactory]" = None,
        binder: Optional[TypeCoercionBinder] = None,
        serializer: Optional[ResultSerializer] = None,
    ) -> None:
        self.provider = provider
        self.config = config if config is not None else InvocationConfig()
        self._call_factory = call_factory
        self._parser = AttributeParser(self.config.attribute_prefix)
        self._binder = binder if binder is not None else TypeCoercionBinder()
        self._serializer = serializer if serializer is not None else ResultSerializer(self.config.lob_chunk_size)

    def invoke(self, attributes: "Optional[Mapping[str, str]]" = None) -> InvocationResult:
        """Run the routine with parameters taken from ``attributes``.

        Static attributes from the configuration are read first; per-invocation
        attributes override them field by field.

        Args:
            attributes: Per-invocation attributes.

        Raises:
            ImproperConfigurationError: If no statement is available.
            ParameterError: If an attribute is malformed or a value cannot be coerced.
            ExecutionError: If the driver fails or the call times out.
            SerializationError: If the outcome cannot be written.

        Returns:
            The JSON document and its metadata.
        """
        attributes = attributes or {}
        with correlation_scope(self.correlation_id(attributes)):
            return self._invoke(attributes)

    def correlation_id(self, attributes: "Mapping[str, str]") -> str:
        """Return the ID tagging this invocation's log records.

        The ``procedure.correlation.id`` attribute is used when present; otherwise a
        random ID is generated.
        """
        correlation_id = attributes.get(CORRELATION_ATTRIBUTE) or self.config.attributes.get(CORRELATION_ATTRIBUTE)
        if correlation_id and correlation_id.strip():
            return correlation_id.strip()
        return uuid.uuid4().hex

    def _invoke(self, attributes: "Mapping[str, str]") -> InvocationResult:
        statement = self.config.resolve_statement(attributes)
        descriptors = self._parser.parse(self.config.attributes, attributes)
        log_with_context(
            logger, logging.DEBUG, "Invoking stored procedure", statement=statement, parameter_count=len(descriptors)
        )
        buffer = io.BytesIO()
        tally = ResultTally()
        started = time.monotonic()
        try:
            with wrap_exceptions(ExecutionError, f"Failed to invoke stored procedure {statement}"):
                self._run(statement, descriptors, buffer, tally)
        except ProcSpecError as exc:
            logger.error("Stored procedure %s failed: %s", statement, exc)
            raise
        duration_ms = int((time.monotonic() - started) * 1000)
        logger.debug("Stored procedure %s finished in %d ms: %r", statement, duration_ms, tally)
        return InvocationResult(buffer.getvalue(), tally, duration_ms, statement)

    def _run(
        self,
        statement: str,
        descriptors: "Mapping[int, ParameterDescriptor]",
        buffer: "io.BytesIO",
        tally: ResultTally,
    ) -> None:
        with self.provider.provide_connection() as connection:
            factory = self._call_factory or select_call_factory(connection)
            with closing(factory.prepare_call(connection, statement)) as call:
                with LargeObjectAllocator(call, self.config.lob_chunk_size) as lobs:
                    self._binder.bind(call, descriptors, lobs)
                    call.set_timeout(self.config.timeout)
                    call.execute()
                    self._serializer.serialize(call, descriptors, JSONDocumentWriter(buffer), tally)
