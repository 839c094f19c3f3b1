"""procspec: stored procedure invocation driven by string attributes."""

from procspec import adapters, core, exceptions, utils
from procspec.__metadata__ import __version__
from procspec.config import STATEMENT_ATTRIBUTE, InvocationConfig
from procspec.core import (
    AttributeParser,
    Direction,
    InvocationResult,
    JSONDocumentWriter,
    LargeObjectAllocator,
    ParameterDescriptor,
    ResultSerializer,
    ResultTally,
    SQLType,
    TimeFormatResolver,
    TypeCoercionBinder,
)
from procspec.exceptions import (
    ExecutionError,
    ImproperConfigurationError,
    MalformedParameterError,
    NumericRangeError,
    ParameterCoercionError,
    ParameterError,
    ParseError,
    ProcSpecError,
    SerializationError,
    UnsupportedFormatError,
)
from procspec.invoker import RoutineInvoker

__all__ = (
    "STATEMENT_ATTRIBUTE",
    "AttributeParser",
    "Direction",
    "ExecutionError",
    "ImproperConfigurationError",
    "InvocationConfig",
    "InvocationResult",
    "JSONDocumentWriter",
    "LargeObjectAllocator",
    "MalformedParameterError",
    "NumericRangeError",
    "ParameterCoercionError",
    "ParameterDescriptor",
    "ParameterError",
    "ParseError",
    "ProcSpecError",
    "ResultSerializer",
    "ResultTally",
    "RoutineInvoker",
    "SQLType",
    "SerializationError",
    "TimeFormatResolver",
    "TypeCoercionBinder",
    "UnsupportedFormatError",
    "__version__",
    "adapters",
    "core",
    "exceptions",
    "utils",
)
