"""Core stored routine invocation engine."""

from procspec.core.attributes import ATTRIBUTE_PREFIX, AttributeParser, parse_parameters
from procspec.core.binding import DEFAULT_CONVERTERS, TypeCoercionBinder
from procspec.core.lob import LargeObjectAllocator
from procspec.core.parameters import Direction, ParameterDescriptor, SQLType
from procspec.core.result import InvocationResult, ResultTally
from procspec.core.serializer import JSONDocumentWriter, ResultSerializer
from procspec.core.time_formats import NAMED_FORMATS, TimeFormat, TimeFormatResolver

__all__ = (
    "ATTRIBUTE_PREFIX",
    "DEFAULT_CONVERTERS",
    "NAMED_FORMATS",
    "AttributeParser",
    "Direction",
    "InvocationResult",
    "JSONDocumentWriter",
    "LargeObjectAllocator",
    "ParameterDescriptor",
    "ResultSerializer",
    "ResultTally",
    "SQLType",
    "TimeFormat",
    "TimeFormatResolver",
    "TypeCoercionBinder",
    "parse_parameters",
)
