from collections.abc import Generator
from contextlib import contextmanager
from typing import Any, Optional

__all__ = (
    "ExecutionError",
    "ImproperConfigurationError",
    "MalformedParameterError",
    "MissingDependencyError",
    "NumericRangeError",
    "ParameterCoercionError",
    "ParameterError",
    "ParseError",
    "ProcSpecError",
    "SerializationError",
    "UnsupportedFormatError",
    "wrap_exceptions",
)


class ProcSpecError(Exception):
    """Base exception class from which all procspec exceptions inherit."""

    detail: str

    def __init__(self, *args: Any, detail: str = "") -> None:
        """Initialize ``ProcSpecError``.

        Args:
            *args: args are converted to :class:`str` before passing to :class:`Exception`
            detail: detail of the exception.
        """
        str_args = [str(arg) for arg in args if arg]
        if not detail:
            if str_args:
                detail, *str_args = str_args
            elif hasattr(self, "detail"):
                detail = self.detail
        self.detail = detail
        super().__init__(*str_args)

    def __repr__(self) -> str:
        if self.detail:
            return f"{self.__class__.__name__} - {self.detail}"
        return self.__class__.__name__

    def __str__(self) -> str:
        return " ".join((*self.args, self.detail)).strip()


class MissingDependencyError(ProcSpecError, ImportError):
    """Missing optional dependency.

    This exception is raised only when a module depends on a dependency that has not been installed.
    """

    def __init__(self, package: str, install_package: Optional[str] = None) -> None:
        super().__init__(
            f"Package {package!r} is not installed but required. You can install it by running "
            f"'pip install procspec[{install_package or package}]' to install procspec with the required extra "
            f"or 'pip install {install_package or package}' to install the package separately",
        )


class ImproperConfigurationError(ProcSpecError):
    """Improper Configuration error.

    Raised when an invocation is configured with values that can never succeed,
    such as a negative timeout or a blank statement.
    """


# -- Parameter Errors --
class ParameterError(ProcSpecError):
    """Base class for parameter-related errors."""


class MalformedParameterError(ParameterError):
    """Raised when a parameter attribute cannot be understood.

    Covers invalid attribute keys and type codes that are not integers or
    not known SQL type codes.
    """

    key: Optional[str]

    def __init__(self, message: str, key: Optional[str] = None) -> None:
        detail_message = message
        if key:
            detail_message = f"{message} (Attribute: {key})"
        super().__init__(detail=detail_message)
        self.key = key


class ParameterCoercionError(ParameterError):
    """Base class for errors converting a textual value to its declared SQL type."""

    index: Optional[int]

    def __init__(self, message: str, index: Optional[int] = None) -> None:
        detail_message = message
        if index is not None:
            detail_message = f"{message} (Parameter: {index})"
        super().__init__(detail=detail_message)
        self.index = index


class ParseError(ParameterCoercionError):
    """The text does not represent a value of the declared type."""


class NumericRangeError(ParameterCoercionError):
    """The number does not fit the declared fixed-width integer type."""


class UnsupportedFormatError(ParameterCoercionError):
    """The format hint names an encoding or pattern that is not supported."""


# -- Execution Errors --
class ExecutionError(ProcSpecError):
    """The stored routine call failed, including timeouts."""

    statement: Optional[str]
    timed_out: bool

    def __init__(self, message: str, statement: Optional[str] = None, timed_out: bool = False) -> None:
        detail_message = message
        if statement:
            detail_message = f"{message}\nStatement: {statement}"
        super().__init__(detail=detail_message)
        self.statement = statement
        self.timed_out = timed_out


class SerializationError(ProcSpecError):
    """Draining or encoding the routine outcome failed."""


@contextmanager
def wrap_exceptions(
    error_class: "type[ProcSpecError]" = ProcSpecError, message: str = "An error occurred during the operation."
) -> Generator[None, None, None]:
    """Re-raise foreign exceptions as ``error_class``, keeping the original as the cause.

    procspec errors pass through unchanged.

    Args:
        error_class: Exception type raised for foreign errors.
        message: Detail message used for the raised error.

    Raises:
        error_class: When the wrapped block raises a non-procspec exception.
    """
    try:
        yield
    except ProcSpecError:
        raise
    except Exception as exc:
        raise error_class(f"{message}: {exc}") from exc
