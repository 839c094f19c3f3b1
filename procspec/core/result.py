"""Result containers for stored routine invocations."""

from typing import Final, Optional

from mypy_extensions import mypyc_attr

__all__ = (
    "DURATION_ATTRIBUTE",
    "OUTPUT_COUNT_ATTRIBUTE",
    "RESULT_SET_COUNT_ATTRIBUTE",
    "ROW_COUNT_ATTRIBUTE",
    "InvocationResult",
    "ResultTally",
)

DURATION_ATTRIBUTE: Final = "procedure.execute.duration"
RESULT_SET_COUNT_ATTRIBUTE: Final = "procedure.return.resultset.count"
ROW_COUNT_ATTRIBUTE: Final = "procedure.return.row.count"
OUTPUT_COUNT_ATTRIBUTE: Final = "procedure.return.output.count"


@mypyc_attr(allow_interpreted_subclasses=False)
class ResultTally:
    """Counters of what one invocation produced."""

    __slots__ = ("output_count", "result_set_count", "row_count")

    def __init__(self) -> None:
        self.result_set_count = 0
        self.row_count = 0
        self.output_count = 0

    def reset(self) -> None:
        self.result_set_count = 0
        self.row_count = 0
        self.output_count = 0

    def as_tuple(self) -> "tuple[int, int, int]":
        """Return ``(result_set_count, row_count, output_count)``."""
        return (self.result_set_count, self.row_count, self.output_count)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ResultTally):
            return self.as_tuple() == other.as_tuple()
        if isinstance(other, tuple):
            return self.as_tuple() == other
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return (
            f"ResultTally(result_set_count={self.result_set_count}, row_count={self.row_count}, "
            f"output_count={self.output_count})"
        )


@mypyc_attr(allow_interpreted_subclasses=False)
class InvocationResult:
    """The document and metadata produced by one stored routine invocation.

    Args:
        document: UTF-8 encoded JSON document.
        tally: Counters collected while serializing.
        duration_ms: Execution duration in milliseconds.
        statement: The executed statement.
    """

    __slots__ = ("document", "duration_ms", "statement", "tally")

    def __init__(self, document: bytes, tally: ResultTally, duration_ms: int, statement: Optional[str] = None) -> None:
        self.document = document
        self.tally = tally
        self.duration_ms = duration_ms
        self.statement = statement

    @property
    def text(self) -> str:
        return self.document.decode("utf-8")

    def attributes(self) -> "dict[str, str]":
        """Metadata delivered alongside the document, as string attributes."""
        return {
            DURATION_ATTRIBUTE: str(self.duration_ms),
            RESULT_SET_COUNT_ATTRIBUTE: str(self.tally.result_set_count),
            ROW_COUNT_ATTRIBUTE: str(self.tally.row_count),
            OUTPUT_COUNT_ATTRIBUTE: str(self.tally.output_count),
        }

    def __repr__(self) -> str:
        return f"InvocationResult(statement={self.statement!r}, tally={self.tally!r}, duration_ms={self.duration_ms})"
