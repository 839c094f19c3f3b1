"""Parsing of stored routine call statements."""

import re
from typing import Final, NamedTuple

from procspec.exceptions import ImproperConfigurationError

__all__ = ("CallStatement", "parse_call_statement")

_NAME: Final = r"(?P<name>[\w$#@\"]+(?:\.[\w$#@\"]+)*)"
_CALL_RE: Final = re.compile(
    rf"^\s*(?P<brace>\{{)?\s*(?:call|exec(?:ute)?)\s+{_NAME}\s*(?:\((?P<args>.*)\))?\s*(?(brace)\}})\s*;?\s*$",
    re.IGNORECASE | re.DOTALL,
)
_BARE_NAME_RE: Final = re.compile(rf"^\s*{_NAME}\s*;?\s*\Z")


class CallStatement(NamedTuple):
    """A parsed call statement."""

    routine: str
    """Routine name as passed to the driver."""
    placeholders: int
    """Number of ``?`` placeholders in the argument list."""


def parse_call_statement(statement: str) -> CallStatement:
    """Extract the routine name from a call statement.

    Accepts a bare name (``pkg.proc``), ``CALL proc(?, ?)`` and the escape form
    ``{CALL proc(?, ?)}``.

    Args:
        statement: Statement text.

    Raises:
        ImproperConfigurationError: If the statement is not a supported call form.

    Returns:
        The routine name and placeholder count.
    """
    match = _CALL_RE.match(statement)
    if match is not None:
        args = match.group("args") or ""
        return CallStatement(match.group("name"), args.count("?"))
    match = _BARE_NAME_RE.match(statement)
    if match is not None and match.group("name").lower() not in {"call", "exec", "execute"}:
        return CallStatement(match.group("name"), 0)
    msg = f"Unsupported stored procedure statement: {statement!r}"
    raise ImproperConfigurationError(msg)
