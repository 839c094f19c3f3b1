"""Scoped allocation of character large objects."""

from types import TracebackType
from typing import TYPE_CHECKING, Final, Optional

from procspec.utils.logging import get_logger

if TYPE_CHECKING:
    from procspec.protocols import CallHandle, LargeObjectHandle

__all__ = ("DEFAULT_CHUNK_SIZE", "LargeObjectAllocator")

logger = get_logger("core.lob")

DEFAULT_CHUNK_SIZE: Final = 256


class LargeObjectAllocator:
    """Allocate CLOB/NCLOB handles for one invocation and release them all on exit.

    Use as a context manager around binding, execution and serialization::

        with LargeObjectAllocator(call) as lobs:
            handle = lobs.allocate(text)
    """

    __slots__ = ("_call", "_chunk_size", "_closed", "_handles")

    def __init__(self, call: "CallHandle", chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        if chunk_size < 1:
            msg = f"chunk_size must be positive, got {chunk_size}"
            raise ValueError(msg)
        self._call = call
        self._chunk_size = chunk_size
        self._handles: list[LargeObjectHandle] = []
        self._closed = False

    def __enter__(self) -> "LargeObjectAllocator":
        return self

    def __exit__(
        self,
        exc_type: "Optional[type[BaseException]]",
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        self.close(raise_errors=exc_type is None)

    def __len__(self) -> int:
        return len(self._handles)

    def allocate(self, text: Optional[str], national: bool = False) -> "Optional[LargeObjectHandle]":
        """Create a large object holding ``text``.

        Args:
            text: Content to copy; ``None`` allocates nothing.
            national: Allocate a national character large object.

        Returns:
            The populated handle, or None when ``text`` is None.
        """
        if text is None:
            return None
        if self._closed:
            msg = "LargeObjectAllocator is closed"
            raise RuntimeError(msg)
        handle = self._call.create_clob(national=national)
        self._handles.append(handle)
        offset = 1
        for start in range(0, len(text), self._chunk_size):
            chunk = text[start : start + self._chunk_size]
            handle.write(chunk, offset)
            offset += len(chunk)
        logger.debug("Allocated %s of %d characters", "NCLOB" if national else "CLOB", len(text))
        return handle

    def close(self, raise_errors: bool = True) -> None:
        """Release every handle allocated in this scope.

        A failure releasing one handle is logged and does not stop the others
        from being released. The first failure is re-raised afterwards unless
        ``raise_errors`` is False, so an in-flight error is not masked.

        Args:
            raise_errors: Re-raise the first release failure.
        """
        if self._closed:
            return
        self._closed = True
        handles, self._handles = self._handles, []
        first_error: Optional[Exception] = None
        for handle in handles:
            try:
                self._call.free_clob(handle)
            except Exception as exc:
                logger.warning("Failed to release large object: %s", exc)
                if first_error is None:
                    first_error = exc
        if first_error is not None and raise_errors:
            raise first_error
