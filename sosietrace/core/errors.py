"""Error kinds raised by the comparison engine."""
from __future__ import annotations
from typing import List, Optional, Tuple


class SosieTraceError(Exception):
    """Base class for sosietrace errors."""


class UnsynchronizableTrace(SosieTraceError):
    """The two traces cannot be reconciled within the resynchronization window."""

    def __init__(self, message: str, trail: Optional[List[Tuple[int, int]]] = None) -> None:
        super().__init__(message)
        self.trail = list(trail or [])


class MalformedRecord(SosieTraceError, ValueError):
    """A raw record cannot be turned into a Point."""

    def __init__(self, message: str, position: Optional[int] = None) -> None:
        if position is not None:
            message = f"record {position}: {message}"
        super().__init__(message)
        self.position = position


class OutOfRangeAccess(SosieTraceError, IndexError):
    """Index query beyond the recorded length of a sequence."""


class EndOfSequence(SosieTraceError):
    """Cursor advanced past the last point of a sequence."""
