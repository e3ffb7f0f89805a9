from __future__ import annotations

from enum import Enum
from typing import Optional


class HistoryError(Exception):
    """Base class for edit-history reconstruction failures."""


class ReplayError(HistoryError):
    pass


class EmptyLogError(ReplayError):
    def __init__(self) -> None:
        super().__init__("operation log is empty")

    def __reduce__(self):
        return (EmptyLogError, ())


class ApplyErrorReason(str, Enum):
    VERSION_MISMATCH = "version_mismatch"
    MALFORMED_OPERATION = "malformed_operation"


class ApplyError(ReplayError):
    """An operation could not be applied to the current document state.

    `index` is the operation's position in the log when raised during replay,
    and None when raised by the applier on its own.
    """

    def __init__(self, reason: ApplyErrorReason, message: str, index: Optional[int] = None) -> None:
        self.reason = reason
        self.message = message
        self.index = index
        where = f" at log index {index}" if index is not None else ""
        super().__init__(f"{reason.value}{where}: {message}")

    def at_index(self, index: int) -> ApplyError:
        return ApplyError(self.reason, self.message, index=index)

    def __reduce__(self):
        # rebuilt from attributes so the error survives a worker-process boundary
        return (ApplyError, (self.reason, self.message, self.index))


class MergeAlignmentError(HistoryError):
    """A diff span could not be located in the baseline it claims to edit."""

    def __init__(self, diff_index: int, message: str) -> None:
        self.diff_index = diff_index
        self.message = message
        super().__init__(f"diff {diff_index}: {message}")

    def __reduce__(self):
        return (MergeAlignmentError, (self.diff_index, self.message))
