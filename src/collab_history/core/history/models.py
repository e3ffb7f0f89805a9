from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Tuple


@dataclass(frozen=True)
class DocumentState:
    version: int
    text: str
    created: bool = False

    @classmethod
    def initial(cls) -> DocumentState:
        return cls(version=0, text="", created=False)


class DiffKind(str, Enum):
    UNCHANGED = "unchanged"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class DiffPart:
    """One contiguous span of a diff; `value` holds one or more whole lines."""

    value: str
    kind: DiffKind = DiffKind.UNCHANGED

    @property
    def added(self) -> bool:
        return self.kind is DiffKind.ADDED

    @property
    def removed(self) -> bool:
        return self.kind is DiffKind.REMOVED


def baseline_text(parts: Iterable[DiffPart]) -> str:
    """Concatenate Unchanged and Removed parts: the "before" side of a diff."""
    return "".join(p.value for p in parts if not p.added)


def end_text(parts: Iterable[DiffPart]) -> str:
    """Concatenate Unchanged and Added parts: the "after" side of a diff."""
    return "".join(p.value for p in parts if not p.removed)


def is_unchanged(parts: Iterable[DiffPart]) -> bool:
    return all(p.kind is DiffKind.UNCHANGED for p in parts)


@dataclass(frozen=True)
class Chunk:
    baseline: DocumentState
    end: DocumentState
    diff: Tuple[DiffPart, ...]


@dataclass(frozen=True)
class MergedDiff:
    parts: Tuple[DiffPart, ...]

    @property
    def baseline_text(self) -> str:
        return baseline_text(self.parts)

    @property
    def final_text(self) -> str:
        return end_text(self.parts)
