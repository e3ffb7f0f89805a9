"""Merge a sequence of chunk diffs into one diff against the first baseline.

Each chunk diff `D[i]` edits `baseline[i]` into `baseline[i + 1]`. The merged diff is
folded one chunk at a time. Between folds it satisfies two reconstructions:

- Unchanged + Removed parts spell `baseline[0]`;
- Unchanged + Added parts spell the latest baseline folded in so far.

To fold `D[i]`, walk its parts with a cursor over the merged parts, counting only
visible text (Unchanged and Added). Visible text is exactly `baseline[i]`, so offsets in
`D[i]` translate to merged offsets by skipping every Removed part already present.
A merged part that a new edit only partly covers is split at the edit boundary.

- An Unchanged span of `D[i]` keeps the merged parts it covers as they are.
- A Removed span turns covered Unchanged text into Removed. Covered Added text was
  introduced by an earlier chunk and is dropped: it belongs to neither end of the range.
- An Added span is inserted at the cursor, after any Removed parts sitting there.

Every span of `D[i]` must match the merged visible text character for character, and
`D[i]` must cover all of it; otherwise the diffs do not chain and the merge fails.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Iterable, List, Sequence

from collab_history.core.errors import MergeAlignmentError
from collab_history.core.history.models import DiffKind, DiffPart, MergedDiff, baseline_text


logger = logging.getLogger(__name__)


def merge_chunk_diffs(diffs: Iterable[Sequence[DiffPart]]) -> MergedDiff:
    merged: List[DiffPart] = []
    for diff_index, diff in enumerate(diffs):
        if diff_index == 0:
            merged = _coalesce([DiffPart(baseline_text(diff), DiffKind.UNCHANGED)])
        merged = _fold(merged, diff, diff_index)
        logger.debug("folded diff %d into %d merged parts", diff_index, len(merged))
    return MergedDiff(parts=tuple(merged))


def _fold(merged: List[DiffPart], diff: Sequence[DiffPart], diff_index: int) -> List[DiffPart]:
    pending: Deque[DiffPart] = deque(merged)
    out: List[DiffPart] = []

    for part in diff:
        if not part.value:
            continue
        if part.added:
            while pending and pending[0].removed:
                out.append(pending.popleft())
            out.append(part)
            continue

        remaining = part.value
        while remaining:
            if not pending:
                raise MergeAlignmentError(diff_index, f"span {remaining[:40]!r} runs past the end of its baseline")
            head = pending.popleft()
            if head.removed:
                out.append(head)
                continue

            covered = head.value[: len(remaining)]
            if not remaining.startswith(covered):
                raise MergeAlignmentError(diff_index, f"span {remaining[:40]!r} does not match baseline text {covered[:40]!r}")
            rest = head.value[len(covered) :]
            if rest:
                pending.appendleft(DiffPart(rest, head.kind))
            remaining = remaining[len(covered) :]

            if part.kind is DiffKind.UNCHANGED:
                out.append(DiffPart(covered, head.kind))
            elif head.kind is DiffKind.UNCHANGED:
                out.append(DiffPart(covered, DiffKind.REMOVED))

    for head in pending:
        if not head.removed:
            raise MergeAlignmentError(diff_index, f"baseline text {head.value[:40]!r} is not covered by the diff")
        out.append(head)

    return _coalesce(out)


def _coalesce(parts: Iterable[DiffPart]) -> List[DiffPart]:
    """Join adjacent parts of one kind; in each changed run, Removed goes before Added."""
    out: List[DiffPart] = []
    removed: List[str] = []
    added: List[str] = []

    def flush_changes() -> None:
        if removed:
            out.append(DiffPart("".join(removed), DiffKind.REMOVED))
            removed.clear()
        if added:
            out.append(DiffPart("".join(added), DiffKind.ADDED))
            added.clear()

    for part in parts:
        if not part.value:
            continue
        if part.removed:
            removed.append(part.value)
        elif part.added:
            added.append(part.value)
        else:
            flush_changes()
            if out and out[-1].kind is DiffKind.UNCHANGED:
                out[-1] = DiffPart(out[-1].value + part.value, DiffKind.UNCHANGED)
            else:
                out.append(part)

    flush_changes()
    return out
