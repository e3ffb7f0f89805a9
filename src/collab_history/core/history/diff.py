"""Line-oriented LCS diff between two whole-document texts.

Both texts are stripped of leading/trailing whitespace before comparison, so a
trailing newline added or removed at the end of the file never shows up as a change.
Every part is taken from the stripped texts: diffing a text against itself yields one
Unchanged part holding the stripped document, not the raw input.

After the common prefix is skipped, the edit script comes from Myers' greedy O(ND)
walk, so cost grows with document size times the number of changed lines. Each
step follows a run of equal lines as far as it goes. When removing a line and adding
one reach equally far, the removal wins. Ties therefore go to the earliest unchanged
run, and the same inputs always give the same output. The common suffix is not
trimmed up front, because that would pin matches to the latest run instead. Within
each changed region all Removed lines come before the Added ones.
"""

from __future__ import annotations

from typing import List, Tuple

from collab_history.core.history.models import DiffKind, DiffPart


def split_lines(text: str) -> List[str]:
    """Split on "\\n", keeping each terminator attached to its line."""
    if not text:
        return []
    pieces = text.split("\n")
    lines = [piece + "\n" for piece in pieces[:-1]]
    if pieces[-1]:
        lines.append(pieces[-1])
    return lines


def diff_lines(baseline_text: str, end_text: str) -> List[DiffPart]:
    old = baseline_text.strip()
    new = end_text.strip()
    if old == new:
        return [DiffPart(old, DiffKind.UNCHANGED)]

    a = split_lines(old)
    b = split_lines(new)

    prefix = 0
    while prefix < len(a) and prefix < len(b) and a[prefix] == b[prefix]:
        prefix += 1

    script: List[Tuple[DiffKind, str]] = [(DiffKind.UNCHANGED, line) for line in a[:prefix]]
    script.extend(_edit_script(a[prefix:], b[prefix:]))
    return _group(script)


def _edit_script(a: List[str], b: List[str]) -> List[Tuple[DiffKind, str]]:
    n, m = len(a), len(b)
    offset = n + m + 1
    # furthest[offset + k] == furthest x reached on diagonal k (k == x - y)
    furthest = [0] * (2 * offset + 1)
    # trace[d] holds diagonals -d-1..d+1 as they stood before round d
    trace: List[List[int]] = []

    for d in range(n + m + 1):
        trace.append(furthest[offset - d - 1 : offset + d + 2])
        for k in range(-d, d + 1, 2):
            if k == -d or (k != d and furthest[offset + k - 1] < furthest[offset + k + 1]):
                x = furthest[offset + k + 1]
            else:
                x = furthest[offset + k - 1] + 1
            y = x - k
            while x < n and y < m and a[x] == b[y]:
                x += 1
                y += 1
            furthest[offset + k] = x
            if x >= n and y >= m:
                return _backtrack(a, b, trace, d)

    raise AssertionError("edit walk did not reach the end of both texts")


def _backtrack(a: List[str], b: List[str], trace: List[List[int]], depth: int) -> List[Tuple[DiffKind, str]]:
    script: List[Tuple[DiffKind, str]] = []
    x, y = len(a), len(b)

    for d in range(depth, 0, -1):
        before = trace[d]
        k = x - y
        if k == -d or (k != d and before[k - 1 + d + 1] < before[k + 1 + d + 1]):
            prev_k = k + 1
        else:
            prev_k = k - 1
        prev_x = before[prev_k + d + 1]
        prev_y = prev_x - prev_k

        while x > prev_x and y > prev_y:
            x -= 1
            y -= 1
            script.append((DiffKind.UNCHANGED, a[x]))
        if x == prev_x:
            script.append((DiffKind.ADDED, b[prev_y]))
        else:
            script.append((DiffKind.REMOVED, a[prev_x]))
        x, y = prev_x, prev_y

    while x > 0 and y > 0:
        x -= 1
        y -= 1
        script.append((DiffKind.UNCHANGED, a[x]))

    script.reverse()
    return script


def _group(script: List[Tuple[DiffKind, str]]) -> List[DiffPart]:
    parts: List[DiffPart] = []
    unchanged: List[str] = []
    removed: List[str] = []
    added: List[str] = []

    def flush_changes() -> None:
        if removed:
            parts.append(DiffPart("".join(removed), DiffKind.REMOVED))
            removed.clear()
        if added:
            parts.append(DiffPart("".join(added), DiffKind.ADDED))
            added.clear()

    for kind, line in script:
        if kind is DiffKind.UNCHANGED:
            flush_changes()
            unchanged.append(line)
            continue
        if unchanged:
            parts.append(DiffPart("".join(unchanged), DiffKind.UNCHANGED))
            unchanged.clear()
        (removed if kind is DiffKind.REMOVED else added).append(line)

    flush_changes()
    if unchanged:
        parts.append(DiffPart("".join(unchanged), DiffKind.UNCHANGED))
    return parts
