"""Replay an operation log and partition it into time-gapped chunks.

The replay is a fold over the log: each step takes the current `DocumentState` and the
next operation and produces the next state. Alongside the current state the engine keeps
the baseline of the open chunk. When the chunk policy reports a gap, the open chunk is
diffed and sealed, and the current state becomes the next baseline. States are frozen
dataclasses, so a sealed chunk never shares mutable state with the ongoing replay.

Baseline of the first chunk: if the log opens with a `create`, the created document is the
baseline (its initial text is not an edit); otherwise the document is implicitly empty
before the first operation and that empty state is the baseline.

Whatever is still open when the log ends is sealed as a trailing chunk.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Union

from pydantic import ValidationError

from collab_history.core.errors import ApplyError, ApplyErrorReason, EmptyLogError
from collab_history.core.history.chunking import DEFAULT_THRESHOLD_MS, should_close_chunk
from collab_history.core.history.diff import diff_lines
from collab_history.core.history.models import Chunk, DocumentState, is_unchanged
from collab_history.core.ot.apply import apply_operation
from collab_history.core.protocol.messages import Operation, parse_operation


logger = logging.getLogger(__name__)

LogEntry = Union[Operation, Mapping[str, Any], str]


def coerce_operation(entry: LogEntry, index: int) -> Operation:
    if isinstance(entry, Operation):
        return entry
    try:
        return parse_operation(entry)
    except (ValidationError, ValueError) as exc:
        raise ApplyError(ApplyErrorReason.MALFORMED_OPERATION, f"unreadable operation: {exc}", index=index) from exc


def _apply(state: DocumentState, op: Operation, index: int, doc_id: str) -> DocumentState:
    try:
        return apply_operation(state, op)
    except ApplyError as exc:
        logger.warning(
            "replay aborted: %s",
            exc.message,
            extra={"doc_id": doc_id, "version": state.version, "op_index": index},
        )
        raise exc.at_index(index) from exc


def _seal(baseline: DocumentState, end: DocumentState, doc_id: str) -> Optional[Chunk]:
    diff = diff_lines(baseline.text, end.text)
    if is_unchanged(diff):
        return None
    logger.debug("chunk sealed from version %d", baseline.version, extra={"doc_id": doc_id, "version": end.version})
    return Chunk(baseline=baseline, end=end, diff=tuple(diff))


def iter_chunks(
    log: Iterable[LogEntry], threshold_ms: int = DEFAULT_THRESHOLD_MS, doc_id: str = "-"
) -> Iterator[Chunk]:
    """Yield chunks as they seal.

    Consumers that stream must discard what they received if an `ApplyError` is raised
    part way through; `compute_chunked_diffs` does that for them.
    """
    entries = iter(log)
    try:
        first_entry = next(entries)
    except StopIteration:
        raise EmptyLogError() from None

    first = coerce_operation(first_entry, 0)
    initial = DocumentState.initial()
    current = _apply(initial, first, 0, doc_id)
    baseline = current if first.create is not None else initial
    last_ts = first.timestamp

    for index, entry in enumerate(entries, start=1):
        op = coerce_operation(entry, index)
        if should_close_chunk(last_ts, op.timestamp, threshold_ms):
            chunk = _seal(baseline, current, doc_id)
            if chunk is not None:
                yield chunk
            baseline = dataclasses.replace(current)
        current = _apply(current, op, index, doc_id)
        last_ts = op.timestamp

    chunk = _seal(baseline, current, doc_id)
    if chunk is not None:
        yield chunk


def compute_chunked_diffs(
    log: Iterable[LogEntry], threshold_ms: int = DEFAULT_THRESHOLD_MS, doc_id: str = "-"
) -> List[Chunk]:
    return list(iter_chunks(log, threshold_ms, doc_id))


def replay(log: Iterable[LogEntry], doc_id: str = "-") -> DocumentState:
    """Apply the whole log and return the final state."""
    state: Optional[DocumentState] = None
    for index, entry in enumerate(log):
        state = _apply(state or DocumentState.initial(), coerce_operation(entry, index), index, doc_id)
    if state is None:
        raise EmptyLogError()
    return state


def state_at(log: Iterable[LogEntry], cutoff_ts: int, doc_id: str = "-") -> DocumentState:
    """Return the document as it stood at `cutoff_ts`.

    Operations are taken in log order up to the first one stamped after the cutoff.
    """
    state: Optional[DocumentState] = None
    for index, entry in enumerate(log):
        op = coerce_operation(entry, index)
        if op.timestamp > cutoff_ts:
            break
        state = _apply(state or DocumentState.initial(), op, index, doc_id)
    else:
        if state is None:
            raise EmptyLogError()
    return state or DocumentState.initial()
