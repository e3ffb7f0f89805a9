"""Tests for log replay, chunk partitioning and historical reconstruction.

These tests validate that:
- Chunks partition the timeline on time gaps and cover every edit, including the
  trailing edits after the last gap
- A bad operation anywhere aborts the whole replay
- The final state matches the log
"""

import logging

import pytest
from hypothesis import given, settings

from collab_history.core.errors import ApplyError, ApplyErrorReason, EmptyLogError
from collab_history.core.history.models import DiffKind, DiffPart, DocumentState, baseline_text, end_text
from collab_history.core.history.replay import compute_chunked_diffs, iter_chunks, replay, state_at

from conftest import create, delete, edit_logs, insert


THRESHOLD = 100_000


def test_empty_log_fails() -> None:
    with pytest.raises(EmptyLogError):
        compute_chunked_diffs([], THRESHOLD)
    with pytest.raises(EmptyLogError):
        replay([])


def test_close_edits_form_one_trailing_chunk() -> None:
    log = [insert(1_000, 0, "a"), insert(1_010, 1, "b")]

    chunks = compute_chunked_diffs(log, THRESHOLD)

    assert len(chunks) == 1
    assert chunks[0].diff == (DiffPart("ab", DiffKind.ADDED),)
    assert chunks[0].baseline == DocumentState.initial()
    assert chunks[0].end.text == "ab"
    assert chunks[0].end.version == 2


def test_gap_closes_chunk_before_applying_next_op() -> None:
    log = [insert(1_000, 0, "a"), insert(201_000, 1, "b")]

    chunks = compute_chunked_diffs(log, THRESHOLD)

    assert len(chunks) == 2
    assert chunks[0].baseline.text == ""
    assert chunks[0].diff == (DiffPart("a", DiffKind.ADDED),)
    assert chunks[1].baseline == DocumentState(version=1, text="a")
    assert chunks[1].diff == (DiffPart("a", DiffKind.REMOVED), DiffPart("ab", DiffKind.ADDED))
    assert end_text(chunks[1].diff) == "ab"


def test_single_operation_log_emits_trailing_chunk() -> None:
    chunks = compute_chunked_diffs([insert(0, 0, "solo")], THRESHOLD)

    assert [c.diff for c in chunks] == [(DiffPart("solo", DiffKind.ADDED),)]


def test_created_document_is_the_first_baseline() -> None:
    log = [create(0, "hello\nend"), insert(10, 6, "mid\n")]

    chunks = compute_chunked_diffs(log, THRESHOLD)

    assert len(chunks) == 1
    assert chunks[0].baseline == DocumentState(version=1, text="hello\nend", created=True)
    assert chunks[0].diff == (
        DiffPart("hello\n", DiffKind.UNCHANGED),
        DiffPart("mid\n", DiffKind.ADDED),
        DiffPart("end", DiffKind.UNCHANGED),
    )


def test_create_only_log_has_no_chunks() -> None:
    assert compute_chunked_diffs([create(0, "starter")], THRESHOLD) == []


def test_window_that_nets_to_no_change_is_dropped() -> None:
    log = [
        create(0, "base"),
        insert(1_000_000, 4, "x"),
        delete(1_000_010, 4, "x"),
        insert(3_000_000, 4, "y"),
    ]

    chunks = compute_chunked_diffs(log, THRESHOLD)

    assert len(chunks) == 1
    assert chunks[0].baseline.version == 3
    assert chunks[0].end.text == "basey"


def test_malformed_operation_aborts_replay() -> None:
    log = [insert(0, 0, "a"), insert(500_000, 1, "b"), insert(500_010, 99, "c"), insert(900_000, 0, "d")]

    with pytest.raises(ApplyError) as excinfo:
        compute_chunked_diffs(log, THRESHOLD)

    assert excinfo.value.reason is ApplyErrorReason.MALFORMED_OPERATION
    assert excinfo.value.index == 2


def test_unreadable_operation_is_malformed() -> None:
    log = [insert(0, 0, "a"), {"m": {"when": 3}}]

    with pytest.raises(ApplyError) as excinfo:
        compute_chunked_diffs(log, THRESHOLD)

    assert excinfo.value.reason is ApplyErrorReason.MALFORMED_OPERATION
    assert excinfo.value.index == 1


def test_version_mismatch_carries_log_index() -> None:
    log = [create(0, ""), insert(5, 0, "a", v=1), insert(9, 0, "b", v=7)]

    with pytest.raises(ApplyError) as excinfo:
        compute_chunked_diffs(log, THRESHOLD)

    assert excinfo.value.reason is ApplyErrorReason.VERSION_MISMATCH
    assert excinfo.value.index == 2


def test_chunks_stream_as_they_seal() -> None:
    consumed = []

    def entries():
        for entry in [insert(0, 0, "a\n"), insert(10, 2, "b\n"), insert(500_000, 4, "c\n"), insert(500_010, 6, "d\n")]:
            consumed.append(entry)
            yield entry

    chunks = iter_chunks(entries(), THRESHOLD)
    first = next(chunks)

    assert end_text(first.diff) == "a\nb"
    assert len(consumed) == 3
    assert len(list(chunks)) == 1


def test_state_at_cutoff() -> None:
    log = [create(100, ""), insert(200, 0, "a"), insert(300, 1, "b")]

    assert state_at(log, 50) == DocumentState.initial()
    assert state_at(log, 250) == DocumentState(version=2, text="a", created=True)
    assert state_at(log, 10_000).text == "ab"
    with pytest.raises(EmptyLogError):
        state_at([], 0)


@given(edit_logs())
@settings(max_examples=200, deadline=None)
def test_replay_matches_log(case) -> None:
    log, expected = case

    final = replay(log)

    assert final.version == len(log)
    assert final.text == expected


@given(edit_logs())
@settings(max_examples=200, deadline=None)
def test_chunk_diffs_chain_to_final_text(case) -> None:
    log, expected = case

    chunks = compute_chunked_diffs(log, 100)

    text = ""
    for chunk in chunks:
        assert baseline_text(chunk.diff) == text
        text = end_text(chunk.diff)
    assert text == expected.strip()


def test_replay_log_records_name_the_document(caplog) -> None:
    log = [insert(0, 0, "a"), insert(500_000, 9, "b")]

    with caplog.at_level(logging.DEBUG, logger="collab_history.core.history.replay"):
        with pytest.raises(ApplyError):
            compute_chunked_diffs(log, THRESHOLD, doc_id="doc-7")

    records = [r for r in caplog.records if r.name == "collab_history.core.history.replay"]
    assert [r.levelno for r in records] == [logging.DEBUG, logging.WARNING]
    assert all(r.doc_id == "doc-7" for r in records)
    assert records[1].op_index == 1
    assert records[1].version == 1
