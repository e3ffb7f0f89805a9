import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from collab_history.config import settings
from collab_history.core.errors import ApplyError, EmptyLogError, HistoryError, MergeAlignmentError
from collab_history.core.history.models import Chunk, DiffPart, DocumentState
from collab_history.core.protocol.messages import (
    AppendOpAck,
    ChunkOut,
    DiffPartOut,
    DocumentStateOut,
    MergedDiffOut,
    Operation,
)
from collab_history.persistence.memory import InMemoryPersistence
from collab_history.services.history_service import HistoryService

logger = logging.getLogger(__name__)

router = APIRouter()

_persistence = InMemoryPersistence()
_history_service = HistoryService(
    persistence=_persistence,
    threshold_ms=settings.chunk_threshold_ms,
    max_workers=settings.replay_workers,
)


class ReplayRequest(BaseModel):
    doc_ids: list[str] = Field(min_length=1)
    threshold_ms: Optional[int] = Field(default=None, ge=0)


def get_history_service() -> HistoryService:
    return _history_service


def _state_out(state: DocumentState) -> DocumentStateOut:
    return DocumentStateOut(version=state.version, text=state.text)


def _part_out(part: DiffPart) -> DiffPartOut:
    return DiffPartOut(value=part.value, kind=part.kind.value, added=part.added, removed=part.removed)


def _chunk_out(chunk: Chunk) -> ChunkOut:
    return ChunkOut(
        baseline=_state_out(chunk.baseline),
        end=_state_out(chunk.end),
        diff=[_part_out(p) for p in chunk.diff],
    )


def _http_error(doc_id: str, exc: HistoryError) -> HTTPException:
    logger.warning("history request failed: %s", exc, extra={"doc_id": doc_id})
    if isinstance(exc, EmptyLogError):
        return HTTPException(status_code=404, detail={"code": "empty_log"})
    if isinstance(exc, ApplyError):
        return HTTPException(status_code=422, detail={"code": exc.reason.value, "index": exc.index})
    if isinstance(exc, MergeAlignmentError):
        return HTTPException(status_code=409, detail={"code": "merge_alignment", "diff_index": exc.diff_index})
    return HTTPException(status_code=500, detail={"code": "history_error"})


@router.post("/docs/{doc_id}/ops")
def append_op(doc_id: str, op: Operation) -> AppendOpAck:
    seq = get_history_service().append_op(doc_id=doc_id, op=op)
    return AppendOpAck(doc_id=doc_id, seq=seq)


@router.get("/docs/{doc_id}/chunks")
def chunked_diffs(doc_id: str, threshold_ms: Optional[int] = Query(default=None, ge=0)) -> list[ChunkOut]:
    try:
        chunks = get_history_service().chunked_diffs(doc_id, threshold_ms)
    except HistoryError as exc:
        raise _http_error(doc_id, exc) from exc
    return [_chunk_out(c) for c in chunks]


@router.get("/docs/{doc_id}/merged")
def merged_diff(doc_id: str, threshold_ms: Optional[int] = Query(default=None, ge=0)) -> MergedDiffOut:
    try:
        merged = get_history_service().merged_diff(doc_id, threshold_ms)
    except HistoryError as exc:
        raise _http_error(doc_id, exc) from exc
    return MergedDiffOut(doc_id=doc_id, parts=[_part_out(p) for p in merged.parts])


@router.get("/docs/{doc_id}/historical/{cutoff_ts}")
def historical(doc_id: str, cutoff_ts: int) -> DocumentStateOut:
    try:
        state = get_history_service().historical(doc_id, cutoff_ts)
    except HistoryError as exc:
        raise _http_error(doc_id, exc) from exc
    return _state_out(state)


@router.post("/replay")
async def replay_documents(request: ReplayRequest) -> dict[str, list[ChunkOut]]:
    try:
        results = await get_history_service().replay_documents(request.doc_ids, request.threshold_ms)
    except HistoryError as exc:
        raise _http_error(",".join(request.doc_ids), exc) from exc
    return {doc_id: [_chunk_out(c) for c in chunks] for doc_id, chunks in results.items()}
