from __future__ import annotations

import asyncio
import logging
import os
from concurrent.futures import Executor, ProcessPoolExecutor
from typing import Dict, Iterable, List, Optional

from collab_history.core.history.merge import merge_chunk_diffs
from collab_history.core.history.models import Chunk, DocumentState, MergedDiff
from collab_history.core.history.replay import compute_chunked_diffs, state_at
from collab_history.core.protocol.messages import Operation
from collab_history.persistence.base import Persistence


logger = logging.getLogger(__name__)


def _replay_log(doc_id: str, ops: List[Operation], threshold_ms: int) -> List[Chunk]:
    # Runs in a worker process; must stay a module-level function to be picklable.
    return compute_chunked_diffs(ops, threshold_ms, doc_id)


class HistoryService:
    def __init__(
        self,
        persistence: Persistence,
        threshold_ms: int,
        executor: Optional[Executor] = None,
        max_workers: Optional[int] = None,
    ) -> None:
        self._persistence = persistence
        self._threshold_ms = threshold_ms
        self._executor = executor
        self._owns_executor = executor is None
        self._max_workers = max_workers or os.cpu_count() or 1

    def append_op(self, doc_id: str, op: Operation) -> int:
        record = self._persistence.append_op(doc_id=doc_id, op=op)
        logger.info("op appended", extra={"doc_id": doc_id, "version": record.seq})
        return record.seq

    def get_log(self, doc_id: str) -> List[Operation]:
        return [rec.op for rec in self._persistence.get_ops(doc_id)]

    def chunked_diffs(self, doc_id: str, threshold_ms: Optional[int] = None) -> List[Chunk]:
        ops = self.get_log(doc_id)
        logger.info("replay start", extra={"doc_id": doc_id, "version": len(ops)})
        chunks = compute_chunked_diffs(ops, self._resolve_threshold(threshold_ms), doc_id)
        logger.info("replay done: %d chunks", len(chunks), extra={"doc_id": doc_id, "version": len(ops)})
        return chunks

    def merged_diff(self, doc_id: str, threshold_ms: Optional[int] = None) -> MergedDiff:
        chunks = self.chunked_diffs(doc_id, threshold_ms)
        return merge_chunk_diffs(chunk.diff for chunk in chunks)

    def historical(self, doc_id: str, cutoff_ts: int) -> DocumentState:
        return state_at(self.get_log(doc_id), cutoff_ts, doc_id)

    async def replay_documents(self, doc_ids: Iterable[str], threshold_ms: Optional[int] = None) -> Dict[str, List[Chunk]]:
        """Replay several documents in parallel, one executor task per document.

        Each task receives its own materialized log, so tasks share no state. The first
        failing document fails the whole call.
        """
        threshold = self._resolve_threshold(threshold_ms)
        ids = list(dict.fromkeys(doc_ids))
        loop = asyncio.get_running_loop()
        executor = self._get_executor()

        logger.info("parallel replay start: %d documents", len(ids))
        results = await asyncio.gather(
            *(loop.run_in_executor(executor, _replay_log, doc_id, self.get_log(doc_id), threshold) for doc_id in ids)
        )
        logger.info("parallel replay done: %d documents", len(ids))
        return dict(zip(ids, results))

    def close(self) -> None:
        if self._owns_executor and self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _get_executor(self) -> Executor:
        if self._executor is None:
            self._executor = ProcessPoolExecutor(max_workers=self._max_workers)
        return self._executor

    def _resolve_threshold(self, threshold_ms: Optional[int]) -> int:
        return self._threshold_ms if threshold_ms is None else threshold_ms
