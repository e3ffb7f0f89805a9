from __future__ import annotations

import threading
from typing import Dict, List

from collab_history.core.protocol.messages import Operation
from collab_history.persistence.base import OpRecord, Persistence


class InMemoryPersistence(Persistence):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._logs: Dict[str, List[OpRecord]] = {}

    def append_op(self, doc_id: str, op: Operation) -> OpRecord:
        with self._lock:
            log = self._logs.setdefault(doc_id, [])
            record = OpRecord(doc_id=doc_id, seq=len(log) + 1, op=op)
            log.append(record)
            return record

    def get_ops(self, doc_id: str) -> list[OpRecord]:
        with self._lock:
            return list(self._logs.get(doc_id, []))
