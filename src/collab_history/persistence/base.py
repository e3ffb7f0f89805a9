from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from collab_history.core.protocol.messages import Operation


@dataclass(frozen=True)
class OpRecord:
    doc_id: str
    seq: int
    op: Operation


class Persistence(Protocol):
    def append_op(self, doc_id: str, op: Operation) -> OpRecord: ...

    def get_ops(self, doc_id: str) -> list[OpRecord]: ...
