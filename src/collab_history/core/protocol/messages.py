import json
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class OpMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    ts: int


class CreateData(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str = "text"
    data: str = ""


class InsertComponent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    p: int = Field(ge=0)
    i: str


class DeleteComponent(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    p: int = Field(ge=0)
    d: str


Component = Union[InsertComponent, DeleteComponent]


class Operation(BaseModel):
    """One entry of a document's operation log.

    Exactly one of `create`, `op` or `del` describes the edit; a record with none of
    them is a no-op that still advances the version.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    v: Optional[int] = Field(default=None, ge=0)
    m: OpMeta
    create: Optional[CreateData] = None
    op: Optional[list[Component]] = None
    delete: bool = Field(default=False, alias="del")

    @model_validator(mode="after")
    def check_single_kind(self) -> "Operation":
        kinds = sum((self.create is not None, self.op is not None, self.delete))
        if kinds > 1:
            raise ValueError("operation may carry only one of create, op, del")
        return self

    @property
    def timestamp(self) -> int:
        return self.m.ts


class AppendOpAck(BaseModel):
    type: Literal["op_ack"] = "op_ack"
    doc_id: str
    seq: int


class DocumentStateOut(BaseModel):
    version: int
    text: str


class DiffPartOut(BaseModel):
    value: str
    kind: str
    added: bool
    removed: bool


class ChunkOut(BaseModel):
    baseline: DocumentStateOut
    end: DocumentStateOut
    diff: list[DiffPartOut]


class MergedDiffOut(BaseModel):
    doc_id: str
    parts: list[DiffPartOut]


def parse_operation(raw: Union[str, bytes, Mapping[str, Any]]) -> Operation:
    if isinstance(raw, (str, bytes)):
        data: Any = json.loads(raw)
    else:
        data = raw
    if not isinstance(data, Mapping):
        raise ValueError(f"operation must be an object, got {type(data).__name__}")
    return Operation.model_validate(data)
