"""Apply a single logged operation to a document state.

Mirrors the text-document subset of ShareDB's `ot.apply`: a version check, then one of
create / edit / delete / no-op, each yielding a new `DocumentState` whose version is one
higher. States are frozen, so the input state is never changed.
"""

from __future__ import annotations

from collab_history.core.errors import ApplyError, ApplyErrorReason
from collab_history.core.history.models import DocumentState
from collab_history.core.protocol.messages import Component, DeleteComponent, InsertComponent, Operation


TEXT_TYPE = "text"


def apply_operation(state: DocumentState, op: Operation) -> DocumentState:
    if op.v is not None and op.v != state.version:
        raise ApplyError(
            ApplyErrorReason.VERSION_MISMATCH,
            f"operation targets version {op.v}, document is at {state.version}",
        )

    if op.create is not None:
        if state.created:
            raise _malformed("document already exists")
        if op.create.type != TEXT_TYPE:
            raise _malformed(f"unsupported document type {op.create.type!r}")
        return DocumentState(version=state.version + 1, text=op.create.data, created=True)

    if op.delete:
        return DocumentState(version=state.version + 1, text="", created=False)

    if op.op is not None:
        text = state.text
        for component in op.op:
            text = _apply_component(text, component)
        return DocumentState(version=state.version + 1, text=text, created=state.created)

    return DocumentState(version=state.version + 1, text=state.text, created=state.created)


def _apply_component(text: str, component: Component) -> str:
    if component.p > len(text):
        raise _malformed(f"position {component.p} is past the end of the text ({len(text)})")

    if isinstance(component, InsertComponent):
        return text[: component.p] + component.i + text[component.p :]

    if isinstance(component, DeleteComponent):
        end = component.p + len(component.d)
        if text[component.p : end] != component.d:
            raise _malformed(f"deleted text does not match the document at position {component.p}")
        return text[: component.p] + text[end:]

    raise _malformed("unknown component")


def _malformed(message: str) -> ApplyError:
    return ApplyError(ApplyErrorReason.MALFORMED_OPERATION, message)
