"""pytest configuration for collab-history.

This file ensures that the project source directory is available on the
Python import path when running tests, and provides small helpers for
building operation logs.

Location:
- tests/conftest.py
"""

import os
import sys

from hypothesis import strategies as st


def pytest_configure() -> None:
    """Configure pytest to include the src directory in sys.path."""

    # Resolve repository root (one level above the tests directory)
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

    # Resolve src directory
    src_path = os.path.join(repo_root, "src")

    # Prepend src to sys.path to allow absolute imports in tests
    if src_path not in sys.path:
        sys.path.insert(0, src_path)


def insert(ts: int, p: int, text: str, v=None) -> dict:
    return {"v": v, "m": {"ts": ts}, "op": [{"p": p, "i": text}]}


def delete(ts: int, p: int, text: str, v=None) -> dict:
    return {"v": v, "m": {"ts": ts}, "op": [{"p": p, "d": text}]}


def create(ts: int, text: str = "") -> dict:
    return {"v": 0, "m": {"ts": ts}, "create": {"type": "text", "data": text}}


@st.composite
def edit_logs(draw):
    """Random insert/delete logs paired with the text they should produce."""
    text = ""
    ts = 0
    log = []
    for _ in range(draw(st.integers(min_value=1, max_value=15))):
        ts += draw(st.sampled_from([1, 40, 500]))
        if text and draw(st.booleans()):
            p = draw(st.integers(min_value=0, max_value=len(text) - 1))
            n = draw(st.integers(min_value=1, max_value=len(text) - p))
            log.append(delete(ts, p, text[p : p + n]))
            text = text[:p] + text[p + n :]
        else:
            p = draw(st.integers(min_value=0, max_value=len(text)))
            s = draw(st.sampled_from(["a", "b\n", "cd\n", "\n", "x y"]))
            log.append(insert(ts, p, s))
            text = text[:p] + s + text[p:]
    return log, text
