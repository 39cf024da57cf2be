"""String-aware bracket scanning.

Brackets that appear inside quoted string values are literal text, not
structure. Every scan walks the characters with a small state machine
(``ScanState``) so that only brackets seen in the ``NORMAL`` state move the
nesting depth.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple, Optional

_CLOSERS = {"{": "}", "[": "]"}


class ScanState(Enum):
    NORMAL = "normal"
    IN_STRING = "in_string"
    ESCAPED = "escaped"


class Span(NamedTuple):
    """Half-open ``[start, end)`` range over the scanned text."""

    start: int
    end: int


def _advance(state: ScanState, ch: str) -> ScanState:
    if state is ScanState.ESCAPED:
        return ScanState.IN_STRING
    if state is ScanState.IN_STRING:
        if ch == "\\":
            return ScanState.ESCAPED
        if ch == '"':
            return ScanState.NORMAL
        return state
    if ch == '"':
        return ScanState.IN_STRING
    return state


def find_balanced_span(text: str, open_char: str, start: int = 0) -> Optional[Span]:
    """Return the span of the first balanced ``open_char`` group at or after ``start``.

    Returns ``None`` when ``open_char`` never occurs or its group is never
    closed before the text ends.
    """
    if open_char not in _CLOSERS:
        raise ValueError(f"unsupported opening delimiter: {open_char!r}")
    close_char = _CLOSERS[open_char]
    start_idx = text.find(open_char, start)
    if start_idx == -1:
        return None

    state = ScanState.NORMAL
    depth = 0
    for idx in range(start_idx, len(text)):
        ch = text[idx]
        if state is not ScanState.NORMAL or ch == '"':
            state = _advance(state, ch)
            continue
        if ch == open_char:
            depth += 1
        elif ch == close_char:
            depth -= 1
            if depth == 0:
                return Span(start_idx, idx + 1)
    return None


def find_balanced(text: str, open_char: str, start: int = 0) -> Optional[str]:
    span = find_balanced_span(text, open_char, start)
    if span is None:
        return None
    return text[span.start : span.end]


def closing_sequence(text: str) -> str:
    """Closers needed to balance every ``{``/``[`` left open outside strings."""
    stack: list[str] = []
    state = ScanState.NORMAL
    for ch in text:
        if state is not ScanState.NORMAL or ch == '"':
            state = _advance(state, ch)
            continue
        if ch in _CLOSERS:
            stack.append(_CLOSERS[ch])
        elif stack and ch == stack[-1]:
            stack.pop()
    return "".join(reversed(stack))
