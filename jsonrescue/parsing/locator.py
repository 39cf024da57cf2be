from __future__ import annotations

from typing import Optional

from jsonrescue.parsing.scanner import Span, find_balanced_span


def find_array_start_after_key(text: str, key: str) -> int:
    key_idx = text.find(f'"{key}"')
    if key_idx == -1:
        return -1
    return text.find("[", key_idx)


def locate_array_after_key(text: str, key: str) -> Optional[Span]:
    """Find the balanced array that follows the quoted ``key`` label.

    The surrounding object does not need to parse; only the array itself has
    to be balanced.
    """
    bracket_idx = find_array_start_after_key(text, key)
    if bracket_idx == -1:
        return None
    return find_balanced_span(text, "[", bracket_idx)
