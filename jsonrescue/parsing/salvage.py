from __future__ import annotations

import logging
from typing import Any

from jsonrescue.parsing.scanner import find_balanced_span
from jsonrescue.parsing.utils import try_load_json

logger = logging.getLogger(__name__)

_SEPARATORS = frozenset(" \t\r\n,")


def salvage_array(array_text: str, log_failures: bool = False) -> list[Any]:
    """Recover the leading whole objects of an array whose tail is broken.

    Each element is either parsed in full or dropped together with
    everything after it. Never raises.
    """
    text = array_text.lstrip()
    if not text.startswith("["):
        return []
    items: list[Any] = []
    idx = 1
    length = len(text)
    while idx < length:
        while idx < length and text[idx] in _SEPARATORS:
            idx += 1
        if idx >= length or text[idx] == "]":
            break
        if text[idx] != "{":
            logger.debug("salvage stopped at unexpected %r after %d items", text[idx], len(items))
            break
        span = find_balanced_span(text, "{", idx)
        if span is None:
            logger.debug("salvage stopped at truncated element after %d items", len(items))
            break
        parsed = try_load_json(text[span.start : span.end], "salvage_array", log_failures)
        if parsed is None:
            logger.debug("salvage stopped at malformed element after %d items", len(items))
            break
        items.append(parsed)
        idx = span.end
    return items
