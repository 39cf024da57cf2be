from __future__ import annotations

import json
import logging
import re
from typing import Any, Optional

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```[ \t]*(?:[A-Za-z][\w+.-]*)?[ \t]*(?:\r?\n)*")
_FENCE_CLOSE_RE = re.compile(r"(?:\r?\n)*[ \t]*```$")
_FENCED_BLOCK_RE = re.compile(r"```[ \t]*(?:[A-Za-z][\w+.-]*)?\s*(.*?)```", re.DOTALL)


def normalize_text(text: Optional[str]) -> str:
    """Trim the text and drop the code fence a model wraps around its payload."""
    if not text:
        return ""
    stripped = text.strip()
    stripped = _FENCE_OPEN_RE.sub("", stripped, count=1)
    stripped = _FENCE_CLOSE_RE.sub("", stripped, count=1)
    return stripped.strip()


def fenced_block(text: str) -> Optional[str]:
    match = _FENCED_BLOCK_RE.search(text)
    if not match:
        return None
    body = match.group(1).strip()
    return body or None


def try_load_json(candidate: Optional[str], context: str = "", log_failures: bool = False) -> Optional[Any]:
    if not candidate:
        return None
    try:
        return json.loads(candidate, strict=False)
    except (json.JSONDecodeError, RecursionError) as exc:
        if log_failures:
            logger.debug("json parse failed%s: %s", f" in {context}" if context else "", exc)
        return None
