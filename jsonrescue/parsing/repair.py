from __future__ import annotations

import re
from typing import Optional

from jsonrescue.parsing.scanner import closing_sequence
from jsonrescue.parsing.utils import try_load_json

_TRAILING_COMMA_RE = re.compile(r",(\s*[}\]])")
_BARE_KEY_RE = re.compile(r"(?<![\w\"'])([A-Za-z_]\w*)(\s*):")


def _drop_trailing_commas(text: str) -> str:
    return _TRAILING_COMMA_RE.sub(r"\1", text)


def _normalize_quotes(text: str) -> str:
    return text.replace("'", '"')


def _quote_bare_keys(text: str) -> str:
    # Matches anywhere, including prose around the payload; the result is
    # only kept if it parses.
    return _BARE_KEY_RE.sub(r'"\1"\2:', text)


def _close_open_groups(text: str) -> str:
    closers = closing_sequence(text)
    if not closers:
        return text
    return text.rstrip().rstrip(",").rstrip() + closers


def repair_json(text: str, log_failures: bool = False) -> Optional[str]:
    """Rewrite common syntax slips and return the text if it then parses."""
    repaired = text.strip()
    if not repaired:
        return None
    repaired = _drop_trailing_commas(repaired)
    repaired = _normalize_quotes(repaired)
    repaired = _quote_bare_keys(repaired)
    repaired = _close_open_groups(repaired)
    if try_load_json(repaired, "repair_json", log_failures) is None:
        return None
    return repaired
