"""Staged extraction of JSON payloads from model output.

Stages run from most to least confident. A stage produces candidates; the
first candidate that is an object or array and passes the caller's validator
is returned, and nothing after it is evaluated.

1. direct parse of the normalized text, then of its fenced block
2. first balanced ``[...]`` (truncated arrays are salvaged)
3. first balanced ``{...}``
4. array after each candidate key, with salvage as a fallback
5. syntax repair of the whole text
6. non-greedy ``"key": {...}`` / ``"key": [...]`` pattern per candidate key
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterator, Optional, Sequence

from pydantic import BaseModel, ValidationError

from jsonrescue import config
from jsonrescue.config import Settings
from jsonrescue.errors import NO_VALID_JSON_MESSAGE, ExtractionExhausted
from jsonrescue.models import (
    ExtractionFailure,
    ExtractionOutcome,
    ExtractionRequest,
    ExtractionSuccess,
    Stage,
)
from jsonrescue.parsing.locator import find_array_start_after_key, locate_array_after_key
from jsonrescue.parsing.repair import repair_json
from jsonrescue.parsing.salvage import salvage_array
from jsonrescue.parsing.scanner import find_balanced
from jsonrescue.parsing.utils import fenced_block, normalize_text, try_load_json
from jsonrescue.parsing.validators import Validator, is_array

logger = logging.getLogger(__name__)


def _key_pattern(key: str) -> re.Pattern[str]:
    return re.compile(
        rf'"{re.escape(key)}"\s*:\s*(\{{[\s\S]*?\}}|\[[\s\S]*?\])',
        re.IGNORECASE,
    )


def _accepts(value: Any, validator: Optional[Validator]) -> bool:
    if not isinstance(value, (dict, list)):
        return False
    return validator is None or bool(validator(value))


def _iter_candidates(
    raw: str, text: str, candidate_keys: Sequence[str], settings: Settings
) -> Iterator[tuple[Stage, Any]]:
    log = settings.log_parse_failures

    def load(candidate: Optional[str], context: str) -> Optional[Any]:
        return try_load_json(candidate, context, log)

    yield Stage.DIRECT, load(text, "direct")
    fenced = fenced_block(raw)
    if fenced is not None:
        yield Stage.DIRECT, load(fenced, "fenced")

    array_text = find_balanced(text, "[")
    if array_text is not None:
        yield Stage.ARRAY_SCAN, load(array_text, "array_scan")
    elif settings.enable_salvage and "[" in text:
        items = salvage_array(text[text.index("[") :], log)
        if items:
            yield Stage.SALVAGE, items

    object_text = find_balanced(text, "{")
    if object_text is not None:
        yield Stage.OBJECT_SCAN, load(object_text, "object_scan")

    for key in candidate_keys:
        span = locate_array_after_key(text, key)
        if span is not None:
            keyed_text = text[span.start : span.end]
            parsed = load(keyed_text, f"key_anchor:{key}")
            if parsed is not None:
                yield Stage.KEY_ANCHOR, parsed
                continue
        else:
            # truncated: salvage from the opening bracket to the end
            anchor = find_array_start_after_key(text, key)
            if anchor == -1:
                continue
            keyed_text = text[anchor:]
        if settings.enable_salvage:
            items = salvage_array(keyed_text, log)
            if items:
                yield Stage.SALVAGE, items

    if settings.enable_repair:
        repaired = repair_json(text, log)
        if repaired is not None:
            yield Stage.REPAIR, load(repaired, "repair")

    for key in candidate_keys:
        match = _key_pattern(key).search(text)
        if not match:
            continue
        parsed = load(match.group(1), f"key_pattern:{key}")
        if isinstance(parsed, dict) and key in parsed:
            parsed = parsed[key]
        yield Stage.KEY_PATTERN, parsed


def _resolve(request: ExtractionRequest, settings: Settings) -> tuple[Stage, Any]:
    text = normalize_text(request.text)
    for stage, value in _iter_candidates(request.text, text, request.candidate_keys, settings):
        if _accepts(value, request.validator):
            logger.debug("json resolved at stage %s", stage.value)
            return stage, value
    logger.warning("no valid json found after all stages (text length %d)", len(request.text or ""))
    raise ExtractionExhausted()


def extract_json(
    text: str,
    candidate_keys: Optional[Sequence[str]] = None,
    validator: Optional[Validator] = None,
    settings: Optional[Settings] = None,
) -> Any:
    """Extract the first acceptable JSON object or array from ``text``.

    Raises ``ExtractionExhausted`` when every stage has been tried.
    """
    request = ExtractionRequest(text=text, candidate_keys=list(candidate_keys or []), validator=validator)
    _, value = _resolve(request, settings or config.settings)
    return value


def run_extraction(request: ExtractionRequest, settings: Optional[Settings] = None) -> ExtractionOutcome:
    try:
        stage, value = _resolve(request, settings or config.settings)
    except ExtractionExhausted as exc:
        return ExtractionFailure(reason=str(exc) or NO_VALID_JSON_MESSAGE)
    return ExtractionSuccess(value=value, stage=stage)


def safe_extract_json(
    text: str,
    candidate_keys: Optional[Sequence[str]] = None,
    validator: Optional[Validator] = None,
    settings: Optional[Settings] = None,
) -> ExtractionOutcome:
    request = ExtractionRequest(text=text, candidate_keys=list(candidate_keys or []), validator=validator)
    return run_extraction(request, settings)


def extract_json_array(
    text: str,
    candidate_keys: Optional[Sequence[str]] = None,
    validator: Optional[Validator] = None,
    settings: Optional[Settings] = None,
) -> list[Any]:
    """Like ``extract_json`` but objects never satisfy the search."""

    def _array_validator(value: Any) -> bool:
        return is_array(value) and (validator is None or bool(validator(value)))

    return extract_json(text, candidate_keys, _array_validator, settings)


def unwrap_items(value: Any, candidate_keys: Sequence[str]) -> list[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        for key in candidate_keys:
            nested = value.get(key)
            if isinstance(nested, list):
                return nested
    return []


def extract_items(
    text: str,
    candidate_keys: Optional[Sequence[str]] = None,
    settings: Optional[Settings] = None,
) -> list[Any]:
    settings = settings or config.settings
    keys = list(candidate_keys) if candidate_keys is not None else list(settings.candidate_keys)
    value = extract_json(text, keys, settings=settings)
    return unwrap_items(value, keys)


def extract_models(
    text: str,
    model: type[BaseModel],
    candidate_keys: Optional[Sequence[str]] = None,
    settings: Optional[Settings] = None,
) -> list[BaseModel]:
    """Extract items and keep the ones that validate against ``model``."""
    records = []
    for idx, item in enumerate(extract_items(text, candidate_keys, settings)):
        try:
            records.append(model.model_validate(item))
        except ValidationError as exc:
            logger.debug("dropping item %d, not a valid %s: %s", idx, model.__name__, exc.error_count())
    return records
