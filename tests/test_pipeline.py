from __future__ import annotations

import json
import logging
from typing import Any

import pytest

from jsonrescue.config import Settings
from jsonrescue.errors import NO_VALID_JSON_MESSAGE, ExtractionExhausted
from jsonrescue.models import (
    ExtractionFailure,
    ExtractionRequest,
    ExtractionSuccess,
    Flashcard,
    QuizQuestion,
    Stage,
)
from jsonrescue.parsing.pipeline import (
    extract_items,
    extract_json,
    extract_json_array,
    extract_models,
    run_extraction,
    safe_extract_json,
    unwrap_items,
)
from jsonrescue.parsing.validators import all_of, array_of, has_keys, is_array, is_object

FLASHCARD_REPLY = (
    'Sure! Here they are:\n```json\n'
    '{"flashcards":[{"question":"Q1","answer":"A1","difficulty":1}]}\n```'
)
TRUNCATED_REPLY = '[{"q":1},{"q":2},{"q":3'
KEYED_REPLY = (
    'Explanation text... "questions": [{"question":"X","options":["a","b","c","d"],'
    '"correct_answer":0,"difficulty":2}] trailing notes'
)
LOOSE_REPLY = "{question: 'What is 2+2?', answer: '4',}"


def test_fenced_object_after_preamble():
    outcome = safe_extract_json(FLASHCARD_REPLY)
    assert isinstance(outcome, ExtractionSuccess)
    assert outcome.stage == Stage.DIRECT
    assert outcome.value == {"flashcards": [{"question": "Q1", "answer": "A1", "difficulty": 1}]}


def test_truncated_array_is_salvaged():
    outcome = safe_extract_json(TRUNCATED_REPLY)
    assert isinstance(outcome, ExtractionSuccess)
    assert outcome.stage == Stage.SALVAGE
    assert outcome.value == [{"q": 1}, {"q": 2}]


def test_keyed_array_inside_prose():
    value = extract_json(KEYED_REPLY, ["questions"])
    assert value == [
        {"question": "X", "options": ["a", "b", "c", "d"], "correct_answer": 0, "difficulty": 2}
    ]


def test_loose_object_is_repaired():
    outcome = safe_extract_json(LOOSE_REPLY)
    assert isinstance(outcome, ExtractionSuccess)
    assert outcome.stage == Stage.REPAIR
    assert outcome.value == {"question": "What is 2+2?", "answer": "4"}


def test_plain_prose_fails():
    with pytest.raises(ExtractionExhausted) as exc_info:
        extract_json("This is not JSON at all.")
    assert str(exc_info.value) == NO_VALID_JSON_MESSAGE


@pytest.mark.parametrize(
    "payload",
    [
        {"a": 1, "b": [1, 2, {"c": None}], "d": True},
        [{"question": "What does {x} mean?", "answer": "a ] bracket"}],
        {"nested": {"deep": {"list": [[], {}]}}, "quote": 'say "hi"'},
        [],
    ],
)
def test_well_formed_payload_round_trips(payload: Any):
    assert extract_json(json.dumps(payload)) == payload
    assert extract_json(json.dumps(payload, indent=2)) == payload


@pytest.mark.parametrize("opener", ["```json\n", "```\n", "```JSON\n", "``` json\n"])
def test_fence_does_not_change_result(opener: str):
    payload = '{"cards": [{"question": "Q", "answer": "A"}]}'
    assert extract_json(f"{opener}{payload}\n```") == extract_json(payload)


def test_array_embedded_in_prose():
    items = [{"question": "What does [x] mean?", "answer": "a {set}"}, {"question": "Q2", "answer": "A2"}]
    text = f"Here is your data:\n{json.dumps(items)}\nLet me know if you need more!"
    assert extract_json(text) == items


@pytest.mark.parametrize("count", [1, 2, 5])
def test_salvage_returns_exactly_the_complete_items(count: int):
    items = [{"id": idx, "text": f"item {idx} [ok]", "tags": ["a", "b"]} for idx in range(count)]
    body = ", ".join(json.dumps(item) for item in items)
    text = f'[{body}, {{"id": {count}, "text": "cut o'
    outcome = safe_extract_json(text)
    assert isinstance(outcome, ExtractionSuccess)
    assert outcome.value == items


def test_key_anchor_when_earlier_stages_are_rejected():
    text = (
        'Draft [v2 of the set. "questions": '
        '[{"question": "X", "options": ["a", "b"], "correct_answer": 1}] end'
    )
    outcome = safe_extract_json(text, ["questions"], is_array)
    assert isinstance(outcome, ExtractionSuccess)
    assert outcome.stage == Stage.KEY_ANCHOR
    assert outcome.value == [{"question": "X", "options": ["a", "b"], "correct_answer": 1}]


def test_key_anchor_salvages_truncated_keyed_array():
    text = (
        'Draft [v2. "flashcards": [{"question": "A", "answer": "B"}, '
        '{"question": "C", "answ'
    )
    outcome = safe_extract_json(text, ["flashcards"], is_array)
    assert isinstance(outcome, ExtractionSuccess)
    assert outcome.stage == Stage.SALVAGE
    assert outcome.value == [{"question": "A", "answer": "B"}]


def test_key_anchor_salvages_malformed_keyed_array():
    text = '"items": [{"a": 1}, {"b": 2,}] note'
    outcome = safe_extract_json(text, ["items"], is_array)
    assert isinstance(outcome, ExtractionSuccess)
    assert outcome.stage == Stage.SALVAGE
    assert outcome.value == [{"a": 1}]


def test_key_pattern_is_last_resort():
    text = '{oops "data": {"ok": true}'
    outcome = safe_extract_json(text, ["data"])
    assert isinstance(outcome, ExtractionSuccess)
    assert outcome.stage == Stage.KEY_PATTERN
    assert outcome.value == {"ok": True}


def test_arrays_are_tried_before_objects():
    text = 'Summary {"meta": {"count": 2}} values [1, 2]'
    assert extract_json(text) == [1, 2]
    assert extract_json(text, validator=is_object) == {"meta": {"count": 2}}


def test_validator_rejection_keeps_searching():
    value = extract_json(KEYED_REPLY, ["questions"], array_of(QuizQuestion))
    assert len(value) == 1
    with pytest.raises(ExtractionExhausted):
        extract_json(KEYED_REPLY, ["questions"], array_of(Flashcard))


def test_validator_errors_propagate():
    def _broken(_value: Any) -> bool:
        raise RuntimeError("validator bug")

    with pytest.raises(RuntimeError):
        extract_json('{"a": 1}', validator=_broken)


def test_composed_validators():
    check = all_of(is_object, has_keys("question", "answer"))
    assert extract_json('Card: {"question": "Q", "answer": "A"}', validator=check) == {
        "question": "Q",
        "answer": "A",
    }
    with pytest.raises(ExtractionExhausted):
        extract_json('Card: {"question": "Q"}', validator=check)


@pytest.mark.parametrize(
    "text",
    [FLASHCARD_REPLY, TRUNCATED_REPLY, LOOSE_REPLY, "This is not JSON at all."],
)
def test_extraction_is_idempotent(text: str):
    first = safe_extract_json(text, ["questions"])
    second = safe_extract_json(text, ["questions"])
    assert first == second


@pytest.mark.parametrize(
    "text",
    ["This is not JSON at all.", "", "   ", "time: now", "'quoted'", "42", "true", 'say "hello"'],
)
def test_text_without_brackets_never_succeeds(text: str):
    with pytest.raises(ExtractionExhausted):
        extract_json(text, ["questions", "data"])


def test_failure_outcome_carries_fixed_reason():
    outcome = run_extraction(ExtractionRequest(text="nothing to see"))
    assert isinstance(outcome, ExtractionFailure)
    assert outcome.ok is False
    assert outcome.reason == NO_VALID_JSON_MESSAGE


def test_salvage_can_be_disabled():
    value = extract_json(TRUNCATED_REPLY, settings=Settings(enable_salvage=False))
    assert value == {"q": 1}


def test_repair_can_be_disabled():
    with pytest.raises(ExtractionExhausted):
        extract_json(LOOSE_REPLY, settings=Settings(enable_repair=False))


def test_settings_read_from_environment(monkeypatch):
    monkeypatch.setenv("JSONRESCUE_ENABLE_REPAIR", "false")
    monkeypatch.setenv("JSONRESCUE_CANDIDATE_KEYS", '["cards"]')
    loaded = Settings()
    assert loaded.enable_repair is False
    assert loaded.candidate_keys == ["cards"]


def test_exhaustion_is_logged_without_text(caplog):
    with caplog.at_level(logging.WARNING, logger="jsonrescue.parsing.pipeline"):
        with pytest.raises(ExtractionExhausted):
            extract_json("secret prose only")
    assert "no valid json found" in caplog.text
    assert "secret prose" not in caplog.text


def test_extract_json_array_skips_objects():
    assert extract_json_array(FLASHCARD_REPLY) == [{"question": "Q1", "answer": "A1", "difficulty": 1}]
    with pytest.raises(ExtractionExhausted):
        extract_json_array('{"a": 1}')


@pytest.mark.parametrize(
    "value,expected",
    [
        ([1, 2], [1, 2]),
        ({"cards": [{"a": 1}]}, [{"a": 1}]),
        ({"data": "x", "items": [3]}, [3]),
        ({"other": [1]}, []),
        ("text", []),
    ],
)
def test_unwrap_items(value: Any, expected: list):
    assert unwrap_items(value, ["questions", "cards", "items", "data"]) == expected


def test_extract_items_uses_configured_keys():
    assert extract_items(FLASHCARD_REPLY) == [{"question": "Q1", "answer": "A1", "difficulty": 1}]
    assert extract_items(FLASHCARD_REPLY, settings=Settings(candidate_keys=["cards"])) == []


def test_extract_models_skips_invalid_items():
    text = (
        '{"questions": [{"question": "Q", "options": ["a", "b"], "correct_answer": 1}, '
        '{"question": "bad"}]}'
    )
    records = extract_models(text, QuizQuestion)
    assert records == [QuizQuestion(question="Q", options=["a", "b"], correct_answer=1)]


def test_extract_models_flashcards():
    records = extract_models(FLASHCARD_REPLY, Flashcard)
    assert records == [Flashcard(question="Q1", answer="A1", difficulty=1)]
