from __future__ import annotations

from enum import Enum
from typing import Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class Stage(str, Enum):
    DIRECT = "direct"
    ARRAY_SCAN = "array_scan"
    OBJECT_SCAN = "object_scan"
    KEY_ANCHOR = "key_anchor"
    SALVAGE = "salvage"
    REPAIR = "repair"
    KEY_PATTERN = "key_pattern"


class ExtractionRequest(BaseModel):
    text: str
    candidate_keys: list[str] = Field(default_factory=list)
    validator: Optional[Callable[[Any], bool]] = None


class ExtractionSuccess(BaseModel):
    ok: Literal[True] = True
    value: Any
    stage: Stage


class ExtractionFailure(BaseModel):
    ok: Literal[False] = False
    reason: str


ExtractionOutcome = Union[ExtractionSuccess, ExtractionFailure]


class Flashcard(BaseModel):
    model_config = ConfigDict(extra="ignore")

    question: str = Field(..., min_length=1)
    answer: str = Field(..., min_length=1)
    difficulty: Optional[int] = None


class QuizQuestion(BaseModel):
    model_config = ConfigDict(extra="ignore")

    question: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=2)
    correct_answer: int = Field(..., ge=0)
    difficulty: Optional[int] = None
    explanation: Optional[str] = None
