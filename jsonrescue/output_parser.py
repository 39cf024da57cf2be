from __future__ import annotations

from typing import Any, Callable, Optional

from langchain_core.exceptions import OutputParserException
from langchain_core.output_parsers import BaseOutputParser
from pydantic import Field

from jsonrescue import config
from jsonrescue.errors import ExtractionExhausted
from jsonrescue.parsing.pipeline import extract_json

_FORMAT_INSTRUCTIONS = (
    "Return ONLY JSON. Do not wrap it in prose. "
    "If you return a list, put it under one of these keys: {keys}."
)


class ResilientJsonOutputParser(BaseOutputParser[Any]):
    """Output parser that recovers JSON from noisy or truncated model replies."""

    candidate_keys: list[str] = Field(default_factory=lambda: list(config.settings.candidate_keys))
    validator: Optional[Callable[[Any], bool]] = None

    def parse(self, text: str) -> Any:
        try:
            return extract_json(text, self.candidate_keys, self.validator)
        except ExtractionExhausted as exc:
            raise OutputParserException(str(exc), llm_output=text) from exc

    def get_format_instructions(self) -> str:
        keys = ", ".join(self.candidate_keys) or "items"
        return _FORMAT_INSTRUCTIONS.format(keys=keys)

    @property
    def _type(self) -> str:
        return "resilient_json"
