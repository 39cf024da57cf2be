from __future__ import annotations

NO_VALID_JSON_MESSAGE = "No valid JSON found in text after all parsing attempts."


class ExtractionExhausted(ValueError):
    """Raised when no extraction stage produced an accepted value."""

    def __init__(self, message: str = NO_VALID_JSON_MESSAGE):
        super().__init__(message)
