from __future__ import annotations

from typing import Any, Callable

from pydantic import BaseModel, TypeAdapter, ValidationError

Validator = Callable[[Any], bool]


def is_object(value: Any) -> bool:
    return isinstance(value, dict)


def is_array(value: Any) -> bool:
    return isinstance(value, list)


def has_keys(*keys: str) -> Validator:
    def _check(value: Any) -> bool:
        return isinstance(value, dict) and all(key in value for key in keys)

    return _check


def array_of(model: type[BaseModel]) -> Validator:
    """Accept a non-empty list whose every item validates against ``model``."""
    adapter = TypeAdapter(list[model])

    def _check(value: Any) -> bool:
        if not isinstance(value, list) or not value:
            return False
        try:
            adapter.validate_python(value)
        except ValidationError:
            return False
        return True

    return _check


def all_of(*validators: Validator) -> Validator:
    def _check(value: Any) -> bool:
        return all(validator(value) for validator in validators)

    return _check
