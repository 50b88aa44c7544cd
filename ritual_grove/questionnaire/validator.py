"""Answer validation by question type and manifest rules."""

from __future__ import annotations

import os
import re
from email.utils import parseaddr
from pathlib import PurePath
from typing import Any, Callable
from urllib.parse import urlparse

from ritual_grove.errors import AnswerValidationError
from ritual_grove.manifest import Question, QuestionType, ValidationRule
from ritual_grove.values import TRUTHY_WORDS, is_empty

ValidationFunc = Callable[[Any], None]
"""A custom validator raises ``ValueError`` (or any exception) to reject a value."""

_EMAIL_RE = re.compile(r"^[^@\s<>()\[\],;:\"]+@[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]*[A-Za-z0-9])?)*$")


class Validator:
    """Validates answers against question constraints.

    Custom validators are registered by name and referenced from a
    question's ``validate.custom`` rule.
    """

    def __init__(self) -> None:
        self._custom: dict[str, ValidationFunc] = {}

    def register(self, name: str, fn: ValidationFunc) -> None:
        """Register (or replace) a named custom validator."""
        self._custom[name] = fn

    def validate(self, question: Question, value: Any) -> None:
        """Validate *value* for *question*.

        Raises:
            AnswerValidationError: Describing the first rule that failed.
        """
        try:
            self._validate(question, value)
        except AnswerValidationError:
            raise
        except ValueError as exc:
            raise AnswerValidationError(question.name, str(exc)) from exc

    def _validate(self, question: Question, value: Any) -> None:
        if is_empty(value):
            if question.required:
                raise ValueError("answer is required")
            return

        self._validate_type(question, value)
        if question.validation is not None:
            self._validate_rules(question.validation, value)

    # -- Type checks -----------------------------------------------------------

    def _validate_type(self, question: Question, value: Any) -> None:
        kind = question.type
        if kind in (QuestionType.TEXT, QuestionType.PASSWORD):
            _require_str(value)
        elif kind is QuestionType.CHOICE:
            _require_str(value)
            if question.choices and value not in question.choices:
                raise ValueError(f"invalid choice: {value} (must be one of: {', '.join(question.choices)})")
        elif kind is QuestionType.MULTI_CHOICE:
            if not isinstance(value, (list, tuple)):
                raise ValueError("expected a list of strings")
            for item in value:
                if not isinstance(item, str):
                    raise ValueError("expected string values in list")
                if question.choices and item not in question.choices:
                    raise ValueError(f"invalid choice: {item} (must be one of: {', '.join(question.choices)})")
        elif kind is QuestionType.BOOLEAN:
            if not isinstance(value, bool):
                raise ValueError("expected boolean value")
        elif kind is QuestionType.NUMBER:
            _to_number(value)
        elif kind is QuestionType.PATH:
            _validate_path(value)
        elif kind is QuestionType.URL:
            _require_str(value)
            if not urlparse(value).scheme:
                raise ValueError("URL must have a scheme (http, https, etc.)")
        elif kind is QuestionType.EMAIL:
            _validate_email(value)

    # -- Rule checks -----------------------------------------------------------

    def _validate_rules(self, rules: ValidationRule, value: Any) -> None:
        if rules.pattern:
            if not isinstance(value, str):
                raise ValueError("pattern validation requires string value")
            try:
                matched = re.search(rules.pattern, value)
            except re.error as exc:
                raise ValueError(f"invalid regex pattern: {exc}") from exc
            if matched is None:
                raise ValueError("value does not match required pattern")

        if rules.min is not None or rules.max is not None:
            number = _to_number(value)
            if rules.min is not None and number < rules.min:
                raise ValueError(f"value must be at least {_fmt(rules.min)}")
            if rules.max is not None and number > rules.max:
                raise ValueError(f"value must be at most {_fmt(rules.max)}")

        if rules.min_len is not None or rules.max_len is not None:
            if not isinstance(value, str):
                raise ValueError("length validation requires string value")
            if rules.min_len is not None and len(value) < rules.min_len:
                raise ValueError(f"value must be at least {rules.min_len} characters")
            if rules.max_len is not None and len(value) > rules.max_len:
                raise ValueError(f"value must be at most {rules.max_len} characters")

        if rules.custom:
            fn = self._custom.get(rules.custom)
            if fn is None:
                raise ValueError(f"custom validator not found: {rules.custom}")
            fn(value)


def _require_str(value: Any) -> None:
    if not isinstance(value, str):
        raise ValueError("expected string value")


def _to_number(value: Any) -> float:
    if isinstance(value, bool):
        raise ValueError("expected numeric value")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            raise ValueError("expected numeric value") from None
    raise ValueError("expected numeric value")


def _fmt(number: float) -> str:
    return str(int(number)) if float(number).is_integer() else str(number)


def _validate_path(value: Any) -> None:
    _require_str(value)
    if "\x00" in value:
        raise ValueError(f"invalid path: {value!r}")
    normalised = os.path.normpath(value)
    if normalised == os.curdir or normalised.strip("/") == "":
        raise ValueError(f"invalid path: {value}")
    if os.path.isabs(normalised):
        return
    if ".." in PurePath(normalised).parts:
        raise ValueError(f"invalid path: {value}")


def _validate_email(value: Any) -> None:
    _require_str(value)
    name, address = parseaddr(value)
    if not address or not _EMAIL_RE.match(address):
        raise ValueError(f"invalid email address: {value}")


def convert_value(text: str, target: QuestionType) -> Any:
    """Convert raw prompt text into the value shape expected for *target*.

    Raises:
        ValueError: If a number cannot be parsed.
    """
    if target is QuestionType.BOOLEAN:
        return text.strip().lower() in TRUTHY_WORDS
    if target is QuestionType.NUMBER:
        try:
            return int(text)
        except ValueError:
            pass
        try:
            return float(text)
        except ValueError:
            raise ValueError(f"invalid number: {text}") from None
    if target is QuestionType.MULTI_CHOICE:
        return [part.strip() for part in text.split(",") if part.strip()]
    return text
