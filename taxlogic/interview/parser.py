"""Response parsing and validation.

``parse_answer`` turns a raw user string into a typed value for a given
question, or a ``ValidationFailure`` with a human-readable reason. It is a
pure function of (question, raw input) and never touches session state.

Number grammar (after stripping ``€``/``EUR`` and whitespace):

- ``1234`` / ``1234.5``: plain decimal. A single ``.`` followed by exactly
  three digits with a 1-3 digit head (``1.234``) is read as a thousands
  separator, matching the local convention.
- ``1.234.567``: repeated ``.ddd`` groups are thousands separators.
- ``1234,56`` / ``1.234,56``: ``,`` followed by one or two trailing digits
  is the decimal separator.
- ``1,234`` / ``1,234.50``: English thousands grouping.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from taxlogic.interview.questions import (
    AnswerType,
    ChoiceOptions,
    NumberRange,
    Question,
    TextPattern,
)

AFFIRMATIVE = frozenset({"ja", "j", "yes", "y", "true", "wahr", "1"})
NEGATIVE = frozenset({"nein", "n", "no", "false", "falsch", "0"})

REQUIRED_MESSAGE = "This question is required. Please enter an answer."
NUMBER_MESSAGE = "Please enter a number."
INTEGER_MESSAGE = "Please enter a whole number."
BOOLEAN_MESSAGE = "Please answer yes or no."
DATE_MESSAGE = "Please enter a date as YYYY-MM-DD or DD.MM.YYYY."

_CURRENCY_RE = re.compile(r"€|EUR", re.IGNORECASE)
_PLAIN_INT_RE = re.compile(r"[0-9]+")
_LOCAL_THOUSANDS_RE = re.compile(r"[1-9][0-9]{0,2}(?:\.[0-9]{3})+")
_PLAIN_DECIMAL_RE = re.compile(r"[0-9]+\.[0-9]+")
_LOCAL_DECIMAL_RE = re.compile(r"(?:[0-9]+|[1-9][0-9]{0,2}(?:\.[0-9]{3})+),[0-9]{1,2}")
_ENGLISH_GROUPED_RE = re.compile(r"[1-9][0-9]{0,2}(?:,[0-9]{3})+(?:\.[0-9]+)?")


@dataclass(frozen=True)
class ValidationFailure:
    """A rejected answer. Returned, never raised."""

    question_id: str
    reason: str


@dataclass(frozen=True)
class ParsedAnswer:
    """A successfully parsed answer. ``value`` is None for skipped optional input."""

    question_id: str
    value: Any


def normalize_number(raw: str) -> Decimal | None:
    """Parse a numeric string in plain, local or English notation.

    Returns:
        The Decimal value, or None if the input is not a number.

    Example:
        >>> normalize_number("1.234,56 €")
        Decimal('1234.56')
    """
    text = "".join(_CURRENCY_RE.sub("", raw).split())
    negative = text.startswith("-")
    if negative or text.startswith("+"):
        text = text[1:]
    if not text:
        return None

    if _PLAIN_INT_RE.fullmatch(text):
        canonical = text
    elif _LOCAL_THOUSANDS_RE.fullmatch(text):
        canonical = text.replace(".", "")
    elif _PLAIN_DECIMAL_RE.fullmatch(text):
        canonical = text
    elif _LOCAL_DECIMAL_RE.fullmatch(text):
        canonical = text.replace(".", "").replace(",", ".")
    elif _ENGLISH_GROUPED_RE.fullmatch(text):
        canonical = text.replace(",", "")
    else:
        return None

    try:
        value = Decimal(canonical)
    except InvalidOperation:
        return None
    return -value if negative else value


def _range_violation(rule: Any, value: Decimal) -> str | None:
    """Return the reason ``value`` breaks a NumberRange, or None if it fits."""
    if not isinstance(rule, NumberRange):
        return None
    if rule.integer and value != value.to_integral_value():
        return INTEGER_MESSAGE
    if rule.min is not None and value < rule.min:
        return rule.error_message
    if rule.max is not None and value > rule.max:
        return rule.error_message
    return None


def _parse_number(question: Question, text: str) -> Any:
    value = normalize_number(text)
    if value is None:
        return ValidationFailure(question.id, NUMBER_MESSAGE)

    rule = question.constraint
    reason = _range_violation(rule, value)
    if reason is not None:
        return ValidationFailure(question.id, reason)
    if isinstance(rule, NumberRange) and rule.integer:
        return int(value)
    return value


def _parse_boolean(question: Question, text: str) -> Any:
    word = text.casefold()
    if word in AFFIRMATIVE:
        return True
    if word in NEGATIVE:
        return False
    return ValidationFailure(question.id, BOOLEAN_MESSAGE)


def _parse_choice(question: Question, text: str) -> Any:
    options = question.options
    wanted = text.casefold()
    for option in options:
        if option.casefold() == wanted:
            return option
    if _PLAIN_INT_RE.fullmatch(text):
        position = int(text)
        if 1 <= position <= len(options):
            return options[position - 1]
    return ValidationFailure(
        question.id, f"Please choose one of the following options: {', '.join(options)}"
    )


def _parse_date(question: Question, text: str) -> Any:
    for fmt in ("%Y-%m-%d", "%d.%m.%Y"):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return ValidationFailure(question.id, DATE_MESSAGE)


def _parse_text(question: Question, text: str) -> Any:
    rule = question.constraint
    if isinstance(rule, TextPattern) and not re.fullmatch(rule.pattern, text, re.IGNORECASE):
        return ValidationFailure(question.id, rule.error_message)
    return text


_PARSERS = {
    AnswerType.NUMBER: _parse_number,
    AnswerType.BOOLEAN: _parse_boolean,
    AnswerType.CHOICE: _parse_choice,
    AnswerType.DATE: _parse_date,
    AnswerType.TEXT: _parse_text,
}


def parse_answer(question: Question, raw: str | None) -> ParsedAnswer | ValidationFailure:
    """Parse and validate a raw answer for ``question``.

    Args:
        question: The question being answered
        raw: Raw user input

    Returns:
        ParsedAnswer with the typed value, or ValidationFailure with a reason
    """
    text = (raw or "").strip()
    if not text:
        if question.required:
            return ValidationFailure(question.id, REQUIRED_MESSAGE)
        return ParsedAnswer(question.id, None)

    result = _PARSERS[question.answer_type](question, text)
    if isinstance(result, ValidationFailure):
        return result
    return ParsedAnswer(question.id, result)


def decode_stored_value(question: Question, value: Any) -> Any:
    """Rebuild a typed answer from its persisted JSON form.

    Raises:
        ValueError: If the stored value does not fit the question type.
    """
    if value is None:
        if question.required:
            raise ValueError("required answer is empty")
        return None

    if question.answer_type is AnswerType.NUMBER:
        if isinstance(value, bool):
            raise ValueError(f"expected a number, got {value!r}")
        try:
            number = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"expected a number, got {value!r}") from exc
        if not number.is_finite():
            raise ValueError(f"expected a finite number, got {value!r}")
        rule = question.constraint
        reason = _range_violation(rule, number)
        if reason is not None:
            raise ValueError(f"{value!r} is out of range: {reason}")
        if isinstance(rule, NumberRange) and rule.integer:
            return int(number)
        return number

    if question.answer_type is AnswerType.BOOLEAN:
        if not isinstance(value, bool):
            raise ValueError(f"expected a boolean, got {value!r}")
        return value

    if question.answer_type is AnswerType.DATE:
        if isinstance(value, date):
            return value
        return date.fromisoformat(str(value))

    if question.answer_type is AnswerType.CHOICE:
        if not isinstance(question.constraint, ChoiceOptions) or value not in question.options:
            raise ValueError(f"{value!r} is not a valid option")
        return value

    if not isinstance(value, str):
        raise ValueError(f"expected text, got {value!r}")
    return value


def encode_value(value: Any) -> Any:
    """Convert a typed answer to a JSON-compatible value."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    return value
