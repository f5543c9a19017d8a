"""Question graph model for the tax interview.

Questions are plain data. Conditional flow is expressed with declarative
``SkipRule`` objects attached to a question: when the referenced answer is
present and satisfies the rule's condition, the listed downstream questions
are bypassed. The "next" question is therefore computed at answer time
from the graph's declared order plus the current bypass set.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class AnswerType(str, Enum):
    """Supported answer types."""

    TEXT = "text"
    NUMBER = "number"
    CHOICE = "choice"
    DATE = "date"
    BOOLEAN = "boolean"


# ============================================================================
# Constraints
# ============================================================================


@dataclass(frozen=True)
class NumberRange:
    """Inclusive bounds for a number answer."""

    min: Decimal | None = None
    max: Decimal | None = None
    integer: bool = False
    error_message: str = "Please enter a valid number."

    def describe(self) -> dict[str, Any]:
        return {
            "kind": "range",
            "min": self.min,
            "max": self.max,
            "integer": self.integer,
            "error_message": self.error_message,
        }


@dataclass(frozen=True)
class TextPattern:
    """Regular expression a free-text answer must fully match (case-insensitive)."""

    pattern: str
    error_message: str = "Please enter a value in the expected format."

    def describe(self) -> dict[str, Any]:
        return {"kind": "pattern", "pattern": self.pattern, "error_message": self.error_message}


@dataclass(frozen=True)
class ChoiceOptions:
    """Fixed, ordered set of valid option strings."""

    options: tuple[str, ...]

    def describe(self) -> dict[str, Any]:
        return {"kind": "choice", "options": list(self.options)}


Constraint = NumberRange | TextPattern | ChoiceOptions


# ============================================================================
# Skip conditions
# ============================================================================


@dataclass(frozen=True)
class Equals:
    """Satisfied when the answer equals ``value`` (strings compare case-insensitively)."""

    value: Any

    def matches(self, answer: Any) -> bool:
        if isinstance(answer, str) and isinstance(self.value, str):
            return answer.casefold() == self.value.casefold()
        if isinstance(answer, bool) or isinstance(self.value, bool):
            return answer is self.value
        return answer == self.value


@dataclass(frozen=True)
class Truthy:
    """Satisfied when ``bool(answer)`` equals ``expected``."""

    expected: bool = True

    def matches(self, answer: Any) -> bool:
        return bool(answer) is self.expected


@dataclass(frozen=True)
class InRange:
    """Satisfied when a numeric answer lies within ``[min, max]``."""

    min: Decimal | int | None = None
    max: Decimal | int | None = None

    def matches(self, answer: Any) -> bool:
        if answer is None or isinstance(answer, bool):
            return False
        if not isinstance(answer, (int, Decimal)):
            return False
        if self.min is not None and answer < self.min:
            return False
        if self.max is not None and answer > self.max:
            return False
        return True


SkipCondition = Equals | Truthy | InRange


@dataclass(frozen=True)
class SkipRule:
    """Bypass ``skips`` when the answer to ``source`` satisfies ``condition``.

    Attributes:
        source: Identifier of the question whose answer is tested.
        condition: Predicate evaluated against that answer.
        skips: Identifiers of downstream questions to bypass.
    """

    source: str
    condition: SkipCondition
    skips: tuple[str, ...]

    def applies(self, answers: Mapping[str, Any]) -> bool:
        if self.source not in answers:
            return False
        return self.condition.matches(answers[self.source])


# ============================================================================
# Questions and the graph
# ============================================================================


@dataclass(frozen=True)
class Question:
    """A single interview question."""

    id: str
    prompt: str
    answer_type: AnswerType
    required: bool = True
    help_text: str | None = None
    constraint: Constraint | None = None
    skip_rules: tuple[SkipRule, ...] = ()

    @property
    def options(self) -> tuple[str, ...]:
        if isinstance(self.constraint, ChoiceOptions):
            return self.constraint.options
        return ()

    def describe_validation(self) -> dict[str, Any] | None:
        """Validation descriptor for external renderers."""
        if self.constraint is None:
            return None
        return self.constraint.describe()


class QuestionGraphError(ValueError):
    """Raised when a question graph is structurally inconsistent."""


@dataclass(frozen=True)
class QuestionGraph:
    """Ordered question catalog plus its skip rules.

    The declared order of ``questions`` is the traversal order. ``entry``
    defaults to the first question.
    """

    questions: tuple[Question, ...]
    entry: str = ""
    _index: dict[str, int] = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.questions:
            raise QuestionGraphError("question graph is empty")

        index: dict[str, int] = {}
        for position, question in enumerate(self.questions):
            if question.id in index:
                raise QuestionGraphError(f"duplicate question id: {question.id}")
            index[question.id] = position
            if question.answer_type is AnswerType.CHOICE and not question.options:
                raise QuestionGraphError(f"choice question {question.id} has no options")

        if not self.entry:
            object.__setattr__(self, "entry", self.questions[0].id)
        if self.entry not in index:
            raise QuestionGraphError(f"entry question {self.entry!r} is not in the graph")

        for question in self.questions:
            for rule in question.skip_rules:
                if rule.source not in index:
                    raise QuestionGraphError(
                        f"skip rule on {question.id} references unknown question {rule.source!r}"
                    )
                for target in rule.skips:
                    if target not in index:
                        raise QuestionGraphError(
                            f"skip rule on {question.id} bypasses unknown question {target!r}"
                        )
                    if index[target] <= index[rule.source]:
                        raise QuestionGraphError(
                            f"skip rule on {question.id} bypasses {target!r}, "
                            f"which does not come after {rule.source!r}"
                        )

        object.__setattr__(self, "_index", index)

    def __len__(self) -> int:
        return len(self.questions)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._index

    def get(self, question_id: str) -> Question:
        """Return a question by id.

        Raises:
            KeyError: If the id is not part of the graph.
        """
        return self.questions[self._index[question_id]]

    def position(self, question_id: str) -> int:
        return self._index[question_id]

    @property
    def skip_rules(self) -> Iterable[SkipRule]:
        for question in self.questions:
            yield from question.skip_rules

    def bypassed(self, answers: Mapping[str, Any]) -> frozenset[str]:
        """Compute the bypass set from every rule whose source answer is present."""
        skipped: set[str] = set()
        for rule in self.skip_rules:
            if rule.applies(answers):
                skipped.update(rule.skips)
        return frozenset(skipped)

    def next_question(
        self, answers: Mapping[str, Any], bypassed: frozenset[str] | None = None
    ) -> str | None:
        """First question in declared order that is neither answered nor bypassed.

        Returns:
            The question id, or None when the graph is exhausted.
        """
        skipped = self.bypassed(answers) if bypassed is None else bypassed
        for question in self.questions:
            if question.id in answers or question.id in skipped:
                continue
            return question.id
        return None
