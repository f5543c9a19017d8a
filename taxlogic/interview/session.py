"""Interview session state and its serializable forms."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from taxlogic.interview.parser import ValidationFailure
from taxlogic.interview.questions import Question


class SessionStatus(str, Enum):
    """Lifecycle status of an interview session."""

    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Exchange:
    """One raw submission, kept for audit and replay."""

    question_id: str
    raw: str
    accepted: bool
    reason: str | None = None
    at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class InterviewSession:
    """Mutable state of one filer's interview.

    Only ``InterviewStateMachine`` mutates a session; callers treat it as
    read-only. ``answers`` preserves insertion order, which is the order the
    answers were given.

    Attributes:
        session_id: Stable identifier of the session.
        tax_year: Tax year being filed.
        current_question_id: Question awaiting an answer, None once complete.
        status: Lifecycle status (driven by the lifecycle state machine).
        answers: Typed answers keyed by question id.
        bypassed: Question ids bypassed by skip rules so far.
        exchanges: Audit log of every raw submission.
        validation_error: Pending validation failure, cleared on the next valid answer.
        validation_errors: Log of every validation failure reason.
    """

    session_id: str
    tax_year: int
    current_question_id: str | None
    status: SessionStatus = SessionStatus.IN_PROGRESS
    answers: dict[str, Any] = field(default_factory=dict)
    bypassed: frozenset[str] = frozenset()
    exchanges: list[Exchange] = field(default_factory=list)
    validation_error: ValidationFailure | None = None
    validation_errors: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def is_complete(self) -> bool:
        return self.status is SessionStatus.COMPLETE


class Progress(BaseModel):
    answered: int = Field(..., ge=0)
    total: int = Field(..., ge=0, description="Questions reachable given the current skip set")


class QuestionPayload(BaseModel):
    """Full metadata of a question, for rendering by an external layer."""

    id: str
    prompt: str
    answer_type: str
    required: bool
    options: list[str] = Field(default_factory=list)
    validation: dict[str, Any] | None = None
    help_text: str | None = None
    progress: Progress

    @classmethod
    def from_question(cls, question: Question, progress: Progress) -> "QuestionPayload":
        validation = question.describe_validation()
        if validation is not None:
            validation = {
                key: (str(value) if key in ("min", "max") and value is not None else value)
                for key, value in validation.items()
            }
        return cls(
            id=question.id,
            prompt=question.prompt,
            answer_type=question.answer_type.value,
            required=question.required,
            options=list(question.options),
            validation=validation,
            help_text=question.help_text,
            progress=progress,
        )


class SessionSnapshot(BaseModel):
    """Persistence record of a session.

    ``answers`` holds JSON-compatible values (numbers as strings, dates as
    ISO strings) in the order they were given.
    """

    session_id: str = Field(..., min_length=1)
    tax_year: int
    current_question_id: str | None = None
    answers: dict[str, Any] = Field(default_factory=dict)
    validation_errors: list[str] = Field(default_factory=list)
