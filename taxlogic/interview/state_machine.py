"""Interview state machine.

Two layers:

- ``InterviewLifecycle`` is a python-statemachine ``StateMachine`` bound to
  the session's ``status`` field (in progress -> complete, complete is
  final and absorbing).
- ``InterviewStateMachine`` owns the question graph and implements the
  answer transition: validate, store, evaluate skip rules, advance.

Example:
    >>> machine = InterviewStateMachine()
    >>> session = machine.start(2025)
    >>> outcome = machine.submit(session, "Jane Doe")
    >>> outcome.next_question.id
    'marital_status'
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from statemachine import State, StateMachine
from statemachine.exceptions import TransitionNotAllowed

from taxlogic.core.logging import get_logger
from taxlogic.interview.catalog import default_question_graph
from taxlogic.interview.parser import (
    ParsedAnswer,
    ValidationFailure,
    decode_stored_value,
    encode_value,
    parse_answer,
)
from taxlogic.interview.questions import QuestionGraph
from taxlogic.interview.session import (
    Exchange,
    InterviewSession,
    Progress,
    QuestionPayload,
    SessionSnapshot,
    SessionStatus,
)

logger = get_logger(__name__)


class InterviewClosed(Exception):
    """Raised when an answer is submitted to a completed session."""

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        super().__init__(f"Interview {session_id} is complete and accepts no further answers")


class SessionCorrupt(Exception):
    """Raised when replaying a snapshot cannot reach a consistent graph position.

    Attributes:
        session_id: Session being restored.
        question_id: The offending question identifier, or None when the
            snapshot itself cannot be decoded.
        reason: What went wrong.
    """

    def __init__(self, session_id: str, question_id: str | None, reason: str) -> None:
        self.session_id = session_id
        self.question_id = question_id
        self.reason = reason
        where = f" at {question_id!r}" if question_id is not None else ""
        super().__init__(f"Session {session_id} is corrupt{where}: {reason}")


class InterviewLifecycle(StateMachine):
    """Lifecycle of an interview session.

    Transitions:
    - record_answer: in_progress -> in_progress
    - finish: in_progress -> complete
    """

    in_progress = State(initial=True, value=SessionStatus.IN_PROGRESS)
    complete = State(final=True, value=SessionStatus.COMPLETE)

    record_answer = in_progress.to.itself()
    finish = in_progress.to(complete)

    def __init__(self, session: InterviewSession) -> None:
        self.session = session
        super().__init__(model=session, state_field="status")

    def on_record_answer(self, question_id: str) -> None:
        self.session.updated_at = datetime.now(UTC)
        logger.debug(
            "answer_recorded",
            session_id=self.session.session_id,
            question_id=question_id,
        )

    def on_finish(self) -> None:
        self.session.current_question_id = None
        logger.info(
            "interview_completed",
            session_id=self.session.session_id,
            tax_year=self.session.tax_year,
            answers=len(self.session.answers),
        )


@dataclass(frozen=True)
class SubmitOutcome:
    """Result of a single answer submission."""

    session: InterviewSession
    accepted: bool
    validation_error: ValidationFailure | None
    next_question: QuestionPayload | None

    @property
    def complete(self) -> bool:
        return self.session.is_complete


class InterviewStateMachine:
    """Drives sessions through a question graph.

    Sessions are passed explicitly to every operation; the machine holds no
    per-filer state and can serve any number of sessions.
    """

    def __init__(self, graph: QuestionGraph | None = None) -> None:
        self.graph = graph or default_question_graph()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def progress(self, session: InterviewSession) -> Progress:
        reachable = [
            q.id
            for q in self.graph.questions
            if q.id in session.answers or q.id not in session.bypassed
        ]
        answered = sum(1 for qid in reachable if qid in session.answers)
        return Progress(answered=answered, total=len(reachable))

    def current_question(self, session: InterviewSession) -> QuestionPayload | None:
        """Metadata of the question awaiting an answer, or None when complete."""
        if session.current_question_id is None:
            return None
        question = self.graph.get(session.current_question_id)
        return QuestionPayload.from_question(question, self.progress(session))

    def effective_answers(self, session: InterviewSession) -> dict[str, Any]:
        """Answers that count, excluding questions bypassed by the final skip set."""
        return {
            qid: value for qid, value in session.answers.items() if qid not in session.bypassed
        }

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, tax_year: int, session_id: str | None = None) -> InterviewSession:
        """Create a session positioned at the graph's entry question."""
        session = InterviewSession(
            session_id=session_id or uuid.uuid4().hex,
            tax_year=tax_year,
            current_question_id=self.graph.entry,
        )
        logger.info(
            "interview_started", session_id=session.session_id, tax_year=tax_year
        )
        return session

    def submit(self, session: InterviewSession, raw: str | None) -> SubmitOutcome:
        """Process one raw answer for the current question.

        Invalid input leaves the position and answers untouched and records
        the failure. Valid input is stored, skip rules are re-evaluated and
        the session advances.

        Raises:
            InterviewClosed: If the session is already complete.
        """
        if session.is_complete or session.current_question_id is None:
            raise InterviewClosed(session.session_id)

        question = self.graph.get(session.current_question_id)
        result = parse_answer(question, raw)

        if isinstance(result, ValidationFailure):
            session.validation_error = result
            session.validation_errors.append(result.reason)
            session.exchanges.append(
                Exchange(question.id, raw or "", accepted=False, reason=result.reason)
            )
            logger.info(
                "answer_rejected",
                session_id=session.session_id,
                question_id=question.id,
                reason=result.reason,
            )
            return SubmitOutcome(
                session=session,
                accepted=False,
                validation_error=result,
                next_question=self.current_question(session),
            )

        session.exchanges.append(Exchange(question.id, raw or "", accepted=True))
        session.validation_error = None
        try:
            self._apply(session, result)
        except TransitionNotAllowed as exc:
            raise InterviewClosed(session.session_id) from exc

        return SubmitOutcome(
            session=session,
            accepted=True,
            validation_error=None,
            next_question=self.current_question(session),
        )

    def _apply(self, session: InterviewSession, answer: ParsedAnswer) -> None:
        """Store an answer, recompute the bypass set and advance."""
        lifecycle = InterviewLifecycle(session)
        session.answers[answer.question_id] = answer.value
        session.bypassed = self.graph.bypassed(session.answers)
        lifecycle.record_answer(question_id=answer.question_id)

        next_id = self.graph.next_question(session.answers, session.bypassed)
        if next_id is None:
            lifecycle.finish()
        else:
            session.current_question_id = next_id

    # ------------------------------------------------------------------
    # Persistence boundary
    # ------------------------------------------------------------------

    def snapshot(self, session: InterviewSession) -> SessionSnapshot:
        """Serializable persistence record of a session."""
        return SessionSnapshot(
            session_id=session.session_id,
            tax_year=session.tax_year,
            current_question_id=session.current_question_id,
            answers={qid: encode_value(value) for qid, value in session.answers.items()},
            validation_errors=list(session.validation_errors),
        )

    def restore(self, snapshot: SessionSnapshot) -> InterviewSession:
        """Rebuild a session by replaying its stored answers in order.

        The resulting position is the one a fresh replay reaches, because
        skip sets may depend on answers given after the node they affect.

        Raises:
            SessionCorrupt: If an answer references an unknown question,
                cannot be decoded, or answers a question that the replay
                has already bypassed or completed.
        """
        session = InterviewSession(
            session_id=snapshot.session_id,
            tax_year=snapshot.tax_year,
            current_question_id=self.graph.entry,
        )

        for question_id, stored in snapshot.answers.items():
            if question_id not in self.graph:
                raise self._corrupt(session, question_id, "question is not part of the graph")
            if session.is_complete:
                raise self._corrupt(session, question_id, "answer recorded after completion")
            if question_id in session.bypassed:
                raise self._corrupt(session, question_id, "answer to a bypassed question")
            try:
                value = decode_stored_value(self.graph.get(question_id), stored)
            except ValueError as exc:
                raise self._corrupt(session, question_id, str(exc)) from exc
            self._apply(session, ParsedAnswer(question_id, value))

        session.validation_errors = list(snapshot.validation_errors)

        if session.current_question_id != snapshot.current_question_id:
            logger.warning(
                "session_position_recomputed",
                session_id=session.session_id,
                stored_position=snapshot.current_question_id,
                replayed_position=session.current_question_id,
            )
        logger.info(
            "session_restored",
            session_id=session.session_id,
            tax_year=session.tax_year,
            answers=len(session.answers),
            complete=session.is_complete,
        )
        return session

    @staticmethod
    def _corrupt(session: InterviewSession, question_id: str, reason: str) -> SessionCorrupt:
        logger.error(
            "session_corrupt",
            session_id=session.session_id,
            question_id=question_id,
            reason=reason,
        )
        return SessionCorrupt(session.session_id, question_id, reason)
