"""Interview module: question graph, answer parsing and session state.

This module provides:
- The question graph model with declarative skip rules
- The default employee assessment question catalog
- The response parser/validator
- The interview state machine and the session store
"""

from taxlogic.interview.catalog import DEFAULT_QUESTIONS, default_question_graph
from taxlogic.interview.parser import (
    ParsedAnswer,
    ValidationFailure,
    normalize_number,
    parse_answer,
)
from taxlogic.interview.questions import (
    AnswerType,
    ChoiceOptions,
    Equals,
    InRange,
    NumberRange,
    Question,
    QuestionGraph,
    QuestionGraphError,
    SkipRule,
    TextPattern,
    Truthy,
)
from taxlogic.interview.session import (
    InterviewSession,
    Progress,
    QuestionPayload,
    SessionSnapshot,
    SessionStatus,
)
from taxlogic.interview.state_machine import (
    InterviewClosed,
    InterviewLifecycle,
    InterviewStateMachine,
    SessionCorrupt,
    SubmitOutcome,
)
from taxlogic.interview.store import SessionNotFound, SessionStore

__all__ = [
    # Question graph
    "AnswerType",
    "ChoiceOptions",
    "Equals",
    "InRange",
    "NumberRange",
    "Question",
    "QuestionGraph",
    "QuestionGraphError",
    "SkipRule",
    "TextPattern",
    "Truthy",
    "DEFAULT_QUESTIONS",
    "default_question_graph",
    # Parser
    "ParsedAnswer",
    "ValidationFailure",
    "normalize_number",
    "parse_answer",
    # Sessions
    "InterviewSession",
    "Progress",
    "QuestionPayload",
    "SessionSnapshot",
    "SessionStatus",
    "InterviewClosed",
    "InterviewLifecycle",
    "InterviewStateMachine",
    "SessionCorrupt",
    "SubmitOutcome",
    "SessionNotFound",
    "SessionStore",
]
