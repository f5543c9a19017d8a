"""Interview session and calculation API endpoints."""

import asyncio
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from taxlogic.agents.personal_tax.agent import PersonalTaxAgent
from taxlogic.agents.personal_tax.calculator import DeductionCategory
from taxlogic.api.deps import get_agent, get_registry, get_store
from taxlogic.interview.parser import encode_value
from taxlogic.interview.session import InterviewSession, QuestionPayload, SessionSnapshot
from taxlogic.interview.state_machine import InterviewClosed, SessionCorrupt
from taxlogic.interview.store import SessionNotFound, SessionStore
from taxlogic.tax.registry import RulePackRegistry, RulePackUnavailable, UnsupportedTaxYear

router = APIRouter(prefix="/api/interviews", tags=["interviews"])


# =============================================================================
# Request / Response Models
# =============================================================================


class InterviewCreateRequest(BaseModel):
    """Payload for starting an interview."""

    tax_year: int = Field(ge=2000, le=2100)


class AnswerRequest(BaseModel):
    """Payload for answering the current question."""

    answer: str | None = Field(default=None, max_length=1000)


class InterviewResponse(BaseModel):
    """Interview session response model."""

    session_id: str
    tax_year: int
    status: str
    complete: bool
    current_question: QuestionPayload | None
    answers: dict[str, Any]
    validation_error: str | None = None
    created_at: datetime
    updated_at: datetime


class PersistResponse(BaseModel):
    session_id: str
    path: str


class AnswerResponse(BaseModel):
    """Outcome of one submitted answer."""

    accepted: bool
    validation_error: str | None
    complete: bool
    next_question: QuestionPayload | None


class DeductionResponse(BaseModel):
    category: DeductionCategory
    amount: Decimal
    declared: Decimal
    detail: str


class CreditResponse(BaseModel):
    name: str
    entitled: Decimal
    applied: Decimal
    detail: str


class BracketSliceResponse(BaseModel):
    lower: Decimal
    upper: Decimal | None
    rate: Decimal
    taxed_amount: Decimal
    tax: Decimal


class SuggestionResponse(BaseModel):
    category: str
    title: str
    rationale: str
    estimated_savings: Decimal


class CalculationResponse(BaseModel):
    """Calculation result of an interview session."""

    session_id: str
    tax_year: int
    rule_pack_version: str
    gross_income: Decimal
    deductions: list[DeductionResponse]
    total_deductions: Decimal
    taxable_income: Decimal
    gross_tax: Decimal
    bracket_breakdown: list[BracketSliceResponse]
    marginal_rate: Decimal
    credits: list[CreditResponse]
    total_credits: Decimal
    final_tax: Decimal
    withheld_tax: Decimal
    net_result: Decimal
    effective_rate: Decimal
    warnings: list[str]
    suggestions: list[SuggestionResponse]
    output_paths: list[str]


# =============================================================================
# Helpers
# =============================================================================


def _get_session_or_404(store: SessionStore, session_id: str) -> InterviewSession:
    """Consistent copy of a session, or 404."""
    try:
        return store.detached(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Interview session not found") from exc


def _to_interview_response(store: SessionStore, session: InterviewSession) -> InterviewResponse:
    """Map an interview session to the response model."""
    return InterviewResponse(
        session_id=session.session_id,
        tax_year=session.tax_year,
        status=session.status.value,
        complete=session.is_complete,
        current_question=store.machine.current_question(session),
        answers={qid: encode_value(value) for qid, value in session.answers.items()},
        validation_error=session.validation_error.reason if session.validation_error else None,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


def _unavailable_detail(exc: RulePackUnavailable) -> dict[str, Any]:
    return {"state": exc.state.value, "year": exc.year, "message": str(exc)}


def _corrupt_detail(exc: SessionCorrupt) -> dict[str, str | None]:
    return {"session_id": exc.session_id, "question_id": exc.question_id, "reason": exc.reason}


def _require_supported_year(registry: RulePackRegistry, tax_year: int) -> None:
    """Reject a year outside the registry's offered years with 422."""
    if tax_year not in registry.supported_years:
        exc = UnsupportedTaxYear(tax_year, registry.supported_years)
        raise HTTPException(status_code=422, detail=_unavailable_detail(exc))


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=InterviewResponse, status_code=status.HTTP_201_CREATED)
async def create_interview(
    payload: InterviewCreateRequest,
    store: SessionStore = Depends(get_store),
    registry: RulePackRegistry = Depends(get_registry),
) -> InterviewResponse:
    """Start an interview for a supported tax year."""
    _require_supported_year(registry, payload.tax_year)
    session = store.create(payload.tax_year)
    return _to_interview_response(store, session)


@router.post("/restore", response_model=InterviewResponse)
async def restore_interview(
    snapshot: SessionSnapshot,
    store: SessionStore = Depends(get_store),
    registry: RulePackRegistry = Depends(get_registry),
) -> InterviewResponse:
    """Rebuild a session by replaying a snapshot's answers."""
    _require_supported_year(registry, snapshot.tax_year)
    try:
        session = store.restore(snapshot)
    except SessionCorrupt as exc:
        raise HTTPException(status_code=422, detail=_corrupt_detail(exc)) from exc
    return _to_interview_response(store, session)


@router.get("/{session_id}", response_model=InterviewResponse)
async def get_interview(
    session_id: str,
    store: SessionStore = Depends(get_store),
) -> InterviewResponse:
    """Get the state of an interview session."""
    session = _get_session_or_404(store, session_id)
    return _to_interview_response(store, session)


@router.post("/{session_id}/answers", response_model=AnswerResponse)
async def submit_answer(
    session_id: str,
    payload: AnswerRequest,
    store: SessionStore = Depends(get_store),
) -> AnswerResponse:
    """Answer the current question.

    A rejected answer is not an error: the response carries the reason and
    the same question again.
    """
    try:
        outcome = store.submit(session_id, payload.answer)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Interview session not found") from exc
    except InterviewClosed as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    return AnswerResponse(
        accepted=outcome.accepted,
        validation_error=outcome.validation_error.reason if outcome.validation_error else None,
        complete=outcome.complete,
        next_question=outcome.next_question,
    )


@router.get("/{session_id}/snapshot", response_model=SessionSnapshot)
async def get_interview_snapshot(
    session_id: str,
    store: SessionStore = Depends(get_store),
) -> SessionSnapshot:
    """Get the persistence record of a session."""
    try:
        return store.snapshot(session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Interview session not found") from exc


@router.post("/{session_id}/calculation", response_model=CalculationResponse)
async def calculate_interview(
    session_id: str,
    store: SessionStore = Depends(get_store),
    agent: PersonalTaxAgent = Depends(get_agent),
) -> CalculationResponse:
    """Calculate the tax outcome of a session and export its outputs."""
    session = _get_session_or_404(store, session_id)

    try:
        outcome = await asyncio.to_thread(agent.run, session)
    except UnsupportedTaxYear as exc:
        raise HTTPException(status_code=422, detail=_unavailable_detail(exc)) from exc
    except RulePackUnavailable as exc:
        raise HTTPException(status_code=503, detail=_unavailable_detail(exc)) from exc

    result = asdict(outcome.result)
    return CalculationResponse(
        session_id=outcome.session_id,
        output_paths=outcome.output_paths,
        **result,
    )


@router.post("/{session_id}/persist", response_model=PersistResponse)
async def persist_interview(
    session_id: str,
    store: SessionStore = Depends(get_store),
) -> PersistResponse:
    """Write the session snapshot to storage."""
    try:
        path = await asyncio.to_thread(store.persist, session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Interview session not found") from exc
    return PersistResponse(session_id=session_id, path=path)


@router.post("/{session_id}/load", response_model=InterviewResponse)
async def load_interview(
    session_id: str,
    store: SessionStore = Depends(get_store),
    registry: RulePackRegistry = Depends(get_registry),
) -> InterviewResponse:
    """Restore a session from its persisted snapshot."""
    try:
        snapshot = await asyncio.to_thread(store.read_snapshot, session_id)
        _require_supported_year(registry, snapshot.tax_year)
        session = store.restore(snapshot)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="No persisted snapshot for session") from exc
    except SessionCorrupt as exc:
        raise HTTPException(status_code=422, detail=_corrupt_detail(exc)) from exc
    return _to_interview_response(store, session)
