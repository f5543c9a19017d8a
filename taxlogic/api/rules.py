"""Rule pack status and diff API endpoints."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from taxlogic.api.deps import get_registry
from taxlogic.tax.diff import diff_rule_packs, render_markdown
from taxlogic.tax.loader import RulePackLoadError, read_rule_pack_document
from taxlogic.tax.registry import RulePackRegistry, RulePackStatus

router = APIRouter(prefix="/api/rules", tags=["rules"])


class RulePackStatusResponse(BaseModel):
    """Rule pack status response model."""

    year: int
    state: str
    message: str
    supported_years: list[int]
    verified_at: datetime | None = None
    days_since_verification: int | None = None


class RulePackChangeResponse(BaseModel):
    path: str
    kind: str
    old: Any = None
    new: Any = None


class RulePackDiffResponse(BaseModel):
    """Field-by-field diff between two years."""

    from_year: int
    to_year: int
    changed: int
    added: int
    removed: int
    changes: list[RulePackChangeResponse]


def _to_status_response(status: RulePackStatus) -> RulePackStatusResponse:
    return RulePackStatusResponse(
        year=status.year,
        state=status.state.value,
        message=status.message,
        supported_years=list(status.supported_years),
        verified_at=status.verified_at,
        days_since_verification=status.days_since_verification,
    )


@router.get("/status", response_model=list[RulePackStatusResponse])
async def list_rule_pack_statuses(
    registry: RulePackRegistry = Depends(get_registry),
) -> list[RulePackStatusResponse]:
    """Status of every supported year."""
    return [_to_status_response(status) for status in registry.statuses()]


@router.get("/{year}/status", response_model=RulePackStatusResponse)
async def get_rule_pack_status(
    year: int,
    registry: RulePackRegistry = Depends(get_registry),
) -> RulePackStatusResponse:
    """Status of one year, including unsupported years."""
    return _to_status_response(registry.status(year))


@router.get("/diff", response_model=RulePackDiffResponse)
async def diff_rule_pack_years(
    from_year: int = Query(..., ge=2000, le=2100),
    to_year: int = Query(..., ge=2000, le=2100),
    output_format: str = Query(default="json", alias="format", pattern="^(json|md)$"),
    registry: RulePackRegistry = Depends(get_registry),
):
    """Compare two years' rule packs field by field."""
    try:
        old = read_rule_pack_document(registry.rule_pack_dir, from_year)
        new = read_rule_pack_document(registry.rule_pack_dir, to_year)
    except RulePackLoadError as exc:
        status_code = 404 if exc.missing else 422
        raise HTTPException(status_code=status_code, detail=str(exc)) from exc

    diff = diff_rule_packs(old, new, old_label=str(from_year), new_label=str(to_year))
    if output_format == "md":
        return PlainTextResponse(render_markdown(diff), media_type="text/markdown")

    return RulePackDiffResponse(
        from_year=from_year,
        to_year=to_year,
        changed=len(diff.changed),
        added=len(diff.added),
        removed=len(diff.removed),
        changes=[
            RulePackChangeResponse(path=c.path, kind=c.kind, old=c.old, new=c.new)
            for c in diff.changes
        ],
    )
