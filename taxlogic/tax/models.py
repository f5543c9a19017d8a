"""Pydantic models for yearly tax rule packs.

A rule pack is a YAML document holding the legal constants for one tax
year: the progressive bracket schedule, credit amounts, deduction caps and
the distance tables for the commuter allowance. Packs are data, never code,
and are treated as read-only once loaded.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

NonNegative = Annotated[Decimal, Field(ge=0)]
Rate = Annotated[Decimal, Field(ge=0, le=1)]


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class TaxBracket(_FrozenModel):
    """One slice of the progressive schedule. ``max=None`` is unbounded."""

    min: NonNegative
    max: NonNegative | None = None
    rate: Rate


class DistanceBracket(_FrozenModel):
    """Commuter allowance table row: annual amount for a distance range."""

    min_km: NonNegative
    max_km: NonNegative | None = None
    amount: NonNegative


class TieredFamilyCredit(_FrozenModel):
    """Credit that grows with the number of children."""

    first_child: NonNegative
    second_child_increment: NonNegative
    additional_child_increment: NonNegative


class CreditRules(_FrozenModel):
    employee_credit: NonNegative = Field(
        ..., description="Flat employee credit (Verkehrsabsetzbetrag)"
    )
    income_related_expenses_flat_rate: NonNegative = Field(
        ..., description="Flat rate for income-related expenses (Werbungskostenpauschale)"
    )
    church_contribution_max: NonNegative
    family_bonus_per_child: NonNegative
    family_bonus_per_adult_child: NonNegative
    adult_child_income_limit: NonNegative = Field(
        ..., description="Own income above which an 18-24 year old dependent loses the bonus"
    )
    single_earner: TieredFamilyCredit
    single_parent: TieredFamilyCredit


class HomeOfficeRules(_FrozenModel):
    per_day: NonNegative
    max_days: int = Field(..., ge=0)
    max_amount: NonNegative


class WorkExpenseRules(_FrozenModel):
    """Optional caps for pass-through work expenses. ``None`` is uncapped."""

    equipment_max: NonNegative | None = None
    education_max: NonNegative | None = None


class ChildcareRules(_FrozenModel):
    max_per_child: NonNegative
    shared_custody_factor: Rate
    max_age: int = Field(..., ge=0)


class MedicalRules(_FrozenModel):
    """Self-retention rates for extraordinary (medical) expenses."""

    default_self_retention_rate: Rate
    many_children_rate: Rate
    single_with_two_children_rate: Rate
    single_with_three_or_more_children_rate: Rate
    disability_rate: Rate

    @model_validator(mode="after")
    def check_hardship_ordering(self) -> "MedicalRules":
        """Hardship rates may never exceed the general rate; disability is lowest."""
        default = self.default_self_retention_rate
        hardship = [
            self.many_children_rate,
            self.single_with_two_children_rate,
            self.single_with_three_or_more_children_rate,
        ]
        if any(rate > default for rate in hardship):
            raise ValueError(
                "hardship self-retention rates must not exceed the default rate"
            )
        if self.single_with_three_or_more_children_rate > self.single_with_two_children_rate:
            raise ValueError(
                "rate for three or more children must not exceed the rate for two children"
            )
        if any(self.disability_rate > rate for rate in [default, *hardship]):
            raise ValueError("disability self-retention rate must be the lowest rate")
        return self


class CommuterAllowanceRules(_FrozenModel):
    """Distance tables: ``small`` when public transport is feasible, ``large`` otherwise."""

    small: list[DistanceBracket] = Field(..., min_length=1)
    large: list[DistanceBracket] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_tables(self) -> "CommuterAllowanceRules":
        for name in ("small", "large"):
            _check_distance_table(name, getattr(self, name))
        return self


class RulePackMetadata(_FrozenModel):
    law_year: int = Field(..., ge=2000, le=2100)
    verification_status: str = Field(..., min_length=1, max_length=200)
    notes: str | None = Field(None, max_length=2000)
    sources: list[str] = Field(..., min_length=1)

    @field_validator("sources")
    @classmethod
    def validate_sources(cls, value: list[str]) -> list[str]:
        """Sources must be http(s) URLs."""
        for source in value:
            if not source.startswith(("http://", "https://")):
                raise ValueError(f"source must be an http(s) URL: {source}")
        return value


class RulePack(_FrozenModel):
    """Complete legal constant table for one tax year."""

    year: int = Field(..., ge=2000, le=2100)
    version: str = Field(..., min_length=1, max_length=100)
    verified_at: datetime = Field(
        ..., description="When the constants were last verified against official sources"
    )
    stale_after_days: int | None = Field(None, ge=1, le=365)
    valid: bool = Field(..., description="Validity flag set by the verifier")
    metadata: RulePackMetadata
    tax_brackets: list[TaxBracket] = Field(..., min_length=2)
    credits: CreditRules
    home_office: HomeOfficeRules
    work_expenses: WorkExpenseRules = Field(default_factory=WorkExpenseRules)
    childcare: ChildcareRules
    medical: MedicalRules
    commuter_allowance: CommuterAllowanceRules

    @field_validator("verified_at", mode="before")
    @classmethod
    def parse_verified_at(cls, value: object) -> object:
        """Accept plain dates (midnight UTC) as well as timestamps."""
        if isinstance(value, datetime):
            return value if value.tzinfo else value.replace(tzinfo=UTC)
        if isinstance(value, date):
            return datetime(value.year, value.month, value.day, tzinfo=UTC)
        if isinstance(value, str) and len(value.strip()) == 10:
            parsed = date.fromisoformat(value.strip())
            return datetime(parsed.year, parsed.month, parsed.day, tzinfo=UTC)
        return value

    @field_validator("verified_at")
    @classmethod
    def ensure_timezone(cls, value: datetime) -> datetime:
        return value if value.tzinfo else value.replace(tzinfo=UTC)

    @model_validator(mode="after")
    def check_bracket_schedule(self) -> "RulePack":
        """Brackets start at zero, are contiguous, and only the last is unbounded."""
        check_bracket_schedule(self.tax_brackets)
        return self


def check_bracket_schedule(brackets: list[TaxBracket]) -> None:
    """Raise ``ValueError`` unless the schedule is contiguous from zero to unbounded."""
    if not brackets:
        raise ValueError("tax bracket schedule is empty")
    if brackets[0].min != 0:
        raise ValueError("first tax bracket must start at 0")

    previous_max: Decimal | None = None
    for index, bracket in enumerate(brackets):
        is_last = index == len(brackets) - 1
        if index > 0 and bracket.min != previous_max:
            raise ValueError(f"tax bracket {index} must start where bracket {index - 1} ends")
        if bracket.max is None and not is_last:
            raise ValueError(f"only the top tax bracket may be unbounded (bracket {index})")
        if bracket.max is not None and bracket.max <= bracket.min:
            raise ValueError(f"tax bracket {index} max must be greater than min")
        previous_max = bracket.max

    if brackets[-1].max is not None:
        raise ValueError("top tax bracket must be unbounded")


def _check_distance_table(name: str, table: list[DistanceBracket]) -> None:
    previous_max: Decimal | None = None
    for index, row in enumerate(table):
        if row.max_km is not None and row.max_km <= row.min_km:
            raise ValueError(f"commuter table {name!r} row {index}: max_km must exceed min_km")
        if index > 0 and row.min_km != previous_max:
            raise ValueError(f"commuter table {name!r} must be continuous (row {index})")
        if row.max_km is None and index != len(table) - 1:
            raise ValueError(f"commuter table {name!r}: only the last row may be unbounded")
        previous_max = row.max_km
