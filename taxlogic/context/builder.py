"""Tax profile builder.

Pure mapping from an interview's answer set to a ``TaxProfile``. Answers
that are absent (skipped or optional and left empty) map to neutral values,
so the result is total over every skip pattern.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from taxlogic.context.profile import (
    ZERO,
    AgeBand,
    DeductionInputs,
    Dependent,
    IncomeFacts,
    MaritalStatus,
    PersonalFacts,
    TaxProfile,
)
from taxlogic.interview.catalog import (
    FAMILY_CREDIT_OPTIONS,
    MARITAL_STATUS_OPTIONS,
    PUBLIC_TRANSPORT_OPTIONS,
    SELF_EMPLOYED_MIXED,
    SELF_EMPLOYED_ONLY,
)
from taxlogic.interview.session import InterviewSession
from taxlogic.interview.state_machine import InterviewStateMachine

_MARITAL_STATUS_BY_OPTION = dict(
    zip(
        MARITAL_STATUS_OPTIONS,
        (
            MaritalStatus.SINGLE,
            MaritalStatus.MARRIED,
            MaritalStatus.DIVORCED,
            MaritalStatus.WIDOWED,
        ),
    )
)


def _decimal(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _count(value: Any) -> int:
    if value is None or isinstance(value, bool):
        return 0
    return int(value)


def _gated_amount(answers: Mapping[str, Any], flag: str, amount: str) -> Decimal:
    """Amount of a yes/no gated expense; zero unless the gate was answered yes."""
    if answers.get(flag) is not True:
        return ZERO
    return _decimal(answers.get(amount))


def _build_dependents(answers: Mapping[str, Any]) -> tuple[Dependent, ...]:
    if answers.get("has_children") is not True:
        return ()
    children = _count(answers.get("children_count"))
    adults = min(_count(answers.get("adult_children_count")), children)
    adult_income = _decimal(answers.get("adult_children_income"))
    minors = children - adults
    return tuple(
        [Dependent(age_band=AgeBand.MINOR) for _ in range(minors)]
        + [Dependent(age_band=AgeBand.ADULT, own_income=adult_income) for _ in range(adults)]
    )


def _build_personal(answers: Mapping[str, Any]) -> PersonalFacts:
    family_credit = answers.get("single_earner")
    has_disability = answers.get("disability") is True
    return PersonalFacts(
        name=answers.get("full_name") or "",
        marital_status=_MARITAL_STATUS_BY_OPTION.get(
            answers.get("marital_status"), MaritalStatus.SINGLE
        ),
        has_disability=has_disability,
        disability_degree=_count(answers.get("disability_degree")) if has_disability else 0,
        single_earner=family_credit == FAMILY_CREDIT_OPTIONS[1],
        single_parent=family_credit == FAMILY_CREDIT_OPTIONS[2],
        dependents=_build_dependents(answers),
    )


def _build_income(answers: Mapping[str, Any]) -> IncomeFacts:
    employment = answers.get("employment_type")
    return IncomeFacts(
        gross_income=_decimal(answers.get("gross_income")),
        employer_count=_count(answers.get("employer_count")),
        self_employed=employment in (SELF_EMPLOYED_ONLY, SELF_EMPLOYED_MIXED),
        self_employed_only=employment == SELF_EMPLOYED_ONLY,
        withheld_tax=_decimal(answers.get("withheld_tax")),
    )


def _build_deductions(answers: Mapping[str, Any], children: int) -> DeductionInputs:
    commuting = answers.get("commute_exists") is True
    feasibility = answers.get("commute_public_feasible")

    childcare = ZERO
    childcare_children = 0
    if answers.get("has_children") is True:
        childcare = _gated_amount(answers, "childcare_costs", "childcare_amount")
        if childcare > 0:
            childcare_children = min(_count(answers.get("childcare_children")), children)

    return DeductionInputs(
        commute_distance_km=_decimal(answers.get("commute_distance")) if commuting else ZERO,
        # Only an unqualified "yes" makes public transport reasonable
        public_transport_feasible=(
            feasibility is None or not commuting or feasibility == PUBLIC_TRANSPORT_OPTIONS[0]
        ),
        home_office_days=_count(answers.get("home_office_days")),
        work_equipment=_gated_amount(answers, "work_equipment", "work_equipment_amount"),
        education=_gated_amount(answers, "education_expenses", "education_amount"),
        church_contribution=_gated_amount(answers, "church_tax", "church_tax_amount"),
        donations=_gated_amount(answers, "donations", "donations_amount"),
        medical=_gated_amount(answers, "medical_expenses", "medical_amount"),
        childcare=childcare,
        childcare_children=childcare_children,
        shared_custody=answers.get("shared_custody") is True,
    )


def build_tax_profile(tax_year: int, answers: Mapping[str, Any]) -> TaxProfile:
    """Project an answer set onto a tax profile.

    Args:
        tax_year: Year the profile is for
        answers: Typed answers keyed by question id (effective answers only)

    Returns:
        Immutable TaxProfile
    """
    personal = _build_personal(answers)
    return TaxProfile(
        tax_year=tax_year,
        personal=personal,
        income=_build_income(answers),
        deductions=_build_deductions(answers, personal.children_count),
    )


def profile_from_session(
    session: InterviewSession, machine: InterviewStateMachine | None = None
) -> TaxProfile:
    """Build a profile from a (complete or partial) session's effective answers."""
    machine = machine or InterviewStateMachine()
    return build_tax_profile(session.tax_year, machine.effective_answers(session))
