"""Optimization advisor.

Scans a fixed catalog of deduction categories. Where the profile shows an
enabling condition but the itemized amount is zero or below the expected
threshold, the advisor re-runs the calculation with a hypothetical value
for that single category and reports the change of the net result.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, replace
from decimal import Decimal

from taxlogic.agents.personal_tax.calculator import (
    CalculationResult,
    DeductionCategory,
    Suggestion,
    calculate,
    commuter_allowance,
)
from taxlogic.context.profile import AgeBand, TaxProfile
from taxlogic.tax.money import from_cents, to_cents
from taxlogic.tax.registry import VerifiedRulePack

Hypothesis = Callable[[TaxProfile, CalculationResult, VerifiedRulePack], "Opportunity | None"]


@dataclass(frozen=True)
class Opportunity:
    """A hypothetical profile for one category plus its explanation."""

    title: str
    rationale: str
    profile: TaxProfile


def _commuter_allowance(
    profile: TaxProfile, result: CalculationResult, rule_pack: VerifiedRulePack
) -> Opportunity | None:
    inputs = profile.deductions
    if inputs.commute_distance_km <= 0 or not inputs.public_transport_feasible:
        return None
    rules = rule_pack.pack.commuter_allowance
    large, _ = commuter_allowance(inputs.commute_distance_km, False, rules)
    if large <= to_cents(result.deduction(DeductionCategory.COMMUTER_ALLOWANCE).amount):
        return None
    return Opportunity(
        title="Check the large commuter allowance",
        rationale=(
            "If public transport is unreasonable (for example more than 2.5 hours of "
            "daily travel or no connection), the large commuter allowance of "
            f"{from_cents(large)} applies."
        ),
        profile=replace(profile, deductions=replace(inputs, public_transport_feasible=False)),
    )


def _home_office(
    profile: TaxProfile, result: CalculationResult, rule_pack: VerifiedRulePack
) -> Opportunity | None:
    inputs = profile.deductions
    max_days = rule_pack.pack.home_office.max_days
    if not 0 < inputs.home_office_days < max_days:
        return None
    additional = max_days - inputs.home_office_days
    return Opportunity(
        title="Check your home office days",
        rationale=(
            f"You declared {inputs.home_office_days} home office days. "
            f"Up to {additional} further days can be claimed."
        ),
        profile=replace(profile, deductions=replace(inputs, home_office_days=max_days)),
    )


def _work_expenses(
    profile: TaxProfile, result: CalculationResult, rule_pack: VerifiedRulePack
) -> Opportunity | None:
    if not profile.income.employed:
        return None
    flat_rate = rule_pack.pack.credits.income_related_expenses_flat_rate
    claimed = result.income_related_expenses()
    if claimed >= flat_rate:
        return None
    shortfall = flat_rate - claimed
    inputs = profile.deductions
    return Opportunity(
        title="Collect receipts for work expenses",
        rationale=(
            f"Your income-related expenses ({claimed}) are below the flat rate of "
            f"{flat_rate}. Collect receipts for further professional expenses."
        ),
        profile=replace(
            profile,
            deductions=replace(inputs, work_equipment=inputs.work_equipment + shortfall),
        ),
    )


def _childcare(
    profile: TaxProfile, result: CalculationResult, rule_pack: VerifiedRulePack
) -> Opportunity | None:
    has_minors = any(d.age_band is AgeBand.MINOR for d in profile.personal.dependents)
    if not has_minors or result.deduction(DeductionCategory.CHILDCARE).amount > 0:
        return None
    rules = rule_pack.pack.childcare
    return Opportunity(
        title="Childcare costs are deductible",
        rationale=(
            f"Childcare for children under {rules.max_age} is deductible up to "
            f"{rules.max_per_child} per child."
        ),
        profile=replace(
            profile,
            deductions=replace(
                profile.deductions,
                childcare=rules.max_per_child,
                childcare_children=max(profile.deductions.childcare_children, 1),
            ),
        ),
    )


# Declaration order breaks ties between equal savings
CATALOG: tuple[tuple[str, Hypothesis], ...] = (
    ("commuter_allowance", _commuter_allowance),
    ("home_office", _home_office),
    ("work_expenses", _work_expenses),
    ("childcare", _childcare),
)


def advise(
    profile: TaxProfile, result: CalculationResult, rule_pack: VerifiedRulePack
) -> list[Suggestion]:
    """Suggest unclaimed-but-eligible deductions.

    Args:
        profile: Profile the result was calculated from
        result: Actual calculation result
        rule_pack: The verified pack used for the result

    Returns:
        Suggestions by descending estimated savings, ties in catalog order
    """
    ranked: list[tuple[Decimal, int, Suggestion]] = []
    for index, (category, hypothesis) in enumerate(CATALOG):
        opportunity = hypothesis(profile, result, rule_pack)
        if opportunity is None:
            continue
        hypothetical = calculate(opportunity.profile, rule_pack)
        savings = hypothetical.net_result - result.net_result
        ranked.append(
            (
                savings,
                index,
                Suggestion(
                    category=category,
                    title=opportunity.title,
                    rationale=opportunity.rationale,
                    estimated_savings=savings,
                ),
            )
        )

    ranked.sort(key=lambda entry: (-entry[0], entry[1]))
    return [suggestion for _, _, suggestion in ranked]


def calculate_with_suggestions(
    profile: TaxProfile, rule_pack: VerifiedRulePack
) -> CalculationResult:
    """Calculate and attach the advisor's suggestions to the result."""
    result = calculate(profile, rule_pack)
    return replace(result, suggestions=tuple(advise(profile, result, rule_pack)))
