"""Tax calculation engine for the employee tax assessment.

This module provides a pure, deterministic ``calculate(profile, rule_pack)``
that produces the full breakdown:
- Itemized deductions (commute, home office, work expenses, church,
  donations, medical net of self-retention, childcare)
- Taxable income and progressive tax over the bracket schedule
- Credits applied in a fixed order, clamped so tax never goes negative
- Net result against withheld tax (positive is a refund)

All arithmetic runs on integer cents; results are converted to Decimal
with two places only when the result is assembled.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from taxlogic.context.profile import AgeBand, TaxProfile
from taxlogic.tax.models import (
    CommuterAllowanceRules,
    MedicalRules,
    RulePack,
    TieredFamilyCredit,
)
from taxlogic.tax.money import CENT, apply_rate, from_cents, to_cents
from taxlogic.tax.registry import VerifiedRulePack

HIGH_REFUND_WARNING_CENTS = 500_000
HIGH_MEDICAL_SHARE = Decimal("0.10")


# =============================================================================
# Data Structures
# =============================================================================


class DeductionCategory(str, Enum):
    """Itemized deduction categories, in calculation order."""

    COMMUTER_ALLOWANCE = "commuter_allowance"
    HOME_OFFICE = "home_office"
    WORK_EQUIPMENT = "work_equipment"
    EDUCATION = "education"
    CHURCH_CONTRIBUTION = "church_contribution"
    DONATIONS = "donations"
    MEDICAL = "medical"
    CHILDCARE = "childcare"


INCOME_RELATED_CATEGORIES = (
    DeductionCategory.COMMUTER_ALLOWANCE,
    DeductionCategory.HOME_OFFICE,
    DeductionCategory.WORK_EQUIPMENT,
    DeductionCategory.EDUCATION,
)


@dataclass(frozen=True)
class DeductionItem:
    """One itemized deduction.

    Attributes:
        category: Deduction category.
        amount: Deductible amount after caps and self-retention.
        declared: Amount declared by the filer before caps (0 for formula-based items).
        detail: Human-readable explanation of the computation.
    """

    category: DeductionCategory
    amount: Decimal
    declared: Decimal
    detail: str


@dataclass(frozen=True)
class CreditItem:
    """A credit and how much of it could be used.

    Attributes:
        name: Credit identifier (employee_credit, family_bonus, ...).
        entitled: Full credit amount the filer is entitled to.
        applied: Amount actually applied (limited by the remaining tax).
        detail: Human-readable explanation.
    """

    name: str
    entitled: Decimal
    applied: Decimal
    detail: str


@dataclass(frozen=True)
class BracketSlice:
    """Tax on the part of taxable income falling into one bracket."""

    lower: Decimal
    upper: Decimal | None
    rate: Decimal
    taxed_amount: Decimal
    tax: Decimal


@dataclass(frozen=True)
class Suggestion:
    """Unclaimed-but-eligible deduction with its estimated impact.

    Attributes:
        category: Catalog category of the suggestion.
        title: Short title.
        rationale: Why the filer may be eligible.
        estimated_savings: Change of the net result if the hypothetical holds.
    """

    category: str
    title: str
    rationale: str
    estimated_savings: Decimal


@dataclass(frozen=True)
class CalculationResult:
    """Complete outcome of a tax calculation.

    Attributes:
        tax_year: Year calculated.
        rule_pack_version: Version of the rule pack used.
        gross_income: Annual gross income.
        deductions: Itemized deductions in calculation order.
        total_deductions: Sum of itemized deductions.
        taxable_income: Gross income minus deductions, floored at zero.
        gross_tax: Tax from the bracket schedule before credits.
        bracket_breakdown: Per-bracket slices that make up gross_tax.
        marginal_rate: Rate of the bracket the last taxable euro falls into.
        credits: Credits in application order.
        total_credits: Sum of applied credits.
        final_tax: Tax after credits, never negative.
        withheld_tax: Tax withheld during the year.
        net_result: withheld_tax - final_tax; positive is a refund.
        effective_rate: final_tax as a percentage of gross income.
        warnings: Plausibility notes for the filer.
        suggestions: Optimization suggestions (filled by the advisor).
    """

    tax_year: int
    rule_pack_version: str
    gross_income: Decimal
    deductions: tuple[DeductionItem, ...]
    total_deductions: Decimal
    taxable_income: Decimal
    gross_tax: Decimal
    bracket_breakdown: tuple[BracketSlice, ...]
    marginal_rate: Decimal
    credits: tuple[CreditItem, ...]
    total_credits: Decimal
    final_tax: Decimal
    withheld_tax: Decimal
    net_result: Decimal
    effective_rate: Decimal
    warnings: tuple[str, ...] = ()
    suggestions: tuple[Suggestion, ...] = ()

    @property
    def is_refund(self) -> bool:
        return self.net_result > 0

    @property
    def refund(self) -> Decimal:
        return self.net_result if self.net_result > 0 else Decimal("0.00")

    @property
    def amount_due(self) -> Decimal:
        return -self.net_result if self.net_result < 0 else Decimal("0.00")

    def deduction(self, category: DeductionCategory) -> DeductionItem:
        for item in self.deductions:
            if item.category == category:
                return item
        raise KeyError(category)

    def income_related_expenses(self) -> Decimal:
        """Sum of commute, home office, equipment and education deductions."""
        return sum(
            (item.amount for item in self.deductions if item.category in INCOME_RELATED_CATEGORIES),
            Decimal("0.00"),
        )


# =============================================================================
# Itemized Deductions
# =============================================================================


def commuter_allowance(
    distance_km: Decimal, public_transport_feasible: bool, rules: CommuterAllowanceRules
) -> tuple[int, str]:
    """Annual commuter allowance in cents from the distance tables.

    The small table applies when public transport is reasonable, the large
    table otherwise. Distances below the first row earn nothing.
    """
    table = rules.small if public_transport_feasible else rules.large
    label = "small" if public_transport_feasible else "large"
    for row in table:
        if distance_km >= row.min_km and (row.max_km is None or distance_km < row.max_km):
            return (
                to_cents(row.amount),
                f"{label.capitalize()} commuter allowance for {distance_km} km",
            )
    if distance_km <= 0:
        return 0, "No commute"
    return 0, f"No {label} commuter allowance below {table[0].min_km} km"


def home_office_allowance(days: int, pack: RulePack) -> tuple[int, str]:
    rules = pack.home_office
    counted = min(max(days, 0), rules.max_days)
    amount = min(counted * to_cents(rules.per_day), to_cents(rules.max_amount))
    return amount, f"{counted} days x {rules.per_day} = {from_cents(amount)}"


def _capped(declared: int, cap: Decimal | None) -> int:
    if cap is None:
        return declared
    return min(declared, to_cents(cap))


def self_retention_rate(profile: TaxProfile, rules: MedicalRules) -> Decimal:
    """Self-retention rate for extraordinary expenses given the family situation.

    Disability gives the lowest rate. Single earners and single parents get
    reduced rates with two or with three or more children; other filers
    only with more than three children.
    """
    personal = profile.personal
    if personal.has_disability:
        return rules.disability_rate

    children = personal.children_count
    if personal.single_earner or personal.single_parent:
        if children >= 3:
            return rules.single_with_three_or_more_children_rate
        if children == 2:
            return rules.single_with_two_children_rate
    elif children > 3:
        return rules.many_children_rate
    return rules.default_self_retention_rate


def _itemize(profile: TaxProfile, pack: RulePack) -> list[tuple[DeductionCategory, int, int, str]]:
    """Compute every itemized deduction as (category, cents, declared cents, detail)."""
    inputs = profile.deductions
    gross_cents = to_cents(profile.income.gross_income)
    items: list[tuple[DeductionCategory, int, int, str]] = []

    commute, detail = commuter_allowance(
        inputs.commute_distance_km, inputs.public_transport_feasible, pack.commuter_allowance
    )
    items.append((DeductionCategory.COMMUTER_ALLOWANCE, commute, 0, detail))

    home_office, detail = home_office_allowance(inputs.home_office_days, pack)
    items.append((DeductionCategory.HOME_OFFICE, home_office, 0, detail))

    equipment = to_cents(inputs.work_equipment)
    equipment_amount = _capped(equipment, pack.work_expenses.equipment_max)
    items.append(
        (
            DeductionCategory.WORK_EQUIPMENT,
            equipment_amount,
            equipment,
            "Work equipment" if equipment_amount == equipment else (
                f"Work equipment capped at {pack.work_expenses.equipment_max}"
            ),
        )
    )

    education = to_cents(inputs.education)
    education_amount = _capped(education, pack.work_expenses.education_max)
    items.append(
        (
            DeductionCategory.EDUCATION,
            education_amount,
            education,
            "Training and further education" if education_amount == education else (
                f"Training costs capped at {pack.work_expenses.education_max}"
            ),
        )
    )

    church = to_cents(inputs.church_contribution)
    church_amount = _capped(church, pack.credits.church_contribution_max)
    items.append(
        (
            DeductionCategory.CHURCH_CONTRIBUTION,
            church_amount,
            church,
            "Fully deductible" if church_amount == church else (
                f"Capped at {pack.credits.church_contribution_max} (annual maximum)"
            ),
        )
    )

    donations = to_cents(inputs.donations)
    items.append(
        (DeductionCategory.DONATIONS, donations, donations, "Donations to approved organisations")
    )

    medical = to_cents(inputs.medical)
    rate = self_retention_rate(profile, pack.medical)
    retention = apply_rate(gross_cents, rate)
    medical_amount = max(0, medical - retention)
    items.append(
        (
            DeductionCategory.MEDICAL,
            medical_amount,
            medical,
            f"Self-retention {from_cents(retention)} ({rate * 100:.2f}% of income)",
        )
    )

    childcare = to_cents(inputs.childcare)
    factor = pack.childcare.shared_custody_factor if inputs.shared_custody else Decimal(1)
    claimable = apply_rate(childcare, factor)
    cap = to_cents(pack.childcare.max_per_child) * inputs.childcare_children
    childcare_amount = min(claimable, cap)
    items.append(
        (
            DeductionCategory.CHILDCARE,
            childcare_amount,
            childcare,
            f"Childcare x {factor} (max {pack.childcare.max_per_child} per child "
            f"under {pack.childcare.max_age}, {inputs.childcare_children} children)",
        )
    )

    return items


# =============================================================================
# Progressive Tax
# =============================================================================


def progressive_tax(taxable_cents: int, pack: RulePack) -> tuple[int, list[BracketSlice], Decimal]:
    """Apply the bracket schedule slice by slice.

    Returns:
        Tuple of (tax in cents, overlapping slices, marginal rate)
    """
    total = 0
    slices: list[BracketSlice] = []
    marginal = pack.tax_brackets[0].rate

    for bracket in pack.tax_brackets:
        lower = to_cents(bracket.min)
        upper = None if bracket.max is None else to_cents(bracket.max)
        if taxable_cents <= lower:
            break
        top = taxable_cents if upper is None else min(taxable_cents, upper)
        overlap = top - lower
        tax = apply_rate(overlap, bracket.rate)
        total += tax
        marginal = bracket.rate
        slices.append(
            BracketSlice(
                lower=from_cents(lower),
                upper=None if upper is None else from_cents(upper),
                rate=bracket.rate,
                taxed_amount=from_cents(overlap),
                tax=from_cents(tax),
            )
        )

    return total, slices, marginal


# =============================================================================
# Credits
# =============================================================================


def tiered_family_credit(children: int, credit: TieredFamilyCredit) -> int:
    """Tiered credit in cents: first child, second-child increment, then per further child."""
    if children <= 0:
        return 0
    total = to_cents(credit.first_child)
    if children >= 2:
        total += to_cents(credit.second_child_increment)
    if children >= 3:
        total += (children - 2) * to_cents(credit.additional_child_increment)
    return total


def family_bonus(profile: TaxProfile, pack: RulePack) -> tuple[int, str]:
    """Family bonus over all dependents in cents.

    Minors get the full amount. Dependents aged 18-24 get the adult amount
    unless their own income exceeds the limit. Older dependents get nothing.
    """
    rules = pack.credits
    total = 0
    minors = adults = 0
    for dependent in profile.personal.dependents:
        if dependent.age_band is AgeBand.MINOR:
            total += to_cents(rules.family_bonus_per_child)
            minors += 1
        elif dependent.age_band is AgeBand.ADULT:
            if dependent.own_income <= rules.adult_child_income_limit:
                total += to_cents(rules.family_bonus_per_adult_child)
                adults += 1
    return total, f"{minors} minor and {adults} qualifying adult children"


def _entitlements(profile: TaxProfile, pack: RulePack) -> list[tuple[str, int, str]]:
    """Credits in their fixed application order."""
    credits: list[tuple[str, int, str]] = []
    children = profile.personal.children_count

    if profile.income.employed:
        credits.append(
            ("employee_credit", to_cents(pack.credits.employee_credit), "Employee credit")
        )

    bonus, detail = family_bonus(profile, pack)
    if bonus:
        credits.append(("family_bonus", bonus, detail))

    if profile.personal.single_earner and children > 0:
        credits.append(
            (
                "single_earner_credit",
                tiered_family_credit(children, pack.credits.single_earner),
                f"Single earner credit for {children} children",
            )
        )

    if profile.personal.single_parent and children > 0:
        credits.append(
            (
                "single_parent_credit",
                tiered_family_credit(children, pack.credits.single_parent),
                f"Single parent credit for {children} children",
            )
        )

    return credits


# =============================================================================
# Calculation
# =============================================================================


def _warnings(profile: TaxProfile, net_cents: int) -> tuple[str, ...]:
    warnings = []
    if profile.income.employer_count > 1:
        warnings.append("With several employers an assessment is usually mandatory.")
    if net_cents > HIGH_REFUND_WARNING_CENTS:
        warnings.append("High estimated refund. Please double-check all entries.")
    if profile.deductions.medical > profile.income.gross_income * HIGH_MEDICAL_SHARE:
        warnings.append("High medical expenses. Keep all receipts in case of an audit.")
    return tuple(warnings)


def calculate(profile: TaxProfile, rule_pack: VerifiedRulePack) -> CalculationResult:
    """Calculate the tax outcome for a profile.

    Pure and deterministic: identical inputs always yield an equal result.

    Args:
        profile: Normalized tax profile
        rule_pack: Verified rule pack for the profile's year

    Returns:
        CalculationResult (without suggestions)

    Raises:
        TypeError: If rule_pack was not issued by the registry.
        ValueError: If the pack's year does not match the profile's year.
    """
    if not isinstance(rule_pack, VerifiedRulePack):
        raise TypeError("calculate() requires a VerifiedRulePack issued by RulePackRegistry")
    if rule_pack.year != profile.tax_year:
        raise ValueError(
            f"Rule pack year {rule_pack.year} does not match profile year {profile.tax_year}"
        )
    pack = rule_pack.pack

    gross_cents = to_cents(profile.income.gross_income)
    withheld_cents = to_cents(profile.income.withheld_tax)

    itemized = _itemize(profile, pack)
    deductions_cents = sum(amount for _, amount, _, _ in itemized)
    taxable_cents = max(0, gross_cents - deductions_cents)

    gross_tax_cents, slices, marginal = progressive_tax(taxable_cents, pack)

    remaining = gross_tax_cents
    credit_items: list[CreditItem] = []
    for name, entitled, detail in _entitlements(profile, pack):
        applied = min(entitled, remaining)
        remaining -= applied
        credit_items.append(
            CreditItem(
                name=name,
                entitled=from_cents(entitled),
                applied=from_cents(applied),
                detail=detail,
            )
        )
    final_tax_cents = remaining
    net_cents = withheld_cents - final_tax_cents

    effective_rate = Decimal("0.00")
    if gross_cents > 0:
        effective_rate = (Decimal(final_tax_cents) * 100 / gross_cents).quantize(
            CENT, rounding=ROUND_HALF_UP
        )

    return CalculationResult(
        tax_year=profile.tax_year,
        rule_pack_version=pack.version,
        gross_income=from_cents(gross_cents),
        deductions=tuple(
            DeductionItem(
                category=category,
                amount=from_cents(amount),
                declared=from_cents(declared),
                detail=detail,
            )
            for category, amount, declared, detail in itemized
        ),
        total_deductions=from_cents(deductions_cents),
        taxable_income=from_cents(taxable_cents),
        gross_tax=from_cents(gross_tax_cents),
        bracket_breakdown=tuple(slices),
        marginal_rate=marginal,
        credits=tuple(credit_items),
        total_credits=from_cents(gross_tax_cents - final_tax_cents),
        final_tax=from_cents(final_tax_cents),
        withheld_tax=from_cents(withheld_cents),
        net_result=from_cents(net_cents),
        effective_rate=effective_rate,
        warnings=_warnings(profile, net_cents),
    )
