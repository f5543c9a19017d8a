"""Tax profile: the normalized, year-scoped input of the calculation engine.

A profile is an immutable projection of interview answers. Every field has
a neutral default (zero spend, false flag, single status) so that any skip
pattern produces a complete profile.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum

ZERO = Decimal("0")


class MaritalStatus(str, Enum):
    SINGLE = "single"
    MARRIED = "married"
    DIVORCED = "divorced"
    WIDOWED = "widowed"


class AgeBand(str, Enum):
    """Age band of a dependent child at the end of the tax year."""

    MINOR = "minor"
    ADULT = "adult"  # 18-24
    OVER_24 = "over_24"


@dataclass(frozen=True)
class Dependent:
    """A child for whom family allowance is received.

    Attributes:
        age_band: Age band at year end.
        own_income: The child's own annual income (relevant for the 18-24 band).
    """

    age_band: AgeBand = AgeBand.MINOR
    own_income: Decimal = ZERO


@dataclass(frozen=True)
class PersonalFacts:
    """Personal and family situation.

    Attributes:
        name: Filer name, for reports only.
        marital_status: Marital status during the year.
        has_disability: Officially recognised disability.
        disability_degree: Degree of disability in percent (0 when none).
        single_earner: Claims the single earner credit.
        single_parent: Claims the single parent credit.
        dependents: Children for whom family allowance is received.
    """

    name: str = ""
    marital_status: MaritalStatus = MaritalStatus.SINGLE
    has_disability: bool = False
    disability_degree: int = 0
    single_earner: bool = False
    single_parent: bool = False
    dependents: tuple[Dependent, ...] = ()

    @property
    def children_count(self) -> int:
        return len(self.dependents)


@dataclass(frozen=True)
class IncomeFacts:
    """Income side of the profile.

    Attributes:
        gross_income: Annual gross income.
        employer_count: Number of employers.
        self_employed: Has any self-employment income.
        self_employed_only: Self-employment is the only activity (no employee credit).
        withheld_tax: Wage tax withheld during the year.
    """

    gross_income: Decimal = ZERO
    employer_count: int = 0
    self_employed: bool = False
    self_employed_only: bool = False
    withheld_tax: Decimal = ZERO

    @property
    def employed(self) -> bool:
        return not self.self_employed_only


@dataclass(frozen=True)
class DeductionInputs:
    """Itemized deduction inputs as declared by the filer.

    Attributes:
        commute_distance_km: One-way commute distance (0 when not commuting).
        public_transport_feasible: Public transport is reasonable for the commute.
        home_office_days: Days worked from home.
        work_equipment: Self-paid work equipment.
        education: Job-related training costs.
        church_contribution: Church contributions paid.
        donations: Eligible donations.
        medical: Unreimbursed medical expenses.
        childcare: Childcare costs paid.
        childcare_children: Number of children the childcare costs relate to.
        shared_custody: Custody is shared with the other parent.
    """

    commute_distance_km: Decimal = ZERO
    public_transport_feasible: bool = True
    home_office_days: int = 0
    work_equipment: Decimal = ZERO
    education: Decimal = ZERO
    church_contribution: Decimal = ZERO
    donations: Decimal = ZERO
    medical: Decimal = ZERO
    childcare: Decimal = ZERO
    childcare_children: int = 0
    shared_custody: bool = False


@dataclass(frozen=True)
class TaxProfile:
    """Complete calculation input for one filer and year."""

    tax_year: int
    personal: PersonalFacts = field(default_factory=PersonalFacts)
    income: IncomeFacts = field(default_factory=IncomeFacts)
    deductions: DeductionInputs = field(default_factory=DeductionInputs)
