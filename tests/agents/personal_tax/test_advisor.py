"""Tests for the optimization advisor."""

from decimal import Decimal

from taxlogic.agents.personal_tax.advisor import advise, calculate_with_suggestions
from taxlogic.agents.personal_tax.calculator import calculate
from taxlogic.context.builder import profile_from_session
from taxlogic.context.profile import (
    AgeBand,
    DeductionInputs,
    Dependent,
    IncomeFacts,
    PersonalFacts,
    TaxProfile,
)


def _profile(
    gross: str = "45000",
    personal: PersonalFacts | None = None,
    self_employed_only: bool = False,
    **deductions,
) -> TaxProfile:
    return TaxProfile(
        tax_year=2025,
        personal=personal or PersonalFacts(),
        income=IncomeFacts(
            gross_income=Decimal(gross),
            employer_count=1,
            self_employed_only=self_employed_only,
        ),
        deductions=DeductionInputs(**deductions),
    )


def _advise(profile: TaxProfile, pack) -> list:
    return advise(profile, calculate(profile, pack), pack)


class TestAdvise:
    """Suggestions and their estimated savings."""

    def test_commuter_interview(self, completed_session, machine, pack_2025) -> None:
        """Only the remaining home office days are suggested."""
        suggestions = _advise(profile_from_session(completed_session, machine), pack_2025)

        assert [s.category for s in suggestions] == ["home_office"]
        assert suggestions[0].estimated_savings == Decimal("72.00")
        assert "60 further days" in suggestions[0].rationale

    def test_large_commuter_allowance(self, pack_2025) -> None:
        profile = _profile(commute_distance_km=Decimal("25"), public_transport_feasible=True)

        suggestions = _advise(profile, pack_2025)

        assert [s.category for s in suggestions] == ["commuter_allowance"]
        assert suggestions[0].estimated_savings == Decimal("312.00")
        assert "1476.00" in suggestions[0].rationale

    def test_no_commuter_suggestion_when_large_table_applies(self, pack_2025) -> None:
        profile = _profile(commute_distance_km=Decimal("25"), public_transport_feasible=False)
        assert "commuter_allowance" not in [s.category for s in _advise(profile, pack_2025)]

    def test_work_expenses_below_flat_rate(self, pack_2025) -> None:
        suggestions = _advise(_profile(), pack_2025)

        assert [s.category for s in suggestions] == ["work_expenses"]
        assert suggestions[0].estimated_savings == Decimal("52.80")

    def test_no_work_expenses_for_self_employed(self, pack_2025) -> None:
        assert _advise(_profile(self_employed_only=True), pack_2025) == []

    def test_childcare_for_minors(self, pack_2025) -> None:
        personal = PersonalFacts(dependents=(Dependent(), Dependent()))
        suggestions = _advise(_profile(personal=personal, home_office_days=40), pack_2025)

        assert [s.category for s in suggestions] == ["childcare", "home_office", "work_expenses"]
        assert [s.estimated_savings for s in suggestions] == [
            Decimal("920.00"),
            Decimal("72.00"),
            Decimal("4.80"),
        ]

    def test_childcare_respects_shared_custody(self, pack_2025) -> None:
        personal = PersonalFacts(dependents=(Dependent(),))
        profile = _profile(personal=personal, shared_custody=True)

        suggestions = _advise(profile, pack_2025)

        childcare = [s for s in suggestions if s.category == "childcare"]
        assert [s.estimated_savings for s in childcare] == [Decimal("460.00")]

    def test_no_childcare_for_adult_children(self, pack_2025) -> None:
        personal = PersonalFacts(dependents=(Dependent(age_band=AgeBand.ADULT),))
        suggestions = _advise(_profile(personal=personal, home_office_days=100), pack_2025)
        assert suggestions == []

    def test_zero_savings_kept_in_catalog_order(self, pack_2025) -> None:
        """Below the tax-free amount nothing changes, ties keep catalog order."""
        suggestions = _advise(_profile(gross="10000", home_office_days=40), pack_2025)

        assert [s.category for s in suggestions] == ["home_office", "work_expenses"]
        assert all(s.estimated_savings == 0 for s in suggestions)

    def test_advise_does_not_change_result(self, pack_2025) -> None:
        profile = _profile(home_office_days=40)
        result = calculate(profile, pack_2025)

        advise(profile, result, pack_2025)

        assert result == calculate(profile, pack_2025)


class TestCalculateWithSuggestions:
    def test_attaches_suggestions(self, completed_session, machine, pack_2025) -> None:
        profile = profile_from_session(completed_session, machine)

        result = calculate_with_suggestions(profile, pack_2025)

        assert result.final_tax == Decimal("8407.70")
        assert [s.category for s in result.suggestions] == ["home_office"]
        expected = advise(profile, calculate(profile, pack_2025), pack_2025)
        assert result.suggestions == tuple(expected)
