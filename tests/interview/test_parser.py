"""Tests for answer parsing and validation."""

from datetime import date
from decimal import Decimal

import pytest

from taxlogic.interview.catalog import default_question_graph
from taxlogic.interview.parser import (
    BOOLEAN_MESSAGE,
    DATE_MESSAGE,
    INTEGER_MESSAGE,
    NUMBER_MESSAGE,
    REQUIRED_MESSAGE,
    ParsedAnswer,
    ValidationFailure,
    decode_stored_value,
    encode_value,
    normalize_number,
    parse_answer,
)
from taxlogic.interview.questions import AnswerType, Question

GRAPH = default_question_graph()


def _parse(question_id: str, raw: str | None):
    return parse_answer(GRAPH.get(question_id), raw)


class TestNormalizeNumber:
    """Number grammar: plain, local and English notation."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("45000", "45000"),
            ("1234.5", "1234.5"),
            ("45.000", "45000"),
            ("1.234.567", "1234567"),
            ("1234,56", "1234.56"),
            ("1.234,56", "1234.56"),
            ("1,234", "1234"),
            ("1,234.50", "1234.50"),
            ("0,5", "0.5"),
            ("0.500", "0.500"),
            ("€ 1.500", "1500"),
            ("2 500 EUR", "2500"),
            ("-5", "-5"),
        ],
    )
    def test_accepted_notations(self, raw: str, expected: str) -> None:
        assert normalize_number(raw) == Decimal(expected)

    @pytest.mark.parametrize("raw", ["abc", "12.5.3", "1,2,3", "", "€", "1.2345,6"])
    def test_rejected_input(self, raw: str) -> None:
        assert normalize_number(raw) is None


class TestParseNumber:
    def test_amount_is_decimal(self) -> None:
        result = _parse("gross_income", "45.000,50 €")
        assert result == ParsedAnswer("gross_income", Decimal("45000.50"))

    def test_not_a_number(self) -> None:
        assert _parse("gross_income", "a lot") == ValidationFailure("gross_income", NUMBER_MESSAGE)

    def test_negative_amount_uses_range_message(self) -> None:
        result = _parse("gross_income", "-100")
        assert isinstance(result, ValidationFailure)
        assert result.reason == "Please enter a valid amount."

    def test_integer_question_rejects_fraction(self) -> None:
        assert _parse("employer_count", "2.5") == ValidationFailure(
            "employer_count", INTEGER_MESSAGE
        )

    def test_integer_question_returns_int(self) -> None:
        result = _parse("home_office_days", "40")
        assert result.value == 40
        assert isinstance(result.value, int)

    @pytest.mark.parametrize("raw", ["\u00b2", "\u0663", "\uff15\uff10\uff10"])
    def test_non_ascii_digits_are_not_numbers(self, raw: str) -> None:
        assert _parse("gross_income", raw) == ValidationFailure("gross_income", NUMBER_MESSAGE)

    def test_range_bounds_are_inclusive(self) -> None:
        assert _parse("disability_degree", "25").value == 25
        assert _parse("disability_degree", "100").value == 100
        failure = _parse("disability_degree", "20")
        assert failure.reason == "The degree of disability must be between 25% and 100%."


class TestParseOtherTypes:
    """Boolean, choice, text and date answers."""

    @pytest.mark.parametrize("raw", ["ja", "J", "yes", "Y", "true", "1"])
    def test_affirmative(self, raw: str) -> None:
        assert _parse("church_tax", raw).value is True

    @pytest.mark.parametrize("raw", ["nein", "N", "no", "False", "0"])
    def test_negative(self, raw: str) -> None:
        assert _parse("church_tax", raw).value is False

    def test_boolean_rejects_other_words(self) -> None:
        assert _parse("church_tax", "maybe") == ValidationFailure("church_tax", BOOLEAN_MESSAGE)

    def test_choice_by_text_is_case_insensitive(self) -> None:
        assert _parse("marital_status", "single").value == "Single"

    def test_choice_by_position(self) -> None:
        assert _parse("marital_status", "2").value == "Married or registered partnership"

    def test_choice_out_of_range(self) -> None:
        result = _parse("marital_status", "7")
        assert isinstance(result, ValidationFailure)
        assert result.reason.startswith("Please choose one of the following options: Single")

    @pytest.mark.parametrize("raw", ["\u00b2", "\u0662", "\uff12"])
    def test_choice_position_must_be_ascii_digits(self, raw: str) -> None:
        result = _parse("marital_status", raw)
        assert isinstance(result, ValidationFailure)
        assert result.reason.startswith("Please choose one of the following options")

    def test_text_pattern(self) -> None:
        assert _parse("bank_iban", "AT61 1904 3002 3457 3201").value == "AT61 1904 3002 3457 3201"
        assert _parse("bank_iban", "at611904300234573201").value == "at611904300234573201"
        failure = _parse("bank_iban", "DE89 3704 0044 0532 0130 00")
        assert failure.reason == "Please enter a valid Austrian IBAN."

    def test_date_formats(self) -> None:
        question = Question(id="moved_on", prompt="When?", answer_type=AnswerType.DATE)
        assert parse_answer(question, "2025-03-01").value == date(2025, 3, 1)
        assert parse_answer(question, "01.03.2025").value == date(2025, 3, 1)
        assert parse_answer(question, "March") == ValidationFailure("moved_on", DATE_MESSAGE)


class TestRequiredAndOptional:
    def test_required_question_rejects_blank(self) -> None:
        assert _parse("full_name", "   ") == ValidationFailure("full_name", REQUIRED_MESSAGE)
        assert _parse("full_name", None) == ValidationFailure("full_name", REQUIRED_MESSAGE)

    def test_optional_question_accepts_blank(self) -> None:
        assert _parse("additional_info", "") == ParsedAnswer("additional_info", None)

    def test_input_is_trimmed(self) -> None:
        assert _parse("full_name", "  Jane Doe ").value == "Jane Doe"


class TestStoredValues:
    """Encoding to and decoding from the persisted JSON form."""

    def test_encode(self) -> None:
        assert encode_value(Decimal("45000.50")) == "45000.50"
        assert encode_value(date(2025, 3, 1)) == "2025-03-01"
        assert encode_value(True) is True
        assert encode_value(None) is None

    def test_decode_number(self) -> None:
        assert decode_stored_value(GRAPH.get("gross_income"), "45000.50") == Decimal("45000.50")
        assert decode_stored_value(GRAPH.get("employer_count"), 2) == 2

    def test_decode_rejects_bad_values(self) -> None:
        with pytest.raises(ValueError):
            decode_stored_value(GRAPH.get("gross_income"), "lots")
        with pytest.raises(ValueError):
            decode_stored_value(GRAPH.get("church_tax"), "yes")
        with pytest.raises(ValueError):
            decode_stored_value(GRAPH.get("marital_status"), "Complicated")
        with pytest.raises(ValueError):
            decode_stored_value(GRAPH.get("employer_count"), "1.5")
        with pytest.raises(ValueError):
            decode_stored_value(GRAPH.get("full_name"), None)

    @pytest.mark.parametrize(
        ("question_id", "value"),
        [
            ("gross_income", "NaN"),
            ("gross_income", "Infinity"),
            ("gross_income", "-Infinity"),
            ("gross_income", "-50000"),
            ("gross_income", "10000000.01"),
            ("employer_count", "Infinity"),
            ("employer_count", 11),
            ("employer_count", -1),
            ("children_count", 0),
            ("disability_degree", 24),
        ],
    )
    def test_decode_enforces_number_range(self, question_id: str, value) -> None:
        with pytest.raises(ValueError):
            decode_stored_value(GRAPH.get(question_id), value)

    def test_decode_accepts_range_bounds(self) -> None:
        assert decode_stored_value(GRAPH.get("employer_count"), 10) == 10
        assert decode_stored_value(GRAPH.get("gross_income"), "0") == Decimal("0")
        assert decode_stored_value(GRAPH.get("disability_degree"), "100") == 100

    def test_decode_optional_none(self) -> None:
        assert decode_stored_value(GRAPH.get("bank_iban"), None) is None
