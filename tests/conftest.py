"""Pytest configuration and shared fixtures for tests."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

import pytest
from ruamel.yaml import YAML

from taxlogic.interview.state_machine import InterviewStateMachine
from taxlogic.interview.store import SessionStore
from taxlogic.tax.loader import BUNDLED_RULE_PACK_DIR, read_rule_pack_document
from taxlogic.tax.registry import RulePackRegistry, VerifiedRulePack

FIXED_NOW = datetime(2026, 10, 17, 12, 0, tzinfo=UTC)
SUPPORTED_YEARS = (2024, 2025, 2026)

# A full interview for an employee commuting 25 km without reasonable
# public transport, 40 home office days and 150 church contribution.
COMMUTER_SCRIPT: list[tuple[str, str]] = [
    ("full_name", "Jane Doe"),
    ("marital_status", "1"),
    ("employment_type", "Employed full-time"),
    ("employer_count", "1"),
    ("gross_income", "45.000"),
    ("withheld_tax", "8.500,00 €"),
    ("commute_exists", "ja"),
    ("commute_distance", "25"),
    ("commute_public_feasible", "2"),
    ("home_office_days", "40"),
    ("work_equipment", "no"),
    ("education_expenses", "no"),
    ("church_tax", "yes"),
    ("church_tax_amount", "150"),
    ("donations", "no"),
    ("medical_expenses", "no"),
    ("disability", "no"),
    ("has_children", "no"),
    ("single_earner", "No"),
    ("bank_iban", ""),
    ("additional_info", ""),
]


@pytest.fixture
def now() -> datetime:
    """The pinned current time used by registry fixtures."""
    return FIXED_NOW


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock pinned to FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def write_rule_pack(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing a rule pack YAML into a temporary directory.

    The document is a copy of the bundled pack for ``source_year`` (defaults
    to ``year``) with ``verified_at`` set to ``verified_at`` (defaults to ten
    days before FIXED_NOW). ``mutate`` may edit the raw document in place.
    """
    directory = tmp_path / "rule_packs"
    directory.mkdir(exist_ok=True)

    def _write(
        year: int,
        verified_at: datetime | None = None,
        mutate: Callable[[dict[str, Any]], None] | None = None,
        source_year: int | None = None,
    ) -> Path:
        document = read_rule_pack_document(BUNDLED_RULE_PACK_DIR, source_year or year)
        document["verified_at"] = (verified_at or FIXED_NOW - timedelta(days=10)).isoformat()
        if mutate is not None:
            mutate(document)
        path = directory / f"{year}.yaml"
        yaml = YAML(typ="safe")
        yaml.default_flow_style = False
        with path.open("w", encoding="utf-8") as f:
            yaml.dump(document, f)
        return path

    return _write


@pytest.fixture
def rule_pack_dir(write_rule_pack: Callable[..., Path], tmp_path: Path) -> Path:
    """Directory holding fresh packs for every supported year."""
    for year in SUPPORTED_YEARS:
        write_rule_pack(year)
    return tmp_path / "rule_packs"


@pytest.fixture
def registry(rule_pack_dir: Path, fixed_clock: Callable[[], datetime]) -> RulePackRegistry:
    """Registry over the fresh packs with a fixed clock."""
    return RulePackRegistry(
        rule_pack_dir=rule_pack_dir,
        supported_years=SUPPORTED_YEARS,
        stale_after_days=35,
        clock=fixed_clock,
    )


@pytest.fixture
def pack_2025(registry: RulePackRegistry) -> VerifiedRulePack:
    return registry.require(2025)


@pytest.fixture
def machine() -> InterviewStateMachine:
    return InterviewStateMachine()


@pytest.fixture
def store(machine: InterviewStateMachine, tmp_path: Path) -> SessionStore:
    """Session store persisting snapshots below tmp_path."""
    return SessionStore(machine=machine, storage_url=str(tmp_path / "sessions"))


@pytest.fixture
def answer_script() -> list[tuple[str, str]]:
    """The commuter interview as (question id, raw answer) pairs."""
    return list(COMMUTER_SCRIPT)


@pytest.fixture
def completed_session(machine: InterviewStateMachine, answer_script):
    """A 2025 session that went through the whole commuter interview."""
    session = machine.start(2025, session_id="jane")
    for question_id, raw in answer_script:
        assert session.current_question_id == question_id
        outcome = machine.submit(session, raw)
        assert outcome.accepted, outcome.validation_error
    return session
