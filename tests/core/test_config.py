"""Configuration parsing tests."""

import pytest

from taxlogic.core.config import DEFAULT_SUPPORTED_TAX_YEARS, Settings


def test_supported_tax_years_accepts_csv(monkeypatch) -> None:
    """CSV string in env parses into a sorted list of years."""
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", "2026, 2024,2025")
    cfg = Settings()
    assert cfg.supported_tax_years == [2024, 2025, 2026]


def test_supported_tax_years_accepts_json_array(monkeypatch) -> None:
    """JSON array string in env parses into a list of years."""
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", "[2025, 2024, 2025]")
    cfg = Settings()
    assert cfg.supported_tax_years == [2024, 2025]


def test_supported_tax_years_accepts_single_year(monkeypatch) -> None:
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", "2025")
    assert Settings().supported_tax_years == [2025]


def test_supported_tax_years_defaults_when_blank(monkeypatch) -> None:
    """A blank value falls back to the default years."""
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", "  ")
    assert Settings().supported_tax_years == DEFAULT_SUPPORTED_TAX_YEARS


def test_supported_tax_years_rejects_invalid_object(monkeypatch) -> None:
    """Invalid values fail with a clear validation error."""
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", '{"invalid":"json"}')
    with pytest.raises(Exception) as exc_info:
        Settings()
    assert "SUPPORTED_TAX_YEARS" in str(exc_info.value)


def test_supported_tax_years_rejects_non_integer(monkeypatch) -> None:
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", "2024,next year")
    with pytest.raises(Exception) as exc_info:
        Settings()
    assert "non-integer year" in str(exc_info.value)


def test_stale_window_must_be_positive(monkeypatch) -> None:
    """A zero staleness window is rejected."""
    monkeypatch.setenv("RULE_PACK_STALE_AFTER_DAYS", "0")
    with pytest.raises(Exception) as exc_info:
        Settings()
    assert "RULE_PACK_STALE_AFTER_DAYS" in str(exc_info.value)


def test_storage_defaults(monkeypatch) -> None:
    monkeypatch.delenv("SESSION_STORAGE_URL", raising=False)
    monkeypatch.delenv("OUTPUT_DIR", raising=False)
    cfg = Settings()
    assert cfg.session_storage_url == "/tmp/taxlogic/sessions"
    assert cfg.output_dir == "/tmp/taxlogic/output"
    assert cfg.rule_pack_stale_after_days >= 1
