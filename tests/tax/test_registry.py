"""Tests for the rule pack registry and its verification gate."""

from dataclasses import FrozenInstanceError
from datetime import timedelta

import pytest

from taxlogic.tax.registry import (
    RulePackRegistry,
    RulePackState,
    RulePackStatus,
    RulePackUnavailable,
    UnsupportedTaxYear,
    VerifiedRulePack,
)


class TestStatus:
    """Tests for RulePackRegistry.status."""

    def test_fresh_pack_is_ok(self, registry: RulePackRegistry) -> None:
        status = registry.status(2025)

        assert status.state is RulePackState.OK
        assert status.is_ok
        assert status.days_since_verification == 10
        assert status.supported_years == (2024, 2025, 2026)
        assert status.pack_path.endswith("2025.yaml")

    def test_statuses_cover_every_supported_year(self, registry: RulePackRegistry) -> None:
        assert [s.year for s in registry.statuses()] == [2024, 2025, 2026]
        assert all(s.is_ok for s in registry.statuses())

    def test_unsupported_year(self, registry: RulePackRegistry) -> None:
        status = registry.status(2019)

        assert status.state is RulePackState.UNSUPPORTED_YEAR
        assert "2024, 2025, 2026" in status.message
        assert status.pack_path is None

    def test_missing_pack(self, registry: RulePackRegistry, rule_pack_dir) -> None:
        (rule_pack_dir / "2026.yaml").unlink()
        status = registry.status(2026)

        assert status.state is RulePackState.MISSING
        assert "not found" in status.message

    def test_stale_pack(self, registry: RulePackRegistry, write_rule_pack, now) -> None:
        write_rule_pack(2024, verified_at=now - timedelta(days=100))
        status = registry.status(2024)

        assert status.state is RulePackState.STALE
        assert status.days_since_verification == 100
        assert "stale" in status.message

    def test_staleness_boundary(self, registry: RulePackRegistry, write_rule_pack, now) -> None:
        """A pack must be verified strictly after the window start."""
        write_rule_pack(2024, verified_at=now - timedelta(days=35) + timedelta(seconds=1))
        write_rule_pack(2025, verified_at=now - timedelta(days=35))
        write_rule_pack(2026, verified_at=now - timedelta(days=35, seconds=1))

        assert registry.status(2024).state is RulePackState.OK
        assert registry.status(2025).state is RulePackState.STALE
        assert registry.status(2025).message == "Tax rules for 2025 are stale (35 days old, max 35)"
        assert registry.status(2026).state is RulePackState.STALE

    def test_pack_level_window_overrides_default(
        self, registry: RulePackRegistry, write_rule_pack, now
    ) -> None:
        def shorten(document: dict) -> None:
            document["stale_after_days"] = 10

        write_rule_pack(2025, verified_at=now - timedelta(days=20), mutate=shorten)
        assert registry.status(2025).state is RulePackState.STALE

    def test_pack_flagged_invalid(self, registry: RulePackRegistry, write_rule_pack) -> None:
        def invalidate(document: dict) -> None:
            document["valid"] = False

        write_rule_pack(2025, mutate=invalidate)
        status = registry.status(2025)

        assert status.state is RulePackState.INVALID
        assert "flagged invalid" in status.message

    def test_schema_violation_is_invalid(self, registry: RulePackRegistry, write_rule_pack) -> None:
        """A bracket schedule with a gap makes the pack invalid, not missing."""

        def break_brackets(document: dict) -> None:
            document["tax_brackets"][1]["min"] = 14000

        write_rule_pack(2025, mutate=break_brackets)
        status = registry.status(2025)

        assert status.state is RulePackState.INVALID
        assert "tax bracket 1" in status.message

    def test_clock_moves_pack_into_staleness(self, rule_pack_dir, now) -> None:
        """Freshness is evaluated on every check, not cached with the pack."""
        current = {"now": now}
        registry = RulePackRegistry(
            rule_pack_dir=rule_pack_dir,
            supported_years=[2025],
            stale_after_days=35,
            clock=lambda: current["now"],
        )
        assert registry.status(2025).is_ok

        current["now"] = now + timedelta(days=60)
        assert registry.status(2025).state is RulePackState.STALE


class TestRequire:
    """Tests for RulePackRegistry.require and the verified type."""

    def test_returns_verified_pack(self, registry: RulePackRegistry) -> None:
        verified = registry.require(2025)

        assert isinstance(verified, VerifiedRulePack)
        assert verified.year == 2025
        assert verified.status.is_ok

    def test_unsupported_year_raises_distinct_type(self, registry: RulePackRegistry) -> None:
        with pytest.raises(UnsupportedTaxYear) as exc_info:
            registry.require(2019)

        assert exc_info.value.state is RulePackState.UNSUPPORTED_YEAR
        assert exc_info.value.supported_years == (2024, 2025, 2026)

    def test_invalid_pack_raises_unavailable(
        self, registry: RulePackRegistry, write_rule_pack
    ) -> None:
        def invalidate(document: dict) -> None:
            document["valid"] = False

        write_rule_pack(2025, mutate=invalidate)
        with pytest.raises(RulePackUnavailable) as exc_info:
            registry.require(2025)

        assert exc_info.value.state is RulePackState.INVALID
        assert exc_info.value.year == 2025
        assert not isinstance(exc_info.value, UnsupportedTaxYear)

    def test_stale_pack_raises_unavailable(
        self, registry: RulePackRegistry, write_rule_pack, now
    ) -> None:
        write_rule_pack(2026, verified_at=now - timedelta(days=90))
        with pytest.raises(RulePackUnavailable) as exc_info:
            registry.require(2026)
        assert exc_info.value.state is RulePackState.STALE
        assert exc_info.value.status is not None

    def test_load_returns_status_instead_of_raising(self, registry: RulePackRegistry) -> None:
        result = registry.load(2019)
        assert isinstance(result, RulePackStatus)
        assert result.state is RulePackState.UNSUPPORTED_YEAR

    def test_verified_pack_cannot_be_forged(self, registry: RulePackRegistry) -> None:
        """Only the registry issues VerifiedRulePack instances."""
        verified = registry.require(2025)
        with pytest.raises(TypeError):
            VerifiedRulePack(pack=verified.pack, status=verified.status)

    def test_verified_pack_is_immutable(self, registry: RulePackRegistry) -> None:
        verified = registry.require(2025)
        with pytest.raises(FrozenInstanceError):
            verified.pack = None


class TestCache:
    def test_pack_is_parsed_once(self, registry: RulePackRegistry, rule_pack_dir) -> None:
        """Once loaded, a pack survives removal of its file until the cache is cleared."""
        first = registry.require(2025).pack
        (rule_pack_dir / "2025.yaml").unlink()

        assert registry.require(2025).pack is first

        registry.clear_cache()
        assert registry.status(2025).state is RulePackState.MISSING

    def test_defaults_to_bundled_packs(self) -> None:
        registry = RulePackRegistry(supported_years=[2025])
        assert registry.rule_pack_dir.name == "rule_packs"
        assert (registry.rule_pack_dir / "2025.yaml").is_file()
