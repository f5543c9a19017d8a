"""Rule pack registry and verification gate.

The registry is the only way to obtain a ``VerifiedRulePack``. Every
consumer of legal constants (calculation engine, optimization advisor)
takes that type, so financial output can never be produced from a pack
that is missing, stale, invalid, or for a year that is not offered.

Example:
    >>> registry = RulePackRegistry()
    >>> registry.status(2025).state
    <RulePackState.OK: 'ok'>
    >>> verified = registry.require(2025)
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import Enum
from pathlib import Path

from taxlogic.core.config import settings
from taxlogic.core.logging import get_logger
from taxlogic.tax.loader import (
    BUNDLED_RULE_PACK_DIR,
    RulePackLoadError,
    load_rule_pack,
    rule_pack_path,
)
from taxlogic.tax.models import RulePack

logger = get_logger(__name__)


class RulePackState(str, Enum):
    """Availability of a year's rule pack."""

    OK = "ok"
    MISSING = "missing"
    STALE = "stale"
    INVALID = "invalid"
    UNSUPPORTED_YEAR = "unsupported-year"


@dataclass(frozen=True)
class RulePackStatus:
    """Outcome of a status check. Never raised, always returned."""

    year: int
    state: RulePackState
    message: str
    supported_years: tuple[int, ...]
    pack_path: str | None = None
    verified_at: datetime | None = None
    days_since_verification: int | None = None

    @property
    def is_ok(self) -> bool:
        return self.state is RulePackState.OK


class RulePackUnavailable(Exception):
    """Raised when a calculation is attempted against a pack that is not ok.

    Attributes:
        state: The non-ok state of the pack.
        year: The requested tax year.
        status: Full status record, when available.
    """

    def __init__(
        self,
        state: RulePackState,
        year: int,
        message: str | None = None,
        status: RulePackStatus | None = None,
    ) -> None:
        self.state = state
        self.year = year
        self.status = status
        super().__init__(message or f"Rule pack for {year} is unavailable: {state.value}")


class UnsupportedTaxYear(RulePackUnavailable):
    """Raised for a year outside the closed set of offered years."""

    def __init__(self, year: int, supported_years: Iterable[int]) -> None:
        self.supported_years = tuple(supported_years)
        years = ", ".join(str(y) for y in self.supported_years) or "(none)"
        super().__init__(
            RulePackState.UNSUPPORTED_YEAR,
            year,
            f"Unsupported tax year {year}. Supported years: {years}",
        )


_ISSUE_TOKEN = object()


@dataclass(frozen=True)
class VerifiedRulePack:
    """A rule pack that passed schema, validity and freshness checks.

    Instances are issued by ``RulePackRegistry`` only.
    """

    pack: RulePack
    status: RulePackStatus
    _token: object = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self._token is not _ISSUE_TOKEN:
            raise TypeError("VerifiedRulePack instances are issued by RulePackRegistry")

    @property
    def year(self) -> int:
        return self.pack.year


class RulePackRegistry:
    """Loads, validates and reports the freshness of yearly rule packs.

    Parsed packs are cached per year and never mutated afterwards, so
    concurrent readers need no locking. Freshness is evaluated against the
    clock on every status check.
    """

    def __init__(
        self,
        rule_pack_dir: Path | str | None = None,
        supported_years: Iterable[int] | None = None,
        stale_after_days: int | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the registry.

        Args:
            rule_pack_dir: Directory with `<year>.yaml` packs. Defaults to
                settings, then to the bundled packs.
            supported_years: Closed set of offered years. Defaults to settings.
            stale_after_days: Default staleness window when a pack declares none.
            clock: Returns the current aware datetime. Defaults to UTC now.
        """
        directory = rule_pack_dir or settings.rule_pack_dir or BUNDLED_RULE_PACK_DIR
        self.rule_pack_dir = Path(directory)
        years = settings.supported_tax_years if supported_years is None else supported_years
        self.supported_years: tuple[int, ...] = tuple(sorted(set(years)))
        self.stale_after_days = stale_after_days or settings.rule_pack_stale_after_days
        self._clock = clock or (lambda: datetime.now(UTC))
        self._cache: dict[int, RulePack] = {}
        self._lock = threading.Lock()

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def _get_pack(self, year: int) -> RulePack:
        """Return the cached pack, loading it on first use."""
        pack = self._cache.get(year)
        if pack is not None:
            return pack
        with self._lock:
            pack = self._cache.get(year)
            if pack is None:
                pack = load_rule_pack(self.rule_pack_dir, year)
                self._cache[year] = pack
                logger.info(
                    "rule_pack_loaded",
                    tax_year=year,
                    version=pack.version,
                    path=str(rule_pack_path(self.rule_pack_dir, year)),
                )
        return pack

    def _evaluate(self, year: int) -> tuple[RulePackStatus, RulePack | None]:
        if year not in self.supported_years:
            return (
                RulePackStatus(
                    year=year,
                    state=RulePackState.UNSUPPORTED_YEAR,
                    message=UnsupportedTaxYear(year, self.supported_years).args[0],
                    supported_years=self.supported_years,
                ),
                None,
            )

        path = str(rule_pack_path(self.rule_pack_dir, year))
        try:
            pack = self._get_pack(year)
        except RulePackLoadError as exc:
            state = RulePackState.MISSING if exc.missing else RulePackState.INVALID
            return (
                RulePackStatus(
                    year=year,
                    state=state,
                    message=str(exc),
                    supported_years=self.supported_years,
                    pack_path=path,
                ),
                None,
            )

        if not pack.valid:
            return (
                RulePackStatus(
                    year=year,
                    state=RulePackState.INVALID,
                    message=f"Tax rules for {year} are flagged invalid",
                    supported_years=self.supported_years,
                    pack_path=path,
                    verified_at=pack.verified_at,
                ),
                None,
            )

        now = self._clock()
        window = pack.stale_after_days or self.stale_after_days
        age = now - pack.verified_at
        days_old = age.days
        if pack.verified_at <= now - timedelta(days=window):
            return (
                RulePackStatus(
                    year=year,
                    state=RulePackState.STALE,
                    message=(
                        f"Tax rules for {year} are stale "
                        f"({days_old} days old, max {window})"
                    ),
                    supported_years=self.supported_years,
                    pack_path=path,
                    verified_at=pack.verified_at,
                    days_since_verification=days_old,
                ),
                None,
            )

        return (
            RulePackStatus(
                year=year,
                state=RulePackState.OK,
                message=f"Tax rules for {year} are valid",
                supported_years=self.supported_years,
                pack_path=path,
                verified_at=pack.verified_at,
                days_since_verification=days_old,
            ),
            pack,
        )

    def status(self, year: int) -> RulePackStatus:
        """Report the state of a year's pack. Never raises."""
        status, _ = self._evaluate(year)
        return status

    def statuses(self) -> list[RulePackStatus]:
        """Status for every supported year, ascending."""
        return [self.status(year) for year in self.supported_years]

    def load(self, year: int) -> VerifiedRulePack | RulePackStatus:
        """Return the verified pack, or the non-ok status explaining why not."""
        status, pack = self._evaluate(year)
        if pack is None:
            return status
        return VerifiedRulePack(pack=pack, status=status, _token=_ISSUE_TOKEN)

    def require(self, year: int) -> VerifiedRulePack:
        """Return the verified pack or raise.

        Raises:
            UnsupportedTaxYear: If the year is not offered.
            RulePackUnavailable: If the pack is missing, stale or invalid.
        """
        result = self.load(year)
        if isinstance(result, VerifiedRulePack):
            return result

        logger.warning(
            "rule_pack_unavailable",
            tax_year=year,
            state=result.state.value,
            reason=result.message,
        )
        if result.state is RulePackState.UNSUPPORTED_YEAR:
            raise UnsupportedTaxYear(year, self.supported_years)
        raise RulePackUnavailable(result.state, year, result.message, status=result)
