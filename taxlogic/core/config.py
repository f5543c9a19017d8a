"""Application configuration using Pydantic Settings."""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_SUPPORTED_TAX_YEARS = [2024, 2025, 2026]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environment
    environment: str = "development"
    """Current environment (development, staging, production)."""

    debug: bool = False
    """Enable debug mode."""

    log_format: str | None = None
    """Logging format override (json or console). Defaults by environment."""

    # Rule packs
    rule_pack_dir: Path | None = None
    """Directory holding one `<year>.yaml` rule pack per tax year.

    When unset, the packs bundled with the package are used.
    """

    # NoDecode prevents pydantic-settings from forcing JSON parsing at the
    # env-source layer, so we can accept either JSON arrays or CSV strings.
    supported_tax_years: Annotated[list[int], NoDecode] = DEFAULT_SUPPORTED_TAX_YEARS
    """Closed set of tax years offered. Any other year is unsupported."""

    rule_pack_stale_after_days: int = 35
    """Default staleness window for rule pack verification timestamps."""

    # Storage
    session_storage_url: str = "/tmp/taxlogic/sessions"
    """Storage URL for persisted interview snapshots (file://, s3://, or local)."""

    output_dir: str = "/tmp/taxlogic/output"
    """Storage URL for exported calculation notes."""

    @field_validator("supported_tax_years", mode="before")
    @classmethod
    def parse_supported_tax_years(cls, value: object) -> list[int]:
        """Parse supported tax years from JSON array, CSV, or list."""
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return DEFAULT_SUPPORTED_TAX_YEARS.copy()

            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                decoded = None

            if isinstance(decoded, list):
                return _normalize_years(decoded)
            if isinstance(decoded, int):
                return _normalize_years([decoded])
            if decoded is not None:
                raise ValueError(
                    "SUPPORTED_TAX_YEARS must be a JSON array or comma-separated string."
                )

            # Fallback: comma-separated values
            return _normalize_years(item.strip() for item in text.split(","))

        if isinstance(value, (list, tuple, set)):
            return _normalize_years(value)

        raise ValueError(
            "SUPPORTED_TAX_YEARS must be a string, list, tuple, or set."
        )

    @field_validator("rule_pack_stale_after_days")
    @classmethod
    def validate_stale_window(cls, value: int) -> int:
        """Staleness window must be at least one day."""
        if value < 1:
            raise ValueError("RULE_PACK_STALE_AFTER_DAYS must be at least 1")
        return value


def _normalize_years(values: Iterable[object]) -> list[int]:
    """Normalize, dedupe and sort tax years."""
    years: set[int] = set()
    for raw_item in values:
        item = str(raw_item).strip().strip("'").strip('"')
        if not item:
            continue
        try:
            year = int(item)
        except ValueError as exc:
            raise ValueError(
                f"SUPPORTED_TAX_YEARS contains a non-integer year: {item!r}"
            ) from exc
        years.add(year)

    if not years:
        return DEFAULT_SUPPORTED_TAX_YEARS.copy()
    return sorted(years)


try:
    settings = Settings()
except Exception as exc:
    env_file = Path(".env")
    root_error = str(exc)
    suggestions = [
        "Allowed values for SUPPORTED_TAX_YEARS are:",
        "  1) [2024, 2025, 2026]",
        "  2) 2024,2025,2026",
        "RULE_PACK_STALE_AFTER_DAYS must be a positive integer.",
    ]

    raise RuntimeError(
        "Failed to initialize application settings. "
        f"Check environment variables in {env_file.resolve() if env_file.exists() else '.env'}.\n"
        + f"Error: {root_error}\n"
        + "\n".join(suggestions)
    ) from exc
