"""Rule pack loader with YAML parsing and validation.

This module provides functions to load yearly rule pack files from YAML
format into Pydantic models with full validation.
"""

from pathlib import Path
from typing import Any

from pydantic import ValidationError
from ruamel.yaml import YAML

from taxlogic.tax.models import RulePack

BUNDLED_RULE_PACK_DIR = Path(__file__).parent / "rule_packs"


class RulePackLoadError(Exception):
    """Exception raised when a rule pack cannot be loaded or validated."""

    def __init__(
        self,
        message: str,
        path: Path | None = None,
        errors: list[str] | None = None,
        missing: bool = False,
    ):
        """Initialize RulePackLoadError.

        Args:
            message: Human-readable error message
            path: Path to the rule pack that failed to load
            errors: List of specific validation errors
            missing: True when the file does not exist at all
        """
        self.path = path
        self.errors = errors or []
        self.missing = missing
        super().__init__(message)


def rule_pack_path(directory: Path, year: int) -> Path:
    """Return the conventional file path of a year's pack."""
    return directory / f"{year}.yaml"


def _parse_yaml(path: Path) -> dict[str, Any]:
    """Parse a YAML file and return its contents as a dictionary.

    Args:
        path: Path to the YAML file

    Returns:
        Dictionary containing the parsed YAML content

    Raises:
        RulePackLoadError: If the file cannot be read or parsed
    """
    yaml = YAML(typ="safe")

    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)
    except FileNotFoundError:
        raise RulePackLoadError(f"Rule pack not found: {path}", path=path, missing=True)
    except Exception as e:
        raise RulePackLoadError(f"Failed to parse YAML: {e}", path=path)

    if data is None:
        raise RulePackLoadError("Empty rule pack file", path=path)

    if not isinstance(data, dict):
        raise RulePackLoadError(
            f"Rule pack must be a YAML mapping, got {type(data).__name__}",
            path=path,
        )

    return dict(data)


def _format_validation_errors(error: ValidationError) -> list[str]:
    errors = []
    for err in error.errors():
        loc = ".".join(str(x) for x in err["loc"])
        msg = err["msg"]
        errors.append(f"{loc}: {msg}" if loc else msg)
    return errors


def load_rule_pack_from_dict(data: dict[str, Any], path: Path | None = None) -> RulePack:
    """Validate an already-parsed rule pack document.

    Args:
        data: Parsed rule pack document
        path: Optional source path, used in error messages

    Returns:
        Validated RulePack

    Raises:
        RulePackLoadError: If validation fails
    """
    try:
        return RulePack.model_validate(data)
    except ValidationError as e:
        errors = _format_validation_errors(e)
        raise RulePackLoadError(
            f"Rule pack validation failed: {'; '.join(errors)}",
            path=path,
            errors=errors,
        ) from e


def load_rule_pack_from_yaml(path: str | Path) -> RulePack:
    """Load a rule pack from a YAML file path.

    Args:
        path: Path to the YAML file

    Returns:
        Parsed and validated RulePack

    Raises:
        RulePackLoadError: If the file cannot be loaded or validation fails
    """
    path = Path(path)
    data = _parse_yaml(path)
    return load_rule_pack_from_dict(data, path=path)


def load_rule_pack(directory: Path, year: int) -> RulePack:
    """Load and validate the pack for ``year`` from ``directory``.

    Raises:
        RulePackLoadError: If the file is missing, malformed, or declares
            a different year than its file name.
    """
    path = rule_pack_path(directory, year)
    pack = load_rule_pack_from_yaml(path)
    if pack.year != year:
        raise RulePackLoadError(
            f"Rule pack year mismatch. Expected {year}, found {pack.year}",
            path=path,
        )
    return pack


def read_rule_pack_document(directory: Path, year: int) -> dict[str, Any]:
    """Read a pack as a raw mapping without validation (used by the diff report)."""
    return _parse_yaml(rule_pack_path(directory, year))


def list_rule_pack_years(directory: Path) -> list[int]:
    """List years that have a pack file in ``directory``, ascending."""
    if not directory.is_dir():
        return []
    years = []
    for file in directory.glob("*.yaml"):
        if file.stem.isdigit() and len(file.stem) == 4:
            years.append(int(file.stem))
    return sorted(years)
