"""Yearly rule packs: models, loading, the verification registry and diffs."""

from taxlogic.tax.diff import RulePackDiff, diff_rule_packs, render_markdown, to_json
from taxlogic.tax.loader import (
    BUNDLED_RULE_PACK_DIR,
    RulePackLoadError,
    list_rule_pack_years,
    load_rule_pack,
    load_rule_pack_from_yaml,
    read_rule_pack_document,
)
from taxlogic.tax.models import RulePack, TaxBracket
from taxlogic.tax.registry import (
    RulePackRegistry,
    RulePackState,
    RulePackStatus,
    RulePackUnavailable,
    UnsupportedTaxYear,
    VerifiedRulePack,
)

__all__ = [
    # Models
    "RulePack",
    "TaxBracket",
    # Loader
    "BUNDLED_RULE_PACK_DIR",
    "RulePackLoadError",
    "list_rule_pack_years",
    "load_rule_pack",
    "load_rule_pack_from_yaml",
    "read_rule_pack_document",
    # Registry
    "RulePackRegistry",
    "RulePackState",
    "RulePackStatus",
    "RulePackUnavailable",
    "UnsupportedTaxYear",
    "VerifiedRulePack",
    # Diff
    "RulePackDiff",
    "diff_rule_packs",
    "render_markdown",
    "to_json",
]
