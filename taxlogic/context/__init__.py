"""Context module for tax profiles.

This module provides:
- The immutable tax profile record consumed by the calculator
- The profile builder projecting interview answers onto a profile
"""

from taxlogic.context.builder import build_tax_profile, profile_from_session
from taxlogic.context.profile import (
    AgeBand,
    DeductionInputs,
    Dependent,
    IncomeFacts,
    MaritalStatus,
    PersonalFacts,
    TaxProfile,
)

__all__ = [
    # Profile record
    "AgeBand",
    "DeductionInputs",
    "Dependent",
    "IncomeFacts",
    "MaritalStatus",
    "PersonalFacts",
    "TaxProfile",
    # Builder
    "build_tax_profile",
    "profile_from_session",
]
