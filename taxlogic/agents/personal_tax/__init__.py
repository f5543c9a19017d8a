"""Personal tax agent module.

This module provides the PersonalTaxAgent for calculating an employee tax
assessment from an interview session, along with the calculation engine,
the optimization advisor and output generators.

Components:
- PersonalTaxAgent: Gated workflow (rule pack -> profile -> calculate -> advise -> export)
- Calculator: Itemized deductions, progressive tax, credits, net result
- Advisor: Unclaimed-but-eligible deductions with estimated savings
- Output generators: Calculation notes (Markdown) and worksheet (Excel)
"""

from taxlogic.agents.personal_tax.advisor import advise, calculate_with_suggestions
from taxlogic.agents.personal_tax.agent import PersonalTaxAgent, PersonalTaxResult
from taxlogic.agents.personal_tax.calculator import (
    BracketSlice,
    CalculationResult,
    CreditItem,
    DeductionCategory,
    DeductionItem,
    Suggestion,
    calculate,
    progressive_tax,
    self_retention_rate,
)
from taxlogic.agents.personal_tax.output import (
    MarkdownNotesExporter,
    WorksheetExporter,
    generate_calculation_notes,
    generate_calculation_worksheet,
)

__all__ = [
    # Agent
    "PersonalTaxAgent",
    "PersonalTaxResult",
    # Data structures
    "BracketSlice",
    "CalculationResult",
    "CreditItem",
    "DeductionCategory",
    "DeductionItem",
    "Suggestion",
    # Calculator functions
    "calculate",
    "progressive_tax",
    "self_retention_rate",
    # Advisor
    "advise",
    "calculate_with_suggestions",
    # Output generators
    "MarkdownNotesExporter",
    "WorksheetExporter",
    "generate_calculation_notes",
    "generate_calculation_worksheet",
]
