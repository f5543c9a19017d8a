"""Output generators for personal tax calculations.

This module provides filer-facing output generation:
- generate_calculation_notes: Markdown notes explaining the calculation
- generate_calculation_worksheet: Excel workbook with the full breakdown

Exporters write these outputs to storage. They run only after a
successful calculation (see ``PersonalTaxAgent``).
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from io import BytesIO
from typing import Protocol

from openpyxl import Workbook
from openpyxl.styles import Font

from taxlogic.agents.personal_tax.calculator import CalculationResult
from taxlogic.context.profile import TaxProfile
from taxlogic.core.config import settings
from taxlogic.integrations.storage import write_bytes

CURRENCY_FORMAT = '#,##0.00 "EUR"'

_DEDUCTION_LABELS = {
    "commuter_allowance": "Commuter allowance",
    "home_office": "Home office allowance",
    "work_equipment": "Work equipment",
    "education": "Training and education",
    "church_contribution": "Church contribution",
    "donations": "Donations",
    "medical": "Medical expenses",
    "childcare": "Childcare",
}

_CREDIT_LABELS = {
    "employee_credit": "Employee credit",
    "family_bonus": "Family bonus",
    "single_earner_credit": "Single earner credit",
    "single_parent_credit": "Single parent credit",
}


def _money(value: Decimal) -> str:
    return f"EUR {value:,.2f}"


# =============================================================================
# Calculation Notes (Markdown)
# =============================================================================


def generate_calculation_notes(
    profile: TaxProfile, result: CalculationResult, generated_at: datetime | None = None
) -> str:
    """Generate Markdown notes explaining a calculation.

    Args:
        profile: Profile the result was calculated from.
        result: Calculation result, usually with suggestions attached.
        generated_at: Timestamp for the header. Defaults to now.

    Returns:
        Markdown document.
    """
    timestamp = (generated_at or datetime.now()).strftime("%Y-%m-%d %H:%M")
    name = profile.personal.name or "Filer"

    lines = [
        f"# Tax Calculation Notes: {name}",
        "",
        f"**Tax Year:** {result.tax_year}",
        f"**Rule Pack:** {result.rule_pack_version}",
        f"**Generated:** {timestamp}",
        "",
        "## Summary",
        "",
        f"- Gross income: {_money(result.gross_income)}",
        f"- Total deductions: {_money(result.total_deductions)}",
        f"- Taxable income: {_money(result.taxable_income)}",
        f"- Tax before credits: {_money(result.gross_tax)}",
        f"- Credits applied: {_money(result.total_credits)}",
        f"- Final tax: {_money(result.final_tax)}",
        f"- Withheld tax: {_money(result.withheld_tax)}",
    ]
    if result.is_refund:
        lines.append(f"- **Estimated refund: {_money(result.refund)}**")
    else:
        lines.append(f"- **Estimated amount due: {_money(result.amount_due)}**")
    lines.append(f"- Effective tax rate: {result.effective_rate}%")

    lines.extend(["", "## Deductions", "", "| Category | Amount | Detail |", "|---|---:|---|"])
    for item in result.deductions:
        if item.amount == 0 and item.declared == 0:
            continue
        label = _DEDUCTION_LABELS.get(item.category.value, item.category.value)
        lines.append(f"| {label} | {_money(item.amount)} | {item.detail} |")

    lines.extend(
        ["", "## Tax Brackets", "", "| Range | Rate | Taxed | Tax |", "|---|---:|---:|---:|"]
    )
    for slice_ in result.bracket_breakdown:
        upper = _money(slice_.upper) if slice_.upper is not None else "and above"
        lines.append(
            f"| {_money(slice_.lower)} - {upper} | {slice_.rate * 100:.0f}% | "
            f"{_money(slice_.taxed_amount)} | {_money(slice_.tax)} |"
        )

    if result.credits:
        lines.extend(["", "## Credits", "", "| Credit | Entitled | Applied |", "|---|---:|---:|"])
        for credit in result.credits:
            label = _CREDIT_LABELS.get(credit.name, credit.name)
            lines.append(f"| {label} | {_money(credit.entitled)} | {_money(credit.applied)} |")

    if result.suggestions:
        lines.extend(["", "## Optimization Suggestions", ""])
        for index, suggestion in enumerate(result.suggestions, start=1):
            lines.append(
                f"{index}. **{suggestion.title}** "
                f"(estimated savings {_money(suggestion.estimated_savings)}): "
                f"{suggestion.rationale}"
            )

    if result.warnings:
        lines.extend(["", "## Warnings", ""])
        lines.extend(f"- {warning}" for warning in result.warnings)

    return "\n".join(lines) + "\n"


# =============================================================================
# Calculation Worksheet (Excel)
# =============================================================================


def _auto_fit_columns(worksheet) -> None:
    for column_cells in worksheet.columns:
        max_length = max((len(str(cell.value)) for cell in column_cells if cell.value), default=0)
        worksheet.column_dimensions[column_cells[0].column_letter].width = min(max_length + 2, 60)


def generate_calculation_worksheet(profile: TaxProfile, result: CalculationResult) -> bytes:
    """Generate an Excel workbook with the calculation breakdown.

    Returns:
        The xlsx file contents.
    """
    workbook = Workbook()
    ws = workbook.active
    ws.title = "Calculation"

    ws["A1"] = f"Tax Calculation: {profile.personal.name or 'Filer'}"
    ws["A1"].font = Font(bold=True, size=14)
    ws["A2"] = f"Tax Year: {result.tax_year}"
    ws["A3"] = f"Rule Pack: {result.rule_pack_version}"

    row = 5
    ws[f"A{row}"] = "DEDUCTIONS"
    ws[f"A{row}"].font = Font(bold=True)
    row += 1
    for item in result.deductions:
        ws[f"A{row}"] = _DEDUCTION_LABELS.get(item.category.value, item.category.value)
        ws[f"B{row}"] = float(item.amount)
        ws[f"B{row}"].number_format = CURRENCY_FORMAT
        ws[f"C{row}"] = item.detail
        row += 1

    row += 1
    ws[f"A{row}"] = "TAX CALCULATION"
    ws[f"A{row}"].font = Font(bold=True)
    row += 1

    tax_items = [
        ("Gross Income", result.gross_income),
        ("Less: Deductions", result.total_deductions),
        ("Taxable Income", result.taxable_income),
        ("Tax Before Credits", result.gross_tax),
        ("Credits Applied", result.total_credits),
        ("Final Tax", result.final_tax),
        ("Withheld Tax", result.withheld_tax),
        ("Refund/(Amount Due)", result.net_result),
    ]
    for label, amount in tax_items:
        ws[f"A{row}"] = label
        ws[f"B{row}"] = float(amount)
        ws[f"B{row}"].number_format = CURRENCY_FORMAT
        if label in ("Final Tax", "Refund/(Amount Due)"):
            ws[f"A{row}"].font = Font(bold=True)
            ws[f"B{row}"].font = Font(bold=True)
        row += 1

    _auto_fit_columns(ws)

    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


# =============================================================================
# Exporters
# =============================================================================


class Exporter(Protocol):
    """Writes an output for a successful calculation and returns its path."""

    def export(self, session_id: str, profile: TaxProfile, result: CalculationResult) -> str: ...


class MarkdownNotesExporter:
    """Writes calculation notes to ``<output_url>/<session_id>/calculation_notes.md``."""

    def __init__(self, output_url: str | None = None) -> None:
        self.output_url = output_url or settings.output_dir

    def export(self, session_id: str, profile: TaxProfile, result: CalculationResult) -> str:
        notes = generate_calculation_notes(profile, result)
        return write_bytes(
            self.output_url, f"{session_id}/calculation_notes.md", notes.encode("utf-8")
        )


class WorksheetExporter:
    """Writes the Excel worksheet to ``<output_url>/<session_id>/calculation.xlsx``."""

    def __init__(self, output_url: str | None = None) -> None:
        self.output_url = output_url or settings.output_dir

    def export(self, session_id: str, profile: TaxProfile, result: CalculationResult) -> str:
        content = generate_calculation_worksheet(profile, result)
        return write_bytes(self.output_url, f"{session_id}/calculation.xlsx", content)
