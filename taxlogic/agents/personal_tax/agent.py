"""Personal Tax Agent orchestrating the calculation workflow.

This module provides the entry point that coordinates:
- The rule pack gate (verified, fresh pack for the session's year)
- Tax profile projection from the interview session
- Tax calculation and optimization suggestions
- Output export (only after a successful calculation)

Example:
    >>> agent = PersonalTaxAgent(registry, exporters=[MarkdownNotesExporter()])
    >>> outcome = agent.run(session)
    >>> outcome.result.net_result
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from taxlogic.agents.personal_tax.advisor import calculate_with_suggestions
from taxlogic.agents.personal_tax.calculator import CalculationResult
from taxlogic.agents.personal_tax.output import Exporter
from taxlogic.context.builder import profile_from_session
from taxlogic.context.profile import TaxProfile
from taxlogic.core.logging import get_logger, session_id_ctx, tax_year_ctx
from taxlogic.interview.session import InterviewSession
from taxlogic.interview.state_machine import InterviewStateMachine
from taxlogic.tax.registry import RulePackRegistry

logger = get_logger(__name__)


@dataclass
class PersonalTaxResult:
    """Result of personal tax agent execution.

    Attributes:
        session_id: Interview session the calculation belongs to.
        tax_year: Tax year calculated.
        profile: Profile projected from the session.
        result: Calculation result with suggestions.
        output_paths: Storage paths written by the exporters.
    """

    session_id: str
    tax_year: int
    profile: TaxProfile
    result: CalculationResult
    output_paths: list[str] = field(default_factory=list)


class PersonalTaxAgent:
    """Runs the gated calculation for an interview session.

    The rule pack is verified before anything else. A pack that is missing,
    stale, invalid or unsupported raises ``RulePackUnavailable`` (or
    ``UnsupportedTaxYear``) and no profile, calculation or export happens.
    """

    def __init__(
        self,
        registry: RulePackRegistry,
        machine: InterviewStateMachine | None = None,
        exporters: Sequence[Exporter] = (),
    ) -> None:
        """Initialize the agent.

        Args:
            registry: Rule pack registry used for the gate.
            machine: State machine owning the question graph of the sessions.
            exporters: Output writers run after a successful calculation.
        """
        self.registry = registry
        self.machine = machine or InterviewStateMachine()
        self.exporters = list(exporters)

    def run(self, session: InterviewSession, export: bool = True) -> PersonalTaxResult:
        """Calculate the session's tax outcome and export outputs.

        Args:
            session: Complete or partially complete interview session.
            export: Run the configured exporters after calculating.

        Returns:
            PersonalTaxResult with the result and written output paths.

        Raises:
            UnsupportedTaxYear: If the session's year is not offered.
            RulePackUnavailable: If the year's rule pack is not ok.
        """
        session_token = session_id_ctx.set(session.session_id)
        year_token = tax_year_ctx.set(session.tax_year)
        try:
            rule_pack = self.registry.require(session.tax_year)

            profile = profile_from_session(session, self.machine)
            result = calculate_with_suggestions(profile, rule_pack)
            logger.info(
                "calculation_completed",
                rule_pack_version=result.rule_pack_version,
                complete=session.is_complete,
                net_result=result.net_result,
                suggestions=len(result.suggestions),
            )

            output_paths: list[str] = []
            if export:
                for exporter in self.exporters:
                    output_paths.append(exporter.export(session.session_id, profile, result))
                if output_paths:
                    logger.info("calculation_exported", paths=output_paths)

            return PersonalTaxResult(
                session_id=session.session_id,
                tax_year=session.tax_year,
                profile=profile,
                result=result,
                output_paths=output_paths,
            )
        finally:
            session_id_ctx.reset(session_token)
            tax_year_ctx.reset(year_token)
