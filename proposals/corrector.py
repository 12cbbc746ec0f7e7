"""
Semantic Corrector

Sequential correction passes that rewrite structurally valid but
semantically wrong edit instructions. Each deterministic pass is pure and
receives the previous pass's output; the optional LLM referee runs first
when configured.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple

from gsheets.sheets_helpers import offset_cell, strip_sheet_prefix, with_sheet_prefix
from proposals.schema import (
    ConfidenceTier,
    EditInstruction,
    EditKind,
    UpdateFormulaEdit,
)

logger = logging.getLogger(__name__)

DESCRIPTIVE_KEYWORDS = (
    "Current Value",
    "Revenue Efficiency",
    "tied up in inventory",
    "assets",
    "Total",
    "Average",
    "Count",
    "Sum",
    "Max",
    "Min",
)

# Phrases that mark a formula as prose rather than a calculation
DESCRIPTIVE_FORMULA_PHRASES = ("Current Value", "Revenue Efficiency", "tied up in inventory")

DESCRIPTIVE_MIN_LENGTH = 15

# (trigger substrings, function, default range), first match wins
FORMULA_TEMPLATES: Tuple[Tuple[Tuple[str, ...], str, str], ...] = (
    (("Current Value", "inventory"), "SUM", "C1:C10"),
    (("Revenue", "efficiency"), "SUM", "B1:B10"),
    (("Average", "avg"), "AVERAGE", "C1:C10"),
    (("Count", "Total", "Sum"), "SUM", "A1:A10"),
    (("Max",), "MAX", "A1:A10"),
    (("Min",), "MIN", "A1:A10"),
)
DEFAULT_FORMULA_TEMPLATE = ("SUM", "A1:A10")

DEFAULT_CONFIDENCE = ConfidenceTier.HIGH
DEFAULT_REASONING = "AI-generated response processed through quality pipeline"


@dataclass(frozen=True)
class CorrectionOutcome:
    """
    Result of one correction pass.

    Attributes:
        instruction: The (possibly rewritten) instruction
        changed: Whether the pass rewrote anything
        reason: Human-readable note for the processing log
        response: Replacement user-facing message, when the pass supplies one
    """
    instruction: EditInstruction
    changed: bool = False
    reason: str = ""
    response: Optional[str] = None


def synthesize_formula(text: str, sheet_name: Optional[str] = None) -> str:
    """Build a formula from descriptive text using the keyword templates."""
    function, default_range = DEFAULT_FORMULA_TEMPLATE
    for triggers, template_function, template_range in FORMULA_TEMPLATES:
        if any(trigger in text for trigger in triggers):
            function, default_range = template_function, template_range
            break
    return f"={function}({with_sheet_prefix(default_range, sheet_name)})"


def is_descriptive_cell(value) -> bool:
    """A text cell that reads like a description of a calculation instead of one."""
    if not isinstance(value, str):
        return False
    if len(value) <= DESCRIPTIVE_MIN_LENGTH or "=" in value:
        return False
    return any(keyword in value for keyword in DESCRIPTIVE_KEYWORDS)


class PatternDetectionPass:
    """Converts an updateRange full of descriptive prose into an updateFormula."""

    name = "Pattern Detection"

    def apply(self, instruction: EditInstruction) -> CorrectionOutcome:
        if instruction.kind != EditKind.UPDATE_RANGE:
            return CorrectionOutcome(instruction)

        payload = instruction.payload
        for row_offset, row in enumerate(payload.values):
            for col_offset, value in enumerate(row):
                if not is_descriptive_cell(value):
                    continue

                sheet_name, _ = strip_sheet_prefix(payload.range)
                cell = offset_cell(payload.range, row_offset, col_offset)
                formula = synthesize_formula(value, sheet_name)
                logger.info(f"[PatternDetectionPass] Descriptive text in {cell}, using {formula}")

                corrected = replace(
                    instruction,
                    payload=UpdateFormulaEdit(cell=cell, formula=formula),
                    reasoning="Pattern detection converted descriptive text to proper formula",
                )
                return CorrectionOutcome(
                    corrected,
                    changed=True,
                    reason="Converted descriptive text to formula using pattern detection",
                    response=f"Adding calculation formula to {cell}",
                )

        return CorrectionOutcome(instruction)


class FormulaSyntaxPass:
    """Ensures updateFormula formulas start with '=' and are not prose."""

    name = "Formula Validation"

    def apply(self, instruction: EditInstruction) -> CorrectionOutcome:
        if instruction.kind != EditKind.UPDATE_FORMULA:
            return CorrectionOutcome(instruction)

        payload = instruction.payload
        formula = payload.formula
        reasons = []

        if not formula.startswith("="):
            formula = f"={formula}"
            reasons.append("Fixed formula to start with =")

        if any(phrase in formula for phrase in DESCRIPTIVE_FORMULA_PHRASES):
            sheet_name, _ = strip_sheet_prefix(payload.cell)
            formula = synthesize_formula(formula, sheet_name)
            reasons.append("Fixed formula to use proper spreadsheet functions")

        if not reasons:
            return CorrectionOutcome(instruction)

        corrected = instruction.with_payload(replace(payload, formula=formula))
        return CorrectionOutcome(corrected, changed=True, reason="; ".join(reasons))


class CompletenessPass:
    """Fills in missing confidence and reasoning."""

    name = "Final Quality Check"

    def apply(self, instruction: EditInstruction) -> CorrectionOutcome:
        updates = {}
        reasons = []
        if instruction.confidence is None:
            updates["confidence"] = DEFAULT_CONFIDENCE
            reasons.append("Added missing confidence level")
        if not instruction.reasoning:
            updates["reasoning"] = DEFAULT_REASONING
            reasons.append("Added missing reasoning")

        if not updates:
            return CorrectionOutcome(instruction)

        return CorrectionOutcome(replace(instruction, **updates), changed=True, reason="; ".join(reasons))


DEFAULT_PASSES = (PatternDetectionPass(), FormulaSyntaxPass(), CompletenessPass())


@dataclass
class CorrectionReport:
    """Outcome of running every pass over one instruction."""
    instruction: EditInstruction
    response_text: str
    processing_steps: List[str] = field(default_factory=list)
    was_corrected: bool = False


class CorrectionPipeline:
    """
    Runs the referee (when configured) and then the deterministic passes.

    The referee is any object with an async
    ``review(instruction, response_text, user_message)`` returning a
    CorrectionOutcome; see proposals.referee.RefereePass.
    """

    def __init__(self, passes: Optional[Sequence] = None, referee=None):
        self.passes = tuple(passes) if passes is not None else DEFAULT_PASSES
        self.referee = referee

    def _record(self, report: CorrectionReport, step_name: str, outcome: CorrectionOutcome) -> None:
        if outcome.changed:
            report.instruction = outcome.instruction
            if outcome.response is not None:
                report.response_text = outcome.response
            report.was_corrected = True
            report.processing_steps.append(f"{step_name} corrected response: {outcome.reason}")
        else:
            report.processing_steps.append(f"{step_name} passed")

    def run_deterministic(self, instruction: EditInstruction, response_text: str = "") -> CorrectionReport:
        """Run only the pure passes."""
        report = CorrectionReport(instruction=instruction, response_text=response_text)
        for correction_pass in self.passes:
            outcome = correction_pass.apply(report.instruction)
            self._record(report, correction_pass.name, outcome)
        return report

    async def run(
        self,
        instruction: EditInstruction,
        response_text: str = "",
        user_message: str = "",
    ) -> CorrectionReport:
        """Run the referee followed by every deterministic pass."""
        report = CorrectionReport(instruction=instruction, response_text=response_text)

        if self.referee is None:
            report.processing_steps.append("Referee Review skipped")
        else:
            outcome = await self.referee.review(instruction, response_text, user_message)
            self._record(report, "Referee Review", outcome)

        deterministic = self.run_deterministic(report.instruction, report.response_text)
        report.instruction = deterministic.instruction
        report.response_text = deterministic.response_text
        report.processing_steps.extend(deterministic.processing_steps)
        report.was_corrected = report.was_corrected or deterministic.was_corrected

        logger.info(
            f"[CorrectionPipeline] Finished '{report.instruction.kind.value}' "
            f"(corrected={report.was_corrected})"
        )
        return report
