"""
Unit tests for the semantic correction passes.
"""
import pytest
from unittest.mock import AsyncMock, MagicMock

from proposals.corrector import (
    DEFAULT_REASONING,
    CompletenessPass,
    CorrectionOutcome,
    CorrectionPipeline,
    FormulaSyntaxPass,
    PatternDetectionPass,
    is_descriptive_cell,
    synthesize_formula,
)
from proposals.schema import ConfidenceTier, EditKind, UpdateFormulaEdit, parse_edit


def _range_edit(range_name, values, **extra):
    return parse_edit(dict({"type": "updateRange", "range": range_name, "values": values}, **extra))


class TestSynthesizeFormula:
    """Tests for keyword formula templates."""

    @pytest.mark.parametrize("text,expected", [
        ("Current Value tied up in inventory assets", "=SUM(C1:C10)"),
        ("Revenue per unit", "=SUM(B1:B10)"),
        ("Average order size", "=AVERAGE(C1:C10)"),
        ("Total of all orders", "=SUM(A1:A10)"),
        ("Max price seen", "=MAX(A1:A10)"),
        ("Min price seen", "=MIN(A1:A10)"),
        ("something else entirely", "=SUM(A1:A10)"),
    ])
    def test_templates(self, text, expected):
        """Each keyword family maps to its formula."""
        assert synthesize_formula(text) == expected

    def test_sheet_prefix(self):
        """A sheet name qualifies the synthesized range."""
        assert synthesize_formula("Average cost", "Sheet1") == "=AVERAGE(Sheet1!C1:C10)"

    def test_quoted_sheet_prefix(self):
        """Sheet names with spaces are quoted."""
        assert synthesize_formula("Total", "My Data") == "=SUM('My Data'!A1:A10)"


class TestIsDescriptiveCell:
    """Tests for the descriptive-text heuristic."""

    def test_short_text_is_not_descriptive(self):
        """Labels at or under the minimum length are left alone."""
        assert not is_descriptive_cell("Total")

    def test_formula_is_not_descriptive(self):
        """Anything containing '=' is treated as a formula."""
        assert not is_descriptive_cell("=SUM(A1:A10) Total amount")

    def test_numbers_are_not_descriptive(self):
        """Only strings can be descriptive."""
        assert not is_descriptive_cell(12345678901234567890)

    def test_keyword_sentence_is_descriptive(self):
        """Long text with a calculation keyword is descriptive."""
        assert is_descriptive_cell("Current Value tied up in inventory assets")


class TestPatternDetectionPass:
    """Tests for converting descriptive ranges into formulas."""

    def test_descriptive_range_becomes_formula(self):
        """Descriptive prose in an updateRange becomes an updateFormula on that cell."""
        instruction = _range_edit("Sheet1!A5:B5", [["Label", "Current Value tied up in inventory assets"]])
        outcome = PatternDetectionPass().apply(instruction)

        assert outcome.changed
        assert outcome.instruction.kind == EditKind.UPDATE_FORMULA
        assert outcome.instruction.payload == UpdateFormulaEdit(cell="Sheet1!B5", formula="=SUM(Sheet1!C1:C10)")
        assert outcome.response == "Adding calculation formula to Sheet1!B5"

    @pytest.mark.parametrize("range_name,cell,formula", [
        ("A:C", "A1", "=SUM(C1:C10)"),
        ("Sheet1!A:C", "Sheet1!A1", "=SUM(Sheet1!C1:C10)"),
    ])
    def test_column_only_range(self, range_name, cell, formula):
        """A whole-column range starts at row 1 of its first column."""
        instruction = _range_edit(range_name, [["Current Value tied up in inventory assets", "x", "y"]])
        outcome = PatternDetectionPass().apply(instruction)

        assert outcome.changed
        assert outcome.instruction.payload == UpdateFormulaEdit(cell=cell, formula=formula)

    def test_plain_values_pass(self):
        """Ordinary data is not rewritten."""
        instruction = _range_edit("A1:B1", [["Name", 42]])
        outcome = PatternDetectionPass().apply(instruction)
        assert not outcome.changed
        assert outcome.instruction is instruction

    def test_other_kinds_pass(self):
        """Only updateRange is inspected."""
        instruction = parse_edit({"type": "updateCell", "cell": "A1", "value": "Current Value tied up in inventory"})
        assert not PatternDetectionPass().apply(instruction).changed


class TestFormulaSyntaxPass:
    """Tests for formula syntax fixes."""

    def test_missing_equals_is_added(self):
        """A formula without '=' gets one."""
        instruction = parse_edit({"type": "updateFormula", "cell": "B2", "formula": "SUM(A1:A5)"})
        outcome = FormulaSyntaxPass().apply(instruction)
        assert outcome.changed
        assert outcome.instruction.payload.formula == "=SUM(A1:A5)"

    def test_descriptive_formula_is_resynthesized(self):
        """Prose in a formula is replaced with a template formula in the same pass."""
        instruction = parse_edit({"type": "updateFormula", "cell": "Sheet1!B2", "formula": "Current Value of stock"})
        outcome = FormulaSyntaxPass().apply(instruction)
        assert outcome.instruction.payload.formula == "=SUM(Sheet1!C1:C10)"
        assert "Fixed formula to start with =" in outcome.reason
        assert "proper spreadsheet functions" in outcome.reason

    def test_valid_formula_passes(self):
        """Well-formed formulas are untouched."""
        instruction = parse_edit({"type": "updateFormula", "cell": "B2", "formula": "=A1*2"})
        assert not FormulaSyntaxPass().apply(instruction).changed


class TestCompletenessPass:
    """Tests for confidence and reasoning defaults."""

    def test_defaults_are_filled(self):
        """Missing confidence becomes high and reasoning gets the default text."""
        instruction = parse_edit({"type": "delete", "findText": "x"})
        outcome = CompletenessPass().apply(instruction)
        assert outcome.instruction.confidence == ConfidenceTier.HIGH
        assert outcome.instruction.reasoning == DEFAULT_REASONING

    def test_complete_instruction_passes(self):
        """Existing values are kept."""
        instruction = parse_edit({"type": "delete", "findText": "x", "confidence": "low", "reasoning": "cleanup"})
        outcome = CompletenessPass().apply(instruction)
        assert not outcome.changed
        assert outcome.instruction.confidence == ConfidenceTier.LOW


class TestCorrectionPipeline:
    """Tests for pass ordering and the processing log."""

    def test_passes_chain(self):
        """Each pass sees the previous pass's output."""
        instruction = _range_edit("Sheet1!C4:C4", [["Average spend per customer"]])
        report = CorrectionPipeline().run_deterministic(instruction, "Added it")

        assert report.was_corrected
        assert report.instruction.kind == EditKind.UPDATE_FORMULA
        assert report.instruction.confidence == ConfidenceTier.HIGH
        assert report.response_text == "Adding calculation formula to Sheet1!C4"
        assert report.processing_steps[0].startswith("Pattern Detection corrected response")
        assert report.processing_steps[1] == "Formula Validation passed"
        assert report.processing_steps[2].startswith("Final Quality Check corrected response")

    @pytest.mark.asyncio
    async def test_referee_skipped_when_absent(self):
        """Without a referee the log says so."""
        instruction = parse_edit({"type": "delete", "findText": "x", "confidence": "high", "reasoning": "r"})
        report = await CorrectionPipeline().run(instruction, "ok")
        assert report.processing_steps[0] == "Referee Review skipped"
        assert not report.was_corrected

    @pytest.mark.asyncio
    async def test_referee_runs_first(self):
        """A referee correction feeds into the deterministic passes."""
        original = parse_edit({"type": "updateCell", "cell": "B2", "value": "Total revenue this year"})
        corrected = parse_edit({"type": "updateFormula", "cell": "B2", "formula": "SUM(B3:B9)"})

        referee = MagicMock()
        referee.review = AsyncMock(
            return_value=CorrectionOutcome(corrected, changed=True, reason="use a formula", response="Formula added")
        )

        report = await CorrectionPipeline(referee=referee).run(original, "Done", "sum revenue")

        referee.review.assert_awaited_once_with(original, "Done", "sum revenue")
        assert report.processing_steps[0] == "Referee Review corrected response: use a formula"
        assert report.instruction.payload.formula == "=SUM(B3:B9)"
        assert report.response_text == "Formula added"
        assert report.was_corrected
