"""
Unit tests for the edit schema validator.
"""
import pytest

from proposals.errors import ErrorCode, InvalidProposalState, SchemaViolation
from proposals.schema import (
    ConfidenceTier,
    DeleteColumnEdit,
    EditKind,
    InsertColumnEdit,
    InsertEdit,
    InsertRowEdit,
    NotAnEdit,
    ParsedReply,
    ProposalStatus,
    ReplaceEdit,
    RewriteEdit,
    UpdateCellEdit,
    UpdateFormulaEdit,
    UpdateRangeEdit,
    normalize_kind,
    parse_edit,
    transition,
    validate_reply,
)


class TestValidateReply:
    """Tests for the reply-level contract."""

    def test_reply_with_valid_edit(self):
        """A well-formed reply yields a ParsedReply with a pending instruction."""
        reply = validate_reply({
            "response": "Fixed",
            "edit": {"type": "replace", "findText": "teh", "replaceText": "the"},
        })
        assert isinstance(reply, ParsedReply)
        assert reply.response == "Fixed"
        assert reply.instruction.kind == EditKind.REPLACE
        assert reply.instruction.status == ProposalStatus.PENDING

    def test_missing_edit_is_not_an_edit(self):
        """A reply without an edit key is chat text."""
        reply = validate_reply({"response": "Hello!"})
        assert isinstance(reply, NotAnEdit)
        assert reply.text == "Hello!"

    def test_null_edit_is_not_an_edit(self):
        """edit: null means no edit."""
        assert isinstance(validate_reply({"response": "Hi", "edit": None}), NotAnEdit)

    def test_non_object_is_not_an_edit(self):
        """A JSON array or scalar is not an edit reply."""
        assert isinstance(validate_reply([1, 2]), NotAnEdit)
        assert isinstance(validate_reply("text"), NotAnEdit)

    def test_edit_not_object_is_violation(self):
        """An edit that is not an object is rejected."""
        with pytest.raises(SchemaViolation):
            validate_reply({"response": "x", "edit": "replace it"})

    def test_response_not_string_is_violation(self):
        """The response must be a string when an edit is present."""
        with pytest.raises(SchemaViolation):
            validate_reply({"response": 5, "edit": {"type": "delete", "findText": "x"}})

    def test_unknown_kind(self):
        """An unknown discriminator is rejected with UNKNOWN_EDIT_KIND."""
        with pytest.raises(SchemaViolation) as exc_info:
            validate_reply({"response": "x", "edit": {"type": "explode"}})
        assert exc_info.value.code == ErrorCode.UNKNOWN_EDIT_KIND.value


class TestKindAliases:
    """Tests for discriminator spellings."""

    @pytest.mark.parametrize("raw,expected", [
        ("update_range", EditKind.UPDATE_RANGE),
        ("update_formula", EditKind.UPDATE_FORMULA),
        ("updateCell", EditKind.UPDATE_CELL),
        ("insert-row", EditKind.INSERT_ROW),
        ("deleteColumns", EditKind.DELETE_COLUMN),
        ("REPLACE", EditKind.REPLACE),
    ])
    def test_aliases(self, raw, expected):
        """snake_case, kebab-case, plural and upper-case spellings resolve."""
        assert normalize_kind(raw) == expected

    def test_kind_key_accepted(self):
        """'kind' works as the discriminator when 'type' is absent."""
        instruction = parse_edit({"kind": "delete", "findText": "x"})
        assert instruction.kind == EditKind.DELETE

    def test_snake_case_fields(self):
        """snake_case field names are accepted."""
        instruction = parse_edit({"type": "replace", "find_text": "a", "replace_text": "b"})
        assert instruction.payload == ReplaceEdit(find_text="a", replace_text="b")


class TestDocumentVariants:
    """Tests for replace, insert, delete and rewrite shapes."""

    def test_replace_requires_find_text(self):
        """replace without findText is rejected."""
        with pytest.raises(SchemaViolation) as exc_info:
            parse_edit({"type": "replace", "replaceText": "b"})
        assert exc_info.value.code == ErrorCode.MISSING_REQUIRED_FIELD.value

    def test_replace_rejects_empty_find_text(self):
        """findText must not be blank."""
        with pytest.raises(SchemaViolation) as exc_info:
            parse_edit({"type": "replace", "findText": "  ", "replaceText": "b"})
        assert exc_info.value.code == ErrorCode.EMPTY_SEARCH_TEXT.value

    def test_replace_allows_empty_replacement(self):
        """An empty replaceText is a valid replace (it deletes)."""
        instruction = parse_edit({"type": "replace", "findText": "a", "replaceText": ""})
        assert instruction.payload.replace_text == ""

    def test_insert_accepts_replace_text_alias(self):
        """insert takes its content from replaceText when newContent is missing."""
        instruction = parse_edit({"type": "insert", "replaceText": "New"})
        assert instruction.payload == InsertEdit(new_content="New")

    def test_insert_position_must_be_positive(self):
        """Index 0 is the document root and cannot be targeted."""
        with pytest.raises(SchemaViolation):
            parse_edit({"type": "insert", "newContent": "x", "position": 0})

    def test_rewrite_forbids_find_text(self):
        """A rewrite never carries findText."""
        with pytest.raises(SchemaViolation) as exc_info:
            parse_edit({"type": "rewrite", "newContent": "All new", "findText": "old"})
        assert exc_info.value.code == ErrorCode.FORBIDDEN_FIELD.value

    def test_rewrite_forbids_replace_text(self):
        """A rewrite never carries replaceText."""
        with pytest.raises(SchemaViolation):
            parse_edit({"type": "rewrite", "newContent": "All new", "replaceText": "x"})

    def test_rewrite_requires_content(self):
        """A rewrite needs non-empty newContent."""
        with pytest.raises(SchemaViolation):
            parse_edit({"type": "rewrite", "newContent": ""})

    def test_rewrite_valid(self):
        """A plain rewrite is accepted."""
        assert parse_edit({"type": "rewrite", "newContent": "Body"}).payload == RewriteEdit("Body")


class TestSpreadsheetVariants:
    """Tests for spreadsheet shapes."""

    def test_update_range_width_mismatch(self):
        """A1:C2 with a 4-wide row is rejected, not truncated."""
        with pytest.raises(SchemaViolation) as exc_info:
            parse_edit({"type": "updateRange", "range": "A1:C2", "values": [[1, 2, 3], [1, 2, 3, 4]]})
        assert exc_info.value.code == ErrorCode.RANGE_WIDTH_MISMATCH.value

    def test_update_range_matching_width(self):
        """Rows exactly as wide as the range are accepted."""
        instruction = parse_edit({"type": "update_range", "range": "Sheet1!A1:C2", "values": [[1, 2, 3], ["a", "b", "c"]]})
        assert instruction.payload == UpdateRangeEdit(range="Sheet1!A1:C2", values=[[1, 2, 3], ["a", "b", "c"]])

    def test_update_range_open_ended_requires_equal_rows(self):
        """Without an end column, rows still have to agree with each other."""
        with pytest.raises(SchemaViolation):
            parse_edit({"type": "updateRange", "range": "B2", "values": [[1, 2], [3]]})

    def test_update_range_rejects_flat_values(self):
        """updateRange values must be 2-D."""
        with pytest.raises(SchemaViolation):
            parse_edit({"type": "updateRange", "range": "A1", "values": [1, 2]})

    def test_update_range_bad_range(self):
        """A malformed range is rejected."""
        with pytest.raises(SchemaViolation):
            parse_edit({"type": "updateRange", "range": "not a range", "values": [[1]]})

    def test_update_cell(self):
        """updateCell keeps the sheet prefix and scalar value."""
        instruction = parse_edit({"type": "updateCell", "cell": "Sheet1!B2", "value": 42})
        assert instruction.payload == UpdateCellEdit(cell="Sheet1!B2", value=42)

    def test_update_cell_rejects_range(self):
        """updateCell needs a single cell."""
        with pytest.raises(SchemaViolation):
            parse_edit({"type": "updateCell", "cell": "A1:B2", "value": 1})

    def test_update_cell_requires_value_key(self):
        """A missing value is rejected."""
        with pytest.raises(SchemaViolation):
            parse_edit({"type": "updateCell", "cell": "A1"})

    def test_update_formula(self):
        """updateFormula accepts a quoted sheet prefix."""
        instruction = parse_edit({"type": "updateFormula", "cell": "'My Sheet'!C3", "formula": "=SUM(A1:A3)"})
        assert instruction.payload == UpdateFormulaEdit(cell="'My Sheet'!C3", formula="=SUM(A1:A3)")

    def test_insert_row_flat_values_become_one_row(self):
        """A flat seed for insertRow is a single row."""
        instruction = parse_edit({"type": "insertRow", "row": 3, "values": ["a", "b"]})
        assert instruction.payload == InsertRowEdit(row=3, count=1, values=[["a", "b"]])

    def test_insert_column_flat_values_become_one_column(self):
        """A flat seed for insertColumn is a single column."""
        instruction = parse_edit({"type": "insertColumn", "column": "c", "values": ["x", "y"]})
        assert instruction.payload == InsertColumnEdit(column="C", count=1, values=[["x"], ["y"]])

    def test_column_number_becomes_letter(self):
        """A 1-based column number is normalized to its letter."""
        instruction = parse_edit({"type": "deleteColumn", "column": 28, "count": 2, "sheet": "Data"})
        assert instruction.payload == DeleteColumnEdit(column="AB", count=2, sheet="Data")

    def test_row_must_be_positive(self):
        """Rows are 1-based."""
        with pytest.raises(SchemaViolation):
            parse_edit({"type": "deleteRow", "row": 0})

    def test_count_rejects_bool(self):
        """Booleans are not counts."""
        with pytest.raises(SchemaViolation):
            parse_edit({"type": "insertRow", "row": 1, "count": True})


class TestInstructionMetadata:
    """Tests for confidence, reasoning and serialization."""

    def test_confidence_is_normalized(self):
        """Confidence strings are case-insensitive."""
        instruction = parse_edit({"type": "delete", "findText": "x", "confidence": "High"})
        assert instruction.confidence == ConfidenceTier.HIGH

    def test_unknown_confidence_is_dropped(self):
        """An unrecognized confidence is left for the corrector to default."""
        instruction = parse_edit({"type": "delete", "findText": "x", "confidence": "very sure"})
        assert instruction.confidence is None

    def test_to_dict_uses_wire_names(self):
        """Serialization uses camelCase wire keys and the canonical kind."""
        instruction = parse_edit({
            "type": "update_formula", "cell": "B2", "formula": "=A1",
            "confidence": "low", "reasoning": "calc",
        })
        assert instruction.to_dict() == {
            "type": "updateFormula",
            "cell": "B2",
            "formula": "=A1",
            "confidence": "low",
            "reasoning": "calc",
            "status": "pending",
        }


class TestTransition:
    """Tests for proposal status changes."""

    def test_pending_to_accepted(self):
        """A pending instruction can be accepted."""
        instruction = parse_edit({"type": "delete", "findText": "x"})
        accepted = transition(instruction, ProposalStatus.ACCEPTED, "accept")
        assert accepted.status == ProposalStatus.ACCEPTED
        assert instruction.status == ProposalStatus.PENDING

    def test_accepted_cannot_be_rejected(self):
        """Only pending instructions change status."""
        instruction = parse_edit({"type": "delete", "findText": "x"}).with_status(ProposalStatus.ACCEPTED)
        with pytest.raises(InvalidProposalState):
            transition(instruction, ProposalStatus.REJECTED, "reject")
