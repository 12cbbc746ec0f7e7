"""
Patch Planner

Pure translation of a validated EditInstruction into primitive range
operations. Document plans are Docs batchUpdate requests
(deleteContentRange, insertText); spreadsheet plans are dimension requests
(insertDimension, deleteDimension) and value writes (valuesUpdate).

A plan is all-or-nothing: if any part of it cannot be placed the whole
plan fails.
"""
import logging
from typing import Any, Dict, List, Optional

from gdocs.docs_helpers import create_delete_range_request, create_insert_text_request
from gsheets.sheets_helpers import (
    column_letter_to_index,
    create_delete_dimension_request,
    create_insert_dimension_request,
    create_values_update,
    strip_sheet_prefix,
    with_sheet_prefix,
)
from proposals.errors import ProposalErrorBuilder, SchemaViolation, Unlocatable
from proposals.locator import LocateResult, MatchResult, MatchStrategy, absolute_index, locate
from proposals.models import DOCUMENT_START_INDEX, ParagraphDocument, SheetMetadata, SpreadsheetContext
from proposals.schema import EditInstruction, EditKind

logger = logging.getLogger(__name__)

# A document at or below this extent holds only its implicit trailing newline
EMPTY_DOCUMENT_EXTENT = 2

DIMENSION_REQUEST_KEYS = ("insertDimension", "deleteDimension")


def require_match(find_text: str, match: Optional[LocateResult]) -> MatchResult:
    if isinstance(match, MatchResult):
        return match
    reason = match.reason if match is not None else "no match supplied"
    raise Unlocatable(ProposalErrorBuilder.unlocatable(find_text, reason))


def trim_context_words(text: str, match: MatchResult) -> str:
    """
    Drop the context words a core-text match trimmed from the hint off the
    replacement too, so they are not duplicated around the patched span.
    """
    if match.strategy != MatchStrategy.CORE_TEXT:
        return text

    trimmed = text
    stripped = trimmed.lstrip()
    if match.context_prefix and stripped.startswith(match.context_prefix):
        trimmed = stripped[len(match.context_prefix):].lstrip()
    stripped = trimmed.rstrip()
    if match.context_suffix and stripped.endswith(match.context_suffix):
        trimmed = stripped[: len(stripped) - len(match.context_suffix)].rstrip()
    return trimmed


def _plan_replace(instruction, document, match) -> List[Dict[str, Any]]:
    payload = instruction.payload
    match = require_match(payload.find_text, match)
    start = absolute_index(document, match)
    requests = [create_delete_range_request(start, start + match.length)]
    replacement = trim_context_words(payload.replace_text, match)
    if replacement:
        requests.append(create_insert_text_request(start, replacement))
    return requests


def _plan_insert(instruction, document, match) -> List[Dict[str, Any]]:
    payload = instruction.payload
    if payload.position is not None:
        index = payload.position
        if index >= max(document.end_index, DOCUMENT_START_INDEX + 1):
            raise SchemaViolation(
                ProposalErrorBuilder.invalid_field_value(
                    instruction.kind.value, "position", index,
                    f"an index below the document end ({document.end_index})",
                )
            )
    elif payload.find_text is not None:
        anchor = require_match(payload.find_text, match)
        index = absolute_index(document, anchor) + anchor.length
    else:
        index = DOCUMENT_START_INDEX
    return [create_insert_text_request(index, payload.new_content)]


def _plan_delete(instruction, document, match) -> List[Dict[str, Any]]:
    match = require_match(instruction.payload.find_text, match)
    start = absolute_index(document, match)
    return [create_delete_range_request(start, start + match.length)]


def _plan_rewrite(instruction, document, match) -> List[Dict[str, Any]]:
    requests = []
    end_index = document.end_index
    if end_index > EMPTY_DOCUMENT_EXTENT:
        # Keep the final implicit newline, the API refuses to delete it
        requests.append(create_delete_range_request(DOCUMENT_START_INDEX, end_index - 1))
    requests.append(create_insert_text_request(DOCUMENT_START_INDEX, instruction.payload.new_content))
    return requests


DOCUMENT_PLANNERS = {
    EditKind.REPLACE: _plan_replace,
    EditKind.INSERT: _plan_insert,
    EditKind.DELETE: _plan_delete,
    EditKind.REWRITE: _plan_rewrite,
}


def match_hint(instruction: EditInstruction) -> Optional[str]:
    """The findText a document instruction needs located, if any."""
    if instruction.kind == EditKind.INSERT and instruction.payload.position is not None:
        return None
    return getattr(instruction.payload, "find_text", None)


def plan_document_edit(
    instruction: EditInstruction,
    document: ParagraphDocument,
    match: Optional[LocateResult] = None,
) -> List[Dict[str, Any]]:
    """
    Translate a document instruction into Docs batchUpdate requests.

    Args:
        instruction: A replace, insert, delete or rewrite instruction
        document: Snapshot the indices are computed against
        match: Locator result for the instruction's findText; located here
            when omitted

    Raises:
        Unlocatable: the instruction needs a match and none was found
    """
    planner = DOCUMENT_PLANNERS.get(instruction.kind)
    if planner is None:
        raise SchemaViolation(
            ProposalErrorBuilder.schema_violation(
                f"'{instruction.kind.value}' is not a document edit"
            )
        )

    hint = match_hint(instruction)
    if match is None and hint is not None:
        match = locate(document, hint)

    requests = planner(instruction, document, match)
    logger.info(f"[plan_document_edit] {instruction.kind.value}: {len(requests)} request(s)")
    return requests


# --- spreadsheets ------------------------------------------------------------

def _resolve_sheet(context: SpreadsheetContext, sheet_name: Optional[str]) -> SheetMetadata:
    sheet = context.find_sheet(sheet_name)
    if sheet is None:
        raise SchemaViolation(
            ProposalErrorBuilder.sheet_not_found(sheet_name or "(active sheet)", context.sheet_titles)
        )
    return sheet


def _qualified_range(context: SpreadsheetContext, range_name: str) -> str:
    """Check a range's sheet prefix exists, adding the active sheet's when it has none."""
    sheet_name, _ = strip_sheet_prefix(range_name)
    sheet = _resolve_sheet(context, sheet_name)
    return with_sheet_prefix(range_name, sheet.title)


def _plan_update_cell(instruction, context) -> List[Dict[str, Any]]:
    payload = instruction.payload
    return [create_values_update(_qualified_range(context, payload.cell), [[payload.value]])]


def _plan_update_formula(instruction, context) -> List[Dict[str, Any]]:
    payload = instruction.payload
    return [create_values_update(_qualified_range(context, payload.cell), [[payload.formula]])]


def _plan_update_range(instruction, context) -> List[Dict[str, Any]]:
    payload = instruction.payload
    return [create_values_update(_qualified_range(context, payload.range), payload.values)]


def _plan_insert_row(instruction, context) -> List[Dict[str, Any]]:
    payload = instruction.payload
    sheet = _resolve_sheet(context, payload.sheet)
    operations = [create_insert_dimension_request(sheet.sheet_id, "ROWS", payload.row - 1, payload.count)]
    if payload.values:
        operations.append(create_values_update(with_sheet_prefix(f"A{payload.row}", sheet.title), payload.values))
    return operations


def _plan_insert_column(instruction, context) -> List[Dict[str, Any]]:
    payload = instruction.payload
    sheet = _resolve_sheet(context, payload.sheet)
    start = column_letter_to_index(payload.column)
    operations = [create_insert_dimension_request(sheet.sheet_id, "COLUMNS", start, payload.count)]
    if payload.values:
        operations.append(create_values_update(with_sheet_prefix(f"{payload.column}1", sheet.title), payload.values))
    return operations


def _plan_delete_row(instruction, context) -> List[Dict[str, Any]]:
    payload = instruction.payload
    sheet = _resolve_sheet(context, payload.sheet)
    return [create_delete_dimension_request(sheet.sheet_id, "ROWS", payload.row - 1, payload.count)]


def _plan_delete_column(instruction, context) -> List[Dict[str, Any]]:
    payload = instruction.payload
    sheet = _resolve_sheet(context, payload.sheet)
    start = column_letter_to_index(payload.column)
    return [create_delete_dimension_request(sheet.sheet_id, "COLUMNS", start, payload.count)]


SPREADSHEET_PLANNERS = {
    EditKind.UPDATE_CELL: _plan_update_cell,
    EditKind.UPDATE_FORMULA: _plan_update_formula,
    EditKind.UPDATE_RANGE: _plan_update_range,
    EditKind.INSERT_ROW: _plan_insert_row,
    EditKind.INSERT_COLUMN: _plan_insert_column,
    EditKind.DELETE_ROW: _plan_delete_row,
    EditKind.DELETE_COLUMN: _plan_delete_column,
}


def plan_spreadsheet_edit(instruction: EditInstruction, context: SpreadsheetContext) -> List[Dict[str, Any]]:
    """
    Translate a spreadsheet instruction into ordered Sheets operations.

    Dimension changes come before the value writes that seed them.

    Raises:
        SchemaViolation: the instruction names a sheet that does not exist
    """
    planner = SPREADSHEET_PLANNERS.get(instruction.kind)
    if planner is None:
        raise SchemaViolation(
            ProposalErrorBuilder.schema_violation(
                f"'{instruction.kind.value}' is not a spreadsheet edit"
            )
        )
    operations = planner(instruction, context)
    logger.info(f"[plan_spreadsheet_edit] {instruction.kind.value}: {len(operations)} operation(s)")
    return operations


def split_spreadsheet_plan(operations: List[Dict[str, Any]]):
    """Split a spreadsheet plan into (dimension requests, value updates)."""
    dimension_requests = [op for op in operations if any(key in op for key in DIMENSION_REQUEST_KEYS)]
    value_updates = [op["valuesUpdate"] for op in operations if "valuesUpdate" in op]
    return dimension_requests, value_updates
