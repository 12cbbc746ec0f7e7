"""
Google Sheets MCP Tools

This module provides MCP tools for reading spreadsheets and applying
pending spreadsheet edit proposals.
"""
import json
import logging
from typing import Optional

from core.server import get_assistant, server
from proposals.errors import EditPipelineError, ProposalErrorBuilder, SchemaViolation, format_error

# Configure module logger
logger = logging.getLogger(__name__)


def _sheets_manager():
    manager = get_assistant().sheets_manager
    if manager is None:
        raise SchemaViolation(ProposalErrorBuilder.schema_violation("No Google Sheets service is configured"))
    return manager


@server.tool()
async def read_spreadsheet(spreadsheet_id: str, active_sheet: Optional[str] = None) -> str:
    """
    Read a spreadsheet's sheets and the values of one sheet.

    Args:
        spreadsheet_id (str): The ID of the spreadsheet.
        active_sheet (Optional[str]): Sheet whose values to return. Defaults to the first sheet.

    Returns:
        str: JSON with title, sheets (id, title, grid size) and activeSheet rows.
    """
    try:
        context = await _sheets_manager().read_spreadsheet(spreadsheet_id, active_sheet)
    except EditPipelineError as e:
        return format_error(e.error)
    return json.dumps(context.to_dict(), indent=2)


@server.tool()
async def apply_sheet_edit(proposal_id: str) -> str:
    """
    Accept a pending spreadsheet edit and apply it.

    Row and column changes are applied first, then value and formula writes.
    On failure the proposal stays pending.

    Args:
        proposal_id (str): Id returned by propose_edit.

    Returns:
        str: JSON with the operations that were sent and the accepted proposal.
    """
    assistant = get_assistant()
    try:
        if assistant.get(proposal_id).target_type != "spreadsheet":
            raise SchemaViolation(
                ProposalErrorBuilder.schema_violation("Proposal is a document edit; use apply_doc_edit")
            )
        result = await assistant.accept(proposal_id)
    except EditPipelineError as e:
        return format_error(e.error)
    return json.dumps(result, indent=2)
