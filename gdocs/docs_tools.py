"""
Google Docs MCP Tools

This module provides MCP tools for reading Google Docs and for previewing
and applying pending edit proposals.
"""
import json
import logging

from core.server import get_assistant, server
from proposals.errors import EditPipelineError, SchemaViolation, ProposalErrorBuilder, format_error

logger = logging.getLogger(__name__)


def _docs_manager():
    manager = get_assistant().docs_manager
    if manager is None:
        raise SchemaViolation(ProposalErrorBuilder.schema_violation("No Google Docs service is configured"))
    return manager


@server.tool()
async def read_doc(document_id: str) -> str:
    """
    Read a Google Doc as ordered paragraphs.

    Args:
        document_id: The ID of the Google Doc

    Returns:
        str: JSON with documentId, title and paragraph content
    """
    try:
        snapshot = await _docs_manager().read_document(document_id)
    except EditPipelineError as e:
        return format_error(e.error)
    return json.dumps(snapshot.to_dict(), indent=2)


@server.tool()
async def preview_doc_edit(proposal_id: str) -> str:
    """
    Show what a pending document edit would change, without applying it.

    The preview locates findText in the current document the same way
    apply_doc_edit will, and reports the match confidence.

    Args:
        proposal_id: Id returned by propose_edit

    Returns:
        str: JSON with before, after, a unified diff and match details
    """
    try:
        preview = await get_assistant().preview(proposal_id)
    except EditPipelineError as e:
        return format_error(e.error)
    return json.dumps(preview.to_dict(), indent=2)


@server.tool()
async def apply_doc_edit(proposal_id: str) -> str:
    """
    Accept a pending document edit and apply it as one atomic batch.

    If the text cannot be located or the API rejects the batch, nothing is
    changed and the proposal stays pending.

    Args:
        proposal_id: Id returned by propose_edit

    Returns:
        str: JSON operation result with position shift and affected range
    """
    assistant = get_assistant()
    try:
        if assistant.get(proposal_id).target_type != "document":
            raise SchemaViolation(
                ProposalErrorBuilder.schema_violation("Proposal is a spreadsheet edit; use apply_sheet_edit")
            )
        result = await assistant.accept(proposal_id)
    except EditPipelineError as e:
        return format_error(e.error)
    return json.dumps(result, indent=2)
