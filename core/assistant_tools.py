"""
Assistant MCP Tools

Chat-level tools: ask the assistant for an edit, list models, and inspect
or reject pending proposals.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from core.server import get_assistant, server
from proposals.errors import EditPipelineError, format_error

logger = logging.getLogger(__name__)


@server.tool()
async def propose_edit(
    message: str,
    model: Optional[str] = None,
    document_id: Optional[str] = None,
    spreadsheet_id: Optional[str] = None,
    active_sheet: Optional[str] = None,
    history: Optional[List[Dict[str, Any]]] = None,
) -> str:
    """
    Ask the assistant about the open Google Doc or Sheet.

    The reply is processed into either plain chat text or a pending edit
    proposal. Pending proposals get a proposalId to preview, apply or reject.

    Args:
        message: The user's request
        model: Model identifier (see list_models); defaults to DEFAULT_MODEL
        document_id: Open Google Doc, if any
        spreadsheet_id: Open Google Sheet, if any
        active_sheet: Sheet tab shown to the model (defaults to the first tab)
        history: Prior chat messages [{role, content}]; only the most recent are sent

    Returns:
        str: JSON with finalResponse, processingSteps, wasCorrected and, for edits, proposalId
    """
    logger.info(f"[propose_edit] model={model} doc={document_id} sheet={spreadsheet_id}")
    try:
        result = await get_assistant().propose(
            message,
            model=model,
            history=history,
            document_id=document_id,
            spreadsheet_id=spreadsheet_id,
            active_sheet=active_sheet,
        )
    except EditPipelineError as e:
        return format_error(e.error)
    return json.dumps(result, indent=2)


@server.tool()
async def list_models() -> str:
    """
    List the model identifiers that can be passed to propose_edit.

    Returns:
        str: JSON with the available models and the default model
    """
    assistant = get_assistant()
    return json.dumps(
        {
            "models": assistant.registry.available_models,
            "defaultModel": assistant.settings.default_model,
        },
        indent=2,
    )


@server.tool()
async def list_pending_edits() -> str:
    """
    List proposals that have not been applied or rejected yet.

    Returns:
        str: JSON list of pending proposals
    """
    return json.dumps([p.to_dict() for p in get_assistant().pending], indent=2)


@server.tool()
async def reject_edit(proposal_id: str) -> str:
    """
    Reject a pending proposal. Nothing is changed in the file.

    Args:
        proposal_id: Id returned by propose_edit

    Returns:
        str: JSON of the rejected proposal
    """
    try:
        proposal = get_assistant().reject(proposal_id)
    except EditPipelineError as e:
        return format_error(e.error)
    logger.info(f"[reject_edit] Rejected {proposal_id}")
    return json.dumps(proposal.to_dict(), indent=2)
