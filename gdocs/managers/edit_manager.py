"""
Document Edit Manager

Reads a Google Doc, previews pending edit proposals against it, and applies
accepted proposals as a single atomic batchUpdate.

Every preview and apply reads a fresh snapshot, so indices are never
computed against a stale copy of the document.
"""
import asyncio
import logging
from typing import Any, Dict, List, Tuple

from core.utils import handle_http_errors
from gdocs.docs_helpers import (
    OperationResult,
    build_document_snapshot,
    build_operation_result,
    validate_operation,
)
from proposals.errors import MutationFailure, ProposalErrorBuilder
from proposals.locator import locate
from proposals.models import DocumentSnapshot
from proposals.planner import match_hint, plan_document_edit
from proposals.preview import EditPreview, preview_document_edit
from proposals.schema import EditInstruction, ProposalStatus, transition

logger = logging.getLogger(__name__)


class DocumentEditManager:
    """
    High-level edit proposal operations for one Docs API service.

    Args:
        service: Google Docs API service (googleapiclient discovery resource)
    """

    def __init__(self, service):
        self.service = service

    @handle_http_errors("read_document", is_read_only=True, service_type="docs")
    async def read_document(self, document_id: str) -> DocumentSnapshot:
        doc_data = await asyncio.to_thread(
            self.service.documents().get(documentId=document_id).execute
        )
        snapshot = build_document_snapshot(doc_data)
        logger.info(
            f"[read_document] '{snapshot.title}': {len(snapshot.content)} paragraphs, "
            f"end index {snapshot.content.end_index}"
        )
        return snapshot

    async def preview(self, document_id: str, instruction: EditInstruction) -> EditPreview:
        """Render the before/after of a pending instruction against the current document."""
        snapshot = await self.read_document(document_id)
        return preview_document_edit(instruction, snapshot.content)

    def plan(self, instruction: EditInstruction, snapshot: DocumentSnapshot) -> List[Dict[str, Any]]:
        hint = match_hint(instruction)
        match = locate(snapshot.content, hint) if hint is not None else None
        requests = plan_document_edit(instruction, snapshot.content, match)

        for request in requests:
            is_valid, error_message = validate_operation(request)
            if not is_valid:
                raise MutationFailure(
                    ProposalErrorBuilder.mutation_failure(
                        "plan_document_edit", error_message, target_id=snapshot.document_id
                    )
                )
        return requests

    @handle_http_errors("apply_doc_edit", service_type="docs")
    async def _execute_batch(self, document_id: str, requests: List[Dict[str, Any]]) -> Dict[str, Any]:
        return await asyncio.to_thread(
            self.service.documents().batchUpdate(
                documentId=document_id,
                body={'requests': requests}
            ).execute
        )

    async def apply(
        self, document_id: str, instruction: EditInstruction
    ) -> Tuple[EditInstruction, OperationResult]:
        """
        Accept a pending instruction: plan it against a fresh snapshot and
        apply the plan in one batch.

        Returns:
            The accepted instruction and the operation result

        Raises:
            InvalidProposalState: the instruction is not pending
            Unlocatable: findText is not in the current document
            MutationFailure: the API rejected the batch (instruction stays pending)
        """
        accepted = transition(instruction, ProposalStatus.ACCEPTED, "accept")
        snapshot = await self.read_document(document_id)
        requests = self.plan(instruction, snapshot)

        await self._execute_batch(document_id=document_id, requests=requests)
        logger.info(f"[apply_doc_edit] Applied {instruction.kind.value} to {document_id}")
        return accepted, build_operation_result(instruction.kind.value, requests, document_id)

    def reject(self, instruction: EditInstruction) -> EditInstruction:
        """Discard a pending instruction; nothing is sent to the API."""
        return transition(instruction, ProposalStatus.REJECTED, "reject")
