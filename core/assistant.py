"""
Assistant Service

Owns the edit-proposal session: asks the selected model for a reply, runs
it through the proposal pipeline, keeps pending proposals, and moves them
to accepted or rejected when the user acts on them.
"""
import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

from core.config import Settings
from gdocs.managers.edit_manager import DocumentEditManager
from gsheets.sheets_edit_manager import SpreadsheetEditManager
from llm.registry import ProviderRegistry
from proposals.corrector import CorrectionPipeline
from proposals.errors import EditPipelineError, ProposalErrorBuilder, SchemaViolation
from proposals.pipeline import ProposalPipeline, ProposalResult
from proposals.preview import EditPreview
from proposals.prompts import build_messages, build_system_prompt
from proposals.referee import RefereePass
from proposals.schema import EditInstruction, ProposalStatus, transition

logger = logging.getLogger(__name__)

DOCUMENT_TARGET = "document"
SPREADSHEET_TARGET = "spreadsheet"


@dataclass
class Proposal:
    """A proposal awaiting the user's decision."""
    proposal_id: str
    target_type: str
    target_id: str
    instruction: EditInstruction
    response_text: str
    # Sheet the model was shown; bare ranges resolve against it on accept
    active_sheet: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "proposalId": self.proposal_id,
            "targetType": self.target_type,
            "targetId": self.target_id,
            "response": self.response_text,
            "edit": self.instruction.to_dict(),
        }
        if self.active_sheet:
            result["activeSheet"] = self.active_sheet
        return result


class ProposalNotFound(EditPipelineError):
    """No proposal with the given id exists in this session."""


def build_referee(settings: Settings, registry: ProviderRegistry) -> Optional[RefereePass]:
    if not settings.referee_enabled:
        return None
    if settings.referee_model not in registry:
        logger.warning(
            f"[build_referee] Referee model '{settings.referee_model}' is not available; referee disabled"
        )
        return None
    return RefereePass(registry.get(settings.referee_model), timeout=settings.referee_timeout_seconds)


class AssistantService:
    """
    Args:
        settings: Process settings
        registry: Model identifier -> provider
        docs_manager: Applies document edits (None disables document work)
        sheets_manager: Applies spreadsheet edits (None disables spreadsheet work)
        pipeline: Proposal pipeline; built from settings when omitted
    """

    def __init__(
        self,
        settings: Settings,
        registry: ProviderRegistry,
        docs_manager: Optional[DocumentEditManager] = None,
        sheets_manager: Optional[SpreadsheetEditManager] = None,
        pipeline: Optional[ProposalPipeline] = None,
    ):
        self.settings = settings
        self.registry = registry
        self.docs_manager = docs_manager
        self.sheets_manager = sheets_manager
        self.pipeline = pipeline or ProposalPipeline(
            CorrectionPipeline(referee=build_referee(settings, registry))
        )
        self._proposals: Dict[str, Proposal] = {}

    def _require_manager(self, manager, target_type: str):
        if manager is None:
            raise SchemaViolation(
                ProposalErrorBuilder.schema_violation(f"No {target_type} service is configured")
            )
        return manager

    async def propose(
        self,
        message: str,
        model: Optional[str] = None,
        history: Optional[Sequence[Dict[str, Any]]] = None,
        document_id: Optional[str] = None,
        spreadsheet_id: Optional[str] = None,
        active_sheet: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Ask the model about the open file and return the processed reply.

        Exactly one of document_id / spreadsheet_id may be given; with
        neither the model answers without file context.

        Raises:
            ProviderError: unknown model or the provider call failed
        """
        if document_id and spreadsheet_id:
            raise SchemaViolation(
                ProposalErrorBuilder.schema_violation("Pass either document_id or spreadsheet_id, not both")
            )

        model_id = model or self.settings.default_model
        document = spreadsheet = None
        if document_id:
            document = await self._require_manager(self.docs_manager, DOCUMENT_TARGET).read_document(document_id)
        elif spreadsheet_id:
            spreadsheet = await self._require_manager(self.sheets_manager, SPREADSHEET_TARGET).read_spreadsheet(
                spreadsheet_id, active_sheet
            )

        system_prompt = build_system_prompt(document=document, spreadsheet=spreadsheet)
        messages = build_messages(message, history, self.settings.chat_history_limit)
        raw_reply = await self.registry.generate(model_id, system_prompt, messages)

        result = await self.pipeline.process(raw_reply, user_message=message)
        payload = result.to_dict()

        if result.instruction is not None:
            target_type, target_id = self._target_for(result, document_id, spreadsheet_id)
            if target_id is not None:
                proposal = self.register(
                    target_type,
                    target_id,
                    result.instruction,
                    result.response_text,
                    active_sheet=active_sheet if target_type == SPREADSHEET_TARGET else None,
                )
                payload["proposalId"] = proposal.proposal_id
            else:
                logger.warning("[propose] Edit proposed with no matching file open; returning it unregistered")

        logger.info(
            f"[propose] model={model_id} edit={result.is_edit} corrected={result.was_corrected}"
        )
        return payload

    def _target_for(self, result: ProposalResult, document_id, spreadsheet_id):
        if result.instruction.is_document_edit:
            return DOCUMENT_TARGET, document_id
        return SPREADSHEET_TARGET, spreadsheet_id

    def register(
        self,
        target_type: str,
        target_id: str,
        instruction: EditInstruction,
        response_text: str = "",
        active_sheet: Optional[str] = None,
    ) -> Proposal:
        """Store a pending instruction and return its proposal record."""
        proposal = Proposal(
            proposal_id=uuid.uuid4().hex,
            target_type=target_type,
            target_id=target_id,
            instruction=instruction,
            response_text=response_text,
            active_sheet=active_sheet,
        )
        self._proposals[proposal.proposal_id] = proposal
        return proposal

    def get(self, proposal_id: str) -> Proposal:
        try:
            return self._proposals[proposal_id]
        except KeyError:
            raise ProposalNotFound(
                ProposalErrorBuilder.schema_violation(f"Unknown proposal '{proposal_id}'")
            )

    @property
    def pending(self) -> List[Proposal]:
        return [p for p in self._proposals.values() if p.instruction.status == ProposalStatus.PENDING]

    async def preview(self, proposal_id: str) -> EditPreview:
        proposal = self.get(proposal_id)
        if proposal.target_type != DOCUMENT_TARGET:
            raise SchemaViolation(
                ProposalErrorBuilder.schema_violation("Previews are only available for document edits")
            )
        manager = self._require_manager(self.docs_manager, DOCUMENT_TARGET)
        return await manager.preview(proposal.target_id, proposal.instruction)

    async def accept(self, proposal_id: str) -> Dict[str, Any]:
        """
        Plan and apply a pending proposal.

        A failed mutation leaves the proposal pending so the user can retry;
        an applied proposal is dropped from the session.
        """
        proposal = self.get(proposal_id)
        if proposal.target_type == DOCUMENT_TARGET:
            manager = self._require_manager(self.docs_manager, DOCUMENT_TARGET)
            accepted, result = await manager.apply(proposal.target_id, proposal.instruction)
            outcome = result.to_dict()
        else:
            manager = self._require_manager(self.sheets_manager, SPREADSHEET_TARGET)
            accepted, operations = await manager.apply(
                proposal.target_id, proposal.instruction, active_sheet=proposal.active_sheet
            )
            outcome = {"success": True, "operations": operations}

        del self._proposals[proposal_id]
        outcome["proposal"] = replace(proposal, instruction=accepted).to_dict()
        return outcome

    def reject(self, proposal_id: str) -> Proposal:
        """Discard a pending proposal and return its rejected record."""
        proposal = self.get(proposal_id)
        rejected = transition(proposal.instruction, ProposalStatus.REJECTED, "reject")
        del self._proposals[proposal_id]
        return replace(proposal, instruction=rejected)
