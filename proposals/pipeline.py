"""
Edit-Proposal Pipeline

Runs raw model text through extraction, repair, validation and correction
and reports what happened at each step. Malformed or invalid proposals are
downgraded to plain chat text with the structured error attached; the
pipeline never raises for bad model output.
"""
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from proposals.corrector import CorrectionPipeline
from proposals.errors import (
    EditPipelineError,
    MalformedInstruction,
    ProposalErrorBuilder,
    StructuredError,
)
from proposals.extractor import extract_instruction, looks_like_instruction
from proposals.json_repair import repair_json
from proposals.schema import EditInstruction, NotAnEdit, ParsedReply, validate_reply

logger = logging.getLogger(__name__)


@dataclass
class ProposalResult:
    """
    Outcome of processing one model reply.

    Attributes:
        response_text: Message to show the user
        instruction: The pending edit, or None when the reply is chat text
        error: Why a reply that looked like an edit was downgraded to text
        processing_steps: Human-readable log of every step
        was_corrected: Whether any correction pass rewrote the instruction
        repaired: Whether the JSON had to be repaired before it parsed
    """
    response_text: str
    instruction: Optional[EditInstruction] = None
    error: Optional[StructuredError] = None
    processing_steps: List[str] = field(default_factory=list)
    was_corrected: bool = False
    repaired: bool = False

    @property
    def is_edit(self) -> bool:
        return self.instruction is not None

    def to_dict(self) -> Dict[str, Any]:
        final_response: Dict[str, Any] = {"response": self.response_text}
        if self.instruction is not None:
            final_response["edit"] = self.instruction.to_dict()
        result: Dict[str, Any] = {
            "finalResponse": final_response,
            "processingSteps": self.processing_steps,
            "wasCorrected": self.was_corrected,
        }
        if self.error is not None:
            result["error"] = self.error.to_dict()
        return result


def parse_reply(raw_text: str) -> Union[ParsedReply, NotAnEdit]:
    """
    Extract, repair and validate a model reply.

    Returns:
        ParsedReply or NotAnEdit

    Raises:
        MalformedInstruction: the reply holds an object-like region that
            does not parse even after repair
        SchemaViolation: the parsed object has an invalid edit
    """
    if not looks_like_instruction(raw_text):
        return NotAnEdit(text=raw_text or "", reason="reply contains no JSON object")

    candidate = extract_instruction(raw_text)
    repaired = repair_json(candidate)
    try:
        value = json.loads(repaired)
    except json.JSONDecodeError as e:
        raise MalformedInstruction(ProposalErrorBuilder.malformed_instruction(candidate, str(e)))

    reply = validate_reply(value)
    if isinstance(reply, NotAnEdit) and not reply.text:
        return NotAnEdit(text=raw_text, reason=reply.reason)
    return reply


class ProposalPipeline:
    """
    Turns raw model text into a ProposalResult.

    Args:
        corrector: Correction passes to run over valid instructions
    """

    def __init__(self, corrector: Optional[CorrectionPipeline] = None):
        self.corrector = corrector or CorrectionPipeline()

    async def process(self, raw_text: str, user_message: str = "") -> ProposalResult:
        steps = ["Extraction"]
        candidate = extract_instruction(raw_text) if looks_like_instruction(raw_text) else ""
        repaired = bool(candidate) and repair_json(candidate) != candidate

        try:
            reply = parse_reply(raw_text)
        except EditPipelineError as e:
            logger.warning(f"[ProposalPipeline] Downgrading reply to text: {e.code}: {e}")
            steps.append(f"Validation failed: {e}")
            return ProposalResult(
                response_text=raw_text,
                error=e.error,
                processing_steps=steps,
                repaired=repaired,
            )

        if repaired:
            steps.append("JSON repair applied")

        if isinstance(reply, NotAnEdit):
            steps.append(f"No edit: {reply.reason}")
            return ProposalResult(response_text=reply.text, processing_steps=steps, repaired=repaired)

        steps.append(f"Validated '{reply.instruction.kind.value}' edit")
        report = await self.corrector.run(reply.instruction, reply.response, user_message)
        steps.extend(report.processing_steps)

        return ProposalResult(
            response_text=report.response_text,
            instruction=report.instruction,
            processing_steps=steps,
            was_corrected=report.was_corrected,
            repaired=repaired,
        )
