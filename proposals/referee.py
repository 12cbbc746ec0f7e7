"""
LLM Referee

Optional correction pass that asks a second model to review an edit
proposal. The referee can only replace an instruction with another valid
instruction; every failure leaves the proposal unchanged.
"""
import asyncio
import json
import logging
from typing import Optional

from proposals.corrector import CorrectionOutcome
from proposals.errors import EditPipelineError
from proposals.extractor import extract_instruction
from proposals.json_repair import repair_json
from proposals.prompts import REFEREE_PROMPT, build_referee_messages
from proposals.schema import EditInstruction, ParsedReply, validate_reply

logger = logging.getLogger(__name__)

DEFAULT_REFEREE_TIMEOUT = 20.0


def parse_verdict(raw_text: str) -> Optional[dict]:
    """Parse a referee reply into a verdict dict, or None if it is not one."""
    candidate = repair_json(extract_instruction(raw_text or ""))
    try:
        verdict = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    if not isinstance(verdict, dict) or not isinstance(verdict.get("isValid"), bool):
        return None
    return verdict


class RefereePass:
    """
    Second-model review of an edit proposal.

    Args:
        provider: Object with ``async generate(system_prompt, messages) -> str``
        timeout: Seconds to wait for the verdict before failing open
    """

    name = "Referee Review"

    def __init__(self, provider, timeout: float = DEFAULT_REFEREE_TIMEOUT):
        self.provider = provider
        self.timeout = timeout

    async def review(
        self, instruction: EditInstruction, response_text: str = "", user_message: str = ""
    ) -> CorrectionOutcome:
        messages = build_referee_messages(instruction, response_text, user_message)
        try:
            raw = await asyncio.wait_for(
                self.provider.generate(REFEREE_PROMPT, messages), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning(f"[RefereePass] No verdict within {self.timeout}s, keeping original")
            return CorrectionOutcome(instruction, reason="Referee timed out")
        except Exception as e:
            logger.warning(f"[RefereePass] Referee call failed, keeping original: {e}")
            return CorrectionOutcome(instruction, reason="Referee unavailable")

        verdict = parse_verdict(raw)
        if verdict is None:
            logger.warning("[RefereePass] Could not parse verdict, keeping original")
            return CorrectionOutcome(instruction, reason="Could not parse referee verdict")

        if verdict["isValid"] or not verdict.get("correctedResponse"):
            return CorrectionOutcome(instruction, reason=verdict.get("validationReason", ""))

        try:
            corrected = validate_reply(verdict["correctedResponse"])
        except EditPipelineError as e:
            logger.warning(f"[RefereePass] Referee correction is invalid, keeping original: {e}")
            return CorrectionOutcome(instruction, reason="Referee correction rejected")

        if not isinstance(corrected, ParsedReply):
            return CorrectionOutcome(instruction, reason="Referee correction carried no edit")

        reason = verdict.get("validationReason") or "Referee corrected the proposal"
        logger.info(f"[RefereePass] {reason}")
        return CorrectionOutcome(
            corrected.instruction,
            changed=True,
            reason=reason,
            response=corrected.response or None,
        )
