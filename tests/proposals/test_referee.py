"""
Unit tests for the LLM referee pass.
"""
import asyncio
import json

import pytest
from unittest.mock import AsyncMock, MagicMock

from proposals.prompts import REFEREE_PROMPT
from proposals.referee import RefereePass, parse_verdict
from proposals.schema import EditKind, parse_edit


@pytest.fixture
def instruction():
    return parse_edit({"type": "updateCell", "cell": "B2", "value": "Total revenue for the year"})


def _provider(reply=None, side_effect=None):
    provider = MagicMock()
    provider.generate = AsyncMock(return_value=reply, side_effect=side_effect)
    return provider


class TestParseVerdict:
    """Tests for verdict parsing."""

    def test_valid_verdict(self):
        """A plain verdict object parses."""
        assert parse_verdict('{"isValid": true, "validationReason": "ok"}') == {
            "isValid": True, "validationReason": "ok",
        }

    def test_fenced_verdict(self):
        """Verdicts in fences are extracted."""
        assert parse_verdict('```json\n{"isValid": false}\n```') == {"isValid": False}

    def test_missing_is_valid(self):
        """isValid must be a boolean."""
        assert parse_verdict('{"isValid": "yes"}') is None
        assert parse_verdict('{"reason": "x"}') is None

    def test_garbage(self):
        """Non-JSON text is not a verdict."""
        assert parse_verdict("looks fine to me") is None


class TestRefereePass:
    """Tests for the fail-open referee behaviour."""

    @pytest.mark.asyncio
    async def test_valid_verdict_keeps_original(self, instruction):
        """isValid: true leaves the instruction unchanged."""
        provider = _provider('{"isValid": true, "validationReason": "Response is correct"}')
        outcome = await RefereePass(provider).review(instruction, "Done", "add total")

        assert not outcome.changed
        assert outcome.instruction is instruction
        system_prompt, messages = provider.generate.await_args.args
        assert system_prompt == REFEREE_PROMPT
        assert "The user asked: add total" in messages[0]["content"]

    @pytest.mark.asyncio
    async def test_correction_is_applied(self, instruction):
        """A valid correctedResponse replaces the instruction and response."""
        verdict = {
            "isValid": False,
            "correctedResponse": {
                "response": "Adding a formula",
                "edit": {"type": "updateFormula", "cell": "B2", "formula": "=SUM(B3:B10)"},
            },
            "validationReason": "Use a formula",
        }
        outcome = await RefereePass(_provider(json.dumps(verdict))).review(instruction, "Done")

        assert outcome.changed
        assert outcome.instruction.kind == EditKind.UPDATE_FORMULA
        assert outcome.response == "Adding a formula"
        assert outcome.reason == "Use a formula"

    @pytest.mark.asyncio
    async def test_invalid_correction_fails_open(self, instruction):
        """A correction that does not validate is discarded."""
        verdict = {
            "isValid": False,
            "correctedResponse": {"response": "x", "edit": {"type": "rewrite", "newContent": "a", "findText": "b"}},
        }
        outcome = await RefereePass(_provider(json.dumps(verdict))).review(instruction)
        assert not outcome.changed
        assert outcome.instruction is instruction

    @pytest.mark.asyncio
    async def test_correction_without_edit_fails_open(self, instruction):
        """A correction that drops the edit is discarded."""
        verdict = {"isValid": False, "correctedResponse": {"response": "never mind"}}
        outcome = await RefereePass(_provider(json.dumps(verdict))).review(instruction)
        assert not outcome.changed

    @pytest.mark.asyncio
    async def test_unparseable_verdict_fails_open(self, instruction):
        """Prose from the referee keeps the original."""
        outcome = await RefereePass(_provider("I think it is fine")).review(instruction)
        assert not outcome.changed
        assert outcome.reason == "Could not parse referee verdict"

    @pytest.mark.asyncio
    async def test_provider_error_fails_open(self, instruction):
        """A failing provider keeps the original."""
        provider = _provider(side_effect=RuntimeError("rate limited"))
        outcome = await RefereePass(provider).review(instruction)
        assert not outcome.changed
        assert outcome.reason == "Referee unavailable"

    @pytest.mark.asyncio
    async def test_timeout_fails_open(self, instruction):
        """A referee slower than the timeout keeps the original."""
        async def slow_generate(system_prompt, messages):
            await asyncio.sleep(1)
            return '{"isValid": true}'

        provider = MagicMock()
        provider.generate = slow_generate
        outcome = await RefereePass(provider, timeout=0.01).review(instruction)
        assert not outcome.changed
        assert outcome.reason == "Referee timed out"
