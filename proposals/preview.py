"""
Diff Preview

Renders what a pending document edit would change, using the same locator
result the patch will use, so the preview and the applied edit cannot
disagree about where the change lands.
"""
import difflib
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from proposals.errors import ProposalErrorBuilder, SchemaViolation
from proposals.locator import LocateResult, MatchResult, locate
from proposals.models import ParagraphDocument
from proposals.planner import require_match, match_hint, trim_context_words
from proposals.schema import DOCUMENT_KINDS, EditInstruction, EditKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditPreview:
    """Before/after text of the region an edit touches."""
    kind: EditKind
    before: str
    after: str
    paragraph_index: Optional[int] = None
    match: Optional[MatchResult] = None

    @property
    def diff(self) -> str:
        lines = difflib.unified_diff(
            self.before.splitlines(keepends=True),
            self.after.splitlines(keepends=True),
            fromfile="current",
            tofile="proposed",
        )
        return "".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "kind": self.kind.value,
            "before": self.before,
            "after": self.after,
            "diff": self.diff,
        }
        if self.paragraph_index is not None:
            result["paragraphIndex"] = self.paragraph_index
        if self.match is not None:
            result["match"] = self.match.to_dict()
        return result


def _splice(text: str, offset: int, length: int, replacement: str) -> str:
    return text[:offset] + replacement + text[offset + length:]


def _paragraph_at(document: ParagraphDocument, index: int) -> Optional[int]:
    for paragraph_index, paragraph in enumerate(document.paragraphs):
        if paragraph.start_index <= index < paragraph.end_index:
            return paragraph_index
    return None


def preview_document_edit(
    instruction: EditInstruction,
    document: ParagraphDocument,
    match: Optional[LocateResult] = None,
) -> EditPreview:
    """
    Build the preview for a document instruction.

    Raises:
        Unlocatable: the instruction's findText is not in the document
    """
    if instruction.kind not in DOCUMENT_KINDS:
        raise SchemaViolation(
            ProposalErrorBuilder.schema_violation(f"'{instruction.kind.value}' is not a document edit")
        )

    payload = instruction.payload

    if instruction.kind == EditKind.REWRITE:
        return EditPreview(instruction.kind, before=document.plain_text, after=payload.new_content)

    hint = match_hint(instruction)
    if match is None and hint is not None:
        match = locate(document, hint)

    if instruction.kind == EditKind.INSERT and hint is None:
        index = payload.position if payload.position is not None else 1
        paragraph_index = _paragraph_at(document, index)
        if paragraph_index is None:
            return EditPreview(instruction.kind, before="", after=payload.new_content)
        paragraph = document.paragraphs[paragraph_index]
        after = _splice(paragraph.text, index - paragraph.start_index, 0, payload.new_content)
        return EditPreview(instruction.kind, paragraph.text, after, paragraph_index)

    found = require_match(hint, match)
    text = document.paragraphs[found.paragraph_index].text

    if instruction.kind == EditKind.REPLACE:
        replacement = trim_context_words(payload.replace_text, found)
        after = _splice(text, found.offset, found.length, replacement)
    elif instruction.kind == EditKind.DELETE:
        after = _splice(text, found.offset, found.length, "")
    else:
        after = _splice(text, found.offset + found.length, 0, payload.new_content)

    logger.debug(f"[preview_document_edit] {instruction.kind.value} in paragraph {found.paragraph_index}")
    return EditPreview(instruction.kind, text, after, found.paragraph_index, found)
