"""
Fuzzy Text Locator

Maps a findText hint onto a paragraph index and character offset. Models
quote text from memory, usually with a word of context on either side and
with whitespace that drifts from the document, so matching escalates
through three strategies:

    1. exact substring                          -> high
    2. whitespace-normalized substring          -> medium
    3. core text (first and last word dropped)  -> medium

Each strategy scans paragraphs in document order and the first hit wins.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from proposals.models import ParagraphDocument
from proposals.schema import ConfidenceTier

logger = logging.getLogger(__name__)

WHITESPACE_RUN = re.compile(r"\s+")

# Core-text matching needs context words on both sides of at least one word
CORE_TEXT_MIN_WORDS = 3


class MatchStrategy(str, Enum):
    EXACT = "exact"
    WHITESPACE_NORMALIZED = "whitespace_normalized"
    CORE_TEXT = "core_text"


@dataclass(frozen=True)
class MatchResult:
    """
    Where a hint was found.

    Attributes:
        paragraph_index: Index into ParagraphDocument.paragraphs
        offset: Character offset of the match inside the paragraph text
        length: Length of the matched span in the paragraph text
        confidence_tier: high for exact matches, medium otherwise
        strategy: Which strategy produced the match
        context_prefix: Leading hint word dropped by the core-text strategy
        context_suffix: Trailing hint word dropped by the core-text strategy
    """
    paragraph_index: int
    offset: int
    length: int
    confidence_tier: ConfidenceTier
    strategy: MatchStrategy = MatchStrategy.EXACT
    context_prefix: str = ""
    context_suffix: str = ""

    def to_dict(self):
        return {
            "paragraphIndex": self.paragraph_index,
            "offset": self.offset,
            "length": self.length,
            "confidenceTier": self.confidence_tier.value,
            "strategy": self.strategy.value,
        }


@dataclass(frozen=True)
class NoMatch:
    """The hint could not be placed in the document."""
    reason: str


LocateResult = Union[MatchResult, NoMatch]


def normalize_whitespace(text: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return WHITESPACE_RUN.sub(" ", text).strip()


def _normalize_with_offsets(text: str) -> Tuple[str, List[int]]:
    """
    Normalize text and record, for every normalized character, the offset
    of the original character it came from.
    """
    chars: List[str] = []
    offsets: List[int] = []
    previous_space = True  # drops leading whitespace
    for index, char in enumerate(text):
        if char.isspace():
            if previous_space:
                continue
            chars.append(" ")
            offsets.append(index)
            previous_space = True
        else:
            chars.append(char)
            offsets.append(index)
            previous_space = False

    if chars and chars[-1] == " ":
        chars.pop()
        offsets.pop()

    return "".join(chars), offsets


def _search_normalized(
    document: ParagraphDocument, needle: str
) -> Optional[Tuple[int, int, int]]:
    """Find needle in normalized paragraphs; returns (paragraph_index, offset, length) in original text."""
    for paragraph_index, paragraph in enumerate(document.paragraphs):
        normalized, offsets = _normalize_with_offsets(paragraph.text)
        position = normalized.find(needle)
        if position == -1:
            continue
        start = offsets[position]
        end = offsets[position + len(needle) - 1] + 1
        return paragraph_index, start, end - start
    return None


def _exact(document: ParagraphDocument, hint: str) -> Optional[MatchResult]:
    for paragraph_index, paragraph in enumerate(document.paragraphs):
        offset = paragraph.text.find(hint)
        if offset != -1:
            return MatchResult(paragraph_index, offset, len(hint), ConfidenceTier.HIGH, MatchStrategy.EXACT)
    return None


def _whitespace_normalized(document: ParagraphDocument, hint: str) -> Optional[MatchResult]:
    needle = normalize_whitespace(hint)
    if not needle:
        return None
    hit = _search_normalized(document, needle)
    if hit is None:
        return None
    return MatchResult(*hit, ConfidenceTier.MEDIUM, MatchStrategy.WHITESPACE_NORMALIZED)


def _core_text(document: ParagraphDocument, hint: str) -> Optional[MatchResult]:
    words = normalize_whitespace(hint).split(" ")
    if len(words) < CORE_TEXT_MIN_WORDS:
        return None
    core = " ".join(words[1:-1])
    hit = _search_normalized(document, core)
    if hit is None:
        return None
    return MatchResult(
        *hit,
        ConfidenceTier.MEDIUM,
        MatchStrategy.CORE_TEXT,
        context_prefix=words[0],
        context_suffix=words[-1],
    )


STRATEGIES = (_exact, _whitespace_normalized, _core_text)


def locate(document: ParagraphDocument, find_text: Optional[str]) -> LocateResult:
    """
    Locate find_text in the document.

    Args:
        document: Paragraph snapshot to search
        find_text: Hint text, usually the target plus a word of context

    Returns:
        The first MatchResult of the first strategy that finds anything,
        or NoMatch.
    """
    if not find_text or not find_text.strip():
        return NoMatch(reason="findText is empty")

    for strategy in STRATEGIES:
        match = strategy(document, find_text)
        if match is not None:
            logger.debug(
                f"[locate] {match.strategy.value} match in paragraph {match.paragraph_index} "
                f"at offset {match.offset} (length {match.length})"
            )
            return match

    preview = find_text if len(find_text) <= 60 else find_text[:57] + "..."
    logger.info(f"[locate] No match for '{preview}' in {len(document)} paragraphs")
    return NoMatch(reason=f"Text '{preview}' was not found in the document")


def absolute_index(document: ParagraphDocument, match: MatchResult) -> int:
    """Document index of the first matched character."""
    return document.paragraphs[match.paragraph_index].start_index + match.offset
