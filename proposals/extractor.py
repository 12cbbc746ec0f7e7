"""
Instruction Extractor

Isolates the JSON payload of an edit proposal from a raw model reply.
Models wrap their JSON in markdown fences, prefix it with prose, or get cut
off mid-fence; this module handles each of those without parsing anything.
"""
import logging
import re

logger = logging.getLogger(__name__)

FENCED_BLOCK_PATTERN = re.compile(r"```([A-Za-z0-9_+-]*)[ \t]*\r?\n?(.*?)```", re.DOTALL)
OPEN_FENCE_PATTERN = re.compile(r"```(?:json|JSON)?[ \t]*\r?\n?(.*)$", re.DOTALL)

# Fence tags that can hold the payload; other languages are example code
JSON_FENCE_TAGS = ("", "json")


def extract_instruction(raw_text: str) -> str:
    """
    Extract the substring believed to hold a single JSON object.

    Args:
        raw_text: The model's raw reply

    Returns:
        The interior of the first ```json (or untagged) fenced block if one
        exists, otherwise the inclusive span from the first '{' to the last
        '}' outside fences tagged with another language. The original string
        is returned unchanged when no object-like region is found.
    """
    if not raw_text:
        return raw_text

    fences = list(FENCED_BLOCK_PATTERN.finditer(raw_text))
    for fenced in fences:
        if fenced.group(1).lower() in JSON_FENCE_TAGS:
            logger.debug("[extract_instruction] Using fenced code block")
            return fenced.group(2).strip()

    if fences:
        unfenced = FENCED_BLOCK_PATTERN.sub("", raw_text)
        if "{" in unfenced:
            logger.debug(f"[extract_instruction] Skipping {len(fences)} non-JSON code block(s)")
            raw_text = unfenced

    # Truncated replies can open a fence and never close it
    open_fence = OPEN_FENCE_PATTERN.search(raw_text)
    if open_fence and "{" in open_fence.group(1):
        logger.debug("[extract_instruction] Using unterminated fenced block")
        return _brace_span(open_fence.group(1).strip())

    return _brace_span(raw_text)


def _brace_span(text: str) -> str:
    """Return text from the first '{' to the last '}' inclusive."""
    start = text.find("{")
    if start == -1:
        return text

    end = text.rfind("}")
    if end < start:
        # No closer after the opener: keep the tail for the repair engine
        return text[start:]

    return text[start:end + 1]


def looks_like_instruction(text: str) -> bool:
    """True when text contains an object-like region worth parsing."""
    return bool(text) and "{" in text
