"""
JSON Repair Engine

Fixes the two ways LLM output JSON usually breaks: literal control
characters inside string values (multi-paragraph content written without
escaping) and truncation at a token limit that leaves strings, objects and
arrays open. Trailing commas left behind by truncation are dropped as well.

The engine never returns half-repaired output: the result either parses or
is the untouched input.
"""
import json
import logging
from typing import List

logger = logging.getLogger(__name__)

CONTROL_CHAR_ESCAPES = {
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}

CLOSERS = {"{": "}", "[": "]"}


def parses(text: str) -> bool:
    """True when text is valid JSON."""
    try:
        json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return False
    return True


class RepairAttempt:
    """
    Scratch state for a single repair call.

    Tracks whether the cursor is inside a string literal and how many
    consecutive backslashes precede it. A quote only toggles string state
    when that count is even.
    """

    def __init__(self, text: str):
        self.source = text
        self.buffer: List[str] = []
        self.in_string = False
        self.pending_backslashes = 0

    def _advance(self, char: str) -> None:
        """Update string state for one character of already-emitted text."""
        if char == "\\" and self.in_string:
            self.pending_backslashes += 1
            return
        if char == '"' and self.pending_backslashes % 2 == 0:
            self.in_string = not self.in_string
        self.pending_backslashes = 0

    def escape_control_characters(self) -> str:
        """Rewrite literal newlines, carriage returns and tabs inside strings."""
        self.buffer = []
        self.in_string = False
        self.pending_backslashes = 0

        for char in self.source:
            if self.in_string and char in CONTROL_CHAR_ESCAPES:
                self.buffer.append(CONTROL_CHAR_ESCAPES[char])
                self.pending_backslashes = 0
                continue
            self.buffer.append(char)
            self._advance(char)

        if self.in_string:
            if self.pending_backslashes % 2 == 1:
                # A dangling escape would swallow the closing quote
                self.buffer.pop()
            self.buffer.append('"')
            self.in_string = False
            self.pending_backslashes = 0

        return "".join(self.buffer)


def _structural_positions(text: str):
    """Yield (index, char) for every character outside string literals, plus opening quotes."""
    in_string = False
    backslashes = 0
    for index, char in enumerate(text):
        if in_string:
            if char == "\\":
                backslashes += 1
                continue
            if char == '"' and backslashes % 2 == 0:
                in_string = False
            backslashes = 0
            continue
        if char == '"':
            in_string = True
            backslashes = 0
        yield index, char


def balance_brackets(text: str) -> str:
    """
    Append closers for structural openers left open at the tail.

    Only characters outside string literals are counted. Closers are
    appended innermost first, so '{"a": [1' becomes '{"a": [1]}'.
    """
    stack: List[str] = []
    for _, char in _structural_positions(text):
        if char in CLOSERS:
            stack.append(char)
        elif char in ("}", "]") and stack and CLOSERS[stack[-1]] == char:
            stack.pop()

    if not stack:
        return text

    return text + "".join(CLOSERS[opener] for opener in reversed(stack))


def remove_trailing_commas(text: str) -> str:
    """Drop structural commas that are followed, ignoring whitespace, by '}' or ']'."""
    drop = set()
    pending_comma = None
    for index, char in _structural_positions(text):
        if char.isspace():
            continue
        if char in ("}", "]") and pending_comma is not None:
            drop.add(pending_comma)
        pending_comma = index if char == "," else None

    if not drop:
        return text

    return "".join(char for index, char in enumerate(text) if index not in drop)


def repair_json(text: str) -> str:
    """
    Attempt to make a JSON string parseable.

    Args:
        text: A string that (probably) failed json.loads

    Returns:
        The input unchanged if it already parses, the repaired string if the
        repair produced valid JSON, otherwise the original input.
    """
    if parses(text):
        return text

    attempt = RepairAttempt(text)
    repaired = attempt.escape_control_characters()
    repaired = balance_brackets(repaired)
    repaired = remove_trailing_commas(repaired)

    if parses(repaired):
        logger.info(f"[repair_json] Repaired payload ({len(text)} -> {len(repaired)} chars)")
        return repaired

    logger.warning("[repair_json] Repair failed, returning original payload")
    return text
