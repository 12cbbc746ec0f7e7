"""
Edit Proposal Error Handling

This module provides structured, actionable error messages for the edit
proposal pipeline. Every stage fails closed by raising one of the exceptions
below; each exception carries a StructuredError that can be serialized and
returned to the user (or to an agent) unchanged.
"""
import json
import logging
from enum import Enum
from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    """Standardized error codes for edit proposals."""

    # Extraction / parsing
    MALFORMED_INSTRUCTION = "MALFORMED_INSTRUCTION"

    # Schema
    SCHEMA_VIOLATION = "SCHEMA_VIOLATION"
    UNKNOWN_EDIT_KIND = "UNKNOWN_EDIT_KIND"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    FORBIDDEN_FIELD = "FORBIDDEN_FIELD"
    INVALID_FIELD_VALUE = "INVALID_FIELD_VALUE"
    RANGE_WIDTH_MISMATCH = "RANGE_WIDTH_MISMATCH"
    SHEET_NOT_FOUND = "SHEET_NOT_FOUND"

    # Locating
    UNLOCATABLE = "UNLOCATABLE"
    EMPTY_SEARCH_TEXT = "EMPTY_SEARCH_TEXT"

    # Applying
    MUTATION_FAILURE = "MUTATION_FAILURE"
    INVALID_STATE = "INVALID_STATE"

    # Providers
    UNKNOWN_MODEL = "UNKNOWN_MODEL"
    PROVIDER_ERROR = "PROVIDER_ERROR"


@dataclass
class ErrorContext:
    """Additional context for error messages."""
    received: Optional[Dict[str, Any]] = None
    expected: Optional[Dict[str, Any]] = None
    available_sheets: Optional[List[str]] = None
    available_models: Optional[List[str]] = None
    possible_causes: Optional[List[str]] = None


@dataclass
class StructuredError:
    """
    Structured error response with actionable guidance.

    Attributes:
        error: Always True for error responses
        code: Machine-readable error code from ErrorCode enum
        message: Human-readable error description
        reason: Explanation of why this error occurred
        suggestion: Actionable advice on how to fix the issue
        example: Optional example showing correct usage
        context: Additional context like received values
    """
    error: bool = True
    code: str = ""
    message: str = ""
    reason: str = ""
    suggestion: str = ""
    example: Optional[Dict[str, Any]] = None
    context: Optional[ErrorContext] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = {
            "error": self.error,
            "code": self.code,
            "message": self.message,
        }

        if self.reason:
            result["reason"] = self.reason
        if self.suggestion:
            result["suggestion"] = self.suggestion
        if self.example:
            result["example"] = self.example
        if self.context:
            ctx = asdict(self.context)
            ctx = {k: v for k, v in ctx.items() if v is not None}
            if ctx:
                result["context"] = ctx

        return result

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


class EditPipelineError(Exception):
    """Base class for failures raised by the edit proposal pipeline."""

    def __init__(self, error: StructuredError):
        super().__init__(error.message)
        self.error = error

    @property
    def code(self) -> str:
        return self.error.code


class MalformedInstruction(EditPipelineError):
    """The reply looked like JSON but could not be repaired into parseable JSON."""


class SchemaViolation(EditPipelineError):
    """Parsed JSON does not match any known edit shape."""


class Unlocatable(EditPipelineError):
    """The instruction's findText could not be matched in the document."""


class MutationFailure(EditPipelineError):
    """The document or spreadsheet backend rejected the batch."""


class ProviderError(EditPipelineError):
    """The requested model is unknown or its provider failed."""


class InvalidProposalState(EditPipelineError):
    """The proposal has already been accepted or rejected."""


class ProposalErrorBuilder:
    """
    Builder for creating structured error messages.

    Usage:
        raise SchemaViolation(ProposalErrorBuilder.unknown_edit_kind("move"))
    """

    @staticmethod
    def malformed_instruction(raw_text: str, parse_error: str) -> StructuredError:
        """Error when repair could not produce parseable JSON."""
        preview = raw_text if len(raw_text) <= 200 else raw_text[:200] + "..."
        return StructuredError(
            code=ErrorCode.MALFORMED_INSTRUCTION.value,
            message="The model reply contained an edit that could not be parsed as JSON",
            reason=f"JSON repair did not produce a parseable object: {parse_error}",
            suggestion="Ask the assistant to repeat the edit; the reply will be shown as plain text.",
            context=ErrorContext(received={"payload": preview}),
        )

    @staticmethod
    def schema_violation(message: str, received: Optional[Dict[str, Any]] = None) -> StructuredError:
        """Generic error when parsed JSON does not match the reply contract."""
        return StructuredError(
            code=ErrorCode.SCHEMA_VIOLATION.value,
            message=message,
            reason="The reply must be an object with a string 'response' and an object 'edit'.",
            suggestion="Ask the assistant to answer with the documented JSON shape.",
            example={
                "reply": {
                    "response": "Fixed the typo.",
                    "edit": {"type": "replace", "findText": "teh cat sat", "replaceText": "the cat sat"},
                }
            },
            context=ErrorContext(received=received) if received else None,
        )

    @staticmethod
    def unknown_edit_kind(kind: Any, known_kinds: List[str]) -> StructuredError:
        """Error when an edit declares a kind outside the known set."""
        return StructuredError(
            code=ErrorCode.UNKNOWN_EDIT_KIND.value,
            message=f"Unknown edit type '{kind}'",
            reason="Only a fixed set of edit operations can be applied; unknown kinds are never guessed at.",
            suggestion=f"Use one of: {', '.join(known_kinds)}.",
            context=ErrorContext(
                received={"type": kind},
                expected={"type": known_kinds},
            ),
        )

    @staticmethod
    def missing_required_field(kind: str, field_name: str) -> StructuredError:
        """Error when a variant's required field is missing."""
        return StructuredError(
            code=ErrorCode.MISSING_REQUIRED_FIELD.value,
            message=f"'{kind}' edits require '{field_name}'",
            reason=f"The '{field_name}' field is required for this edit type.",
            suggestion=f"Include '{field_name}' in the edit object.",
            context=ErrorContext(received={"type": kind}, expected={"required": field_name}),
        )

    @staticmethod
    def forbidden_field(kind: str, field_name: str) -> StructuredError:
        """Error when a variant carries a field it must not have."""
        return StructuredError(
            code=ErrorCode.FORBIDDEN_FIELD.value,
            message=f"'{kind}' edits must not include '{field_name}'",
            reason=f"'{field_name}' has no meaning for '{kind}' and would make the edit ambiguous.",
            suggestion=f"Remove '{field_name}' or choose a different edit type.",
            context=ErrorContext(received={"type": kind, "field": field_name}),
        )

    @staticmethod
    def invalid_field_value(kind: str, field_name: str, value: Any, expected: str) -> StructuredError:
        """Error when a field has the wrong type or value."""
        return StructuredError(
            code=ErrorCode.INVALID_FIELD_VALUE.value,
            message=f"Invalid '{field_name}' for '{kind}' edit: {value!r}",
            reason=f"'{field_name}' must be {expected}.",
            suggestion=f"Provide '{field_name}' as {expected}.",
            context=ErrorContext(
                received={field_name: repr(value)},
                expected={field_name: expected},
            ),
        )

    @staticmethod
    def range_width_mismatch(range_name: str, expected_width: int, row_widths: List[int]) -> StructuredError:
        """Error when updateRange rows do not match the range's column span."""
        return StructuredError(
            code=ErrorCode.RANGE_WIDTH_MISMATCH.value,
            message=(
                f"Range '{range_name}' spans {expected_width} column(s) but rows have "
                f"widths {row_widths}"
            ),
            reason="Every row of 'values' must have exactly as many cells as the range has columns.",
            suggestion="Widen the range or fix the row widths; values are never truncated or padded.",
            context=ErrorContext(
                received={"range": range_name, "row_widths": row_widths},
                expected={"row_width": expected_width},
            ),
        )

    @staticmethod
    def sheet_not_found(sheet_name: str, available_sheets: List[str]) -> StructuredError:
        """Error when an edit targets a sheet that does not exist."""
        return StructuredError(
            code=ErrorCode.SHEET_NOT_FOUND.value,
            message=f"Sheet '{sheet_name}' not found",
            reason="Row and column operations need the numeric id of an existing sheet.",
            suggestion="Use one of the available sheet names.",
            context=ErrorContext(received={"sheet": sheet_name}, available_sheets=available_sheets),
        )

    @staticmethod
    def empty_search_text(kind: str) -> StructuredError:
        """Error when an edit needs to locate text but has none."""
        return StructuredError(
            code=ErrorCode.EMPTY_SEARCH_TEXT.value,
            message=f"'{kind}' edit has no text to locate",
            reason="An empty findText would match nothing.",
            suggestion="Include the target text with a few words of context before and after it.",
        )

    @staticmethod
    def unlocatable(find_text: str, reason: str = "") -> StructuredError:
        """Error when findText could not be matched in the document."""
        return StructuredError(
            code=ErrorCode.UNLOCATABLE.value,
            message=f"Could not find '{find_text}' in the document",
            reason=reason or "No exact, whitespace-normalized or core-text match was found.",
            suggestion=(
                "The document may have changed since the edit was proposed. "
                "Reload the document and ask for the edit again, or apply it manually."
            ),
            context=ErrorContext(received={"findText": find_text}),
        )

    @staticmethod
    def mutation_failure(operation: str, error_message: str, target_id: Optional[str] = None) -> StructuredError:
        """Error when the Google API rejected the batch."""
        received = {"operation": operation}
        if target_id:
            received["target_id"] = target_id
        return StructuredError(
            code=ErrorCode.MUTATION_FAILURE.value,
            message=f"Could not apply edit during {operation}: {error_message}",
            reason="The Google API rejected the batch; nothing was applied.",
            suggestion="The edit is still pending. Reload the document and retry.",
            context=ErrorContext(
                received=received,
                possible_causes=[
                    "The document changed since it was read",
                    "Edit permission was revoked",
                    "An index in the plan is out of bounds",
                ],
            ),
        )

    @staticmethod
    def invalid_state(status: str, action: str) -> StructuredError:
        """Error when a proposal is not in a state that allows the action."""
        return StructuredError(
            code=ErrorCode.INVALID_STATE.value,
            message=f"Cannot {action} an edit whose status is '{status}'",
            reason="Only pending edits can be accepted or rejected.",
            suggestion="Request a new edit from the assistant.",
        )

    @staticmethod
    def unknown_model(model: str, available_models: List[str]) -> StructuredError:
        """Error when no provider is registered for a model id."""
        return StructuredError(
            code=ErrorCode.UNKNOWN_MODEL.value,
            message=f"No provider registered for model '{model}'",
            reason="Models must be registered with the provider registry before use.",
            suggestion="Pick one of the available models.",
            context=ErrorContext(received={"model": model}, available_models=available_models),
        )

    @staticmethod
    def provider_error(model: str, error_message: str) -> StructuredError:
        """Error when a provider call fails."""
        return StructuredError(
            code=ErrorCode.PROVIDER_ERROR.value,
            message=f"Model '{model}' failed to respond: {error_message}",
            reason="The LLM provider returned an error or could not be reached.",
            suggestion="Try again or select a different model.",
        )


def format_error(error: StructuredError) -> str:
    """
    Format a StructuredError for return to the user.

    Returns a JSON string that can be parsed by both humans and AI agents.
    """
    return error.to_json()
