"""
Edit Schema

Edit instructions form a tagged union over EditKind: each variant declares
its own required fields and builds itself from the wire object, so unknown
or malformed shapes are rejected by construction.

Wire format (what the model is asked to produce):

    {
      "response": "Fixed the typo in the intro.",
      "edit": {
        "type": "replace",
        "findText": "and teh results show",
        "replaceText": "and the results show",
        "confidence": "high",
        "reasoning": "Typo"
      }
    }
"""
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union

from gsheets.sheets_helpers import (
    column_index_to_letter,
    column_letter_to_index,
    parse_cell_reference,
    range_column_span,
    strip_sheet_prefix,
)
from proposals.errors import InvalidProposalState, ProposalErrorBuilder, SchemaViolation

logger = logging.getLogger(__name__)


class EditKind(str, Enum):
    """Known edit operations."""
    REPLACE = "replace"
    INSERT = "insert"
    DELETE = "delete"
    REWRITE = "rewrite"
    UPDATE_CELL = "updateCell"
    UPDATE_RANGE = "updateRange"
    INSERT_ROW = "insertRow"
    INSERT_COLUMN = "insertColumn"
    DELETE_ROW = "deleteRow"
    DELETE_COLUMN = "deleteColumn"
    UPDATE_FORMULA = "updateFormula"


DOCUMENT_KINDS = frozenset({EditKind.REPLACE, EditKind.INSERT, EditKind.DELETE, EditKind.REWRITE})
SPREADSHEET_KINDS = frozenset(set(EditKind) - DOCUMENT_KINDS)

# Accepts camelCase, snake_case, kebab-case and plural spellings
KIND_ALIASES: Dict[str, EditKind] = {kind.value.lower(): kind for kind in EditKind}
KIND_ALIASES.update({
    "insertrows": EditKind.INSERT_ROW,
    "insertcolumns": EditKind.INSERT_COLUMN,
    "deleterows": EditKind.DELETE_ROW,
    "deletecolumns": EditKind.DELETE_COLUMN,
    "updatecells": EditKind.UPDATE_CELL,
})

# snake_case field spellings some models emit
FIELD_ALIASES = {
    "find_text": "findText",
    "replace_text": "replaceText",
    "new_content": "newContent",
    "range_name": "range",
    "sheet_name": "sheet",
}


class ConfidenceTier(str, Enum):
    """Coarse certainty surfaced to the user."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ProposalStatus(str, Enum):
    """Lifecycle of an edit proposal; owned by the session, never by the pipeline."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


CellValue = Union[str, int, float, bool]


def normalize_kind(raw_kind: Any) -> Optional[EditKind]:
    """Map a wire spelling of an edit kind to EditKind, or None if unknown."""
    if not isinstance(raw_kind, str):
        return None
    key = raw_kind.strip().replace("_", "").replace("-", "").lower()
    return KIND_ALIASES.get(key)


def _normalize_fields(edit: Dict[str, Any]) -> Dict[str, Any]:
    normalized = {}
    for key, value in edit.items():
        normalized[FIELD_ALIASES.get(key, key)] = value
    return normalized


# --- field readers -----------------------------------------------------------

def _present(edit: Dict[str, Any], name: str) -> bool:
    return edit.get(name) is not None


def _require_str(edit: Dict[str, Any], kind: EditKind, name: str, allow_empty: bool = False) -> str:
    if not _present(edit, name):
        raise SchemaViolation(ProposalErrorBuilder.missing_required_field(kind.value, name))
    value = edit[name]
    if not isinstance(value, str):
        raise SchemaViolation(
            ProposalErrorBuilder.invalid_field_value(kind.value, name, value, "a string")
        )
    if not allow_empty and not value.strip():
        raise SchemaViolation(
            ProposalErrorBuilder.invalid_field_value(kind.value, name, value, "a non-empty string")
        )
    return value


def _optional_str(edit: Dict[str, Any], kind: EditKind, name: str) -> Optional[str]:
    if not _present(edit, name):
        return None
    return _require_str(edit, kind, name)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _positive_int(edit: Dict[str, Any], kind: EditKind, name: str, default: Optional[int] = None) -> int:
    if not _present(edit, name):
        if default is None:
            raise SchemaViolation(ProposalErrorBuilder.missing_required_field(kind.value, name))
        return default
    value = edit[name]
    if not _is_int(value) or value < 1:
        raise SchemaViolation(
            ProposalErrorBuilder.invalid_field_value(kind.value, name, value, "an integer >= 1")
        )
    return value


def _find_text(edit: Dict[str, Any], kind: EditKind, required: bool = True) -> Optional[str]:
    if not _present(edit, "findText"):
        if required:
            raise SchemaViolation(ProposalErrorBuilder.missing_required_field(kind.value, "findText"))
        return None
    value = _require_str(edit, kind, "findText", allow_empty=True)
    if not value.strip():
        raise SchemaViolation(ProposalErrorBuilder.empty_search_text(kind.value))
    return value


def _forbid(edit: Dict[str, Any], kind: EditKind, *names: str) -> None:
    for name in names:
        if _present(edit, name):
            raise SchemaViolation(ProposalErrorBuilder.forbidden_field(kind.value, name))


def _cell_value(kind: EditKind, name: str, value: Any) -> CellValue:
    if value is None:
        return ""
    if isinstance(value, (str, int, float, bool)):
        return value
    raise SchemaViolation(
        ProposalErrorBuilder.invalid_field_value(kind.value, name, value, "a string, number or boolean")
    )


def _require_cell(edit: Dict[str, Any], kind: EditKind, name: str = "cell") -> str:
    cell = _require_str(edit, kind, name)
    _, bare = strip_sheet_prefix(cell.strip())
    try:
        parse_cell_reference(bare)
    except ValueError:
        raise SchemaViolation(
            ProposalErrorBuilder.invalid_field_value(kind.value, name, cell, "a single A1 cell like 'B2' or 'Sheet1!B2'")
        )
    return cell.strip()


def _values_grid(kind: EditKind, raw: Any, orientation: str = "row") -> List[List[CellValue]]:
    """
    Read a 2-D values array. A flat list is accepted for row/column seeds and
    shaped as a single row or a single column depending on orientation.
    """
    if not isinstance(raw, list) or not raw:
        raise SchemaViolation(
            ProposalErrorBuilder.invalid_field_value(kind.value, "values", raw, "a non-empty 2-D array")
        )

    if all(not isinstance(row, list) for row in raw) and orientation != "grid":
        flat = [_cell_value(kind, "values", v) for v in raw]
        return [flat] if orientation == "row" else [[v] for v in flat]

    grid = []
    for row_index, row in enumerate(raw):
        if not isinstance(row, list) or not row:
            raise SchemaViolation(
                ProposalErrorBuilder.invalid_field_value(
                    kind.value, f"values[{row_index}]", row, "a non-empty array of cells"
                )
            )
        grid.append([_cell_value(kind, "values", v) for v in row])

    widths = [len(row) for row in grid]
    if len(set(widths)) > 1:
        raise SchemaViolation(
            ProposalErrorBuilder.invalid_field_value(
                kind.value, "values", widths, "rows of equal width"
            )
        )
    return grid


def _column_letter(edit: Dict[str, Any], kind: EditKind) -> str:
    if not _present(edit, "column"):
        raise SchemaViolation(ProposalErrorBuilder.missing_required_field(kind.value, "column"))
    value = edit["column"]
    if _is_int(value) and value >= 1:
        return column_index_to_letter(value - 1)
    if isinstance(value, str):
        try:
            column_letter_to_index(value.strip())
            return value.strip().upper()
        except ValueError:
            pass
    raise SchemaViolation(
        ProposalErrorBuilder.invalid_field_value(kind.value, "column", value, "a column letter or 1-based number")
    )


# --- variants ----------------------------------------------------------------

@dataclass(frozen=True)
class ReplaceEdit:
    kind: ClassVar[EditKind] = EditKind.REPLACE
    find_text: str
    replace_text: str

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "ReplaceEdit":
        return cls(
            find_text=_find_text(edit, cls.kind),
            replace_text=_require_str(edit, cls.kind, "replaceText", allow_empty=True),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {"findText": self.find_text, "replaceText": self.replace_text}


@dataclass(frozen=True)
class InsertEdit:
    kind: ClassVar[EditKind] = EditKind.INSERT
    new_content: str
    position: Optional[int] = None
    find_text: Optional[str] = None

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "InsertEdit":
        if not _present(edit, "newContent") and _present(edit, "replaceText"):
            edit = dict(edit, newContent=edit["replaceText"])
        return cls(
            new_content=_require_str(edit, cls.kind, "newContent"),
            position=_positive_int(edit, cls.kind, "position") if _present(edit, "position") else None,
            find_text=_find_text(edit, cls.kind, required=False),
        )

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"newContent": self.new_content}
        if self.position is not None:
            wire["position"] = self.position
        if self.find_text is not None:
            wire["findText"] = self.find_text
        return wire


@dataclass(frozen=True)
class DeleteEdit:
    kind: ClassVar[EditKind] = EditKind.DELETE
    find_text: str

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "DeleteEdit":
        return cls(find_text=_find_text(edit, cls.kind))

    def to_wire(self) -> Dict[str, Any]:
        return {"findText": self.find_text}


@dataclass(frozen=True)
class RewriteEdit:
    kind: ClassVar[EditKind] = EditKind.REWRITE
    new_content: str

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "RewriteEdit":
        _forbid(edit, cls.kind, "findText", "replaceText")
        return cls(new_content=_require_str(edit, cls.kind, "newContent"))

    def to_wire(self) -> Dict[str, Any]:
        return {"newContent": self.new_content}


@dataclass(frozen=True)
class UpdateCellEdit:
    kind: ClassVar[EditKind] = EditKind.UPDATE_CELL
    cell: str
    value: CellValue

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "UpdateCellEdit":
        if "value" not in edit:
            raise SchemaViolation(ProposalErrorBuilder.missing_required_field(cls.kind.value, "value"))
        return cls(
            cell=_require_cell(edit, cls.kind),
            value=_cell_value(cls.kind, "value", edit["value"]),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {"cell": self.cell, "value": self.value}


@dataclass(frozen=True)
class UpdateRangeEdit:
    kind: ClassVar[EditKind] = EditKind.UPDATE_RANGE
    range: str
    values: List[List[CellValue]]

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "UpdateRangeEdit":
        range_name = _require_str(edit, cls.kind, "range").strip()
        try:
            span = range_column_span(range_name)
        except ValueError:
            raise SchemaViolation(
                ProposalErrorBuilder.invalid_field_value(cls.kind.value, "range", range_name, "an A1 range like 'A1:C2'")
            )
        if not _present(edit, "values"):
            raise SchemaViolation(ProposalErrorBuilder.missing_required_field(cls.kind.value, "values"))

        raw_values = edit["values"]
        widths = [len(row) for row in raw_values if isinstance(row, list)] if isinstance(raw_values, list) else []
        if span is not None and widths and any(width != span for width in widths):
            raise SchemaViolation(ProposalErrorBuilder.range_width_mismatch(range_name, span, widths))

        return cls(range=range_name, values=_values_grid(cls.kind, raw_values, orientation="grid"))

    def to_wire(self) -> Dict[str, Any]:
        return {"range": self.range, "values": self.values}


@dataclass(frozen=True)
class UpdateFormulaEdit:
    kind: ClassVar[EditKind] = EditKind.UPDATE_FORMULA
    cell: str
    formula: str

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "UpdateFormulaEdit":
        return cls(
            cell=_require_cell(edit, cls.kind),
            formula=_require_str(edit, cls.kind, "formula").strip(),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {"cell": self.cell, "formula": self.formula}


@dataclass(frozen=True)
class InsertRowEdit:
    kind: ClassVar[EditKind] = EditKind.INSERT_ROW
    row: int
    count: int = 1
    sheet: Optional[str] = None
    values: Optional[List[List[CellValue]]] = None

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "InsertRowEdit":
        values = _values_grid(cls.kind, edit["values"], orientation="row") if _present(edit, "values") else None
        return cls(
            row=_positive_int(edit, cls.kind, "row"),
            count=_positive_int(edit, cls.kind, "count", default=1),
            sheet=_optional_str(edit, cls.kind, "sheet"),
            values=values,
        )

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"row": self.row, "count": self.count}
        if self.sheet is not None:
            wire["sheet"] = self.sheet
        if self.values is not None:
            wire["values"] = self.values
        return wire


@dataclass(frozen=True)
class InsertColumnEdit:
    kind: ClassVar[EditKind] = EditKind.INSERT_COLUMN
    column: str
    count: int = 1
    sheet: Optional[str] = None
    values: Optional[List[List[CellValue]]] = None

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "InsertColumnEdit":
        values = _values_grid(cls.kind, edit["values"], orientation="column") if _present(edit, "values") else None
        return cls(
            column=_column_letter(edit, cls.kind),
            count=_positive_int(edit, cls.kind, "count", default=1),
            sheet=_optional_str(edit, cls.kind, "sheet"),
            values=values,
        )

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"column": self.column, "count": self.count}
        if self.sheet is not None:
            wire["sheet"] = self.sheet
        if self.values is not None:
            wire["values"] = self.values
        return wire


@dataclass(frozen=True)
class DeleteRowEdit:
    kind: ClassVar[EditKind] = EditKind.DELETE_ROW
    row: int
    count: int = 1
    sheet: Optional[str] = None

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "DeleteRowEdit":
        return cls(
            row=_positive_int(edit, cls.kind, "row"),
            count=_positive_int(edit, cls.kind, "count", default=1),
            sheet=_optional_str(edit, cls.kind, "sheet"),
        )

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"row": self.row, "count": self.count}
        if self.sheet is not None:
            wire["sheet"] = self.sheet
        return wire


@dataclass(frozen=True)
class DeleteColumnEdit:
    kind: ClassVar[EditKind] = EditKind.DELETE_COLUMN
    column: str
    count: int = 1
    sheet: Optional[str] = None

    @classmethod
    def from_wire(cls, edit: Dict[str, Any]) -> "DeleteColumnEdit":
        return cls(
            column=_column_letter(edit, cls.kind),
            count=_positive_int(edit, cls.kind, "count", default=1),
            sheet=_optional_str(edit, cls.kind, "sheet"),
        )

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {"column": self.column, "count": self.count}
        if self.sheet is not None:
            wire["sheet"] = self.sheet
        return wire


EditPayload = Union[
    ReplaceEdit,
    InsertEdit,
    DeleteEdit,
    RewriteEdit,
    UpdateCellEdit,
    UpdateRangeEdit,
    UpdateFormulaEdit,
    InsertRowEdit,
    InsertColumnEdit,
    DeleteRowEdit,
    DeleteColumnEdit,
]

EDIT_VARIANTS = {
    variant.kind: variant
    for variant in (
        ReplaceEdit,
        InsertEdit,
        DeleteEdit,
        RewriteEdit,
        UpdateCellEdit,
        UpdateRangeEdit,
        UpdateFormulaEdit,
        InsertRowEdit,
        InsertColumnEdit,
        DeleteRowEdit,
        DeleteColumnEdit,
    )
}


@dataclass(frozen=True)
class EditInstruction:
    """
    A normalized edit proposal.

    Attributes:
        payload: The kind-specific variant
        confidence: Producer's self-reported certainty (defaulted by the corrector)
        reasoning: Free-text justification (defaulted by the corrector)
        status: Lifecycle state; always PENDING when produced by the pipeline
    """
    payload: EditPayload
    confidence: Optional[ConfidenceTier] = None
    reasoning: Optional[str] = None
    status: ProposalStatus = ProposalStatus.PENDING

    @property
    def kind(self) -> EditKind:
        return self.payload.kind

    @property
    def is_document_edit(self) -> bool:
        return self.kind in DOCUMENT_KINDS

    def with_payload(self, payload: EditPayload) -> "EditInstruction":
        return replace(self, payload=payload)

    def with_status(self, status: ProposalStatus) -> "EditInstruction":
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the wire shape (plus status)."""
        result: Dict[str, Any] = {"type": self.kind.value}
        result.update(self.payload.to_wire())
        if self.confidence is not None:
            result["confidence"] = self.confidence.value
        if self.reasoning is not None:
            result["reasoning"] = self.reasoning
        result["status"] = self.status.value
        return result


@dataclass(frozen=True)
class ParsedReply:
    """A model reply that carries a valid edit."""
    response: str
    instruction: EditInstruction


@dataclass(frozen=True)
class NotAnEdit:
    """A model reply that is ordinary chat text, not an edit proposal."""
    text: str
    reason: str = ""


def _parse_confidence(raw: Any) -> Optional[ConfidenceTier]:
    if raw is None:
        return None
    if isinstance(raw, str):
        try:
            return ConfidenceTier(raw.strip().lower())
        except ValueError:
            pass
    logger.warning(f"[parse_edit] Ignoring unrecognized confidence {raw!r}")
    return None


def parse_edit(edit: Dict[str, Any]) -> EditInstruction:
    """
    Build an EditInstruction from a wire edit object.

    Raises:
        SchemaViolation: unknown kind or a variant shape violation
    """
    if not isinstance(edit, dict):
        raise SchemaViolation(
            ProposalErrorBuilder.schema_violation(
                f"'edit' must be an object, got {type(edit).__name__}"
            )
        )

    edit = _normalize_fields(edit)
    raw_kind = edit.get("type", edit.get("kind"))
    kind = normalize_kind(raw_kind)
    if kind is None:
        raise SchemaViolation(
            ProposalErrorBuilder.unknown_edit_kind(raw_kind, [k.value for k in EditKind])
        )

    payload = EDIT_VARIANTS[kind].from_wire(edit)

    reasoning = edit.get("reasoning")
    if reasoning is not None and not isinstance(reasoning, str):
        reasoning = str(reasoning)

    return EditInstruction(
        payload=payload,
        confidence=_parse_confidence(edit.get("confidence")),
        reasoning=reasoning or None,
    )


def validate_reply(value: Any) -> Union[ParsedReply, NotAnEdit]:
    """
    Validate a parsed model reply.

    Returns:
        ParsedReply when the reply carries a valid edit, NotAnEdit when the
        reply has no edit at all.

    Raises:
        SchemaViolation: the reply has an edit that does not match any known shape
    """
    if not isinstance(value, dict):
        return NotAnEdit(text="", reason=f"reply is a JSON {type(value).__name__}, not an object")

    response = value.get("response")
    if value.get("edit") is None:
        text = response if isinstance(response, str) else ""
        return NotAnEdit(text=text, reason="reply has no edit")

    if not isinstance(response, str):
        raise SchemaViolation(
            ProposalErrorBuilder.schema_violation(
                "'response' must be a string", received={"response": repr(response)}
            )
        )

    instruction = parse_edit(value["edit"])
    logger.info(f"[validate_reply] Valid '{instruction.kind.value}' edit")
    return ParsedReply(response=response, instruction=instruction)


def transition(instruction: EditInstruction, status: ProposalStatus, action: str) -> EditInstruction:
    """
    Move a pending instruction to accepted or rejected.

    Raises:
        InvalidProposalState: the instruction is no longer pending
    """
    if instruction.status != ProposalStatus.PENDING:
        raise InvalidProposalState(ProposalErrorBuilder.invalid_state(instruction.status.value, action))
    return instruction.with_status(status)
