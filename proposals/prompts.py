"""
Prompt Builder

System prompts for the editing assistant and the referee model, and the
chat-history window sent with every request.
"""
import json
from typing import Any, Dict, List, Optional, Sequence

from proposals.models import DocumentSnapshot, SpreadsheetContext
from proposals.schema import EditInstruction

DEFAULT_HISTORY_LIMIT = 10

# Rows of the active sheet shown to the model
CONTEXT_ROW_LIMIT = 50

BASE_PROMPT = """You are an AI assistant that helps users edit and work with Google Docs and Google Sheets. You can:
- Help users write, edit, and format documents
- Suggest improvements to text
- Answer questions about document content
- Add calculations, rows and columns to spreadsheets

Be helpful, concise, and professional in your responses."""

EDIT_CONTRACT = """When the user asks for a change, reply with a single JSON object and nothing else:
{
  "response": "Short message shown to the user",
  "edit": {
    "type": "<edit type>",
    ...fields for that type...,
    "confidence": "high" | "medium" | "low",
    "reasoning": "Why this edit"
  }
}

Document edit types:
- replace: "findText" (exact text copied from the document, with a few words of context), "replaceText"
- insert: "newContent", optionally "position" (document index) or "findText" (insert after this text)
- delete: "findText"
- rewrite: "newContent" (replaces the whole document; never include findText or replaceText)

Spreadsheet edit types:
- updateCell: "cell" (e.g. "Sheet1!B2"), "value"
- updateRange: "range" (e.g. "Sheet1!A1:C2"), "values" (2-D array; every row exactly as wide as the range)
- updateFormula: "cell", "formula" (must start with "=", e.g. "=SUM(B2:B10)")
- insertRow / deleteRow: "row" (1-based), optional "count", optional "sheet", optional "values" for inserts
- insertColumn / deleteColumn: "column" (letter), optional "count", optional "sheet", optional "values" for inserts

Use updateFormula for calculations; never put a description of a calculation into a cell.
If no edit is needed, reply with plain text or set "edit" to null."""

REFEREE_PROMPT = """You are a spreadsheet and document operation validator. Your job is to validate AI edit proposals and fix any issues.

CRITICAL VALIDATION RULES:
1. Check that the correct operation type was used for calculations
2. Verify that formulas are used instead of descriptive text
3. Ensure proper cell references and sheet names
4. Validate that calculations will not produce #VALUE! errors

RESPONSE FORMAT:
If the proposal is CORRECT, return:
{"isValid": true, "validationReason": "Response is correct"}

If the proposal has ISSUES, return:
{
  "isValid": false,
  "correctedResponse": {
    "response": "Corrected response message",
    "edit": {"type": "updateFormula", "cell": "SUMMARY!B2", "formula": "=SUM(Sheet1!B1:B10)", "confidence": "high", "reasoning": "Fixed calculation to use proper formula"}
  },
  "validationReason": "Replaced descriptive text with a formula"
}

ALWAYS prioritize fixing formula issues over other problems. Reply with JSON only."""


def describe_document(snapshot: DocumentSnapshot) -> str:
    content = snapshot.content.plain_text or "No content available"
    return (
        "Current document context:\n"
        f"- Document ID: {snapshot.document_id}\n"
        f"- Document Name: {snapshot.title}\n"
        f"- Content: {content}"
    )


def describe_spreadsheet(context: SpreadsheetContext, row_limit: int = CONTEXT_ROW_LIMIT) -> str:
    lines = [
        "Current spreadsheet context:",
        f"- Spreadsheet ID: {context.spreadsheet_id}",
        f"- Spreadsheet Name: {context.title}",
        f"- Sheets: {', '.join(context.sheet_titles) or 'none'}",
    ]
    active = context.active_sheet
    if active is not None:
        lines.append(f"- Active sheet: {active.title} ({active.row_count} rows x {active.column_count} columns)")
        for row_number, row in enumerate(active.rows[:row_limit], start=1):
            lines.append(f"  {row_number}: {' | '.join(row)}")
        if len(active.rows) > row_limit:
            lines.append(f"  ... {len(active.rows) - row_limit} more rows")
    return "\n".join(lines)


def build_system_prompt(
    document: Optional[DocumentSnapshot] = None,
    spreadsheet: Optional[SpreadsheetContext] = None,
) -> str:
    """Assemble the assistant system prompt for the file currently open."""
    sections = [BASE_PROMPT, EDIT_CONTRACT]
    if document is not None:
        sections.append(describe_document(document))
    if spreadsheet is not None:
        sections.append(describe_spreadsheet(spreadsheet))
    return "\n\n".join(sections)


def build_messages(
    user_message: str,
    history: Optional[Sequence[Dict[str, Any]]] = None,
    history_limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[Dict[str, str]]:
    """
    Chat messages for a provider call: the last history_limit history
    entries followed by the new user message.
    """
    messages = []
    if history and history_limit > 0:
        for message in list(history)[-history_limit:]:
            messages.append({"role": message["role"], "content": message["content"]})
    messages.append({"role": "user", "content": user_message})
    return messages


def build_referee_messages(
    instruction: EditInstruction, response_text: str, user_message: str = ""
) -> List[Dict[str, str]]:
    proposal = {"response": response_text, "edit": instruction.to_dict()}
    proposal["edit"].pop("status", None)
    content = ""
    if user_message:
        content += f"The user asked: {user_message}\n\n"
    content += f"Please validate this AI response:\n\n{json.dumps(proposal, indent=2)}"
    return [{"role": "user", "content": content}]
