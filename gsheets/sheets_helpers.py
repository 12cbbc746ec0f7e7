"""
Google Sheets Helper Functions

A1-notation parsing and request builders shared by the edit schema, the
patch planner and the spreadsheet edit manager.
"""
import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from proposals.models import SheetData, SheetMetadata, SpreadsheetContext

logger = logging.getLogger(__name__)

CELL_REFERENCE_PATTERN = re.compile(r"^([A-Za-z]+)(\d+)$")
COLUMN_PATTERN = re.compile(r"^[A-Za-z]+$")
ROW_PATTERN = re.compile(r"^\d+$")


def strip_sheet_prefix(range_str: str) -> Tuple[Optional[str], str]:
    """
    Split 'Sheet1!A1:B2' into ('Sheet1', 'A1:B2').

    Quoted names ("'My Sheet'!A1") are unquoted and doubled quotes collapsed.
    Returns (None, range_str) when there is no prefix.
    """
    if "!" not in range_str:
        return None, range_str

    sheet_part, cell_part = range_str.rsplit("!", 1)
    if len(sheet_part) >= 2 and sheet_part.startswith("'") and sheet_part.endswith("'"):
        sheet_part = sheet_part[1:-1].replace("''", "'")

    return sheet_part, cell_part


def quote_sheet_name(sheet_name: str) -> str:
    """Quote a sheet name for A1 notation if it contains spaces or special characters."""
    if " " in sheet_name or any(c in sheet_name for c in ["'", "!", ":", "[", "]"]):
        escaped_name = sheet_name.replace("'", "''")
        return f"'{escaped_name}'"
    return sheet_name


def with_sheet_prefix(range_str: str, sheet_name: Optional[str]) -> str:
    """Prefix a bare range with a sheet name; ranges that already have one are returned as-is."""
    if not sheet_name or "!" in range_str:
        return range_str
    return f"{quote_sheet_name(sheet_name)}!{range_str}"


def column_letter_to_index(letters: str) -> int:
    """Convert column letters to a 0-indexed column number ('A'=0, 'Z'=25, 'AA'=26)."""
    if not COLUMN_PATTERN.match(letters or ""):
        raise ValueError(f"Invalid column letters: '{letters}'.")
    col_index = 0
    for char in letters.upper():
        col_index = col_index * 26 + (ord(char) - ord("A") + 1)
    return col_index - 1


def column_index_to_letter(col_index: int) -> str:
    """
    Convert a 0-indexed column number to column letters (0='A', 25='Z', 26='AA').
    """
    result = ""
    col_index += 1  # Make 1-indexed for calculation
    while col_index > 0:
        col_index -= 1
        result = chr(ord("A") + col_index % 26) + result
        col_index //= 26
    return result


def parse_cell_reference(cell_ref: str) -> Tuple[int, int]:
    """
    Parse a cell reference like 'A1' into (row_index, column_index).

    Args:
        cell_ref: Cell reference in A1 notation (e.g., 'A1', 'B2', 'AA10')

    Returns:
        Tuple of (row_index, column_index) - both 0-indexed
    """
    match = CELL_REFERENCE_PATTERN.match(cell_ref.strip())
    if not match:
        raise ValueError(
            f"Invalid cell reference: '{cell_ref}'. Expected format like 'A1', 'B2', 'AA10'."
        )

    col_index = column_letter_to_index(match.group(1))
    row_index = int(match.group(2)) - 1  # Make 0-indexed
    if row_index < 0:
        raise ValueError(f"Invalid cell reference: '{cell_ref}'. Rows start at 1.")

    return row_index, col_index


def parse_range_to_grid(range_str: str) -> Dict[str, Optional[int]]:
    """
    Parse a range string like 'A1:D10' into GridRange coordinates.

    Column-only ranges ('A:C') leave the row bounds as None, and a single
    cell ('B2') yields a one-cell grid. A sheet prefix is ignored.

    Returns:
        Dict with startRowIndex, endRowIndex, startColumnIndex, endColumnIndex
        (all 0-indexed, ends exclusive)
    """
    _, cells = strip_sheet_prefix(range_str)
    cells = cells.strip()

    if ":" in cells:
        start_cell, end_cell = cells.split(":", 1)
    else:
        start_cell = end_cell = cells

    if COLUMN_PATTERN.match(start_cell) and COLUMN_PATTERN.match(end_cell):
        return {
            "startRowIndex": None,
            "endRowIndex": None,
            "startColumnIndex": column_letter_to_index(start_cell),
            "endColumnIndex": column_letter_to_index(end_cell) + 1,
        }

    start_row, start_col = parse_cell_reference(start_cell)
    end_row, end_col = parse_cell_reference(end_cell)

    return {
        "startRowIndex": start_row,
        "endRowIndex": end_row + 1,  # API uses exclusive end
        "startColumnIndex": start_col,
        "endColumnIndex": end_col + 1,  # API uses exclusive end
    }


def range_column_span(range_str: str) -> Optional[int]:
    """
    Number of columns a range declares, or None for an open-ended single cell.

    'A1:C2' spans 3 columns. A bare start cell ('B2') does not declare an end
    column, since a values write starting there may extend to the right.
    """
    _, cells = strip_sheet_prefix(range_str)
    if ":" not in cells:
        parse_cell_reference(cells)
        return None
    grid = parse_range_to_grid(cells)
    span = grid["endColumnIndex"] - grid["startColumnIndex"]
    if span <= 0:
        raise ValueError(f"Invalid range '{range_str}': end column precedes start column.")
    return span


def offset_cell(range_str: str, row_offset: int, col_offset: int) -> str:
    """
    Return the A1 reference of the cell offset from the range's start cell, keeping any sheet prefix.

    A column-only range ('A:C') starts at row 1 of its first column.
    """
    sheet_name, cells = strip_sheet_prefix(range_str)
    start_cell = cells.split(":", 1)[0].strip()
    if COLUMN_PATTERN.match(start_cell):
        row_index, col_index = 0, column_letter_to_index(start_cell)
    else:
        row_index, col_index = parse_cell_reference(start_cell)
    cell = f"{column_index_to_letter(col_index + col_offset)}{row_index + row_offset + 1}"
    return with_sheet_prefix(cell, sheet_name)


def create_values_update(range_name: str, values: List[List[Any]]) -> Dict[str, Any]:
    """Create a value-range write for the Sheets values API."""
    return {
        "valuesUpdate": {
            "range": range_name,
            "values": values,
        }
    }


def create_insert_dimension_request(
    sheet_id: int, dimension: str, start_index: int, count: int
) -> Dict[str, Any]:
    """
    Create an insertDimension request.

    Inserting at the first row or column cannot inherit formatting from
    before, so inheritFromBefore is only set past index 0.
    """
    return {
        "insertDimension": {
            "range": {
                "sheetId": sheet_id,
                "dimension": dimension,
                "startIndex": start_index,
                "endIndex": start_index + count,
            },
            "inheritFromBefore": start_index > 0,
        }
    }


def create_delete_dimension_request(
    sheet_id: int, dimension: str, start_index: int, count: int
) -> Dict[str, Any]:
    """Create a deleteDimension request."""
    return {
        "deleteDimension": {
            "range": {
                "sheetId": sheet_id,
                "dimension": dimension,
                "startIndex": start_index,
                "endIndex": start_index + count,
            }
        }
    }


def build_spreadsheet_context(
    spreadsheet_id: str,
    spreadsheet_data: Dict[str, Any],
    active_sheet_title: Optional[str] = None,
    active_values: Optional[List[List[Any]]] = None,
) -> SpreadsheetContext:
    """
    Convert a spreadsheets.get response (and the active sheet's values) into
    a SpreadsheetContext.

    The active sheet defaults to the first sheet when no title is given.
    """
    sheets = []
    for sheet in spreadsheet_data.get("sheets", []):
        props = sheet.get("properties", {})
        grid = props.get("gridProperties", {})
        sheets.append(
            SheetMetadata(
                sheet_id=props.get("sheetId", 0),
                title=props.get("title", "Unknown"),
                index=props.get("index", 0),
                row_count=grid.get("rowCount", 1000),
                column_count=grid.get("columnCount", 26),
            )
        )

    active = None
    if sheets:
        metadata = sheets[0]
        if active_sheet_title is not None:
            matching = [s for s in sheets if s.title == active_sheet_title]
            if not matching:
                raise ValueError(
                    f"Sheet '{active_sheet_title}' not found. Available sheets: {[s.title for s in sheets]}"
                )
            metadata = matching[0]
        rows = tuple(tuple("" if v is None else str(v) for v in row) for row in (active_values or []))
        active = SheetData(
            sheet_id=metadata.sheet_id,
            title=metadata.title,
            rows=rows,
            row_count=metadata.row_count,
            column_count=metadata.column_count,
        )

    return SpreadsheetContext(
        spreadsheet_id=spreadsheet_id,
        title=spreadsheet_data.get("properties", {}).get("title", "Unknown"),
        sheets=tuple(sheets),
        active_sheet=active,
    )
