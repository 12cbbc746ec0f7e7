"""
Read models for documents and spreadsheets.

These are immutable snapshots of what the document-read collaborators
returned. A fresh snapshot is fetched after every accepted edit.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

# Index 0 is the implicit document root in the Docs range model
DOCUMENT_START_INDEX = 1


@dataclass(frozen=True)
class Paragraph:
    """A paragraph's text and the document index its first character sits at."""
    text: str
    start_index: int

    @property
    def end_index(self) -> int:
        return self.start_index + len(self.text)


@dataclass(frozen=True)
class ParagraphDocument:
    """
    Ordered paragraph records of a Google Doc.

    Attributes:
        paragraphs: Paragraphs in document order
        end_index: Maximum endIndex over the body's content blocks. An empty
            document still holds its trailing newline, so this is at least 1.
    """
    paragraphs: Tuple[Paragraph, ...] = ()
    end_index: int = DOCUMENT_START_INDEX

    @classmethod
    def from_texts(cls, texts: Sequence[str], end_index: Optional[int] = None) -> "ParagraphDocument":
        """
        Build a snapshot from bare paragraph texts.

        Start indices are assigned cumulatively from index 1, which matches
        the Docs API when each text carries its own trailing newline.
        """
        paragraphs = []
        cursor = DOCUMENT_START_INDEX
        for text in texts:
            paragraphs.append(Paragraph(text=text, start_index=cursor))
            cursor += len(text)
        return cls(
            paragraphs=tuple(paragraphs),
            end_index=end_index if end_index is not None else max(cursor, DOCUMENT_START_INDEX),
        )

    @property
    def texts(self) -> List[str]:
        return [p.text for p in self.paragraphs]

    @property
    def plain_text(self) -> str:
        return "".join(self.texts)

    def __len__(self) -> int:
        return len(self.paragraphs)


@dataclass(frozen=True)
class DocumentSnapshot:
    """Result of reading a Google Doc: {title, content}."""
    document_id: str
    title: str
    content: ParagraphDocument

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "title": self.title,
            "content": [{"type": "paragraph", "text": p.text} for p in self.content.paragraphs],
        }


@dataclass(frozen=True)
class SheetMetadata:
    """Sheet properties as reported by spreadsheets.get."""
    sheet_id: int
    title: str
    index: int = 0
    row_count: int = 1000
    column_count: int = 26


@dataclass(frozen=True)
class SheetData:
    """Cell values of the sheet currently on screen."""
    sheet_id: int
    title: str
    rows: Tuple[Tuple[str, ...], ...] = ()
    row_count: int = 1000
    column_count: int = 26


@dataclass(frozen=True)
class SpreadsheetContext:
    """
    Result of reading a spreadsheet: {title, sheets, activeSheet}.

    The planner uses it to resolve sheet names to numeric sheet ids.
    """
    spreadsheet_id: str
    title: str
    sheets: Tuple[SheetMetadata, ...] = field(default_factory=tuple)
    active_sheet: Optional[SheetData] = None

    @property
    def sheet_titles(self) -> List[str]:
        return [sheet.title for sheet in self.sheets]

    def find_sheet(self, title: Optional[str]) -> Optional[SheetMetadata]:
        """Look up a sheet by title; None means the active sheet (or the first one)."""
        if title is None:
            if self.active_sheet is not None:
                title = self.active_sheet.title
            elif self.sheets:
                return self.sheets[0]
            else:
                return None
        for sheet in self.sheets:
            if sheet.title == title:
                return sheet
        return None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "spreadsheetId": self.spreadsheet_id,
            "title": self.title,
            "sheets": [
                {
                    "sheetId": s.sheet_id,
                    "title": s.title,
                    "index": s.index,
                    "gridProperties": {"rowCount": s.row_count, "columnCount": s.column_count},
                }
                for s in self.sheets
            ],
        }
        if self.active_sheet is not None:
            result["activeSheet"] = {
                "sheetId": self.active_sheet.sheet_id,
                "title": self.active_sheet.title,
                "rows": [list(row) for row in self.active_sheet.rows],
                "gridProperties": {
                    "rowCount": self.active_sheet.row_count,
                    "columnCount": self.active_sheet.column_count,
                },
            }
        return result
