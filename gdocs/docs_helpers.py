"""
Google Docs Helper Functions

This module turns Google Docs API document resources into paragraph
snapshots and builds the primitive batchUpdate requests the patch planner
emits.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional, Tuple

from proposals.models import DOCUMENT_START_INDEX, DocumentSnapshot, Paragraph, ParagraphDocument

logger = logging.getLogger(__name__)


@dataclass
class OperationResult:
    """
    Result of applying an edit to a document.

    Carries the net position shift so a caller can reason about indices
    without re-reading the document.
    """
    success: bool
    operation: str
    position_shift: int  # Positive = positions shifted right, negative = shifted left
    affected_range: Dict[str, int]  # {"start": x, "end": y}
    message: str
    link: str

    inserted_length: Optional[int] = None
    deleted_length: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result = asdict(self)
        return {k: v for k, v in result.items() if v is not None}


def calculate_position_shift(requests: List[Dict[str, Any]]) -> Tuple[int, Dict[str, int], int, int]:
    """
    Sum the effect of a list of primitive requests.

    Returns:
        Tuple of (net shift, affected range, inserted length, deleted length)
    """
    inserted = 0
    deleted = 0
    starts = []
    ends = []
    for request in requests:
        if 'insertText' in request:
            index = request['insertText']['location']['index']
            length = len(request['insertText']['text'])
            inserted += length
            starts.append(index)
            ends.append(index + length)
        elif 'deleteContentRange' in request:
            rng = request['deleteContentRange']['range']
            deleted += rng['endIndex'] - rng['startIndex']
            starts.append(rng['startIndex'])
            ends.append(rng['startIndex'])

    affected = {"start": min(starts), "end": max(ends)} if starts else {"start": 0, "end": 0}
    return inserted - deleted, affected, inserted, deleted


def build_operation_result(
    operation: str,
    requests: List[Dict[str, Any]],
    document_id: str,
) -> OperationResult:
    """Build the result returned to callers after a successful batchUpdate."""
    shift, affected, inserted, deleted = calculate_position_shift(requests)
    return OperationResult(
        success=True,
        operation=operation,
        position_shift=shift,
        affected_range=affected,
        message=f"Applied {operation} edit ({len(requests)} request(s))",
        link=f"https://docs.google.com/document/d/{document_id}/edit",
        inserted_length=inserted or None,
        deleted_length=deleted or None,
    )


def _paragraph_text(paragraph: Dict[str, Any]) -> str:
    parts = []
    for element in paragraph.get('elements', []):
        if 'textRun' in element:
            parts.append(element['textRun'].get('content', ''))
    return ''.join(parts)


def extract_paragraphs(doc_data: Dict[str, Any]) -> List[Paragraph]:
    """
    Extract paragraphs with their start indices from a Docs API document.

    Paragraphs inside table cells are included in document order.

    Args:
        doc_data: Raw document data from Google Docs API

    Returns:
        List of Paragraph records
    """
    paragraphs: List[Paragraph] = []

    def extract_from_elements(elements: List[Dict[str, Any]]) -> None:
        for element in elements:
            if 'paragraph' in element:
                text = _paragraph_text(element['paragraph'])
                if text:
                    start = element.get('startIndex', DOCUMENT_START_INDEX)
                    paragraphs.append(Paragraph(text=text, start_index=start))
            elif 'table' in element:
                for row in element['table'].get('tableRows', []):
                    for cell in row.get('tableCells', []):
                        extract_from_elements(cell.get('content', []))

    extract_from_elements(doc_data.get('body', {}).get('content', []))
    return paragraphs


def get_document_end_index(doc_data: Dict[str, Any]) -> int:
    """Maximum endIndex across the body's content blocks (at least 1)."""
    content = doc_data.get('body', {}).get('content', [])
    end_indices = [element.get('endIndex', 0) for element in content]
    return max(end_indices + [DOCUMENT_START_INDEX])


def build_paragraph_document(doc_data: Dict[str, Any]) -> ParagraphDocument:
    return ParagraphDocument(
        paragraphs=tuple(extract_paragraphs(doc_data)),
        end_index=get_document_end_index(doc_data),
    )


def build_document_snapshot(doc_data: Dict[str, Any]) -> DocumentSnapshot:
    """Convert a documents.get response into a DocumentSnapshot."""
    return DocumentSnapshot(
        document_id=doc_data.get('documentId', ''),
        title=doc_data.get('title', 'Untitled Document'),
        content=build_paragraph_document(doc_data),
    )


def create_insert_text_request(index: int, text: str) -> Dict[str, Any]:
    """
    Create an insertText request for Google Docs API.

    Args:
        index: Position to insert text
        text: Text to insert

    Returns:
        Dictionary representing the insertText request
    """
    return {
        'insertText': {
            'location': {'index': index},
            'text': text
        }
    }


def create_delete_range_request(start_index: int, end_index: int) -> Dict[str, Any]:
    """
    Create a deleteContentRange request for Google Docs API.

    Args:
        start_index: Start position of content to delete
        end_index: End position of content to delete

    Returns:
        Dictionary representing the deleteContentRange request
    """
    return {
        'deleteContentRange': {
            'range': {
                'startIndex': start_index,
                'endIndex': end_index
            }
        }
    }


def validate_operation(operation: Dict[str, Any]) -> Tuple[bool, str]:
    """
    Validate a primitive Docs request before it is sent.

    Args:
        operation: insertText or deleteContentRange request

    Returns:
        Tuple of (is_valid, error_message)
    """
    if 'insertText' in operation:
        body = operation['insertText']
        index = body.get('location', {}).get('index')
        if not isinstance(index, int) or index < DOCUMENT_START_INDEX:
            return False, f"insertText index must be >= {DOCUMENT_START_INDEX}, got {index}"
        if not body.get('text'):
            return False, "insertText text must not be empty"
        return True, ""

    if 'deleteContentRange' in operation:
        rng = operation['deleteContentRange'].get('range', {})
        start, end = rng.get('startIndex'), rng.get('endIndex')
        if not isinstance(start, int) or not isinstance(end, int):
            return False, "deleteContentRange needs integer startIndex and endIndex"
        if start < DOCUMENT_START_INDEX:
            return False, f"deleteContentRange startIndex must be >= {DOCUMENT_START_INDEX}, got {start}"
        if end <= start:
            return False, f"deleteContentRange range [{start}, {end}) is empty"
        return True, ""

    return False, f"Unsupported request: {', '.join(operation) or 'None'}"
