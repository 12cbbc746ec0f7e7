"""
Google Docs managers.
"""
from gdocs.managers.edit_manager import DocumentEditManager

__all__ = ["DocumentEditManager"]
