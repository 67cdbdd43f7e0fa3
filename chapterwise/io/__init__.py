"""Input/output components for Chapterwise.

This package contains the JSON document loader and the subdivision result
writer used by the CLI.
"""

from .document_loader import DocumentLoader, LoadedDocument
from .storage import ResultStore

__all__ = ["DocumentLoader", "LoadedDocument", "ResultStore"]
