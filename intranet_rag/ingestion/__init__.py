"""
Ingestion module for the intranet retrieval core.

This module provides indexing functionality including:
- Text chunking with overlap for website content
- Labelled text cards for employee and announcement records
- Indexing pipeline orchestration with website freshness checks
"""

from intranet_rag.ingestion.chunker import TextChunker
from intranet_rag.ingestion.formatters import (
    format_announcement_for_indexing,
    format_employee_for_indexing,
)
from intranet_rag.ingestion.pipeline import IndexingPipeline, IndexingResult, PageSource

__all__ = [
    "TextChunker",
    "format_employee_for_indexing",
    "format_announcement_for_indexing",
    "IndexingPipeline",
    "IndexingResult",
    "PageSource",
]
