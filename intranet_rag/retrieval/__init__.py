"""
Retrieval module for the intranet retrieval core.

This module provides document retrieval functionality including:
- Keyword query classification with per-type search policies
- Internal-first search with web fallback
- Prompt formatting of the retrieved context
"""

from intranet_rag.retrieval.classifier import (
    QueryClassifier,
    QueryType,
    QueryTypeConfig,
    classify_query,
    get_config_for_query,
)
from intranet_rag.retrieval.formatter import format_context_for_llm
from intranet_rag.retrieval.retriever import (
    RetrievalContext,
    RetrievalOrchestrator,
    RetrievedContent,
    SearchMode,
    truncate_content,
)

__all__ = [
    "QueryClassifier",
    "QueryType",
    "QueryTypeConfig",
    "classify_query",
    "get_config_for_query",
    "format_context_for_llm",
    "RetrievalContext",
    "RetrievalOrchestrator",
    "RetrievedContent",
    "SearchMode",
    "truncate_content",
]
