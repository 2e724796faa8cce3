"""
Exception hierarchy for the intranet retrieval core.

Almost every failure in this package is recoverable: indexing skips bad
items, ranking treats degenerate vectors as zero similarity and the
orchestrator degrades to empty results. The exceptions below mark the points
where a failure is detected, so callers that *do* want to react can catch a
specific type, while the degrade-and-log paths catch the family they expect.
"""

from typing import Any, Dict, Optional


class RAGException(Exception):
    """
    Base exception for all retrieval-core errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional error context
        cause: Optional underlying exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"cause={self.cause!r})"
        )


# =============================================================================
# Indexing Errors
# =============================================================================

class DocumentIndexingError(RAGException):
    """Error while turning source records or pages into stored documents."""
    pass


class MalformedDocumentError(DocumentIndexingError):
    """
    An item handed to the store cannot be indexed.

    Raised per item (e.g. missing or blank content, metadata that does not
    fit the declared document type). Batch indexing catches it, logs a
    warning and moves on to the next item.
    """
    pass


class IndexingSourceError(DocumentIndexingError):
    """
    A content source (such as the website page source) failed or returned
    nothing usable.
    """
    pass


# =============================================================================
# Embedding Errors
# =============================================================================

class EmbeddingError(RAGException):
    """Error producing an embedding vector."""
    pass


class EmbeddingGenerationError(EmbeddingError):
    """The embedder could not compute a vector for the given input."""
    pass


# =============================================================================
# Vector Store Errors
# =============================================================================

class VectorStoreError(RAGException):
    """Error in the in-memory document store."""
    pass


class DimensionMismatchError(VectorStoreError):
    """A vector does not have the dimensionality of the store."""
    pass


class PersistenceError(VectorStoreError):
    """
    Reading or writing the persisted document snapshot failed.

    The store treats persistence as best effort: it logs this error and keeps
    serving from memory.
    """
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(RAGException):
    """Error in component configuration."""
    pass


class InvalidConfigurationError(ConfigurationError):
    """A configuration value is out of its valid range."""
    pass


__all__ = [
    "RAGException",
    "DocumentIndexingError",
    "MalformedDocumentError",
    "IndexingSourceError",
    "EmbeddingError",
    "EmbeddingGenerationError",
    "VectorStoreError",
    "DimensionMismatchError",
    "PersistenceError",
    "ConfigurationError",
    "InvalidConfigurationError",
]
