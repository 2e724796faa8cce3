"""
In-memory document store for the intranet retrieval core.

This module provides ``DocumentStore``, a plain object holding embedded
documents partitioned by type (web, employee, announcement):
- batch indexing with per-item failure isolation
- optional chunking of long web content
- cosine similarity search with optional type filtering
- statistics, removal and clearing
- optional write-through persistence to a snapshot collaborator

Instances share no state, so several stores (e.g. one per session) can
coexist. There is no locking: a search running while a batch is being
added sees whatever has been appended so far.

Persistence follows the calling convention: the synchronous mutators
(``add_document``, ``remove_document``, ``remove_by_type``, ``clear``) write
the snapshot inline, while ``add_documents`` and ``aremove_by_type`` write it
from a worker thread. Async callers use the async ones.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from langchain_core.embeddings import Embeddings
from pydantic import ValidationError

from intranet_rag.core.documents import (
    DocumentType,
    IndexItem,
    StoredDocument,
    build_metadata,
    utc_now,
)
from intranet_rag.core.persistence import DocumentStorage
from intranet_rag.core.similarity import ScoredDocument, rank
from intranet_rag.utils.exceptions import (
    DimensionMismatchError,
    MalformedDocumentError,
    PersistenceError,
)
from intranet_rag.utils.logging import LoggerMixin, get_logger

if TYPE_CHECKING:
    from intranet_rag.config.settings import Settings
    from intranet_rag.ingestion.chunker import TextChunker

logger = get_logger(__name__)

TypeFilter = DocumentType | str | Iterable[DocumentType | str] | None


@dataclass
class StoreStats:
    """
    Snapshot of store contents.

    Attributes:
        total_documents: Number of stored documents (chunks).
        documents_by_type: Count per document type value.
        last_updated: Time of the last mutation, None if never modified.
    """

    total_documents: int = 0
    documents_by_type: dict[str, int] = field(default_factory=dict)
    last_updated: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalDocuments": self.total_documents,
            "documentsByType": dict(self.documents_by_type),
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }


def _normalize_filter(type_filter: TypeFilter) -> frozenset[DocumentType] | None:
    if type_filter is None:
        return None
    if isinstance(type_filter, (DocumentType, str)):
        return frozenset({DocumentType(type_filter)})
    return frozenset(DocumentType(value) for value in type_filter)


class DocumentStore(LoggerMixin):
    """
    In-memory vector store of typed documents.

    Args:
        embedder: Embeddings implementation used for indexing.
        dimensions: Vector length every document must have.
        chunker: Splits long web content; a default ``TextChunker`` is built
            when omitted.
        storage: Optional snapshot collaborator for write-through persistence.
        max_documents: Hard cap on stored documents.

    Example:
        >>> store = DocumentStore(HashEmbedder(dimensions=64), dimensions=64)
        >>> await store.initialize()
        >>> await store.add_documents("employee", [{"content": "Funcionário: Ana"}])
        >>> store.get_stats().documents_by_type
        {'employee': 1}
    """

    def __init__(
        self,
        embedder: Embeddings,
        dimensions: int,
        chunker: TextChunker | None = None,
        storage: DocumentStorage | None = None,
        max_documents: int = 1000,
    ) -> None:
        if chunker is None:
            from intranet_rag.ingestion.chunker import TextChunker

            chunker = TextChunker()

        self.embedder = embedder
        self.dimensions = dimensions
        self.chunker = chunker
        self.storage = storage
        self.max_documents = max_documents

        self._documents: list[StoredDocument] = []
        self._initialized = False
        self._last_updated: datetime | None = None

        self.logger.info(
            "document_store_created",
            dimensions=dimensions,
            max_documents=max_documents,
            persistent=storage is not None,
        )

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """
        Prepare the store; load the persisted snapshot if storage is set.

        Idempotent. A failing or mismatched snapshot is logged and skipped;
        the store then starts empty.
        """
        if self._initialized:
            self.logger.debug("store_already_initialized")
            return

        if self.storage is not None:
            try:
                loaded = await asyncio.to_thread(self.storage.load)
            except PersistenceError as e:
                self.logger.warning("snapshot_load_failed", error=str(e))
                loaded = []

            for document in loaded:
                if len(document.embedding) != self.dimensions:
                    self.logger.warning(
                        "snapshot_document_skipped",
                        document_id=document.id,
                        dimensions=len(document.embedding),
                    )
                    continue
                self._documents.append(document)

            if self._documents:
                self._last_updated = max(d.metadata.timestamp for d in self._documents)

        self._initialized = True
        self.logger.info("store_initialized", documents=len(self._documents))

    async def add_documents(
        self,
        document_type: DocumentType | str,
        items: Sequence[IndexItem | Mapping[str, Any]],
    ) -> list[str]:
        """
        Embed and append a batch of items of one type.

        Web items are chunked; employee and announcement items are stored
        whole. Items without usable content or with metadata that does not
        fit the type are skipped with a warning. Indexing stops once
        ``max_documents`` is reached.

        Args:
            document_type: Partition of every item in the batch.
            items: ``IndexItem`` objects or ``{"content", "metadata"}`` mappings.

        Returns:
            IDs of the documents added, in order.
        """
        if not self._initialized:
            await self.initialize()

        document_type = DocumentType(document_type)
        self.logger.info("adding_documents", type=document_type.value, count=len(items))

        added: list[str] = []
        skipped = 0
        for position, item in enumerate(items):
            if len(self._documents) >= self.max_documents:
                self.logger.warning(
                    "document_limit_reached",
                    max_documents=self.max_documents,
                    remaining_items=len(items) - position,
                )
                break

            try:
                documents = self._prepare(document_type, item)
            except MalformedDocumentError as e:
                skipped += 1
                self.logger.warning(
                    "document_skipped",
                    type=document_type.value,
                    position=position,
                    error=str(e),
                )
                continue

            for document in documents:
                if len(self._documents) >= self.max_documents:
                    break
                self._documents.append(document)
                added.append(document.id)

        if added:
            self._touch()
            await self._persist_async()

        self.logger.info(
            "documents_added",
            type=document_type.value,
            added=len(added),
            skipped=skipped,
            total=len(self._documents),
        )
        return added

    def add_document(self, document: StoredDocument) -> str:
        """
        Append an already embedded document.

        Raises:
            DimensionMismatchError: If the embedding length is wrong.
        """
        self._check_dimensions(document.embedding, what="document")
        self._documents.append(document)
        self._touch()
        self._persist()
        return document.id

    def search(
        self,
        query_embedding: Sequence[float],
        limit: int = 5,
        min_similarity: float = 0.1,
        type_filter: TypeFilter = None,
    ) -> list[ScoredDocument]:
        """
        Rank stored documents against ``query_embedding``.

        Args:
            query_embedding: Query vector of the store's dimensionality.
            limit: Maximum number of results.
            min_similarity: Matches below this similarity are dropped.
            type_filter: A type or collection of types to restrict the search.

        Returns:
            Scored documents, descending by similarity, ties in insertion
            order. Empty when nothing matches or the store is empty.

        Raises:
            DimensionMismatchError: If the query vector has the wrong length.
        """
        if not self._documents:
            return []

        self._check_dimensions(query_embedding, what="query")
        allowed = _normalize_filter(type_filter)
        candidates = (
            self._documents
            if allowed is None
            else [d for d in self._documents if d.type in allowed]
        )

        results = rank(query_embedding, candidates, limit=limit, min_similarity=min_similarity)
        self.logger.debug(
            "search_completed",
            candidates=len(candidates),
            results=len(results),
            type_filter=sorted(t.value for t in allowed) if allowed else None,
        )
        return results

    def get_document(self, document_id: str) -> StoredDocument | None:
        for document in self._documents:
            if document.id == document_id:
                return document
        return None

    def remove_document(self, document_id: str) -> bool:
        """Remove one document by id. Returns False when it is not present."""
        for index, document in enumerate(self._documents):
            if document.id == document_id:
                del self._documents[index]
                self._touch()
                self._persist()
                return True
        return False

    def remove_by_type(self, document_type: DocumentType | str) -> int:
        """Remove every document of a type; returns how many were removed."""
        removed = self._drop_type(DocumentType(document_type))
        if removed:
            self._persist()
        return removed

    async def aremove_by_type(self, document_type: DocumentType | str) -> int:
        """Async ``remove_by_type``; the snapshot is written from a worker thread."""
        removed = self._drop_type(DocumentType(document_type))
        if removed:
            await self._persist_async()
        return removed

    def clear(self) -> None:
        """Drop every document, the embedder cache and the persisted snapshot."""
        self._documents = []
        clear_cache = getattr(self.embedder, "clear_cache", None)
        if callable(clear_cache):
            clear_cache()
        self._touch()

        if self.storage is not None:
            try:
                self.storage.clear()
            except PersistenceError as e:
                self.logger.warning("snapshot_clear_failed", error=str(e))

        self.logger.info("store_cleared")

    def has_data(self) -> bool:
        return bool(self._documents)

    def documents(self, type_filter: TypeFilter = None) -> list[StoredDocument]:
        """Return a copy of the stored documents, optionally filtered by type."""
        allowed = _normalize_filter(type_filter)
        if allowed is None:
            return list(self._documents)
        return [d for d in self._documents if d.type in allowed]

    def last_indexed(self, document_type: DocumentType | str) -> datetime | None:
        """Timestamp of the newest document of ``document_type``."""
        document_type = DocumentType(document_type)
        timestamps = [
            d.metadata.timestamp for d in self._documents if d.type == document_type
        ]
        return max(timestamps) if timestamps else None

    def get_stats(self) -> StoreStats:
        counts = Counter(d.type.value for d in self._documents)
        return StoreStats(
            total_documents=len(self._documents),
            documents_by_type=dict(counts),
            last_updated=self._last_updated,
        )

    def __len__(self) -> int:
        return len(self._documents)

    def _prepare(
        self,
        document_type: DocumentType,
        item: IndexItem | Mapping[str, Any],
    ) -> list[StoredDocument]:
        """Turn one input item into one or more embedded documents."""
        if isinstance(item, IndexItem):
            content, raw_metadata = item.content, item.metadata
        elif isinstance(item, Mapping):
            content, raw_metadata = item.get("content"), item.get("metadata") or {}
        else:
            raise MalformedDocumentError(
                "Index item must be an IndexItem or a mapping",
                details={"received_type": type(item).__name__},
            )

        if not isinstance(content, str) or not content.strip():
            raise MalformedDocumentError("Index item has no content")
        if not isinstance(raw_metadata, Mapping):
            raise MalformedDocumentError("Index item metadata must be a mapping")

        if document_type is DocumentType.WEB:
            pieces = self.chunker.split_text(content)
        else:
            pieces = [content.strip()]

        timestamp = utc_now()
        documents = []
        for chunk_index, piece in enumerate(pieces):
            metadata_fields = dict(raw_metadata)
            metadata_fields["timestamp"] = timestamp
            if document_type is DocumentType.WEB:
                metadata_fields["chunk_index"] = chunk_index
                metadata_fields["total_chunks"] = len(pieces)

            try:
                metadata = build_metadata(document_type, metadata_fields)
            except ValidationError as e:
                raise MalformedDocumentError(
                    "Index item metadata does not fit its document type",
                    details={"type": document_type.value},
                    cause=e,
                ) from e

            embedding = self.embedder.embed_query(piece)
            self._check_dimensions(embedding, what="document")
            documents.append(
                StoredDocument(content=piece, embedding=embedding, metadata=metadata)
            )
        return documents

    def _check_dimensions(self, vector: Sequence[float], what: str) -> None:
        if len(vector) != self.dimensions:
            raise DimensionMismatchError(
                f"{what} embedding has {len(vector)} dimensions, expected {self.dimensions}",
                details={"expected": self.dimensions, "received": len(vector)},
            )

    def _drop_type(self, document_type: DocumentType) -> int:
        before = len(self._documents)
        self._documents = [d for d in self._documents if d.type != document_type]
        removed = before - len(self._documents)
        if removed:
            self._touch()
            self.logger.info("documents_removed", type=document_type.value, count=removed)
        return removed

    def _touch(self) -> None:
        self._last_updated = utc_now()

    def _persist(self) -> None:
        if self.storage is None:
            return
        try:
            self.storage.save(list(self._documents))
        except PersistenceError as e:
            self.logger.warning("snapshot_save_failed", error=str(e))

    async def _persist_async(self) -> None:
        if self.storage is None:
            return
        await asyncio.to_thread(self._persist)


def get_document_store(
    settings: Settings | None = None,
    embedder: Embeddings | None = None,
    storage: DocumentStorage | None = None,
) -> DocumentStore:
    """
    Build a ``DocumentStore`` from settings.

    Args:
        settings: Application settings; loaded from the environment if None.
        embedder: Embedder to use; a ``HashEmbedder`` is built if None.
        storage: Snapshot storage; a ``JsonFileStorage`` is built when None
            and persistence is enabled.
    """
    if settings is None:
        from intranet_rag.config.settings import get_settings

        settings = get_settings()

    if embedder is None:
        from intranet_rag.core.embeddings import get_embedder

        embedder = get_embedder(settings.embedding)

    from intranet_rag.core.persistence import JsonFileStorage
    from intranet_rag.ingestion.chunker import TextChunker

    if storage is None and settings.store.persistence_enabled:
        storage = JsonFileStorage(settings.store.persistence_path)
    logger.info("building_document_store", persistent=storage is not None)

    return DocumentStore(
        embedder=embedder,
        dimensions=settings.embedding.dimensions,
        chunker=TextChunker(
            chunk_size=settings.chunking.chunk_size,
            chunk_overlap=settings.chunking.chunk_overlap,
        ),
        storage=storage,
        max_documents=settings.store.max_documents,
    )
