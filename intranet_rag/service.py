"""
Service facade for the chat layer.

``RAGService`` wires the embedder, chunker, store, classifier, orchestrator
and indexing pipeline together from ``Settings`` and exposes the handful of
operations the chat assistant needs. Build one per session (or share one)
with ``create_service``; there is no module-level instance.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import timedelta
from typing import Any

from intranet_rag.config.settings import Settings, get_settings
from intranet_rag.core.documents import (
    AnnouncementRecord,
    DocumentType,
    EmployeeRecord,
    IndexItem,
)
from intranet_rag.core.embeddings import get_embedder
from intranet_rag.core.persistence import DocumentStorage
from intranet_rag.core.vectorstore import StoreStats, TypeFilter, get_document_store
from intranet_rag.ingestion.pipeline import IndexingPipeline, IndexingResult, PageSource
from intranet_rag.retrieval.classifier import QueryClassifier, QueryType, QueryTypeConfig
from intranet_rag.retrieval.formatter import format_context_for_llm
from intranet_rag.retrieval.retriever import (
    RetrievalContext,
    RetrievalOrchestrator,
    RetrievedContent,
    SearchMode,
)
from intranet_rag.utils.logging import LoggerMixin, setup_logging


class RAGService(LoggerMixin):
    """
    Retrieval core facade.

    Args:
        settings: Application settings.
        storage: Snapshot storage; derived from ``settings.store`` when None.
        page_source: Website page source used by ``index_website``.

    Example:
        >>> service = create_service()
        >>> await service.initialize()
        >>> await service.index_employees([{"id": 1, "name": "Ana", "extension": "2010"}])
        >>> context = await service.search_context("Qual o ramal da Ana?")
        >>> print(service.format_context(context))
    """

    def __init__(
        self,
        settings: Settings,
        storage: DocumentStorage | None = None,
        page_source: PageSource | None = None,
    ) -> None:
        self.settings = settings

        self.embedder = get_embedder(settings.embedding)
        self.store = get_document_store(settings, embedder=self.embedder, storage=storage)
        self.chunker = self.store.chunker
        self.classifier = QueryClassifier.from_settings(settings.search)
        self.orchestrator = RetrievalOrchestrator(
            store=self.store,
            embedder=self.embedder,
            classifier=self.classifier,
            search_limit=settings.search.limit,
            context_max_length=settings.search.context_max_length,
            mode=settings.search.mode,
        )
        self.pipeline = IndexingPipeline(
            store=self.store,
            refresh_interval=timedelta(hours=settings.indexing.refresh_interval_hours),
        )
        self.page_source = page_source

        self.logger.info(
            "rag_service_created",
            app=settings.app_name,
            environment=settings.environment,
            mode=settings.search.mode,
            persistent=self.store.storage is not None,
        )

    def embed(self, text: str) -> list[float]:
        return self.embedder.embed(text)

    async def initialize(self) -> None:
        await self.store.initialize()

    def is_ready(self) -> bool:
        """True once initialized and holding at least one document."""
        return self.store.is_initialized and self.store.has_data()

    async def add_documents(
        self,
        document_type: DocumentType | str,
        items: Sequence[IndexItem | Mapping[str, Any]],
    ) -> list[str]:
        return await self.store.add_documents(document_type, items)

    async def index_employees(
        self, records: Iterable[EmployeeRecord | Mapping[str, Any]]
    ) -> IndexingResult:
        return await self.pipeline.index_employees(records)

    async def index_announcements(
        self, records: Iterable[AnnouncementRecord | Mapping[str, Any]]
    ) -> IndexingResult:
        return await self.pipeline.index_announcements(records)

    def set_page_source(self, source: PageSource) -> None:
        """
        Use ``source`` for website indexing.

        Switching to a different website clears the store, since its indexed
        pages belong to the previous site.
        """
        previous = self.page_source
        self.page_source = source
        if previous is not None and previous.base_url != source.base_url:
            self.logger.info(
                "page_source_changed",
                previous_url=previous.base_url,
                url=source.base_url,
            )
            self.store.clear()

    async def index_website(self, force_refresh: bool = False) -> IndexingResult:
        """Index the configured website; fails softly when none is set."""
        if self.page_source is None:
            self.logger.warning("website_not_configured")
            return IndexingResult(
                success=False,
                source=self.settings.indexing.website_url,
                error="No website page source configured",
            )
        return await self.pipeline.index_website(self.page_source, force_refresh=force_refresh)

    def search(
        self,
        query: str,
        limit: int | None = None,
        min_similarity: float | None = None,
        type_filter: TypeFilter = None,
    ) -> list[RetrievedContent]:
        """
        Direct similarity search, bypassing the internal-first policy.

        Returns full, untruncated content with unboosted similarities. A blank
        or non-string query returns no results.
        """
        if not isinstance(query, str) or not query.strip():
            self.logger.debug("empty_query_skipped")
            return []

        results = self.store.search(
            self.embedder.embed_query(query),
            limit=self.settings.search.limit if limit is None else limit,
            min_similarity=(
                self.settings.search.min_similarity if min_similarity is None else min_similarity
            ),
            type_filter=type_filter,
        )
        return [RetrievedContent.from_scored(item) for item in results]

    async def search_context(
        self,
        query: str,
        mode: SearchMode | str | None = None,
    ) -> RetrievalContext:
        if not self.store.is_initialized:
            await self.store.initialize()
        return await self.orchestrator.search_context(query, mode=mode)

    def format_context(self, context: RetrievalContext) -> str:
        return format_context_for_llm(context)

    def classify_query(self, query: str) -> QueryType:
        return self.classifier.classify(query)

    def get_config_for_query(self, query: str) -> QueryTypeConfig:
        return self.classifier.config_for(query)

    def get_stats(self) -> StoreStats:
        return self.store.get_stats()

    def clear(self) -> None:
        self.store.clear()


def create_service(
    settings: Settings | None = None,
    storage: DocumentStorage | None = None,
    page_source: PageSource | None = None,
) -> RAGService:
    """
    Configure logging and build a ``RAGService``.

    Args:
        settings: Application settings; loaded from the environment when None.
        storage: Snapshot storage overriding ``settings.store``.
        page_source: Website page source used by ``index_website``.
    """
    settings = settings or get_settings()
    setup_logging(
        log_level="DEBUG" if settings.logging.debug else settings.logging.log_level,
        log_format=settings.logging.log_format,
    )
    return RAGService(settings, storage=storage, page_source=page_source)
