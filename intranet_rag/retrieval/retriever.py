"""
Retrieval orchestration: internal data first, website as fallback.

For each query the orchestrator:

1. classifies the query and resolves its search policy;
2. searches employee and announcement documents, boosting their similarity;
3. decides whether the internal results are sufficient;
4. if not (and the mode allows it), searches web documents as well;
5. merges, truncates and packages the top results for the chat layer.

A single implementation covers every search flavour through ``SearchMode``.
Failures never escape ``search_context``: the chat flow gets an empty
context and the error is logged.
"""

from __future__ import annotations

import time
from enum import Enum

from langchain_core.embeddings import Embeddings
from pydantic import BaseModel, Field

from intranet_rag.core.documents import INTERNAL_TYPES, DocumentType, describe_source
from intranet_rag.core.similarity import ScoredDocument
from intranet_rag.core.vectorstore import DocumentStore
from intranet_rag.retrieval.classifier import (
    QueryClassifier,
    QueryType,
    QueryTypeConfig,
)
from intranet_rag.utils.logging import LoggerMixin, correlation_scope

ELLIPSIS = "..."


class SearchMode(str, Enum):
    """Which partitions the orchestrator consults."""

    HYBRID = "hybrid"
    INTERNAL_ONLY = "internal_only"
    WEB_ONLY = "web_only"


class RetrievedContent(BaseModel):
    """One result handed to the chat layer."""

    content: str
    source: str
    title: str
    similarity: float
    document_type: DocumentType

    @classmethod
    def from_scored(cls, item: ScoredDocument, max_length: int | None = None) -> RetrievedContent:
        """Describe a ranked document; ``max_length`` truncates its content."""
        document = item.document
        source, title = describe_source(document.metadata)
        content = document.content
        if max_length is not None:
            content = truncate_content(content, max_length)
        return cls(
            content=content,
            source=source,
            title=title,
            similarity=item.similarity,
            document_type=document.type,
        )

    @property
    def is_internal(self) -> bool:
        return self.document_type in INTERNAL_TYPES


class RetrievalContext(BaseModel):
    """
    Outcome of one retrieval.

    Attributes:
        query: The query as received.
        relevant_content: Results, internal ones first.
        total_sources: Number of distinct sources among the results.
        search_time_ms: Wall-clock time spent, in milliseconds.
        needs_web_search: Whether internal data was judged insufficient.
        internal_results_count: Internal matches that passed the floor.
        query_type: Classification used for the policy.
        mode: Search mode used.
    """

    query: str
    relevant_content: list[RetrievedContent] = Field(default_factory=list)
    total_sources: int = 0
    search_time_ms: int = 0
    needs_web_search: bool = False
    internal_results_count: int = 0
    query_type: QueryType = QueryType.GENERAL
    mode: SearchMode = SearchMode.HYBRID

    @property
    def is_empty(self) -> bool:
        return not self.relevant_content

    @property
    def web_results_count(self) -> int:
        return sum(1 for item in self.relevant_content if not item.is_internal)


def truncate_content(text: str, max_length: int) -> str:
    """
    Shorten ``text`` to about ``max_length`` characters without splitting a word.

    The cut happens at the last whitespace at or before ``max_length``; when
    the first word alone is longer, that whole word is kept. ``"..."`` is
    appended whenever something was dropped.

    Example:
        >>> truncate_content("hello beautiful world", 10)
        'hello...'
    """
    if len(text) <= max_length:
        return text

    cut = -1
    for index in range(max_length, -1, -1):
        if text[index].isspace():
            cut = index
            break

    head = text[:cut].rstrip() if cut > 0 else ""
    if not head:
        stripped = text.lstrip()
        words = stripped.split(maxsplit=1)
        head = words[0] if words else ""
        if len(words) < 2:
            return head
    return head + ELLIPSIS


class RetrievalOrchestrator(LoggerMixin):
    """
    Internal-first retrieval over a ``DocumentStore``.

    Args:
        store: Store holding web, employee and announcement documents.
        embedder: Embeds the query; must match the store's dimensionality.
        classifier: Resolves query type and search policy.
        search_limit: Number of results returned.
        context_max_length: Character budget shared by all results.
        mode: Default search mode.

    Example:
        >>> orchestrator = RetrievalOrchestrator(store, embedder, QueryClassifier())
        >>> context = await orchestrator.search_context("Qual o ramal do RH?")
        >>> context.query_type
        <QueryType.EMPLOYEE: 'employee'>
    """

    def __init__(
        self,
        store: DocumentStore,
        embedder: Embeddings,
        classifier: QueryClassifier | None = None,
        search_limit: int = 5,
        context_max_length: int = 2000,
        mode: SearchMode | str = SearchMode.HYBRID,
    ) -> None:
        if search_limit < 1:
            raise ValueError(f"search_limit must be >= 1, got {search_limit}")

        self.store = store
        self.embedder = embedder
        self.classifier = classifier or QueryClassifier()
        self.search_limit = search_limit
        self.context_max_length = context_max_length
        self.mode = SearchMode(mode)

    @property
    def per_result_length(self) -> int:
        return self.context_max_length // self.search_limit

    async def search_context(
        self,
        query: str,
        mode: SearchMode | str | None = None,
        config: QueryTypeConfig | None = None,
    ) -> RetrievalContext:
        """
        Retrieve context for ``query``.

        Args:
            query: User question.
            mode: Overrides the orchestrator's default mode.
            config: Overrides the policy resolved from the query type.

        Returns:
            The retrieval context; empty for a blank query or on failure.
        """
        mode = self.mode if mode is None else SearchMode(mode)
        started = time.perf_counter()

        if not isinstance(query, str) or not query.strip():
            self.logger.debug("empty_query_skipped")
            return RetrievalContext(query=query if isinstance(query, str) else "", mode=mode)

        with correlation_scope():
            query_type = self.classifier.classify(query)
            try:
                return self._search(query, query_type, mode, config, started)
            except Exception as e:
                self.logger.error(
                    "retrieval_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                return RetrievalContext(
                    query=query,
                    search_time_ms=_elapsed_ms(started),
                    query_type=query_type,
                    mode=mode,
                )

    def search_internal(
        self, query_embedding: list[float], config: QueryTypeConfig
    ) -> list[ScoredDocument]:
        """
        Search employee and announcement documents with the policy's boost.

        Similarities are multiplied by ``internal_data_boost`` and capped at
        1.0; matches below ``min_similarity`` after boosting are dropped.
        """
        raw = self.store.search(
            query_embedding,
            limit=config.internal_search_limit,
            min_similarity=0.0,
            type_filter=INTERNAL_TYPES,
        )
        boosted = [
            ScoredDocument(
                item.document,
                min(1.0, item.similarity * config.internal_data_boost),
            )
            for item in raw
        ]
        return [item for item in boosted if item.similarity >= config.min_similarity]

    def search_web(
        self, query_embedding: list[float], config: QueryTypeConfig
    ) -> list[ScoredDocument]:
        """Search web documents without boost."""
        if config.web_search_limit <= 0:
            return []
        return self.store.search(
            query_embedding,
            limit=config.web_search_limit,
            min_similarity=config.min_similarity,
            type_filter=DocumentType.WEB,
        )

    @staticmethod
    def is_sufficient(results: list[ScoredDocument], config: QueryTypeConfig) -> bool:
        """Enough internal results, and at least one strictly above the threshold."""
        return len(results) >= config.min_internal_results and any(
            item.similarity > config.internal_data_threshold for item in results
        )

    def _search(
        self,
        query: str,
        query_type: QueryType,
        mode: SearchMode,
        config: QueryTypeConfig | None,
        started: float,
    ) -> RetrievalContext:
        policy = config or self.classifier.config_for_type(query_type)
        query_embedding = self._embed_query(query)

        internal: list[ScoredDocument] = []
        if mode is not SearchMode.WEB_ONLY:
            internal = self.search_internal(query_embedding, policy)

        needs_web_search = (
            True if mode is SearchMode.WEB_ONLY else not self.is_sufficient(internal, policy)
        )

        web: list[ScoredDocument] = []
        if needs_web_search and mode is not SearchMode.INTERNAL_ONLY:
            web = self.search_web(query_embedding, policy)

        selected = (internal + web)[: self.search_limit]
        relevant = [self._to_content(item) for item in selected]

        context = RetrievalContext(
            query=query,
            relevant_content=relevant,
            total_sources=len({item.source for item in relevant}),
            search_time_ms=_elapsed_ms(started),
            needs_web_search=needs_web_search,
            internal_results_count=len(internal),
            query_type=query_type,
            mode=mode,
        )

        self.logger.info(
            "context_retrieved",
            query_type=query_type.value,
            mode=mode.value,
            internal_results=len(internal),
            web_results=len(web),
            returned=len(relevant),
            needs_web_search=needs_web_search,
            search_time_ms=context.search_time_ms,
        )
        return context

    def _embed_query(self, query: str) -> list[float]:
        try:
            return self.embedder.embed_query(query)
        except Exception as e:
            self.logger.warning(
                "query_embedding_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            return [0.0] * self.store.dimensions

    def _to_content(self, item: ScoredDocument) -> RetrievedContent:
        rounded = ScoredDocument(item.document, round(item.similarity, 2))
        return RetrievedContent.from_scored(rounded, max_length=self.per_result_length)


def _elapsed_ms(started: float) -> int:
    return int(round((time.perf_counter() - started) * 1000))
