"""
Unit tests for the RAGService facade.
"""

import pytest

from intranet_rag.config.settings import (
    EmbeddingSettings,
    LoggingSettings,
    SearchSettings,
    Settings,
    StoreSettings,
)
from intranet_rag.core.persistence import JsonFileStorage
from intranet_rag.retrieval.classifier import QueryType
from intranet_rag.retrieval.retriever import SearchMode
from intranet_rag.service import RAGService, create_service
from tests.strategies import InMemoryStorage, StaticPageSource

SITE = "https://www.empresa.com.br"


@pytest.fixture
def settings():
    return Settings(embedding=EmbeddingSettings(dimensions=64))


@pytest.fixture
def service(settings):
    return create_service(settings)


class TestServiceConstruction:
    """Test suite for wiring."""

    def test_components_share_embedder_and_store(self, service):
        assert service.orchestrator.store is service.store
        assert service.orchestrator.embedder is service.embedder
        assert service.pipeline.store is service.store
        assert service.store.dimensions == 64

    def test_persistence_from_settings(self, tmp_path):
        settings = Settings(
            embedding=EmbeddingSettings(dimensions=64),
            store=StoreSettings(
                persistence_enabled=True,
                persistence_path=str(tmp_path / "snapshot.json"),
            ),
        )

        service = RAGService(settings)

        assert isinstance(service.store.storage, JsonFileStorage)

    def test_explicit_storage_wins_over_settings(self, tmp_path):
        settings = Settings(
            embedding=EmbeddingSettings(dimensions=64),
            store=StoreSettings(
                persistence_enabled=True,
                persistence_path=str(tmp_path / "snapshot.json"),
            ),
        )
        storage = InMemoryStorage()

        service = create_service(settings, storage=storage)

        assert service.store.storage is storage
        assert service.chunker.chunk_size == settings.chunking.chunk_size

    def test_configures_logging(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "intranet_rag.service.setup_logging",
            lambda **kwargs: calls.append(kwargs),
        )
        settings = Settings(
            embedding=EmbeddingSettings(dimensions=64),
            logging=LoggingSettings(log_level="WARNING", log_format="console"),
        )

        create_service(settings)

        assert calls == [{"log_level": "WARNING", "log_format": "console"}]

    def test_debug_forces_debug_level(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            "intranet_rag.service.setup_logging",
            lambda **kwargs: calls.append(kwargs),
        )
        settings = Settings(
            embedding=EmbeddingSettings(dimensions=64),
            logging=LoggingSettings(log_level="ERROR", debug=True),
        )

        create_service(settings)

        assert calls[0]["log_level"] == "DEBUG"

    def test_mode_from_settings(self):
        settings = Settings(
            embedding=EmbeddingSettings(dimensions=64),
            search=SearchSettings(mode="internal_only"),
        )

        assert create_service(settings).orchestrator.mode is SearchMode.INTERNAL_ONLY

    def test_services_are_independent(self, settings):
        assert create_service(settings).store is not create_service(settings).store


class TestServiceOperations:
    """Test suite for the facade surface."""

    @pytest.mark.asyncio
    async def test_not_ready_until_data(self, service):
        assert service.is_ready() is False

        await service.initialize()
        assert service.is_ready() is False

        await service.add_documents("web", [{"content": "Sobre a empresa"}])
        assert service.is_ready() is True

    def test_embed(self, service):
        assert len(service.embed("ramal")) == 64

    def test_classification_passthrough(self, service):
        assert service.classify_query("ramal do RH") is QueryType.EMPLOYEE
        assert service.get_config_for_query("ramal do RH").internal_data_boost == 2.0

    @pytest.mark.asyncio
    async def test_employee_question_end_to_end(self, service, employee_records):
        await service.initialize()
        await service.index_employees(employee_records)

        context = await service.search_context(
            "Funcionário: Ana Souza Departamento: Recursos Humanos Ramal: 2010"
        )
        text = service.format_context(context)

        assert context.query_type is QueryType.EMPLOYEE
        assert context.relevant_content[0].source == "employee:1"
        assert context.needs_web_search is False
        assert "Ana Souza" in text

    @pytest.mark.asyncio
    async def test_announcements_are_indexed(self, service, announcement_records):
        result = await service.index_announcements(announcement_records)

        assert result.documents_indexed == 1
        assert service.get_stats().documents_by_type == {"announcement": 1}

    def test_direct_search_uses_settings_defaults(self, service):
        assert service.search("qualquer coisa") == []

    @pytest.mark.asyncio
    async def test_direct_search_with_filter(self, service, employee_records):
        await service.index_employees(employee_records)
        await service.add_documents("web", [{"content": "Ramal geral da empresa"}])

        results = service.search("Ramal", min_similarity=0.0, type_filter="web")

        assert {r.document_type.value for r in results} == {"web"}

    @pytest.mark.asyncio
    async def test_direct_search_describes_results(self, service, employee_records):
        await service.index_employees(employee_records)

        [first, *_] = service.search(
            "Funcionário: Ana Souza Departamento: Recursos Humanos Ramal: 2010",
            min_similarity=0.0,
        )

        assert first.source == "employee:1"
        assert first.title == "Ana Souza"
        assert first.content.startswith("Funcionário: Ana Souza")
        assert 0.0 < first.similarity <= 1.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "   ", None, 42])
    async def test_direct_search_degenerate_query(self, service, employee_records, query):
        await service.index_employees(employee_records)

        assert service.search(query, min_similarity=0.0) == []

    @pytest.mark.asyncio
    async def test_clear(self, service):
        await service.add_documents("employee", [{"content": "Ana"}])

        service.clear()

        assert service.get_stats().total_documents == 0


class TestWebsiteIndexing:
    """Test suite for page source handling."""

    @pytest.mark.asyncio
    async def test_without_page_source(self, service):
        result = await service.index_website()

        assert result.success is False

    @pytest.mark.asyncio
    async def test_with_page_source(self, settings):
        source = StaticPageSource(SITE, [{"url": SITE, "content": "Sobre a empresa."}])
        service = create_service(settings, storage=InMemoryStorage(), page_source=source)

        result = await service.index_website()

        assert result.success
        assert service.get_stats().documents_by_type == {"web": 1}

    @pytest.mark.asyncio
    async def test_switching_site_clears_store(self, service):
        service.set_page_source(StaticPageSource(SITE, [{"url": SITE, "content": "A"}]))
        await service.index_website()

        service.set_page_source(StaticPageSource("https://outra.com.br"))

        assert service.get_stats().total_documents == 0

    @pytest.mark.asyncio
    async def test_same_site_keeps_store(self, service):
        service.set_page_source(StaticPageSource(SITE, [{"url": SITE, "content": "A"}]))
        await service.index_website()

        service.set_page_source(StaticPageSource(SITE))

        assert service.get_stats().total_documents == 1
