"""
Unit tests for the indexing pipeline.

Tests the indexing workflow including:
- Employee and announcement indexing
- Record validation
- Website freshness checks
- Website indexing and error handling
"""

import threading
from datetime import timedelta

import pytest

from intranet_rag.core.documents import (
    AnnouncementRecord,
    DocumentType,
    EmployeeRecord,
    utc_now,
)
from intranet_rag.core.vectorstore import DocumentStore
from intranet_rag.ingestion.formatters import (
    format_announcement_for_indexing,
    format_employee_for_indexing,
)
from intranet_rag.ingestion.pipeline import IndexingPipeline, IndexingResult, PageSource
from tests.strategies import (
    TEST_DIMENSIONS,
    FailingPageSource,
    InMemoryStorage,
    StaticPageSource,
)

SITE = "https://www.empresa.com.br"


class ThreadRecordingStorage(InMemoryStorage):
    """Records which thread wrote each snapshot."""

    def __init__(self) -> None:
        super().__init__()
        self.threads: list[int] = []

    def save(self, documents) -> None:
        self.threads.append(threading.get_ident())
        super().save(documents)


@pytest.fixture
def pipeline(store):
    return IndexingPipeline(store)


@pytest.fixture
def pages():
    return [
        {"url": f"{SITE}/", "title": "Início", "content": "Bem-vindo à empresa. " * 30},
        {"url": f"{SITE}/contato", "title": "Contato", "content": "Fale conosco."},
    ]


class TestFormatters:
    """Test suite for record formatting."""

    def test_employee_card(self):
        record = EmployeeRecord.model_validate(
            {"id": 1, "name": "Ana", "department": "RH", "extension": 2010,
             "email": "ana@x", "lunchTime": "12h"}
        )

        assert format_employee_for_indexing(record).splitlines() == [
            "Funcionário: Ana",
            "Departamento: RH",
            "Ramal: 2010",
            "Email: ana@x",
            "Horário de almoço: 12h",
            "Setor: RH",
            "Extensão: 2010",
            "Contato: Ana - 2010",
        ]

    def test_employee_card_without_lunch_time(self):
        record = EmployeeRecord(id="1", name="Ana")

        assert "Horário de almoço" not in format_employee_for_indexing(record)

    def test_announcement_card(self):
        record = AnnouncementRecord(
            id="a1", title="Férias", content="Coletivas em dezembro.", priority="alta",
            date="2024-12-01",
        )

        assert format_announcement_for_indexing(record).splitlines() == [
            "Comunicado: Férias",
            "Prioridade: alta",
            "Data: 2024-12-01",
            "Conteúdo: Coletivas em dezembro.",
            "Aviso: Férias",
            "Informação: Coletivas em dezembro.",
        ]


class TestRecordIndexing:
    """Test suite for employee and announcement indexing."""

    @pytest.mark.asyncio
    async def test_index_employees(self, pipeline, store, employee_records):
        result = await pipeline.index_employees(employee_records)

        assert result.success
        assert result.documents_indexed == 2
        assert result.items_skipped == 0
        documents = store.documents(DocumentType.EMPLOYEE)
        assert [d.metadata.employee_id for d in documents] == ["1", "2"]
        assert documents[0].content.startswith("Funcionário: Ana Souza")

    @pytest.mark.asyncio
    async def test_invalid_records_are_skipped(self, pipeline, employee_records):
        result = await pipeline.index_employees(employee_records + [{"name": "sem id"}])

        assert result.documents_indexed == 2
        assert result.items_skipped == 1

    @pytest.mark.asyncio
    async def test_reindexing_replaces_previous_records(self, pipeline, store, employee_records):
        await pipeline.index_employees(employee_records)
        await pipeline.index_employees(employee_records[:1])

        assert len(store.documents(DocumentType.EMPLOYEE)) == 1

    @pytest.mark.asyncio
    async def test_reindexing_persists_off_the_event_loop(self, embedder, employee_records):
        storage = ThreadRecordingStorage()
        store = DocumentStore(embedder=embedder, dimensions=TEST_DIMENSIONS, storage=storage)
        pipeline = IndexingPipeline(store)

        await pipeline.index_employees(employee_records)
        await pipeline.index_employees(employee_records)

        # add, then remove and add again
        assert len(storage.threads) == 3
        assert threading.get_ident() not in storage.threads
        assert len(storage.documents) == 2

    @pytest.mark.asyncio
    async def test_append_mode(self, pipeline, store, employee_records):
        await pipeline.index_employees(employee_records)
        await pipeline.index_employees(employee_records[:1], replace=False)

        assert len(store.documents(DocumentType.EMPLOYEE)) == 3

    @pytest.mark.asyncio
    async def test_index_announcements(self, pipeline, store, announcement_records):
        result = await pipeline.index_announcements(announcement_records)

        assert result.success
        [document] = store.documents(DocumentType.ANNOUNCEMENT)
        assert document.metadata.announcement_id == "a1"
        assert document.metadata.title == "Reunião geral"
        assert str(result) == "✓ announcements: 1 indexed, 0 skipped"


class TestNeedsRefresh:
    """Test suite for website freshness."""

    def test_empty_store_needs_refresh(self, pipeline):
        assert pipeline.needs_refresh() is True

    @pytest.mark.asyncio
    async def test_fresh_and_stale(self, pipeline, store):
        await store.add_documents("web", [{"content": "Página inicial"}])
        indexed_at = store.last_indexed("web")

        assert pipeline.needs_refresh(now=indexed_at + timedelta(hours=23)) is False
        assert pipeline.needs_refresh(now=indexed_at + timedelta(hours=24)) is True

    @pytest.mark.asyncio
    async def test_internal_documents_do_not_count(self, pipeline, employee_records):
        await pipeline.index_employees(employee_records)

        assert pipeline.needs_refresh() is True


class TestWebsiteIndexing:
    """Test suite for index_website."""

    def test_static_source_is_a_page_source(self):
        assert isinstance(StaticPageSource(SITE), PageSource)

    @pytest.mark.asyncio
    async def test_indexes_pages(self, pipeline, store, pages):
        source = StaticPageSource(SITE, pages)

        result = await pipeline.index_website(source)

        assert result.success
        assert result.source == SITE
        assert result.documents_indexed == len(store.documents(DocumentType.WEB))
        assert result.documents_indexed > len(pages)
        assert {d.metadata.url for d in store.documents("web")} == {p["url"] for p in pages}

    @pytest.mark.asyncio
    async def test_skips_when_fresh(self, pipeline, pages):
        source = StaticPageSource(SITE, pages)
        first = await pipeline.index_website(source)

        second = await pipeline.index_website(source)

        assert second.success and second.up_to_date
        assert second.documents_indexed == first.documents_indexed
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_force_refresh_replaces_pages(self, pipeline, store, pages):
        source = StaticPageSource(SITE, pages)
        first = await pipeline.index_website(source)

        second = await pipeline.index_website(source, force_refresh=True)

        assert source.calls == 2
        assert len(store.documents("web")) == second.documents_indexed == first.documents_indexed

    @pytest.mark.asyncio
    async def test_stale_refresh_keeps_internal_documents(
        self, store, pages, employee_records
    ):
        pipeline = IndexingPipeline(store, refresh_interval=timedelta(0))
        await pipeline.index_employees(employee_records)
        await pipeline.index_website(StaticPageSource(SITE, pages))

        await pipeline.index_website(StaticPageSource(SITE, pages))

        assert len(store.documents("employee")) == 2

    @pytest.mark.asyncio
    async def test_empty_fetch_fails(self, pipeline):
        result = await pipeline.index_website(StaticPageSource(SITE, []))

        assert result.success is False
        assert result.error

    @pytest.mark.asyncio
    async def test_fetch_error_is_reported(self, pipeline, store, pages):
        await pipeline.index_website(StaticPageSource(SITE, pages), force_refresh=True)
        before = len(store.documents("web"))

        result = await pipeline.index_website(FailingPageSource(SITE), force_refresh=False)

        # still fresh, so the failing source is never called
        assert result.success and result.up_to_date
        assert len(store.documents("web")) == before

    @pytest.mark.asyncio
    async def test_fetch_error_on_stale_index(self, store):
        pipeline = IndexingPipeline(store, refresh_interval=timedelta(0))

        result = await pipeline.index_website(FailingPageSource(SITE))

        assert result.success is False
        assert "proxy unreachable" in result.error
        assert str(result).startswith("✗")

    @pytest.mark.asyncio
    async def test_invalid_pages_are_counted(self, pipeline, pages):
        result = await pipeline.index_website(
            StaticPageSource(SITE, pages + [{"title": "sem url"}])
        )

        assert result.success
        assert result.items_skipped == 1


def test_indexing_result_str():
    assert str(IndexingResult(success=True, source=SITE, up_to_date=True)).endswith(
        "up to date (0 documents)"
    )
