"""
Indexing pipeline for the intranet retrieval core.

This module feeds the document store from the three data sources:
1. Employee directory records (one document per employee)
2. Announcement board records (one document per announcement)
3. Website pages fetched by a ``PageSource`` (chunked)

Website indexing is skipped while the indexed pages are fresh, so the
expensive fetch only happens once per refresh interval.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ValidationError

from intranet_rag.core.documents import (
    AnnouncementRecord,
    DocumentType,
    EmployeeRecord,
    IndexItem,
    ScrapedPage,
    utc_now,
)
from intranet_rag.core.vectorstore import DocumentStore
from intranet_rag.ingestion.formatters import (
    format_announcement_for_indexing,
    format_employee_for_indexing,
)
from intranet_rag.utils.exceptions import IndexingSourceError
from intranet_rag.utils.logging import LoggerMixin


@runtime_checkable
class PageSource(Protocol):
    """Something that can fetch the pages of a website."""

    base_url: str

    async def fetch_pages(self) -> Sequence[ScrapedPage | Mapping[str, Any]]:
        ...


@dataclass
class IndexingResult:
    """
    Result of an indexing operation.

    Attributes:
        success: Whether the operation completed.
        source: What was indexed (``employees``, ``announcements`` or a URL).
        documents_indexed: Documents now held for this source.
        items_skipped: Input items rejected as malformed.
        up_to_date: True when website indexing was skipped as still fresh.
        error: Error message if indexing failed (None if successful).
    """
    success: bool
    source: str
    documents_indexed: int = 0
    items_skipped: int = 0
    up_to_date: bool = False
    error: str | None = None

    def __str__(self) -> str:
        if not self.success:
            return f"✗ {self.source}: {self.error}"
        if self.up_to_date:
            return f"✓ {self.source}: up to date ({self.documents_indexed} documents)"
        return (
            f"✓ {self.source}: "
            f"{self.documents_indexed} indexed, {self.items_skipped} skipped"
        )


class IndexingPipeline(LoggerMixin):
    """
    Index directory records and website pages into a ``DocumentStore``.

    Args:
        store: Target document store.
        refresh_interval: Website content younger than this is not re-fetched.

    Example:
        >>> pipeline = IndexingPipeline(store)
        >>> result = await pipeline.index_employees([{"id": 1, "name": "Ana"}])
        >>> print(result)
        ✓ employees: 1 indexed, 0 skipped
    """

    def __init__(
        self,
        store: DocumentStore,
        refresh_interval: timedelta = timedelta(hours=24),
    ) -> None:
        self.store = store
        self.refresh_interval = refresh_interval

    async def index_employees(
        self,
        records: Iterable[EmployeeRecord | Mapping[str, Any]],
        replace: bool = True,
    ) -> IndexingResult:
        """
        Index employee records, one document each.

        Args:
            records: Records or raw mappings (camelCase keys accepted).
            replace: Drop previously indexed employees first.
        """
        employees, invalid = self._validate(records, EmployeeRecord)
        items = [
            IndexItem(
                content=format_employee_for_indexing(employee),
                metadata={
                    "employee_id": employee.id,
                    "name": employee.name,
                    "department": employee.department,
                },
            )
            for employee in employees
        ]
        return await self._index_records(DocumentType.EMPLOYEE, "employees", items, invalid, replace)

    async def index_announcements(
        self,
        records: Iterable[AnnouncementRecord | Mapping[str, Any]],
        replace: bool = True,
    ) -> IndexingResult:
        """Index announcement records, one document each."""
        announcements, invalid = self._validate(records, AnnouncementRecord)
        items = [
            IndexItem(
                content=format_announcement_for_indexing(announcement),
                metadata={
                    "announcement_id": announcement.id,
                    "title": announcement.title,
                    "priority": announcement.priority,
                    "date": announcement.date,
                },
            )
            for announcement in announcements
        ]
        return await self._index_records(
            DocumentType.ANNOUNCEMENT, "announcements", items, invalid, replace
        )

    def needs_refresh(self, now: datetime | None = None) -> bool:
        """True unless a web document was indexed within the refresh interval."""
        last_indexed = self.store.last_indexed(DocumentType.WEB)
        if last_indexed is None:
            return True
        now = now or utc_now()
        return now - last_indexed >= self.refresh_interval

    async def index_website(
        self, source: PageSource, force_refresh: bool = False
    ) -> IndexingResult:
        """
        Fetch pages from ``source`` and index them as web documents.

        Previously indexed pages are replaced once the new fetch succeeds, so a
        failed fetch keeps the old content searchable. With ``force_refresh``
        the old pages are dropped up front.

        Never raises: failures are reported in the result.
        """
        base_url = source.base_url
        if not self.store.is_initialized:
            await self.store.initialize()

        if not force_refresh and not self.needs_refresh():
            indexed = len(self.store.documents(DocumentType.WEB))
            self.logger.info("website_index_fresh", url=base_url, documents=indexed)
            return IndexingResult(
                success=True, source=base_url, documents_indexed=indexed, up_to_date=True
            )

        if force_refresh:
            await self.store.aremove_by_type(DocumentType.WEB)

        self.logger.info("website_indexing_started", url=base_url, force_refresh=force_refresh)
        try:
            pages, invalid = await self._fetch(source)
        except IndexingSourceError as e:
            self.logger.error(
                "website_fetch_failed",
                url=base_url,
                error=str(e),
                error_type=type(e.cause).__name__ if e.cause else type(e).__name__,
            )
            return IndexingResult(
                success=False,
                source=base_url,
                items_skipped=e.details.get("invalid_pages", 0),
                error=e.message,
            )

        if not force_refresh:
            await self.store.aremove_by_type(DocumentType.WEB)

        items = [
            IndexItem(content=page.content, metadata={"url": page.url, "title": page.title})
            for page in pages
        ]
        ids = await self.store.add_documents(DocumentType.WEB, items)

        result = IndexingResult(
            success=True,
            source=base_url,
            documents_indexed=len(ids),
            items_skipped=invalid,
        )
        self.logger.info(
            "website_indexed",
            url=base_url,
            pages=len(pages),
            documents=len(ids),
            skipped=invalid,
        )
        return result

    async def _fetch(self, source: PageSource) -> tuple[list[ScrapedPage], int]:
        """
        Fetch and validate pages.

        Raises:
            IndexingSourceError: If the fetch fails or yields no usable page.
        """
        try:
            raw_pages = await source.fetch_pages()
        except Exception as e:
            raise IndexingSourceError(
                f"Failed to fetch pages: {e}",
                details={"url": source.base_url},
                cause=e,
            ) from e

        pages, invalid = self._validate(raw_pages or [], ScrapedPage)
        if not pages:
            raise IndexingSourceError(
                "No content was extracted from the website",
                details={"url": source.base_url, "invalid_pages": invalid},
            )
        return pages, invalid

    async def _index_records(
        self,
        document_type: DocumentType,
        label: str,
        items: list[IndexItem],
        invalid: int,
        replace: bool,
    ) -> IndexingResult:
        if not self.store.is_initialized:
            await self.store.initialize()
        if replace:
            await self.store.aremove_by_type(document_type)

        ids = await self.store.add_documents(document_type, items)
        result = IndexingResult(
            success=True,
            source=label,
            documents_indexed=len(ids),
            items_skipped=invalid + len(items) - len(ids),
        )
        self.logger.info(
            "records_indexed",
            type=document_type.value,
            indexed=result.documents_indexed,
            skipped=result.items_skipped,
        )
        return result

    def _validate(self, records: Iterable[Any], model: type[BaseModel]) -> tuple[list[Any], int]:
        valid = []
        invalid = 0
        for position, record in enumerate(records):
            if isinstance(record, model):
                valid.append(record)
                continue
            try:
                valid.append(model.model_validate(record))
            except ValidationError as e:
                invalid += 1
                self.logger.warning(
                    "record_skipped",
                    model=model.__name__,
                    position=position,
                    errors=e.error_count(),
                )
        return valid, invalid
