"""
Document model for the intranet retrieval core.

A stored document is one retrievable unit of text (a whole employee card, a
whole announcement, or one chunk of a web page) together with its embedding
and typed metadata. Metadata is a tagged union keyed by ``type``: every
variant carries only the fields relevant to its source, and read sites
dispatch on the variant with ``match`` instead of sniffing strings.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class DocumentType(str, Enum):
    """Partition a document belongs to."""

    WEB = "web"
    EMPLOYEE = "employee"
    ANNOUNCEMENT = "announcement"


INTERNAL_TYPES: frozenset[DocumentType] = frozenset(
    {DocumentType.EMPLOYEE, DocumentType.ANNOUNCEMENT}
)

UNTITLED = "Sem título"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_document_id() -> str:
    return uuid4().hex


class _MetadataBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    timestamp: datetime = Field(default_factory=utc_now)


class WebMetadata(_MetadataBase):
    """Metadata of a chunk scraped from the organisation's website."""

    type: Literal["web"] = "web"
    url: str | None = None
    title: str | None = None
    chunk_index: int = 0
    total_chunks: int = 1


class EmployeeMetadata(_MetadataBase):
    """Metadata of an indexed employee card."""

    type: Literal["employee"] = "employee"
    employee_id: str | None = None
    name: str | None = None
    department: str | None = None


class AnnouncementMetadata(_MetadataBase):
    """Metadata of an indexed announcement."""

    type: Literal["announcement"] = "announcement"
    announcement_id: str | None = None
    title: str | None = None
    priority: str | None = None
    date: str | None = None


DocumentMetadata = Annotated[
    Union[WebMetadata, EmployeeMetadata, AnnouncementMetadata],
    Field(discriminator="type"),
]

_metadata_adapter: TypeAdapter[DocumentMetadata] = TypeAdapter(DocumentMetadata)


def build_metadata(
    document_type: DocumentType | str, raw: dict[str, Any] | None = None
) -> DocumentMetadata:
    """
    Validate raw metadata into the variant for ``document_type``.

    The declared type always wins over a ``type`` key inside ``raw``.

    Raises:
        pydantic.ValidationError: If the fields do not fit the variant.
    """
    payload = dict(raw or {})
    payload["type"] = DocumentType(document_type).value
    return _metadata_adapter.validate_python(payload)


def describe_source(metadata: DocumentMetadata) -> tuple[str, str]:
    """
    Return ``(source, title)`` for presenting a document to the chat layer.

    Web chunks are identified by their URL; internal documents by a
    ``<type>:<id>`` back-reference to the originating record.
    """
    match metadata:
        case WebMetadata(url=url, title=title):
            return url or DocumentType.WEB.value, title or UNTITLED
        case EmployeeMetadata(employee_id=employee_id, name=name):
            source = f"employee:{employee_id}" if employee_id else "employee"
            return source, name or UNTITLED
        case AnnouncementMetadata(announcement_id=announcement_id, title=title):
            source = (
                f"announcement:{announcement_id}" if announcement_id else "announcement"
            )
            return source, title or UNTITLED
        case _:
            raise TypeError(f"Unknown metadata variant: {type(metadata).__name__}")


class StoredDocument(BaseModel):
    """
    A document held by the store.

    Attributes:
        id: Process-generated identifier, unique within a store.
        content: The retrievable text.
        embedding: Fixed-length vector; the store enforces its length.
        metadata: Typed metadata variant; its ``type`` never changes.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_document_id)
    content: str
    embedding: list[float]
    metadata: DocumentMetadata

    @property
    def type(self) -> DocumentType:
        return DocumentType(self.metadata.type)

    @property
    def is_internal(self) -> bool:
        return self.type in INTERNAL_TYPES

    def __str__(self) -> str:
        source, _ = describe_source(self.metadata)
        return f"StoredDocument(id={self.id}, type={self.type.value}, source={source})"


class IndexItem(BaseModel):
    """Input unit for batch indexing: text plus loose metadata."""

    content: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class EmployeeRecord(BaseModel):
    """Employee directory entry as kept by the directory application."""

    model_config = ConfigDict(
        extra="ignore", coerce_numbers_to_str=True, populate_by_name=True
    )

    id: str
    name: str
    department: str = ""
    extension: str = ""
    email: str = ""
    position: str | None = None
    phone: str | None = None
    lunch_time: str | None = Field(default=None, alias="lunchTime")


class AnnouncementRecord(BaseModel):
    """Announcement board entry."""

    model_config = ConfigDict(
        extra="ignore", coerce_numbers_to_str=True, populate_by_name=True
    )

    id: str
    title: str
    content: str = ""
    priority: str = "normal"
    date: str = ""
    created_at: str | None = Field(default=None, alias="createdAt")


class ScrapedPage(BaseModel):
    """A page produced by a website page source."""

    url: str
    title: str | None = None
    content: str
