"""
Persistence collaborators for the document store.

The store keeps everything in memory and writes through to a
``DocumentStorage`` after each mutation. Storage is best effort: failures
surface as ``PersistenceError`` and the store logs them without losing its
in-memory state.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import TypeAdapter, ValidationError

from intranet_rag.core.documents import StoredDocument
from intranet_rag.utils.exceptions import PersistenceError
from intranet_rag.utils.logging import LoggerMixin

_documents_adapter: TypeAdapter[list[StoredDocument]] = TypeAdapter(list[StoredDocument])


@runtime_checkable
class DocumentStorage(Protocol):
    """Snapshot storage used by ``DocumentStore``."""

    def load(self) -> list[StoredDocument]:
        """Return the persisted documents (empty when nothing is stored)."""
        ...

    def save(self, documents: list[StoredDocument]) -> None:
        """Replace the persisted snapshot with ``documents``."""
        ...

    def clear(self) -> None:
        """Remove the persisted snapshot."""
        ...


class JsonFileStorage(LoggerMixin):
    """
    Store documents as a single JSON array on disk.

    Writes go to a temporary sibling file that is then renamed over the
    target, so a crash mid-write leaves the previous snapshot intact.

    Args:
        path: Snapshot file location; parent directories are created on save.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> list[StoredDocument]:
        if not self.path.exists():
            self.logger.debug("snapshot_missing", path=str(self.path))
            return []

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            documents = _documents_adapter.validate_python(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise PersistenceError(
                "Failed to load document snapshot",
                details={"path": str(self.path)},
                cause=e,
            ) from e

        self.logger.info("snapshot_loaded", path=str(self.path), count=len(documents))
        return documents

    def save(self, documents: list[StoredDocument]) -> None:
        payload = _documents_adapter.dump_json(documents)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(payload)
            tmp_path.replace(self.path)
        except OSError as e:
            raise PersistenceError(
                "Failed to save document snapshot",
                details={"path": str(self.path), "count": len(documents)},
                cause=e,
            ) from e

        self.logger.debug("snapshot_saved", path=str(self.path), count=len(documents))

    def clear(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(
                "Failed to remove document snapshot",
                details={"path": str(self.path)},
                cause=e,
            ) from e
