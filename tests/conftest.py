"""
Pytest configuration and shared fixtures.

This module provides:
- Shared fixtures for all tests
- Hypothesis profile configuration
- Test environment setup
"""

import os
from collections.abc import Generator
from typing import Any

import pytest
from hypothesis import settings as hypothesis_settings, Verbosity

from intranet_rag.core.embeddings import HashEmbedder
from intranet_rag.core.vectorstore import DocumentStore
from intranet_rag.ingestion.chunker import TextChunker
from tests.strategies import TEST_DIMENSIONS, InMemoryStorage

# Configure Hypothesis profiles
hypothesis_settings.register_profile(
    "ci",
    max_examples=100,
    deadline=1000,
    verbosity=Verbosity.normal,
)
hypothesis_settings.register_profile(
    "dev",
    max_examples=20,
    deadline=None,
    verbosity=Verbosity.normal,
)
hypothesis_settings.register_profile(
    "debug",
    max_examples=10,
    deadline=None,
    verbosity=Verbosity.verbose,
)

# Load profile from environment or use dev
profile = os.environ.get("HYPOTHESIS_PROFILE", "dev")
hypothesis_settings.load_profile(profile)


@pytest.fixture
def embedder() -> HashEmbedder:
    """Small hash embedder shared by store-level tests."""
    return HashEmbedder(dimensions=TEST_DIMENSIONS)


@pytest.fixture
def chunker() -> TextChunker:
    return TextChunker(chunk_size=200, chunk_overlap=20)


@pytest.fixture
def store(embedder: HashEmbedder, chunker: TextChunker) -> DocumentStore:
    """Empty, non-persistent document store."""
    return DocumentStore(embedder=embedder, dimensions=TEST_DIMENSIONS, chunker=chunker)


@pytest.fixture
def memory_storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def employee_records() -> list[dict[str, Any]]:
    """Directory entries as the directory application stores them."""
    return [
        {
            "id": 1,
            "name": "Ana Souza",
            "department": "Recursos Humanos",
            "extension": "2010",
            "email": "ana.souza@empresa.com.br",
            "lunchTime": "12:00 - 13:00",
        },
        {
            "id": 2,
            "name": "Bruno Lima",
            "department": "TI",
            "extension": "2045",
            "email": "xxx",
        },
    ]


@pytest.fixture
def announcement_records() -> list[dict[str, Any]]:
    return [
        {
            "id": "a1",
            "title": "Reunião geral",
            "content": "Reunião geral na sexta-feira às 15h no auditório.",
            "priority": "alta",
            "date": "2024-05-10",
            "createdAt": "2024-05-01T10:00:00Z",
        },
    ]


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Reset logging configuration between tests."""
    from intranet_rag.utils.logging import clear_correlation_id

    clear_correlation_id()
    yield
    clear_correlation_id()


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None, None, None]:
    """Settings are cached per process; tests that patch the env must not leak."""
    from intranet_rag.config.settings import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# Markers for test categorization
def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "property: Property-based tests")
    config.addinivalue_line("markers", "slow: Slow tests")
