"""
Deterministic hash embeddings.

``HashEmbedder`` turns text into a fixed-length, L2-normalised vector without
any trained model or network call. Each distinct word scatters a
pseudo-random but reproducible contribution over every dimension, weighted
by the word's frequency and boosted for a curated list of organisation
terms; two statistical features (average word length, vocabulary size) are
folded into a reserved slice of the first twenty dimensions.

Limitation: this is lexical bucket matching, not semantic retrieval. Two
sentences that say the same thing with different words will not score as
similar. Swapping in a learned model changes retrieval behaviour and is a
deliberate decision, not a drop-in fix.
"""

from __future__ import annotations

from collections import Counter, OrderedDict
from collections.abc import Iterable

import numpy as np
from langchain_core.embeddings import Embeddings

from intranet_rag.config.settings import EmbeddingSettings
from intranet_rag.utils.exceptions import (
    EmbeddingGenerationError,
    InvalidConfigurationError,
)
from intranet_rag.utils.logging import LoggerMixin

DEFAULT_DOMAIN_TERMS: frozenset[str] = frozenset(
    {
        "torp",
        "tecnologia",
        "organização",
        "recursos",
        "pessoas",
        "equipe",
        "colaborador",
        "funcionário",
        "departamento",
        "comercial",
        "administrativo",
        "marketing",
        "ti",
        "rh",
    }
)

HASH_BUCKETS = 1_000_000
STAT_SLICE = 10
AVG_WORD_LENGTH_SCALE = 0.1
VOCABULARY_SCALE = 0.01
MIN_DIMENSIONS = 2 * STAT_SLICE

_MASK_32 = 0xFFFFFFFF


def _fold(state: int, text: str) -> int:
    for char in text:
        state = (state * 31 + ord(char)) & _MASK_32
    return state


def _finish(state: int) -> int:
    # Interpret as signed 32-bit, then take the magnitude.
    if state & 0x80000000:
        state -= 1 << 32
    return abs(state)


def stable_hash(text: str) -> int:
    """
    32-bit polynomial string hash (multiplier 31), returned as a magnitude.

    Unlike ``hash()``, the value is identical across processes and runs.
    """
    return _finish(_fold(0, text))


class HashEmbedder(Embeddings, LoggerMixin):
    """
    Deterministic, model-free text embedder.

    Args:
        dimensions: Vector length (at least 20, the statistical slice).
        domain_terms: Words whose contribution is boosted.
        domain_boost: Multiplier for domain terms.
        cache_max_items: Size of the in-memory embedding cache.

    Example:
        >>> embedder = HashEmbedder(dimensions=64)
        >>> embedder.embed("ramal do RH") == embedder.embed("ramal do RH")
        True
    """

    def __init__(
        self,
        dimensions: int = 384,
        domain_terms: Iterable[str] | None = None,
        domain_boost: float = 2.0,
        cache_max_items: int = 1000,
    ) -> None:
        if dimensions < MIN_DIMENSIONS:
            raise InvalidConfigurationError(
                f"dimensions must be >= {MIN_DIMENSIONS}, got {dimensions}",
                details={"dimensions": dimensions},
            )
        if domain_boost <= 0:
            raise InvalidConfigurationError(
                f"domain_boost must be positive, got {domain_boost}"
            )

        self.dimensions = dimensions
        self.domain_terms = frozenset(
            term.lower()
            for term in (DEFAULT_DOMAIN_TERMS if domain_terms is None else domain_terms)
        )
        self.domain_boost = domain_boost
        self.cache_max_items = cache_max_items
        self._cache: OrderedDict[str, list[float]] = OrderedDict()
        self._suffix_digits = [str(i) for i in range(dimensions)]

        self.logger.info(
            "hash_embedder_initialized",
            dimensions=dimensions,
            domain_terms=len(self.domain_terms),
            cache_max_items=cache_max_items,
        )

    def embed(self, text: str) -> list[float]:
        """
        Embed ``text`` into a normalised vector of ``dimensions`` floats.

        Empty or whitespace-only text yields the zero vector.

        Raises:
            EmbeddingGenerationError: If ``text`` is not a string.
        """
        if not isinstance(text, str):
            raise EmbeddingGenerationError(
                "Text to embed must be a string",
                details={"received_type": type(text).__name__},
            )

        cached = self._cache.get(text)
        if cached is not None:
            self._cache.move_to_end(text)
            return list(cached)

        vector = self._compute(text).tolist()
        self._remember(text, vector)
        return list(vector)

    def embed_query(self, text: str) -> list[float]:
        return self.embed(text)

    def embed_documents(self, texts: list[str]) -> list[list[float]]:
        return [self.embed(text) for text in texts]

    def clear_cache(self) -> None:
        self._cache.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    def _compute(self, text: str) -> np.ndarray:
        words = text.lower().split()
        vector = np.zeros(self.dimensions, dtype=np.float64)
        if not words:
            return vector

        frequencies = Counter(words)
        for word, frequency in frequencies.items():
            weight = frequency * (
                self.domain_boost if word in self.domain_terms else 1.0
            )
            vector += self._word_pattern(word) * weight

        avg_word_length = sum(len(word) for word in words) / len(words)
        vector[:STAT_SLICE] += avg_word_length * AVG_WORD_LENGTH_SCALE
        vector[STAT_SLICE:2 * STAT_SLICE] += len(frequencies) * VOCABULARY_SCALE

        norm = np.linalg.norm(vector)
        if norm > 0:
            vector /= norm
        return vector

    def _word_pattern(self, word: str) -> np.ndarray:
        # hash(word + str(i)) for every dimension, reusing the word's prefix state
        prefix = _fold(0, word)
        return np.fromiter(
            (
                (_finish(_fold(prefix, digits)) % HASH_BUCKETS) / HASH_BUCKETS
                for digits in self._suffix_digits
            ),
            dtype=np.float64,
            count=self.dimensions,
        )

    def _remember(self, text: str, vector: list[float]) -> None:
        if self.cache_max_items <= 0:
            return
        self._cache[text] = vector
        if len(self._cache) > self.cache_max_items:
            self._cache.popitem(last=False)


def get_embedder(settings: EmbeddingSettings | None = None) -> HashEmbedder:
    """
    Build a ``HashEmbedder`` from settings (loaded from the environment when
    omitted).
    """
    if settings is None:
        from intranet_rag.config.settings import get_settings

        settings = get_settings().embedding

    return HashEmbedder(
        dimensions=settings.dimensions,
        domain_boost=settings.domain_boost,
        cache_max_items=settings.cache_max_items,
    )
