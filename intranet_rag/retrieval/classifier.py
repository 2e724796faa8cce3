"""
Keyword query classifier.

Queries are sorted into three buckets so the orchestrator can tune how hard
it leans on internal data before falling back to the website:

- ``employee``: who/where questions (extensions, e-mails, departments)
- ``announcement``: notices, meetings, trainings
- ``general``: everything else

Matching is a plain substring check on the lowercased, accent-folded query.
Employee terms are checked first, so a query mentioning both kinds of terms
is treated as an employee query.
"""

from __future__ import annotations

import unicodedata
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any

from intranet_rag.config.settings import SearchSettings
from intranet_rag.utils.logging import get_logger

logger = get_logger(__name__)


class QueryType(str, Enum):
    EMPLOYEE = "employee"
    ANNOUNCEMENT = "announcement"
    GENERAL = "general"


EMPLOYEE_TERMS: tuple[str, ...] = (
    "funcionario",
    "funcionária",
    "ramal",
    "extensao",
    "email",
    "departamento",
    "setor",
    "colaborador",
)

ANNOUNCEMENT_TERMS: tuple[str, ...] = (
    "comunicado",
    "aviso",
    "anuncio",
    "informativo",
    "reuniao",
    "treinamento",
)


@dataclass(frozen=True)
class QueryTypeConfig:
    """
    Search policy for one query.

    Attributes:
        internal_data_threshold: Internal results are sufficient only if at
            least one boosted similarity is strictly above this.
        min_internal_results: Minimum number of internal results needed.
        internal_data_boost: Multiplier applied to internal similarities
            (capped at 1.0).
        internal_search_limit: How many internal documents to consider.
        web_search_limit: How many web documents to consider on fallback.
        min_similarity: Floor applied to boosted internal and raw web
            similarities.
    """

    internal_data_threshold: float = 0.4
    min_internal_results: int = 1
    internal_data_boost: float = 1.5
    internal_search_limit: int = 10
    web_search_limit: int = 15
    min_similarity: float = 0.1

    @classmethod
    def from_settings(cls, settings: SearchSettings) -> "QueryTypeConfig":
        return cls(
            internal_data_threshold=settings.internal_data_threshold,
            min_internal_results=settings.min_internal_results,
            internal_data_boost=settings.internal_data_boost,
            internal_search_limit=settings.internal_search_limit,
            web_search_limit=settings.web_search_limit,
            min_similarity=settings.policy_min_similarity,
        )

    def merged(self, overrides: Mapping[str, Any]) -> "QueryTypeConfig":
        """Return a copy with ``overrides`` applied; unknown keys are rejected."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ValueError(f"Unknown QueryTypeConfig fields: {sorted(unknown)}")
        return replace(self, **overrides)


DEFAULT_CONFIG = QueryTypeConfig()

DEFAULT_OVERRIDES: dict[QueryType, dict[str, Any]] = {
    QueryType.EMPLOYEE: {
        "internal_data_threshold": 0.3,
        "min_internal_results": 1,
        "internal_data_boost": 2.0,
    },
    QueryType.ANNOUNCEMENT: {
        "internal_data_threshold": 0.35,
        "min_internal_results": 1,
        "internal_data_boost": 1.8,
    },
    QueryType.GENERAL: {
        "internal_data_threshold": 0.4,
        "min_internal_results": 1,
        "internal_data_boost": 1.3,
    },
}


def fold_accents(text: str) -> str:
    """Lowercase ``text`` and strip combining diacritics (``"Reunião"`` -> ``"reuniao"``)."""
    decomposed = unicodedata.normalize("NFD", text.lower())
    return "".join(char for char in decomposed if not unicodedata.combining(char))


class QueryClassifier:
    """
    Classify queries and resolve their search policy.

    Args:
        employee_terms: Substrings marking an employee query.
        announcement_terms: Substrings marking an announcement query.
        base_config: Policy every query type starts from.
        overrides: Per-type field overrides merged over ``base_config``.

    Example:
        >>> classifier = QueryClassifier()
        >>> classifier.classify("Qual o ramal do RH?")
        <QueryType.EMPLOYEE: 'employee'>
        >>> classifier.config_for("Qual o ramal do RH?").internal_data_boost
        2.0
    """

    def __init__(
        self,
        employee_terms: Iterable[str] = EMPLOYEE_TERMS,
        announcement_terms: Iterable[str] = ANNOUNCEMENT_TERMS,
        base_config: QueryTypeConfig = DEFAULT_CONFIG,
        overrides: Mapping[QueryType, Mapping[str, Any]] | None = None,
    ) -> None:
        self.employee_terms = tuple(fold_accents(term) for term in employee_terms)
        self.announcement_terms = tuple(fold_accents(term) for term in announcement_terms)
        self.base_config = base_config

        overrides = DEFAULT_OVERRIDES if overrides is None else overrides
        self._configs: dict[QueryType, QueryTypeConfig] = {
            query_type: base_config.merged(overrides.get(query_type, {}))
            for query_type in QueryType
        }

    def classify(self, query: Any) -> QueryType:
        """Return the query type; anything that is not a non-blank string is general."""
        if not isinstance(query, str) or not query.strip():
            return QueryType.GENERAL

        folded = fold_accents(query)
        if any(term in folded for term in self.employee_terms):
            return QueryType.EMPLOYEE
        if any(term in folded for term in self.announcement_terms):
            return QueryType.ANNOUNCEMENT
        return QueryType.GENERAL

    def config_for_type(self, query_type: QueryType | str) -> QueryTypeConfig:
        return self._configs[QueryType(query_type)]

    def config_for(self, query: Any) -> QueryTypeConfig:
        return self.config_for_type(self.classify(query))

    @classmethod
    def from_settings(cls, settings: SearchSettings) -> "QueryClassifier":
        """Build a classifier whose base policy comes from ``settings``."""
        return cls(base_config=QueryTypeConfig.from_settings(settings))


_default_classifier = QueryClassifier()


def classify_query(query: Any) -> QueryType:
    """Classify ``query`` with the default keyword lists."""
    query_type = _default_classifier.classify(query)
    logger.debug("query_classified", query_type=query_type.value)
    return query_type


def get_config_for_query(query: Any) -> QueryTypeConfig:
    """Resolve the default search policy for ``query``."""
    return _default_classifier.config_for(query)
