"""
Unit tests for the keyword query classifier.
"""

import dataclasses

import pytest
from hypothesis import given
from hypothesis import strategies as st

from intranet_rag.config.settings import SearchSettings
from intranet_rag.retrieval.classifier import (
    DEFAULT_CONFIG,
    QueryClassifier,
    QueryType,
    QueryTypeConfig,
    classify_query,
    fold_accents,
    get_config_for_query,
)


class TestFoldAccents:
    """Test suite for accent folding."""

    def test_strips_diacritics_and_lowercases(self):
        assert fold_accents("Reunião de Integração") == "reuniao de integracao"
        assert fold_accents("FUNCIONÁRIA") == "funcionaria"


class TestClassify:
    """Test suite for query classification."""

    @pytest.mark.parametrize(
        "query",
        [
            "Qual o ramal do RH?",
            "email da Ana",
            "Quem é o funcionário responsável pelo TI?",
            "Qual a extensão do setor comercial?",
            "Lista de colaboradores do departamento",
        ],
    )
    def test_employee_queries(self, query):
        assert classify_query(query) is QueryType.EMPLOYEE

    @pytest.mark.parametrize(
        "query",
        [
            "Tem algum comunicado novo?",
            "Quando é a próxima reunião?",
            "Aviso sobre o feriado",
            "Haverá treinamento esta semana?",
            "Último anúncio da diretoria",
        ],
    )
    def test_announcement_queries(self, query):
        assert classify_query(query) is QueryType.ANNOUNCEMENT

    def test_general_query(self):
        assert classify_query("O que a empresa faz?") is QueryType.GENERAL

    def test_employee_terms_take_precedence(self):
        assert classify_query("ramal para o treinamento") is QueryType.EMPLOYEE

    def test_accent_insensitive_both_ways(self):
        """Accented keyword matches an unaccented query and vice versa."""
        assert classify_query("funcionaria nova") is QueryType.EMPLOYEE
        assert classify_query("Extensão 2010") is QueryType.EMPLOYEE

    @pytest.mark.parametrize("query", ["", "   ", None, 42])
    def test_degenerate_input_is_general(self, query):
        assert classify_query(query) is QueryType.GENERAL

    @given(st.text(max_size=80))
    def test_never_raises(self, query):
        assert classify_query(query) in set(QueryType)


class TestQueryTypeConfig:
    """Test suite for search policies."""

    def test_defaults(self):
        assert DEFAULT_CONFIG == QueryTypeConfig(
            internal_data_threshold=0.4,
            min_internal_results=1,
            internal_data_boost=1.5,
            internal_search_limit=10,
            web_search_limit=15,
            min_similarity=0.1,
        )

    @pytest.mark.parametrize(
        "query, threshold, boost",
        [
            ("ramal do RH", 0.3, 2.0),
            ("comunicado de férias", 0.35, 1.8),
            ("história da empresa", 0.4, 1.3),
        ],
    )
    def test_per_type_overrides(self, query, threshold, boost):
        config = get_config_for_query(query)

        assert config.internal_data_threshold == threshold
        assert config.internal_data_boost == boost
        assert config.min_internal_results == 1
        assert config.internal_search_limit == 10
        assert config.web_search_limit == 15

    def test_config_is_frozen(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_CONFIG.internal_data_boost = 3.0

    def test_merged_rejects_unknown_fields(self):
        with pytest.raises(ValueError, match="Unknown"):
            DEFAULT_CONFIG.merged({"boost": 2.0})


class TestQueryClassifier:
    """Test suite for custom classifiers."""

    def test_custom_terms(self):
        classifier = QueryClassifier(employee_terms=["crachá"], announcement_terms=["evento"])

        assert classifier.classify("perdi meu cracha") is QueryType.EMPLOYEE
        assert classifier.classify("próximo evento") is QueryType.ANNOUNCEMENT
        assert classifier.classify("ramal") is QueryType.GENERAL

    def test_custom_overrides(self):
        classifier = QueryClassifier(
            overrides={QueryType.EMPLOYEE: {"internal_data_boost": 3.0}}
        )

        assert classifier.config_for("ramal").internal_data_boost == 3.0
        assert classifier.config_for("história") == DEFAULT_CONFIG

    def test_from_settings(self):
        classifier = QueryClassifier.from_settings(
            SearchSettings(internal_search_limit=4, web_search_limit=2, policy_min_similarity=0.2)
        )

        config = classifier.config_for("ramal")
        assert config.internal_search_limit == 4
        assert config.web_search_limit == 2
        assert config.min_similarity == 0.2
        assert config.internal_data_boost == 2.0
