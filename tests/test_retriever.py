"""
Tests for basic and smart retrieval.
"""

from unittest.mock import Mock

import pytest

from review_rag.errors import BadArgumentError, ModelError
from review_rag.models import SearchRequest
from review_rag.query_enhancer import QueryEnhancer
from review_rag.retriever import ReviewRetriever
from review_rag.vector_store import VectorStoreGateway

from conftest import FakeVectorStore, review_doc


def test_defaults():
    retriever = ReviewRetriever(gateway=Mock())
    request = retriever.build_request("legroom")
    assert request == SearchRequest(query="legroom", top_k=5, similarity_threshold=0.3)
    assert request.filter_expression is None


def test_basic_retrieve(gateway):
    result = ReviewRetriever(gateway=gateway).retrieve("legroom economy")

    assert [doc.metadata["document_id"] for doc in result.documents] == ["id-0"]
    assert result.scores == [pytest.approx(0.5)]
    assert not result.smart


def test_basic_retrieve_with_high_threshold(gateway):
    result = ReviewRetriever(gateway=gateway, similarity_threshold=0.99).retrieve("legroom economy")
    assert result.documents == []


def test_smart_retrieve_uses_rewrite_and_filter():
    store = FakeVectorStore([
        review_doc("rude crew and late departure", document_id="id-0", airline="Delta", rating=2.0),
        review_doc("rude crew and late departure", document_id="id-1", airline="United", rating=8.0),
    ])
    enhancer = QueryEnhancer(llm_fn=lambda prompt: (
        "ENHANCED: rude crew late departure\nAIRLINE: United\nMIN_RATING: 7.5\nSEAT_TYPE: NONE"
    ))
    retriever = ReviewRetriever(gateway=VectorStoreGateway(store=store), enhancer=enhancer)

    result = retriever.smart_retrieve("were united flight attendants rude")

    assert result.smart
    assert result.request.query == "rude crew late departure"
    assert result.request.filter_expression == "airline_name == 'United' && overall_rating >= 7.5"
    assert [doc.metadata["document_id"] for doc in result.documents] == ["id-1"]


def test_smart_retrieve_null_model_response_has_no_filter():
    gateway = Mock()
    gateway.search_with_scores.return_value = []
    retriever = ReviewRetriever(gateway=gateway, enhancer=QueryEnhancer(llm_fn=lambda prompt: None))

    result = retriever.smart_retrieve("lost bags")

    request = gateway.search_with_scores.call_args.args[0]
    assert request.query == "lost bags"
    assert request.filter_expression is None
    assert result.enhancement.filters == {}


def test_smart_retrieve_survives_model_error():
    def failing(prompt):
        raise ModelError("boom")

    gateway = Mock()
    gateway.search_with_scores.return_value = []
    retriever = ReviewRetriever(gateway=gateway, enhancer=QueryEnhancer(llm_fn=failing))

    result = retriever.smart_retrieve("lost bags")
    assert result.request.query == "lost bags"


def test_smart_retrieve_requires_enhancer():
    with pytest.raises(ValueError):
        ReviewRetriever(gateway=Mock()).smart_retrieve("q")


@pytest.mark.parametrize("kwargs", [
    {"query": "   "},
    {"query": "q", "top_k": 0},
    {"query": "q", "similarity_threshold": 1.5},
    {"query": "q", "similarity_threshold": -0.1},
])
def test_invalid_search_requests(kwargs):
    with pytest.raises(BadArgumentError):
        SearchRequest(**kwargs)


def test_empty_filter_expression_means_no_filter():
    assert SearchRequest(query="q", filter_expression="").filter_expression is None
