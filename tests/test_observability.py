"""
Tests for the Langfuse tracing helpers (client mocked).
"""

from unittest.mock import Mock

from review_rag.models import EnhancementResult, RetrievalResult, SearchRequest
from review_rag.observability import end_trace, flush, retrieval_payload, start_trace

from conftest import review_doc


def test_retrieval_payload_records_request_and_hits():
    result = RetrievalResult(
        documents=[review_doc("legroom", document_id="id-4")],
        request=SearchRequest(query="legroom", filter_expression="airline_name == 'Delta'"),
        scores=[0.82],
        enhancement=EnhancementResult(enhanced_query="legroom", filters={"airline_name": "Delta"}),
    )

    payload = retrieval_payload(result)

    assert payload["query"] == "legroom"
    assert payload["top_k"] == 5
    assert payload["filter_expression"] == "airline_name == 'Delta'"
    assert payload["hits"] == [{"document_id": "id-4", "score": 0.82}]
    assert payload["filters"] == {"airline_name": "Delta"}


def test_basic_retrieval_payload_has_no_filters():
    result = RetrievalResult(documents=[], request=SearchRequest(query="wifi"))
    assert "filters" not in retrieval_payload(result)


def test_helpers_are_noops_without_langfuse():
    assert start_trace(None, "retrieve", {"query": "q"}) is None
    end_trace(None, {"answer": "a"})
    flush(None)


def test_trace_lifecycle():
    langfuse = Mock()
    trace = start_trace(langfuse, "ask", {"question": "q"})

    end_trace(trace, {}, error=RuntimeError("quota"))
    flush(langfuse)

    langfuse.trace.assert_called_once_with(name="review-ask", input={"question": "q"})
    trace.update.assert_called_once_with(output={"error": "quota"}, level="ERROR")
    langfuse.flush.assert_called_once()
