"""
Review retrieval front-end.

Basic mode runs the user's query as-is. Smart mode first asks the chat model
to rewrite the query and extract metadata filters, then searches with the
rewritten query and the compiled filter expression.
"""
from __future__ import annotations

from typing import Optional

from review_rag.filters import compile_filter
from review_rag.models import (
    DEFAULT_SIMILARITY_THRESHOLD,
    DEFAULT_TOP_K,
    EnhancementResult,
    RetrievalResult,
    SearchRequest,
)
from review_rag.query_enhancer import QueryEnhancer
from review_rag.vector_store import VectorStoreGateway


class ReviewRetriever:
    """Builds search requests and runs them through the vector store gateway."""

    def __init__(
        self,
        gateway: VectorStoreGateway,
        enhancer: Optional[QueryEnhancer] = None,
        top_k: int = DEFAULT_TOP_K,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ):
        self.gateway = gateway
        self.enhancer = enhancer
        self.top_k = top_k
        self.similarity_threshold = similarity_threshold

    def build_request(
        self,
        query: str,
        enhancement: Optional[EnhancementResult] = None,
    ) -> SearchRequest:
        if enhancement is None:
            return SearchRequest(
                query=query,
                top_k=self.top_k,
                similarity_threshold=self.similarity_threshold,
            )
        expression = compile_filter(enhancement.filters) if enhancement.filters else ""
        return SearchRequest(
            query=enhancement.enhanced_query,
            top_k=self.top_k,
            similarity_threshold=self.similarity_threshold,
            filter_expression=expression or None,
        )

    def _run(self, request: SearchRequest, enhancement: Optional[EnhancementResult]) -> RetrievalResult:
        hits = self.gateway.search_with_scores(request)
        return RetrievalResult(
            documents=[doc for doc, _ in hits],
            request=request,
            scores=[score for _, score in hits],
            enhancement=enhancement,
        )

    def retrieve(self, query: str) -> RetrievalResult:
        """Plain similarity search."""
        return self._run(self.build_request(query), enhancement=None)

    def smart_retrieve(self, query: str) -> RetrievalResult:
        """Query rewrite and filter extraction, then search."""
        if self.enhancer is None:
            raise ValueError("Smart retrieval needs a QueryEnhancer")
        enhancement = self.enhancer.enhance(query)
        return self._run(self.build_request(query, enhancement), enhancement=enhancement)
