"""
Gemini embeddings behind the LangChain ``Embeddings`` interface.

Review chunks are embedded with task type ``RETRIEVAL_DOCUMENT`` and search
queries with ``RETRIEVAL_QUERY``. Texts go to the API in request groups of
``request_size``, independent of the ingestion batch size.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from google import genai
from google.genai import types
from langchain_core.embeddings import Embeddings

from review_rag.errors import EmbeddingError

logger = logging.getLogger(__name__)

DOCUMENT_TASK = "RETRIEVAL_DOCUMENT"
QUERY_TASK = "RETRIEVAL_QUERY"


class GeminiEmbeddings(Embeddings):
    def __init__(
        self,
        client: genai.Client,
        model: str = "text-embedding-004",
        request_size: int = 16,
        output_dimensionality: Optional[int] = None,
    ) -> None:
        if request_size < 1:
            raise ValueError("request_size must be at least 1")
        self.client = client
        self.model = model
        self.request_size = request_size
        self.output_dimensionality = output_dimensionality

    def embed_documents(self, texts: List[str]) -> List[List[float]]:
        vectors: List[List[float]] = []
        for start in range(0, len(texts), self.request_size):
            group = texts[start : start + self.request_size]
            vectors.extend(self._embed_group(group, DOCUMENT_TASK, first=start, total=len(texts)))
        return vectors

    def embed_query(self, text: str) -> List[float]:
        return self._embed_group([text], QUERY_TASK, first=0, total=1)[0]

    def _embed_group(
        self,
        group: Sequence[str],
        task_type: str,
        first: int,
        total: int,
    ) -> List[List[float]]:
        """Embed one request group; ``first``/``total`` locate it in the caller's batch."""
        where = f"texts {first + 1}-{first + len(group)} of {total} ({task_type})"
        response = self.client.models.embed_content(
            model=self.model,
            contents=list(group),
            config=types.EmbedContentConfig(
                task_type=task_type,
                output_dimensionality=self.output_dimensionality,
            ),
        )
        embeddings = getattr(response, "embeddings", None)
        if not embeddings:
            raise EmbeddingError(f"Gemini returned no embeddings for {where}")
        if len(embeddings) != len(group):
            raise EmbeddingError(
                f"Gemini returned {len(embeddings)} embeddings for {where}"
            )
        logger.debug("Embedded %s", where)
        return [list(embedding.values) for embedding in embeddings]
