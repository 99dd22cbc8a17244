"""
Vector store gateway.

A narrow adapter over a LangChain ``VectorStore`` exposing exactly what the
pipeline needs: ``add(batch)`` for ingestion and ``search(request)`` for
retrieval. Filter expressions are parsed here and translated into the
native filter of the backing store. Qdrant (local path or server) is the
default backend; FAISS is kept on disk as an alternative.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Iterator, List, Optional, Tuple

from google.genai import errors as genai_errors
from langchain_core.documents import Document
from langchain_core.embeddings import Embeddings
from langchain_core.vectorstores import VectorStore
from qdrant_client.http.exceptions import ResponseHandlingException

from review_rag.errors import (
    InputMissingError,
    SearchError,
    StoreRejectedError,
    StoreUnavailableError,
)
from review_rag.filters import (
    FilterClause,
    parse_filter_expression,
    to_metadata_predicate,
    to_qdrant_filter,
)
from review_rag.models import SearchRequest
from review_rag.settings import Settings

logger = logging.getLogger(__name__)

# Transient failures of the store or of the embedder it wraps; anything else
# raised while writing is a rejection.
UNAVAILABLE_ERRORS = (
    ConnectionError,
    TimeoutError,
    ResponseHandlingException,
    genai_errors.ServerError,
)

FilterTranslator = Callable[[List[FilterClause]], Any]


@contextmanager
def store_write_errors(action: str) -> Iterator[None]:
    """Translate failures while ``action`` runs into StoreUnavailable/StoreRejected."""
    try:
        yield
    except (StoreUnavailableError, StoreRejectedError):
        raise
    except UNAVAILABLE_ERRORS as exc:
        logger.error("Vector store unavailable for %s: %s", action, exc)
        raise StoreUnavailableError(f"Vector store unavailable for {action}: {exc}") from exc
    except Exception as exc:
        logger.error("Vector store rejected %s: %s", action, exc)
        raise StoreRejectedError(f"Vector store rejected {action}: {exc}") from exc


class VectorStoreGateway:
    """Add chunks to and search a LangChain vector store.

    Scores come from ``similarity_search_with_relevance_scores``, which maps
    each backend's distance into ``[0, 1]``.
    """

    def __init__(
        self,
        store: Optional[VectorStore],
        filter_translator: FilterTranslator = to_metadata_predicate,
    ) -> None:
        self.store = store
        self._translate_filter = filter_translator

    def _require_store(self) -> VectorStore:
        if self.store is None:
            raise SearchError("Vector store is empty. Run ingest.py first.")
        return self.store

    def _write(self, batch: List[Document], ids: Optional[List[str]]) -> None:
        self._require_store().add_documents(batch, ids=ids)

    def _scored_search(self, request: SearchRequest, **kwargs: Any) -> List[Tuple[Document, float]]:
        return self._require_store().similarity_search_with_relevance_scores(
            request.query,
            k=request.top_k,
            score_threshold=request.similarity_threshold,
            **kwargs,
        )

    def add(self, batch: List[Document]) -> None:
        if not batch:
            return
        ids = [doc.id for doc in batch] if all(doc.id for doc in batch) else None
        with store_write_errors(f"batch of {len(batch)} chunks"):
            self._write(batch, ids)

    def search_with_scores(self, request: SearchRequest) -> List[Tuple[Document, float]]:
        """Return ``(document, similarity)`` pairs, best first, at most ``top_k``."""
        kwargs = {}
        if request.filter_expression:
            clauses = parse_filter_expression(request.filter_expression)
            kwargs["filter"] = self._translate_filter(clauses)

        try:
            results = self._scored_search(request, **kwargs)
        except SearchError:
            raise
        except Exception as exc:
            logger.error("Search failed for %r: %s", request.query, exc)
            raise SearchError(f"Search failed: {exc}") from exc

        if not results:
            return []
        hits = [(doc, score) for doc, score in results if score >= request.similarity_threshold]
        return hits[: request.top_k]

    def search(self, request: SearchRequest) -> List[Document]:
        return [doc for doc, _ in self.search_with_scores(request)]


class QdrantGateway(VectorStoreGateway):
    """Gateway over a cosine Qdrant collection.

    Qdrant's relevance scores are rescaled to ``(cos + 1) / 2``, so the raw
    score from ``similarity_search_with_score`` is used instead: it is the
    cosine similarity itself and Qdrant applies ``score_threshold`` to it.
    """

    def __init__(self, store: VectorStore) -> None:
        super().__init__(store=store, filter_translator=to_qdrant_filter)

    def _scored_search(self, request: SearchRequest, **kwargs: Any) -> List[Tuple[Document, float]]:
        return self._require_store().similarity_search_with_score(
            request.query,
            k=request.top_k,
            score_threshold=request.similarity_threshold,
            **kwargs,
        )


class FaissGateway(VectorStoreGateway):
    """FAISS-backed gateway persisted to ``directory`` after every batch.

    FAISS cannot hold an empty index without knowing the vector size, so the
    index is created from the first batch.
    """

    def __init__(self, embeddings: Embeddings, directory: Path) -> None:
        super().__init__(store=None, filter_translator=to_metadata_predicate)
        self.embeddings = embeddings
        self.directory = directory
        if (directory / "index.faiss").exists():
            self.store = self._load()

    def _load(self) -> VectorStore:
        from langchain_community.vectorstores import FAISS

        return FAISS.load_local(
            str(self.directory),
            self.embeddings,
            allow_dangerous_deserialization=True,
        )

    def _write(self, batch: List[Document], ids: Optional[List[str]]) -> None:
        from langchain_community.vectorstores import FAISS

        if self.store is None:
            self.store = FAISS.from_documents(batch, self.embeddings, ids=ids)
        else:
            self.store.add_documents(batch, ids=ids)
        self.directory.mkdir(parents=True, exist_ok=True)
        self.store.save_local(str(self.directory))


def build_qdrant_store(
    settings: Settings,
    embeddings: Embeddings,
    create_if_missing: bool = False,
) -> VectorStore:
    """Open the Qdrant collection. Use QDRANT_URL for a server; else local storage."""
    from langchain_qdrant import QdrantVectorStore
    from qdrant_client import QdrantClient
    from qdrant_client.http import models

    if settings.qdrant_url:
        client = QdrantClient(url=settings.qdrant_url)
    else:
        settings.qdrant_path.mkdir(parents=True, exist_ok=True)
        try:
            client = QdrantClient(path=str(settings.qdrant_path))
        except RuntimeError as e:
            if "already accessed" in str(e):
                raise StoreUnavailableError(
                    f"Qdrant storage is locked: {settings.qdrant_path}\n"
                    "Another process (ingest, retrieve or ask) is using it."
                ) from e
            raise

    try:
        exists = client.collection_exists(settings.qdrant_collection)
    except UNAVAILABLE_ERRORS as exc:
        raise StoreUnavailableError(f"Qdrant unavailable: {exc}") from exc

    if not exists:
        if not create_if_missing:
            raise InputMissingError(
                f"Qdrant collection not found: {settings.qdrant_collection}. Run ingest.py first."
            )
        with store_write_errors(f"creating collection {settings.qdrant_collection}"):
            vector_size = len(embeddings.embed_query("vector size probe"))
            client.create_collection(
                collection_name=settings.qdrant_collection,
                vectors_config=models.VectorParams(size=vector_size, distance=models.Distance.COSINE),
            )
        logger.info("Created Qdrant collection %s (dim=%d)", settings.qdrant_collection, vector_size)

    return QdrantVectorStore(
        client=client,
        collection_name=settings.qdrant_collection,
        embedding=embeddings,
    )


def open_gateway(
    settings: Settings,
    embeddings: Embeddings,
    for_ingest: bool = False,
) -> VectorStoreGateway:
    if settings.vector_store == "faiss":
        if not for_ingest and not (settings.faiss_dir / "index.faiss").exists():
            raise InputMissingError(f"Vectorstore not found: {settings.faiss_dir}. Run ingest.py first.")
        return FaissGateway(embeddings=embeddings, directory=settings.faiss_dir)

    store = build_qdrant_store(settings, embeddings, create_if_missing=for_ingest)
    return QdrantGateway(store=store)
