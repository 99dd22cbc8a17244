"""
Shared fixtures for review_rag tests.

Nothing here talks to Gemini, Qdrant or FAISS: the vector store is an
in-memory fake that scores by word overlap, and chat models are plain
functions.
"""

import re

import pytest
from langchain_core.documents import Document

from review_rag.chunking import TokenWindowSplitter, WhitespaceTokenizer
from review_rag.vector_store import VectorStoreGateway

HEADER = ",".join(f"col{i}" for i in range(20))


def make_row(
    body="The flight was great",
    airline="Delta",
    rating="9",
    title="",
    seat="Economy",
    route="JFK-LAX",
    recommended="yes",
    columns=20,
):
    """Build one CSV line with values at the columns the reader consumes."""
    fields = [""] * columns
    values = {1: airline, 2: rating, 3: title, 6: body, 9: seat, 10: route, 19: recommended}
    for index, value in values.items():
        if index < columns:
            fields[index] = f'"{value}"' if "," in value else value
    return ",".join(fields)


def write_csv(path, rows):
    path.write_text("\n".join([HEADER] + list(rows)) + "\n", encoding="utf-8")
    return path


def _words(text):
    return set(re.findall(r"\w+", text.lower()))


class FakeVectorStore:
    """In-memory store scoring documents by Jaccard word overlap."""

    def __init__(self, documents=None):
        self.documents = []
        self.add_calls = []
        self.search_calls = []
        if documents:
            self.add_documents(documents)

    def add_documents(self, documents, ids=None):
        self.add_calls.append((list(documents), ids))
        self.documents.extend(documents)
        return ids or []

    def similarity_search_with_relevance_scores(self, query, k=4, score_threshold=None, filter=None):
        self.search_calls.append({"query": query, "k": k, "score_threshold": score_threshold, "filter": filter})
        query_words = _words(query)
        scored = []
        for doc in self.documents:
            if filter is not None and not filter(doc.metadata):
                continue
            doc_words = _words(doc.page_content)
            union = query_words | doc_words
            score = len(query_words & doc_words) / len(union) if union else 0.0
            scored.append((doc, score))
        scored.sort(key=lambda pair: pair[1], reverse=True)
        if score_threshold is not None:
            scored = [pair for pair in scored if pair[1] >= score_threshold]
        return scored[:k]


def review_doc(content, document_id="id-0", airline="Delta", rating=8.0, seat="Economy"):
    return Document(
        page_content=content,
        metadata={
            "document_id": document_id,
            "airline_name": airline,
            "overall_rating": rating,
            "review_title": "",
            "seat_type": seat,
            "route": "JFK-LAX",
            "recommended": True,
        },
    )


@pytest.fixture
def fake_store():
    return FakeVectorStore()


@pytest.fixture
def seeded_store():
    return FakeVectorStore([
        review_doc("great legroom economy seats", document_id="id-0"),
        review_doc("lost baggage at the transfer desk", document_id="id-1", airline="United", rating=2.0),
    ])


@pytest.fixture
def gateway(seeded_store):
    return VectorStoreGateway(store=seeded_store)


@pytest.fixture
def word_splitter():
    return TokenWindowSplitter(tokenizer=WhitespaceTokenizer())
