"""
Tests for the ingest, retrieve and ask command-line entry points.

The composition root of each script is patched so no Gemini, Qdrant or
FAISS client is created.
"""

from pathlib import Path
from unittest.mock import Mock

import pytest

import ask
import ingest
import retrieve
from review_rag.errors import EmbeddingError, ModelError, SearchError, StoreUnavailableError
from review_rag.settings import Settings
from review_rag.vector_store import VectorStoreGateway

from conftest import FakeVectorStore, make_row, review_doc, write_csv

LONG = "the seats were comfortable and the crew served hot meals on time"


def make_settings(csv_path: Path, **overrides) -> Settings:
    values = dict(
        gcp_project="test-project",
        gcp_location="us-central1",
        google_api_key=None,
        gemini_model="gemini-2.0-flash",
        embedding_model="text-embedding-004",
        csv_path=csv_path,
        vector_store="qdrant",
        qdrant_path=csv_path.parent / "qdrant",
        qdrant_url=None,
        qdrant_collection="airline_reviews",
        faiss_dir=csv_path.parent / "faiss",
        tokenizer="whitespace",
        top_k=5,
        similarity_threshold=0.3,
        batch_size=2,
        log_level="WARNING",
        langfuse_public_key=None,
        langfuse_secret_key=None,
        langfuse_host=None,
    )
    values.update(overrides)
    return Settings(**values)


def wire(monkeypatch, module, settings, gateway, chat=None):
    monkeypatch.setattr(module, "load_settings", lambda: settings)
    monkeypatch.setattr(module, "build_client", Mock())
    monkeypatch.setattr(module, "GeminiEmbeddings", Mock())
    monkeypatch.setattr(module, "open_gateway", lambda *args, **kwargs: gateway)
    if chat is not None:
        monkeypatch.setattr(module, "build_chat", lambda *args, **kwargs: chat)


def no_settings():
    raise AssertionError("settings must not be loaded for usage errors")


# ============================================================================
# ingest
# ============================================================================

@pytest.mark.parametrize("limit", ["abc", "1.5", "-3"])
def test_ingest_rejects_bad_limit(monkeypatch, capsys, limit):
    monkeypatch.setattr(ingest, "load_settings", no_settings)
    assert ingest.main([limit]) == 1
    assert "Usage: python ingest.py [number]" in capsys.readouterr().out


def test_ingest_with_limit(monkeypatch, tmp_path, capsys):
    csv_path = write_csv(tmp_path / "reviews.csv", [
        make_row(body=f"{LONG} one"),
        make_row(body=""),
        make_row(body=f"{LONG} two"),
        make_row(body=f"{LONG} three"),
        make_row(body=f"{LONG} four"),
    ])
    store = FakeVectorStore()
    wire(monkeypatch, ingest, make_settings(csv_path), VectorStoreGateway(store=store))

    assert ingest.main(["3"]) == 0

    stored = [doc for documents, _ in store.add_calls for doc in documents]
    assert [doc.metadata["document_id"] for doc in stored] == ["id-0", "id-2", "id-3"]
    assert [len(documents) for documents, _ in store.add_calls] == [2, 1]
    out = capsys.readouterr().out
    assert "Storing batch 1 (2 documents)..." in out
    assert "INGESTION COMPLETE" in out


def test_ingest_twice_offers_same_ids(monkeypatch, tmp_path):
    csv_path = write_csv(tmp_path / "reviews.csv", [make_row(body=f"{LONG} {i}") for i in range(4)])
    runs = []
    for _ in range(2):
        store = FakeVectorStore()
        wire(monkeypatch, ingest, make_settings(csv_path), VectorStoreGateway(store=store))
        assert ingest.main([]) == 0
        runs.append({chunk_id for _, ids in store.add_calls for chunk_id in ids})
    assert runs[0] == runs[1]
    assert len(runs[0]) == 4


def test_ingest_missing_csv(monkeypatch, tmp_path):
    wire(monkeypatch, ingest, make_settings(tmp_path / "missing.csv"), Mock())
    assert ingest.main([]) == 1


def test_ingest_store_failure(monkeypatch, tmp_path):
    csv_path = write_csv(tmp_path / "reviews.csv", [make_row(body=f"{LONG} {i}") for i in range(5)])
    gateway = Mock()
    gateway.add.side_effect = [None, StoreUnavailableError("down")]
    wire(monkeypatch, ingest, make_settings(csv_path), gateway)

    assert ingest.main([]) == 1
    assert gateway.add.call_count == 2


def test_ingest_embedder_failure_exits_1(monkeypatch, tmp_path, capsys):
    csv_path = write_csv(tmp_path / "reviews.csv", [make_row(body=f"{LONG} {i}") for i in range(3)])
    store = Mock()
    store.add_documents.side_effect = EmbeddingError("Gemini returned no embeddings for texts 1-2 of 2")
    wire(monkeypatch, ingest, make_settings(csv_path), VectorStoreGateway(store=store))

    assert ingest.main([]) == 1

    err = capsys.readouterr().err
    assert "Gemini returned no embeddings" in err
    assert "Batches written before the failure remain in the store." in err


# ============================================================================
# retrieve
# ============================================================================

def test_retrieve_requires_query(monkeypatch, capsys):
    monkeypatch.setattr(retrieve, "load_settings", no_settings)
    assert retrieve.main([]) == 1
    assert retrieve.main(["   "]) == 1
    assert retrieve.main(["--smart"]) == 1
    assert "Usage:" in capsys.readouterr().out


def test_retrieve_basic(monkeypatch, tmp_path, capsys):
    store = FakeVectorStore([review_doc("great legroom economy seats", document_id="id-0")])
    wire(monkeypatch, retrieve, make_settings(tmp_path / "r.csv"), VectorStoreGateway(store=store))

    assert retrieve.main(["legroom", "economy"]) == 0

    assert store.search_calls[0]["query"] == "legroom economy"
    out = capsys.readouterr().out
    assert "Result #1:" in out
    assert "Airline: Delta" in out
    assert "Rating: 8.0/10" in out
    assert "Recommended: Yes" in out
    assert "great legroom economy seats" in out


def test_retrieve_smart_flag_anywhere(monkeypatch, tmp_path, capsys):
    store = FakeVectorStore([
        review_doc("rude crew late departure", document_id="id-0", airline="Delta"),
        review_doc("rude crew late departure", document_id="id-1", airline="United"),
    ])
    chat = Mock(return_value="ENHANCED: rude crew late departure\nAIRLINE: United\nMIN_RATING: NONE\nSEAT_TYPE: NONE")
    wire(monkeypatch, retrieve, make_settings(tmp_path / "r.csv"), VectorStoreGateway(store=store), chat=chat)

    assert retrieve.main(["rude", "--smart", "united", "crew"]) == 0

    assert "rude united crew" in chat.call_args.args[0]
    out = capsys.readouterr().out
    assert "airline_name == 'United'" in out
    assert "Result #1:" in out
    assert "Result #2:" not in out


def test_retrieve_search_error_shows_zero_results(monkeypatch, tmp_path, capsys):
    gateway = Mock()
    gateway.search_with_scores.side_effect = SearchError("collection missing")
    wire(monkeypatch, retrieve, make_settings(tmp_path / "r.csv"), gateway)

    assert retrieve.main(["legroom"]) == 0
    assert "No matching documents found." in capsys.readouterr().out


# ============================================================================
# ask
# ============================================================================

def test_ask_requires_question(monkeypatch, capsys):
    monkeypatch.setattr(ask, "load_settings", no_settings)
    assert ask.main([]) == 1
    assert "Usage:" in capsys.readouterr().out


def test_ask_prints_answer(monkeypatch, tmp_path, capsys):
    store = FakeVectorStore([review_doc("great legroom economy seats")])
    chat = Mock(return_value="Legroom is praised.")
    wire(monkeypatch, ask, make_settings(tmp_path / "r.csv"), VectorStoreGateway(store=store), chat=chat)

    assert ask.main(["legroom", "economy", "seats"]) == 0

    prompt = chat.call_args.args[0]
    assert "great legroom economy seats" in prompt
    assert "Query: legroom economy seats" in prompt
    out = capsys.readouterr().out
    assert "ANSWER:" in out
    assert "Legroom is praised." in out


def test_ask_model_error_exits_1(monkeypatch, tmp_path):
    chat = Mock(side_effect=ModelError("quota"))
    wire(monkeypatch, ask, make_settings(tmp_path / "r.csv"), VectorStoreGateway(store=FakeVectorStore()), chat=chat)
    assert ask.main(["anything"]) == 1
