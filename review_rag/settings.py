from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from pathlib import Path

VECTOR_STORES = ("qdrant", "faiss")
TOKENIZERS = ("tiktoken", "whitespace")


@dataclass(frozen=True)
class Settings:
    gcp_project: str
    gcp_location: str
    google_api_key: str | None
    gemini_model: str
    embedding_model: str
    csv_path: Path
    vector_store: str
    qdrant_path: Path
    qdrant_url: str | None
    qdrant_collection: str
    faiss_dir: Path
    tokenizer: str
    top_k: int
    similarity_threshold: float
    batch_size: int
    log_level: str
    langfuse_public_key: str | None
    langfuse_secret_key: str | None
    langfuse_host: str | None


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def load_settings() -> Settings:
    repo_root = Path(__file__).resolve().parents[1]
    gcp_project = os.environ.get("GCP_PROJECT", "").strip()
    gcp_location = os.environ.get("GCP_LOCATION", "us-central1").strip()
    google_api_key = os.environ.get("GOOGLE_API_KEY", "").strip() or None
    gemini_model = os.environ.get("GEMINI_MODEL", "gemini-2.0-flash").strip()
    embedding_model = os.environ.get("EMBEDDING_MODEL", "text-embedding-004").strip()

    csv_path = Path(os.environ.get("REVIEWS_CSV", str(repo_root / "data" / "airline_review.csv")))
    vector_store = os.environ.get("VECTOR_STORE", "qdrant").strip().lower()
    qdrant_path = Path(os.environ.get("QDRANT_PATH", str(repo_root / "qdrant_local")))
    qdrant_url = os.environ.get("QDRANT_URL", "").strip() or None
    qdrant_collection = os.environ.get("QDRANT_COLLECTION", "airline_reviews").strip()
    faiss_dir = Path(os.environ.get("FAISS_DIR", str(repo_root / "vectorstore_reviews")))
    tokenizer = os.environ.get("TOKENIZER", "tiktoken").strip().lower()

    top_k = _env_int("RETRIEVAL_TOP_K", 5)
    similarity_threshold = _env_float("SIMILARITY_THRESHOLD", 0.3)
    batch_size = _env_int("INGEST_BATCH_SIZE", 50)
    log_level = os.environ.get("LOG_LEVEL", "INFO").strip().upper()

    langfuse_public_key = os.environ.get("LANGFUSE_PUBLIC_KEY")
    langfuse_secret_key = os.environ.get("LANGFUSE_SECRET_KEY")
    langfuse_host = os.environ.get("LANGFUSE_HOST")

    if not gcp_project and not google_api_key:
        raise RuntimeError("GCP_PROJECT or GOOGLE_API_KEY must be set. See README for setup instructions.")
    if vector_store not in VECTOR_STORES:
        raise ValueError(f"VECTOR_STORE must be one of {VECTOR_STORES}, got {vector_store!r}")
    if tokenizer not in TOKENIZERS:
        raise ValueError(f"TOKENIZER must be one of {TOKENIZERS}, got {tokenizer!r}")
    if top_k <= 0:
        raise ValueError("RETRIEVAL_TOP_K must be positive")
    if not 0.0 <= similarity_threshold <= 1.0:
        raise ValueError("SIMILARITY_THRESHOLD must be within [0, 1]")
    if batch_size <= 0:
        raise ValueError("INGEST_BATCH_SIZE must be positive")

    return Settings(
        gcp_project=gcp_project,
        gcp_location=gcp_location,
        google_api_key=google_api_key,
        gemini_model=gemini_model,
        embedding_model=embedding_model,
        csv_path=csv_path.expanduser().resolve(),
        vector_store=vector_store,
        qdrant_path=qdrant_path.expanduser().resolve(),
        qdrant_url=qdrant_url,
        qdrant_collection=qdrant_collection,
        faiss_dir=faiss_dir.expanduser().resolve(),
        tokenizer=tokenizer,
        top_k=top_k,
        similarity_threshold=similarity_threshold,
        batch_size=batch_size,
        log_level=log_level,
        langfuse_public_key=langfuse_public_key,
        langfuse_secret_key=langfuse_secret_key,
        langfuse_host=langfuse_host,
    )


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
