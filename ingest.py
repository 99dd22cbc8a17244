from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from review_rag.batch_writer import write_in_batches
from review_rag.chunking import TokenWindowSplitter, build_tokenizer, split_documents
from review_rag.documents import load_documents
from review_rag.embeddings import GeminiEmbeddings
from review_rag.errors import (
    BadArgumentError,
    InputMissingError,
    StoreRejectedError,
    StoreUnavailableError,
)
from review_rag.gemini_client import build_client
from review_rag.settings import configure_logging, load_settings
from review_rag.vector_store import open_gateway

logger = logging.getLogger("ingest")

USAGE = "Usage: python ingest.py [number]"


def parse_limit(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        limit = int(raw.strip())
    except ValueError as exc:
        raise BadArgumentError(f"Invalid number format: {raw!r}") from exc
    if limit < 0:
        raise BadArgumentError(f"Limit must not be negative: {limit}")
    return limit


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Load airline reviews from CSV into the vector store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Ingest every review
    python ingest.py

    # Quick test with the first 100 reviews
    python ingest.py 100

    # Use FAISS instead of Qdrant
    VECTOR_STORE=faiss python ingest.py 100
        """,
    )
    parser.add_argument("limit", nargs="?", default=None, help="Maximum number of reviews to ingest")
    args = parser.parse_args(argv)

    print("=== RAG Data Ingestor ===\n")

    try:
        limit = parse_limit(args.limit)
    except BadArgumentError:
        print(f"Invalid number format. {USAGE}")
        return 1

    if limit is None:
        print("Ingesting all records...")
    else:
        print(f"Ingesting {limit} records...")

    settings = load_settings()
    configure_logging(settings.log_level)

    try:
        # Step 1: Read and project CSV rows
        print("\nStep 1: Reading CSV file...")
        documents = load_documents(settings.csv_path, limit=limit)
        print(f"  Read {len(documents)} reviews from CSV")

        # Step 2: Split into token windows
        print("\nStep 2: Splitting documents into chunks...")
        splitter = TokenWindowSplitter(tokenizer=build_tokenizer(settings.tokenizer))
        chunks = split_documents(documents, splitter)
        print(f"  Split into {len(chunks)} chunks")

        # Step 3: Embed and store
        print("\nStep 3: Storing in vector database...")
        client = build_client(settings)
        embeddings = GeminiEmbeddings(client=client, model=settings.embedding_model)
        gateway = open_gateway(settings, embeddings, for_ingest=True)
        summary = write_in_batches(
            gateway,
            chunks,
            batch_size=settings.batch_size,
            on_batch=lambda number, size: print(f"  Storing batch {number} ({size} documents)..."),
        )
        print(f"  Successfully stored all chunks in {settings.vector_store}")
    except InputMissingError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (StoreUnavailableError, StoreRejectedError) as e:
        logger.error("Ingestion aborted: %s", e)
        print(f"Error during ingestion: {e}", file=sys.stderr)
        print("Batches written before the failure remain in the store.", file=sys.stderr)
        return 1

    # Summary
    print("\n" + "=" * 60)
    print("INGESTION COMPLETE")
    print("=" * 60)
    print(f"  Reviews read:       {len(documents)}")
    print(f"  Chunks created:     {len(chunks)}")
    print(f"  Batches written:    {summary.batches}")
    print(f"  Vector store:       {settings.vector_store}")
    if settings.vector_store == "qdrant":
        print(f"  Qdrant collection:  {settings.qdrant_collection}")
    else:
        print(f"  FAISS index:        {settings.faiss_dir}")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
