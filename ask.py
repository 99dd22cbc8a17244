from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from review_rag.embeddings import GeminiEmbeddings
from review_rag.errors import (
    InputMissingError,
    ModelError,
    SearchError,
    StoreUnavailableError,
)
from review_rag.gemini_client import build_chat, build_client
from review_rag.observability import build_langfuse, end_trace, flush, retrieval_payload, start_trace
from review_rag.rag_pipeline import RagPipeline
from review_rag.retriever import ReviewRetriever
from review_rag.settings import configure_logging, load_settings
from review_rag.vector_store import open_gateway

logger = logging.getLogger("ask")

USAGE = 'Usage: python ask.py "your question"'


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Answer a question from airline reviews (retrieval-augmented generation).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python ask.py "How do passengers rate legroom in Delta economy?"
    python ask.py Which airlines get complaints about lost baggage
        """,
    )
    parser.add_argument("question", nargs="*", help="Question text (multiple words are joined)")
    args = parser.parse_args(argv)

    print("=== Airline Review RAG ===\n")

    question = " ".join(args.question).strip()
    if not question:
        print(USAGE)
        return 1

    settings = load_settings()
    configure_logging(settings.log_level)
    langfuse = build_langfuse(settings)

    client = build_client(settings)
    embeddings = GeminiEmbeddings(client=client, model=settings.embedding_model)
    try:
        gateway = open_gateway(settings, embeddings)
    except (InputMissingError, StoreUnavailableError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    retriever = ReviewRetriever(
        gateway=gateway,
        top_k=settings.top_k,
        similarity_threshold=settings.similarity_threshold,
    )
    pipeline = RagPipeline(retriever=retriever, llm_fn=build_chat(settings, client))

    print(f"Question: \"{question}\"\n")
    trace = start_trace(langfuse, "ask", {"question": question})
    try:
        result = pipeline.ask(question)
    except (SearchError, ModelError) as e:
        logger.error("RAG processing failed: %s", e)
        print(f"Error in RAG processing: {e}", file=sys.stderr)
        end_trace(trace, {}, error=e)
        flush(langfuse)
        return 1

    print("=" * 60)
    print("ANSWER:")
    print("=" * 60)
    print(result.answer)
    print("=" * 60)
    print(f"\nContext reviews used: {len(result.retrieval.documents)}")

    end_trace(trace, {"answer": result.answer, "retrieval": retrieval_payload(result.retrieval)})
    flush(langfuse)
    return 0


if __name__ == "__main__":
    sys.exit(main())
