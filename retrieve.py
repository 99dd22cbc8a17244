from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from review_rag.embeddings import GeminiEmbeddings
from review_rag.errors import InputMissingError, SearchError, StoreUnavailableError
from review_rag.gemini_client import build_chat, build_client
from review_rag.models import RetrievalResult
from review_rag.observability import build_langfuse, end_trace, flush, retrieval_payload, start_trace
from review_rag.query_enhancer import QueryEnhancer
from review_rag.retriever import ReviewRetriever
from review_rag.settings import configure_logging, load_settings
from review_rag.vector_store import open_gateway

logger = logging.getLogger("retrieve")

USAGE = 'Usage: python retrieve.py "your query" [--smart]'


def join_args(tokens: List[str]) -> str:
    return " ".join(tokens).strip()


def display_request(result: RetrievalResult) -> None:
    request = result.request
    if result.enhancement is not None:
        print(f"  Enhanced query: \"{result.enhancement.enhanced_query}\"")
        print(f"  Filters: {result.enhancement.filters or 'none'}")
        print(f"  Filter expression: {request.filter_expression or '(none)'}")
    print(f"  Top K: {request.top_k}")
    print(f"  Similarity threshold: {request.similarity_threshold}")


def display_results(result: RetrievalResult) -> None:
    if not result.documents:
        print("\nNo matching documents found.")
        return

    print("\n" + "=" * 60)
    for i, doc in enumerate(result.documents, 1):
        metadata = doc.metadata
        print(f"\nResult #{i}:")
        print("-" * 40)
        if i <= len(result.scores):
            print(f"Similarity: {result.scores[i - 1]:.3f}")
        print(f"Airline: {metadata.get('airline_name') or 'Unknown'}")
        print(f"Rating: {metadata.get('overall_rating', 0.0)}/10")
        print(f"Seat Type: {metadata.get('seat_type') or 'Not specified'}")
        print(f"Route: {metadata.get('route') or 'Not specified'}")
        print(f"Recommended: {'Yes' if metadata.get('recommended') is True else 'No'}")

        review_title = metadata.get("review_title")
        if review_title:
            print(f"Title: \"{review_title}\"")

        print("\nFull Review Text:")
        print(doc.page_content or "(No content available)")

    print("\n" + "=" * 60)
    print("\nSearch complete!")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Search airline reviews in the vector store.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Basic similarity search
    python retrieve.py "lost luggage on a long haul flight"

    # Smart search: LLM query rewrite plus metadata filters
    python retrieve.py --smart "comfortable business class seats on Emirates rated 8 or more"
        """,
    )
    parser.add_argument("query", nargs="*", help="Query text (multiple words are joined)")
    parser.add_argument("--smart", action="store_true", help="Rewrite the query and extract filters with the LLM")
    args = parser.parse_intermixed_args(argv)

    mode = "Smart" if args.smart else "Basic"
    print(f"=== RAG Document Retriever ({mode}) ===\n")

    query = join_args(args.query)
    if not query:
        print(USAGE)
        return 1

    settings = load_settings()
    configure_logging(settings.log_level)
    langfuse = build_langfuse(settings)

    print(f"Query: \"{query}\"\n")

    client = build_client(settings)
    embeddings = GeminiEmbeddings(client=client, model=settings.embedding_model)
    try:
        gateway = open_gateway(settings, embeddings)
    except (InputMissingError, StoreUnavailableError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    enhancer = QueryEnhancer(llm_fn=build_chat(settings, client)) if args.smart else None
    retriever = ReviewRetriever(
        gateway=gateway,
        enhancer=enhancer,
        top_k=settings.top_k,
        similarity_threshold=settings.similarity_threshold,
    )

    trace = start_trace(langfuse, "retrieve", {"query": query, "smart": args.smart})

    print("Step 1: Building search request...")
    if args.smart:
        print("  Enhancing query with the LLM...")
    print("\nStep 2: Executing vector search...")
    try:
        result = retriever.smart_retrieve(query) if args.smart else retriever.retrieve(query)
        print(f"  Found {len(result.documents)} matching documents")
    except SearchError as e:
        logger.error("Search error: %s", e)
        print(f"  Search error: {e}", file=sys.stderr)
        end_trace(trace, {}, error=e)
        flush(langfuse)
        display_results(RetrievalResult(documents=[], request=retriever.build_request(query)))
        return 0

    display_request(result)

    print("\nStep 3: Displaying results...")
    display_results(result)

    end_trace(trace, retrieval_payload(result))
    flush(langfuse)
    return 0


if __name__ == "__main__":
    sys.exit(main())
