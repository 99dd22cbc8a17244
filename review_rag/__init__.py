"""
Airline Review RAG

Retrieval-augmented generation over a CSV of airline passenger reviews:
- Ingestion: CSV parsing, review documents with typed metadata, token-window chunking
- Indexing: batched writes to Qdrant (default) or FAISS, Gemini embeddings
- Retrieval: similarity search, or "smart" search with LLM query rewrite and metadata filters
- Generation: Gemini answers grounded in the retrieved reviews

Main entry points:
- ingest.py: Load the reviews CSV into the vector store
- retrieve.py: Search reviews (add --smart for query rewrite and filters)
- ask.py: Answer a question from the reviews
"""

__all__ = []
