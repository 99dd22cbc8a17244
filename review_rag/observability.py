"""
Optional Langfuse tracing for the retrieve and ask commands.

Tracing is active only when both LANGFUSE keys are set and the ``tracing``
extra is installed. Every helper accepts ``None`` for the client or trace so
the commands can call them unconditionally.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from review_rag.models import RetrievalResult
from review_rag.settings import Settings

logger = logging.getLogger(__name__)


def build_langfuse(settings: Settings):
    if not settings.langfuse_public_key or not settings.langfuse_secret_key:
        return None
    try:
        from langfuse import Langfuse
    except ImportError:
        logger.warning("LANGFUSE keys are set but langfuse is not installed; tracing disabled")
        return None
    return Langfuse(
        public_key=settings.langfuse_public_key,
        secret_key=settings.langfuse_secret_key,
        host=settings.langfuse_host,
    )


def retrieval_payload(result: RetrievalResult) -> Dict[str, Any]:
    """Trace output for one retrieval: the request actually sent and what came back."""
    payload: Dict[str, Any] = {
        "query": result.request.query,
        "top_k": result.request.top_k,
        "similarity_threshold": result.request.similarity_threshold,
        "filter_expression": result.request.filter_expression,
        "hits": [
            {"document_id": doc.metadata.get("document_id"), "score": score}
            for doc, score in zip(result.documents, result.scores)
        ],
    }
    if result.enhancement is not None:
        payload["filters"] = dict(result.enhancement.filters)
    return payload


def start_trace(langfuse, command: str, input_payload: Dict[str, Any]):
    if not langfuse:
        return None
    return langfuse.trace(name=f"review-{command}", input=input_payload)


def end_trace(trace, output_payload: Dict[str, Any], error: Optional[BaseException] = None):
    if not trace:
        return
    if error is not None:
        trace.update(output={**output_payload, "error": str(error)}, level="ERROR")
    else:
        trace.update(output=output_payload)


def flush(langfuse):
    if langfuse:
        langfuse.flush()
