"""
LLM query understanding for smart retrieval.

The chat model rewrites the user's query for semantic search and pulls out
structured filters (airline, minimum rating, seat type). The response
contract is four labeled lines; anything the parser does not recognize is
ignored. If the model fails or the rewrite is missing, the original query
is used with no filters, so a smart search degrades to a basic one.
"""
from __future__ import annotations

import logging
import math
from typing import Callable, Dict, Optional

from review_rag.errors import ModelError
from review_rag.models import EnhancementResult, FilterValue

logger = logging.getLogger(__name__)

ENHANCER_PROMPT = """You are a search assistant for a database of airline passenger reviews.
Rewrite the user's query so it works well for semantic search over review text,
and extract any filters the user asked for.

Each review has these filterable fields:
- airline name (for example: Delta Air Lines, United Airlines, Emirates)
- overall rating from 1 to 10
- seat type (Economy Class, Premium Economy, Business Class, First Class)

User query: {query}

Respond with exactly four lines, in this order and with nothing else:
ENHANCED: <rewritten search query>
AIRLINE: <airline name, or NONE>
MIN_RATING: <minimum overall rating as a number, or NONE>
SEAT_TYPE: <seat type, or NONE>
"""

NONE_TOKEN = "NONE"


def parse_enhancer_response(response: Optional[str], original_query: str) -> EnhancementResult:
    """Parse the four-line model response.

    Labels are matched case-sensitively at the start of a line (surrounding
    whitespace is ignored). Without a non-empty ``ENHANCED:`` line the whole
    response is discarded.
    """
    if not response:
        return EnhancementResult(enhanced_query=original_query)

    enhanced_query: Optional[str] = None
    filters: Dict[str, FilterValue] = {}

    for raw_line in response.splitlines():
        line = raw_line.strip()
        if line.startswith("ENHANCED:"):
            value = line[len("ENHANCED:"):].strip()
            if value:
                enhanced_query = value
        elif line.startswith("AIRLINE:"):
            value = line[len("AIRLINE:"):].strip()
            if NONE_TOKEN not in line and value:
                filters["airline_name"] = value
        elif line.startswith("MIN_RATING:"):
            value = line[len("MIN_RATING:"):].strip()
            if NONE_TOKEN not in line and value:
                try:
                    rating = float(value)
                except ValueError:
                    continue
                if math.isfinite(rating):
                    filters["min_rating"] = rating
        elif line.startswith("SEAT_TYPE:"):
            value = line[len("SEAT_TYPE:"):].strip()
            if NONE_TOKEN not in line and value:
                filters["seat_type"] = value

    if enhanced_query is None:
        return EnhancementResult(enhanced_query=original_query)
    return EnhancementResult(enhanced_query=enhanced_query, filters=filters)


class QueryEnhancer:
    """Rewrites a query and extracts metadata filters using a chat model."""

    def __init__(self, llm_fn: Callable[[str], Optional[str]]):
        """
        Args:
            llm_fn: Function that takes a prompt and returns the model's text
                    (or None when the model returned nothing).
        """
        self.llm_fn = llm_fn

    def build_prompt(self, query: str) -> str:
        return ENHANCER_PROMPT.format(query=query)

    def enhance(self, query: str) -> EnhancementResult:
        try:
            response = self.llm_fn(self.build_prompt(query))
        except ModelError as exc:
            logger.warning("Query enhancement failed, using original query: %s", exc)
            return EnhancementResult(enhanced_query=query)
        return parse_enhancer_response(response, query)
