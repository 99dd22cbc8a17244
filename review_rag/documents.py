from __future__ import annotations

import logging
import math
import re
from contextlib import closing
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from langchain_core.documents import Document

from review_rag.csv_reader import iter_rows
from review_rag.models import ReviewMetadata

logger = logging.getLogger(__name__)

# Zero-based column positions in the reviews CSV
AIRLINE_NAME_COL = 1
OVERALL_RATING_COL = 2
REVIEW_TITLE_COL = 3
REVIEW_COL = 6
SEAT_TYPE_COL = 9
ROUTE_COL = 10
RECOMMENDED_COL = 19

MIN_COLUMNS = 20
PROGRESS_EVERY = 50

_WHITESPACE = re.compile(r"\s+")


def _clean_once(text: str) -> str:
    text = text.strip()
    if text.startswith('"'):
        text = text[1:]
    if text.endswith('"'):
        text = text[:-1]
    return _WHITESPACE.sub(" ", text).strip()


def clean(text: Optional[str]) -> str:
    """Trim, drop one surrounding quote per side and collapse whitespace.

    Applied until the value stops changing, so ``clean(clean(s)) == clean(s)``.
    """
    if text is None:
        return ""
    previous = None
    while text != previous:
        previous = text
        text = _clean_once(text)
    return text


def parse_rating(value: Optional[str]) -> float:
    """Parse an overall rating. Empty, non-numeric or non-finite values become 0.0."""
    cleaned = clean(value)
    if not cleaned:
        return 0.0
    try:
        rating = float(cleaned)
    except ValueError:
        return 0.0
    if not math.isfinite(rating):
        return 0.0
    return rating


def parse_recommended(value: Optional[str]) -> bool:
    return clean(value).lower() == "yes"


def build_document(fields: Sequence[str], row_index: int) -> Optional[Document]:
    """Project one parsed CSV row into a review Document, or None if it is unusable."""
    if len(fields) < MIN_COLUMNS:
        return None

    review_text = clean(fields[REVIEW_COL])
    if not review_text:
        return None

    review_title = clean(fields[REVIEW_TITLE_COL])
    content = f"{review_title}\n\n{review_text}" if review_title else review_text

    metadata = ReviewMetadata(
        document_id=f"id-{row_index}",
        airline_name=clean(fields[AIRLINE_NAME_COL]),
        overall_rating=parse_rating(fields[OVERALL_RATING_COL]),
        review_title=review_title,
        seat_type=clean(fields[SEAT_TYPE_COL]),
        route=clean(fields[ROUTE_COL]),
        recommended=parse_recommended(fields[RECOMMENDED_COL]),
    )
    return Document(page_content=content, metadata=metadata.to_dict())


def iter_documents(csv_path: Path, limit: Optional[int] = None) -> Iterator[Document]:
    """Stream review documents from the CSV.

    ``limit`` bounds the number of documents emitted, not rows scanned.
    Reading stops as soon as the limit is reached.
    """
    if limit is not None and limit <= 0:
        return

    count = 0
    with closing(iter_rows(csv_path)) as rows:
        for row_index, fields in rows:
            document = build_document(fields, row_index)
            if document is None:
                logger.debug("Dropped row %d (%d fields)", row_index, len(fields))
                continue

            yield document
            count += 1
            if count % PROGRESS_EVERY == 0:
                logger.info("Processing row %d...", count)
            if limit is not None and count >= limit:
                return

def load_documents(csv_path: Path, limit: Optional[int] = None) -> List[Document]:
    return list(iter_documents(csv_path, limit=limit))
