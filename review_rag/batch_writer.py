from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import islice
from typing import Callable, Iterable, Iterator, List, Optional

from langchain_core.documents import Document

from review_rag.vector_store import VectorStoreGateway

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


@dataclass
class WriteSummary:
    batches: int = 0
    chunks: int = 0


def iter_batches(chunks: Iterable[Document], batch_size: int) -> Iterator[List[Document]]:
    iterator = iter(chunks)
    while True:
        batch = list(islice(iterator, batch_size))
        if not batch:
            return
        yield batch


def write_in_batches(
    gateway: VectorStoreGateway,
    chunks: Iterable[Document],
    batch_size: int = DEFAULT_BATCH_SIZE,
    on_batch: Optional[Callable[[int, int], None]] = None,
) -> WriteSummary:
    """Send chunks to the store in fixed-size batches, in input order.

    ``on_batch`` is called with the 1-based batch number and its size before
    each write. A failing write aborts the run; batches already written stay
    in the store.
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    summary = WriteSummary()
    for batch in iter_batches(chunks, batch_size):
        batch_number = summary.batches + 1
        logger.info("Storing batch %d (%d documents)", batch_number, len(batch))
        if on_batch:
            on_batch(batch_number, len(batch))
        gateway.add(batch)
        summary.batches += 1
        summary.chunks += len(batch)
    return summary
