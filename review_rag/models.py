"""
Data records shared by the ingestion and query paths.

Documents and chunks themselves are LangChain ``Document`` objects so they
can be handed straight to a vector store. Their metadata is produced from
the closed ``ReviewMetadata`` record below, never assembled ad hoc.
"""
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Union

from langchain_core.documents import Document

from review_rag.errors import BadArgumentError

DEFAULT_TOP_K = 5
DEFAULT_SIMILARITY_THRESHOLD = 0.3

FilterValue = Union[str, float]

METADATA_KEYS = (
    "document_id",
    "airline_name",
    "overall_rating",
    "review_title",
    "seat_type",
    "route",
    "recommended",
)


@dataclass(frozen=True)
class ReviewMetadata:
    """Structured metadata attached to every review document and chunk."""
    document_id: str
    airline_name: str
    overall_rating: float
    review_title: str
    seat_type: str
    route: str
    recommended: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, metadata: Dict[str, Any]) -> "ReviewMetadata":
        return cls(
            document_id=str(metadata.get("document_id", "")),
            airline_name=str(metadata.get("airline_name", "")),
            overall_rating=float(metadata.get("overall_rating", 0.0) or 0.0),
            review_title=str(metadata.get("review_title", "")),
            seat_type=str(metadata.get("seat_type", "")),
            route=str(metadata.get("route", "")),
            recommended=bool(metadata.get("recommended", False)),
        )


@dataclass(frozen=True)
class SearchRequest:
    """A single similarity search against the vector store.

    ``filter_expression`` is a string in the store's boolean grammar (see
    ``review_rag.filters``). An empty expression means "no filter" and is
    normalized to ``None``.
    """
    query: str
    top_k: int = DEFAULT_TOP_K
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    filter_expression: Optional[str] = None

    def __post_init__(self):
        if not self.query or not self.query.strip():
            raise BadArgumentError("Search query must not be empty")
        if self.top_k <= 0:
            raise BadArgumentError(f"top_k must be positive, got {self.top_k}")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise BadArgumentError(
                f"similarity_threshold must be within [0, 1], got {self.similarity_threshold}"
            )
        if self.filter_expression is not None and not self.filter_expression.strip():
            object.__setattr__(self, "filter_expression", None)


@dataclass(frozen=True)
class EnhancementResult:
    """Rewritten query plus the metadata filters extracted from it."""
    enhanced_query: str
    filters: Dict[str, FilterValue] = field(default_factory=dict)


@dataclass
class RetrievalResult:
    """Documents returned for one retrieval, with the request that produced them."""
    documents: List[Document]
    request: SearchRequest
    scores: List[float] = field(default_factory=list)
    enhancement: Optional[EnhancementResult] = None

    @property
    def smart(self) -> bool:
        return self.enhancement is not None
