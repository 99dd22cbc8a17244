"""
Error kinds raised across the ingestion and query paths.

Parsing and cleaning problems never surface as exceptions: malformed rows
are dropped and unparseable ratings coerce to 0.0. Everything below is an
infrastructure or usage failure that propagates to the caller.
"""
from __future__ import annotations


class ReviewRagError(Exception):
    """Base class for all errors raised by review_rag."""


class InputMissingError(ReviewRagError, FileNotFoundError):
    """The reviews CSV could not be found."""


class BadArgumentError(ReviewRagError, ValueError):
    """A command-line argument or request parameter is invalid."""


class StoreUnavailableError(ReviewRagError, RuntimeError):
    """The vector store could not be reached."""


class StoreRejectedError(ReviewRagError, RuntimeError):
    """The vector store refused a write."""


class SearchError(ReviewRagError, RuntimeError):
    """A similarity search against the vector store failed."""


class ModelError(ReviewRagError, RuntimeError):
    """The chat model call failed or returned nothing usable."""


class FilterSyntaxError(ReviewRagError, ValueError):
    """A filter expression could not be parsed."""


class EmbeddingError(ReviewRagError, RuntimeError):
    """The embedding model returned no vectors or the wrong number of them."""
