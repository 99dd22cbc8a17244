"""
Token-window chunking for review documents.

Each document is tokenized, truncated to ``max_num_tokens`` and cut into
windows of ``chunk_size`` tokens that advance by ``chunk_size - chunk_overlap``.
Windows shorter than ``min_chunk_size_tokens`` are dropped. Every chunk keeps
a copy of its parent's metadata and gets a deterministic store id derived
from ``(document_id, chunk_index)``.
"""
from __future__ import annotations

import uuid
from typing import Any, Iterable, Iterator, List, Protocol, Sequence

from langchain_core.documents import Document
from langchain_text_splitters import TextSplitter

DEFAULT_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 200
DEFAULT_MIN_CHUNK_SIZE_TOKENS = 10
DEFAULT_MAX_NUM_TOKENS = 10_000
DEFAULT_ENCODING = "cl100k_base"

# Fixed namespace so chunk ids are stable across runs
CHUNK_ID_NAMESPACE = uuid.UUID("5d1f3a8e-4c2b-4e7a-9f60-2b8d7c1e0a94")


class Tokenizer(Protocol):
    def encode(self, text: str) -> Sequence[Any]: ...

    def decode(self, tokens: Sequence[Any]) -> str: ...


class TiktokenTokenizer:
    """BPE tokenizer backed by tiktoken."""

    def __init__(self, encoding_name: str = DEFAULT_ENCODING) -> None:
        import tiktoken

        self.encoding_name = encoding_name
        self._encoding = tiktoken.get_encoding(encoding_name)

    def encode(self, text: str) -> List[int]:
        return self._encoding.encode(text, disallowed_special=())

    def decode(self, tokens: Sequence[int]) -> str:
        return self._encoding.decode(list(tokens))


class WhitespaceTokenizer:
    """Approximate tokenizer: one token per whitespace-separated word."""

    def encode(self, text: str) -> List[str]:
        return text.split()

    def decode(self, tokens: Sequence[str]) -> str:
        return " ".join(tokens)


def build_tokenizer(name: str) -> Tokenizer:
    if name == "tiktoken":
        return TiktokenTokenizer()
    if name == "whitespace":
        return WhitespaceTokenizer()
    raise ValueError(f"Unknown tokenizer: {name}")


class TokenWindowSplitter(TextSplitter):
    """Split text into overlapping windows of tokens."""

    def __init__(
        self,
        tokenizer: Tokenizer,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
        min_chunk_size_tokens: int = DEFAULT_MIN_CHUNK_SIZE_TOKENS,
        max_num_tokens: int = DEFAULT_MAX_NUM_TOKENS,
        keep_separator: bool = True,
    ) -> None:
        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
            )
        if min_chunk_size_tokens > chunk_size:
            raise ValueError("min_chunk_size_tokens cannot exceed chunk_size")
        super().__init__(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            keep_separator=keep_separator,
        )
        self.tokenizer = tokenizer
        self.min_chunk_size_tokens = min_chunk_size_tokens
        self.max_num_tokens = max_num_tokens
        self.keep_separator = keep_separator

    def token_windows(self, text: str) -> List[Sequence[Any]]:
        """Return the token windows ``split_text`` decodes, in order."""
        tokens = list(self.tokenizer.encode(text))[: self.max_num_tokens]
        stride = self._chunk_size - self._chunk_overlap

        windows: List[Sequence[Any]] = []
        start = 0
        while start < len(tokens):
            window = tokens[start : start + self._chunk_size]
            if len(window) >= self.min_chunk_size_tokens:
                windows.append(window)
            if start + self._chunk_size >= len(tokens):
                break
            start += stride
        return windows

    def split_text(self, text: str) -> List[str]:
        chunks: List[str] = []
        for window in self.token_windows(text):
            chunk = self.tokenizer.decode(window)
            if not self.keep_separator:
                chunk = chunk.replace("\n", " ")
            chunk = chunk.strip()
            if chunk:
                chunks.append(chunk)
        return chunks


def chunk_id(document_id: str, chunk_index: int) -> str:
    return str(uuid.uuid5(CHUNK_ID_NAMESPACE, f"{document_id}:{chunk_index}"))


def iter_chunks(
    documents: Iterable[Document],
    splitter: TokenWindowSplitter,
) -> Iterator[Document]:
    """Yield chunks in document order, and in window order within a document."""
    for document in documents:
        document_id = document.metadata.get("document_id", "")
        for chunk_index, chunk in enumerate(splitter.split_documents([document])):
            chunk.id = chunk_id(document_id, chunk_index)
            yield chunk


def split_documents(
    documents: Iterable[Document],
    splitter: TokenWindowSplitter,
) -> List[Document]:
    return list(iter_chunks(documents, splitter))
