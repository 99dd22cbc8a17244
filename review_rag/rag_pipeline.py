from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from langchain_core.documents import Document

from review_rag.errors import ModelError
from review_rag.models import RetrievalResult
from review_rag.retriever import ReviewRetriever

AUGMENTED_PROMPT = """Context information is below.

---------------------
{context}
---------------------

Given the context information and no prior knowledge, answer the query.

Follow these rules:

1. If the answer is not in the context, just say that you don't know.
2. Avoid statements like "Based on the context..." or "The provided information...".

Query: {query}

Answer:
"""


def format_context(docs: List[Document]) -> str:
    return "\n".join(doc.page_content for doc in docs)


def build_prompt(query: str, docs: List[Document], allow_empty_context: bool = True) -> str:
    """Inject retrieved reviews into the user's question.

    With no documents and ``allow_empty_context`` the question is sent as-is;
    otherwise the model is told it has no context to answer from.
    """
    if not docs:
        if allow_empty_context:
            return query
        return AUGMENTED_PROMPT.format(context="(no matching reviews)", query=query)
    return AUGMENTED_PROMPT.format(context=format_context(docs), query=query)


def answer(
    llm_fn: Callable[[str], Optional[str]],
    query: str,
    docs: List[Document],
    allow_empty_context: bool = True,
) -> str:
    prompt = build_prompt(query, docs, allow_empty_context=allow_empty_context)
    response = llm_fn(prompt)
    if not response:
        raise ModelError("Chat model returned an empty answer.")
    return response


@dataclass
class RagAnswer:
    question: str
    answer: str
    retrieval: RetrievalResult


class RagPipeline:
    """Retrieve reviews for a question and answer it with the chat model."""

    def __init__(
        self,
        retriever: ReviewRetriever,
        llm_fn: Callable[[str], Optional[str]],
        allow_empty_context: bool = True,
    ):
        self.retriever = retriever
        self.llm_fn = llm_fn
        self.allow_empty_context = allow_empty_context

    def ask(self, question: str) -> RagAnswer:
        retrieval = self.retriever.retrieve(question)
        text = answer(
            self.llm_fn,
            question,
            retrieval.documents,
            allow_empty_context=self.allow_empty_context,
        )
        return RagAnswer(question=question, answer=text, retrieval=retrieval)
