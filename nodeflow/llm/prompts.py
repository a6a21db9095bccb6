"""Prompt templates for context-based and direct answers."""

from __future__ import annotations

from typing import Sequence

CONTEXT_PROMPT = """Answer the following question based ONLY on the provided context. If the context doesn't contain enough information to answer the question, say so clearly.

Context:
{context}

Question: {question}

Answer:"""

DIRECT_PROMPT = """Answer the following question directly and concisely:

Question: {question}

Answer:"""


def build_context_prompt(question: str, contexts: Sequence[str]) -> str:
    return CONTEXT_PROMPT.format(context="\n\n".join(contexts), question=question)


def build_direct_prompt(question: str) -> str:
    return DIRECT_PROMPT.format(question=question)
