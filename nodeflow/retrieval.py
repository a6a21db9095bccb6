"""Lexical relevance scoring of knowledge base chunks.

Scoring is keyword based: exact whole-word hits weigh most, hits near the
start of a chunk earn a bonus, substring hits and related-word hits add a
little. Chunks that are themselves questions, very short, or near copies of
the question are never returned.
"""

from __future__ import annotations

import logging
import re
import string
from typing import Dict, List, Literal, Optional, Sequence

from pydantic import BaseModel, Field

from .constants import DEFAULT_TOP_K
from .contracts import KnowledgeBaseChunk

logger = logging.getLogger(__name__)

QUESTION_PATTERN = re.compile(
    r"^(what|who|when|where|why|how|is|are|can|could|would|should|do|does|did|will)\s",
    re.IGNORECASE,
)

STOP_WORDS = frozenset(
    {
        "what", "is", "are", "the", "a", "an", "how", "why", "when", "where",
        "who", "which", "can", "do", "does", "did", "will", "would", "should",
        "could", "about", "tell", "me", "explain", "please", "help", "find",
        "show", "give", "that", "this",
    }
)

# Short tokens that still carry meaning in personal-notes style documents.
SHORT_KEYWORDS = frozenset({"i", "my", "am", "go", "be", "he", "we", "it"})

RELATED_WORDS: Dict[str, List[str]] = {
    "name": ["called", "named", "known as", "i am", "my name", "sir", "mr", "mrs", "ms", "dr"],
    "teacher": ["sir", "professor", "instructor", "tutor", "teaches", "class", "lecture"],
    "age": ["years old", "born", "birthday", "old am i"],
    "work": ["job", "career", "employed", "company", "office"],
    "live": ["home", "address", "residence", "located", "based"],
    "like": ["love", "enjoy", "prefer", "favorite", "fond"],
    "eat": ["food", "meal", "diet", "consume", "taste"],
    "language": ["programming", "code", "coding", "develop"],
    "family": ["brother", "sister", "parent", "mother", "father"],
    "subject": ["math", "science", "english", "history", "class", "course", "studying", "study"],
    "math": ["mathematics", "calculus", "algebra", "geometry", "arithmetic"],
    "class": ["lecture", "lesson", "course", "session", "tomorrow", "today"],
    "studying": ["study", "learning", "preparing", "reading", "class", "subject"],
}

MIN_CHUNK_LENGTH = 50
MAX_QUESTION_SIMILARITY = 0.8
MIN_KEYWORD_MATCHES = 1
MIN_SCORE = 5

EXACT_MATCH_WEIGHT = 15
LEAD_100_BONUS = 10
LEAD_50_BONUS = 5
PARTIAL_MATCH_WEIGHT = 3
RELATED_MATCH_WEIGHT = 8


class ScoredChunk(BaseModel):
    chunk: KnowledgeBaseChunk
    score: int = 0
    keyword_matches: int = 0
    is_relevant: bool = False
    skip_reason: Optional[Literal["question", "too_short", "too_similar"]] = None


class RetrievalResult(BaseModel):
    status: Literal["ok", "no_keywords", "no_match"]
    keywords: List[str] = Field(default_factory=list)
    matches: List[ScoredChunk] = Field(default_factory=list)
    scored: List[ScoredChunk] = Field(default_factory=list)

    @property
    def chunks(self) -> List[KnowledgeBaseChunk]:
        return [match.chunk for match in self.matches]


def looks_like_question(text: str) -> bool:
    """Return ``True`` if ``text`` opens with a question word or ends in '?'."""
    stripped = text.strip()
    return bool(QUESTION_PATTERN.match(stripped)) or stripped.endswith("?")


def word_similarity(first: str, second: str) -> float:
    """Jaccard index of the lowercase word sets of two strings."""
    words1 = set(first.lower().split())
    words2 = set(second.lower().split())
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def extract_keywords(question: str) -> List[str]:
    keywords = []
    for token in question.lower().split():
        word = token.strip(string.punctuation)
        if not word:
            continue
        if (len(word) > 2 and word not in STOP_WORDS) or word in SHORT_KEYWORDS:
            keywords.append(word)
    return keywords


def count_related_matches(keyword: str, content: str) -> int:
    related = RELATED_WORDS.get(keyword.lower(), [])
    lowered = content.lower()
    return sum(1 for word in related if word in lowered)


def _skip_reason(question: str, content: str) -> Optional[str]:
    if looks_like_question(content):
        return "question"
    if len(content.strip()) < MIN_CHUNK_LENGTH:
        return "too_short"
    if word_similarity(question, content) > MAX_QUESTION_SIMILARITY:
        return "too_similar"
    return None


def score_chunk(
    question: str, keywords: Sequence[str], chunk: KnowledgeBaseChunk
) -> ScoredChunk:
    """Score a single chunk against the extracted ``keywords``."""
    content = chunk.content.lower()
    reason = _skip_reason(question, content)
    if reason is not None:
        return ScoredChunk(chunk=chunk, skip_reason=reason)

    score = 0
    keyword_matches = 0
    for keyword in keywords:
        escaped = re.escape(keyword)
        exact = len(re.findall(rf"\b{escaped}\b", content))
        if exact:
            keyword_matches += 1
            score += exact * EXACT_MATCH_WEIGHT
            if keyword in content[:100]:
                score += LEAD_100_BONUS
            if keyword in content[:50]:
                score += LEAD_50_BONUS

        partial = len(re.findall(escaped, content)) - exact
        if partial > 0:
            score += partial * PARTIAL_MATCH_WEIGHT

        score += count_related_matches(keyword, content) * RELATED_MATCH_WEIGHT

    is_relevant = keyword_matches >= MIN_KEYWORD_MATCHES and score >= MIN_SCORE
    return ScoredChunk(
        chunk=chunk,
        score=score if is_relevant else 0,
        keyword_matches=keyword_matches,
        is_relevant=is_relevant,
    )


def score_chunks(
    question: str,
    chunks: Sequence[KnowledgeBaseChunk],
    top_k: int = DEFAULT_TOP_K,
) -> RetrievalResult:
    """Rank ``chunks`` by relevance to ``question`` and keep the best ``top_k``.

    Equal scores keep their stored order.
    """

    keywords = extract_keywords(question)
    logger.debug(f"Search keywords extracted: {keywords}")
    if not keywords:
        return RetrievalResult(status="no_keywords")

    scored = [score_chunk(question, keywords, chunk) for chunk in chunks]
    relevant = [item for item in scored if item.is_relevant and item.score > 0]
    matches = sorted(relevant, key=lambda item: item.score, reverse=True)[:top_k]

    logger.debug(
        "Chunk relevance: "
        f"total={len(chunks)} relevant={len(relevant)} "
        f"top={[(m.chunk.chunk_index, m.score) for m in matches]}"
    )
    return RetrievalResult(
        status="ok" if matches else "no_match",
        keywords=keywords,
        matches=matches,
        scored=scored,
    )
