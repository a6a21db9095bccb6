from nodeflow.contracts import KnowledgeBaseChunk
from nodeflow.retrieval import (
    extract_keywords,
    looks_like_question,
    score_chunk,
    score_chunks,
    word_similarity,
)

TEACHER_CHUNK = (
    "My teacher is Mr. Smith and he teaches mathematics at the local high "
    "school every morning."
)
QUESTION_CHUNK = "What is the name of my teacher at the high school?"
WEATHER_CHUNK = (
    "The weather in the mountains was cold and rainy during the whole week."
)


def _chunks(*contents: str) -> list[KnowledgeBaseChunk]:
    return [
        KnowledgeBaseChunk(content=content, chunk_index=i)
        for i, content in enumerate(contents)
    ]


def test_extract_keywords_drops_stop_words_and_punctuation():
    assert extract_keywords("Who is my teacher?") == ["my", "teacher"]
    assert extract_keywords("Where is Paris?") == ["paris"]
    assert extract_keywords("what is that") == []


def test_looks_like_question():
    assert looks_like_question("What is the capital of France?")
    assert looks_like_question("The capital of France is?")
    assert looks_like_question("how do I start")
    assert not looks_like_question("Paris is the capital of France.")


def test_word_similarity_is_jaccard():
    assert word_similarity("a b c", "a b c") == 1.0
    assert word_similarity("a b", "c d") == 0.0
    assert word_similarity("a b c d", "a b") == 0.5
    assert word_similarity("", "") == 0.0


def test_relevant_chunk_is_ranked_first():
    result = score_chunks(
        "Who is my teacher?", _chunks(WEATHER_CHUNK, TEACHER_CHUNK)
    )
    assert result.status == "ok"
    assert result.keywords == ["my", "teacher"]
    assert [c.chunk_index for c in result.chunks] == [1]
    assert result.matches[0].keyword_matches == 2


def test_question_chunks_are_never_selected():
    result = score_chunks(
        "What is the name of my teacher at the high school",
        _chunks(QUESTION_CHUNK),
    )
    assert result.status == "no_match"
    assert result.matches == []
    assert result.scored[0].skip_reason == "question"


def test_short_and_near_duplicate_chunks_are_skipped():
    question = "alice likes green apples and fresh oranges from the market"
    short = score_chunk(question, ["apples"], _chunks("Green apples.")[0])
    assert short.skip_reason == "too_short"

    duplicate = score_chunk(question, ["apples"], _chunks(question)[0])
    assert duplicate.skip_reason == "too_similar"
    assert duplicate.score == 0


def test_no_keywords_short_circuits():
    result = score_chunks("what is that", _chunks(TEACHER_CHUNK))
    assert result.status == "no_keywords"
    assert result.matches == []
    assert result.scored == []


def test_keywords_are_matched_literally():
    chunk = (
        "We rewrote the billing service in node.js last year to improve "
        "request throughput."
    )
    result = score_chunks("node.js performance", _chunks(chunk))
    assert result.status == "ok"
    assert result.chunks[0].content == chunk


def test_scoring_is_deterministic_and_keeps_stored_order_for_ties():
    chunks = _chunks(
        "My teacher loves books and reading in the quiet library every day.",
        "My teacher loves books and reading in the quiet library every night.",
        TEACHER_CHUNK,
        WEATHER_CHUNK,
    )
    first = score_chunks("Who is my teacher?", chunks)
    second = score_chunks("Who is my teacher?", chunks)
    assert [c.chunk_index for c in first.chunks] == [
        c.chunk_index for c in second.chunks
    ]
    tied = [m.chunk.chunk_index for m in first.matches if m.chunk.chunk_index < 2]
    assert tied == [0, 1]


def test_top_k_limits_matches():
    chunks = _chunks(
        *[f"My teacher gave lesson number {i} about algebra and geometry." for i in range(5)]
    )
    result = score_chunks("my teacher", chunks, top_k=3)
    assert len(result.matches) == 3
    assert [c.chunk_index for c in result.chunks] == [0, 1, 2]
