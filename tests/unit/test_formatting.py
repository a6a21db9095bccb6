from nodeflow.contracts import (
    ConversationMessage,
    InputResult,
    MemoryResult,
    RetrievedChunk,
    StoreResult,
)
from nodeflow.formatting import (
    CUSTOM_WORKFLOW,
    INGESTION_WORKFLOW,
    QUERY_WORKFLOW,
    detect_workflow_type,
    format_detailed,
    format_json,
    format_summary,
    format_text,
    render,
)


def _query() -> MemoryResult:
    history = []
    for i in range(4):
        history.append(ConversationMessage(role="user", content=f"question number {i} " * 5))
        history.append(ConversationMessage(role="assistant", content=f"answer {i}"))
    return MemoryResult(
        question="Q" * 150,
        answer="A" * 250,
        chunks=[RetrievedChunk(content="x" * 300, index=4)],
        knowledge_base="kb1",
        session_id="s1",
        conversation_history=history,
    )


def _ingestion() -> StoreResult:
    return StoreResult(
        knowledge_base="kb1", chunks_added=2, total_chunks=5, message="Stored"
    )


def test_detect_workflow_type():
    assert detect_workflow_type(_query()) == QUERY_WORKFLOW
    assert detect_workflow_type(_ingestion()) == INGESTION_WORKFLOW
    assert detect_workflow_type(InputResult(text="x", source="y")) == CUSTOM_WORKFLOW


def test_detailed_query():
    output = format_detailed(_query(), {})
    assert output["type"] == "Query Result"
    assert output["sessionId"] == "s1"
    assert output["sourceChunks"] == [{"content": "x" * 100 + "...", "index": 4}]
    assert output["conversationLength"] == 8
    assert len(output["previousQuestions"]) == 3
    assert output["previousQuestions"][-1].startswith("question number 3")
    assert all(len(q) == 53 for q in output["previousQuestions"])


def test_detailed_ingestion_and_generic():
    output = format_detailed(_ingestion(), {})
    assert output["type"] == "Ingestion Result"
    assert output["chunksAdded"] == 2
    assert output["totalChunks"] == 5
    assert output["source"] == "store"

    generic = format_detailed(InputResult(text="x", source="y"), {})
    assert generic["type"] == "Processing Result"
    assert generic["data"]["text"] == "x"


def test_summary_truncates():
    summary = format_summary(_query(), {})
    assert summary["question"] == "Q" * 100 + "..."
    assert summary["answer"] == "A" * 200 + "..."
    assert summary["hasConversationHistory"] is True
    assert summary["sourceChunksCount"] == 1
    assert format_summary(_ingestion(), {})["type"] == "Ingestion Complete"


def test_json_drops_conversation_history():
    data = format_json(_query(), {})
    assert "conversationHistory" not in data
    assert data["sessionId"] == "s1"
    assert data["kind"] == "memory"


def test_text_format():
    text = format_text(_ingestion(), {"title": "Ingest"})["text"]
    assert text.startswith("Ingest\n======\n\n")
    assert "Chunks Added: 2" in text
    assert "Total Chunks: 5" in text

    skipped = StoreResult(knowledge_base="kb1", chunks_added=0, skipped=True)
    assert "Total Chunks: N/A" in format_text(skipped, {})["text"]

    query = format_text(_query(), {})["text"]
    assert "QUESTION:" in query
    assert "Session ID: s1" in query
    assert "- Conversation history: 8 messages" in query


def test_render_defaults_to_detailed():
    assert render(_ingestion(), "unknown", {})["type"] == "Ingestion Result"
    assert render(_ingestion(), "summary", {})["status"] == "Success"
