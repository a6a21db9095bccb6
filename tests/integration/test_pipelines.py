"""End-to-end runs of ingestion and query workflows through the executor."""

import pytest

from nodeflow.config import NodeflowConfig
from nodeflow.contracts import (
    MemoryResult,
    OutputResult,
    RagResult,
    StoreResult,
    Workflow,
    WorkflowNode,
)
from nodeflow.errors import UnknownNodeTypeError
from nodeflow.execute import WorkflowExecutor
from nodeflow.persistence import SQLiteRepository

NOTES = (
    "My teacher is Mr. Smith and he teaches mathematics at the local high "
    "school every morning. "
)


def _alice(words: int) -> str:
    return " ".join(["Alice"] + [f"fact{i}" for i in range(words - 1)])


def _ingestion(kb: str = "kb1") -> Workflow:
    return Workflow(
        name=f"Ingest into {kb}",
        node_sequence=[
            WorkflowNode(id="input", type="input"),
            WorkflowNode(
                id="store",
                type="store",
                config={"knowledgeBaseName": kb, "createNew": True},
            ),
            WorkflowNode(id="output", type="output"),
        ],
    )


def _query(rag_config: dict, kb: str = "kb1") -> Workflow:
    return Workflow(
        name=f"Ask {kb} {sorted(rag_config.items())}",
        node_sequence=[
            WorkflowNode(id="input", type="input"),
            WorkflowNode(id="rag", type="rag", config={"knowledgeBaseName": kb, **rag_config}),
            WorkflowNode(id="memory", type="memory"),
            WorkflowNode(id="output", type="output", config={"format": "detailed"}),
        ],
    )


@pytest.fixture
def executor(repository, llm) -> WorkflowExecutor:
    return WorkflowExecutor(
        repository=repository, gateway=llm.gateway, config=NodeflowConfig()
    )


@pytest.mark.asyncio
async def test_ingestion_creates_single_chunk(executor, repository):
    wf = await repository.save_workflow(_ingestion())

    result = await executor.execute(wf.id, input_text=_alice(250))

    store = result.results["store"]
    assert isinstance(store, StoreResult)
    assert store.chunks_added == 1
    assert store.total_chunks == 1
    kb = await repository.get_knowledge_base("kb1")
    assert len(kb.chunks) == 1
    assert kb.chunks[0].chunk_index == 0
    assert result.final_output.formatted["type"] == "Ingestion Result"


@pytest.mark.asyncio
async def test_repeated_ingestion_continues_indices(executor, repository):
    wf = await repository.save_workflow(_ingestion())

    await executor.execute(wf.id, input_text=_alice(650))
    before = len((await repository.get_knowledge_base("kb1")).chunks)
    await executor.execute(wf.id, input_text=_alice(400))

    kb = await repository.get_knowledge_base("kb1")
    indices = [c.chunk_index for c in kb.chunks]
    assert indices == list(range(len(indices)))
    assert indices[before] == before


@pytest.mark.asyncio
async def test_query_without_keywords(executor, repository):
    await repository.save_workflow(_ingestion())
    ingest = await repository.find_workflow_by_name("Ingest into kb1")
    await executor.execute(ingest.id, input_text="Completely unrelated short text about cooking.")
    wf = await repository.save_workflow(_query({}))

    result = await executor.execute(wf.id, input_text="what is that", session_id="s1")

    rag = result.results["rag"]
    assert isinstance(rag, RagResult)
    assert rag.source == "no_keywords"
    assert rag.chunks == []


@pytest.mark.asyncio
async def test_query_falls_back_on_bad_key(executor, repository, llm):
    ingest = await repository.save_workflow(_ingestion())
    await executor.execute(ingest.id, input_text=NOTES * 3)
    wf = await repository.save_workflow(
        _query({"aiProvider": "openai", "apiKey": "bad-format"})
    )

    result = await executor.execute(wf.id, input_text="Who is my teacher?")

    final = result.final_output
    assert isinstance(final, OutputResult)
    answer = final.data
    assert isinstance(answer, MemoryResult)
    assert answer.llm_status.used is False
    assert "Invalid API key format" in answer.llm_status.error
    assert "Mr. Smith" in answer.answer
    assert llm.requests == []


@pytest.mark.asyncio
async def test_query_uses_llm_and_memory(executor, repository, llm):
    ingest = await repository.save_workflow(_ingestion())
    await executor.execute(ingest.id, input_text=NOTES * 3)
    wf = await repository.save_workflow(_query({"aiProvider": "openai", "apiKey": "sk-test"}))

    for _ in range(12):
        result = await executor.execute(
            wf.id, input_text="Who is my teacher?", session_id="session-a"
        )

    memory = result.results["memory"]
    assert memory.answer == "LLM answer"
    assert memory.llm_status.used is True
    assert len(memory.conversation_history) == 20
    assert result.final_output.formatted["sessionId"] == "session-a"
    assert result.final_output.formatted["conversationLength"] == 20
    assert len(llm.requests) == 12


@pytest.mark.asyncio
async def test_ingestion_with_memory_node_skips_conversation(executor, repository):
    wf = await repository.save_workflow(
        Workflow(
            name="ingest with memory",
            node_sequence=[
                WorkflowNode(id="input", type="input"),
                WorkflowNode(
                    id="store",
                    type="store",
                    config={"knowledgeBaseName": "kb1", "createNew": True},
                ),
                WorkflowNode(id="memory", type="memory"),
            ],
        )
    )

    result = await executor.execute(wf.id, input_text=_alice(50), session_id="s1")

    assert result.final_output.source == "memory_skipped"
    assert result.final_output.chunks_added == 1
    assert await repository.get_conversation("s1") is None


@pytest.mark.asyncio
async def test_unknown_node_type_fails_whole_run(executor, repository):
    wf = await repository.save_workflow(
        Workflow(
            name="bogus",
            node_sequence=[
                WorkflowNode(id="input", type="input"),
                WorkflowNode(id="bad", type="bogus"),
                WorkflowNode(
                    id="store",
                    type="store",
                    config={"knowledgeBaseName": "kb1", "createNew": True},
                ),
            ],
        )
    )

    with pytest.raises(UnknownNodeTypeError):
        await executor.execute(wf.id, input_text=_alice(50))
    assert await repository.get_knowledge_base("kb1") is None


@pytest.mark.asyncio
async def test_pipeline_on_sqlite(tmp_path, llm):
    repository = SQLiteRepository(tmp_path / "nodeflow.db")
    executor = WorkflowExecutor(
        repository=repository, gateway=llm.gateway, config=NodeflowConfig()
    )
    ingest = await repository.save_workflow(_ingestion())
    await executor.execute(ingest.id, input_text=NOTES * 3)
    wf = await repository.save_workflow(_query({}))

    result = await executor.execute(wf.id, input_text="Who is my teacher?", session_id="s1")

    assert result.results["rag"].source == "rag"
    conversation = await repository.get_conversation("s1")
    assert [m.role for m in conversation.messages] == ["user", "assistant"]
