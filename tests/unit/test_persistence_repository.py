import asyncio
import gc

import pytest

from nodeflow.contracts import (
    ChunkDraft,
    ConversationMessage,
    KnowledgeBase,
    Workflow,
    WorkflowNode,
)
from nodeflow.errors import DuplicateNameError, KnowledgeBaseNotFoundError
from nodeflow.persistence import InMemoryRepository, SQLiteRepository


@pytest.fixture(params=["memory", "sqlite"])
def repo(request, tmp_path):
    if request.param == "memory":
        return InMemoryRepository()
    return SQLiteRepository(tmp_path / "nodeflow.db")


def _exchange(i: int) -> list[ConversationMessage]:
    return [
        ConversationMessage(role="user", content=f"question {i}"),
        ConversationMessage(role="assistant", content=f"answer {i}"),
    ]


@pytest.mark.asyncio
async def test_workflow_crud(repo):
    wf = Workflow(
        name="Document Q&A",
        description="ask things",
        node_sequence=[
            WorkflowNode(id="n1", type="input"),
            WorkflowNode(id="n2", type="rag", config={"knowledgeBaseName": "kb"}),
        ],
    )
    await repo.save_workflow(wf)

    loaded = await repo.get_workflow(wf.id)
    assert loaded is not None
    assert loaded.name == "Document Q&A"
    assert [n.id for n in loaded.node_sequence] == ["n1", "n2"]
    assert loaded.node_sequence[1].config == {"knowledgeBaseName": "kb"}

    found = await repo.find_workflow_by_name("  document q&a ")
    assert found is not None and found.id == wf.id

    all_wfs = await repo.list_workflows()
    assert [w.id for w in all_wfs] == [wf.id]

    assert await repo.delete_workflow(wf.id) is True
    assert await repo.delete_workflow(wf.id) is False
    assert await repo.get_workflow(wf.id) is None


@pytest.mark.asyncio
async def test_workflow_names_are_unique_case_insensitively(repo):
    await repo.save_workflow(Workflow(name="Ingest"))
    with pytest.raises(DuplicateNameError):
        await repo.save_workflow(Workflow(name="INGEST"))


@pytest.mark.asyncio
async def test_resaving_a_workflow_keeps_its_name(repo):
    wf = await repo.save_workflow(Workflow(name="Ingest"))
    wf.description = "updated"
    await repo.save_workflow(wf)
    loaded = await repo.get_workflow(wf.id)
    assert loaded.description == "updated"


@pytest.mark.asyncio
async def test_append_chunks_requires_existing_kb_unless_create_new(repo):
    with pytest.raises(KnowledgeBaseNotFoundError):
        await repo.append_chunks("notes", [ChunkDraft(content="x")])

    kb, added = await repo.append_chunks(
        "notes", [ChunkDraft(content="one"), ChunkDraft(content="two")], create_new=True
    )
    assert [c.chunk_index for c in added] == [0, 1]
    assert len(kb.chunks) == 2

    kb, added = await repo.append_chunks("notes", [ChunkDraft(content="three")])
    assert [c.chunk_index for c in added] == [2]
    assert [c.content for c in kb.chunks] == ["one", "two", "three"]


@pytest.mark.asyncio
async def test_concurrent_appends_do_not_lose_chunks(repo):
    await repo.save_knowledge_base(KnowledgeBase(name="notes"))

    await asyncio.gather(
        *[
            repo.append_chunks("notes", [ChunkDraft(content=f"chunk {i}")])
            for i in range(10)
        ]
    )

    kb = await repo.get_knowledge_base("notes")
    assert sorted(c.chunk_index for c in kb.chunks) == list(range(10))
    assert len({c.content for c in kb.chunks}) == 10


@pytest.mark.asyncio
async def test_knowledge_base_listing(repo):
    await repo.save_knowledge_base(KnowledgeBase(name="b"))
    await repo.save_knowledge_base(KnowledgeBase(name="a"))
    names = sorted(kb.name for kb in await repo.list_knowledge_bases())
    assert names == ["a", "b"]
    with pytest.raises(DuplicateNameError):
        await repo.save_knowledge_base(KnowledgeBase(name="a"))


@pytest.mark.asyncio
async def test_conversation_is_bounded(repo):
    assert await repo.get_conversation("s1") is None
    for i in range(12):
        conv = await repo.append_messages("s1", _exchange(i), keep_last=20)

    assert len(conv.messages) == 20
    assert conv.messages[0].content == "question 2"
    assert conv.messages[-1].content == "answer 11"

    stored = await repo.get_conversation("s1")
    assert [m.content for m in stored.messages] == [m.content for m in conv.messages]


@pytest.mark.asyncio
async def test_returned_documents_are_copies():
    repo = InMemoryRepository()
    kb, added = await repo.append_chunks("notes", [ChunkDraft(content="x")], create_new=True)
    added[0].content = "mutated"
    kb.chunks.clear()

    stored = await repo.get_knowledge_base("notes")
    assert [c.content for c in stored.chunks] == ["x"]


@pytest.mark.asyncio
async def test_append_locks_are_released_after_use():
    repo = InMemoryRepository()
    await asyncio.gather(
        *[
            repo.append_messages(
                f"session_{i}", [ConversationMessage(role="user", content="hi")], 20
            )
            for i in range(50)
        ]
    )
    await repo.append_chunks("notes", [ChunkDraft(content="x")], create_new=True)
    gc.collect()

    assert len(repo._session_locks) == 0
    assert len(repo._kb_locks) == 0
