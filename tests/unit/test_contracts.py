import pytest

from nodeflow.contracts import (
    ChunkDraft,
    Conversation,
    ConversationMessage,
    ExecutionResult,
    KnowledgeBase,
    RagResult,
    StoreResult,
    Workflow,
    WorkflowNode,
)
from nodeflow.errors import WorkflowDefinitionError


def _legacy(nodes, edges) -> Workflow:
    return Workflow.model_validate(
        {
            "name": "legacy",
            "nodes": [{"id": n, "type": "input"} for n in nodes],
            "connections": [{"from": a, "to": b} for a, b in edges],
        }
    )


def test_node_sequence_wins_over_legacy_graph():
    wf = Workflow.model_validate(
        {
            "name": "qa",
            "nodeSequence": [{"id": "a", "type": "input"}, {"id": "b", "type": "output"}],
            "nodes": [{"id": "z", "type": "input"}],
        }
    )
    assert [n.id for n in wf.execution_order()] == ["a", "b"]


def test_legacy_graph_is_linearized():
    wf = _legacy(["c", "a", "b"], [("a", "b"), ("b", "c")])
    assert [n.id for n in wf.execution_order()] == ["a", "b", "c"]


@pytest.mark.parametrize(
    "nodes,edges,message",
    [
        (["a", "b"], [("a", "x")], "unknown node"),
        (["a", "b", "c"], [("a", "b"), ("a", "c")], "more than one outgoing"),
        (["a", "b", "c"], [("a", "c"), ("b", "c")], "more than one incoming"),
        (["a", "b"], [], "exactly one start"),
        (["a", "b", "c"], [("a", "b"), ("c", "c")], "not a single connected path"),
    ],
)
def test_invalid_legacy_graphs(nodes, edges, message):
    with pytest.raises(WorkflowDefinitionError, match=message):
        _legacy(nodes, edges).execution_order()


def test_fully_cyclic_graph_has_no_start():
    with pytest.raises(WorkflowDefinitionError, match="exactly one start"):
        _legacy(["a", "b"], [("a", "b"), ("b", "a")]).execution_order()


def test_workflow_document_uses_camel_case():
    wf = Workflow(name="qa", node_sequence=[WorkflowNode(id="n1", type="input")])
    doc = wf.to_document()
    assert "nodeSequence" in doc
    assert "createdAt" in doc
    assert doc["nodeSequence"][0]["position"] == {"x": 0, "y": 0}


def test_knowledge_base_append_continues_indices():
    kb = KnowledgeBase(name="kb")
    kb.append([ChunkDraft(content="one"), ChunkDraft(content="two")])
    added = kb.append([ChunkDraft(content="three")])
    assert [c.chunk_index for c in kb.chunks] == [0, 1, 2]
    assert added[0].chunk_index == 2


def test_conversation_keeps_most_recent_messages():
    conv = Conversation(session_id="s")
    for i in range(15):
        conv.append(
            [
                ConversationMessage(role="user", content=f"q{i}"),
                ConversationMessage(role="assistant", content=f"a{i}"),
            ],
            keep_last=20,
        )
    assert len(conv.messages) == 20
    assert conv.messages[0].content == "q5"
    assert conv.messages[-1].content == "a14"


def test_payloads_round_trip_through_discriminator():
    result = ExecutionResult.model_validate(
        {
            "results": {
                "s": StoreResult(knowledge_base="kb").to_document(),
                "r": RagResult(question="q", answer="a").to_document(),
            }
        }
    )
    assert isinstance(result.results["s"], StoreResult)
    assert isinstance(result.results["r"], RagResult)
