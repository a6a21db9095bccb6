"""Core data contracts for nodeflow workflows.

Persisted documents and pipeline payloads are pydantic models. Attributes
are snake_case in Python and camelCase on the wire, so
``model_dump(by_alias=True)`` yields the stored document shape.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .errors import WorkflowDefinitionError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return uuid.uuid4().hex


class Document(BaseModel):
    """Base model with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the JSON-compatible stored form."""
        return self.model_dump(mode="json", by_alias=True)


# ----------------------------------------------------------------------
# Workflow definitions


class NodeType(str, Enum):
    INPUT = "input"
    STORE = "store"
    RAG = "rag"
    MEMORY = "memory"
    OUTPUT = "output"


class Position(Document):
    x: float = 0
    y: float = 0


class WorkflowNode(Document):
    """One step in a workflow.

    ``type`` stays a plain string so that an unsupported value is reported
    by the executor instead of failing when the workflow is loaded.
    """

    id: str
    type: str
    config: Dict[str, Any] = Field(default_factory=dict)
    position: Position = Field(default_factory=Position)


class Connection(Document):
    """Legacy edge between two nodes."""

    source: str = Field(alias="from")
    target: str = Field(alias="to")


class Workflow(Document):
    id: str = Field(default_factory=new_id)
    name: str
    description: Optional[str] = None
    node_sequence: List[WorkflowNode] = Field(default_factory=list)
    nodes: List[WorkflowNode] = Field(default_factory=list)
    connections: List[Connection] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def execution_order(self) -> List[WorkflowNode]:
        """Return the nodes in the order they must run."""
        if self.node_sequence:
            return list(self.node_sequence)
        if self.nodes:
            return linearize_nodes(self.nodes, self.connections)
        return []


def linearize_nodes(
    nodes: List[WorkflowNode], connections: List[Connection]
) -> List[WorkflowNode]:
    """Turn a legacy node/edge list into a linear sequence.

    The graph must be a simple path: a single node without incoming edges,
    and at most one predecessor and one successor per node.
    """

    by_id = {node.id: node for node in nodes}
    successors: Dict[str, str] = {}
    predecessors: Dict[str, str] = {}
    for edge in connections:
        if edge.source not in by_id or edge.target not in by_id:
            raise WorkflowDefinitionError(
                f"Connection {edge.source} -> {edge.target} references an unknown node"
            )
        if edge.source in successors:
            raise WorkflowDefinitionError(
                f"Node {edge.source} has more than one outgoing connection"
            )
        if edge.target in predecessors:
            raise WorkflowDefinitionError(
                f"Node {edge.target} has more than one incoming connection"
            )
        successors[edge.source] = edge.target
        predecessors[edge.target] = edge.source

    starts = [node.id for node in nodes if node.id not in predecessors]
    if len(starts) != 1:
        raise WorkflowDefinitionError(
            f"Expected exactly one start node, found {len(starts)}"
        )

    ordered: List[WorkflowNode] = []
    seen: set[str] = set()
    current: Optional[str] = starts[0]
    while current is not None:
        if current in seen:
            raise WorkflowDefinitionError(f"Cycle detected at node {current}")
        seen.add(current)
        ordered.append(by_id[current])
        current = successors.get(current)

    if len(ordered) != len(nodes):
        raise WorkflowDefinitionError("Workflow graph is not a single connected path")
    logger.debug(f"Linearized legacy workflow: {[n.id for n in ordered]}")
    return ordered


# ----------------------------------------------------------------------
# Knowledge bases and conversations


class ChunkMetadata(Document):
    added_at: datetime = Field(default_factory=utcnow)
    word_count: int = 0
    content_type: str = "document"


class KnowledgeBaseChunk(Document):
    content: str
    chunk_index: int
    source_reference: Optional[str] = None
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)


class ChunkDraft(Document):
    """Chunk content waiting for an index assigned at append time."""

    content: str
    source_reference: Optional[str] = None
    metadata: ChunkMetadata = Field(default_factory=ChunkMetadata)


class KnowledgeBase(Document):
    id: str = Field(default_factory=new_id)
    name: str
    description: Optional[str] = None
    chunks: List[KnowledgeBaseChunk] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def append(self, drafts: List[ChunkDraft]) -> List[KnowledgeBaseChunk]:
        """Append ``drafts`` continuing the chunk index sequence."""
        start = len(self.chunks)
        added = [
            KnowledgeBaseChunk(
                content=draft.content,
                chunk_index=start + offset,
                source_reference=draft.source_reference,
                metadata=draft.metadata,
            )
            for offset, draft in enumerate(drafts)
        ]
        self.chunks.extend(added)
        self.updated_at = utcnow()
        return added


class ConversationMessage(Document):
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=utcnow)


class Conversation(Document):
    session_id: str
    messages: List[ConversationMessage] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def append(self, messages: List[ConversationMessage], keep_last: int) -> None:
        """Append ``messages`` and keep only the newest ``keep_last``."""
        self.messages.extend(messages)
        if len(self.messages) > keep_last:
            self.messages = self.messages[-keep_last:]
        self.updated_at = utcnow()


# ----------------------------------------------------------------------
# Pipeline payloads


class InputResult(Document):
    kind: Literal["input"] = "input"
    text: str
    source: str


class StoreResult(Document):
    kind: Literal["store"] = "store"
    success: bool = True
    knowledge_base: str
    chunks_added: int = 0
    total_chunks: Optional[int] = None
    message: str = ""
    text: Optional[str] = None
    source: Optional[str] = None
    workflow_type: str = "ingestion"
    skipped: bool = False
    reason: Optional[str] = None


class RetrievedChunk(Document):
    content: str
    index: int


class LLMStatus(Document):
    """Whether an external model produced the answer, and why not if not."""

    used: bool = False
    error: Optional[str] = None
    provider: str = "none"
    model: str = "default"
    has_api_key: bool = False
    api_key_valid: bool = False
    mode: Optional[str] = None


class QueryFields(Document):
    question: str
    answer: str
    chunks: List[RetrievedChunk] = Field(default_factory=list)
    source: str = "rag"
    knowledge_base: Optional[str] = None
    workflow_type: str = "query"
    llm_status: LLMStatus = Field(default_factory=LLMStatus)


class RagResult(QueryFields):
    kind: Literal["rag"] = "rag"


class MemoryResult(QueryFields):
    kind: Literal["memory"] = "memory"
    session_id: str
    conversation_history: List[ConversationMessage] = Field(default_factory=list)


class OutputMetadata(Document):
    processed_at: datetime = Field(default_factory=utcnow)
    node_id: str
    workflow_step: str = "final_output"
    data_size: int = 0


class OutputResult(Document):
    kind: Literal["output"] = "output"
    type: Literal["output"] = "output"
    format: str
    data: "Payload"
    formatted: Any = None
    metadata: Optional[OutputMetadata] = None


Payload = Annotated[
    Union[InputResult, StoreResult, RagResult, MemoryResult, OutputResult],
    Field(discriminator="kind"),
]

OutputResult.model_rebuild()


class ExecutionResult(Document):
    success: bool = True
    results: Dict[str, Payload] = Field(default_factory=dict)
    final_output: Optional[Payload] = None
