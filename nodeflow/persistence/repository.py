"""Repository abstraction for workflow, knowledge base and conversation storage."""

from __future__ import annotations

from typing import List, Protocol, Tuple

from ..contracts import (
    ChunkDraft,
    Conversation,
    ConversationMessage,
    KnowledgeBase,
    KnowledgeBaseChunk,
    Workflow,
)


class Repository(Protocol):
    """Protocol for storage backends used by the workflow executor."""

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        """Retrieve a workflow by id."""

    async def find_workflow_by_name(self, name: str) -> Workflow | None:
        """Retrieve a workflow by name, ignoring case."""

    async def save_workflow(self, workflow: Workflow) -> Workflow:
        """Insert or replace a workflow.

        Raises:
            DuplicateNameError: Another workflow already uses the name.
        """

    async def list_workflows(self) -> List[Workflow]:
        """Return all workflows, most recently updated first."""

    async def delete_workflow(self, workflow_id: str) -> bool:
        """Delete a workflow, returning ``False`` if it did not exist."""

    async def get_knowledge_base(self, name: str) -> KnowledgeBase | None:
        """Retrieve a knowledge base by name."""

    async def save_knowledge_base(self, knowledge_base: KnowledgeBase) -> KnowledgeBase:
        """Insert or replace a knowledge base."""

    async def list_knowledge_bases(self) -> List[KnowledgeBase]:
        """Return all knowledge bases."""

    async def append_chunks(
        self, name: str, drafts: List[ChunkDraft], create_new: bool = False
    ) -> Tuple[KnowledgeBase, List[KnowledgeBaseChunk]]:
        """Atomically append chunks, assigning indexes after the existing ones.

        Raises:
            KnowledgeBaseNotFoundError: The knowledge base does not exist and
                ``create_new`` is false.
        """

    async def get_conversation(self, session_id: str) -> Conversation | None:
        """Retrieve the conversation for ``session_id``."""

    async def append_messages(
        self, session_id: str, messages: List[ConversationMessage], keep_last: int
    ) -> Conversation:
        """Atomically append messages, creating the conversation if needed."""
