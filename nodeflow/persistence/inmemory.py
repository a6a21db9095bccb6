"""In-memory implementation of the repository."""

from __future__ import annotations

import asyncio
import weakref
from typing import Dict, List, Tuple

from ..contracts import (
    ChunkDraft,
    Conversation,
    ConversationMessage,
    KnowledgeBase,
    KnowledgeBaseChunk,
    Workflow,
    utcnow,
)
from ..errors import DuplicateNameError, KnowledgeBaseNotFoundError
from .repository import Repository


def _lock_for(
    locks: weakref.WeakValueDictionary[str, asyncio.Lock], key: str
) -> asyncio.Lock:
    lock = locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        locks[key] = lock
    return lock


class InMemoryRepository(Repository):
    """Store documents in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts. Stored documents are copied on the
    way in and out so callers never share state with the store.
    """

    def __init__(self) -> None:
        self._workflows: Dict[str, Workflow] = {}
        self._knowledge_bases: Dict[str, KnowledgeBase] = {}
        self._conversations: Dict[str, Conversation] = {}
        # Locks live only while some append holds or awaits them.
        self._kb_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )
        self._session_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    # ------------------------------------------------------------------
    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        wf = self._workflows.get(workflow_id)
        return wf.model_copy(deep=True) if wf else None

    async def find_workflow_by_name(self, name: str) -> Workflow | None:
        key = name.strip().casefold()
        for wf in self._workflows.values():
            if wf.name.strip().casefold() == key:
                return wf.model_copy(deep=True)
        return None

    async def save_workflow(self, workflow: Workflow) -> Workflow:
        existing = await self.find_workflow_by_name(workflow.name)
        if existing is not None and existing.id != workflow.id:
            raise DuplicateNameError(f'Workflow name "{workflow.name}" already exists')
        workflow.updated_at = utcnow()
        self._workflows[workflow.id] = workflow.model_copy(deep=True)
        return workflow

    async def list_workflows(self) -> List[Workflow]:
        return sorted(
            (wf.model_copy(deep=True) for wf in self._workflows.values()),
            key=lambda wf: wf.updated_at,
            reverse=True,
        )

    async def delete_workflow(self, workflow_id: str) -> bool:
        return self._workflows.pop(workflow_id, None) is not None

    # ------------------------------------------------------------------
    async def get_knowledge_base(self, name: str) -> KnowledgeBase | None:
        kb = self._knowledge_bases.get(name)
        return kb.model_copy(deep=True) if kb else None

    async def save_knowledge_base(self, knowledge_base: KnowledgeBase) -> KnowledgeBase:
        existing = self._knowledge_bases.get(knowledge_base.name)
        if existing is not None and existing.id != knowledge_base.id:
            raise DuplicateNameError(
                f'Knowledge base "{knowledge_base.name}" already exists'
            )
        self._knowledge_bases[knowledge_base.name] = knowledge_base.model_copy(deep=True)
        return knowledge_base

    async def list_knowledge_bases(self) -> List[KnowledgeBase]:
        return [kb.model_copy(deep=True) for kb in self._knowledge_bases.values()]

    async def append_chunks(
        self, name: str, drafts: List[ChunkDraft], create_new: bool = False
    ) -> Tuple[KnowledgeBase, List[KnowledgeBaseChunk]]:
        async with _lock_for(self._kb_locks, name):
            kb = self._knowledge_bases.get(name)
            if kb is None:
                if not create_new:
                    raise KnowledgeBaseNotFoundError(name)
                kb = KnowledgeBase(
                    name=name, description="Created from workflow execution"
                )
                self._knowledge_bases[name] = kb
            added = kb.append(drafts)
            snapshot = kb.model_copy(deep=True)
            return snapshot, snapshot.chunks[len(snapshot.chunks) - len(added) :]

    # ------------------------------------------------------------------
    async def get_conversation(self, session_id: str) -> Conversation | None:
        conv = self._conversations.get(session_id)
        return conv.model_copy(deep=True) if conv else None

    async def append_messages(
        self, session_id: str, messages: List[ConversationMessage], keep_last: int
    ) -> Conversation:
        async with _lock_for(self._session_locks, session_id):
            conv = self._conversations.get(session_id)
            if conv is None:
                conv = Conversation(session_id=session_id)
                self._conversations[session_id] = conv
            conv.append(messages, keep_last)
            return conv.model_copy(deep=True)
