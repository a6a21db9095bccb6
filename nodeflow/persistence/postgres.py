"""PostgreSQL implementation of the repository."""

from __future__ import annotations

import json
from typing import Any, List, Tuple

import asyncpg

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


def _load(value: Any) -> dict:
    return json.loads(value) if isinstance(value, str) else value


class PostgresRepository(Repository):
    """Persist documents as JSONB using PostgreSQL.

    Appends lock the target row with ``SELECT ... FOR UPDATE`` inside a
    transaction.
    """

    def __init__(self, dsn: str):
        self._dsn = dsn
        self._initialized = False

    async def _connect(self) -> asyncpg.Connection:
        conn = await asyncpg.connect(self._dsn)
        if not self._initialized:
            await self._ensure_schema(conn)
            self._initialized = True
        return conn

    async def _ensure_schema(self, conn: asyncpg.Connection) -> None:
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                name_key TEXT NOT NULL UNIQUE,
                document JSONB NOT NULL,
                updated_at TIMESTAMPTZ NOT NULL
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS knowledge_bases (
                name TEXT PRIMARY KEY,
                document JSONB NOT NULL
            )
            """
        )
        await conn.execute(
            """
            CREATE TABLE IF NOT EXISTS conversations (
                session_id TEXT PRIMARY KEY,
                document JSONB NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT document FROM workflows WHERE id = $1", workflow_id
            )
        finally:
            await conn.close()
        return Workflow.model_validate(_load(row["document"])) if row else None

    async def find_workflow_by_name(self, name: str) -> Workflow | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT document FROM workflows WHERE name_key = $1",
                name.strip().casefold(),
            )
        finally:
            await conn.close()
        return Workflow.model_validate(_load(row["document"])) if row else None

    async def save_workflow(self, workflow: Workflow) -> Workflow:
        workflow.updated_at = utcnow()
        conn = await self._connect()
        try:
            await conn.execute(
                """
                INSERT INTO workflows (id, name_key, document, updated_at)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (id) DO UPDATE SET
                    name_key = EXCLUDED.name_key,
                    document = EXCLUDED.document,
                    updated_at = EXCLUDED.updated_at
                """,
                workflow.id,
                workflow.name.strip().casefold(),
                json.dumps(workflow.to_document()),
                workflow.updated_at,
            )
        except asyncpg.UniqueViolationError as exc:
            raise DuplicateNameError(
                f'Workflow name "{workflow.name}" already exists'
            ) from exc
        finally:
            await conn.close()
        return workflow

    async def list_workflows(self) -> List[Workflow]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT document FROM workflows ORDER BY updated_at DESC"
            )
        finally:
            await conn.close()
        return [Workflow.model_validate(_load(r["document"])) for r in rows]

    async def delete_workflow(self, workflow_id: str) -> bool:
        conn = await self._connect()
        try:
            status = await conn.execute(
                "DELETE FROM workflows WHERE id = $1", workflow_id
            )
        finally:
            await conn.close()
        return status != "DELETE 0"

    # ------------------------------------------------------------------
    async def get_knowledge_base(self, name: str) -> KnowledgeBase | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT document FROM knowledge_bases WHERE name = $1", name
            )
        finally:
            await conn.close()
        return KnowledgeBase.model_validate(_load(row["document"])) if row else None

    async def save_knowledge_base(self, knowledge_base: KnowledgeBase) -> KnowledgeBase:
        conn = await self._connect()
        try:
            async with conn.transaction():
                row = await conn.fetchrow(
                    "SELECT document FROM knowledge_bases WHERE name = $1 FOR UPDATE",
                    knowledge_base.name,
                )
                if row and _load(row["document"]).get("id") != knowledge_base.id:
                    raise DuplicateNameError(
                        f'Knowledge base "{knowledge_base.name}" already exists'
                    )
                await conn.execute(
                    """
                    INSERT INTO knowledge_bases (name, document) VALUES ($1, $2)
                    ON CONFLICT (name) DO UPDATE SET document = EXCLUDED.document
                    """,
                    knowledge_base.name,
                    json.dumps(knowledge_base.to_document()),
                )
        finally:
            await conn.close()
        return knowledge_base

    async def list_knowledge_bases(self) -> List[KnowledgeBase]:
        conn = await self._connect()
        try:
            rows = await conn.fetch(
                "SELECT document FROM knowledge_bases ORDER BY name"
            )
        finally:
            await conn.close()
        return [KnowledgeBase.model_validate(_load(r["document"])) for r in rows]

    async def append_chunks(
        self, name: str, drafts: List[ChunkDraft], create_new: bool = False
    ) -> Tuple[KnowledgeBase, List[KnowledgeBaseChunk]]:
        conn = await self._connect()
        try:
            async with conn.transaction():
                if create_new:
                    fresh = KnowledgeBase(
                        name=name, description="Created from workflow execution"
                    )
                    await conn.execute(
                        """
                        INSERT INTO knowledge_bases (name, document) VALUES ($1, $2)
                        ON CONFLICT (name) DO NOTHING
                        """,
                        name,
                        json.dumps(fresh.to_document()),
                    )
                row = await conn.fetchrow(
                    "SELECT document FROM knowledge_bases WHERE name = $1 FOR UPDATE",
                    name,
                )
                if row is None:
                    raise KnowledgeBaseNotFoundError(name)
                kb = KnowledgeBase.model_validate(_load(row["document"]))
                added = kb.append(drafts)
                await conn.execute(
                    "UPDATE knowledge_bases SET document = $1 WHERE name = $2",
                    json.dumps(kb.to_document()),
                    name,
                )
        finally:
            await conn.close()
        return kb, added

    # ------------------------------------------------------------------
    async def get_conversation(self, session_id: str) -> Conversation | None:
        conn = await self._connect()
        try:
            row = await conn.fetchrow(
                "SELECT document FROM conversations WHERE session_id = $1", session_id
            )
        finally:
            await conn.close()
        return Conversation.model_validate(_load(row["document"])) if row else None

    async def append_messages(
        self, session_id: str, messages: List[ConversationMessage], keep_last: int
    ) -> Conversation:
        conn = await self._connect()
        try:
            async with conn.transaction():
                fresh = Conversation(session_id=session_id)
                await conn.execute(
                    """
                    INSERT INTO conversations (session_id, document) VALUES ($1, $2)
                    ON CONFLICT (session_id) DO NOTHING
                    """,
                    session_id,
                    json.dumps(fresh.to_document()),
                )
                row = await conn.fetchrow(
                    "SELECT document FROM conversations WHERE session_id = $1 FOR UPDATE",
                    session_id,
                )
                conv = Conversation.model_validate(_load(row["document"]))
                conv.append(messages, keep_last)
                await conn.execute(
                    "UPDATE conversations SET document = $1 WHERE session_id = $2",
                    json.dumps(conv.to_document()),
                    session_id,
                )
        finally:
            await conn.close()
        return conv
