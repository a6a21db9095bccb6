"""SQLite implementation of the repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
import threading
from pathlib import Path
from typing import Any, Callable, List, Tuple, TypeVar

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

T = TypeVar("T")


class SQLiteRepository(Repository):
    """Persist documents as JSON text using SQLite.

    Read-modify-write appends run inside ``BEGIN IMMEDIATE`` transactions so
    concurrent executions cannot lose chunk or message updates.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = str(db_path)
        self._conn = sqlite3.connect(
            self.db_path, check_same_thread=False, isolation_level=None
        )
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._ensure_schema()

    # ------------------------------------------------------------------
    # Schema management
    def _ensure_schema(self) -> None:
        cur = self._conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS workflows (
                id TEXT PRIMARY KEY,
                name_key TEXT NOT NULL UNIQUE,
                document TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS knowledge_bases (
                name TEXT PRIMARY KEY,
                document TEXT NOT NULL
            )
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS conversations (
                session_id TEXT PRIMARY KEY,
                document TEXT NOT NULL
            )
            """
        )

    # ------------------------------------------------------------------
    # Helper methods
    def _execute(self, query: str, *params: Any) -> int:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.rowcount

    def _fetchone(self, query: str, *params: Any) -> sqlite3.Row | None:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchone()

    def _fetchall(self, query: str, *params: Any) -> list[sqlite3.Row]:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute(query, params)
            return cur.fetchall()

    def _transaction(self, work: Callable[[sqlite3.Cursor], T]) -> T:
        with self._lock:
            cur = self._conn.cursor()
            cur.execute("BEGIN IMMEDIATE")
            try:
                result = work(cur)
            except BaseException:
                cur.execute("ROLLBACK")
                raise
            cur.execute("COMMIT")
            return result

    # ------------------------------------------------------------------
    # Workflows
    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT document FROM workflows WHERE id = ?", workflow_id
        )
        return Workflow.model_validate_json(row["document"]) if row else None

    async def find_workflow_by_name(self, name: str) -> Workflow | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT document FROM workflows WHERE name_key = ?",
            name.strip().casefold(),
        )
        return Workflow.model_validate_json(row["document"]) if row else None

    async def save_workflow(self, workflow: Workflow) -> Workflow:
        workflow.updated_at = utcnow()
        try:
            await asyncio.to_thread(
                self._execute,
                """
                INSERT INTO workflows (id, name_key, document, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name_key = excluded.name_key,
                    document = excluded.document,
                    updated_at = excluded.updated_at
                """,
                workflow.id,
                workflow.name.strip().casefold(),
                json.dumps(workflow.to_document()),
                workflow.updated_at.isoformat(),
            )
        except sqlite3.IntegrityError as exc:
            raise DuplicateNameError(
                f'Workflow name "{workflow.name}" already exists'
            ) from exc
        return workflow

    async def list_workflows(self) -> List[Workflow]:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT document FROM workflows ORDER BY updated_at DESC"
        )
        return [Workflow.model_validate_json(r["document"]) for r in rows]

    async def delete_workflow(self, workflow_id: str) -> bool:
        deleted = await asyncio.to_thread(
            self._execute, "DELETE FROM workflows WHERE id = ?", workflow_id
        )
        return deleted > 0

    # ------------------------------------------------------------------
    # Knowledge bases
    async def get_knowledge_base(self, name: str) -> KnowledgeBase | None:
        row = await asyncio.to_thread(
            self._fetchone, "SELECT document FROM knowledge_bases WHERE name = ?", name
        )
        return KnowledgeBase.model_validate_json(row["document"]) if row else None

    async def save_knowledge_base(self, knowledge_base: KnowledgeBase) -> KnowledgeBase:
        def work(cur: sqlite3.Cursor) -> None:
            cur.execute(
                "SELECT document FROM knowledge_bases WHERE name = ?",
                (knowledge_base.name,),
            )
            row = cur.fetchone()
            if row and KnowledgeBase.model_validate_json(row["document"]).id != knowledge_base.id:
                raise DuplicateNameError(
                    f'Knowledge base "{knowledge_base.name}" already exists'
                )
            cur.execute(
                "INSERT OR REPLACE INTO knowledge_bases (name, document) VALUES (?, ?)",
                (knowledge_base.name, json.dumps(knowledge_base.to_document())),
            )

        await asyncio.to_thread(self._transaction, work)
        return knowledge_base

    async def list_knowledge_bases(self) -> List[KnowledgeBase]:
        rows = await asyncio.to_thread(
            self._fetchall, "SELECT document FROM knowledge_bases ORDER BY name"
        )
        return [KnowledgeBase.model_validate_json(r["document"]) for r in rows]

    async def append_chunks(
        self, name: str, drafts: List[ChunkDraft], create_new: bool = False
    ) -> Tuple[KnowledgeBase, List[KnowledgeBaseChunk]]:
        def work(cur: sqlite3.Cursor) -> Tuple[KnowledgeBase, List[KnowledgeBaseChunk]]:
            cur.execute("SELECT document FROM knowledge_bases WHERE name = ?", (name,))
            row = cur.fetchone()
            if row:
                kb = KnowledgeBase.model_validate_json(row["document"])
            elif create_new:
                kb = KnowledgeBase(name=name, description="Created from workflow execution")
            else:
                raise KnowledgeBaseNotFoundError(name)
            added = kb.append(drafts)
            cur.execute(
                "INSERT OR REPLACE INTO knowledge_bases (name, document) VALUES (?, ?)",
                (name, json.dumps(kb.to_document())),
            )
            return kb, added

        return await asyncio.to_thread(self._transaction, work)

    # ------------------------------------------------------------------
    # Conversations
    async def get_conversation(self, session_id: str) -> Conversation | None:
        row = await asyncio.to_thread(
            self._fetchone,
            "SELECT document FROM conversations WHERE session_id = ?",
            session_id,
        )
        return Conversation.model_validate_json(row["document"]) if row else None

    async def append_messages(
        self, session_id: str, messages: List[ConversationMessage], keep_last: int
    ) -> Conversation:
        def work(cur: sqlite3.Cursor) -> Conversation:
            cur.execute(
                "SELECT document FROM conversations WHERE session_id = ?", (session_id,)
            )
            row = cur.fetchone()
            conv = (
                Conversation.model_validate_json(row["document"])
                if row
                else Conversation(session_id=session_id)
            )
            conv.append(messages, keep_last)
            cur.execute(
                "INSERT OR REPLACE INTO conversations (session_id, document) VALUES (?, ?)",
                (session_id, json.dumps(conv.to_document())),
            )
            return conv

        return await asyncio.to_thread(self._transaction, work)
