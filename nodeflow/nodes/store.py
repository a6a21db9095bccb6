"""Store node: chunks incoming text into a knowledge base."""

from __future__ import annotations

import logging
from typing import Optional

from ..chunking import chunk_text, count_words
from ..constants import QUESTION_SKIP_MAX_LENGTH
from ..contracts import (
    ChunkDraft,
    ChunkMetadata,
    NodeType,
    Payload,
    StoreResult,
    WorkflowNode,
)
from ..errors import ConfigError, MissingInputError
from ..retrieval import looks_like_question
from .base import ExecutionContext, NodeConfig, NodeHandler

logger = logging.getLogger(__name__)


class StoreNodeConfig(NodeConfig):
    knowledge_base_name: Optional[str] = None
    create_new: bool = False


class StoreNode(NodeHandler):
    node_type = NodeType.STORE

    async def run(
        self,
        node: WorkflowNode,
        payload: Optional[Payload],
        context: ExecutionContext,
    ) -> Payload:
        if payload is None:
            raise MissingInputError(
                "Store node did not receive any input data. "
                "Make sure it comes after an Input node."
            )

        config = StoreNodeConfig.model_validate(node.config)
        name = (config.knowledge_base_name or "").strip()
        if not name:
            raise ConfigError(
                "Knowledge base name is required for Store node. "
                "Please configure the Store node with a KB name."
            )

        text = getattr(payload, "text", None)
        if text is None:
            raise MissingInputError(
                f"Store node requires text input, received a {payload.kind} result"
            )
        source = getattr(payload, "source", None)

        is_question = looks_like_question(text)
        if is_question and len(text.strip()) < QUESTION_SKIP_MAX_LENGTH:
            logger.info("Detected short question, skipping storage")
            return StoreResult(
                knowledge_base=name,
                chunks_added=0,
                total_chunks=None,
                message=f'Skipped storing question "{text}" to prevent false matches in search',
                text=text,
                source=source,
                skipped=True,
                reason="question_detected",
            )

        chunking = context.settings.chunking
        drafts = [
            ChunkDraft(
                content=piece,
                source_reference=source,
                metadata=ChunkMetadata(
                    word_count=count_words(piece),
                    content_type="question" if is_question else "document",
                ),
            )
            for piece in chunk_text(text, chunking.min_words, chunking.max_words)
        ]

        kb, added = await context.repository.append_chunks(
            name, drafts, create_new=config.create_new
        )
        logger.info(
            f'Stored {len(added)} chunks in "{name}" ({len(kb.chunks)} total)'
        )
        return StoreResult(
            knowledge_base=name,
            chunks_added=len(added),
            total_chunks=len(kb.chunks),
            message=f'Successfully stored {len(added)} chunks in "{name}"',
            text=text,
            source=source,
        )
