"""Memory node: records question/answer exchanges per session."""

from __future__ import annotations

import logging
import time
from typing import Optional

from ..contracts import (
    ConversationMessage,
    MemoryResult,
    NodeType,
    Payload,
    RagResult,
    StoreResult,
    WorkflowNode,
)
from ..errors import MissingInputError
from .base import ExecutionContext, NodeConfig, NodeHandler

logger = logging.getLogger(__name__)


class MemoryNodeConfig(NodeConfig):
    session_id: Optional[str] = None


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}"


class MemoryNode(NodeHandler):
    node_type = NodeType.MEMORY

    async def run(
        self,
        node: WorkflowNode,
        payload: Optional[Payload],
        context: ExecutionContext,
    ) -> Payload:
        if payload is None:
            raise MissingInputError("Memory node requires input data")

        if not isinstance(payload, (RagResult, MemoryResult)) or not (
            payload.question and payload.answer
        ):
            if isinstance(payload, StoreResult):
                logger.info("Memory node received store output, passing through")
                return payload.model_copy(update={"source": "memory_skipped"})
            logger.info("Memory node found no question/answer, passing through")
            if "source" in type(payload).model_fields:
                return payload.model_copy(update={"source": "memory_passthrough"})
            return payload

        config = MemoryNodeConfig.model_validate(node.config)
        session_id = config.session_id or context.session_id or new_session_id()

        conversation = await context.repository.append_messages(
            session_id,
            [
                ConversationMessage(role="user", content=payload.question),
                ConversationMessage(role="assistant", content=payload.answer),
            ],
            keep_last=context.settings.memory.max_messages,
        )
        logger.info(
            f"Session {session_id} now holds {len(conversation.messages)} messages"
        )

        fields = payload.model_dump(
            exclude={"kind", "session_id", "conversation_history"}
        )
        return MemoryResult(
            **fields,
            session_id=session_id,
            conversation_history=conversation.messages,
        )
