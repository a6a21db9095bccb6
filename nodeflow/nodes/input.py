"""Input node: turns pasted text or an uploaded file into the first payload."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from ..contracts import InputResult, NodeType, Payload, WorkflowNode
from ..errors import InputReadError, MissingInputError
from ..uploads import UploadedFile
from .base import ExecutionContext, NodeHandler

logger = logging.getLogger(__name__)


async def read_upload(upload: UploadedFile) -> str:
    """Read the staged upload and delete it, whether or not reading worked."""
    try:
        return await asyncio.to_thread(upload.path.read_text, encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InputReadError(f"Failed to process file: {exc}") from exc
    finally:
        try:
            await asyncio.to_thread(upload.path.unlink, missing_ok=True)
        except OSError as exc:
            logger.warning(f"Could not remove upload {upload.path}: {exc}")


class InputNode(NodeHandler):
    node_type = NodeType.INPUT

    async def run(
        self,
        node: WorkflowNode,
        payload: Optional[Payload],
        context: ExecutionContext,
    ) -> Payload:
        if context.upload is not None:
            text = await read_upload(context.upload)
            logger.info(
                f"Read {len(text)} characters from {context.upload.original_name}"
            )
            return InputResult(text=text, source=context.upload.original_name)

        if context.input_text:
            logger.info(f"Using input text, length {len(context.input_text)}")
            return InputResult(text=context.input_text, source="user_input")

        raise MissingInputError("Input node requires either text or file")
