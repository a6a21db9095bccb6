"""Output node: wraps the final payload in a presentation format."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from ..contracts import (
    NodeType,
    OutputMetadata,
    OutputResult,
    Payload,
    WorkflowNode,
)
from ..errors import MissingInputError
from ..formatting import render
from .base import ExecutionContext, NodeConfig, NodeHandler


class OutputNodeConfig(NodeConfig):
    format: str = "detailed"
    include_metadata: bool = True
    title: Optional[str] = None
    custom_fields: List[str] = Field(default_factory=list)


class OutputNode(NodeHandler):
    node_type = NodeType.OUTPUT

    async def run(
        self,
        node: WorkflowNode,
        payload: Optional[Payload],
        context: ExecutionContext,
    ) -> Payload:
        if payload is None:
            raise MissingInputError("Output node did not receive any data")

        config = OutputNodeConfig.model_validate(node.config)
        metadata = None
        if config.include_metadata:
            metadata = OutputMetadata(
                node_id=node.id,
                data_size=len(payload.model_dump_json(by_alias=True)),
            )
        return OutputResult(
            format=config.format,
            data=payload,
            formatted=render(payload, config.format, config.model_dump()),
            metadata=metadata,
        )
