"""Base node handler interface and the per-execution context."""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from typing import Optional

from pydantic import ConfigDict

from ..config import NodeflowConfig
from ..contracts import Document, NodeType, Payload, WorkflowNode
from ..llm import LLMGateway
from ..persistence import Repository
from ..uploads import UploadedFile


class NodeConfig(Document):
    """Base for typed views over a node's free-form ``config`` map."""

    model_config = ConfigDict(extra="allow")


@dataclass
class ExecutionContext:
    """Inputs and collaborators shared by every node of one execution."""

    repository: Repository
    gateway: LLMGateway
    settings: NodeflowConfig = field(default_factory=NodeflowConfig)
    input_text: Optional[str] = None
    upload: Optional[UploadedFile] = None
    session_id: Optional[str] = None


class NodeHandler(metaclass=abc.ABCMeta):
    """Turns the incoming payload into the payload for the next node."""

    node_type: NodeType

    @abc.abstractmethod
    async def run(
        self,
        node: WorkflowNode,
        payload: Optional[Payload],
        context: ExecutionContext,
    ) -> Payload:
        raise NotImplementedError
