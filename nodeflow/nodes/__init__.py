"""Node handlers and the type registry used by the executor."""

from __future__ import annotations

from typing import Dict

from ..contracts import NodeType
from ..errors import UnknownNodeTypeError
from .base import ExecutionContext, NodeConfig, NodeHandler
from .input import InputNode
from .memory import MemoryNode
from .output import OutputNode
from .rag import RagNode
from .store import StoreNode

HANDLERS: Dict[NodeType, NodeHandler] = {
    handler.node_type: handler
    for handler in (InputNode(), StoreNode(), RagNode(), MemoryNode(), OutputNode())
}


def get_handler(node_type: str) -> NodeHandler:
    """Return the handler for ``node_type``."""
    try:
        return HANDLERS[NodeType(node_type)]
    except ValueError:
        raise UnknownNodeTypeError(node_type) from None


__all__ = [
    "ExecutionContext",
    "HANDLERS",
    "InputNode",
    "MemoryNode",
    "NodeConfig",
    "NodeHandler",
    "OutputNode",
    "RagNode",
    "StoreNode",
    "get_handler",
]
