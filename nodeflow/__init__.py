"""nodeflow: linear workflow engine for document ingestion and question answering."""

from .config import NodeflowConfig, load_config
from .contracts import ExecutionResult, KnowledgeBase, Workflow, WorkflowNode
from .execute import WorkflowExecutor
from .llm import LLMGateway
from .persistence import get_repository
from .uploads import UploadedFile, stage_upload

__version__ = "0.1.0"
__all__ = [
    "ExecutionResult",
    "KnowledgeBase",
    "LLMGateway",
    "NodeflowConfig",
    "UploadedFile",
    "Workflow",
    "WorkflowExecutor",
    "WorkflowNode",
    "get_repository",
    "load_config",
    "stage_upload",
]
