"""Workflow execution engine for nodeflow pipelines."""

from __future__ import annotations

import logging
from typing import Optional

from .config import NodeflowConfig, load_config
from .contracts import ExecutionResult, Payload
from .errors import UnknownNodeTypeError, WorkflowNotFoundError
from .llm import LLMGateway
from .nodes import ExecutionContext, get_handler
from .persistence import Repository, get_repository
from .uploads import UploadedFile

logger = logging.getLogger(__name__)


class WorkflowExecutor:
    """Runs a stored workflow's nodes in order, threading one payload through."""

    def __init__(
        self,
        repository: Repository | None = None,
        gateway: LLMGateway | None = None,
        config: NodeflowConfig | None = None,
    ) -> None:
        self._config = config or load_config()
        self._repository = repository or get_repository(config=self._config)
        self._gateway = gateway or LLMGateway(timeout=self._config.llm.timeout)

    async def execute(
        self,
        workflow_id: str,
        input_text: Optional[str] = None,
        upload: Optional[UploadedFile] = None,
        session_id: Optional[str] = None,
    ) -> ExecutionResult:
        """Execute the workflow ``workflow_id`` and return every node's output.

        Errors raised by a node abort the run and propagate to the caller.
        """
        workflow = await self._repository.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)

        context = ExecutionContext(
            repository=self._repository,
            gateway=self._gateway,
            settings=self._config,
            input_text=input_text,
            upload=upload,
            session_id=session_id,
        )
        nodes = workflow.execution_order()
        logger.info(f'Executing workflow "{workflow.name}" with {len(nodes)} nodes')

        result = ExecutionResult()
        payload: Optional[Payload] = None
        for node in nodes:
            try:
                handler = get_handler(node.type)
            except UnknownNodeTypeError as exc:
                exc.node_id = node.id
                raise
            logger.info(f"Executing node {node.id} of type {node.type}")
            payload = await handler.run(node, payload, context)
            logger.debug(f"Node {node.id} produced a {payload.kind} result")
            result.results[node.id] = payload

        result.final_output = payload
        logger.info(f'Workflow "{workflow.name}" completed')
        return result
