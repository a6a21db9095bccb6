"""Exception hierarchy for nodeflow workflow execution."""

from __future__ import annotations

from typing import Optional


class NodeflowError(Exception):
    """Base class for all errors raised by nodeflow."""


class ConfigError(NodeflowError):
    """A node or workflow is missing required configuration."""


class WorkflowDefinitionError(ConfigError):
    """A stored workflow cannot be turned into a linear node sequence."""


class NotFoundError(NodeflowError):
    """A referenced record does not exist."""


class WorkflowNotFoundError(NotFoundError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow {workflow_id!r} not found")
        self.workflow_id = workflow_id


class KnowledgeBaseNotFoundError(NotFoundError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f'Knowledge base "{name}" not found. Create it first with a Store '
            "node configured with createNew."
        )
        self.name = name


class DuplicateNameError(NodeflowError):
    """A record with the same (case-insensitive) name already exists."""


class MissingInputError(NodeflowError):
    """A node did not receive the input it needs."""


class InputReadError(NodeflowError):
    """An uploaded file could not be read."""


class UploadRejectedError(NodeflowError):
    """An upload failed size or type validation."""


class UnknownNodeTypeError(NodeflowError):
    def __init__(self, node_type: str, node_id: Optional[str] = None) -> None:
        super().__init__(f"Unknown node type: {node_type}")
        self.node_type = node_type
        self.node_id = node_id


class ProviderError(NodeflowError):
    """An LLM provider call failed.

    ``status_code`` is the HTTP status when the provider answered, ``None``
    when the request never completed.
    """

    def __init__(
        self, provider: str, message: str, status_code: Optional[int] = None
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.provider} ({self.status_code}): {self.message}"
        return f"{self.provider}: {self.message}"


class AuthError(ProviderError):
    pass


class QuotaError(ProviderError):
    pass


class NetworkError(ProviderError):
    pass


class UnknownProviderError(ProviderError):
    pass


class InvalidKeyFormatError(ProviderError):
    pass


__all__ = [
    "NodeflowError",
    "ConfigError",
    "WorkflowDefinitionError",
    "NotFoundError",
    "WorkflowNotFoundError",
    "KnowledgeBaseNotFoundError",
    "DuplicateNameError",
    "MissingInputError",
    "InputReadError",
    "UploadRejectedError",
    "UnknownNodeTypeError",
    "ProviderError",
    "AuthError",
    "QuotaError",
    "NetworkError",
    "UnknownProviderError",
    "InvalidKeyFormatError",
]
