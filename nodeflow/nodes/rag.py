"""RAG node: answers a question from a knowledge base, with LLM fallbacks.

Provider failures never fail the execution. They are turned into a fallback
answer built from the retrieved chunks, and ``llm_status`` records why the
model was not used.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from ..contracts import (
    InputResult,
    KnowledgeBaseChunk,
    LLMStatus,
    NodeType,
    Payload,
    RagResult,
    RetrievedChunk,
    StoreResult,
    WorkflowNode,
)
from ..errors import (
    AuthError,
    ConfigError,
    KnowledgeBaseNotFoundError,
    MissingInputError,
    NetworkError,
    ProviderError,
    QuotaError,
)
from ..llm import (
    GenerationMode,
    build_context_prompt,
    build_direct_prompt,
    default_model,
    validate_api_key,
)
from ..retrieval import score_chunks
from .base import ExecutionContext, NodeConfig, NodeHandler

logger = logging.getLogger(__name__)

WARNING = "⚠️"

NO_KEYWORDS_ANSWER = "Please provide a more specific question with meaningful keywords."
NO_MATCH_ANSWER = "No relevant information found in the knowledge base for your question."
DIRECT_UNAVAILABLE_ANSWER = (
    "No relevant information found in the knowledge base, "
    "and direct search is currently unavailable."
)


class RagNodeConfig(NodeConfig):
    knowledge_base_name: Optional[str] = None
    ai_provider: Optional[str] = None
    model: Optional[str] = None
    api_key: Optional[str] = None

    @property
    def llm_configured(self) -> bool:
        return bool(
            self.ai_provider
            and self.api_key
            and validate_api_key(self.api_key, self.ai_provider)
        )

    def status(self, **updates) -> LLMStatus:
        status = LLMStatus(
            provider=self.ai_provider or "none",
            model=self.model or default_model(self.ai_provider) or "default",
            has_api_key=bool(self.api_key),
            api_key_valid=validate_api_key(self.api_key, self.ai_provider),
        )
        return status.model_copy(update=updates)


def extract_question(payload: Payload) -> str:
    if isinstance(payload, (InputResult, StoreResult)) and payload.text:
        return payload.text
    raise MissingInputError(
        f"RAG node requires text input (question), received a {payload.kind} result"
    )


def provider_warning(exc: ProviderError) -> str:
    """User-facing explanation for a failed context-based LLM call."""
    if isinstance(exc, AuthError):
        return (
            f"{WARNING} API Authentication Error: Invalid API key.\n\n"
            f"Please check your {exc.provider} API key and try again."
        )
    if isinstance(exc, QuotaError):
        return (
            f"{WARNING} API Quota Error: Rate limit or quota exceeded.\n\n"
            f"Please check your {exc.provider} account usage."
        )
    if isinstance(exc, NetworkError):
        return (
            f"{WARNING} Network Error: Cannot reach {exc.provider} API.\n\n"
            "Please check your internet connection."
        )
    return f"{WARNING} LLM Error: {exc.message}"


class RagNode(NodeHandler):
    node_type = NodeType.RAG

    async def run(
        self,
        node: WorkflowNode,
        payload: Optional[Payload],
        context: ExecutionContext,
    ) -> Payload:
        if payload is None:
            raise MissingInputError("RAG node requires input data")

        if isinstance(payload, StoreResult) and not payload.text:
            logger.info("RAG node received store output without text, passing through")
            return payload.model_copy(
                update={
                    "message": "Documents stored successfully. RAG node skipped - no question provided.",
                    "source": "rag_skipped",
                }
            )

        question = extract_question(payload)
        config = RagNodeConfig.model_validate(node.config)
        name = config.knowledge_base_name
        if not name:
            raise ConfigError(
                "Knowledge base name is required for RAG node. "
                "Please configure the RAG node with a knowledge base name."
            )

        kb = await context.repository.get_knowledge_base(name)
        if kb is None:
            raise KnowledgeBaseNotFoundError(name)
        logger.info(f'Searching knowledge base "{name}" with {len(kb.chunks)} chunks')

        retrieval = score_chunks(
            question, kb.chunks, top_k=context.settings.retrieval.top_k
        )

        if retrieval.status == "no_keywords":
            return RagResult(
                question=question,
                answer=NO_KEYWORDS_ANSWER,
                source="no_keywords",
                knowledge_base=name,
                llm_status=config.status(error="No meaningful keywords in question"),
            )

        if not retrieval.matches:
            return await self._answer_without_context(question, name, config, context)

        answer, status = await self._answer_with_context(
            question, retrieval.chunks, config, context
        )
        return RagResult(
            question=question,
            answer=answer,
            chunks=[
                RetrievedChunk(content=chunk.content, index=chunk.chunk_index)
                for chunk in retrieval.chunks
            ],
            source="rag",
            knowledge_base=name,
            llm_status=status,
        )

    async def _answer_without_context(
        self,
        question: str,
        name: str,
        config: RagNodeConfig,
        context: ExecutionContext,
    ) -> RagResult:
        if not config.llm_configured:
            logger.info("No relevant chunks and no LLM configured for fallback")
            return RagResult(
                question=question,
                answer=NO_MATCH_ANSWER,
                source="no_match",
                knowledge_base=name,
                llm_status=config.status(
                    error="No relevant chunks found and no LLM configured for fallback"
                ),
            )

        logger.info("No relevant chunks found, using direct LLM answer")
        try:
            direct = await context.gateway.generate(
                build_direct_prompt(question),
                config.ai_provider,
                config.model,
                config.api_key,
                GenerationMode.DIRECT,
            )
        except ProviderError as exc:
            logger.warning(f"Direct LLM search failed: {exc}")
            return RagResult(
                question=question,
                answer=DIRECT_UNAVAILABLE_ANSWER,
                source="no_match",
                knowledge_base=name,
                llm_status=config.status(error=f"Direct LLM search failed: {exc.message}"),
            )

        return RagResult(
            question=question,
            answer=f"No relevant information found in the knowledge base.\n\nGeneral answer: {direct}",
            source="llm_direct",
            knowledge_base=name,
            llm_status=config.status(used=True, mode="direct_search"),
        )

    async def _answer_with_context(
        self,
        question: str,
        chunks: List[KnowledgeBaseChunk],
        config: RagNodeConfig,
        context: ExecutionContext,
    ) -> Tuple[str, LLMStatus]:
        fallback = "\n\n".join(chunk.content for chunk in chunks)

        if not config.api_key:
            warning = f"{WARNING} No API key configured. Using fallback response."
        elif not config.ai_provider:
            warning = f"{WARNING} No AI provider configured. Using fallback response."
        elif not validate_api_key(config.api_key, config.ai_provider):
            warning = (
                f"{WARNING} Invalid API key format for {config.ai_provider}. "
                "Using fallback response."
            )
        else:
            try:
                answer = await context.gateway.generate(
                    build_context_prompt(question, [c.content for c in chunks]),
                    config.ai_provider,
                    config.model,
                    config.api_key,
                    GenerationMode.CONTEXT,
                )
            except ProviderError as exc:
                logger.warning(f"LLM call failed, answering from chunks: {exc}")
                warning = provider_warning(exc)
                answer = f"{warning}\n\nFallback - Based on the knowledge base:\n\n{fallback}"
                return answer, config.status(error=warning.split("\n")[0])
            return answer, config.status(used=True, mode=GenerationMode.CONTEXT.value)

        logger.warning(warning)
        answer = f"{warning}\n\nBased on the knowledge base:\n\n{fallback}"
        return answer, config.status(error=warning)
