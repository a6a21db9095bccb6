"""Presentation formats for the output node.

Every formatter is a pure function of the payload and the node config. Each
one recognizes query results, ingestion results and anything else.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, Mapping

from .contracts import Payload, utcnow

QUERY_WORKFLOW = "Query Workflow (Input -> RAG -> Memory -> Output)"
INGESTION_WORKFLOW = "Ingestion Workflow (Input -> Store -> Output)"
CUSTOM_WORKFLOW = "Custom Workflow"


def is_query_result(payload: Payload) -> bool:
    return bool(getattr(payload, "question", None) and getattr(payload, "answer", None))


def is_ingestion_result(payload: Payload) -> bool:
    return bool(getattr(payload, "knowledge_base", None)) and (
        getattr(payload, "chunks_added", None) is not None
    )


def detect_workflow_type(payload: Payload) -> str:
    if is_query_result(payload):
        return QUERY_WORKFLOW
    if is_ingestion_result(payload):
        return INGESTION_WORKFLOW
    return CUSTOM_WORKFLOW


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def format_detailed(payload: Payload, config: Mapping[str, Any]) -> Dict[str, Any]:
    output: Dict[str, Any] = {
        "timestamp": utcnow().isoformat(),
        "workflowType": detect_workflow_type(payload),
    }

    if is_query_result(payload):
        output["type"] = "Query Result"
        output["question"] = payload.question
        output["answer"] = payload.answer
        output["sessionId"] = getattr(payload, "session_id", None) or "N/A"
        output["source"] = payload.source or "rag"
        if payload.chunks:
            output["sourceChunks"] = [
                {"content": chunk.content[:100] + "...", "index": chunk.index}
                for chunk in payload.chunks
            ]
        history = getattr(payload, "conversation_history", None)
        if history:
            output["conversationLength"] = len(history)
            output["previousQuestions"] = [
                msg.content[:50] + "..." for msg in history if msg.role == "user"
            ][-3:]
    elif is_ingestion_result(payload):
        output["type"] = "Ingestion Result"
        output["knowledgeBase"] = payload.knowledge_base
        output["chunksAdded"] = payload.chunks_added
        output["totalChunks"] = payload.total_chunks
        output["message"] = (
            payload.message or "Documents successfully processed and stored"
        )
        output["source"] = payload.source or "store"
    else:
        output["type"] = "Processing Result"
        output["result"] = "Workflow completed successfully"
        output["data"] = payload.to_document()

    return output


def format_summary(payload: Payload, config: Mapping[str, Any]) -> Dict[str, Any]:
    summary: Dict[str, Any] = {
        "timestamp": utcnow().isoformat(),
        "workflowType": detect_workflow_type(payload),
    }

    if is_query_result(payload):
        history = getattr(payload, "conversation_history", None)
        summary["type"] = "Query Result"
        summary["question"] = _truncate(payload.question, 100)
        summary["answer"] = _truncate(payload.answer, 200)
        summary["hasConversationHistory"] = bool(history)
        summary["sourceChunksCount"] = len(payload.chunks)
    elif is_ingestion_result(payload):
        summary["type"] = "Ingestion Complete"
        summary["knowledgeBase"] = payload.knowledge_base
        summary["chunksAdded"] = payload.chunks_added
        summary["status"] = "Success"
    else:
        summary["type"] = "Processing Complete"
        summary["status"] = "Success"
        summary["result"] = "Workflow executed successfully"

    return summary


def format_json(payload: Payload, config: Mapping[str, Any]) -> Dict[str, Any]:
    data = payload.to_document()
    data.pop("conversationHistory", None)
    return data


def format_text(payload: Payload, config: Mapping[str, Any]) -> Dict[str, str]:
    lines = []
    title = config.get("title") or ""
    if title:
        lines.append(f"{title}\n{'=' * len(title)}\n\n")

    if is_query_result(payload):
        lines.append(f"QUESTION:\n{payload.question}\n\n")
        lines.append(f"ANSWER:\n{payload.answer}\n\n")
        session_id = getattr(payload, "session_id", None)
        if session_id:
            lines.append(f"Session ID: {session_id}\n")
        if payload.chunks:
            lines.append("\nSource Information:\n")
            lines.append(f"- Retrieved {len(payload.chunks)} relevant chunks\n")
        history = getattr(payload, "conversation_history", None)
        if history:
            lines.append(f"- Conversation history: {len(history)} messages\n")
    elif is_ingestion_result(payload):
        total = payload.total_chunks if payload.total_chunks is not None else "N/A"
        lines.append("DOCUMENT INGESTION COMPLETE\n\n")
        lines.append(f"Knowledge Base: {payload.knowledge_base}\n")
        lines.append(f"Chunks Added: {payload.chunks_added}\n")
        lines.append(f"Total Chunks: {total}\n")
        lines.append("Status: Success\n")
        if payload.message:
            lines.append(f"\nDetails: {payload.message}\n")
    else:
        lines.append("WORKFLOW EXECUTION COMPLETE\n\n")
        lines.append("Status: Success\n")
        lines.append(f"Completed at: {utcnow().isoformat()}\n")

    lines.append(f"\nProcessed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    return {"text": "".join(lines)}


FORMATTERS: Dict[str, Callable[[Payload, Mapping[str, Any]], Any]] = {
    "detailed": format_detailed,
    "summary": format_summary,
    "json": format_json,
    "text": format_text,
}


def render(payload: Payload, output_format: str, config: Mapping[str, Any]) -> Any:
    """Render ``payload`` in ``output_format``, defaulting to detailed."""
    formatter = FORMATTERS.get(output_format, format_detailed)
    return formatter(payload, config)
