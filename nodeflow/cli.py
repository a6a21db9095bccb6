"""Command line interface for managing and running nodeflow workflows."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Awaitable, Optional, TypeVar

import typer
import yaml
from pydantic import ValidationError

from nodeflow import WorkflowExecutor, get_repository, load_config, stage_upload
from nodeflow.config import configure_logging
from nodeflow.contracts import OutputResult, Workflow
from nodeflow.errors import NodeflowError, WorkflowNotFoundError

T = TypeVar("T")

app = typer.Typer(help="CLI for nodeflow workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for managing and running workflows")
kb_app = typer.Typer(help="Commands for inspecting knowledge bases")
conversation_app = typer.Typer(help="Commands for inspecting conversations")

app.add_typer(workflow_app, name="workflow")
app.add_typer(kb_app, name="kb")
app.add_typer(conversation_app, name="conversation")

SEARCH_LIMIT = 5


@app.callback()
def main() -> None:
    """nodeflow CLI entry point."""
    try:
        configure_logging(load_config())
    except NodeflowError as exc:
        _fail(str(exc))


def _fail(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED)
    raise typer.Exit(code=1)


def _run(awaitable: Awaitable[T]) -> T:
    """Run ``awaitable`` and turn nodeflow errors into a one-line failure."""
    try:
        return asyncio.run(awaitable)
    except NodeflowError as exc:
        _fail(str(exc))


def _echo_json(data: Any) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


@workflow_app.command("list")
def workflow_list() -> None:
    """
    List all stored workflows.

    Example:
        nodeflow workflow list
        # Output: 3f2a...    Document Q&A    4 nodes
    """
    repo = get_repository()
    workflows = _run(repo.list_workflows())
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        typer.echo(f"{wf.id}\t{wf.name}\t{len(wf.node_sequence or wf.nodes)} nodes")


@workflow_app.command("show")
def workflow_show(workflow_id: str) -> None:
    """
    Show a workflow and its node sequence.

    Args:
        workflow_id: Workflow ID to inspect (get from 'workflow list')
    """
    repo = get_repository()
    wf = _run(repo.get_workflow(workflow_id))
    if wf is None:
        _fail("Workflow not found")
    typer.echo(f"Workflow {wf.id}: {wf.name}")
    if wf.description:
        typer.echo(f"Description: {wf.description}")
    try:
        nodes = wf.execution_order()
    except NodeflowError as exc:
        _fail(str(exc))
    for node in nodes:
        config = f" {json.dumps(node.config)}" if node.config else ""
        typer.echo(f"- {node.id}: {node.type}{config}")


@workflow_app.command("create")
def workflow_create(definition: Path) -> None:
    """
    Create a workflow from a YAML or JSON definition file.

    Example:
        nodeflow workflow create ./qa_workflow.yaml
        # Output: Created workflow 3f2a... (Document Q&A)
    """
    if not definition.is_file():
        _fail(f"File not found: {definition}")
    try:
        data = yaml.safe_load(definition.read_text(encoding="utf-8")) or {}
        workflow = Workflow.model_validate(data)
    except (yaml.YAMLError, ValidationError) as exc:
        _fail(f"Invalid workflow definition: {exc}")

    repo = get_repository()
    saved = _run(repo.save_workflow(workflow))
    typer.echo(f"Created workflow {saved.id} ({saved.name})")


@workflow_app.command("delete")
def workflow_delete(workflow_id: str) -> None:
    """Delete a stored workflow."""
    repo = get_repository()
    if not _run(repo.delete_workflow(workflow_id)):
        _fail("Workflow not found")
    typer.echo(f"Deleted workflow {workflow_id}")


@workflow_app.command("run")
def workflow_run(
    workflow_id: str,
    text: Optional[str] = typer.Option(None, help="Text to feed the input node"),
    file: Optional[Path] = typer.Option(None, help="Text file to feed the input node"),
    session: Optional[str] = typer.Option(None, help="Conversation session id"),
    output_format: str = typer.Option(
        "pretty", "--format", help="Print the final output as 'pretty' or 'json'"
    ),
) -> None:
    """
    Execute a workflow against pasted text or a text file.

    The uploaded file takes precedence over --text. The file is copied to
    the configured upload directory and removed when the run ends.

    Example:
        nodeflow workflow run 3f2a... --text "What is my teacher's name?"
        nodeflow workflow run 3f2a... --file notes.txt --format json
    """
    if not workflow_id.strip():
        _fail("Workflow ID is required")
    if not text and file is None:
        _fail("Either --text or --file is required")

    config = load_config()
    repo = get_repository()
    upload = None
    if file is not None:
        try:
            upload = stage_upload(
                file,
                config.uploads.directory,
                max_bytes=config.uploads.max_bytes,
                allowed_extensions=config.uploads.allowed_extensions,
            )
        except NodeflowError as exc:
            _fail(str(exc))

    # The staged copy must not outlive the run, whether or not an input
    # node consumed it.
    try:
        if _run(repo.get_workflow(workflow_id)) is None:
            _fail(str(WorkflowNotFoundError(workflow_id)))

        executor = WorkflowExecutor(repository=repo, config=config)
        result = _run(
            executor.execute(
                workflow_id, input_text=text, upload=upload, session_id=session
            )
        )
    finally:
        if upload is not None:
            upload.path.unlink(missing_ok=True)

    if output_format == "json":
        _echo_json(result.to_document())
        return

    final = result.final_output
    if final is None:
        typer.echo("Workflow produced no output")
        return
    formatted = final.formatted if isinstance(final, OutputResult) else None
    if isinstance(formatted, dict) and "text" in formatted:
        typer.echo(formatted["text"])
    elif isinstance(formatted, dict):
        for key, value in formatted.items():
            typer.echo(f"{key}: {value}")
    else:
        _echo_json(final.to_document())


@kb_app.command("list")
def kb_list() -> None:
    """List knowledge bases with their chunk counts."""
    repo = get_repository()
    knowledge_bases = _run(repo.list_knowledge_bases())
    if not knowledge_bases:
        typer.echo("No knowledge bases found")
        return
    for kb in knowledge_bases:
        typer.echo(f"{kb.name}\t{len(kb.chunks)} chunks")


@kb_app.command("show")
def kb_show(name: str) -> None:
    """Show a knowledge base and a preview of each chunk."""
    repo = get_repository()
    kb = _run(repo.get_knowledge_base(name))
    if kb is None:
        _fail("Knowledge base not found")
    typer.echo(f"Knowledge base {kb.name}: {len(kb.chunks)} chunks")
    if kb.description:
        typer.echo(f"Description: {kb.description}")
    for chunk in kb.chunks:
        preview = chunk.content[:80].replace("\n", " ")
        typer.echo(f"[{chunk.chunk_index}] ({chunk.metadata.word_count} words) {preview}")


@kb_app.command("search")
def kb_search(name: str, query: str) -> None:
    """
    Find chunks containing ``query`` (case-insensitive substring match).

    Example:
        nodeflow kb search notes "teacher"
    """
    repo = get_repository()
    kb = _run(repo.get_knowledge_base(name))
    if kb is None:
        _fail("Knowledge base not found")
    needle = query.lower()
    hits = [chunk for chunk in kb.chunks if needle in chunk.content.lower()]
    if not hits:
        typer.echo("No matching chunks")
        return
    for chunk in hits[:SEARCH_LIMIT]:
        typer.echo(f"[{chunk.chunk_index}] {chunk.content[:200]}")


@conversation_app.command("show")
def conversation_show(session_id: str) -> None:
    """Show the stored messages of a conversation session."""
    repo = get_repository()
    conversation = _run(repo.get_conversation(session_id))
    if conversation is None:
        _fail("Conversation not found")
    typer.echo(f"Session {conversation.session_id}: {len(conversation.messages)} messages")
    for message in conversation.messages:
        typer.echo(f"{message.role}: {message.content}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
