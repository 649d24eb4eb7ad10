"""
codesync MCP tool wrappers - thin delegating functions for FastMCP.

Each tool checks readiness, calls the facade and renders a plain-text (or
JSON) answer. All output goes through return values, never stdout.
"""

import json
from pathlib import Path
from typing import Literal, Optional

from codesync import server_state
from codesync.facade import CodeFileContext

_NOT_READY_MSG = "codesync is still initializing. Please wait a moment and try again."


def _check_ready() -> Optional[str]:
    if server_state.facade is None:
        if server_state.init_error:
            return f"codesync failed to initialize: {server_state.init_error}"
        return _NOT_READY_MSG
    return None


def format_context_text(context: CodeFileContext) -> str:
    """Render a context as fenced code blocks, primary file first."""
    primary = context.primary_file
    lines = [f"# {primary.relative_path} ({primary.language})"]

    if context.selection is not None:
        sel = context.selection
        lines.append(f"## Selection: lines {sel.start_line}-{sel.end_line}")
        lines += [f"```{primary.language}", sel.extract(primary.content), "```"]

    lines += [f"```{primary.language}", primary.content, "```"]

    if context.imported_files:
        lines.append(f"## Imported files ({len(context.imported_files)})")
        for imported in context.imported_files:
            lines.append(f"### {imported.relative_path}")
            lines += [f"```{imported.language}", imported.content, "```"]

    return "\n".join(lines)


async def get_file_context(
    file_path: str,
    resolve_imports: bool = True,
    max_depth: int = 1,
    start_line: Optional[int] = None,
    end_line: Optional[int] = None,
    output_format: Literal["text", "json"] = "text",
) -> str:
    """
    Get a file's content together with the local files it imports.

    Args:
        file_path: Absolute path, or path relative to the first workspace root
        resolve_imports: Include imported files
        max_depth: How many import levels to follow (0 = primary file only)
        start_line: First line of a selection (1-based, requires end_line)
        end_line: Last line of a selection (inclusive)
        output_format: "text" (markdown code blocks) or "json"
    """
    if msg := _check_ready():
        return msg

    path = Path(file_path)
    if not path.is_absolute() and server_state.workspace_roots:
        path = server_state.workspace_roots[0] / path

    facade = server_state.facade
    if start_line is not None and end_line is not None:
        try:
            context = await facade.get_context_for_selection(
                path, start_line, end_line, resolve_imports, max_depth
            )
        except ValueError as e:
            return f"Error: {e}"
    else:
        context = await facade.get_context_for_file(path, resolve_imports, max_depth)

    if context is None:
        return f"Error: could not read {file_path} (missing or outside the workspace)"
    if output_format == "json":
        return json.dumps(context.to_dict(), indent=2)
    return format_context_text(context)


async def set_session(session_id: str, auth_token: Optional[str] = None) -> str:
    """
    Set the session that background sync uploads to.

    Args:
        session_id: Backend session id
        auth_token: Bearer token for the upload API (keeps the current one if omitted)
    """
    if auth_token:
        server_state.auth_token = auth_token
    if msg := _check_ready():
        return msg
    server_state.facade.set_session_id(session_id)
    return f"Session set to {session_id}"


async def sync_now() -> str:
    """Upload every pending change right away."""
    if msg := _check_ready():
        return msg
    facade = server_state.facade
    if facade.coordinator.session_id is None:
        return "No session set. Call set_session first."

    result = await facade.sync_now()
    if result is None:
        return "Nothing to sync (or a sync is already running)"
    if result.success:
        return f"Uploaded {result.uploaded} file(s)"
    return f"Sync failed: {result.error}"


async def index_status() -> str:
    """Report tracked files, pending changes and sync state."""
    if msg := _check_ready():
        return msg
    facade = server_state.facade
    coordinator = facade.coordinator
    last = coordinator.last_result

    lines = [
        f"Workspaces: {', '.join(str(r) for r in server_state.workspace_roots)}",
        f"Tracked files: {facade.tracked_file_count()}",
        f"Pending sync: {facade.tracker.pending_count}",
        f"Sync state: {coordinator.state.value}",
        f"Session: {coordinator.session_id or '(none)'}",
        f"Dropped batches: {coordinator.dropped_batches}",
    ]
    if last is not None:
        lines.append(f"Last sync: {'ok' if last.success else 'failed - ' + str(last.error)}")
    return "\n".join(lines)


async def notify_file_saved(file_path: str) -> str:
    """
    Tell codesync a file was saved so it's classified without waiting for the watcher.

    Args:
        file_path: Absolute path of the saved file
    """
    if msg := _check_ready():
        return msg
    changed = await server_state.facade.notify_file_saved(Path(file_path))
    return "Queued for sync" if changed else "No change needing sync"
