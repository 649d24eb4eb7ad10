"""
codesync server lifecycle - startup, initialization, and shutdown.

Same fast-startup shape as any stdio MCP server: the lifespan yields at once so
the handshake completes, and a background task builds the facade, indexes the
workspace and starts the watcher and the sync tick.
"""

import asyncio
import os
import time
from contextlib import asynccontextmanager
from pathlib import Path

from codesync import server_state
from codesync.logging_config import setup_logging

logger = setup_logging()

WORKSPACE_ENV = "CODESYNC_WORKSPACE"
AUTH_TOKEN_ENV = "CODESYNC_AUTH_TOKEN"


def workspace_roots_from_env() -> list[Path]:
    """Comma-separated CODESYNC_WORKSPACE, or the current directory."""
    raw = os.environ.get(WORKSPACE_ENV, "")
    roots = [Path(item.strip()).resolve() for item in raw.split(",") if item.strip()]
    return roots or [Path.cwd().resolve()]


async def _background_initialization() -> None:
    """Build the facade and run the initial index. Never raises."""
    facade = None
    try:
        from codesync.config import IndexConfig
        from codesync.facade import IndexFacade

        started = time.time()
        roots = workspace_roots_from_env()
        server_state.workspace_roots = roots
        if server_state.auth_token is None:
            server_state.auth_token = os.environ.get(AUTH_TOKEN_ENV)

        config = IndexConfig.from_env()
        facade = IndexFacade.create_default(
            roots, config=config, token_provider=server_state.get_auth_token
        )
        await facade.initialize()
        server_state.facade = facade

        logger.info(
            f"Initialization complete in {time.time() - started:.2f}s: "
            f"{facade.tracked_file_count()} files tracked across {len(roots)} workspace(s)"
        )
    except Exception as e:
        server_state.init_error = str(e)
        logger.error(f"Background initialization failed: {e}", exc_info=True)
        if facade is not None and server_state.facade is None:
            await facade.dispose()


@asynccontextmanager
async def lifespan(_app):
    """
    FastMCP lifespan handler.

    MUST yield immediately: indexing runs in a background task so the client
    sees the server as connected within milliseconds.
    """
    logger.info("Spawning background initialization task...")
    init_task = asyncio.create_task(_background_initialization())
    logger.info("Server ready for MCP handshake (initialization running in background)")

    yield

    logger.info("codesync server shutting down...")
    if not init_task.done():
        logger.info("Waiting for background initialization to complete...")
        await init_task

    if server_state.facade is not None:
        await server_state.facade.dispose()
        server_state.facade = None

    logger.info("codesync server shutdown complete")
