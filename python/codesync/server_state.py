"""
codesync server global state - shared between the server, the tools and the
lifespan handler.

Nothing heavy is imported here; the facade is built by the background task
after the MCP handshake.
"""

from pathlib import Path
from typing import Optional

# Set by lifecycle._background_initialization() (None until ready)
facade = None
workspace_roots: list[Path] = []

# Credentials pushed by the client through set_session
auth_token: Optional[str] = None

# Last initialization failure, reported by index_status
init_error: Optional[str] = None


async def get_auth_token() -> Optional[str]:
    """Token provider handed to the sync coordinator."""
    return auth_token
