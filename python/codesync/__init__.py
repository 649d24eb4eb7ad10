"""
codesync - workspace change tracking and synchronization engine.

Keeps a locally-derived index of a workspace so an AI assistant can be fed
up-to-date file content without re-uploading unchanged files.

The public entry point is IndexFacade (codesync.facade). Everything else is
an implementation detail that the facade wires together.
"""

__version__ = "0.1.0"

# Keep imports lazy: the MCP server imports this package before the handshake
# and watchdog/httpx are only needed once the facade is built.

__all__ = ["__version__"]
