"""
codesync MCP Server - FastMCP implementation

Exposes workspace context assembly and change sync as MCP tools.

CRITICAL: This is an MCP server - NEVER use print() statements!
stdout is reserved for JSON-RPC protocol. Use logger instead.
"""

from fastmcp import FastMCP

from codesync.lifecycle import lifespan
from codesync.logging_config import setup_logging
from codesync.tools import get_file_context, index_status, notify_file_saved, set_session, sync_now

logger = setup_logging()

mcp = FastMCP("codesync Workspace Sync Server", lifespan=lifespan)

# output_schema=None: tools return plain strings, not {"result": ...}
mcp.tool(output_schema=None)(get_file_context)
mcp.tool(output_schema=None)(set_session)
mcp.tool(output_schema=None)(sync_now)
mcp.tool(output_schema=None)(index_status)
mcp.tool(output_schema=None)(notify_file_saved)

__all__ = [
    "mcp",
    "get_file_context",
    "set_session",
    "sync_now",
    "index_status",
    "notify_file_saved",
]


def main():
    """Run the server over stdio."""
    logger.info("Starting codesync MCP server...")
    try:
        mcp.run(show_banner=False)
    except BrokenPipeError:
        import sys

        sys.stderr.write("Client disconnected. Shutting down.\n")
        sys.exit(0)


if __name__ == "__main__":
    main()
