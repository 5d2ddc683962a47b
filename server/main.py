# server/main.py
from fastmcp import FastMCP

from panelfs.di import build_container
from panelfs.logging import configure_logging
from server.tools.files import register_file_tools
from server.tools.snapshots import register_snapshot_tools


def create_app() -> FastMCP:
    """
    Build DI container, create FastMCP host, and register tools.
    Keep the server (protocol) separate from tool/service logic.
    """
    container = build_container()
    configure_logging(container.settings.LOG_LEVEL)

    mcp = FastMCP("PanelFiles", version="0.1.0")

    # Register tools (thin adapters)
    register_file_tools(mcp, container.resolver, container.file_service)
    register_snapshot_tools(mcp, container.snapshot_store)

    return mcp


if __name__ == "__main__":
    app = create_app()
    # stdio transport: client (agent/IDE) launches this process and speaks JSON-RPC on stdin/stdout
    app.run(transport="stdio")
