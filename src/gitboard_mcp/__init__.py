"""gitboard MCP Server

FastMCP server that exposes the merged local/GitHub project view to AI agents.
Tools are namespaced as gitboard_* for provider compatibility.
"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("gitboard")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"  # Fallback for editable installs without metadata

from .server import mcp

__all__ = ["mcp"]
