"""gitboard MCP server.

FastMCP server exposing the merged project view to AI agents. All tools are
namespaced as gitboard_* and return JSON text.
"""

import sys
if sys.version_info < (3, 10):
    raise RuntimeError(
        f"gitboard MCP requires Python 3.10+; found {sys.version.split()[0]}"
    )

# Standard library imports
import json
import threading
from pathlib import Path
from typing import Any, List, Optional

# Third-party imports
import fastmcp
from fastmcp import FastMCP
from fastmcp.tools.tool import ToolResult
from mcp.types import TextContent
from pydantic import ValidationError

# Local application imports
from gitboard import __version__
from gitboard.config_loader import get_config
from gitboard.config_schema import ListParameters
from gitboard.credentials import get_github_token
from gitboard.errors import GitboardError
from gitboard.service import ProjectService

from .observability import configure_logging, log_debug, log_error, log_warning, timeit

mcp = FastMCP(name="gitboard")

_service: Optional[ProjectService] = None
_service_lock = threading.Lock()


def _get_service() -> ProjectService:
    """Process-wide service, built from configuration on first use."""
    global _service
    with _service_lock:
        if _service is None:
            _service = ProjectService.from_config(get_config())
        return _service


def _text(text: str) -> ToolResult:
    return ToolResult(content=[TextContent(type="text", text=text)])


def _json(payload: Any, info: dict) -> ToolResult:
    text = json.dumps(payload, indent=2, default=str)
    info["output_chars"] = len(text)
    return _text(text)


def _error(tool: str, e: Exception) -> ToolResult:
    log_error(f"{tool} failed", error=type(e).__name__, detail=str(e))
    return _text(f"Error: {e}")


@mcp.tool(name="gitboard_refresh")
def refresh(
    roots: Optional[List[str]] = None,
    visibility: str = "",
    affiliation: str = "",
) -> ToolResult:
    """Rescan local roots and relist GitHub repositories.

    Replaces the whole project set; ids from earlier refreshes stop resolving.

    Args:
        roots: Directories to scan (default: configured scan.roots)
        visibility: all, public or private (default: configured)
        affiliation: Comma-separated owner, collaborator, organization_member
    """
    with timeit("refresh", tool_name="gitboard_refresh") as info:
        try:
            service = _get_service()
            root_paths = [Path(r).expanduser() for r in roots] if roots else service.config.scan.root_paths()

            listing = service.config.github.listing.model_dump()
            if visibility:
                listing["visibility"] = visibility
            if affiliation:
                listing["affiliation"] = affiliation
            params = ListParameters.model_validate(listing)

            ids = service.refresh(get_github_token(), root_paths, params)
        except (GitboardError, ValidationError) as e:
            return _error("gitboard_refresh", e)
        return _json({"count": len(ids), "ids": ids}, info)


@mcp.tool(name="gitboard_list_projects")
def list_projects() -> ToolResult:
    """Summaries of every project from the last refresh."""
    with timeit("list_projects", tool_name="gitboard_list_projects") as info:
        service = _get_service()
        ids = service.list_project_ids()
        if not ids:
            log_warning("list_projects called before refresh")
            return _text("No projects loaded. Run gitboard_refresh first.")
        try:
            summaries = [service.describe_project(i) for i in ids]
        except GitboardError as e:
            return _error("gitboard_list_projects", e)
        return _json(summaries, info)


@mcp.tool(name="gitboard_project")
def project(project_id: str) -> ToolResult:
    """Full details of one project: local status, remotes, branches and remote metadata.

    Args:
        project_id: Id returned by gitboard_refresh
    """
    with timeit("project", tool_name="gitboard_project") as info:
        try:
            service = _get_service()
            found = service.get_project(project_id)
        except GitboardError as e:
            return _error("gitboard_project", e)
        payload = {"id": project_id, "display_name": found.display_name(), **found.to_dict()}
        return _json(payload, info)


@mcp.tool(name="gitboard_branch_relation")
def branch_relation(project_id: str, branch: str, local_commit: str = "") -> ToolResult:
    """Compare a local commit with the same-named branch on GitHub.

    Result is one of same, ahead, behind or null.

    Args:
        project_id: Id returned by gitboard_refresh
        branch: Branch name
        local_commit: Commit sha (default: head of the local branch)
    """
    with timeit("branch_relation", tool_name="gitboard_branch_relation", branch=branch) as info:
        try:
            service = _get_service()
            commit = local_commit
            if not commit:
                commit = (service.get_local_branch_commits(project_id) or {}).get(branch, "")
                if not commit:
                    log_warning("No local branch", project_id=project_id, branch=branch)
                    return _text(f"Error: No local branch {branch} in project {project_id}")
                log_debug("Using local branch head", project_id=project_id, branch=branch, commit=commit)
            relation = service.get_branch_relation(get_github_token(), project_id, branch, commit)
        except GitboardError as e:
            return _error("gitboard_branch_relation", e)
        return _json(
            {"project_id": project_id, "branch": branch, "local_commit": commit, "relation": relation.value},
            info,
        )


@mcp.tool(name="gitboard_health")
def health() -> str:
    """Check server health and configuration.

    Example output:
        gitboard MCP Server v0.1.0
        Status: Healthy
        Scan Roots: /home/me/code
        GitHub Token: present
        Projects Loaded: 12
    """
    try:
        service = _get_service()
        roots = service.config.scan.root_paths()
        fm_ver = getattr(fastmcp, "__version__", "unknown")

        lines = [
            f"gitboard MCP Server v{__version__}",
            "Status: Healthy",
            f"Scan Roots: {', '.join(str(r) for r in roots) or '(none)'}",
            f"GitHub API: {service.config.github.api_base}",
            f"GitHub Token: {'present' if get_github_token() else 'missing'}",
            f"Projects Loaded: {len(service.store)}",
            f"Python: {sys.executable or 'unknown'}",
            f"fastmcp: {fm_ver}",
        ]
        return "\n".join(lines)
    except GitboardError as e:
        return f"Error checking health: {e}"


def main():
    """Entry point for gitboard-mcp command."""
    config = get_config()
    configure_logging(config.logging)
    mcp.run()


if __name__ == "__main__":
    main()
