"""Project service: the query/command surface used by the CLI and MCP server.

Every method blocks until its work is done. Remote listing and local
scanning for a refresh run concurrently on worker threads; the store swap at
the end is atomic, so readers see either the old set or the new one.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

from .config_schema import GitboardConfig, ListParameters
from .errors import MissingTokenError, RemoteOperationError
from .github import GitHubClient, GitHubError
from .models import Project, Relation, RemoteRepository
from .reconcile import reconcile
from .relation import evaluate_branch_relation
from .scanner import scan_roots
from .store import ProjectStore

logger = logging.getLogger(__name__)

ClientFactory = Callable[[str], GitHubClient]


def _require_token(token: Optional[str]) -> str:
    if not token:
        raise MissingTokenError()
    return token


class ProjectService:
    """Refreshes and queries the merged project set.

    Args:
        store: Store to populate (a fresh one by default)
        config: Scan, GitHub and worker settings (defaults if omitted)
        client_factory: Builds a GitHub client from a token; override in tests
    """

    def __init__(
        self,
        store: Optional[ProjectStore] = None,
        *,
        config: Optional[GitboardConfig] = None,
        client_factory: Optional[ClientFactory] = None,
    ):
        self.store = store if store is not None else ProjectStore()
        self.config = config or GitboardConfig.default()
        self._client_factory = client_factory or self._default_client

    @classmethod
    def from_config(cls, config: Optional[GitboardConfig] = None) -> "ProjectService":
        """Build a service from loaded configuration."""
        if config is None:
            from .config_loader import get_config
            config = get_config()
        return cls(config=config)

    def _default_client(self, token: str) -> GitHubClient:
        github = self.config.github
        return GitHubClient(
            token,
            api_base=github.api_base,
            timeout=github.timeout,
            max_pages=github.max_pages,
        )

    def _list_remote(self, token: str, params: ListParameters) -> List[RemoteRepository]:
        with self._client_factory(token) as client:
            return client.list_repositories(params)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def refresh(
        self,
        token: Optional[str],
        roots: Iterable[Path],
        params: Optional[ListParameters] = None,
    ) -> List[str]:
        """Rescan local roots, relist remote repositories and replace the store.

        Returns:
            The new project ids

        Raises:
            MissingTokenError: If ``token`` is empty
            RemoteOperationError: If listing remote repositories fails
            StatusMappingError: If a working-tree status cannot be mapped
        """
        token = _require_token(token)
        params = params or self.config.github.listing
        root_paths = [Path(r) for r in roots]
        scan = self.config.scan

        with ThreadPoolExecutor(max_workers=2) as executor:
            remote_future = executor.submit(self._list_remote, token, params)
            local_future = executor.submit(
                scan_roots,
                root_paths,
                include_untracked=scan.include_untracked,
                include_ignored=scan.include_ignored,
            )
            local_projects = local_future.result()
            try:
                repositories = remote_future.result()
            except GitHubError as e:
                logger.error("Listing remote repositories failed: %s", e)
                raise RemoteOperationError("list_repositories", e) from e

        projects = reconcile(local_projects, repositories)
        ids = self.store.replace_all(projects)
        logger.info(
            "Refreshed %d projects from %d local roots",
            len(ids),
            len(root_paths),
        )
        return ids

    def refresh_from_config(self, token: Optional[str] = None) -> List[str]:
        """Refresh using configured roots and listing parameters.

        The token defaults to the one found in the environment or credentials file.
        """
        if token is None:
            from .credentials import get_github_token
            token = get_github_token()
        return self.refresh(token, self.config.scan.root_paths(), self.config.github.listing)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_project_ids(self) -> List[str]:
        return self.store.list_ids()

    def get_project(self, project_id: str) -> Project:
        return self.store.require(project_id)

    def get_local_name(self, project_id: str) -> Optional[str]:
        return self.store.require(project_id).local_name()

    def get_remote_name(self, project_id: str) -> Optional[str]:
        return self.store.require(project_id).remote_name()

    def get_local_branch_commits(self, project_id: str) -> Optional[Dict[str, str]]:
        return self.store.require(project_id).local_branch_commits()

    def get_change_count(self, project_id: str) -> int:
        return self.store.require(project_id).change_count()

    def describe_project(self, project_id: str) -> Dict[str, Any]:
        """Display summary for one project."""
        project = self.store.require(project_id)
        return {
            "id": project_id,
            "display_name": project.display_name(),
            "local_name": project.local_name(),
            "remote_name": project.remote_name(),
            "path": str(project.local.path) if project.local else None,
            "url": project.remote.url if project.remote else None,
            "changes": project.change_count(),
            "branches": project.local_branch_commits(),
        }

    def get_branch_relation(
        self,
        token: Optional[str],
        project_id: str,
        branch: str,
        local_commit: str,
    ) -> Relation:
        """Relation of ``local_commit`` to ``branch`` on the project's remote.

        Returns NULL without contacting the service when the project has no
        remote repository.

        Raises:
            ProjectIdParseError, ProjectNotFoundError: For bad ids
            MissingTokenError: If ``token`` is empty
            RemoteOperationError: If a remote call fails
        """
        project = self.store.require(project_id)
        if project.remote is None:
            return Relation.NULL
        token = _require_token(token)

        try:
            with self._client_factory(token) as client:
                return evaluate_branch_relation(client, project.remote, branch, local_commit)
        except GitHubError as e:
            logger.error(
                "Branch relation failed for %s/%s: %s",
                project.remote.name,
                branch,
                e,
            )
            raise RemoteOperationError("branch_relation", e) from e

    def get_branch_relations(self, token: Optional[str], project_id: str) -> Dict[str, Relation]:
        """Relations of every local branch head of a project, evaluated concurrently."""
        project = self.store.require(project_id)
        commits = project.local_branch_commits() or {}
        if not commits:
            return {}
        if project.remote is None:
            return {branch: Relation.NULL for branch in commits}
        token = _require_token(token)

        workers = min(self.config.service.workers, len(commits))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                branch: executor.submit(self.get_branch_relation, token, project_id, branch, sha)
                for branch, sha in commits.items()
            }
            return {branch: future.result() for branch, future in futures.items()}
