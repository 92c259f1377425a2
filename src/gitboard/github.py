"""GitHub REST client for repository, branch and commit listings.

All listings are paginated sequentially: the total page count is only known
from the ``Link`` header of the page just fetched, so pages are requested in
ascending order until the ``rel="last"`` page has been read.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Set

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from . import __version__
from .config_schema import ListParameters
from .models import RemoteRepository

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://api.github.com"
MAX_PER_PAGE = 100
API_VERSION = "2022-11-28"


class GitHubError(Exception):
    """Base class for errors raised by the GitHub client."""


class GitHubApiError(GitHubError):
    """Transport failure or non-success API response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NoOwnerError(GitHubError):
    """The repository has no owner on record, so it cannot be addressed."""

    def __init__(self, repository: str):
        super().__init__(f"No owner was provided for repository {repository!r}")
        self.repository = repository


class _OwnerPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    login: str


class _RepositoryPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    html_url: Optional[str] = None
    owner: Optional[_OwnerPayload] = None
    description: Optional[str] = None
    ssh_url: Optional[str] = None
    visibility: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_repository(self) -> RemoteRepository:
        return RemoteRepository(
            id=self.id,
            name=self.name,
            url=self.html_url,
            owner=self.owner.login if self.owner else None,
            description=self.description,
            ssh_url=self.ssh_url,
            visibility=self.visibility,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class _BranchPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str


class _CommitPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sha: str


def _last_page(response: httpx.Response) -> Optional[int]:
    """Page number of the ``rel="last"`` link, if the response has one."""
    last = response.links.get("last")
    if not last or not last.get("url"):
        return None
    page = httpx.URL(last["url"]).params.get("page")
    try:
        return int(page) if page is not None else None
    except ValueError:
        return None


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _listing_query(params: ListParameters) -> Dict[str, Any]:
    query: Dict[str, Any] = {}
    visibility = params.visibility
    if visibility is None and params.repo_type is None:
        visibility = "all"
    for key, value in (
        ("visibility", visibility),
        ("affiliation", params.affiliation),
        ("type", params.repo_type),
        ("sort", params.sort),
        ("direction", params.direction),
    ):
        if value:
            query[key] = value
    if params.since is not None:
        query["since"] = _format_timestamp(params.since)
    if params.before is not None:
        query["before"] = _format_timestamp(params.before)
    return query


def _repository_path(repository: RemoteRepository) -> str:
    if not repository.owner:
        raise NoOwnerError(repository.name)
    return f"/repos/{repository.owner}/{repository.name}"


class GitHubClient:
    """Thin synchronous GitHub client bound to one access token.

    Example:
        with GitHubClient(token) as client:
            repos = client.list_repositories(ListParameters())
    """

    def __init__(
        self,
        token: str,
        *,
        api_base: str = DEFAULT_API_BASE,
        timeout: float = 30.0,
        max_pages: Optional[int] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.max_pages = max_pages
        self._client = httpx.Client(
            base_url=api_base,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": API_VERSION,
                "User-Agent": f"gitboard/{__version__}",
            },
            timeout=timeout,
            transport=transport,
            follow_redirects=True,
        )

    def __enter__(self) -> "GitHubClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        try:
            response = self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise GitHubApiError(f"GET {path} failed: {e}") from e
        if response.is_error:
            message = response.text
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and body.get("message"):
                message = body["message"]
            raise GitHubApiError(
                f"GET {path} returned HTTP {response.status_code}: {message}",
                status_code=response.status_code,
            )
        return response

    def _paginate(self, path: str, params: Optional[Dict[str, Any]] = None) -> Iterator[List[Any]]:
        """Yield each page's JSON list, in ascending page order."""
        base = dict(params or {})
        base.setdefault("per_page", MAX_PER_PAGE)
        page = 1
        total_pages = 1
        fetched = 0
        while page <= total_pages:
            response = self._get(path, {**base, "page": page})
            try:
                items = response.json()
            except ValueError as e:
                raise GitHubApiError(f"GET {path} returned invalid JSON: {e}") from e
            if not isinstance(items, list):
                raise GitHubApiError(f"GET {path} returned {type(items).__name__}, expected a list")
            fetched += 1
            logger.debug("Fetched %s page %d (%d items)", path, page, len(items))
            yield items

            total_pages = _last_page(response) or page
            if not items:
                break
            if self.max_pages is not None and fetched >= self.max_pages:
                break
            page += 1

    def list_repositories(self, params: Optional[ListParameters] = None) -> List[RemoteRepository]:
        """Repositories of the authenticated user matching ``params``."""
        params = params or ListParameters()
        query = _listing_query(params)
        query["per_page"] = params.per_page or MAX_PER_PAGE

        if params.page is not None:
            response = self._get("/user/repos", {**query, "page": params.page})
            try:
                pages = [response.json()]
            except ValueError as e:
                raise GitHubApiError(f"GET /user/repos returned invalid JSON: {e}") from e
        else:
            pages = self._paginate("/user/repos", query)

        repositories: List[RemoteRepository] = []
        try:
            for items in pages:
                repositories.extend(
                    _RepositoryPayload.model_validate(item).to_repository() for item in items
                )
        except ValidationError as e:
            raise GitHubApiError(f"Unexpected repository payload: {e}") from e
        return repositories

    def list_branches(self, repository: RemoteRepository) -> Set[str]:
        """Names of all branches of ``repository``."""
        path = f"{_repository_path(repository)}/branches"
        names: Set[str] = set()
        try:
            for items in self._paginate(path):
                names.update(_BranchPayload.model_validate(item).name for item in items)
        except ValidationError as e:
            raise GitHubApiError(f"Unexpected branch payload: {e}") from e
        return names

    def iter_commit_pages(self, repository: RemoteRepository, branch: str) -> Iterator[List[str]]:
        """Yield commit shas of ``branch`` page by page, newest first.

        An empty repository yields nothing.
        """
        path = f"{_repository_path(repository)}/commits"
        pages = self._paginate(path, {"sha": branch})
        while True:
            try:
                items = next(pages)
            except StopIteration:
                return
            except GitHubApiError as e:
                if e.status_code == 409:
                    logger.debug("Repository %s is empty", repository.name)
                    return
                raise
            try:
                yield [_CommitPayload.model_validate(item).sha for item in items]
            except ValidationError as e:
                raise GitHubApiError(f"Unexpected commit payload: {e}") from e

    def list_commits(self, repository: RemoteRepository, branch: str) -> List[str]:
        """Full commit history of ``branch`` (up to ``max_pages``), newest first."""
        commits: List[str] = []
        for page in self.iter_commit_pages(repository, branch):
            commits.extend(page)
        return commits
