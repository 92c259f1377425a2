"""Merge local projects with remote repositories.

There is no shared key between the two sides: a local project is matched
by comparing its primary remote URL with each remote repository's web URL
(HTTP remotes) or SSH URL (SSH remotes), after normalization.

A remote repository can be claimed by only one local project. When several
local projects point at the same repository, the first one in input order
gets it and the rest stay local-only.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence, Set

from .models import LocalProject, Project, RemoteInfo, RemoteRepository, RemoteUrlType
from .urls import normalize_remote_url

logger = logging.getLogger(__name__)


def candidate_url(repository: RemoteRepository, url_type: RemoteUrlType) -> Optional[str]:
    """The repository URL comparable with a remote of ``url_type``."""
    if url_type is RemoteUrlType.HTTP:
        return repository.url
    return repository.ssh_url


def find_remote_match(
    remote: RemoteInfo,
    repositories: Sequence[RemoteRepository],
    claimed: Set[int],
) -> Optional[RemoteRepository]:
    """First unclaimed repository whose URL matches ``remote``."""
    target = normalize_remote_url(remote.url)
    for repository in repositories:
        if repository.id in claimed:
            continue
        url = candidate_url(repository, remote.url_type)
        if url is not None and normalize_remote_url(url) == target:
            return repository
    return None


def reconcile(
    local_projects: Iterable[LocalProject],
    repositories: Iterable[RemoteRepository],
) -> List[Project]:
    """Partition local projects and remote repositories into Projects.

    Every input appears in exactly one output Project: matched pairs first
    in local order, then unclaimed remote repositories in remote order.
    """
    remotes: List[RemoteRepository] = []
    seen: Set[int] = set()
    for repository in repositories:
        if repository.id in seen:
            logger.debug("Ignoring duplicate remote repository %s", repository.id)
            continue
        seen.add(repository.id)
        remotes.append(repository)

    claimed: Set[int] = set()
    projects: List[Project] = []

    for local in local_projects:
        primary = local.git.primary_remote if local.git is not None else None
        if primary is None:
            projects.append(Project(local=local, remote=None))
            continue

        match = find_remote_match(primary, remotes, claimed)
        if match is not None:
            claimed.add(match.id)
            logger.debug("Matched %s to remote repository %s", local.path, match.name)
        projects.append(Project(local=local, remote=match))

    for repository in remotes:
        if repository.id not in claimed:
            projects.append(Project(local=None, remote=repository))

    logger.info(
        "Reconciled %d projects (%d matched, %d remote repositories)",
        len(projects),
        len(claimed),
        len(remotes),
    )
    return projects
