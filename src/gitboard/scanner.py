"""Local project discovery.

Walks the immediate children of each root directory and collects, for every
child holding a ``.git`` directory, its remotes, working-tree status and
local branch heads.

Uses GitPython for repository access. Per-repository failures degrade to
partial or omitted results; only a ``StatusMappingError`` is fatal.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from .errors import LocalScanError, StatusMappingError
from .models import (
    FileInfo,
    GitInfo,
    GitStatusFlag,
    LocalProject,
    RemoteInfo,
    map_status,
    primary_flag,
)
from .urls import detect_url_type

logger = logging.getLogger(__name__)

METADATA_DIR = ".git"

# Porcelain v1 index (X) and work tree (Y) codes
_INDEX_CODES: Dict[str, GitStatusFlag] = {
    " ": GitStatusFlag.CURRENT,
    "M": GitStatusFlag.INDEX_MODIFIED,
    "A": GitStatusFlag.INDEX_NEW,
    "C": GitStatusFlag.INDEX_NEW,
    "D": GitStatusFlag.INDEX_DELETED,
    "R": GitStatusFlag.INDEX_RENAMED,
    "T": GitStatusFlag.INDEX_TYPECHANGE,
}
_WORKTREE_CODES: Dict[str, GitStatusFlag] = {
    " ": GitStatusFlag.CURRENT,
    "M": GitStatusFlag.WT_MODIFIED,
    "A": GitStatusFlag.WT_NEW,
    "D": GitStatusFlag.WT_DELETED,
    "R": GitStatusFlag.WT_RENAMED,
    "T": GitStatusFlag.WT_TYPECHANGE,
}
_CONFLICT_CODES = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}


def status_flag_for(code: str) -> GitStatusFlag:
    """Translate a two-character porcelain status code into status flags.

    Raises:
        StatusMappingError: For codes outside the porcelain v1 format
    """
    if len(code) != 2:
        raise StatusMappingError(f"Malformed porcelain status code: {code!r}")
    if code == "??":
        return GitStatusFlag.WT_NEW
    if code == "!!":
        return GitStatusFlag.IGNORED
    if code in _CONFLICT_CODES:
        return GitStatusFlag.CONFLICTED
    x, y = code
    try:
        return _INDEX_CODES[x] | _WORKTREE_CODES[y]
    except KeyError:
        raise StatusMappingError(f"Unknown porcelain status code: {code!r}") from None


def parse_porcelain(output: str) -> List[Tuple[Optional[str], GitStatusFlag]]:
    """Parse ``git status --porcelain=v1 -z`` output.

    Returns (path, flags) pairs in git's order. The source path that follows
    a rename or copy entry is consumed, not reported.
    """
    entries: List[Tuple[Optional[str], GitStatusFlag]] = []
    tokens = output.split("\0")
    i = 0
    while i < len(tokens):
        token = tokens[i]
        i += 1
        if not token:
            continue
        code, path = token[:2], token[3:]
        flags = status_flag_for(code)
        if "R" in code or "C" in code:
            i += 1
        entries.append((path or None, flags))
    return entries


def read_remotes(repo: Repo) -> List[RemoteInfo]:
    """Remotes in discovery order, dropping URLs of unknown type."""
    remotes: List[RemoteInfo] = []
    try:
        repo_remotes = list(repo.remotes)
    except (GitCommandError, ValueError, OSError) as e:
        logger.error("Could not list remotes of %s: %s", repo.working_dir, e)
        return remotes

    for remote in repo_remotes:
        try:
            url = next(iter(remote.urls), None)
        except (GitCommandError, ValueError) as e:
            logger.warning("Could not read URL of remote %s in %s: %s", remote.name, repo.working_dir, e)
            continue
        if not url:
            continue
        url_type = detect_url_type(url)
        if url_type is None:
            logger.debug("Dropping remote %s with unrecognised URL %s", remote.name, url)
            continue
        remotes.append(RemoteInfo(name=remote.name, url=url, url_type=url_type))
    return remotes


def read_changes(
    repo: Repo,
    *,
    include_untracked: bool = True,
    include_ignored: bool = False,
) -> List[FileInfo]:
    """Working-tree status entries, one per path."""
    args = ["--porcelain=v1", "-z"]
    args.append("--untracked-files=all" if include_untracked else "--untracked-files=no")
    if include_ignored:
        args.append("--ignored")
    try:
        output = repo.git.status(*args)
    except GitCommandError as e:
        logger.error("Could not read status of %s: %s", repo.working_dir, e)
        return []

    return [
        FileInfo(path=path, status=map_status(primary_flag(flags)))
        for path, flags in parse_porcelain(output)
    ]


def read_branch_commits(repo: Repo) -> Dict[str, str]:
    """Map each local branch to its head commit sha."""
    commits: Dict[str, str] = {}
    try:
        heads = list(repo.heads)
    except (GitCommandError, ValueError, OSError) as e:
        logger.warning("Could not enumerate branches of %s: %s", repo.working_dir, e)
        return commits

    for head in heads:
        try:
            commits[head.name] = head.commit.hexsha
        except (ValueError, GitCommandError) as e:
            logger.warning("Skipping branch %s in %s: %s", head.name, repo.working_dir, e)
    return commits


def inspect_repository(
    path: Path,
    *,
    include_untracked: bool = True,
    include_ignored: bool = False,
) -> GitInfo:
    """Open ``path`` as a repository and collect its GitInfo.

    Raises:
        InvalidGitRepositoryError, NoSuchPathError: If it cannot be opened
    """
    with Repo(path) as repo:
        return GitInfo(
            changes=tuple(read_changes(
                repo,
                include_untracked=include_untracked,
                include_ignored=include_ignored,
            )),
            remotes=tuple(read_remotes(repo)),
            branch_commits=read_branch_commits(repo),
        )


def is_version_controlled(path: Path) -> bool:
    """True if ``path`` has a metadata directory at its top level."""
    return (path / METADATA_DIR).is_dir()


def scan_root(
    root: Path,
    *,
    include_untracked: bool = True,
    include_ignored: bool = False,
) -> List[LocalProject]:
    """Scan the immediate children of one root directory.

    Raises:
        LocalScanError: If the root itself cannot be read
    """
    root = Path(root).expanduser()
    try:
        children = sorted(
            (Path(entry.path) for entry in os.scandir(root) if entry.is_dir()),
            key=lambda p: p.name,
        )
    except OSError as e:
        raise LocalScanError(f"Cannot read root directory {root}: {e}") from e

    projects: List[LocalProject] = []
    for child in children:
        try:
            if not is_version_controlled(child):
                projects.append(LocalProject(path=child, git=None))
                continue
            git_info = inspect_repository(
                child,
                include_untracked=include_untracked,
                include_ignored=include_ignored,
            )
        except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError, OSError) as e:
            logger.error("Skipping %s: cannot open repository: %s", child, e)
            continue
        projects.append(LocalProject(path=child, git=git_info))

    logger.debug("Scanned %s: %d projects", root, len(projects))
    return projects


def scan_roots(
    roots: Iterable[Path],
    *,
    include_untracked: bool = True,
    include_ignored: bool = False,
) -> List[LocalProject]:
    """Scan several roots and concatenate the results; failing roots are skipped."""
    projects: List[LocalProject] = []
    for root in roots:
        try:
            projects.extend(scan_root(
                Path(root),
                include_untracked=include_untracked,
                include_ignored=include_ignored,
            ))
        except LocalScanError as e:
            logger.error("%s", e)
    return projects
