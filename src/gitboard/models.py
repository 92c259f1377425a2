"""Data model for local projects, remote repositories and merged projects."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntFlag
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import StatusMappingError

logger = logging.getLogger(__name__)


class RemoteUrlType(str, Enum):
    """Transport family of a remote URL."""

    HTTP = "http"
    SSH = "ssh"


class FileStatus(str, Enum):
    """Working-tree status of a single file (closed set)."""

    CURRENT = "current"
    INDEX_NEW = "index_new"
    INDEX_MODIFIED = "index_modified"
    INDEX_DELETED = "index_deleted"
    INDEX_RENAMED = "index_renamed"
    INDEX_TYPECHANGE = "index_typechange"
    WORKTREE_NEW = "worktree_new"
    WORKTREE_MODIFIED = "worktree_modified"
    WORKTREE_DELETED = "worktree_deleted"
    WORKTREE_TYPECHANGE = "worktree_typechange"
    WORKTREE_RENAMED = "worktree_renamed"
    IGNORED = "ignored"
    CONFLICT = "conflict"


class GitStatusFlag(IntFlag):
    """Status bits reported by the git introspector (libgit2 layout)."""

    CURRENT = 0
    INDEX_NEW = 1 << 0
    INDEX_MODIFIED = 1 << 1
    INDEX_DELETED = 1 << 2
    INDEX_RENAMED = 1 << 3
    INDEX_TYPECHANGE = 1 << 4
    WT_NEW = 1 << 7
    WT_MODIFIED = 1 << 8
    WT_DELETED = 1 << 9
    WT_TYPECHANGE = 1 << 10
    WT_RENAMED = 1 << 11
    IGNORED = 1 << 14
    CONFLICTED = 1 << 15


_STATUS_BY_FLAG: Dict[int, FileStatus] = {
    GitStatusFlag.CURRENT: FileStatus.CURRENT,
    GitStatusFlag.INDEX_NEW: FileStatus.INDEX_NEW,
    GitStatusFlag.INDEX_MODIFIED: FileStatus.INDEX_MODIFIED,
    GitStatusFlag.INDEX_DELETED: FileStatus.INDEX_DELETED,
    GitStatusFlag.INDEX_RENAMED: FileStatus.INDEX_RENAMED,
    GitStatusFlag.INDEX_TYPECHANGE: FileStatus.INDEX_TYPECHANGE,
    GitStatusFlag.WT_NEW: FileStatus.WORKTREE_NEW,
    GitStatusFlag.WT_MODIFIED: FileStatus.WORKTREE_MODIFIED,
    GitStatusFlag.WT_DELETED: FileStatus.WORKTREE_DELETED,
    GitStatusFlag.WT_TYPECHANGE: FileStatus.WORKTREE_TYPECHANGE,
    GitStatusFlag.WT_RENAMED: FileStatus.WORKTREE_RENAMED,
    GitStatusFlag.IGNORED: FileStatus.IGNORED,
    GitStatusFlag.CONFLICTED: FileStatus.CONFLICT,
}


def map_status(flag: int) -> FileStatus:
    """Convert a single git status flag to its FileStatus.

    Raises:
        StatusMappingError: If ``flag`` is not exactly one known status value
    """
    try:
        return _STATUS_BY_FLAG[int(flag)]
    except KeyError:
        raise StatusMappingError(f"Unmapped git status value: {int(flag):#x}") from None


def primary_flag(flags: GitStatusFlag) -> GitStatusFlag:
    """Return the lowest set bit of ``flags`` (CURRENT when none are set)."""
    value = int(flags)
    if value == 0:
        return GitStatusFlag.CURRENT
    return GitStatusFlag(value & -value)


@dataclass(frozen=True)
class RemoteInfo:
    """A named git remote with its URL."""

    name: str
    url: str
    url_type: RemoteUrlType


@dataclass(frozen=True)
class FileInfo:
    """Working-tree status entry; ``path`` is None if git reported none."""

    path: Optional[str]
    status: FileStatus


@dataclass(frozen=True)
class GitInfo:
    """Version-control details of a local project."""

    changes: Tuple[FileInfo, ...] = ()
    remotes: Tuple[RemoteInfo, ...] = ()
    branch_commits: Mapping[str, str] = field(default_factory=dict)

    @property
    def primary_remote(self) -> Optional[RemoteInfo]:
        """First remote discovered; the only one used for matching."""
        return self.remotes[0] if self.remotes else None


@dataclass(frozen=True)
class LocalProject:
    """A direct child directory of a scanned root."""

    path: Path
    git: Optional[GitInfo] = None

    @property
    def name(self) -> Optional[str]:
        name = self.path.name
        if not name or name in (".", ".."):
            logger.warning("Could not establish local name from path %s", self.path)
            return None
        return name


@dataclass(frozen=True)
class RemoteRepository:
    """A repository reported by the hosting service. Identity is ``id``."""

    id: int
    name: str
    url: Optional[str] = None
    owner: Optional[str] = None
    description: Optional[str] = None
    ssh_url: Optional[str] = None
    visibility: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


def format_name(name: str) -> str:
    """Format a repository name for display.

    ``"my-repo_x"`` becomes ``"My repo x"``.
    """
    if not name:
        return ""
    spaced = name.replace("-", " ").replace("_", " ")
    return name[0].upper() + spaced[1:]


@dataclass(frozen=True)
class Project:
    """Merged view of a local project and/or a remote repository."""

    local: Optional[LocalProject] = None
    remote: Optional[RemoteRepository] = None

    def __post_init__(self) -> None:
        if self.local is None and self.remote is None:
            raise ValueError("Project requires a local project, a remote repository, or both")

    def local_name(self) -> Optional[str]:
        if self.local is None:
            return None
        return self.local.name

    def remote_name(self) -> Optional[str]:
        if self.remote is None:
            return None
        return self.remote.name

    def local_branch_commits(self) -> Optional[Dict[str, str]]:
        if self.local is None or self.local.git is None:
            return None
        return dict(self.local.git.branch_commits)

    def change_count(self) -> int:
        """Number of working-tree entries on the local side (0 without git)."""
        if self.local is None or self.local.git is None:
            return 0
        return len(self.local.git.changes)

    def display_name(self) -> str:
        name = self.remote_name() or self.local_name()
        return format_name(name) if name else "Unknown"

    def to_dict(self) -> Dict[str, Any]:
        local: Optional[Dict[str, Any]] = None
        if self.local is not None:
            git = self.local.git
            local = {
                "path": str(self.local.path),
                "name": self.local.name,
                "git": None if git is None else {
                    "changes": [
                        {"path": c.path, "status": c.status.value} for c in git.changes
                    ],
                    "remotes": [
                        {"name": r.name, "url": r.url, "url_type": r.url_type.value}
                        for r in git.remotes
                    ],
                    "branch_commits": dict(git.branch_commits),
                },
            }
        remote: Optional[Dict[str, Any]] = None
        if self.remote is not None:
            r = self.remote
            remote = {
                "id": r.id,
                "name": r.name,
                "url": r.url,
                "owner": r.owner,
                "description": r.description,
                "ssh_url": r.ssh_url,
                "visibility": r.visibility,
                "created_at": r.created_at.isoformat() if r.created_at else None,
                "updated_at": r.updated_at.isoformat() if r.updated_at else None,
            }
        return {"local": local, "remote": remote}


class Relation(str, Enum):
    """How a local commit relates to a remote branch's history."""

    SAME = "same"
    AHEAD = "ahead"
    BEHIND = "behind"
    NULL = "null"
