"""Configuration schema for gitboard.

Defines all configuration options with types, defaults, and validation.
Uses Pydantic for schema enforcement and clear error messages.
"""

from __future__ import annotations

import warnings
from datetime import datetime
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class ListParameters(BaseModel):
    """Filters for listing the authenticated user's repositories.

    Every field is optional; unset fields are not sent to the API.
    """

    model_config = ConfigDict(populate_by_name=True)

    visibility: Optional[Literal["all", "public", "private"]] = Field(
        default=None,
        description="Repository visibility filter (unset = all)",
    )
    affiliation: Optional[str] = Field(
        default=None,
        description="Comma-separated list of owner, collaborator, organization_member",
    )
    repo_type: Optional[Literal["all", "owner", "public", "private", "member"]] = Field(
        default=None,
        alias="type",
        description="Repository type filter (cannot be combined with visibility/affiliation)",
    )
    sort: Optional[Literal["created", "updated", "pushed", "full_name"]] = Field(
        default=None,
        description="Sort key",
    )
    direction: Optional[Literal["asc", "desc"]] = Field(
        default=None,
        description="Sort direction",
    )
    per_page: Optional[int] = Field(
        default=100,
        ge=1,
        le=100,
        description="Results per page (max 100)",
    )
    page: Optional[int] = Field(
        default=None,
        ge=1,
        description="Fetch only this page (unset = all pages)",
    )
    since: Optional[datetime] = Field(
        default=None,
        description="Only repositories updated after this time",
    )
    before: Optional[datetime] = Field(
        default=None,
        description="Only repositories updated before this time",
    )

    @field_validator("affiliation")
    @classmethod
    def validate_affiliation(cls, v: Optional[str]) -> Optional[str]:
        if v:
            allowed = {"owner", "collaborator", "organization_member"}
            unknown = [p for p in (s.strip() for s in v.split(",")) if p and p not in allowed]
            if unknown:
                raise ValueError(f"Unknown affiliation value(s): {', '.join(unknown)}")
        return v

    @model_validator(mode="after")
    def check_type_exclusive(self) -> "ListParameters":
        """Reject ``type`` combined with ``visibility`` or ``affiliation``."""
        if self.repo_type and (self.visibility or self.affiliation):
            raise ValueError("type cannot be combined with visibility or affiliation")
        return self


class ScanConfig(BaseModel):
    """Local directory scanning settings."""

    roots: List[str] = Field(
        default_factory=list,
        description="Directories whose immediate children are scanned for projects",
    )
    include_untracked: bool = Field(
        default=True,
        description="Report untracked files as working-tree changes",
    )
    include_ignored: bool = Field(
        default=False,
        description="Report ignored files as working-tree changes",
    )

    @field_validator("roots")
    @classmethod
    def validate_roots(cls, v: List[str]) -> List[str]:
        """Warn about roots that are not directories."""
        for root in v:
            path = Path(root).expanduser()
            if not path.is_dir():
                warnings.warn(
                    f"Scan root is not a directory: {root}",
                    UserWarning,
                )
        return v

    def root_paths(self) -> List[Path]:
        return [Path(r).expanduser() for r in self.roots]


class GitHubConfig(BaseModel):
    """GitHub API settings."""

    api_base: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )
    timeout: float = Field(
        default=30.0,
        gt=0,
        description="HTTP timeout in seconds",
    )
    max_pages: Optional[int] = Field(
        default=None,
        ge=1,
        description="Upper bound on pages drained per listing (unset = no limit)",
    )
    listing: ListParameters = Field(default_factory=ListParameters)


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level",
    )
    dir: str = Field(
        default="",
        description="Log directory (empty = ~/.gitboard/logs/)",
    )
    max_bytes: int = Field(
        default=10 * 1024 * 1024,
        ge=1024,
        description="Max log file size before rotation",
    )
    backup_count: int = Field(
        default=5,
        ge=0,
        description="Number of backup log files to keep",
    )
    disable_file: bool = Field(
        default=False,
        description="Disable file logging (stderr only)",
    )

    @field_validator("level", mode="before")
    @classmethod
    def upper_level(cls, v: str) -> str:
        return v.upper() if isinstance(v, str) else v


class ServiceConfig(BaseModel):
    """Worker pool settings for concurrent remote calls."""

    workers: int = Field(
        default=4,
        ge=1,
        le=32,
        description="Threads used for concurrent relation evaluation",
    )


class GitboardConfig(BaseModel):
    """Root configuration model."""

    version: int = Field(
        default=1,
        ge=1,
        description="Config schema version",
    )

    scan: ScanConfig = Field(default_factory=ScanConfig)
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    service: ServiceConfig = Field(default_factory=ServiceConfig)

    @classmethod
    def default(cls) -> "GitboardConfig":
        """Create config with all defaults."""
        return cls()
