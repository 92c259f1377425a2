"""Error types raised by gitboard.

Callers distinguish configuration problems, identifier problems and remote
failures by class. Failures of a single scanned directory never surface
here; they are logged and the item is skipped.
"""

from __future__ import annotations

from typing import Optional


class GitboardError(Exception):
    """Base class for all gitboard errors."""


class ConfigurationError(GitboardError):
    """Required configuration is missing or invalid."""


class MissingTokenError(ConfigurationError):
    """No GitHub access token is configured."""

    def __init__(self, message: str = "No GitHub access token was provided"):
        super().__init__(message)


class ProjectIdError(GitboardError):
    """A project identifier could not be resolved."""

    def __init__(self, project_id: str, message: str):
        super().__init__(message)
        self.project_id = project_id


class ProjectIdParseError(ProjectIdError):
    """The identifier is not a well-formed project id."""

    def __init__(self, project_id: str):
        super().__init__(project_id, f"Malformed project id: {project_id!r}")


class ProjectNotFoundError(ProjectIdError):
    """The identifier is well-formed but names no current project."""

    def __init__(self, project_id: str):
        super().__init__(project_id, f"No project with id {project_id}")


class RemoteOperationError(GitboardError):
    """A call to the hosting service failed.

    Attributes:
        operation: Name of the operation that failed (e.g. "list_repositories")
        cause: The underlying client error
    """

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Remote operation '{operation}' failed{detail}")
        self.operation = operation
        self.cause = cause


class LocalScanError(GitboardError):
    """A root directory could not be scanned at all."""


class StatusMappingError(GitboardError):
    """A git status value falls outside the known status set.

    This is a contract violation between gitboard and the git introspector,
    not a recoverable condition.
    """
