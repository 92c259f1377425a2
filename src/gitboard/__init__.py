"""gitboard: a merged view of local git checkouts and GitHub repositories."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("gitboard")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"  # Fallback for editable installs without metadata

from .errors import (  # noqa: F401
    ConfigurationError,
    GitboardError,
    LocalScanError,
    MissingTokenError,
    ProjectIdParseError,
    ProjectNotFoundError,
    RemoteOperationError,
    StatusMappingError,
)
from .models import (  # noqa: F401
    FileInfo,
    FileStatus,
    GitInfo,
    LocalProject,
    Project,
    Relation,
    RemoteInfo,
    RemoteRepository,
    RemoteUrlType,
)
from .service import ProjectService  # noqa: F401
from .store import ProjectStore  # noqa: F401

__all__ = [
    "ConfigurationError",
    "FileInfo",
    "FileStatus",
    "GitInfo",
    "GitboardError",
    "LocalProject",
    "LocalScanError",
    "MissingTokenError",
    "Project",
    "ProjectIdParseError",
    "ProjectNotFoundError",
    "ProjectService",
    "ProjectStore",
    "Relation",
    "RemoteInfo",
    "RemoteOperationError",
    "RemoteRepository",
    "RemoteUrlType",
    "StatusMappingError",
    "__version__",
]
