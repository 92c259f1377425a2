"""In-memory project store.

Holds the current merged project set keyed by ULID. The set is only ever
replaced wholesale; every replacement issues fresh ids, so ids from an
earlier refresh no longer resolve.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterable, List, Optional

from ulid import ULID

from .errors import ProjectIdParseError, ProjectNotFoundError
from .models import Project


def parse_project_id(value: str) -> ULID:
    """Parse a project id string.

    Raises:
        ProjectIdParseError: If ``value`` is not a ULID
    """
    try:
        return ULID.from_str(value.strip())
    except (ValueError, TypeError, AttributeError):
        raise ProjectIdParseError(str(value)) from None


class ProjectStore:
    """Lock-guarded mapping of project id to Project."""

    def __init__(self) -> None:
        self._projects: Dict[ULID, Project] = {}
        self._lock = threading.Lock()

    def replace_all(self, projects: Iterable[Project]) -> List[str]:
        """Replace the whole set, returning the new ids in input order."""
        fresh = {ULID(): project for project in projects}
        with self._lock:
            self._projects = fresh
        return [str(key) for key in fresh]

    def get(self, project_id: str) -> Optional[Project]:
        """Project for ``project_id``, or None if unknown.

        Raises:
            ProjectIdParseError: If ``project_id`` is malformed
        """
        key = parse_project_id(project_id)
        with self._lock:
            return self._projects.get(key)

    def require(self, project_id: str) -> Project:
        """Like ``get`` but raises ProjectNotFoundError for unknown ids."""
        project = self.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def list_ids(self) -> List[str]:
        with self._lock:
            return [str(key) for key in self._projects]

    def __len__(self) -> int:
        with self._lock:
            return len(self._projects)
