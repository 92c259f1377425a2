"""Classify a local branch head against the remote branch history.

History is consumed newest first and page by page, so the scan stops at
the first page that contains the local commit:

- the newest remote commit is the local commit: SAME
- the local commit appears further down: BEHIND (remote has more commits)
- the local commit never appears: AHEAD (local has unpublished commits)
- no remote repository, no such remote branch, or empty history: NULL
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence, Set

from .models import Relation, RemoteRepository

logger = logging.getLogger(__name__)


class RemoteHistoryProvider(Protocol):
    """The part of the GitHub client the evaluator needs."""

    def list_branches(self, repository: RemoteRepository) -> Set[str]: ...

    def iter_commit_pages(self, repository: RemoteRepository, branch: str) -> Iterator[List[str]]: ...


def classify_history(pages: Iterable[Sequence[str]], local_commit: str) -> Relation:
    """Classify ``local_commit`` against newest-first history pages."""
    seen_any = False
    for page in pages:
        for sha in page:
            if sha == local_commit:
                return Relation.BEHIND if seen_any else Relation.SAME
            seen_any = True
    return Relation.AHEAD if seen_any else Relation.NULL


def evaluate_branch_relation(
    provider: RemoteHistoryProvider,
    repository: Optional[RemoteRepository],
    branch: str,
    local_commit: str,
) -> Relation:
    """Relation of ``local_commit`` to ``branch`` of ``repository``.

    Raises whatever ``provider`` raises for transport or API failures.
    """
    if repository is None:
        return Relation.NULL
    if branch not in provider.list_branches(repository):
        logger.debug("Branch %s does not exist on %s", branch, repository.name)
        return Relation.NULL

    relation = classify_history(provider.iter_commit_pages(repository, branch), local_commit)
    logger.debug(
        "Branch %s of %s at %s: %s",
        branch,
        repository.name,
        local_commit,
        relation.value,
    )
    return relation
