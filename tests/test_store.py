"""Tests for the in-memory project store."""

from __future__ import annotations

from pathlib import Path

import pytest
from ulid import ULID

from gitboard.errors import ProjectIdParseError, ProjectNotFoundError
from gitboard.models import LocalProject, Project, RemoteRepository
from gitboard.store import ProjectStore, parse_project_id


def _projects():
    return [
        Project(local=LocalProject(path=Path("/code/a"))),
        Project(remote=RemoteRepository(id=1, name="b")),
    ]


class TestProjectStore:
    def test_replace_all_returns_ids_in_order(self):
        store = ProjectStore()
        projects = _projects()
        ids = store.replace_all(projects)
        assert len(ids) == 2
        assert [store.get(i) for i in ids] == projects
        assert sorted(store.list_ids()) == sorted(ids)
        assert len(store) == 2

    def test_second_replace_issues_disjoint_ids(self):
        store = ProjectStore()
        first = store.replace_all(_projects())
        second = store.replace_all(_projects())
        assert not set(first) & set(second)
        for old in first:
            assert store.get(old) is None
            with pytest.raises(ProjectNotFoundError):
                store.require(old)

    def test_replace_with_empty(self):
        store = ProjectStore()
        store.replace_all(_projects())
        assert store.replace_all([]) == []
        assert store.list_ids() == []

    def test_malformed_id(self):
        store = ProjectStore()
        with pytest.raises(ProjectIdParseError) as exc:
            store.get("not-an-id")
        assert exc.value.project_id == "not-an-id"

    def test_unknown_but_valid_id(self):
        store = ProjectStore()
        store.replace_all(_projects())
        with pytest.raises(ProjectNotFoundError):
            store.require(str(ULID()))


def test_parse_project_id_strips_whitespace():
    value = ULID()
    assert parse_project_id(f"  {value} ") == value
