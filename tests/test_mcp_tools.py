from __future__ import annotations

import json
import logging

import httpx
import pytest

from gitboard.github import GitHubClient
from gitboard.service import ProjectService
from gitboard_mcp import server


def _text(result) -> str:
    return result.content[0].text


@pytest.fixture
def github_state():
    return {"commits": [], "status": 200}


@pytest.fixture
def service(github_state, monkeypatch):
    def handler(request: httpx.Request) -> httpx.Response:
        if github_state["status"] != 200:
            return httpx.Response(github_state["status"], json={"message": "unavailable"})
        path = request.url.path
        if path == "/user/repos":
            return httpx.Response(200, json=[
                {"id": 1, "name": "beta-service", "html_url": "https://github.com/acme/beta-service", "owner": {"login": "acme"}},
                {"id": 2, "name": "remote-only", "html_url": "https://github.com/acme/remote-only", "owner": {"login": "acme"}},
            ])
        if path.endswith("/branches"):
            return httpx.Response(200, json=[{"name": "main"}])
        return httpx.Response(200, json=[{"sha": s} for s in github_state["commits"]])

    svc = ProjectService(client_factory=lambda token: GitHubClient(token, transport=httpx.MockTransport(handler)))
    monkeypatch.setattr(server, "_service", svc)
    monkeypatch.setenv("GITHUB_TOKEN", "tok")
    return svc


@pytest.fixture
def root(tmp_path, make_repo):
    root = tmp_path / "code"
    make_repo(root / "alpha", remote_url="git@github.com:acme/other.git")
    make_repo(root / "beta", remote_url="https://github.com/acme/beta-service.git")
    return root


def _refresh(root) -> dict:
    return json.loads(_text(server.refresh.fn(roots=[str(root)])))


def _id_for(name: str) -> str:
    for info in json.loads(_text(server.list_projects.fn())):
        if info["display_name"] == name:
            return info["id"]
    raise AssertionError(f"no project {name}")


def test_list_before_refresh(service, caplog):
    caplog.set_level(logging.WARNING, logger="gitboard")
    assert "Run gitboard_refresh first" in _text(server.list_projects.fn())
    assert any(r.message.startswith("list_projects called before refresh") for r in caplog.records)


def test_refresh_and_list(service, root):
    data = _refresh(root)
    assert data["count"] == 3

    summaries = json.loads(_text(server.list_projects.fn()))
    assert [s["display_name"] for s in summaries] == ["Alpha", "Beta service", "Remote only"]
    beta = summaries[1]
    assert beta["local_name"] == "beta"
    assert beta["remote_name"] == "beta-service"


def test_refresh_bad_visibility(service, root):
    assert _text(server.refresh.fn(roots=[str(root)], visibility="secret")).startswith("Error:")


def test_refresh_missing_token(service, root, monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN")
    assert "No GitHub access token" in _text(server.refresh.fn(roots=[str(root)]))


def test_refresh_remote_failure(service, root, github_state):
    github_state["status"] = 503
    text = _text(server.refresh.fn(roots=[str(root)]))
    assert text.startswith("Error: Remote operation 'list_repositories' failed")


def test_project_details(service, root):
    _refresh(root)
    data = json.loads(_text(server.project.fn(project_id=_id_for("Beta service"))))
    assert data["local"]["name"] == "beta"
    assert data["local"]["git"]["remotes"][0]["url_type"] == "http"
    assert data["remote"]["url"] == "https://github.com/acme/beta-service"


def test_project_bad_ids(service, root):
    _refresh(root)
    assert "Malformed project id" in _text(server.project.fn(project_id="zzz"))
    assert "No project with id" in _text(server.project.fn(project_id="01ARZ3NDEKTSV4RRFFQ69G5FAV"))


def test_branch_relation_defaults_to_local_head(service, root, github_state):
    _refresh(root)
    beta_id = _id_for("Beta service")
    head = service.get_local_branch_commits(beta_id)["main"]
    github_state["commits"] = ["newer", head]

    data = json.loads(_text(server.branch_relation.fn(project_id=beta_id, branch="main")))

    assert data["relation"] == "behind"
    assert data["local_commit"] == head


def test_branch_relation_unmatched_project_is_null(service, root):
    _refresh(root)
    data = json.loads(_text(server.branch_relation.fn(project_id=_id_for("Alpha"), branch="main")))
    assert data["relation"] == "null"


def test_branch_relation_unknown_local_branch(service, root, caplog):
    _refresh(root)
    caplog.set_level(logging.WARNING, logger="gitboard")
    text = _text(server.branch_relation.fn(project_id=_id_for("Beta service"), branch="nope"))
    assert text.startswith("Error: No local branch nope")
    assert any(r.message.startswith("No local branch") and "nope" in r.message for r in caplog.records)


def test_health(service):
    text = server.health.fn()
    assert "Status: Healthy" in text
    assert "GitHub Token: present" in text
    assert "Projects Loaded: 0" in text
