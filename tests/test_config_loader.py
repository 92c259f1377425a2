"""Tests for config_loader and config_schema."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from gitboard.config_loader import (
    clear_config_cache,
    config_sources,
    env_layer,
    find_project_config_dir,
    get_config,
    get_config_paths,
    load_config,
    merge_layers,
    user_config_dir,
)
from gitboard.config_schema import GitboardConfig, ListParameters
from gitboard.errors import ConfigurationError


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


class TestMergeLayers:
    """Tests for merge_layers."""

    def test_nested_merge(self):
        base = {"outer": {"a": 1, "b": 2}}
        override = {"outer": {"b": 3, "c": 4}}
        assert merge_layers(base, override) == {"outer": {"a": 1, "b": 3, "c": 4}}

    def test_list_replacement(self):
        assert merge_layers({"items": [1, 2]}, {"items": [3]}) == {"items": [3]}

    def test_base_unchanged(self):
        base = {"a": {"b": 1}}
        override = {"a": {"b": 2}}
        merged = merge_layers(base, override)
        merged["a"]["b"] = 3
        assert base == {"a": {"b": 1}}
        assert override == {"a": {"b": 2}}

    def test_three_layers(self):
        assert merge_layers({"a": 1}, {"b": {"c": 2}}, {"b": {"d": 3}}) == {"a": 1, "b": {"c": 2, "d": 3}}


class TestSchema:
    """Tests for schema defaults and validation."""

    def test_defaults(self):
        config = GitboardConfig.default()
        assert config.scan.roots == []
        assert config.scan.include_untracked is True
        assert config.scan.include_ignored is False
        assert config.github.api_base == "https://api.github.com"
        assert config.github.listing.visibility is None
        assert config.github.listing.per_page == 100
        assert config.service.workers == 4

    def test_listing_type_alias(self):
        params = ListParameters.model_validate({"type": "owner"})
        assert params.repo_type == "owner"
        assert params.visibility is None

    @pytest.mark.parametrize("extra", [{"visibility": "private"}, {"affiliation": "owner"}])
    def test_type_excludes_visibility_and_affiliation(self, extra):
        with pytest.raises(ValueError, match="type cannot be combined"):
            ListParameters.model_validate({"type": "owner", **extra})

    def test_bad_affiliation(self):
        with pytest.raises(ValueError):
            ListParameters(affiliation="owner,stranger")

    def test_per_page_bounds(self):
        with pytest.raises(ValueError):
            ListParameters(per_page=500)

    def test_level_is_uppercased(self):
        config = GitboardConfig.model_validate({"logging": {"level": "debug"}})
        assert config.logging.level == "DEBUG"

    def test_missing_root_warns(self, tmp_path):
        with pytest.warns(UserWarning, match="not a directory"):
            GitboardConfig.model_validate({"scan": {"roots": [str(tmp_path / "nope")]}})


class TestConfigDirs:
    def test_user_config_dir_in_home(self, isolated_env):
        assert user_config_dir() == isolated_env / ".gitboard"

    def test_project_dir_found_upward(self, tmp_path):
        project = tmp_path / "proj"
        (project / ".gitboard").mkdir(parents=True)
        nested = project / "a" / "b"
        nested.mkdir(parents=True)
        assert find_project_config_dir(nested) == project / ".gitboard"

    def test_user_dir_is_not_project_dir(self, isolated_env):
        (isolated_env / ".gitboard").mkdir()
        nested = isolated_env / "work"
        nested.mkdir()
        assert find_project_config_dir(nested) is None


class TestEnvLayer:
    def test_nested_keys(self):
        layer = env_layer({"GITBOARD_VISIBILITY": "private", "GITBOARD_WORKERS": "3", "OTHER": "x"})
        assert layer == {"github": {"listing": {"visibility": "private"}}, "service": {"workers": "3"}}

    def test_roots_split_on_pathsep(self):
        layer = env_layer({"GITBOARD_ROOTS": f"/a{os.pathsep}{os.pathsep}/b"})
        assert layer == {"scan": {"roots": ["/a", "/b"]}}


class TestConfigSources:
    def test_user_only(self, tmp_path, isolated_env):
        [source] = config_sources(tmp_path)
        assert source.name == "user_config"
        assert source.path == isolated_env / ".gitboard" / "config.toml"
        assert not source.required

    def test_project_is_required(self, tmp_path):
        (tmp_path / ".gitboard").mkdir()
        sources = config_sources(tmp_path)
        assert [(s.name, s.required) for s in sources] == [("user_config", False), ("project_config", True)]


class TestLoadConfig:
    """Tests for load_config discovery and overlay."""

    def test_defaults_without_files(self, tmp_path):
        config = load_config(tmp_path, environ={})
        assert config == GitboardConfig.default()

    def test_user_then_project_then_env(self, tmp_path, isolated_env, monkeypatch):
        _write(
            isolated_env / ".gitboard" / "config.toml",
            '[github]\ntimeout = 5.0\napi_base = "https://user.example"\n'
            '[github.listing]\nvisibility = "private"\n',
        )
        project = tmp_path / "proj"
        _write(project / ".gitboard" / "config.toml", '[github]\ntimeout = 9.0\n[service]\nworkers = 2\n')
        monkeypatch.setenv("GITBOARD_WORKERS", "8")

        config = load_config(project)

        assert config.github.api_base == "https://user.example"
        assert config.github.timeout == 9.0
        assert config.github.listing.visibility == "private"
        assert config.service.workers == 8

    def test_roots_env_split(self, tmp_path, monkeypatch):
        a, b = tmp_path / "a", tmp_path / "b"
        a.mkdir()
        b.mkdir()
        monkeypatch.setenv("GITBOARD_ROOTS", f"{a}{os.pathsep}{b}")
        config = load_config(tmp_path)
        assert config.scan.root_paths() == [a, b]

    def test_invalid_project_toml(self, tmp_path):
        project = tmp_path / "proj"
        _write(project / ".gitboard" / "config.toml", "not = [valid")
        with pytest.raises(ConfigurationError, match="Invalid project config"):
            load_config(project)

    def test_invalid_user_toml_warns(self, tmp_path, isolated_env):
        _write(isolated_env / ".gitboard" / "config.toml", "broken = ")
        with pytest.warns(UserWarning, match="Skipping invalid user config"):
            config = load_config(tmp_path, environ={})
        assert config.version == 1

    def test_validation_error(self, tmp_path, monkeypatch):
        monkeypatch.setenv("GITBOARD_WORKERS", "0")
        with pytest.raises(ConfigurationError, match="validation failed"):
            load_config(tmp_path)

    def test_config_paths(self, tmp_path, isolated_env):
        paths = get_config_paths(tmp_path)
        assert paths["user_config"] == isolated_env / ".gitboard" / "config.toml"
        assert paths["user_credentials"] == isolated_env / ".gitboard" / "credentials.toml"
        assert paths["project_config"] is None


class TestGetConfig:
    def test_cached_until_cleared(self, tmp_path, monkeypatch):
        first = get_config(tmp_path)
        monkeypatch.setenv("GITBOARD_WORKERS", "3")
        assert get_config(tmp_path) is first
        clear_config_cache()
        assert get_config(tmp_path).service.workers == 3

    def test_force_reload(self, tmp_path, monkeypatch):
        get_config(tmp_path)
        monkeypatch.setenv("GITBOARD_WORKERS", "6")
        assert get_config(tmp_path, force_reload=True).service.workers == 6
