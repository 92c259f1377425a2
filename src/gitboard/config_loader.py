"""Configuration discovery and loading for gitboard.

Settings are layered, later layers winning key by key:

1. Built-in defaults from ``config_schema``
2. ``~/.gitboard/config.toml``
3. The nearest ``.gitboard/config.toml`` at or above the project path
4. ``GITBOARD_*`` environment variables
"""

from __future__ import annotations

import os
import sys
import threading
import warnings
from pathlib import Path
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from pydantic import ValidationError

from .config_schema import GitboardConfig
from .errors import ConfigurationError

CONFIG_DIR = ".gitboard"
CONFIG_FILENAME = "config.toml"
CREDENTIALS_FILENAME = "credentials.toml"

# Environment variable -> dotted key in the config tree
ENV_KEYS: Dict[str, Tuple[str, ...]] = {
    "GITBOARD_ROOTS": ("scan", "roots"),
    "GITBOARD_INCLUDE_UNTRACKED": ("scan", "include_untracked"),
    "GITBOARD_INCLUDE_IGNORED": ("scan", "include_ignored"),
    "GITBOARD_GITHUB_API": ("github", "api_base"),
    "GITBOARD_GITHUB_TIMEOUT": ("github", "timeout"),
    "GITBOARD_GITHUB_MAX_PAGES": ("github", "max_pages"),
    "GITBOARD_VISIBILITY": ("github", "listing", "visibility"),
    "GITBOARD_AFFILIATION": ("github", "listing", "affiliation"),
    "GITBOARD_LOG_LEVEL": ("logging", "level"),
    "GITBOARD_LOG_DIR": ("logging", "dir"),
    "GITBOARD_LOG_MAX_BYTES": ("logging", "max_bytes"),
    "GITBOARD_LOG_BACKUP_COUNT": ("logging", "backup_count"),
    "GITBOARD_LOG_DISABLE_FILE": ("logging", "disable_file"),
    "GITBOARD_WORKERS": ("service", "workers"),
}


class ConfigSource(NamedTuple):
    """One config file layer; a broken ``required`` file is an error, others warn."""

    name: str
    path: Path
    required: bool


def user_config_dir() -> Path:
    return Path.home() / CONFIG_DIR


def find_project_config_dir(project_path: Optional[Path] = None) -> Optional[Path]:
    """Nearest ``.gitboard`` directory at or above ``project_path`` (default: cwd).

    The user config directory is never returned.
    """
    start = Path(project_path or Path.cwd()).resolve()
    user_dir = user_config_dir().resolve()
    for directory in (start, *start.parents):
        candidate = directory / CONFIG_DIR
        if candidate != user_dir and candidate.is_dir():
            return candidate
    return None


def config_sources(project_path: Optional[Path] = None) -> List[ConfigSource]:
    """Config file layers in the order they are applied."""
    sources = [ConfigSource("user_config", user_config_dir() / CONFIG_FILENAME, False)]
    project_dir = find_project_config_dir(project_path)
    if project_dir is not None:
        sources.append(ConfigSource("project_config", project_dir / CONFIG_FILENAME, True))
    return sources


def get_config_paths(project_path: Optional[Path] = None) -> Dict[str, Optional[Path]]:
    """Locations of the user config, project config and credentials files."""
    paths: Dict[str, Optional[Path]] = {"user_config": None, "project_config": None}
    for source in config_sources(project_path):
        paths[source.name] = source.path
    paths["user_credentials"] = user_config_dir() / CREDENTIALS_FILENAME
    return paths


def merge_layers(*layers: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge config trees left to right without mutating any of them.

    Tables merge recursively; any other value, lists included, replaces.
    """
    merged: Dict[str, Any] = {}
    for layer in layers:
        for key, value in layer.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, Mapping):
                merged[key] = merge_layers(current, value)
            elif isinstance(value, Mapping):
                merged[key] = merge_layers(value)
            else:
                merged[key] = value
    return merged


def _read_source(source: ConfigSource) -> Dict[str, Any]:
    try:
        with source.path.open("rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        if source.required:
            raise ConfigurationError(f"Invalid project config {source.path}: {e}") from e
        warnings.warn(f"Skipping invalid user config at {source.path}: {e}", UserWarning)
        return {}


def env_layer(environ: Mapping[str, str]) -> Dict[str, Any]:
    """Config tree built from ``GITBOARD_*`` variables; pydantic converts types."""
    layer: Dict[str, Any] = {}
    for name, key_path in ENV_KEYS.items():
        raw = environ.get(name)
        if raw is None:
            continue
        value: Any = raw
        if name == "GITBOARD_ROOTS":
            value = [p for p in raw.split(os.pathsep) if p]
        *tables, leaf = key_path
        node = layer
        for table in tables:
            node = node.setdefault(table, {})
        node[leaf] = value
    return layer


def load_config(
    project_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> GitboardConfig:
    """Read every layer and validate the result.

    ``environ`` defaults to the process environment; pass ``{}`` to ignore it.

    Raises:
        ConfigurationError: If the project file is unreadable or the merged
            settings fail validation
    """
    layers = [
        _read_source(source)
        for source in config_sources(project_path)
        if source.path.exists()
    ]
    layers.append(env_layer(os.environ if environ is None else environ))
    try:
        return GitboardConfig.model_validate(merge_layers(*layers))
    except ValidationError as e:
        raise ConfigurationError(f"Config validation failed:\n{e}") from e


_cache: Dict[Optional[Path], GitboardConfig] = {}
_cache_lock = threading.Lock()


def get_config(project_path: Optional[Path] = None, force_reload: bool = False) -> GitboardConfig:
    """Config for ``project_path``, loaded once per resolved path."""
    key = Path(project_path).resolve() if project_path and str(project_path) else None
    with _cache_lock:
        if force_reload or key not in _cache:
            _cache[key] = load_config(project_path)
        return _cache[key]


def clear_config_cache() -> None:
    with _cache_lock:
        _cache.clear()
