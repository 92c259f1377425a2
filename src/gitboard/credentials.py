"""Credential lookup for gitboard.

The GitHub token is read from the environment or from
``~/.gitboard/credentials.toml``. gitboard never writes credentials; create
the file yourself::

    [github]
    token = "ghp_..."
"""

from __future__ import annotations

import os
import stat
import sys
import warnings
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib


CREDENTIALS_FILENAME = "credentials.toml"
USER_CONFIG_DIR = ".gitboard"
TOKEN_ENV_VARS = ("GITHUB_TOKEN", "GH_TOKEN")


class GitHubCredentials(BaseModel):
    """GitHub authentication credentials."""

    token: str = Field(
        default="",
        description="GitHub personal access token",
    )


class Credentials(BaseModel):
    """All gitboard credentials."""

    github: GitHubCredentials = Field(default_factory=GitHubCredentials)


def _get_user_credentials_path() -> Path:
    """Get path to user credentials file."""
    return Path.home() / USER_CONFIG_DIR / CREDENTIALS_FILENAME


def _warn_if_world_readable(path: Path) -> None:
    """Warn when the credentials file is readable by group or others."""
    if os.name != "posix":
        return
    try:
        mode = path.stat().st_mode
    except OSError:
        return
    if mode & (stat.S_IRGRP | stat.S_IROTH):
        warnings.warn(
            f"Credentials file {path} is readable by other users. "
            "Restrict it with: chmod 600 " + str(path),
            UserWarning,
        )


def _load_toml_credentials(path: Path) -> Dict[str, Any]:
    """Load credentials from TOML file."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def load_credentials() -> Credentials:
    """Load credentials from the TOML file.

    Returns empty credentials if the file is missing or invalid.
    """
    toml_path = _get_user_credentials_path()
    if not toml_path.exists():
        return Credentials()

    _warn_if_world_readable(toml_path)
    try:
        data = _load_toml_credentials(toml_path)
        return Credentials.model_validate(data)
    except Exception as e:
        warnings.warn(f"Error loading credentials: {e}", UserWarning)
        return Credentials()


def get_github_token() -> Optional[str]:
    """Get GitHub token from credentials or environment.

    Priority: Environment > Credentials file
    """
    for name in TOKEN_ENV_VARS:
        env_token = os.getenv(name)
        if env_token:
            return env_token

    creds = load_credentials()
    return creds.github.token or None
