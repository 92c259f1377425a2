"""Remote URL classification and matching.

Matching is purely textual: ``https://github.com/org/repo`` and
``git@github.com:org/repo.git`` do not match even though they name the same
repository. HTTP remotes are compared with the web URL of a remote
repository and SSH remotes with its SSH URL, so this is rarely a problem.
"""

from __future__ import annotations

from typing import Optional

from .models import RemoteUrlType

GIT_SUFFIX = ".git"
_HTTP_SCHEMES = ("https://", "http://")


def detect_url_type(url: str) -> Optional[RemoteUrlType]:
    """Classify a remote URL by prefix; None when it is neither HTTP nor SSH."""
    lowered = url.strip().lower()
    if lowered.startswith("http"):
        return RemoteUrlType.HTTP
    if lowered.startswith("git@") or lowered.startswith("ssh://"):
        return RemoteUrlType.SSH
    return None


def normalize_remote_url(url: str) -> str:
    """Canonicalize a URL for equality matching.

    Forces a ``.git`` suffix, then strips one leading ``https://`` or
    ``http://`` (scheme compared case-insensitively).

    Examples:
    - https://github.com/org/repo -> github.com/org/repo.git
    - git@github.com:org/repo -> git@github.com:org/repo.git
    """
    if not url.endswith(GIT_SUFFIX):
        url = url + GIT_SUFFIX
    lowered = url.lower()
    for scheme in _HTTP_SCHEMES:
        if lowered.startswith(scheme):
            return url[len(scheme):]
    return url


def match_remote_url(url_a: str, url_b: str) -> bool:
    """True when both URLs normalize to the same string."""
    return normalize_remote_url(url_a) == normalize_remote_url(url_b)
