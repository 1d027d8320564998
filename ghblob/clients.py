"""Authenticated HTTP sessions for the hosting services."""

from __future__ import annotations

import os
from typing import Mapping
from urllib.parse import urlparse

import requests

from .logger import get_logger
from .models import GhBlobError

USER_AGENT = "gh-blob"
DEFAULT_GITLAB_API = "https://gitlab.com/api/v4/"


def _bearer_session(token: str) -> requests.Session:
    session = requests.Session()
    session.headers["Authorization"] = f"Bearer {token}"
    session.headers["User-Agent"] = USER_AGENT
    return session


class GitHubClient:
    """Creates sessions authenticated with a GitHub personal access token."""

    def __init__(self, token: str = "") -> None:
        self.token = token

    def authenticate(self) -> requests.Session:
        """Return a session carrying the token, or raise if there is none."""
        if not self.token:
            get_logger().error("GitHub PAT is not set")
            raise GhBlobError("GITHUB_TOKEN environment variable is not set")
        return _bearer_session(self.token)


class GitLabClient:
    """Creates sessions authenticated with a GitLab OAuth token."""

    def __init__(self, token: str = "", api_endpoint: str = "") -> None:
        self.token = token
        self.api_endpoint = api_endpoint or DEFAULT_GITLAB_API

    def authenticate(self) -> requests.Session:
        """Return a session carrying the token, or raise if it cannot be made."""
        if not self.token:
            raise GhBlobError("GitLab PAT is required")
        parsed = urlparse(self.api_endpoint)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise GhBlobError(f"invalid GitLab API endpoint: {self.api_endpoint}")
        return _bearer_session(self.token)


def github_client_from_env(environ: Mapping[str, str] | None = None) -> GitHubClient:
    """Build a GitHub client from ``GITHUB_TOKEN`` in ``environ``."""
    env = os.environ if environ is None else environ
    return GitHubClient(env.get("GITHUB_TOKEN", ""))