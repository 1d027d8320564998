import io
from unittest import mock

import pytest

from ghblob.clients import GitHubClient, GitLabClient, github_client_from_env
from ghblob.logger import init_logger
from ghblob.models import GhBlobError


def test_github_authenticate_sets_bearer_header():
    session = GitHubClient("token").authenticate()
    assert session.headers["Authorization"] == "Bearer token"
    assert session.headers["User-Agent"] == "gh-blob"


def test_github_authenticate_without_token_raises_and_logs():
    stream = io.StringIO()
    init_logger(stream)
    with pytest.raises(GhBlobError, match="GITHUB_TOKEN environment variable is not set"):
        GitHubClient("").authenticate()
    assert "GitHub PAT is not set" in stream.getvalue()


def test_github_client_from_env_mapping():
    client = github_client_from_env({"GITHUB_TOKEN": "token"})
    assert client.token == "token"
    assert client.authenticate().headers["Authorization"] == "Bearer token"


def test_github_client_from_env_missing_token():
    client = github_client_from_env({})
    assert client.token == ""
    with pytest.raises(GhBlobError):
        client.authenticate()


def test_github_client_from_process_environment():
    with mock.patch.dict("os.environ", {"GITHUB_TOKEN": "secret"}):
        client = github_client_from_env()
    assert client.token == "secret"


def test_gitlab_authenticate_sets_bearer_header():
    client = GitLabClient("token", "https://gitlab.example.com/api/v4/")
    session = client.authenticate()
    assert session.headers["Authorization"] == "Bearer token"
    assert client.api_endpoint == "https://gitlab.example.com/api/v4/"


def test_gitlab_without_token_raises():
    with pytest.raises(GhBlobError, match="GitLab PAT is required"):
        GitLabClient("", "https://gitlab.example.com").authenticate()


def test_gitlab_invalid_endpoint_raises():
    with pytest.raises(GhBlobError, match="invalid GitLab API endpoint"):
        GitLabClient("token", "not a url").authenticate()


def test_gitlab_default_endpoint_is_usable():
    client = GitLabClient("token")
    assert client.api_endpoint.startswith("https://")
    assert client.authenticate().headers["Authorization"] == "Bearer token"