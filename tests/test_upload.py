import json
from urllib.parse import parse_qs, urlparse

import pytest
import requests
import responses

from ghblob.models import GhBlobError, UploadArchiveInput
from ghblob.upload import (
    multipart_upload,
    parse_upload_location,
    simple_upload,
    upload_archive,
)

SIMPLE_URL = "https://uploads.github.com/organizations/42/gei/archive"
MULTI_URL = "https://uploads.github.com/organizations/42/gei/archive/blobs/uploads"
START_LOCATION = "/organizations/42/gei/archive/blobs/uploads?part_number=1&guid=g1&upload_id=u1"


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        yield rsps


@pytest.fixture
def archive_file(tmp_path):
    path = tmp_path / "archive.tar.gz"
    path.write_bytes(b"0123456789")
    return path


def _simple_callback(store):
    def callback(request):
        body = request.body
        store["body"] = body.read() if hasattr(body, "read") else body
        store["request"] = request
        payload = {"guid": "g9", "node_id": "N_9", "name": "archive.tar.gz", "size": 10,
                   "uri": "gei://archive/g9", "created_at": "now"}
        return 201, {}, json.dumps(payload)

    return callback


def test_parse_upload_location():
    assert parse_upload_location(START_LOCATION) == ("g1", "u1")


def test_parse_upload_location_missing_values():
    assert parse_upload_location("/organizations/42/gei/archive") == ("", "")


def test_simple_upload_sends_file_and_parses_response(archive_file, mocked):
    store = {}
    mocked.add_callback(responses.POST, SIMPLE_URL, callback=_simple_callback(store))

    result = simple_upload("42", archive_file, 10, requests.Session(), "token")

    assert result.guid == "g9"
    assert result.node_id == "N_9"
    assert result.size == 10
    assert store["body"] == b"0123456789"
    request = store["request"]
    assert parse_qs(urlparse(request.url).query)["name"] == ["archive.tar.gz"]
    assert request.headers["Authorization"] == "Bearer token"
    assert request.headers["Content-Type"] == "application/octet-stream"
    assert request.headers["User-Agent"] == "gh-blob"


def test_simple_upload_unexpected_status(archive_file, mocked):
    mocked.add(responses.POST, SIMPLE_URL, status=500, body="boom")
    with pytest.raises(GhBlobError, match="unexpected response status: 500, body: boom"):
        simple_upload("42", archive_file, 10, requests.Session(), "token")


def test_simple_upload_connection_error(archive_file, mocked):
    mocked.add(responses.POST, SIMPLE_URL, body=requests.ConnectionError("down"))
    with pytest.raises(GhBlobError, match="upload failed: failed to upload file"):
        simple_upload("42", archive_file, 10, requests.Session(), "token")


def test_upload_archive_small_file_uses_simple_upload(archive_file, mocked):
    store = {}
    mocked.add_callback(responses.POST, SIMPLE_URL, callback=_simple_callback(store))
    archive = UploadArchiveInput(archive_file_path=archive_file, organization_id="42")

    result = upload_archive(archive, requests.Session(), "token")

    assert result.uri == "gei://archive/g9"
    assert store["body"] == b"0123456789"


def test_upload_archive_missing_file(tmp_path):
    archive = UploadArchiveInput(archive_file_path=tmp_path / "nope", organization_id="42")
    with pytest.raises(GhBlobError, match="failed to open file"):
        upload_archive(archive, requests.Session(), "token")


def test_upload_without_token_fails(archive_file, monkeypatch):
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    with pytest.raises(GhBlobError, match="failed to create GitHub client"):
        simple_upload("42", archive_file, 10)


def _register_multipart(mock, store, finalize_status=201):
    def start(request):
        store["start"] = json.loads(request.body)
        return 202, {"Location": START_LOCATION}, ""

    def patch(request):
        query = parse_qs(urlparse(request.url).query)
        number = int(query["part_number"][0])
        store.setdefault("parts", []).append(request.body)
        store.setdefault("numbers", []).append(number)
        following = f"/organizations/42/gei/archive/blobs/uploads?part_number={number + 1}&guid=g1&upload_id=u1"
        return 202, {"Location": following}, ""

    def put(request):
        store["final_url"] = request.url
        store["final_headers"] = request.headers
        return finalize_status, {"Date": "Mon, 01 Jan 2024 00:00:00 GMT"}, "{}"

    mock.add_callback(responses.POST, MULTI_URL, callback=start)
    mock.add_callback(responses.PATCH, MULTI_URL, callback=patch)
    mock.add_callback(responses.PUT, MULTI_URL, callback=put)


def test_multipart_upload_sends_parts_in_order(archive_file, mocked):
    store = {}
    _register_multipart(mocked, store)

    result = multipart_upload("42", archive_file, 10, requests.Session(), "token", part_size=4)

    assert b"".join(store["parts"]) == b"0123456789"
    assert [len(part) for part in store["parts"]] == [4, 4, 2]
    assert store["numbers"] == [1, 2, 3]
    assert parse_qs(urlparse(store["final_url"]).query)["part_number"] == ["3"]
    assert store["final_headers"]["GraphQL-Features"] == "octoshift_github_owned_storage"
    assert store["start"] == {
        "content_type": "application/octet-stream",
        "name": "archive.tar.gz",
        "size": 10,
    }
    assert result.guid == "g1"
    assert result.uri == "gei://archive/g1"
    assert result.node_id == "Not available"
    assert result.name == "archive.tar.gz"
    assert result.size == 10
    assert result.created_at == "Mon, 01 Jan 2024 00:00:00 GMT"


def test_multipart_upload_single_part(archive_file, mocked):
    store = {}
    _register_multipart(mocked, store)

    result = multipart_upload("42", archive_file, 10, requests.Session(), "token")

    assert store["parts"] == [b"0123456789"]
    assert parse_qs(urlparse(store["final_url"]).query)["part_number"] == ["1"]
    assert result.size == 10


def test_multipart_start_unexpected_status(archive_file, mocked):
    mocked.add(responses.POST, MULTI_URL, status=403, body="denied")
    with pytest.raises(GhBlobError, match="unexpected response status: 403"):
        multipart_upload("42", archive_file, 10, requests.Session(), "token")


def test_multipart_missing_location(archive_file, mocked):
    mocked.add(responses.POST, MULTI_URL, status=202)
    with pytest.raises(GhBlobError, match="missing Location header in response"):
        multipart_upload("42", archive_file, 10, requests.Session(), "token")


def test_multipart_part_failure(archive_file, mocked):
    mocked.add(responses.POST, MULTI_URL, status=202, headers={"Location": START_LOCATION})
    mocked.add(responses.PATCH, MULTI_URL, status=500, body="bad part")
    with pytest.raises(GhBlobError, match="unexpected response status for part 1: 500"):
        multipart_upload("42", archive_file, 10, requests.Session(), "token", part_size=4)


def test_multipart_finalize_failure(archive_file, mocked):
    store = {}
    _register_multipart(mocked, store, finalize_status=500)
    with pytest.raises(GhBlobError, match="unexpected finalize response status: 500"):
        multipart_upload("42", archive_file, 10, requests.Session(), "token", part_size=4)


def test_multipart_rejects_non_positive_part_size(archive_file):
    with pytest.raises(ValueError):
        multipart_upload("42", archive_file, 10, requests.Session(), "token", part_size=0)