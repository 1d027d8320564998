"""Uploading migration archives to GitHub-owned storage."""

from __future__ import annotations

import dataclasses
import json
import os
from pathlib import Path
from typing import BinaryIO

import requests

from .clients import USER_AGENT, GitHubClient
from .graphql import STORAGE_FEATURE
from .logger import get_logger
from .models import (
    GhBlobError,
    UploadArchiveInput,
    UploadArchiveResponse,
    parse_upload_response,
)

UPLOADS_BASE_URL = "https://uploads.github.com"
DEFAULT_PART_SIZE = 100 * 1024 * 1024
DEFAULT_MULTIPART_THRESHOLD = 5000 * 1024 * 1024
OCTET_STREAM = "application/octet-stream"


def _resolve(
    session: requests.Session | None, token: str | None
) -> tuple[requests.Session, str]:
    if token is None:
        token = os.environ.get("GITHUB_TOKEN", "")
    if session is None:
        try:
            session = GitHubClient(token).authenticate()
        except GhBlobError as exc:
            raise GhBlobError(f"failed to create GitHub client: {exc}") from exc
    return session, token


def _headers(token: str, content_type: str, *, storage_feature: bool) -> dict[str, str]:
    headers = {"Content-Type": content_type, "User-Agent": USER_AGENT}
    if storage_feature:
        headers["GraphQL-Features"] = STORAGE_FEATURE
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def _upload_failed(blob_name: str, message: str, exc: Exception) -> GhBlobError:
    error = GhBlobError(f"upload failed: {message}: {exc}")
    get_logger().error(
        "GitHub upload operation failed",
        extra={"fields": {"blobName": blob_name, "error": f"{message}: {exc}"}},
    )
    return error


def parse_upload_location(location: str) -> tuple[str, str]:
    """Extract ``(guid, upload_id)`` from an upload ``Location`` value."""
    values = {}
    for key in ("guid", "upload_id"):
        marker = f"{key}="
        _, found, rest = location.partition(marker)
        values[key] = rest.split(marker)[0].split("&")[0] if found else ""
    return values["guid"], values["upload_id"]


def upload_archive(
    archive: UploadArchiveInput,
    session: requests.Session | None = None,
    token: str | None = None,
) -> UploadArchiveResponse:
    """Upload an archive file, in parts when it is too large for one request."""
    path = Path(archive.archive_file_path)
    try:
        with path.open("rb") as handle:
            size = handle.seek(0, os.SEEK_END)
    except OSError as exc:
        raise GhBlobError(f"failed to open file: {exc}") from exc

    if size < DEFAULT_MULTIPART_THRESHOLD:
        return simple_upload(archive.organization_id, path, size, session, token)
    return multipart_upload(archive.organization_id, path, size, session, token)


def simple_upload(
    org_id: str,
    path: str | Path,
    size: int,
    session: requests.Session | None = None,
    token: str | None = None,
) -> UploadArchiveResponse:
    """Upload a whole file in a single request."""
    log = get_logger()
    log.info("Uploading file to GitHub", extra={"fields": {"orgId": str(org_id)}})
    path = Path(path)
    blob_name = path.name
    session, token = _resolve(session, token)

    url = f"{UPLOADS_BASE_URL}/organizations/{org_id}/gei/archive?name={blob_name}"
    headers = _headers(token, OCTET_STREAM, storage_feature=False)
    headers["Content-Length"] = str(size)

    try:
        with path.open("rb") as handle:
            response = session.post(url, data=handle, headers=headers)
    except OSError as exc:
        raise GhBlobError(f"failed to open file: {exc}") from exc
    except requests.RequestException as exc:
        raise _upload_failed(blob_name, "failed to upload file", exc) from exc

    if response.status_code != 201:
        raise GhBlobError(
            f"unexpected response status: {response.status_code}, body: {response.text}"
        )
    try:
        return parse_upload_response(response.content)
    except GhBlobError:
        log.error("Failed to decode response")
        raise


def _read_parts(handle: BinaryIO, size: int, part_size: int):
    uploaded = 0
    while uploaded < size:
        chunk = handle.read(min(part_size, size - uploaded))
        if not chunk:
            return
        uploaded += len(chunk)
        yield chunk, uploaded


def multipart_upload(
    org_id: str,
    path: str | Path,
    size: int,
    session: requests.Session | None = None,
    token: str | None = None,
    part_size: int = DEFAULT_PART_SIZE,
) -> UploadArchiveResponse:
    """Upload a file in parts: start the upload, send each part, then finalize."""
    if part_size <= 0:
        raise ValueError("part_size must be positive")
    log = get_logger()
    log.info("Uploading file to GitHub", extra={"fields": {"orgId": str(org_id)}})
    path = Path(path)
    blob_name = path.name
    session, token = _resolve(session, token)

    start_url = f"{UPLOADS_BASE_URL}/organizations/{org_id}/gei/archive/blobs/uploads"
    start_body = json.dumps(
        {"content_type": OCTET_STREAM, "name": blob_name, "size": size}, sort_keys=True
    )
    try:
        response = session.post(
            start_url,
            data=start_body,
            headers=_headers(token, "application/json", storage_feature=True),
        )
    except requests.RequestException as exc:
        raise _upload_failed(blob_name, "failed to upload file", exc) from exc

    if response.status_code != 202:
        raise GhBlobError(
            f"unexpected response status: {response.status_code}, body: {response.text}"
        )
    location = response.headers.get("Location", "")
    if not location:
        raise GhBlobError("missing Location header in response")

    guid, upload_id = parse_upload_location(location)
    log.info("Upload ID: " + upload_id)
    log.info("GUID: " + guid)

    last_location = location
    next_location = location
    part_headers = _headers(token, OCTET_STREAM, storage_feature=True)
    try:
        with path.open("rb") as handle:
            for number, (chunk, uploaded) in enumerate(
                _read_parts(handle, size, part_size), start=1
            ):
                log.info(f"Uploading part {number}")
                try:
                    part_response = session.patch(
                        UPLOADS_BASE_URL + next_location,
                        data=chunk,
                        headers=part_headers,
                    )
                except requests.RequestException as exc:
                    raise GhBlobError(f"failed to upload part {number}: {exc}") from exc
                if part_response.status_code != 202:
                    raise GhBlobError(
                        f"unexpected response status for part {number}: "
                        f"{part_response.status_code}, body: {part_response.text}"
                    )
                last_location = next_location
                next_location = part_response.headers.get("Location", "")
                if uploaded >= size or not next_location:
                    break
    except OSError as exc:
        raise GhBlobError(f"failed to read file part: {exc}") from exc

    log.info("Finalizing upload...")
    try:
        final = session.put(
            UPLOADS_BASE_URL + last_location,
            headers=_headers(token, OCTET_STREAM, storage_feature=True),
        )
    except requests.RequestException as exc:
        raise GhBlobError(f"failed to finalize upload: {exc}") from exc

    if final.status_code != 201:
        raise GhBlobError(
            f"unexpected finalize response status: {final.status_code}, body: {final.text}"
        )

    result = parse_upload_response(final.content)
    return dataclasses.replace(
        result,
        uri=f"gei://archive/{guid}",
        guid=guid,
        node_id="Not available",
        name=blob_name,
        size=size,
        created_at=final.headers.get("Date", ""),
    )