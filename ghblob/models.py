"""Data types exchanged with the GitHub archive API."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping


class GhBlobError(Exception):
    """Base error for all failures of the tool."""


class GraphQLError(GhBlobError):
    """The GraphQL API answered with an error."""


@dataclass(frozen=True)
class UploadArchiveInput:
    """What to upload and to which organisation."""

    archive_file_path: str | Path
    organization_id: str


@dataclass(frozen=True)
class UploadArchiveResponse:
    """Description of an uploaded archive."""

    guid: str = ""
    node_id: str = ""
    name: str = ""
    size: int = 0
    uri: str = ""
    created_at: str = ""


@dataclass(frozen=True)
class MigrationArchive:
    """A migration archive as reported by the GraphQL API."""

    id: str = ""
    guid: str = ""
    name: str = ""
    size: int = 0
    uri: str = ""
    created_at: str = ""


@dataclass(frozen=True)
class OrgInfo:
    """Basic organisation details."""

    login: str = ""
    id: str = ""
    name: str = ""
    database_id: int = 0


@dataclass(frozen=True)
class PageInfo:
    """Cursor information of a paginated connection."""

    has_next_page: bool = False
    end_cursor: str = ""


@dataclass(frozen=True)
class ArchivePage:
    """One page of an organisation's migration archives."""

    organization: OrgInfo = field(default_factory=OrgInfo)
    page_info: PageInfo = field(default_factory=PageInfo)
    nodes: list[MigrationArchive] = field(default_factory=list)


def _str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise GhBlobError(f"failed to decode response: field {key!r} is not a string")
    return value


def _int(data: Mapping[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise GhBlobError(f"failed to decode response: field {key!r} is not an integer")
    return value


def _bool(data: Mapping[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise GhBlobError(f"failed to decode response: field {key!r} is not a boolean")
    return value


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise GhBlobError(f"failed to decode response: {what} is not an object")
    return data


def parse_upload_response(data: Mapping[str, Any] | str | bytes) -> UploadArchiveResponse:
    """Build an upload response from a JSON document or its decoded object."""
    if isinstance(data, (str, bytes, bytearray)):
        try:
            data = json.loads(data)
        except ValueError as exc:
            raise GhBlobError(f"failed to decode response: {exc}") from exc
    obj = _mapping(data, "upload response")
    return UploadArchiveResponse(
        guid=_str(obj, "guid"),
        node_id=_str(obj, "node_id"),
        name=_str(obj, "name"),
        size=_int(obj, "size"),
        uri=_str(obj, "uri"),
        created_at=_str(obj, "created_at"),
    )


def parse_migration_archive(data: Mapping[str, Any] | None) -> MigrationArchive:
    """Build a migration archive from a GraphQL node; a missing node is empty."""
    if data is None:
        return MigrationArchive()
    obj = _mapping(data, "migration archive")
    return MigrationArchive(
        id=_str(obj, "id"),
        guid=_str(obj, "guid"),
        name=_str(obj, "name"),
        size=_int(obj, "size"),
        uri=_str(obj, "uri"),
        created_at=_str(obj, "createdAt"),
    )


def parse_org_info(data: Mapping[str, Any] | None) -> OrgInfo:
    """Build organisation details from a GraphQL ``organization`` object."""
    if data is None:
        raise GhBlobError("organization not found")
    obj = _mapping(data, "organization")
    return OrgInfo(
        login=_str(obj, "login"),
        id=_str(obj, "id"),
        name=_str(obj, "name"),
        database_id=_int(obj, "databaseId"),
    )


def parse_archive_page(data: Mapping[str, Any] | None) -> ArchivePage:
    """Build a page of archives from a GraphQL ``organization`` object."""
    organization = parse_org_info(data)
    archives = data.get("migrationArchives") or {}  # type: ignore[union-attr]
    archives = _mapping(archives, "migrationArchives")
    page_info = _mapping(archives.get("pageInfo") or {}, "pageInfo")
    nodes = archives.get("nodes") or []
    if not isinstance(nodes, list):
        raise GhBlobError("failed to decode response: nodes is not a list")
    return ArchivePage(
        organization=organization,
        page_info=PageInfo(
            has_next_page=_bool(page_info, "hasNextPage"),
            end_cursor=_str(page_info, "endCursor"),
        ),
        nodes=[parse_migration_archive(node) for node in nodes],
    )