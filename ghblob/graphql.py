"""Queries and mutations against the GitHub GraphQL API for migration archives."""

from __future__ import annotations

import json
from typing import Any, Iterator, Mapping

import requests

from .clients import github_client_from_env
from .logger import get_logger
from .models import (
    ArchivePage,
    GhBlobError,
    GraphQLError,
    MigrationArchive,
    OrgInfo,
    parse_archive_page,
    parse_migration_archive,
    parse_org_info,
)

GRAPHQL_URL = "https://api.github.com/graphql"
STORAGE_FEATURE = "octoshift_github_owned_storage"
DEFAULT_PAGE_SIZE = 50

QUERY_HEADERS = {"Accept": "application/json"}
STORAGE_QUERY_HEADERS = {"Accept": "application/json", "GraphQL-Features": STORAGE_FEATURE}
MUTATION_HEADERS = {
    "Accept": "application/vnd.github.v3+json",
    "GraphQL-Features": STORAGE_FEATURE,
}

ORG_QUERY = (
    "query GetOrganization($login:String!)"
    "{organization(login: $login){login,id,name,databaseId}}"
)

BLOB_QUERY = (
    "query QueryBlob($id:ID!)"
    "{node(id: $id){... on MigrationArchive{id,guid,name,size,uri,createdAt}}}"
)

ALL_BLOBS_QUERY = (
    "query AllBlobs($endCursor:String$first:Int!$login:String!)"
    "{organization(login: $login){login,id,name,databaseId,"
    "migrationArchives(first: $first, after: $endCursor)"
    "{pageInfo{hasNextPage,endCursor},nodes{guid,id,name,size,uri,createdAt}}}}"
)

DELETE_MUTATION = """
mutation deleteMigrationArchive(
    $migrationArchiveId: ID!
    ) {
    deleteMigrationArchive(
        input: {
        migrationArchiveId: $migrationArchiveId
        }
    ) {
        migrationArchive {
        id
        guid
        name
        size
        uri
        createdAt
        }
    }
}"""


class GraphQLClient:
    """Sends GraphQL documents to GitHub over an authenticated session."""

    def __init__(
        self,
        session: requests.Session | None = None,
        *,
        url: str = GRAPHQL_URL,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> None:
        if session is None:
            try:
                session = github_client_from_env().authenticate()
            except GhBlobError as exc:
                raise GhBlobError(f"failed to create GitHub client: {exc}") from exc
        self.session = session
        self.url = url
        self.headers = dict(QUERY_HEADERS if headers is None else headers)
        self.timeout = timeout

    def query(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
        operation_name: str | None = None,
    ) -> dict[str, Any]:
        """Run a document and return its ``data`` object; raise on any error."""
        payload: dict[str, Any] = {"query": query, "variables": dict(variables or {})}
        if operation_name:
            payload["operationName"] = operation_name
        headers = {"Content-Type": "application/json", **self.headers}
        try:
            response = self.session.post(
                self.url, data=json.dumps(payload), headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise GhBlobError(f"failed to make GraphQL request: {exc}") from exc

        if response.status_code != 200:
            raise GhBlobError(
                f"unexpected response status: {response.status_code}, body: {response.text}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise GhBlobError(f"failed to decode response: {exc}") from exc
        if not isinstance(body, dict):
            raise GhBlobError("failed to decode response: body is not an object")

        errors = body.get("errors") or []
        if errors:
            messages = [
                str(error.get("message", "")) if isinstance(error, dict) else str(error)
                for error in errors
            ]
            raise GraphQLError("GraphQL error: " + "; ".join(messages))

        data = body.get("data") or {}
        if not isinstance(data, dict):
            raise GhBlobError("failed to decode response: data is not an object")
        return data


def _client(client: GraphQLClient | None, headers: Mapping[str, str]) -> GraphQLClient:
    return client if client is not None else GraphQLClient(headers=headers)


def _run(
    client: GraphQLClient, query: str, variables: Mapping[str, Any], operation_name: str
) -> dict[str, Any]:
    try:
        return client.query(query, variables, operation_name)
    except GhBlobError as exc:
        raise exc.__class__(f"failed to query GitHub API: {exc}") from exc


def _log_archive(archive: MigrationArchive) -> None:
    log = get_logger()
    log.info("Blob ID: " + archive.id)
    log.info("Blob GUID: " + archive.guid)
    log.info("Blob Name: " + archive.name)
    log.info(f"Blob Size: {archive.size}")
    log.info("Blob URI: " + archive.uri)
    log.info("Blob Created At: " + archive.created_at)


def get_org_info(org_name: str, client: GraphQLClient | None = None) -> OrgInfo:
    """Look up an organisation by login."""
    gql = _client(client, QUERY_HEADERS)
    data = _run(gql, ORG_QUERY, {"login": org_name}, "GetOrganization")
    return parse_org_info(data.get("organization"))


def query_blob(blob_id: str, client: GraphQLClient | None = None) -> MigrationArchive:
    """Fetch a single migration archive by node ID and log its details."""
    gql = _client(client, STORAGE_QUERY_HEADERS)
    data = _run(gql, BLOB_QUERY, {"id": blob_id}, "QueryBlob")
    archive = parse_migration_archive(data.get("node"))
    _log_archive(archive)
    return archive


def iter_blob_pages(
    org_name: str,
    client: GraphQLClient | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Iterator[ArchivePage]:
    """Yield every page of an organisation's migration archives in order."""
    gql = _client(client, STORAGE_QUERY_HEADERS)
    variables: dict[str, Any] = {"login": org_name, "first": page_size, "endCursor": None}
    while True:
        data = _run(gql, ALL_BLOBS_QUERY, variables, "AllBlobs")
        page = parse_archive_page(data.get("organization"))
        yield page
        if not page.page_info.has_next_page:
            return
        variables["endCursor"] = page.page_info.end_cursor


def query_all_blobs(
    org_name: str, client: GraphQLClient | None = None
) -> list[MigrationArchive]:
    """Fetch and log all migration archives of an organisation."""
    log = get_logger()
    archives: list[MigrationArchive] = []
    for number, page in enumerate(iter_blob_pages(org_name, client), start=1):
        log.info(f"Page: {number}")
        for archive in page.nodes:
            _log_archive(archive)
            log.info("==========================")
        archives.extend(page.nodes)
    log.info(f"Total blobs: {len(archives)}")
    return archives


def delete_blob(blob_id: str, client: GraphQLClient | None = None) -> MigrationArchive:
    """Delete a migration archive and return what the API reports about it."""
    get_logger().info("Deleting blob from GitHub", extra={"fields": {"id": blob_id}})
    gql = _client(client, MUTATION_HEADERS)
    data = gql.query(
        DELETE_MUTATION, {"migrationArchiveId": blob_id}, "deleteMigrationArchive"
    )
    result = data.get("deleteMigrationArchive") or {}
    if not isinstance(result, dict):
        raise GhBlobError("failed to decode response: deleteMigrationArchive is not an object")
    return parse_migration_archive(result.get("migrationArchive"))