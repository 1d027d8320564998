# ghblob

A command-line tool for managing migration archive blobs in GitHub-owned
storage for an organization. You can upload an archive, list every archive
an organization holds, look up a single archive and delete one.

## Installation

```
pip install .
```

## Configuration

You need a GitHub token with access to the organization. Set it in the
environment before you run any command:

```
export GITHUB_TOKEN=token
```

The tool logs an error and exits with status 1 if `GITHUB_TOKEN` is not
set or is empty.

## Usage

Upload an archive. Files smaller than 5000 MiB go up in one request.
Larger files are sent in 100 MiB parts and then finalized:

```
gh-blob upload --org my-org --archive-file-path /path/to/archive.tar.gz
```

The organization is looked up first to find its database ID. When the
upload finishes, the tool logs the archive's node ID and its URI. For a
multipart upload the node ID is reported as `Not available` and the URI
is `gei://archive/<guid>`.

List all archives of an organization, 50 per page, with a total at the end:

```
gh-blob query-all --org my-org
```

Show a single archive by its node ID:

```
gh-blob query --id <blob-id>
```

Delete an archive:

```
gh-blob delete --id <blob-id>
```

Output goes to standard output as colored, tab-separated log lines that
carry a timestamp, a level and the calling file and line. On failure the
tool prints `Error:` followed by the reason and exits with status 1.

## Using it from Python

The same operations are available as functions. Called without a client
they authenticate with `GITHUB_TOKEN` from the environment:

```python
from ghblob.graphql import query_all_blobs, query_blob
from ghblob.logger import init_logger

init_logger()  # optional: show the coloured log lines
archives = query_all_blobs("my-org")
archive = query_blob(archives[0].id)
```

To supply a session yourself, build a `GraphQLClient` from one:

```python
from ghblob.clients import GitHubClient
from ghblob.graphql import STORAGE_QUERY_HEADERS, GraphQLClient, iter_blob_pages

session = GitHubClient("token").authenticate()
client = GraphQLClient(session, headers=STORAGE_QUERY_HEADERS)
for page in iter_blob_pages("my-org", client):
    print([archive.name for archive in page.nodes])
```

- `ghblob.graphql`: `get_org_info`, `query_blob`, `iter_blob_pages`,
  `query_all_blobs` and `delete_blob`.
- `ghblob.upload`: `upload_archive` picks `simple_upload` or
  `multipart_upload` by file size; `parse_upload_location` extracts the
  GUID and upload ID from an upload `Location` header.
- `ghblob.models`: the result types (`MigrationArchive`, `OrgInfo`,
  `ArchivePage`, `UploadArchiveResponse`) and their parsers.

Failures raise `ghblob.models.GhBlobError`; errors reported by the GraphQL
API raise its subclass `GraphQLError`.

## Limitations

The tool does not download archive contents, and it does not retry or
resume an interrupted upload. `ghblob.clients.GitLabClient` can build an
authenticated session, but no command talks to GitLab.

## Development

```
pip install -e ".[test]"
pytest
```