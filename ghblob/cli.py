"""Command line entry point: upload, query and delete migration archives."""

from __future__ import annotations

import argparse
import os
from pathlib import Path
from typing import Callable, Mapping, Sequence

from .graphql import delete_blob, get_org_info, query_all_blobs, query_blob
from .logger import get_logger, init_logger
from .models import GhBlobError, UploadArchiveInput
from .upload import upload_archive

REQUIRED_ENVIRONMENT = ("GITHUB_TOKEN",)
CREDENTIALS_NOTE = "GitHub credentials must be configured via environment variables."


def check_environment(environ: Mapping[str, str] | None = None) -> list[str]:
    """Return the names of required environment variables that are unset or empty."""
    env = os.environ if environ is None else environ
    return [name for name in REQUIRED_ENVIRONMENT if not env.get(name)]


def _upload(args: argparse.Namespace) -> None:
    log = get_logger()
    log.info("Reading input values for uploading blob to GitHub")
    path = Path(args.archive_file_path)
    if not path.exists():
        raise GhBlobError(f"file does not exist: {args.archive_file_path}")

    try:
        org = get_org_info(args.org)
    except GhBlobError as exc:
        raise GhBlobError(f"failed to fetch organization information: {exc}") from exc

    archive = UploadArchiveInput(
        archive_file_path=path, organization_id=str(org.database_id)
    )
    try:
        result = upload_archive(archive)
    except GhBlobError as exc:
        log.error("failed to upload to GitHub storage", extra={"fields": {"error": str(exc)}})
        raise GhBlobError(f"failed to upload to GitHub storage: {exc}") from exc
    log.info("Uploaded archive to GitHub storage successfully")
    log.info("ID: " + result.node_id)
    log.info("URL: " + result.uri)


def _delete(args: argparse.Namespace) -> None:
    log = get_logger()
    log.info("Reading input values for deleting blob from GitHub")
    if not args.id:
        raise GhBlobError("ID is required")
    try:
        delete_blob(args.id)
    except GhBlobError as exc:
        log.error("failed to delete blob from GitHub", extra={"fields": {"error": str(exc)}})
        raise GhBlobError(f"failed to delete blob from GitHub: {exc}") from exc
    log.info("Deleted blob from GitHub successfully")


def _query_all(args: argparse.Namespace) -> None:
    log = get_logger()
    log.info("Reading input values for querying all blobs from GitHub")
    if not args.org:
        raise GhBlobError("organization is required")
    try:
        query_all_blobs(args.org)
    except GhBlobError as exc:
        log.error("failed to query blobs from GitHub", extra={"fields": {"error": str(exc)}})
        raise GhBlobError(f"failed to query blobs from GitHub: {exc}") from exc
    log.info("Queried blobs from GitHub successfully")


def _query(args: argparse.Namespace) -> None:
    log = get_logger()
    log.info("Reading input values for querying blob from GitHub")
    if not args.id:
        raise GhBlobError("ID is required")
    try:
        query_blob(args.id)
    except GhBlobError as exc:
        log.error("failed to query blob from GitHub", extra={"fields": {"error": str(exc)}})
        raise GhBlobError(f"failed to query blob from GitHub: {exc}") from exc
    log.info("Queried blob from GitHub successfully")


def _add_command(
    subparsers: argparse._SubParsersAction,
    name: str,
    summary: str,
    example: str,
    handler: Callable[[argparse.Namespace], None],
) -> argparse.ArgumentParser:
    parser = subparsers.add_parser(
        name,
        help=summary,
        description=f"{summary}.\n{CREDENTIALS_NOTE}",
        epilog=f"example: {example}",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.set_defaults(handler=handler)
    return parser


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with its four sub-commands."""
    parser = argparse.ArgumentParser(prog="gh blob", description="GitHub GitLab Migration Tool")
    subparsers = parser.add_subparsers(dest="command", metavar="command")

    upload = _add_command(
        subparsers,
        "upload",
        "Upload a blob to GitHub",
        "gh blob upload --org my-org --archive-file-path /path/to/archive",
        _upload,
    )
    upload.add_argument("--org", required=True, help="Owner of the repository")
    upload.add_argument(
        "--archive-file-path", dest="archive_file_path", required=True, help="Path to the blob"
    )

    query_all = _add_command(
        subparsers,
        "query-all",
        "Query all blobs from GitHub",
        "gh blob query-all --org my-org",
        _query_all,
    )
    query_all.add_argument("--org", required=True, help="Owner of the repository")

    query = _add_command(
        subparsers, "query", "Query a blob from GitHub", "gh blob query --id <blob-id>", _query
    )
    query.add_argument("--id", required=True, help="ID of the blob to query")

    delete = _add_command(
        subparsers, "delete", "Delete a blob from GitHub", "gh blob delete --id <blob-id>", _delete
    )
    delete.add_argument("--id", required=True, help="ID of the blob to delete")

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the tool and return its exit status."""
    log = init_logger()
    missing = check_environment()
    if missing:
        log.error(
            "Missing required environment variables", extra={"fields": {"missing": missing}}
        )
        return 1

    parser = build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, "handler", None)
    if handler is None:
        parser.print_help()
        return 0
    try:
        handler(args)
    except GhBlobError as exc:
        print("Error:", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())