"""Listing and metadata operations on documents in the application folder."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from accountable_drive.drive.client import DRIVE_API, DriveClient
from accountable_drive.drive.folder import FolderResolver
from accountable_drive.drive.models import (
    FIELD_FILES,
    FIELD_NAME,
    FIELD_NEXT_PAGE_TOKEN,
    FILE_FIELDS,
    LIST_FIELDS,
    FileMetadata,
    parse_file_metadata,
    quote_query_value,
)

if TYPE_CHECKING:
    from accountable_drive.config import AppConfig

logger = logging.getLogger(__name__)


class FileCatalog:
    """Queries the application folder for ledger documents.

    Results are never cached; every call goes to Drive.
    """

    def __init__(
        self,
        drive_client: DriveClient,
        folder_resolver: FolderResolver,
        document_marker: str = ".json",
    ) -> None:
        """Initialise the catalog.

        Args:
            drive_client: Authenticated Drive transport.
            folder_resolver: Resolves the folder the documents live in.
            document_marker: Fragment every document name contains.
        """
        self._drive = drive_client
        self._folders = folder_resolver
        self._document_marker = document_marker

    async def _query(self, query: str) -> list[FileMetadata]:
        """Run a files.list query, following nextPageToken until the last page."""
        params = {"q": query, "fields": LIST_FIELDS, "orderBy": "modifiedTime desc"}
        files: list[FileMetadata] = []
        pages = 0
        while True:
            data = await self._drive.request_json("GET", f"{DRIVE_API}/files", params=params)
            pages += 1
            files.extend(parse_file_metadata(raw) for raw in data.get(FIELD_FILES) or [])
            page_token = data.get(FIELD_NEXT_PAGE_TOKEN)
            if not page_token:
                break
            params = {**params, "pageToken": page_token}
        logger.debug("[_query] files.list complete; pages:%d;count:%d", pages, len(files))
        return files

    async def list_files(self) -> list[FileMetadata]:
        """List non-trashed documents in the folder, most recently modified first."""
        folder_id = await self._folders.ensure_folder()
        files = await self._query(
            f"'{quote_query_value(folder_id)}' in parents"
            f" and name contains '{quote_query_value(self._document_marker)}'"
            " and trashed=false"
        )
        logger.info("[list_files] listed documents; folder_id:%s;count:%d", folder_id, len(files))
        return files

    async def find(self, name: str) -> FileMetadata | None:
        """Return the most recent file in the folder named exactly ``name``.

        Queries by name rather than filtering the document listing, so names
        without the document marker are found too.
        """
        folder_id = await self._folders.ensure_folder()
        matches = await self._query(
            f"name='{quote_query_value(name)}'"
            f" and '{quote_query_value(folder_id)}' in parents"
            " and trashed=false"
        )
        exact = [entry for entry in matches if entry.name == name]
        return exact[0] if exact else None

    async def get_metadata(self, file_id: str) -> FileMetadata:
        """Fetch fresh metadata (including modifiedTime) for one file."""
        data = await self._drive.request_json(
            "GET",
            f"{DRIVE_API}/files/{file_id}",
            params={"fields": FILE_FIELDS},
        )
        return parse_file_metadata(data)

    async def rename(self, file_id: str, new_name: str) -> FileMetadata:
        """Change a file's name without touching its content."""
        data = await self._drive.request_json(
            "PATCH",
            f"{DRIVE_API}/files/{file_id}",
            params={"fields": FILE_FIELDS},
            body={FIELD_NAME: new_name},
        )
        logger.info("[rename] renamed file; id:%s;name:%s", file_id, new_name)
        return parse_file_metadata(data)


def file_catalog_from_config(
    drive_client: DriveClient, folder_resolver: FolderResolver, config: AppConfig
) -> FileCatalog:
    """Construct a FileCatalog from application configuration."""
    return FileCatalog(drive_client, folder_resolver, document_marker=config.document_marker)
