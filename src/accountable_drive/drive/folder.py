"""Memoized lookup and creation of the application's Drive folder."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from accountable_drive.drive.client import DRIVE_API, DriveApiError, DriveClient
from accountable_drive.drive.models import (
    FIELD_FILES,
    FIELD_ID,
    FIELD_MIME_TYPE,
    FIELD_NAME,
    FOLDER_MIME_TYPE,
    quote_query_value,
)

if TYPE_CHECKING:
    from accountable_drive.config import AppConfig

logger = logging.getLogger(__name__)


class FolderResolver:
    """Resolves the single application folder at most once per session.

    Two resolutions racing before the cache is populated can each create a
    folder; callers that need exactly one folder must not overlap first calls.
    """

    def __init__(self, drive_client: DriveClient, folder_name: str = "Accountable") -> None:
        self._drive = drive_client
        self._folder_name = folder_name
        self._folder_id: str | None = None

    @property
    def folder_id(self) -> str | None:
        return self._folder_id

    async def ensure_folder(self) -> str:
        """Return the folder id, looking it up or creating it on first use.

        Returns:
            Drive id of the non-trashed folder named ``folder_name``.

        Raises:
            DriveApiError: If Drive rejects the lookup or creation.
        """
        if self._folder_id:
            return self._folder_id

        query = (
            f"name='{quote_query_value(self._folder_name)}'"
            f" and mimeType='{FOLDER_MIME_TYPE}' and trashed=false"
        )
        data = await self._drive.request_json(
            "GET",
            f"{DRIVE_API}/files",
            params={"q": query, "fields": "files(id,name)"},
        )
        folders = data.get(FIELD_FILES) or []
        if folders:
            self._folder_id = folders[0][FIELD_ID]
            logger.info(
                "[ensure_folder] found folder; name:%s;id:%s", self._folder_name, self._folder_id
            )
            return self._folder_id

        created = await self._drive.request_json(
            "POST",
            f"{DRIVE_API}/files",
            params={"fields": "id"},
            body={FIELD_NAME: self._folder_name, FIELD_MIME_TYPE: FOLDER_MIME_TYPE},
        )
        if not created.get(FIELD_ID):
            raise DriveApiError(200, "Folder creation returned no id")
        self._folder_id = created[FIELD_ID]
        logger.info(
            "[ensure_folder] created folder; name:%s;id:%s", self._folder_name, self._folder_id
        )
        return self._folder_id


def folder_resolver_from_config(drive_client: DriveClient, config: AppConfig) -> FolderResolver:
    """Construct a FolderResolver from application configuration."""
    return FolderResolver(drive_client, folder_name=config.folder_name)
