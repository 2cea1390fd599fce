"""Raw document content download and upload."""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

from accountable_drive.drive.client import DRIVE_API, UPLOAD_API, DriveClient
from accountable_drive.drive.folder import FolderResolver
from accountable_drive.drive.models import (
    FIELD_MIME_TYPE,
    FIELD_NAME,
    FIELD_PARENTS,
    FILE_FIELDS,
    JSON_MIME_TYPE,
    FileMetadata,
    parse_file_metadata,
)

logger = logging.getLogger(__name__)

BOUNDARY_PREFIX = "accountable_"


def encode_multipart_related(
    metadata: dict[str, Any], content: bytes, content_type: str = JSON_MIME_TYPE
) -> tuple[bytes, str]:
    """Encode a Drive multipart upload body.

    The boundary is random and is regenerated until its delimiter occurs
    in neither part.

    Args:
        metadata: File resource metadata for the first part.
        content: Raw document bytes for the second part.
        content_type: MIME type of the content part.

    Returns:
        (body, Content-Type header value)
    """
    meta = json.dumps(metadata).encode("utf-8")
    while True:
        boundary = f"{BOUNDARY_PREFIX}{uuid.uuid4().hex}"
        delimiter = f"--{boundary}".encode("ascii")
        if delimiter not in meta and delimiter not in content:
            break

    body = b"".join(
        [
            delimiter + b"\r\n",
            b"Content-Type: application/json; charset=UTF-8\r\n\r\n",
            meta + b"\r\n",
            delimiter + b"\r\n",
            f"Content-Type: {content_type}\r\n\r\n".encode("ascii"),
            content + b"\r\n",
            delimiter + b"--",
        ]
    )
    return body, f"multipart/related; boundary={boundary}"


class ContentTransfer:
    """Moves document bytes between the session and Drive."""

    def __init__(self, drive_client: DriveClient, folder_resolver: FolderResolver) -> None:
        self._drive = drive_client
        self._folders = folder_resolver

    async def download(self, file_id: str) -> str:
        """Download a document's content as text.

        Raises:
            DriveTransferError: On a non-success HTTP status.
        """
        raw = await self._drive.request_media(
            f"{DRIVE_API}/files/{file_id}", params={"alt": "media"}
        )
        logger.info("[download] downloaded content; id:%s;bytes:%d", file_id, len(raw))
        return raw.decode("utf-8")

    async def upload(self, name: str, content: str, existing_id: str | None = None) -> FileMetadata:
        """Upload a document.

        With ``existing_id`` only that file's content is replaced; its
        metadata is untouched. Otherwise a new file named ``name`` is created
        inside the application folder.

        Args:
            name: Document name for a new file.
            content: Document text.
            existing_id: Id of a file whose content should be replaced.

        Returns:
            Metadata of the written file.

        Raises:
            DriveTransferError: On a non-success HTTP status.
            DriveApiError: If Drive reports an error object in the response.
        """
        data = content.encode("utf-8")
        if existing_id:
            response = await self._drive.request_json(
                "PATCH",
                f"{UPLOAD_API}/files/{existing_id}",
                params={"uploadType": "media", "fields": FILE_FIELDS},
                data=data,
                content_type=JSON_MIME_TYPE,
                transfer=True,
            )
            logger.info("[upload] replaced content; id:%s;bytes:%d", existing_id, len(data))
            return parse_file_metadata(response)

        folder_id = await self._folders.ensure_folder()
        metadata = {FIELD_NAME: name, FIELD_PARENTS: [folder_id], FIELD_MIME_TYPE: JSON_MIME_TYPE}
        body, content_type = encode_multipart_related(metadata, data)
        response = await self._drive.request_json(
            "POST",
            f"{UPLOAD_API}/files",
            params={"uploadType": "multipart", "fields": FILE_FIELDS},
            data=body,
            content_type=content_type,
            transfer=True,
        )
        created = parse_file_metadata(response)
        logger.info("[upload] created file; name:%s;id:%s;bytes:%d", name, created.id, len(data))
        return created
