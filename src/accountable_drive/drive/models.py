"""Data models and constants for Google Drive v3 file resources."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

# Drive API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_MODIFIED_TIME = "modifiedTime"
FIELD_SIZE = "size"
FIELD_FILES = "files"
FIELD_MIME_TYPE = "mimeType"
FIELD_PARENTS = "parents"
FIELD_NEXT_PAGE_TOKEN = "nextPageToken"

# Partial-response selectors
FILE_FIELDS = "id,name,modifiedTime,size"
LIST_FIELDS = f"nextPageToken,files({FILE_FIELDS})"

# MIME types
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
JSON_MIME_TYPE = "application/json"


@dataclass(frozen=True)
class FileMetadata:
    """A single remote document candidate inside the application folder."""

    id: str
    name: str
    modified_time: str = ""
    size: int | None = None

    @property
    def modified_date(self) -> str:
        """UTC calendar date (YYYY-MM-DD) of the last modification."""
        return parse_drive_time(self.modified_time).date().isoformat()

    @property
    def size_kb(self) -> float | None:
        """Size in kilobytes rounded to one decimal, or None if unknown."""
        if self.size is None:
            return None
        return round(self.size / 1024, 1)


def parse_drive_time(value: str) -> datetime:
    """Parse an RFC 3339 Drive timestamp (e.g. 2024-01-02T10:00:00.000Z) as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_file_metadata(raw: dict[str, Any]) -> FileMetadata:
    """Map a raw Drive file resource to a FileMetadata dataclass."""
    size = raw.get(FIELD_SIZE)
    return FileMetadata(
        id=raw.get(FIELD_ID, ""),
        name=raw.get(FIELD_NAME, ""),
        modified_time=raw.get(FIELD_MODIFIED_TIME, ""),
        size=int(size) if size is not None else None,
    )


def quote_query_value(value: str) -> str:
    """Escape a string literal for use inside a Drive ``q`` expression."""
    return value.replace("\\", "\\\\").replace("'", "\\'")
