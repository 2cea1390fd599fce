"""Shared fixtures for orchestration tests: an in-memory Drive folder."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from accountable_drive.auth.token import AuthError, TokenStatus
from accountable_drive.drive.client import DriveTransferError
from accountable_drive.drive.models import FileMetadata

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeDrive:
    """In-memory stand-in for FolderResolver, FileCatalog and ContentTransfer.

    One instance plays all three roles so tests can inspect the folder
    contents after an operation. Every write bumps a fake clock so the
    listing order follows modification order.
    """

    def __init__(self) -> None:
        self.folder_id: str | None = None
        self.folder_calls = 0
        self.files: dict[str, dict[str, str]] = {}
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def _tick(self) -> str:
        moment = _EPOCH + timedelta(hours=next(self._clock))
        return moment.strftime("%Y-%m-%dT%H:%M:%S.000Z")

    def add(self, name: str, content: str, modified_time: str | None = None) -> str:
        file_id = f"file-{next(self._ids)}"
        self.files[file_id] = {
            "name": name,
            "content": content,
            "modifiedTime": modified_time or self._tick(),
        }
        return file_id

    def named(self, name: str) -> list[str]:
        return [fid for fid, entry in self.files.items() if entry["name"] == name]

    def _meta(self, file_id: str) -> FileMetadata:
        entry = self.files[file_id]
        return FileMetadata(
            id=file_id,
            name=entry["name"],
            modified_time=entry["modifiedTime"],
            size=len(entry["content"].encode("utf-8")),
        )

    # FolderResolver

    async def ensure_folder(self) -> str:
        self.folder_calls += 1
        if self.folder_id is None:
            self.folder_id = "folder-1"
        return self.folder_id

    # FileCatalog

    async def list_files(self) -> list[FileMetadata]:
        await self.ensure_folder()
        entries = [self._meta(fid) for fid, e in self.files.items() if ".json" in e["name"]]
        return sorted(entries, key=lambda m: m.modified_time, reverse=True)

    async def find(self, name: str) -> FileMetadata | None:
        await self.ensure_folder()
        matches = [self._meta(fid) for fid in self.named(name)]
        return max(matches, key=lambda m: m.modified_time, default=None)

    async def get_metadata(self, file_id: str) -> FileMetadata:
        return self._meta(file_id)

    async def rename(self, file_id: str, new_name: str) -> FileMetadata:
        self.files[file_id]["name"] = new_name
        return self._meta(file_id)

    # ContentTransfer

    async def download(self, file_id: str) -> str:
        if file_id not in self.files:
            raise DriveTransferError(404, "Not Found")
        return self.files[file_id]["content"]

    async def upload(self, name: str, content: str, existing_id: str | None = None) -> FileMetadata:
        if existing_id:
            self.files[existing_id]["content"] = content
            self.files[existing_id]["modifiedTime"] = self._tick()
            return self._meta(existing_id)
        await self.ensure_folder()
        return self._meta(self.add(name, content))


def _token_manager(
    status: TokenStatus = TokenStatus.AUTHENTICATED,
    silent: bool = True,
    consent_error: Exception | None = None,
) -> MagicMock:
    """Token manager double that runs actions directly once "authenticated"."""
    tokens = MagicMock()
    tokens.status = status

    async def request_token(action):
        if consent_error is not None:
            raise consent_error
        result = action()
        if hasattr(result, "__await__"):
            return await result
        return result

    async def initialize() -> TokenStatus:
        return tokens.status

    tokens.request_token = AsyncMock(side_effect=request_token)
    tokens.request_silent_token = AsyncMock(return_value=silent)
    tokens.initialize = AsyncMock(side_effect=initialize)
    return tokens


@pytest.fixture
def drive() -> FakeDrive:
    return FakeDrive()


@pytest.fixture
def make_tokens():
    """Factory fixture building token manager doubles."""
    return _token_manager


@pytest.fixture
def hooks() -> MagicMock:
    return MagicMock()


@pytest.fixture
def declined_consent() -> AuthError:
    return AuthError("Google Drive: access_denied")
