"""Save-with-optional-backup protocol over the application folder."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass

from accountable_drive.drive.catalog import FileCatalog
from accountable_drive.drive.folder import FolderResolver
from accountable_drive.drive.transfer import ContentTransfer

logger = logging.getLogger(__name__)

_JSON_SUFFIX = re.compile(r"\.json$", re.IGNORECASE)


class SaveOutcome(enum.Enum):
    CREATED = "created"
    OVERWRITTEN = "overwritten"
    BACKED_UP = "backed_up"


@dataclass
class SaveResult:
    """What a save did.

    Attributes:
        outcome: Which of the three save paths ran.
        file_id: Id of the file now named ``name``.
        name: Document name that was saved.
        backup_name: New name of the previous file (BACKED_UP only).
        backup_id: Id of the previous file (BACKED_UP only).
    """

    outcome: SaveOutcome
    file_id: str
    name: str
    backup_name: str | None = None
    backup_id: str | None = None


def backup_name(name: str, modified_date: str) -> str:
    """Return ``<base>_<YYYY-MM-DD>.json`` for a document last modified on ``modified_date``."""
    base = _JSON_SUFFIX.sub("", name)
    return f"{base}_{modified_date}.json"


class SaveConflictResolver:
    """Writes a document, optionally preserving a same-named predecessor."""

    def __init__(
        self,
        folder_resolver: FolderResolver,
        catalog: FileCatalog,
        transfer: ContentTransfer,
    ) -> None:
        self._folders = folder_resolver
        self._catalog = catalog
        self._transfer = transfer

    async def save(self, name: str, content: str, rename_existing: bool = False) -> SaveResult:
        """Save ``content`` under ``name`` in the application folder.

        Three paths:
            1. No file named ``name`` exists: upload a new file.
            2. One exists and ``rename_existing`` is False: replace its content
               in place, keeping its id.
            3. One exists and ``rename_existing`` is True: rename it to
               ``<base>_<date of its last modification>.json`` and upload the
               content as a new file under ``name``.

        Afterwards exactly one file named ``name`` holds ``content``.

        Args:
            name: Exact document name.
            content: Serialized document.
            rename_existing: Keep the previous file as a dated backup.

        Returns:
            SaveResult describing the path taken.
        """
        await self._folders.ensure_folder()
        existing = await self._catalog.find(name)

        if existing is None:
            created = await self._transfer.upload(name, content)
            logger.info("[save] created new document; name:%s;id:%s", name, created.id)
            return SaveResult(SaveOutcome.CREATED, created.id, name)

        if not rename_existing:
            await self._transfer.upload(name, content, existing.id)
            logger.info("[save] overwrote document in place; name:%s;id:%s", name, existing.id)
            return SaveResult(SaveOutcome.OVERWRITTEN, existing.id, name)

        current = await self._catalog.get_metadata(existing.id)
        renamed_to = backup_name(name, current.modified_date)
        await self._catalog.rename(existing.id, renamed_to)
        created = await self._transfer.upload(name, content)
        logger.info(
            "[save] backed up previous document; name:%s;backup:%s;backup_id:%s;id:%s",
            name,
            renamed_to,
            existing.id,
            created.id,
        )
        return SaveResult(
            SaveOutcome.BACKED_UP,
            created.id,
            name,
            backup_name=renamed_to,
            backup_id=existing.id,
        )
