"""Session entrypoints: startup, open from Drive and save to Drive."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from accountable_drive.auth.token import (
    AuthError,
    TokenManager,
    TokenStatus,
    token_manager_from_config,
)
from accountable_drive.document.store import LedgerDocument
from accountable_drive.drive.catalog import FileCatalog, file_catalog_from_config
from accountable_drive.drive.client import DriveClient
from accountable_drive.drive.folder import FolderResolver, folder_resolver_from_config
from accountable_drive.drive.models import FileMetadata
from accountable_drive.drive.transfer import ContentTransfer
from accountable_drive.hooks import AppHooks, Severity
from accountable_drive.orchestration.autoload import AutoLoadAgent
from accountable_drive.orchestration.save import SaveConflictResolver, SaveResult

if TYPE_CHECKING:
    from accountable_drive.config import AppConfig

logger = logging.getLogger(__name__)


class DriveSession:
    """Wires the Drive core to one in-memory document for one session.

    The open and save handlers may prompt for interactive consent, so the
    host must invoke them from a genuine user action.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        folder_resolver: FolderResolver,
        catalog: FileCatalog,
        transfer: ContentTransfer,
        document: LedgerDocument,
        hooks: AppHooks | None = None,
        default_document: str = "data.json",
    ) -> None:
        """Initialise the session.

        Args:
            token_manager: Owner of the session's access token.
            folder_resolver: Application folder resolver.
            catalog: Document catalog for the folder.
            transfer: Content download/upload.
            document: In-memory ledger the session reads from and writes into.
            hooks: Host-application hooks.
            default_document: Name used for auto-load and unnamed saves.
        """
        self._tokens = token_manager
        self._folders = folder_resolver
        self._catalog = catalog
        self._transfer = transfer
        self._document = document
        self._hooks = hooks or AppHooks()
        self._default_document = default_document
        self._saver = SaveConflictResolver(folder_resolver, catalog, transfer)
        self._autoload = AutoLoadAgent(
            token_manager,
            folder_resolver,
            catalog,
            transfer,
            document,
            hooks=self._hooks,
            document_name=default_document,
        )

    @property
    def document(self) -> LedgerDocument:
        return self._document

    @property
    def token_manager(self) -> TokenManager:
        return self._tokens

    async def startup(self) -> bool:
        """Initialise authentication, then try the silent auto-load once.

        Returns:
            True if the default document was loaded from Drive.
        """
        status = await self._tokens.initialize()
        if status is not TokenStatus.READY:
            return False
        return await self._autoload.run()

    async def list_remote(self) -> list[FileMetadata] | None:
        """List documents available to open, newest first.

        Returns:
            The documents, or None if the listing failed (already reported).
        """
        try:
            return await self._tokens.request_token(self._catalog.list_files)
        except AuthError:
            return None
        except Exception as exc:
            self._report("Error listing Drive files", exc)
            return None

    async def open_remote(self, file_id: str, name: str) -> bool:
        """Replace the in-memory document with a Drive file.

        Returns:
            True on success; failures are reported and leave the document as is.
        """
        try:
            content = await self._tokens.request_token(lambda: self._transfer.download(file_id))
            self._document.load_from_string(content, name)
        except AuthError:
            return False
        except Exception as exc:
            self._report("Error loading file", exc)
            return False

        self._hooks.mark_saved()
        self._hooks.refresh()
        self._hooks.show_filename(name)
        self._hooks.notify(f"Loaded {name} from Google Drive", Severity.INFO)
        return True

    async def open_by_name(self, name: str) -> bool:
        """Open the most recent document named exactly ``name``."""
        try:
            match = await self._tokens.request_token(lambda: self._catalog.find(name))
        except AuthError:
            return False
        except Exception as exc:
            self._report("Error listing Drive files", exc)
            return False
        if match is None:
            self._hooks.notify(f"No document named {name} found in Google Drive", Severity.ERROR)
            return False
        return await self.open_remote(match.id, match.name)

    async def save_remote(
        self, name: str | None = None, rename_existing: bool = False
    ) -> SaveResult | None:
        """Save the in-memory document to Drive.

        Args:
            name: Target document name; defaults to the document's own name,
                then to the default document name.
            rename_existing: Keep a same-named predecessor as a dated backup.

        Returns:
            SaveResult on success, None if the save failed (already reported).
        """
        name = (name or "").strip() or self._document.file_name or self._default_document
        content = self._document.to_json(name)

        try:
            result = await self._tokens.request_token(
                lambda: self._saver.save(name, content, rename_existing)
            )
        except AuthError:
            return None
        except Exception as exc:
            self._report("Error saving to Drive", exc)
            return None

        if result.backup_name:
            self._hooks.notify(f"Renamed old file to {result.backup_name}", Severity.INFO)
        self._document.file_name = name
        self._document.mark_saved()
        self._hooks.show_filename(name)
        self._hooks.mark_saved()
        self._hooks.notify(f"Saved {name} to Google Drive", Severity.INFO)
        return result

    def _report(self, prefix: str, exc: Exception) -> None:
        self._hooks.notify(f"{prefix}: {exc}", Severity.ERROR)
        logger.error("[_report] %s", prefix, exc_info=exc)


def drive_session_from_config(
    config: AppConfig,
    document: LedgerDocument | None = None,
    hooks: AppHooks | None = None,
) -> DriveSession:
    """Construct a DriveSession from application configuration.

    Creates the TokenManager, DriveClient and the folder, catalog and
    transfer components, then wires them into a DriveSession.

    Args:
        config: Application configuration instance.
        document: In-memory ledger; a fresh empty one when omitted.
        hooks: Host-application hooks.

    Returns:
        Configured DriveSession instance.
    """
    hooks = hooks or AppHooks()
    tokens = token_manager_from_config(config, hooks)
    client = DriveClient(tokens)
    folders = folder_resolver_from_config(client, config)
    return DriveSession(
        token_manager=tokens,
        folder_resolver=folders,
        catalog=file_catalog_from_config(client, folders, config),
        transfer=ContentTransfer(client, folders),
        document=document if document is not None else LedgerDocument(),
        hooks=hooks,
        default_document=config.default_document,
    )
