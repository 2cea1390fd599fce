"""Silent, best-effort load of the default document at startup."""

from __future__ import annotations

import logging

from accountable_drive.auth.token import TokenManager, TokenStatus
from accountable_drive.document.store import LedgerDocument
from accountable_drive.drive.catalog import FileCatalog
from accountable_drive.drive.folder import FolderResolver
from accountable_drive.drive.transfer import ContentTransfer
from accountable_drive.hooks import AppHooks, Severity

logger = logging.getLogger(__name__)


class AutoLoadAgent:
    """Loads the default document once, without ever prompting or erroring.

    Users who have not yet granted access must not see Drive errors, so
    every failure here is logged and otherwise ignored.
    """

    def __init__(
        self,
        token_manager: TokenManager,
        folder_resolver: FolderResolver,
        catalog: FileCatalog,
        transfer: ContentTransfer,
        document: LedgerDocument,
        hooks: AppHooks | None = None,
        document_name: str = "data.json",
    ) -> None:
        self._tokens = token_manager
        self._folders = folder_resolver
        self._catalog = catalog
        self._transfer = transfer
        self._document = document
        self._hooks = hooks or AppHooks()
        self._document_name = document_name
        self._has_run = False

    @property
    def has_run(self) -> bool:
        return self._has_run

    async def run(self) -> bool:
        """Attempt the silent load.

        Returns:
            True if the document was replaced with the remote copy.
        """
        if self._has_run:
            logger.debug("[run] auto-load already attempted")
            return False
        if self._tokens.status is not TokenStatus.READY:
            logger.info(
                "[run] skipping auto-load; token manager not ready; status:%s",
                self._tokens.status.value,
            )
            return False
        self._has_run = True

        try:
            if not await self._tokens.request_silent_token():
                logger.info("[run] no prior consent; skipping auto-load")
                return False
            await self._folders.ensure_folder()
            match = await self._catalog.find(self._document_name)
            if match is None:
                logger.info("[run] no remote document; name:%s", self._document_name)
                return False
            content = await self._transfer.download(match.id)
            self._document.load_from_string(content, match.name)
        except Exception:
            logger.warning("[run] auto-load failed", exc_info=True)
            return False

        self._hooks.mark_saved()
        self._hooks.refresh()
        self._hooks.notify(f"Auto-loaded {self._document_name} from Google Drive", Severity.INFO)
        return True
