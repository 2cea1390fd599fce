"""In-memory ledger document that Drive content is read from and written into."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

FIELD_FILE_NAME = "fileName"
FIELD_CATEGORIES = "categories"


class DocumentParseError(ValueError):
    """Raised when retrieved content is not a valid ledger document."""


class LedgerDocument:
    """The single JSON ledger held by the session.

    Attributes:
        data: Parsed ledger object. The document name is kept under
            ``fileName`` so it survives a round trip through Drive.
        saved: Whether the in-memory state matches the last persisted copy.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self.data: dict[str, Any] = data if data is not None else {FIELD_CATEGORIES: {}}
        self.saved = False

    @property
    def file_name(self) -> str | None:
        return self.data.get(FIELD_FILE_NAME)

    @file_name.setter
    def file_name(self, name: str) -> None:
        self.data[FIELD_FILE_NAME] = name

    @staticmethod
    def parse(content: str) -> dict[str, Any]:
        """Parse ledger content, raising DocumentParseError if it is not a JSON object."""
        try:
            parsed = json.loads(content)
        except json.JSONDecodeError as exc:
            raise DocumentParseError(f"Invalid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise DocumentParseError("Ledger document must be a JSON object")
        return parsed

    def load_from_string(self, content: str, name: str) -> None:
        """Replace the document with parsed ``content`` named ``name``.

        The current document is left untouched when parsing fails.
        """
        parsed = self.parse(content)
        parsed[FIELD_FILE_NAME] = name
        parsed.setdefault(FIELD_CATEGORIES, {})
        self.data = parsed
        self.saved = True
        logger.info("[load_from_string] loaded document; name:%s", name)

    def mark_saved(self) -> None:
        self.saved = True

    def to_json(self, name: str | None = None) -> str:
        """Serialize the document, optionally recording a different file name."""
        data = self.data if name is None else {**self.data, FIELD_FILE_NAME: name}
        return json.dumps(data, indent=2)

    @classmethod
    def from_path(cls, path: Path) -> LedgerDocument:
        """Read a local ledger file; the file name defaults to the path's name."""
        document = cls(cls.parse(path.read_text(encoding="utf-8")))
        if not document.file_name:
            document.file_name = path.name
        document.data.setdefault(FIELD_CATEGORIES, {})
        return document

    def write_to(self, path: Path) -> None:
        path.write_text(self.to_json() + "\n", encoding="utf-8")
