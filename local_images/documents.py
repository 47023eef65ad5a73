"""Documents whose image references get localized."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .errors import DecodeError, StorageError

logger = logging.getLogger("local_images")


class TextDocument(Protocol):
    """Minimal view of an editable text document."""

    path: Path

    def get_text(self) -> str:
        ...

    def apply_text(self, new_text: str) -> None:
        ...


@dataclass
class FileDocument:
    """A UTF-8 Markdown file on disk.

    Line endings are kept as written, so offsets and rewritten text match
    the bytes on disk.
    """

    path: Path

    def __post_init__(self) -> None:
        self.path = Path(self.path).expanduser().resolve()

    def get_text(self) -> str:
        try:
            with open(self.path, encoding="utf-8", newline="") as handle:
                return handle.read()
        except UnicodeDecodeError as exc:
            raise DecodeError(f"Document {self.path} is not valid UTF-8: {exc}") from exc
        except OSError as exc:
            raise StorageError(f"Cannot read document {self.path}: {exc}") from exc

    def apply_text(self, new_text: str) -> None:
        try:
            with open(self.path, "w", encoding="utf-8", newline="") as handle:
                handle.write(new_text)
        except OSError as exc:
            raise StorageError(f"Cannot write document {self.path}: {exc}") from exc
        logger.debug("Saved %s", self.path)

    def splice(self, offset: int, length: int, text: str) -> None:
        """Replace ``length`` characters at ``offset`` with ``text``."""
        current = self.get_text()
        if not 0 <= offset <= len(current):
            raise ValueError(f"Offset {offset} is outside the document")
        self.apply_text(current[:offset] + text + current[offset + length :])
