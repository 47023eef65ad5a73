"""Rewrite document image references to point at locally stored files."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

from .config import PASTED_IMAGE_NAME, Settings
from .documents import TextDocument
from .errors import DecodeError, NetworkError, StorageError
from .fetcher import Fetcher, decode_data_uri
from .images import detect_extension, maybe_convert
from .markdown import (
    Replacement,
    apply_replacements,
    compose_image_link,
    find_image_references,
    local_targets,
)
from .models import (
    FAILED,
    REUSED,
    SKIPPED,
    WRITTEN,
    ImageReference,
    NamingDecision,
    ReferenceOutcome,
    RewriteResult,
)
from .naming import decide, display_path, resolve_media_dir
from .storage import ensure_directory, list_directory, remove_file, write_bytes
from .utils import is_url

logger = logging.getLogger("local_images")

_REFERENCE_ERRORS = (NetworkError, StorageError, DecodeError)


def _describe(target: str, limit: int = 80) -> str:
    return target if len(target) <= limit else target[:limit] + "..."


class ContentProcessor:
    """Materialize remote and embedded images of a document.

    One instance is one processing pipeline: its lock lets a single pass run
    at a time, so overlapping triggers (save and paste, say) never interleave
    downloads or writes.
    """

    def __init__(
        self,
        settings: Settings,
        fetcher: Optional[Fetcher] = None,
        clock: Optional[Callable[[], dt.date]] = None,
    ) -> None:
        self.settings = settings
        self.fetcher = fetcher or Fetcher(timeout=settings.request_timeout)
        self._clock = clock or dt.date.today
        self._lock = asyncio.Lock()

    def media_dir_for(self, document: TextDocument) -> Path:
        return resolve_media_dir(document.path, self.settings, self._clock())

    async def process_document(
        self,
        document: TextDocument,
        cancel: Optional[asyncio.Event] = None,
    ) -> str:
        """Return the document text with every remote image localized."""
        result = await self.rewrite_document(document, cancel=cancel)
        return result.content

    async def rewrite_document(
        self,
        document: TextDocument,
        cancel: Optional[asyncio.Event] = None,
        save: bool = False,
    ) -> RewriteResult:
        """Run one guarded pass over ``document``; write it back when ``save`` is set."""
        async with self._lock:
            content = document.get_text()
            if not content:
                return RewriteResult(original=content, content=content)
            result = await self.process_content(content, document, cancel=cancel)
            if save and result.changed:
                document.apply_text(result.content)
                logger.info("Updated %s", document.path)
            return result

    async def process_content(
        self,
        content: str,
        document: TextDocument,
        cancel: Optional[asyncio.Event] = None,
    ) -> RewriteResult:
        """Rewrite ``content`` and report what happened to each reference.

        Failures are confined to the reference that caused them; only a
        media directory that cannot be created aborts the pass.
        """
        media_dir = self.media_dir_for(document)
        await ensure_directory(media_dir)

        result = RewriteResult(original=content, content=content)
        replacements: List[Replacement] = []
        seen: Dict[str, ReferenceOutcome] = {}

        for ref in find_image_references(content):
            if not is_url(ref.target):
                continue
            if cancel is not None and cancel.is_set():
                logger.info("Rewrite of %s cancelled; content left unchanged", document.path)
                result.content = content
                return result

            previous = seen.get(ref.target)
            if previous is not None:
                status = REUSED if previous.status == WRITTEN else previous.status
                outcome = ReferenceOutcome(ref, status, previous.path, previous.reason)
            else:
                outcome = await self._materialize(ref, media_dir)
                seen[ref.target] = outcome
            result.outcomes.append(outcome)

            if outcome.status in (WRITTEN, REUSED) and outcome.path is not None:
                shown = display_path(document.path, outcome.path, self.settings)
                replacements.append(
                    (ref, compose_image_link(ref.alt_text, shown, self.settings.use_captions))
                )

        result.content = apply_replacements(content, replacements)
        logger.debug(
            "Processed %s: %d written, %d reused, %d skipped, %d failed",
            document.path,
            result.count(WRITTEN),
            result.count(REUSED),
            result.count(SKIPPED),
            result.count(FAILED),
        )
        return result

    async def _materialize(self, ref: ImageReference, media_dir: Path) -> ReferenceOutcome:
        target = ref.target
        try:
            data = await asyncio.to_thread(self.fetcher.fetch, target)
        except _REFERENCE_ERRORS as exc:
            logger.warning("Failed to fetch image %s: %s", _describe(target), exc)
            return ReferenceOutcome(ref, FAILED, reason=str(exc))

        size_kb = len(data) / 1024
        if size_kb < self.settings.filesize_floor_kb:
            logger.debug(
                "Skipping %s: %.1f KiB is below the %s KiB floor",
                _describe(target),
                size_kb,
                self.settings.filesize_floor_kb,
            )
            return ReferenceOutcome(ref, SKIPPED, reason="below size floor")

        try:
            ext = detect_extension(data, target)
            data, _ = await asyncio.to_thread(maybe_convert, data, ext, self.settings)
            decision = await self._store(media_dir, target, data)
        except _REFERENCE_ERRORS as exc:
            logger.warning("Image processing failed for %s: %s", _describe(target), exc)
            return ReferenceOutcome(ref, FAILED, reason=str(exc))

        if decision.skipped:
            return ReferenceOutcome(ref, SKIPPED, reason="unsupported type")
        status = WRITTEN if decision.must_write else REUSED
        return ReferenceOutcome(ref, status, decision.path)

    async def _store(self, media_dir: Path, target: str, data: bytes) -> NamingDecision:
        decision = await decide(media_dir, target, data, self.settings)
        if decision.must_write and decision.path is not None:
            await write_bytes(decision.path, data)
            logger.info("Saved %s", decision.path)
        return decision

    async def clean_orphaned_files(self, document: TextDocument) -> List[Path]:
        """Delete media files the document no longer references."""
        async with self._lock:
            media_dir = self.media_dir_for(document)
            if not await asyncio.to_thread(media_dir.is_dir):
                logger.info("No media directory at %s; nothing to clean", media_dir)
                return []

            entries = await list_directory(media_dir)
            used = local_targets(document.get_text())
            document_path = Path(document.path).resolve()
            to_trash = not self.settings.remove_orphans_permanently

            removed: List[Path] = []
            for name, is_file in entries:
                if not is_file or name in used:
                    continue
                path = media_dir / name
                if path.resolve() == document_path:
                    continue
                await remove_file(path, to_trash=to_trash)
                logger.info("Removed orphaned file %s", path)
                removed.append(path)
            return removed

    async def process_pasted_image(self, document: TextDocument, data: bytes) -> Optional[str]:
        """Store pasted image bytes and return markup that references them."""
        async with self._lock:
            try:
                media_dir = self.media_dir_for(document)
                await ensure_directory(media_dir)
                decision = await self._store(media_dir, PASTED_IMAGE_NAME, data)
            except (StorageError, DecodeError) as exc:
                logger.error("Failed to store pasted image: %s", exc)
                return None
            if decision.path is None:
                return None
            shown = display_path(document.path, decision.path, self.settings)
            return compose_image_link("", shown, self.settings.use_captions)

    async def process_pasted_text(self, document: TextDocument, text: str) -> Optional[str]:
        """Handle pasted text that carries a base64 image data URI."""
        text = text.strip()
        if not text.lower().startswith("data:image/") or "base64," not in text:
            return None
        try:
            data = decode_data_uri(text)
        except DecodeError as exc:
            logger.error("Failed to decode pasted image: %s", exc)
            return None
        return await self.process_pasted_image(document, data)
