"""Media directory resolution and target file naming."""

from __future__ import annotations

import datetime as dt
import logging
import os
from pathlib import Path

from .config import Settings
from .images import UNKNOWN_EXTENSION, detect_extension, fingerprint
from .models import NamingDecision
from .storage import file_exists
from .utils import clean_file_name, is_data_uri, normalize_path, reference_file_name

logger = logging.getLogger("local_images")


def render_attachment_folder(template: str, document_path: Path, today: dt.date, date_format: str) -> str:
    """Fill ``${fileName}``, ``${documentBaseName}`` and ``${date}`` placeholders."""
    stem = Path(document_path).stem
    return (
        template.replace("${fileName}", stem)
        .replace("${documentBaseName}", stem)
        .replace("${date}", today.strftime(date_format))
    )


def resolve_media_dir(document_path: Path, settings: Settings, today: dt.date) -> Path:
    """Compute the media directory for a document.

    The result depends only on the document path, the settings and the date,
    so it is recomputed on every pass instead of being cached.
    """
    document_dir = Path(document_path).resolve().parent
    folder = render_attachment_folder(
        settings.attachment_folder, document_path, today, settings.date_format
    )
    if settings.save_location == "under_root":
        root = Path(settings.media_root).expanduser()
        if not root.is_absolute():
            root = document_dir / root
        return Path(os.path.normpath(root / folder))
    return Path(os.path.normpath(document_dir / folder))


def base_name_for(target: str, data: bytes, settings: Settings) -> str:
    if settings.deduplicate or is_data_uri(target):
        return fingerprint(data)
    stem = os.path.splitext(reference_file_name(target))[0]
    return clean_file_name(stem) or fingerprint(data)


async def decide(media_dir: Path, target: str, data: bytes, settings: Settings) -> NamingDecision:
    """Choose the file for ``data`` inside ``media_dir``.

    A decision without a path means the reference should be left alone.
    """
    ext = detect_extension(data, target)
    if not ext or (ext == UNKNOWN_EXTENSION and not settings.download_unknown_types):
        logger.debug("Skipping %s: unsupported content type", target[:80])
        return NamingDecision(path=None)

    path = media_dir / f"{base_name_for(target, data, settings)}.{ext}"
    return NamingDecision(path=path, must_write=not await file_exists(path))


def display_path(document_path: Path, file_path: Path, settings: Settings) -> str:
    """Render ``file_path`` the way it should appear in the document."""
    if settings.path_style == "full_path":
        return normalize_path(str(file_path))
    if settings.path_style == "base_name":
        return file_path.name
    document_dir = Path(document_path).resolve().parent
    return normalize_path(os.path.relpath(file_path, document_dir))
