"""MCP server exposing image localization tools."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional

from mcp.server.fastmcp import FastMCP

from .config import Settings, load_settings
from .documents import FileDocument
from .models import FAILED, REUSED, SKIPPED, WRITTEN
from .processor import ContentProcessor

logger = logging.getLogger("local_images.mcp")
logger.setLevel(logging.ERROR)

mcp = FastMCP(name="local-images")

# One pipeline per distinct configuration; tool calls sharing settings share its lock.
_processors: Dict[Settings, ContentProcessor] = {}


def _open_document(path: str) -> FileDocument:
    source = Path(path).expanduser()
    if not source.is_file():
        raise FileNotFoundError(f"Document path does not exist: {source}")
    return FileDocument(source)


def _processor_for(config: Optional[str]) -> ContentProcessor:
    settings = load_settings(Path(config).expanduser()) if config else Settings()
    processor = _processors.get(settings)
    if processor is None:
        processor = _processors[settings] = ContentProcessor(settings)
    return processor


@mcp.tool()
async def localize_images(path: str, config: Optional[str] = None) -> str:
    """Download the images of a Markdown file and point its links at the copies.

    ``config`` optionally names a JSON settings file.
    """
    document = _open_document(path)
    processor = _processor_for(config)
    result = await processor.rewrite_document(document, save=True)
    return (
        f"{document.path}: {result.count(WRITTEN)} saved, {result.count(REUSED)} reused, "
        f"{result.count(SKIPPED)} skipped, {result.count(FAILED)} failed"
    )


@mcp.tool()
async def clean_orphans(path: str, config: Optional[str] = None) -> str:
    """Remove media files that a Markdown file no longer references."""
    document = _open_document(path)
    processor = _processor_for(config)
    removed = await processor.clean_orphaned_files(document)
    if not removed:
        return "No orphaned files found."
    return "Removed: " + ", ".join(p.name for p in removed)


def main() -> None:
    """Entry point for running the MCP server."""
    logging.basicConfig(level=logging.ERROR)
    mcp.run()


if __name__ == "__main__":
    main()
