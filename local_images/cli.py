"""Command-line entry point for localizing Markdown images."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Iterable, List, Sequence

from .config import PATH_STYLES, SAVE_LOCATIONS, Settings, load_settings
from .documents import FileDocument
from .errors import LocalImagesError
from .processor import ContentProcessor
from .work_queue import UniqueQueue

logger = logging.getLogger("local_images.cli")

MARKDOWN_SUFFIXES = {".md", ".markdown"}


def _add_settings_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="JSON file with settings (snake_case or editor camelCase keys)",
    )
    parser.add_argument(
        "--attachment-folder",
        default=None,
        help="Media folder template; supports ${fileName}, ${documentBaseName} and ${date}",
    )
    parser.add_argument(
        "--save-location",
        choices=SAVE_LOCATIONS,
        default=None,
        help="Store media next to the document or under --media-root",
    )
    parser.add_argument(
        "--media-root",
        default=None,
        help="Root directory used with --save-location under_root",
    )
    parser.add_argument(
        "--deduplicate",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Name files by content hash so identical images share one file",
    )
    parser.add_argument(
        "--png-to-jpeg",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Convert PNG images to JPEG before saving",
    )
    parser.add_argument(
        "--jpeg-quality",
        type=int,
        default=None,
        help="JPEG quality used by --png-to-jpeg (0-100)",
    )
    parser.add_argument(
        "--use-captions",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Keep alt text in rewritten image links",
    )
    parser.add_argument(
        "--path-style",
        choices=PATH_STYLES,
        default=None,
        help="How rewritten links refer to saved files",
    )
    parser.add_argument(
        "--min-size-kb",
        dest="filesize_floor_kb",
        type=float,
        default=None,
        help="Only save images of at least this many KiB",
    )
    parser.add_argument(
        "--download-unknown",
        dest="download_unknown_types",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Also save files whose type cannot be determined",
    )
    parser.add_argument(
        "--remove-permanently",
        dest="remove_orphans_permanently",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Delete orphaned files instead of moving them to the trash",
    )
    parser.add_argument(
        "--date-format",
        default=None,
        help="strftime format used for ${date}",
    )
    parser.add_argument(
        "--timeout",
        dest="request_timeout",
        type=float,
        default=None,
        help="HTTP timeout in seconds for remote images",
    )
    parser.add_argument(
        "--max-attempts",
        dest="queue_max_attempts",
        type=int,
        default=None,
        help="How many times a failing document is retried",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download images referenced by Markdown documents and rewrite links to local copies.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    localize_parser = subparsers.add_parser(
        "localize", help="Save remote and embedded images next to the documents"
    )
    localize_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Markdown files or directories to scan recursively",
    )
    _add_settings_arguments(localize_parser)

    clean_parser = subparsers.add_parser(
        "clean", help="Remove media files no longer referenced by their document"
    )
    clean_parser.add_argument("paths", nargs="+", type=Path, help="Markdown files or directories")
    _add_settings_arguments(clean_parser)

    paste_parser = subparsers.add_parser(
        "paste", help="Store an image file as a pasted image of a document"
    )
    paste_parser.add_argument("document", type=Path, help="Markdown document receiving the image")
    paste_parser.add_argument("image", type=Path, help="Image file to store")
    paste_parser.add_argument(
        "--offset",
        type=int,
        default=None,
        help="Insert the image link at this character offset instead of printing it",
    )
    _add_settings_arguments(paste_parser)

    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    base = load_settings(args.config) if args.config else Settings()
    return base.merged(
        attachment_folder=args.attachment_folder,
        save_location=args.save_location,
        media_root=args.media_root,
        deduplicate=args.deduplicate,
        png_to_jpeg=args.png_to_jpeg,
        jpeg_quality=args.jpeg_quality,
        use_captions=args.use_captions,
        path_style=args.path_style,
        filesize_floor_kb=args.filesize_floor_kb,
        download_unknown_types=args.download_unknown_types,
        remove_orphans_permanently=args.remove_orphans_permanently,
        date_format=args.date_format,
        request_timeout=args.request_timeout,
        queue_max_attempts=args.queue_max_attempts,
    )


def collect_documents(paths: Iterable[Path]) -> List[Path]:
    """Expand directories into the Markdown files they contain."""
    documents: List[Path] = []
    for path in paths:
        path = path.expanduser()
        if path.is_dir():
            documents.extend(
                sorted(p for p in path.rglob("*") if p.suffix.lower() in MARKDOWN_SUFFIXES and p.is_file())
            )
        elif path.is_file():
            documents.append(path)
        else:
            logger.warning("Skipping %s: no such file or directory", path)
    return documents


async def localize_documents(paths: Sequence[Path], settings: Settings) -> int:
    """Rewrite every document, retrying failures; return the success count."""
    processor = ContentProcessor(settings)
    queue: UniqueQueue[FileDocument] = UniqueQueue(settings.queue_max_attempts)
    for path in paths:
        document = FileDocument(path)
        queue.push(document, str(document.path))

    succeeded = 0
    try:
        while queue.size():
            key = queue.peek_id()
            document = queue.pop()
            if document is None:
                logger.error("Giving up on %s", key)
                continue
            try:
                new_content = await processor.process_document(document)
                if new_content != document.get_text():
                    document.apply_text(new_content)
                    logger.info("Updated %s", document.path)
            except LocalImagesError as exc:
                logger.warning(
                    "Attempt %d for %s failed: %s", queue.attempts(key), key, exc
                )
                continue
            queue.remove(key)
            succeeded += 1
    finally:
        processor.fetcher.close()
    return succeeded


async def clean_documents(paths: Sequence[Path], settings: Settings) -> int:
    processor = ContentProcessor(settings)
    removed = 0
    for path in paths:
        document = FileDocument(path)
        try:
            removed += len(await processor.clean_orphaned_files(document))
        except LocalImagesError as exc:
            logger.error("Failed to clean orphaned files for %s: %s", path, exc)
    return removed


async def paste_image(
    document_path: Path, image_path: Path, settings: Settings, offset: int | None
) -> bool:
    processor = ContentProcessor(settings)
    document = FileDocument(document_path)
    try:
        data = image_path.expanduser().read_bytes()
    except OSError as exc:
        logger.error("Cannot read image %s: %s", image_path, exc)
        return False
    markup = await processor.process_pasted_image(document, data)
    if markup is None:
        logger.error("Image %s was not stored", image_path)
        return False
    if offset is None:
        sys.stdout.write(markup + "\n")
        sys.stdout.flush()
    else:
        try:
            document.splice(offset, 0, markup)
        except (LocalImagesError, ValueError) as exc:
            logger.error("Cannot insert image into %s: %s", document.path, exc)
            return False
        logger.info("Inserted %s into %s", markup, document.path)
    return True


def _run_localize(args: argparse.Namespace, settings: Settings) -> int:
    documents = collect_documents(args.paths)
    overall_start = time.perf_counter()
    successes = asyncio.run(localize_documents(documents, settings))
    total_elapsed = time.perf_counter() - overall_start
    failures = len(documents) - successes
    logger.info(
        "Finished in %.2fs (%d/%d succeeded, %d failed)",
        total_elapsed,
        successes,
        len(documents),
        failures,
    )
    return 1 if failures else 0


def _run_clean(args: argparse.Namespace, settings: Settings) -> int:
    documents = collect_documents(args.paths)
    removed = asyncio.run(clean_documents(documents, settings))
    logger.info("Removed %d orphaned file%s", removed, "" if removed == 1 else "s")
    return 0


def _run_paste(args: argparse.Namespace, settings: Settings) -> int:
    stored = asyncio.run(paste_image(args.document, args.image, settings, args.offset))
    return 0 if stored else 1


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    try:
        settings = build_settings(args)
    except LocalImagesError as exc:
        logger.error("%s", exc)
        return 2

    if args.command == "localize":
        return _run_localize(args, settings)
    if args.command == "clean":
        return _run_clean(args, settings)
    return _run_paste(args, settings)


if __name__ == "__main__":
    sys.exit(main())
