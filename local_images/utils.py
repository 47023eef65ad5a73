"""Utility helpers for string normalization and path handling."""

from __future__ import annotations

import os
import re
from urllib.parse import urlparse

_DISALLOWED_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')
_WHITESPACE_RUN = re.compile(r"\s+")
_REPEATED_SEPARATOR = re.compile(r"_{2,}")


def clean_file_name(name: str) -> str:
    """Replace characters that are unsafe in file names with underscores."""
    cleaned = _DISALLOWED_CHARS.sub("_", name)
    cleaned = _WHITESPACE_RUN.sub("_", cleaned)
    cleaned = _REPEATED_SEPARATOR.sub("_", cleaned)
    return cleaned.strip()


def normalize_path(path: str) -> str:
    return path.replace("\\", "/")


def is_data_uri(value: str) -> bool:
    return value.strip().lower().startswith("data:")


def is_url(value: str) -> bool:
    """Return True for strings shaped like an absolute URL or URI.

    Plain relative or absolute filesystem paths, including Windows drive
    paths such as ``C:/images/a.png``, are not URLs.
    """
    value = value.strip()
    if not value or any(ch.isspace() for ch in value):
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    if len(parsed.scheme) < 2:
        return False
    if parsed.scheme in ("data", "file"):
        return True
    return bool(parsed.netloc)


def reference_file_name(reference: str) -> str:
    """Return the file-name portion of a URL or path, without query string."""
    if is_url(reference) and not is_data_uri(reference):
        reference = urlparse(reference).path
    name = os.path.basename(reference)
    return name.split("?")[0].split("#")[0]


def reference_extension(reference: str) -> str:
    """Return the lowercase extension of a reference, without the dot."""
    if is_data_uri(reference):
        return ""
    return os.path.splitext(reference_file_name(reference))[1].lstrip(".").lower()
