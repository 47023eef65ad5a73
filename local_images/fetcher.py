"""Resolve image references (data URIs, file URIs, URLs) into raw bytes."""

from __future__ import annotations

import base64
import binascii
import logging
from pathlib import Path
from typing import Optional
from urllib.parse import unquote

import requests

from .errors import DecodeError, NetworkError, StorageError

logger = logging.getLogger("local_images")

DEFAULT_TIMEOUT = 15.0
USER_AGENT = "Mozilla/5.0 (compatible; local-images/0.1)"
ACCEPT_HEADER = "image/avif,image/webp,image/apng,image/*,*/*;q=0.8"


def decode_data_uri(uri: str) -> bytes:
    """Decode the base64 payload that follows the comma of a data URI."""
    _, separator, payload = uri.partition(",")
    if not separator:
        raise DecodeError("Data URI has no payload separator")
    payload = "".join(unquote(payload).split())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Malformed base64 payload: {exc}") from exc


def read_file_uri(uri: str) -> bytes:
    path = Path(unquote(uri[len("file://") :]))
    try:
        return path.read_bytes()
    except OSError as exc:
        raise StorageError(f"Cannot read {path}: {exc}") from exc


class Fetcher:
    """Fetch reference targets with one shared HTTP session."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)
        self.session.headers.setdefault("Accept", ACCEPT_HEADER)

    def download(self, url: str) -> bytes:
        try:
            resp = self.session.get(url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as exc:
            raise NetworkError(f"Failed to download {url}: {exc}") from exc
        logger.debug("Downloaded %s (%d bytes)", url, len(resp.content))
        return resp.content

    def fetch(self, target: str) -> bytes:
        """Return the bytes behind ``target``, dispatching on its scheme."""
        if target.startswith("data:"):
            return decode_data_uri(target)
        if target.startswith("file://"):
            return read_file_uri(target)
        return self.download(target)

    def close(self) -> None:
        self.session.close()
