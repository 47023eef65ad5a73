"""Exception types raised while localizing document images."""

from __future__ import annotations


class LocalImagesError(Exception):
    """Base class for every error raised by this package."""


class NetworkError(LocalImagesError):
    """A remote image could not be downloaded."""


class StorageError(LocalImagesError):
    """A local file or directory could not be read, written or removed."""


class DecodeError(LocalImagesError):
    """Embedded data or image content could not be decoded."""


class SettingsError(LocalImagesError):
    """A configuration value or file is invalid."""
