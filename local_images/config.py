"""Configuration objects and constants for image localization."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

from .errors import SettingsError

DEFAULT_ATTACHMENT_FOLDER = "assets"
DEFAULT_DATE_FORMAT = "%Y-%m-%d"
PASTED_IMAGE_NAME = "pasted_image.png"

SAVE_LOCATIONS = ("next_to_document", "under_root")
PATH_STYLES = ("full_path", "relative", "base_name")

# Keys used by the editor settings page, mapped onto field names.
_CAMEL_CASE_KEYS = {
    "attachmentFolder": "attachment_folder",
    "saveLocationMode": "save_location",
    "mediaRootDir": "media_root",
    "deduplicate": "deduplicate",
    "pngToJpeg": "png_to_jpeg",
    "jpegQuality": "jpeg_quality",
    "useCaptions": "use_captions",
    "pathStyle": "path_style",
    "filesizeFloorKb": "filesize_floor_kb",
    "downloadUnknownTypes": "download_unknown_types",
    "removeOrphansPermanently": "remove_orphans_permanently",
    "dateFormat": "date_format",
    "requestTimeout": "request_timeout",
    "queueMaxAttempts": "queue_max_attempts",
}


@dataclass(frozen=True)
class Settings:
    """Options that control where and how referenced images are stored."""

    attachment_folder: str = DEFAULT_ATTACHMENT_FOLDER
    save_location: str = "next_to_document"
    media_root: str = DEFAULT_ATTACHMENT_FOLDER
    deduplicate: bool = True
    png_to_jpeg: bool = False
    jpeg_quality: int = 80
    use_captions: bool = True
    path_style: str = "relative"
    filesize_floor_kb: float = 0
    download_unknown_types: bool = False
    remove_orphans_permanently: bool = False
    date_format: str = DEFAULT_DATE_FORMAT
    request_timeout: float = 15.0
    queue_max_attempts: int = 3

    def __post_init__(self) -> None:
        if self.save_location not in SAVE_LOCATIONS:
            raise SettingsError(
                f"save_location must be one of {', '.join(SAVE_LOCATIONS)}, "
                f"got {self.save_location!r}"
            )
        if self.path_style not in PATH_STYLES:
            raise SettingsError(
                f"path_style must be one of {', '.join(PATH_STYLES)}, "
                f"got {self.path_style!r}"
            )
        if not 0 <= self.jpeg_quality <= 100:
            raise SettingsError(
                f"jpeg_quality must be between 0 and 100, got {self.jpeg_quality}"
            )
        if self.filesize_floor_kb < 0:
            raise SettingsError("filesize_floor_kb cannot be negative")
        if self.queue_max_attempts < 1:
            raise SettingsError("queue_max_attempts must be at least 1")

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "Settings":
        """Build settings from snake_case or editor-style camelCase keys."""
        known = {field.name: field for field in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in values.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise SettingsError(f"Unknown setting: {key}")
            kwargs[name] = value
        return cls(**kwargs)

    def merged(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-None override applied."""
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self


def load_settings(path: Path) -> Settings:
    """Read settings from a JSON object stored at ``path``."""
    try:
        raw = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise SettingsError(f"Cannot read settings file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise SettingsError(f"Settings file {path} is not valid JSON: {exc}") from exc
    if not isinstance(raw, dict):
        raise SettingsError(f"Settings file {path} must contain a JSON object")
    return Settings.from_mapping(raw)
