"""Markdown image reference scanning and rewriting helpers."""

from __future__ import annotations

import re
from typing import Iterable, List, Set, Tuple

from .models import ImageReference
from .utils import is_url

IMAGE_PATTERN = re.compile(r"!\[(.*?)\]\((.*?)\)")

Replacement = Tuple[ImageReference, str]


def find_image_references(markdown: str) -> List[ImageReference]:
    """Return every ``![alt](target)`` occurrence in document order."""
    return [
        ImageReference(
            alt_text=match.group(1),
            target=match.group(2).strip(),
            start=match.start(),
            end=match.end(),
        )
        for match in IMAGE_PATTERN.finditer(markdown)
    ]


def local_targets(markdown: str) -> Set[str]:
    """Collect the base names of all references that are not URLs."""
    names: Set[str] = set()
    for ref in find_image_references(markdown):
        if ref.target and not is_url(ref.target):
            names.add(ref.target.replace("\\", "/").rsplit("/", 1)[-1])
    return names


def compose_image_link(alt_text: str, path: str, use_captions: bool = True) -> str:
    caption = alt_text if use_captions else ""
    return f"![{caption}]({path})"


def apply_replacements(markdown: str, replacements: Iterable[Replacement]) -> str:
    """Swap each reference span for its new markup, last span first.

    Working back to front keeps earlier offsets valid, so two references
    with identical text are still replaced independently.
    """
    updated = markdown
    ordered = sorted(replacements, key=lambda item: item[0].start, reverse=True)
    previous_start = len(markdown) + 1
    for ref, new_markup in ordered:
        if ref.end > previous_start:
            raise ValueError(f"Overlapping replacement at offset {ref.start}")
        updated = updated[: ref.start] + new_markup + updated[ref.end :]
        previous_start = ref.start
    return updated
