"""Data models used throughout the localization pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

WRITTEN = "written"
REUSED = "reused"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass(frozen=True)
class ImageReference:
    """Image markup found in document text, with its character span."""

    alt_text: str
    target: str
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class NamingDecision:
    """Where resolved bytes should live and whether they still need writing."""

    path: Optional[Path]
    must_write: bool = False

    @property
    def skipped(self) -> bool:
        return self.path is None


@dataclass
class ReferenceOutcome:
    """What a rewrite pass did with a single reference."""

    reference: ImageReference
    status: str
    path: Optional[Path] = None
    reason: Optional[str] = None


@dataclass
class RewriteResult:
    """Updated document text plus the per-reference outcomes of a pass."""

    original: str
    content: str
    outcomes: List[ReferenceOutcome] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.content != self.original

    def count(self, status: str) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == status)
