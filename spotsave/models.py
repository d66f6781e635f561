from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

QUALIFIES = "QUALIFIES"
TOO_SMALL = "TOO_SMALL"
ERROR = "ERROR"

COPIED = "COPIED"
EXISTS = "EXISTS"
FAILED = "FAILED"
DRY_RUN = "DRY_RUN"


@dataclass(frozen=True, slots=True)
class ImageDimensions:
    width: int
    height: int


@dataclass(frozen=True, slots=True)
class Threshold:
    minimum_width: int
    minimum_height: int


@dataclass(frozen=True, slots=True)
class Assessment:
    path: Path
    status: str
    dimensions: ImageDimensions | None = None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class CopyOutcome:
    status: str
    target: Path
    reason: str | None = None
