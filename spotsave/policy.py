from __future__ import annotations

from pathlib import Path

from spotsave.inspector import DimensionError, read_dimensions
from spotsave.models import ERROR, QUALIFIES, TOO_SMALL, Assessment, ImageDimensions, Threshold


def qualifies(dimensions: ImageDimensions, threshold: Threshold) -> bool:
    """A cached file is a wallpaper when both sides reach the configured minimum."""

    return dimensions.width >= threshold.minimum_width and dimensions.height >= threshold.minimum_height


def assess(path: Path, threshold: Threshold) -> Assessment:
    try:
        dimensions = read_dimensions(path)
    except DimensionError as exc:
        return Assessment(path=path, status=ERROR, reason=str(exc))

    if not qualifies(dimensions, threshold):
        return Assessment(path=path, status=TOO_SMALL, dimensions=dimensions)
    return Assessment(path=path, status=QUALIFIES, dimensions=dimensions)
