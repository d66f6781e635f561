from __future__ import annotations

from pathlib import Path
from typing import Any

from PIL import ExifTags, Image, UnidentifiedImageError

from spotsave.models import ImageDimensions

PIXEL_X_DIMENSION = ExifTags.Base.ExifImageWidth
PIXEL_Y_DIMENSION = ExifTags.Base.ExifImageHeight


class DimensionError(Exception):
    """Base class for per-file extraction failures. Never fatal to a run."""

    def __init__(self, path: Path, message: str) -> None:
        super().__init__(message)
        self.path = path


class FileOpenError(DimensionError):
    pass


class MetadataError(DimensionError):
    pass


class DimensionParseError(DimensionError):
    pass


def _parse_dimension(path: Path, name: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        parsed = value
    else:
        text = value.decode("ascii", errors="replace") if isinstance(value, bytes) else str(value)
        try:
            parsed = int(text.strip().rstrip("\x00"))
        except ValueError as exc:
            raise DimensionParseError(path, f"{name} of {path.name} is not an integer: {value!r}") from exc
    if parsed < 0:
        raise DimensionParseError(path, f"{name} of {path.name} is negative: {parsed}")
    return parsed


def read_dimensions(path: Path) -> ImageDimensions:
    """Read pixel width/height from the EXIF block of ``path``.

    Pillow only parses headers on ``Image.open``, so this stays cheap for the
    thousands of small icons and banners that share the cache with wallpapers.
    The pixel data is never decoded.
    """

    try:
        handle = path.open("rb")
    except OSError as exc:
        raise FileOpenError(path, f"couldn't open {path}: {exc.strerror or exc}") from exc

    with handle:
        try:
            with Image.open(handle) as img:
                exif = img.getexif()
                exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
        except UnidentifiedImageError as exc:
            raise MetadataError(path, f"couldn't extract metadata of {path.name}") from exc
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
            # truncated or malformed EXIF segments surface as one of these
            raise MetadataError(path, f"couldn't extract metadata of {path.name}: {exc}") from exc

    width = exif_ifd.get(PIXEL_X_DIMENSION)
    if width is None:
        raise MetadataError(path, f"couldn't get width of {path.name}")
    height = exif_ifd.get(PIXEL_Y_DIMENSION)
    if height is None:
        raise MetadataError(path, f"couldn't get height of {path.name}")

    return ImageDimensions(
        width=_parse_dimension(path, "width", width),
        height=_parse_dimension(path, "height", height),
    )
