"""Read an image file, classify its encoding and compute its placement."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Tuple, Union

from PIL import Image, UnidentifiedImageError
from pptx.opc.constants import CONTENT_TYPE as CT

from .errors import ImageError, InvalidImageError, UnsupportedImageFormatError
from .geometry import DEFAULT_DPI, ImageGeometry, compute_geometry

logger = logging.getLogger(__name__)


class ImageFormat(Enum):
    BMP = ("bmp", CT.BMP)
    GIF = ("gif", CT.GIF)
    JPEG = ("jpeg", CT.JPEG)
    PNG = ("png", CT.PNG)
    TIFF = ("tiff", CT.TIFF)

    def __init__(self, extension: str, content_type: str):
        self.extension = extension
        self.content_type = content_type


# Pillow format name -> supported format. MPO is the multi-picture JPEG
# variant cameras write; its first frame is a plain JPEG stream.
PIL_FORMATS = {
    "BMP": ImageFormat.BMP,
    "DIB": ImageFormat.BMP,
    "GIF": ImageFormat.GIF,
    "JPEG": ImageFormat.JPEG,
    "MPO": ImageFormat.JPEG,
    "PNG": ImageFormat.PNG,
    "TIFF": ImageFormat.TIFF,
}


@dataclass(frozen=True)
class ImagePayload:
    path: Path
    blob: bytes
    format: ImageFormat
    geometry: ImageGeometry

    @property
    def name(self) -> str:
        return self.path.stem

    @property
    def description(self) -> str:
        return self.path.stem

    @property
    def content_type(self) -> str:
        return self.format.content_type


def _resolution(img: Image.Image) -> Tuple[float, float]:
    dpi = img.info.get("dpi")
    if dpi is None:
        return DEFAULT_DPI, DEFAULT_DPI
    try:
        dpi_x, dpi_y = (float(v) for v in dpi)
    except (TypeError, ValueError):
        return DEFAULT_DPI, DEFAULT_DPI
    # BMP headers use 0 pixels per metre for "not specified"
    if img.format in ("BMP", "DIB") and dpi_x == 0 and dpi_y == 0:
        return DEFAULT_DPI, DEFAULT_DPI
    return dpi_x, dpi_y


def load_image(path: Union[str, Path]) -> ImagePayload:
    """Read ``path`` and return its bytes, format and geometry.

    Raises ``ImageError`` when the file cannot be read,
    ``UnsupportedImageFormatError`` when the bytes are not one of the
    supported encodings, and ``InvalidImageError`` for unusable sizes or
    resolutions.
    """
    path = Path(path)
    try:
        blob = path.read_bytes()
    except OSError as exc:
        raise ImageError(f"cannot read image file ({exc.strerror or exc})", path) from exc

    try:
        with Image.open(io.BytesIO(blob)) as img:
            pil_format = img.format
            width, height = img.size
            dpi_x, dpi_y = _resolution(img)
            # checks the encoded data without decoding the whole bitmap
            img.verify()
    except UnidentifiedImageError as exc:
        raise UnsupportedImageFormatError("Unsupported image file format", path) from exc
    except Image.DecompressionBombError as exc:
        raise InvalidImageError(f"image is too large to decode ({exc})", path) from exc
    except Exception as exc:
        # Pillow plugins raise OSError, SyntaxError, struct.error and others on bad data
        raise InvalidImageError(f"cannot decode image ({exc})", path) from exc

    image_format = PIL_FORMATS.get(pil_format or "")
    if image_format is None:
        raise UnsupportedImageFormatError(f"Unsupported image file format {pil_format}", path)

    geometry = compute_geometry(width, height, dpi_x, dpi_y, source=str(path))
    logger.debug(
        "%s: %s %dx%d px at %.1fx%.1f dpi -> %dx%d px, %dx%d EMU",
        path.name,
        image_format.name,
        width,
        height,
        dpi_x,
        dpi_y,
        geometry.width_px,
        geometry.height_px,
        geometry.cx,
        geometry.cy,
    )
    return ImagePayload(path=path, blob=blob, format=image_format, geometry=geometry)
