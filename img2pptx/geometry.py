"""
Image placement geometry.

Pixel dimensions are first bounded by the maximum-size policy, then converted
to English Metric Units (EMU) using the image resolution.

The policy runs two independent passes:

- width above ``MAX_WIDTH_PX``: width becomes the cap and height becomes
  ``height * width / cap``;
- height (possibly already rescaled) above ``MAX_HEIGHT_PX``: height becomes
  the cap and width becomes ``height * source_width / cap``.

Neither pass keeps the aspect ratio, so a wide image that is also tall after
the first pass comes out much wider (2048x1080 -> 1024x2160 -> 6144x720).
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import InvalidImageError

# --------------------------------------------------------------------------- #
# Constants
# --------------------------------------------------------------------------- #

EMU_PER_INCH = 914400
MAX_WIDTH_PX = 1024
MAX_HEIGHT_PX = 720
DEFAULT_DPI = 96.0
PICTURE_OFFSET_EMU = 100


@dataclass(frozen=True)
class ImageGeometry:
    width_px: int
    height_px: int
    cx: int
    cy: int
    x: int = PICTURE_OFFSET_EMU
    y: int = PICTURE_OFFSET_EMU


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _div_round(numerator: int, denominator: int) -> int:
    # half-up rounding on positive integers, exact for any size
    return (2 * numerator + denominator) // (2 * denominator)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _valid_dpi(value: Optional[float]) -> bool:
    # rejects None, NaN (TIFF 0/0 rationals), infinities and non-positive values
    return isinstance(value, (int, float)) and math.isfinite(value) and value > 0


def fit_pixels(
    width: int,
    height: int,
    max_width: int = MAX_WIDTH_PX,
    max_height: int = MAX_HEIGHT_PX,
) -> Tuple[int, int]:
    if width <= 0 or height <= 0:
        raise InvalidImageError(f"image has no pixels ({width}x{height})")

    source_width = width
    if width > max_width:
        height = _div_round(height * width, max_width)
        width = max_width
    if height > max_height:
        width = _div_round(height * source_width, max_height)
        height = max_height
    return width, height


def pixels_to_emu(pixels: int, dpi: float) -> int:
    emu = pixels / dpi * EMU_PER_INCH
    if not math.isfinite(emu):
        raise InvalidImageError(f"resolution {dpi} dpi gives no usable extent")
    return _round_half_up(emu)


def compute_geometry(
    width_px: int,
    height_px: int,
    dpi_x: float = DEFAULT_DPI,
    dpi_y: float = DEFAULT_DPI,
    source: Optional[str] = None,
) -> ImageGeometry:
    """Bound the pixel size and convert it to EMU.

    ``source`` only feeds error messages. Raises ``InvalidImageError`` for
    non-positive sizes or resolutions and for images too small to cover one
    EMU at their resolution.
    """
    if not _valid_dpi(dpi_x) or not _valid_dpi(dpi_y):
        raise InvalidImageError(f"invalid resolution {dpi_x}x{dpi_y} dpi", source)

    try:
        width, height = fit_pixels(width_px, height_px)
        cx = pixels_to_emu(width, dpi_x)
        cy = pixels_to_emu(height, dpi_y)
    except InvalidImageError as exc:
        raise InvalidImageError(str(exc), source) from exc
    if cx <= 0 or cy <= 0:
        raise InvalidImageError(f"image extent rounds to zero ({cx}x{cy} EMU)", source)
    return ImageGeometry(width_px=width, height_px=height, cx=cx, cy=cy)
