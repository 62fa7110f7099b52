"""Assemble PPTX slide shows from folders of images."""

from .assembler import IMAGE_EXTENSIONS, BuildResult, PackageAssembler, build, build_in_background, find_images
from .errors import (
    BuildCancelled,
    ImageError,
    InvalidImageError,
    SlideCapacityError,
    SlideShowError,
    TemplateError,
    UnsupportedImageFormatError,
)
from .fragment import build_slide_fragment
from .geometry import ImageGeometry, compute_geometry, fit_pixels
from .identifiers import SlideIdAllocator
from .validation import ValidationFinding, validate_package

__version__ = "0.1.0"
