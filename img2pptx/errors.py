"""Exceptions raised while assembling a deck."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class SlideShowError(Exception):
    """Base class for every fatal build error."""


class TemplateError(SlideShowError):
    """The template package is missing or lacks a master/layout."""


class ImageError(SlideShowError):
    """An input image could not be used; ``path`` names the file."""

    def __init__(self, message: str, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path is not None else None
        if self.path is not None and str(self.path) not in message:
            message = f"{message}: {self.path}"
        super().__init__(message)


class UnsupportedImageFormatError(ImageError):
    pass


class InvalidImageError(ImageError):
    pass


class SlideCapacityError(SlideShowError):
    """The slide id counter ran past the largest id the format allows."""


class BuildCancelled(SlideShowError):
    pass
