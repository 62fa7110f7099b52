"""Starter template written on first run."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Union

from pptx import Presentation
from pptx.util import Inches

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATE_NAME = "PresentationTemplate.pptx"
SLIDE_WIDTH_PX = 1280
SLIDE_HEIGHT_PX = 720
PX_PER_INCH = 96.0


def write_starter_template(path: Union[str, Path]) -> Path:
    """Save an empty 16:9 deck with python-pptx's default master and layouts."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    prs = Presentation()
    prs.slide_width = Inches(SLIDE_WIDTH_PX / PX_PER_INCH)
    prs.slide_height = Inches(SLIDE_HEIGHT_PX / PX_PER_INCH)
    prs.save(str(path))
    logger.info("Wrote starter template %s", path)
    return path


def ensure_template(path: Union[str, Path]) -> Path:
    path = Path(path)
    if not path.exists():
        write_starter_template(path)
    return path
