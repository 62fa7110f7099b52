#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Build a slide deck from a folder of images, one picture per slide.

Usage:
    img2pptx IMAGE_DIR OUTPUT.pptx [--template PresentationTemplate.pptx]

Requirements:
    pip install python-pptx pillow lxml
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .assembler import IMAGE_EXTENSIONS, build, find_images
from .errors import SlideShowError
from .template import DEFAULT_TEMPLATE_NAME, ensure_template

logger = logging.getLogger("img2pptx")

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID = 2


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a PPTX slide show from a folder of images.")
    parser.add_argument("image_dir", type=Path, help="Folder with the images (not searched recursively)")
    parser.add_argument("output_pptx", type=Path, help="Path of the deck to write (overwritten)")
    parser.add_argument(
        "--template",
        type=Path,
        default=Path(DEFAULT_TEMPLATE_NAME),
        help="Template package; a starter template is written here when missing",
    )
    parser.add_argument(
        "--extensions",
        default=",".join(IMAGE_EXTENSIONS),
        help="Comma separated image extensions to pick up (default: %(default)s)",
    )
    parser.add_argument("--no-validate", action="store_true", help="Skip the structural check of the result")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every slide")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    extensions = [ext.strip() for ext in args.extensions.split(",") if ext.strip()]
    try:
        images = find_images(args.image_dir, extensions)
    except NotADirectoryError as e:
        logger.error(str(e))
        return EXIT_ERROR
    logger.info(f"Found {len(images)} images in {args.image_dir}")

    done = 0

    def step():
        nonlocal done
        done += 1
        logger.info(f"Slide {done}/{len(images)}")

    try:
        template = ensure_template(args.template)
        result = build(args.output_pptx, template, images, progress=step, validate=not args.no_validate)
    except SlideShowError as e:
        logger.error(f"Deck creation failed: {e}")
        return EXIT_ERROR

    if not result.success:
        logger.warning(f"There are {len(result.findings)} errors:")
        for finding in result.findings:
            logger.warning(f"{finding.description} ({finding.location})")
        return EXIT_INVALID
    logger.info(f"Successfully created {args.output_pptx}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
