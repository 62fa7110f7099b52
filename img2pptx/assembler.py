"""
Image folder -> PPTX deck assembly.

Each image becomes one slide holding a single picture. The output starts as a
copy of the template package; new slide parts reuse the template's first
slide master and first layout.

Flow per image, in input order:

- decode and classify the image, bound its size (``imaging``/``geometry``);
- take the next slide id and ``rel<id>`` relationship id (``identifiers``);
- add the slide part with its layout relationship, the picture XML
  (``fragment``) and the image part under ``relId1`` (``package``);
- append the slide list entry, commit the ids and report progress.

The first failing image aborts the build. Slides added before it are still
written to the output, which must then be treated as unusable.
"""

from __future__ import annotations

import logging
import shutil
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union

from .errors import BuildCancelled, TemplateError
from .fragment import build_slide_fragment, serialize_fragment
from .identifiers import IMAGE_RELATIONSHIP_ID, SlideIdAllocator
from .imaging import load_image
from .package import Container
from .validation import ValidationFinding, validate_package

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
ProgressCallback = Callable[[], None]

IMAGE_EXTENSIONS = ("jpg", "jpeg", "gif", "bmp", "png", "tif")


@dataclass
class BuildResult:
    output_path: Path
    slide_ids: List[int] = field(default_factory=list)
    findings: List[ValidationFinding] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.findings


# --------------------------------------------------------------------------- #
# Image discovery
# --------------------------------------------------------------------------- #


def find_images(directory: PathLike, extensions: Iterable[str] = IMAGE_EXTENSIONS) -> List[Path]:
    """List the files directly inside ``directory`` with one of ``extensions``.

    Files are grouped by extension in the order given and sorted by name
    within each group.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise NotADirectoryError(f"not a directory: {directory}")

    files = [p for p in directory.iterdir() if p.is_file()]
    found: List[Path] = []
    for ext in extensions:
        ext = ext.lower().lstrip(".")
        found.extend(sorted((p for p in files if p.suffix.lower() == "." + ext), key=lambda p: p.name))
    return found


# --------------------------------------------------------------------------- #
# Assembly
# --------------------------------------------------------------------------- #


class PackageAssembler:
    def __init__(
        self,
        allocator: Optional[SlideIdAllocator] = None,
        progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.allocator = allocator
        self.progress = progress
        self.cancel_event = cancel_event

    def assemble(self, container: Container, image_paths: Sequence[PathLike]) -> List[int]:
        """Add one slide per image to ``container`` and return the new slide ids."""
        # an allocator passed in is shared across calls; otherwise each
        # container gets its own, starting above its existing slides
        allocator = self.allocator if self.allocator is not None else SlideIdAllocator.for_container(container)

        slide_ids: List[int] = []
        for image_path in image_paths:
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise BuildCancelled(f"build cancelled after {len(slide_ids)} slides")

            payload = load_image(image_path)
            identifiers = allocator.peek()

            slide_xml = serialize_fragment(
                build_slide_fragment(payload.name, payload.description, payload.geometry.cx, payload.geometry.cy)
            )
            slide_partname = container.add_slide(identifiers.relationship_id, slide_xml)
            image_partname = container.add_image(
                slide_partname,
                IMAGE_RELATIONSHIP_ID,
                payload.blob,
                payload.format.extension,
                payload.content_type,
            )
            container.append_slide_id(identifiers.slide_id, identifiers.relationship_id)
            allocator.commit(identifiers)
            slide_ids.append(identifiers.slide_id)
            logger.debug(
                "Slide %d (%s) <- %s as %s",
                identifiers.slide_id,
                slide_partname,
                payload.path.name,
                image_partname,
            )

            if self.progress is not None:
                self.progress()
        return slide_ids


def build(
    output_path: PathLike,
    template_path: PathLike,
    image_paths: Sequence[PathLike],
    progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    validate: bool = True,
) -> BuildResult:
    """Copy ``template_path`` to ``output_path`` and add a slide per image.

    Raises ``SlideShowError`` subclasses on fatal errors; validation findings
    are returned in the result instead.
    """
    output_path = Path(output_path)
    template_path = Path(template_path)
    if not template_path.is_file():
        raise TemplateError(f"template not found: {template_path}")

    logger.info("Building %s from %d images (template %s)", output_path, len(image_paths), template_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    shutil.copyfile(template_path, output_path)

    assembler = PackageAssembler(progress=progress, cancel_event=cancel_event)
    with Container.open(output_path) as container:
        slide_ids = assembler.assemble(container, image_paths) if image_paths else []

    result = BuildResult(output_path=output_path, slide_ids=slide_ids)
    if validate:
        result.findings = validate_package(output_path)
    if result.success:
        logger.info("Created %s with %d slides, 0 validation errors", output_path, len(slide_ids))
    else:
        logger.warning(
            "Created %s with %d slides but it failed to validate (%d errors)",
            output_path,
            len(slide_ids),
            len(result.findings),
        )
    return result


def build_in_background(
    output_path: PathLike,
    template_path: PathLike,
    image_paths: Sequence[PathLike],
    progress: Optional[ProgressCallback] = None,
    cancel_event: Optional[threading.Event] = None,
    executor: Optional[ThreadPoolExecutor] = None,
) -> "Future[BuildResult]":
    """Run ``build`` on a worker thread.

    The future resolves to the ``BuildResult`` or raises the build error.
    ``progress`` is called on the worker thread.
    """
    owned = executor is None
    if owned:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="img2pptx-build")
    try:
        return executor.submit(build, output_path, template_path, list(image_paths), progress, cancel_event)
    finally:
        if owned:
            executor.shutdown(wait=False)
