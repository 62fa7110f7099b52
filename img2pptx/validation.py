"""
Structural checks for a finished presentation package.

Findings are collected, never raised: the caller decides whether a deck with
findings is acceptable. An empty list means the package passed.
"""

from __future__ import annotations

import logging
import posixpath
import zipfile
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Union

from lxml import etree
from pptx import Presentation
from pptx.opc.constants import CONTENT_TYPE as CT
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.opc.packuri import CONTENT_TYPES_URI, PACKAGE_URI, PackURI
from pptx.oxml import parse_xml
from pptx.oxml.ns import qn
from pptx.shapes.picture import Picture

from .identifiers import MAX_SLIDE_ID, MIN_SLIDE_ID
from .package import ContentTypes, Relationships

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationFinding:
    description: str
    location: str

    def __str__(self) -> str:
        return f"{self.location}: {self.description}"


def _source_of(rels_partname: str) -> PackURI:
    # /ppt/slides/_rels/slide1.xml.rels -> /ppt/slides/slide1.xml
    rels_dir, rels_file = posixpath.split(rels_partname)
    base = posixpath.dirname(rels_dir)
    return PackURI(posixpath.join(base, rels_file[: -len(".rels")]))


def _positive(value: Optional[str]) -> bool:
    try:
        return int(value) > 0
    except (TypeError, ValueError):
        return False


class PackageChecker:
    def __init__(self, parts: Dict[str, bytes]):
        self.parts = parts
        self.findings: List[ValidationFinding] = []
        self._xml: Dict[str, object] = {}
        self._rels: Dict[str, Relationships] = {}

    def report(self, description: str, partname: str, element=None) -> None:
        location = str(partname)
        if element is not None:
            location = f"{partname}:{element.getroottree().getpath(element)}"
        self.findings.append(ValidationFinding(description, location))

    def xml(self, partname: str):
        if partname not in self._xml:
            try:
                self._xml[partname] = parse_xml(self.parts[partname])
            except etree.XMLSyntaxError as exc:
                self.report(f"part is not well-formed XML ({exc})", partname)
                self._xml[partname] = None
        return self._xml[partname]

    def rels(self, source: PackURI) -> Optional[Relationships]:
        rels_uri = source.rels_uri
        if rels_uri not in self.parts:
            return None
        if rels_uri not in self._rels:
            element = self.xml(rels_uri)
            if element is None:
                return None
            self._rels[rels_uri] = Relationships(source, element)
        return self._rels[rels_uri]

    def run(self) -> List[ValidationFinding]:
        if str(CONTENT_TYPES_URI) not in self.parts:
            self.report("package has no content types part", str(CONTENT_TYPES_URI))
            return self.findings
        types_element = self.xml(CONTENT_TYPES_URI)
        if types_element is None:
            return self.findings
        content_types = ContentTypes(types_element)

        for partname in self.parts:
            if partname == str(CONTENT_TYPES_URI):
                continue
            if content_types.content_type_of(partname) is None:
                self.report("part has no content type", partname)

        for partname in list(self.parts):
            if partname.endswith(".rels"):
                self._check_rels(partname)

        package_rels = self.rels(PACKAGE_URI)
        documents = package_rels.partnames_of_type(RT.OFFICE_DOCUMENT) if package_rels else []
        if not documents:
            self.report("package has no presentation part", PACKAGE_URI.rels_uri)
            return self.findings
        self._check_presentation(documents[0], content_types)
        return self.findings

    def _check_rels(self, rels_partname: str) -> None:
        source = PACKAGE_URI if rels_partname == PACKAGE_URI.rels_uri else _source_of(rels_partname)
        if source != PACKAGE_URI and source not in self.parts:
            self.report(f"relationships belong to missing part {source}", rels_partname)
        rels = self.rels(source)
        if rels is None:
            return
        seen = set()
        for rId, _, target, external in rels:
            if rId in seen:
                self.report(f"duplicate relationship id {rId}", rels_partname)
            seen.add(rId)
            if external:
                continue
            partname = PackURI.from_rel_ref(source.baseURI, target)
            if partname not in self.parts:
                self.report(f"relationship {rId} targets missing part {partname}", rels_partname)

    def _check_presentation(self, partname: PackURI, content_types: ContentTypes) -> None:
        presentation = self.xml(partname)
        if presentation is None:
            return
        rels = self.rels(partname)
        slide_targets = {}
        if rels is not None:
            slide_targets = {rId: target for rId, reltype, target, external in rels if reltype == RT.SLIDE}

        seen_ids = set()
        for sld_id in presentation.iter(qn("p:sldId")):
            raw_id = sld_id.get("id")
            try:
                slide_id = int(raw_id)
            except (TypeError, ValueError):
                self.report(f"slide id {raw_id!r} is not an integer", partname, sld_id)
                continue
            if not MIN_SLIDE_ID <= slide_id <= MAX_SLIDE_ID:
                self.report(f"slide id {slide_id} outside [{MIN_SLIDE_ID}, {MAX_SLIDE_ID}]", partname, sld_id)
            if slide_id in seen_ids:
                self.report(f"duplicate slide id {slide_id}", partname, sld_id)
            seen_ids.add(slide_id)

            rId = sld_id.get(qn("r:id"))
            if rId not in slide_targets:
                self.report(f"slide list entry {rId} does not resolve to a slide relationship", partname, sld_id)
                continue
            slide_partname = PackURI.from_rel_ref(partname.baseURI, slide_targets[rId])
            if slide_partname in self.parts:
                self._check_slide(slide_partname, content_types)

    def _check_slide(self, partname: PackURI, content_types: ContentTypes) -> None:
        if content_types.content_type_of(partname) != CT.PML_SLIDE:
            self.report("slide part has the wrong content type", partname)
        slide = self.xml(partname)
        if slide is None:
            return
        rels = self.rels(partname)
        entries = list(rels) if rels is not None else []

        layouts = [rId for rId, reltype, _, _ in entries if reltype == RT.SLIDE_LAYOUT]
        if len(layouts) != 1:
            self.report(f"slide relates to {len(layouts)} layouts, expected 1", partname)

        images = {rId: target for rId, reltype, target, external in entries if reltype == RT.IMAGE and not external}
        for blip in slide.iter(qn("a:blip")):
            embed = blip.get(qn("r:embed"))
            if embed not in images:
                self.report(f"picture fill {embed} does not resolve to an image relationship", partname, blip)
                continue
            image_partname = PackURI.from_rel_ref(partname.baseURI, images[embed])
            content_type = content_types.content_type_of(image_partname) or ""
            if not content_type.startswith("image/"):
                self.report(f"image part {image_partname} has content type {content_type!r}", partname, blip)

        shape_ids = set()
        for c_nv_pr in slide.iter(qn("p:cNvPr")):
            shape_id = c_nv_pr.get("id")
            if shape_id in shape_ids:
                self.report(f"duplicate drawing id {shape_id}", partname, c_nv_pr)
            shape_ids.add(shape_id)

        for ext in slide.iterfind(".//%s/%s/%s/%s" % (qn("p:pic"), qn("p:spPr"), qn("a:xfrm"), qn("a:ext"))):
            if not (_positive(ext.get("cx")) and _positive(ext.get("cy"))):
                self.report("picture has an empty extent", partname, ext)


def validate_package(path: Union[str, Path]) -> List[ValidationFinding]:
    """Check the package at ``path`` and return what is wrong with it."""
    path = Path(path)
    try:
        with zipfile.ZipFile(path) as zf:
            parts = {"/" + info.filename: zf.read(info) for info in zf.infolist() if not info.filename.endswith("/")}
    except (OSError, zipfile.BadZipFile) as exc:
        return [ValidationFinding(f"cannot open package ({exc})", str(path))]

    findings = PackageChecker(parts).run()
    if not findings:
        try:
            prs = Presentation(str(path))
            for slide in prs.slides:
                for shape in slide.shapes:
                    if isinstance(shape, Picture) and not shape.image.blob:
                        findings.append(ValidationFinding(f"picture {shape.name!r} has no image data", str(path)))
        except Exception as e:
            findings.append(ValidationFinding(f"python-pptx cannot load the package ({e})", str(path)))

    for finding in findings:
        logger.warning("Validation: %s", finding)
    return findings
