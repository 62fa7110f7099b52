"""
Minimal Open Packaging Conventions container for slide assembly.

The container loads every part of a ``.pptx`` zip into memory, exposes the
few edits the assembler needs (new slide part, new image part, slide list
entry) and writes the whole package back when closed. Relationships and
content types are edited as XML, so relationship ids are chosen by the
caller rather than generated.
"""

from __future__ import annotations

import logging
import posixpath
import zipfile
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple, Union

from lxml import etree
from pptx.opc.constants import CONTENT_TYPE as CT
from pptx.opc.constants import NAMESPACE as NS
from pptx.opc.constants import RELATIONSHIP_TARGET_MODE as RTM
from pptx.opc.constants import RELATIONSHIP_TYPE as RT
from pptx.opc.packuri import CONTENT_TYPES_URI, PACKAGE_URI, PackURI
from pptx.oxml import parse_xml
from pptx.oxml.ns import qn

from .errors import TemplateError

logger = logging.getLogger(__name__)

SLIDE_PARTNAME_TMPL = "/ppt/slides/slide%d.xml"
IMAGE_PARTNAME_TMPL = "/ppt/media/image%d.%s"


def _tag(namespace: str, local: str) -> str:
    return "{%s}%s" % (namespace, local)


def part_extension(partname: str) -> str:
    # "/_rels/.rels" -> "rels", which PackURI.ext reports as ""
    filename = posixpath.basename(partname)
    return filename.rpartition(".")[2] if "." in filename else ""


def serialize_xml(element) -> bytes:
    return etree.tostring(element, encoding="UTF-8", xml_declaration=True, standalone=True)


# --------------------------------------------------------------------------- #
# Relationships
# --------------------------------------------------------------------------- #


class Relationships:
    """The ``_rels`` part of one source part."""

    _REL = _tag(NS.OPC_RELATIONSHIPS, "Relationship")

    def __init__(self, source: PackURI, element):
        self.source = source
        self.element = element

    @classmethod
    def new(cls, source: PackURI) -> "Relationships":
        return cls(source, parse_xml('<Relationships xmlns="%s"/>' % NS.OPC_RELATIONSHIPS))

    def __iter__(self) -> Iterator[Tuple[str, str, str, bool]]:
        for rel in self.element.iterchildren(self._REL):
            external = rel.get("TargetMode") == RTM.EXTERNAL
            yield rel.get("Id"), rel.get("Type"), rel.get("Target"), external

    def ids(self) -> List[str]:
        return [rId for rId, _, _, _ in self]

    def target_partname(self, rId: str) -> Optional[PackURI]:
        for candidate, _, target, external in self:
            if candidate == rId and not external:
                return PackURI.from_rel_ref(self.source.baseURI, target)
        return None

    def partnames_of_type(self, reltype: str) -> List[PackURI]:
        return [
            PackURI.from_rel_ref(self.source.baseURI, target)
            for _, candidate, target, external in self
            if candidate == reltype and not external
        ]

    def next_id(self) -> str:
        used = set(self.ids())
        n = 1
        while "rId%d" % n in used:
            n += 1
        return "rId%d" % n

    def add(self, rId: str, reltype: str, target: PackURI) -> None:
        if rId in self.ids():
            raise ValueError(f"relationship id {rId} already used in {self.source.rels_uri}")
        rel = etree.SubElement(self.element, self._REL)
        rel.set("Id", rId)
        rel.set("Type", reltype)
        rel.set("Target", target.relative_ref(self.source.baseURI))


# --------------------------------------------------------------------------- #
# Content types
# --------------------------------------------------------------------------- #


class ContentTypes:
    _DEFAULT = _tag(NS.OPC_CONTENT_TYPES, "Default")
    _OVERRIDE = _tag(NS.OPC_CONTENT_TYPES, "Override")

    def __init__(self, element):
        self.element = element

    def default_for(self, ext: str) -> Optional[str]:
        for default in self.element.iterchildren(self._DEFAULT):
            if (default.get("Extension") or "").lower() == ext.lower():
                return default.get("ContentType")
        return None

    def override_for(self, partname: str) -> Optional[str]:
        for override in self.element.iterchildren(self._OVERRIDE):
            if (override.get("PartName") or "").lower() == partname.lower():
                return override.get("ContentType")
        return None

    def content_type_of(self, partname: str) -> Optional[str]:
        return self.override_for(partname) or self.default_for(part_extension(partname))

    def add_override(self, partname: PackURI, content_type: str) -> None:
        etree.SubElement(self.element, self._OVERRIDE, PartName=str(partname), ContentType=content_type)

    def add_for_extension(self, partname: PackURI, content_type: str) -> None:
        """Cover ``partname`` by an extension default, or an override when the
        extension is already mapped to another type."""
        current = self.default_for(partname.ext)
        if current is None:
            etree.SubElement(self.element, self._DEFAULT, Extension=partname.ext, ContentType=content_type)
        elif current != content_type:
            self.add_override(partname, content_type)


# --------------------------------------------------------------------------- #
# Container
# --------------------------------------------------------------------------- #


class Container:
    """An open presentation package.

    Use as a context manager: the package is written back to ``path`` on
    exit whether or not the body raised, so slides added before a failure
    stay in the file.
    """

    def __init__(self, path: Path, parts: Dict[str, bytes]):
        self.path = path
        self._parts = parts
        self._xml: Dict[str, object] = {}
        self._rels: Dict[str, Relationships] = {}
        self._closed = False

        if str(CONTENT_TYPES_URI) not in parts:
            raise TemplateError(f"{path} has no [Content_Types].xml part")
        self.content_types = ContentTypes(self._load_xml(CONTENT_TYPES_URI))

        office_documents = self.rels(PACKAGE_URI).partnames_of_type(RT.OFFICE_DOCUMENT)
        if not office_documents or office_documents[0] not in parts:
            raise TemplateError(f"{path} has no presentation part")
        self.presentation_partname = office_documents[0]
        self.presentation = self._load_xml(self.presentation_partname)
        self.master_partname = self._first_master()
        self.layout_partname = self._first_layout()

    @classmethod
    def open(cls, path: Union[str, Path]) -> "Container":
        path = Path(path)
        try:
            with zipfile.ZipFile(path) as zf:
                parts = {
                    "/" + info.filename: zf.read(info)
                    for info in zf.infolist()
                    if not info.filename.endswith("/")
                }
        except FileNotFoundError as exc:
            raise TemplateError(f"presentation package not found: {path}") from exc
        except zipfile.BadZipFile as exc:
            raise TemplateError(f"not a zip package: {path}") from exc
        return cls(path, parts)

    def __enter__(self) -> "Container":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def has_part(self, partname: str) -> bool:
        lowered = partname.lower()
        return any(name.lower() == lowered for name in self._parts)

    def rels(self, source: PackURI) -> Relationships:
        if source not in self._rels:
            rels_uri = source.rels_uri
            if rels_uri in self._parts:
                self._rels[source] = Relationships(source, self._load_xml(rels_uri))
            else:
                rels = Relationships.new(source)
                self._xml[rels_uri] = rels.element
                self._rels[source] = rels
        return self._rels[source]

    def slide_ids(self) -> List[int]:
        lst = self.presentation.find(qn("p:sldIdLst"))
        if lst is None:
            return []
        return [int(sld_id.get("id")) for sld_id in lst.iterchildren(qn("p:sldId"))]

    def presentation_relationship_ids(self) -> List[str]:
        return self.rels(self.presentation_partname).ids()

    def _load_xml(self, partname: str):
        if partname not in self._xml:
            try:
                self._xml[partname] = parse_xml(self._parts[partname])
            except etree.XMLSyntaxError as exc:
                raise TemplateError(f"{partname} in {self.path} is not well-formed XML: {exc}") from exc
        return self._xml[partname]

    def _first_master(self) -> PackURI:
        master_id = self.presentation.find("%s/%s" % (qn("p:sldMasterIdLst"), qn("p:sldMasterId")))
        if master_id is None:
            raise TemplateError(f"{self.path} has no slide master")
        partname = self.rels(self.presentation_partname).target_partname(master_id.get(qn("r:id")))
        if partname is None or partname not in self._parts:
            raise TemplateError(f"{self.path}: slide master part is missing")
        return partname

    def _first_layout(self) -> PackURI:
        master = self._load_xml(self.master_partname)
        layout_id = master.find("%s/%s" % (qn("p:sldLayoutIdLst"), qn("p:sldLayoutId")))
        if layout_id is None:
            raise TemplateError(f"{self.path} has no slide layout")
        partname = self.rels(self.master_partname).target_partname(layout_id.get(qn("r:id")))
        if partname is None or partname not in self._parts:
            raise TemplateError(f"{self.path}: slide layout part is missing")
        return partname

    def _next_partname(self, tmpl: str, *args: str) -> PackURI:
        n = 1
        while self.has_part(tmpl % ((n,) + args)):
            n += 1
        return PackURI(tmpl % ((n,) + args))

    # ------------------------------------------------------------------ #
    # Edits
    # ------------------------------------------------------------------ #

    def add_slide(self, relationship_id: str, slide_xml: bytes) -> PackURI:
        """Register a slide part related from the presentation as
        ``relationship_id`` and sharing the template's first layout."""
        rels = self.rels(self.presentation_partname)
        if relationship_id in rels.ids():
            raise ValueError(f"relationship id {relationship_id} is already used by the presentation")

        partname = self._next_partname(SLIDE_PARTNAME_TMPL)
        self._parts[partname] = slide_xml
        self.content_types.add_override(partname, CT.PML_SLIDE)
        rels.add(relationship_id, RT.SLIDE, partname)

        slide_rels = self.rels(partname)
        slide_rels.add(slide_rels.next_id(), RT.SLIDE_LAYOUT, self.layout_partname)
        return partname

    def add_image(
        self, slide_partname: PackURI, relationship_id: str, blob: bytes, ext: str, content_type: str
    ) -> PackURI:
        partname = self._next_partname(IMAGE_PARTNAME_TMPL, ext)
        self._parts[partname] = blob
        self.content_types.add_for_extension(partname, content_type)
        self.rels(slide_partname).add(relationship_id, RT.IMAGE, partname)
        return partname

    def append_slide_id(self, slide_id: int, relationship_id: str) -> None:
        sld_id_lst = self.presentation.get_or_add_sldIdLst()
        sld_id = etree.SubElement(sld_id_lst, qn("p:sldId"))
        sld_id.set("id", str(slide_id))
        sld_id.set(qn("r:id"), relationship_id)

    # ------------------------------------------------------------------ #
    # Persistence
    # ------------------------------------------------------------------ #

    def save(self) -> None:
        for partname, element in self._xml.items():
            self._parts[partname] = serialize_xml(element)

        ordered = [str(CONTENT_TYPES_URI)] + [name for name in self._parts if name != str(CONTENT_TYPES_URI)]
        with zipfile.ZipFile(self.path, "w", zipfile.ZIP_DEFLATED) as zf:
            for partname in ordered:
                zf.writestr(posixpath.relpath(partname, "/"), self._parts[partname])
        logger.debug("Wrote %d parts to %s", len(ordered), self.path)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.save()
