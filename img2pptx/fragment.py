"""Slide XML for a single full picture."""

from __future__ import annotations

from typing import Dict, Optional

from lxml import etree
from pptx.oxml import parse_xml
from pptx.oxml.ns import nsdecls, qn

from .geometry import PICTURE_OFFSET_EMU
from .identifiers import IMAGE_RELATIONSHIP_ID

GROUP_SHAPE_ID = 1
PICTURE_SHAPE_ID = 4


def _sub(parent, tag: str, attrs: Optional[Dict[str, str]] = None):
    # SubElement keeps the namespace declarations of the slide root in scope
    element = etree.SubElement(parent, qn(tag))
    for key, value in (attrs or {}).items():
        element.set(qn(key) if ":" in key else key, value)
    return element


def _xfrm(parent, x: int, y: int, cx: int, cy: int, child_frame: bool = False):
    xfrm = _sub(parent, "a:xfrm")
    _sub(xfrm, "a:off", {"x": str(x), "y": str(y)})
    _sub(xfrm, "a:ext", {"cx": str(cx), "cy": str(cy)})
    if child_frame:
        _sub(xfrm, "a:chOff", {"x": "0", "y": "0"})
        _sub(xfrm, "a:chExt", {"cx": "0", "cy": "0"})
    return xfrm


def build_slide_fragment(name: str, description: str, cx: int, cy: int):
    """Return the ``p:sld`` element showing one picture of ``cx`` x ``cy`` EMU.

    The picture fills from ``relId1``, the slide-local image relationship, and
    the slide defers to the master's color mapping.
    """
    sld = parse_xml(f"<p:sld {nsdecls('a', 'p', 'r')}/>")

    sp_tree = _sub(_sub(sld, "p:cSld"), "p:spTree")
    nv_grp = _sub(sp_tree, "p:nvGrpSpPr")
    _sub(nv_grp, "p:cNvPr", {"id": str(GROUP_SHAPE_ID), "name": ""})
    _sub(nv_grp, "p:cNvGrpSpPr")
    _sub(nv_grp, "p:nvPr")
    _xfrm(_sub(sp_tree, "p:grpSpPr"), 0, 0, 0, 0, child_frame=True)

    pic = _sub(sp_tree, "p:pic")
    nv_pic = _sub(pic, "p:nvPicPr")
    _sub(nv_pic, "p:cNvPr", {"id": str(PICTURE_SHAPE_ID), "name": name, "descr": description})
    _sub(_sub(nv_pic, "p:cNvPicPr"), "a:picLocks", {"noChangeAspect": "1"})
    _sub(nv_pic, "p:nvPr")

    blip_fill = _sub(pic, "p:blipFill")
    _sub(blip_fill, "a:blip", {"r:embed": IMAGE_RELATIONSHIP_ID})
    _sub(_sub(blip_fill, "a:stretch"), "a:fillRect")

    sp_pr = _sub(pic, "p:spPr")
    _xfrm(sp_pr, PICTURE_OFFSET_EMU, PICTURE_OFFSET_EMU, cx, cy)
    _sub(_sub(sp_pr, "a:prstGeom", {"prst": "rect"}), "a:avLst")

    _sub(_sub(sld, "p:clrMapOvr"), "a:masterClrMapping")
    return sld


def serialize_fragment(sld) -> bytes:
    return etree.tostring(sld, encoding="UTF-8", xml_declaration=True, standalone=True)
