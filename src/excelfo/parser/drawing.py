from __future__ import annotations

import logging
import mimetypes
from xml.etree import ElementTree as ET
from zipfile import ZipFile

from ..model import AnchorPoint, EmbeddedPicture
from .namespaces import DOCUMENT_REL_NS, DRAWING_MAIN_NS, PACKAGE_REL_NS, SHEET_DRAWING_NS
from .utils import local_name, parse_int, rels_path_for, resolve_target

logger = logging.getLogger(__name__)

ANCHOR_TAGS = {"twoCellAnchor", "oneCellAnchor", "absoluteAnchor"}
OBJECT_TAGS = {"sp", "cxnSp", "pic", "grpSp", "graphicFrame"}


def parse_pictures_for_drawing(
    zip_file: ZipFile,
    drawing_path: str,
    content_types: dict[str, str],
) -> list[EmbeddedPicture]:
    """Collect the raster pictures of one drawing part in document order."""
    root = ET.fromstring(zip_file.read(drawing_path))
    rel_map = _load_relationship_map(zip_file, rels_path_for(drawing_path))

    pictures: list[EmbeddedPicture] = []
    for anchor in list(root):
        anchor_tag = local_name(anchor.tag)
        if anchor_tag not in ANCHOR_TAGS:
            logger.debug("Skipping drawing element %s in %s", anchor_tag, drawing_path)
            continue

        anchor_from, anchor_to, position, extent = _parse_anchor(anchor, anchor_tag)
        for child in list(anchor):
            child_tag = local_name(child.tag)
            if child_tag not in OBJECT_TAGS:
                continue
            if child_tag == "grpSp":
                # group children are positioned in the group's own coordinate space
                logger.debug("Skipping grouped drawing objects in %s", drawing_path)
                continue
            if child_tag != "pic":
                logger.debug("Ignoring non-picture drawing object %s in %s", child_tag, drawing_path)
                continue

            media = _extract_picture(zip_file, drawing_path, child, rel_map, content_types)
            if media is None:
                logger.debug("Picture without embedded media in %s", drawing_path)
                continue

            media_path, content_type, payload = media
            pictures.append(
                EmbeddedPicture(
                    name=_extract_name(child),
                    anchor_type=anchor_tag,
                    anchor_from=anchor_from,
                    anchor_to=anchor_to,
                    media_path=media_path,
                    content_type=content_type,
                    data=payload,
                    position=position,
                    extent=extent,
                )
            )
    return pictures


def _load_relationship_map(zip_file: ZipFile, rels_path: str) -> dict[str, str]:
    if rels_path not in zip_file.namelist():
        return {}
    root = ET.fromstring(zip_file.read(rels_path))
    rel_map: dict[str, str] = {}
    for rel in root.findall(f"{{{PACKAGE_REL_NS}}}Relationship"):
        rel_id = rel.attrib.get("Id")
        target = rel.attrib.get("Target")
        if not rel_id or not target:
            continue
        rel_map[rel_id] = target
    return rel_map


def _parse_anchor(
    anchor: ET.Element,
    anchor_tag: str,
) -> tuple[AnchorPoint | None, AnchorPoint | None, tuple[int, int], tuple[int, int]]:
    anchor_from = _parse_anchor_point(anchor.find(f"{{{SHEET_DRAWING_NS}}}from"))
    anchor_to = None
    if anchor_tag == "twoCellAnchor":
        anchor_to = _parse_anchor_point(anchor.find(f"{{{SHEET_DRAWING_NS}}}to"))

    pos = anchor.find(f"{{{SHEET_DRAWING_NS}}}pos")
    ext = anchor.find(f"{{{SHEET_DRAWING_NS}}}ext")
    position = (
        parse_int(pos.attrib.get("x"), 0) if pos is not None else 0,
        parse_int(pos.attrib.get("y"), 0) if pos is not None else 0,
    )
    extent = (
        parse_int(ext.attrib.get("cx"), 0) if ext is not None else 0,
        parse_int(ext.attrib.get("cy"), 0) if ext is not None else 0,
    )
    return anchor_from, anchor_to, position, extent


def _parse_anchor_point(elem: ET.Element | None) -> AnchorPoint | None:
    if elem is None:
        return None
    return AnchorPoint(
        col=parse_int(elem.findtext(f"{{{SHEET_DRAWING_NS}}}col"), 0),
        row=parse_int(elem.findtext(f"{{{SHEET_DRAWING_NS}}}row"), 0),
        col_off=parse_int(elem.findtext(f"{{{SHEET_DRAWING_NS}}}colOff"), 0),
        row_off=parse_int(elem.findtext(f"{{{SHEET_DRAWING_NS}}}rowOff"), 0),
    )


def _extract_name(element: ET.Element) -> str:
    c_nv_pr = element.find(f"{{{SHEET_DRAWING_NS}}}nvPicPr/{{{SHEET_DRAWING_NS}}}cNvPr")
    if c_nv_pr is None:
        return ""
    return c_nv_pr.attrib.get("name", "")


def _extract_picture(
    zip_file: ZipFile,
    drawing_path: str,
    pic_element: ET.Element,
    rel_map: dict[str, str],
    content_types: dict[str, str],
) -> tuple[str, str, bytes] | None:
    blip = pic_element.find(f".//{{{DRAWING_MAIN_NS}}}blip")
    if blip is None:
        return None

    rel_id = blip.attrib.get(f"{{{DOCUMENT_REL_NS}}}embed")
    if not rel_id:
        return None

    target = rel_map.get(rel_id)
    if not target:
        return None

    media_path = resolve_target(drawing_path, target)
    if media_path not in zip_file.namelist():
        logger.warning("Missing picture media part: %s", media_path)
        return None

    return media_path, _guess_content_type(media_path, content_types), zip_file.read(media_path)


def _guess_content_type(path: str, content_types: dict[str, str]) -> str:
    normalized = "/" + path if not path.startswith("/") else path
    if normalized in content_types:
        return content_types[normalized]
    guessed, _ = mimetypes.guess_type(path)
    return guessed or "application/octet-stream"
