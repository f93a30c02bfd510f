"""Helpers for the XML documents exchanged with the blob and queue services."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping

import httpx

from ..errors import StorageResponseError

XML_CONTENT_TYPE = "application/xml"


def parse_xml(response: httpx.Response) -> ET.Element:
    """Parse a successful response body, reporting garbage as a protocol error."""
    try:
        return ET.fromstring(response.content)
    except ET.ParseError as exc:
        raise StorageResponseError(
            response, f"Malformed XML in response from {response.request.url.path}: {exc}"
        ) from exc


def text(element: ET.Element | None, path: str, default: str = "") -> str:
    if element is None:
        return default
    value = element.findtext(path)
    return value if value is not None else default


def optional_text(element: ET.Element | None, path: str) -> str | None:
    if element is None:
        return None
    value = element.findtext(path)
    return value or None


def int_text(element: ET.Element | None, path: str, default: int = 0) -> int:
    value = text(element, path)
    try:
        return int(value)
    except ValueError:
        return default


def bool_text(element: ET.Element | None, path: str) -> bool:
    return text(element, path).lower() == "true"


def to_bytes(root: ET.Element) -> bytes:
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def simple_document(root_tag: str, children: Mapping[str, str]) -> bytes:
    root = ET.Element(root_tag)
    for tag, value in children.items():
        ET.SubElement(root, tag).text = value
    return to_bytes(root)


__all__ = [
    "XML_CONTENT_TYPE",
    "parse_xml",
    "text",
    "optional_text",
    "int_text",
    "bool_text",
    "to_bytes",
    "simple_document",
]
