"""Query parameters and response parsing for ``comp=list`` calls."""

from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Callable
from typing import Any, TypeVar

import httpx

from .models import ListPage, normalize_marker
from .xmlutil import int_text, optional_text, parse_xml, text

T = TypeVar("T")


def list_params(
    *,
    prefix: str | None,
    marker: str | None,
    max_results: int | None,
    include_metadata: bool,
) -> dict[str, Any]:
    params: dict[str, Any] = {"comp": "list"}
    if prefix:
        params["prefix"] = prefix
    if marker:
        params["marker"] = marker
    if max_results is not None:
        params["maxresults"] = max_results
    if include_metadata:
        params["include"] = "metadata"
    return params


def parse_list_page(
    response: httpx.Response,
    collection: str,
    factory: Callable[[ET.Element], T],
    *,
    prefix: str | None,
    marker: str | None,
) -> ListPage[T]:
    """Build a page from an ``<EnumerationResults>`` document.

    ``collection`` is the path of the repeated element, e.g. ``Queues/Queue``.
    """
    root = parse_xml(response)
    max_results = int_text(root, "MaxResults", default=-1)
    return ListPage(
        prefix=text(root, "Prefix", prefix or ""),
        marker=optional_text(root, "Marker") or marker,
        max_results=max_results if max_results >= 0 else None,
        items=[factory(element) for element in root.iterfind(collection)],
        next_marker=normalize_marker(root.findtext("NextMarker")),
    )


__all__ = ["list_params", "parse_list_page"]
