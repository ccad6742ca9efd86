"""
apps.customizations.services.svg
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Allow-list sanitizer for uploaded SVG logos.

The markup is parsed twice: first with defusedxml, which refuses entity
expansion and external DTDs, then with lxml, whose tree is pruned down to
drawing elements and presentation attributes.  Scripts, foreign objects,
event handlers and references that leave the document are dropped; the
rest of the drawing is kept.

Public API
----------
sanitize_svg(content) -> bytes
UnsafeSvgError
"""
from __future__ import annotations

import re
from io import BytesIO

from defusedxml import DefusedXmlException
from defusedxml import ElementTree as DefusedET
from lxml import etree

_ALLOWED_ELEMENTS = frozenset(
    name.lower()
    for name in (
        # structure
        "svg", "g", "defs", "symbol", "use", "title", "desc",
        # shapes
        "circle", "ellipse", "line", "path", "polygon", "polyline", "rect",
        # text
        "text", "tspan", "textPath",
        # paint servers and masking
        "linearGradient", "radialGradient", "stop", "pattern", "clipPath", "mask", "marker",
        # filters
        "filter", "feBlend", "feColorMatrix", "feComponentTransfer", "feComposite",
        "feFlood", "feFuncA", "feFuncB", "feFuncG", "feFuncR", "feGaussianBlur",
        "feMerge", "feMergeNode", "feMorphology", "feOffset", "feDropShadow",
    )
)

_ALLOWED_ATTRIBUTES = frozenset(
    name.lower()
    for name in (
        "id", "class", "style", "lang", "space", "version", "baseProfile",
        # presentation
        "fill", "fill-opacity", "fill-rule", "stroke", "stroke-width", "stroke-linecap",
        "stroke-linejoin", "stroke-dasharray", "stroke-dashoffset", "stroke-miterlimit",
        "stroke-opacity", "opacity", "color", "display", "visibility", "overflow",
        "clip-path", "clip-rule", "mask", "filter", "stop-color", "stop-opacity",
        "flood-color", "flood-opacity",
        "font-family", "font-size", "font-style", "font-weight", "letter-spacing",
        "text-anchor", "dominant-baseline", "text-decoration",
        # geometry
        "x", "y", "x1", "y1", "x2", "y2", "cx", "cy", "r", "rx", "ry", "fx", "fy",
        "width", "height", "d", "points", "pathLength", "viewBox", "preserveAspectRatio",
        "transform",
        # references, same-document only
        "href",
        "gradientUnits", "gradientTransform", "spreadMethod", "offset",
        "patternUnits", "patternContentUnits", "patternTransform",
        "clipPathUnits", "maskUnits", "maskContentUnits",
        "markerUnits", "markerWidth", "markerHeight", "refX", "refY", "orient",
        # filter primitives
        "filterUnits", "primitiveUnits", "in", "in2", "result", "mode", "operator",
        "k1", "k2", "k3", "k4", "stdDeviation", "dx", "dy", "type", "values",
        "tableValues", "slope", "intercept", "amplitude", "exponent", "radius",
    )
)

_DANGEROUS_VALUE = re.compile(r"javascript:|vbscript:|data:|expression\s*\(", re.IGNORECASE)
_EXTERNAL_URL = re.compile(r"url\s*\(\s*(?![\"']?#)[^)]*\)", re.IGNORECASE)
_STYLE_BLOCKLIST = re.compile(r"(expression\s*\([^)]*\)|-moz-binding\s*:[^;]*|behavior\s*:[^;]*)", re.IGNORECASE)


class UnsafeSvgError(ValueError):
    """The upload is not a well-formed SVG document, or cannot be made safe."""


def _local(name: str) -> str:
    return etree.QName(name).localname if name.startswith("{") else name


def _clean_attributes(element: etree._Element) -> None:
    for name, value in list(element.attrib.items()):
        local = _local(name).lower()
        if local.startswith("on") or local not in _ALLOWED_ATTRIBUTES or _DANGEROUS_VALUE.search(value):
            del element.attrib[name]
        elif local == "href" and not value.strip().startswith("#"):
            del element.attrib[name]
        elif local == "style":
            element.attrib[name] = _STYLE_BLOCKLIST.sub("", _EXTERNAL_URL.sub("", value)).strip()


def _prune(element: etree._Element) -> None:
    _clean_attributes(element)
    for child in list(element):
        if not isinstance(child.tag, str) or _local(child.tag).lower() not in _ALLOWED_ELEMENTS:
            element.remove(child)
        else:
            _prune(child)


def sanitize_svg(content: bytes) -> bytes:
    """
    Return *content* with everything outside the allow-list removed.

    Raises:
        UnsafeSvgError: If the markup is malformed, uses entities or DTDs,
            or its root element is not ``<svg>``.
    """
    try:
        DefusedET.fromstring(content)
    except (DefusedET.ParseError, DefusedXmlException) as exc:
        raise UnsafeSvgError(f"Malformed or unsafe XML: {exc}") from exc

    parser = etree.XMLParser(
        remove_comments=True,
        remove_pis=True,
        strip_cdata=True,
        resolve_entities=False,
        no_network=True,
    )
    try:
        root = etree.parse(BytesIO(content), parser).getroot()
    except etree.XMLSyntaxError as exc:
        raise UnsafeSvgError(f"Malformed XML: {exc}") from exc

    if _local(root.tag).lower() != "svg":
        raise UnsafeSvgError("The document root is not an <svg> element.")

    _prune(root)
    return etree.tostring(root, encoding="utf-8", xml_declaration=True)
