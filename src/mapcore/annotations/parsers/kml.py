"""Parse KML 2.2 XML into a FeatureCollection using xml.etree.ElementTree.

Handles Placemark/Point, LineString, Polygon (with holes) and MultiGeometry.
A MultiGeometry whose members are all one kind becomes the matching Multi*
type; mixed members become a GeometryCollection.
Extracts name, description and ExtendedData values as properties, and inline
styles (IconStyle/LineStyle/PolyStyle).
KML coordinate format: "lng,lat,alt lng,lat,alt" (longitude first).
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from mapcore.annotations.feature import (
    GEOMETRY_COLLECTION,
    LINE_STRING,
    MULTI_LINE_STRING,
    MULTI_POINT,
    MULTI_POLYGON,
    POINT,
    POLYGON,
    AnnotationFeature,
    FeatureCollection,
)
from mapcore.errors import ParseError

_MULTI_OF = {POINT: MULTI_POINT, LINE_STRING: MULTI_LINE_STRING, POLYGON: MULTI_POLYGON}


def parse_kml(kml_text: str | bytes) -> FeatureCollection:
    """Parse KML text straight into a FeatureCollection.

    Raises:
        ParseError: If the text is not well-formed XML.
    """
    return convert_document(parse_document(kml_text))


def parse_document(kml_text: str | bytes) -> ET.Element:
    """Parse KML text into an element tree root.

    Raises:
        ParseError: If the text is not well-formed XML.
    """
    try:
        return ET.fromstring(kml_text)
    except ET.ParseError as e:
        raise ParseError(f"Malformed KML: {e}") from e


def convert_document(root: ET.Element) -> FeatureCollection:
    """Convert a parsed KML tree into a FeatureCollection."""
    ns = _detect_namespace(root)

    doc_name = ""
    doc = root.find(f"{ns}Document")
    if doc is None and root.tag == f"{ns}Document":
        doc = root
    if doc is not None:
        doc_name = _get_text(doc, "name", ns)

    features: list[AnnotationFeature] = []
    for idx, pm in enumerate(root.iter(f"{ns}Placemark")):
        feature = _parse_placemark(pm, ns, idx)
        if feature is not None:
            features.append(feature)

    return FeatureCollection(name=doc_name, features=features)


def _detect_namespace(root: ET.Element) -> str:
    """Detect KML namespace prefix ("{uri}" or "") from the root tag."""
    tag = root.tag
    if tag.startswith("{"):
        return tag.split("}")[0] + "}"
    return ""


def _parse_placemark(pm: ET.Element, ns: str, idx: int) -> AnnotationFeature | None:
    """Parse a single Placemark element. Returns None if it has no geometry."""
    properties = _parse_extended_data(pm, ns)
    name = _get_text(pm, "name", ns)
    description = _get_text(pm, "description", ns)
    if name:
        properties["name"] = name
    if description:
        properties["description"] = description

    geometry = None
    for child in pm:
        geometry = _parse_geometry(child, ns)
        if geometry is not None:
            break
    if geometry is None:
        return None

    geometry_type, coordinates = geometry
    style = _parse_style(pm, ns)
    return AnnotationFeature(
        feature_id=pm.get("id") or f"kml-{idx}",
        geometry_type=geometry_type,
        coordinates=coordinates,
        properties=properties,
        style=style or None,
    )


def _parse_geometry(elem: ET.Element, ns: str) -> tuple[str, list] | None:
    """Parse one geometry element into (geometry_type, coordinates)."""
    tag = elem.tag
    if tag == f"{ns}Point":
        coords = _parse_coordinates_list(elem, ns)
        return (POINT, coords[0]) if coords else None

    if tag == f"{ns}LineString":
        coords = _parse_coordinates_list(elem, ns)
        return (LINE_STRING, coords) if len(coords) >= 2 else None

    if tag == f"{ns}Polygon":
        rings = _parse_polygon_rings(elem, ns)
        return (POLYGON, rings) if rings else None

    if tag == f"{ns}MultiGeometry":
        return _parse_multi_geometry(elem, ns)

    return None


def _parse_multi_geometry(elem: ET.Element, ns: str) -> tuple[str, list] | None:
    members: list[tuple[str, list]] = []
    for child in elem:
        parsed = _parse_geometry(child, ns)
        if parsed is None:
            continue
        child_type, child_coords = parsed
        if child_type in _MULTI_OF.values():
            # Nested MultiGeometry: flatten into its single parts
            single = next(k for k, v in _MULTI_OF.items() if v == child_type)
            members.extend((single, part) for part in child_coords)
        elif child_type == GEOMETRY_COLLECTION:
            members.extend((m["type"], m["coordinates"]) for m in child_coords)
        else:
            members.append(parsed)

    if not members:
        return None

    kinds = {kind for kind, _ in members}
    if len(kinds) == 1:
        kind = kinds.pop()
        return _MULTI_OF[kind], [coords for _, coords in members]
    return GEOMETRY_COLLECTION, [
        {"type": kind, "coordinates": coords} for kind, coords in members
    ]


def _find_child(parent: ET.Element, tag: str, ns: str) -> ET.Element | None:
    """Find a direct or nested child element by tag."""
    return parent.find(f".//{ns}{tag}")


def _get_text(parent: ET.Element, tag: str, ns: str) -> str:
    """Text of a direct child element, stripped."""
    elem = parent.find(f"{ns}{tag}")
    if elem is not None and elem.text:
        return elem.text.strip()
    return ""


def _parse_coordinate_string(coord_str: str) -> list[list[float]]:
    """Parse KML coordinate string: 'lng,lat,alt lng,lat,alt ...'

    Returns list of [lng, lat, alt] arrays. Malformed tuples are skipped.
    """
    coords = []
    for token in coord_str.strip().split():
        parts = token.strip().split(",")
        if len(parts) >= 2:
            try:
                lng = float(parts[0])
                lat = float(parts[1])
                alt = float(parts[2]) if len(parts) >= 3 and parts[2] else 0.0
                coords.append([lng, lat, alt])
            except ValueError:
                continue
    return coords


def _parse_coordinates_list(geom_elem: ET.Element, ns: str) -> list[list[float]]:
    coord_elem = geom_elem.find(f"{ns}coordinates")
    if coord_elem is None or not coord_elem.text:
        return []
    return _parse_coordinate_string(coord_elem.text)


def _parse_polygon_rings(polygon_elem: ET.Element, ns: str) -> list[list[list[float]]]:
    """Parse polygon rings: outer boundary first, then holes.

    A polygon without a usable outer boundary yields no rings.
    """
    rings = []

    outer = polygon_elem.find(f"{ns}outerBoundaryIs")
    if outer is not None:
        linear_ring = _find_child(outer, "LinearRing", ns)
        if linear_ring is not None:
            coords = _parse_coordinates_list(linear_ring, ns)
            if len(coords) >= 3:
                rings.append(coords)
    if not rings:
        return []

    for inner in polygon_elem.findall(f"{ns}innerBoundaryIs"):
        linear_ring = _find_child(inner, "LinearRing", ns)
        if linear_ring is not None:
            coords = _parse_coordinates_list(linear_ring, ns)
            if len(coords) >= 3:
                rings.append(coords)

    return rings


def _parse_extended_data(pm: ET.Element, ns: str) -> dict[str, str]:
    """Flatten ExtendedData/Data and SchemaData/SimpleData into a dict."""
    props: dict[str, str] = {}
    extended = pm.find(f"{ns}ExtendedData")
    if extended is None:
        return props

    for data in extended.iter(f"{ns}Data"):
        key = data.get("name")
        value = _get_text(data, "value", ns)
        if key:
            props[key] = value
    for simple in extended.iter(f"{ns}SimpleData"):
        key = simple.get("name")
        if key:
            props[key] = (simple.text or "").strip()
    return props


def kml_color_to_hex(kml_color: str) -> tuple[str, float] | None:
    """Convert a KML aabbggrr color to ("#rrggbb", opacity)."""
    value = kml_color.strip().lstrip("#")
    if len(value) != 8:
        return None
    try:
        alpha = int(value[0:2], 16) / 255.0
    except ValueError:
        return None
    blue, green, red = value[2:4], value[4:6], value[6:8]
    return f"#{red}{green}{blue}".lower(), round(alpha, 3)


def _parse_style(pm: ET.Element, ns: str) -> dict:
    """Parse the inline Style element of a Placemark."""
    style_elem = pm.find(f"{ns}Style")
    if style_elem is None:
        return {}

    style: dict = {}

    icon_style = style_elem.find(f"{ns}IconStyle")
    if icon_style is not None:
        color = kml_color_to_hex(_get_text(icon_style, "color", ns))
        if color:
            style["markerColor"] = color[0]

    line_style = style_elem.find(f"{ns}LineStyle")
    if line_style is not None:
        color = kml_color_to_hex(_get_text(line_style, "color", ns))
        if color:
            style["color"] = color[0]
        width_str = _get_text(line_style, "width", ns)
        if width_str:
            try:
                style["lineWidth"] = float(width_str)
            except ValueError:
                pass

    poly_style = style_elem.find(f"{ns}PolyStyle")
    if poly_style is not None:
        color = kml_color_to_hex(_get_text(poly_style, "color", ns))
        if color:
            style["fillColor"], style["fillOpacity"] = color

    return style
