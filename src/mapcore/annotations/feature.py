"""AnnotationFeature, FeatureCollection and BoundingBox.

All coordinates are stored in GeoJSON convention: [lng, lat] or [lng, lat, alt].
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Iterator

POINT = "Point"
LINE_STRING = "LineString"
POLYGON = "Polygon"
MULTI_POINT = "MultiPoint"
MULTI_LINE_STRING = "MultiLineString"
MULTI_POLYGON = "MultiPolygon"
GEOMETRY_COLLECTION = "GeometryCollection"


@dataclass
class AnnotationFeature:
    """A single feature read from an annotation file.

    Attributes:
        feature_id: Unique identifier within its collection.
        geometry_type: GeoJSON geometry type name.
        coordinates: GeoJSON-style coordinate arrays.
            Point: [lng, lat, alt]
            LineString: [[lng, lat, alt], ...]
            Polygon: [[[lng, lat, alt], ...], ...]  (outer ring, then holes)
            Multi*: a list of the single-geometry arrays above.
            GeometryCollection: list of {"type": ..., "coordinates": ...} dicts.
        properties: Flat string properties (name, description, ExtendedData).
        style: Optional rendering hints (color, lineWidth, fillColor).
    """

    feature_id: str
    geometry_type: str
    coordinates: list
    properties: dict[str, str]
    style: dict | None = None

    @property
    def name(self) -> str:
        return self.properties.get("name", "")

    @property
    def description(self) -> str:
        return self.properties.get("description", "")

    def to_geojson(self) -> dict:
        if self.geometry_type == GEOMETRY_COLLECTION:
            geometry = {"type": GEOMETRY_COLLECTION, "geometries": self.coordinates}
        else:
            geometry = {"type": self.geometry_type, "coordinates": self.coordinates}
        return {
            "type": "Feature",
            "id": self.feature_id,
            "geometry": geometry,
            "properties": dict(self.properties),
        }


@dataclass
class FeatureCollection:
    """An ordered set of annotation features with the document name."""

    name: str
    features: list[AnnotationFeature] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[AnnotationFeature]:
        return iter(self.features)

    def to_geojson(self) -> dict:
        return {
            "type": "FeatureCollection",
            "name": self.name,
            "features": [f.to_geojson() for f in self.features],
        }


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned lat/lng box, south-west to north-east, in degrees."""

    south: float
    west: float
    north: float
    east: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lng <= self.east

    @property
    def is_degenerate(self) -> bool:
        """True when the box spans no extent at all (a single point)."""
        return self.north <= self.south and self.east <= self.west

    def union(self, other: BoundingBox) -> BoundingBox:
        return BoundingBox(
            south=min(self.south, other.south),
            west=min(self.west, other.west),
            north=max(self.north, other.north),
            east=max(self.east, other.east),
        )

    def to_leaflet(self) -> list[list[float]]:
        """[[south, west], [north, east]] as Leaflet and folium expect."""
        return [[self.south, self.west], [self.north, self.east]]

    @classmethod
    def around(cls, positions: Iterable[list[float]]) -> BoundingBox | None:
        """Smallest box around [lng, lat, ...] positions, None if empty."""
        lats: list[float] = []
        lngs: list[float] = []
        for pos in positions:
            lngs.append(pos[0])
            lats.append(pos[1])
        if not lats:
            return None
        return cls(south=min(lats), west=min(lngs), north=max(lats), east=max(lngs))


def iter_positions(geometry_type: str, coordinates: list) -> Iterator[list[float]]:
    """Yield every [lng, lat, ...] position of a geometry."""
    if geometry_type == POINT:
        if coordinates:
            yield coordinates
    elif geometry_type in (LINE_STRING, MULTI_POINT):
        yield from coordinates
    elif geometry_type in (POLYGON, MULTI_LINE_STRING):
        for ring in coordinates:
            yield from ring
    elif geometry_type == MULTI_POLYGON:
        for polygon in coordinates:
            for ring in polygon:
                yield from ring
    elif geometry_type == GEOMETRY_COLLECTION:
        for member in coordinates:
            yield from iter_positions(member["type"], member["coordinates"])
