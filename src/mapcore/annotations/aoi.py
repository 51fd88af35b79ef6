"""Area-of-interest filter for ingested annotation features.

A feature is judged by one representative coordinate:
  - Point: the point itself
  - Polygon: first coordinate of the first ring
  - MultiPolygon: first coordinate of the first ring of the first polygon
Any other geometry type is kept unconditionally.

Polygons crossing the boundary are kept or dropped depending only on
where their first vertex lies.
"""

from __future__ import annotations

from mapcore.annotations.feature import (
    MULTI_POLYGON,
    POINT,
    POLYGON,
    AnnotationFeature,
    BoundingBox,
    FeatureCollection,
)

# Opheusden and surroundings (Betuwe, Gelderland)
AREA_OF_INTEREST = BoundingBox(south=51.85, west=5.45, north=52.02, east=5.80)


def representative_coordinate(feature: AnnotationFeature) -> list[float] | None:
    """The [lng, lat, ...] used to test a feature, None for other types."""
    coords = feature.coordinates
    try:
        if feature.geometry_type == POINT:
            return coords
        if feature.geometry_type == POLYGON:
            return coords[0][0]
        if feature.geometry_type == MULTI_POLYGON:
            return coords[0][0][0]
    except (IndexError, TypeError):
        return None
    return None


def in_area(feature: AnnotationFeature, area: BoundingBox = AREA_OF_INTEREST) -> bool:
    if feature.geometry_type not in (POINT, POLYGON, MULTI_POLYGON):
        return True
    coord = representative_coordinate(feature)
    if not coord or len(coord) < 2:
        return False
    lng, lat = coord[0], coord[1]
    return area.contains(lat, lng)


def filter_to_area(
    collection: FeatureCollection,
    area: BoundingBox = AREA_OF_INTEREST,
) -> FeatureCollection:
    """Return a new collection holding only the features inside ``area``."""
    return FeatureCollection(
        name=collection.name,
        features=[f for f in collection.features if in_area(f, area)],
    )
