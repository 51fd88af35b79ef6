"""Annotation ingestion — KMZ/KML files overlaid on the criteria map.

The pipeline itself lives in mapcore.annotations.pipeline and is imported
from there; it depends on the rendering adapter.
"""

from mapcore.annotations.feature import AnnotationFeature, BoundingBox, FeatureCollection
from mapcore.annotations.parsers.kml import parse_kml

__all__ = ["AnnotationFeature", "BoundingBox", "FeatureCollection", "parse_kml"]
