"""Rendering adapter on top of folium (Leaflet).

MapView owns the folium Map, the base maps, the legend element and the
current viewport. FoliumRenderer turns layer descriptors into WMS overlay
handles and annotation features into a feature-group handle. Handles attach
to and detach from a MapView; the map is only turned into HTML when the page
is requested.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterator

import folium
from branca.element import Element
from folium.map import FitBounds
from folium.raster_layers import TileLayer, WmsTileLayer
from loguru import logger

from mapcore.annotations.feature import (
    GEOMETRY_COLLECTION,
    LINE_STRING,
    MULTI_LINE_STRING,
    MULTI_POINT,
    MULTI_POLYGON,
    POINT,
    POLYGON,
    AnnotationFeature,
    BoundingBox,
    FeatureCollection,
    iter_positions,
)
from mapcore.errors import UnsupportedProtocol
from mapcore.layers.catalog import BASE_LAYERS
from mapcore.layers.descriptor import LayerDescriptor, Protocol

# Center on Opheusden (approximate)
DEFAULT_CENTER = (51.933, 5.633)
DEFAULT_ZOOM = 12
FIT_PADDING = 20

# Leaflet's WMS default when a layer does not pin a version
TILE_DEFAULT_VERSION = "1.1.1"

LEGEND_CSS = """
<style>
  #legend { position: fixed; bottom: 24px; right: 12px; z-index: 900;
            background: white; padding: 8px 10px; border-radius: 4px;
            box-shadow: 0 1px 4px rgba(0,0,0,0.3); max-width: 260px;
            max-height: 60vh; overflow-y: auto; font: 12px sans-serif; }
  #legend.hidden { display: none; }
  #legend h4 { margin: 0 0 6px 0; }
  .legend-item { margin-bottom: 8px; }
  .legend-item-title { font-weight: bold; }
</style>
"""


@dataclass(frozen=True)
class Viewport:
    """What the map is showing: either center/zoom or fitted bounds."""

    center: tuple[float, float]
    zoom: int
    bounds: BoundingBox | None = None
    padding: int = 0


# ---------------------------------------------------------------------------
# Element tree access
#
# branca has no public API to detach an element or to drop rendered output.
# Children live in Element._children, an OrderedDict keyed by get_name(), and
# every render writes each element's script into Figure.script under that
# name. Checked against folium 0.15 to 0.20 with branca 0.7 to 0.8; all
# access to those internals stays in the three helpers below.
# ---------------------------------------------------------------------------

def _has_child(parent: Element, element: Element) -> bool:
    return element.get_name() in parent._children


def _remove_child(parent: Element, element: Element) -> bool:
    removed = parent._children.pop(element.get_name(), None) is not None
    if removed:
        element._parent = None
    return removed


def _clear_children(parent: Element) -> None:
    parent._children.clear()


def _base_layer(cfg: dict) -> TileLayer | WmsTileLayer:
    if cfg["type"] == "wms":
        return WmsTileLayer(
            url=cfg["url"],
            layers=cfg["layers"],
            fmt=cfg.get("format", "image/png"),
            transparent=cfg.get("transparent", False),
            version=cfg.get("version", TILE_DEFAULT_VERSION),
            attr=cfg.get("attribution", ""),
            name=cfg["name"],
            overlay=False,
            control=True,
            show=cfg.get("show", False),
        )
    return TileLayer(
        tiles=cfg["url"],
        attr=cfg.get("attribution", ""),
        name=cfg["name"],
        max_zoom=cfg.get("max_zoom", 19),
        overlay=False,
        control=True,
        show=cfg.get("show", False),
    )


class MapView:
    """The one map of the application."""

    def __init__(
        self,
        center: tuple[float, float] = DEFAULT_CENTER,
        zoom: int = DEFAULT_ZOOM,
        base_layers: list[dict] | None = None,
    ) -> None:
        self.default_center = (float(center[0]), float(center[1]))
        self.default_zoom = zoom
        self.map = folium.Map(
            location=list(self.default_center),
            zoom_start=zoom,
            tiles=None,
            control_scale=True,
        )
        for cfg in BASE_LAYERS if base_layers is None else base_layers:
            _base_layer(cfg).add_to(self.map)

        self._layer_control = folium.LayerControl(collapsed=True)
        self._fit: FitBounds | None = None
        self._legend: Element | None = None
        self.map.get_root().header.add_child(Element(LEGEND_CSS))
        self.viewport = Viewport(center=self.default_center, zoom=zoom)

    # -- layers --------------------------------------------------------------

    def add(self, element: Element) -> None:
        element.add_to(self.map)

    def remove(self, element: Element) -> bool:
        return _remove_child(self.map, element)

    def contains(self, element: Element) -> bool:
        return _has_child(self.map, element)

    # -- viewport ------------------------------------------------------------

    def fit_bounds(self, bbox: BoundingBox, padding: int = FIT_PADDING) -> None:
        self._clear_fit()
        self._fit = FitBounds(bbox.to_leaflet(), padding=(padding, padding))
        self.map.add_child(self._fit)
        center = ((bbox.south + bbox.north) / 2, (bbox.west + bbox.east) / 2)
        self.viewport = Viewport(center=center, zoom=self.viewport.zoom, bounds=bbox, padding=padding)

    def reset_view(self) -> None:
        self._clear_fit()
        self.viewport = Viewport(center=self.default_center, zoom=self.default_zoom)

    @property
    def is_default_view(self) -> bool:
        return self.viewport == Viewport(center=self.default_center, zoom=self.default_zoom)

    def _clear_fit(self) -> None:
        if self._fit is not None:
            _remove_child(self.map, self._fit)
            self._fit = None

    # -- page ----------------------------------------------------------------

    def set_legend_html(self, fragment: str) -> None:
        """Replace the legend panel shown on the page."""
        html_root = self.map.get_root().html
        if self._legend is not None:
            _remove_child(html_root, self._legend)
        self._legend = Element(fragment)
        html_root.add_child(self._legend)

    def render_html(self) -> str:
        root = self.map.get_root()
        # Scripts from earlier renders would bring back detached layers
        _clear_children(root.script)
        # Layer control must come after every layer it lists
        _remove_child(self.map, self._layer_control)
        self.map.add_child(self._layer_control)
        return root.render()


# ---------------------------------------------------------------------------
# Handles
# ---------------------------------------------------------------------------

class OverlayHandle:
    """A remote tile overlay that can be put on and taken off a MapView."""

    def __init__(self, descriptor: LayerDescriptor, element: WmsTileLayer) -> None:
        self.descriptor = descriptor
        self.element = element

    def attach(self, map_view: MapView) -> None:
        if not map_view.contains(self.element):
            map_view.add(self.element)

    def detach(self, map_view: MapView) -> None:
        map_view.remove(self.element)

    def is_attached(self, map_view: MapView) -> bool:
        return map_view.contains(self.element)


class FeatureLayerHandle:
    """Rendered annotation features grouped under one folium FeatureGroup."""

    def __init__(self, group: folium.FeatureGroup, bbox: BoundingBox | None, count: int) -> None:
        self.element = group
        self.feature_count = count
        self._bbox = bbox

    def attach(self, map_view: MapView) -> None:
        if not map_view.contains(self.element):
            map_view.add(self.element)

    def detach(self, map_view: MapView) -> None:
        map_view.remove(self.element)

    def is_attached(self, map_view: MapView) -> bool:
        return map_view.contains(self.element)

    def bounding_box(self) -> BoundingBox | None:
        """Combined box of every rendered feature, None when empty."""
        return self._bbox


StyleFn = Callable[[AnnotationFeature], dict]
PopupFn = Callable[[AnnotationFeature], "str | None"]


class FoliumRenderer:
    """Builds folium elements for descriptors and annotation features.

    One overlay handle is created per layer id and reused, so toggling a
    layer off and on again re-attaches the same tile layer.
    """

    def __init__(self) -> None:
        self._overlays: dict[str, OverlayHandle] = {}

    def overlay_for(self, descriptor: LayerDescriptor) -> OverlayHandle:
        handle = self._overlays.get(descriptor.layer_id)
        if handle is None:
            handle = OverlayHandle(descriptor, self._wms_layer(descriptor))
            self._overlays[descriptor.layer_id] = handle
        return handle

    def _wms_layer(self, descriptor: LayerDescriptor) -> WmsTileLayer:
        if descriptor.protocol is not Protocol.WMS:
            raise UnsupportedProtocol(descriptor.layer_id, str(descriptor.protocol))
        opts = descriptor.options
        return WmsTileLayer(
            url=descriptor.base_url,
            layers=opts.layers,
            styles=opts.styles or "",
            fmt=opts.format,
            transparent=opts.transparent,
            version=opts.version or TILE_DEFAULT_VERSION,
            attr=opts.attribution,
            name=descriptor.label,
            overlay=True,
            control=True,
            show=True,
        )

    def feature_layer(
        self,
        collection: FeatureCollection,
        style_for: StyleFn,
        popup_for: PopupFn,
        name: str = "Annotations",
    ) -> FeatureLayerHandle:
        group = folium.FeatureGroup(name=collection.name or name, overlay=True, control=True)
        bbox: BoundingBox | None = None

        for feature in collection:
            style = style_for(feature)
            popup = popup_for(feature)
            for element in self._elements(feature.geometry_type, feature.coordinates, style, popup, feature.name):
                element.add_to(group)

            feature_box = BoundingBox.around(iter_positions(feature.geometry_type, feature.coordinates))
            if feature_box is not None:
                bbox = feature_box if bbox is None else bbox.union(feature_box)

        return FeatureLayerHandle(group, bbox, len(collection))

    def _elements(
        self,
        geometry_type: str,
        coordinates: list,
        style: dict,
        popup: str | None,
        tooltip: str,
    ) -> Iterator[Element]:
        if geometry_type == POINT:
            yield folium.Marker(
                location=_latlng(coordinates),
                popup=_popup(popup),
                tooltip=tooltip or None,
            )
        elif geometry_type == MULTI_POINT:
            for point in coordinates:
                yield from self._elements(POINT, point, style, popup, tooltip)
        elif geometry_type == LINE_STRING:
            yield folium.PolyLine(
                locations=[_latlng(c) for c in coordinates],
                color=style["color"],
                weight=style["weight"],
                popup=_popup(popup),
                tooltip=tooltip or None,
            )
        elif geometry_type == MULTI_LINE_STRING:
            for line in coordinates:
                yield from self._elements(LINE_STRING, line, style, popup, tooltip)
        elif geometry_type == POLYGON:
            yield folium.Polygon(
                locations=[[_latlng(c) for c in ring] for ring in coordinates],
                color=style["color"],
                weight=style["weight"],
                fill=True,
                fill_color=style["fill_color"],
                fill_opacity=style["fill_opacity"],
                popup=_popup(popup),
                tooltip=tooltip or None,
            )
        elif geometry_type == MULTI_POLYGON:
            for polygon in coordinates:
                yield from self._elements(POLYGON, polygon, style, popup, tooltip)
        elif geometry_type == GEOMETRY_COLLECTION:
            for member in coordinates:
                yield from self._elements(member["type"], member["coordinates"], style, popup, tooltip)
        else:
            logger.debug(f"No renderer for geometry type {geometry_type}")


def _latlng(position: list[float]) -> list[float]:
    """[lng, lat, ...] → [lat, lng]."""
    return [position[1], position[0]]


def _popup(content: str | None) -> folium.Popup | None:
    if not content:
        return None
    return folium.Popup(content, max_width=300)
