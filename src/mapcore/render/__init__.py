from mapcore.render.folium_adapter import (
    FeatureLayerHandle,
    FoliumRenderer,
    MapView,
    OverlayHandle,
    Viewport,
)

__all__ = ["FeatureLayerHandle", "FoliumRenderer", "MapView", "OverlayHandle", "Viewport"]
