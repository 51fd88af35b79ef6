"""ActiveLayerController — which overlays are on the map right now.

Owns the active layer set (insertion ordered, id → descriptor), attaches and
detaches overlays through the rendering adapter, and refreshes the legend
panel after every change so the panel never disagrees with the map.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import TYPE_CHECKING, Callable

from loguru import logger

from mapcore.errors import LayerNotFound, UnknownLayer
from mapcore.layers.descriptor import LayerDescriptor
from mapcore.layers.events import ToggleEvent, ToggleEvents
from mapcore.layers.legend import LegendPanel
from mapcore.layers.registry import LayerRegistry

if TYPE_CHECKING:
    from mapcore.render.folium_adapter import FoliumRenderer, MapView


class ActiveLayerController:
    """Mediates overlay add/remove and keeps the legend panel in sync."""

    def __init__(
        self,
        registry: LayerRegistry,
        renderer: FoliumRenderer,
        map_view: MapView,
        legend_panel: LegendPanel,
    ) -> None:
        self.registry = registry
        self.renderer = renderer
        self.map_view = map_view
        self.legend_panel = legend_panel
        self._active: dict[str, LayerDescriptor] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    def bind(self, events: ToggleEvents) -> Callable[[], None]:
        """Subscribe this controller to a ToggleEvents source."""

        async def _handle(event: ToggleEvent) -> None:
            await self.toggle(event.layer_id, event.on)

        return events.on_toggle(_handle)

    async def toggle(self, layer_id: str, on: bool) -> bool:
        """Turn a layer on or off.

        Args:
            layer_id: Descriptor id from the registry.
            on: Desired state.

        Returns:
            True if the active set changed, False if it already matched.

        Raises:
            UnknownLayer: If the id is not in the registry. Nothing changes.
        """
        try:
            descriptor = self.registry.resolve(layer_id)
        except LayerNotFound:
            raise UnknownLayer(layer_id) from None

        async with self._locks[layer_id]:
            if on == (layer_id in self._active):
                return False

            handle = self.renderer.overlay_for(descriptor)
            if on:
                handle.attach(self.map_view)
                self._active[layer_id] = descriptor
                logger.info(f"Layer on: {layer_id}")
            else:
                handle.detach(self.map_view)
                del self._active[layer_id]
                logger.info(f"Layer off: {layer_id}")

            await self.refresh_legend()
        return True

    async def clear(self) -> list[str]:
        """Remove every active layer. Returns the ids that were removed."""
        removed = list(self._active)
        for layer_id in removed:
            descriptor = self._active.pop(layer_id)
            self.renderer.overlay_for(descriptor).detach(self.map_view)
        if removed:
            logger.info(f"Cleared {len(removed)} active layers")
        await self.refresh_legend()
        return removed

    async def refresh_legend(self) -> None:
        await self.legend_panel.refresh(list(self._active.values()))

    def is_active(self, layer_id: str) -> bool:
        return layer_id in self._active

    def active_ids(self) -> list[str]:
        return list(self._active)

    def active_layers(self) -> list[LayerDescriptor]:
        return list(self._active.values())
