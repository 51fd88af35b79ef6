"""Legend resolution — remote GetLegendGraphic requests with a static fallback.

For each active layer the resolver walks an ordered list of candidate
GetLegendGraphic URLs. The first candidate that returns a decodable image
of at least MIN_LEGEND_PIXELS in both dimensions wins. Many WMS servers
answer with a 1x1 transparent pixel instead of an error, so tiny images
count as failures. When every candidate fails the hand-authored table from
the catalog is used, and when there is none a placeholder is shown.

Resolution never raises: the panel must always render.
"""

from __future__ import annotations

import asyncio
import base64
import html
import io
from dataclasses import dataclass
from typing import Callable, Union

import httpx
from loguru import logger
from PIL import Image

from mapcore.errors import LegendFetchFailure, NoLegendAvailable
from mapcore.layers.catalog import STATIC_LEGENDS
from mapcore.layers.descriptor import LayerDescriptor, LegendEntry
from mapcore.layers.registry import legend_url

MIN_LEGEND_PIXELS = 5
FETCH_TIMEOUT = 5.0
NO_LEGEND_MESSAGE = "Legend not available from service"

_USER_AGENT = "criteria-map/0.1.0"


@dataclass(frozen=True)
class RemoteImageLegend:
    """Legend image fetched from the layer's service."""

    url: str
    width: int
    height: int
    data_uri: str
    kind: str = "image"


@dataclass(frozen=True)
class StaticTableLegend:
    """Hand-authored swatch list, in configured order."""

    entries: tuple[LegendEntry, ...]
    kind: str = "table"


@dataclass(frozen=True)
class PlaceholderLegend:
    """Layer is active but no legend could be found."""

    message: str = NO_LEGEND_MESSAGE
    kind: str = "placeholder"


LegendContent = Union[RemoteImageLegend, StaticTableLegend, PlaceholderLegend]


@dataclass(frozen=True)
class LegendPanelItem:
    """One block of the legend panel."""

    layer_id: str
    title: str
    content: LegendContent


def legend_candidates(descriptor: LayerDescriptor) -> list[str]:
    """Ordered GetLegendGraphic URLs to try for a descriptor.

    1. The descriptor's own protocol version (1.3.0 when unset).
    2. WMS 1.1.1, for servers that only implement the older SLD extension.
    3. WMS 1.3.0 with explicit 20x20 symbol size hints.

    A URL already in the list is not repeated, so a layer pinned to 1.1.1
    gets two candidates.
    """
    candidates: list[str] = []
    for url in (
        legend_url(descriptor),
        legend_url(descriptor, version="1.1.1"),
        legend_url(descriptor, version="1.3.0", width=20, height=20),
    ):
        if url not in candidates:
            candidates.append(url)
    return candidates


class LegendResolver:
    """Runs the legend cascade for one descriptor at a time.

    Args:
        static_legends: Fallback tables keyed by layer id.
        client: Shared AsyncClient. When None a client is opened per candidate.
        timeout: Deadline per candidate, in seconds.
        min_pixels: Images narrower or shorter than this are rejected.
        user_agent: User-Agent header sent with every request.
    """

    def __init__(
        self,
        static_legends: dict[str, tuple[LegendEntry, ...]] | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = FETCH_TIMEOUT,
        min_pixels: int = MIN_LEGEND_PIXELS,
        user_agent: str = _USER_AGENT,
    ) -> None:
        self.static_legends = STATIC_LEGENDS if static_legends is None else static_legends
        self.timeout = timeout
        self.min_pixels = min_pixels
        self._client = client
        self._headers = {"User-Agent": user_agent, "Accept": "image/png, image/*;q=0.8"}

    async def resolve(self, descriptor: LayerDescriptor) -> LegendContent:
        for url in legend_candidates(descriptor):
            try:
                return await self._fetch_candidate(url)
            except LegendFetchFailure as e:
                logger.debug(f"Legend candidate failed for {descriptor.layer_id}: {e}")

        try:
            return self._static_table(descriptor.layer_id)
        except NoLegendAvailable:
            logger.debug(f"No legend for {descriptor.layer_id}, using placeholder")
            return PlaceholderLegend()

    def _static_table(self, layer_id: str) -> StaticTableLegend:
        entries = self.static_legends.get(layer_id)
        if not entries:
            raise NoLegendAvailable(layer_id)
        return StaticTableLegend(entries=tuple(entries))

    async def _fetch_candidate(self, url: str) -> RemoteImageLegend:
        """Fetch and decode one candidate.

        Raises:
            LegendFetchFailure: On any network error, timeout, HTTP error
                status, undecodable payload or degenerate image.
        """
        try:
            resp = await asyncio.wait_for(self._get(url), timeout=self.timeout)
            resp.raise_for_status()
        except asyncio.TimeoutError:
            raise LegendFetchFailure(url, f"timed out after {self.timeout:.1f}s") from None
        except httpx.HTTPError as e:
            raise LegendFetchFailure(url, f"fetch failed: {e}") from e

        try:
            with Image.open(io.BytesIO(resp.content)) as img:
                # size comes from the header; load() decodes the pixel data
                img.load()
                width, height = img.size
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            raise LegendFetchFailure(url, f"not a decodable image: {e}") from e

        if width < self.min_pixels or height < self.min_pixels:
            raise LegendFetchFailure(url, f"degenerate {width}x{height} image")

        content_type = resp.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            content_type = "image/png"
        encoded = base64.b64encode(resp.content).decode("ascii")
        return RemoteImageLegend(
            url=url,
            width=width,
            height=height,
            data_uri=f"data:{content_type};base64,{encoded}",
        )

    async def _get(self, url: str) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, headers=self._headers, timeout=self.timeout)
        async with httpx.AsyncClient(follow_redirects=True) as client:
            return await client.get(url, headers=self._headers, timeout=self.timeout)


class LegendPanel:
    """The legend panel: one item per active layer, in activation order.

    Each refresh resolves all layers concurrently. A refresh that finishes
    after a newer one has started is discarded, so the panel always reflects
    the most recent active set.
    """

    def __init__(self, resolver: LegendResolver) -> None:
        self.resolver = resolver
        self._items: list[LegendPanelItem] = []
        self._generation = 0
        self._listeners: list[Callable[[LegendPanel], None]] = []

    @property
    def items(self) -> list[LegendPanelItem]:
        return list(self._items)

    @property
    def visible(self) -> bool:
        """The panel is hidden while no layer is active."""
        return bool(self._items)

    def ids(self) -> list[str]:
        return [item.layer_id for item in self._items]

    def on_change(self, listener: Callable[[LegendPanel], None]) -> None:
        """Register a callback invoked after every applied refresh."""
        self._listeners.append(listener)

    async def refresh(self, descriptors: list[LayerDescriptor]) -> list[LegendPanelItem]:
        self._generation += 1
        generation = self._generation
        descriptors = list(descriptors)

        contents = await asyncio.gather(*(self._resolve_one(d) for d in descriptors))

        if generation != self._generation:
            logger.debug(f"Discarding stale legend refresh #{generation}")
            return self.items

        self._items = [
            LegendPanelItem(layer_id=d.layer_id, title=d.label, content=content)
            for d, content in zip(descriptors, contents)
        ]
        for listener in self._listeners:
            listener(self)
        return self.items

    async def _resolve_one(self, descriptor: LayerDescriptor) -> LegendContent:
        try:
            return await self.resolver.resolve(descriptor)
        except Exception as e:
            logger.warning(f"Legend resolution crashed for {descriptor.layer_id}: {e}")
            return PlaceholderLegend()

    def to_html(self) -> str:
        """Render the panel as an HTML fragment."""
        if not self._items:
            return '<div id="legend" class="legend hidden"></div>'

        parts = ['<div id="legend" class="legend">', "<h4>Legend</h4>"]
        for item in self._items:
            parts.append(
                f'<div class="legend-item" data-layer-id="{html.escape(item.layer_id)}">'
                f'<div class="legend-item-title">{html.escape(item.title)}</div>'
            )
            parts.append(_content_html(item))
            parts.append("</div>")
        parts.append("</div>")
        return "".join(parts)


def _content_html(item: LegendPanelItem) -> str:
    content = item.content
    if isinstance(content, RemoteImageLegend):
        return (
            f'<img src="{content.data_uri}" alt="Legend for {html.escape(item.title)}" '
            'style="max-width:100%;height:auto;display:block;margin-top:4px">'
        )
    if isinstance(content, StaticTableLegend):
        rows = "".join(
            '<div class="legend-row" style="display:flex;align-items:center;margin-bottom:3px">'
            f'<span class="legend-swatch" style="width:20px;height:12px;background:{html.escape(e.color)};'
            'border:1px solid #999;margin-right:6px;flex-shrink:0"></span>'
            f"<span>{html.escape(e.label)}</span></div>"
            for e in content.entries
        )
        return f'<div class="legend-table" style="font-size:11px;margin-top:4px">{rows}</div>'
    return (
        '<div class="legend-placeholder" style="font-size:11px;color:#999;font-style:italic">'
        f"{html.escape(content.message)}</div>"
    )
