"""AnnotationPipeline — KMZ archive to a styled feature layer on the map.

    FETCHING → DECOMPRESSING → LOCATING → PARSING → CONVERTING
             → FILTERING → RENDERING → DONE

Any step may end the run in FAILED. A run is linear and cannot be restarted;
create a new pipeline to try again. The feature layer is attached to the map
only after every step has succeeded, so a failed run leaves nothing behind
and the map at its default view.
"""

from __future__ import annotations

import asyncio
import html
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

import httpx
from loguru import logger

from mapcore.annotations.aoi import AREA_OF_INTEREST, filter_to_area
from mapcore.annotations.archive import locate_markup_document, open_archive, read_entry
from mapcore.annotations.feature import AnnotationFeature, BoundingBox, FeatureCollection
from mapcore.annotations.parsers.kml import convert_document, parse_document
from mapcore.errors import FetchError, IngestionError, RenderError
from mapcore.render.folium_adapter import (
    FIT_PADDING,
    FeatureLayerHandle,
    FoliumRenderer,
    MapView,
)

FETCH_TIMEOUT = 30.0
FILL_OPACITY = 0.3
DEFAULT_COLOR = "#ff6600"

_USER_AGENT = "criteria-map/0.1.0"


class PipelineState(str, Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    DECOMPRESSING = "decompressing"
    LOCATING = "locating"
    PARSING = "parsing"
    CONVERTING = "converting"
    FILTERING = "filtering"
    RENDERING = "rendering"
    DONE = "done"
    FAILED = "failed"


@dataclass
class PipelineResult:
    """Outcome of one pipeline run.

    Attributes:
        state: DONE or FAILED.
        history: Every state entered, in order.
        failure: The terminal error when FAILED.
        document_name: Archive entry the features were read from.
        total_features: Features converted before filtering.
        layer: The installed feature layer when DONE.
    """

    state: PipelineState
    history: list[PipelineState] = field(default_factory=list)
    failure: IngestionError | None = None
    document_name: str = ""
    total_features: int = 0
    layer: FeatureLayerHandle | None = None

    @property
    def ok(self) -> bool:
        return self.state is PipelineState.DONE

    @property
    def feature_count(self) -> int:
        return self.layer.feature_count if self.layer is not None else 0

    @property
    def error_message(self) -> str | None:
        """Message for the user, None when the run succeeded."""
        if self.failure is None:
            return None
        return f"Could not load annotations: {self.failure.message}"


def annotation_style(feature: AnnotationFeature) -> dict:
    """Outline and semi-transparent fill, honouring inline KML colors."""
    style = feature.style or {}
    color = style.get("color") or style.get("fillColor") or DEFAULT_COLOR
    return {
        "color": color,
        "weight": style.get("lineWidth", 2),
        "fill_color": style.get("fillColor") or color,
        "fill_opacity": FILL_OPACITY,
    }


def annotation_popup(feature: AnnotationFeature) -> str | None:
    """Popup HTML: name, then description. None when both are empty."""
    parts = []
    if feature.name:
        parts.append(f"<strong>{html.escape(feature.name)}</strong>")
    if feature.description:
        parts.append(feature.description)
    return "<br>".join(parts) or None


class AnnotationPipeline:
    """One-shot ingestion of an annotation archive.

    Args:
        source: Filesystem path or http(s) URL of the KMZ archive.
        renderer: Rendering adapter that builds the feature layer.
        map_view: Map the layer is installed on.
        area: Area-of-interest filter box.
        client: Optional shared AsyncClient for URL sources.
    """

    def __init__(
        self,
        source: str | Path,
        renderer: FoliumRenderer,
        map_view: MapView,
        area: BoundingBox = AREA_OF_INTEREST,
        client: httpx.AsyncClient | None = None,
        fit_padding: int = FIT_PADDING,
    ) -> None:
        self.source = str(source)
        self.renderer = renderer
        self.map_view = map_view
        self.area = area
        self.fit_padding = fit_padding
        self._client = client
        self.state = PipelineState.PENDING
        self.history: list[PipelineState] = []
        self.result: PipelineResult | None = None

    async def run(self) -> PipelineResult:
        """Run every step once. Never raises for ingestion failures."""
        if self.result is not None:
            raise RuntimeError("AnnotationPipeline can only run once")

        result = PipelineResult(state=PipelineState.PENDING, history=self.history)
        try:
            self._enter(PipelineState.FETCHING)
            data = await self._fetch()

            self._enter(PipelineState.DECOMPRESSING)
            archive = open_archive(data)

            with archive:
                self._enter(PipelineState.LOCATING)
                result.document_name = locate_markup_document(archive)
                raw = read_entry(archive, result.document_name)

            self._enter(PipelineState.PARSING)
            root = parse_document(raw)

            self._enter(PipelineState.CONVERTING)
            collection = convert_document(root)
            result.total_features = len(collection)

            self._enter(PipelineState.FILTERING)
            collection = filter_to_area(collection, self.area)

            self._enter(PipelineState.RENDERING)
            layer = self._render(collection)

            self._install(layer)
            result.layer = layer
            self._enter(PipelineState.DONE)
            logger.info(
                f"Annotations loaded from {result.document_name}: "
                f"{layer.feature_count}/{result.total_features} features in area"
            )
        except IngestionError as e:
            self.map_view.reset_view()
            result.failure = e
            self._enter(PipelineState.FAILED)
            logger.warning(f"Annotation ingestion failed ({e.reason}) for {self.source}: {e.message}")

        result.state = self.state
        self.result = result
        return result

    def _enter(self, state: PipelineState) -> None:
        self.state = state
        self.history.append(state)

    async def _fetch(self) -> bytes:
        if self.source.startswith(("http://", "https://")):
            return await self._fetch_url(self.source)
        try:
            return await asyncio.to_thread(Path(self.source).expanduser().read_bytes)
        except OSError as e:
            raise FetchError(f"Cannot read {self.source}: {e}") from e

    async def _fetch_url(self, url: str) -> bytes:
        headers = {"User-Agent": _USER_AGENT}
        try:
            if self._client is not None:
                resp = await self._client.get(url, headers=headers, timeout=FETCH_TIMEOUT)
            else:
                async with httpx.AsyncClient(follow_redirects=True) as client:
                    resp = await client.get(url, headers=headers, timeout=FETCH_TIMEOUT)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            raise FetchError(f"Download of {url} failed: {e}") from e
        return resp.content

    def _render(self, collection: FeatureCollection) -> FeatureLayerHandle:
        try:
            return self.renderer.feature_layer(collection, annotation_style, annotation_popup)
        except Exception as e:
            raise RenderError(f"Rendering {len(collection)} features failed: {e}") from e

    def _install(self, layer: FeatureLayerHandle) -> None:
        try:
            layer.attach(self.map_view)
        except Exception as e:
            layer.detach(self.map_view)
            raise RenderError(f"Could not add annotation layer to map: {e}") from e

        bbox = layer.bounding_box()
        if bbox is not None and not bbox.is_degenerate:
            self.map_view.fit_bounds(bbox, padding=self.fit_padding)
        else:
            self.map_view.reset_view()
