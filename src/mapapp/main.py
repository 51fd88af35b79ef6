"""Criteria Map — thematic overlays and site annotations.

Main FastAPI application.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from types import SimpleNamespace

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from loguru import logger

from mapapp.config import Settings, settings
from mapapp.routers.map import router as map_router
from mapcore.annotations.pipeline import AnnotationPipeline, PipelineResult
from mapcore.layers import (
    ActiveLayerController,
    LayerRegistry,
    LegendPanel,
    LegendResolver,
    ToggleEvents,
)
from mapcore.render import FoliumRenderer, MapView

VERSION = "0.1.0"


# ---------------------------------------------------------------------------
# Subsystem startup helpers
# ---------------------------------------------------------------------------

def create_map_engine(cfg: Settings, client: httpx.AsyncClient | None = None) -> SimpleNamespace:
    """Wire registry, renderer, map, legend panel and controller together."""
    registry = LayerRegistry.from_config(include_extended=cfg.include_extended_criteria)
    renderer = FoliumRenderer()
    map_view = MapView()

    resolver = LegendResolver(
        client=client,
        timeout=cfg.legend_fetch_timeout,
        min_pixels=cfg.legend_min_pixels,
        user_agent=cfg.user_agent,
    )
    panel = LegendPanel(resolver)
    panel.on_change(lambda p: map_view.set_legend_html(p.to_html()))
    map_view.set_legend_html(panel.to_html())

    controller = ActiveLayerController(registry, renderer, map_view, panel)
    events = ToggleEvents()
    controller.bind(events)

    return SimpleNamespace(
        registry=registry,
        renderer=renderer,
        map_view=map_view,
        controller=controller,
        toggle_events=events,
    )


async def _load_annotations(
    engine: SimpleNamespace,
    cfg: Settings,
    client: httpx.AsyncClient | None,
) -> PipelineResult | None:
    """Run the annotation pipeline once. Returns None when disabled."""
    if not cfg.annotation_source:
        logger.info("Annotations: no source configured")
        return None

    pipeline = AnnotationPipeline(
        cfg.annotation_source,
        engine.renderer,
        engine.map_view,
        client=client,
    )
    result = await pipeline.run()
    if not result.ok:
        logger.error(result.error_message)
    return result


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the map engine, import annotations, close HTTP on shutdown."""
    logger.info(f"{settings.app_name} v{VERSION} starting")

    client = httpx.AsyncClient(
        follow_redirects=True,
        headers={"User-Agent": settings.user_agent},
    )
    engine = create_map_engine(settings, client)
    app.state.map_view = engine.map_view
    app.state.controller = engine.controller
    app.state.toggle_events = engine.toggle_events
    app.state.annotations = await _load_annotations(engine, settings, client)

    logger.info(f"{settings.app_name} ready on {settings.host}:{settings.port}")

    yield

    await client.aclose()
    logger.info(f"{settings.app_name} shutting down...")


# Create FastAPI app
app = FastAPI(
    title="Criteria Map",
    description="Thematic map overlays with legends and site annotations",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(map_router)


@app.get("/", response_class=HTMLResponse)
async def root():
    """Serve the rendered map page."""
    map_view = getattr(app.state, "map_view", None)
    if map_view is None:
        return HTMLResponse(content="<h1>Criteria Map</h1><p>Map not initialized.</p>", status_code=503)
    return HTMLResponse(content=map_view.render_html())


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "operational",
        "version": VERSION,
        "system": settings.app_name,
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("mapapp.main:app", host=settings.host, port=settings.port, reload=settings.debug)
