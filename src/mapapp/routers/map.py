"""Map router — criteria catalog, layer toggles, legend panel, annotations.

The browser page (served by mapapp.main) posts toggles here; every toggle goes
through the ToggleEvents dispatcher so toggles are applied one at a time and
the legend in the response always matches the active layers.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from loguru import logger
from pydantic import BaseModel

from mapcore.errors import UnknownLayer
from mapcore.layers.legend import (
    LegendPanel,
    LegendPanelItem,
    RemoteImageLegend,
    StaticTableLegend,
)

router = APIRouter(prefix="/api/map", tags=["map"])


# ---------------------------------------------------------------------------
# Request / Response models
# ---------------------------------------------------------------------------

class ToggleRequest(BaseModel):
    """Turn a layer on or off."""
    on: bool


class LayerModel(BaseModel):
    id: str
    label: str
    attribution: str
    active: bool


class CriterionModel(BaseModel):
    key: str
    label: str
    layers: list[LayerModel]


class LegendEntryModel(BaseModel):
    color: str
    label: str


class LegendItemModel(BaseModel):
    """One block of the legend panel."""
    layer_id: str
    title: str
    kind: str  # "image", "table" or "placeholder"
    image: Optional[str] = None   # data: URI of the fetched legend graphic
    source_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    entries: list[LegendEntryModel] = []
    message: Optional[str] = None


class LegendResponse(BaseModel):
    visible: bool
    items: list[LegendItemModel]


class ToggleResponse(BaseModel):
    layer_id: str
    on: bool
    changed: bool
    active: list[str]
    legend: LegendResponse


class AnnotationStatus(BaseModel):
    state: str
    history: list[str]
    document: str
    total_features: int
    feature_count: int
    error: Optional[str] = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail="Map engine not initialized")
    return value


def _legend_item(item: LegendPanelItem) -> LegendItemModel:
    content = item.content
    model = LegendItemModel(layer_id=item.layer_id, title=item.title, kind=content.kind)
    if isinstance(content, RemoteImageLegend):
        model.image = content.data_uri
        model.source_url = content.url
        model.width = content.width
        model.height = content.height
    elif isinstance(content, StaticTableLegend):
        model.entries = [LegendEntryModel(color=e.color, label=e.label) for e in content.entries]
    else:
        model.message = content.message
    return model


def _legend(panel: LegendPanel) -> LegendResponse:
    return LegendResponse(
        visible=panel.visible,
        items=[_legend_item(item) for item in panel.items],
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get("/criteria", response_model=list[CriterionModel])
async def list_criteria(request: Request):
    """All criteria with their layers and whether each is on the map."""
    controller = _state(request, "controller")
    return [
        CriterionModel(
            key=group.key,
            label=group.label,
            layers=[
                LayerModel(
                    id=d.layer_id,
                    label=d.label,
                    attribution=d.options.attribution,
                    active=controller.is_active(d.layer_id),
                )
                for d in group.members
            ],
        )
        for group in controller.registry.all_groups()
    ]


@router.post("/layers/{layer_id}/toggle", response_model=ToggleResponse)
async def toggle_layer(layer_id: str, body: ToggleRequest, request: Request):
    """Turn one layer on or off. Idempotent."""
    controller = _state(request, "controller")
    events = _state(request, "toggle_events")

    was_active = controller.is_active(layer_id)
    try:
        await events.dispatch(layer_id, body.on)
    except UnknownLayer as e:
        logger.warning(f"Toggle rejected: {e}")
        raise HTTPException(status_code=404, detail=str(e))

    return ToggleResponse(
        layer_id=layer_id,
        on=body.on,
        changed=was_active != controller.is_active(layer_id),
        active=controller.active_ids(),
        legend=_legend(controller.legend_panel),
    )


@router.post("/layers/clear", response_model=ToggleResponse)
async def clear_layers(request: Request):
    """Turn every layer off."""
    controller = _state(request, "controller")
    removed = await controller.clear()
    return ToggleResponse(
        layer_id="*",
        on=False,
        changed=bool(removed),
        active=controller.active_ids(),
        legend=_legend(controller.legend_panel),
    )


@router.get("/layers/active", response_model=list[str])
async def active_layers(request: Request):
    return _state(request, "controller").active_ids()


@router.get("/legend", response_model=LegendResponse)
async def get_legend(request: Request):
    return _legend(_state(request, "controller").legend_panel)


@router.get("/annotations", response_model=AnnotationStatus)
async def annotation_status(request: Request):
    """Outcome of the startup annotation import."""
    result = getattr(request.app.state, "annotations", None)
    if result is None:
        return AnnotationStatus(
            state="disabled", history=[], document="",
            total_features=0, feature_count=0,
        )
    return AnnotationStatus(
        state=result.state.value,
        history=[s.value for s in result.history],
        document=result.document_name,
        total_features=result.total_features,
        feature_count=result.feature_count,
        error=result.error_message,
    )
