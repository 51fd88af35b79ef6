"""Criteria overlay layers — registry, active-layer controller, legends.

Layers are remote WMS overlays grouped by thematic criterion. The controller
keeps the set of rendered overlays and the legend panel in agreement.
"""

from mapcore.layers.controller import ActiveLayerController
from mapcore.layers.descriptor import CriterionGroup, LayerDescriptor, LegendEntry
from mapcore.layers.events import ToggleEvent, ToggleEvents
from mapcore.layers.legend import LegendPanel, LegendResolver
from mapcore.layers.registry import LayerRegistry

__all__ = [
    "ActiveLayerController",
    "CriterionGroup",
    "LayerDescriptor",
    "LayerRegistry",
    "LegendEntry",
    "LegendPanel",
    "LegendResolver",
    "ToggleEvent",
    "ToggleEvents",
]
