"""LayerDescriptor, CriterionGroup and LegendEntry dataclasses.

Descriptors are built once from plain configuration dicts and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from mapcore.errors import UnsupportedProtocol


class Protocol(str, Enum):
    """Remote tile protocols the rendering adapter understands."""

    WMS = "wms"


DEFAULT_WMS_VERSION = "1.3.0"


@dataclass(frozen=True)
class WMSOptions:
    """Protocol options for a WMS overlay.

    Attributes:
        layers: Layer name on the remote service (WMS LAYERS / LAYER).
        format: Image format requested from GetMap.
        transparent: Whether tiles are requested with a transparent background.
        version: WMS protocol version. None means the service default.
        styles: Optional named style.
        attribution: Attribution text shown by the map.
    """

    layers: str
    format: str = "image/png"
    transparent: bool = True
    version: str | None = None
    styles: str | None = None
    attribution: str = ""

    @classmethod
    def from_config(cls, options: dict) -> WMSOptions:
        return cls(
            layers=options["layers"],
            format=options.get("format", "image/png"),
            transparent=bool(options.get("transparent", True)),
            version=options.get("version"),
            styles=options.get("styles") or None,
            attribution=options.get("attribution", ""),
        )


@dataclass(frozen=True)
class LayerDescriptor:
    """How to fetch and render one remote map overlay.

    Attributes:
        layer_id: Unique, stable identifier.
        label: Display label.
        protocol: Source protocol.
        endpoint: Service base URL as configured (may carry a trailing '?').
        options: Protocol options.
    """

    layer_id: str
    label: str
    protocol: Protocol
    endpoint: str
    options: WMSOptions

    @property
    def base_url(self) -> str:
        """Endpoint with any query string removed."""
        return self.endpoint.split("?")[0]

    @classmethod
    def from_config(cls, entry: dict) -> LayerDescriptor:
        """Build a descriptor from a configuration dict.

        Raises:
            UnsupportedProtocol: If ``entry["type"]`` is not a known protocol.
        """
        layer_id = entry["id"]
        raw_type = str(entry.get("type", "")).lower()
        try:
            protocol = Protocol(raw_type)
        except ValueError:
            raise UnsupportedProtocol(layer_id, raw_type) from None
        return cls(
            layer_id=layer_id,
            label=entry.get("label", layer_id),
            protocol=protocol,
            endpoint=entry["url"],
            options=WMSOptions.from_config(entry.get("options", {})),
        )


@dataclass(frozen=True)
class CriterionGroup:
    """A thematic criterion and the layers shown under it."""

    key: str
    label: str
    members: tuple[LayerDescriptor, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class LegendEntry:
    """One swatch row of a hand-authored legend."""

    color: str
    label: str
