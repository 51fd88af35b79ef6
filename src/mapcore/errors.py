"""Exception taxonomy for the overlay engine.

Only UnknownLayer and the IngestionError family are reported to callers.
The legend errors never leave the cascade in mapcore.layers.legend.
"""

from __future__ import annotations


class MapCoreError(Exception):
    """Base class for all overlay engine errors."""


class UnsupportedProtocol(MapCoreError, ValueError):
    """A layer configuration entry uses a protocol we cannot render."""

    def __init__(self, layer_id: str, protocol: str):
        self.layer_id = layer_id
        self.protocol = protocol
        super().__init__(f"Unsupported protocol {protocol!r} for layer {layer_id!r}")


class LayerNotFound(MapCoreError, KeyError):
    """Registry lookup for an id that was never configured."""

    def __init__(self, layer_id: str):
        self.layer_id = layer_id
        super().__init__(layer_id)

    def __str__(self) -> str:
        return f"Layer not found: {self.layer_id}"


class UnknownLayer(MapCoreError, KeyError):
    """Toggle requested for an id the registry does not know."""

    def __init__(self, layer_id: str):
        self.layer_id = layer_id
        super().__init__(layer_id)

    def __str__(self) -> str:
        return f"Unknown layer: {self.layer_id}"


class LegendFetchFailure(MapCoreError):
    """A single legend candidate could not be used."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason} ({url})")


class NoLegendAvailable(MapCoreError):
    """Neither a remote image nor a static table exists for a layer."""


# ---------------------------------------------------------------------------
# Annotation ingestion
# ---------------------------------------------------------------------------

class IngestionError(MapCoreError):
    """Terminal failure of an annotation pipeline run.

    Attributes:
        reason: Short machine-readable category, e.g. "FetchError".
        message: Human-readable detail.
    """

    reason = "IngestionError"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class FetchError(IngestionError):
    reason = "FetchError"


class ArchiveError(IngestionError):
    reason = "ArchiveError"


class NoMarkupDocument(IngestionError):
    reason = "NoMarkupDocument"


class ParseError(IngestionError):
    reason = "ParseError"


class RenderError(IngestionError):
    reason = "RenderError"
