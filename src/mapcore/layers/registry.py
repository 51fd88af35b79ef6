"""LayerRegistry — criteria groups and the layer descriptors behind them.

Read-only after construction. Building the registry never fails because of a
single bad entry: unsupported protocols are logged and skipped.
"""

from __future__ import annotations

from urllib.parse import urlencode

from loguru import logger

from mapcore.errors import LayerNotFound, UnsupportedProtocol
from mapcore.layers.catalog import CRITERIA, EXTENDED_CRITERIA
from mapcore.layers.descriptor import (
    DEFAULT_WMS_VERSION,
    CriterionGroup,
    LayerDescriptor,
)


class LayerRegistry:
    """Ordered criterion groups plus an id → descriptor index."""

    def __init__(self, groups: list[CriterionGroup] | tuple[CriterionGroup, ...]) -> None:
        self._groups: tuple[CriterionGroup, ...] = tuple(groups)
        self._by_id: dict[str, LayerDescriptor] = {}
        for group in self._groups:
            for descriptor in group.members:
                if descriptor.layer_id in self._by_id:
                    raise ValueError(f"Duplicate layer id: {descriptor.layer_id}")
                self._by_id[descriptor.layer_id] = descriptor

    @classmethod
    def from_config(
        cls,
        criteria: list[dict] | None = None,
        include_extended: bool = True,
    ) -> LayerRegistry:
        """Build a registry from criteria configuration dicts.

        Args:
            criteria: Group dicts with ``key``, ``label`` and ``layers``.
                Defaults to the bundled catalog.
            include_extended: Load the extended criteria set (transport,
                land use, cadastral, buildings).

        Returns:
            A populated LayerRegistry.
        """
        if criteria is None:
            criteria = CRITERIA

        groups: list[CriterionGroup] = []
        for group_cfg in criteria:
            key = group_cfg["key"]
            if not include_extended and key in EXTENDED_CRITERIA:
                continue

            members: list[LayerDescriptor] = []
            for entry in group_cfg.get("layers", []):
                try:
                    members.append(LayerDescriptor.from_config(entry))
                except UnsupportedProtocol as e:
                    logger.warning(f"Skipping layer in criterion '{key}': {e}")

            groups.append(CriterionGroup(
                key=key,
                label=group_cfg.get("label", key),
                members=tuple(members),
            ))

        registry = cls(groups)
        logger.info(
            f"Layer registry: {len(registry._groups)} criteria, "
            f"{len(registry._by_id)} layers"
        )
        return registry

    def all_groups(self) -> tuple[CriterionGroup, ...]:
        """All criterion groups in configured order."""
        return self._groups

    def resolve(self, layer_id: str) -> LayerDescriptor:
        """Look up a descriptor by id.

        Raises:
            LayerNotFound: If no layer with that id is configured.
        """
        try:
            return self._by_id[layer_id]
        except KeyError:
            raise LayerNotFound(layer_id) from None

    def ids(self) -> list[str]:
        return list(self._by_id)

    def __contains__(self, layer_id: object) -> bool:
        return layer_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)


def legend_url(
    descriptor: LayerDescriptor,
    version: str | None = None,
    width: int | None = None,
    height: int | None = None,
) -> str:
    """Build a WMS GetLegendGraphic URL for a descriptor.

    The endpoint's own query string (if any) is dropped. STYLE is only sent
    when the descriptor names a style; WIDTH/HEIGHT only when both are given.
    """
    params = {
        "SERVICE": "WMS",
        "VERSION": version or descriptor.options.version or DEFAULT_WMS_VERSION,
        "REQUEST": "GetLegendGraphic",
        "FORMAT": "image/png",
        "LAYER": descriptor.options.layers,
    }
    if descriptor.options.styles:
        params["STYLE"] = descriptor.options.styles
    if width is not None and height is not None:
        params["WIDTH"] = str(width)
        params["HEIGHT"] = str(height)
    return f"{descriptor.base_url}?{urlencode(params)}"
