"""Static criteria configuration, hand-authored legends and base maps.

All services are PDOK (Dutch national geodata) WMS endpoints. The first four
criteria form the base set; the rest are only loaded when the extended
criteria set is enabled.
"""

from __future__ import annotations

from mapcore.layers.descriptor import LegendEntry

_TOP10NL = "https://service.pdok.nl/brt/top10nl/wms/v1_0"
_KADASTER = "https://service.pdok.nl/kadaster/kadastralekaart/wms/v5_0"

BASE_CRITERIA = ("flood", "soil", "ecology", "heritage")
EXTENDED_CRITERIA = ("transport", "landuse", "cadastral", "buildings")

# ---------------------------------------------------------------------------
# Criteria → layers
# ---------------------------------------------------------------------------

CRITERIA: list[dict] = [
    {
        "key": "flood",
        "label": "Flood risk (ROR)",
        "layers": [
            {
                "id": "flood_riskzone",
                "label": "RiskZone – Overstromingen (ROR)",
                "type": "wms",
                "url": "https://service.pdok.nl/rws/overstromingen-risicogebied/wms/v1_0",
                "options": {
                    "layers": "NZ.RiskZone",
                    "format": "image/png",
                    "transparent": True,
                    "version": "1.3.0",
                    "attribution": (
                        "Rijkswaterstaat / PDOK – Gebieden met natuurrisico's"
                        " - Overstromingen - Risicogebied (ROR)"
                    ),
                },
            },
        ],
    },
    {
        "key": "soil",
        "label": "Soil & foundation (BRO Bodemkaart)",
        "layers": [
            {
                "id": "soil_bro_bodemkaart",
                "label": "BRO Bodemkaart – Soil areas",
                "type": "wms",
                "url": "https://service.pdok.nl/bzk/bro-bodemkaart/wms/v1_0?",
                "options": {
                    "layers": "soilarea",
                    "format": "image/png",
                    "transparent": True,
                    "attribution": "BRO Bodemkaart (SGM) – PDOK",
                },
            },
        ],
    },
    {
        "key": "ecology",
        "label": "Ecology / Natura 2000",
        "layers": [
            {
                "id": "natura2000",
                "label": "Natura 2000 areas",
                "type": "wms",
                "url": "https://service.pdok.nl/rvo/natura2000/wms/v1_0",
                "options": {
                    "layers": "natura2000:lnv_natura2000",
                    "format": "image/png",
                    "transparent": True,
                    "version": "1.3.0",
                    "attribution": "RVO / PDOK – Beschermde Gebieden Natura 2000",
                },
            },
        ],
    },
    {
        "key": "heritage",
        "label": "Cultural-historical / heritage",
        "layers": [
            {
                "id": "heritage_cultuurhistorie",
                "label": "Protected cultural sites (Rijksmonumenten, etc.)",
                "type": "wms",
                "url": "https://service.pdok.nl/rce/beschermde-gebieden-cultuurhistorie/wms/v1_0?",
                "options": {
                    "layers": "PS.ProtectedSite",
                    "format": "image/png",
                    "transparent": True,
                    "attribution": "RCE / PDOK – Beschermde Gebieden Cultuurhistorie",
                },
            },
        ],
    },
    {
        "key": "transport",
        "label": "Transport & Accessibility",
        "layers": [
            {
                "id": "roads_top10nl",
                "label": "Road network (TOP10NL)",
                "type": "wms",
                "url": _TOP10NL,
                "options": {
                    "layers": "wegdeel_hartlijn",
                    "format": "image/png",
                    "transparent": True,
                    "version": "1.3.0",
                    "attribution": "Kadaster / PDOK – TOP10NL",
                },
            },
            {
                "id": "railways",
                "label": "Railway network",
                "type": "wms",
                "url": _TOP10NL,
                "options": {
                    "layers": "spoorbaandeel_hartlijn",
                    "format": "image/png",
                    "transparent": True,
                    "version": "1.3.0",
                    "attribution": "Kadaster / PDOK – TOP10NL",
                },
            },
        ],
    },
    {
        "key": "landuse",
        "label": "Land use & Zoning",
        "layers": [
            {
                "id": "bbg_landuse",
                "label": "Land use (Bestand Bodemgebruik 2015)",
                "type": "wms",
                "url": "https://service.pdok.nl/cbs/bbg/2015/wms/v1_0",
                "options": {
                    "layers": "bbg_2015",
                    "format": "image/png",
                    "transparent": True,
                    "version": "1.3.0",
                    "attribution": "CBS / PDOK – Bestand Bodemgebruik 2015",
                },
            },
            {
                "id": "top10nl_terrain",
                "label": "Terrain types (TOP10NL)",
                "type": "wms",
                "url": _TOP10NL,
                "options": {
                    "layers": "terrein_vlak",
                    "format": "image/png",
                    "transparent": True,
                    "version": "1.3.0",
                    "attribution": "Kadaster / PDOK – TOP10NL Terrain",
                },
            },
        ],
    },
    {
        "key": "cadastral",
        "label": "Land ownership & Parcels",
        "layers": [
            {
                "id": "brk_percelen",
                "label": "Cadastral parcels (BRK)",
                "type": "wms",
                "url": _KADASTER,
                "options": {
                    "layers": "Perceel",
                    "format": "image/png",
                    "transparent": True,
                    "version": "1.3.0",
                    "attribution": "Kadaster / PDOK – Kadastralekaart",
                },
            },
            {
                "id": "brk_borders",
                "label": "Cadastral boundaries",
                "type": "wms",
                "url": _KADASTER,
                "options": {
                    "layers": "kadastralegrens",
                    "format": "image/png",
                    "transparent": True,
                    "version": "1.3.0",
                    "attribution": "Kadaster / PDOK – Kadastralekaart",
                },
            },
        ],
    },
    {
        "key": "buildings",
        "label": "Buildings & Built Environment",
        "layers": [
            {
                "id": "bag_panden",
                "label": "Buildings (BAG Panden)",
                "type": "wms",
                "url": "https://service.pdok.nl/lv/bag/wms/v2_0",
                "options": {
                    "layers": "pand",
                    "format": "image/png",
                    "transparent": True,
                    "version": "1.3.0",
                    "attribution": "Kadaster / PDOK – BAG",
                },
            },
        ],
    },
]


# ---------------------------------------------------------------------------
# Fallback legends, keyed by layer id
# ---------------------------------------------------------------------------

def _entries(*pairs: tuple[str, str]) -> tuple[LegendEntry, ...]:
    return tuple(LegendEntry(color, label) for color, label in pairs)


STATIC_LEGENDS: dict[str, tuple[LegendEntry, ...]] = {
    "flood_riskzone": _entries(
        ("#0066CC", "High flood risk area"),
        ("#3399FF", "Medium flood risk area"),
        ("#99CCFF", "Low flood risk area"),
    ),
    "soil_bro_bodemkaart": _entries(
        ("#8B4513", "Clay soils"),
        ("#DEB887", "Sandy soils"),
        ("#F4A460", "Peat soils"),
        ("#D2691E", "Loamy soils"),
        ("#CD853F", "Mixed soils"),
    ),
    "natura2000": _entries(
        ("#228B22", "Natura 2000 protected area"),
        ("#90EE90", "Buffer zone"),
    ),
    "heritage_cultuurhistorie": _entries(
        ("#8B008B", "Protected monument"),
        ("#BA55D3", "Protected cityscape"),
        ("#DA70D6", "Archaeological site"),
    ),
    "roads_top10nl": _entries(
        ("#FF0000", "Highway"),
        ("#FFA500", "Main road"),
        ("#FFD700", "Regional road"),
        ("#FFFF00", "Local road"),
    ),
    "railways": _entries(
        ("#000000", "Railway line"),
        ("#666666", "Tram line"),
    ),
    "bbg_landuse": _entries(
        ("#FF0000", "Residential area"),
        ("#800080", "Industrial/commercial"),
        ("#00FF00", "Agriculture"),
        ("#006400", "Forest"),
        ("#0000FF", "Water"),
        ("#FFFF00", "Recreation"),
        ("#808080", "Infrastructure"),
    ),
    "top10nl_terrain": _entries(
        ("#90EE90", "Grassland"),
        ("#228B22", "Forest/woodland"),
        ("#8B4513", "Agricultural land"),
        ("#87CEEB", "Water bodies"),
        ("#D3D3D3", "Built-up area"),
    ),
    "brk_percelen": _entries(("#FF69B4", "Cadastral parcel boundary")),
    "brk_borders": _entries(("#FF1493", "Cadastral border")),
    "bag_panden": _entries(("#A0522D", "Building footprint")),
}


# ---------------------------------------------------------------------------
# Base maps (background, mutually exclusive in the layer control)
# ---------------------------------------------------------------------------

BASE_LAYERS: list[dict] = [
    {
        "name": "OpenStreetMap",
        "type": "xyz",
        "url": "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png",
        "max_zoom": 19,
        "attribution": "&copy; OpenStreetMap contributors",
        "show": True,
    },
    {
        "name": "Aerial Photo (2023)",
        "type": "wms",
        "url": "https://service.pdok.nl/hwh/luchtfotorgb/wms/v1_0",
        "layers": "2023_orthoHR",
        "format": "image/png",
        "transparent": False,
        "version": "1.3.0",
        "attribution": "PDOK – Actuele Luchtfoto",
        "show": False,
    },
    {
        "name": "Topographic Map",
        "type": "xyz",
        "url": (
            "https://service.pdok.nl/brt/achtergrondkaart/wmts/v2_0/"
            "standaard/EPSG:3857/{z}/{x}/{y}.png"
        ),
        "max_zoom": 19,
        "attribution": "Kadaster / PDOK – BRT Achtergrondkaart",
        "show": False,
    },
]
