"""Tests for the legend cascade and the legend panel."""

import asyncio
import io
from urllib.parse import parse_qs, urlsplit

import httpx
import pytest
from PIL import Image

from mapcore.layers import LayerDescriptor, LayerRegistry, LegendPanel, LegendResolver
from mapcore.layers.catalog import STATIC_LEGENDS
from mapcore.layers.legend import (
    NO_LEGEND_MESSAGE,
    PlaceholderLegend,
    RemoteImageLegend,
    StaticTableLegend,
    legend_candidates,
)


def _descriptor(layer_id="x", **options):
    opts = {"layers": "L", "version": "1.3.0"}
    opts.update(options)
    return LayerDescriptor.from_config({
        "id": layer_id,
        "label": layer_id.upper(),
        "type": "wms",
        "url": "https://wms.example.com/ows",
        "options": opts,
    })


def _params(request_or_url):
    url = str(request_or_url.url) if isinstance(request_or_url, httpx.Request) else request_or_url
    return {k: v[0] for k, v in parse_qs(urlsplit(url).query).items()}


@pytest.mark.unit
class TestLegendCandidates:

    def test_three_candidates_in_order(self):
        urls = legend_candidates(_descriptor())
        params = [_params(u) for u in urls]
        assert [p["VERSION"] for p in params] == ["1.3.0", "1.1.1", "1.3.0"]
        assert "WIDTH" not in params[0]
        assert "WIDTH" not in params[1]
        assert params[2]["WIDTH"] == "20"
        assert params[2]["HEIGHT"] == "20"

    def test_pinned_older_version_not_requested_twice(self):
        urls = legend_candidates(_descriptor(version="1.1.1"))
        params = [_params(u) for u in urls]
        assert len(urls) == len(set(urls)) == 2
        assert [p["VERSION"] for p in params] == ["1.1.1", "1.3.0"]
        assert params[1]["WIDTH"] == "20"

    def test_style_carried_into_every_candidate(self):
        urls = legend_candidates(_descriptor(styles="s1"))
        assert all(_params(u)["STYLE"] == "s1" for u in urls)


@pytest.mark.unit
class TestLegendResolver:
    """Remote candidates first, then the static table, then a placeholder."""

    @pytest.mark.anyio
    async def test_first_usable_candidate_wins(self, mock_client, png_bytes):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, content=png_bytes(40, 20), headers={"content-type": "image/png"})

        resolver = LegendResolver(client=mock_client(handler))
        legend = await resolver.resolve(_descriptor())

        assert isinstance(legend, RemoteImageLegend)
        assert (legend.width, legend.height) == (40, 20)
        assert legend.data_uri.startswith("data:image/png;base64,")
        assert len(seen) == 1
        assert _params(seen[0])["REQUEST"] == "GetLegendGraphic"

    @pytest.mark.anyio
    async def test_one_pixel_image_rejected_and_next_tried(self, mock_client, png_bytes):
        seen = []

        def handler(request):
            seen.append(_params(request))
            if _params(request)["VERSION"] == "1.3.0":
                return httpx.Response(200, content=png_bytes(1, 1))
            return httpx.Response(200, content=png_bytes(30, 30))

        resolver = LegendResolver(client=mock_client(handler))
        legend = await resolver.resolve(_descriptor())

        assert isinstance(legend, RemoteImageLegend)
        assert _params(legend.url)["VERSION"] == "1.1.1"
        assert len(seen) == 2

    @pytest.mark.anyio
    async def test_error_statuses_advance_to_size_hinted_candidate(self, mock_client, png_bytes):
        def handler(request):
            params = _params(request)
            if "WIDTH" in params:
                return httpx.Response(200, content=png_bytes(20, 20))
            if params["VERSION"] == "1.3.0":
                return httpx.Response(500)
            return httpx.Response(404)

        resolver = LegendResolver(client=mock_client(handler))
        legend = await resolver.resolve(_descriptor())

        assert isinstance(legend, RemoteImageLegend)
        assert _params(legend.url)["WIDTH"] == "20"

    @pytest.mark.anyio
    async def test_static_table_when_all_candidates_fail(self, offline_client):
        soil = LayerRegistry.from_config().resolve("soil_bro_bodemkaart")
        resolver = LegendResolver(client=offline_client)
        legend = await resolver.resolve(soil)

        assert isinstance(legend, StaticTableLegend)
        assert [e.label for e in legend.entries] == [
            "Clay soils", "Sandy soils", "Peat soils", "Loamy soils", "Mixed soils",
        ]
        assert legend.entries == STATIC_LEGENDS["soil_bro_bodemkaart"]

    @pytest.mark.anyio
    async def test_service_exception_document_is_a_failure(self, mock_client):
        def handler(request):
            return httpx.Response(
                200,
                content=b"<ServiceExceptionReport><ServiceException/></ServiceExceptionReport>",
                headers={"content-type": "text/xml"},
            )

        resolver = LegendResolver(static_legends={"x": STATIC_LEGENDS["flood_riskzone"]},
                                  client=mock_client(handler))
        legend = await resolver.resolve(_descriptor())
        assert isinstance(legend, StaticTableLegend)
        assert legend.entries[0].color == "#0066CC"

    @pytest.mark.anyio
    async def test_network_errors_are_failures(self, mock_client):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        resolver = LegendResolver(static_legends={}, client=mock_client(handler))
        legend = await resolver.resolve(_descriptor())
        assert isinstance(legend, PlaceholderLegend)
        assert legend.message == NO_LEGEND_MESSAGE

    @pytest.mark.anyio
    async def test_slow_candidate_times_out(self, mock_client, png_bytes):
        async def handler(request):
            if _params(request)["VERSION"] == "1.3.0":
                await asyncio.sleep(1.0)
            return httpx.Response(200, content=png_bytes(16, 16))

        resolver = LegendResolver(client=mock_client(handler), timeout=0.05)
        legend = await resolver.resolve(_descriptor())

        assert isinstance(legend, RemoteImageLegend)
        assert _params(legend.url)["VERSION"] == "1.1.1"

    @pytest.mark.anyio
    async def test_truncated_image_rejected_and_next_tried(self, mock_client, png_bytes):
        buf = io.BytesIO()
        Image.effect_noise((64, 64), 80).save(buf, format="PNG")
        truncated = buf.getvalue()[: len(buf.getvalue()) // 2]
        seen = []

        def handler(request):
            params = _params(request)
            seen.append(params["VERSION"])
            if params["VERSION"] == "1.3.0" and "WIDTH" not in params:
                return httpx.Response(200, content=truncated, headers={"content-type": "image/png"})
            return httpx.Response(200, content=png_bytes(24, 24))

        resolver = LegendResolver(client=mock_client(handler))
        legend = await resolver.resolve(_descriptor())

        assert isinstance(legend, RemoteImageLegend)
        assert _params(legend.url)["VERSION"] == "1.1.1"
        assert (legend.width, legend.height) == (24, 24)
        assert seen == ["1.3.0", "1.1.1"]

    @pytest.mark.anyio
    async def test_min_pixels_is_configurable(self, mock_client, png_bytes):
        def handler(request):
            return httpx.Response(200, content=png_bytes(8, 8))

        resolver = LegendResolver(static_legends={}, client=mock_client(handler), min_pixels=10)
        legend = await resolver.resolve(_descriptor())
        assert isinstance(legend, PlaceholderLegend)


class _StubResolver:
    """Resolver double returning canned content per layer id."""

    def __init__(self, results=None, gates=None):
        self.results = results or {}
        self.gates = gates or {}

    async def resolve(self, descriptor):
        gate = self.gates.get(descriptor.layer_id)
        if gate is not None:
            await gate.wait()
        result = self.results.get(descriptor.layer_id, PlaceholderLegend())
        if isinstance(result, Exception):
            raise result
        return result


@pytest.mark.unit
class TestLegendPanel:

    @pytest.mark.anyio
    async def test_items_follow_descriptor_order(self):
        panel = LegendPanel(_StubResolver())
        a, b, c = _descriptor("a"), _descriptor("b"), _descriptor("c")
        await panel.refresh([c, a, b])
        assert panel.ids() == ["c", "a", "b"]
        assert [i.title for i in panel.items] == ["C", "A", "B"]
        assert panel.visible

    @pytest.mark.anyio
    async def test_empty_refresh_hides_panel(self):
        panel = LegendPanel(_StubResolver())
        await panel.refresh([_descriptor("a")])
        await panel.refresh([])
        assert panel.items == []
        assert not panel.visible
        assert "hidden" in panel.to_html()

    @pytest.mark.anyio
    async def test_crashing_resolver_yields_placeholder_for_that_layer_only(self):
        table = StaticTableLegend(entries=STATIC_LEGENDS["flood_riskzone"])
        resolver = _StubResolver(results={"bad": RuntimeError("boom"), "good": table})
        panel = LegendPanel(resolver)
        await panel.refresh([_descriptor("bad"), _descriptor("good")])

        contents = {i.layer_id: i.content for i in panel.items}
        assert isinstance(contents["bad"], PlaceholderLegend)
        assert contents["good"] is table

    @pytest.mark.anyio
    async def test_stale_refresh_is_discarded(self):
        gate = asyncio.Event()
        panel = LegendPanel(_StubResolver(gates={"slow": gate}))

        first = asyncio.create_task(panel.refresh([_descriptor("slow")]))
        await asyncio.sleep(0)
        await panel.refresh([_descriptor("fast")])
        gate.set()
        await first

        assert panel.ids() == ["fast"]

    @pytest.mark.anyio
    async def test_listeners_notified_on_refresh(self):
        panel = LegendPanel(_StubResolver())
        calls = []
        panel.on_change(lambda p: calls.append(p.ids()))
        await panel.refresh([_descriptor("a")])
        await panel.refresh([])
        assert calls == [["a"], []]

    @pytest.mark.anyio
    async def test_html_renders_each_content_kind(self, png_bytes):
        image = RemoteImageLegend(url="u", width=10, height=10, data_uri="data:image/png;base64,AAA")
        table = StaticTableLegend(entries=STATIC_LEGENDS["flood_riskzone"])
        resolver = _StubResolver(results={"img": image, "tbl": table})
        panel = LegendPanel(resolver)
        await panel.refresh([_descriptor("img"), _descriptor("tbl"), _descriptor("none")])

        fragment = panel.to_html()
        assert 'data-layer-id="img"' in fragment
        assert 'src="data:image/png;base64,AAA"' in fragment
        assert "background:#0066CC" in fragment
        assert "High flood risk" in fragment
        assert NO_LEGEND_MESSAGE in fragment
        assert fragment.index('data-layer-id="img"') < fragment.index('data-layer-id="tbl"')
