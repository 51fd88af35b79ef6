"""Shared fixtures: fake legend images, KMZ archives, offline HTTP clients."""

from __future__ import annotations

import io
import zipfile

import httpx
import pytest
from PIL import Image


def _png(width: int, height: int) -> bytes:
    buf = io.BytesIO()
    Image.new("RGBA", (width, height), (200, 30, 30, 255)).save(buf, format="PNG")
    return buf.getvalue()


def _kmz(entries: dict[str, str | bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            zf.writestr(name, content)
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    """Factory: png_bytes(width, height) → PNG file bytes."""
    return _png


@pytest.fixture
def make_kmz():
    """Factory: make_kmz({"doc.kml": "<kml>..."}) → zip archive bytes."""
    return _kmz


def _corrupt_kmz(document: str) -> bytes:
    """KMZ whose single doc.kml entry has damaged deflate data.

    The zip directory stays intact so the archive opens; reading the entry
    fails while decompressing or on the CRC check.
    """
    data = bytearray(_kmz({"doc.kml": document}))
    info = zipfile.ZipFile(io.BytesIO(bytes(data))).infolist()[0]
    start = info.header_offset + 30 + len(info.filename.encode("utf-8")) + len(info.extra)
    middle = start + info.compress_size // 3
    for i in range(middle, middle + 10):
        data[i] ^= 0xFF
    return bytes(data)


@pytest.fixture
def corrupt_kmz():
    """Factory: corrupt_kmz(kml_text) → zip bytes with a damaged entry."""
    return _corrupt_kmz


@pytest.fixture
def mock_client():
    """Factory: mock_client(handler) → AsyncClient answering via handler."""

    def _factory(handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _factory


@pytest.fixture
def offline_client(mock_client):
    """AsyncClient where every request gets a 404."""
    return mock_client(lambda request: httpx.Response(404))


@pytest.fixture
def anyio_backend():
    return "asyncio"
