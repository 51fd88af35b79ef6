"""Tests for KMZ archive handling."""

import pytest

from mapcore.annotations.archive import locate_markup_document, open_archive, read_entry
from mapcore.errors import ArchiveError, NoMarkupDocument


@pytest.mark.unit
class TestOpenArchive:

    def test_valid_zip(self, make_kmz):
        archive = open_archive(make_kmz({"doc.kml": "<kml/>"}))
        assert archive.namelist() == ["doc.kml"]

    def test_not_a_zip(self):
        with pytest.raises(ArchiveError) as exc:
            open_archive(b"<kml>this is not compressed</kml>")
        assert exc.value.reason == "ArchiveError"

    def test_empty_bytes(self):
        with pytest.raises(ArchiveError):
            open_archive(b"")


@pytest.mark.unit
class TestLocateMarkupDocument:
    """doc.kml first, then the first .kml entry."""

    def test_doc_kml_preferred_over_earlier_kml(self, make_kmz):
        archive = open_archive(make_kmz({
            "overlay.kml": "<kml/>",
            "doc.kml": "<kml/>",
        }))
        assert locate_markup_document(archive) == "doc.kml"

    def test_doc_kml_in_subfolder(self, make_kmz):
        archive = open_archive(make_kmz({
            "files/icon.png": b"\x89PNG",
            "files/doc.kml": "<kml/>",
        }))
        assert locate_markup_document(archive) == "files/doc.kml"

    def test_first_kml_when_no_doc(self, make_kmz):
        archive = open_archive(make_kmz({
            "images/a.png": b"\x89PNG",
            "sites.kml": "<kml/>",
            "other.kml": "<kml/>",
        }))
        assert locate_markup_document(archive) == "sites.kml"

    def test_extension_is_case_insensitive(self, make_kmz):
        archive = open_archive(make_kmz({"Sites.KML": "<kml/>"}))
        assert locate_markup_document(archive) == "Sites.KML"

    def test_no_kml_raises(self, make_kmz):
        archive = open_archive(make_kmz({"readme.txt": "hello", "icon.png": b"\x89PNG"}))
        with pytest.raises(NoMarkupDocument) as exc:
            locate_markup_document(archive)
        assert exc.value.reason == "NoMarkupDocument"


@pytest.mark.unit
class TestReadEntry:

    def test_reads_bytes(self, make_kmz):
        archive = open_archive(make_kmz({"doc.kml": "<kml>é</kml>"}))
        assert read_entry(archive, "doc.kml") == "<kml>é</kml>".encode("utf-8")

    def test_missing_entry(self, make_kmz):
        archive = open_archive(make_kmz({"doc.kml": "<kml/>"}))
        with pytest.raises(ArchiveError):
            read_entry(archive, "nope.kml")

    def test_damaged_compressed_data(self, corrupt_kmz):
        placemarks = "".join(
            f"<Placemark><name>Site {i}</name>"
            f"<Point><coordinates>{5.5 + i / 997:.5f},{51.9 + i / 1009:.5f}</coordinates></Point></Placemark>"
            for i in range(60)
        )
        archive = open_archive(corrupt_kmz(f"<kml><Document>{placemarks}</Document></kml>"))
        name = locate_markup_document(archive)
        assert name == "doc.kml"
        with pytest.raises(ArchiveError) as exc:
            read_entry(archive, name)
        assert exc.value.reason == "ArchiveError"
