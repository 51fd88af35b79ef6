"""KMZ archive handling — open the zip container and pick its KML document."""

from __future__ import annotations

import io
import posixpath
import zipfile
import zlib

from mapcore.errors import ArchiveError, NoMarkupDocument

PRIMARY_DOCUMENT = "doc.kml"
MARKUP_EXTENSION = ".kml"


def open_archive(data: bytes) -> zipfile.ZipFile:
    """Open raw bytes as a zip archive.

    Raises:
        ArchiveError: If the bytes are not a readable zip container.
    """
    try:
        return zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as e:
        raise ArchiveError(f"Not a valid KMZ archive: {e}") from e


def locate_markup_document(archive: zipfile.ZipFile) -> str:
    """Pick the KML entry to read.

    ``doc.kml`` wins when present (at any depth); otherwise the first entry,
    in archive order, whose name ends in ``.kml``. Directories are ignored.

    Raises:
        NoMarkupDocument: If the archive holds no KML entry.
    """
    names = [info.filename for info in archive.infolist() if not info.is_dir()]

    for name in names:
        if posixpath.basename(name).lower() == PRIMARY_DOCUMENT:
            return name
    for name in names:
        if name.lower().endswith(MARKUP_EXTENSION):
            return name

    raise NoMarkupDocument(
        f"No {MARKUP_EXTENSION} document among {len(names)} archive entries"
    )


def read_entry(archive: zipfile.ZipFile, name: str) -> bytes:
    """Read one entry's bytes.

    Raises:
        ArchiveError: If the entry is corrupt or cannot be decompressed.
    """
    try:
        return archive.read(name)
    except (zipfile.BadZipFile, zlib.error, EOFError, KeyError, OSError, RuntimeError) as e:
        raise ArchiveError(f"Could not read {name!r} from archive: {e}") from e
