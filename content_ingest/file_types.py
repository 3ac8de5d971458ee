"""Detect the real file type of an upload from its leading bytes.

The ``type`` and ``contentType`` request fields describe the business
category and provenance of an upload, not its encoding, so the stored
content type and extension always come from here.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from content_ingest.errors import UnrecognisedFileTypeError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SniffedFormat:
    extension: str
    mime_type: str


JPEG = SniffedFormat('jpg', 'image/jpeg')
PNG = SniffedFormat('png', 'image/png')
GIF = SniffedFormat('gif', 'image/gif')
WEBP = SniffedFormat('webp', 'image/webp')
TIFF = SniffedFormat('tif', 'image/tiff')
BMP = SniffedFormat('bmp', 'image/bmp')
ICO = SniffedFormat('ico', 'image/x-icon')
HEIC = SniffedFormat('heic', 'image/heic')
AVIF = SniffedFormat('avif', 'image/avif')
PDF = SniffedFormat('pdf', 'application/pdf')
PSD = SniffedFormat('psd', 'image/vnd.adobe.photoshop')

# Checked in order; longer, more specific signatures first
MAGIC_BYTES = [
    (b'\x89PNG\r\n\x1a\n', PNG),
    (b'\xff\xd8\xff', JPEG),
    (b'GIF87a', GIF),
    (b'GIF89a', GIF),
    (b'II*\x00', TIFF),
    (b'MM\x00*', TIFF),
    (b'%PDF', PDF),
    (b'8BPS', PSD),
    (b'\x00\x00\x01\x00', ICO),
    (b'BM', BMP),
]

HEIF_BRANDS = {b'heic', b'heix', b'heim', b'heis', b'hevc', b'hevx', b'mif1', b'msf1'}
AVIF_BRANDS = {b'avif', b'avis'}


def _sniff_container(data: bytes) -> Optional[SniffedFormat]:
    if data[:4] == b'RIFF' and data[8:12] == b'WEBP':
        return WEBP
    if data[4:8] == b'ftyp':
        brand = data[8:12]
        if brand in AVIF_BRANDS:
            return AVIF
        if brand in HEIF_BRANDS:
            return HEIC
    return None


def detect_format(data: bytes) -> Optional[SniffedFormat]:
    """Return the format matching the byte signature of ``data``, if any"""
    container = _sniff_container(data)
    if container:
        return container
    for signature, sniffed in MAGIC_BYTES:
        if data.startswith(signature):
            return sniffed
    return None


def sniff_format(data: bytes) -> SniffedFormat:
    sniffed = detect_format(data)
    if sniffed is None:
        logger.warning("No known file signature in %d byte upload", len(data))
        raise UnrecognisedFileTypeError()
    return sniffed
