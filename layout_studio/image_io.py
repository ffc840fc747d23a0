"""
Qt-free image I/O utilities.

Decodes uploads (including PSD via psd-tools), extracts EXIF into a plain
record, decodes data-URI masks, and writes the final JPEG export.
Safe to import in worker threads.
"""

import base64
import binascii
import io
import logging
import time
from pathlib import Path

from PIL import ExifTags, Image, ImageOps, TiffImagePlugin, UnidentifiedImageError
from psd_tools import PSDImage

from layout_studio.config import EXPORT_PREFIX, JPEG_QUALITY, MIME_TYPES
from layout_studio.errors import DecodeFailure, MetadataUnavailable

logger = logging.getLogger(__name__)

# Allow very large images (Pillow's default limit is ~178MP)
Image.MAX_IMAGE_PIXELS = None

_PSD_MAGIC = b"8BPS"

# Formats the Gemini API accepts inline; anything else is re-encoded as PNG
_AI_MIME_TYPES = {"image/png", "image/jpeg", "image/webp", "image/heic", "image/heif"}


def mime_type_for(path: Path) -> str:
    return MIME_TYPES.get(path.suffix.lower(), "application/octet-stream")


# =============================================================================
# Decoding
# =============================================================================

def decode_image(data: bytes) -> Image.Image:
    """Decode upload bytes to an upright RGBA image.

    Uses psd-tools for PSD files and Pillow for everything else.
    Raises DecodeFailure when the bytes are not a readable image.
    """
    try:
        if data[:4] == _PSD_MAGIC:
            img = PSDImage.open(io.BytesIO(data)).composite()
        else:
            img = Image.open(io.BytesIO(data))
            img.load()
            img = ImageOps.exif_transpose(img)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise DecodeFailure(str(exc) or "unrecognised image data") from exc
    if img is None:
        raise DecodeFailure("image has no pixel data")
    return img.convert("RGBA")


def decode_data_uri(uri: str) -> Image.Image:
    """Decode a ``data:<mime>;base64,<payload>`` URI into an image."""
    header, sep, payload = uri.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise DecodeFailure("not a base64 data URI")
    try:
        raw = base64.b64decode(payload, validate=True)
        img = Image.open(io.BytesIO(raw))
        img.load()
    except (binascii.Error, UnidentifiedImageError, OSError) as exc:
        raise DecodeFailure(f"invalid mask image: {exc}") from exc
    return img


def encode_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def ai_payload(image: Image.Image, data: bytes, mime_type: str) -> tuple[bytes, str]:
    """Return bytes and MIME type suitable for the Gemini API.

    Formats the API does not take inline (PSD, TIFF, BMP) are re-encoded as PNG.
    """
    if mime_type in _AI_MIME_TYPES:
        return data, mime_type
    buf = io.BytesIO()
    image.save(buf, "PNG")
    return buf.getvalue(), "image/png"


# =============================================================================
# EXIF
# =============================================================================

def _coerce(value):
    """Convert a raw EXIF value to a plain number or string, or None to skip it."""
    if isinstance(value, TiffImagePlugin.IFDRational):
        if value.denominator == 0:
            return None
        return float(value)
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        value = value.strip("\x00 ").strip()
        return value or None
    if isinstance(value, tuple) and len(value) == 1:
        return _coerce(value[0])
    return None


def _gps_to_decimal(dms, ref) -> float | None:
    try:
        degrees, minutes, seconds = (float(v) for v in dms)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    decimal = degrees + minutes / 60 + seconds / 3600
    if isinstance(ref, bytes):
        ref = ref.decode(errors="ignore")
    if str(ref).strip().upper() in ("S", "W"):
        decimal = -decimal
    return decimal


def read_exif(data: bytes) -> dict:
    """Extract EXIF tags into a ``{tag_name: value}`` record.

    Includes the base IFD, the Exif sub-IFD and GPS coordinates (as signed
    decimal ``latitude`` / ``longitude``). Images without EXIF give an empty
    record. Raises MetadataUnavailable when the bytes cannot be read.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            exif = img.getexif()
            exif_ifd = exif.get_ifd(ExifTags.IFD.Exif)
            gps_ifd = exif.get_ifd(ExifTags.IFD.GPSInfo)
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError) as exc:
        raise MetadataUnavailable(str(exc) or "unreadable metadata") from exc

    record: dict = {}
    for tags in (exif, exif_ifd):
        for tag_id, raw in tags.items():
            name = ExifTags.TAGS.get(tag_id)
            if not name:
                continue
            value = _coerce(raw)
            if value is not None:
                record[name] = value

    if gps_ifd:
        lat = _gps_to_decimal(gps_ifd.get(ExifTags.GPS.GPSLatitude), gps_ifd.get(ExifTags.GPS.GPSLatitudeRef, "N"))
        lon = _gps_to_decimal(gps_ifd.get(ExifTags.GPS.GPSLongitude), gps_ifd.get(ExifTags.GPS.GPSLongitudeRef, "E"))
        if lat is not None and lon is not None:
            record["latitude"] = lat
            record["longitude"] = lon

    logger.debug("Read %d EXIF tags", len(record))
    return record


# =============================================================================
# Export
# =============================================================================

def export_filename(timestamp_ms: int | None = None) -> str:
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"{EXPORT_PREFIX}_{timestamp_ms}.jpg"


def export_jpeg(surface: Image.Image, directory: Path, timestamp_ms: int | None = None) -> Path:
    """Save the composed surface as a JPEG named ``layout_<ms>.jpg`` and return its path."""
    directory.mkdir(parents=True, exist_ok=True)
    out_path = unique_path(directory / export_filename(timestamp_ms))
    surface.convert("RGB").save(str(out_path), "JPEG", quality=JPEG_QUALITY, optimize=True)
    logger.info("Exported layout to %s", out_path)
    return out_path


def unique_path(out_path: Path) -> Path:
    """Return a unique path by appending -01, -02, etc. if file already exists."""
    if not out_path.exists():
        return out_path
    stem = out_path.stem
    suffix = out_path.suffix
    parent = out_path.parent
    counter = 1
    while True:
        candidate = parent / f"{stem}-{counter:02d}{suffix}"
        if not candidate.exists():
            return candidate
        counter += 1
