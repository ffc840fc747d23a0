import io

import pytest
from PIL import ExifTags, Image

from layout_studio.errors import DecodeFailure, MetadataUnavailable
from layout_studio.image_io import (
    _gps_to_decimal, ai_payload, decode_data_uri, decode_image, encode_data_uri,
    export_filename, export_jpeg, mime_type_for, read_exif, unique_path,
)
from pathlib import Path

from tests.helpers import png_bytes


def jpeg_with_exif() -> bytes:
    exif = Image.Exif()
    exif[ExifTags.Base.Make] = "Canon"
    exif[ExifTags.Base.Model] = "EOS R5"
    buf = io.BytesIO()
    Image.new("RGB", (32, 16), (10, 20, 30)).save(buf, "JPEG", exif=exif.tobytes())
    return buf.getvalue()


def test_decode_image_returns_rgba(quadrant_image):
    img = decode_image(png_bytes(quadrant_image))
    assert img.mode == "RGBA"
    assert img.size == (400, 200)


def test_decode_garbage_raises():
    with pytest.raises(DecodeFailure):
        decode_image(b"definitely not an image")


def test_read_exif_base_tags():
    record = read_exif(jpeg_with_exif())
    assert record["Make"] == "Canon"
    assert record["Model"] == "EOS R5"


def test_read_exif_without_metadata_is_empty(solid_image):
    assert read_exif(png_bytes(solid_image)) == {}


def test_read_exif_unreadable_raises():
    with pytest.raises(MetadataUnavailable):
        read_exif(b"\x00\x01garbage")


def test_gps_to_decimal_signs():
    assert _gps_to_decimal((37.0, 30.0, 0.0), "N") == pytest.approx(37.5)
    assert _gps_to_decimal((122.0, 15.0, 0.0), "W") == pytest.approx(-122.25)
    assert _gps_to_decimal((33.0, 0.0, 36.0), b"S") == pytest.approx(-33.01)
    assert _gps_to_decimal(None, "N") is None


def test_data_uri_roundtrip(circle_mask):
    uri = encode_data_uri(png_bytes(circle_mask), "image/png")
    assert uri.startswith("data:image/png;base64,")
    mask = decode_data_uri(uri)
    assert mask.size == (100, 100)


@pytest.mark.parametrize("uri", ["", "image/png;base64,AAAA", "data:image/png,plain", "data:image/png;base64,!!!"])
def test_bad_data_uri_raises(uri):
    with pytest.raises(DecodeFailure):
        decode_data_uri(uri)


def test_ai_payload_passes_supported_formats_through(solid_image):
    data = png_bytes(solid_image)
    assert ai_payload(solid_image, data, "image/png") == (data, "image/png")


def test_ai_payload_reencodes_other_formats(solid_image):
    payload, mime = ai_payload(solid_image, b"8BPS...", "image/vnd.adobe.photoshop")
    assert mime == "image/png"
    assert Image.open(io.BytesIO(payload)).size == (300, 300)


def test_mime_type_for():
    assert mime_type_for(Path("a/B.JPG")) == "image/jpeg"
    assert mime_type_for(Path("x.webp")) == "image/webp"
    assert mime_type_for(Path("x.xyz")) == "application/octet-stream"


def test_export_jpeg_names_and_uniqueness(tmp_path, solid_image):
    assert export_filename(1234) == "layout_1234.jpg"

    first = export_jpeg(solid_image, tmp_path, timestamp_ms=1234)
    second = export_jpeg(solid_image, tmp_path, timestamp_ms=1234)

    assert first.name == "layout_1234.jpg"
    assert second.name == "layout_1234-01.jpg"
    with Image.open(first) as img:
        assert img.format == "JPEG"
        assert img.size == (300, 300)


def test_unique_path_counts_up(tmp_path):
    base = tmp_path / "layout_1.jpg"
    base.touch()
    (tmp_path / "layout_1-01.jpg").touch()
    assert unique_path(base) == tmp_path / "layout_1-02.jpg"
