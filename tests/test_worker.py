import pytest
from PIL import Image

from layout_studio import ai_service, worker
from layout_studio.config import FALLBACK_LOCATION, UNKNOWN_LOCATION
from layout_studio.errors import MetadataUnavailable, SuggestionFailure
from layout_studio.image_io import encode_data_uri

from tests.helpers import png_bytes


def test_analyze_upload_success(monkeypatch, quadrant_image):
    monkeypatch.setattr(ai_service, "suggest_location", lambda data, mime: "Golden Gate")
    result = worker.analyze_upload(png_bytes(quadrant_image), "image/png")
    assert result["success"]
    assert result["image"].size == (400, 200)
    assert result["exif"] == {}
    assert result["location"] == "Golden Gate"
    assert result["exif_error"] is None


def test_analyze_upload_without_key_uses_fallback(quadrant_image):
    result = worker.analyze_upload(png_bytes(quadrant_image), "image/png")
    assert result["location"] == FALLBACK_LOCATION


def test_analyze_upload_decode_failure():
    result = worker.analyze_upload(b"nope", "image/png")
    assert not result["success"]
    assert result["error"]
    assert "image" not in result


def test_analyze_upload_bad_exif_skips_suggestion(monkeypatch, quadrant_image):
    def broken(data):
        raise MetadataUnavailable("corrupt IFD")

    monkeypatch.setattr(worker, "read_exif", broken)
    monkeypatch.setattr(ai_service, "suggest_location", lambda data, mime: pytest.fail("should not be called"))
    result = worker.analyze_upload(png_bytes(quadrant_image), "image/png")
    assert result["success"]
    assert result["location"] == UNKNOWN_LOCATION
    assert result["exif"] == {}
    assert result["exif_error"] == "corrupt IFD"


def test_detect_subject_decodes_mask(monkeypatch, circle_mask, solid_image):
    uri = encode_data_uri(png_bytes(circle_mask), "image/png")
    monkeypatch.setattr(ai_service, "detect_main_subject", lambda data, mime: uri)
    result = worker.detect_subject(solid_image, png_bytes(solid_image), "image/png")
    assert result["success"]
    assert isinstance(result["mask"], Image.Image)
    assert result["mask"].size == (100, 100)


def test_detect_subject_nothing_found(solid_image):
    result = worker.detect_subject(solid_image, png_bytes(solid_image), "image/png")
    assert result == {"success": True, "mask": None}


def test_detect_subject_service_failure(monkeypatch, solid_image):
    def failing(data, mime):
        raise SuggestionFailure("503")

    monkeypatch.setattr(ai_service, "detect_main_subject", failing)
    result = worker.detect_subject(solid_image, png_bytes(solid_image), "image/png")
    assert result == {"success": False, "error": "503"}
