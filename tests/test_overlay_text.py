import pytest

from layout_studio.models import LayoutSettings
from layout_studio.overlay_text import build_exif_lines, format_exposure_time


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (1.0, "1s"),
        (2.5, "2.5s"),
        (30, "30s"),
        (0.5, "1/2s"),
        (1 / 60, "1/60s"),
        (0.004, "1/250s"),
        (1 / 247, "1/250s"),
        (1 / 123, "1/120s"),
        (0.0005, "1/2000s"),
        (1 / 1234, "1/1200s"),
        (1 / 8000, "1/8000s"),
        (None, ""),
    ],
)
def test_format_exposure_time(seconds, expected):
    assert format_exposure_time(seconds) == expected


def test_full_record_gives_three_lines():
    exif = {
        "LensModel": "RF 24-70mm F2.8 L IS USM",
        "FocalLength": 35.0,
        "FNumber": 2.8,
        "ExposureTime": 0.004,
        "ISOSpeedRatings": 100,
    }
    lines = build_exif_lines(exif, LayoutSettings(location="Sunset Cliffs"))
    assert lines == [
        "RF 24-70mm F2.8 L IS USM",
        "35mm f/2.8 1/250s ISO 100",
        "Sunset Cliffs",
    ]


def test_details_line_only_includes_present_fields():
    lines = build_exif_lines({"FNumber": 8.0, "ISOSpeedRatings": 400}, LayoutSettings(location="..."))
    assert lines == ["f/8 ISO 400"]


def test_empty_record_and_placeholder_location_give_no_lines():
    assert build_exif_lines({}, LayoutSettings()) == []
    assert build_exif_lines({}, LayoutSettings(location="")) == []


def test_location_only():
    assert build_exif_lines({}, LayoutSettings(location="The Whispering Forest")) == ["The Whispering Forest"]


def test_zero_values_are_treated_as_missing():
    assert build_exif_lines({"FocalLength": 0, "ExposureTime": 0}, LayoutSettings()) == []
