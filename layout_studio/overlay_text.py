"""
Builds the EXIF / location text block shown in the bottom-right margin.
"""

import math

from layout_studio.config import LOCATION_PLACEHOLDER
from layout_studio.models import ExifRecord, LayoutSettings


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _format_number(value) -> str:
    """Render a tag value the way it reads on a camera: 50.0 -> '50', 2.8 -> '2.8'."""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_exposure_time(seconds: float | None) -> str:
    """Format an exposure time in seconds as ``"2s"`` or ``"1/250s"``.

    Fractions are rounded to the nearest 100 above 1/1000 s and to the
    nearest 10 above 1/100 s.
    """
    if seconds is None:
        return ""
    if seconds >= 1:
        return f"{_format_number(seconds)}s"
    reciprocal = 1 / seconds
    if reciprocal > 1000:
        denominator = _round_half_up(reciprocal / 100) * 100
    elif reciprocal > 100:
        denominator = _round_half_up(reciprocal / 10) * 10
    else:
        denominator = _round_half_up(reciprocal)
    return f"1/{denominator}s"


def build_exif_lines(exif: ExifRecord, settings: LayoutSettings) -> list[str]:
    """Return display lines in reading order (lens, exposure details, location)."""
    lines: list[str] = []

    lens = exif.get("LensModel")
    if lens:
        lines.append(str(lens))

    focal = exif.get("FocalLength")
    f_number = exif.get("FNumber")
    exposure = exif.get("ExposureTime")
    iso = exif.get("ISOSpeedRatings")
    details = [
        f"{_format_number(focal)}mm" if focal else "",
        f"f/{_format_number(f_number)}" if f_number else "",
        format_exposure_time(exposure) if exposure else "",
        f"ISO {_format_number(iso)}" if iso else "",
    ]
    details = [d for d in details if d]
    if details:
        lines.append(" ".join(details))

    if settings.location and settings.location != LOCATION_PLACEHOLDER:
        lines.append(settings.location)

    return lines
