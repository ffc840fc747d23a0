"""
Data models shared across the compositor, the crop gesture and the UI.

CropRect and Transform describe what part of the source image is shown and
how large; FramePreset and LayoutSettings describe the frame it is placed in.
All of them are frozen: a change produces a new value, never an in-place edit.
PixelRect is the geometry engine's output type.
"""

from collections.abc import Mapping
from dataclasses import dataclass

from layout_studio.config import DEFAULT_SETTINGS, FRAME_PRESETS

# Tag name -> value, as produced by image_io.read_exif
ExifRecord = Mapping[str, object]


# =============================================================================
# Data classes
# =============================================================================
@dataclass(frozen=True)
class CropRect:
    """Crop rectangle normalized to [0, 1] of the original image."""
    x: float = 0.0
    y: float = 0.0
    width: float = 1.0
    height: float = 1.0

    def is_valid(self) -> bool:
        """True if the rect has area and lies inside the unit square."""
        return (
            self.width > 0 and self.height > 0
            and self.x >= 0 and self.y >= 0
            and self.x + self.width <= 1 + 1e-9
            and self.y + self.height <= 1 + 1e-9
        )


FULL_CROP = CropRect(0.0, 0.0, 1.0, 1.0)


@dataclass(frozen=True)
class Transform:
    """Active crop and zoom factor for the loaded image."""
    crop: CropRect = FULL_CROP
    zoom: float = 1.0


DEFAULT_TRANSFORM = Transform(FULL_CROP, 1.0)


@dataclass(frozen=True)
class PixelRect:
    """Rectangle in pixel space (floats; may extend past the surface)."""
    x: float
    y: float
    width: float
    height: float

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class FramePreset:
    """A named output frame."""
    name: str
    aspect_ratio: float
    width: int
    height: int

    @property
    def label(self) -> str:
        return f"{self.name} ({self.width}x{self.height})"


@dataclass(frozen=True)
class LayoutSettings:
    """User-editable frame, text and subject-effect settings."""
    preset_name: str = DEFAULT_SETTINGS["preset_name"]
    margin_percent: float = DEFAULT_SETTINGS["margin_percent"]
    margin_color: str = DEFAULT_SETTINGS["margin_color"]
    show_exif: bool = DEFAULT_SETTINGS["show_exif"]
    location: str = DEFAULT_SETTINGS["location"]
    text_color: str = DEFAULT_SETTINGS["text_color"]
    font_size: int = DEFAULT_SETTINGS["font_size"]
    font_family: str = DEFAULT_SETTINGS["font_family"]
    subject_text: str = DEFAULT_SETTINGS["subject_text"]


# =============================================================================
# Preset catalog
# =============================================================================
PRESETS: dict[str, FramePreset] = {p["name"]: FramePreset(**p) for p in FRAME_PRESETS}


def frame_preset(name: str) -> FramePreset:
    """Look up a built-in preset by name. Raises KeyError for unknown names."""
    return PRESETS[name]


def preset_names() -> list[str]:
    return list(PRESETS)
