"""
Application constants and configuration.

FRAME_PRESETS provides the built-in frame catalog. DEFAULT_SETTINGS holds the
initial layout values; all other constants control compositing, the crop
gesture, the AI collaborators, and export.

The ``export_dir()`` helper returns the platform-appropriate folder that
downloads are written to.
"""

import os
from pathlib import Path

# =============================================================================
# APP IDENTITY & EXPORT DIRECTORY
# =============================================================================
APP_NAME = "layout-studio"


def export_dir() -> Path:
    """Return the folder exported layouts are written to, creating it if needed."""
    pictures = Path.home() / "Pictures"
    directory = pictures if pictures.is_dir() else Path.home()
    directory.mkdir(parents=True, exist_ok=True)
    return directory

# =============================================================================
# FRAME PRESETS: built-in social-media frames (name -> aspect / pixel size)
# =============================================================================
FRAME_PRESETS = [
    {"name": "Square", "aspect_ratio": 1 / 1, "width": 1080, "height": 1080},
    {"name": "Portrait", "aspect_ratio": 4 / 5, "width": 1080, "height": 1350},
    {"name": "Landscape", "aspect_ratio": 1.91 / 1, "width": 1080, "height": 566},
]

FONT_FACES = ["Arial", "Verdana", "Georgia", "Times New Roman", "Calibri"]

# Placeholder location shown before a suggestion arrives; never rendered
LOCATION_PLACEHOLDER = "..."

DEFAULT_SETTINGS = {
    "preset_name": "Square",
    "margin_percent": 10,
    "margin_color": "#FFFFFF",
    "show_exif": True,
    "location": LOCATION_PLACEHOLDER,
    "text_color": "#000000",
    "font_size": 14,
    "font_family": "Arial",
    "subject_text": "",
}

# Control ranges
MARGIN_MIN = 0
MARGIN_MAX = 25
ZOOM_MIN = 1.0
ZOOM_MAX = 5.0
ZOOM_STEP = 0.05
FONT_SIZE_MIN = 8
FONT_SIZE_MAX = 48

# =============================================================================
# Compositing
# =============================================================================
LINE_HEIGHT_FACTOR = 1.3
TEXT_PADDING_FACTOR = 0.25      # of the margin, between text block and inner edge
SUBJECT_FONT_FACTOR = 2         # subject text is drawn at font_size * 2
GLOW_BLUR_RADIUS = 25
GLOW_PASSES = 2
DRAG_WASH_ALPHA = 102           # 0.4 * 255
DRAG_STROKE_COLOR = (255, 255, 255, 204)
DRAG_STROKE_WIDTH = 2

# Font files tried for each face, in order; Pillow's bundled font is the fallback
FONT_FILES = {
    "Arial": ["arial.ttf", "Arial.ttf", "LiberationSans-Regular.ttf", "DejaVuSans.ttf"],
    "Verdana": ["verdana.ttf", "Verdana.ttf", "DejaVuSans.ttf"],
    "Georgia": ["georgia.ttf", "Georgia.ttf", "DejaVuSerif.ttf"],
    "Times New Roman": ["times.ttf", "Times New Roman.ttf", "LiberationSerif-Regular.ttf", "DejaVuSerif.ttf"],
    "Calibri": ["calibri.ttf", "Calibri.ttf", "Carlito-Regular.ttf", "DejaVuSans.ttf"],
}
BOLD_FONT_FILES = {
    "Arial": ["arialbd.ttf", "Arial Bold.ttf", "LiberationSans-Bold.ttf", "DejaVuSans-Bold.ttf"],
    "Verdana": ["verdanab.ttf", "Verdana Bold.ttf", "DejaVuSans-Bold.ttf"],
    "Georgia": ["georgiab.ttf", "Georgia Bold.ttf", "DejaVuSerif-Bold.ttf"],
    "Times New Roman": ["timesbd.ttf", "Times New Roman Bold.ttf", "LiberationSerif-Bold.ttf", "DejaVuSerif-Bold.ttf"],
    "Calibri": ["calibrib.ttf", "Calibri Bold.ttf", "Carlito-Bold.ttf", "DejaVuSans-Bold.ttf"],
}

# =============================================================================
# Crop gesture
# =============================================================================
# Drags at or below this normalized size are treated as clicks
MIN_DRAG_SIZE = 0.01
CROP_DEBOUNCE_MS = 50

# =============================================================================
# AI collaborators (Gemini)
# =============================================================================
FALLBACK_LOCATION = "A Beautiful Place"
UNKNOWN_LOCATION = "Unknown Location"
LOCATION_MODEL = "gemini-2.5-flash"
SUBJECT_MODEL = "gemini-2.5-flash-image"
LOCATION_PROMPT = (
    "Based on this image, suggest a creative and friendly name for the location shown. "
    "For example, 'Sunset Cliffs' or 'The Whispering Forest'. "
    "Be concise, returning only the name."
)
SUBJECT_PROMPT = (
    "Create a segmentation mask for the main subject in this image. "
    "The mask should be a black and white image where the subject is pure white (#FFFFFF) "
    "and the background is pure black (#000000)."
)


def api_key() -> str | None:
    """Return the Gemini API key from the environment, or None if unset."""
    return os.environ.get("GEMINI_API_KEY") or os.environ.get("API_KEY") or None

# =============================================================================
# Files & export
# =============================================================================
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".bmp", ".tiff", ".tif", ".webp", ".psd"}

MIME_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".bmp": "image/bmp",
    ".tiff": "image/tiff",
    ".tif": "image/tiff",
    ".webp": "image/webp",
    ".psd": "image/vnd.adobe.photoshop",
}

JPEG_QUALITY = 95
EXPORT_PREFIX = "layout"

# Transient status-bar messages (ms)
STATUS_TIMEOUT_MS = 5000
