import os

# Qt widgets are exercised headless
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PIL import Image, ImageDraw


@pytest.fixture
def quadrant_image() -> Image.Image:
    """400x200 image: red / green on top, blue / yellow on the bottom."""
    img = Image.new("RGB", (400, 200), (255, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.rectangle((200, 0, 399, 99), fill=(0, 255, 0))
    draw.rectangle((0, 100, 199, 199), fill=(0, 0, 255))
    draw.rectangle((200, 100, 399, 199), fill=(255, 255, 0))
    return img


@pytest.fixture
def solid_image() -> Image.Image:
    return Image.new("RGB", (300, 300), (200, 30, 30))


@pytest.fixture
def circle_mask() -> Image.Image:
    """Opaque black/white mask with a white disc in the middle."""
    mask = Image.new("L", (100, 100), 0)
    ImageDraw.Draw(mask).ellipse((25, 25, 75, 75), fill=255)
    return mask.convert("RGB")


@pytest.fixture(autouse=True)
def _no_api_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("API_KEY", raising=False)
