"""Frame a photo for social media: crop, zoom, EXIF text and subject glow."""

__version__ = "1.0.0"
