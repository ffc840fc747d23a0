"""
Exception types raised by the external collaborators.

Composition itself never raises these; degenerate geometry is reported
through ``PixelRect.is_empty`` and discarded gestures through ``None``.
"""


class LayoutStudioError(Exception):
    """Base class for all Layout Studio errors."""


class DecodeFailure(LayoutStudioError):
    """The uploaded bytes could not be decoded into an image."""


class MetadataUnavailable(LayoutStudioError):
    """EXIF metadata is missing or malformed."""


class SuggestionFailure(LayoutStudioError):
    """A location or subject service call failed or has no credentials."""
