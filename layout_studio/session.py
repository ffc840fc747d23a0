"""
Session state and the reducer functions that advance it.

``SessionState`` is frozen. Every event handler takes the current state and
returns a new one; nothing is mutated in place. Background results carry
the ``generation`` they were started for and are ignored once a newer image
has been loaded.
"""

import logging
from dataclasses import dataclass, field, replace

from PIL import Image

from layout_studio.config import UNKNOWN_LOCATION, ZOOM_MAX, ZOOM_MIN
from layout_studio.models import (
    DEFAULT_TRANSFORM, CropRect, ExifRecord, LayoutSettings, Transform,
)

logger = logging.getLogger(__name__)

MSG_NO_EXIF = "Could not process image. It might not have EXIF data."
MSG_NO_SUBJECT = "Could not detect a subject in the image."
MSG_SUBJECT_FAILED = "Subject detection service failed. Please try again."


@dataclass(frozen=True)
class SessionState:
    """Everything the window renders from, for one loaded image."""
    generation: int = 0
    file_name: str = ""
    image_bytes: bytes | None = None
    mime_type: str = ""
    image: Image.Image | None = None
    exif: ExifRecord | None = None
    transform: Transform = DEFAULT_TRANSFORM
    settings: LayoutSettings = field(default_factory=LayoutSettings)
    subject_mask: Image.Image | None = None
    is_processing: bool = False
    is_detecting: bool = False
    is_cropping: bool = False
    error: str | None = None

    @property
    def has_image(self) -> bool:
        return self.image is not None

    @property
    def can_download(self) -> bool:
        return self.has_image and not self.is_cropping

    @property
    def can_detect(self) -> bool:
        return self.has_image and not self.is_detecting and not self.is_cropping

    @property
    def can_reset(self) -> bool:
        return self.has_image and not self.is_cropping


# =============================================================================
# Image loading
# =============================================================================

def begin_load(state: SessionState, data: bytes, mime_type: str, file_name: str = "") -> SessionState:
    """Start analysing a new upload; bumps the generation so older results are dropped."""
    return replace(
        state,
        generation=state.generation + 1,
        file_name=file_name,
        image_bytes=data,
        mime_type=mime_type,
        image=None,
        exif=None,
        transform=DEFAULT_TRANSFORM,
        subject_mask=None,
        is_processing=True,
        is_detecting=False,
        is_cropping=False,
        error=None,
    )


def apply_analysis(state: SessionState, generation: int, result: dict) -> SessionState:
    """Apply a finished ``worker.analyze_upload`` result."""
    if generation != state.generation:
        logger.debug("Ignoring stale analysis for generation %d (current %d)", generation, state.generation)
        return state

    if not result.get("success"):
        return replace(
            state,
            image=None,
            is_processing=False,
            error=f"Could not open image: {result.get('error', 'unknown error')}",
        )

    if result.get("exif_error"):
        return replace(
            state,
            image=result["image"],
            exif={},
            settings=replace(state.settings, location=UNKNOWN_LOCATION, subject_text=""),
            is_processing=False,
            error=MSG_NO_EXIF,
        )

    return replace(
        state,
        image=result["image"],
        exif=result.get("exif") or {},
        settings=replace(state.settings, location=result["location"], subject_text=""),
        is_processing=False,
    )


# =============================================================================
# Settings & transform
# =============================================================================

def update_settings(state: SessionState, **changes) -> SessionState:
    return replace(state, settings=replace(state.settings, **changes))


def set_zoom(state: SessionState, zoom: float) -> SessionState:
    return replace(state, transform=replace(state.transform, zoom=min(ZOOM_MAX, max(ZOOM_MIN, zoom))))


def reset_transform(state: SessionState) -> SessionState:
    return replace(state, transform=DEFAULT_TRANSFORM)


def commit_crop(state: SessionState, crop: CropRect) -> SessionState:
    """Make ``crop`` the active crop. Zero-area or out-of-range crops are discarded."""
    if not crop.is_valid():
        logger.debug("Discarding invalid crop %s", crop)
        return state
    return replace(state, transform=replace(state.transform, crop=crop))


def set_cropping(state: SessionState, cropping: bool) -> SessionState:
    return replace(state, is_cropping=cropping)


# =============================================================================
# Subject detection
# =============================================================================

def begin_detect(state: SessionState) -> SessionState:
    return replace(state, is_detecting=True, error=None)


def apply_subject(state: SessionState, generation: int, result: dict) -> SessionState:
    """Apply a finished ``worker.detect_subject`` result."""
    if generation != state.generation:
        logger.debug("Ignoring stale subject mask for generation %d (current %d)", generation, state.generation)
        return state

    if not result.get("success"):
        return replace(state, subject_mask=None, is_detecting=False, error=MSG_SUBJECT_FAILED)
    mask = result.get("mask")
    if mask is None:
        return replace(state, subject_mask=None, is_detecting=False, error=MSG_NO_SUBJECT)
    return replace(state, subject_mask=mask, is_detecting=False)


def clear_error(state: SessionState) -> SessionState:
    return replace(state, error=None)
