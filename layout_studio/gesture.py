"""
Drag-to-crop gesture (Qt-free).

The canvas always shows the already-cropped, zoomed view, so a rectangle
dragged on it is relative to the current crop. ``compose_crop`` maps it back
into original-image coordinates.

Known limitation: the mapping ignores the centering offset that
``compute_dest_rect`` introduces for ``zoom > 1``, so at high zoom the
committed crop can drift slightly from what was visually selected.
"""

import logging
from collections.abc import Callable

from layout_studio.config import MIN_DRAG_SIZE
from layout_studio.geometry import compute_source_rect
from layout_studio.models import CropRect

logger = logging.getLogger(__name__)


def compose_crop(current: CropRect, drag: CropRect, image_w: float, image_h: float) -> CropRect:
    """Map a canvas-normalized drag rect through ``current`` into image space."""
    src = compute_source_rect(image_w, image_h, current)
    return CropRect(
        (src.x + drag.x * src.width) / image_w,
        (src.y + drag.y * src.height) / image_h,
        src.width * drag.width / image_w,
        src.height * drag.height / image_h,
    )


def is_click(drag: CropRect) -> bool:
    """True if the drag is too small to count as a crop."""
    return drag.width <= MIN_DRAG_SIZE or drag.height <= MIN_DRAG_SIZE


class CropGesture:
    """Idle -> Dragging -> Idle state machine for drag-to-crop.

    ``on_cropping`` is called with True on press and False on release so
    collaborators can disable destructive actions mid-drag.
    """

    def __init__(self, on_cropping: Callable[[bool], None] | None = None):
        self._on_cropping = on_cropping
        self._start: tuple[float, float] | None = None
        self._rect: CropRect | None = None

    @property
    def is_dragging(self) -> bool:
        return self._start is not None

    @property
    def current_rect(self) -> CropRect | None:
        """Live drag rectangle in canvas-normalized coordinates, or None when idle."""
        return self._rect

    def press(self, x: float, y: float, canvas_w: float, canvas_h: float):
        nx, ny = x / canvas_w, y / canvas_h
        self._start = (nx, ny)
        self._rect = CropRect(nx, ny, 0.0, 0.0)
        if self._on_cropping:
            self._on_cropping(True)

    def move(self, x: float, y: float, canvas_w: float, canvas_h: float):
        if self._start is None:
            return
        nx, ny = x / canvas_w, y / canvas_h
        sx, sy = self._start
        self._rect = CropRect(min(sx, nx), min(sy, ny), abs(sx - nx), abs(sy - ny))

    def release(self, current_crop: CropRect, image_w: float, image_h: float) -> CropRect | None:
        """End the drag. Returns the composed crop, or None for a click or when idle."""
        if self._start is None:
            return None
        drag = self._rect
        self._start = None
        self._rect = None
        if self._on_cropping:
            self._on_cropping(False)

        if drag is None or is_click(drag):
            logger.debug("Discarding near-zero drag %s", drag)
            return None
        new_crop = compose_crop(current_crop, drag, image_w, image_h)
        logger.debug("Drag %s over %s -> %s", drag, current_crop, new_crop)
        return new_crop

    def cancel(self):
        """Drop any in-progress drag without committing."""
        if self._start is None:
            return
        self._start = None
        self._rect = None
        if self._on_cropping:
            self._on_cropping(False)
