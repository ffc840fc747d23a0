"""
Canvas preview widget and Qt image helpers.

This module contains everything that touches both Qt **and** image display:
``pil_to_qpixmap``, the background ``TaskThread``, and the ``CanvasPreview``
that shows the composed frame and turns mouse drags into crop commits.
"""

from collections.abc import Callable
from pathlib import Path

from PIL import Image
from PyQt6.QtWidgets import QWidget, QSizePolicy
from PyQt6.QtCore import Qt, QRectF, QPointF, pyqtSignal, QThread
from PyQt6.QtGui import (
    QPainter, QPixmap, QColor, QImage, QFont,
    QMouseEvent, QPaintEvent, QResizeEvent, QDragEnterEvent, QDropEvent,
)

from layout_studio.config import IMAGE_EXTENSIONS
from layout_studio.debounce import Debouncer
from layout_studio.gesture import CropGesture
from layout_studio.models import FULL_CROP, CropRect


# =============================================================================
# Qt ↔ PIL helpers
# =============================================================================

def pil_to_qpixmap(pil_img: Image.Image) -> QPixmap:
    """Convert a PIL Image to QPixmap."""
    img_rgb = pil_img.convert("RGBA")
    data = img_rgb.tobytes("raw", "RGBA")
    qimg = QImage(data, img_rgb.width, img_rgb.height, QImage.Format.Format_RGBA8888)
    return QPixmap.fromImage(qimg.copy())


# =============================================================================
# Background task runner
# =============================================================================

class TaskThread(QThread):
    """Runs one Qt-free job off the UI thread and reports its result dict.

    ``generation`` is echoed back so the receiver can drop results for an
    image that is no longer loaded.
    """
    result_ready = pyqtSignal(int, object)

    def __init__(self, generation: int, job: Callable[[], dict], parent=None):
        super().__init__(parent)
        self._generation = generation
        self._job = job

    def run(self):
        try:
            result = self._job()
        except Exception as e:
            result = {"success": False, "error": str(e)}
        self.result_ready.emit(self._generation, result)


# =============================================================================
# Canvas preview: composed frame with drag-to-crop
# =============================================================================

class CanvasPreview(QWidget):
    """Displays the composed frame letterboxed and handles drag-to-crop.

    Signals:
        crop_committed(CropRect): debounced new crop after a real drag.
        cropping_changed(bool): True while a drag is in progress.
        drag_updated(): the live drag rectangle changed; re-render the overlay.
        file_dropped(str): an image file was dropped on the canvas.
    """

    crop_committed = pyqtSignal(object)
    cropping_changed = pyqtSignal(bool)
    drag_updated = pyqtSignal()
    file_dropped = pyqtSignal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(400, 300)
        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        self.setCursor(Qt.CursorShape.CrossCursor)
        self.setAcceptDrops(True)
        self.setMouseTracking(False)

        self._pixmap: QPixmap | None = None
        self._surface_w = 0
        self._surface_h = 0
        self._loading = False

        # Crop context of the view currently displayed
        self._crop = FULL_CROP
        self._img_w = 0
        self._img_h = 0

        # Display mapping
        self._scale = 1.0
        self._offset_x = 0.0
        self._offset_y = 0.0

        self._gesture = CropGesture(on_cropping=self.cropping_changed.emit)
        self._debouncer = Debouncer(parent=self)
        self._debouncer.fired.connect(self.crop_committed.emit)

    def set_loading(self, loading: bool):
        """Show/hide loading indicator."""
        self._loading = loading
        self.update()

    def set_surface(self, surface: Image.Image):
        """Show a freshly composed frame."""
        self._pixmap = pil_to_qpixmap(surface)
        self._surface_w, self._surface_h = surface.size
        self._update_display_mapping()
        self.update()

    def set_crop_context(self, crop: CropRect, img_w: int, img_h: int):
        """Record the crop and source size that drags are composed against."""
        self._crop = crop
        self._img_w = img_w
        self._img_h = img_h

    def drag_rect(self) -> CropRect | None:
        return self._gesture.current_rect

    def has_surface(self) -> bool:
        return self._pixmap is not None

    def clear(self):
        self._gesture.cancel()
        self._debouncer.cancel()
        self._pixmap = None
        self._surface_w = 0
        self._surface_h = 0
        self._img_w = 0
        self._img_h = 0
        self.update()

    # --- Coordinate mapping ---

    def _update_display_mapping(self):
        """Calculate scale and offset to fit the frame in the widget with letterboxing."""
        if not self._pixmap or self._surface_w == 0 or self._surface_h == 0:
            return
        ww, wh = self.width(), self.height()
        self._scale = min(ww / self._surface_w, wh / self._surface_h)
        disp_w = self._surface_w * self._scale
        disp_h = self._surface_h * self._scale
        self._offset_x = (ww - disp_w) / 2
        self._offset_y = (wh - disp_h) / 2

    def _display_rect(self) -> QRectF:
        return QRectF(
            self._offset_x, self._offset_y,
            self._surface_w * self._scale, self._surface_h * self._scale,
        )

    def _display_to_surface(self, pos: QPointF) -> tuple[float, float]:
        """Widget position -> surface pixel, clamped to the frame."""
        if self._scale == 0:
            return 0.0, 0.0
        x = (pos.x() - self._offset_x) / self._scale
        y = (pos.y() - self._offset_y) / self._scale
        return max(0.0, min(x, self._surface_w)), max(0.0, min(y, self._surface_h))

    # --- Painting ---

    def paintEvent(self, event: QPaintEvent):
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(30, 30, 30))

        if not self._pixmap:
            painter.setPen(QColor(128, 128, 128))
            font = QFont(painter.font())
            font.setPointSize(12)
            painter.setFont(font)
            msg = (
                "Analyzing your masterpiece…" if self._loading
                else "Drop an image here or use Open Image…"
            )
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, msg)
            painter.end()
            return

        painter.drawPixmap(self._display_rect().toRect(), self._pixmap)

        if self._loading:
            painter.fillRect(self.rect(), QColor(17, 24, 39, 190))
            painter.setPen(QColor(230, 230, 230))
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, "Analyzing your masterpiece…")

        painter.end()

    def resizeEvent(self, event: QResizeEvent):
        self._update_display_mapping()
        super().resizeEvent(event)

    # --- Mouse interaction ---

    def mousePressEvent(self, event: QMouseEvent):
        if event.button() != Qt.MouseButton.LeftButton or not self._pixmap or self._img_w == 0:
            return
        pos = event.position()
        if not self._display_rect().contains(pos):
            return
        x, y = self._display_to_surface(pos)
        self._gesture.press(x, y, self._surface_w, self._surface_h)
        self.drag_updated.emit()

    def mouseMoveEvent(self, event: QMouseEvent):
        if not self._gesture.is_dragging:
            return
        x, y = self._display_to_surface(event.position())
        self._gesture.move(x, y, self._surface_w, self._surface_h)
        self.drag_updated.emit()

    def mouseReleaseEvent(self, event: QMouseEvent):
        if event.button() == Qt.MouseButton.LeftButton and self._gesture.is_dragging:
            x, y = self._display_to_surface(event.position())
            self._gesture.move(x, y, self._surface_w, self._surface_h)
            self._finish_drag()

    def leaveEvent(self, event):
        self._finish_drag()
        super().leaveEvent(event)

    def _finish_drag(self):
        if not self._gesture.is_dragging:
            return
        new_crop = self._gesture.release(self._crop, self._img_w, self._img_h)
        self.drag_updated.emit()
        if new_crop is not None:
            self._debouncer.push(new_crop)

    # --- Drag & drop upload ---

    @staticmethod
    def _dropped_image_path(event) -> str | None:
        mime = event.mimeData()
        if not mime.hasUrls():
            return None
        for url in mime.urls():
            if url.isLocalFile() and Path(url.toLocalFile()).suffix.lower() in IMAGE_EXTENSIONS:
                return url.toLocalFile()
        return None

    def dragEnterEvent(self, event: QDragEnterEvent):
        if self._dropped_image_path(event):
            event.acceptProposedAction()
        else:
            event.ignore()

    def dropEvent(self, event: QDropEvent):
        path = self._dropped_image_path(event)
        if path:
            event.acceptProposedAction()
            self.file_dropped.emit(path)
