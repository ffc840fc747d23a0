import pytest
from PIL import Image
from PyQt6.QtCore import QEvent, QPoint, QPointF, Qt
from PyQt6.QtGui import QMouseEvent
from PyQt6.QtWidgets import QApplication

from layout_studio.canvas_widget import CanvasPreview, TaskThread, pil_to_qpixmap
from layout_studio.models import FULL_CROP, CropRect


@pytest.fixture
def canvas(qtbot):
    widget = CanvasPreview()
    qtbot.addWidget(widget)
    widget.resize(600, 600)
    widget.show()
    qtbot.waitExposed(widget)
    widget.set_surface(Image.new("RGB", (1080, 1080), (255, 255, 255)))
    widget.set_crop_context(FULL_CROP, 2000, 1000)
    return widget


def point_at(widget, fx, fy) -> QPoint:
    rect = widget._display_rect()
    return QPoint(round(rect.x() + rect.width() * fx), round(rect.y() + rect.height() * fy))


@pytest.mark.usefixtures("qapp")
def test_pil_to_qpixmap_keeps_size():
    pixmap = pil_to_qpixmap(Image.new("RGB", (64, 32)))
    assert (pixmap.width(), pixmap.height()) == (64, 32)


def test_drag_commits_composed_crop(qtbot, canvas):
    cropping = []
    canvas.cropping_changed.connect(cropping.append)

    qtbot.mousePress(canvas, Qt.MouseButton.LeftButton, pos=point_at(canvas, 0.25, 0.25))
    assert canvas.drag_rect() is not None
    qtbot.mouseMove(canvas, point_at(canvas, 0.75, 0.75))

    with qtbot.waitSignal(canvas.crop_committed, timeout=1000) as blocker:
        qtbot.mouseRelease(canvas, Qt.MouseButton.LeftButton, pos=point_at(canvas, 0.75, 0.75))

    crop = blocker.args[0]
    assert isinstance(crop, CropRect)
    assert (crop.x, crop.y, crop.width, crop.height) == pytest.approx((0.25, 0.25, 0.5, 0.5), abs=0.01)
    assert cropping == [True, False]
    assert canvas.drag_rect() is None


def test_click_does_not_commit(qtbot, canvas):
    committed = []
    canvas.crop_committed.connect(committed.append)

    pos = point_at(canvas, 0.5, 0.5)
    qtbot.mousePress(canvas, Qt.MouseButton.LeftButton, pos=pos)
    qtbot.mouseRelease(canvas, Qt.MouseButton.LeftButton, pos=pos)
    qtbot.wait(150)
    assert committed == []


def test_press_without_image_is_ignored(qtbot):
    widget = CanvasPreview()
    qtbot.addWidget(widget)
    widget.show()
    qtbot.waitExposed(widget)
    qtbot.mousePress(widget, Qt.MouseButton.LeftButton, pos=QPoint(50, 50))
    assert widget.drag_rect() is None


def test_task_thread_reports_generation_and_result(qtbot):
    thread = TaskThread(7, lambda: {"success": True, "value": 42})
    with qtbot.waitSignal(thread.result_ready, timeout=2000) as blocker:
        thread.start()
    thread.wait()
    assert blocker.args == [7, {"success": True, "value": 42}]


def test_task_thread_converts_exceptions(qtbot):
    def boom():
        raise ValueError("bad")

    thread = TaskThread(1, boom)
    with qtbot.waitSignal(thread.result_ready, timeout=2000) as blocker:
        thread.start()
    thread.wait()
    assert blocker.args == [1, {"success": False, "error": "bad"}]


def drag_to(widget, pos: QPoint):
    local = QPointF(pos)
    event = QMouseEvent(
        QEvent.Type.MouseMove, local, QPointF(widget.mapToGlobal(pos)),
        Qt.MouseButton.NoButton, Qt.MouseButton.LeftButton, Qt.KeyboardModifier.NoModifier,
    )
    QApplication.sendEvent(widget, event)


def test_leaving_the_canvas_ends_the_drag_like_a_release(qtbot, canvas):
    cropping = []
    canvas.cropping_changed.connect(cropping.append)

    qtbot.mousePress(canvas, Qt.MouseButton.LeftButton, pos=point_at(canvas, 0.1, 0.2))
    drag_to(canvas, point_at(canvas, 0.6, 0.9))
    live = canvas.drag_rect()
    assert (live.x, live.y, live.width, live.height) == pytest.approx((0.1, 0.2, 0.5, 0.7), abs=0.01)

    with qtbot.waitSignal(canvas.crop_committed, timeout=1000) as blocker:
        QApplication.sendEvent(canvas, QEvent(QEvent.Type.Leave))

    crop = blocker.args[0]
    assert (crop.x, crop.y, crop.width, crop.height) == pytest.approx((0.1, 0.2, 0.5, 0.7), abs=0.01)
    assert cropping == [True, False]
    assert canvas.drag_rect() is None
