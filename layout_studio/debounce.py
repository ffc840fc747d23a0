"""
Single-slot debouncer on a Qt timer.

Each ``push`` replaces the pending value and restarts the timer; when the
window closes, ``fired`` is emitted once with the last value pushed.
"""

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from layout_studio.config import CROP_DEBOUNCE_MS


class Debouncer(QObject):
    fired = pyqtSignal(object)

    def __init__(self, delay_ms: int = CROP_DEBOUNCE_MS, parent=None):
        super().__init__(parent)
        self._pending = None
        self._has_pending = False
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(delay_ms)
        self._timer.timeout.connect(self._flush)

    def push(self, value):
        self._pending = value
        self._has_pending = True
        self._timer.start()

    def is_pending(self) -> bool:
        return self._has_pending

    def cancel(self):
        self._timer.stop()
        self._pending = None
        self._has_pending = False

    def _flush(self):
        if not self._has_pending:
            return
        value = self._pending
        self._pending = None
        self._has_pending = False
        self.fired.emit(value)
