"""
Main application window.

Orchestrates image loading, background analysis and subject detection,
the layout configuration panel, crop/zoom editing, and JPEG download.
All state lives in one immutable ``SessionState``; every handler replaces
it through a reducer from ``session.py`` and then re-renders.
"""

import logging
from functools import partial
from pathlib import Path

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLabel,
    QFileDialog, QGroupBox, QMessageBox, QStatusBar, QToolBar, QCheckBox,
    QComboBox, QSlider, QLineEdit, QColorDialog, QScrollArea, QApplication,
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QColor, QKeySequence

from layout_studio.canvas_widget import CanvasPreview, TaskThread
from layout_studio.compositor import Compositor
from layout_studio.config import (
    FONT_FACES, FONT_SIZE_MAX, FONT_SIZE_MIN, IMAGE_EXTENSIONS, MARGIN_MAX, MARGIN_MIN,
    STATUS_TIMEOUT_MS, ZOOM_MAX, ZOOM_MIN, ZOOM_STEP, export_dir,
)
from layout_studio.image_io import export_jpeg, mime_type_for
from layout_studio.models import PRESETS
from layout_studio import session
from layout_studio.session import SessionState
from layout_studio.worker import analyze_upload, detect_subject

logger = logging.getLogger(__name__)

# Zoom slider works in hundredths
_ZOOM_SCALE = 100


class MainWindow(QMainWindow):
    def __init__(self):
        super().__init__()
        self.setWindowTitle("Layout Studio")
        self.setMinimumSize(900, 600)

        # Screen-aware startup size, clamped to 80% of screen
        preferred_w, preferred_h = 1400, 900
        screen = QApplication.primaryScreen()
        if screen is not None:
            avail = screen.availableGeometry()
            preferred_w = min(preferred_w, int(avail.width() * 0.8))
            preferred_h = min(preferred_h, int(avail.height() * 0.8))
        self.resize(preferred_w, preferred_h)

        self._state = SessionState()
        self._compositor = Compositor()
        self._threads: list[TaskThread] = []
        self._last_dir: Path | None = None

        self._build_ui()
        self._sync_controls()

    @property
    def state(self) -> SessionState:
        return self._state

    # =========================================================================
    # UI construction
    # =========================================================================

    def _build_ui(self):
        self._build_toolbar()

        central = QWidget()
        self.setCentralWidget(central)
        main_layout = QHBoxLayout(central)
        main_layout.setContentsMargins(4, 4, 4, 4)

        main_layout.addWidget(self._build_config_panel())

        self._canvas = CanvasPreview()
        self._canvas.crop_committed.connect(self._on_crop_committed)
        self._canvas.cropping_changed.connect(self._on_cropping_changed)
        self._canvas.drag_updated.connect(self._render)
        self._canvas.file_dropped.connect(lambda p: self._load_file(Path(p)))
        main_layout.addWidget(self._canvas, stretch=1)

        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._status.showMessage("Open or drop a photo to begin.")

    def _build_toolbar(self):
        toolbar = QToolBar("Main")
        toolbar.setMovable(False)
        self.addToolBar(toolbar)

        act_open = QAction("📂 Open Image…", self)
        act_open.setShortcut(QKeySequence.StandardKey.Open)
        act_open.triggered.connect(self._select_image)
        toolbar.addAction(act_open)

    def _build_config_panel(self) -> QWidget:
        inner = QWidget()
        inner_layout = QVBoxLayout(inner)
        inner_layout.setContentsMargins(0, 0, 0, 0)

        title = QLabel("Layout Studio")
        title.setStyleSheet("font-size: 14pt; font-weight: bold; padding: 4px;")
        inner_layout.addWidget(title)

        inner_layout.addWidget(self._build_frame_group())
        inner_layout.addWidget(self._build_transform_group())
        inner_layout.addWidget(self._build_text_group())
        inner_layout.addWidget(self._build_subject_group())

        self._btn_download = QPushButton("⬇ Download Image")
        self._btn_download.clicked.connect(self._download)
        inner_layout.addWidget(self._btn_download)

        inner_layout.addStretch()

        # Scroll area wraps the inner widget so the panel can shrink
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(inner)
        scroll.setHorizontalScrollBarPolicy(Qt.ScrollBarPolicy.ScrollBarAlwaysOff)
        scroll.setFrameShape(scroll.Shape.NoFrame)

        panel = QWidget()
        panel.setFixedWidth(300)
        panel_layout = QVBoxLayout(panel)
        panel_layout.setContentsMargins(0, 0, 4, 0)
        panel_layout.addWidget(scroll)
        return panel

    def _build_frame_group(self) -> QGroupBox:
        group = QGroupBox("Frame")
        layout = QVBoxLayout(group)

        layout.addWidget(QLabel("Preset:"))
        self._preset_combo = QComboBox()
        for name, preset in PRESETS.items():
            self._preset_combo.addItem(preset.label, name)
        self._preset_combo.currentIndexChanged.connect(
            lambda i: self._update_settings(preset_name=self._preset_combo.itemData(i))
        )
        layout.addWidget(self._preset_combo)

        self._margin_label = QLabel()
        layout.addWidget(self._margin_label)
        self._margin_slider = QSlider(Qt.Orientation.Horizontal)
        self._margin_slider.setRange(MARGIN_MIN, MARGIN_MAX)
        self._margin_slider.valueChanged.connect(lambda v: self._update_settings(margin_percent=v))
        layout.addWidget(self._margin_slider)

        row = QHBoxLayout()
        row.addWidget(QLabel("Margin Color:"))
        self._margin_color_btn = QPushButton()
        self._margin_color_btn.clicked.connect(partial(self._pick_color, "margin_color"))
        row.addWidget(self._margin_color_btn, stretch=1)
        layout.addLayout(row)

        return group

    def _build_transform_group(self) -> QGroupBox:
        group = QGroupBox("Transform")
        layout = QVBoxLayout(group)

        self._zoom_label = QLabel()
        layout.addWidget(self._zoom_label)
        self._zoom_slider = QSlider(Qt.Orientation.Horizontal)
        self._zoom_slider.setRange(int(ZOOM_MIN * _ZOOM_SCALE), int(ZOOM_MAX * _ZOOM_SCALE))
        self._zoom_slider.setSingleStep(int(ZOOM_STEP * _ZOOM_SCALE))
        self._zoom_slider.setPageStep(int(ZOOM_STEP * _ZOOM_SCALE) * 5)
        self._zoom_slider.valueChanged.connect(self._on_zoom_changed)
        layout.addWidget(self._zoom_slider)

        self._btn_reset = QPushButton("↺ Reset Crop & Zoom")
        self._btn_reset.setToolTip("Show the full image at 1× zoom")
        self._btn_reset.clicked.connect(lambda: self._dispatch(session.reset_transform(self._state)))
        layout.addWidget(self._btn_reset)

        hint = QLabel("Drag on the preview to crop the visible area.")
        hint.setWordWrap(True)
        hint.setStyleSheet("color: #888; font-size: 8pt;")
        layout.addWidget(hint)
        return group

    def _build_text_group(self) -> QGroupBox:
        group = QGroupBox("Text")
        layout = QVBoxLayout(group)

        self._show_exif = QCheckBox("Show EXIF Details")
        self._show_exif.toggled.connect(lambda checked: self._update_settings(show_exif=checked))
        layout.addWidget(self._show_exif)

        layout.addWidget(QLabel("Location Name:"))
        self._location_edit = QLineEdit()
        self._location_edit.textEdited.connect(lambda text: self._update_settings(location=text))
        layout.addWidget(self._location_edit)

        font_row = QHBoxLayout()
        font_row.addWidget(QLabel("Font:"))
        self._font_combo = QComboBox()
        self._font_combo.addItems(FONT_FACES)
        self._font_combo.currentTextChanged.connect(lambda f: self._update_settings(font_family=f))
        font_row.addWidget(self._font_combo, stretch=1)
        layout.addLayout(font_row)

        color_row = QHBoxLayout()
        color_row.addWidget(QLabel("Text Color:"))
        self._text_color_btn = QPushButton()
        self._text_color_btn.clicked.connect(partial(self._pick_color, "text_color"))
        color_row.addWidget(self._text_color_btn, stretch=1)
        layout.addLayout(color_row)

        self._font_size_label = QLabel()
        layout.addWidget(self._font_size_label)
        self._font_size_slider = QSlider(Qt.Orientation.Horizontal)
        self._font_size_slider.setRange(FONT_SIZE_MIN, FONT_SIZE_MAX)
        self._font_size_slider.valueChanged.connect(lambda v: self._update_settings(font_size=v))
        layout.addWidget(self._font_size_slider)

        return group

    def _build_subject_group(self) -> QGroupBox:
        group = QGroupBox("Subject Effect")
        layout = QVBoxLayout(group)

        layout.addWidget(QLabel("Subject Text:"))
        self._subject_edit = QLineEdit()
        self._subject_edit.setPlaceholderText("Text shown behind the subject")
        self._subject_edit.textEdited.connect(lambda text: self._update_settings(subject_text=text))
        layout.addWidget(self._subject_edit)

        self._btn_detect = QPushButton("✨ Detect Subject")
        self._btn_detect.clicked.connect(self._detect_subject)
        layout.addWidget(self._btn_detect)
        return group

    # =========================================================================
    # State plumbing
    # =========================================================================

    def _dispatch(self, new_state: SessionState):
        """Replace the session state, surface any new error, and re-render."""
        old_state = self._state
        self._state = new_state
        if new_state.error and new_state.error != old_state.error:
            logger.info("Notice: %s", new_state.error)
            self._status.showMessage(new_state.error, STATUS_TIMEOUT_MS)
        self._sync_controls()
        self._render()

    def _update_settings(self, **changes):
        self._dispatch(session.update_settings(self._state, **changes))

    def _sync_controls(self):
        """Push state into the panel widgets without re-triggering their handlers."""
        st = self._state
        settings = st.settings
        widgets = (
            self._preset_combo, self._margin_slider, self._zoom_slider, self._show_exif,
            self._location_edit, self._font_combo, self._font_size_slider, self._subject_edit,
        )
        for w in widgets:
            w.blockSignals(True)
        try:
            self._preset_combo.setCurrentIndex(self._preset_combo.findData(settings.preset_name))
            self._margin_slider.setValue(int(settings.margin_percent))
            self._zoom_slider.setValue(round(st.transform.zoom * _ZOOM_SCALE))
            self._show_exif.setChecked(settings.show_exif)
            if self._location_edit.text() != settings.location:
                self._location_edit.setText(settings.location)
            self._font_combo.setCurrentText(settings.font_family)
            self._font_size_slider.setValue(settings.font_size)
            if self._subject_edit.text() != settings.subject_text:
                self._subject_edit.setText(settings.subject_text)
        finally:
            for w in widgets:
                w.blockSignals(False)

        self._margin_label.setText(f"Margin Size ({settings.margin_percent:g}%)")
        self._zoom_label.setText(f"Zoom ({st.transform.zoom:.2f}x)")
        self._font_size_label.setText(f"Font Size ({settings.font_size}px)")
        self._set_swatch(self._margin_color_btn, settings.margin_color)
        self._set_swatch(self._text_color_btn, settings.text_color)

        self._btn_download.setEnabled(st.can_download)
        self._btn_detect.setEnabled(st.can_detect)
        self._btn_detect.setText("Detecting…" if st.is_detecting else "✨ Detect Subject")
        self._btn_reset.setEnabled(st.can_reset)
        self._zoom_slider.setEnabled(st.has_image)

    @staticmethod
    def _set_swatch(button: QPushButton, color: str):
        button.setText(color.upper())
        text = "#000" if QColor(color).lightness() > 128 else "#fff"
        button.setStyleSheet(f"QPushButton {{ background: {color}; color: {text}; }}")

    def _render(self):
        """Compose the current state onto the canvas."""
        st = self._state
        self._canvas.set_loading(st.is_processing)
        if st.image is None:
            self._canvas.clear()
            return
        surface = self._compositor.render(
            st.image, st.transform, st.settings,
            exif=st.exif, subject_mask=st.subject_mask, drag_rect=self._canvas.drag_rect(),
        )
        self._canvas.set_crop_context(st.transform.crop, st.image.width, st.image.height)
        self._canvas.set_surface(surface)

    # =========================================================================
    # Event handlers
    # =========================================================================

    def _pick_color(self, key: str):
        current = QColor(getattr(self._state.settings, key))
        color = QColorDialog.getColor(current, self, "Select Color")
        if color.isValid():
            self._update_settings(**{key: color.name()})

    def _on_zoom_changed(self, value: int):
        self._dispatch(session.set_zoom(self._state, value / _ZOOM_SCALE))

    def _on_crop_committed(self, crop):
        self._dispatch(session.commit_crop(self._state, crop))

    def _on_cropping_changed(self, cropping: bool):
        self._dispatch(session.set_cropping(self._state, cropping))

    # =========================================================================
    # Image loading
    # =========================================================================

    def _select_image(self):
        patterns = " ".join(f"*{ext}" for ext in sorted(IMAGE_EXTENSIONS))
        path, _ = QFileDialog.getOpenFileName(
            self, "Open Image", str(self._last_dir or Path.home()),
            f"Images ({patterns})",
        )
        if path:
            self._load_file(Path(path))

    def _load_file(self, path: Path):
        try:
            data = path.read_bytes()
        except OSError as e:
            self._status.showMessage(f"Failed to read {path.name}: {e}", STATUS_TIMEOUT_MS)
            return
        self._last_dir = path.parent
        self._canvas.clear()
        self._dispatch(session.begin_load(self._state, data, mime_type_for(path), path.name))

        generation = self._state.generation
        mime = self._state.mime_type
        self._start_task(generation, lambda: analyze_upload(data, mime), self._on_analysis_done)
        self._status.showMessage(f"Analyzing {path.name}…")

    def _on_analysis_done(self, generation: int, result: dict):
        self._dispatch(session.apply_analysis(self._state, generation, result))
        if generation == self._state.generation and self._state.has_image:
            st = self._state
            self._status.showMessage(
                f"{st.file_name}: {st.image.width} × {st.image.height}", STATUS_TIMEOUT_MS,
            )

    # =========================================================================
    # Subject detection
    # =========================================================================

    def _detect_subject(self):
        if not self._state.can_detect:
            return
        self._dispatch(session.begin_detect(self._state))
        st = self._state
        image, data, mime = st.image, st.image_bytes, st.mime_type
        self._start_task(st.generation, lambda: detect_subject(image, data, mime), self._on_subject_done)

    def _on_subject_done(self, generation: int, result: dict):
        self._dispatch(session.apply_subject(self._state, generation, result))
        if generation == self._state.generation and self._state.subject_mask is not None:
            self._status.showMessage("Subject detected.", STATUS_TIMEOUT_MS)

    # =========================================================================
    # Background tasks
    # =========================================================================

    def _start_task(self, generation: int, job, on_result):
        thread = TaskThread(generation, job, self)
        thread.result_ready.connect(on_result)
        thread.finished.connect(partial(self._forget_task, thread))
        self._threads.append(thread)
        thread.start()

    def _forget_task(self, thread: TaskThread):
        if thread in self._threads:
            self._threads.remove(thread)
        thread.deleteLater()

    # =========================================================================
    # Download
    # =========================================================================

    def _download(self):
        st = self._state
        if not st.can_download:
            return
        surface = self._compositor.render(
            st.image, st.transform, st.settings, exif=st.exif, subject_mask=st.subject_mask,
        )
        try:
            out_path = export_jpeg(surface, export_dir())
        except OSError as e:
            QMessageBox.warning(self, "Download Failed", f"Could not save image:\n{e}")
            return
        self._status.showMessage(f"Saved: {out_path}", STATUS_TIMEOUT_MS)

    def closeEvent(self, event):
        """Let background jobs finish before the window goes away."""
        for thread in list(self._threads):
            thread.wait()
        super().closeEvent(event)
