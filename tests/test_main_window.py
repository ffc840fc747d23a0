import time

from PIL import Image

from layout_studio import session
from layout_studio.main_window import MainWindow
from layout_studio.models import CropRect


def load_into(window: MainWindow, image: Image.Image):
    state = session.begin_load(window.state, b"raw", "image/png", "photo.png")
    window._dispatch(state)
    window._on_analysis_done(state.generation, {
        "success": True, "image": image.convert("RGBA"), "exif": {"FNumber": 4.0},
        "location": "Sunset Cliffs", "exif_error": None,
    })


def test_controls_follow_state(qtbot, solid_image):
    window = MainWindow()
    qtbot.addWidget(window)

    assert not window._btn_download.isEnabled()
    assert not window._btn_detect.isEnabled()

    load_into(window, solid_image)
    assert window.state.has_image
    assert window._btn_download.isEnabled()
    assert window._location_edit.text() == "Sunset Cliffs"
    assert window._canvas.has_surface()

    window._on_cropping_changed(True)
    assert not window._btn_download.isEnabled()
    assert not window._btn_detect.isEnabled()
    window._on_cropping_changed(False)
    assert window._btn_download.isEnabled()


def test_panel_edits_update_settings(qtbot, solid_image):
    window = MainWindow()
    qtbot.addWidget(window)
    load_into(window, solid_image)

    window._margin_slider.setValue(20)
    window._zoom_slider.setValue(250)
    window._preset_combo.setCurrentIndex(window._preset_combo.findData("Portrait"))

    st = window.state
    assert st.settings.margin_percent == 20
    assert st.transform.zoom == 2.5
    assert st.settings.preset_name == "Portrait"


def test_commit_and_reset(qtbot, solid_image):
    window = MainWindow()
    qtbot.addWidget(window)
    load_into(window, solid_image)

    window._on_crop_committed(CropRect(0.25, 0.25, 0.5, 0.5))
    assert window.state.transform.crop == CropRect(0.25, 0.25, 0.5, 0.5)

    window._btn_reset.click()
    assert window.state.transform.crop == CropRect()
    assert window.state.transform.zoom == 1.0


def test_stale_analysis_does_not_replace_newer_upload(qtbot, solid_image, quadrant_image):
    window = MainWindow()
    qtbot.addWidget(window)
    first = session.begin_load(window.state, b"a", "image/png")
    window._dispatch(first)
    second = session.begin_load(window.state, b"b", "image/png")
    window._dispatch(second)

    window._on_analysis_done(first.generation, {
        "success": True, "image": solid_image.convert("RGBA"), "exif": {}, "location": "Old", "exif_error": None,
    })
    assert not window.state.has_image
    assert window.state.is_processing


def test_download_writes_jpeg(qtbot, tmp_path, monkeypatch, solid_image):
    monkeypatch.setattr("layout_studio.main_window.export_dir", lambda: tmp_path)
    window = MainWindow()
    qtbot.addWidget(window)
    load_into(window, solid_image)

    window._download()
    files = list(tmp_path.glob("layout_*.jpg"))
    assert len(files) == 1
    with Image.open(files[0]) as img:
        assert img.size == (1080, 1080)


def test_close_waits_for_running_jobs(qtbot):
    window = MainWindow()
    qtbot.addWidget(window)
    window.show()

    finished = []

    def slow_job():
        time.sleep(2.5)
        finished.append(True)
        return {"success": True}

    window._start_task(0, slow_job, lambda generation, result: None)
    thread = window._threads[0]
    window.close()

    assert finished == [True]
    assert thread.isFinished()
