"""
Frame geometry: where the image is sampled from and where it is drawn.

Pure functions over plain numbers and ``PixelRect``; no I/O and no state.
Degenerate results are returned as empty rects, never raised.
"""

from layout_studio.models import CropRect, PixelRect


def compute_margin_px(frame_w: float, frame_h: float, margin_percent: float) -> float:
    """Margin in pixels, proportional to the shorter frame side."""
    return min(frame_w, frame_h) * margin_percent / 100


def compute_inner_rect(frame_w: float, frame_h: float, margin_percent: float) -> PixelRect:
    """Frame area left after insetting the margin on all four sides.

    The result may be empty (``is_empty``) when the margin eats the whole
    frame; callers skip drawing in that case.
    """
    margin = compute_margin_px(frame_w, frame_h, margin_percent)
    return PixelRect(margin, margin, frame_w - 2 * margin, frame_h - 2 * margin)


def compute_source_rect(image_w: float, image_h: float, crop: CropRect) -> PixelRect:
    """Pixel region of the original image selected by ``crop`` (no clamping)."""
    return PixelRect(
        image_w * crop.x,
        image_h * crop.y,
        image_w * crop.width,
        image_h * crop.height,
    )


def compute_dest_rect(inner: PixelRect, source_aspect: float, zoom: float) -> PixelRect:
    """Contain-fit ``source_aspect`` in ``inner``, then scale by ``zoom`` about its center.

    With ``zoom > 1`` the result overflows ``inner``; clipping is left to
    the drawing surface.
    """
    if source_aspect > inner.width / inner.height:
        fit_w = inner.width
        fit_h = inner.width / source_aspect
    else:
        fit_h = inner.height
        fit_w = inner.height * source_aspect

    zoomed_w = fit_w * zoom
    zoomed_h = fit_h * zoom
    return PixelRect(
        inner.x + (inner.width - zoomed_w) / 2,
        inner.y + (inner.height - zoomed_h) / 2,
        zoomed_w,
        zoomed_h,
    )
