"""
Layered frame compositing (Qt-free).

Draws the framed photo, the subject glow, the EXIF text block and the live
crop-drag overlay onto a Pillow surface sized to the active frame preset.
Safe to call from worker threads and from tests without a display.
"""

import logging
from functools import lru_cache

from PIL import Image, ImageChops, ImageColor, ImageDraw, ImageFilter, ImageFont

from layout_studio.config import (
    BOLD_FONT_FILES, DRAG_STROKE_COLOR, DRAG_STROKE_WIDTH, DRAG_WASH_ALPHA,
    FONT_FILES, GLOW_BLUR_RADIUS, GLOW_PASSES, LINE_HEIGHT_FACTOR,
    SUBJECT_FONT_FACTOR, TEXT_PADDING_FACTOR,
)
from layout_studio.geometry import (
    compute_dest_rect, compute_inner_rect, compute_margin_px, compute_source_rect,
)
from layout_studio.models import (
    CropRect, ExifRecord, LayoutSettings, PixelRect, Transform, frame_preset,
)
from layout_studio.overlay_text import build_exif_lines

logger = logging.getLogger(__name__)


# =============================================================================
# Fonts
# =============================================================================

@lru_cache(maxsize=64)
def load_font(family: str, size: int, bold: bool = False) -> ImageFont.ImageFont:
    """Load a TrueType font for a face name, falling back to Pillow's bundled font."""
    candidates = (BOLD_FONT_FILES if bold else FONT_FILES).get(family, [])
    for filename in candidates:
        try:
            return ImageFont.truetype(filename, size)
        except OSError:
            continue
    logger.debug("No font file found for %r, using Pillow default", family)
    return ImageFont.load_default(size=size)


# =============================================================================
# Sampling helpers
# =============================================================================

def _sample_into(
    image: Image.Image, src: PixelRect, dest: PixelRect, surface_size: tuple[int, int],
) -> tuple[Image.Image, tuple[int, int]] | None:
    """Resample the ``src`` region of ``image`` so it covers ``dest``.

    Only the part of ``dest`` that lands on the surface is produced; returns
    the patch and its paste position, or None when nothing is visible.
    """
    sw, sh = surface_size
    x0 = max(0, round(dest.x))
    y0 = max(0, round(dest.y))
    x1 = min(sw, round(dest.right))
    y1 = min(sh, round(dest.bottom))
    if x1 <= x0 or y1 <= y0:
        return None

    scale_x = src.width / dest.width
    scale_y = src.height / dest.height
    box = (
        max(0.0, src.x + (x0 - dest.x) * scale_x),
        max(0.0, src.y + (y0 - dest.y) * scale_y),
        min(float(image.width), src.x + (x1 - dest.x) * scale_x),
        min(float(image.height), src.y + (y1 - dest.y) * scale_y),
    )
    patch = image.resize((x1 - x0, y1 - y0), Image.Resampling.LANCZOS, box=box)
    return patch, (x0, y0)


def _mask_alpha(mask: Image.Image) -> Image.Image:
    """Single-band stencil from a mask image.

    Masks with real transparency use their alpha channel; opaque
    black/white masks use luminance (white = subject).
    """
    if mask.mode in ("RGBA", "LA") or "transparency" in mask.info:
        alpha = mask.convert("RGBA").getchannel("A")
        if alpha.getextrema() != (255, 255):
            return alpha
    return mask.convert("L")


# =============================================================================
# Compositor
# =============================================================================

class Compositor:
    """Renders a layout to a Pillow surface.

    State kept between calls is the scratch surface used for the subject
    layer and the last composed base beneath the drag overlay. The base is
    reused only for identical inputs and the overlay is drawn on a copy, so
    identical inputs give identical pixels.
    """

    def __init__(self):
        self._scratch: Image.Image | None = None
        # Last composed base (everything below the drag overlay) and its inputs
        self._base: Image.Image | None = None
        self._base_inputs: tuple | None = None

    def render(
        self,
        image: Image.Image,
        transform: Transform,
        settings: LayoutSettings,
        exif: ExifRecord | None = None,
        subject_mask: Image.Image | None = None,
        drag_rect: CropRect | None = None,
    ) -> Image.Image:
        """Compose all layers and return an RGB image of the preset's size.

        The layers below the drag overlay are cached for the last set of
        inputs, so moving a drag only redraws the overlay.
        """
        base = self._cached_base(image, transform, settings, exif, subject_mask)
        preset = frame_preset(settings.preset_name)
        inner = compute_inner_rect(preset.width, preset.height, settings.margin_percent)
        if drag_rect is None or inner.is_empty:
            return base.convert("RGB")
        surface = base.copy()
        self._draw_drag_overlay(surface, drag_rect)
        return surface.convert("RGB")

    def _cached_base(self, image, transform, settings, exif, subject_mask) -> Image.Image:
        inputs = (image, transform, settings, exif, subject_mask)
        cached = self._base_inputs
        # images and records are compared by identity; state updates replace them
        if cached is not None and (
            cached[0] is image and cached[1] == transform and cached[2] == settings
            and cached[3] is exif and cached[4] is subject_mask
        ):
            return self._base
        self._base = self._render_base(image, transform, settings, exif, subject_mask)
        self._base_inputs = inputs
        return self._base

    def _render_base(
        self,
        image: Image.Image,
        transform: Transform,
        settings: LayoutSettings,
        exif: ExifRecord | None,
        subject_mask: Image.Image | None,
    ) -> Image.Image:
        """Layers 1-6: margin fill, photo, subject glow and EXIF text (RGBA)."""
        preset = frame_preset(settings.preset_name)
        size = (preset.width, preset.height)
        surface = Image.new("RGBA", size, ImageColor.getrgb(settings.margin_color))

        inner = compute_inner_rect(preset.width, preset.height, settings.margin_percent)
        if inner.is_empty:
            logger.debug("Margin %s%% leaves no room for the image", settings.margin_percent)
            return surface

        if image.mode != "RGBA":
            image = image.convert("RGBA")
        src = compute_source_rect(image.width, image.height, transform.crop)
        dest = compute_dest_rect(inner, src.aspect_ratio, transform.zoom)

        sample = _sample_into(image, src, dest, size)
        if sample is not None:
            patch, pos = sample
            surface.alpha_composite(patch, dest=pos)

        if subject_mask is not None and settings.subject_text:
            self._draw_subject_layer(surface, image, src, dest, subject_mask, settings)

        if settings.show_exif and exif is not None:
            margin = compute_margin_px(preset.width, preset.height, settings.margin_percent)
            self._draw_exif_layer(surface, exif, settings, margin)

        return surface

    # --- Layers ---

    def _scratch_surface(self, size: tuple[int, int]) -> Image.Image:
        """Return the cached scratch surface, cleared and sized to ``size``."""
        if self._scratch is None or self._scratch.size != size:
            self._scratch = Image.new("RGBA", size, (0, 0, 0, 0))
        else:
            self._scratch.paste((0, 0, 0, 0), (0, 0, size[0], size[1]))
        return self._scratch

    def _draw_subject_layer(
        self, surface: Image.Image, image: Image.Image, src: PixelRect, dest: PixelRect,
        subject_mask: Image.Image, settings: LayoutSettings,
    ):
        """Subject text behind a glowing cutout of the masked subject."""
        w, h = surface.size
        draw = ImageDraw.Draw(surface)
        font = load_font(settings.font_family, settings.font_size * SUBJECT_FONT_FACTOR, bold=True)
        draw.text((w / 2, h / 2), settings.subject_text,
                  fill=ImageColor.getrgb(settings.text_color), font=font, anchor="mm")

        sample = _sample_into(image, src, dest, surface.size)
        if sample is None:
            return
        patch, pos = sample

        mask = _mask_alpha(subject_mask)
        mask_src = PixelRect(0, 0, mask.width, mask.height)
        mask_sample = _sample_into(mask, mask_src, dest, surface.size)
        if mask_sample is None:
            return
        mask_patch, _ = mask_sample

        # destination-in: keep image pixels only where the mask is opaque
        stencil = patch.copy()
        stencil.putalpha(ImageChops.multiply(patch.getchannel("A"), mask_patch))

        scratch = self._scratch_surface(surface.size)
        scratch.paste(stencil, pos)

        shadow = Image.new("RGBA", surface.size, ImageColor.getrgb(settings.margin_color))
        shadow.putalpha(scratch.getchannel("A").filter(ImageFilter.GaussianBlur(GLOW_BLUR_RADIUS / 2)))

        for _ in range(GLOW_PASSES):
            surface.alpha_composite(shadow)
            surface.alpha_composite(scratch)

    def _draw_exif_layer(
        self, surface: Image.Image, exif: ExifRecord, settings: LayoutSettings, margin: float,
    ):
        """Right-aligned text block anchored to the bottom margin, last line lowest."""
        lines = build_exif_lines(exif, settings)
        if not lines:
            return
        w, h = surface.size
        draw = ImageDraw.Draw(surface)
        font = load_font(settings.font_family, settings.font_size)
        fill = ImageColor.getrgb(settings.text_color)
        padding = margin * TEXT_PADDING_FACTOR
        x = w - margin - padding
        for i, line in enumerate(reversed(lines)):
            y = h - margin - padding - i * settings.font_size * LINE_HEIGHT_FACTOR
            draw.text((x, y), line, fill=fill, font=font, anchor="rd")

    def _draw_drag_overlay(self, surface: Image.Image, drag_rect: CropRect):
        """Darken the frame and leave the dragged rectangle as a clear, outlined window."""
        w, h = surface.size
        box = (
            round(drag_rect.x * w),
            round(drag_rect.y * h),
            round((drag_rect.x + drag_rect.width) * w),
            round((drag_rect.y + drag_rect.height) * h),
        )
        window = surface.crop(box) if box[2] > box[0] and box[3] > box[1] else None

        surface.alpha_composite(Image.new("RGBA", surface.size, (0, 0, 0, DRAG_WASH_ALPHA)))
        if window is None:
            return
        surface.paste(window, box[:2])

        outline = Image.new("RGBA", surface.size, (0, 0, 0, 0))
        ImageDraw.Draw(outline).rectangle(
            (box[0], box[1], box[2] - 1, box[3] - 1),
            outline=DRAG_STROKE_COLOR, width=DRAG_STROKE_WIDTH,
        )
        surface.alpha_composite(outline)
