"""Frame compositor: stack a caption band above the styled code."""

import functools

from PIL import Image, ImageDraw, ImageFont

from qrstyle.encoder import RenderedQRImage
from qrstyle.logging import audit, get_logger, trace
from qrstyle.styles import FrameSpec

log = get_logger("frame")

CAPTION_FONTS = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf", "LiberationSans-Bold.ttf")
MIN_FONT_SIZE = 8
TEXT_PADDING = 8


@functools.lru_cache(maxsize=32)
def load_caption_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Bold TrueType font if one is installed, else Pillow's bundled default."""
    for name in CAPTION_FONTS:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    log.debug("No bold TrueType caption font found, using Pillow default")
    return ImageFont.load_default(size=size)


def _fit_font(draw: ImageDraw.ImageDraw, text: str, size: int, max_width: int):
    """Largest font, starting at *size*, whose rendering of *text* fits *max_width*."""
    while True:
        font = load_caption_font(size)
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        if right - left <= max_width or size <= MIN_FONT_SIZE:
            return font, (left, top, right, bottom)
        size -= 1


@trace
def add_frame(
    rendered: RenderedQRImage,
    spec: FrameSpec,
    caption_height: int = 60,
    font_size: int = 16,
) -> RenderedQRImage:
    """Return a taller image: caption band on top, the code pasted unchanged below it."""
    band = spec.caption_height or caption_height
    w, h = rendered.width, rendered.height

    canvas = Image.new("RGBA", (w, h + band), spec.background_color)
    canvas.paste(rendered.image.convert("RGBA"), (0, band))

    if spec.text:
        draw = ImageDraw.Draw(canvas)
        font, (left, top, right, bottom) = _fit_font(draw, spec.text, font_size, w - 2 * TEXT_PADDING)
        x = (w - (right - left)) / 2 - left
        y = (band - (bottom - top)) / 2 - top
        draw.text((x, y), spec.text, fill=spec.text_color, font=font)

    audit("frame.added", logger=log,
          text=spec.text[:40], band_px=band, size=f"{w}x{h + band}")
    return rendered.with_image(canvas, frame_px=rendered.frame_px + band)
