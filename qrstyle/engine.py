"""Render pipeline: encode -> grid -> zones -> glyphs -> eyes -> gradient -> logo -> frame."""

import io
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from qrstyle.config import DEFAULT_CONFIG, EngineConfig
from qrstyle.encoder import RenderedQRImage, encode, parse_color
from qrstyle.errors import (
    GradientSpecError,
    LogoDecodeError,
    QRStyleError,
    UnsupportedFormatError,
    UnsupportedStyleError,
)
from qrstyle.frame import add_frame
from qrstyle.glyphs import get_glyph
from qrstyle.gradient import apply_gradient
from qrstyle.grid import ProtectedZoneSet, locate_from_image
from qrstyle.logging import audit, get_logger, stage, trace
from qrstyle.logo import decode_logo, embed_logo
from qrstyle.renderer import render_modules, style_eyes
from qrstyle.styles import DEFAULT_STYLE, BatchItem, EyeShape, Shape, StyleRequest

log = get_logger("engine")


def _check_color(value, what: str):
    try:
        parse_color(value)
    except ValueError as e:
        raise UnsupportedStyleError(f"Invalid {what}: {value!r}") from e


def validate_style(style: StyleRequest) -> None:
    """Reject unusable style requests before any pixel is touched.

    Gradient colours are not checked here: a bad gradient only skips that stage.
    """
    get_glyph(style.shape)
    if not isinstance(style.eye_shape, EyeShape):
        raise UnsupportedStyleError(f"Unsupported eye shape {style.eye_shape!r}")

    if style.logo is not None:
        _check_color(style.logo.plate_color, "logo plate colour")
        _check_color(style.logo.border_color, "logo border colour")
        fx, fy = style.logo.position
        if not (0.0 <= fx <= 1.0 and 0.0 <= fy <= 1.0):
            raise UnsupportedStyleError(f"Logo position must be fractions in [0, 1], got {style.logo.position}")

    if style.frame is not None:
        _check_color(style.frame.text_color, "frame text colour")
        _check_color(style.frame.background_color, "frame background colour")


@trace
def render(
    text: str,
    style: StyleRequest | None = None,
    *,
    ecc: str = "M",
    dark_color: str | tuple = "#000000",
    light_color: str | tuple = "#FFFFFF",
    box_size: int = 10,
    border: int = 4,
    version: int | None = None,
    config: EngineConfig | None = None,
) -> RenderedQRImage:
    """Encode *text* and apply *style*.

    Hard failures (EncodingError, GeometryError, UnsupportedStyleError) propagate.
    A gradient that cannot be built or a logo that cannot be decoded is logged
    and skipped; the rest of the styling is still returned.
    """
    style = style or DEFAULT_STYLE
    config = config or DEFAULT_CONFIG
    validate_style(style)

    rendered = encode(
        text, ecc=ecc, dark_color=dark_color, light_color=light_color,
        box_size=box_size, border=border, version=version,
        low_ecc_fallback=config.low_ecc_fallback,
    )
    grid = locate_from_image(rendered)
    zones = ProtectedZoneSet.for_grid(
        grid,
        timing=config.protect_timing,
        alignment=config.protect_alignment,
        version_info=config.protect_version_info,
    )

    stages = []
    if style.shape is not Shape.SQUARE:
        with stage("shape", log, shape=style.shape.value, workers=config.workers):
            rendered = render_modules(rendered, style.shape, zones, workers=config.workers)
        stages.append("shape")

    if config.style_eyes and style.eye_shape is not EyeShape.SQUARE:
        with stage("eyes", log, eye_shape=style.eye_shape.value):
            rendered = style_eyes(rendered, style.eye_shape, zones)
        stages.append("eyes")

    if style.gradient is not None and config.enable_gradient:
        try:
            with stage("gradient", log, type=style.gradient.type.value):
                rendered = apply_gradient(rendered, style.gradient, zones)
            stages.append("gradient")
        except GradientSpecError as e:
            log.warning("Gradient skipped: %s", e)
            audit("gradient.skipped", logger=log, reason=str(e))

    if style.logo is not None and config.enable_logo:
        try:
            logo_image = decode_logo(style.logo.source)
        except LogoDecodeError as e:
            log.warning("Logo skipped: %s", e)
            audit("logo.skipped", logger=log, reason=str(e))
        else:
            with stage("logo", log, size_percent=style.logo.clamped_size_percent):
                rendered = embed_logo(rendered, logo_image, style.logo, zones)
            stages.append("logo")

    if style.frame is not None and config.enable_frame:
        with stage("frame", log) as ctx:
            rendered = add_frame(rendered, style.frame,
                                 caption_height=config.caption_height, font_size=config.font_size)
            ctx["band_px"] = rendered.frame_px
        stages.append("frame")

    audit("qr.rendered", logger=log,
          data=text[:80], shape=style.shape.value, eye=style.eye_shape.value,
          stages=",".join(stages) or "none", version=rendered.version,
          size=f"{rendered.width}x{rendered.height}")
    return rendered


@dataclass
class BatchResult:
    filename: str
    rendered: RenderedQRImage
    content: str = ""


@trace
def render_batch(
    items: Iterable[str | BatchItem],
    style: StyleRequest | None = None,
    on_progress: Callable[[int, int], None] | None = None,
    **render_kwargs,
) -> list[BatchResult]:
    """Render each item independently, in order.

    Empty items are skipped. An item that fails is logged and skipped so the
    rest of the batch still renders.
    """
    entries = [BatchItem(content=i) if isinstance(i, str) else i for i in items]
    total = len(entries)
    results = []

    for index, entry in enumerate(entries):
        if not entry.content or not entry.content.strip():
            log.warning("Skipping empty content for item %d", index + 1)
            continue
        try:
            rendered = render(entry.content, style, **render_kwargs)
        except QRStyleError as e:
            log.error("Failed to generate QR for item %d: %s", index + 1, e)
            continue
        results.append(BatchResult(filename=entry.filename or f"qr-code-{index + 1}.png",
                                   rendered=rendered, content=entry.content))
        if on_progress is not None:
            on_progress(index + 1, total)

    audit("qr.batch_rendered", logger=log, requested=total, rendered=len(results))
    return results


def to_png_bytes(rendered: RenderedQRImage) -> bytes:
    """Serialise as a 32-bit RGBA PNG."""
    buffer = io.BytesIO()
    rendered.image.convert("RGBA").save(buffer, format="PNG")
    return buffer.getvalue()


def save_png(rendered: RenderedQRImage, path: str | Path) -> Path:
    """Write *rendered* to *path*; only PNG output is produced."""
    path = Path(path)
    if path.suffix.lower() != ".png":
        raise UnsupportedFormatError(f"Only PNG output is supported, not {path.suffix or 'no extension'!r}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(to_png_bytes(rendered))
    return path
