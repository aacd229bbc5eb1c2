"""Gradient compositor: recolour the dark foreground with a linear or radial gradient."""

import math

import numpy as np

from qrstyle.encoder import RenderedQRImage, parse_color
from qrstyle.errors import GradientSpecError
from qrstyle.grid import ProtectedZoneSet
from qrstyle.logging import audit, get_logger, trace
from qrstyle.styles import GradientSpec, GradientType

log = get_logger("gradient")


def _stop_colors(spec: GradientSpec) -> list[tuple[int, int, int]]:
    if len(spec.colors) < 2:
        raise GradientSpecError(f"Gradient needs at least 2 colours, got {len(spec.colors)}")
    try:
        return [parse_color(c) for c in spec.colors]
    except ValueError as e:
        raise GradientSpecError(f"Invalid gradient colour: {e}") from e


def gradient_position(width: int, height: int, spec: GradientSpec) -> np.ndarray:
    """Per-pixel position t in [0, 1] along the gradient, shape (H, W)."""
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    xs += 0.5
    ys += 0.5
    cx, cy = width / 2, height / 2

    if spec.type is GradientType.RADIAL:
        t = np.hypot(xs - cx, ys - cy) / (min(width, height) / 2)
    else:
        # Anchors sit on the rotated axis through the centre
        a = math.radians(spec.angle_degrees)
        x1, y1 = cx - math.cos(a) * width / 2, cy - math.sin(a) * height / 2
        x2, y2 = cx + math.cos(a) * width / 2, cy + math.sin(a) * height / 2
        vx, vy = x2 - x1, y2 - y1
        t = ((xs - x1) * vx + (ys - y1) * vy) / (vx * vx + vy * vy)
    return np.clip(t, 0.0, 1.0)


@trace
def build_gradient(width: int, height: int, spec: GradientSpec) -> np.ndarray:
    """Render the gradient across a full (H, W, 3) uint8 canvas with evenly spaced stops."""
    colors = _stop_colors(spec)
    t = gradient_position(width, height, spec)
    stops = np.linspace(0.0, 1.0, len(colors))
    canvas = np.empty((height, width, 3), dtype=np.uint8)
    for ch in range(3):
        canvas[..., ch] = np.rint(np.interp(t, stops, [c[ch] for c in colors])).astype(np.uint8)
    return canvas


@trace
def apply_gradient(
    rendered: RenderedQRImage,
    spec: GradientSpec,
    zones: ProtectedZoneSet | None = None,
) -> RenderedQRImage:
    """Paint *spec* over the dark pixels of *rendered*; light pixels stay untouched.

    The dark mask is taken from the buffer before any gradient paint. Finder
    zones keep their original colour when *zones* is given.

    Raises:
        GradientSpecError: fewer than two colours or an unparseable colour.
    """
    pixels = rendered.pixels()
    dark = rendered.dark_mask(pixels)
    if zones is not None:
        dark &= ~zones.finder_pixel_mask()

    h, w = pixels.shape[:2]
    canvas = build_gradient(w, h, spec)
    pixels[dark, :3] = canvas[dark]

    audit("gradient.applied", logger=log,
          type=spec.type.value, colors=len(spec.colors),
          angle=spec.angle_degrees, painted_px=int(dark.sum()))
    return rendered.with_pixels(pixels)
