"""Module glyphs: the decorative shapes painted in place of dark square modules.

Each glyph describes its ink as a coverage map over one module (1.0 = dark,
0.0 = background). Maps depend only on the module pixel size, so they are
computed once per size and reused for every module of a render.
"""

import functools
import math

import numpy as np
from PIL import Image, ImageDraw

from qrstyle.errors import UnsupportedStyleError
from qrstyle.styles import Shape, parse_shape


SUPERSAMPLE = 4


def _offsets(module_px: int) -> tuple[np.ndarray, np.ndarray]:
    """Per-pixel (dx, dy) of pixel centres from the module centre."""
    axis = np.arange(module_px, dtype=np.float64) + 0.5 - module_px / 2
    dx, dy = np.meshgrid(axis, axis)
    return dx, dy


class Glyph:
    """Base glyph. Subclasses implement ``_coverage``."""

    name = "glyph"

    @functools.lru_cache(maxsize=64)
    def coverage(self, module_px: int) -> np.ndarray:
        cov = np.clip(self._coverage(module_px), 0.0, 1.0).astype(np.float32)
        cov.setflags(write=False)
        return cov

    def _coverage(self, module_px: int) -> np.ndarray:
        raise NotImplementedError

    def paint_module(
        self,
        pixels: np.ndarray,
        rect: tuple[int, int, int, int],
        dark: tuple[int, int, int],
        light: tuple[int, int, int],
    ) -> None:
        """Repaint one dark module's footprint in *pixels* (H, W, 4) in place."""
        x0, y0, x1, y1 = rect
        cov = self.coverage(x1 - x0)[..., None]
        block = np.asarray(light, np.float32) * (1.0 - cov) + np.asarray(dark, np.float32) * cov
        pixels[y0:y1, x0:x1, :3] = np.rint(block).astype(np.uint8)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


GLYPHS: dict[Shape, Glyph] = {}


def register_glyph(*shapes: Shape):
    """Class decorator: instantiate the glyph and register it under *shapes*."""
    def decorator(cls):
        instance = cls()
        instance.name = shapes[0].value
        for shape in shapes:
            GLYPHS[shape] = instance
        return cls
    return decorator


def get_glyph(shape) -> Glyph:
    shape = parse_shape(shape)
    try:
        return GLYPHS[shape]
    except KeyError:
        raise UnsupportedStyleError(f"No glyph registered for {shape.value!r}") from None


# ---------------------------------------------------------------------------
# Glyph implementations
# ---------------------------------------------------------------------------

@register_glyph(Shape.SQUARE)
class SquareGlyph(Glyph):
    def _coverage(self, module_px):
        return np.ones((module_px, module_px))

    def paint_module(self, pixels, rect, dark, light):
        # Already a square module
        return None


def _corner_distance(module_px: int, radius: float) -> tuple[np.ndarray, np.ndarray]:
    """Distance of each pixel from its nearest corner-circle centre, and the corner-square mask."""
    pos = np.arange(module_px, dtype=np.float64) + 0.5
    edge = (pos < radius) | (pos > module_px - radius)
    centre = np.where(pos < module_px / 2, radius, module_px - radius)

    cx, cy = np.meshgrid(centre, centre)
    px, py = np.meshgrid(pos, pos)
    edge_x, edge_y = np.meshgrid(edge, edge)
    return np.hypot(px - cx, py - cy), edge_x & edge_y


@register_glyph(Shape.ROUNDED)
class RoundedGlyph(Glyph):
    """Square with quarter-circle corners, hard cut."""

    ratio = 0.2

    def radius(self, module_px: int) -> float:
        r = max(1.0, float(round(self.ratio * module_px)))
        return min(max(r, 0.1 * module_px), 0.3 * module_px)

    def _coverage(self, module_px):
        r = self.radius(module_px)
        dist, in_corner = _corner_distance(module_px, r)
        cov = np.ones((module_px, module_px))
        cov[in_corner & (dist > r)] = 0.0
        return cov


@register_glyph(Shape.CLASSY)
class ClassyGlyph(RoundedGlyph):
    """Rounded corners with a two-pixel antialiased falloff instead of a cut."""

    ratio = 0.3

    def _coverage(self, module_px):
        r = self.radius(module_px)
        dist, in_corner = _corner_distance(module_px, r)
        cov = np.ones((module_px, module_px))
        outside = in_corner & (dist > r)
        cov[outside] = np.maximum(0.0, 1.0 - (dist[outside] - r) / 2.0)
        return cov


@register_glyph(Shape.DOTS, Shape.CIRCLE)
class DotGlyph(Glyph):
    def _coverage(self, module_px):
        dx, dy = _offsets(module_px)
        return (np.hypot(dx, dy) <= 0.4 * module_px).astype(np.float64)


@register_glyph(Shape.DIAMOND)
class DiamondGlyph(Glyph):
    def _coverage(self, module_px):
        dx, dy = _offsets(module_px)
        return (np.abs(dx) + np.abs(dy) <= 0.4 * module_px).astype(np.float64)


@register_glyph(Shape.STAR)
class StarGlyph(Glyph):
    """Five-pointed star, rasterised at 4x and thresholded back to module size."""

    points = 5
    outer = 0.45
    inner = 0.19

    def _coverage(self, module_px):
        size = module_px * SUPERSAMPLE
        c = size / 2
        vertices = []
        for i in range(self.points * 2):
            radius = (self.outer if i % 2 == 0 else self.inner) * size
            angle = -math.pi / 2 + i * math.pi / self.points
            vertices.append((c + radius * math.cos(angle), c + radius * math.sin(angle)))

        canvas = Image.new("L", (size, size), 0)
        ImageDraw.Draw(canvas).polygon(vertices, fill=255)
        small = canvas.resize((module_px, module_px), Image.BOX)
        cov = (np.asarray(small, dtype=np.float64) >= 128).astype(np.float64)
        # Tiny modules can lose the star entirely; keep at least the centre
        mid = module_px // 2
        cov[mid, mid] = 1.0
        return cov


@register_glyph(Shape.HEART)
class HeartGlyph(Glyph):
    """Implicit heart curve (x^2 + y^2 - 1)^3 - x^2 y^3 <= 0 scaled into the module."""

    def _coverage(self, module_px):
        dx, dy = _offsets(module_px)
        s = 0.4 * module_px / 1.15
        x = dx / s
        y = -dy / s + 0.12
        return (((x * x + y * y - 1) ** 3 - x * x * y ** 3) <= 0).astype(np.float64)


@register_glyph(Shape.LEAF)
class LeafGlyph(Glyph):
    def _coverage(self, module_px):
        dx, dy = _offsets(module_px)
        a, b = 0.5 * module_px, 0.3 * module_px
        return ((dx / a) ** 2 + (dy / b) ** 2 <= 1).astype(np.float64)


@register_glyph(Shape.FLUID)
class FluidGlyph(Glyph):
    """Blob whose radius ripples with six lobes around the centre."""

    def _coverage(self, module_px):
        dx, dy = _offsets(module_px)
        angle = np.arctan2(dy, dx)
        radius = 0.45 * module_px * (1 + 0.1 * np.sin(6 * angle))
        return (np.hypot(dx, dy) <= radius).astype(np.float64)
