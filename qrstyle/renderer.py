"""Module shape renderer: repaint every unprotected dark module with a glyph."""

from concurrent.futures import ThreadPoolExecutor

from PIL import ImageDraw

from qrstyle.encoder import RenderedQRImage
from qrstyle.glyphs import SquareGlyph, get_glyph
from qrstyle.grid import ProtectedZoneSet
from qrstyle.logging import audit, get_logger, trace
from qrstyle.styles import EyeShape, parse_eye_shape

log = get_logger("renderer")


@trace
def render_modules(
    rendered: RenderedQRImage,
    shape,
    zones: ProtectedZoneSet,
    workers: int = 1,
) -> RenderedQRImage:
    """Return a copy of *rendered* with each dark, unprotected module drawn as *shape*.

    Darkness is sampled at the module centre of the untouched source buffer.
    Light modules and protected modules are never written. Rows are
    independent, so with ``workers > 1`` they are painted on a thread pool.
    """
    glyph = get_glyph(shape)
    source = rendered.pixels()
    if isinstance(glyph, SquareGlyph):
        return rendered.with_pixels(source)

    grid = zones.grid
    n = grid.module_count
    dark_px = rendered.dark_mask(source)
    protected = zones.modules
    out = source.copy()
    dark, light = rendered.dark_color, rendered.light_color

    def paint_row(row: int) -> int:
        painted = 0
        for col in range(n):
            if protected[row, col]:
                continue
            cx, cy = grid.module_center(row, col)
            if not dark_px[cy, cx]:
                continue
            glyph.paint_module(out, grid.module_rect(row, col), dark, light)
            painted += 1
        return painted

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            counts = list(pool.map(paint_row, range(n)))
    else:
        counts = [paint_row(row) for row in range(n)]

    audit("modules.styled", logger=log,
          shape=glyph.name, module_px=grid.module_px,
          painted=sum(counts), protected=int(protected.sum()), workers=workers)
    return rendered.with_pixels(out)


# ---------------------------------------------------------------------------
# Eye (finder pattern) styling
# ---------------------------------------------------------------------------

def _draw_eye(draw: ImageDraw.ImageDraw, ox: int, oy: int, m: int,
              fg: tuple, bg: tuple, eye: EyeShape):
    """Draw one 7x7 finder as outer ring, light ring and 3x3 centre."""
    fpx = 7 * m
    outer = [ox, oy, ox + fpx - 1, oy + fpx - 1]
    ring = [ox + m, oy + m, ox + fpx - 1 - m, oy + fpx - 1 - m]
    centre = [ox + 2 * m, oy + 2 * m, ox + fpx - 1 - 2 * m, oy + fpx - 1 - 2 * m]

    if eye is EyeShape.CIRCLE:
        draw.ellipse(outer, fill=fg)
        draw.ellipse(ring, fill=bg)
        draw.ellipse(centre, fill=fg)
    elif eye is EyeShape.LEAF:
        leaf = (True, False, True, False)
        draw.rounded_rectangle(outer, radius=m * 3, fill=fg, corners=leaf)
        draw.rounded_rectangle(ring, radius=m * 2, fill=bg, corners=leaf)
        draw.rounded_rectangle(centre, radius=m, fill=fg, corners=leaf)
    else:
        draw.rounded_rectangle(outer, radius=m, fill=fg)
        draw.rounded_rectangle(ring, radius=max(1, m // 2), fill=bg)
        draw.rounded_rectangle(centre, radius=max(1, m // 3), fill=fg)


@trace
def style_eyes(rendered: RenderedQRImage, eye_shape, zones: ProtectedZoneSet) -> RenderedQRImage:
    """Redraw the three finder patterns as *eye_shape*.

    This is the one stage allowed to write finder pixels; it keeps the
    dark/light/dark ring structure scanners key on.
    """
    eye = parse_eye_shape(eye_shape)
    if eye is EyeShape.SQUARE:
        return rendered

    grid = zones.grid
    n, m = grid.module_count, grid.module_px
    img = rendered.image.copy()
    draw = ImageDraw.Draw(img)
    fg = (*rendered.dark_color, 255)
    bg = (*rendered.light_color, 255)

    for row, col in [(0, 0), (0, n - 7), (n - 7, 0)]:
        x0, y0, _, _ = grid.module_rect(row, col)
        draw.rectangle([x0, y0, x0 + 7 * m - 1, y0 + 7 * m - 1], fill=bg)
        _draw_eye(draw, x0, y0, m, fg, bg, eye)

    audit("eyes.styled", logger=log, eye_shape=eye.value, module_px=m)
    return rendered.with_image(img)

