"""Logo embedder: carve a rounded backing plate into the code and composite a logo on it."""

import io
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from PIL import Image, ImageChops, ImageDraw, UnidentifiedImageError

from qrstyle.encoder import ECC_TOLERANCE, RenderedQRImage
from qrstyle.errors import LogoDecodeError
from qrstyle.grid import ModuleGrid, ProtectedZoneSet
from qrstyle.logging import audit, get_logger, trace
from qrstyle.styles import LogoSpec

log = get_logger("logo")


# ---------------------------------------------------------------------------
# Logo loading
# ---------------------------------------------------------------------------

@trace
def decode_logo(source: bytes | str | Path | Image.Image) -> Image.Image:
    """Decode a logo from bytes, a file path, or an already open image into RGBA.

    Raises:
        LogoDecodeError: the source is not a readable raster image.
    """
    if isinstance(source, Image.Image):
        img = source
    elif isinstance(source, (bytes, bytearray, memoryview)):
        if not source:
            raise LogoDecodeError("Logo data is empty")
        try:
            img = Image.open(io.BytesIO(bytes(source)))
            img.load()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError,
                Image.DecompressionBombError) as e:
            raise LogoDecodeError(f"Logo bytes could not be decoded: {e}") from e
    elif isinstance(source, (str, Path)):
        try:
            img = Image.open(source)
            img.load()
        except (UnidentifiedImageError, OSError, SyntaxError, ValueError,
                Image.DecompressionBombError) as e:
            raise LogoDecodeError(f"Logo file {source} could not be decoded: {e}") from e
    else:
        raise LogoDecodeError(f"Unsupported logo source: {type(source).__name__}")

    if img.width == 0 or img.height == 0:
        raise LogoDecodeError("Logo image has no pixels")
    return img.convert("RGBA")


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

def _scale_preserving_aspect(original_size: tuple[int, int], target: int) -> tuple[int, int]:
    """Scale (w, h) so the larger dimension equals *target*, preserving aspect."""
    w, h = original_size
    aspect = w / h
    if aspect >= 1:
        return target, max(1, int(target / aspect))
    return max(1, int(target * aspect)), target


@dataclass(frozen=True)
class LogoPlacement:
    """Where the logo and its backing plate land on the canvas (inclusive pixel boxes).

    ``requested_px`` is the size asked for; ``logo_px`` is smaller when the
    plate had to shrink to stay clear of the finder zones.
    """

    logo_px: int
    margin_px: int
    logo_box: tuple[int, int, int, int]
    plate_box: tuple[int, int, int, int]
    requested_px: int = 0

    @property
    def shrunk(self) -> bool:
        return self.logo_px < self.requested_px


def _place_at(width: int, height: int, logo_px: int, margin_percent: float,
              position: tuple[float, float], requested_px: int) -> LogoPlacement:
    margin = int(round(max(4.0, margin_percent * logo_px / 100)))

    fx, fy = position
    lx = int(round(fx * width - logo_px / 2))
    ly = int(round(fy * height - logo_px / 2))
    lx = min(max(lx, margin), max(margin, width - logo_px - margin))
    ly = min(max(ly, margin), max(margin, height - logo_px - margin))

    logo_box = (lx, ly, lx + logo_px - 1, ly + logo_px - 1)
    plate_box = (lx - margin, ly - margin, lx + logo_px + margin - 1, ly + logo_px + margin - 1)
    return LogoPlacement(logo_px=logo_px, margin_px=margin, logo_box=logo_box,
                         plate_box=plate_box, requested_px=requested_px)


def _overlaps(box: tuple[int, int, int, int], mask: np.ndarray) -> bool:
    x0, y0, x1, y1 = box
    return bool(mask[max(0, y0) : y1 + 1, max(0, x0) : x1 + 1].any())


def place_logo(width: int, height: int, spec: LogoSpec, avoid: np.ndarray | None = None) -> LogoPlacement:
    """Compute logo size and plate rectangle, kept fully inside the canvas.

    With an *avoid* mask (H, W) the logo shrinks until the plate clears every
    masked pixel. If no size fits at ``spec.position``, the centre is tried.
    """
    requested = max(1, int(round(spec.clamped_size_percent / 100 * min(width, height))))
    placement = _place_at(width, height, requested, spec.margin_percent, spec.position, requested)
    if avoid is None or not _overlaps(placement.plate_box, avoid):
        return placement

    for position in (spec.position, (0.5, 0.5)):
        for logo_px in range(requested - 1, 0, -1):
            placement = _place_at(width, height, logo_px, spec.margin_percent, position, requested)
            if not _overlaps(placement.plate_box, avoid):
                return placement
    return placement


@dataclass
class LogoDamage:
    """How many modules the plate hides versus what the ECC level can recover."""

    ecc: str
    total_modules: int
    covered_modules: int
    tolerance: float

    @property
    def covered_fraction(self) -> float:
        return self.covered_modules / self.total_modules if self.total_modules else 0.0

    @property
    def safe(self) -> bool:
        return self.covered_fraction < self.tolerance

    def summary(self) -> str:
        return (
            f"Logo covers {self.covered_modules}/{self.total_modules} modules "
            f"({self.covered_fraction:.1%}); ECC {self.ecc} recovers ~{self.tolerance:.0%} "
            f"-> {'OK' if self.safe else 'AT RISK'}"
        )


def estimate_logo_damage(grid: ModuleGrid, plate_box: tuple[int, int, int, int], ecc: str) -> LogoDamage:
    """Count modules whose centre falls under the plate. Advisory: never raises."""
    x0, y0, x1, y1 = plate_box
    n = grid.module_count
    covered = 0
    for row in range(n):
        for col in range(n):
            cx, cy = grid.module_center(row, col)
            if x0 <= cx <= x1 and y0 <= cy <= y1:
                covered += 1
    return LogoDamage(ecc=ecc, total_modules=n * n, covered_modules=covered,
                      tolerance=ECC_TOLERANCE.get(ecc, 0.0))


# ---------------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------------

def logo_keep_out(zones: ProtectedZoneSet) -> np.ndarray:
    """(H, W) mask the plate must not touch: finder zones and the quiet zone."""
    mask = zones.finder_pixel_mask().copy()
    qz = zones.grid.quiet_zone_px
    if qz:
        mask[:qz] = True
        mask[-qz:] = True
        mask[:, :qz] = True
        mask[:, -qz:] = True
    return mask


@trace
def embed_logo(
    rendered: RenderedQRImage,
    logo_image: Image.Image,
    spec: LogoSpec,
    zones: ProtectedZoneSet | None = None,
) -> RenderedQRImage:
    """Draw the backing plate and composite *logo_image* onto a copy of *rendered*.

    Modules under the plate are overwritten. When *zones* is given the logo
    shrinks so its plate stays clear of the finder zones and the quiet zone,
    and finder pixels are copied back afterwards.
    """
    w, h = rendered.width, rendered.height
    finder = zones.finder_pixel_mask() if zones is not None else None
    placement = place_logo(w, h, spec, avoid=logo_keep_out(zones) if zones is not None else None)
    if placement.shrunk:
        log.info("Logo shrunk from %dpx to %dpx to keep clear of the finder patterns",
                 placement.requested_px, placement.logo_px)
        audit("logo.shrunk", logger=log,
              requested_px=placement.requested_px, logo_px=placement.logo_px)
    radius = max(0, spec.corner_radius_px)

    img = rendered.image.convert("RGBA")
    draw = ImageDraw.Draw(img)
    draw.rounded_rectangle(
        placement.plate_box, radius=radius,
        fill=spec.plate_color, outline=spec.border_color, width=max(0, spec.border_px),
    )

    # Logo scaled into its square, clipped to the plate's rounded outline
    logo = logo_image.convert("RGBA")
    new_w, new_h = _scale_preserving_aspect(logo.size, placement.logo_px)
    logo = logo.resize((new_w, new_h), Image.LANCZOS)

    lx, ly = placement.logo_box[:2]
    ox = lx + (placement.logo_px - new_w) // 2
    oy = ly + (placement.logo_px - new_h) // 2

    clip = Image.new("L", (w, h), 0)
    ImageDraw.Draw(clip).rounded_rectangle(placement.plate_box, radius=radius, fill=255)
    logo.putalpha(ImageChops.multiply(logo.getchannel("A"), clip.crop((ox, oy, ox + new_w, oy + new_h))))
    img.alpha_composite(logo, dest=(ox, oy))

    pixels = np.array(img, dtype=np.uint8)
    context = {"logo_px": placement.logo_px, "margin_px": placement.margin_px,
               "plate": placement.plate_box}

    if zones is not None:
        pixels[finder] = rendered.pixels()[finder]

        damage = estimate_logo_damage(zones.grid, placement.plate_box, rendered.ecc)
        if not damage.safe:
            log.warning("%s", damage.summary())
        context.update(covered_modules=damage.covered_modules,
                       covered_pct=f"{damage.covered_fraction:.1%}",
                       ecc=rendered.ecc, safe=damage.safe)

    audit("logo.embedded", logger=log, **context)
    return rendered.with_pixels(pixels)
