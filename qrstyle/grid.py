"""Module grid geometry and the protected (never styled) structures of a QR symbol."""

from dataclasses import dataclass

import numpy as np
import qrcode.util

from qrstyle.errors import GeometryError
from qrstyle.logging import audit, get_logger, trace

log = get_logger("grid")

MIN_MODULE_PX = 3
FINDER_ZONE = 9  # 7x7 finder + separator + format strip


@dataclass(frozen=True)
class ModuleGrid:
    """Pixel geometry of the module grid inside a square QR raster."""

    module_count: int
    module_px: int
    quiet_zone_px: int

    @property
    def size(self) -> int:
        return self.module_count * self.module_px + 2 * self.quiet_zone_px

    @property
    def version(self) -> int:
        return (self.module_count - 17) // 4

    def module_rect(self, row: int, col: int) -> tuple[int, int, int, int]:
        """Half-open pixel rectangle (x0, y0, x1, y1) of module (row, col)."""
        x0 = self.quiet_zone_px + col * self.module_px
        y0 = self.quiet_zone_px + row * self.module_px
        return x0, y0, x0 + self.module_px, y0 + self.module_px

    def module_center(self, row: int, col: int) -> tuple[int, int]:
        """Pixel sampled to decide whether a module is dark."""
        x0, y0, _, _ = self.module_rect(row, col)
        half = self.module_px // 2
        return x0 + half, y0 + half

    def module_at(self, px: int, py: int) -> tuple[int, int] | None:
        """(row, col) of the module containing pixel (px, py), None in the quiet zone."""
        gx = px - self.quiet_zone_px
        gy = py - self.quiet_zone_px
        if gx < 0 or gy < 0:
            return None
        col, row = gx // self.module_px, gy // self.module_px
        if row >= self.module_count or col >= self.module_count:
            return None
        return row, col


@trace
def locate_grid(width: int, height: int, module_count: int, quiet_zone_px: int) -> ModuleGrid:
    """Derive module geometry from the raster size and the encoder's true module count.

    Raises:
        GeometryError: non-square raster, module size that is not an integer
            (drift of a pixel or more), or modules smaller than MIN_MODULE_PX.
    """
    if width != height:
        raise GeometryError(f"QR raster must be square, got {width}x{height}")
    if module_count < 21 or module_count % 2 == 0:
        raise GeometryError(f"Module count must be odd and >= 21, got {module_count}")
    if quiet_zone_px < 0:
        raise GeometryError(f"Quiet zone cannot be negative: {quiet_zone_px}")

    span = width - 2 * quiet_zone_px
    if span <= 0:
        raise GeometryError(f"Quiet zone {quiet_zone_px}px leaves no room in a {width}px image")

    module_px = span // module_count
    drift = span - module_px * module_count
    if drift >= 1:
        raise GeometryError(
            f"{span}px does not divide into {module_count} modules "
            f"({span / module_count:.2f}px each, {drift}px left over)"
        )
    if module_px < MIN_MODULE_PX:
        raise GeometryError(f"Module size {module_px}px is below the {MIN_MODULE_PX}px minimum")

    return ModuleGrid(module_count=module_count, module_px=module_px, quiet_zone_px=quiet_zone_px)


def locate_from_image(rendered) -> ModuleGrid:
    """Grid of a RenderedQRImage, ignoring any caption band stacked above it."""
    return locate_grid(rendered.width, rendered.height - rendered.frame_px,
                       rendered.module_count, rendered.quiet_zone_px)


def _alignment_centers(version: int) -> list[int]:
    if version < 2:
        return []
    return list(qrcode.util.pattern_position(version))


class ProtectedZoneSet:
    """Modules that styling must never touch.

    Always includes the three 9x9 finder zones. Timing row/column, alignment
    patterns and version-information blocks are included unless switched off.
    """

    def __init__(self, grid: ModuleGrid, modules: np.ndarray, finders: np.ndarray):
        self.grid = grid
        self.modules = modules
        self.finders = finders
        self.modules.setflags(write=False)
        self.finders.setflags(write=False)

    @classmethod
    @trace
    def for_grid(
        cls,
        grid: ModuleGrid,
        timing: bool = True,
        alignment: bool = True,
        version_info: bool = True,
    ) -> "ProtectedZoneSet":
        n = grid.module_count
        z = FINDER_ZONE

        finders = np.zeros((n, n), dtype=bool)
        finders[:z, :z] = True           # top-left
        finders[:z, n - z:] = True       # top-right
        finders[n - z:, :z] = True       # bottom-left

        protected = finders.copy()

        if timing:
            protected[6, :] = True
            protected[:, 6] = True

        n_alignment = 0
        if alignment:
            centers = _alignment_centers(grid.version)
            for r in centers:
                for c in centers:
                    if finders[r - 2 : r + 3, c - 2 : c + 3].any():
                        continue
                    protected[r - 2 : r + 3, c - 2 : c + 3] = True
                    n_alignment += 1

        if version_info and grid.version >= 7:
            protected[:6, n - 11 : n - 8] = True   # above the top-right finder
            protected[n - 11 : n - 8, :6] = True   # left of the bottom-left finder

        audit("zones.computed", logger=log,
              version=grid.version, modules=f"{n}x{n}",
              protected=int(protected.sum()), finder=int(finders.sum()),
              alignment_patterns=n_alignment, timing=timing)
        return cls(grid, protected, finders)

    def is_protected_module(self, row: int, col: int) -> bool:
        return bool(self.modules[row, col])

    def is_protected(self, px: int, py: int) -> bool:
        """True when pixel (px, py) belongs to a protected module."""
        pos = self.grid.module_at(px, py)
        return pos is not None and bool(self.modules[pos])

    def is_finder(self, px: int, py: int) -> bool:
        pos = self.grid.module_at(px, py)
        return pos is not None and bool(self.finders[pos])

    def _expand(self, module_mask: np.ndarray) -> np.ndarray:
        m = self.grid.module_px
        px_mask = np.repeat(np.repeat(module_mask, m, axis=0), m, axis=1)
        return np.pad(px_mask, self.grid.quiet_zone_px, constant_values=False)

    def pixel_mask(self) -> np.ndarray:
        """(H, W) bool mask of every protected pixel."""
        return self._expand(self.modules)

    def finder_pixel_mask(self) -> np.ndarray:
        """(H, W) bool mask of the three finder zones only."""
        return self._expand(self.finders)
