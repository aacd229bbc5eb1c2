"""Scan-plausibility heuristic.

This is NOT a decoder. It only checks that the three finder zones still have
the dark/light balance of an intact finder. Use it to warn that heavy styling
may have broken a code, never as proof that the code scans.
"""

from dataclasses import dataclass

import numpy as np
from PIL import Image

from qrstyle.grid import FINDER_ZONE, locate_grid
from qrstyle.logging import audit, get_logger, trace

log = get_logger("heuristic")

DARK_RATIO_RANGE = (0.35, 0.65)
MIN_PLAUSIBLE_ZONES = 2
ZONE_NAMES = ("top-left", "top-right", "bottom-left")


@dataclass(frozen=True)
class PlausibilityReport:
    """Dark-pixel ratio per finder zone and the advisory verdict."""

    ratios: dict[str, float]
    plausible: bool
    advisory: bool = True

    @property
    def passing_zones(self) -> int:
        low, high = DARK_RATIO_RANGE
        return sum(1 for r in self.ratios.values() if low < r < high)

    def summary(self) -> str:
        zones = ", ".join(f"{name}={ratio:.2f}" for name, ratio in self.ratios.items())
        verdict = "looks scannable" if self.plausible else "may not scan"
        return f"{verdict} (advisory only; {self.passing_zones}/3 finder zones in range: {zones})"


DEFAULT_DARK_THRESHOLD = 128.0


def midpoint_threshold(dark_color, light_color) -> float:
    """Brightness halfway between a dark and a light RGB colour."""
    return (sum(dark_color[:3]) + sum(light_color[:3])) / 6


def _dark_ratio(block: np.ndarray, threshold: float) -> float:
    if block.size == 0:
        return 0.0
    return float((block < threshold).sum()) / block.size


@trace
def assess_scan_plausibility(
    image: Image.Image,
    module_count: int,
    quiet_zone_px: int,
    top_offset: int = 0,
    dark_threshold: float = DEFAULT_DARK_THRESHOLD,
) -> PlausibilityReport:
    """Rate the three 9x9-module finder zones of *image*.

    Brightness is the mean of R, G and B. A zone passes when its dark ratio lies
    strictly inside DARK_RATIO_RANGE; the code is plausible when at least two pass.
    *top_offset* skips a caption band stacked above the code.

    Pixels darker than *dark_threshold* count as dark, so the foreground must
    be darker than the background. The default suits dark-on-white codes; pass
    ``midpoint_threshold(dark, light)`` for light or tinted foregrounds.

    Raises:
        GeometryError: the module grid cannot be located in *image*.
    """
    rgb = np.asarray(image.convert("RGB"), dtype=np.float32)
    rgb = rgb[top_offset:]
    height, width = rgb.shape[:2]
    grid = locate_grid(width, height, module_count, quiet_zone_px)
    brightness = rgb.mean(axis=-1)

    n, z = grid.module_count, FINDER_ZONE
    origins = [(0, 0), (0, n - z), (n - z, 0)]
    ratios = {}
    for name, (row, col) in zip(ZONE_NAMES, origins):
        x0, y0, _, _ = grid.module_rect(row, col)
        span = z * grid.module_px
        ratios[name] = _dark_ratio(brightness[y0 : y0 + span, x0 : x0 + span], dark_threshold)

    low, high = DARK_RATIO_RANGE
    passing = sum(1 for r in ratios.values() if low < r < high)
    report = PlausibilityReport(ratios=ratios, plausible=passing >= MIN_PLAUSIBLE_ZONES)

    audit("scan.plausibility", logger=log,
          plausible=report.plausible, passing=passing,
          **{name.replace("-", "_"): round(r, 3) for name, r in ratios.items()})
    return report
