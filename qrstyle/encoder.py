"""Encoder adapter: turn text into a plain RenderedQRImage using the qrcode library."""

from dataclasses import dataclass, replace
from enum import Enum

import numpy as np
import qrcode
import qrcode.constants
import qrcode.exceptions
from PIL import Image, ImageColor

from qrstyle.errors import EncodingError
from qrstyle.logging import audit, get_logger, trace

log = get_logger("encoder")

# Byte-mode capacity of a version 40-L symbol
MAX_PAYLOAD_BYTES = 2953


class ECCLevel(Enum):
    L = qrcode.constants.ERROR_CORRECT_L  # 7%
    M = qrcode.constants.ERROR_CORRECT_M  # 15%
    Q = qrcode.constants.ERROR_CORRECT_Q  # 25%
    H = qrcode.constants.ERROR_CORRECT_H  # 30%


ECC_NAMES = {"L": ECCLevel.L, "M": ECCLevel.M, "Q": ECCLevel.Q, "H": ECCLevel.H}

# Approximate share of codewords each level can recover
ECC_TOLERANCE = {"L": 0.07, "M": 0.15, "Q": 0.25, "H": 0.30}


def parse_color(value: str | tuple) -> tuple[int, int, int]:
    """Parse a CSS colour string or RGB(A) tuple into an RGB tuple."""
    if isinstance(value, tuple):
        if len(value) < 3:
            raise ValueError(f"colour tuple needs 3 channels: {value!r}")
        return tuple(int(c) for c in value[:3])
    return tuple(ImageColor.getrgb(value)[:3])


def luma(rgb) -> float:
    """ITU-R 601 luma of an RGB triple (0-255)."""
    return 0.299 * rgb[0] + 0.587 * rgb[1] + 0.114 * rgb[2]


def _linearize(channel: int) -> float:
    c = channel / 255.0
    return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4


def contrast_ratio(fg: tuple[int, ...], bg: tuple[int, ...]) -> float:
    """WCAG contrast ratio between two RGB colours (1.0 - 21.0)."""
    def _lum(rgb):
        r, g, b = [_linearize(ch) for ch in rgb[:3]]
        return 0.2126 * r + 0.7152 * g + 0.0722 * b

    l1, l2 = _lum(fg), _lum(bg)
    if l1 < l2:
        l1, l2 = l2, l1
    return (l1 + 0.05) / (l2 + 0.05)


@dataclass(frozen=True)
class RenderedQRImage:
    """An RGBA QR raster together with the module geometry it was drawn on.

    ``frame_px`` is the height of a caption band stacked above the code (0 when
    unframed); the module grid starts ``frame_px`` pixels below the top edge.
    """

    image: Image.Image
    module_count: int
    quiet_zone_px: int
    module_px: int
    version: int
    ecc: str = "M"
    dark_color: tuple[int, int, int] = (0, 0, 0)
    light_color: tuple[int, int, int] = (255, 255, 255)
    frame_px: int = 0

    @property
    def width(self) -> int:
        return self.image.size[0]

    @property
    def height(self) -> int:
        return self.image.size[1]

    @property
    def code_size(self) -> int:
        """Pixel side of the square code area, quiet zone included."""
        return self.module_count * self.module_px + 2 * self.quiet_zone_px

    def pixels(self) -> np.ndarray:
        """Fresh writable (H, W, 4) uint8 copy of the image."""
        return np.array(self.image.convert("RGBA"), dtype=np.uint8)

    def dark_mask(self, pixels: np.ndarray | None = None) -> np.ndarray:
        """Boolean (H, W) mask of pixels closer to the dark colour than to the light one."""
        arr = self.pixels() if pixels is None else pixels
        threshold = (luma(self.dark_color) + luma(self.light_color)) / 2
        values = luma((arr[..., 0].astype(np.float32),
                       arr[..., 1].astype(np.float32),
                       arr[..., 2].astype(np.float32)))
        if luma(self.dark_color) <= luma(self.light_color):
            return values < threshold
        return values > threshold

    def with_pixels(self, pixels: np.ndarray) -> "RenderedQRImage":
        return replace(self, image=Image.fromarray(pixels, "RGBA"))

    def with_image(self, image: Image.Image, **changes) -> "RenderedQRImage":
        return replace(self, image=image.convert("RGBA"), **changes)


def _build(text: str, ecc: str, box_size: int, border: int, version: int | None) -> qrcode.QRCode:
    qr = qrcode.QRCode(
        version=version,
        error_correction=ECC_NAMES[ecc].value,
        box_size=box_size,
        border=border,
    )
    qr.add_data(text)
    qr.make(fit=(version is None))
    return qr


@trace
def encode(
    text: str,
    ecc: str = "M",
    dark_color: str | tuple = "#000000",
    light_color: str | tuple = "#FFFFFF",
    box_size: int = 10,
    border: int = 4,
    version: int | None = None,
    low_ecc_fallback: bool = False,
) -> RenderedQRImage:
    """Encode *text* and rasterise the module matrix.

    Args:
        text: Payload to encode.
        ecc: Error correction level: L/M/Q/H.
        dark_color: Module colour (CSS string or RGB tuple).
        light_color: Background colour.
        box_size: Pixel size of each module.
        border: Quiet zone width in modules.
        version: QR version 1-40 (None = smallest that fits).
        low_ecc_fallback: Retry at level L when the payload overflows *ecc*.

    Raises:
        EncodingError: empty payload, payload over capacity, or unusable colours.
    """
    if not text or not text.strip():
        raise EncodingError("QR code content cannot be empty")
    if len(text.encode("utf-8")) > MAX_PAYLOAD_BYTES:
        raise EncodingError(f"Text too long for QR code (max {MAX_PAYLOAD_BYTES} bytes)")

    ecc = ecc.upper()
    if ecc not in ECC_NAMES:
        raise EncodingError(f"Unknown error correction level: {ecc!r}")
    if box_size < 1 or border < 0:
        raise EncodingError(f"Invalid raster size: box_size={box_size}, border={border}")

    try:
        dark = parse_color(dark_color)
        light = parse_color(light_color)
    except ValueError as e:
        raise EncodingError(f"Invalid colour: {e}") from e
    if abs(luma(dark) - luma(light)) < 1:
        raise EncodingError("Dark and light colours must differ in brightness")
    ratio = contrast_ratio(dark, light)
    if ratio < 4.5:
        log.warning("Contrast ratio %.1f:1 is below 4.5:1, scannability at risk", ratio)

    try:
        qr = _build(text, ecc, box_size, border, version)
    except qrcode.exceptions.DataOverflowError as e:
        if not low_ecc_fallback or ecc == "L":
            raise EncodingError("Payload does not fit the requested QR version / error correction level") from e
        log.warning("Payload overflows ECC %s, retrying at L", ecc)
        try:
            qr = _build(text, "L", box_size, border, version)
        except qrcode.exceptions.DataOverflowError as e2:
            raise EncodingError("Failed to generate QR code. Content may be too complex.") from e2
        ecc = "L"
    except ValueError as e:
        raise EncodingError(str(e)) from e

    modules = np.array(qr.modules, dtype=bool)
    modules = np.pad(modules, border, constant_values=False)
    dark_px = np.repeat(np.repeat(modules, box_size, axis=0), box_size, axis=1)

    side = dark_px.shape[0]
    pixels = np.empty((side, side, 4), dtype=np.uint8)
    pixels[...] = (*light, 255)
    pixels[dark_px] = (*dark, 255)

    rendered = RenderedQRImage(
        image=Image.fromarray(pixels, "RGBA"),
        module_count=qr.modules_count,
        quiet_zone_px=border * box_size,
        module_px=box_size,
        version=qr.version,
        ecc=ecc,
        dark_color=dark,
        light_color=light,
    )
    audit("qr.encoded", logger=log,
          data=text[:80], version=qr.version,
          size=f"{qr.modules_count}x{qr.modules_count}",
          ecc=ecc, image_px=f"{side}x{side}")
    return rendered
