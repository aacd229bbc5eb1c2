"""Round-trip verification of rendered codes with OpenCV's QR detector.

Meant for checking our own output after styling, not for reading photographs.
"""

import time
from dataclasses import dataclass

import cv2
import numpy as np
from PIL import Image

from qrstyle.logging import audit, get_logger, trace

log = get_logger("verify")

# Light margin added around the image; the detector needs a quiet zone
SCAN_PADDING = 16


@dataclass
class ScanResult:
    """Result of a single scan attempt."""
    success: bool
    decoded_data: str | None = None
    decode_time_ms: float = 0.0
    decoder: str = ""
    error: str | None = None


def _to_gray(image: Image.Image) -> np.ndarray:
    # Flatten transparency onto white first
    rgba = image.convert("RGBA")
    flat = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
    flat.alpha_composite(rgba)
    gray = cv2.cvtColor(np.array(flat.convert("RGB")), cv2.COLOR_RGB2GRAY)
    return cv2.copyMakeBorder(gray, SCAN_PADDING, SCAN_PADDING, SCAN_PADDING, SCAN_PADDING,
                              cv2.BORDER_CONSTANT, value=255)


@trace
def scan_opencv(image: Image.Image) -> ScanResult:
    """Scan a QR code using OpenCV's built-in QR detector."""
    start = time.perf_counter()
    try:
        detector = cv2.QRCodeDetector()
        data, _points, _ = detector.detectAndDecode(_to_gray(image))
    except cv2.error as e:
        elapsed = (time.perf_counter() - start) * 1000
        audit("scan.error", logger=log, decoder="opencv", error=str(e), time_ms=round(elapsed, 1))
        return ScanResult(success=False, decode_time_ms=elapsed, decoder="opencv", error=str(e))

    elapsed = (time.perf_counter() - start) * 1000
    if data:
        audit("scan.verified", logger=log, decoder="opencv", success=True,
              time_ms=round(elapsed, 1), data=data[:80])
        return ScanResult(success=True, decoded_data=data, decode_time_ms=elapsed, decoder="opencv")

    audit("scan.verified", logger=log, decoder="opencv", success=False,
          time_ms=round(elapsed, 1), error="No QR code detected")
    return ScanResult(success=False, decode_time_ms=elapsed, decoder="opencv",
                      error="No QR code detected")


@trace
def verify(image: Image.Image, expected_data: str | None = None) -> list[ScanResult]:
    """Decode a rendered image with OpenCV and compare against *expected_data*.

    Args:
        image: PIL Image containing a QR code.
        expected_data: If provided, a decode that differs counts as a failure.

    Returns:
        A single-item list of ScanResults, so callers can report per decoder.
    """
    result = scan_opencv(image)
    if result.success and expected_data is not None and result.decoded_data != expected_data:
        result.success = False
        result.error = f"Data mismatch: got '{result.decoded_data}', expected '{expected_data}'"
    return [result]
