"""Error taxonomy for the styling pipeline.

Hard failures abort a render: EncodingError, GeometryError, UnsupportedStyleError.
Soft failures are cosmetic and the pipeline degrades past them: LogoDecodeError,
GradientSpecError.
"""


class QRStyleError(Exception):
    """Base class for every error raised by qrstyle."""

    hard = True


class EncodingError(QRStyleError):
    """Payload rejected by the QR encoder (empty, too long, bad colours)."""


class GeometryError(QRStyleError):
    """Module grid could not be derived from the rendered bitmap."""


class UnsupportedStyleError(QRStyleError, ValueError):
    """Unknown glyph, eye shape or gradient type."""


class LogoDecodeError(QRStyleError):
    """Logo bytes or file could not be decoded into an image."""

    hard = False


class GradientSpecError(QRStyleError):
    """Gradient cannot be built (fewer than two colours, unparseable colour)."""

    hard = False


class UnsupportedFormatError(QRStyleError, ValueError):
    """Output format other than PNG was requested (e.g. SVG)."""


class PayloadError(QRStyleError, ValueError):
    """Structured payload (WiFi, vCard, mailto) is missing required fields."""
