"""Style request data model: module shape, eye shape, gradient, logo and frame options."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from PIL import Image

from qrstyle.errors import UnsupportedStyleError


class Shape(str, Enum):
    SQUARE = "square"
    ROUNDED = "rounded"
    CLASSY = "classy"
    DOTS = "dots"
    CIRCLE = "circle"
    DIAMOND = "diamond"
    STAR = "star"
    HEART = "heart"
    LEAF = "leaf"
    FLUID = "fluid"


class EyeShape(str, Enum):
    SQUARE = "square"
    ROUNDED = "rounded"
    LEAF = "leaf"
    CIRCLE = "circle"


class GradientType(str, Enum):
    LINEAR = "linear"
    RADIAL = "radial"


def _coerce(enum_cls, value, what: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise UnsupportedStyleError(f"Unsupported {what} {value!r} (choose from: {choices})") from None


def parse_shape(value) -> Shape:
    return _coerce(Shape, value, "module shape")


def parse_eye_shape(value) -> EyeShape:
    return _coerce(EyeShape, value, "eye shape")


@dataclass(frozen=True)
class GradientSpec:
    """Foreground gradient. Fewer than two colours makes it a no-op."""

    colors: tuple[str, ...] = ("#000000", "#333333")
    type: GradientType = GradientType.LINEAR
    angle_degrees: float = 0.0

    def __post_init__(self):
        object.__setattr__(self, "type", _coerce(GradientType, self.type, "gradient type"))
        object.__setattr__(self, "colors", tuple(self.colors))


@dataclass(frozen=True)
class LogoSpec:
    """Logo overlay options.

    ``source`` is raw image bytes, a file path, or a PIL image. ``position`` is the
    logo centre as fractions of the canvas width and height.
    """

    source: bytes | str | Path | Image.Image
    size_percent: float = 15
    margin_percent: float = 10
    corner_radius_px: int = 8
    position: tuple[float, float] = (0.5, 0.5)
    plate_color: str = "#FFFFFF"
    border_color: str = "#E5E7EB"
    border_px: int = 2

    @property
    def clamped_size_percent(self) -> float:
        return max(5.0, min(30.0, float(self.size_percent)))


@dataclass(frozen=True)
class FrameSpec:
    """Caption band drawn above the code."""

    text: str = ""
    text_color: str = "#000000"
    background_color: str = "#FFFFFF"
    caption_height: int | None = None


@dataclass(frozen=True)
class StyleRequest:
    shape: Shape = Shape.SQUARE
    eye_shape: EyeShape = EyeShape.SQUARE
    gradient: GradientSpec | None = None
    logo: LogoSpec | None = None
    frame: FrameSpec | None = None

    def __post_init__(self):
        object.__setattr__(self, "shape", parse_shape(self.shape))
        object.__setattr__(self, "eye_shape", parse_eye_shape(self.eye_shape))

    @property
    def is_plain(self) -> bool:
        return (self.shape is Shape.SQUARE and self.eye_shape is EyeShape.SQUARE
                and self.gradient is None and self.logo is None and self.frame is None)


DEFAULT_STYLE = StyleRequest()


@dataclass
class BatchItem:
    """One entry of a batch render: the payload and the file name to save it under."""

    content: str
    filename: str | None = None
