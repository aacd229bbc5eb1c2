import io

import pytest
from PIL import Image, ImageDraw

from qrstyle.encoder import encode
from qrstyle.grid import ProtectedZoneSet, locate_from_image

PAYLOAD = "https://example.com"


@pytest.fixture
def encoded():
    """Version 2 (25x25) code, 10px modules, 4-module quiet zone."""
    return encode(PAYLOAD, ecc="M", box_size=10, border=4)


@pytest.fixture
def zones(encoded):
    return ProtectedZoneSet.for_grid(locate_from_image(encoded))


@pytest.fixture
def logo_image():
    """Opaque red square with a white disc in the middle."""
    img = Image.new("RGBA", (64, 64), (220, 20, 20, 255))
    ImageDraw.Draw(img).ellipse([24, 24, 40, 40], fill=(255, 255, 255, 255))
    return img


@pytest.fixture
def logo_png(logo_image):
    buffer = io.BytesIO()
    logo_image.save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ("QRSTYLE_WORKERS", "QRSTYLE_STYLE_EYES", "QRSTYLE_ENABLE_GRADIENT",
                 "QRSTYLE_ENABLE_LOGO", "QRSTYLE_ENABLE_FRAME", "QRSTYLE_CAPTION_HEIGHT",
                 "QRSTYLE_FONT_SIZE", "QRSTYLE_LOW_ECC_FALLBACK", "QRSTYLE_PROTECT_TIMING",
                 "QRSTYLE_PROTECT_ALIGNMENT", "QRSTYLE_PROTECT_VERSION_INFO"):
        monkeypatch.delenv(name, raising=False)

