import logging

import numpy as np
import pytest
from PIL import Image

from qrstyle.encoder import encode
from qrstyle.errors import LogoDecodeError
from qrstyle.grid import ProtectedZoneSet, locate_from_image
from qrstyle.logo import decode_logo, embed_logo, estimate_logo_damage, logo_keep_out, place_logo
from qrstyle.styles import LogoSpec


def test_decode_from_bytes_path_and_image(logo_png, logo_image, tmp_path):
    path = tmp_path / "logo.png"
    path.write_bytes(logo_png)
    for source in (logo_png, path, str(path), logo_image.convert("RGB")):
        img = decode_logo(source)
        assert img.mode == "RGBA"
        assert img.size == (64, 64)


@pytest.mark.parametrize("source", [b"", b"definitely not an image", 42])
def test_decode_failures_are_soft(source):
    with pytest.raises(LogoDecodeError) as excinfo:
        decode_logo(source)
    assert excinfo.value.hard is False


def test_decode_missing_file(tmp_path):
    with pytest.raises(LogoDecodeError):
        decode_logo(tmp_path / "missing.png")


def test_place_logo_clamps_size():
    big = place_logo(330, 330, LogoSpec(source=b"", size_percent=80))
    small = place_logo(330, 330, LogoSpec(source=b"", size_percent=1))
    assert big.logo_px == 99
    assert small.logo_px == 16


def test_place_logo_centred_by_default():
    placement = place_logo(330, 330, LogoSpec(source=b"", size_percent=30))
    x0, y0, x1, y1 = placement.plate_box
    assert placement.margin_px == 10
    assert abs((x0 + x1) / 2 - 165) <= 1
    assert abs((y0 + y1) / 2 - 165) <= 1


def test_place_logo_stays_inside_canvas():
    placement = place_logo(330, 330, LogoSpec(source=b"", size_percent=30, position=(1.0, 0.0)))
    x0, y0, x1, y1 = placement.plate_box
    assert x0 >= 0 and y0 >= 0
    assert x1 <= 329 and y1 <= 329


def test_damage_estimate_depends_on_ecc(encoded):
    grid = locate_from_image(encoded)
    plate = place_logo(330, 330, LogoSpec(source=b"", size_percent=30)).plate_box
    low = estimate_logo_damage(grid, plate, "L")
    high = estimate_logo_damage(grid, plate, "H")
    assert low.covered_modules == high.covered_modules == 121
    assert not low.safe
    assert high.safe
    assert "AT RISK" in low.summary()


def test_embed_logo_paints_plate_and_logo(encoded, zones, logo_image):
    spec = LogoSpec(source=b"", size_percent=30)
    out = embed_logo(encoded, logo_image, spec, zones)
    px = out.pixels()
    assert out.width == encoded.width
    # Plate margin keeps the plate colour and the logo corner is red
    placement = place_logo(330, 330, spec, avoid=logo_keep_out(zones))
    lx0, ly0, lx1, ly1 = placement.logo_box
    assert tuple(px[ly0 - 3, (lx0 + lx1) // 2, :3]) == (255, 255, 255)
    assert px[ly0 + 3, lx0 + 3, 0] > 180 and px[ly0 + 3, lx0 + 3, 1] < 60


def test_embed_logo_restores_finders(encoded, zones, logo_image):
    spec = LogoSpec(source=b"", size_percent=30, position=(0.0, 0.0))
    out = embed_logo(encoded, logo_image, spec, zones)
    finder = zones.finder_pixel_mask()
    assert np.array_equal(out.pixels()[finder], encoded.pixels()[finder])


def test_embed_logo_keeps_transparent_logo_pixels_on_plate(encoded, zones):
    clear = Image.new("RGBA", (32, 32), (0, 0, 0, 0))
    spec = LogoSpec(source=b"", size_percent=20, plate_color="#00FF00")
    out = embed_logo(encoded, clear, spec, zones).pixels()
    assert tuple(out[165, 165, :3]) == (0, 255, 0)


def test_unsafe_logo_warns(caplog, logo_image):
    rendered = encode("https://example.com", ecc="L")
    zones = ProtectedZoneSet.for_grid(locate_from_image(rendered))
    with caplog.at_level(logging.WARNING, logger="qrstyle"):
        embed_logo(rendered, logo_image, LogoSpec(source=b"", size_percent=30), zones)
    assert any("AT RISK" in r.getMessage() for r in caplog.records)


def test_wide_logo_keeps_aspect(encoded, zones):
    wide = Image.new("RGBA", (200, 50), (0, 0, 255, 255))
    spec = LogoSpec(source=b"", size_percent=30, plate_color="#FFFFFF")
    out = embed_logo(encoded, wide, spec, zones).pixels()
    lx0, ly0, lx1, ly1 = place_logo(330, 330, spec, avoid=logo_keep_out(zones)).logo_box
    # Top rows of the logo square are plate, the middle band is the logo
    assert tuple(out[ly0 + 2, 165, :3]) == (255, 255, 255)
    assert tuple(out[165, 165, :3]) == (0, 0, 255)


def test_plate_shrinks_clear_of_finders(zones):
    finder = zones.finder_pixel_mask()
    placement = place_logo(330, 330, LogoSpec(source=b"", size_percent=30), avoid=finder)
    x0, y0, x1, y1 = placement.plate_box
    assert placement.shrunk
    assert placement.requested_px == 99
    assert 0 < placement.logo_px < 99
    assert not finder[y0 : y1 + 1, x0 : x1 + 1].any()


def test_corner_position_falls_back_to_centre(zones):
    keep_out = logo_keep_out(zones)
    placement = place_logo(330, 330, LogoSpec(source=b"", size_percent=20, position=(0.0, 0.0)),
                           avoid=keep_out)
    x0, y0, x1, y1 = placement.plate_box
    assert not keep_out[y0 : y1 + 1, x0 : x1 + 1].any()
    assert abs((x0 + x1) / 2 - 165) <= 1
    assert abs((y0 + y1) / 2 - 165) <= 1


def test_logo_is_not_notched_by_finders(encoded, zones):
    red = Image.new("RGBA", (64, 64), (220, 20, 20, 255))
    spec = LogoSpec(source=b"", size_percent=30)
    out = embed_logo(encoded, red, spec, zones).pixels()
    placement = place_logo(330, 330, spec, avoid=logo_keep_out(zones))
    lx0, ly0, lx1, ly1 = placement.logo_box
    logo = out[ly0 : ly1 + 1, lx0 : lx1 + 1, :3]
    not_red = (logo[..., 0] < 180) | (logo[..., 1] > 60)
    assert not not_red.any()


def test_shrink_is_audited(caplog, encoded, zones, logo_image):
    with caplog.at_level(logging.INFO, logger="qrstyle"):
        embed_logo(encoded, logo_image, LogoSpec(source=b"", size_percent=30), zones)
    assert any(getattr(r, "event", "") == "logo.shrunk" for r in caplog.records)


def test_logo_size_kept_without_zones(encoded, logo_image):
    spec = LogoSpec(source=b"", size_percent=30)
    assert not place_logo(330, 330, spec).shrunk
    out = embed_logo(encoded, logo_image, spec).pixels()
    lx0, ly0, _, _ = place_logo(330, 330, spec).logo_box
    assert out[ly0 + 3, lx0 + 3, 0] > 180
