import pytest
from PIL import Image

from qrstyle.frame import add_frame
from qrstyle.heuristic import assess_scan_plausibility
from qrstyle.renderer import render_modules
from qrstyle.styles import FrameSpec


def test_plain_code_is_plausible(encoded):
    report = assess_scan_plausibility(encoded.image, encoded.module_count, encoded.quiet_zone_px)
    assert report.plausible
    assert report.advisory
    assert report.passing_zones == 3
    assert set(report.ratios) == {"top-left", "top-right", "bottom-left"}
    assert "advisory only" in report.summary()


def test_styled_code_keeps_finders_plausible(encoded, zones):
    styled = render_modules(encoded, "star", zones)
    assert assess_scan_plausibility(styled.image, 25, 40).plausible


def test_blank_image_is_not_plausible():
    blank = Image.new("RGB", (330, 330), "white")
    report = assess_scan_plausibility(blank, 25, 40)
    assert not report.plausible
    assert report.passing_zones == 0
    assert "may not scan" in report.summary()


def test_solid_black_is_not_plausible():
    report = assess_scan_plausibility(Image.new("RGB", (330, 330), "black"), 25, 40)
    assert not report.plausible


def test_caption_band_is_skipped(encoded):
    framed = add_frame(encoded, FrameSpec(text="Hello"), caption_height=50)
    report = assess_scan_plausibility(framed.image, 25, 40, top_offset=framed.frame_px)
    assert report.plausible


def _blank_zones(encoded, *origins):
    img = encoded.image.copy()
    for x0, y0 in origins:
        img.paste((255, 255, 255, 255), (x0, y0, x0 + 90, y0 + 90))
    return img


def test_one_destroyed_finder_is_still_plausible(encoded):
    report = assess_scan_plausibility(_blank_zones(encoded, (40, 40)), 25, 40)
    assert report.ratios["top-left"] == 0.0
    assert report.passing_zones == 2
    assert report.plausible


def test_two_destroyed_finders_are_not_plausible(encoded):
    report = assess_scan_plausibility(_blank_zones(encoded, (40, 40), (200, 40)), 25, 40)
    assert report.passing_zones == 1
    assert not report.plausible


def test_grey_foreground_needs_midpoint_threshold():
    from qrstyle.encoder import encode
    from qrstyle.heuristic import midpoint_threshold

    grey = encode("https://example.com", dark_color="#999999")
    assert not assess_scan_plausibility(grey.image, 25, 40).plausible
    threshold = midpoint_threshold(grey.dark_color, grey.light_color)
    assert threshold == pytest.approx(204.0)
    assert assess_scan_plausibility(grey.image, 25, 40, dark_threshold=threshold).plausible
