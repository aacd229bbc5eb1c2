import numpy as np

from qrstyle.frame import add_frame, load_caption_font
from qrstyle.styles import FrameSpec


def test_frame_adds_band_above_unchanged_code(encoded):
    framed = add_frame(encoded, FrameSpec(text="Scan me"), caption_height=60)
    assert framed.width == encoded.width
    assert framed.height == encoded.height + 60
    assert framed.frame_px == 60
    assert np.array_equal(framed.pixels()[60:], encoded.pixels())


def test_caption_text_is_drawn_in_the_band(encoded):
    spec = FrameSpec(text="Scan me", text_color="#FF0000", background_color="#FEF3C7")
    band = add_frame(encoded, spec, caption_height=60).pixels()[:60]
    assert tuple(band[0, 0, :3]) == (0xFE, 0xF3, 0xC7)
    reddish = (band[..., 0] > 200) & (band[..., 1] < 120)
    assert reddish.any()


def test_empty_caption_leaves_plain_band(encoded):
    band = add_frame(encoded, FrameSpec(background_color="#112233"), caption_height=40).pixels()[:40]
    assert (band[..., :3] == (0x11, 0x22, 0x33)).all()


def test_spec_caption_height_wins(encoded):
    framed = add_frame(encoded, FrameSpec(text="x", caption_height=24), caption_height=60)
    assert framed.frame_px == 24


def test_long_caption_still_renders(encoded):
    framed = add_frame(encoded, FrameSpec(text="W" * 200), caption_height=60)
    assert framed.height == encoded.height + 60


def test_caption_font_is_cached():
    assert load_caption_font(16) is load_caption_font(16)
