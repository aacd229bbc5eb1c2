import numpy as np
import pytest

from qrstyle.errors import UnsupportedStyleError
from qrstyle.glyphs import GLYPHS, get_glyph
from qrstyle.styles import Shape


def test_every_shape_has_a_glyph():
    assert set(GLYPHS) == set(Shape)


def test_dots_and_circle_share_a_glyph():
    assert get_glyph("dots") is get_glyph(Shape.CIRCLE)


def test_unknown_shape_rejected():
    with pytest.raises(UnsupportedStyleError):
        get_glyph("hexagon")


@pytest.mark.parametrize("shape", list(Shape))
@pytest.mark.parametrize("module_px", [3, 10, 17])
def test_coverage_map_shape_and_range(shape, module_px):
    cov = get_glyph(shape).coverage(module_px)
    assert cov.shape == (module_px, module_px)
    assert cov.dtype == np.float32
    assert cov.min() >= 0.0 and cov.max() <= 1.0
    # Every glyph inks its centre
    assert cov[module_px // 2, module_px // 2] == 1.0


def test_coverage_is_cached_and_read_only():
    glyph = get_glyph("heart")
    first = glyph.coverage(12)
    assert glyph.coverage(12) is first
    with pytest.raises(ValueError):
        first[0, 0] = 0.5


def test_dot_leaves_corners_empty():
    cov = get_glyph("dots").coverage(10)
    assert cov[0, 0] == 0.0
    assert cov[9, 9] == 0.0


def test_rounded_cuts_only_the_corners():
    cov = get_glyph("rounded").coverage(10)
    assert cov[0, 0] == 0.0
    assert cov[0, 5] == 1.0
    assert cov[5, 0] == 1.0
    assert (cov == 1.0).sum() > 90


def test_classy_softens_corners():
    cov = get_glyph("classy").coverage(20)
    assert 0.0 <= cov[0, 0] < 1.0
    assert cov[0, 10] == 1.0


def test_diamond_is_symmetric():
    cov = get_glyph("diamond").coverage(11)
    assert np.array_equal(cov, cov.T)
    assert np.array_equal(cov, cov[::-1, ::-1])
    assert cov[0, 0] == 0.0


def test_star_and_heart_are_distinct_shapes():
    star = get_glyph("star").coverage(16)
    heart = get_glyph("heart").coverage(16)
    dots = get_glyph("dots").coverage(16)
    assert not np.array_equal(star, dots)
    assert not np.array_equal(heart, dots)
    # The star is thinner than a filled disc of similar radius
    assert star.sum() < dots.sum()


def test_heart_is_mirror_symmetric():
    cov = get_glyph("heart").coverage(16)
    assert np.array_equal(cov, cov[:, ::-1])


def test_leaf_is_wider_than_tall():
    cov = get_glyph("leaf").coverage(20)
    rows = cov.any(axis=1).sum()
    cols = cov.any(axis=0).sum()
    assert cols > rows


def test_paint_module_blends_between_colours():
    pixels = np.zeros((10, 10, 4), dtype=np.uint8)
    pixels[...] = (0, 0, 0, 255)
    get_glyph("dots").paint_module(pixels, (0, 0, 10, 10), (0, 0, 0), (255, 255, 255))
    assert tuple(pixels[0, 0]) == (255, 255, 255, 255)
    assert tuple(pixels[5, 5]) == (0, 0, 0, 255)


def test_square_paint_is_a_no_op():
    pixels = np.full((10, 10, 4), 7, dtype=np.uint8)
    get_glyph("square").paint_module(pixels, (0, 0, 10, 10), (0, 0, 0), (255, 255, 255))
    assert (pixels == 7).all()


@pytest.mark.parametrize("shape", ["rounded", "classy"])
@pytest.mark.parametrize("module_px", [3, 4, 10, 20])
def test_corner_radius_stays_within_bounds(shape, module_px):
    r = get_glyph(shape).radius(module_px)
    assert 0.1 * module_px <= r <= 0.3 * module_px


def test_smallest_module_radius_is_capped():
    assert get_glyph("rounded").radius(3) == pytest.approx(0.9)
