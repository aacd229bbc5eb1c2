from PIL import Image

from qrstyle.verify import verify

PAYLOAD = "https://example.com"


def test_plain_code_round_trips(encoded):
    results = verify(encoded.image, expected_data=PAYLOAD)
    assert len(results) == 1
    assert results[0].decoder == "opencv"
    assert results[0].success, results[0].error
    assert results[0].decoded_data == PAYLOAD


def test_mismatch_counts_as_failure(encoded):
    result = verify(encoded.image, expected_data="something else")[0]
    assert not result.success
    assert "Data mismatch" in result.error


def test_blank_image_fails():
    result = verify(Image.new("RGB", (200, 200), "white"))[0]
    assert not result.success
    assert result.decoded_data is None


def test_styled_code_round_trips(encoded, zones):
    from qrstyle.renderer import render_modules

    styled = render_modules(encoded, "rounded", zones)
    results = verify(styled.image, expected_data=PAYLOAD)
    assert [r.decoder for r in results] == ["opencv"]
    assert results[0].success, results[0].error
