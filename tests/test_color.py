import pytest

from mzdmap.color import (
    LAB_GRAY,
    Lab,
    calc_text_color_over_bg,
    format_hex_color,
    parse_hex_color,
)


@pytest.mark.parametrize(
    "rgb",
    [(0, 0, 0), (255, 255, 255), (255, 0, 0), (0, 255, 0), (0, 0, 255), (12, 200, 77), (128, 128, 128)],
)
def test_lab_rgb_round_trip(rgb):
    assert Lab.from_rgb(rgb).to_rgb() == rgb


def test_lab_of_black_and_white():
    black = Lab.from_rgb((0, 0, 0))
    white = Lab.from_rgb((255, 255, 255))
    assert black.l == pytest.approx(0.0, abs=0.01)
    assert white.l == pytest.approx(100.0, abs=0.1)
    assert white.a == pytest.approx(0.0, abs=0.1)
    assert white.b == pytest.approx(0.0, abs=0.1)


def test_from_rgba_ignores_alpha():
    assert Lab.from_rgba((10, 20, 30, 0)) == Lab.from_rgb((10, 20, 30))
    assert Lab.from_rgba((10, 20, 30, 255)) == Lab.from_rgb((10, 20, 30))


def test_default_lab_is_zero():
    assert Lab() == Lab(0.0, 0.0, 0.0)


def test_text_color_over_white_is_black():
    result = calc_text_color_over_bg(Lab.from_rgb((255, 255, 255)), (0.0, 0.0))
    assert result.to_rgb() == (0, 0, 0)


def test_text_color_over_black_is_bright():
    result = calc_text_color_over_bg(Lab.from_rgb((0, 0, 0)), (0.0, 0.0))
    assert result.l > LAB_GRAY.l


def test_text_color_is_normalized():
    bg = Lab.from_rgb((40, 120, 200))
    result = calc_text_color_over_bg(bg, (3.0, -2.0))
    assert Lab.from_rgb(result.to_rgb()) == result


def test_hex_round_trip():
    for rgb in [(0, 0, 0), (255, 255, 255), (1, 2, 3), (171, 205, 239)]:
        assert parse_hex_color(format_hex_color(rgb)) == rgb


def test_format_hex_is_lowercase():
    assert format_hex_color((255, 0, 128)) == "#ff0080"


def test_parse_accepts_uppercase():
    assert parse_hex_color("#FF0080") == parse_hex_color("#ff0080")


@pytest.mark.parametrize("text", ["ff0080", "#ff008", "#ff00800", "#gg0000", "#ff 080", ""])
def test_parse_rejects_invalid(text):
    with pytest.raises(ValueError):
        parse_hex_color(text)