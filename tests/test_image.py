import pytest
from PIL import Image as PILImage

from mzdmap.image import (
    RgbaImage,
    blend_pixel,
    collapse,
    create_gap,
    imgcopy,
    ranges_overlap,
    swap_ranges,
)


def solid(w, h, color):
    return RgbaImage(w, h, bytearray(bytes(color) * (w * h)))


def test_new_is_transparent():
    img = RgbaImage.new(4, 3)
    assert img.dimensions == (4, 3)
    assert set(img.data) == {0}
    assert len(img.data) == 4 * 3 * 4


def test_mismatched_data_rejected():
    with pytest.raises(ValueError):
        RgbaImage(2, 2, bytearray(3))


def test_put_get_roundtrip():
    img = RgbaImage.new(3, 3)
    img.put_pixel(2, 1, (10, 20, 30, 40))
    assert img.get_pixel(2, 1) == (10, 20, 30, 40)
    assert img.get_pixel(1, 2) == img.get_pixel(0, 0)


def test_get_pixel_out_of_bounds():
    img = RgbaImage.new(2, 2)
    with pytest.raises(IndexError):
        img.get_pixel(2, 0)


def test_view_copies_region():
    img = RgbaImage.new(4, 4)
    img.put_pixel(2, 3, (1, 2, 3, 4))
    part = img.view(2, 2, 2, 2)
    assert part.dimensions == (2, 2)
    assert part.get_pixel(0, 1) == (1, 2, 3, 4)
    part.put_pixel(0, 0, (9, 9, 9, 9))
    assert img.get_pixel(2, 2) != (9, 9, 9, 9)


def test_view_out_of_bounds():
    with pytest.raises(ValueError):
        RgbaImage.new(4, 4).view(2, 2, 3, 1)


def test_is_empty_and_copy():
    assert RgbaImage().is_empty()
    img = solid(2, 2, (5, 6, 7, 8))
    assert not img.is_empty()
    dup = img.copy()
    assert dup == img
    dup.put_pixel(0, 0, (0, 0, 0, 0))
    assert dup != img


def test_pil_roundtrip():
    img = RgbaImage.new(3, 2)
    img.put_pixel(1, 1, (100, 150, 200, 250))
    pil = img.to_pil()
    assert pil.size == (3, 2)
    assert RgbaImage.from_pil(pil) == img


def test_from_pil_converts_rgb():
    pil = PILImage.new("RGB", (2, 2), (1, 2, 3))
    img = RgbaImage.from_pil(pil)
    assert img.get_pixel(1, 1) == (1, 2, 3, 255)


def test_blend_opaque_top_wins():
    assert blend_pixel((1, 2, 3, 200), (9, 8, 7, 255)) == (9, 8, 7, 255)


def test_blend_transparent_top_keeps_bottom():
    assert blend_pixel((1, 2, 3, 200), (9, 8, 7, 0)) == (1, 2, 3, 200)


def test_blend_over_transparent_keeps_colour():
    out = blend_pixel((0, 0, 0, 0), (200, 100, 50, 128))
    assert abs(out[0] - 200) <= 1
    assert abs(out[1] - 100) <= 1
    assert abs(out[3] - 128) <= 1


def test_imgcopy_replace_overwrites_with_transparent():
    bottom = solid(4, 4, (1, 1, 1, 255))
    top = RgbaImage.new(2, 2)
    imgcopy(bottom, top, 1, 1, True)
    assert bottom.get_pixel(1, 1) == top.get_pixel(0, 0)
    assert bottom.get_pixel(0, 0) == (1, 1, 1, 255)


def test_imgcopy_overlay_keeps_under_transparent():
    bottom = solid(4, 4, (1, 1, 1, 255))
    top = RgbaImage.new(2, 2)
    top.put_pixel(0, 0, (50, 60, 70, 255))
    imgcopy(bottom, top, 2, 2, False)
    assert bottom.get_pixel(2, 2) == (50, 60, 70, 255)
    assert bottom.get_pixel(3, 3) == (1, 1, 1, 255)


def test_imgcopy_clips_negative_offset():
    bottom = RgbaImage.new(3, 3)
    top = solid(2, 2, (7, 7, 7, 255))
    top.put_pixel(1, 1, (8, 8, 8, 255))
    imgcopy(bottom, top, -1, -1, True)
    assert bottom.get_pixel(0, 0) == (8, 8, 8, 255)
    assert bottom.get_pixel(1, 1) == (0, 0, 0, 0)


def test_gap_and_collapse_roundtrip():
    data = bytearray(b"abcdef")
    create_gap(data, 2, 3)
    assert data == bytearray(b"ab\x00\x00\x00cdef")
    collapse(data, 2, 3)
    assert data == bytearray(b"abcdef")


def test_gap_offset_out_of_range():
    with pytest.raises(ValueError):
        create_gap(bytearray(2), 3, 1)


def test_collapse_out_of_range():
    with pytest.raises(ValueError):
        collapse([1, 2, 3], 2, 2)


def test_swap_ranges():
    data = [1, 2, 3, 4, 5, 6]
    swap_ranges(data, 0, 4, 2)
    assert data == [5, 6, 3, 4, 1, 2]
    swap_ranges(data, 4, 0, 2)
    assert data == [1, 2, 3, 4, 5, 6]


def test_swap_overlapping_raises():
    with pytest.raises(ValueError):
        swap_ranges([1, 2, 3, 4], 0, 1, 2)


@pytest.mark.parametrize(
    "a,b,length,expected",
    [(0, 2, 2, False), (0, 1, 2, True), (3, 0, 4, True), (0, 0, 1, True)],
)
def test_ranges_overlap(a, b, length, expected):
    assert ranges_overlap(a, b, length) is expected