import io

import pytest

from mzdmap.sel_matrix import (
    SEL_MATRIX_FILE_HEADER,
    SelEntry,
    SelMatrix,
    SelMatrixError,
    SelMatrixLayered,
    SelPt,
    clamp_bounds,
    deoverlap,
    deoverlap_layered,
    intersect_bounds,
    sel_entry_dims,
)


def test_entry_encode_layout():
    assert SelEntry((1, 2), (3, 4)).encode() == bytes([1, 2, 3, 4, 0, 0, 0, 0])


def test_entry_decode_roundtrip():
    e = SelEntry((5, 6), (7, 9))
    assert SelEntry.decode(e.encode()) == e


def test_entry_decode_short():
    with pytest.raises(SelMatrixError):
        SelEntry.decode(b"\x00\x01")


def test_entry_is_empty():
    assert SelEntry((0, 0), (0, 3)).is_empty()
    assert not SelEntry((0, 0), (1, 1)).is_empty()


def test_sel_pt_roundtrip():
    e = SelEntry((1, 2), (4, 4))
    pt = e.to_sel_pt((10, 10))
    assert pt.to_sel_entry((10, 10)) == e
    assert pt.size == e.size


def test_fill_entries_point_to_same_group():
    m = SelMatrix.new_empty((6, 5))
    m.fill((1, 1), (4, 3))
    pts = {m.get((x, y)).to_sel_pt((x, y)) for x in range(1, 4) for y in range(1, 3)}
    assert pts == {SelPt((1, 1), (3, 2))}
    assert m.get((0, 0)).is_empty()


def test_fill_rejects_reversed():
    m = SelMatrix.new_empty((4, 4))
    with pytest.raises(ValueError):
        m.fill((3, 3), (1, 1))


def test_get_out_of_bounds():
    m = SelMatrix.new_filled((2, 2))
    assert m.get((2, 0)) is None
    assert m.get((-1, 0)) is None


def test_set_out_of_bounds():
    m = SelMatrix.new_filled((2, 2))
    with pytest.raises(IndexError):
        m.set((5, 5), SelEntry())


def test_set_and_fix_clips_to_matrix():
    m = SelMatrix.new_empty((4, 4))
    m.set_and_fix((0, 0), SelEntry((1, 1), (3, 3)))
    assert m.get((0, 0)) == SelEntry((0, 0), (2, 2))


def test_set_and_fix_signed_ignores_negative():
    m = SelMatrix.new_empty((4, 4))
    before = list(m.entries)
    m.set_and_fix_signed((-1, 0), SelEntry((0, 0), (1, 1)))
    assert m.entries == before


def test_clampfix_inside_bounds_unchanged():
    e = SelEntry((1, 1), (2, 2))
    assert e.clampfix((5, 5), ((0, 0), (10, 10))) == e


def test_intervalize_groups_align():
    m = SelMatrix.new_filled((5, 5))
    m.intervalize((2, 2))
    for y in range(5):
        for x in range(5):
            pt = m.get((x, y)).to_sel_pt((x, y))
            assert pt.start[0] % 2 == 0 and pt.start[1] % 2 == 0
            assert pt.start[0] + pt.size[0] <= 5
            assert pt.start[1] + pt.size[1] <= 5


def test_intervalize_zero():
    with pytest.raises(ValueError):
        SelMatrix.new_filled((2, 2)).intervalize((0, 1))


def _sample():
    m = SelMatrix.new_filled((5, 3))
    m.fill((0, 0), (3, 2))
    m.fill((3, 1), (5, 3))
    return m


@pytest.mark.parametrize("swap,flip", [(False, (True, False)), (False, (False, True)), (True, (False, False))])
def test_transform_involution(swap, flip):
    m = _sample()
    assert m.transformed(swap, flip).transformed(swap, flip) == m


def test_transform_swap_dims_and_groups_valid():
    t = _sample().transformed(True, (True, True))
    assert t.dims == (3, 5)
    for y in range(5):
        for x in range(3):
            pt = t.get((x, y)).to_sel_pt((x, y))
            assert pt.start[0] + pt.size[0] <= 3
            assert pt.start[1] + pt.size[1] <= 5


def test_serialize_format_and_roundtrip():
    sml = SelMatrixLayered.create((3, 2), 2)
    sml.layers[1].fill((0, 0), (2, 2))
    buf = io.BytesIO()
    sml.serialize(buf)
    data = buf.getvalue()
    assert data.startswith(SEL_MATRIX_FILE_HEADER)
    n = len(SEL_MATRIX_FILE_HEADER)
    assert int.from_bytes(data[n : n + 4], "little") == 3
    assert int.from_bytes(data[n + 8 : n + 16], "little") == 2
    assert len(data) == n + 16 + 8 * 3 * 2 * 2
    assert SelMatrixLayered.deserialize(io.BytesIO(data), (3, 2)) == sml


def test_deserialize_bad_header():
    with pytest.raises(SelMatrixError):
        SelMatrixLayered.deserialize(b"x" * 80, (3, 2))


def test_deserialize_size_mismatch():
    buf = io.BytesIO()
    SelMatrixLayered.create((3, 2), 1).serialize(buf)
    with pytest.raises(SelMatrixError):
        SelMatrixLayered.deserialize(buf.getvalue(), (2, 3))


def test_deserialize_truncated():
    buf = io.BytesIO()
    SelMatrixLayered.create((3, 2), 1).serialize(buf)
    with pytest.raises(SelMatrixError):
        SelMatrixLayered.deserialize(buf.getvalue()[:-3], (3, 2))


def test_create_zero_dims():
    with pytest.raises(ValueError):
        SelMatrixLayered.create((0, 4), 1)


def test_create_layer_and_trace():
    sml = SelMatrixLayered.create((4, 4), 2)
    sml.layers[0].fill((0, 0), (2, 2))
    sml.create_layer(1)
    sml.layers[1].fill((1, 1), (3, 3))
    assert len(sml.layers) == 3
    layer, entry = sml.get_traced((1, 1), range(3))
    assert layer == 1 and entry == sml.layers[1].get((1, 1))
    assert sml.get_traced((0, 0), range(3))[0] == 0
    assert sml.get_traced((3, 3), range(3)) is None


def test_layered_transform_roundtrip():
    sml = SelMatrixLayered(( 5, 3), [_sample(), SelMatrix.new_empty((5, 3))])
    t = sml.transformed(True, (False, False))
    assert t.dims == (3, 5)
    assert t.transformed(True, (False, False)) == sml


def test_deoverlap_collects_group_cells():
    m = _sample()
    pt = m.get((1, 1)).to_sel_pt((1, 1))
    cells = deoverlap([pt, pt], m)
    assert cells == sorted({(x, y) for x in range(3) for y in range(2)}, key=lambda p: (p[1], p[0]))


def test_deoverlap_layered():
    m = _sample()
    pt = m.get((4, 2)).to_sel_pt((4, 2))
    result = deoverlap_layered([(1, pt), (0, pt), (9, pt)], [SelMatrix.new_empty((5, 3)), m])
    assert [layer for layer, _ in result] == [1] * 4
    assert {pos for _, pos in result} == {(3, 1), (4, 1), (3, 2), (4, 2)}


def test_sel_entry_dims():
    assert sel_entry_dims((320, 240)) == (40, 30)


def test_bounds_helpers():
    assert intersect_bounds(((0, 0), (4, 4)), ((5, 5), (8, 8))) is None
    assert intersect_bounds(((0, 0), (4, 4)), ((2, 1), (8, 8))) == ((2, 1), (4, 4))
    p0, p1 = clamp_bounds(((-3, -3), (2, 2)), ((0, 0), (10, 10)))
    assert p0 == (0, 0) and p1 == (2, 2)
    q0, q1 = clamp_bounds(((20, 20), (30, 30)), ((0, 0), (10, 10)))
    assert q0 == q1