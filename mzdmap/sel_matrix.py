"""Selection matrices: per-cell tile grouping on an eight-pixel grid.

A ``SelEntry`` describes a cell relative to the tile group it belongs to
(offset inside the group and the group's size), while a ``SelPt`` describes
the same group in absolute cell coordinates of the whole image.
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, Optional, Sequence, Union

SEL_MATRIX_FILE_HEADER = b"#!80c2014a-5cfd-4b23-b767-f5b295edf15e\n"

Vec2 = tuple[int, int]
Bounds = tuple[Vec2, Vec2]


class SelMatrixError(ValueError):
    """Raised when sel matrix data cannot be read or does not match."""


def _clamp(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))


def _u8(a: int, b: int) -> Vec2:
    return (_clamp(a, 0, 255), _clamp(b, 0, 255))


def _u16(a: int, b: int) -> Vec2:
    return (_clamp(a, 0, 65535), _clamp(b, 0, 65535))


@dataclass(frozen=True)
class SelPt:
    """A tile group in absolute cell coordinates."""

    start: Vec2
    size: Vec2

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", tuple(self.start))
        object.__setattr__(self, "size", tuple(self.size))

    def to_sel_entry(self, self_off: Sequence[int]) -> SelEntry:
        """Entry for the cell at ``self_off`` belonging to this group."""
        return SelEntry(
            _u8(self_off[0] - self.start[0], self_off[1] - self.start[1]),
            self.size,
        )


@dataclass(frozen=True)
class SelEntry:
    """A cell's offset inside its tile group and the group's size."""

    start: Vec2 = (0, 0)
    size: Vec2 = (0, 0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", tuple(self.start))
        object.__setattr__(self, "size", tuple(self.size))

    def to_sel_pt(self, at_off: Sequence[int]) -> SelPt:
        """Absolute group of this entry when it sits at cell ``at_off``."""
        return SelPt(
            _u16(at_off[0] - self.start[0], at_off[1] - self.start[1]),
            self.size,
        )

    def to_sel_pt_fixed(self, at_off: Sequence[int], bound_limits: Bounds) -> SelPt:
        """Absolute group of this entry, clipped to ``bound_limits``."""
        p0 = (at_off[0] - self.start[0], at_off[1] - self.start[1])
        p1 = (p0[0] + self.size[0], p0[1] + self.size[1])
        p0, p1 = clamp_bounds((p0, p1), bound_limits)
        return SelPt(_u16(*p0), _u8(p1[0] - p0[0], p1[1] - p0[1]))

    def is_empty(self) -> bool:
        return self.size[0] == 0 or self.size[1] == 0

    def encode(self) -> bytes:
        """The eight-byte on-disk form of this entry."""
        return bytes((self.start[0], self.start[1], self.size[0], self.size[1], 0, 0, 0, 0))

    @classmethod
    def decode(cls, data: bytes) -> SelEntry:
        if len(data) < 8:
            raise SelMatrixError("sel entry needs at least 8 bytes")
        return cls((data[0], data[1]), (data[2], data[3]))

    def clampfix(self, pos: Sequence[int], clamp_space: Bounds) -> SelEntry:
        """This entry with its group clipped to ``clamp_space``."""
        return self.to_sel_pt_fixed(pos, clamp_space).to_sel_entry(pos)


_EMPTY = SelEntry((0, 0), (0, 0))
_UNIT = SelEntry((0, 0), (1, 1))


def sel_entry_dims(full: Sequence[int]) -> Vec2:
    """Cell grid dimensions for an image of ``full`` pixels."""
    return (full[0] // 8, full[1] // 8)


@dataclass
class SelMatrix:
    """A row-major grid of ``SelEntry`` cells."""

    dims: Vec2
    entries: list[SelEntry] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.dims = tuple(self.dims)
        if len(self.entries) != self.dims[0] * self.dims[1]:
            raise SelMatrixError("entry count does not match dimensions")

    @classmethod
    def new_empty(cls, dims: Sequence[int]) -> SelMatrix:
        return cls(tuple(dims), [_EMPTY] * (dims[0] * dims[1]))

    @classmethod
    def new_filled(cls, dims: Sequence[int]) -> SelMatrix:
        """A matrix where every cell is its own 1x1 group."""
        return cls(tuple(dims), [_UNIT] * (dims[0] * dims[1]))

    def _index(self, pos: Sequence[int]) -> Optional[int]:
        x, y = pos
        w, h = self.dims
        if not (0 <= x < w and 0 <= y < h):
            return None
        return y * w + x

    def get(self, pos: Sequence[int]) -> Optional[SelEntry]:
        idx = self._index(pos)
        return None if idx is None else self.entries[idx]

    def set(self, pos: Sequence[int], entry: SelEntry) -> None:
        idx = self._index(pos)
        if idx is None:
            raise IndexError(f"position {tuple(pos)} outside {self.dims}")
        self.entries[idx] = entry

    def fill(self, p0: Sequence[int], p1: Sequence[int]) -> None:
        """Make the cells in ``[p0, p1)`` one group."""
        x0, y0 = p0
        x1, y1 = p1
        if x1 < x0 or y1 < y0:
            raise ValueError("fill end lies before its start")
        size = _u8(x1 - x0, y1 - y0)
        for y in range(y0, y1):
            for x in range(x0, x1):
                idx = self._index((x, y))
                if idx is not None:
                    self.entries[idx] = SelEntry(_u8(x - x0, y - y0), size)

    def set_and_fix(self, pos: Sequence[int], v: SelEntry) -> None:
        """Store ``v`` at ``pos`` with its group clipped to the matrix."""
        idx = self._index(pos)
        if idx is None:
            return
        pt = v.to_sel_pt_fixed(pos, ((0, 0), self.dims))
        self.entries[idx] = pt.to_sel_entry(pos)

    def set_and_fix_signed(self, pos: Sequence[int], v: SelEntry) -> None:
        if pos[0] >= 0 and pos[1] >= 0:
            self.set_and_fix(pos, v)

    def intervalize(self, interval: Sequence[int]) -> None:
        """Group every 1x1 cell into the ``interval``-sized block it falls in."""
        ix, iy = interval
        if ix == 0 or iy == 0:
            raise ValueError("interval must be non-zero")
        w, h = self.dims
        for idx, entry in enumerate(self.entries):
            if entry.start != (0, 0) or entry.size != (1, 1):
                continue
            y, x = divmod(idx, w)
            qx, qy = (x // ix) * ix, (y // iy) * iy
            self.entries[idx] = SelEntry(
                _u8(x - qx, y - qy),
                _u8(min(ix, w - qx), min(iy, h - qy)),
            )

    def transformed(self, swap: bool, flip: Sequence[bool]) -> SelMatrix:
        """A copy with axes swapped (first) and then flipped."""
        w, h = self.dims
        dw, dh = (h, w) if swap else (w, h)
        dest = [_EMPTY] * (dw * dh)
        for idx, entry in enumerate(self.entries):
            sy, sx = divmod(idx, w)
            dx, dy = (sy, sx) if swap else (sx, sy)
            start, size = entry.start, entry.size
            if swap:
                start, size = start[::-1], size[::-1]
            if flip[0]:
                dx = dw - 1 - dx
                if size[0]:
                    start = (size[0] - 1 - start[0], start[1])
            if flip[1]:
                dy = dh - 1 - dy
                if size[1]:
                    start = (start[0], size[1] - 1 - start[1])
            dest[dy * dw + dx] = SelEntry(start, size)
        return SelMatrix((dw, dh), dest)


def _read_exact(src: BinaryIO, n: int) -> bytes:
    data = src.read(n)
    if data is None or len(data) < n:
        raise SelMatrixError("unexpected end of sel matrix data")
    return data


@dataclass
class SelMatrixLayered:
    """A stack of equally sized ``SelMatrix`` layers."""

    dims: Vec2
    layers: list[SelMatrix] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.dims = tuple(self.dims)

    @classmethod
    def create(cls, dims: Sequence[int], initial_layers: int) -> SelMatrixLayered:
        if dims[0] == 0 or dims[1] == 0:
            raise ValueError("sel matrix dimensions must be non-zero")
        return cls(tuple(dims), [SelMatrix.new_empty(dims) for _ in range(initial_layers)])

    def create_layer(self, idx: int) -> None:
        self.layers.insert(idx, SelMatrix.new_empty(self.dims))

    def get_traced(
        self, pos: Sequence[int], on_layers: Iterable[int]
    ) -> Optional[tuple[int, SelEntry]]:
        """Topmost non-empty entry at ``pos`` among ``on_layers``."""
        for layer_idx in reversed(list(on_layers)):
            if not 0 <= layer_idx < len(self.layers):
                continue
            entry = self.layers[layer_idx].get(pos)
            if entry is not None and not entry.is_empty():
                return layer_idx, entry
        return None

    def is_empty(self) -> bool:
        return self.dims[0] == 0 or self.dims[1] == 0

    def serialize(self, dest: BinaryIO) -> None:
        self.serialize_layers(self.dims, self.layers, dest)

    @staticmethod
    def serialize_layers(
        dims: Sequence[int], layers: Sequence[SelMatrix], dest: BinaryIO
    ) -> None:
        dest.write(SEL_MATRIX_FILE_HEADER)
        dest.write(dims[0].to_bytes(4, "little"))
        dest.write(dims[1].to_bytes(4, "little"))
        dest.write(len(layers).to_bytes(8, "little"))
        for layer in layers:
            dest.write(b"".join(entry.encode() for entry in layer.entries))

    @classmethod
    def deserialize(
        cls, src: Union[BinaryIO, bytes, bytearray, memoryview], expected_size: Sequence[int]
    ) -> SelMatrixLayered:
        if isinstance(src, (bytes, bytearray, memoryview)):
            src = io.BytesIO(bytes(src))
        if _read_exact(src, len(SEL_MATRIX_FILE_HEADER)) != SEL_MATRIX_FILE_HEADER:
            raise SelMatrixError("Invalid seltrix file header")
        w = int.from_bytes(_read_exact(src, 4), "little")
        h = int.from_bytes(_read_exact(src, 4), "little")
        count = int.from_bytes(_read_exact(src, 8), "little")
        if (w, h) != tuple(expected_size):
            raise SelMatrixError("sel matrix size mismatch")
        if w == 0 or h == 0:
            raise SelMatrixError("sel matrix dimensions must be non-zero")
        layers = []
        for _ in range(count):
            raw = _read_exact(src, 8 * w * h)
            entries = [SelEntry.decode(raw[i : i + 8]) for i in range(0, len(raw), 8)]
            layers.append(SelMatrix((w, h), entries))
        return cls((w, h), layers)

    def transformed(self, swap: bool, flip: Sequence[bool]) -> SelMatrixLayered:
        dims = self.dims[::-1] if swap else self.dims
        return SelMatrixLayered(dims, [layer.transformed(swap, flip) for layer in self.layers])


def _cells(pt: SelPt) -> Iterable[Vec2]:
    for y in range(pt.start[1], pt.start[1] + pt.size[1]):
        for x in range(pt.start[0], pt.start[0] + pt.size[0]):
            yield (x, y)


def deoverlap(points: Iterable[SelPt], matrix: SelMatrix) -> list[Vec2]:
    """Cells whose group is exactly one of ``points``, sorted by row then column."""
    found = set()
    for pt in points:
        for pos in _cells(pt):
            entry = matrix.get(pos)
            if entry is not None and entry.to_sel_pt(pos) == pt:
                found.add(pos)
    return sorted(found, key=lambda p: (p[1], p[0]))


def deoverlap_layered(
    points: Iterable[tuple[int, SelPt]], matrices: Sequence[SelMatrix]
) -> list[tuple[int, Vec2]]:
    """Like ``deoverlap`` for (layer, group) pairs, sorted by layer, row, column."""
    found = set()
    for layer, pt in points:
        if not 0 <= layer < len(matrices):
            continue
        matrix = matrices[layer]
        for pos in _cells(pt):
            entry = matrix.get(pos)
            if entry is not None and entry.to_sel_pt(pos) == pt:
                found.add((layer, pos))
    return sorted(found, key=lambda item: (item[0], item[1][1], item[1][0]))


def clamp_bounds(a: Bounds, b: Bounds) -> Bounds:
    """Clip box ``a`` (min, max corners) to box ``b``; may collapse to zero size."""
    (a0, a1), (b0, b1) = a, b
    out0, out1 = [], []
    for axis in range(2):
        s0 = max(a0[axis], b0[axis])
        s1 = max(min(a1[axis], b1[axis]), s0)
        out0.append(s0)
        out1.append(s1)
    return (tuple(out0), tuple(out1))


def intersect_bounds(a: Bounds, b: Bounds) -> Optional[Bounds]:
    """Intersection of two boxes given by corners, or None if it is empty."""
    p0, p1 = clamp_bounds(a, b)
    if p1[0] > p0[0] and p1[1] > p0[1]:
        return (p0, p1)
    return None