"""A room's drawing surface: equally sized layers stacked vertically in one image."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .color import Lab
from .image import RgbaImage, blend_pixel, collapse, create_gap, imgcopy, swap_ranges
from .sel_matrix import SelPt
from .texture import TextureCell

_U64_MAX = (1 << 64) - 1


def _require(cond: bool, message: str) -> None:
    if not cond:
        raise ValueError(message)


@dataclass
class DrawImage:
    """Layers of ``rooms_size`` pixels stacked top to bottom in ``img``."""

    img: RgbaImage
    layers: int
    tex: Optional[TextureCell] = None

    def _check_layout(self, rooms_size: Sequence[int]) -> None:
        _require(
            self.img.height == rooms_size[1] * self.layers,
            "image height does not match the layer count",
        )
        _require(self.img.width == rooms_size[0], "image width does not match the room width")

    def insert_layer(self, rooms_size: Sequence[int], off: int) -> None:
        """Insert a transparent layer before layer ``off``."""
        self._check_layout(rooms_size)
        _require(0 <= off <= self.layers, "layer offset out of range")
        seg_len = rooms_size[0] * rooms_size[1] * 4
        data = self.img.data
        create_gap(data, seg_len * off, seg_len)
        self.img = RgbaImage(self.img.width, self.img.height + rooms_size[1], data)
        self.layers += 1

    def remove_layer(self, rooms_size: Sequence[int], off: int) -> None:
        """Drop layer ``off``."""
        _require(0 <= off < self.layers, "layer offset out of range")
        self._check_layout(rooms_size)
        seg_len = rooms_size[0] * rooms_size[1] * 4
        data = self.img.data
        collapse(data, seg_len * off, seg_len)
        self.img = RgbaImage(self.img.width, self.img.height - rooms_size[1], data)
        self.layers -= 1

    def swap_layers(self, rooms_size: Sequence[int], swap0: int, swap1: int) -> None:
        _require(0 <= swap0 < self.layers, "first layer out of range")
        _require(0 <= swap1 < self.layers, "second layer out of range")
        self._check_layout(rooms_size)
        seg_len = rooms_size[0] * rooms_size[1] * 4
        swap_ranges(self.img.data, swap0 * seg_len, swap1 * seg_len, seg_len)

    def deser_fixup(self, rooms_size: Sequence[int]) -> None:
        """Resize a freshly loaded image to hold exactly ``layers`` layers."""
        _require(self.img.width == rooms_size[0], "image width does not match the room width")
        if self.img.height != rooms_size[1] * self.layers:
            fixed = RgbaImage.new(rooms_size[0], rooms_size[1] * self.layers)
            imgcopy(fixed, self.img, 0, 0, True)
            self.img = fixed

    def layer_uv(self, layer: int, rooms_size: Sequence[int]) -> tuple[tuple[float, float], tuple[float, float]]:
        """Texture coordinates (min, max) of ``layer`` within the image."""
        y0 = layer * rooms_size[1] / self.img.height
        y1 = (layer + 1) * rooms_size[1] / self.img.height
        return ((0.0, y0), (1.0, y1))

    def rgb_avg(self, layer: int, rooms_size: Sequence[int]) -> tuple[tuple[int, int, int], int]:
        """Summed RGB of the layer's visible pixels (alpha > 16) and their count."""
        _require(0 <= layer < self.layers, "layer out of range")
        y0 = layer * rooms_size[1]
        _require(y0 + rooms_size[1] <= self.img.height, "layer lies outside the image")
        _require(
            rooms_size[0] % 8 == 0 and self.img.width % 8 == 0 and rooms_size[1] % 8 == 0,
            "sizes must be multiples of 8",
        )
        part = self.img.view(0, y0, self.img.width, rooms_size[1])
        pixels = [part.data[i : i + 4] for i in range(0, len(part.data), 4)]
        visible = [p for p in pixels if p[3] > 16]
        sums = (
            sum(p[0] for p in visible),
            sum(p[1] for p in visible),
            sum(p[2] for p in visible),
        )
        return sums, len(visible)

    def lab_avg(
        self,
        off: Sequence[int],
        size: Sequence[int],
        layers: Iterable[int],
        rooms_size: Sequence[int],
    ) -> Optional[Lab]:
        """Average Lab colour of the composited ``layers`` in the area, if any is opaque."""
        self._check_layout(rooms_size)
        layer_list = [l for l in layers if l < self.layers]
        total_l = total_a = total_b = 0.0
        count = 0
        for y in range(off[1], off[1] + size[1]):
            for x in range(off[0], off[0] + size[0]):
                pix = (0, 0, 0, 0)
                for layer in layer_list:
                    ly = layer * rooms_size[1] + y
                    if self.img.in_bounds(x, ly):
                        pix = blend_pixel(pix, self.img.get_pixel(x, ly))
                if pix[3] > 64:
                    lab = Lab.from_rgba(pix)
                    total_l += lab.l
                    total_a += lab.a
                    total_b += lab.b
                    count += 1
        if count == 0:
            return None
        avg = Lab(total_l / count, total_a / count, total_b / count)
        return Lab.from_rgb(avg.to_rgb())

    def _mark_dirty(self, off: Sequence[int], size: Sequence[int]) -> None:
        if self.tex is not None:
            self.tex.dirty_region(((off[0], off[1]), (off[0] + size[0], off[1] + size[1])))

    def img_read(
        self,
        off: Sequence[int],
        size: Sequence[int],
        dest: RgbaImage,
        dest_off: Sequence[int],
        replace: bool,
    ) -> None:
        """Copy the area at ``off`` onto ``dest`` at ``dest_off``."""
        part = self.img.view(off[0], off[1], size[0], size[1])
        imgcopy(dest, part, dest_off[0], dest_off[1], replace)

    def img_write(
        self,
        off: Sequence[int],
        size: Sequence[int],
        src: RgbaImage,
        src_off: Sequence[int],
        replace: bool,
    ) -> None:
        """Copy the area of ``src`` at ``src_off`` onto this image at ``off``."""
        part = src.view(src_off[0], src_off[1], size[0], size[1])
        imgcopy(self.img, part, off[0], off[1], replace)
        self._mark_dirty(off, size)

    def img_write_signed(
        self,
        off: Sequence[int],
        size: Sequence[int],
        src: RgbaImage,
        src_off: Sequence[int],
        replace: bool,
    ) -> None:
        """Like ``img_write`` but ``off`` may be negative; the cut-off part is skipped."""
        off, size, src_off = list(off), list(size), list(src_off)
        for axis in range(2):
            if off[axis] < 0:
                diff = -off[axis]
                if diff >= size[axis]:
                    return
                off[axis] = 0
                size[axis] -= diff
                src_off[axis] += diff
        self.img_write(off, size, src, src_off, replace)

    def img_erase(self, off: Sequence[int], size: Sequence[int]) -> None:
        """Make the area fully transparent."""
        _require(off[0] + size[0] <= self.img.width, "erase area exceeds image width")
        _require(off[1] + size[1] <= self.img.height, "erase area exceeds image height")
        imgcopy(self.img, RgbaImage.new(size[0], size[1]), off[0], off[1], True)
        self._mark_dirty(off, size)

    def pt_hash(self, pt: SelPt, layer: int, rooms_size: Sequence[int]) -> int:
        """A non-zero 64-bit content hash of a tile group; 0 for an empty group."""
        _require(0 <= layer < self.layers, "layer out of range")
        if pt.size[0] == 0 or pt.size[1] == 0:
            return 0
        x0 = pt.start[0] * 8 + layer * rooms_size[1]
        y0 = pt.start[1] * 8
        x1 = x0 + pt.size[0] * 8
        y1 = y0 + pt.size[1] * 8
        _require(
            x0 < self.img.width and y0 < self.img.height
            and x1 <= self.img.width and y1 <= self.img.height,
            "tile group lies outside the image",
        )
        hasher = hashlib.blake2b(digest_size=8)
        size_bytes = bytes(pt.size)
        hasher.update(size_bytes)
        part = self.img.view(x0, y0, x1 - x0, y1 - y0)
        for i in range(0, len(part.data), 4):
            pix = part.data[i : i + 4]
            if pix[3] < 16:
                pix = bytes((0, 0, 0, pix[3]))
            hasher.update(pix)
        hasher.update(size_bytes)
        return min(int.from_bytes(hasher.digest(), "little") + 1, _U64_MAX)