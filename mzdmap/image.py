"""A plain RGBA8 image buffer with copy, overlay and layer-slicing helpers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import MutableSequence, Sequence

from PIL import Image as PILImage

Pixel = tuple[int, int, int, int]


@dataclass
class RgbaImage:
    """Row-major RGBA pixels, four bytes per pixel."""

    width: int = 0
    height: int = 0
    data: bytearray = field(default_factory=bytearray)

    def __post_init__(self) -> None:
        self.data = bytearray(self.data)
        if self.width < 0 or self.height < 0:
            raise ValueError("image dimensions must not be negative")
        if len(self.data) != self.width * self.height * 4:
            raise ValueError("pixel data length does not match image dimensions")

    @classmethod
    def new(cls, width: int, height: int) -> RgbaImage:
        """A fully transparent image."""
        return cls(width, height, bytearray(width * height * 4))

    @property
    def dimensions(self) -> tuple[int, int]:
        return (self.width, self.height)

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def _offset(self, x: int, y: int) -> int:
        if not self.in_bounds(x, y):
            raise IndexError(f"pixel ({x}, {y}) outside {self.width}x{self.height} image")
        return (y * self.width + x) * 4

    def get_pixel(self, x: int, y: int) -> Pixel:
        i = self._offset(x, y)
        return tuple(self.data[i : i + 4])

    def put_pixel(self, x: int, y: int, pixel: Sequence[int]) -> None:
        i = self._offset(x, y)
        self.data[i : i + 4] = bytes(pixel[:4])

    def view(self, x: int, y: int, width: int, height: int) -> RgbaImage:
        """A copy of the ``width`` x ``height`` region whose top-left is ``(x, y)``."""
        if x < 0 or y < 0 or width < 0 or height < 0:
            raise ValueError("view region must not be negative")
        if x + width > self.width or y + height > self.height:
            raise ValueError(
                f"view ({x}, {y}, {width}, {height}) outside {self.width}x{self.height} image"
            )
        rows = (
            self.data[((row * self.width) + x) * 4 : ((row * self.width) + x + width) * 4]
            for row in range(y, y + height)
        )
        return RgbaImage(width, height, bytearray(b"".join(rows)))

    def is_empty(self) -> bool:
        """True when the image holds no pixel data."""
        return not self.data

    def copy(self) -> RgbaImage:
        return RgbaImage(self.width, self.height, bytearray(self.data))

    @classmethod
    def from_pil(cls, img: PILImage.Image) -> RgbaImage:
        rgba = img.convert("RGBA")
        return cls(rgba.width, rgba.height, bytearray(rgba.tobytes()))

    def to_pil(self) -> PILImage.Image:
        return PILImage.frombytes("RGBA", (self.width, self.height), bytes(self.data))


def blend_pixel(bottom: Sequence[int], top: Sequence[int]) -> Pixel:
    """``top`` composited over ``bottom`` with straight (unmultiplied) alpha."""
    if top[3] == 0:
        return tuple(bottom[:4])
    if top[3] == 255:
        return tuple(top[:4])
    bg = [c / 255.0 for c in bottom[:4]]
    fg = [c / 255.0 for c in top[:4]]
    bg_a, fg_a = bg[3], fg[3]
    alpha_final = bg_a + fg_a - bg_a * fg_a
    if alpha_final == 0.0:
        return tuple(bottom[:4])
    out = [
        (f * fg_a + b * bg_a * (1.0 - fg_a)) / alpha_final
        for f, b in zip(fg[:3], bg[:3])
    ]
    return (
        int(255.0 * out[0]),
        int(255.0 * out[1]),
        int(255.0 * out[2]),
        int(255.0 * alpha_final),
    )


def imgcopy(bottom: RgbaImage, top: RgbaImage, x: int, y: int, replace: bool) -> None:
    """Place ``top`` onto ``bottom`` at ``(x, y)``, clipped to ``bottom``.

    With ``replace`` the pixels are copied as they are, otherwise ``top`` is
    alpha-blended over what is already there.
    """
    x0, y0 = max(x, 0), max(y, 0)
    x1 = min(x + top.width, bottom.width)
    y1 = min(y + top.height, bottom.height)
    if x1 <= x0 or y1 <= y0:
        return
    for by in range(y0, y1):
        ty = by - y
        if replace:
            dst = (by * bottom.width + x0) * 4
            src = (ty * top.width + x0 - x) * 4
            n = (x1 - x0) * 4
            bottom.data[dst : dst + n] = top.data[src : src + n]
        else:
            for bx in range(x0, x1):
                fg = top.get_pixel(bx - x, ty)
                if fg[3] == 0:
                    continue
                bottom.put_pixel(bx, by, blend_pixel(bottom.get_pixel(bx, by), fg))


def create_gap(seq: MutableSequence[int], off: int, length: int) -> None:
    """Insert ``length`` zeros into ``seq`` at ``off``."""
    if off < 0 or off > len(seq):
        raise ValueError("gap offset outside the sequence")
    if length < 0:
        raise ValueError("gap length must not be negative")
    seq[off:off] = [0] * length


def collapse(seq: MutableSequence[int], off: int, length: int) -> None:
    """Remove ``length`` elements of ``seq`` starting at ``off``."""
    if length == 0:
        return
    if off < 0 or length < 0 or off + length > len(seq):
        raise ValueError("collapsed range outside the sequence")
    del seq[off : off + length]


def ranges_overlap(a: int, b: int, length: int) -> bool:
    """Whether ``[a, a+length)`` and ``[b, b+length)`` share an element."""
    a1, b1 = a + length, b + length
    return (b <= a < b1) or (a <= b < a1)


def swap_ranges(seq: MutableSequence[int], a: int, b: int, length: int) -> None:
    """Exchange the non-overlapping ranges at ``a`` and ``b`` of ``seq``."""
    if length == 0:
        return
    if a < 0 or b < 0 or length < 0 or a + length > len(seq) or b + length > len(seq):
        raise ValueError("swapped range outside the sequence")
    if ranges_overlap(a, b, length):
        raise ValueError("swapped ranges overlap")
    seq[a : a + length], seq[b : b + length] = seq[b : b + length], seq[a : a + length]