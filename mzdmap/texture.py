"""Texture caching: uploads images to a rendering backend only when needed."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from PIL import Image as PILImage

Pixel = tuple[int, int, int, int]


class _GlobalSequence:
    """A thread-safe counter bumped whenever all textures must be rebuilt."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def load(self) -> int:
        with self._lock:
            return self._value

    def bump(self) -> None:
        with self._lock:
            self._value += 1


_GLOBAL_TEX_INVAL = _GlobalSequence()


def invalidate_all_textures() -> None:
    """Force every texture cell to re-upload on its next use."""
    _GLOBAL_TEX_INVAL.bump()


def _linear_from_gamma(s: int) -> float:
    if s <= 10:
        return s / 3294.6
    return ((s + 14.025) / 269.025) ** 2.4


def _gamma_from_linear(v: float) -> int:
    if v <= 0.0:
        return 0
    if v <= 0.0031308:
        return min(255, int(3294.6 * v + 0.5))
    if v < 1.0:
        return min(255, int(269.025 * v ** (1.0 / 2.4) - 14.025 + 0.5))
    return 255


def premultiply(r: int, g: int, b: int, a: int) -> Pixel:
    """Convert an unmultiplied sRGBA pixel to gamma-correct premultiplied form."""
    if a == 255:
        return (r, g, b, 255)
    if a == 0:
        return (0, 0, 0, 0)
    alpha = a / 255.0
    return (
        _gamma_from_linear(_linear_from_gamma(r) * alpha),
        _gamma_from_linear(_linear_from_gamma(g) * alpha),
        _gamma_from_linear(_linear_from_gamma(b) * alpha),
        a,
    )


@dataclass
class ColorImage:
    """Premultiplied RGBA pixels in row-major order."""

    size: tuple[int, int]
    pixels: list[Pixel] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.size = tuple(self.size)
        self.check()

    def check(self) -> None:
        if self.size[0] * self.size[1] != len(self.pixels):
            raise ValueError("ColorImage pixel count doesn't match ColorImage size")


def _read_area(img: Any, pos: Sequence[int], size: Sequence[int]) -> list[Pixel]:
    x, y = pos
    w, h = size
    if isinstance(img, PILImage.Image):
        data = img.convert("RGBA").crop((x, y, x + w, y + h)).tobytes()
        return [tuple(data[i : i + 4]) for i in range(0, len(data), 4)]
    return [tuple(img.get_pixel(px, py)) for py in range(y, y + h) for px in range(x, x + w)]


def color_image_of_image_area(img: Any, pos: Sequence[int], size: Sequence[int]) -> ColorImage:
    """The region of ``img`` at ``pos`` with ``size`` as a ColorImage."""
    if pos[0] + size[0] > img.width or pos[1] + size[1] > img.height:
        raise ValueError("area lies outside the image")
    pixels = [premultiply(*p) for p in _read_area(img, pos, size)]
    return ColorImage((size[0], size[1]), pixels)


def color_image_of_image(img: Any) -> ColorImage:
    """The whole of ``img`` as a ColorImage."""
    return color_image_of_image_area(img, (0, 0), (img.width, img.height))


class TextureBackend(ABC):
    """Where textures live: loads new ones and updates existing ones."""

    max_texture_side: int = 1 << 31

    @abstractmethod
    def load(self, name: str, image: ColorImage, options: Any) -> Any:
        """Create a texture and return its handle."""

    @abstractmethod
    def update(self, handle: Any, image: ColorImage, options: Any, pos: Optional[tuple[int, int]]) -> None:
        """Replace the texture's pixels, wholly (``pos`` None) or at ``pos``."""

    @abstractmethod
    def size(self, handle: Any) -> tuple[int, int]:
        """The current size of the texture."""

    def _check_side(self, size: Sequence[int]) -> None:
        if size[0] > self.max_texture_side or size[1] > self.max_texture_side:
            raise ValueError(f"texture size {tuple(size)} exceeds {self.max_texture_side}")


class TextureCell:
    """A lazily created texture that is re-uploaded once marked dirty."""

    def __init__(self, name: str, options: Any = None) -> None:
        self.name = name
        self.options = options
        self.tex_handle: Any = None
        self._dirty_full = False
        self._global_seq = _GLOBAL_TEX_INVAL.load()

    def dirty(self) -> None:
        self._dirty_full = True

    def dirty_region(self, region: tuple[Sequence[int], Sequence[int]]) -> None:
        """Mark a region as changed; the whole texture is re-uploaded."""
        self.dirty()

    def _fetch_global_seq(self) -> bool:
        old = self._global_seq
        self._global_seq = _GLOBAL_TEX_INVAL.load()
        return old != self._global_seq

    def ensure_image(self, image: Any, backend: TextureBackend) -> Any:
        """The texture handle, uploading ``image`` if missing or dirty."""
        force = self._fetch_global_seq() or self._dirty_full
        if self.tex_handle is not None and force:
            backend._check_side((image.width, image.height))
            backend.update(self.tex_handle, color_image_of_image(image), self.options, None)
        elif self.tex_handle is None:
            self.tex_handle = backend.load(self.name, color_image_of_image(image), self.options)
        self._dirty_full = False
        return self.tex_handle

    def ensure_color_image(
        self,
        image_size: Sequence[int],
        factory: Callable[[], ColorImage],
        backend: TextureBackend,
    ) -> Any:
        """The texture handle; ``factory`` is called only when an upload is due."""
        force = self._fetch_global_seq() or self._dirty_full
        image_size = tuple(image_size)
        if self.tex_handle is not None and tuple(backend.size(self.tex_handle)) != image_size:
            force = True
        if self.tex_handle is not None and force:
            backend._check_side(image_size)
            image = factory()
            image.check()
            backend.update(self.tex_handle, image, self.options, None)
        elif self.tex_handle is None:
            image = factory()
            image.check()
            self.tex_handle = backend.load(self.name, image, self.options)
        self._dirty_full = False
        return self.tex_handle

    def dealloc(self) -> None:
        self.tex_handle = None