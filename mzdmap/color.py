"""CIE L*a*b* colours and the choice of a readable tag colour over a background."""

from __future__ import annotations

import math
import string
from dataclasses import dataclass
from typing import Sequence

_KAPPA = 24389.0 / 27.0
_EPSILON = 216.0 / 24389.0
_WHITE_X = 0.95047
_WHITE_Y = 1.0
_WHITE_Z = 1.08883

Rgb = tuple[int, int, int]


def _to_linear(channel: int) -> float:
    c = channel / 255.0
    if c <= 0.04045:
        return c / 12.92
    return ((c + 0.055) / 1.055) ** 2.4


def _from_linear(c: float) -> int:
    if c <= 0.0031308:
        c = 12.92 * c
    else:
        c = 1.055 * c ** (1.0 / 2.4) - 0.055
    c = min(max(c, 0.0), 1.0)
    return int(math.floor(c * 255.0 + 0.5))


def _lab_f(t: float) -> float:
    if t > _EPSILON:
        return t ** (1.0 / 3.0)
    return (_KAPPA * t + 16.0) / 116.0


@dataclass(frozen=True)
class Lab:
    """A colour in CIE L*a*b* space (D65 white point)."""

    l: float = 0.0
    a: float = 0.0
    b: float = 0.0

    @classmethod
    def from_rgb(cls, rgb: Sequence[int]) -> Lab:
        r, g, b = (_to_linear(c) for c in rgb[:3])
        x = r * 0.4124564 + g * 0.3575761 + b * 0.1804375
        y = r * 0.2126729 + g * 0.7151522 + b * 0.0721750
        z = r * 0.0193339 + g * 0.1191920 + b * 0.9503041
        fx = _lab_f(x / _WHITE_X)
        fy = _lab_f(y / _WHITE_Y)
        fz = _lab_f(z / _WHITE_Z)
        return cls(116.0 * fy - 16.0, 500.0 * (fx - fy), 200.0 * (fy - fz))

    @classmethod
    def from_rgba(cls, rgba: Sequence[int]) -> Lab:
        """Like ``from_rgb``; the alpha channel is ignored."""
        return cls.from_rgb(rgba[:3])

    def to_rgb(self) -> Rgb:
        fy = (self.l + 16.0) / 116.0
        fx = self.a / 500.0 + fy
        fz = fy - self.b / 200.0
        fx3 = fx ** 3
        fz3 = fz ** 3
        xr = fx3 if fx3 > _EPSILON else (116.0 * fx - 16.0) / _KAPPA
        yr = fy ** 3 if self.l > _KAPPA * _EPSILON else self.l / _KAPPA
        zr = fz3 if fz3 > _EPSILON else (116.0 * fz - 16.0) / _KAPPA
        x, y, z = xr * _WHITE_X, yr * _WHITE_Y, zr * _WHITE_Z
        r = x * 3.2404542 - y * 1.5371385 - z * 0.4985314
        g = -x * 0.9692660 + y * 1.8760108 + z * 0.0415560
        b = x * 0.0556434 - y * 0.2040259 + z * 1.0572252
        return (_from_linear(r), _from_linear(g), _from_linear(b))


LAB_BLACK = Lab(0.0, 0.0, 0.0)
LAB_GRAY = Lab(50.0, 0.0, 0.0)
LAB_WHITE = Lab(100.0, 0.0, 0.0)


def _normalize(v: Lab) -> Lab:
    return Lab.from_rgb(v.to_rgb())


def _squared_distance(a: Lab, b: Lab) -> float:
    return (a.l - b.l) ** 2 * 6.0 + (a.a - b.a) ** 2 + (a.b - b.b) ** 2


def calc_text_color_over_bg(bg: Lab, aboff: Sequence[float]) -> Lab:
    """The candidate colour that stands out most against ``bg``.

    ``aboff`` shifts the a/b channels of the candidates to vary their hue.
    """

    def shift(v: Lab) -> Lab:
        return Lab(v.l, v.a + aboff[0], v.b + aboff[1])

    inv = _normalize(shift(Lab(bg.l, -bg.a, -bg.b)))
    inv_pure = _normalize(shift(Lab(100.0 - bg.l, -bg.a, -bg.b)))
    black = _normalize(shift(LAB_BLACK))
    gray = _normalize(shift(LAB_GRAY))
    white = _normalize(shift(LAB_WHITE))
    dark = _normalize(Lab(15.0, inv.a, inv.b))
    bright = _normalize(Lab(90.0, inv.a, inv.b))

    best = LAB_GRAY
    best_distance = None
    for candidate in (black, gray, white, inv_pure, dark, inv, bright):
        distance = _squared_distance(candidate, bg)
        # Later candidates win ties.
        if best_distance is None or distance >= best_distance:
            best, best_distance = candidate, distance
    return best


def format_hex_color(rgb: Sequence[int]) -> str:
    """``#rrggbb`` in lower case."""
    return "#" + bytes(rgb[:3]).hex()


def parse_hex_color(text: str) -> Rgb:
    """Parse ``#rrggbb``; raises ValueError for anything else."""
    if len(text) != 7 or not text.startswith("#"):
        raise ValueError("Cannot parse color")
    digits = text[1:]
    if not all(c in string.hexdigits for c in digits):
        raise ValueError(f"Invalid hex digits in color {text!r}")
    raw = bytes.fromhex(digits)
    return (raw[0], raw[1], raw[2])