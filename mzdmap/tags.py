"""Tags: coloured markers placed in rooms, optionally warping to another room."""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from .color import LAB_GRAY, calc_text_color_over_bg, format_hex_color, parse_hex_color

RADIUS = 6
RADIUS2 = 9
_DERIV_RANGE = 5.0


def _field(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"missing field {key!r}") from exc


def _pos(value: Any) -> tuple[int, int]:
    if (
        not isinstance(value, (list, tuple))
        or len(value) != 2
        or not all(isinstance(v, int) and not isinstance(v, bool) and v >= 0 for v in value)
    ):
        raise ValueError(f"invalid position {value!r}")
    return (value[0], value[1])


def _bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a boolean")
    return value


def _uuid(value: Any) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError, AttributeError) as exc:
        raise ValueError(f"invalid uuid {value!r}") from exc


@dataclass
class WarpDest:
    """The room and position a tag warps to."""

    dest_map: uuid.UUID
    dest_room: uuid.UUID
    dest_pos: tuple[int, int]

    def to_json(self) -> dict[str, Any]:
        return {
            "dest_map": str(self.dest_map),
            "dest_room": str(self.dest_room),
            "dest_pos": list(self.dest_pos),
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> WarpDest:
        return cls(
            _uuid(_field(data, "dest_map")),
            _uuid(_field(data, "dest_room")),
            _pos(_field(data, "dest_pos")),
        )


@dataclass
class TagState:
    """A tag's position in its room, label, colour and warp target."""

    pos: tuple[int, int]
    text: str = ""
    color: tuple[int, int, int] = (128, 128, 128)
    show_text: bool = True
    show_always: bool = False
    warp_enabled: bool = True
    warp: Optional[WarpDest] = None

    def touch_in_range(self, v: Sequence[int]) -> bool:
        """Whether point ``v`` lies on the tag's marker."""
        return (
            v[0] + RADIUS >= self.pos[0] and v[0] < self.pos[0] + RADIUS
            and v[1] + RADIUS >= self.pos[1] and v[1] < self.pos[1] + RADIUS
        )

    def may_overlap(self, v: Sequence[int]) -> bool:
        """Whether a tag placed at ``v`` would overlap this one."""
        return (
            v[0] + RADIUS * 2 >= self.pos[0] and v[0] < self.pos[0] + RADIUS * 2
            and v[1] + RADIUS * 2 >= self.pos[1] and v[1] < self.pos[1] + RADIUS * 2
        )

    @staticmethod
    def room_probe_area(v: Sequence[int]) -> tuple[tuple[int, int], tuple[int, int]]:
        """The (min, max) area sampled for the background colour around ``v``."""
        lo = (max(v[0] - RADIUS2, 0), max(v[1] - RADIUS2, 0))
        hi = (v[0] + RADIUS2, v[1] + RADIUS2)
        return lo, hi

    def to_json(self) -> dict[str, Any]:
        return {
            "pos": list(self.pos),
            "show_text": self.show_text,
            "show_always": self.show_always,
            "text": self.text,
            "color": format_hex_color(self.color),
            "warp_enabled": self.warp_enabled,
            "warp": None if self.warp is None else self.warp.to_json(),
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> TagState:
        text = _field(data, "text")
        if not isinstance(text, str):
            raise ValueError("field 'text' must be a string")
        color = _field(data, "color")
        if not isinstance(color, str):
            raise ValueError("Cannot parse color")
        warp = _field(data, "warp")
        return cls(
            pos=_pos(_field(data, "pos")),
            text=text,
            color=parse_hex_color(color),
            show_text=_bool(_field(data, "show_text"), "show_text"),
            show_always=_bool(_field(data, "show_always"), "show_always"),
            warp_enabled=_bool(_field(data, "warp_enabled"), "warp_enabled"),
            warp=None if warp is None else WarpDest.from_json(warp),
        )


def trace_tag(
    tags: Mapping[uuid.UUID, TagState], pos: Sequence[int]
) -> Optional[tuple[uuid.UUID, TagState]]:
    """The most recently added tag under ``pos``, if any."""
    for tag_id in reversed(list(tags)):
        tag = tags[tag_id]
        if tag.touch_in_range(pos):
            return tag_id, tag
    return None


def can_place_tag_here(tags: Mapping[uuid.UUID, TagState], pos: Sequence[int]) -> bool:
    return not any(tag.may_overlap(pos) for tag in tags.values())


def calc_text_color(
    room: Any,
    v: Sequence[int],
    rooms_size: Sequence[int],
    rng: Optional[random.Random] = None,
) -> tuple[int, int, int]:
    """A colour for a new tag at ``v`` that contrasts with the visible room pixels."""
    loaded = getattr(room, "loaded", None)
    if loaded is not None:
        lo, hi = TagState.room_probe_area(v)
        visible = [i for i, layer in enumerate(room.layers) if layer.vis != 0]
        avg = loaded.image.lab_avg(lo, (hi[0] - lo[0], hi[1] - lo[1]), visible, rooms_size)
        if avg is not None:
            rng = rng or random.Random()
            deriv = (
                rng.uniform(-_DERIV_RANGE, _DERIV_RANGE),
                rng.uniform(-_DERIV_RANGE, _DERIV_RANGE),
            )
            return calc_text_color_over_bg(avg, deriv).to_rgb()
    return LAB_GRAY.to_rgb()