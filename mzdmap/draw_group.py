"""Groups of up to four neighbouring rooms that are drawn on as one region."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable, Mapping, MutableMapping, MutableSet, Optional, Sequence

from .image import RgbaImage, imgcopy
from .sel_matrix import Bounds, intersect_bounds

RoomEntry = tuple[Hashable, tuple[int, int, int], tuple[int, int]]
DirtyTracking = tuple[MutableSet, MutableMapping]


def effective_bounds(a: Bounds, b: Bounds) -> Optional[Bounds]:
    """Intersection of two (offset, size) boxes as (min, max) corners, or None."""
    (aoff, asize), (boff, bsize) = a, b
    return intersect_bounds(
        ((aoff[0], aoff[1]), (aoff[0] + asize[0], aoff[1] + asize[1])),
        ((boff[0], boff[1]), (boff[0] + bsize[0], boff[1] + bsize[1])),
    )


def _require(cond: bool, message: str) -> None:
    if not cond:
        raise ValueError(message)


def _check_aligned(*values: int) -> None:
    _require(all(v % 8 == 0 for v in values), "coordinates must be multiples of 8")


def _check_room_image(img: RgbaImage, layer: int, rooms_size: Sequence[int]) -> None:
    _require(img.width == rooms_size[0], "room image width does not match the room width")
    _require(img.height % rooms_size[1] == 0, "room image height is not a whole layer count")
    _require(layer * rooms_size[1] < img.height, "Layer overflow")
    _check_aligned(img.width, img.height)


def _mark_dirty(room_id: Hashable, dirty: DirtyTracking) -> None:
    dirty_rooms, lru = dirty
    dirty_rooms.add(room_id)
    lru.pop(room_id, None)


@dataclass
class DrawImageGroup:
    """Rooms with their grid coordinate and pixel offset inside the group region."""

    rooms: list[RoomEntry] = field(default_factory=list)
    region_size: tuple[int, int] = (0, 0)

    @classmethod
    def unsel(cls, rooms_size: Sequence[int]) -> DrawImageGroup:
        """A group with no rooms."""
        return cls([], (rooms_size[0], rooms_size[1]))

    @classmethod
    def single(cls, room_id: Hashable, coord: Sequence[int], rooms_size: Sequence[int]) -> DrawImageGroup:
        return cls([(room_id, tuple(coord), (0, 0))], (rooms_size[0], rooms_size[1]))

    def _targets(self, rooms: Mapping, off: Sequence[int], size: Sequence[int],
                 layer: int, rooms_size: Sequence[int]):
        """Loaded rooms overlapping the area, with the overlap in group coordinates."""
        _check_aligned(rooms_size[0], rooms_size[1])
        for room_id, _, roff in self.rooms:
            room = rooms.get(room_id)
            if room is None or room.loaded is None:
                continue
            loaded = room.loaded
            if loaded.image.img.is_empty():
                continue
            bounds = effective_bounds((off, size), (roff, rooms_size))
            if bounds is None:
                continue
            op_0, op_1 = bounds
            _check_room_image(loaded.image.img, layer, rooms_size)
            _check_aligned(roff[0], roff[1], *op_0, *op_1)
            yield room_id, room, roff, op_0, op_1

    def draw(self, rooms: Mapping, src: RgbaImage, off: Sequence[int], size: Sequence[int],
             layer: int, src_off: Sequence[int], rooms_size: Sequence[int],
             dirty: DirtyTracking, replace: bool) -> None:
        """Copy ``size`` pixels of ``src`` at ``src_off`` onto the group at ``off``."""
        _check_aligned(*off, *src_off)
        layer_y = layer * rooms_size[1]
        for room_id, room, roff, op_0, op_1 in self._targets(rooms, off, size, layer, rooms_size):
            loaded = room.loaded
            loaded.pre_img_draw(room.layers, room.selected_layer)
            part = src.view(
                op_0[0] - off[0] + src_off[0],
                op_0[1] - off[1] + src_off[1],
                op_1[0] - op_0[0],
                op_1[1] - op_0[1],
            )
            imgcopy(loaded.image.img, part, op_0[0] - roff[0], op_0[1] - roff[1] + layer_y, replace)
            room.transient = False
            _mark_dirty(room_id, dirty)
            if loaded.image.tex is not None:
                loaded.image.tex.dirty_region(
                    ((op_0[0], op_0[1] + layer_y), (op_1[0], op_1[1] + layer_y))
                )

    def erase(self, rooms: Mapping, off: Sequence[int], size: Sequence[int], layer: int,
              rooms_size: Sequence[int], dirty: DirtyTracking) -> None:
        """Make the area at ``off`` of ``size`` transparent on ``layer``."""
        layer_y = layer * rooms_size[1]
        for room_id, room, roff, op_0, op_1 in self._targets(rooms, off, size, layer, rooms_size):
            loaded = room.loaded
            loaded.pre_img_draw(room.layers, room.selected_layer)
            blank = RgbaImage.new(op_1[0] - op_0[0], op_1[1] - op_0[1])
            imgcopy(loaded.image.img, blank, op_0[0] - roff[0], op_0[1] - roff[1] + layer_y, True)
            _mark_dirty(room_id, dirty)
            if loaded.image.tex is not None:
                loaded.image.tex.dirty_region(
                    ((op_0[0], op_0[1] + layer_y), (op_1[0], op_1[1] + layer_y))
                )

    def read(self, rooms: Mapping, dest: RgbaImage, off: Sequence[int], layer: int,
             size: Sequence[int], dest_off: Sequence[int], rooms_size: Sequence[int],
             replace: bool) -> None:
        """Copy the group area at ``off`` of ``size`` onto ``dest`` at ``dest_off``."""
        _check_aligned(*off, *dest_off)
        layer_y = layer * rooms_size[1]
        for _, room, roff, op_0, op_1 in self._targets(rooms, off, size, layer, rooms_size):
            part = room.loaded.image.img.view(
                op_0[0] - roff[0],
                op_0[1] - roff[1] + layer_y,
                op_1[0] - op_0[0],
                op_1[1] - op_0[1],
            )
            imgcopy(
                dest,
                part,
                op_0[0] - off[0] + dest_off[0],
                op_0[1] - off[1] + dest_off[1],
                replace,
            )

    def try_attach(self, room_id: Hashable, rooms_size: Sequence[int], rooms: Mapping) -> bool:
        """Add a room right of, below or diagonal to the first room; True if added.

        When the group is empty (or its first room is gone) the room starts a new group.
        """
        room = rooms.get(room_id)
        if room is None or room.locked is not None:
            return False
        coord = tuple(room.coord)
        n_layers = len(room.layers)
        attached = False

        if self.rooms and self.rooms[0][0] in rooms:
            base_id, base_coord, _ = self.rooms[0]
            if n_layers != len(rooms[base_id].layers):
                return False
            bx, by, bz = base_coord
            neighbours = ((bx + 1, by, bz), (bx, by + 1, bz), (bx + 1, by + 1, bz))
            if coord in neighbours and all(c != coord for _, c, _ in self.rooms):
                room_off = (
                    (coord[0] - bx) * rooms_size[0],
                    (coord[1] - by) * rooms_size[1],
                )
                self.rooms.append((room_id, coord, room_off))
                attached = True
        else:
            self.rooms = [(room_id, coord, (0, 0))]
            attached = True

        width, height = rooms_size[0], rooms_size[1]
        for _, _, room_off in self.rooms:
            width = max(width, room_off[0] + rooms_size[0])
            height = max(height, room_off[1] + rooms_size[1])
        self.region_size = (width, height)
        return attached

    def finalize_drawop(self, rooms: Mapping) -> None:
        """Request an undo snapshot before the next drawing on every room."""
        for room_id, _, _ in self.rooms:
            room = rooms.get(room_id)
            if room is None or room.loaded is None:
                continue
            room.loaded.ur_snapshot_required = True

    def single_room(self) -> Optional[Hashable]:
        return self.rooms[0][0] if len(self.rooms) == 1 else None

    def get_single_room(self, rooms: Mapping) -> Optional[Any]:
        room_id = self.single_room()
        return None if room_id is None else rooms.get(room_id)