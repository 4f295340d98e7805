"""Tilesets: a PNG image with a selection matrix and persisted editor state."""

from __future__ import annotations

import io
import itertools
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence

from PIL import Image as PILImage

from .draw_image import DrawImage
from .image import RgbaImage
from .sel_matrix import SelMatrix, SelMatrixError, SelMatrixLayered, sel_entry_dims

log = logging.getLogger(__name__)

MZD_FORMAT = 2
EDITSTATE_SUFFIX = ".mzdtileset"
SELMATRIX_SUFFIX = ".mzdtileset.sel"
ZOOM_RANGE = (1, 4)

TS_TEX_OPTS = {
    "magnification": "nearest",
    "minification": "nearest",
    "wrap_mode": "repeat",
    "mipmap_mode": None,
}

_tileset_ids = itertools.count(1)


def _attached_to_path(path: Path, suffix: str) -> Path:
    """``path`` with ``suffix`` appended to its file name."""
    return path.with_name(path.name + suffix)


def _field(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"missing field {key!r}") from exc


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _uint(value: Any, key: str) -> int:
    if not _is_int(value) or value < 0:
        raise ValueError(f"field {key!r} must be a non-negative integer")
    return value


def _bool(value: Any, key: str) -> bool:
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r} must be a boolean")
    return value


def _pair(value: Any, key: str, *, floats: bool) -> tuple:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"field {key!r} must hold two values")
    if floats:
        if not all(isinstance(v, (int, float)) and not isinstance(v, bool) for v in value):
            raise ValueError(f"field {key!r} must hold numbers")
        return (float(value[0]), float(value[1]))
    return (_uint(value[0], key), _uint(value[1], key))


def _mode(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"field {key!r} must be a mode name")
    return value


@dataclass
class TilesetState:
    """The editor state saved next to a tileset image."""

    title: str
    validate_size: tuple[int, int]
    mzd_format: int = MZD_FORMAT
    json_ident: Optional[int] = None
    zoom: int = 1
    voff: tuple[float, float] = (0.0, 0.0)
    draw_draw_mode: str = "Rect"
    draw_sel: str = "Rect"
    ds_replace: bool = False
    dsel_whole: bool = True

    def to_json(self) -> dict[str, Any]:
        return {
            "mzd_format": self.mzd_format,
            "json_ident": self.json_ident,
            "title": self.title,
            "zoom": self.zoom,
            "voff": list(self.voff),
            "validate_size": list(self.validate_size),
            "draw_draw_mode": self.draw_draw_mode,
            "draw_sel": self.draw_sel,
            "ds_replace": self.ds_replace,
            "dsel_whole": self.dsel_whole,
        }

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> TilesetState:
        if not isinstance(data, Mapping):
            raise ValueError("tileset state must be an object")
        json_ident = data.get("json_ident")
        if json_ident is not None and not (_is_int(json_ident) and 0 <= json_ident <= 255):
            raise ValueError("field 'json_ident' must be a byte or null")
        title = _field(data, "title")
        if not isinstance(title, str):
            raise ValueError("field 'title' must be a string")
        return cls(
            mzd_format=_uint(_field(data, "mzd_format"), "mzd_format"),
            json_ident=json_ident,
            title=title,
            zoom=_uint(_field(data, "zoom"), "zoom"),
            voff=_pair(_field(data, "voff"), "voff", floats=True),
            validate_size=_pair(_field(data, "validate_size"), "validate_size", floats=False),
            draw_draw_mode=_mode(_field(data, "draw_draw_mode"), "draw_draw_mode"),
            draw_sel=_mode(_field(data, "draw_sel"), "draw_sel"),
            ds_replace=_bool(_field(data, "ds_replace"), "ds_replace"),
            dsel_whole=_bool(_field(data, "dsel_whole"), "dsel_whole"),
        )

    def dumps(self) -> bytes:
        """The state as JSON, indented by ``json_ident`` spaces when set."""
        if self.json_ident is None:
            text = json.dumps(self.to_json(), separators=(",", ":"))
        else:
            text = json.dumps(self.to_json(), indent=self.json_ident)
        return text.encode("utf-8")


def _load_selmatrix(path: Path, expected_size: Sequence[int]) -> SelMatrix:
    data = path.read_bytes()
    sml = SelMatrixLayered.deserialize(io.BytesIO(data), tuple(expected_size))
    if len(sml.layers) != 1:
        raise ValueError("tileset selection file must hold exactly one layer")
    return sml.layers[0]


def _load_state(epath: Path, spath: Path) -> tuple[TilesetState, Optional[SelMatrix]]:
    try:
        data = json.loads(epath.read_bytes())
    except json.JSONDecodeError as exc:
        raise ValueError(f"invalid tileset state: {exc}") from exc
    state = TilesetState.from_json(data)
    try:
        sel = _load_selmatrix(spath, sel_entry_dims(state.validate_size))
    except (OSError, ValueError, EOFError, SelMatrixError) as exc:
        log.error("Failed to load seltrix: %s", exc)
        sel = None
    return state, sel


@dataclass
class Tileset:
    """An open tileset: image, selection matrix and editor state."""

    path: Path
    state: TilesetState
    loaded_image: DrawImage
    sel_matrix: SelMatrix
    edit_path: bool = False
    edit_mode: bool = False
    quant: int = 1
    dirty_img: bool = False
    show_green_save_until: float = -1.0
    id: int = field(default_factory=lambda: next(_tileset_ids))

    @classmethod
    def new(cls, path: Path, size: Sequence[int], quant: int) -> Tileset:
        """A blank, editable tileset of ``size`` pixels with ``quant``-tile groups."""
        path = Path(path)
        size = (size[0], size[1])
        sel_matrix = SelMatrix.new_filled(sel_entry_dims(size))
        sel_matrix.intervalize((quant, quant))
        return cls(
            path=path,
            state=TilesetState(title=path.name, validate_size=size),
            loaded_image=DrawImage(img=RgbaImage.new(size[0], size[1]), layers=1),
            sel_matrix=sel_matrix,
            edit_path=True,
            edit_mode=True,
            quant=1,
            dirty_img=True,
        )

    @classmethod
    def load(cls, path: Path) -> Tileset:
        """Open the image at ``path`` together with any saved editor state."""
        path = Path(path)
        with PILImage.open(path) as img:
            image = RgbaImage.from_pil(img)
        return cls.load_with_image(path, image)

    @classmethod
    def load_with_image(cls, path: Path, image: RgbaImage) -> Tileset:
        path = Path(path)
        img_size = (image.width, image.height)
        epath = _attached_to_path(path, EDITSTATE_SUFFIX)
        spath = _attached_to_path(path, SELMATRIX_SUFFIX)
        sel_matrix: Optional[SelMatrix] = None
        edit_path = False

        if epath.is_file():
            state, sel_matrix = _load_state(epath, spath)
            state.zoom = min(max(state.zoom, ZOOM_RANGE[0]), ZOOM_RANGE[1])
            if tuple(state.validate_size) != img_size:
                sel_matrix = None
            edit_path = True
        else:
            state = TilesetState(title=path.name, validate_size=img_size)

        if sel_matrix is None:
            sel_matrix = SelMatrix.new_filled(sel_entry_dims(img_size))

        return cls(
            path=path,
            state=state,
            loaded_image=DrawImage(img=image, layers=1),
            sel_matrix=sel_matrix,
            edit_path=edit_path,
        )

    @property
    def editstate_path(self) -> Path:
        return _attached_to_path(self.path, EDITSTATE_SUFFIX)

    @property
    def selmatrix_path(self) -> Path:
        return _attached_to_path(self.path, SELMATRIX_SUFFIX)

    def save_editstate(self) -> bool:
        """Write the editor state and selection matrix; False if that failed."""
        self.edit_path = True
        try:
            ser = self.state.dumps()
            buf = io.BytesIO()
            SelMatrixLayered.serialize_layers(self.sel_matrix.dims, [self.sel_matrix], buf)
            self.editstate_path.write_bytes(ser)
            self.selmatrix_path.write_bytes(buf.getvalue())
        except (OSError, ValueError, SelMatrixError) as exc:
            log.error("Error saving tileset metadata: %s", exc)
            return False
        return True

    def save_image(self) -> None:
        """Write the image as PNG to the tileset path."""
        buf = io.BytesIO()
        self.loaded_image.img.to_pil().save(buf, format="PNG")
        self.path.write_bytes(buf.getvalue())

    def save(self, save_draw: bool) -> None:
        """Save the editor state, and the image too if ``save_draw`` and it changed."""
        if self.save_editstate() and save_draw and self.dirty_img:
            try:
                self.save_image()
            except OSError as exc:
                log.error("Error saving tileset image: %s", exc)
            else:
                self.dirty_img = False

    @property
    def draw_allowed(self) -> bool:
        return self.edit_path and self.path.suffix == ".png"

    def make_editable(self) -> None:
        """Group tiles by ``quant`` and start saving editor state for this tileset."""
        if self.quant != 1:
            self.sel_matrix.intervalize((self.quant, self.quant))
        self.save(False)

    def set_view_pos(self, view_pos: Sequence[float], viewport_size: Sequence[float]) -> None:
        """Move the view, keeping it inside the image."""
        limit_x = max(self.state.validate_size[0] - viewport_size[0], 0.0)
        limit_y = max(self.state.validate_size[1] - viewport_size[1], 0.0)
        self.state.voff = (
            float(min(max(view_pos[0], 0.0), limit_x)),
            float(min(max(view_pos[1], 0.0), limit_y)),
        )