# mzdmap

Core data model for a tile-based tileset and map editor. Images are stored
as stacks of equally sized layers, and every 8×8 cell carries a selection
entry that records which tile group it belongs to.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## What is inside

- `mzdmap.sel_matrix` holds the selection grid. `SelEntry` and `SelPt`
  describe tile groups, the first relative to a cell and the second in
  absolute cell coordinates. `SelMatrix` gets and sets cells, fills
  rectangles into one group (`fill`), regroups single cells into blocks
  (`intervalize`) and swaps or flips axes (`transformed`).
  `SelMatrixLayered` stacks matrices, finds the topmost non-empty entry
  (`get_traced`) and reads and writes the binary `.sel` format with
  `serialize`, `serialize_layers` and `deserialize`; bad data raises
  `SelMatrixError`. `deoverlap`, `deoverlap_layered`, `clamp_bounds` and
  `intersect_bounds` are helpers on cells and boxes.
- `mzdmap.image` has `RgbaImage`, a plain RGBA pixel buffer that converts
  to and from Pillow images (`from_pil`, `to_pil`). `imgcopy` places one
  image on another, either replacing pixels or alpha-blending them with
  `blend_pixel`. `create_gap`, `collapse` and `swap_ranges` edit byte
  sequences in place.
- `mzdmap.draw_image` has `DrawImage`, layers stacked vertically in one
  image. It inserts, removes and swaps layers, reads, writes and erases
  regions, computes RGB sums and Lab averages, and gives a 64-bit content
  hash of a tile group (`pt_hash`).
- `mzdmap.draw_group` has `DrawImageGroup`, which draws, erases and reads
  across up to four neighbouring rooms as one region. Rooms are passed in
  as a mapping of objects that carry `loaded`, `layers`, `selected_layer`,
  `coord`, `locked` and `transient`.
- `mzdmap.tags` has `TagState` markers with an optional `WarpDest`, JSON
  round trips, hit testing (`trace_tag`, `can_place_tag_here`) and
  `calc_text_color`, which picks a marker colour that contrasts with the
  room under it.
- `mzdmap.color` has a CIE `Lab` colour type, `calc_text_color_over_bg`
  and the `#rrggbb` helpers `format_hex_color` and `parse_hex_color`.
- `mzdmap.texture` has `TextureCell`, which uploads an image to a
  `TextureBackend` only when it is missing or stale, and
  `invalidate_all_textures` to force every cell to upload again.
- `mzdmap.tileset` has `Tileset` and `TilesetState`. A tileset is a PNG
  image saved together with `<name>.mzdtileset` (editor state as JSON) and
  `<name>.mzdtileset.sel` (its selection matrix).

## Example

```python
import io
from mzdmap.sel_matrix import SelMatrix, SelMatrixLayered

matrix = SelMatrix.new_filled((40, 30))
matrix.intervalize((2, 2))

buf = io.BytesIO()
SelMatrixLayered.serialize_layers(matrix.dims, [matrix], buf)
buf.seek(0)
restored = SelMatrixLayered.deserialize(buf, (40, 30))
assert restored.layers[0] == matrix
```

```python
from pathlib import Path
from mzdmap.tileset import Tileset

tileset = Tileset.new(Path("tiles.png"), (320, 240), 2)
tileset.save(True)          # writes tiles.png and its metadata files

reopened = Tileset.load(Path("tiles.png"))
```

## What it does not do

This is a library of data structures only. It has no window, no drawing
tools and no command to run. It has no room or map model of its own:
`DrawImageGroup` and `calc_text_color` work on room objects supplied by the
caller, and the package neither loads nor saves rooms or maps and keeps no
undo history for them. Textures are handed to whatever `TextureBackend` the
caller provides; nothing is rendered here.