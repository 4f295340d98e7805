"""Selection matrices, layered images, drawing groups, tags and tilesets for a tile editor."""

__version__ = "0.2.1"