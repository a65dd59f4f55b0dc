from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Union

import numpy as np

from shared.types import Pt, TerrainCategory, in_bounds

# Map file tile characters.
TILE_CHARS: Dict[str, TerrainCategory] = {
    ".": TerrainCategory.TERRAIN,
    "G": TerrainCategory.TERRAIN,
    "@": TerrainCategory.OUT_OF_BOUNDS,
    "O": TerrainCategory.OUT_OF_BOUNDS,
    "T": TerrainCategory.OBSTACLE,
    "S": TerrainCategory.SWAMP,
    "W": TerrainCategory.WATER,
}

# Preferred character when writing a category back out.
CATEGORY_CHARS: Dict[TerrainCategory, str] = {
    TerrainCategory.TERRAIN: ".",
    TerrainCategory.OUT_OF_BOUNDS: "@",
    TerrainCategory.OBSTACLE: "T",
    TerrainCategory.SWAMP: "S",
    TerrainCategory.WATER: "W",
}

_MAX_DIM = 2**31 - 1


class MapFormatError(ValueError):
    """Raised when a map file or text block cannot be turned into a terrain grid."""


def tile_category(ch: str) -> TerrainCategory:
    try:
        return TILE_CHARS[ch]
    except KeyError:
        raise MapFormatError(f"invalid tile character {ch!r}") from None


class TerrainGrid:
    """Read-only terrain categories on a width x height cell grid (row-major, cells[y, x])."""

    def __init__(self, cells: np.ndarray, source: str | None = None):
        cells = np.asarray(cells)
        if cells.ndim != 2 or cells.shape[0] == 0 or cells.shape[1] == 0:
            raise ValueError(f"terrain must be a non-empty 2D array, got shape {cells.shape}")
        valid = {int(c) for c in TerrainCategory}
        bad = set(np.unique(cells).tolist()) - valid
        if bad:
            raise ValueError(f"unknown terrain category values: {sorted(bad)}")
        self._cells = cells.astype(np.uint8)
        self._cells.setflags(write=False)
        self.source = source

    @classmethod
    def filled(cls, width: int, height: int, category: TerrainCategory = TerrainCategory.TERRAIN):
        return cls(np.full((height, width), int(category), dtype=np.uint8))

    @classmethod
    def from_rows(cls, rows: Iterable[str]) -> "TerrainGrid":
        """Build from text rows of tile characters, e.g. ["..T", ".W."]."""
        rows = [r.strip() for r in rows if r.strip()]
        if not rows:
            raise MapFormatError("no tile rows given")
        w = len(rows[0])
        if any(len(r) != w for r in rows):
            raise MapFormatError("tile rows have different lengths")
        cells = np.array([[int(tile_category(ch)) for ch in r] for r in rows], dtype=np.uint8)
        return cls(cells)

    @property
    def width(self) -> int:
        return int(self._cells.shape[1])

    @property
    def height(self) -> int:
        return int(self._cells.shape[0])

    @property
    def cell_count(self) -> int:
        return int(self._cells.size)

    @property
    def cells(self) -> np.ndarray:
        return self._cells

    def contains(self, p: Pt) -> bool:
        return in_bounds(p, self.width, self.height)

    def terrain_at(self, x: int, y: int) -> TerrainCategory:
        if not in_bounds((x, y), self.width, self.height):
            raise ValueError(f"cell ({x}, {y}) outside {self.width}x{self.height} terrain")
        return TerrainCategory(int(self._cells[y, x]))

    def to_rows(self) -> list[str]:
        return ["".join(CATEGORY_CHARS[TerrainCategory(int(v))] for v in row) for row in self._cells]


def parse_map(text: str, source: str | None = None) -> TerrainGrid:
    """
    Parse the octile map format:

        type octile
        height <H>
        width <W>
        map
        <H*W tile characters, whitespace ignored>
    """
    lines = text.splitlines()
    if len(lines) < 4:
        raise MapFormatError("map header is incomplete")

    # line 0 ("type ...") and line 3 ("map") are ignored
    try:
        h_key, h_val = lines[1].split()
        w_key, w_val = lines[2].split()
        height, width = int(h_val), int(w_val)
    except ValueError:
        raise MapFormatError("map header must give 'height <H>' and 'width <W>'") from None
    if h_key.lower() != "height" or w_key.lower() != "width":
        raise MapFormatError(f"unexpected header keys {h_key!r}/{w_key!r}")
    if not (0 < width < _MAX_DIM and 0 < height < _MAX_DIM):
        raise MapFormatError(f"invalid map dimensions {width}x{height}")

    tiles = [tile_category(ch) for line in lines[4:] for ch in line if not ch.isspace()]
    if len(tiles) != width * height:
        raise MapFormatError(f"expected {width * height} tiles for {width}x{height}, found {len(tiles)}")

    cells = np.array([int(t) for t in tiles], dtype=np.uint8).reshape(height, width)
    return TerrainGrid(cells, source=source)


def load_map(path: Union[str, Path]) -> TerrainGrid:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"map file not found: {path}")
    return parse_map(path.read_text(), source=str(path))
