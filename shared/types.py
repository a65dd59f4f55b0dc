from __future__ import annotations

from enum import IntEnum
from typing import Tuple

# Grid frame: x = column (left to right), y = row (top to bottom), both in cells.
# Cells are addressed in row-major order: flat index = x + y * width.

Pt = Tuple[int, int]  # grid cell (x, y)


class TerrainCategory(IntEnum):
    TERRAIN = 0
    OUT_OF_BOUNDS = 1
    OBSTACLE = 2  # trees and other blocking tiles
    SWAMP = 3
    WATER = 4


def flat_index(p: Pt, width: int) -> int:
    return p[0] + p[1] * width


def in_bounds(p: Pt, width: int, height: int) -> bool:
    x, y = p
    return 0 <= x < width and 0 <= y < height


def is_passable(category: TerrainCategory, base: TerrainCategory) -> bool:
    """
    Passability of `category` for a mover standing on `base`.

    OUT_OF_BOUNDS/OBSTACLE as base is the generic "can I stand here" test,
    WATER only sails on water, anything else walks on terrain or swamp.
    """
    if base in (TerrainCategory.OUT_OF_BOUNDS, TerrainCategory.OBSTACLE):
        return category not in (TerrainCategory.OUT_OF_BOUNDS, TerrainCategory.OBSTACLE)
    if base == TerrainCategory.WATER:
        return category == TerrainCategory.WATER
    return category in (TerrainCategory.TERRAIN, TerrainCategory.SWAMP)
