from __future__ import annotations

from typing import List

from planners.rrt import TerrainRRT
from planners.terrain import CATEGORY_CHARS
from shared.types import TerrainCategory

NODE_CHAR = "+"
START_CHAR = "s"
GOAL_CHAR = "g"


def render_ascii(rrt: TerrainRRT) -> str:
    """Terrain as map characters, tree nodes as '+', start/goal as 's'/'g'."""
    terrain = rrt.terrain
    rows: List[List[str]] = [
        [CATEGORY_CHARS[TerrainCategory(int(v))] for v in row] for row in terrain.cells
    ]
    for node in rrt.root.walk():
        x, y = node.data
        rows[y][x] = NODE_CHAR
    sx, sy = rrt.start
    gx, gy = rrt.end
    rows[sy][sx] = START_CHAR
    rows[gy][gx] = GOAL_CHAR
    return "\n".join("".join(r) for r in rows)
