from __future__ import annotations

import os

import numpy as np

from planners.rrt import TerrainRRT
from shared.types import TerrainCategory

# matplotlib is optional; install locally if needed:
#   pip install matplotlib
try:
    import matplotlib

    matplotlib.use("Agg")
    import matplotlib.pyplot as plt  # type: ignore
    from matplotlib.collections import LineCollection
    from matplotlib.colors import ListedColormap
except Exception as e:  # pragma: no cover
    raise SystemExit("matplotlib is required for plotting. Try: pip install matplotlib") from e

# RGB per TerrainCategory value
TERRAIN_COLOURS = {
    TerrainCategory.TERRAIN: (1, 142, 14),  # green
    TerrainCategory.OUT_OF_BOUNDS: (40, 40, 40),  # grey
    TerrainCategory.OBSTACLE: (95, 80, 29),  # brown
    TerrainCategory.SWAMP: (130, 148, 71),  # moss
    TerrainCategory.WATER: (43, 71, 62),  # deep blue
}


def terrain_cmap() -> ListedColormap:
    cols = [np.array(TERRAIN_COLOURS[c]) / 255.0 for c in sorted(TerrainCategory)]
    return ListedColormap(cols)


def plot_tree(rrt: TerrainRRT, out: str, *, title: str | None = None) -> str:
    """Draw the terrain and every parent->child edge of the tree into a PNG."""
    terrain = rrt.terrain
    fig, ax = plt.subplots(figsize=(8, 8 * terrain.height / max(terrain.width, 1)))
    ax.imshow(
        terrain.cells,
        cmap=terrain_cmap(),
        vmin=0,
        vmax=len(TerrainCategory) - 1,
        interpolation="nearest",
        origin="upper",
    )

    # cell centres sit on integer coordinates in imshow space
    segs = [(p.data, c.data) for p, c in rrt.root.edges()]
    if segs:
        ax.add_collection(LineCollection(segs, colors="white", linewidths=0.8))
    sx, sy = rrt.start
    gx, gy = rrt.end
    ax.scatter([sx], [sy], marker="o", c="yellow", label="start", zorder=3)
    ax.scatter([gx], [gy], marker="x", c="red", label="goal", zorder=3)
    ax.set_title(title or f"RRT: {rrt.node_count()} nodes, finished={rrt.has_finished()}")
    ax.legend(loc="upper right")

    os.makedirs(os.path.dirname(out) or ".", exist_ok=True)
    fig.savefig(out, dpi=150, bbox_inches="tight")
    plt.close(fig)
    return out
