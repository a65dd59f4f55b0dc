from __future__ import annotations

import math
import operator
import random
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from planners.occupancy import OccupancyIndex
from planners.terrain import TerrainGrid
from planners.tree import TreeNode
from shared.types import Pt, TerrainCategory, is_passable


@dataclass(frozen=True)
class RRTParams:
    sample_step: float = 0.25  # cells between collision samples along a branch
    max_branch_length: float = 15.0  # cells

    def __post_init__(self) -> None:
        if not self.sample_step > 0.0:
            raise ValueError(f"sample_step must be > 0, got {self.sample_step}")
        if not self.max_branch_length >= 1.0:
            raise ValueError(f"max_branch_length must be >= 1, got {self.max_branch_length}")


@dataclass
class GrowthStats:
    steps: int
    grafted: int
    finished: bool
    nodes: int


def _manhattan(a: Pt, b: Pt) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def _nearest(nodes: Iterable[TreeNode[Pt]], q: Pt) -> Optional[TreeNode[Pt]]:
    # strict '<': the first node found wins ties
    best = None
    best_d = math.inf
    for n in nodes:
        d = _manhattan(n.data, q)
        if d < best_d:
            best_d = d
            best = n
    return best


def _as_cell(p: Any, name: str) -> Pt:
    """Exact integer (x, y); floats and bools are rejected, numpy integers accepted."""
    try:
        x, y = p
        if isinstance(x, bool) or isinstance(y, bool):
            raise TypeError
        return operator.index(x), operator.index(y)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a pair of integers, got {p!r}") from None


def _lerp_cell(a: Pt, b: Pt, t: float) -> Pt:
    # truncate toward zero, cells are never negative
    return int(a[0] + (b[0] - a[0]) * t), int(a[1] + (b[1] - a[1]) * t)


class TerrainRRT:
    """
    Incremental RRT over a terrain grid, one edge per generate_branch() call.

    Usage:
        rrt = TerrainRRT(seed=7)
        rrt.prepare(terrain, (0, 0), (40, 25))
        while not rrt.has_finished():
            rrt.generate_branch()   # once per tick / frame
    """

    def __init__(self, params: Optional[RRTParams] = None, *, seed: int | None = None):
        self.params = params or RRTParams()
        self.seed = seed
        self.rng = random.Random(seed)
        self._terrain: Optional[TerrainGrid] = None
        self._start: Pt = (0, 0)
        self._end: Pt = (0, 0)
        self._root: Optional[TreeNode[Pt]] = None
        self._occ: Optional[OccupancyIndex] = None

    # ---- session ----
    def prepare(self, terrain: TerrainGrid, start: Pt, goal: Pt, *, seed: int | None = None) -> None:
        """Start a new session. Any previous tree is discarded."""
        start = _as_cell(start, "start")
        goal = _as_cell(goal, "goal")
        if not (terrain.contains(start) and terrain.contains(goal)):
            raise ValueError("start/goal out of bounds")

        if self._root is not None:
            self._root.clear()
        self._terrain = terrain
        self._occ = OccupancyIndex(terrain.width, terrain.height)
        self._start = start
        self._end = goal
        self._root = TreeNode(start)
        self._occ.register(self._root)

        # explicit seed > constructor seed > OS entropy
        self.rng.seed(seed if seed is not None else self.seed)

    def _session(self) -> OccupancyIndex:
        if self._occ is None:
            raise RuntimeError("prepare() must be called before growing the tree")
        return self._occ

    @property
    def terrain(self) -> TerrainGrid:
        self._session()
        return self._terrain  # type: ignore[return-value]

    @property
    def root(self) -> TreeNode[Pt]:
        self._session()
        return self._root  # type: ignore[return-value]

    @property
    def occupancy(self) -> OccupancyIndex:
        return self._session()

    @property
    def start(self) -> Pt:
        self._session()
        return self._start

    @property
    def end(self) -> Pt:
        self._session()
        return self._end

    def get_start(self) -> Pt:
        return self.start

    def get_end(self) -> Pt:
        return self.end

    def node_count(self) -> int:
        return self._session().occupied_count()

    # ---- queries ----
    def has_finished(self) -> bool:
        """Both start and goal cells are held by tree nodes."""
        occ = self._session()
        return occ.is_occupied(self._start) and occ.is_occupied(self._end)

    def is_valid_tile(self, position: Pt, base: TerrainCategory) -> bool:
        x, y = position
        return is_passable(self.terrain.terrain_at(x, y), base)

    # ---- growth ----
    def generate_branch(self) -> bool:
        """One growth step. Returns True if a node was grafted onto the tree."""
        occ = self._session()
        if self._start == self._end or self.has_finished():
            return False

        terrain = self.terrain
        q_rand = (self.rng.randrange(terrain.width), self.rng.randrange(terrain.height))
        if occ.is_occupied(q_rand):
            return False

        nearest = _nearest(occ.occupied(), q_rand)
        if nearest is None:
            return False
        cell = self.build_branch(nearest.data, q_rand)
        if cell is None or occ.is_occupied(cell):
            return False

        node = nearest.add_child(TreeNode(cell))
        occ.register(node)
        return True

    def build_branch(self, start: Pt, target: Pt) -> Optional[Pt]:
        """
        Walk from `start` toward `target` in sample_step increments (capped at
        max_branch_length) and return the last passable cell reached, or None.
        Passability is judged against the terrain category at `start` for the
        whole walk; the first impassable sample ends it.
        """
        terrain = self.terrain
        base = terrain.terrain_at(*start)
        magnitude = math.hypot(target[0] - start[0], target[1] - start[1])
        step = self.params.sample_step
        limit = self.params.max_branch_length

        reached: Optional[Pt] = None
        current = 0.0
        while current < magnitude and current < limit:
            current = min(current + step, magnitude, limit)
            cell = _lerp_cell(start, target, current / magnitude)
            if cell == start:
                continue
            if not is_passable(terrain.terrain_at(*cell), base):
                break
            reached = cell
        return reached

    def grow(self, max_steps: int) -> GrowthStats:
        """Call generate_branch() until finished or max_steps calls have been made."""
        if max_steps < 0:
            raise ValueError("max_steps must be >= 0")
        steps = grafted = 0
        while steps < max_steps and not self.has_finished():
            grafted += int(self.generate_branch())
            steps += 1
        return GrowthStats(steps=steps, grafted=grafted, finished=self.has_finished(), nodes=self.node_count())
