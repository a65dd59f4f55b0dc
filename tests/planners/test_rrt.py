import numpy as np
import pytest

from planners.rrt import RRTParams, TerrainRRT, _nearest
from planners.terrain import TerrainGrid
from planners.tree import TreeNode
from shared.types import TerrainCategory


class ScriptedRandom:
    """Stands in for random.Random: randrange() returns queued values."""

    def __init__(self, values):
        self.values = list(values)

    def randrange(self, n):
        v = self.values.pop(0)
        assert 0 <= v < n
        return v

    def seed(self, s=None):
        pass


def _snapshot(rrt):
    nodes = sorted(
        (n.data, n.parent.data if n.parent is not None else None) for n in rrt.root.walk()
    )
    occ = [n.data for n in rrt.occupancy.occupied()]
    return nodes, occ


def _assert_invariants(rrt):
    nodes = list(rrt.root.walk())
    cells = [n.data for n in nodes]
    # one node per cell
    assert len(cells) == len(set(cells))
    # occupancy slot set iff some node holds the cell
    assert sorted(n.data for n in rrt.occupancy.occupied()) == sorted(cells)
    for n in nodes:
        assert rrt.occupancy.get(n.data) is n
        # parent chain ends at the root
        p = n
        while p.parent is not None:
            p = p.parent
        assert p is rrt.root
    assert rrt.root.data == rrt.start


def test_free_grid_reaches_goal_deterministic():
    terrain = TerrainGrid.filled(5, 5)
    rrt = TerrainRRT(seed=123)
    rrt.prepare(terrain, (0, 0), (4, 4))
    assert not rrt.has_finished()
    assert [n.data for n in rrt.occupancy.occupied()] == [(0, 0)]

    stats = rrt.grow(10_000)
    assert stats.finished and rrt.has_finished()
    assert stats.steps <= 10_000
    goal = rrt.occupancy.get((4, 4))
    assert goal is not None
    p = goal
    while p.parent is not None:
        p = p.parent
    assert p is rrt.root and p.data == (0, 0)
    _assert_invariants(rrt)


def test_same_seed_grows_same_tree():
    terrain = TerrainGrid.filled(12, 9)
    a, b = TerrainRRT(seed=5), TerrainRRT(seed=5)
    a.prepare(terrain, (1, 1), (10, 7))
    b.prepare(terrain, (1, 1), (10, 7))
    for _ in range(200):
        assert a.generate_branch() == b.generate_branch()
    assert _snapshot(a) == _snapshot(b)


def test_wall_is_never_crossed():
    grid = np.zeros((5, 9), dtype=np.uint8)
    grid[:, 4] = int(TerrainCategory.OBSTACLE)
    terrain = TerrainGrid(grid)
    rrt = TerrainRRT(seed=7)
    rrt.prepare(terrain, (0, 2), (8, 2))
    for _ in range(3000):
        rrt.generate_branch()
    assert not rrt.has_finished()
    assert all(n.data[0] < 4 for n in rrt.root.walk())
    # the free side fills up completely
    assert rrt.node_count() == 4 * 5
    _assert_invariants(rrt)


def test_water_start_grows_only_on_water():
    terrain = TerrainGrid.from_rows(
        [
            "..WWWW..",
            "..WWWW..",
            "........",
        ]
    )
    rrt = TerrainRRT(seed=1)
    rrt.prepare(terrain, (3, 0), (7, 2))
    for _ in range(2000):
        rrt.generate_branch()
    for n in rrt.root.walk():
        assert terrain.terrain_at(*n.data) == TerrainCategory.WATER
    assert rrt.node_count() == 8


def test_is_valid_tile_base_rules():
    terrain = TerrainGrid.from_rows([".WST@"])
    rrt = TerrainRRT()
    rrt.prepare(terrain, (0, 0), (0, 0))
    W, S, T, O = TerrainCategory.WATER, TerrainCategory.SWAMP, TerrainCategory.OBSTACLE, TerrainCategory.OUT_OF_BOUNDS

    assert not rrt.is_valid_tile((0, 0), W)
    assert rrt.is_valid_tile((1, 0), W)
    assert rrt.is_valid_tile((2, 0), O)
    assert not rrt.is_valid_tile((3, 0), O)
    assert not rrt.is_valid_tile((4, 0), O)
    assert rrt.is_valid_tile((1, 0), T)  # generic test lets water through
    assert rrt.is_valid_tile((2, 0), TerrainCategory.TERRAIN)
    assert not rrt.is_valid_tile((1, 0), S)
    with pytest.raises(ValueError):
        rrt.is_valid_tile((5, 0), O)


def test_sample_on_occupied_cell_is_noop():
    rrt = TerrainRRT()
    rrt.prepare(TerrainGrid.filled(4, 4), (0, 0), (3, 3))
    rrt.rng = ScriptedRandom([0, 0])
    before = _snapshot(rrt)
    assert rrt.generate_branch() is False
    assert _snapshot(rrt) == before
    assert rrt.node_count() == 1


def test_graft_attaches_to_nearest():
    rrt = TerrainRRT()
    rrt.prepare(TerrainGrid.filled(6, 6), (0, 0), (5, 5))
    rrt.rng = ScriptedRandom([3, 0, 3, 2])
    assert rrt.generate_branch()
    assert rrt.generate_branch()
    n1 = rrt.occupancy.get((3, 0))
    n2 = rrt.occupancy.get((3, 2))
    assert n1.parent is rrt.root
    assert n2.parent is n1  # |0|+|2| beats |3|+|2|


def test_duplicate_endpoint_is_discarded(monkeypatch):
    rrt = TerrainRRT()
    rrt.prepare(TerrainGrid.filled(4, 4), (0, 0), (3, 3))
    rrt.rng = ScriptedRandom([2, 2])
    monkeypatch.setattr(rrt, "build_branch", lambda start, target: (0, 0))
    assert rrt.generate_branch() is False
    assert rrt.node_count() == 1
    assert rrt.root.is_leaf()


def test_nearest_tie_goes_to_first_in_order():
    a, b = TreeNode((0, 1)), TreeNode((2, 1))
    assert _nearest([a, b], (1, 1)) is a
    assert _nearest([b, a], (1, 1)) is b
    assert _nearest([], (1, 1)) is None


def test_build_branch_stops_before_obstacle():
    terrain = TerrainGrid.from_rows(["...W....."])
    rrt = TerrainRRT()
    rrt.prepare(terrain, (0, 0), (8, 0))
    assert rrt.build_branch((0, 0), (8, 0)) == (2, 0)
    # blocked on the very first cell
    assert rrt.build_branch((2, 0), (5, 0)) is None
    # zero-length branch
    assert rrt.build_branch((1, 0), (1, 0)) is None


def test_build_branch_capped_at_max_length():
    rrt = TerrainRRT(RRTParams(sample_step=0.25, max_branch_length=5.0))
    rrt.prepare(TerrainGrid.filled(30, 1), (0, 0), (29, 0))
    assert rrt.build_branch((0, 0), (20, 0)) == (5, 0)
    assert rrt.build_branch((0, 0), (3, 0)) == (3, 0)


def test_build_branch_diagonal_truncates():
    rrt = TerrainRRT()
    rrt.prepare(TerrainGrid.filled(10, 10), (0, 0), (9, 9))
    assert rrt.build_branch((0, 0), (6, 3)) == (6, 3)
    assert rrt.build_branch((6, 3), (0, 0)) == (0, 0)


def test_finished_tree_is_frozen():
    rrt = TerrainRRT(seed=11)
    rrt.prepare(TerrainGrid.filled(6, 6), (0, 0), (5, 5))
    assert rrt.grow(10_000).finished
    before = _snapshot(rrt)
    for _ in range(100):
        assert rrt.generate_branch() is False
    assert _snapshot(rrt) == before


def test_start_equals_goal():
    rrt = TerrainRRT(seed=3)
    rrt.prepare(TerrainGrid.filled(5, 5), (2, 2), (2, 2))
    assert rrt.has_finished()
    for _ in range(50):
        assert rrt.generate_branch() is False
    assert rrt.node_count() == 1
    assert rrt.grow(100).steps == 0


def test_occupied_cells_only_grow():
    terrain = TerrainGrid.from_rows(
        [
            "..........",
            "..TTTT....",
            "..T..SSS..",
            "..T..SWW..",
            "......WW..",
        ]
    )
    rrt = TerrainRRT(seed=42)
    rrt.prepare(terrain, (0, 0), (9, 4))
    seen = {(0, 0)}
    for _ in range(500):
        rrt.generate_branch()
        now = {n.data for n in rrt.occupancy.occupied()}
        assert seen <= now
        seen = now
    _assert_invariants(rrt)


def test_prepare_again_replaces_session():
    terrain = TerrainGrid.filled(8, 8)
    rrt = TerrainRRT(seed=9)
    rrt.prepare(terrain, (0, 0), (7, 7))
    rrt.grow(50)
    old_root = rrt.root
    assert old_root.child_count() > 0

    rrt.prepare(terrain, (4, 4), (1, 6))
    assert rrt.root is not old_root
    assert old_root.is_leaf()
    assert [n.data for n in rrt.occupancy.occupied()] == [(4, 4)]
    assert (rrt.get_start(), rrt.get_end()) == ((4, 4), (1, 6))
    _assert_invariants(rrt)


def test_contract_violations():
    rrt = TerrainRRT()
    with pytest.raises(RuntimeError):
        rrt.generate_branch()
    with pytest.raises(RuntimeError):
        rrt.has_finished()
    with pytest.raises(ValueError):
        rrt.prepare(TerrainGrid.filled(3, 3), (0, 0), (3, 0))
    with pytest.raises(ValueError):
        RRTParams(sample_step=0.0)
    with pytest.raises(ValueError):
        RRTParams(max_branch_length=0.5)
    with pytest.raises(ValueError):
        rrt.grow(-1)


def test_session_accessors_need_prepare():
    rrt = TerrainRRT()
    for read in (lambda: rrt.start, lambda: rrt.end, rrt.get_start, rrt.get_end):
        with pytest.raises(RuntimeError):
            read()


@pytest.mark.parametrize(
    "start",
    [(1.9, 0.7), (1.0, 2), (True, 0), ("1", "2"), (1,), 5],
)
def test_prepare_rejects_non_integer_cells(start):
    rrt = TerrainRRT()
    with pytest.raises(ValueError):
        rrt.prepare(TerrainGrid.filled(5, 5), start, (4, 4))
    with pytest.raises(ValueError):
        rrt.prepare(TerrainGrid.filled(5, 5), (4, 4), start)


def test_prepare_accepts_numpy_integers():
    rrt = TerrainRRT()
    rrt.prepare(TerrainGrid.filled(5, 5), (np.int64(1), np.int32(2)), np.array([4, 4]))
    assert rrt.start == (1, 2) and type(rrt.start[0]) is int
    assert rrt.end == (4, 4)
