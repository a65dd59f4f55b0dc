#!/usr/bin/env python3
"""
run_rrt_demo.py — grow a terrain RRT on a map file, one branch per tick.

Usage:
  python -m scripts.run_rrt_demo --map maps/demo.map --start 1,1 --goal 30,14 --ascii
  python -m scripts.run_rrt_demo --map maps/demo.map --start 1,1 --goal 30,14 --plot artifacts/rrt.png
"""

from __future__ import annotations

import argparse
import os
import sys
from typing import Any, Dict, Tuple

import yaml

from planners.render import render_ascii
from planners.rrt import RRTParams, TerrainRRT
from planners.terrain import load_map
from shared.types import Pt, TerrainCategory

DEFAULTS: Dict[str, Any] = {
    "sample_step": 0.25,
    "max_branch_length": 15.0,
    "seed": None,
    "max_steps": 20000,
}


def load_rrt_config(path: str | None) -> Tuple[RRTParams, Dict[str, Any]]:
    """Defaults overlaid with the YAML file at `path` (if it exists)."""
    cfg = dict(DEFAULTS)
    if path and os.path.exists(path):
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path}: expected a mapping at top level")
        unknown = sorted(set(data) - set(DEFAULTS))
        if unknown:
            raise ValueError(f"{path}: unknown keys {unknown}")
        cfg.update(data)
    params = RRTParams(
        sample_step=float(cfg["sample_step"]),
        max_branch_length=float(cfg["max_branch_length"]),
    )
    return params, cfg


def parse_cell(s: str) -> Pt:
    try:
        x, y = (int(v) for v in s.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected 'x,y', got {s!r}") from None
    return x, y


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Grow a terrain-constrained RRT from start to goal.")
    ap.add_argument("--map", required=True, help="octile map file")
    ap.add_argument("--start", type=parse_cell, required=True, help="start cell 'x,y'")
    ap.add_argument("--goal", type=parse_cell, required=True, help="goal cell 'x,y'")
    ap.add_argument("--config", default="configs/rrt.yaml")
    ap.add_argument("--seed", type=int, default=None, help="overrides config seed")
    ap.add_argument("--max-steps", type=int, default=None, help="overrides config max_steps")
    ap.add_argument("--ascii", action="store_true", help="print the grown tree over the map")
    ap.add_argument("--plot", default=None, help="write a PNG of the tree (needs matplotlib)")
    args = ap.parse_args(argv)

    try:
        params, cfg = load_rrt_config(args.config)
        max_steps = args.max_steps if args.max_steps is not None else int(cfg["max_steps"])
        if max_steps < 0:
            raise ValueError(f"max_steps must be >= 0, got {max_steps}")
        terrain = load_map(args.map)
        rrt = TerrainRRT(params, seed=args.seed if args.seed is not None else cfg["seed"])

        for name, cell in (("start", args.start), ("goal", args.goal)):
            if not terrain.contains(cell):
                raise ValueError(f"{name} {cell} outside {terrain.width}x{terrain.height} map")
        rrt.prepare(terrain, args.start, args.goal)
        # both ends must be standable cells
        for name, cell in (("start", args.start), ("goal", args.goal)):
            if not rrt.is_valid_tile(cell, TerrainCategory.OUT_OF_BOUNDS):
                raise ValueError(f"{name} {cell} is not a passable cell")
    except (FileNotFoundError, ValueError) as e:
        print(f"[rrt] error: {e}", file=sys.stderr)
        return 2

    print(
        f"[rrt] map={terrain.source} {terrain.width}x{terrain.height} "
        f"start={rrt.start} goal={rrt.end} step={params.sample_step} max_branch={params.max_branch_length}"
    )
    stats = rrt.grow(max_steps)
    print(f"[rrt] steps={stats.steps} grafted={stats.grafted} nodes={stats.nodes} finished={stats.finished}")

    if args.ascii:
        print(render_ascii(rrt))
    if args.plot:
        from scripts.plot_rrt_tree import plot_tree

        print(f"Wrote: {plot_tree(rrt, args.plot)}")

    if not stats.finished:
        print(f"[rrt] goal not reached within {max_steps} steps", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
