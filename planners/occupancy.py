from __future__ import annotations

import weakref
from typing import Iterator, List, Optional

from planners.tree import TreeNode
from shared.types import Pt, flat_index, in_bounds


class OccupancyIndex:
    """One slot per grid cell pointing (weakly) at the tree node holding that cell."""

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"invalid grid size {width}x{height}")
        self.width = width
        self.height = height
        self._slots: List[Optional[weakref.ReferenceType]] = [None] * (width * height)

    def __len__(self) -> int:
        return len(self._slots)

    def flat_index(self, p: Pt) -> int:
        if not in_bounds(p, self.width, self.height):
            raise ValueError(f"cell {p} outside {self.width}x{self.height} grid")
        return flat_index(p, self.width)

    def get(self, p: Pt) -> Optional[TreeNode[Pt]]:
        ref = self._slots[self.flat_index(p)]
        return ref() if ref is not None else None

    def is_occupied(self, p: Pt) -> bool:
        return self.get(p) is not None

    def register(self, node: TreeNode[Pt]) -> None:
        i = self.flat_index(node.data)
        slot = self._slots[i]
        if slot is not None and slot() is not None:
            raise ValueError(f"cell {node.data} is already occupied")
        self._slots[i] = weakref.ref(node)

    def occupied(self) -> Iterator[TreeNode[Pt]]:
        """Occupying nodes in ascending flat-index order."""
        for ref in self._slots:
            if ref is None:
                continue
            node = ref()
            if node is not None:
                yield node

    def occupied_count(self) -> int:
        return sum(1 for _ in self.occupied())

    def reset(self) -> None:
        self._slots = [None] * (self.width * self.height)
