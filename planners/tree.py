from __future__ import annotations

import weakref
from typing import Generic, Iterator, List, Optional, Tuple, TypeVar, Union

T = TypeVar("T")


class TreeNode(Generic[T]):
    """
    Node of a rooted, ordered n-ary tree.

    A node owns its children. The parent link is a weak reference, so the
    only strong path to a node is from its parent (or from whoever holds the root).
    Removed nodes are destroyed: their subtree is cleared and every parent link
    inside it is severed.
    """

    __slots__ = ("data", "_parent", "_children", "__weakref__")

    def __init__(self, data: T):
        self.data = data
        self._parent: Optional[weakref.ReferenceType] = None
        self._children: List[TreeNode[T]] = []

    def __repr__(self) -> str:
        return f"TreeNode({self.data!r}, children={len(self._children)})"

    # ---- queries ----
    @property
    def parent(self) -> Optional["TreeNode[T]"]:
        return self._parent() if self._parent is not None else None

    @property
    def children(self) -> Tuple["TreeNode[T]", ...]:
        return tuple(self._children)

    def is_root(self) -> bool:
        return self.parent is None

    def is_leaf(self) -> bool:
        return not self._children

    def child_count(self) -> int:
        return len(self._children)

    def child_at(self, index: int) -> "TreeNode[T]":
        self._check_index(index, len(self._children))
        return self._children[index]

    def find_child_index(self, node: "TreeNode[T]") -> int:
        """Index of `node` among the children, or child_count() if it is not one."""
        for i, child in enumerate(self._children):
            if child is node:
                return i
        return len(self._children)

    def depth(self) -> int:
        d = 0
        p = self.parent
        while p is not None:
            d += 1
            p = p.parent
        return d

    def walk(self) -> Iterator["TreeNode[T]"]:
        """Depth-first pre-order over this subtree."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node._children))

    def edges(self) -> Iterator[Tuple["TreeNode[T]", "TreeNode[T]"]]:
        """(parent, child) for every node below this one, depth first."""
        for node in self.walk():
            for child in node._children:
                yield node, child

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())

    # ---- mutation ----
    def add_child(self, node: "TreeNode[T]") -> "TreeNode[T]":
        self._adopt(node)
        self._children.append(node)
        return node

    def insert_child(self, index: int, node: "TreeNode[T]") -> "TreeNode[T]":
        # index may equal child_count() (append)
        self._check_index(index, len(self._children) + 1)
        self._adopt(node)
        self._children.insert(index, node)
        return node

    def set_child(self, index: int, node: "TreeNode[T]") -> "TreeNode[T]":
        self._check_index(index, len(self._children))
        old = self._children[index]
        if old is node:
            return node
        self._adopt(node)
        self._children[index] = node
        old._destroy()
        return node

    def remove_child(self, target: Union[int, "TreeNode[T]"]) -> None:
        """Swap the target with the last child and drop it. Child order is not kept."""
        i = self._resolve(target)
        last = len(self._children) - 1
        self._children[i], self._children[last] = self._children[last], self._children[i]
        self._children.pop()._destroy()

    def remove_child_ordered(self, target: Union[int, "TreeNode[T]"]) -> None:
        i = self._resolve(target)
        self._children.pop(i)._destroy()

    def clear(self) -> None:
        children, self._children = self._children, []
        for child in children:
            child._destroy()

    def copy(self) -> "TreeNode[T]":
        """Deep copy of this subtree. The copy is a new root."""
        root = TreeNode(self.data)
        stack = [(self, root)]
        while stack:
            src, dst = stack.pop()
            for child in src._children:
                c = TreeNode(child.data)
                dst.add_child(c)
                stack.append((child, c))
        return root

    __copy__ = copy

    # ---- internals ----
    def _adopt(self, node: "TreeNode[T]") -> None:
        if node is self:
            raise ValueError("a node cannot be its own child")
        if node.parent is not None:
            raise ValueError("node already has a parent; remove it from its owner first")
        p: Optional[TreeNode[T]] = self
        while p is not None:
            if p is node:
                raise ValueError("adding an ancestor as a child would create a cycle")
            p = p.parent
        node._parent = weakref.ref(self)

    def _resolve(self, target: Union[int, "TreeNode[T]"]) -> int:
        if isinstance(target, TreeNode):
            i = self.find_child_index(target)
            if i == len(self._children):
                raise ValueError("node is not a child of this node")
            return i
        self._check_index(target, len(self._children))
        return target

    def _destroy(self) -> None:
        self._parent = None
        for node in list(self.walk()):
            for child in node._children:
                child._parent = None
            node._children = []

    @staticmethod
    def _check_index(index: int, size: int) -> None:
        if not 0 <= index < size:
            raise IndexError(f"child index {index} out of range (size {size})")
