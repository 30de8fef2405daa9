"""Tree visitors.

A visitor receives nodes from Tree.visit() in display order. Branch nodes
go to visit_child_node(), whose return value decides whether the walk
descends into them; leaf nodes go to visit_leaf_node().

The concrete visitors here are collectors: they keep state between calls
and expose it through get_result(), and reset() clears them for reuse.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, List, Optional, TypeVar

from .node import TreeNode

T = TypeVar('T')


class TreeVisitor(ABC, Generic[T]):
    """Abstract base class for tree visitors."""

    @abstractmethod
    def visit_child_node(self, node: TreeNode[T]) -> bool:
        """Visit a branch node.

        Returns:
            True to descend into the node's children
        """
        pass

    @abstractmethod
    def visit_leaf_node(self, node: TreeNode[T]) -> None:
        """Visit a leaf node."""
        pass


class SortedListVisitor(TreeVisitor[T]):
    """Collects the visible projection of the tree.

    Nodes shallower than ``min_depth`` (by default the negative-depth
    virtual roots) are walked through but not collected.
    """

    def __init__(self, with_expandable: bool = True, min_depth: int = 0):
        """Initialize the collector.

        Args:
            with_expandable: If True, stop at collapsed branches. If False,
                collect every reachable node regardless of expand state.
            min_depth: Shallowest depth that appears in the result
        """
        self.with_expandable = with_expandable
        self.min_depth = min_depth
        self.reset()

    def reset(self):
        self.nodes: List[TreeNode[T]] = []

    def visit_child_node(self, node: TreeNode[T]) -> bool:
        if node.depth >= self.min_depth:
            self.nodes.append(node)
        return node.expand if self.with_expandable else True

    def visit_leaf_node(self, node: TreeNode[T]) -> None:
        if node.depth >= self.min_depth:
            self.nodes.append(node)

    def get_result(self) -> List[TreeNode[T]]:
        return self.nodes


class FunctionVisitor(TreeVisitor[T]):
    """Adapts plain callables to the visitor interface.

    Example:
        >>> names = []
        >>> visitor = FunctionVisitor(
        ...     on_branch=lambda node: names.append(node.name) or node.expand,
        ...     on_leaf=lambda node: names.append(node.name),
        ... )
        >>> await tree.visit(visitor, fast_visit=True)
    """

    def __init__(
        self,
        on_branch: Optional[Callable[[TreeNode[T]], Any]] = None,
        on_leaf: Optional[Callable[[TreeNode[T]], Any]] = None,
    ):
        self.on_branch = on_branch
        self.on_leaf = on_leaf

    def visit_child_node(self, node: TreeNode[T]) -> bool:
        if self.on_branch is None:
            return node.expand
        return bool(self.on_branch(node))

    def visit_leaf_node(self, node: TreeNode[T]) -> None:
        if self.on_leaf is not None:
            self.on_leaf(node)
