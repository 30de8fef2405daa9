"""Test fixtures for DazzleTreeView consumers.

These fixtures provide a scriptable generator and controlled access to a
Tree's internal state for testing purposes, without exposing implementation
details as part of the public API.
"""

import asyncio
from collections import Counter
from typing import Any, Dict, Hashable, Iterable, List, Optional, Set

from ..core import PATH_SEPARATOR, ROOT_NODE_ID, Tree, TreeNode, TreeNodeGenerator


class MappingNodeGenerator(TreeNodeGenerator[Hashable]):
    """Generator backed by a plain ``{payload: [child payloads]}`` mapping.

    A payload that appears as a key is a branch, anything else a leaf.
    Every fetch is recorded, and fetches can be made to fail, which makes
    it easy to assert on how often and in which order the Tree fetches.

    Example:
        generator = MappingNodeGenerator({
            'root': ['a', 'b'],
            'a': ['a1', 'a2'],
            'b': ['b1'],
        })
        tree = Tree.create_tree(generator)
    """

    def __init__(
        self,
        children: Dict[Hashable, Iterable[Hashable]],
        root: Hashable = 'root',
        root_depth: int = -1,
        expand_new: bool = False,
    ):
        """Initialize the generator.

        Args:
            children: Child payloads per branch payload
            root: Payload of the root node
            root_depth: Depth of the root; negative hides it from flat views
            expand_new: Whether newly created branches start expanded
        """
        self.children: Dict[Hashable, List[Hashable]] = {
            key: list(value) for key, value in children.items()
        }
        self.root = root
        self.root_depth = root_depth
        self.expand_new = expand_new
        self.fetch_log: List[Hashable] = []
        self.move_log: List[tuple] = []
        self.abort_log: List[tuple] = []
        self.fail_on: Dict[Hashable, Exception] = {}
        self.allow_moves = True

    @property
    def fetch_count(self) -> int:
        return len(self.fetch_log)

    def set_children(self, payload: Hashable, children: Iterable[Hashable]) -> None:
        """Replace what the next fetch of ``payload`` returns."""
        self.children[payload] = list(children)

    def fail_next_fetch(self, payload: Hashable, error: Optional[Exception] = None) -> None:
        """Make fetches of ``payload`` raise until cleared with recover()."""
        self.fail_on[payload] = error or OSError(f"cannot fetch {payload!r}")

    def recover(self, payload: Hashable) -> None:
        self.fail_on.pop(payload, None)

    async def fetch_children(self, node: TreeNode[Hashable]) -> List[Hashable]:
        self.fetch_log.append(node.data)
        # Suspend like real I/O would
        await asyncio.sleep(0)
        if node.data in self.fail_on:
            raise self.fail_on[node.data]
        return list(self.children.get(node.data, ()))

    def create_node(self, parent: TreeNode[Hashable], data: Hashable, tree: Tree[Hashable]) -> TreeNode[Hashable]:
        return TreeNode(
            data=data,
            depth=parent.depth + 1,
            name=str(data),
            id=tree.generate_id(),
            is_child=data in self.children,
            expand=self.expand_new,
        )

    def create_root_node(self) -> TreeNode[Hashable]:
        return TreeNode(
            data=self.root,
            depth=self.root_depth,
            name=str(self.root),
            id=ROOT_NODE_ID,
            is_child=True,
        )

    async def confirm_move(self, src, dst, tree) -> bool:
        self.move_log.append((src.data, dst.data))
        return self.allow_moves

    async def abort_move(self, src, dst, tree) -> None:
        self.abort_log.append((src.data, dst.data))


class TreeTestHelper:
    """Public test fixture for verifying a Tree's store.

    Example:
        helper = TreeTestHelper(tree)
        await tree.to_sorted_list(fast_visit=False)
        assert helper.check_invariants() == []
    """

    def __init__(self, tree: Tree):
        self._tree = tree

    def check_invariants(self) -> List[str]:
        """Check the store against its structural invariants.

        Returns:
            Human-readable violations (empty if the store is consistent)
        """
        tree = self._tree
        nodes: Dict[int, TreeNode] = tree._nodes
        children: Dict[int, Set[int]] = tree._children
        parents: Dict[int, int] = tree._parents
        violations = []

        if ROOT_NODE_ID not in nodes:
            violations.append("root node missing from store")
        if ROOT_NODE_ID in parents:
            violations.append("root node has a parent")

        for node_id, node in nodes.items():
            if node.id != node_id:
                violations.append(f"node stored under {node_id} has id {node.id}")

            cached = children.get(node_id, set())
            if node.has_child != bool(cached):
                violations.append(
                    f"node {node_id}: has_child={node.has_child} but {len(cached)} cached children"
                )

            if node_id == ROOT_NODE_ID:
                continue

            parent_id = parents.get(node_id)
            if parent_id is None:
                violations.append(f"node {node_id} has no parent")
                continue
            if node_id not in children.get(parent_id, set()):
                violations.append(f"node {node_id} missing from parent {parent_id}'s children")
            parent = nodes.get(parent_id)
            if parent is None:
                violations.append(f"node {node_id} points at missing parent {parent_id}")
            elif node.path != parent.path + PATH_SEPARATOR + str(node_id):
                violations.append(f"node {node_id} path {node.path!r} does not extend its parent's")

        for parent_id, child_ids in children.items():
            for child_id in child_ids:
                if child_id not in nodes:
                    violations.append(f"parent {parent_id} caches missing child {child_id}")
                elif parents.get(child_id) != parent_id:
                    violations.append(f"child {child_id} cached under two parents")

        return violations

    def get_summary(self) -> Dict[str, Any]:
        """Returns high-level store state for testing.

        Returns:
            The tree's get_stats() plus node counts per depth and the number
            of selected and expanded nodes
        """
        nodes = self._tree._nodes.values()
        summary = dict(self._tree.get_stats())
        summary['depths'] = dict(Counter(node.depth for node in nodes))
        summary['selected'] = sum(1 for node in nodes if node.selected)
        summary['expanded'] = sum(1 for node in nodes if node.is_child and node.expand)
        return summary
