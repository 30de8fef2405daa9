"""Node store, reconciliation and traversal.

The Tree owns every live node by id together with a parent -> children
adjacency cache. The cache reflects the last reconciliation of each parent,
not necessarily what the generator would return right now.

Refreshing a branch is a diff-merge, not a wholesale replace: cached
children whose payload is still present keep their node object (id,
expand and selected state); only genuinely new payloads become new nodes.
This is what lets expand/select state survive a refresh even though the
data source only knows payload equality.
"""

import logging
from collections import deque
from typing import (
    Any, AsyncIterator, Callable, Dict, Generic, Iterable, Iterator,
    List, Optional, Set, TypeVar, Union,
)

from ..exceptions import (
    DuplicateNodeIdError,
    NodeNotFoundError,
    NotABranchError,
    TreeError,
    TreeNotInitializedError,
)
from .generator import TreeNodeGenerator
from .ids import IdGenerator
from .node import PATH_SEPARATOR, ROOT_NODE_ID, TreeNode
from .visitor import SortedListVisitor, TreeVisitor

logger = logging.getLogger(__name__)

T = TypeVar('T')

NodeOrId = Union[TreeNode, int]


class Tree(Generic[T]):
    """Lazily populated tree with an identity-preserving node cache.

    Typical use:
        >>> tree = Tree.create_tree(MyGenerator())
        >>> nodes = await tree.to_sorted_list(fast_visit=False)

    A single task is expected to drive a Tree. Fetches for one parent are
    never issued twice within one call, but two concurrent refreshes of the
    same node race and the last one to finish wins; callers serialise
    operations that target the same node (see TreeListModel).
    """

    ROOT_NODE_ID = ROOT_NODE_ID

    def __init__(
        self,
        generator: Optional[TreeNodeGenerator[T]] = None,
        id_generator: Optional[IdGenerator] = None,
    ):
        """Initialize an empty tree.

        Args:
            generator: Data source for children; required before refreshing
            id_generator: Id allocator, pass a shared instance to give
                several trees one id space
        """
        self.generator = generator
        self.id_generator = id_generator or IdGenerator()
        self._nodes: Dict[int, TreeNode[T]] = {}
        self._children: Dict[int, Set[int]] = {}
        self._parents: Dict[int, int] = {}
        self._root: Optional[TreeNode[T]] = None
        self._fetch_count = 0

    @classmethod
    def create_tree(
        cls,
        generator: TreeNodeGenerator[T],
        id_generator: Optional[IdGenerator] = None,
    ) -> 'Tree[T]':
        """Create a tree and its root node in one step."""
        tree = cls(generator, id_generator)
        tree.init_tree()
        return tree

    # Store

    def generate_id(self) -> int:
        """Allocate a fresh node id."""
        return self.id_generator.next_id()

    def init_tree(self) -> TreeNode[T]:
        """Create the root node, discarding anything stored before."""
        return self.create_root_node()

    def create_root_node(self) -> TreeNode[T]:
        """Create and register the root node.

        The generator's root is used when it supplies one, otherwise an
        empty default root named "Root" at depth 0. Either way the root gets
        the reserved id and is an expanded branch.
        """
        root = None
        if self.generator is not None:
            root = self.generator.create_root_node()
        if root is None:
            root = TreeNode(data=None, depth=0, name='Root', id=ROOT_NODE_ID)

        root.id = ROOT_NODE_ID
        root.is_child = True
        root.expand = True
        root.has_child = False
        root.path = str(ROOT_NODE_ID)

        self._nodes.clear()
        self._children.clear()
        self._parents.clear()
        self._nodes[root.id] = root
        self._root = root
        return root

    @property
    def root_node(self) -> TreeNode[T]:
        if self._root is None:
            raise TreeNotInitializedError("Tree has no root node, call init_tree() first")
        return self._root

    def get_node(self, node_id: int) -> TreeNode[T]:
        """Look up a live node by id.

        Raises:
            NodeNotFoundError: If no node has this id
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NodeNotFoundError(node_id) from None

    def get_nodes(self, node_ids: Iterable[int]) -> List[TreeNode[T]]:
        return [self.get_node(node_id) for node_id in node_ids]

    def has_node(self, node_id: int) -> bool:
        return node_id in self._nodes

    def get_parent_node(self, node: NodeOrId) -> Optional[TreeNode[T]]:
        """Return the cached parent, or None for the root."""
        node = self._resolve(node)
        parent_id = self._parents.get(node.id)
        if parent_id is None:
            return None
        return self._nodes[parent_id]

    def get_cached_children(self, node: NodeOrId) -> List[TreeNode[T]]:
        """Return cached children in creation order, without fetching."""
        node = self._resolve(node)
        return [self._nodes[child_id] for child_id in sorted(self._children.get(node.id, ()))]

    async def get_children(self, node: NodeOrId) -> List[TreeNode[T]]:
        """Refresh a branch and return its children in creation order."""
        return await self.refresh(self._resolve(node))

    def remove_node(self, node: NodeOrId) -> None:
        """Remove a node and its cached subtree from the store."""
        node = self._resolve(node)
        if node.id == ROOT_NODE_ID:
            raise TreeError("The root node cannot be removed")
        self._detach(node)
        self._remove_subtree(node)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        if isinstance(node, TreeNode):
            return self._nodes.get(node.id) is node
        return node in self._nodes

    def get_stats(self) -> Dict[str, Any]:
        """Get store statistics.

        Returns:
            Dictionary with node count, number of cached parents, number of
            fetches issued and the last allocated id
        """
        return {
            'nodes': len(self._nodes),
            'cached_parents': len(self._children),
            'fetches': self._fetch_count,
            'last_id': self.id_generator.last_id,
        }

    # Reconciliation

    async def refresh(self, node: NodeOrId) -> List[TreeNode[T]]:
        """Re-fetch a branch's children and merge them into the cache.

        Cached children whose payload is still fetched are kept as-is;
        cached children whose payload is gone are evicted with their
        subtree; remaining payloads become new nodes via the generator.
        Nothing is mutated until every new node has been created, so a
        failing fetch or create_node leaves the store untouched. A fetch
        that returns None (children unavailable) keeps the cache as it is,
        and a node evicted while its fetch was suspended is left alone.

        Args:
            node: Branch node to refresh

        Returns:
            The node's children in creation order, or an empty list if the
            node is no longer in the store

        Raises:
            NotABranchError: If the node is a leaf
        """
        node = self._resolve(node)
        if not node.is_child:
            raise NotABranchError(node)
        generator = self._require_generator()

        self._fetch_count += 1
        fetched = await generator.fetch_children(node)
        # The fetch may have suspended while another refresh evicted the node
        if node not in self:
            logger.debug("Node %s was evicted during its fetch", node.id)
            return []
        if fetched is None:
            logger.debug("Children of node %s unavailable, keeping cache", node.id)
            return self.get_cached_children(node)
        # Ordered and de-duplicated: fetch order decides creation order
        pool = dict.fromkeys(fetched)

        # Read the cache after the fetch so the merge sees the latest state
        retained: List[TreeNode[T]] = []
        dropped: List[TreeNode[T]] = []
        for child in self.get_cached_children(node):
            if child.data in pool:
                del pool[child.data]
                retained.append(child)
            else:
                dropped.append(child)

        created = self._create_children(generator, node, pool)

        for child in dropped:
            self._remove_subtree(child)

        children = retained + created
        if children:
            self._children[node.id] = {child.id for child in children}
        else:
            self._children.pop(node.id, None)
        for child in children:
            self._bind(node, child)
        node.has_child = bool(children)

        logger.debug(
            "Refreshed node %s: %d retained, %d created, %d dropped",
            node.id, len(retained), len(created), len(dropped),
        )
        return sorted(children, key=lambda child: child.id)

    async def refresh_with_child(
        self,
        node: NodeOrId,
        with_expandable: bool = False,
    ) -> TreeNode[T]:
        """Refresh a branch and, breadth-first, every branch below it.

        Args:
            node: Branch node to start from
            with_expandable: If True, do not descend into collapsed branches,
                which warms the cache down to the expanded frontier only

        Returns:
            The starting node
        """
        node = self._resolve(node)
        queue = deque([node])
        while queue:
            current = queue.popleft()
            for child in await self.refresh(current):
                if not child.is_child:
                    continue
                if with_expandable and not child.expand:
                    continue
                queue.append(child)
        return node

    # Traversal

    async def walk(
        self,
        fast_visit: bool = True,
        with_expandable: bool = True,
        descend: Optional[Callable[[TreeNode[T]], bool]] = None,
    ) -> AsyncIterator[TreeNode[T]]:
        """Stream nodes in display order (pre-order, siblings by creation).

        Args:
            fast_visit: If True, read children from the cache only. If False,
                refresh every branch that is descended into.
            with_expandable: If True, do not descend into collapsed branches
            descend: Custom predicate deciding whether to descend into a
                branch; overrides with_expandable. It is called after the
                branch itself has been yielded.

        Yields:
            Every reached node, the root included
        """
        if descend is None:
            if with_expandable:
                descend = _is_expanded
            else:
                descend = _always

        stack: List[Iterator[TreeNode[T]]] = [iter([self.root_node])]
        while stack:
            node = next(stack[-1], None)
            if node is None:
                stack.pop()
                continue

            yield node

            if not node.is_child or not descend(node):
                continue

            if fast_visit:
                children = self.get_cached_children(node)
            else:
                children = await self.refresh(node)
            if children:
                stack.append(iter(children))

    async def visit(self, visitor: TreeVisitor[T], fast_visit: bool = False) -> None:
        """Walk the tree from the root, reporting nodes to a visitor.

        Branches go to visitor.visit_child_node(), whose result decides
        whether to descend; leaves go to visitor.visit_leaf_node().

        Args:
            visitor: Receives nodes in display order
            fast_visit: If True, use cached children only and never fetch
        """
        async for node in self.walk(fast_visit=fast_visit, descend=visitor.visit_child_node):
            if not node.is_child:
                visitor.visit_leaf_node(node)

    async def to_sorted_list(
        self,
        with_expandable: bool = True,
        fast_visit: bool = True,
        min_depth: int = 0,
    ) -> List[TreeNode[T]]:
        """Flatten the tree into the list a widget would display.

        Nodes with a depth below ``min_depth`` (virtual roots) are left out.

        Args:
            with_expandable: If True, skip the contents of collapsed branches
            fast_visit: If True, use cached children only
            min_depth: Shallowest depth to include

        Returns:
            Visible nodes in display order
        """
        visitor = SortedListVisitor(with_expandable=with_expandable, min_depth=min_depth)
        await self.visit(visitor, fast_visit=fast_visit)
        return visitor.get_result()

    # Selection

    def select_node(
        self,
        node: NodeOrId,
        selected: bool,
        select_child: bool = True,
    ) -> List[TreeNode[T]]:
        """Set the selected flag on a node, optionally on its descendants.

        The cascade only reaches descendants that are already cached; it
        never fetches, so one click cannot trigger a fetch storm.

        Returns:
            Every node whose flag was set, the node itself first
        """
        node = self._resolve(node)
        if select_child and node.is_child:
            affected = list(self._iter_cached(node))
        else:
            affected = [node]
        for current in affected:
            current.selected = selected
        return affected

    def select_all_node(self, selected: bool = True) -> None:
        """Set the selected flag on every cached node except a virtual root."""
        for node in self._nodes.values():
            if node.id == ROOT_NODE_ID and node.depth < 0:
                continue
            node.selected = selected

    def get_selected_nodes(self) -> List[TreeNode[T]]:
        """Return selected cached nodes in display order, expanded or not."""
        return [node for node in self._iter_cached(self.root_node) if node.selected]

    # Move

    async def move_node(
        self,
        src: NodeOrId,
        dst: NodeOrId,
        fix_depths: bool = False,
    ) -> bool:
        """Reparent a node.

        ``src`` goes under ``dst`` when ``dst`` is a branch, or next to it
        (under its parent, at its depth) when ``dst`` is a leaf. The
        generator's confirm_move() may veto the move. If either node leaves
        the store while the confirmation is suspended, the move is dropped
        and the generator's abort_move() is called to undo its side effects.

        Descendants of ``src`` keep their old depth until their branch is
        refreshed again, unless ``fix_depths`` is set. Their paths are always
        rewritten so later containment checks stay correct.

        Returns:
            True if the node was moved, False if the move was rejected
        """
        src = self._resolve(src)
        dst = self._resolve(dst)

        if src.id == ROOT_NODE_ID or src is dst:
            return False
        if dst.is_descendant_of(src):
            logger.debug("Rejected move of node %s into its own subtree", src.id)
            return False

        new_parent = dst if dst.is_child else self.get_parent_node(dst)
        if new_parent is None:
            return False

        generator = self._require_generator()
        if not await generator.confirm_move(src, dst, self):
            logger.debug("Generator vetoed move of node %s to node %s", src.id, dst.id)
            return False
        # The confirmation may have suspended; the nodes might be gone now
        if src not in self or new_parent not in self:
            logger.debug("Move of node %s aborted, a node left the store", src.id)
            await generator.abort_move(src, dst, self)
            return False

        self._detach(src)
        self._children.setdefault(new_parent.id, set()).add(src.id)
        self._parents[src.id] = new_parent.id
        new_parent.has_child = True

        src.depth = dst.depth + 1 if dst.is_child else dst.depth
        src.path = new_parent.path + PATH_SEPARATOR + str(src.id)
        for descendant in self._iter_cached(src, include_start=False):
            parent = self._nodes[self._parents[descendant.id]]
            descendant.path = parent.path + PATH_SEPARATOR + str(descendant.id)
            if fix_depths:
                descendant.depth = parent.depth + 1

        logger.debug("Moved node %s under node %s", src.id, new_parent.id)
        return True

    # Expand / collapse

    async def expand_node(self, node: NodeOrId, full_refresh: bool = False) -> None:
        """Expand a single branch, leaving its children's state alone."""
        node = self._resolve(node)
        if not node.is_child:
            return
        node.expand = True
        if full_refresh:
            await self.refresh(node)

    async def collapse_node(self, node: NodeOrId, full_refresh: bool = False) -> None:
        """Collapse a single branch, leaving its children's state alone."""
        node = self._resolve(node)
        if not node.is_child:
            return
        node.expand = False
        if full_refresh:
            await self.refresh(node)

    async def toggle_node(self, node: NodeOrId, full_refresh: bool = False) -> None:
        """Flip a branch between expanded and collapsed; leaves are ignored."""
        node = self._resolve(node)
        if not node.is_child:
            return
        if node.expand:
            await self.collapse_node(node, full_refresh)
        else:
            await self.expand_node(node, full_refresh)

    async def expand_all(
        self,
        node: Optional[NodeOrId] = None,
        full_refresh: bool = True,
    ) -> None:
        """Expand a branch and every branch below it.

        With ``full_refresh`` the whole subtree is fetched, which may be
        expensive on large data sources; without it only cached branches
        are expanded.
        """
        start = self._resolve(node) if node is not None else self.root_node
        await self._expand_while(start, lambda current: True, full_refresh)

    async def collapse_all(
        self,
        node: Optional[NodeOrId] = None,
        full_refresh: bool = False,
    ) -> None:
        """Collapse a branch and every cached branch below it.

        When no node is given, everything below the root is collapsed and
        the root itself stays expanded so its children remain visible.
        """
        start = self._resolve(node) if node is not None else self.root_node
        if full_refresh and start.is_child:
            await self.refresh(start)
        for current in self._iter_cached(start):
            if current.is_child:
                current.expand = False
        if node is None:
            start.expand = True

    async def expand_until(self, depth: int, full_refresh: bool = True) -> None:
        """Expand every branch shallower than ``depth``.

        Afterwards nodes down to ``depth`` are visible. Deeper branches keep
        their state.
        """
        await self._expand_while(
            self.root_node, lambda current: current.depth < depth, full_refresh,
        )

    async def collapse_from(self, depth: int, full_refresh: bool = False) -> None:
        """Collapse every cached branch at ``depth`` or deeper."""
        if full_refresh:
            await self.refresh_with_child(self.root_node, with_expandable=True)
        for current in self._iter_cached(self.root_node):
            if current.is_child and current.depth >= depth:
                current.expand = False

    # Internals

    def _resolve(self, node: NodeOrId) -> TreeNode[T]:
        if isinstance(node, TreeNode):
            return node
        return self.get_node(node)

    def _require_generator(self) -> TreeNodeGenerator[T]:
        if self.generator is None:
            raise TreeNotInitializedError("Tree has no generator")
        return self.generator

    def _create_children(
        self,
        generator: TreeNodeGenerator[T],
        parent: TreeNode[T],
        payloads: Iterable[T],
    ) -> List[TreeNode[T]]:
        created: List[TreeNode[T]] = []
        seen: Set[int] = set()
        for data in payloads:
            child = generator.create_node(parent, data, self)
            if child.id in seen or child.id == ROOT_NODE_ID or child.id in self._nodes:
                raise DuplicateNodeIdError(child.id)
            seen.add(child.id)
            created.append(child)
        return created

    def _bind(self, parent: TreeNode[T], child: TreeNode[T]) -> None:
        self._nodes[child.id] = child
        self._parents[child.id] = parent.id
        child.depth = parent.depth + 1
        child.path = parent.path + PATH_SEPARATOR + str(child.id)

    def _detach(self, node: TreeNode[T]) -> None:
        """Unlink a node from its parent's adjacency entry."""
        parent_id = self._parents.pop(node.id, None)
        if parent_id is None:
            return
        siblings = self._children.get(parent_id)
        if siblings is None:
            return
        siblings.discard(node.id)
        if not siblings:
            del self._children[parent_id]
            self._nodes[parent_id].has_child = False

    def _remove_subtree(self, node: TreeNode[T]) -> None:
        """Drop a node and every cached descendant from the store."""
        stack = [node.id]
        while stack:
            node_id = stack.pop()
            stack.extend(self._children.pop(node_id, ()))
            self._nodes.pop(node_id, None)
            self._parents.pop(node_id, None)

    def _iter_cached(
        self,
        start: TreeNode[T],
        include_start: bool = True,
    ) -> Iterator[TreeNode[T]]:
        """Pre-order walk over cached nodes, ignoring expand state."""
        if include_start:
            yield start
        stack = [iter(self.get_cached_children(start))]
        while stack:
            node = next(stack[-1], None)
            if node is None:
                stack.pop()
                continue
            yield node
            if node.id in self._children:
                stack.append(iter(self.get_cached_children(node)))

    async def _expand_while(
        self,
        start: TreeNode[T],
        predicate: Callable[[TreeNode[T]], bool],
        full_refresh: bool,
    ) -> None:
        queue = deque([start])
        while queue:
            current = queue.popleft()
            if not current.is_child or not predicate(current):
                continue
            current.expand = True
            if full_refresh:
                children = await self.refresh(current)
            else:
                children = self.get_cached_children(current)
            queue.extend(children)


def _is_expanded(node: TreeNode) -> bool:
    return node.expand


def _always(node: TreeNode) -> bool:
    return True
