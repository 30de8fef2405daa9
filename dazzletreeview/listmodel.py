"""Headless list model over a Tree.

TreeListModel is everything a list widget needs from a tree except the
drawing: the flattened list of visible nodes, click/toggle handling, the
selection policy and drag-moves. A UI layer binds ``nodes`` to its list
view and forwards user events here.

Operations that fetch or move hold one model-wide asyncio.Lock, so two
rapid events (a double click, or a toggle during a full refresh) are
serialised instead of fetching the same branch at once.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Generic, List, Optional, TypeVar

from .config import SelectionMode, TreeViewConfig
from .core import Tree, TreeNode

logger = logging.getLogger(__name__)

T = TypeVar('T')


class TreeNodeEventListener(Generic[T]):
    """Receives list model events. All hooks are no-ops by default."""

    def on_click(self, node: TreeNode[T]) -> None:
        pass

    def on_toggle(self, node: TreeNode[T], is_expand: bool) -> None:
        pass

    def on_refresh(self, status: bool) -> None:
        """Called with True when a refresh starts and False when it ends."""
        pass


class TreeListModel(Generic[T]):
    """Flattened, selectable view of a Tree."""

    def __init__(
        self,
        tree: Tree[T],
        config: Optional[TreeViewConfig] = None,
        listener: Optional[TreeNodeEventListener[T]] = None,
    ):
        """Initialize the list model.

        Args:
            tree: Initialised tree to present
            config: Behaviour settings (defaults to TreeViewConfig())
            listener: Event hooks

        Raises:
            ValueError: If the configuration is inconsistent
        """
        self.tree = tree
        self.config = config or TreeViewConfig()
        errors = self.config.validate()
        if errors:
            raise ValueError("Invalid TreeViewConfig: " + "; ".join(errors))
        self.listener = listener or TreeNodeEventListener()
        self.nodes: List[TreeNode[T]] = []
        # Created on first use, inside the running loop
        self._fetch_lock: Optional[asyncio.Lock] = None

    def __len__(self) -> int:
        return len(self.nodes)

    def get_item(self, position: int) -> TreeNode[T]:
        return self.nodes[position]

    def index_of(self, node: TreeNode[T]) -> int:
        """Position of a node in the visible list, -1 if not visible."""
        for position, current in enumerate(self.nodes):
            if current is node:
                return position
        return -1

    # Refresh

    async def refresh(
        self,
        fast_refresh: bool = False,
        node: Optional[TreeNode[T]] = None,
        with_expandable: bool = False,
    ) -> List[TreeNode[T]]:
        """Rebuild the visible list.

        Args:
            fast_refresh: If True, flatten from the cache without fetching
            node: If given, re-fetch this branch and its descendants first,
                then flatten from the cache
            with_expandable: With ``node``, only re-fetch down to the
                expanded frontier

        Returns:
            The new visible list
        """
        self.listener.on_refresh(True)
        try:
            fast_visit = fast_refresh
            if node is not None:
                if node.is_child:
                    async with self._guard():
                        await self.tree.refresh_with_child(node, with_expandable)
                fast_visit = True

            if fast_visit:
                nodes = await self._flatten(fast_visit=True)
            else:
                async with self._guard():
                    nodes = await self._flatten(fast_visit=False)
            self.nodes = nodes
        finally:
            self.listener.on_refresh(False)
        return self.nodes

    async def _flatten(self, fast_visit: bool) -> List[TreeNode[T]]:
        return await self.tree.to_sorted_list(
            fast_visit=fast_visit,
            min_depth=self.config.min_visible_depth,
        )

    # Click / expand / collapse

    async def on_click(self, node: TreeNode[T]) -> List[TreeNode[T]]:
        """Handle a click: branches toggle, then the listener is told."""
        if node.is_child:
            await self.toggle_node(node)
        self.listener.on_click(node)
        return self.nodes

    async def toggle_node(self, node: TreeNode[T], full_refresh: Optional[bool] = None) -> List[TreeNode[T]]:
        if not node.is_child:
            return self.nodes
        if node.expand:
            await self.collapse_node(node)
        else:
            await self.expand_node(node, full_refresh)
        self.listener.on_toggle(node, node.expand)
        return self.nodes

    async def expand_node(self, node: TreeNode[T], full_refresh: Optional[bool] = None) -> List[TreeNode[T]]:
        """Expand one branch; with a full refresh its visible subtree is re-fetched."""
        await self.tree.expand_node(node)
        if self._full(full_refresh):
            return await self.refresh(node=node, with_expandable=True)
        return await self.refresh(fast_refresh=True)

    async def collapse_node(self, node: TreeNode[T]) -> List[TreeNode[T]]:
        await self.tree.collapse_node(node)
        return await self.refresh(fast_refresh=True)

    async def expand_all(self, node: Optional[TreeNode[T]] = None, full_refresh: bool = True) -> List[TreeNode[T]]:
        async with self._guard():
            await self.tree.expand_all(node, full_refresh)
        return await self.refresh(fast_refresh=True)

    async def collapse_all(self, node: Optional[TreeNode[T]] = None) -> List[TreeNode[T]]:
        await self.tree.collapse_all(node)
        return await self.refresh(fast_refresh=True)

    async def expand_until(self, depth: int, full_refresh: bool = True) -> List[TreeNode[T]]:
        async with self._guard():
            await self.tree.expand_until(depth, full_refresh)
        return await self.refresh(fast_refresh=True)

    async def collapse_from(self, depth: int) -> List[TreeNode[T]]:
        await self.tree.collapse_from(depth)
        return await self.refresh(fast_refresh=True)

    def _full(self, full_refresh: Optional[bool]) -> bool:
        if full_refresh is None:
            return self.config.fetch_on_toggle
        return full_refresh

    # Selection

    async def select_node(self, node: TreeNode[T], selected: bool) -> bool:
        """Apply the configured selection policy to a node.

        Returns:
            False if selection is disabled, True otherwise
        """
        mode = self.config.selection_mode
        if not mode.can_select:
            return False

        if mode is SelectionMode.SINGLE and selected:
            for other in self.tree.get_selected_nodes():
                if other is not node:
                    self.tree.select_node(other, False, select_child=False)

        self.tree.select_node(node, selected, select_child=mode.cascades)
        await self.refresh(fast_refresh=True)
        return True

    async def try_select(self, node: TreeNode[T]) -> bool:
        """Toggle a node's selection, if the policy allows selecting at all."""
        return await self.select_node(node, not node.selected)

    async def set_selection_mode(self, mode: SelectionMode) -> None:
        """Switch policy; NONE and SINGLE start from an empty selection."""
        if mode is self.config.selection_mode:
            return
        self.config.selection_mode = mode
        if mode in (SelectionMode.NONE, SelectionMode.SINGLE):
            self.tree.select_all_node(False)
        await self.refresh(fast_refresh=True)

    def get_selected_nodes(self) -> List[TreeNode[T]]:
        return self.tree.get_selected_nodes()

    # Move

    async def move_node(self, src: TreeNode[T], dst: TreeNode[T]) -> bool:
        """Drop ``src`` onto ``dst``.

        Returns:
            True if the node moved, False if moves are disabled or the move
            was rejected
        """
        if not self.config.allow_move:
            return False

        async with self._guard():
            moved = await self.tree.move_node(
                src, dst, fix_depths=self.config.fix_depths_on_move,
            )
        if moved:
            await self.refresh(fast_refresh=True)
        else:
            logger.debug("Move of node %s onto node %s rejected", src.id, dst.id)
        return moved

    # In-flight guard

    @asynccontextmanager
    async def _guard(self) -> AsyncIterator[None]:
        if self._fetch_lock is None:
            self._fetch_lock = asyncio.Lock()
        async with self._fetch_lock:
            yield
