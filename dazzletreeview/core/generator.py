"""Node generator abstraction.

The generator is the bridge between a Tree and wherever the data actually
lives (a directory, a database, an in-memory description). The Tree decides
when children are needed; the generator decides how to get them.
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Generic, Iterable, Optional, TypeVar

from .node import TreeNode

if TYPE_CHECKING:
    from .tree import Tree

T = TypeVar('T')


class TreeNodeGenerator(ABC, Generic[T]):
    """Abstract base class for node generators.

    Subclasses fetch child payloads and turn payloads into nodes. They never
    touch the Tree's store directly; reconciliation against previously cached
    nodes is done by the Tree.
    """

    @abstractmethod
    async def fetch_children(self, node: TreeNode[T]) -> Optional[Iterable[T]]:
        """Fetch the current child payloads of a branch node.

        May perform I/O. Payloads must be hashable and are matched against
        cached children by equality, so two fetches of unchanged data must
        produce equal payloads. Iteration order decides the creation order
        (and therefore the display order) of brand-new children.

        Args:
            node: Branch node whose children are wanted

        Returns:
            Iterable of child payloads (duplicates collapse), or None when
            the children cannot be read right now and the cached children
            should be kept
        """
        pass

    @abstractmethod
    def create_node(
        self,
        parent: TreeNode[T],
        data: T,
        tree: 'Tree[T]',
    ) -> TreeNode[T]:
        """Create a brand-new node for a payload.

        Implementations must set ``depth = parent.depth + 1`` and take the id
        from ``tree.generate_id()``.

        Args:
            parent: Node the new child will be attached to
            data: Payload for the new node
            tree: Owning tree, for id allocation

        Returns:
            The new node
        """
        pass

    def create_root_node(self) -> Optional[TreeNode[T]]:
        """Create the root node.

        Return None to let the tree create a default empty root. A root with
        a negative depth is hidden from flattened views, which gives the
        appearance of several top-level nodes.
        """
        return None

    async def confirm_move(
        self,
        src: TreeNode[T],
        dst: TreeNode[T],
        tree: 'Tree[T]',
    ) -> bool:
        """Veto or react to a node being reparented.

        Called before the tree mutates anything. Returning False aborts the
        move. The default accepts every move.
        """
        return True

    async def abort_move(
        self,
        src: TreeNode[T],
        dst: TreeNode[T],
        tree: 'Tree[T]',
    ) -> None:
        """Undo the effects of a confirmed move the tree could not apply.

        Called when ``src`` or its new parent left the store while
        confirm_move() was suspended. ``src`` is still where it was before
        the move, if it is in the store at all. The default does nothing.
        """
        return None
