"""Tree node entity.

A TreeNode wraps a generator-supplied payload together with the presentation
flags a list widget needs (expanded, selected, depth). Nodes are mutated in
place by the owning Tree; they are never shared between trees.
"""

from typing import Any, Generic, Optional, TypeVar

from ..exceptions import MissingNodeDataError

T = TypeVar('T')

# The root node always carries this id, whatever the generator hands back
ROOT_NODE_ID = 0

PATH_SEPARATOR = '/'


class TreeNode(Generic[T]):
    """A vertex in the tree.

    Attributes:
        id: Unique id for the node's lifetime, assigned once
        data: Payload from the generator; None only for synthetic nodes
        depth: Nesting level. Negative depths mark virtual roots that
            flattened views leave out
        name: Display label
        is_child: True if the node is a branch (allowed to have children)
        has_child: True if the node currently has cached children
        expand: Whether descendants are included when flattening
        selected: Whether the node is selected
        path: Ancestry chain of ids, maintained by the Tree
    """

    __slots__ = (
        'id', 'data', 'depth', 'name', 'is_child',
        'has_child', 'expand', 'selected', 'path',
    )

    def __init__(
        self,
        data: Optional[T],
        depth: int,
        name: Optional[str],
        id: int,
        has_child: bool = False,
        is_child: bool = False,
        expand: bool = True,
        selected: bool = False,
        path: Optional[str] = None,
    ):
        self.id = id
        self.data = data
        self.depth = depth
        self.name = name
        self.is_child = is_child
        self.has_child = has_child
        self.expand = expand
        self.selected = selected
        self.path = path if path is not None else str(id)

    def require_data(self) -> T:
        """Return the payload, failing fast when there is none.

        Raises:
            MissingNodeDataError: If the node carries no payload
        """
        if self.data is None:
            raise MissingNodeDataError(self)
        return self.data

    @property
    def is_leaf(self) -> bool:
        return not self.is_child

    def is_descendant_of(self, other: 'TreeNode[Any]') -> bool:
        """Check containment through the path prefix, without walking the tree."""
        return self.path.startswith(other.path + PATH_SEPARATOR)

    def is_ancestor_of(self, other: 'TreeNode[Any]') -> bool:
        return other.is_descendant_of(self)

    def copy(self, **changes: Any) -> 'TreeNode[T]':
        """Return a detached copy, optionally overriding some fields.

        The copy is not registered in any tree; it is a snapshot.
        """
        values = {name: getattr(self, name) for name in self.__slots__}
        values.update(changes)
        return self.__class__(**values)

    def _key(self):
        return (
            self.id, self.depth, self.name, self.is_child,
            self.has_child, self.expand, self.selected,
        )

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(other) is not type(self):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        # Only the id is stable while flags change in place
        return hash(self.id)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(id={self.id}, name={self.name!r}, "
            f"depth={self.depth}, is_child={self.is_child}, "
            f"expand={self.expand}, selected={self.selected})"
        )
