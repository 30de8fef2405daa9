"""Declarative tree construction.

Describe a fixed branch/leaf structure and get a ready Tree back, without
writing a custom generator:

    >>> def populate(root):
    ...     with root.branch("src") as src:
    ...         src.leaf("main.py")
    ...     root.leaf("README.md")
    >>> tree = build_tree(populate)

The description is held in DataSource objects; DataSourceNodeGenerator is
the generator that serves them to the Tree.
"""

from typing import Any, Callable, Generic, List, Optional, TypeVar

from .core import IdGenerator, ROOT_NODE_ID, Tree, TreeNode, TreeNodeGenerator
from .exceptions import MissingNodeDataError

T = TypeVar('T')


class DataSource(Generic[T]):
    """A named entry in a declarative tree, optionally carrying data."""

    def __init__(self, name: str, data: Optional[T] = None):
        self.name = name
        self.data = data
        self.index = 0

    def require_data(self) -> T:
        if self.data is None:
            raise MissingNodeDataError(self)
        return self.data

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(other) is not type(self):
            return NotImplemented
        return (self.name, self.data, self.index) == (other.name, other.data, other.index)

    def __hash__(self) -> int:
        return hash((type(self).__name__, self.name, self.index))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r}, index={self.index})"


class SingleDataSource(DataSource[T]):
    """A leaf entry."""


class MultipleDataSource(DataSource[T]):
    """A branch entry holding child sources in insertion order."""

    def __init__(self, name: str, data: Optional[T] = None):
        super().__init__(name, data)
        self._children: List[DataSource[T]] = []
        self._last_index = 0

    def add(self, child: DataSource[T]) -> DataSource[T]:
        self._last_index += 1
        child.index = self._last_index
        self._children.append(child)
        return child

    def remove(self, child: DataSource[T]) -> None:
        self._children.remove(child)

    def index_of(self, child: DataSource[T]) -> int:
        """Position of ``child`` among the current children, -1 if absent."""
        try:
            return self._children.index(child)
        except ValueError:
            return -1

    def get(self, position: int) -> DataSource[T]:
        return self._children[position]

    def list(self) -> List[DataSource[T]]:
        return list(self._children)

    def size(self) -> int:
        return len(self._children)

    def __len__(self) -> int:
        return len(self._children)


class DataSourceNodeGenerator(TreeNodeGenerator[DataSource[T]]):
    """Serves a DataSource description to a Tree.

    The root is a virtual node at depth -1, so the top-level entries are
    what a flattened view shows. New branches start collapsed.
    """

    def __init__(self, root: MultipleDataSource[T]):
        self.root = root

    async def fetch_children(self, node: TreeNode[DataSource[T]]) -> List[DataSource[T]]:
        source = node.require_data()
        if not isinstance(source, MultipleDataSource):
            return []
        return source.list()

    def create_node(
        self,
        parent: TreeNode[DataSource[T]],
        data: DataSource[T],
        tree: Tree[DataSource[T]],
    ) -> TreeNode[DataSource[T]]:
        is_branch = isinstance(data, MultipleDataSource)
        return TreeNode(
            data=data,
            depth=parent.depth + 1,
            name=data.name,
            id=tree.generate_id(),
            is_child=is_branch,
            expand=False,
        )

    def create_root_node(self) -> TreeNode[DataSource[T]]:
        return TreeNode(
            data=self.root,
            depth=-1,
            name=self.root.name,
            id=ROOT_NODE_ID,
            is_child=True,
        )

    async def confirm_move(self, src, dst, tree) -> bool:
        """Move the described entry as well, so later refreshes agree."""
        parent = tree.get_parent_node(src)
        target = dst if dst.is_child else tree.get_parent_node(dst)
        if parent is None or target is None:
            return False
        old_source = parent.require_data()
        new_source = target.require_data()
        if not isinstance(new_source, MultipleDataSource):
            return False
        old_source.remove(src.require_data())
        new_source.add(src.require_data())
        return True


DataCreator = Callable[[str, DataSource[Any]], Any]


class DataSourceScope(Generic[T]):
    """Builder scope for one branch of a declarative tree."""

    def __init__(
        self,
        current: MultipleDataSource[T],
        data_creator: Optional[DataCreator] = None,
    ):
        self.current = current
        self.data_creator = data_creator

    def branch(self, name: str, data: Optional[T] = None) -> 'DataSourceScope[T]':
        """Add a branch and return the scope for its children.

        The returned scope is also a context manager, so nesting reads like
        the tree it builds.
        """
        source = MultipleDataSource(name, self._resolve_data(name, data))
        self.current.add(source)
        return DataSourceScope(source, self.data_creator)

    def leaf(self, name: str, data: Optional[T] = None) -> SingleDataSource[T]:
        """Add a leaf to this branch."""
        source = SingleDataSource(name, self._resolve_data(name, data))
        self.current.add(source)
        return source

    def _resolve_data(self, name: str, data: Optional[T]) -> Optional[T]:
        if data is not None or self.data_creator is None:
            return data
        return self.data_creator(name, self.current)

    def __enter__(self) -> 'DataSourceScope[T]':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        return None


def build_tree(
    populate: Optional[Callable[[DataSourceScope[T]], None]] = None,
    data_creator: Optional[DataCreator] = None,
    id_generator: Optional[IdGenerator] = None,
) -> Tree[DataSource[T]]:
    """Build a Tree from a declarative description.

    Args:
        populate: Called with the root scope to describe the structure
        data_creator: Supplies data for entries declared without any,
            called with the entry name and its parent source
        id_generator: Optional shared id allocator

    Returns:
        An initialised Tree whose root is a virtual node at depth -1

    Example:
        >>> tree = build_tree(
        ...     lambda root: root.leaf("a"),
        ...     data_creator=lambda name, parent: name.upper(),
        ... )
    """
    root = MultipleDataSource("root")
    scope = DataSourceScope(root, data_creator)
    if populate is not None:
        populate(scope)
    return Tree.create_tree(DataSourceNodeGenerator(root), id_generator)
