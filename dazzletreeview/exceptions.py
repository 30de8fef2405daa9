"""Exceptions raised by DazzleTreeView.

Lookup and precondition failures are programmer errors and fail fast.
Expected, user-driven outcomes (a rejected move, a vetoed drag) are reported
as return values instead and never appear here.
"""


class TreeError(Exception):
    """Base class for all tree errors."""


class NodeNotFoundError(TreeError, KeyError):
    """A node id was looked up that is not present in the store."""

    def __init__(self, node_id):
        self.node_id = node_id
        super().__init__(f"No node with id {node_id} in tree")

    def __str__(self) -> str:
        # KeyError quotes its argument, keep the message readable
        return self.args[0]


class MissingNodeDataError(TreeError, ValueError):
    """A node's payload was required but the node carries none."""

    def __init__(self, node):
        self.node = node
        node_id = getattr(node, "id", None)
        super().__init__(f"Node {node_id} ({node.name!r}) has no data")


class NotABranchError(TreeError, ValueError):
    """An operation that needs children was called on a leaf node."""

    def __init__(self, node, operation: str = "refresh"):
        self.node = node
        self.operation = operation
        super().__init__(
            f"Cannot {operation} node {node.id} ({node.name!r}): it is a leaf"
        )


class DuplicateNodeIdError(TreeError, ValueError):
    """The generator produced a node whose id already belongs to another node."""

    def __init__(self, node_id: int):
        self.node_id = node_id
        super().__init__(f"Node id {node_id} is already in use")


class TreeNotInitializedError(TreeError, RuntimeError):
    """The tree was used before init_tree() created its root."""
