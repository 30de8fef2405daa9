"""Core abstractions for lazily populated trees.

This module defines the node entity, the id allocator, the generator
contract and the Tree that reconciles and flattens them.
"""

from .node import TreeNode, ROOT_NODE_ID, PATH_SEPARATOR
from .ids import IdGenerator
from .generator import TreeNodeGenerator
from .visitor import (
    TreeVisitor,
    SortedListVisitor,
    FunctionVisitor,
)
from .tree import Tree

__all__ = [
    # Node
    'TreeNode',
    'ROOT_NODE_ID',
    'PATH_SEPARATOR',
    # Ids
    'IdGenerator',
    # Generator
    'TreeNodeGenerator',
    # Visitors
    'TreeVisitor',
    'SortedListVisitor',
    'FunctionVisitor',
    # Tree
    'Tree',
]
