"""DazzleTreeView - Lazily populated trees for list views.

DazzleTreeView keeps a stable, identity-preserving cache of tree nodes over
data that is fetched asynchronously and on demand - a directory, a remote
API, an in-memory description. Consumers ask for the flattened list of
visible nodes, expand and collapse branches, select and move nodes, and
never deal with when or how children are fetched.

Quick start:
━━━━━━━━━━━━━━━━━━━━━━━━━━
    from dazzletreeview import Tree, FileSystemNodeGenerator

    tree = Tree.create_tree(FileSystemNodeGenerator("."))
    visible = await tree.to_sorted_list(fast_visit=False)
━━━━━━━━━━━━━━━━━━━━━━━━━━
"""

__version__ = "0.1.0"

# Core abstractions
from .core import (
    TreeNode,
    ROOT_NODE_ID,
    IdGenerator,
    TreeNodeGenerator,
    TreeVisitor,
    SortedListVisitor,
    FunctionVisitor,
    Tree,
)

# Declarative builder
from .datasource import (
    DataSource,
    SingleDataSource,
    MultipleDataSource,
    DataSourceNodeGenerator,
    DataSourceScope,
    build_tree,
)

# Generators
from .generators import FileSystemNodeGenerator

# List model and configuration
from .listmodel import TreeListModel, TreeNodeEventListener
from .config import SelectionMode, TreeViewConfig

# Error handling
from .exceptions import (
    TreeError,
    NodeNotFoundError,
    MissingNodeDataError,
    NotABranchError,
    DuplicateNodeIdError,
    TreeNotInitializedError,
)
from .error_policies import (
    ErrorPolicy,
    FailFastPolicy,
    ContinueOnErrorsPolicy,
    CollectErrorsPolicy,
    ThresholdPolicy,
)
from .error_handling import ErrorHandlingGenerator, create_resilient_generator

__all__ = [
    '__version__',
    # Core abstractions
    'TreeNode',
    'ROOT_NODE_ID',
    'IdGenerator',
    'TreeNodeGenerator',
    'TreeVisitor',
    'SortedListVisitor',
    'FunctionVisitor',
    'Tree',
    # Declarative builder
    'DataSource',
    'SingleDataSource',
    'MultipleDataSource',
    'DataSourceNodeGenerator',
    'DataSourceScope',
    'build_tree',
    # Generators
    'FileSystemNodeGenerator',
    # List model and configuration
    'TreeListModel',
    'TreeNodeEventListener',
    'SelectionMode',
    'TreeViewConfig',
    # Errors
    'TreeError',
    'NodeNotFoundError',
    'MissingNodeDataError',
    'NotABranchError',
    'DuplicateNodeIdError',
    'TreeNotInitializedError',
    # Error handling
    'ErrorPolicy',
    'FailFastPolicy',
    'ContinueOnErrorsPolicy',
    'CollectErrorsPolicy',
    'ThresholdPolicy',
    'ErrorHandlingGenerator',
    'create_resilient_generator',
]
