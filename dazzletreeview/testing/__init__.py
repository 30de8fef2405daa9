"""Testing utilities for DazzleTreeView consumers."""

from .fixtures import MappingNodeGenerator, TreeTestHelper

__all__ = ['MappingNodeGenerator', 'TreeTestHelper']
