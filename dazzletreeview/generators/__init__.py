"""Generators for common data sources.

This module contains generators that bridge specific data sources
(currently the filesystem) to the Tree's generator contract.
"""

from .filesystem import FileSystemNodeGenerator

__all__ = [
    'FileSystemNodeGenerator',
]
