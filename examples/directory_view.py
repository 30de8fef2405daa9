#!/usr/bin/env python3
"""
Directory browser example showing a lazily populated tree view.

This example demonstrates:
- Serving a directory to a Tree with FileSystemNodeGenerator
- Expanding branches on demand through a TreeListModel
- Keeping expand state across refreshes
- Skipping unreadable directories with an error policy
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for development
sys.path.insert(0, str(Path(__file__).parent.parent))

from dazzletreeview import (
    FileSystemNodeGenerator,
    Tree,
    TreeListModel,
    TreeNodeEventListener,
    TreeViewConfig,
    create_resilient_generator,
)


class PrintingListener(TreeNodeEventListener):

    def on_toggle(self, node, is_expand):
        print(f"  [{'expanded' if is_expand else 'collapsed'} {node.name}]")


def render(model):
    for node in model.nodes:
        marker = ("v " if node.expand else "> ") if node.is_child else "  "
        print(f"{'    ' * node.depth}{marker}{node.name}")


async def main():
    """Browse a directory the way a list widget would."""
    root_path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path.cwd()

    generator = create_resilient_generator(FileSystemNodeGenerator(root_path))
    tree = Tree.create_tree(generator)
    model = TreeListModel(tree, TreeViewConfig.read_only(), PrintingListener())

    print(f"Browsing: {root_path}")
    print("-" * 50)
    await model.refresh()
    render(model)

    # Open the first two directories, like a user clicking them
    for node in [node for node in model.nodes if node.is_child][:2]:
        await model.on_click(node)
    print("-" * 50)
    render(model)

    # A full refresh re-reads the disk but keeps what is expanded
    await model.refresh()
    stats = tree.get_stats()
    print("-" * 50)
    print(f"Cached nodes: {stats['nodes']:,}  fetches: {stats['fetches']:,}")

    errors = generator.get_policy().get_statistics()
    if errors['total_errors']:
        print(f"Skipped {errors['skipped_nodes']} unreadable directories")


if __name__ == "__main__":
    logging.basicConfig(level=logging.WARNING)
    print("DazzleTreeView - Directory View Example")
    print("=" * 50)
    asyncio.run(main())
