#!/usr/bin/env python3
"""
Declarative tree example.

Builds a fixed tree without writing a generator, then selects and moves
nodes the way a drag-and-drop UI would.
"""

import asyncio
import sys
from pathlib import Path

# Add parent directory to path for development
sys.path.insert(0, str(Path(__file__).parent.parent))

from dazzletreeview import TreeListModel, TreeViewConfig, build_tree


def describe(root):
    with root.branch("Fruit") as fruit:
        fruit.leaf("Apple")
        fruit.leaf("Banana")
    with root.branch("Vegetables") as vegetables:
        vegetables.leaf("Carrot")
        vegetables.leaf("Tomato")


def render(model):
    for node in model.nodes:
        mark = "*" if node.selected else " "
        print(f"{mark} {'  ' * node.depth}{node.name}")


async def main():
    tree = build_tree(describe, data_creator=lambda name, parent: name.lower())
    model = TreeListModel(tree, TreeViewConfig.multi_select(with_children=True))

    await model.expand_all()
    render(model)

    fruit, vegetables = tree.get_cached_children(tree.root_node)
    tomato = tree.get_cached_children(vegetables)[-1]

    print("\nTomato is a fruit:")
    await model.move_node(tomato, fruit)
    await model.select_node(fruit, True)
    render(model)

    print("\nMoving Fruit into its own child is refused:",
          not await model.move_node(fruit, tomato))


if __name__ == "__main__":
    asyncio.run(main())
