"""Filesystem node generator.

Serves a directory tree to a Tree. Directory listings run in a worker
thread so a slow disk or network share never blocks the event loop.
"""

import asyncio
import logging
import os
import shutil
from pathlib import Path
from typing import List, Union

from ..core import ROOT_NODE_ID, Tree, TreeNode, TreeNodeGenerator

logger = logging.getLogger(__name__)


class FileSystemNodeGenerator(TreeNodeGenerator[Path]):
    """Generator whose payloads are filesystem paths.

    Directories become branch nodes, everything else leaves. The root
    directory itself is a virtual node at depth -1, so a flattened view
    starts with its contents.
    """

    def __init__(
        self,
        root_path: Union[str, Path],
        show_hidden: bool = False,
        follow_symlinks: bool = False,
    ):
        """Initialize filesystem generator.

        Args:
            root_path: Directory shown as the (hidden) root
            show_hidden: Include entries whose name starts with a dot
            follow_symlinks: Treat symlinks to directories as branches
        """
        self.root_path = Path(root_path).absolute()
        self.show_hidden = show_hidden
        self.follow_symlinks = follow_symlinks

    async def fetch_children(self, node: TreeNode[Path]) -> List[Path]:
        """List a directory, directories first, then by case-insensitive name."""
        return await asyncio.to_thread(self._scan, node.require_data())

    def _scan(self, directory: Path) -> List[Path]:
        entries = []
        with os.scandir(directory) as it:
            for entry in it:
                if not self.show_hidden and entry.name.startswith('.'):
                    continue
                try:
                    is_dir = entry.is_dir(follow_symlinks=self.follow_symlinks)
                except OSError:
                    # Broken symlinks and races with deletion
                    is_dir = False
                entries.append((not is_dir, entry.name.lower(), Path(entry.path)))
        entries.sort()
        return [path for _, _, path in entries]

    def create_node(self, parent: TreeNode[Path], data: Path, tree: Tree[Path]) -> TreeNode[Path]:
        return TreeNode(
            data=data,
            depth=parent.depth + 1,
            name=data.name,
            id=tree.generate_id(),
            is_child=self._is_dir(data),
            expand=False,
        )

    def create_root_node(self) -> TreeNode[Path]:
        return TreeNode(
            data=self.root_path,
            depth=-1,
            name=self.root_path.name or str(self.root_path),
            id=ROOT_NODE_ID,
            is_child=True,
        )

    async def confirm_move(self, src: TreeNode[Path], dst: TreeNode[Path], tree: Tree[Path]) -> bool:
        """Move the file on disk before the tree reflects it.

        Vetoes the move when the destination is not a directory or already
        contains an entry with the same name. If the tree then cannot apply
        the move, abort_move() moves the entry back.
        """
        target_dir = dst.require_data() if dst.is_child else dst.require_data().parent
        return await self._relocate(src, target_dir, tree)

    async def abort_move(self, src: TreeNode[Path], dst: TreeNode[Path], tree: Tree[Path]) -> None:
        """Put the entry back into the directory its cached parent shows."""
        parent = tree.get_parent_node(src)
        if parent is None:
            # src was evicted, nothing cached refers to the old location
            return
        if not await self._relocate(src, parent.require_data(), tree):
            logger.warning("Could not move %s back to %s", src.data, parent.data)

    async def _relocate(self, src: TreeNode[Path], target_dir: Path, tree: Tree[Path]) -> bool:
        source = src.require_data()
        destination = target_dir / source.name

        if not target_dir.is_dir() or destination.exists():
            logger.debug("Refusing to move %s to %s", source, destination)
            return False

        await asyncio.to_thread(shutil.move, str(source), str(destination))
        logger.info("Moved %s to %s", source, destination)
        # Moved nodes keep their identity, so they must carry the new location
        src.data = destination
        stack = tree.get_cached_children(src)
        while stack:
            child = stack.pop()
            child.data = destination / child.data.relative_to(source)
            stack.extend(tree.get_cached_children(child))
        return True

    def _is_dir(self, path: Path) -> bool:
        if not self.follow_symlinks and path.is_symlink():
            return False
        return path.is_dir()

    def __repr__(self) -> str:
        return f"FileSystemNodeGenerator({self.root_path})"
