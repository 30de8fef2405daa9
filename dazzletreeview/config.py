"""Configuration for DazzleTreeView list models.

This module defines how consumers describe the behaviour they want from a
TreeListModel: which selection policy applies, whether drag-moves are
allowed, and which depths are visible.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List


class SelectionMode(Enum):
    """Selection policy applied by the list model."""
    NONE = "none"                                    # Selection disabled
    SINGLE = "single"                                # At most one selected node
    MULTIPLE = "multiple"                            # Any number, no cascade
    MULTIPLE_WITH_CHILDREN = "multiple_with_children"  # Cascade to cached descendants

    @property
    def can_select(self) -> bool:
        return self is not SelectionMode.NONE

    @property
    def cascades(self) -> bool:
        return self is SelectionMode.MULTIPLE_WITH_CHILDREN


@dataclass
class TreeViewConfig:
    """Complete configuration for a TreeListModel."""

    # Selection policy
    selection_mode: SelectionMode = SelectionMode.NONE

    # Moving nodes
    allow_move: bool = True
    fix_depths_on_move: bool = False  # Recompute cached descendant depths after a move

    # Flattening
    min_visible_depth: int = 0  # Virtual roots below this depth stay hidden

    # Fetch from the generator when a branch is toggled open
    fetch_on_toggle: bool = True

    @classmethod
    def read_only(cls) -> 'TreeViewConfig':
        """Config for a browse-only view: no selection, no moves."""
        return cls(selection_mode=SelectionMode.NONE, allow_move=False)

    @classmethod
    def single_select(cls) -> 'TreeViewConfig':
        """Config for a picker where one node is chosen at a time."""
        return cls(selection_mode=SelectionMode.SINGLE)

    @classmethod
    def multi_select(cls, with_children: bool = False) -> 'TreeViewConfig':
        """Config for multi-selection.

        Args:
            with_children: Cascade selection to cached descendants
        """
        mode = SelectionMode.MULTIPLE_WITH_CHILDREN if with_children else SelectionMode.MULTIPLE
        return cls(selection_mode=mode)

    def validate(self) -> List[str]:
        """Validate configuration for consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not isinstance(self.selection_mode, SelectionMode):
            errors.append("selection_mode must be a SelectionMode")

        if self.fix_depths_on_move and not self.allow_move:
            errors.append("fix_depths_on_move has no effect when allow_move is False")

        return errors
