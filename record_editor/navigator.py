"""
Selection navigator for the record editor.

Holds the operator's current position in the schema tree (a top-level class
plus one chosen sub-class per depth) and resolves it to the active schema
node. The navigator never touches records.
"""

from dataclasses import dataclass, field
from typing import List, Optional
import logging

from .schema_model import ClassDefinition, NodePath, SchemaRoot, resolve_chain, resolve_class

logger = logging.getLogger(__name__)


@dataclass
class ResolvedNode:
    """
    Result of resolving a navigator position.

    Attributes:
        node: The deepest class definition reached
        path: Node path of `node` (top-level id first)
        chain: Every class walked, top-level class first
    """
    node: ClassDefinition
    path: NodePath
    chain: List[ClassDefinition]

    @property
    def depth(self) -> int:
        return len(self.path) - 1

    @property
    def has_records(self) -> bool:
        return self.node.records_enabled


@dataclass
class NavigatorState:
    """
    Current selection: a top-level class id and the chosen sub-class ids.

    Attributes:
        selected_class_id: Top-level class id, or None when nothing is selected
        selected_subclass_path: Chosen sub-class id per depth (level 0 first)
    """
    selected_class_id: Optional[str] = None
    selected_subclass_path: List[str] = field(default_factory=list)

    def select_class(self, class_id: Optional[str]) -> None:
        """Select a top-level class; every deeper selection is discarded."""
        if class_id != self.selected_class_id:
            logger.info(f"Class selection: {self.selected_class_id} -> {class_id}")
        self.selected_class_id = class_id or None
        self.selected_subclass_path = []

    def select_sub_class(self, level: int, sub_id: str) -> bool:
        """
        Choose a sub-class at `level` and drop every deeper selection.

        Levels must be chosen in order: a level beyond the current path length
        leaves a gap and is rejected.

        Returns:
            True if the selection was recorded, False if it was ignored
        """
        if self.selected_class_id is None:
            logger.warning("Sub-class selected before any class")
            return False
        if level < 0 or level > len(self.selected_subclass_path):
            logger.warning(
                f"Sub-class level {level} skipped ahead of path of length "
                f"{len(self.selected_subclass_path)}"
            )
            return False

        del self.selected_subclass_path[level:]
        self.selected_subclass_path.append(sub_id)
        return True

    def clear_sub_class(self, level: int) -> None:
        """Drop the selection at `level` and everything deeper."""
        del self.selected_subclass_path[max(level, 0):]

    def pin_path(self, sub_ids: List[str]) -> None:
        """Replace the sub-class path, e.g. with a defaulted chain made explicit."""
        self.selected_subclass_path = list(sub_ids)

    def resolve_active_schema(self, schema: SchemaRoot,
                              default_first: bool = False) -> Optional[ResolvedNode]:
        """
        Resolve the active schema node for the current selection.

        Starting from the selected class, descend one level per recorded
        sub-class selection. Resolution stops at the first level without
        sub-classes, without a selection (unless `default_first` picks the
        first declared sub-class), or whose selected id no longer exists.

        Args:
            schema: Schema to resolve against
            default_first: Default unselected levels to the first sub-class

        Returns:
            The resolved node, or None when no known class is selected
        """
        current = resolve_class(schema, self.selected_class_id)
        if current is None:
            if self.selected_class_id:
                logger.warning(f"Selected class '{self.selected_class_id}' not in schema")
            return None

        chain = [current] + resolve_chain(schema, current.id, self.selected_subclass_path, default_first)
        path = tuple(node.id for node in chain)
        return ResolvedNode(node=chain[-1], path=path, chain=chain)

    def to_dict(self) -> dict:
        return {
            'selected_class_id': self.selected_class_id,
            'selected_subclass_path': list(self.selected_subclass_path)
        }
