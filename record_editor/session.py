"""
Editor session object.

One EditorSession holds everything an editing session owns: the schema, the
navigator position and the record collections keyed by node path. Every
engine operation receives the session explicitly; the Streamlit layer keeps
exactly one instance in its session state.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import logging

from .exceptions import SchemaResolutionMiss, handle_editor_error
from .navigator import NavigatorState, ResolvedNode
from .schema_model import SchemaRoot, empty_schema, find_sub_class, resolve_class

logger = logging.getLogger(__name__)

Record = Dict[str, Any]
RecordsByPath = Dict[str, List[Record]]


@dataclass
class EditorSession:
    """
    State of one editing session.

    Attributes:
        schema: Schema currently being edited against
        navigator: Current class / sub-class selection
        records_by_path: Record collections keyed by node path key
        default_first_subclass: Resolve unselected levels to the first sub-class
    """
    schema: SchemaRoot = field(default_factory=empty_schema)
    navigator: NavigatorState = field(default_factory=NavigatorState)
    records_by_path: RecordsByPath = field(default_factory=dict)
    default_first_subclass: bool = False

    def active_node(self) -> Optional[ResolvedNode]:
        """Resolve the navigator position against the session schema."""
        return self.navigator.resolve_active_schema(
            self.schema, default_first=self.default_first_subclass
        )

    def select_class(self, class_id: Optional[str]) -> bool:
        """
        Select a top-level class.

        An unknown id degrades to "nothing selected".

        Returns:
            True if a known class is now selected
        """
        if class_id and resolve_class(self.schema, class_id) is None:
            handle_editor_error(SchemaResolutionMiss(class_id), "select class")
            self.navigator.select_class(None)
            return False
        self.navigator.select_class(class_id)
        return class_id is not None

    def select_sub_class(self, level: int, sub_id: str) -> bool:
        """
        Choose a sub-class at `level` under the currently resolved chain.

        When unselected levels are defaulted to the first sub-class, those
        defaults are pinned first so a deeper level can be chosen directly.

        Returns:
            True if the selection was recorded
        """
        resolved = self.active_node()
        if resolved is None:
            logger.warning("Sub-class selected without an active class")
            return False

        explicit = self.navigator.selected_subclass_path
        resolved_ids = list(resolved.path[1:])
        if len(explicit) < level <= len(resolved_ids):
            self.navigator.pin_path(resolved_ids[:level])

        if level >= len(resolved.chain):
            handle_editor_error(SchemaResolutionMiss(sub_id, level), "select sub-class")
            return False

        parent = resolved.chain[level]
        if find_sub_class(parent, sub_id) is None:
            handle_editor_error(SchemaResolutionMiss(sub_id, level), "select sub-class")
            return False

        return self.navigator.select_sub_class(level, sub_id)

    def replace_schema(self, schema: SchemaRoot) -> None:
        """
        Swap in a new schema, keeping every record collection.

        A selection that no longer resolves is cleared; stale sub-class
        selections are left for the navigator to stop at.
        """
        self.schema = schema
        if self.navigator.selected_class_id and resolve_class(schema, self.navigator.selected_class_id) is None:
            logger.info(f"Selected class '{self.navigator.selected_class_id}' removed from schema")
            self.navigator.select_class(None)
