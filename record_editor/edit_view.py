"""
Data editor view for the record editor.
Handles class and sub-class navigation, the record list of the active node,
the record form and saving the records document.
"""

import streamlit as st
from typing import Optional
import logging

from .diff_utils import calculate_diff, format_diff_for_display, get_change_summary, has_changes
from .error_handler import ErrorHandler, ErrorType
from .form_generator import FormGenerator
from .navigator import ResolvedNode
from .persistence import save_records
from .record_engine import (
    append_record,
    clean_all_records,
    create_record,
    get_records,
    record_label,
    remove_record,
    update_field,
)
from .schema_model import iter_class_paths, node_path_key
from .session_manager import SessionManager
from .ui_feedback import Notify

logger = logging.getLogger(__name__)

NOTHING_SELECTED = ""


class EditView:
    """Manages the data editor interface."""

    @staticmethod
    def render():
        """Render the complete data editor."""
        st.header("Data Editor")
        session = SessionManager.get_session()

        if not session.schema.classes:
            st.info("The schema has no classes yet. Define one in the Schema Editor.")
            return

        try:
            EditView._render_class_selector()
            resolved = EditView._render_sub_class_selectors()
            if resolved is None:
                return

            st.divider()
            EditView._render_active_node(resolved)

            st.divider()
            EditView._render_save_section()

        except Exception as e:
            ErrorHandler.handle_error(e, "data editor", ErrorType.SYSTEM, show_details=True)

    @staticmethod
    def _render_class_selector() -> None:
        """Top-level class select box; a new class discards deeper selections."""
        session = SessionManager.get_session()
        options = [NOTHING_SELECTED] + [cls.id for cls in session.schema.classes]
        labels = {cls.id: f"{cls.display_label} ({cls.id})" for cls in session.schema.classes}
        current = session.navigator.selected_class_id or NOTHING_SELECTED
        index = options.index(current) if current in options else 0

        choice = st.selectbox(
            "Select Class",
            options=options,
            index=index,
            format_func=lambda cid: labels.get(cid, "-- Choose a Class --"),
            key=f"class_select_{SessionManager.get_form_version()}"
        )

        if choice != current:
            session.select_class(choice or None)
            SessionManager.set_selected_record_index(None)
            st.rerun()

    @staticmethod
    def _render_sub_class_selectors() -> Optional[ResolvedNode]:
        """
        One select box per depth of the resolved chain.

        Returns:
            The resolved active node, or None when nothing is selected
        """
        session = SessionManager.get_session()
        resolved = session.active_node()
        if resolved is None:
            return None

        version = SessionManager.get_form_version()
        for level, parent in enumerate(resolved.chain):
            if not parent.children:
                break

            options = [NOTHING_SELECTED] + [child.id for child in parent.children]
            labels = {child.id: child.display_label for child in parent.children}
            current = resolved.path[level + 1] if level + 1 < len(resolved.path) else NOTHING_SELECTED

            choice = st.selectbox(
                f"Select Sub-Class of \"{parent.display_label}\"",
                options=options,
                index=options.index(current) if current in options else 0,
                format_func=lambda cid: labels.get(cid, "-- Nothing selected --"),
                key=f"sub_class_select_{level}_{version}"
            )

            if choice != current:
                if choice == NOTHING_SELECTED:
                    session.navigator.clear_sub_class(level)
                else:
                    session.select_sub_class(level, choice)
                SessionManager.set_selected_record_index(None)
                st.rerun()

        return resolved

    @staticmethod
    def _render_active_node(resolved: ResolvedNode) -> None:
        """Record list and form for the resolved node."""
        session = SessionManager.get_session()
        node = resolved.node
        path_key = node_path_key(resolved.path)
        st.subheader(f"{node.display_label}")
        st.caption(f"Node path: {path_key}")

        if not resolved.has_records:
            st.info("This class groups sub-classes and has no records of its own. Select a sub-class.")
            return

        records = get_records(session, resolved.path)
        if records is None:
            Notify.warn("The selected class could not be resolved.")
            return

        start_version = SessionManager.get_form_version()
        selected = EditView._render_record_picker(resolved, records)

        if selected is None:
            return

        st.markdown(f"**Editing Record for “{node.display_label}”**")
        key_prefix = f"v{start_version}:{path_key}:{selected}"
        changes = FormGenerator.render_record_form(node.field_list, records[selected], key_prefix)

        for field_key, value in changes.items():
            if not update_field(session, resolved.path, selected, field_key, value):
                Notify.warn(f"Change to '{field_key}' was not applied")

        if SessionManager.get_form_version() != start_version:
            st.rerun()

    @staticmethod
    def _render_record_picker(resolved: ResolvedNode, records: list) -> Optional[int]:
        """
        Record select box with new/remove buttons.

        Returns:
            Index of the record being edited, or None
        """
        session = SessionManager.get_session()
        node = resolved.node
        selected = SessionManager.get_selected_record_index()
        if selected is not None and not 0 <= selected < len(records):
            selected = None
            SessionManager.set_selected_record_index(None)

        options = [None] + list(range(len(records)))
        col1, col2, col3 = st.columns([4, 1, 1])

        with col1:
            choice = st.selectbox(
                f"Select Record for \"{node.id}\"",
                options=options,
                index=options.index(selected),
                format_func=lambda i: "-- Choose a Record --" if i is None else record_label(node, records[i], i),
                key=f"record_select_{SessionManager.get_form_version()}"
            )

        with col2:
            if st.button("+ New Record", key="new_record_btn"):
                if append_record(session, resolved.path, create_record(node)):
                    SessionManager.set_selected_record_index(len(records) - 1)
                    st.rerun()
                else:
                    Notify.error("The new record could not be created")

        with col3:
            if st.button("Remove Record", key="remove_record_btn", disabled=selected is None):
                if remove_record(session, resolved.path, selected):
                    Notify.queue("Record removed", "success")
                SessionManager.set_selected_record_index(None)
                st.rerun()

        if choice != selected:
            SessionManager.set_selected_record_index(choice)
            st.rerun()

        if not records:
            st.caption("No records yet. Click “+ New Record”.")
        return selected

    @staticmethod
    def _render_save_section() -> None:
        """Unsaved change summary and the save button."""
        session = SessionManager.get_session()
        diff = calculate_diff(SessionManager.get_saved_records_document(), clean_all_records(session))

        if has_changes(diff):
            summary = get_change_summary(diff)
            st.warning(
                f"Unsaved changes: {summary['modified']} modified, "
                f"{summary['added']} added, {summary['removed']} removed"
            )
            with st.expander("Show changes"):
                for line in format_diff_for_display(diff):
                    st.text(line)
        else:
            st.caption("All changes saved.")

        if st.button("Save All Changes", type="primary", key="save_records_btn"):
            store = SessionManager.get_store()
            if store is None:
                Notify.error("No document store configured")
                return
            success, errors = save_records(store, session)
            if success:
                SessionManager.mark_records_saved()
                Notify.queue("Records saved", "success")
                st.rerun()
            else:
                for error in errors:
                    ErrorHandler.handle_error(error, "save records", ErrorType.PERSISTENCE, show_details=True)

    @staticmethod
    def render_edit_sidebar() -> None:
        """Record counts for every node of the schema."""
        session = SessionManager.get_session()
        st.subheader("Records by class")
        for path, node in iter_class_paths(session.schema):
            indent = "  " * (len(path) - 1)
            if node.records_enabled:
                count = len(session.records_by_path.get(node_path_key(path), []))
                st.text(f"{indent}{node.display_label}: {count}")
            else:
                st.text(f"{indent}{node.display_label}")

