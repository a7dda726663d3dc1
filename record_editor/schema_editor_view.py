"""
Schema Editor View for the record editor.
Edits the class schema as JSON text, validates it, applies it to the session
and saves it to the document store.
"""

import streamlit as st
import logging
import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from .config_loader import get_config_value
from .diff_utils import calculate_diff, format_diff_for_display, get_change_summary, has_changes
from .error_handler import ErrorHandler, ErrorType
from .exceptions import MalformedDocument
from .persistence import load_schema_file, parse_schema_document, save_schema
from .schema_model import SchemaRoot, iter_class_paths, schema_to_document
from .session_manager import SessionManager
from .ui_feedback import Notify

logger = logging.getLogger(__name__)

TEXT_KEY = "schema_editor_text"
TEXT_VERSION_KEY = "schema_editor_text_version"
LAST_SAVE_TS_KEY = "schema_last_saved_at"


def schema_to_text(schema: SchemaRoot) -> str:
    """Pretty JSON text of a schema, as shown in the editor."""
    return json.dumps(schema_to_document(schema), indent=2, ensure_ascii=False)


def parse_schema_text(text: str) -> Tuple[Optional[SchemaRoot], Optional[str]]:
    """
    Parse editor text into a schema.

    Returns:
        Tuple of (schema, None) on success or (None, error message)
    """
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        return None, f"Invalid JSON at line {e.lineno}, column {e.colno}: {e.msg}"

    try:
        return parse_schema_document(document), None
    except MalformedDocument as e:
        return None, e.details


def _reset_editor_text(schema: SchemaRoot) -> None:
    st.session_state[TEXT_KEY] = schema_to_text(schema)
    st.session_state[TEXT_VERSION_KEY] = st.session_state.get(TEXT_VERSION_KEY, 0) + 1


class SchemaEditorView:
    """Manages the schema editor interface."""

    @staticmethod
    def render(config: Dict[str, Any]):
        """Render the complete schema editor."""
        st.header("Schema Editor")
        session = SessionManager.get_session()

        if TEXT_KEY not in st.session_state:
            _reset_editor_text(session.schema)

        try:
            col1, col2 = st.columns([3, 2])
            with col1:
                SchemaEditorView._render_text_editor(config)
            with col2:
                SchemaEditorView._render_class_tree(session.schema)
                SchemaEditorView._render_pending_changes()
        except Exception as e:
            ErrorHandler.handle_error(e, "schema editor", ErrorType.SCHEMA, show_details=True)

    @staticmethod
    def _render_text_editor(config: Dict[str, Any]) -> None:
        """JSON text area with validate, apply, save and reset actions."""
        version = st.session_state.get(TEXT_VERSION_KEY, 0)
        text = st.text_area(
            "Schema (JSON)",
            value=st.session_state[TEXT_KEY],
            height=520,
            key=f"schema_text_area_{version}"
        )
        st.session_state[TEXT_KEY] = text

        col1, col2, col3, col4 = st.columns(4)
        with col1:
            validate_clicked = st.button("Validate", key="schema_validate_btn")
        with col2:
            apply_clicked = st.button("Apply", key="schema_apply_btn")
        with col3:
            save_clicked = st.button("Save Schema", type="primary", key="schema_save_btn")
        with col4:
            reset_clicked = st.button("Reset to Default", key="schema_reset_btn")

        if validate_clicked:
            schema, error = parse_schema_text(text)
            if schema is None:
                st.error(f"❌ {error}")
            else:
                class_count = sum(1 for _ in iter_class_paths(schema))
                st.success(f"✅ Schema is valid ({class_count} classes)")

        if apply_clicked or save_clicked:
            if SchemaEditorView._apply_text(text) and save_clicked:
                SchemaEditorView._save()

        if reset_clicked:
            SchemaEditorView._reset_to_default(config)

        saved_at = st.session_state.get(LAST_SAVE_TS_KEY)
        if saved_at:
            st.caption(f"Last saved: {saved_at}")

    @staticmethod
    def _apply_text(text: str) -> bool:
        """Replace the session schema with the edited text; records are kept."""
        schema, error = parse_schema_text(text)
        if schema is None:
            st.error(f"❌ Schema not applied: {error}")
            return False

        SessionManager.get_session().replace_schema(schema)
        SessionManager.set_selected_record_index(None)
        SessionManager.bump_form_version()
        logger.info(f"Applied schema with {len(schema.classes)} top-level classes")
        Notify.success("Schema applied")
        return True

    @staticmethod
    def _save() -> None:
        """Persist the session schema; a failure keeps the session unchanged."""
        store = SessionManager.get_store()
        if store is None:
            Notify.error("No document store configured")
            return

        success, errors = save_schema(store, SessionManager.get_session())
        if success:
            SessionManager.mark_schema_saved()
            st.session_state[LAST_SAVE_TS_KEY] = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            Notify.success("Schema saved")
        else:
            for error in errors:
                ErrorHandler.handle_error(error, "save schema", ErrorType.PERSISTENCE, show_details=True)

    @staticmethod
    def _reset_to_default(config: Dict[str, Any]) -> None:
        """Load the bundled default schema into the editor text (not applied yet)."""
        schemas_dir = Path(get_config_value(config, 'schema', 'schemas_dir', 'schemas'))
        fallback = get_config_value(config, 'schema', 'fallback_schema', 'default_schema.json')
        schema = load_schema_file(schemas_dir / fallback)
        if schema is None:
            Notify.error(f"Default schema {schemas_dir / fallback} could not be loaded")
            return
        _reset_editor_text(schema)
        Notify.info("Default schema loaded into the editor. Apply or save to use it.")
        st.rerun()

    @staticmethod
    def _render_class_tree(schema: SchemaRoot) -> None:
        """Indented overview of every class and sub-class."""
        st.subheader("Class Tree")
        if not schema.classes:
            st.caption("No classes defined.")
            return

        lines = []
        for path, node in iter_class_paths(schema):
            indent = "    " * (len(path) - 1)
            marker = "" if node.records_enabled else " (group)"
            lines.append(f"{indent}- {node.display_label} [{node.id}]{marker}: {len(node.field_list)} fields")
        st.code("\n".join(lines), language=None)

    @staticmethod
    def _render_pending_changes() -> None:
        """Differences between the session schema and the saved one."""
        current = schema_to_document(SessionManager.get_session().schema)
        diff = calculate_diff(SessionManager.get_saved_schema_document(), current)
        if not has_changes(diff):
            st.caption("Schema matches the saved version.")
            return

        summary = get_change_summary(diff)
        st.warning(f"Unsaved schema changes: {summary['total']}")
        with st.expander("Show schema changes"):
            for line in format_diff_for_display(diff):
                st.text(line)

