"""
Session state management for the Streamlit record editor.
Keeps the single EditorSession, the last saved documents and small UI state
in st.session_state.
"""

import streamlit as st
from typing import Any, Dict, List, Optional
from datetime import datetime
import logging

from .persistence import FileDocumentStore, create_store, open_session
from .record_engine import clean_all_records
from .schema_model import schema_to_document
from .session import EditorSession

logger = logging.getLogger(__name__)

DEFAULT_TAB = "data"


class SessionManager:
    """Manages Streamlit session state for the record editor."""

    @staticmethod
    def initialize(config: Dict[str, Any], store: Optional[FileDocumentStore] = None) -> List[str]:
        """
        Initialize session state once per browser session.

        Loads schema and records from the store on the first run only;
        later runs keep the in-memory session.

        Returns:
            Notices produced while loading (empty on later runs)
        """
        defaults = {
            'current_tab': DEFAULT_TAB,
            'selected_record_index': None,
            'form_version': 0,
            'last_activity': datetime.now(),
            'session_id': None,
        }
        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

        if not st.session_state.session_id:
            st.session_state.session_id = f"session_{datetime.now().strftime('%Y%m%d_%H%M%S')}"

        if st.session_state.get('editor_session') is not None:
            return []

        if store is None:
            store = create_store(config)
        session, notices = open_session(store, config)

        st.session_state.store = store
        st.session_state.editor_session = session
        SessionManager.mark_schema_saved()
        SessionManager.mark_records_saved()
        logger.info(f"Session initialized: {st.session_state.session_id}")
        return notices

    @staticmethod
    def get_session() -> EditorSession:
        """Get the editor session (an empty one if not initialized)."""
        session = st.session_state.get('editor_session')
        if session is None:
            session = EditorSession()
            st.session_state.editor_session = session
        return session

    @staticmethod
    def get_store() -> Optional[FileDocumentStore]:
        return st.session_state.get('store')

    @staticmethod
    def get_selected_record_index() -> Optional[int]:
        return st.session_state.get('selected_record_index')

    @staticmethod
    def set_selected_record_index(index: Optional[int]) -> None:
        """Select a record in the active collection and refresh the form widgets."""
        if index != st.session_state.get('selected_record_index'):
            st.session_state.selected_record_index = index
            SessionManager.bump_form_version()

    @staticmethod
    def get_form_version() -> int:
        return st.session_state.get('form_version', 0)

    @staticmethod
    def bump_form_version() -> None:
        """Invalidate widget keys after a structural change (row or record added/removed)."""
        st.session_state.form_version = st.session_state.get('form_version', 0) + 1
        SessionManager.update_activity()

    @staticmethod
    def mark_records_saved() -> None:
        """Remember the current records document as the saved baseline."""
        st.session_state.saved_records_document = clean_all_records(SessionManager.get_session())

    @staticmethod
    def mark_schema_saved() -> None:
        """Remember the current schema document as the saved baseline."""
        st.session_state.saved_schema_document = schema_to_document(SessionManager.get_session().schema)

    @staticmethod
    def get_saved_records_document() -> Dict[str, Any]:
        return st.session_state.get('saved_records_document', {})

    @staticmethod
    def get_saved_schema_document() -> Dict[str, Any]:
        return st.session_state.get('saved_schema_document', {})

    @staticmethod
    def has_unsaved_records() -> bool:
        current = clean_all_records(SessionManager.get_session())
        return current != SessionManager.get_saved_records_document()

    @staticmethod
    def has_unsaved_schema() -> bool:
        current = schema_to_document(SessionManager.get_session().schema)
        return current != SessionManager.get_saved_schema_document()

    @staticmethod
    def update_activity() -> None:
        """Update last activity timestamp."""
        st.session_state.last_activity = datetime.now()

    @staticmethod
    def reset_session() -> None:
        """Drop the editor session so the next run reloads from the store."""
        logger.info(f"Resetting session: {st.session_state.get('session_id', 'unknown')}")
        for key in ('editor_session', 'saved_records_document', 'saved_schema_document',
                    'selected_record_index', 'store', 'schema_editor_text'):
            if key in st.session_state:
                del st.session_state[key]
        SessionManager.bump_form_version()

    @staticmethod
    def get_session_info() -> Dict[str, Any]:
        """Get session information for the sidebar and debugging."""
        session = SessionManager.get_session()
        return {
            'session_id': st.session_state.get('session_id', 'unknown'),
            'navigator': session.navigator.to_dict(),
            'selected_record_index': SessionManager.get_selected_record_index(),
            'node_paths': len(session.records_by_path),
            'unsaved_records': SessionManager.has_unsaved_records(),
            'unsaved_schema': SessionManager.has_unsaved_schema(),
        }
