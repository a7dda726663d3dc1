"""
Main Streamlit application for the schema record editor.
Schema-driven management interface: pick a class in the class tree, edit its
records and save them; edit the class schema itself in the schema editor.
"""

import streamlit as st
import logging

from record_editor.config_loader import get_config_summary, get_config_value, load_config

def get_logging_level(level_str):
    """Map string logging level to logging constant."""
    level_map = {
        'DEBUG': logging.DEBUG,
        'INFO': logging.INFO,
        'WARNING': logging.WARNING,
        'ERROR': logging.ERROR,
        'CRITICAL': logging.CRITICAL
    }
    return level_map.get(str(level_str).upper(), logging.INFO)

# Load configuration early
config = load_config()

# Configure logging dynamically from config
log_level_str = get_config_value(config, 'logging', 'level', 'INFO')
logging.basicConfig(level=get_logging_level(log_level_str))
logger = logging.getLogger(__name__)
logger.info(f"Logging configured to level: {log_level_str}")
logger.info(f"Starting app version: {get_config_value(config, 'app', 'version', 'Unknown')}")

# Page configuration
st.set_page_config(
    page_title=get_config_value(config, 'ui', 'page_title', 'Management Interface'),
    page_icon="🗂️",
    layout="wide",
    initial_sidebar_state="expanded"
)

PAGES = {
    'data': '✏️ Data Editor',
    'schema': '🔧 Schema Editor',
}


def main():
    """Main application entry point."""
    from record_editor.error_handler import ErrorHandler, ErrorType
    from record_editor.session_manager import SessionManager
    from record_editor.ui_feedback import Notify, show_loading

    try:
        with show_loading("Loading schema and records..."):
            notices = SessionManager.initialize(config)
        for notice in notices:
            Notify.warn(notice)
        Notify.flush()

        render_header()
        render_sidebar()
        render_main_content()

    except Exception as e:
        ErrorHandler.handle_error(e, "application startup", ErrorType.SYSTEM, show_details=True)


def render_header():
    """Render the page title and the unsaved-changes banner."""
    from record_editor.session_manager import SessionManager

    st.title(get_config_value(config, 'ui', 'page_title', 'Management Interface'))
    if SessionManager.has_unsaved_records() or SessionManager.has_unsaved_schema():
        st.caption("⚠️ You have unsaved changes")


def render_sidebar():
    """Render application sidebar."""
    from record_editor.edit_view import EditView
    from record_editor.session_manager import SessionManager

    with st.sidebar:
        st.header("Navigation")

        current = st.session_state.get('current_tab', 'data')
        page = st.radio(
            "Select View:",
            options=list(PAGES),
            format_func=lambda x: PAGES[x],
            index=list(PAGES).index(current) if current in PAGES else 0
        )

        if page != current:
            st.session_state.current_tab = page
            st.rerun()

        st.divider()
        EditView.render_edit_sidebar()

        st.divider()
        st.header("Quick Actions")
        if st.button("🔄 Reload from Store", help="Discard unsaved changes and reload both documents"):
            SessionManager.reset_session()
            st.rerun()

        st.divider()
        with st.expander("Configuration"):
            for key, value in get_config_summary(config).items():
                st.text(f"{key}: {value}")
            info = SessionManager.get_session_info()
            st.text(f"session: {info['session_id']}")


def render_main_content():
    """Render main content area based on the current tab."""
    from record_editor.edit_view import EditView
    from record_editor.schema_editor_view import SchemaEditorView

    page = st.session_state.get('current_tab', 'data')
    if page == 'data':
        EditView.render()
    elif page == 'schema':
        SchemaEditorView.render(config)
    else:
        st.error(f"Unknown page: {page}")


if __name__ == "__main__":
    main()
