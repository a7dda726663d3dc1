"""
Unit tests for editor exceptions and the error handler.
"""

import json
from unittest.mock import MagicMock, patch

from record_editor.error_handler import ErrorHandler, ErrorType
from record_editor.exceptions import (
    EditorError,
    IndexOutOfRange,
    InvalidValue,
    MalformedDocument,
    PersistenceUnavailable,
    SchemaResolutionMiss,
    handle_editor_error,
)


class TestExceptions:
    """Test cases for editor exception messages and details."""

    def test_schema_resolution_miss_message(self):
        """Test messages for unknown class and sub-class ids."""
        assert str(SchemaResolutionMiss("gone")) == "Unknown class id: gone"
        assert "level 2" in str(SchemaResolutionMiss("gone", 2))

    def test_index_out_of_range_details(self):
        """Test full details of an out-of-range index."""
        error = IndexOutOfRange(5, 2, "row")

        details = error.get_full_details()

        assert details['error_type'] == "IndexOutOfRange"
        assert details['message'] == "Row index 5 out of range (size 2)"
        assert details['context'] == {'index': 5, 'length': 2, 'what': 'row'}

    def test_persistence_unavailable_context(self):
        """Test the context kept for store failures."""
        error = PersistenceUnavailable("records", PermissionError("denied"))

        assert error.context['original_error_type'] == "PermissionError"
        assert error.recovery_suggestions

    def test_all_errors_are_editor_errors(self):
        """Test that every error kind derives from EditorError."""
        for error in (
            SchemaResolutionMiss("x"),
            IndexOutOfRange(1, 0),
            InvalidValue("k", "number", "abc"),
            PersistenceUnavailable("schema", OSError("x")),
            MalformedDocument("schema", "bad"),
        ):
            assert isinstance(error, EditorError)

    def test_handle_editor_error_recovers_known_errors(self):
        """Test which errors the editor recovers from."""
        assert handle_editor_error(InvalidValue("k", "number", "abc"), "update") is True
        assert handle_editor_error(MalformedDocument("records", "bad"), "load") is True
        assert handle_editor_error(RuntimeError("boom"), "update") is False


class TestErrorHandler:
    """Test class for the Streamlit error handler."""

    def test_user_friendly_message_by_type(self):
        """Test persistence messages for store and permission errors."""
        message = ErrorHandler.get_user_friendly_message(
            PersistenceUnavailable("records", OSError("x")), ErrorType.PERSISTENCE
        )
        assert "💾" in message
        assert "try saving again" in message.lower()

        message = ErrorHandler.get_user_friendly_message(PermissionError("x"), ErrorType.PERSISTENCE)
        assert "🔒" in message

    def test_json_error_in_schema(self):
        """Test the message for invalid schema JSON."""
        try:
            json.loads("{bad")
        except json.JSONDecodeError as e:
            message = ErrorHandler.get_user_friendly_message(e, ErrorType.SCHEMA)

        assert "not valid JSON" in message

    def test_default_message_for_unknown_type(self):
        """Test the fallback message for an unknown error type."""
        message = ErrorHandler.get_user_friendly_message(RuntimeError("x"), "unknown_type")

        assert "Unexpected error" in message

    @patch('record_editor.error_handler.st')
    def test_handle_error_shows_message(self, mock_st):
        """Test that a save failure is shown without details."""
        ErrorHandler.handle_error(PersistenceUnavailable("records", OSError("disk full")), "save records",
                                  ErrorType.PERSISTENCE)

        mock_st.error.assert_called_once()
        assert "Your changes are kept" in mock_st.error.call_args[0][0]
        mock_st.expander.assert_not_called()

    @patch('record_editor.error_handler.st')
    def test_handle_error_with_details(self, mock_st):
        """Test the technical details expander."""
        mock_st.expander.return_value = MagicMock()

        ErrorHandler.handle_error(PersistenceUnavailable("schema", OSError("down")), "save schema",
                                  ErrorType.PERSISTENCE, show_details=True)

        mock_st.expander.assert_called_once()
        assert mock_st.write.call_count >= 3

    @patch('record_editor.error_handler.st')
    def test_custom_user_message(self, mock_st):
        """Test that a custom message replaces the mapped one."""
        ErrorHandler.handle_error(RuntimeError("boom"), "render", user_message="Something broke")

        mock_st.error.assert_called_once_with("Something broke")
