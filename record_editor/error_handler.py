"""
Error handling utilities for the record editor.
Maps errors to user-friendly, non-blocking messages and logs the details.
"""

import streamlit as st
import logging
import json
from typing import Optional

from pydantic import ValidationError

from .exceptions import EditorError, MalformedDocument, PersistenceUnavailable

logger = logging.getLogger(__name__)


class ErrorType:
    """Error type constants."""
    SCHEMA = "schema"
    PERSISTENCE = "persistence"
    SYSTEM = "system"


_ERROR_MESSAGES = {
    ErrorType.SCHEMA: {
        json.JSONDecodeError: "📋 The schema text is not valid JSON.",
        ValidationError: "📋 The schema does not match the expected shape.",
        MalformedDocument: "📋 The schema does not match the expected shape.",
        "default": "📋 Schema error occurred. Please check the schema definition."
    },
    ErrorType.PERSISTENCE: {
        PermissionError: "🔒 Permission denied while accessing the data directory.",
        PersistenceUnavailable: "💾 The data store is unavailable. Your changes are kept; try saving again.",
        OSError: "💾 File system error occurred. Your changes are kept; try saving again.",
        "default": "💾 The data store is unavailable. Your changes are kept."
    },
    ErrorType.SYSTEM: {
        "default": "💻 Unexpected error occurred. Please try again."
    }
}


class ErrorHandler:
    """Error handling for the record editor UI."""

    @staticmethod
    def handle_error(
        error: Exception,
        context: str,
        error_type: str = ErrorType.SYSTEM,
        user_message: Optional[str] = None,
        show_details: bool = False
    ) -> None:
        """
        Log an error and show a user-friendly, non-blocking message.

        Args:
            error: The exception that occurred
            context: Context where the error occurred
            error_type: Type of error (from ErrorType constants)
            user_message: Custom user-friendly message
            show_details: Whether to show technical details
        """
        if isinstance(error, EditorError):
            logger.warning(f"Error in {context}: {error}")
        else:
            logger.error(f"Error in {context}: {str(error)}", exc_info=True)

        if not user_message:
            user_message = ErrorHandler.get_user_friendly_message(error, error_type)

        st.error(user_message)

        if show_details:
            with st.expander("🔍 Technical Details"):
                st.write(f"**Error Type:** {type(error).__name__}")
                st.write(f"**Context:** {context}")
                st.write(f"**Error Message:** {str(error)}")
                if isinstance(error, EditorError):
                    for suggestion in error.recovery_suggestions:
                        st.write(f"• {suggestion}")

    @staticmethod
    def get_user_friendly_message(error: Exception, error_type: str) -> str:
        """Generate user-friendly error messages based on error type."""
        messages = _ERROR_MESSAGES.get(error_type, _ERROR_MESSAGES[ErrorType.SYSTEM])

        for exception_type, message in messages.items():
            if exception_type != "default" and isinstance(error, exception_type):
                return message

        return messages.get("default", "An unexpected error occurred.")

