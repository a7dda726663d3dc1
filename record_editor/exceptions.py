"""
Custom exception classes for the record editor.

Every error kind raised inside the editor core derives from EditorError and
carries a message, a context dictionary and a list of recovery suggestions.
Public operations catch these locally and degrade to a documented default;
they only surface to the user as notices.
"""

import logging
from typing import Optional, Dict, Any, List
from pathlib import Path

logger = logging.getLogger(__name__)


class EditorError(Exception):
    """
    Base exception for record editor errors.

    Attributes:
        message: Error message
        context: Additional context information
        recovery_suggestions: List of suggested recovery actions
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None,
                 recovery_suggestions: Optional[List[str]] = None):
        self.message = message
        self.context = context or {}
        self.recovery_suggestions = recovery_suggestions or []
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def get_full_details(self) -> Dict[str, Any]:
        """Get complete error details including context and suggestions."""
        return {
            'error_type': self.__class__.__name__,
            'message': self.message,
            'context': self.context,
            'recovery_suggestions': self.recovery_suggestions
        }


class SchemaResolutionMiss(EditorError):
    """Raised when a class or sub-class id cannot be found in the schema."""

    def __init__(self, missing_id: str, level: Optional[int] = None,
                 message: Optional[str] = None):
        self.missing_id = missing_id
        self.level = level

        if message is None:
            if level is None:
                message = f"Unknown class id: {missing_id}"
            else:
                message = f"Unknown sub-class id at level {level}: {missing_id}"

        context = {'missing_id': missing_id, 'level': level}
        recovery_suggestions = [
            "Select another class",
            "Reload the schema if it was edited elsewhere"
        ]
        super().__init__(message, context, recovery_suggestions)


class IndexOutOfRange(EditorError):
    """Raised when a record or row index is stale or out of bounds."""

    def __init__(self, index: int, length: int, what: str = "record",
                 message: Optional[str] = None):
        self.index = index
        self.length = length

        if message is None:
            message = f"{what.capitalize()} index {index} out of range (size {length})"

        context = {'index': index, 'length': length, 'what': what}
        super().__init__(message, context, ["Reselect the record and try again"])


class InvalidValue(EditorError):
    """Raised when a value cannot be coerced to the type of its field."""

    def __init__(self, field_key: str, field_type: str, value: Any,
                 message: Optional[str] = None):
        self.field_key = field_key
        self.field_type = field_type
        self.value = value

        if message is None:
            message = f"Value {value!r} is not valid for {field_type} field '{field_key}'"

        context = {'field_key': field_key, 'field_type': field_type, 'value': repr(value)}
        super().__init__(message, context, ["Enter a value matching the field type"])


class PersistenceUnavailable(EditorError):
    """
    Raised when the document store cannot be read or written.

    The in-memory session stays authoritative; the user may retry.
    """

    def __init__(self, kind: str, original_error: Exception,
                 path: Optional[Path] = None, message: Optional[str] = None):
        self.kind = kind
        self.original_error = original_error
        self.path = path

        if message is None:
            message = f"Document store unavailable for '{kind}': {original_error}"

        context = {
            'kind': kind,
            'path': str(path) if path is not None else None,
            'original_error_type': type(original_error).__name__,
            'original_error_message': str(original_error)
        }

        recovery_suggestions = [
            "Check that the data directory exists and is writable",
            "Try saving again; unsaved changes are kept in memory"
        ]
        super().__init__(message, context, recovery_suggestions)


class MalformedDocument(EditorError):
    """
    Raised when a stored document does not parse or does not match its shape.

    Malformed documents are never partially adopted.
    """

    def __init__(self, kind: str, details: str, message: Optional[str] = None):
        self.kind = kind
        self.details = details

        if message is None:
            message = f"Malformed {kind} document: {details}"

        context = {'kind': kind, 'details': details}
        recovery_suggestions = [
            f"Fix or remove the stored {kind} document",
            "The editor continues with a default document"
        ]
        super().__init__(message, context, recovery_suggestions)


def handle_editor_error(error: Exception, context: str) -> bool:
    """
    Log an editor error with its recovery suggestions.

    Args:
        error: The exception that occurred
        context: Context where the error occurred (e.g., "load schema")

    Returns:
        True if the editor can continue, False for unexpected errors
    """
    if isinstance(error, (SchemaResolutionMiss, IndexOutOfRange, InvalidValue)):
        logger.warning(f"{context}: {error}")
        return True

    if isinstance(error, (PersistenceUnavailable, MalformedDocument)):
        logger.error(f"{context}: {error}")
        for suggestion in error.recovery_suggestions:
            logger.info(f"Recovery suggestion: {suggestion}")
        return True

    logger.error(f"Unexpected error in {context}: {error}", exc_info=True)
    return False
