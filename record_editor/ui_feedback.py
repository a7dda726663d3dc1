"""
UI feedback utilities for the record editor.
Provides the loading spinner and non-blocking notifications.
"""

import streamlit as st
from contextlib import contextmanager
from typing import List
import logging

logger = logging.getLogger(__name__)

PENDING_NOTICES_KEY = "pending_notices"


class Notify:
    """
    Toast-first notification helper.

    Uses st.toast when available, falling back to the inline message
    functions. Notices queued with `queue` survive one st.rerun() and are
    shown by `flush` on the next run.

    Usage:
    Notify.success("Records saved")
    Notify.queue("Schema applied", "success"); st.rerun()
    """

    _ICONS = {
        'success': '✅',
        'info': 'ℹ️',
        'warning': '⚠️',
        'error': '❌'
    }

    @staticmethod
    def _display_notification(message: str, notification_type: str = 'info') -> None:
        """Internal method to display notification based on type."""
        icon = Notify._ICONS.get(notification_type, 'ℹ️')

        if hasattr(st, 'toast'):
            st.toast(message, icon=icon)
            return

        full_message = f"{icon} {message}"
        if notification_type == 'success':
            st.success(full_message)
        elif notification_type == 'warning':
            st.warning(full_message)
        elif notification_type == 'error':
            st.error(full_message)
        else:
            st.info(full_message)

    @staticmethod
    def success(message: str) -> None:
        """Show success notification."""
        Notify._display_notification(message, 'success')

    @staticmethod
    def info(message: str) -> None:
        """Show info notification."""
        Notify._display_notification(message, 'info')

    @staticmethod
    def warn(message: str) -> None:
        """Show warning notification."""
        Notify._display_notification(message, 'warning')

    @staticmethod
    def error(message: str) -> None:
        """Show error notification."""
        Notify._display_notification(message, 'error')

    @staticmethod
    def queue(message: str, notification_type: str = 'info') -> None:
        """Keep a notice for the next script run."""
        pending: List[tuple] = st.session_state.get(PENDING_NOTICES_KEY) or []
        pending.append((message, notification_type))
        st.session_state[PENDING_NOTICES_KEY] = pending

    @staticmethod
    def flush() -> int:
        """Show and clear every queued notice. Returns how many were shown."""
        pending = st.session_state.get(PENDING_NOTICES_KEY) or []
        for message, notification_type in pending:
            Notify._display_notification(message, notification_type)
        st.session_state[PENDING_NOTICES_KEY] = []
        return len(pending)


@contextmanager
def show_loading(message: str = "Loading..."):
    """Show a spinner while the block runs."""
    with st.spinner(message):
        yield
